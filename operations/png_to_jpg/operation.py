#!/usr/bin/env python3
"""
PNG to JPG Operation

Converts each PNG in a batch to a JPG written next to it, then removes the
PNG. Transparent regions become white. The source is only deleted once the
JPG has been committed and confirmed present. If the PNG then cannot be
deleted the item still counts as converted, with a warning.
"""

import logging
from typing import Optional

from common.catalog import MediaCatalog
from common.config import DEFAULT_JPEG_QUALITY, Settings
from common.errors import (
    DecodeFailure,
    IntegrityCheckFailed,
    NoLegalTarget,
    SourceDeletionFailed,
    WriteFailure,
    WrongType,
)
from common.handles import FileHandle
from common.progress import PHASE_CONVERT
from common.resolver import DestinationResolver
from common.results import BatchItemResult
from common.transcode import decode_png, encode_jpeg, prepare_for_jpeg
from common.utils import replace_extension
from common.write_handle import destination_exists, open_sibling_write_handle
from operations.base import OperationBase

logger = logging.getLogger(__name__)

PNG_MIME = "image/png"
JPEG_MIME = "image/jpeg"
SOURCE_RETAINED = "Created JPG, but failed to delete PNG"


class PngToJpgOperation(OperationBase):
    """Transcode PNG images to JPEG siblings"""

    def __init__(
        self,
        resolver: DestinationResolver,
        quality: int = DEFAULT_JPEG_QUALITY,
    ):
        if not 0 <= quality <= 100:
            raise ValueError(f"JPEG quality must be within 0..100, got {quality}")
        self.resolver = resolver
        self.quality = quality

    @staticmethod
    def get_name() -> str:
        return "png-to-jpg"

    @staticmethod
    def get_description() -> str:
        return "Convert PNG images to JPG next to the original and delete the PNG"

    @staticmethod
    def get_phase() -> str:
        return PHASE_CONVERT

    @classmethod
    def create(
        cls, settings: Settings, catalog: Optional[MediaCatalog] = None, **options
    ) -> "PngToJpgOperation":
        quality = options.get("quality")
        return cls(
            DestinationResolver(catalog, settings),
            quality=settings.jpeg_quality if quality is None else quality,
        )

    def process_item(self, handle: FileHandle) -> BatchItemResult:
        name = handle.display_name

        mime_type = handle.mime_type
        if mime_type and mime_type.lower() != PNG_MIME:
            raise WrongType("Not a PNG image")

        try:
            with handle.open_read() as stream:
                image = decode_png(stream)
        except OSError as e:
            raise DecodeFailure("Failed to decode PNG") from e

        prepared = image
        try:
            prepared = prepare_for_jpeg(image)
            self._write_jpeg(handle, prepared, replace_extension(name, "jpg"))
        finally:
            if prepared is not image:
                prepared.close()
            image.close()

        if not handle.delete():
            raise SourceDeletionFailed(SOURCE_RETAINED)

        logger.debug(f"Converted {name}")
        return BatchItemResult.ok(name)

    def _write_jpeg(self, source: FileHandle, image, target_name: str) -> None:
        try:
            output = open_sibling_write_handle(self.resolver, source, target_name, JPEG_MIME)
        except NoLegalTarget as e:
            preview = self.resolver.preview_destination(source, target_name)
            logger.debug(f"No destination for {target_name}: {e}")
            raise NoLegalTarget(
                f"Cannot create destination JPG next to source: {preview}"
            ) from e

        with output:
            try:
                with output.sink() as sink:
                    encode_jpeg(image, sink, self.quality)
            except (OSError, ValueError) as e:
                raise WriteFailure("Compression failed") from e

            output.finalize()
            if not destination_exists(output):
                raise IntegrityCheckFailed("JPG not found after write")


def get_operation():
    """Return operation class for auto-discovery.

    Returns:
        PngToJpgOperation class
    """
    return PngToJpgOperation
