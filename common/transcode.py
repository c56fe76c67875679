#!/usr/bin/env python3
"""
Raster helpers for transcoding images to JPEG.

JPEG has no alpha channel, so transparent regions are composited over opaque
white before encoding.
"""

import io
import logging
from typing import BinaryIO

from PIL import Image, UnidentifiedImageError

from common.errors import DecodeFailure

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)

ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}
JPEG_MODES = {"RGB", "L", "CMYK"}


def has_alpha(image: Image.Image) -> bool:
    """Check whether an image carries transparency"""
    return image.mode in ALPHA_MODES or "transparency" in image.info


def flatten_alpha(image: Image.Image, background=WHITE) -> Image.Image:
    """
    Composite an image over an opaque background.

    Args:
        image: Source image (any mode)
        background: RGB background color (white by default)

    Returns:
        New RGB image; the input is left untouched
    """
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    try:
        result = Image.new("RGB", rgba.size, background)
        result.paste(rgba, mask=rgba.split()[-1])
        return result
    finally:
        if rgba is not image:
            rgba.close()


def prepare_for_jpeg(image: Image.Image) -> Image.Image:
    """Return an image JPEG can encode (may be the input itself)"""
    if has_alpha(image):
        return flatten_alpha(image)
    if image.mode not in JPEG_MODES:
        return image.convert("RGB")
    return image


def decode_png(stream: BinaryIO) -> Image.Image:
    """
    Fully decode a PNG from a stream.

    Raises:
        DecodeFailure: If the bytes are unreadable or not a PNG
    """
    try:
        image = Image.open(io.BytesIO(stream.read()))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise DecodeFailure("Failed to decode PNG") from e

    if image.format != "PNG":
        image.close()
        raise DecodeFailure("Failed to decode PNG")
    return image


def encode_jpeg(image: Image.Image, sink: BinaryIO, quality: int) -> None:
    """Encode an image as JPEG into sink"""
    image.save(sink, format="JPEG", quality=quality)
    logger.debug(f"Encoded JPEG {image.size[0]}x{image.size[1]} at quality {quality}")
