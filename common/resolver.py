#!/usr/bin/env python3
"""
Destination Resolver Module

Chooses where a derived file (e.g. the JPG produced from a PNG) is written so
that it lands next to its source and never overwrites an existing file.

Strategies, in order:
    1. Direct: derive an absolute directory for the source and probe
       name.ext, name(1).ext, ... on disk.
    2. Catalog: insert a pending catalog row for the name (then numbered
       variants), cleaning up stale rows that squat on a name.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple

from common.catalog import (
    DEFAULT_RELATIVE_PATH,
    MediaCatalog,
    collection_for_relative_path,
    normalize_relative_path,
)
from common.config import PRIMARY_VOLUME, Settings
from common.errors import CatalogError, NameConflict, NoLegalTarget
from common.handles import CatalogHandle, DirectPathHandle, FileHandle
from common.utils import numbered_name

logger = logging.getLogger(__name__)

RAW_PREFIX = "raw"
DOWNLOAD_DIR = "Download/"


@dataclass(frozen=True)
class CatalogInsert:
    """Descriptor of a provisional catalog row"""

    collection: str
    volume: str
    relative_path: str
    display_name: str
    mime_type: Optional[str]
    pending: bool = True


@dataclass(frozen=True)
class DestinationTarget:
    """Where a derived file will be written.

    Exactly one of path (direct) or insert (catalog) is set. record_id is the
    id of the provisional row for catalog targets.
    """

    path: Optional[Path] = None
    insert: Optional[CatalogInsert] = None
    record_id: Optional[int] = None

    def __post_init__(self):
        if (self.path is None) == (self.insert is None):
            raise ValueError("DestinationTarget needs exactly one of path or insert")
        if self.insert is not None and self.record_id is None:
            raise ValueError("Catalog destinations need the provisional record id")

    @property
    def is_direct(self) -> bool:
        return self.path is not None

    @property
    def display_name(self) -> str:
        return self.path.name if self.path is not None else self.insert.display_name


# =============================================================================
# Document id helpers
# =============================================================================


def split_document_id(document_id: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Split "prefix:path" into its parts

    Example:
        >>> split_document_id("primary:DCIM/Camera/a.png")
        ('primary', 'DCIM/Camera/a.png')
        >>> split_document_id("no-colon")
        (None, None)
    """
    if not document_id:
        return None, None
    colon = document_id.find(":")
    if colon <= 0:
        return None, None
    return document_id[:colon], document_id[colon + 1:]


def relative_dir_of(path_part: str) -> str:
    """Directory portion of a relative document path, in "A/B/" form"""
    if "/" not in path_part:
        return ""
    return normalize_relative_path(path_part.rsplit("/", 1)[0])


class DestinationResolver:
    """Resolve a sibling destination for a derived file.

    Args:
        catalog: Catalog used by the fallback strategy (None disables it)
        settings: Storage roots and the name suffix budget
    """

    def __init__(self, catalog: Optional[MediaCatalog], settings: Settings):
        self.catalog = catalog
        self.settings = settings

    def resolve(
        self, source: FileHandle, desired_name: str, mime_type: Optional[str] = "image/jpeg"
    ) -> DestinationTarget:
        """Pick a destination for desired_name next to source.

        Raises:
            NoLegalTarget: If no strategy produced a destination
        """
        directory = self.absolute_target_dir(source)
        if directory is not None:
            try:
                return self._resolve_direct(directory, desired_name)
            except OSError as e:
                logger.warning(f"Direct write next to {source.display_name} failed: {e}")

        return self.resolve_catalog(source, desired_name, mime_type)

    # ------------------------------------------------------------------
    # Location derivation
    # ------------------------------------------------------------------

    def absolute_target_dir(self, source: FileHandle) -> Optional[Path]:
        """Absolute directory of the source, when it can be derived"""
        if isinstance(source, DirectPathHandle):
            return source.location()
        if not isinstance(source, CatalogHandle):
            return None

        prefix, path_part = split_document_id(source.document_id)
        if path_part is not None:
            if path_part.startswith("/"):
                return Path(path_part).parent
            if "/" in path_part:
                return self.settings.volume_root(prefix) / relative_dir_of(path_part)
            return None

        if not source.is_document() and self._looks_like_download(source):
            return self.settings.volume_root(PRIMARY_VOLUME) / DOWNLOAD_DIR
        return None

    def volume_of(self, source: FileHandle) -> str:
        """Volume a source lives on (primary when unknown)"""
        prefix, path_part = split_document_id(getattr(source, "document_id", None))
        if prefix == RAW_PREFIX and path_part:
            located = self.catalog.locate(Path(path_part)) if self.catalog else None
            return located[0] if located else PRIMARY_VOLUME
        if prefix and path_part and "/" in path_part:
            return prefix
        if isinstance(source, CatalogHandle):
            record = source.record
            if record is not None:
                return record.volume
        if isinstance(source, DirectPathHandle) and self.catalog is not None:
            located = self.catalog.locate(source.path)
            if located:
                return located[0]
        return PRIMARY_VOLUME

    def catalog_relative_path(self, source: FileHandle) -> str:
        """Relative directory used for the catalog fallback"""
        if isinstance(source, CatalogHandle):
            record = source.record
            if record is not None and record.relative_path:
                return record.relative_path

            prefix, path_part = split_document_id(source.document_id)
            if path_part and prefix != RAW_PREFIX and "/" in path_part:
                return relative_dir_of(path_part)
            if path_part and path_part.startswith("/") and self.catalog is not None:
                located = self.catalog.locate(Path(path_part))
                if located and located[1]:
                    return located[1]
            if self._looks_like_download(source):
                return DOWNLOAD_DIR

        if isinstance(source, DirectPathHandle) and self.catalog is not None:
            located = self.catalog.locate(source.path)
            if located and located[1]:
                return located[1]

        return DEFAULT_RELATIVE_PATH

    def preview_destination(self, source: FileHandle, name: str) -> str:
        """Human-readable path where name would be written"""
        directory = self.absolute_target_dir(source)
        if directory is not None:
            return str(directory / name)
        _collection, relative_path = collection_for_relative_path(
            self.catalog_relative_path(source)
        )
        return str(self.settings.volume_root(self.volume_of(source)) / relative_path / name)

    @staticmethod
    def _looks_like_download(source: FileHandle) -> bool:
        if not isinstance(source, CatalogHandle):
            return False
        return "downloads" in source.authority or "/download/" in source.uri.lower()

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def direct_candidates(self, directory: Path, name: str) -> Iterator[Path]:
        """Free names next to a source: name.ext, name(1).ext, ...

        The directory is created first. Raises OSError if it cannot be.
        """
        directory.mkdir(parents=True, exist_ok=True)
        for counter in range(self.settings.max_name_suffix):
            candidate = directory / numbered_name(name, counter)
            if not candidate.exists():
                yield candidate

    def suffix_budget_exhausted(self, preview) -> NoLegalTarget:
        return NoLegalTarget(
            f"Unable to find unique name after {self.settings.max_name_suffix} attempts: {preview}"
        )

    def _resolve_direct(self, directory: Path, name: str) -> DestinationTarget:
        for candidate in self.direct_candidates(directory, name):
            logger.debug(f"Resolved direct destination {candidate}")
            return DestinationTarget(path=candidate)
        raise self.suffix_budget_exhausted(directory / name)

    def resolve_catalog(
        self, source: FileHandle, name: str, mime_type: Optional[str] = "image/jpeg"
    ) -> DestinationTarget:
        """Insert a provisional catalog row for name next to source.

        Raises:
            NoLegalTarget: If there is no catalog, the suffix budget runs out
                or the insert fails for a reason other than a name conflict
        """
        if self.catalog is None:
            raise NoLegalTarget(
                f"Cannot create destination next to source: "
                f"{self.preview_destination(source, name)}"
            )

        volume = self.volume_of(source)
        collection, relative_path = collection_for_relative_path(
            self.catalog_relative_path(source)
        )
        preview = self.settings.volume_root(volume) / relative_path / name
        retried = set()
        counter = 0

        while counter < self.settings.max_name_suffix:
            candidate = numbered_name(name, counter)
            try:
                record_id = self.catalog.insert(
                    collection, volume, relative_path, candidate, mime_type, pending=True
                )
            except NameConflict:
                if candidate not in retried and self._cleanup_stale(volume, relative_path, candidate):
                    retried.add(candidate)
                    continue
                counter += 1
                continue
            except CatalogError as e:
                raise NoLegalTarget(f"Cannot create destination next to source: {preview} ({e})") from e

            logger.debug(f"Resolved catalog destination {volume}:{relative_path}{candidate}")
            return DestinationTarget(
                insert=CatalogInsert(collection, volume, relative_path, candidate, mime_type),
                record_id=record_id,
            )

        raise self.suffix_budget_exhausted(preview)

    def _cleanup_stale(self, volume: str, relative_path: str, name: str) -> bool:
        """Delete the record squatting on name if it is stale.

        A record is stale when its recorded size is not positive or its
        content cannot be opened. Returns True if a stale record was removed.
        """
        record = self.catalog.find(volume, relative_path, name)
        if record is None:
            return False

        try:
            readable = self.catalog.stat_size(record.id) >= 0
        except (CatalogError, OSError):
            readable = False

        if record.size > 0 and readable:
            return False

        deleted = self.catalog.delete(record.id)
        if deleted:
            logger.warning(f"Removed stale catalog record for {relative_path}{name} (id={record.id})")
        return deleted
