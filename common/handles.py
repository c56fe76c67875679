#!/usr/bin/env python3
"""
File Handle Module

Opaque references to the images a batch works on. Two kinds exist:

    DirectPathHandle  - a regular file addressed by absolute path ("file")
    CatalogHandle     - a media catalog record ("content"), optionally reached
                        through a document id and limited by access grants

Upper layers only use the capability methods (open_read, open_write,
open_read_write, delete) and the read-only location hints consumed by the
destination resolver.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, FrozenSet, Iterable, List, Optional

from common.catalog import COLLECTION_DOWNLOADS, CatalogRecord, MediaCatalog
from common.errors import AccessDenied, CatalogError
from common.file_utils import get_mime_type, is_image_mime
from common.utils import is_supported_image

logger = logging.getLogger(__name__)

SCHEME_FILE = "file"
SCHEME_CONTENT = "content"

# Authorities a catalog handle can be obtained through
AUTHORITY_MEDIA = "media"
AUTHORITY_EXTERNAL_STORAGE = "externalstorage.documents"
AUTHORITY_DOWNLOADS = "downloads.documents"

GRANT_READ = "r"
GRANT_WRITE = "w"
GRANT_READ_WRITE = "rw"
ALL_GRANTS: FrozenSet[str] = frozenset({GRANT_READ, GRANT_WRITE, GRANT_READ_WRITE})

UNKNOWN_NAME = "Unknown"


class FileHandle(ABC):
    """Base class for every handle kind"""

    scheme: str = ""

    @property
    @abstractmethod
    def display_name(self) -> str:
        pass

    @property
    @abstractmethod
    def size(self) -> int:
        """Byte size, or 0 when unknown"""
        pass

    @property
    @abstractmethod
    def mime_type(self) -> Optional[str]:
        pass

    @property
    @abstractmethod
    def uri(self) -> str:
        pass

    @abstractmethod
    def open_read(self) -> BinaryIO:
        pass

    @abstractmethod
    def open_write(self) -> BinaryIO:
        """Open for writing, truncating existing content"""
        pass

    @abstractmethod
    def open_read_write(self) -> BinaryIO:
        """Open for in-place read/write without truncating"""
        pass

    @abstractmethod
    def delete(self) -> bool:
        """Delete the underlying file; False if it could not be removed"""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.uri!r})"


class DirectPathHandle(FileHandle):
    """Handle for a regular file on a mounted filesystem"""

    scheme = SCHEME_FILE

    def __init__(self, path: Path, mime_type: Optional[str] = None):
        self.path = Path(path).absolute()
        self._mime_type = mime_type

    @property
    def display_name(self) -> str:
        return self.path.name or UNKNOWN_NAME

    @property
    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    @property
    def mime_type(self) -> Optional[str]:
        if self._mime_type is None and self.path.is_file():
            self._mime_type = get_mime_type(self.path)
        return self._mime_type

    @property
    def uri(self) -> str:
        return self.path.as_uri()

    def location(self) -> Path:
        """Directory containing the file"""
        return self.path.parent

    def open_read(self) -> BinaryIO:
        return open(self.path, "rb")

    def open_write(self) -> BinaryIO:
        return open(self.path, "wb")

    def open_read_write(self) -> BinaryIO:
        return open(self.path, "r+b")

    def delete(self) -> bool:
        try:
            self.path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Cannot delete {self.path}: {e}")
            return False


class CatalogHandle(FileHandle):
    """Handle for a media catalog record.

    Args:
        catalog: Catalog that owns the record
        record_id: Catalog record id
        authority: Authority the handle was obtained through
        document_id: Optional document id ("primary:DCIM/a.png",
            "raw:/abs/path/a.png", "image:42")
        grants: Access modes granted to the holder
    """

    scheme = SCHEME_CONTENT

    def __init__(
        self,
        catalog: MediaCatalog,
        record_id: int,
        authority: str = AUTHORITY_MEDIA,
        document_id: Optional[str] = None,
        grants: Iterable[str] = ALL_GRANTS,
    ):
        self.catalog = catalog
        self.record_id = record_id
        self.authority = authority
        self.document_id = document_id
        self.grants = frozenset(grants)

    @classmethod
    def from_record(
        cls,
        catalog: MediaCatalog,
        record: CatalogRecord,
        as_document: bool = False,
        grants: Iterable[str] = ALL_GRANTS,
    ) -> "CatalogHandle":
        """Build a handle for a record, optionally reached as a storage document.

        Documents in the downloads collection are served by the downloads
        authority, everything else by external storage.
        """
        if as_document:
            authority = (
                AUTHORITY_DOWNLOADS
                if record.collection == COLLECTION_DOWNLOADS
                else AUTHORITY_EXTERNAL_STORAGE
            )
            return cls(
                catalog,
                record.id,
                authority=authority,
                document_id=record.document_id,
                grants=grants,
            )
        return cls(catalog, record.id, grants=grants)

    @property
    def record(self) -> Optional[CatalogRecord]:
        return self.catalog.get(self.record_id)

    @property
    def display_name(self) -> str:
        record = self.record
        if record is not None and record.display_name:
            return record.display_name
        if self.document_id:
            return self.document_id.rstrip("/").rsplit("/", 1)[-1].split(":")[-1] or UNKNOWN_NAME
        return UNKNOWN_NAME

    @property
    def size(self) -> int:
        record = self.record
        return record.size if record is not None else 0

    @property
    def mime_type(self) -> Optional[str]:
        record = self.record
        return record.mime_type if record is not None else None

    @property
    def uri(self) -> str:
        return f"{SCHEME_CONTENT}://{self.authority}/{self.document_id or self.record_id}"

    def is_document(self) -> bool:
        return self.document_id is not None

    def open_read(self) -> BinaryIO:
        self._require(GRANT_READ)
        return self._open(self.catalog.open_read)

    def open_write(self) -> BinaryIO:
        self._require(GRANT_WRITE)
        return self._open(self.catalog.open_write)

    def open_read_write(self) -> BinaryIO:
        self._require(GRANT_READ_WRITE)
        return self._open(lambda record_id: self.catalog.open_write(record_id, truncate=False))

    def delete(self) -> bool:
        if GRANT_WRITE not in self.grants:
            logger.warning(f"No write grant to delete {self.uri}")
            return False
        return self.catalog.delete(self.record_id)

    def _require(self, grant: str) -> None:
        if grant not in self.grants:
            raise AccessDenied(f"Access mode '{grant}' not granted for {self.uri}")

    def _open(self, opener) -> BinaryIO:
        try:
            return opener(self.record_id)
        except CatalogError as e:
            raise OSError(str(e)) from e


# =============================================================================
# Enumeration
# =============================================================================


def handles_from_paths(
    paths: Iterable[Path], catalog: Optional[MediaCatalog] = None, as_document: bool = False
) -> List[FileHandle]:
    """Build handles for explicit paths.

    With a catalog, each file is indexed (if needed) and returned as a
    CatalogHandle; otherwise a DirectPathHandle is returned.

    Raises:
        CatalogError: If a path cannot be indexed
    """
    handles: List[FileHandle] = []
    for path in paths:
        path = Path(path)
        if catalog is None:
            handles.append(DirectPathHandle(path))
            continue
        record_id = catalog.index_file(path)
        handles.append(CatalogHandle.from_record(catalog, catalog.get(record_id), as_document))
    return handles


def list_folder_images(folder: Path) -> List[Path]:
    """First-level image files of a folder, sorted by name.

    Entries whose detected type is a folder/directory are skipped, as are
    files that neither carry an image extension nor sniff as an image.
    """
    folder = Path(folder)
    images = []
    for entry in sorted(folder.iterdir(), key=lambda p: p.name):
        if not entry.is_file():
            continue
        if is_supported_image(entry) or is_image_mime(get_mime_type(entry)):
            images.append(entry)
    logger.debug(f"Found {len(images)} images in {folder}")
    return images
