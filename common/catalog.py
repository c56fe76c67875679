#!/usr/bin/env python3
"""
Media Catalog Module

A small media index that stores files by logical location (volume, relative
directory, display name) rather than by path. Each record belongs to a
collection ("images" or "downloads") and may be pending, which hides it from
listings until the writer commits it.

The index lives in SQLite; file contents live under the volume roots given by
common.config.Settings. A record's content path is always
    <volume root>/<relative_path><display_name>
so two records can never share a file. Nothing here coordinates with other
processes: the UNIQUE constraint is the only guard against concurrent inserts.
"""

import logging
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from common.config import PRIMARY_VOLUME, Settings
from common.errors import CatalogError, NameConflict
from common.file_utils import get_mime_type

logger = logging.getLogger(__name__)

COLLECTION_IMAGES = "images"
COLLECTION_DOWNLOADS = "downloads"

# Top-level directories that map to each collection
IMAGE_TOP_DIRS = {"dcim", "pictures"}
DOWNLOAD_TOP_DIRS = {"download", "downloads"}

DEFAULT_RELATIVE_PATH = "Pictures/"

SCHEMA = """
CREATE TABLE IF NOT EXISTS media (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    volume TEXT NOT NULL,
    relative_path TEXT NOT NULL,
    display_name TEXT NOT NULL,
    mime_type TEXT,
    size INTEGER NOT NULL DEFAULT 0,
    is_pending INTEGER NOT NULL DEFAULT 0,
    date_added INTEGER NOT NULL,
    UNIQUE (volume, relative_path, display_name)
);
"""

_COLUMNS = (
    "id, collection, volume, relative_path, display_name, "
    "mime_type, size, is_pending, date_added"
)


@dataclass(frozen=True)
class CatalogRecord:
    """One row of the catalog"""

    id: int
    collection: str
    volume: str
    relative_path: str
    display_name: str
    mime_type: Optional[str]
    size: int
    is_pending: bool
    date_added: int

    @property
    def document_id(self) -> str:
        """Volume-prefixed document id, e.g. "primary:DCIM/Camera/a.png"."""
        return f"{self.volume}:{self.relative_path}{self.display_name}"


def normalize_relative_path(relative_path: Optional[str]) -> str:
    """Normalize a relative directory to "A/B/" form ("" for the volume root)

    Example:
        >>> normalize_relative_path("/DCIM//Camera")
        'DCIM/Camera/'
    """
    if not relative_path:
        return ""
    parts = [p for p in relative_path.replace("\\", "/").split("/") if p]
    return "/".join(parts) + "/" if parts else ""


def collection_for_relative_path(relative_path: str) -> Tuple[str, str]:
    """Choose the collection and the relative path to insert under.

    DCIM/ and Pictures/ trees go to the images collection, Download(s)/ trees
    to downloads. Anything else is redirected to images under Pictures/.

    Returns:
        Tuple of (collection, insert_relative_path)

    Example:
        >>> collection_for_relative_path("Download/Sub/")
        ('downloads', 'Download/Sub/')
        >>> collection_for_relative_path("Documents/")
        ('images', 'Pictures/')
    """
    relative_path = normalize_relative_path(relative_path) or DEFAULT_RELATIVE_PATH
    top_dir = relative_path.split("/", 1)[0].lower()
    if top_dir in IMAGE_TOP_DIRS:
        return COLLECTION_IMAGES, relative_path
    if top_dir in DOWNLOAD_TOP_DIRS:
        return COLLECTION_DOWNLOADS, relative_path
    return COLLECTION_IMAGES, DEFAULT_RELATIVE_PATH


class MediaCatalog:
    """SQLite-backed media index with content stored under volume roots"""

    def __init__(self, db_path: Path, settings: Settings):
        """
        Open (creating if needed) the catalog index.

        Args:
            db_path: Path to the SQLite database file (":memory:" allowed)
            settings: Settings providing the volume roots

        Raises:
            CatalogError: If the database cannot be opened
        """
        self.db_path = db_path
        self.settings = settings
        self._lock = threading.RLock()

        try:
            if str(db_path) != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise CatalogError(f"Cannot open catalog at {db_path}: {e}") from e

        logger.debug(f"Opened media catalog: {db_path}")

    @classmethod
    def open(cls, settings: Settings) -> "MediaCatalog":
        """Open the catalog configured by settings"""
        return cls(settings.effective_catalog_db, settings)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "MediaCatalog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, record_id: int) -> Optional[CatalogRecord]:
        """Fetch a record by id, or None if it does not exist"""
        row = self._query_one(f"SELECT {_COLUMNS} FROM media WHERE id = ?", (record_id,))
        return _to_record(row)

    def find(
        self, volume: str, relative_path: str, display_name: str
    ) -> Optional[CatalogRecord]:
        """Find the record occupying a name within a directory (pending or not)"""
        row = self._query_one(
            f"SELECT {_COLUMNS} FROM media "
            "WHERE volume = ? AND relative_path = ? AND display_name = ?",
            (volume, normalize_relative_path(relative_path), display_name),
        )
        return _to_record(row)

    def list_records(
        self, collection: Optional[str] = None, include_pending: bool = False
    ) -> List[CatalogRecord]:
        """List records ordered by directory and name; pending rows are hidden by default"""
        sql = f"SELECT {_COLUMNS} FROM media WHERE 1 = 1"
        params: list = []
        if collection:
            sql += " AND collection = ?"
            params.append(collection)
        if not include_pending:
            sql += " AND is_pending = 0"
        sql += " ORDER BY volume, relative_path, display_name"

        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise CatalogError(f"Catalog query failed: {e}") from e
        return [_to_record(row) for row in rows]

    def content_path(self, record: CatalogRecord) -> Path:
        """Absolute path of a record's content"""
        root = self.settings.volume_root(record.volume)
        return root / record.relative_path / record.display_name

    def locate(self, path: Path) -> Optional[Tuple[str, str, str]]:
        """Map an absolute path to (volume, relative_path, display_name).

        Returns None when the path lies outside every known volume root.
        """
        path = Path(path).resolve()
        candidates = [(PRIMARY_VOLUME, self.settings.storage_root.resolve())]
        base = self.settings.storage_base.resolve()
        try:
            volume = path.relative_to(base).parts[0]
            candidates.append((volume, base / volume))
        except (ValueError, IndexError):
            pass

        for volume, root in candidates:
            try:
                relative = path.relative_to(root)
            except ValueError:
                continue
            parent = relative.parent
            relative_dir = "" if parent == Path(".") else normalize_relative_path(parent.as_posix())
            return volume, relative_dir, path.name
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(
        self,
        collection: str,
        volume: str,
        relative_path: str,
        display_name: str,
        mime_type: Optional[str],
        pending: bool = True,
    ) -> int:
        """Insert a new record and return its id.

        Raises:
            NameConflict: If a record already uses the name in that directory,
                or an unindexed file already occupies the content path
            CatalogError: For any other database failure
        """
        relative_path = normalize_relative_path(relative_path)
        content = self.settings.volume_root(volume) / relative_path / display_name
        if content.exists():
            raise NameConflict(f"File already exists on disk: {content}")

        with self._lock:
            try:
                cursor = self._conn.execute(
                    "INSERT INTO media (collection, volume, relative_path, display_name, "
                    "mime_type, size, is_pending, date_added) VALUES (?, ?, ?, ?, ?, 0, ?, ?)",
                    (
                        collection,
                        volume,
                        relative_path,
                        display_name,
                        mime_type,
                        1 if pending else 0,
                        int(time.time()),
                    ),
                )
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                raise NameConflict(
                    f"UNIQUE constraint failed for {relative_path}{display_name}: {e}"
                ) from e
            except sqlite3.Error as e:
                self._conn.rollback()
                raise CatalogError(f"Insert failed for {relative_path}{display_name}: {e}") from e

        logger.debug(
            f"Inserted catalog record id={cursor.lastrowid} {volume}:{relative_path}{display_name} "
            f"pending={pending}"
        )
        return cursor.lastrowid

    def commit(self, record_id: int) -> None:
        """Clear the pending flag and record the content's current size.

        Raises:
            CatalogError: If the record does not exist or the update fails
        """
        record = self._require(record_id)
        try:
            size = self.content_path(record).stat().st_size
        except OSError:
            size = 0
        self._execute(
            "UPDATE media SET is_pending = 0, size = ? WHERE id = ?", (size, record_id)
        )
        logger.debug(f"Committed catalog record id={record_id} size={size}")

    def refresh_size(self, record_id: int) -> int:
        """Re-read a record's content size into the index and return it"""
        record = self._require(record_id)
        size = self.content_path(record).stat().st_size
        self._execute("UPDATE media SET size = ? WHERE id = ?", (size, record_id))
        return size

    def delete(self, record_id: int) -> bool:
        """Delete a record and its content.

        Returns:
            True if the record was removed, False if it did not exist or its
            content could not be removed
        """
        record = self.get(record_id)
        if record is None:
            return False

        try:
            self.content_path(record).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Cannot remove content of catalog record id={record_id}: {e}")
            return False

        with self._lock:
            try:
                cursor = self._conn.execute("DELETE FROM media WHERE id = ?", (record_id,))
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                logger.warning(f"Cannot delete catalog record id={record_id}: {e}")
                return False
        return cursor.rowcount > 0

    def index_file(self, path: Path) -> int:
        """Index an existing file that lives under a volume root.

        Re-indexing a known file refreshes its size and returns the same id.

        Raises:
            CatalogError: If the path is outside every volume root or missing
        """
        path = Path(path)
        location = self.locate(path)
        if location is None:
            raise CatalogError(f"Path is not under any storage volume: {path}")
        if not path.is_file():
            raise CatalogError(f"Not a file: {path}")

        volume, relative_path, display_name = location
        size = path.stat().st_size
        existing = self.find(volume, relative_path, display_name)
        if existing is not None:
            self.refresh_size(existing.id)
            return existing.id

        top_dir = relative_path.split("/", 1)[0].lower()
        collection = COLLECTION_DOWNLOADS if top_dir in DOWNLOAD_TOP_DIRS else COLLECTION_IMAGES

        with self._lock:
            try:
                cursor = self._conn.execute(
                    "INSERT INTO media (collection, volume, relative_path, display_name, "
                    "mime_type, size, is_pending, date_added) VALUES (?, ?, ?, ?, ?, ?, 0, ?)",
                    (
                        collection,
                        volume,
                        relative_path,
                        display_name,
                        get_mime_type(path),
                        size,
                        int(time.time()),
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise CatalogError(f"Cannot index {path}: {e}") from e

        logger.debug(f"Indexed {path} as catalog record id={cursor.lastrowid}")
        return cursor.lastrowid

    # ------------------------------------------------------------------
    # Content access
    # ------------------------------------------------------------------

    def open_read(self, record_id: int) -> BinaryIO:
        """Open a record's content for reading.

        Raises:
            CatalogError: If the record or its content is missing/unreadable
        """
        record = self._require(record_id)
        try:
            return open(self.content_path(record), "rb")
        except OSError as e:
            raise CatalogError(f"Cannot open record id={record_id} for read: {e}") from e

    def open_write(self, record_id: int, truncate: bool = True) -> BinaryIO:
        """Open a record's content for writing, creating directories as needed.

        Args:
            record_id: Record to write
            truncate: Replace existing content (True) or open read-write in place

        Raises:
            CatalogError: If the record is missing or the content cannot be opened
        """
        record = self._require(record_id)
        path = self.content_path(record)
        try:
            if truncate:
                path.parent.mkdir(parents=True, exist_ok=True)
                return open(path, "wb")
            return open(path, "r+b")
        except OSError as e:
            raise CatalogError(f"Cannot open record id={record_id} for write: {e}") from e

    def stat_size(self, record_id: int) -> int:
        """Size of a record's content as seen through an open descriptor.

        Raises:
            CatalogError: If the content cannot be opened
        """
        with self.open_read(record_id) as stream:
            stream.seek(0, 2)
            return stream.tell()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, record_id: int) -> CatalogRecord:
        record = self.get(record_id)
        if record is None:
            raise CatalogError(f"No catalog record with id={record_id}")
        return record

    def _query_one(self, sql: str, params: tuple) -> Optional[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                raise CatalogError(f"Catalog query failed: {e}") from e

    def _execute(self, sql: str, params: tuple) -> None:
        with self._lock:
            try:
                self._conn.execute(sql, params)
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise CatalogError(f"Catalog update failed: {e}") from e


def _to_record(row: Optional[sqlite3.Row]) -> Optional[CatalogRecord]:
    if row is None:
        return None
    return CatalogRecord(
        id=row["id"],
        collection=row["collection"],
        volume=row["volume"],
        relative_path=row["relative_path"],
        display_name=row["display_name"],
        mime_type=row["mime_type"],
        size=row["size"],
        is_pending=bool(row["is_pending"]),
        date_added=row["date_added"],
    )
