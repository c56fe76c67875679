"""
Tests for the SQLite-backed media catalog.

Tests cover:
- Insert/find/get and the per-directory name uniqueness
- Pending rows and commit
- Indexing existing files and path location
- Content access and deletion
"""

import pytest

from common.catalog import (
    COLLECTION_DOWNLOADS,
    COLLECTION_IMAGES,
    collection_for_relative_path,
    normalize_relative_path,
)
from common.errors import CatalogError, NameConflict
from tests.fixtures.media_samples import write_jpeg, write_png


class TestRelativePaths:
    """Tests for relative directory helpers."""

    def test_normalize_adds_trailing_slash(self):
        assert normalize_relative_path("DCIM/Camera") == "DCIM/Camera/"

    def test_normalize_collapses_separators(self):
        assert normalize_relative_path("/Pictures//Screens/") == "Pictures/Screens/"

    def test_normalize_empty(self):
        assert normalize_relative_path("") == ""
        assert normalize_relative_path(None) == ""

    @pytest.mark.parametrize(
        "relative_path,expected",
        [
            ("DCIM/Camera/", (COLLECTION_IMAGES, "DCIM/Camera/")),
            ("Pictures/", (COLLECTION_IMAGES, "Pictures/")),
            ("Download/", (COLLECTION_DOWNLOADS, "Download/")),
            ("Downloads/x/", (COLLECTION_DOWNLOADS, "Downloads/x/")),
            ("Documents/", (COLLECTION_IMAGES, "Pictures/")),
            ("", (COLLECTION_IMAGES, "Pictures/")),
        ],
    )
    def test_collection_for_relative_path(self, relative_path, expected):
        """Top-level directory selects the collection; unknown trees go to Pictures/."""
        assert collection_for_relative_path(relative_path) == expected


class TestInsert:
    """Tests for inserting records."""

    def test_insert_and_get(self, catalog):
        record_id = catalog.insert(COLLECTION_IMAGES, "primary", "Pictures", "a.jpg", "image/jpeg")
        record = catalog.get(record_id)

        assert record.display_name == "a.jpg"
        assert record.relative_path == "Pictures/"
        assert record.is_pending is True
        assert record.size == 0
        assert record.document_id == "primary:Pictures/a.jpg"

    def test_duplicate_name_conflicts(self, catalog):
        """Same name in the same directory violates uniqueness."""
        catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", "a.jpg", "image/jpeg")
        with pytest.raises(NameConflict):
            catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", "a.jpg", "image/jpeg")

    def test_same_name_in_other_directory_allowed(self, catalog):
        catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", "a.jpg", "image/jpeg")
        catalog.insert(COLLECTION_IMAGES, "primary", "DCIM/", "a.jpg", "image/jpeg")

    def test_unindexed_file_on_disk_conflicts(self, catalog, storage_root):
        """An existing file occupying the content path is never overwritten."""
        write_jpeg(storage_root / "Pictures" / "a.jpg")
        with pytest.raises(NameConflict):
            catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", "a.jpg", "image/jpeg")

    def test_pending_hidden_from_listing(self, catalog):
        catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", "a.jpg", "image/jpeg")
        assert catalog.list_records() == []
        assert len(catalog.list_records(include_pending=True)) == 1


class TestCommit:
    """Tests for publishing pending rows."""

    def test_commit_clears_pending_and_records_size(self, catalog):
        record_id = catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", "a.jpg", "image/jpeg")
        with catalog.open_write(record_id) as stream:
            stream.write(b"12345")

        catalog.commit(record_id)
        record = catalog.get(record_id)

        assert record.is_pending is False
        assert record.size == 5
        assert [r.id for r in catalog.list_records()] == [record_id]

    def test_commit_missing_record(self, catalog):
        with pytest.raises(CatalogError):
            catalog.commit(999)


class TestIndexing:
    """Tests for indexing existing files."""

    def test_index_file(self, catalog, storage_root):
        path = write_png(storage_root / "DCIM" / "Camera" / "IMG_1.png")
        record = catalog.get(catalog.index_file(path))

        assert record.volume == "primary"
        assert record.relative_path == "DCIM/Camera/"
        assert record.collection == COLLECTION_IMAGES
        assert record.mime_type == "image/png"
        assert record.size == path.stat().st_size
        assert record.is_pending is False

    def test_index_download_collection(self, catalog, storage_root):
        path = write_png(storage_root / "Download" / "x.png")
        record = catalog.get(catalog.index_file(path))
        assert record.collection == COLLECTION_DOWNLOADS

    def test_reindex_returns_same_id(self, catalog, storage_root):
        path = write_png(storage_root / "Pictures" / "x.png")
        assert catalog.index_file(path) == catalog.index_file(path)

    def test_index_outside_volumes(self, catalog, tmp_path):
        path = write_png(tmp_path / "elsewhere" / "x.png")
        with pytest.raises(CatalogError):
            catalog.index_file(path)

    def test_locate_secondary_volume(self, catalog, settings):
        path = settings.storage_base / "1A2B-3C4D" / "DCIM" / "a.png"
        assert catalog.locate(path) == ("1A2B-3C4D", "DCIM/", "a.png")


class TestContentAccess:
    """Tests for reading, sizing and deleting content."""

    def test_open_read_missing_content(self, catalog):
        record_id = catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", "a.jpg", "image/jpeg")
        with pytest.raises(CatalogError):
            catalog.open_read(record_id)

    def test_stat_size(self, catalog, storage_root):
        path = write_jpeg(storage_root / "Pictures" / "a.jpg")
        record_id = catalog.index_file(path)
        assert catalog.stat_size(record_id) == path.stat().st_size

    def test_delete_removes_row_and_content(self, catalog, storage_root):
        path = write_jpeg(storage_root / "Pictures" / "a.jpg")
        record_id = catalog.index_file(path)

        assert catalog.delete(record_id) is True
        assert catalog.get(record_id) is None
        assert not path.exists()

    def test_delete_unknown_record(self, catalog):
        assert catalog.delete(12345) is False
