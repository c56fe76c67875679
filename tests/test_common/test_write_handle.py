"""
Tests for the transactional write handle.

Tests cover:
- OPEN -> WRITTEN -> COMMITTED for direct and catalog targets
- Abandonment cleanup on failure
- Exclusive creation and destination checks
- Opening a sibling destination, with catalog fallback
"""

import builtins

import pytest

import common.write_handle as write_handle_module
from common.catalog import COLLECTION_IMAGES
from common.errors import CannotOpen, NoLegalTarget, WriteFailure
from common.handles import CatalogHandle, DirectPathHandle
from common.resolver import CatalogInsert, DestinationResolver, DestinationTarget
from common.write_handle import (
    WriteState,
    destination_exists,
    open_sibling_write_handle,
    open_write_handle,
)
from tests.fixtures.media_samples import write_jpeg, write_png


def _catalog_target(catalog, name="out.jpg"):
    record_id = catalog.insert(COLLECTION_IMAGES, "primary", "Pictures/", name, "image/jpeg")
    insert = CatalogInsert(COLLECTION_IMAGES, "primary", "Pictures/", name, "image/jpeg")
    return DestinationTarget(insert=insert, record_id=record_id)


def _deny_exclusive_create(file, mode="r", *args, **kwargs):
    if mode == "xb":
        raise PermissionError(13, "Permission denied", str(file))
    return builtins.open(file, mode, *args, **kwargs)


class TestDirectTargets:
    """Tests for path-backed destinations."""

    def test_write_and_finalize(self, tmp_path):
        target = DestinationTarget(path=tmp_path / "out.jpg")
        handle = open_write_handle(target)

        with handle.sink() as sink:
            sink.write(b"jpeg bytes")
        assert handle.state is WriteState.WRITTEN

        handle.finalize()
        handle.finalize()

        assert handle.state is WriteState.COMMITTED
        assert destination_exists(handle) is True
        assert (tmp_path / "out.jpg").read_bytes() == b"jpeg bytes"

    def test_existing_file_is_not_overwritten(self, tmp_path):
        (tmp_path / "out.jpg").write_bytes(b"keep me")
        target = DestinationTarget(path=tmp_path / "out.jpg")

        with pytest.raises(CannotOpen):
            open_write_handle(target)
        assert (tmp_path / "out.jpg").read_bytes() == b"keep me"

    def test_exception_in_sink_abandons(self, tmp_path):
        target = DestinationTarget(path=tmp_path / "out.jpg")
        handle = open_write_handle(target)

        with pytest.raises(RuntimeError):
            with handle.sink() as sink:
                sink.write(b"partial")
                raise RuntimeError("encoder crashed")

        assert handle.state is WriteState.ABANDONED
        assert not (tmp_path / "out.jpg").exists()

    def test_context_exit_abandons_uncommitted(self, tmp_path):
        target = DestinationTarget(path=tmp_path / "out.jpg")
        with open_write_handle(target) as handle:
            with handle.sink() as sink:
                sink.write(b"data")

        assert handle.state is WriteState.ABANDONED
        assert not (tmp_path / "out.jpg").exists()

    def test_finalize_before_write_fails(self, tmp_path):
        handle = open_write_handle(DestinationTarget(path=tmp_path / "out.jpg"))
        with pytest.raises(WriteFailure):
            handle.finalize()
        handle.abandon()

    def test_abandon_after_commit_is_noop(self, tmp_path):
        handle = open_write_handle(DestinationTarget(path=tmp_path / "out.jpg"))
        with handle.sink() as sink:
            sink.write(b"data")
        handle.finalize()
        handle.abandon()

        assert handle.state is WriteState.COMMITTED
        assert (tmp_path / "out.jpg").exists()

    def test_sink_cannot_be_reused(self, tmp_path):
        handle = open_write_handle(DestinationTarget(path=tmp_path / "out.jpg"))
        with handle.sink() as sink:
            sink.write(b"data")
        with pytest.raises(WriteFailure):
            with handle.sink():
                pass
        handle.abandon()

    def test_empty_output_fails_destination_check(self, tmp_path):
        handle = open_write_handle(DestinationTarget(path=tmp_path / "out.jpg"))
        with handle.sink():
            pass
        handle.finalize()
        assert destination_exists(handle) is False


class TestCatalogTargets:
    """Tests for catalog-backed destinations."""

    def test_finalize_publishes_record(self, catalog):
        target = _catalog_target(catalog)
        handle = open_write_handle(target, catalog)

        with handle.sink() as sink:
            sink.write(b"abc")
        handle.finalize()

        record = catalog.get(target.record_id)
        assert record.is_pending is False
        assert record.size == 3
        assert destination_exists(handle) is True

    def test_abandon_deletes_provisional_record(self, catalog, storage_root):
        target = _catalog_target(catalog)
        handle = open_write_handle(target, catalog)

        with handle.sink() as sink:
            sink.write(b"abc")
        handle.abandon()

        assert catalog.get(target.record_id) is None
        assert not (storage_root / "Pictures" / "out.jpg").exists()

    def test_missing_catalog(self, catalog):
        with pytest.raises(CannotOpen):
            open_write_handle(_catalog_target(catalog), None)

    def test_finalize_failure(self, catalog):
        """Record removed behind the handle's back -> publish fails."""
        target = _catalog_target(catalog)
        handle = open_write_handle(target, catalog)
        with handle.sink() as sink:
            sink.write(b"abc")
        catalog.delete(target.record_id)

        with pytest.raises(WriteFailure):
            handle.finalize()


class TestSiblingWriteHandle:
    """Tests for resolving and opening a destination in one step."""

    def test_direct_destination_is_created(self, tmp_path, settings):
        source = DirectPathHandle(write_png(tmp_path / "photo.png"))

        with open_sibling_write_handle(DestinationResolver(None, settings), source, "photo.jpg") as handle:
            assert handle.target.path == tmp_path / "photo.jpg"
            assert handle.state is WriteState.OPEN
            assert (tmp_path / "photo.jpg").exists()

        assert not (tmp_path / "photo.jpg").exists()

    def test_name_taken_before_open_advances_suffix(self, tmp_path, settings, monkeypatch):
        source = DirectPathHandle(write_png(tmp_path / "photo.png"))
        taken = write_jpeg(tmp_path / "photo.jpg")
        original = taken.read_bytes()
        resolver = DestinationResolver(None, settings)
        monkeypatch.setattr(
            resolver, "direct_candidates", lambda directory, name: iter([taken, tmp_path / "photo(1).jpg"])
        )

        handle = open_sibling_write_handle(resolver, source, "photo.jpg")

        assert handle.target.path == tmp_path / "photo(1).jpg"
        assert taken.read_bytes() == original
        handle.abandon()

    def test_unwritable_directory_falls_back_to_catalog(self, catalog, settings, storage_root, monkeypatch):
        path = write_png(storage_root / "Pictures" / "shot.png")
        record = catalog.get(catalog.index_file(path))
        source = CatalogHandle.from_record(catalog, record, as_document=True)
        monkeypatch.setattr(write_handle_module, "open", _deny_exclusive_create, raising=False)

        handle = open_sibling_write_handle(DestinationResolver(catalog, settings), source, "shot.jpg")

        assert handle.target.is_direct is False
        assert handle.target.insert.relative_path == "Pictures/"
        assert handle.target.display_name == "shot.jpg"
        assert catalog.get(handle.target.record_id).is_pending is True
        handle.abandon()

    def test_unwritable_directory_without_catalog(self, tmp_path, settings, monkeypatch):
        source = DirectPathHandle(write_png(tmp_path / "photo.png"))
        monkeypatch.setattr(write_handle_module, "open", _deny_exclusive_create, raising=False)

        with pytest.raises(NoLegalTarget) as exc_info:
            open_sibling_write_handle(DestinationResolver(None, settings), source, "photo.jpg")

        assert "photo.jpg" in exc_info.value.message

    def test_suffix_budget_exhausted(self, tmp_path, settings):
        source = DirectPathHandle(write_png(tmp_path / "photo.png"))
        write_jpeg(tmp_path / "photo.jpg")
        resolver = DestinationResolver(None, settings.with_overrides(max_name_suffix=1))

        with pytest.raises(NoLegalTarget):
            open_sibling_write_handle(resolver, source, "photo.jpg")
