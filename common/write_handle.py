#!/usr/bin/env python3
"""
Transactional Write Handle Module

Binds one resolved destination to an output stream and tracks its lifecycle:

    OPEN -> WRITTEN -> COMMITTED
      \\        \\
       +--------+--> ABANDONED

Anything that leaves a handle short of COMMITTED removes the partial output:
the direct file is unlinked, or the provisional catalog row is deleted.

open_sibling_write_handle() combines destination resolution with opening, so
that a directory which cannot be written falls back to the catalog.
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import BinaryIO, Iterator, Optional

from common.catalog import MediaCatalog
from common.errors import CannotOpen, CatalogError, WriteFailure
from common.handles import FileHandle
from common.resolver import DestinationResolver, DestinationTarget

logger = logging.getLogger(__name__)


class WriteState(Enum):
    OPEN = "open"
    WRITTEN = "written"
    COMMITTED = "committed"
    ABANDONED = "abandoned"


class WriteHandle:
    """Output stream plus commit/abandon semantics for one destination"""

    def __init__(
        self,
        target: DestinationTarget,
        stream: BinaryIO,
        catalog: Optional[MediaCatalog] = None,
    ):
        self.target = target
        self.catalog = catalog
        self.state = WriteState.OPEN
        self._stream: Optional[BinaryIO] = stream

    @property
    def display_name(self) -> str:
        return self.target.display_name

    @contextmanager
    def sink(self) -> Iterator[BinaryIO]:
        """Yield the output stream; closing it moves the handle to WRITTEN.

        If the body raises, the stream is closed and the handle abandoned.
        """
        if self.state is not WriteState.OPEN or self._stream is None:
            raise WriteFailure(f"Sink for {self.display_name} is no longer available")

        try:
            yield self._stream
            self._close_stream()
        except BaseException:
            self.abandon()
            raise
        self.state = WriteState.WRITTEN

    def finalize(self) -> None:
        """Publish the output. Idempotent once committed.

        Raises:
            WriteFailure: If the handle was not written or the commit failed
        """
        if self.state is WriteState.COMMITTED:
            return
        if self.state is not WriteState.WRITTEN:
            raise WriteFailure(
                f"Cannot finalize {self.display_name} in state {self.state.value}"
            )

        if not self.target.is_direct:
            try:
                self.catalog.commit(self.target.record_id)
            except CatalogError as e:
                raise WriteFailure(f"Failed to publish {self.display_name}: {e}") from e

        self.state = WriteState.COMMITTED
        logger.debug(f"Committed {self.display_name}")

    def abandon(self) -> None:
        """Remove partial output. No-op after commit or a previous abandon."""
        if self.state in (WriteState.COMMITTED, WriteState.ABANDONED):
            return

        try:
            self._close_stream()
        except OSError as e:
            logger.debug(f"Error closing abandoned sink for {self.display_name}: {e}")

        if self.target.is_direct:
            try:
                self.target.path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Cannot remove partial output {self.target.path}: {e}")
        elif self.catalog is not None:
            self.catalog.delete(self.target.record_id)

        self.state = WriteState.ABANDONED
        logger.debug(f"Abandoned {self.display_name}")

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.close()

    def __enter__(self) -> "WriteHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.state is not WriteState.COMMITTED:
            self.abandon()


def open_write_handle(
    target: DestinationTarget, catalog: Optional[MediaCatalog] = None
) -> WriteHandle:
    """Open the output stream for a resolved destination.

    Direct targets are created exclusively so a file that appeared after
    resolution is never overwritten. For catalog targets the provisional row
    is deleted when its content cannot be opened.

    Raises:
        CannotOpen: If no output stream could be obtained
    """
    if target.is_direct:
        try:
            stream = open(target.path, "xb")
        except OSError as e:
            raise CannotOpen(f"Cannot open {target.path} for writing: {e}") from e
        return WriteHandle(target, stream)

    if catalog is None:
        raise CannotOpen(f"No catalog available to write {target.display_name}")

    try:
        stream = catalog.open_write(target.record_id)
    except CatalogError as e:
        catalog.delete(target.record_id)
        raise CannotOpen(f"Cannot open {target.display_name} for writing: {e}") from e
    return WriteHandle(target, stream, catalog)


def open_sibling_write_handle(
    resolver: DestinationResolver,
    source: FileHandle,
    desired_name: str,
    mime_type: Optional[str] = "image/jpeg",
) -> WriteHandle:
    """Resolve a destination next to source and open it for writing.

    The direct strategy only succeeds once its output file is actually
    created: a name taken in the meantime advances the suffix, and any other
    OSError (a read-only or inaccessible directory) falls back to the catalog.

    Raises:
        NoLegalTarget: If no strategy produced a destination
        CannotOpen: If the catalog destination could not be opened
    """
    directory = resolver.absolute_target_dir(source)
    if directory is not None:
        try:
            return _open_direct(resolver, directory, desired_name)
        except OSError as e:
            logger.warning(f"Direct write next to {source.display_name} failed: {e}")

    target = resolver.resolve_catalog(source, desired_name, mime_type)
    return open_write_handle(target, resolver.catalog)


def _open_direct(resolver: DestinationResolver, directory, name: str) -> WriteHandle:
    for candidate in resolver.direct_candidates(directory, name):
        try:
            stream = open(candidate, "xb")
        except FileExistsError:
            logger.debug(f"{candidate} appeared after probing, trying next name")
            continue
        logger.debug(f"Opened direct destination {candidate}")
        return WriteHandle(DestinationTarget(path=candidate), stream)
    raise resolver.suffix_budget_exhausted(directory / name)


def destination_exists(handle: WriteHandle) -> bool:
    """Check that committed output is actually present.

    Direct targets must exist with a positive length; catalog targets must
    open for read and report a non-negative size.
    """
    target = handle.target
    if target.is_direct:
        try:
            return target.path.stat().st_size > 0
        except OSError:
            return False

    if handle.catalog is None:
        return False
    try:
        return handle.catalog.stat_size(target.record_id) >= 0
    except CatalogError:
        return False
