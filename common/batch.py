#!/usr/bin/env python3
"""
Batch Orchestrator Module

Runs one operation over a list of handles on a single background worker.
Items are processed strictly in input order; progress is reported before each
item starts; one item's failure never stops the batch.

Example:
    >>> task = BatchTask(handles, operation, on_progress=print)
    >>> future = task.start()
    >>> for event in task.events():
    ...     print(event.index, event.total, event.name)
    >>> result = future.result()
"""

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional

from common.errors import ExifDateError, SourceDeletionFailed
from common.handles import UNKNOWN_NAME, FileHandle
from common.results import BatchItemResult, BatchOperationResult

logger = logging.getLogger(__name__)

CANCELLED = "Cancelled"

ProgressCallback = Callable[[int, int, str], None]
CompletionCallback = Callable[[BatchOperationResult], None]
Dispatcher = Callable[..., None]


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification; index is 1-based"""

    index: int
    total: int
    name: str


_END_OF_EVENTS = object()


def _call_inline(fn: Callable, *args) -> None:
    fn(*args)


def _safe_display_name(handle: FileHandle) -> str:
    try:
        return handle.display_name or UNKNOWN_NAME
    except Exception as e:
        logger.debug(f"Cannot read display name of {handle!r}: {e}")
        return UNKNOWN_NAME


class BatchTask:
    """
    Caller-owned batch run.

    Args:
        items: Handles to process, in order
        operation: Object with process_item(handle) -> BatchItemResult
        on_progress: Called with (index, total, name) before each item
        on_complete: Called exactly once with the final result
        dispatch: dispatch(fn, *args) runs a callback in the caller's chosen
            context (default: directly on the worker thread)
    """

    def __init__(
        self,
        items: Iterable[FileHandle],
        operation,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompletionCallback] = None,
        dispatch: Optional[Dispatcher] = None,
    ):
        self.items: List[FileHandle] = list(items)
        self.operation = operation
        self.on_progress = on_progress
        self.on_complete = on_complete
        self.dispatch = dispatch or _call_inline

        self._cancel_event = threading.Event()
        self._events: "queue.Queue" = queue.Queue()
        self._future: Optional[Future] = None
        self._start_lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Stop after the item in progress; remaining items fail as cancelled"""
        self._cancel_event.set()

    def start(self) -> Future:
        """Start the batch (once) and return its Future"""
        with self._start_lock:
            if self._future is not None:
                return self._future

            if not self.items:
                result = BatchOperationResult()
                self._events.put(_END_OF_EVENTS)
                self._notify_complete(result)
                self._future = Future()
                self._future.set_result(result)
                return self._future

            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="exifdate-batch")
            self._future = executor.submit(self._run)
            executor.shutdown(wait=False)
            return self._future

    def result(self, timeout: Optional[float] = None) -> BatchOperationResult:
        """Start if needed and block until the batch completes"""
        return self.start().result(timeout)

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def events(self) -> Iterator[ProgressEvent]:
        """Progress events in emission order, ending when the batch finishes"""
        while True:
            event = self._events.get()
            if event is _END_OF_EVENTS:
                return
            yield event

    def __enter__(self) -> "BatchTask":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.cancel()
        if self._future is not None:
            self._future.result()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _run(self) -> BatchOperationResult:
        total = len(self.items)
        results: List[BatchItemResult] = []
        logger.info(f"Batch started: {total} items")

        try:
            for index, handle in enumerate(self.items, start=1):
                name = _safe_display_name(handle)
                if self._cancel_event.is_set():
                    results.append(BatchItemResult.failed(name, CANCELLED))
                    continue

                self._events.put(ProgressEvent(index, total, name))
                if self.on_progress is not None:
                    self._invoke(self.on_progress, index, total, name)

                results.append(self._process_one(handle, name))

            result = BatchOperationResult.from_items(results)
        finally:
            self._events.put(_END_OF_EVENTS)

        logger.info(
            f"Batch finished: {result.success_count} succeeded, {result.failure_count} failed"
        )
        self._notify_complete(result)
        return result

    def _process_one(self, handle: FileHandle, name: str) -> BatchItemResult:
        try:
            return self.operation.process_item(handle)
        except SourceDeletionFailed as e:
            logger.warning(f"{name}: {e.message}")
            return BatchItemResult.ok(name, warning=e.message)
        except ExifDateError as e:
            logger.error(f"{name}: {e.message}")
            return BatchItemResult.failed(name, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error processing {name}")
            return BatchItemResult.failed(name, str(e) or None)

    def _notify_complete(self, result: BatchOperationResult) -> None:
        if self.on_complete is not None:
            self._invoke(self.on_complete, result)

    def _invoke(self, callback: Callable, *args) -> None:
        try:
            self.dispatch(callback, *args)
        except Exception:
            logger.exception(f"Batch callback {callback!r} raised")


def run_batch(
    items: Iterable[FileHandle],
    operation,
    on_progress: Optional[ProgressCallback] = None,
    dispatch: Optional[Dispatcher] = None,
) -> BatchOperationResult:
    """Run a batch to completion and return its result"""
    return BatchTask(items, operation, on_progress=on_progress, dispatch=dispatch).result()
