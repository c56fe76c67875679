"""
Tests for the batch orchestrator.

Tests cover:
- Strict input order and 1-based progress events
- One result per item, exceptions isolated per item
- One-shot completion and dispatch
- Cancellation and empty input
"""

import threading

from common.batch import CANCELLED, BatchTask, ProgressEvent, run_batch
from common.errors import DecodeFailure, SourceDeletionFailed
from common.handles import DirectPathHandle
from common.results import BatchItemResult


class RecordingOperation:
    """Operation double that records the order it sees items in."""

    def __init__(self, fail=(), crash=(), gate=None, retain=()):
        self.seen = []
        self.fail = set(fail)
        self.retain = set(retain)
        self.crash = set(crash)
        self.gate = gate

    def process_item(self, handle):
        name = handle.display_name
        self.seen.append(name)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if name in self.fail:
            raise DecodeFailure("Failed to decode PNG")
        if name in self.crash:
            raise RuntimeError("disk on fire")
        if name in self.retain:
            raise SourceDeletionFailed("Original PNG could not be deleted")
        return BatchItemResult.ok(name)


def _handles(tmp_path, names):
    return [DirectPathHandle(tmp_path / name) for name in names]


class TestOrdering:
    """Tests for item order and progress events."""

    def test_items_processed_in_order(self, tmp_path):
        names = [f"img{i}.png" for i in range(6)]
        operation = RecordingOperation()

        run_batch(_handles(tmp_path, names), operation)

        assert operation.seen == names

    def test_progress_events(self, tmp_path):
        names = ["a.png", "b.png", "c.png"]
        progress = []
        task = BatchTask(_handles(tmp_path, names), RecordingOperation(),
                         on_progress=lambda i, t, n: progress.append((i, t, n)))

        task.start()
        events = list(task.events())
        task.result()

        assert progress == [(1, 3, "a.png"), (2, 3, "b.png"), (3, 3, "c.png")]
        assert events == [ProgressEvent(1, 3, "a.png"), ProgressEvent(2, 3, "b.png"),
                          ProgressEvent(3, 3, "c.png")]


class TestResults:
    """Tests for per-item isolation and aggregation."""

    def test_failures_do_not_stop_batch(self, tmp_path):
        operation = RecordingOperation(fail={"b.png"}, crash={"c.png"})

        result = run_batch(_handles(tmp_path, ["a.png", "b.png", "c.png", "d.png"]), operation)

        assert operation.seen == ["a.png", "b.png", "c.png", "d.png"]
        assert result.success_count == 2
        assert result.failure_count == 2
        assert result.failed_images == ("b.png", "c.png")
        assert result.error_messages["b.png"] == "Failed to decode PNG"
        assert result.error_messages["c.png"] == "disk on fire"

    def test_retained_source_counts_as_success_with_warning(self, tmp_path):
        operation = RecordingOperation(retain={"b.png"})

        result = run_batch(_handles(tmp_path, ["a.png", "b.png"]), operation)

        assert result.success_count == 2
        assert result.failure_count == 0
        assert result.warnings == {"b.png": "Original PNG could not be deleted"}

    def test_completion_fires_once(self, tmp_path):
        completions = []
        task = BatchTask(_handles(tmp_path, ["a.png"]), RecordingOperation(),
                         on_complete=completions.append)

        result = task.result()
        task.start()
        task.result()

        assert completions == [result]

    def test_dispatch_runs_callbacks(self, tmp_path):
        dispatched = []

        def dispatch(fn, *args):
            dispatched.append(fn.__name__)
            fn(*args)

        def on_progress(index, total, name):
            pass

        def on_complete(result):
            pass

        BatchTask(_handles(tmp_path, ["a.png", "b.png"]), RecordingOperation(),
                  on_progress=on_progress, on_complete=on_complete, dispatch=dispatch).result()

        assert dispatched == ["on_progress", "on_progress", "on_complete"]

    def test_raising_callback_does_not_break_batch(self, tmp_path):
        def on_progress(index, total, name):
            raise ValueError("ui gone")

        result = BatchTask(_handles(tmp_path, ["a.png", "b.png"]), RecordingOperation(),
                           on_progress=on_progress).result()

        assert result.success_count == 2

    def test_runs_on_background_thread(self, tmp_path):
        threads = []

        class ThreadOperation(RecordingOperation):
            def process_item(self, handle):
                threads.append(threading.current_thread())
                return super().process_item(handle)

        run_batch(_handles(tmp_path, ["a.png"]), ThreadOperation())

        assert threads[0] is not threading.current_thread()


class TestCancellationAndEmpty:
    """Tests for cancellation and empty input."""

    def test_empty_input_completes_immediately(self):
        completions = []
        task = BatchTask([], RecordingOperation(), on_complete=completions.append)

        future = task.start()

        assert future.done()
        assert future.result().total == 0
        assert list(task.events()) == []
        assert len(completions) == 1

    def test_cancel_marks_remaining_items(self, tmp_path):
        gate = threading.Event()
        operation = RecordingOperation(gate=gate)
        task = BatchTask(_handles(tmp_path, ["a.png", "b.png", "c.png"]), operation)

        task.start()
        events = task.events()
        assert next(events).name == "a.png"
        task.cancel()
        gate.set()
        result = task.result(timeout=5)

        assert operation.seen == ["a.png"]
        assert result.success_count == 1
        assert result.failed_images == ("b.png", "c.png")
        assert result.error_messages["b.png"] == CANCELLED
        assert task.cancelled is True
