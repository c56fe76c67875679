#!/usr/bin/env python3
"""
Unified progress bar utilities for consistent UX across all operations.

Provides standardized progress bar formatting with phase prefixes to clearly
indicate which operation is active.
"""

from typing import Iterable, Optional, TypeVar

from tqdm import tqdm

# Phase constants for consistent naming
PHASE_EXIF = "EXIF"
PHASE_CONVERT = "Convert"
PHASE_SCAN = "Scan"

T = TypeVar("T")


def progress_bar(
    iterable: Iterable[T],
    phase: str,
    action: str,
    total: Optional[int] = None,
    unit: str = "file",
) -> tqdm:
    """Wrap iterable with standardized progress bar.

    Args:
        iterable: The iterable to wrap
        phase: Phase name (use PHASE_* constants)
        action: Action description (e.g., "Indexing files")
        total: Total count if known
        unit: Unit name for display

    Returns:
        tqdm progress bar wrapping the iterable
    """
    return tqdm(iterable, desc=f"[{phase}] {action}", total=total, unit=unit)


class BatchProgressBar:
    """Progress callback that drives a tqdm bar.

    Batch progress is reported before each item starts, so the bar shows the
    item currently being worked on and reaches the total on close().

    Example:
        >>> with BatchProgressBar(PHASE_CONVERT, "Converting", total=3) as bar:
        ...     run_batch(handles, operation, on_progress=bar)  # doctest: +SKIP
    """

    def __init__(self, phase: str, action: str, total: int, unit: str = "file", disable: bool = False):
        self.total = total
        self._bar = tqdm(total=total, desc=f"[{phase}] {action}", unit=unit, disable=disable)

    def __call__(self, index: int, total: int, name: str) -> None:
        self._bar.n = index - 1
        self._bar.set_postfix_str(name, refresh=False)
        self._bar.refresh()

    def close(self) -> None:
        self._bar.n = self.total
        self._bar.set_postfix_str("", refresh=False)
        self._bar.refresh()
        self._bar.close()

    def __enter__(self) -> "BatchProgressBar":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
