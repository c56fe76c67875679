"""
Common modules shared across all batch operations.

This package contains the file handle abstraction, the media catalog, the
destination resolver, the EXIF date writer and the batch orchestrator used by
every operation.
"""

from .batch import BatchTask, ProgressEvent, run_batch
from .config import Settings
from .logging_config import setup_logging
from .results import BatchItemResult, BatchOperationResult

__version__ = "1.0.0"
__all__ = [
    "BatchTask",
    "ProgressEvent",
    "run_batch",
    "Settings",
    "setup_logging",
    "BatchItemResult",
    "BatchOperationResult",
]
