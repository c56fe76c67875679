#!/usr/bin/env python3
"""
Batch reporting helpers for the CLI

Provides standardized summary printing and JSON failure reports for a
completed BatchOperationResult.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from common.results import BatchOperationResult

logger = logging.getLogger(__name__)


def print_batch_summary(
    result: BatchOperationResult,
    operation_name: str,
    extra_stats: Optional[Dict[str, int]] = None,
) -> None:
    """
    Print standardized batch completion summary.

    Args:
        result: Aggregate result of the batch
        operation_name: Name of the operation that ran
        extra_stats: Optional dict of additional statistics to display

    Example:
        >>> print_batch_summary(result, "png-to-jpg")  # doctest: +SKIP
        ==================================================
        png-to-jpg complete!
          Successfully processed: 2
          Failed: 1
          Total: 3

        Failures:
          - c.jpg: Not a PNG image
    """
    print("\n" + "=" * 50)
    print(f"{operation_name} complete!")
    print(f"  Successfully processed: {result.success_count}")
    print(f"  Failed: {result.failure_count}")

    if extra_stats:
        for label, count in extra_stats.items():
            print(f"  {label}: {count}")

    print(f"  Total: {result.total}")

    if result.failed_images:
        print("\nFailures:")
        for name in result.failed_images:
            print(f"  - {name}: {result.error_messages[name]}")

    if result.warnings:
        print("\nWarnings:")
        for name, warning in result.warnings.items():
            print(f"  - {name}: {warning}")


def save_batch_report(
    result: BatchOperationResult, report_path: Path, operation_name: str
) -> bool:
    """
    Save a batch result as a JSON report.

    Args:
        result: Aggregate result of the batch
        report_path: Destination file (parent directories are created)
        operation_name: Name of the operation that ran

    Returns:
        True if the report was written
    """
    report = {
        "operation": operation_name,
        "timestamp": datetime.now().isoformat(),
        **result.to_dict(),
    }

    try:
        report_path.parent.mkdir(parents=True, exist_ok=True)
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
        logger.info(f"Batch report saved to: {report_path}")
        return True
    except OSError as e:
        logger.error(f"Failed to save batch report to {report_path}: {e}")
        return False
