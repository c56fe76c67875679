#!/usr/bin/env python3
"""
Batch Result Module

Per-item results and the aggregate handed back to callers once a batch
completes. The aggregate is the only result surface exposed to callers, so it
is frozen once built.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItemResult:
    """Outcome of processing one handle.

    Attributes:
        name: Display name of the source
        success: True if the item's main effect took place
        error: Human-readable failure reason (failures only)
        warning: Caveat attached to a success (e.g. source could not be removed)
    """

    name: str
    success: bool
    error: Optional[str] = None
    warning: Optional[str] = None

    @classmethod
    def ok(cls, name: str, warning: Optional[str] = None) -> "BatchItemResult":
        return cls(name=name, success=True, warning=warning)

    @classmethod
    def failed(cls, name: str, error: Optional[str]) -> "BatchItemResult":
        return cls(name=name, success=False, error=error or "Unknown error")


@dataclass(frozen=True)
class BatchOperationResult:
    """Aggregate of a whole batch.

    Invariants:
        success_count + failure_count equals the number of items processed,
        and a name appears in failed_images iff it is a key of error_messages.
    """

    success_count: int = 0
    failure_count: int = 0
    failed_images: Tuple[str, ...] = ()
    error_messages: Mapping[str, str] = field(default_factory=dict)
    warnings: Mapping[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @classmethod
    def from_items(cls, items: Iterable[BatchItemResult]) -> "BatchOperationResult":
        """Aggregate per-item results, preserving input order.

        Two failed items sharing a display name would collapse into one
        error_messages entry, so later duplicates get a " [#n]" suffix.
        """
        success_count = 0
        failed_images: List[str] = []
        error_messages: Dict[str, str] = {}
        warnings: Dict[str, str] = {}

        for item in items:
            if item.success:
                success_count += 1
                if item.warning:
                    warnings[_unique_key(item.name, warnings)] = item.warning
                continue

            key = _unique_key(item.name, error_messages)
            failed_images.append(key)
            error_messages[key] = item.error or "Unknown error"

        return cls(
            success_count=success_count,
            failure_count=len(failed_images),
            failed_images=tuple(failed_images),
            error_messages=MappingProxyType(error_messages),
            warnings=MappingProxyType(warnings),
        )

    def to_dict(self) -> Dict[str, object]:
        """Plain-dict form, suitable for JSON reports."""
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "failed_images": list(self.failed_images),
            "error_messages": dict(self.error_messages),
            "warnings": dict(self.warnings),
        }


def _unique_key(name: str, existing: Mapping[str, str]) -> str:
    if name not in existing:
        return name
    counter = 2
    while f"{name} [#{counter}]" in existing:
        counter += 1
    logger.debug(f"Duplicate display name in batch results: {name}")
    return f"{name} [#{counter}]"
