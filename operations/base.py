#!/usr/bin/env python3
"""
Base class for all batch operations

Provides the abstract interface every operation implements so the CLI and the
batch orchestrator can drive them uniformly.
"""

from abc import ABC, abstractmethod
from typing import Optional

from common.catalog import MediaCatalog
from common.config import Settings
from common.handles import FileHandle
from common.results import BatchItemResult


class OperationBase(ABC):
    """Base class for all batch operations"""

    @staticmethod
    @abstractmethod
    def get_name() -> str:
        """Return the operation's command name (e.g., "png-to-jpg")"""
        pass

    @staticmethod
    @abstractmethod
    def get_description() -> str:
        """Return a one-line human-readable description"""
        pass

    @staticmethod
    @abstractmethod
    def get_phase() -> str:
        """Return the progress phase label (use common.progress PHASE_*)"""
        pass

    @classmethod
    @abstractmethod
    def create(
        cls, settings: Settings, catalog: Optional[MediaCatalog] = None, **options
    ) -> "OperationBase":
        """Build a configured instance from settings and CLI options

        Raises:
            ValueError: If a required option is missing or invalid
        """
        pass

    @abstractmethod
    def process_item(self, handle: FileHandle) -> BatchItemResult:
        """Process one handle.

        Implementations either return a BatchItemResult or raise an
        ExifDateError; the orchestrator converts the latter into a failure.
        """
        pass
