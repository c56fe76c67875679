#!/usr/bin/env python3
"""
Set Capture Date Operation

Writes the same capture date into every image of a batch.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from common.catalog import MediaCatalog
from common.config import Settings
from common.exif_dates import format_exif_date, set_capture_date
from common.handles import FileHandle
from common.progress import PHASE_EXIF
from common.results import BatchItemResult
from operations.base import OperationBase

logger = logging.getLogger(__name__)

WRITE_FAILED = "Failed to write EXIF data"

# Accepted --date formats
DATE_INPUT_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y:%m:%d %H:%M:%S", "%Y-%m-%d")


def parse_date_argument(value: str) -> datetime:
    """Parse a user-supplied date

    Raises:
        ValueError: If the value matches none of the accepted formats
    """
    for fmt in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    raise ValueError(
        f"Invalid date '{value}'. Expected 'YYYY-MM-DD HH:MM:SS' or 'YYYY-MM-DD'"
    )


class SetCaptureDateOperation(OperationBase):
    """Set DateTimeOriginal/DateTime/DateTimeDigitized on each image"""

    def __init__(self, date: datetime, temp_dir: Optional[Path] = None, keep_temp: bool = False):
        self.date = date
        self.temp_dir = temp_dir
        self.keep_temp = keep_temp

    @staticmethod
    def get_name() -> str:
        return "set-date"

    @staticmethod
    def get_description() -> str:
        return "Set the EXIF capture date of images"

    @staticmethod
    def get_phase() -> str:
        return PHASE_EXIF

    @classmethod
    def create(
        cls, settings: Settings, catalog: Optional[MediaCatalog] = None, **options
    ) -> "SetCaptureDateOperation":
        date = options.get("date")
        if date is None:
            raise ValueError("set-date requires --date")
        if isinstance(date, str):
            date = parse_date_argument(date)
        return cls(date, temp_dir=settings.effective_temp_dir, keep_temp=settings.keep_temp)

    def process_item(self, handle: FileHandle) -> BatchItemResult:
        name = handle.display_name
        if not set_capture_date(handle, self.date, self.temp_dir, self.keep_temp):
            return BatchItemResult.failed(name, WRITE_FAILED)
        logger.debug(f"Set capture date of {name} to {format_exif_date(self.date)}")
        return BatchItemResult.ok(name)


def get_operation():
    """Return operation class for auto-discovery.

    Returns:
        SetCaptureDateOperation class
    """
    return SetCaptureDateOperation
