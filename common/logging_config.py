"""
Centralized Logging Configuration

This module provides unified logging configuration for the CLI and library
modules. It ensures consistent log formats, levels, and behavior.

Log Level Conventions:
    DEBUG   - Per-file operations, resolver probing, catalog queries
    INFO    - Batch start/finish, counts, strategy decisions
    WARNING - Recoverable issues, fallbacks, stale catalog cleanup
    ERROR   - Item failures that are reported in the batch result

Example:
    >>> from common.logging_config import setup_logging, get_logger
    >>> setup_logging(verbose=True, log_file="exifdate.log")
    >>> logger = get_logger(__name__)
    >>> logger.info("Batch started")
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

# =============================================================================
# Format Constants - Single source of truth for log formats
# =============================================================================

LOG_FORMAT_DETAILED = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
"""Detailed format including timestamp and module name, used for verbose/file logging."""

LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"
"""Simple format for non-verbose console output."""

LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
"""Standard date format for all log timestamps."""

# =============================================================================
# Suppressed Loggers - Third-party libraries that are too noisy
# =============================================================================

SUPPRESSED_LOGGERS: List[str] = [
    "PIL",
    "PIL.PngImagePlugin",
    "PIL.TiffImagePlugin",
]
"""List of third-party logger names to suppress to WARNING level."""


# =============================================================================
# Main Logging Setup Functions
# =============================================================================


def setup_logging(
    verbose: bool = False, log_file: Optional[str] = None
) -> logging.Logger:
    """Configure logging for batch operations.

    In info mode (verbose=False):
    - Console shows only ERROR messages (clean output with progress bars)
    - Third-party libraries are suppressed to WARNING level

    In verbose mode (verbose=True):
    - Console shows INFO level messages
    - File captures all DEBUG logs
    - Third-party libraries still suppressed to WARNING

    Args:
        verbose: If True, enable verbose console output
        log_file: Optional path to log file for persistent logging

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO if verbose else logging.ERROR)

    if verbose:
        formatter = logging.Formatter(LOG_FORMAT_DETAILED, datefmt=LOG_DATE_FORMAT)
    else:
        formatter = logging.Formatter(LOG_FORMAT_SIMPLE)

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Always log everything to file
        file_formatter = logging.Formatter(LOG_FORMAT_DETAILED, datefmt=LOG_DATE_FORMAT)
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

    for library in SUPPRESSED_LOGGERS:
        logging.getLogger(library).setLevel(logging.WARNING)

    return root_logger


def default_log_file(prefix: str = "exifdate") -> Path:
    """Create the logs/ directory and return a timestamped log file path.

    Example:
        >>> default_log_file()  # doctest: +SKIP
        PosixPath('logs/exifdate_20250526_101500.log')
    """
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return logs_dir / f"{prefix}_{timestamp}.log"


# =============================================================================
# Logger Factory
# =============================================================================


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
