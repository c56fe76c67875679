#!/usr/bin/env python3
"""
File utility functions for image handles

Provides shared file type detection used by direct-path handles and by the
catalog when indexing files.
"""

import logging
from pathlib import Path
from typing import Optional

import magic

logger = logging.getLogger(__name__)


def get_mime_type(file_path: Path) -> Optional[str]:
    """
    Get the MIME type of a file using python-magic.

    Args:
        file_path: Path to the file to analyze

    Returns:
        MIME type string or None if detection fails

    Example:
        >>> mime = get_mime_type(Path("/tmp/photo.jpg"))
        >>> print(mime)  # "image/jpeg"
    """
    try:
        return magic.from_file(str(file_path), mime=True)
    except Exception as e:
        logger.debug(f"Failed to get MIME type for {file_path}: {e}")
        return None


def is_image_mime(mime: Optional[str]) -> bool:
    """Check if a MIME type names an image (and not a folder/directory)

    Example:
        >>> is_image_mime("image/png")
        True
        >>> is_image_mime("inode/directory")
        False
    """
    if not mime:
        return False
    mime = mime.lower()
    return mime.startswith("image/") and "folder" not in mime and "directory" not in mime
