#!/usr/bin/env python3
"""
Common utility functions for batch operations
"""

import os
from typing import Tuple


# ============================================================================
# Media Type Detection
# ============================================================================

# Supported image extensions
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".heif", ".tiff", ".tif", ".bmp"}


def is_supported_image(file_path) -> bool:
    """Check if file has a supported image extension

    Args:
        file_path: Path to the file (string or Path object)

    Returns:
        True if file is a supported image, False otherwise

    Example:
        >>> is_supported_image("photo.PNG")
        True
        >>> is_supported_image("notes.txt")
        False
    """
    ext = os.path.splitext(str(file_path))[1].lower()
    return ext in IMAGE_EXTENSIONS


# ============================================================================
# File Naming
# ============================================================================


def split_name(name: str) -> Tuple[str, str]:
    """Split a display name into base and final extension (without dot).

    A leading dot does not start an extension, so ".hidden" has no extension.

    Example:
        >>> split_name("photo.final.png")
        ('photo.final', 'png')
        >>> split_name("README")
        ('README', '')
    """
    dot = name.rfind(".")
    if dot <= 0:
        return name, ""
    return name[:dot], name[dot + 1:]


def replace_extension(name: str, new_ext: str) -> str:
    """Replace the final extension of a display name

    Example:
        >>> replace_extension("IMG_0001.PNG", "jpg")
        'IMG_0001.jpg'
    """
    base, _ext = split_name(name)
    return f"{base}.{new_ext}"


def numbered_name(name: str, counter: int, default_ext: str = "jpg") -> str:
    """Return the collision-avoiding variant of a name.

    Counter 0 returns the name unchanged; n > 0 yields "base(n).ext".

    Example:
        >>> numbered_name("photo.jpg", 0)
        'photo.jpg'
        >>> numbered_name("photo.jpg", 2)
        'photo(2).jpg'
    """
    if counter == 0:
        return name
    base, ext = split_name(name)
    return f"{base}({counter}).{ext or default_ext}"


# ============================================================================
# Environment
# ============================================================================


def parse_bool_env(value: str) -> bool:
    """Parse boolean from environment variable string.

    Args:
        value: String value from environment variable

    Returns:
        True if value is truthy ("true", "1", "yes", "on"), False otherwise

    Example:
        >>> parse_bool_env("true")
        True
        >>> parse_bool_env("false")
        False
    """
    return value.lower() in ("true", "1", "yes", "on")

