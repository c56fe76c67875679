#!/usr/bin/env python3
"""
Configuration Module

Centralized settings for storage locations, the catalog index and transcode
defaults. Values come from the environment (optionally seeded from a .env
file by common.env_loader) and can be overridden per invocation.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional

from common.utils import parse_bool_env

logger = logging.getLogger(__name__)


# Name of the primary volume, as it appears in catalog document ids
PRIMARY_VOLUME = "primary"

# Default values when the environment does not specify them
DEFAULT_JPEG_QUALITY = 95
DEFAULT_MAX_NAME_SUFFIX = 1000
DEFAULT_STORAGE_BASE = "/storage"
DEFAULT_CATALOG_FILENAME = ".catalog.sqlite3"


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the resolver, catalog and operations

    Attributes:
        storage_root: Root directory of the primary volume
        storage_base: Directory under which non-primary volumes are mounted
        catalog_db: Path to the catalog's SQLite index
        jpeg_quality: Default JPEG quality for transcodes (0-100)
        max_name_suffix: Highest numeric suffix tried before giving up
        temp_dir: Directory for shadow copies (None = system temp dir)
        keep_temp: Keep shadow copies instead of deleting them
    """

    storage_root: Path
    storage_base: Path = Path(DEFAULT_STORAGE_BASE)
    catalog_db: Optional[Path] = None
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    max_name_suffix: int = DEFAULT_MAX_NAME_SUFFIX
    temp_dir: Optional[Path] = None
    keep_temp: bool = False

    def __post_init__(self):
        if not 0 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be within 0..100, got {self.jpeg_quality}")
        if self.max_name_suffix < 1:
            raise ValueError(f"max_name_suffix must be positive, got {self.max_name_suffix}")

    @property
    def effective_catalog_db(self) -> Path:
        return self.catalog_db or self.storage_root / DEFAULT_CATALOG_FILENAME

    @property
    def effective_temp_dir(self) -> Path:
        return self.temp_dir or Path(tempfile.gettempdir())

    def volume_root(self, volume: Optional[str]) -> Path:
        """Absolute root directory for a volume name.

        Examples:
            >>> s = Settings(storage_root=Path("/data/primary"))
            >>> s.volume_root("primary")
            PosixPath('/data/primary')
            >>> s.volume_root("1A2B-3C4D")
            PosixPath('/storage/1A2B-3C4D')
        """
        if not volume or volume.lower() == PRIMARY_VOLUME:
            return self.storage_root
        return self.storage_base / volume

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with non-None overrides applied."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from environment variables

        Recognized variables:
            EXIFDATE_STORAGE_ROOT, EXIFDATE_STORAGE_BASE, EXIFDATE_CATALOG_DB,
            EXIFDATE_JPEG_QUALITY, EXIFDATE_MAX_NAME_SUFFIX, EXIFDATE_TEMP_DIR,
            DISABLE_TEMP_CLEANUP

        Raises:
            ValueError: If a numeric variable is malformed or out of range
        """
        env = os.environ if environ is None else environ

        storage_root = Path(
            env.get("EXIFDATE_STORAGE_ROOT") or Path.home() / "Storage"
        ).expanduser()
        catalog_db = env.get("EXIFDATE_CATALOG_DB")
        temp_dir = env.get("EXIFDATE_TEMP_DIR")

        settings = cls(
            storage_root=storage_root,
            storage_base=Path(env.get("EXIFDATE_STORAGE_BASE", DEFAULT_STORAGE_BASE)),
            catalog_db=Path(catalog_db).expanduser() if catalog_db else None,
            jpeg_quality=int(env.get("EXIFDATE_JPEG_QUALITY", DEFAULT_JPEG_QUALITY)),
            max_name_suffix=int(
                env.get("EXIFDATE_MAX_NAME_SUFFIX", DEFAULT_MAX_NAME_SUFFIX)
            ),
            temp_dir=Path(temp_dir).expanduser() if temp_dir else None,
            keep_temp=parse_bool_env(env.get("DISABLE_TEMP_CLEANUP", "")),
        )
        logger.debug(f"Settings loaded: {settings}")
        return settings
