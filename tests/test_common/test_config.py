"""
Tests for settings, .env loading and small utilities.
"""

import os
from pathlib import Path

import pytest

from common.config import DEFAULT_JPEG_QUALITY, DEFAULT_MAX_NAME_SUFFIX, Settings
from common.env_loader import load_dotenv_file
from common.utils import numbered_name, parse_bool_env, replace_extension, split_name


class TestSettings:
    """Tests for Settings construction."""

    def test_defaults_from_empty_env(self):
        settings = Settings.from_env({})

        assert settings.storage_root == Path.home() / "Storage"
        assert settings.jpeg_quality == DEFAULT_JPEG_QUALITY
        assert settings.max_name_suffix == DEFAULT_MAX_NAME_SUFFIX
        assert settings.effective_catalog_db == settings.storage_root / ".catalog.sqlite3"
        assert settings.keep_temp is False

    def test_from_env(self, tmp_path):
        settings = Settings.from_env(
            {
                "EXIFDATE_STORAGE_ROOT": str(tmp_path / "root"),
                "EXIFDATE_STORAGE_BASE": str(tmp_path / "mnt"),
                "EXIFDATE_CATALOG_DB": str(tmp_path / "cat.db"),
                "EXIFDATE_JPEG_QUALITY": "80",
                "EXIFDATE_MAX_NAME_SUFFIX": "5",
                "EXIFDATE_TEMP_DIR": str(tmp_path / "tmp"),
                "DISABLE_TEMP_CLEANUP": "yes",
            }
        )

        assert settings.storage_root == tmp_path / "root"
        assert settings.volume_root("primary") == tmp_path / "root"
        assert settings.volume_root("ABCD-1234") == tmp_path / "mnt" / "ABCD-1234"
        assert settings.effective_catalog_db == tmp_path / "cat.db"
        assert settings.jpeg_quality == 80
        assert settings.max_name_suffix == 5
        assert settings.effective_temp_dir == tmp_path / "tmp"
        assert settings.keep_temp is True

    @pytest.mark.parametrize(
        "env",
        [
            {"EXIFDATE_JPEG_QUALITY": "101"},
            {"EXIFDATE_JPEG_QUALITY": "high"},
            {"EXIFDATE_MAX_NAME_SUFFIX": "0"},
        ],
    )
    def test_invalid_values(self, env):
        with pytest.raises(ValueError):
            Settings.from_env(env)

    def test_with_overrides_ignores_none(self, settings):
        updated = settings.with_overrides(storage_root=None, jpeg_quality=70)
        assert updated.storage_root == settings.storage_root
        assert updated.jpeg_quality == 70


class TestEnvLoader:
    """Tests for .env loading."""

    def test_loads_without_override(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("EXIFDATE_TEST_A=from_file\nEXIFDATE_TEST_B=from_file\n")
        monkeypatch.setenv("EXIFDATE_TEST_A", "from_env")
        monkeypatch.setenv("EXIFDATE_TEST_B", "placeholder")
        monkeypatch.delenv("EXIFDATE_TEST_B")

        assert load_dotenv_file(str(env_file)) is True
        assert os.environ["EXIFDATE_TEST_A"] == "from_env"
        assert os.environ["EXIFDATE_TEST_B"] == "from_file"

    def test_missing_file(self, tmp_path):
        assert load_dotenv_file(str(tmp_path / "missing.env")) is False


class TestNaming:
    """Tests for file naming helpers."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("photo.png", ("photo", "png")),
            ("archive.tar.gz", ("archive.tar", "gz")),
            ("README", ("README", "")),
            (".hidden", (".hidden", "")),
        ],
    )
    def test_split_name(self, name, expected):
        assert split_name(name) == expected

    def test_replace_extension(self):
        assert replace_extension("IMG_0001.PNG", "jpg") == "IMG_0001.jpg"
        assert replace_extension("noext", "jpg") == "noext.jpg"

    def test_numbered_name(self):
        assert numbered_name("photo.jpg", 0) == "photo.jpg"
        assert numbered_name("photo.jpg", 1) == "photo(1).jpg"
        assert numbered_name("photo", 3) == "photo(3).jpg"

    @pytest.mark.parametrize("value", ["true", "1", "YES", "on"])
    def test_parse_bool_env_truthy(self, value):
        assert parse_bool_env(value) is True

    @pytest.mark.parametrize("value", ["false", "0", "", "nope"])
    def test_parse_bool_env_falsy(self, value):
        assert parse_bool_env(value) is False
