"""
Pytest configuration and shared fixtures for exifdate tests.

This module provides:
- Storage settings rooted in per-test temporary directories
- A temporary media catalog
- Operation registry and handle helpers
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from common.catalog import MediaCatalog  # noqa: E402
from common.config import Settings  # noqa: E402
from common.handles import CatalogHandle  # noqa: E402
from operations.registry import OperationRegistry  # noqa: E402


# ============================================================================
# Session-scoped fixtures - created once per test session
# ============================================================================


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def operation_registry() -> OperationRegistry:
    """Create and populate an operation registry with all available operations."""
    registry = OperationRegistry()
    failed = registry.discover(PROJECT_ROOT / "operations")
    assert failed == []
    return registry


# ============================================================================
# Function-scoped fixtures - created fresh for each test
# ============================================================================


@pytest.fixture
def storage_root(tmp_path) -> Path:
    """Primary volume root for a single test."""
    root = tmp_path / "storage" / "emulated"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def settings(tmp_path, storage_root) -> Settings:
    """Settings with every location inside the test's temporary directory."""
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    return Settings(
        storage_root=storage_root,
        storage_base=tmp_path / "storage",
        catalog_db=tmp_path / "catalog.sqlite3",
        temp_dir=temp_dir,
    )


@pytest.fixture
def catalog(settings):
    """Temporary media catalog, closed after the test."""
    with MediaCatalog.open(settings) as media_catalog:
        yield media_catalog


@pytest.fixture
def catalog_handle_for(catalog):
    """Factory: index a file and return a CatalogHandle for it."""

    def _factory(path: Path, **kwargs) -> CatalogHandle:
        record_id = catalog.index_file(path)
        return CatalogHandle(catalog, record_id, **kwargs)

    return _factory


# ============================================================================
# Test configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that run the CLI in a subprocess"
    )
