"""
Shared pytest fixtures and configuration for plinth tests.

This module provides:
- An in-memory SQLite adapter per test
- Migration registry isolation
- A migrator bound to a private registry

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_something(db, migrator):
        ...
"""

import sys
from pathlib import Path

import pytest

# Ensure plinth package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from plinth.core.adapters import SQLiteAdapter
from plinth.core.migrations import MigrationRegistry, Migrator, default_registry


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests that use a real database as integration tests."""
    for item in items:
        fixtures = getattr(item, "fixturenames", ())
        if "db" in fixtures or "migrator" in fixtures:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db():
    """Connected in-memory SQLite adapter, closed after the test."""
    adapter = SQLiteAdapter(":memory:")
    adapter.connect()
    yield adapter
    adapter.disconnect()


# =============================================================================
# Registry Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_default_registry():
    """Clear module-level migration registrations after each test."""
    yield
    default_registry.clear()


@pytest.fixture
def registry() -> MigrationRegistry:
    return MigrationRegistry()


@pytest.fixture
def migrator(db, registry) -> Migrator:
    return Migrator(db, registry)
