"""
Pytest configuration and shared fixtures.

This module provides central pytest configuration, custom markers,
and shared fixtures for the forked test suite.
"""

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# =============================================================================
# Plugin Registration
# =============================================================================

pytest_plugins = [
    "tests.fixtures.logging",
    "tests.fixtures.process",
]


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, isolated, no real processes)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (fork real processes, send signals)"
    )
    config.addinivalue_line("markers", "slow: Tests that take >1 second to run")
    config.addinivalue_line("markers", "property: Property-based tests (hypothesis)")


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Provide a temporary directory that is cleaned up after the test.

    Yields:
        Path: Temporary directory path
    """
    temp_path = Path(tempfile.mkdtemp(prefix="forked-test-", dir="/tmp"))
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


# =============================================================================
# Test Collection Hooks
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Add the 'unit' marker to tests without another category marker."""
    for item in items:
        if not any(mark.name == "integration" for mark in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
