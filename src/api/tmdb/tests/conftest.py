"""
Shared fixtures and utilities for TMDB service tests.

Fixtures in fixtures/make_requests/ are captured TMDB responses for The Office
(tv/2316) and related search results.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from adapters.config import SearchSettings
from api.tmdb.core import TMDBService
from utils.call_quota import CallQuota


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(filename: str) -> dict:
    """Load a fixture from JSON file.

    Args:
        filename: Path of the fixture file relative to fixtures/

    Returns:
        Parsed JSON data

    Raises:
        FileNotFoundError: If fixture file doesn't exist
    """
    fixture_path = FIXTURES_DIR / filename
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {fixture_path}")

    with open(fixture_path) as f:
        return json.load(f)


@pytest.fixture
def tmdb_settings():
    return SearchSettings(tmdb_read_token="test_tmdb_token_12345", environment="test")


@pytest.fixture
def tmdb_service(tmdb_settings):
    """TMDBService whose transport is an AsyncMock returning (json, status)."""
    service = TMDBService(tmdb_settings, quota=CallQuota(limit=100))
    service._core_async_request = AsyncMock(return_value=({}, 200))
    return service
