# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"

import pytest
from fakes import FakeCatalog

from adapters.config import SearchSettings


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def settings() -> SearchSettings:
    return SearchSettings(tmdb_read_token="test-token", environment="test")
