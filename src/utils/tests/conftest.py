# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"
