"""Pytest configuration for the runtime compiler test suite."""

from _pytest.config import Config


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: large-output streaming tests")
