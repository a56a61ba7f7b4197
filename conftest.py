"""
Pytest configuration for libcheck test suite.

This configuration enables the --full flag to run integration tests, which
need a working arduino-cli with the tested cores installed.
"""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Register markers used by the test suite."""
    config.addinivalue_line("markers", "integration: needs arduino-cli and installed cores (run with --full)")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --full was given."""
    if config.getoption("--full"):
        return
    skip_integration = pytest.mark.skip(reason="integration test, use --full to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
