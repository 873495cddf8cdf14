"""Shared pytest configuration and fixtures for the http-to-ws test suite."""

import logging
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def pytest_addoption(parser):
    parser.addoption(
        "--skip-integration",
        action="store_true",
        default=False,
        help="Skip tests that open real local sockets",
    )


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--skip-integration"):
        return

    skip_integration = pytest.mark.skip(reason="--skip-integration given")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def project_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def bridge_logger() -> logging.Logger:
    """A plain stdlib logger components can be handed instead of their defaults."""
    logger = logging.getLogger("http_to_ws.tests")
    logger.setLevel(logging.DEBUG)
    return logger
