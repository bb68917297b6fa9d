"""Top-level pytest configuration for wiring."""

import os

import pytest

# Import for side effects so the error registry is populated
import wiring.errors.base
import wiring.injection.errors
from wiring.injection import Container, ContainerSettings

# Configure asyncio to be less verbose
os.environ["PYTHONASYNCIODEBUG"] = "0"


def pytest_addoption(parser):
    """Add command line options for pytest."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


# Skip integration tests by default
def pytest_collection_modifyitems(config, items):
    """Skip integration tests by default."""
    if not config.getoption("--run-integration"):
        skip_integration = pytest.mark.skip(
            reason="need --run-integration option to run"
        )
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


@pytest.fixture
def settings():
    """Settings with every feature on, independent of the environment."""
    return ContainerSettings(
        enable_dependency_tracking=True,
        enable_performance_metrics=True,
        memory_estimate_per_instance_kb=1.0,
        preload_skip_failures=True,
    )


@pytest.fixture
def container(settings):
    return Container(settings)

