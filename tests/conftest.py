"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest
from support import FEED_URL, FakeServer

from but_installer.config import InstallerConfig
from but_installer.domain import Architecture, PlatformDescriptor


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="run live tests that query the real GitButler release feed",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "live: mark test as requiring network access (deselect with '-m \"not live\"')",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is specified."""
    if config.getoption("--run-live"):
        return

    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def server():
    """Fake release feed and download host."""
    fake = FakeServer()
    yield fake
    fake.client.close()


@pytest.fixture
def config(tmp_path: Path) -> InstallerConfig:
    """Config that installs into tmp_path and only searches there for the binary."""
    bin_dir = tmp_path / "bin"
    return InstallerConfig(
        force=True,
        quiet=True,
        api_url=FEED_URL,
        install_dir=bin_dir,
        app_dir=tmp_path / "opt" / "gitbutler",
        search_path=str(bin_dir),
    )


@pytest.fixture
def linux_x86() -> PlatformDescriptor:
    return PlatformDescriptor(arch=Architecture.X86_64)
