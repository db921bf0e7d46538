"""Installer configuration."""

from dataclasses import dataclass
from pathlib import Path
from typing import Final

# Release feed, newest release first
API_URL: Final = "https://app.gitbutler.com/api/downloads?limit=1&channel=release"

# Every download URL must start with this origin followed by "/"
ALLOWED_ORIGIN: Final = "https://releases.gitbutler.com"

INSTALL_DIR: Final = Path("/usr/local/bin")
APP_DIR: Final = Path("/opt/gitbutler")
BINARY_NAME: Final = "but"
PRODUCT_NAME: Final = "GitButler CLI"

USER_AGENT: Final = "but-installer/0.1"
FEED_TIMEOUT_SECONDS: Final = 10.0
DOWNLOAD_TIMEOUT_SECONDS: Final = 60.0
PROBE_TIMEOUT_SECONDS: Final = 10.0


@dataclass(frozen=True)
class InstallerConfig:
    """Settings for a single installer run."""

    # Skip confirmation prompts
    force: bool = False

    # Only warnings and errors are shown
    quiet: bool = False

    api_url: str = API_URL
    install_dir: Path = INSTALL_DIR
    app_dir: Path = APP_DIR
    binary_name: str = BINARY_NAME

    # Prefer the distro's .deb/.rpm over the standalone binary when offered
    prefer_native_package: bool = False

    # PATH used to discover the installed binary; None means os.environ["PATH"]
    search_path: str | None = None

    feed_timeout: float = FEED_TIMEOUT_SECONDS
    download_timeout: float = DOWNLOAD_TIMEOUT_SECONDS
    probe_timeout: float = PROBE_TIMEOUT_SECONDS

    @property
    def target_path(self) -> Path:
        """Final path of the installed executable."""
        return self.install_dir / self.binary_name

    def app_path(self, filename: str) -> Path:
        """Path of an application bundle inside the application directory."""
        return self.app_dir / filename
