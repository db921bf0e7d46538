"""Release resolution and install state machine for the GitButler CLI.

This package can:
- Detect the host platform and the currently installed version
- Resolve the latest release build for this platform from the vendor feed
- Download and stage the build, unpacking archives
- Install, upgrade, skip or uninstall, and verify the result
"""

from but_installer.installer.fetcher import ArtifactFetcher, StagingArea
from but_installer.installer.host import detect_platform, probe_install_state
from but_installer.installer.manager import InstallManager, InstallOutcome
from but_installer.installer.resolver import ReleaseResolver
from but_installer.installer.versioning import compare_versions, extract_version

__all__ = [
    "ArtifactFetcher",
    "StagingArea",
    "detect_platform",
    "probe_install_state",
    "InstallManager",
    "InstallOutcome",
    "ReleaseResolver",
    "compare_versions",
    "extract_version",
]
