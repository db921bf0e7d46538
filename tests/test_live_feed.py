"""Checks against the real GitButler release feed.

Skipped unless pytest runs with --run-live.
"""

import httpx
import pytest

from but_installer.config import ALLOWED_ORIGIN, InstallerConfig
from but_installer.domain import Architecture, PlatformDescriptor
from but_installer.installer import ReleaseResolver
from but_installer.installer.versioning import is_version


@pytest.mark.live
@pytest.mark.parametrize("arch", list(Architecture))
def test_real_feed_resolves_trusted_binary(arch: Architecture) -> None:
    """Should resolve a trusted build from the real feed."""
    config = InstallerConfig()
    with httpx.Client() as client:
        resolver = ReleaseResolver(config, client)
        release, build = resolver.resolve_release(PlatformDescriptor(arch=arch))

    assert is_version(release.version)
    assert build.arch == arch.value
    assert build.url.startswith(f"{ALLOWED_ORIGIN}/")
