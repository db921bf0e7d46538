"""Release resolution.

Fetches the release feed and narrows it to the one build that should be
installed on this platform. The feed is a JSON array whose first element is
the latest release::

    [{"version": "0.19.1",
      "builds": [{"arch": "x86_64", "file": "but",
                  "url": "https://releases.gitbutler.com/.../but"}, ...]}]

The feed publishes no checksums, so the download origin check in
:meth:`ReleaseResolver.verify_origin` is the only integrity control and is
always applied.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from but_installer.config import ALLOWED_ORIGIN, USER_AGENT, InstallerConfig
from but_installer.domain.enums import PackageKind
from but_installer.domain.models import (
    ARCHIVE_SUFFIXES,
    BuildArtifact,
    PlatformDescriptor,
    ReleaseInfo,
)
from but_installer.errors import (
    FetchError,
    NoCompatibleBuildError,
    ParseError,
    UntrustedSourceError,
)
from but_installer.installer.versioning import is_version

logger = logging.getLogger(__name__)


class FeedBuild(BaseModel):
    """One entry of a release's ``builds`` array."""

    model_config = ConfigDict(extra="ignore")

    arch: str
    file: str
    url: str


class FeedRelease(BaseModel):
    """A release object as served by the feed."""

    model_config = ConfigDict(extra="ignore")

    version: str = Field(min_length=1)
    builds: list[Any] = Field(default_factory=list)


def strip_archive_suffix(filename: str) -> str:
    for suffix in ARCHIVE_SUFFIXES:
        if filename.endswith(suffix):
            return filename[: -len(suffix)]
    return filename


def classify_file(filename: str, binary_name: str) -> PackageKind | None:
    """Work out the package kind from a build's file name.

    Returns None for files this installer does not know how to install
    (installers for other operating systems, signatures, and so on).
    """
    bare = strip_archive_suffix(filename)
    lowered = bare.lower()
    if lowered.endswith(".deb"):
        return PackageKind.DEB
    if lowered.endswith(".rpm"):
        return PackageKind.RPM
    if lowered.endswith(".appimage"):
        return PackageKind.APPIMAGE
    if bare == binary_name:
        return PackageKind.NATIVE_BINARY
    return None


def _selection_tiers(platform: PlatformDescriptor) -> list[tuple[str, Callable[[BuildArtifact], bool]]]:
    """Build predicates in priority order. The first tier with a match wins."""
    tiers: list[tuple[str, Callable[[BuildArtifact], bool]]] = []
    if platform.package_kind.is_native_package:
        kind = platform.package_kind
        tiers.append(
            (f"{kind.value} package", lambda b: b.file_kind == kind and not b.archived)
        )
    tiers.append(
        (
            "standalone binary",
            lambda b: b.file_kind == PackageKind.NATIVE_BINARY and not b.archived,
        )
    )
    tiers.append(
        (
            "application bundle",
            lambda b: b.file_kind == PackageKind.APPIMAGE
            or (b.file_kind == PackageKind.NATIVE_BINARY and b.archived),
        )
    )
    return tiers


class ReleaseResolver:
    """Turns the remote release feed into a single installable build."""

    def __init__(self, config: InstallerConfig, client: httpx.Client):
        self.config = config
        self.client = client

    def fetch_release(self) -> ReleaseInfo:
        """Download and parse the latest release.

        Raises:
            FetchError: On transport failure, an HTTP error status or an
                empty body.
            ParseError: If the body is not a release array or the latest
                release has no version.
        """
        logger.info("Fetching latest CLI release information...")
        try:
            response = self.client.get(
                self.config.api_url,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                timeout=self.config.feed_timeout,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch release data from the API: {e}") from e

        body = response.text
        if not body.strip():
            raise FetchError("Failed to fetch release data from the API: empty response")

        return self.parse_release(body)

    def parse_release(self, body: str) -> ReleaseInfo:
        """Parse a feed body into a :class:`ReleaseInfo`."""
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise ParseError(f"Release feed is not valid JSON: {e}") from e

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise ParseError("Could not find release object in API response.")

        try:
            release = FeedRelease.model_validate(data[0])
        except ValidationError as e:
            raise ParseError(f"Could not parse version from API response: {e}") from e
        if not is_version(release.version):
            raise ParseError(f"Could not parse version from API response: {release.version!r}")

        builds: list[BuildArtifact] = []
        for raw in release.builds:
            try:
                build = FeedBuild.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed build entry: %r", raw)
                continue
            kind = classify_file(build.file, self.config.binary_name)
            if kind is None:
                logger.debug("Skipping build with unrecognised file %s", build.file)
                continue
            builds.append(
                BuildArtifact(
                    arch=build.arch,
                    file_kind=kind,
                    url=build.url,
                    filename=build.file,
                )
            )

        logger.debug("Latest release %s has %d installable builds", release.version, len(builds))
        return ReleaseInfo(version=release.version, builds=tuple(builds))

    def select_build(self, release: ReleaseInfo, platform: PlatformDescriptor) -> BuildArtifact:
        """Pick the build for ``platform``; deterministic for the same input."""
        candidates = [b for b in release.builds if b.arch == platform.arch.value]
        for tier_name, matches in _selection_tiers(platform):
            for build in candidates:
                if matches(build):
                    logger.debug("Selected %s %s", tier_name, build.filename)
                    return build
        raise NoCompatibleBuildError(platform.arch.value)

    @staticmethod
    def verify_origin(build: BuildArtifact) -> None:
        """Reject any build not served from the allowed origin."""
        if not build.url.startswith(f"{ALLOWED_ORIGIN}/"):
            raise UntrustedSourceError(build.url, ALLOWED_ORIGIN)

    def resolve_release(self, platform: PlatformDescriptor) -> tuple[ReleaseInfo, BuildArtifact]:
        """Fetch the feed and return the release with its selected build."""
        release = self.fetch_release()
        build = self.select_build(release, platform)
        self.verify_origin(build)
        return release, build

    def resolve(self, platform: PlatformDescriptor) -> BuildArtifact:
        """Return the trusted build to install on ``platform``."""
        _, build = self.resolve_release(platform)
        return build
