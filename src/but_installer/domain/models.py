"""Value objects passed between installer components.

All models are frozen: a platform, a release and an install state are
computed once per run and never mutated afterwards.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict

from but_installer.domain.enums import Architecture, OperatingSystem, PackageKind

ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".zip")

# Version reported when nothing is installed or the version cannot be read
ABSENT_VERSION = "0.0.0"


class PlatformDescriptor(BaseModel):
    """The host the installer runs on."""

    model_config = ConfigDict(frozen=True)

    os: OperatingSystem = OperatingSystem.LINUX
    arch: Architecture
    package_kind: PackageKind = PackageKind.NATIVE_BINARY


class BuildArtifact(BaseModel):
    """A downloadable build for one architecture."""

    model_config = ConfigDict(frozen=True)

    arch: str
    file_kind: PackageKind
    url: str
    filename: str

    @property
    def archived(self) -> bool:
        """True if the artifact must be unpacked before installing."""
        return self.filename.endswith(ARCHIVE_SUFFIXES)


class ReleaseInfo(BaseModel):
    """The latest release as advertised by the feed."""

    model_config = ConfigDict(frozen=True)

    version: str
    builds: tuple[BuildArtifact, ...] = ()


class InstallState(BaseModel):
    """What is currently installed on this host."""

    model_config = ConfigDict(frozen=True)

    installed_version: str = ABSENT_VERSION
    target_path: Path
    discovered_path: Path | None = None  # Where the binary was found on PATH

    @property
    def is_installed(self) -> bool:
        return self.installed_version != ABSENT_VERSION
