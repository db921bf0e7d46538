"""Domain models for but-installer."""

from but_installer.domain.enums import (
    Architecture,
    Comparison,
    InstallAction,
    InstallStage,
    OperatingSystem,
    PackageKind,
)
from but_installer.domain.models import (
    ABSENT_VERSION,
    BuildArtifact,
    InstallState,
    PlatformDescriptor,
    ReleaseInfo,
)

__all__ = [
    "ABSENT_VERSION",
    "Architecture",
    "Comparison",
    "InstallAction",
    "InstallStage",
    "OperatingSystem",
    "PackageKind",
    "BuildArtifact",
    "InstallState",
    "PlatformDescriptor",
    "ReleaseInfo",
]
