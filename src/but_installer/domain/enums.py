"""Enumerations for domain models."""

from enum import Enum


class OperatingSystem(str, Enum):
    """Supported host operating systems."""

    LINUX = "Linux"


class Architecture(str, Enum):
    """Supported CPU architectures, named as the release feed names them."""

    X86_64 = "x86_64"
    AARCH64 = "aarch64"


class PackageKind(str, Enum):
    """Installation mechanism required by an artifact."""

    NATIVE_BINARY = "native-binary"
    DEB = "deb"
    RPM = "rpm"
    APPIMAGE = "appimage"

    @property
    def is_native_package(self) -> bool:
        return self in (PackageKind.DEB, PackageKind.RPM)


class Comparison(str, Enum):
    """Result of comparing two versions."""

    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"


class InstallStage(str, Enum):
    """States of the install state machine."""

    ABSENT = "absent"
    UP_TO_DATE = "up_to_date"
    UPGRADABLE = "upgradable"
    INSTALLING = "installing"
    UNINSTALLING = "uninstalling"


class InstallAction(str, Enum):
    """What a run ended up doing."""

    INSTALLED = "installed"
    UPGRADED = "upgraded"
    UP_TO_DATE = "up_to_date"
    UNINSTALLED = "uninstalled"
    NOT_INSTALLED = "not_installed"  # Uninstall requested but nothing was there
    CANCELLED = "cancelled"  # User declined a confirmation
