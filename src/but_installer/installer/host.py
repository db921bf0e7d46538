"""Host introspection: platform detection and installed-version probing."""

import logging
import platform
import shutil
import subprocess
from pathlib import Path

from but_installer.config import InstallerConfig
from but_installer.domain.enums import Architecture, OperatingSystem, PackageKind
from but_installer.domain.models import ABSENT_VERSION, InstallState, PlatformDescriptor
from but_installer.errors import UnsupportedPlatformError
from but_installer.installer.versioning import extract_version

logger = logging.getLogger(__name__)

_ARCH_ALIASES = {
    "x86_64": Architecture.X86_64,
    "amd64": Architecture.X86_64,
    "aarch64": Architecture.AARCH64,
    "arm64": Architecture.AARCH64,
}

_DEB_FAMILIES = {"debian", "ubuntu"}
_RPM_FAMILIES = {"fedora", "rhel", "centos", "suse", "opensuse"}


def _distro_ids() -> set[str]:
    """Return ID and ID_LIKE from os-release, lowercased."""
    try:
        info = platform.freedesktop_os_release()
    except OSError as e:
        logger.debug("Could not read os-release: %s", e)
        return set()
    ids = {info.get("ID", "")}
    ids.update(info.get("ID_LIKE", "").split())
    return {value.lower() for value in ids if value}


def native_package_kind() -> PackageKind:
    """Return the distro's package format, or NATIVE_BINARY if unknown."""
    ids = _distro_ids()
    if ids & _DEB_FAMILIES:
        return PackageKind.DEB
    if ids & _RPM_FAMILIES:
        return PackageKind.RPM
    return PackageKind.NATIVE_BINARY


def detect_platform(prefer_native_package: bool = False) -> PlatformDescriptor:
    """Describe the current host.

    Raises:
        UnsupportedPlatformError: If the OS is not Linux or the CPU
            architecture has no published builds.
    """
    system = platform.system()
    machine = platform.machine().lower()

    if system != OperatingSystem.LINUX.value:
        raise UnsupportedPlatformError(f"This installer is only for Linux. Detected OS: {system}")

    arch = _ARCH_ALIASES.get(machine)
    if arch is None:
        raise UnsupportedPlatformError(
            f"Unsupported architecture: {machine}. Only x86_64 and aarch64 are supported."
        )

    package_kind = native_package_kind() if prefer_native_package else PackageKind.NATIVE_BINARY
    descriptor = PlatformDescriptor(arch=arch, package_kind=package_kind)
    logger.info("System: Linux %s (%s)", arch.value, package_kind.value)
    return descriptor


def find_binary(config: InstallerConfig) -> Path | None:
    """Locate the installed binary on the search path."""
    found = shutil.which(config.binary_name, path=config.search_path)
    return Path(found) if found else None


def read_binary_version(binary: Path, timeout: float) -> str:
    """Run ``binary --version`` and extract its ``x.y.z`` version."""
    try:
        result = subprocess.run(
            [str(binary), "--version"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Failed to run %s --version: %s: %s", binary, type(e).__name__, e)
        return ABSENT_VERSION

    if result.returncode != 0:
        logger.debug("%s --version exited with %s", binary, result.returncode)
        return ABSENT_VERSION
    return extract_version(result.stdout)


def probe_install_state(config: InstallerConfig) -> InstallState:
    """Probe what is installed right now. Nothing is cached between calls."""
    discovered = find_binary(config)
    if discovered is None:
        return InstallState(target_path=config.target_path)

    version = read_binary_version(discovered, config.probe_timeout)
    logger.debug("Found %s version %s", discovered, version)
    return InstallState(
        installed_version=version,
        target_path=config.target_path,
        discovered_path=discovered,
    )
