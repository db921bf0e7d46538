"""Per-package-kind install strategies.

Each strategy puts a staged payload in its final place:

- ``BinaryInstallStrategy`` copies a standalone executable next to the target
  under a temporary name and renames it over the target.
- ``AppBundleInstallStrategy`` does the same inside the application directory
  and then swaps a symlink in the binary directory.
- ``NativePackageInstallStrategy`` hands a ``.deb``/``.rpm`` to the package
  manager, which owns its own consistency guarantees.

A rename within one directory is atomic, so the final path either holds the
old file or the complete new one. When the target directory is not writable
the same steps run through ``sudo``.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from but_installer.config import InstallerConfig
from but_installer.domain.enums import PackageKind
from but_installer.domain.models import BuildArtifact
from but_installer.errors import InstallError, PermissionDeniedError

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


def _existing_parent(path: Path) -> Path:
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path("/")


def needs_privileges(directory: Path) -> bool:
    """True if writing to ``directory`` requires sudo."""
    if os.geteuid() == 0:
        return False
    return not os.access(_existing_parent(directory), os.W_OK)


def run_privileged(args: list[str]) -> None:
    """Run ``args`` through sudo.

    Raises:
        PermissionDeniedError: If sudo is missing.
        subprocess.CalledProcessError: If the command fails.
    """
    sudo = shutil.which("sudo")
    if sudo is None:
        raise PermissionDeniedError(
            "Root privileges are required but sudo was not found. Re-run as root."
        )
    logger.debug("Running privileged: %s", " ".join(args))
    subprocess.run([sudo, *args], check=True)


def _temp_sibling(target: Path) -> Path:
    return target.with_name(f".{target.name}.{os.getpid()}.tmp")


def _discard_privileged(temp: Path) -> None:
    """Best-effort removal of a temp file left behind by a failed sudo step."""
    try:
        run_privileged(["rm", "-f", str(temp)])
    except (PermissionDeniedError, subprocess.CalledProcessError) as e:
        logger.warning("Could not remove temporary file %s: %s", temp, e)


def links_into(link: Path, directory: Path) -> bool:
    """True if ``link`` is a symlink whose destination lies inside ``directory``."""
    if not link.is_symlink():
        return False
    return link.resolve(strict=False).is_relative_to(directory.resolve(strict=False))


def place_file(source: Path, target: Path) -> None:
    """Atomically replace ``target`` with an executable copy of ``source``."""
    directory = target.parent
    if needs_privileges(directory):
        logger.info("Root privileges are required. You may be prompted for your password.")
        temp = _temp_sibling(target)
        try:
            run_privileged(["mkdir", "-p", str(directory)])
            run_privileged(["install", "-m", "755", str(source), str(temp)])
            run_privileged(["mv", "-f", str(temp), str(target)])
        except subprocess.CalledProcessError as e:
            _discard_privileged(temp)
            raise InstallError(f"Failed to install binary to {target}") from e
        return

    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=directory)
        os.close(fd)
    except OSError as e:
        raise InstallError(f"Failed to install binary to {target}: {e}") from e

    temp = Path(temp_name)
    try:
        shutil.copyfile(source, temp)
        temp.chmod(EXECUTABLE_MODE)
        os.replace(temp, target)
    except OSError as e:
        temp.unlink(missing_ok=True)
        raise InstallError(f"Failed to install binary to {target}: {e}") from e


def place_symlink(link: Path, destination: Path) -> None:
    """Atomically point ``link`` at ``destination``."""
    temp = _temp_sibling(link)
    if needs_privileges(link.parent):
        try:
            run_privileged(["mkdir", "-p", str(link.parent)])
            run_privileged(["ln", "-sfn", str(destination), str(temp)])
            run_privileged(["mv", "-Tf", str(temp), str(link)])
        except subprocess.CalledProcessError as e:
            raise InstallError(f"Failed to link {link} to {destination}") from e
        return

    try:
        link.parent.mkdir(parents=True, exist_ok=True)
        temp.unlink(missing_ok=True)
        temp.symlink_to(destination)
        os.replace(temp, link)
    except OSError as e:
        temp.unlink(missing_ok=True)
        raise InstallError(f"Failed to link {link} to {destination}: {e}") from e


def remove_path(path: Path) -> None:
    """Remove a file, symlink or directory tree.

    Raises:
        PermissionDeniedError: If the OS refuses the removal.
    """
    if needs_privileges(path.parent):
        logger.info("Root privileges are required. You may be prompted for your password.")
        try:
            run_privileged(["rm", "-rf", str(path)])
        except subprocess.CalledProcessError as e:
            raise PermissionDeniedError(f"Failed to remove {path}") from e
        return

    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except OSError as e:
        raise PermissionDeniedError(f"Failed to remove {path}: {e}") from e


class InstallStrategy(ABC):
    """Puts a staged payload in place for one package kind."""

    def __init__(self, config: InstallerConfig):
        self.config = config

    @abstractmethod
    def install(self, payload: Path, artifact: BuildArtifact) -> Path:
        """Install ``payload`` and return the path users will run."""


class BinaryInstallStrategy(InstallStrategy):
    """Standalone executable moved to the binary directory."""

    def install(self, payload: Path, artifact: BuildArtifact) -> Path:
        target = self.config.target_path
        replaces_bundle = links_into(target, self.config.app_dir)
        payload.chmod(EXECUTABLE_MODE)
        place_file(payload, target)
        if replaces_bundle and self.config.app_dir.exists():
            logger.info("Removing previous application bundle in %s", self.config.app_dir)
            remove_path(self.config.app_dir)
        logger.info("Installed %s to %s", self.config.binary_name, target)
        return target


class AppBundleInstallStrategy(InstallStrategy):
    """Application image in the application directory, symlinked into PATH.

    Only the image the symlink points at is kept; earlier images are removed
    once the new link is in place.
    """

    def install(self, payload: Path, artifact: BuildArtifact) -> Path:
        app_path = self.config.app_path(payload.name)
        payload.chmod(EXECUTABLE_MODE)
        place_file(payload, app_path)
        place_symlink(self.config.target_path, app_path)
        self._prune(keep=app_path)
        logger.info("Installed %s to %s", payload.name, app_path)
        return self.config.target_path

    def _prune(self, keep: Path) -> None:
        for entry in sorted(self.config.app_dir.iterdir()):
            if entry.name != keep.name:
                logger.debug("Removing stale bundle entry %s", entry)
                remove_path(entry)


class NativePackageInstallStrategy(InstallStrategy):
    """Delegates to dpkg or rpm."""

    COMMANDS = {
        PackageKind.DEB: ["dpkg", "-i"],
        PackageKind.RPM: ["rpm", "-U", "--replacepkgs"],
    }

    def install(self, payload: Path, artifact: BuildArtifact) -> Path:
        command = [*self.COMMANDS[artifact.file_kind], str(payload)]
        logger.info("Installing %s with %s", payload.name, command[0])
        try:
            if os.geteuid() == 0:
                subprocess.run(command, check=True)
            else:
                logger.info("Root privileges are required. You may be prompted for your password.")
                run_privileged(command)
        except (OSError, subprocess.CalledProcessError) as e:
            raise InstallError(f"{command[0]} failed to install {payload.name}: {e}") from e

        found = shutil.which(self.config.binary_name, path=self.config.search_path)
        return Path(found) if found else self.config.target_path


def default_strategies(config: InstallerConfig) -> dict[PackageKind, InstallStrategy]:
    native = NativePackageInstallStrategy(config)
    return {
        PackageKind.NATIVE_BINARY: BinaryInstallStrategy(config),
        PackageKind.APPIMAGE: AppBundleInstallStrategy(config),
        PackageKind.DEB: native,
        PackageKind.RPM: native,
    }
