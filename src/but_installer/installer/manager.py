"""Install state machine.

The flow for an install run is:
1. Probe the installed version (``0.0.0`` when absent)
2. Resolve the latest release and the build for this platform
3. Decide: ABSENT or UPGRADABLE move on to INSTALLING, UP_TO_DATE stops here
4. Download into a staging area and hand the payload to the strategy for
   the build's package kind
5. Probe again and check the new version is the one that was released

An uninstall run goes straight to UNINSTALLING and never touches the feed.
Up to date and nothing-to-uninstall are successful outcomes, not errors.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from but_installer.config import PRODUCT_NAME, InstallerConfig
from but_installer.domain.enums import Comparison, InstallAction, InstallStage, PackageKind
from but_installer.domain.models import (
    ABSENT_VERSION,
    InstallState,
    PlatformDescriptor,
    ReleaseInfo,
)
from but_installer.errors import VerificationError
from but_installer.installer.fetcher import ArtifactFetcher
from but_installer.installer.host import detect_platform, probe_install_state
from but_installer.installer.resolver import ReleaseResolver
from but_installer.installer.strategies import (
    InstallStrategy,
    default_strategies,
    links_into,
    remove_path,
)
from but_installer.installer.versioning import compare_versions

logger = logging.getLogger(__name__)

Prober = Callable[[InstallerConfig], InstallState]
Confirm = Callable[[str], bool]


@dataclass
class InstallOutcome:
    """Result of an installer run."""

    action: InstallAction
    installed_version: str
    latest_version: str | None = None
    path: Path | None = None
    message: str = ""


class InstallManager:
    """Decides between install, upgrade, skip and uninstall, then does it."""

    def __init__(
        self,
        config: InstallerConfig,
        platform: PlatformDescriptor | None,
        resolver: ReleaseResolver,
        fetcher: ArtifactFetcher,
        prober: Prober = probe_install_state,
        confirm: Confirm | None = None,
        strategies: dict[PackageKind, InstallStrategy] | None = None,
    ):
        self.config = config
        self.platform = platform
        self.resolver = resolver
        self.fetcher = fetcher
        self.prober = prober
        self._confirm_callback = confirm
        self.strategies = strategies or default_strategies(config)

    def _confirm(self, message: str) -> bool:
        if self.config.force or self._confirm_callback is None:
            return True
        return self._confirm_callback(message)

    @staticmethod
    def decide(state: InstallState, release: ReleaseInfo) -> InstallStage:
        """Map the installed and released versions to a stage."""
        if not state.is_installed:
            return InstallStage.ABSENT
        if compare_versions(state.installed_version, release.version) == Comparison.LESS:
            return InstallStage.UPGRADABLE
        return InstallStage.UP_TO_DATE

    def run(self, uninstall: bool = False) -> InstallOutcome:
        if uninstall:
            return self.uninstall()
        return self.install()

    def install(self) -> InstallOutcome:
        if self.platform is None:
            self.platform = detect_platform(prefer_native_package=self.config.prefer_native_package)
        release, build = self.resolver.resolve_release(self.platform)
        state = self.prober(self.config)
        stage = self.decide(state, release)

        if stage == InstallStage.UP_TO_DATE:
            if compare_versions(state.installed_version, release.version) == Comparison.GREATER:
                # Downgrades are never performed, with or without --force
                logger.warning(
                    "Installed version %s is newer than the latest release %s; leaving it in place.",
                    state.installed_version,
                    release.version,
                )
            return InstallOutcome(
                action=InstallAction.UP_TO_DATE,
                installed_version=state.installed_version,
                latest_version=release.version,
                path=state.discovered_path,
                message=f"{PRODUCT_NAME} is already up to date (Version: {state.installed_version}).",
            )

        upgrading = stage == InstallStage.UPGRADABLE
        if upgrading:
            logger.info(
                "Found installed version %s. Upgrading to %s.",
                state.installed_version,
                release.version,
            )
        else:
            logger.info("%s not found. Installing version %s.", PRODUCT_NAME, release.version)

        target = self.config.target_path
        if (target.exists() or target.is_symlink()) and not self._confirm(
            f"{PRODUCT_NAME} is already installed at {target}. Do you want to reinstall?"
        ):
            logger.info("Installation cancelled.")
            return InstallOutcome(
                action=InstallAction.CANCELLED,
                installed_version=state.installed_version,
                latest_version=release.version,
                message="Installation cancelled.",
            )

        logger.debug("Stage %s -> %s", stage.value, InstallStage.INSTALLING.value)
        strategy = self.strategies[build.file_kind]
        with self.fetcher.staging() as staging_dir:
            payload = self.fetcher.fetch(build, staging_dir)
            installed_path = strategy.install(payload, build)

        final_state = self.prober(self.config)
        self.verify(final_state, release)

        return InstallOutcome(
            action=InstallAction.UPGRADED if upgrading else InstallAction.INSTALLED,
            installed_version=final_state.installed_version,
            latest_version=release.version,
            path=final_state.discovered_path or installed_path,
            message=f"Successfully installed {PRODUCT_NAME} version {final_state.installed_version}",
        )

    def verify(self, state: InstallState, release: ReleaseInfo) -> None:
        """Check the post-install probe against the release.

        Raises:
            VerificationError: If the binary is not on PATH or reports a
                different version.
        """
        if state.discovered_path is None:
            raise VerificationError(
                f"Installation finished, but the '{self.config.binary_name}' command "
                "could not be found in the system's PATH."
            )
        if compare_versions(state.installed_version, release.version) != Comparison.EQUAL:
            raise VerificationError(
                f"Installation finished, but {state.discovered_path} reports version "
                f"{state.installed_version} instead of {release.version}."
            )

    def uninstall(self) -> InstallOutcome:
        logger.info("Uninstalling %s...", PRODUCT_NAME)
        logger.debug("Stage -> %s", InstallStage.UNINSTALLING.value)
        target = self.config.target_path

        if not target.exists() and not target.is_symlink():
            logger.warning("%s is not installed at %s", PRODUCT_NAME, target)
            return InstallOutcome(
                action=InstallAction.NOT_INSTALLED,
                installed_version=ABSENT_VERSION,
                path=target,
                message=f"{PRODUCT_NAME} is not installed at {target}",
            )

        if not self._confirm(f"Are you sure you want to uninstall {PRODUCT_NAME}?"):
            logger.info("Uninstallation cancelled.")
            return InstallOutcome(
                action=InstallAction.CANCELLED,
                installed_version=ABSENT_VERSION,
                path=target,
                message="Uninstallation cancelled.",
            )

        bundled = links_into(target, self.config.app_dir)
        remove_path(target)
        if bundled and self.config.app_dir.exists():
            remove_path(self.config.app_dir)

        logger.info("Configuration files (if any) in your home directory were not removed.")
        return InstallOutcome(
            action=InstallAction.UNINSTALLED,
            installed_version=ABSENT_VERSION,
            path=target,
            message=f"{PRODUCT_NAME} has been successfully uninstalled.",
        )
