"""but-installer CLI entry point."""

import logging
import signal
import sys
from types import FrameType

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from but_installer.config import PRODUCT_NAME, InstallerConfig
from but_installer.domain.enums import InstallAction
from but_installer.errors import InstallerError
from but_installer.installer import (
    ArtifactFetcher,
    InstallManager,
    InstallOutcome,
    ReleaseResolver,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

EPILOG = """\b
Examples:
  # Install or upgrade
  but-installer

  # Install without prompts
  but-installer --force

  # Errors and security warnings only
  but-installer --quiet

  # Uninstall
  but-installer --uninstall
"""


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging with rich handler.

    Quiet mode keeps warnings so the missing-checksum notice is never hidden.
    """
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, console=err_console, show_path=verbose)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _raise_on_signal(signum: int, frame: FrameType | None) -> None:
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    """Turn SIGTERM and SIGHUP into SystemExit so staging cleanup runs."""
    for name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, _raise_on_signal)


def prompt_confirm(message: str) -> bool:
    """Ask a yes/no question; declines when there is no terminal to ask on."""
    if not sys.stdin.isatty():
        logger.warning("Cannot ask for confirmation without a terminal. Re-run with --force.")
        return False
    return click.confirm(message, default=False, err=True)


def build_manager(config: InstallerConfig, client: httpx.Client) -> InstallManager:
    # platform detection waits until an install needs it; uninstall never does
    return InstallManager(
        config,
        platform=None,
        resolver=ReleaseResolver(config, client),
        fetcher=ArtifactFetcher(config, client),
        confirm=prompt_confirm,
    )


def report(outcome: InstallOutcome) -> None:
    if outcome.action == InstallAction.CANCELLED:
        console.print(f"[blue][+][/blue] {escape(outcome.message)}")
        return
    if outcome.action == InstallAction.NOT_INSTALLED:
        console.print(f"[yellow][!][/yellow] {escape(outcome.message)}")
        return

    console.print(f"[green][✓][/green] {escape(outcome.message)}")
    if outcome.action in (InstallAction.INSTALLED, InstallAction.UPGRADED) and outcome.path:
        console.print(f"[blue][+][/blue] Path: {outcome.path}")


@click.command(epilog=EPILOG)
@click.option("--force", is_flag=True, help="Skip confirmation prompts")
@click.option("--quiet", is_flag=True, help="Minimal output (errors and security warnings only)")
@click.option("--uninstall", is_flag=True, help=f"Uninstall {PRODUCT_NAME}")
@click.option(
    "--native-package",
    is_flag=True,
    help="Prefer the distribution's .deb/.rpm package when the release has one",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
def cli(force: bool, quiet: bool, uninstall: bool, native_package: bool, verbose: bool) -> None:
    """Install, update, or uninstall the GitButler CLI on Linux."""
    setup_logging(verbose=verbose, quiet=quiet)
    console.quiet = quiet
    install_signal_handlers()

    config = InstallerConfig(force=force, quiet=quiet, prefer_native_package=native_package)

    try:
        with httpx.Client() as client:
            manager = build_manager(config, client)
            outcome = manager.run(uninstall=uninstall)
    except InstallerError as e:
        err_console.print(f"[red][-][/red] {escape(str(e))}")
        raise SystemExit(e.exit_code) from e
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        raise SystemExit(130) from None

    report(outcome)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
