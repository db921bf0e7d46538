"""Artifact download and staging.

Downloads land in a :class:`StagingArea`, a private temporary directory that
is removed when its ``with`` block exits for any reason. Archives are
unpacked inside the same directory so nothing outside it is ever written.
"""

import logging
import shutil
import tarfile
import tempfile
import zipfile
from pathlib import Path
from types import TracebackType

import httpx
from rich.progress import BarColumn, DownloadColumn, Progress, TransferSpeedColumn

from but_installer.config import USER_AGENT, InstallerConfig
from but_installer.domain.enums import PackageKind
from but_installer.domain.models import BuildArtifact
from but_installer.errors import (
    DownloadError,
    EmptyArtifactError,
    ExtractionError,
    PayloadNotFoundError,
)

logger = logging.getLogger(__name__)

STAGING_PREFIX = "but-install-"
CHUNK_SIZE = 64 * 1024


class StagingArea:
    """Exclusively owned temporary directory, removed on exit."""

    def __init__(self, prefix: str = STAGING_PREFIX):
        self._prefix = prefix
        self.path: Path | None = None

    def __enter__(self) -> Path:
        self.path = Path(tempfile.mkdtemp(prefix=self._prefix))
        logger.debug("Created staging area %s", self.path)
        return self.path

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug("Removed staging area %s", self.path)
        self.path = None


def _extract_tar(archive_path: Path, target_dir: Path) -> None:
    with tarfile.open(archive_path) as archive:
        # The "data" filter rejects absolute paths, links outside the target and devices
        archive.extractall(target_dir, filter="data")


def _extract_zip(archive_path: Path, target_dir: Path) -> None:
    root = target_dir.resolve()
    with zipfile.ZipFile(archive_path) as archive:
        for member in archive.infolist():
            destination = (root / member.filename).resolve()
            try:
                destination.relative_to(root)
            except ValueError:
                raise ExtractionError(
                    f"Archive contained an unsafe path: {member.filename}"
                ) from None
        archive.extractall(root)


def extract_archive(archive_path: Path, target_dir: Path) -> Path:
    """Unpack ``archive_path`` into ``target_dir`` and return ``target_dir``."""
    logger.info("Extracting %s", archive_path.name)
    target_dir.mkdir(parents=True, exist_ok=True)
    try:
        if archive_path.name.endswith(".zip"):
            _extract_zip(archive_path, target_dir)
        else:
            _extract_tar(archive_path, target_dir)
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
        raise ExtractionError(f"Failed to extract {archive_path.name}: {e}") from e
    return target_dir


def _payload_matches(path: Path, kind: PackageKind, binary_name: str) -> bool:
    if not path.is_file():
        return False
    if kind == PackageKind.APPIMAGE:
        return path.name.lower().endswith(".appimage")
    return path.name == binary_name


def locate_payload(root: Path, kind: PackageKind, binary_name: str) -> Path:
    """Find the payload in ``root`` or one directory below it.

    Raises:
        PayloadNotFoundError: If no file matches.
    """
    entries = sorted(root.iterdir())
    for entry in entries:
        if _payload_matches(entry, kind, binary_name):
            return entry
    for entry in entries:
        if entry.is_dir():
            for child in sorted(entry.iterdir()):
                if _payload_matches(child, kind, binary_name):
                    return child
    expected = "*.AppImage" if kind == PackageKind.APPIMAGE else binary_name
    raise PayloadNotFoundError(f"Could not find {expected} in the downloaded archive")


def _content_length(headers: httpx.Headers) -> int | None:
    """Size advertised by the server, or None when missing or malformed."""
    try:
        length = int(headers.get("Content-Length", ""))
    except ValueError:
        return None
    return length if length > 0 else None


class ArtifactFetcher:
    """Downloads build artifacts into a staging area."""

    def __init__(self, config: InstallerConfig, client: httpx.Client):
        self.config = config
        self.client = client

    def staging(self) -> StagingArea:
        return StagingArea()

    def _download(self, url: str, destination: Path) -> None:
        progress = Progress(
            "[progress.description]{task.description}",
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            transient=True,
            disable=self.config.quiet,
        )
        try:
            with (
                self.client.stream(
                    "GET",
                    url,
                    headers={"User-Agent": USER_AGENT},
                    timeout=self.config.download_timeout,
                    follow_redirects=True,
                ) as response,
                progress,
            ):
                response.raise_for_status()
                total = _content_length(response.headers)
                task = progress.add_task(destination.name, total=total)
                with destination.open("wb") as out:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        out.write(chunk)
                        progress.advance(task, len(chunk))
        except (httpx.HTTPError, OSError) as e:
            destination.unlink(missing_ok=True)
            raise DownloadError(f"Download failed: {e}") from e

    def fetch(self, artifact: BuildArtifact, staging_dir: Path) -> Path:
        """Download ``artifact`` into ``staging_dir`` and return the payload path.

        No checksum or signature is verified because the feed publishes none.
        A warning saying so is always logged.
        """
        download_path = staging_dir / Path(artifact.filename).name
        logger.info("Downloading from %s", artifact.url)
        self._download(artifact.url, download_path)

        if download_path.stat().st_size == 0:
            raise EmptyArtifactError("Downloaded file is empty.")

        logger.warning(
            "Checksum verification is not possible as the provider does not supply checksums."
        )

        if not artifact.archived:
            return download_path

        unpacked = extract_archive(download_path, staging_dir / "unpacked")
        payload = locate_payload(unpacked, artifact.file_kind, self.config.binary_name)
        logger.debug("Located payload %s", payload)
        return payload
