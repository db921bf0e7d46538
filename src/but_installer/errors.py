"""Installer error taxonomy.

Every error is fatal for the current run. The CLI catches ``InstallerError``,
prints the message and exits with ``exit_code``.
"""


class InstallerError(Exception):
    """Base class for all installer failures."""

    exit_code: int = 1


class UnsupportedPlatformError(InstallerError):
    """Raised when the host OS or architecture is not supported."""


class FetchError(InstallerError):
    """Raised when the release feed cannot be retrieved."""


class ParseError(InstallerError):
    """Raised when the release feed is malformed."""


class NoCompatibleBuildError(InstallerError):
    """Raised when the release has no build for this platform."""

    def __init__(self, arch: str):
        self.arch = arch
        super().__init__(f"No compatible build found for architecture '{arch}'")


class UntrustedSourceError(InstallerError):
    """Raised when a download URL is outside the allowed origin."""

    def __init__(self, url: str, allowed_origin: str):
        self.url = url
        self.allowed_origin = allowed_origin
        super().__init__(
            f"Download URL '{url}' is from an untrusted domain (expected {allowed_origin}/...)"
        )


class DownloadError(InstallerError):
    """Raised when an artifact download fails."""


class EmptyArtifactError(InstallerError):
    """Raised when a downloaded artifact has zero length."""


class ExtractionError(InstallerError):
    """Raised when an archive cannot be unpacked."""


class PayloadNotFoundError(InstallerError):
    """Raised when an unpacked archive does not contain the expected file."""


class InstallError(InstallerError):
    """Raised when the staged payload cannot be put in place."""


class PermissionDeniedError(InstallerError):
    """Raised when the OS refuses a removal or privileged operation."""


class VerificationError(InstallerError):
    """Raised when the post-install probe does not match the release."""
