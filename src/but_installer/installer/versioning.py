"""Semantic version comparison.

Only ``major.minor.patch`` is considered. Pre-release and build metadata
(``1.2.3-rc.1``, ``1.2.3+abc``) are ignored because the release feed never
publishes them. Strings without a version compare as ``0.0.0``, older than
any real release.
"""

import re

from but_installer.domain.enums import Comparison
from but_installer.domain.models import ABSENT_VERSION

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")


def is_version(text: str | None) -> bool:
    """True if ``text`` contains an ``x.y.z`` version."""
    return bool(text) and _VERSION_RE.search(text) is not None


def parse_version(text: str | None) -> tuple[int, int, int]:
    """Return the first ``x.y.z`` triple found in ``text``, or ``(0, 0, 0)``."""
    if not text:
        return (0, 0, 0)
    match = _VERSION_RE.search(text)
    if match is None:
        return (0, 0, 0)
    major, minor, patch = (int(part) for part in match.groups())
    return (major, minor, patch)


def extract_version(text: str | None) -> str:
    """Normalise ``text`` (e.g. ``"but 0.19.1"``) to ``"0.19.1"``."""
    if not is_version(text):
        return ABSENT_VERSION
    return ".".join(str(part) for part in parse_version(text))


def compare_versions(a: str | None, b: str | None) -> Comparison:
    """Compare ``a`` against ``b`` numerically."""
    left = parse_version(a)
    right = parse_version(b)
    if left < right:
        return Comparison.LESS
    if left > right:
        return Comparison.GREATER
    return Comparison.EQUAL
