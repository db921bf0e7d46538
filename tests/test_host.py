"""Tests for platform detection and installed-version probing."""

from pathlib import Path
from unittest.mock import patch

import pytest

from but_installer.config import InstallerConfig
from but_installer.domain import Architecture, PackageKind
from but_installer.errors import UnsupportedPlatformError
from but_installer.installer.host import (
    detect_platform,
    native_package_kind,
    probe_install_state,
    read_binary_version,
)

from support import write_fake_binary


class TestDetectPlatform:
    """Tests for detect_platform()."""

    @pytest.mark.parametrize(
        ("machine", "expected"),
        [
            ("x86_64", Architecture.X86_64),
            ("amd64", Architecture.X86_64),
            ("aarch64", Architecture.AARCH64),
            ("arm64", Architecture.AARCH64),
        ],
    )
    def test_supported_architectures(self, machine: str, expected: Architecture) -> None:
        """Should normalise supported machine names."""
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine",
            return_value=machine,
        ):
            descriptor = detect_platform()

        assert descriptor.arch == expected
        assert descriptor.package_kind == PackageKind.NATIVE_BINARY

    def test_rejects_non_linux(self) -> None:
        """Should reject operating systems other than Linux."""
        with patch("platform.system", return_value="Darwin"), patch(
            "platform.machine",
            return_value="arm64",
        ):
            with pytest.raises(UnsupportedPlatformError, match="only for Linux"):
                detect_platform()

    def test_rejects_unknown_architecture(self) -> None:
        """Should reject unsupported architectures."""
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine",
            return_value="riscv64",
        ):
            with pytest.raises(UnsupportedPlatformError, match="Unsupported architecture"):
                detect_platform()

    def test_prefers_native_package_when_asked(self) -> None:
        """Should pick the distribution's package format when asked."""
        with patch("platform.system", return_value="Linux"), patch(
            "platform.machine",
            return_value="x86_64",
        ), patch(
            "platform.freedesktop_os_release",
            return_value={"ID": "ubuntu", "ID_LIKE": "debian"},
        ):
            descriptor = detect_platform(prefer_native_package=True)

        assert descriptor.package_kind == PackageKind.DEB


class TestNativePackageKind:
    """Tests for native_package_kind()."""

    @pytest.mark.parametrize(
        ("os_release", "expected"),
        [
            ({"ID": "debian"}, PackageKind.DEB),
            ({"ID": "linuxmint", "ID_LIKE": "ubuntu debian"}, PackageKind.DEB),
            ({"ID": "fedora"}, PackageKind.RPM),
            ({"ID": "rocky", "ID_LIKE": "rhel centos fedora"}, PackageKind.RPM),
            ({"ID": "arch"}, PackageKind.NATIVE_BINARY),
        ],
    )
    def test_families(self, os_release: dict[str, str], expected: PackageKind) -> None:
        """Should map distribution families to package kinds."""
        with patch("platform.freedesktop_os_release", return_value=os_release):
            assert native_package_kind() == expected

    def test_missing_os_release(self) -> None:
        """Should fall back to no package kind without os-release."""
        with patch("platform.freedesktop_os_release", side_effect=OSError("no such file")):
            assert native_package_kind() == PackageKind.NATIVE_BINARY


class TestProbeInstallState:
    """Tests for probe_install_state()."""

    def test_absent(self, config: InstallerConfig) -> None:
        """Should report 0.0.0 when the binary is not installed."""
        state = probe_install_state(config)

        assert state.installed_version == "0.0.0"
        assert state.discovered_path is None
        assert state.target_path == config.target_path
        assert not state.is_installed

    def test_reads_version_from_binary(self, config: InstallerConfig) -> None:
        """Should read the version from the installed binary."""
        write_fake_binary(config.target_path, "0.19.1")

        state = probe_install_state(config)

        assert state.installed_version == "0.19.1"
        assert state.discovered_path == config.target_path
        assert state.is_installed

    def test_unparsable_output_is_absent(self, tmp_path: Path) -> None:
        """Should treat unparsable version output as absent."""
        binary = tmp_path / "but"
        binary.write_text("#!/bin/sh\necho 'dev build'\n")
        binary.chmod(0o755)

        assert read_binary_version(binary, timeout=5) == "0.0.0"

    def test_failing_binary_is_absent(self, tmp_path: Path) -> None:
        """Should treat a failing binary as absent."""
        binary = tmp_path / "but"
        binary.write_text("#!/bin/sh\necho 'but 1.0.0'\nexit 3\n")
        binary.chmod(0o755)

        assert read_binary_version(binary, timeout=5) == "0.0.0"

    def test_unrunnable_binary_is_absent(self, tmp_path: Path) -> None:
        """Should treat a binary that cannot run as absent."""
        assert read_binary_version(tmp_path / "missing", timeout=5) == "0.0.0"
