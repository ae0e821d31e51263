"""Tests for crossbuild_tooling.build.package."""

import hashlib
import os
import shutil
from dataclasses import replace
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from crossbuild_tooling.build.package import artifact_name, compress_in_place, package
from crossbuild_tooling.config import BuildConfig
from crossbuild_tooling.errors import CompressionFailed
from crossbuild_tooling.platforms.registry import resolve

needs_gzip = pytest.mark.skipif(shutil.which("gzip") is None, reason="gzip not installed")


@pytest.fixture
def built_binary(config: BuildConfig) -> Path:
    p = config.source_dir / "target" / "debug" / "remote_server"
    p.parent.mkdir(parents=True)
    p.write_bytes(b"\x7fELF" + b"remote server payload " * 400)
    return p


def test_artifact_name(config: BuildConfig) -> None:
    assert artifact_name(config, resolve("linux-amd64")) == "remote_server.linux.x86_64"
    assert artifact_name(config, resolve("darwin-arm64")) == "remote_server.darwin.aarch64"
    assert artifact_name(config, resolve("windows-amd64")) == "remote_server.windows.x86_64"


class TestPackageUncompressed:
    def test_copies_under_canonical_name(self, config: BuildConfig, built_binary: Path) -> None:
        spec = resolve("linux-arm64")
        result = package(built_binary, "linux-arm64", spec, config, backend="direct")
        expected = config.output_dir / "remote_server.linux.aarch64"
        assert result.succeeded
        assert result.artifact_path == expected
        assert expected.read_bytes() == built_binary.read_bytes()
        assert os.access(expected, os.X_OK)
        assert result.size_bytes == built_binary.stat().st_size
        assert result.checksum == hashlib.sha256(built_binary.read_bytes()).hexdigest()
        assert result.backend == "direct"
        assert sorted(p.name for p in config.output_dir.iterdir()) == [expected.name]

    def test_source_artifact_untouched(self, config: BuildConfig, built_binary: Path) -> None:
        before = built_binary.read_bytes()
        package(built_binary, "linux-amd64", resolve("linux-amd64"), config)
        assert built_binary.read_bytes() == before


@needs_gzip
class TestPackageCompressed:
    def test_writes_single_gz_file(self, config: BuildConfig, built_binary: Path) -> None:
        cfg = replace(config, compress=True)
        result = package(built_binary, "linux-amd64", resolve("linux-amd64"), cfg)
        expected = cfg.output_dir / "remote_server.linux.x86_64.gz"
        assert result.artifact_path == expected
        assert [p.name for p in cfg.output_dir.iterdir()] == [expected.name]
        assert result.size_bytes == expected.stat().st_size
        assert result.checksum == hashlib.sha256(expected.read_bytes()).hexdigest()
        assert expected.read_bytes()[:2] == b"\x1f\x8b"

    def test_checksum_stable_across_runs(self, config: BuildConfig, built_binary: Path) -> None:
        cfg = replace(config, compress=True)
        spec = resolve("linux-amd64")
        first = package(built_binary, "linux-amd64", spec, cfg)
        second = package(built_binary, "linux-amd64", spec, cfg)
        assert first.checksum == second.checksum


class TestCompressInPlace:
    def test_failure_keeps_original_and_leaves_no_gz(self, tmp_path: Path) -> None:
        target = tmp_path / "remote_server.linux.x86_64"
        target.write_bytes(b"payload")
        with patch("subprocess.run", return_value=MagicMock(returncode=1)):
            with pytest.raises(CompressionFailed):
                compress_in_place(target)
        assert target.read_bytes() == b"payload"
        assert sorted(p.name for p in tmp_path.iterdir()) == [target.name]

    def test_missing_tool_is_compression_failure(self, tmp_path: Path) -> None:
        target = tmp_path / "remote_server.linux.x86_64"
        target.write_bytes(b"payload")
        with patch("subprocess.run", side_effect=FileNotFoundError("gzip")):
            with pytest.raises(CompressionFailed, match="gzip"):
                compress_in_place(target)
        assert sorted(p.name for p in tmp_path.iterdir()) == [target.name]

    def test_failed_compress_in_package_raises(
        self, config: BuildConfig, built_binary: Path
    ) -> None:
        cfg = replace(config, compress=True)
        with patch("subprocess.run", return_value=MagicMock(returncode=1)):
            with pytest.raises(CompressionFailed):
                package(built_binary, "linux-amd64", resolve("linux-amd64"), cfg)
        assert not (cfg.output_dir / "remote_server.linux.x86_64.gz").exists()
