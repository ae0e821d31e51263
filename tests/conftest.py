"""Pytest fixtures for crossbuild tooling tests."""

from pathlib import Path

import pytest

from crossbuild_tooling.config import BuildConfig, Mode


@pytest.fixture
def cargo_project(tmp_path: Path) -> Path:
    """Minimal cargo project dir named like the packaged server. Returns its path."""
    root = tmp_path / "server"
    root.mkdir()
    (root / "Cargo.toml").write_text(
        '[package]\nname = "remote_server"\nversion = "0.1.0"\nedition = "2021"\n'
    )
    return root


@pytest.fixture
def config(cargo_project: Path) -> BuildConfig:
    """Debug, uncompressed, sequential config for cargo_project."""
    return BuildConfig(
        source_dir=cargo_project,
        output_dir=cargo_project / "dist",
        project_name="remote_server",
        binary_name="remote_server",
        mode=Mode.DEBUG,
        compress=False,
        timeout=60,
    )

