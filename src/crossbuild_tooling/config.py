"""Build configuration: BuildConfig, settings defaults, optional crossbuild.yaml.

crossbuild.yaml (in the source dir, all keys optional):
- project_name: name used for packaged artifacts (default: Cargo.toml [package].name)
- binary_name: cargo binary to pick up from target/ (default: project_name)
- output_dir: where packaged artifacts go, relative to the source dir (default: dist)
- features: list or comma separated string of cargo features
- mode: debug | release
- compress: gzip packaged artifacts (default: true)
- timeout: seconds per toolchain invocation, 0 disables (default: 3600)
- jobs: targets built in parallel (default: 1)
- zig_min_version: warn when zig is older (default: 0.11.0)
- container_engine: docker | podman (default: first reachable)

Empty values (e.g. `output_dir:`) keep the default.
Precedence: DEFAULT_SETTINGS < crossbuild.yaml < CLI overrides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from crossbuild_tooling.errors import InvalidArgument, ManifestNotFound
from crossbuild_tooling.helpers import read_package_name, split_features

log = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
CONFIG_FILE_NAME = "crossbuild.yaml"
TARGET_DIR_NAME = "target"


class Mode(str, Enum):
    DEBUG = "debug"
    RELEASE = "release"


class Backend(str, Enum):
    """How non-host targets are compiled."""

    DIRECT = "direct"  # cargo build --target
    ZIG = "zig"  # cargo zigbuild
    CROSS = "cross"  # cross (containerised)


DEFAULT_SETTINGS: dict[str, Any] = {
    "project_name": None,
    "binary_name": None,
    "output_dir": "dist",
    "features": [],
    "mode": Mode.DEBUG.value,
    "compress": True,
    "timeout": 3600,
    "jobs": 1,
    "zig_min_version": "0.11.0",
    "container_engine": None,
}


@dataclass(frozen=True)
class BuildConfig:
    """One invocation's parameters. Built once from the command surface, never mutated."""

    source_dir: Path
    output_dir: Path
    project_name: str
    binary_name: str
    mode: Mode = Mode.DEBUG
    features: frozenset[str] = field(default_factory=frozenset)
    backend: Backend = Backend.DIRECT
    force_install_targets: bool = False
    compress: bool = True
    timeout: float | None = 3600
    jobs: int = 1
    zig_min_version: str = "0.11.0"
    container_engine: str | None = None

    @property
    def manifest_path(self) -> Path:
        return self.source_dir / MANIFEST_NAME

    @property
    def target_root(self) -> Path:
        return self.source_dir / TARGET_DIR_NAME

    @property
    def release(self) -> bool:
        return self.mode is Mode.RELEASE

    def require_manifest(self) -> None:
        if not self.manifest_path.is_file():
            raise ManifestNotFound(self.manifest_path)


def load_settings_file(source_dir: Path) -> dict[str, Any]:
    """Load crossbuild.yaml from source_dir; {} when absent. Raises InvalidArgument on bad YAML."""
    path = source_dir / CONFIG_FILE_NAME
    if not path.is_file():
        return {}
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        msg = f"could not parse {path}: {e}"
        raise InvalidArgument(msg) from e
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping"
        raise InvalidArgument(msg)
    return data


def resolve_settings(
    file_settings: dict[str, Any] | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return settings dict with defaults filled. None values in overrides do not override."""
    out = dict(DEFAULT_SETTINGS)
    for k, v in (file_settings or {}).items():
        if k not in out:
            log.debug("Ignoring unknown setting %s in %s", k, CONFIG_FILE_NAME)
            continue
        if v is None:
            log.debug("Empty setting %s in %s; using the default", k, CONFIG_FILE_NAME)
            continue
        out[k] = v
    out.update({k: v for k, v in (overrides or {}).items() if k in out and v is not None})
    return out


def _coerce_mode(value: Any) -> Mode:
    if isinstance(value, Mode):
        return value
    try:
        return Mode(str(value).lower())
    except ValueError:
        msg = f"invalid mode {value!r}; use debug or release"
        raise InvalidArgument(msg) from None


def _coerce_timeout(value: Any) -> float | None:
    try:
        t = float(value)
    except (TypeError, ValueError):
        msg = f"invalid timeout {value!r}"
        raise InvalidArgument(msg) from None
    if t < 0:
        msg = f"timeout must be >= 0, got {value!r}"
        raise InvalidArgument(msg)
    return t or None


def _coerce_jobs(value: Any) -> int:
    try:
        jobs = int(value)
    except (TypeError, ValueError):
        msg = f"invalid jobs value {value!r}"
        raise InvalidArgument(msg) from None
    if jobs < 1:
        msg = f"jobs must be >= 1, got {jobs}"
        raise InvalidArgument(msg)
    return jobs


def make_config(
    source_dir: Path,
    *,
    backend: Backend = Backend.DIRECT,
    force_install_targets: bool = False,
    overrides: dict[str, Any] | None = None,
) -> BuildConfig:
    """Build a BuildConfig for source_dir from defaults, crossbuild.yaml and CLI overrides."""
    source_dir = Path(source_dir).resolve()
    settings = resolve_settings(load_settings_file(source_dir), overrides)

    project_name = (
        settings["project_name"]
        or read_package_name(source_dir / MANIFEST_NAME)
        or source_dir.name
    )
    output_dir = Path(settings["output_dir"])
    if not output_dir.is_absolute():
        output_dir = source_dir / output_dir

    return BuildConfig(
        source_dir=source_dir,
        output_dir=output_dir,
        project_name=str(project_name),
        binary_name=str(settings["binary_name"] or project_name),
        mode=_coerce_mode(settings["mode"]),
        features=split_features(settings["features"]),
        backend=backend,
        force_install_targets=force_install_targets,
        compress=bool(settings["compress"]),
        timeout=_coerce_timeout(settings["timeout"]),
        jobs=_coerce_jobs(settings["jobs"]),
        zig_min_version=str(settings["zig_min_version"]),
        container_engine=settings["container_engine"],
    )
