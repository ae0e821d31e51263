"""Dependency checks for the selected build configuration (cargo, zig, cross, container runtime, gzip)."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from crossbuild_tooling.build.process import Invocation, probe, run_invocation
from crossbuild_tooling.config import Backend, BuildConfig
from crossbuild_tooling.helpers import compare_versions, extract_version

log = logging.getLogger(__name__)

CONTAINER_ENGINES = ("docker", "podman")
CROSS_INSTALL_CMD = ("cargo", "install", "cross", "--locked")


class Status(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


_ICONS = {Status.PASS: "✅", Status.WARN: "⚠️ ", Status.FAIL: "❌"}


@dataclass(frozen=True)
class DependencyCheck:
    name: str
    status: Status
    detail: str = ""


@dataclass
class DependencyReport:
    checks: list[DependencyCheck] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(c.status is not Status.FAIL for c in self.checks)

    @property
    def failed(self) -> list[str]:
        return [c.name for c in self.checks if c.status is Status.FAIL]

    @property
    def warnings(self) -> list[str]:
        return [c.name for c in self.checks if c.status is Status.WARN]

    def print(self) -> None:
        print("🔍 Checking dependencies...")
        for c in self.checks:
            line = f"  {_ICONS[c.status]} {c.name}"
            if c.detail:
                line += f": {c.detail}"
            print(line, file=sys.stderr if c.status is Status.FAIL else sys.stdout)
        if self.ok:
            print("✅ All required dependencies are available")
        else:
            print(f"❌ Missing dependencies: {', '.join(self.failed)}", file=sys.stderr)


def check_cargo() -> DependencyCheck:
    if not shutil.which("cargo"):
        return DependencyCheck("cargo", Status.FAIL, "not installed (https://rustup.rs)")
    out = probe(["cargo", "--version"])
    if out is None:
        return DependencyCheck("cargo", Status.FAIL, "'cargo --version' failed")
    return DependencyCheck("cargo", Status.PASS, out)


def check_zig(min_version: str) -> DependencyCheck:
    if not shutil.which("zig"):
        return DependencyCheck("zig", Status.FAIL, "not installed (https://ziglang.org)")
    out = probe(["zig", "version"])
    version = extract_version(out or "")
    if version is None:
        return DependencyCheck("zig", Status.WARN, f"could not determine version ({out!r})")
    try:
        too_old = compare_versions(version, min_version) < 0
    except ValueError:
        return DependencyCheck("zig", Status.WARN, f"unrecognised version {version}")
    if too_old:
        return DependencyCheck(
            "zig", Status.WARN, f"{version} is older than known-good {min_version}"
        )
    return DependencyCheck("zig", Status.PASS, version)


def check_zigbuild() -> DependencyCheck:
    out = probe(["cargo", "zigbuild", "--version"])
    if out is None:
        return DependencyCheck(
            "cargo-zigbuild", Status.FAIL, "not installed (cargo install cargo-zigbuild)"
        )
    return DependencyCheck("cargo-zigbuild", Status.PASS, out)


def find_container_engine(preferred: str | None = None) -> str | None:
    """First engine (preferred, else docker then podman) whose daemon answers '<engine> info'."""
    engines = (preferred,) if preferred else CONTAINER_ENGINES
    for engine in engines:
        if shutil.which(engine) and probe([engine, "info"]) is not None:
            return engine
    return None


def check_container_runtime(preferred: str | None = None) -> DependencyCheck:
    engine = find_container_engine(preferred)
    if engine is None:
        wanted = preferred or " or ".join(CONTAINER_ENGINES)
        return DependencyCheck("container runtime", Status.FAIL, f"{wanted} not reachable")
    return DependencyCheck("container runtime", Status.PASS, engine)


def install_cross(cwd: Path, timeout: float | None = None) -> bool:
    """cargo install cross. Returns True on success."""
    print("📦 Installing cross...")
    try:
        r = run_invocation(Invocation(CROSS_INSTALL_CMD, cwd, timeout=timeout))
    except (OSError, subprocess.TimeoutExpired) as e:
        log.debug("cross install failed: %s", e)
        return False
    return r.returncode == 0


def check_cross(cwd: Path, timeout: float | None = None) -> DependencyCheck:
    if shutil.which("cross"):
        return DependencyCheck("cross", Status.PASS, probe(["cross", "--version"]) or "present")
    if not shutil.which("cargo"):
        return DependencyCheck("cross", Status.FAIL, "not installed and cargo unavailable")
    if install_cross(cwd, timeout):
        return DependencyCheck("cross", Status.PASS, "installed")
    return DependencyCheck("cross", Status.FAIL, "not installed; 'cargo install cross' failed")


def check_gzip() -> DependencyCheck:
    if not shutil.which("gzip"):
        return DependencyCheck("gzip", Status.FAIL, "not installed (or use --no-compress)")
    return DependencyCheck("gzip", Status.PASS)


def check_dependencies(config: BuildConfig) -> DependencyReport:
    """Run every check implied by config.backend and config.compress."""
    report = DependencyReport()
    report.checks.append(check_cargo())
    if config.backend is Backend.ZIG:
        report.checks.append(check_zig(config.zig_min_version))
        report.checks.append(check_zigbuild())
    elif config.backend is Backend.CROSS:
        report.checks.append(check_container_runtime(config.container_engine))
        report.checks.append(check_cross(config.source_dir, config.timeout))
    if config.compress:
        report.checks.append(check_gzip())
    return report


def zig_version_info() -> list[str]:
    """Lines describing the zig toolchain for --zig-version."""
    zig = probe(["zig", "version"]) if shutil.which("zig") else None
    zigbuild = probe(["cargo", "zigbuild", "--version"])
    return [
        f"zig: {zig or 'not installed'}",
        f"cargo-zigbuild: {zigbuild or 'not installed'}",
    ]
