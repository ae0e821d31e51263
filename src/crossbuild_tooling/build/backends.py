"""Host-aware build backend selection: cargo (local or --target), cargo zigbuild, or cross.

plan_build() is pure apart from host detection: it decides the backend, the exact command,
the per-invocation environment and the expected artifact path. build_target() then
installs what the plan needs, runs it and checks that the artifact exists.

Artifact paths (target_root is <source>/target, or target/crossbuild/<token> when isolated):
- local:  <target_root>/<mode>/<binary>[.exe]
- others: <target_root>/<host_triple>/<mode>/<binary>[.exe]
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from crossbuild_tooling.build.deps import install_cross
from crossbuild_tooling.build.process import Invocation, run_invocation
from crossbuild_tooling.build.targets import ensure_target
from crossbuild_tooling.config import Backend, BuildConfig
from crossbuild_tooling.errors import (
    ArtifactNotFound,
    BuildInvocationFailed,
    InvalidArgument,
    TargetInstallFailed,
)
from crossbuild_tooling.platforms.host import is_local_build
from crossbuild_tooling.platforms.registry import PlatformSpec, resolve

log = logging.getLogger(__name__)

LOCAL = "local"
ISOLATED_DIR = "crossbuild"


@dataclass(frozen=True)
class BuildPlan:
    token: str
    backend: str  # local | direct | zig | cross
    invocation: Invocation
    artifact_path: Path
    install_triple: str | None = None


def cargo_flags(config: BuildConfig) -> list[str]:
    """--release and --features shared by every backend."""
    flags = ["--release"] if config.release else []
    if config.features:
        flags += ["--features", ",".join(sorted(config.features))]
    return flags


def target_root_for(config: BuildConfig, token: str, isolated: bool) -> Path:
    return config.target_root / ISOLATED_DIR / token if isolated else config.target_root


def check_backend_support(config: BuildConfig, spec: PlatformSpec) -> None:
    """Raise InvalidArgument if config.backend cannot build spec. Run before any subprocess."""
    if config.backend is Backend.ZIG and not spec.zig_triple:
        msg = f"{spec.token} is not supported by the zig backend; use --cross or the direct backend"
        raise InvalidArgument(msg)


def plan_build(
    config: BuildConfig,
    token: str,
    *,
    isolated: bool = False,
    local: bool | None = None,
) -> BuildPlan:
    """Decide how token is built. local=None means detect from the host."""
    spec = resolve(token)
    if local is None:
        local = is_local_build(token)
    root = target_root_for(config, token, isolated)
    mode_dir = config.mode.value
    binary = config.binary_name + spec.exe_suffix
    flags = cargo_flags(config)
    env: dict[str, str] = {"CARGO_TARGET_DIR": str(root)} if isolated else {}

    if local:
        cmd = ("cargo", "build", *flags)
        return BuildPlan(
            token,
            LOCAL,
            Invocation(cmd, config.source_dir, env, config.timeout),
            root / mode_dir / binary,
        )

    check_backend_support(config, spec)
    artifact = root / spec.host_triple / mode_dir / binary

    if config.backend is Backend.CROSS:
        if config.container_engine:
            env["CROSS_CONTAINER_ENGINE"] = config.container_engine
        cmd = ("cross", "build", "--target", spec.host_triple, *flags)
        return BuildPlan(
            token,
            Backend.CROSS.value,
            Invocation(cmd, config.source_dir, env, config.timeout),
            artifact,
        )

    if config.backend is Backend.ZIG:
        cmd = ("cargo", "zigbuild", "--target", spec.zig_triple, *flags)
        return BuildPlan(
            token,
            Backend.ZIG.value,
            Invocation(cmd, config.source_dir, env, config.timeout),
            artifact,
        )

    cmd = ("cargo", "build", "--target", spec.host_triple, *flags)
    return BuildPlan(
        token,
        Backend.DIRECT.value,
        Invocation(cmd, config.source_dir, env, config.timeout),
        artifact,
        install_triple=spec.host_triple,
    )


def ensure_cross_tool(config: BuildConfig) -> None:
    """Install cross if missing. Raises TargetInstallFailed when that fails."""
    if shutil.which("cross"):
        return
    if not install_cross(config.source_dir, config.timeout):
        raise TargetInstallFailed("cross", "cargo install cross failed")


def run_plan(plan: BuildPlan) -> Path:
    """Run the build command and return the artifact path."""
    print(f"🔨 Building {plan.token} ({plan.backend}): {plan.invocation.describe()}")
    try:
        r = run_invocation(plan.invocation)
    except subprocess.TimeoutExpired as e:
        raise BuildInvocationFailed(plan.token, plan.backend, None, timed_out=True) from e
    except OSError as e:
        log.debug("Could not start %s: %s", plan.invocation.cmd[0], e)
        raise BuildInvocationFailed(plan.token, plan.backend, None) from e
    if r.returncode != 0:
        raise BuildInvocationFailed(plan.token, plan.backend, r.returncode)
    if not plan.artifact_path.is_file():
        raise ArtifactNotFound(plan.artifact_path)
    return plan.artifact_path


def prepare_plan(config: BuildConfig, plan: BuildPlan) -> None:
    """Install what plan needs: cross for the container backend, the rustup target for direct."""
    if plan.backend == Backend.CROSS.value:
        ensure_cross_tool(config)
    elif plan.install_triple:
        ensure_target(
            plan.install_triple,
            config.force_install_targets,
            cwd=config.source_dir,
            timeout=config.timeout,
        )


def build_target(config: BuildConfig, token: str, *, isolated: bool = False) -> Path:
    """Select the backend for token, install prerequisites, build, return the artifact path."""
    plan = plan_build(config, token, isolated=isolated)
    prepare_plan(config, plan)
    return run_plan(plan)
