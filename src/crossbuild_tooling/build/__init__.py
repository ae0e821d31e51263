"""Host-aware multi-target Rust builds (cargo/cross/zigbuild): deps, install, build, package, report."""

from .backends import BuildPlan, build_target, plan_build
from .deps import DependencyReport, check_dependencies
from .orchestrator import run_build
from .report import BuildReport, TargetResult
from .targets import ensure_target

__all__ = [
    "BuildPlan",
    "BuildReport",
    "DependencyReport",
    "TargetResult",
    "build_target",
    "check_dependencies",
    "ensure_target",
    "plan_build",
    "run_build",
]
