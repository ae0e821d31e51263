"""Drive install -> build -> package across the requested targets and aggregate a BuildReport.

Run-fatal (raised before any target starts): UnknownPlatform, InvalidArgument,
ManifestNotFound, DependencyUnsatisfied. Per-target failures (PER_TARGET_ERRORS, plus
OSError while packaging) are recorded in that target's TargetResult and the run goes on.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

from crossbuild_tooling.build.backends import (
    check_backend_support,
    plan_build,
    prepare_plan,
    run_plan,
)
from crossbuild_tooling.build.deps import check_dependencies
from crossbuild_tooling.build.package import package
from crossbuild_tooling.build.report import BuildReport, TargetResult
from crossbuild_tooling.config import BuildConfig
from crossbuild_tooling.errors import PER_TARGET_ERRORS, DependencyUnsatisfied, InvalidArgument
from crossbuild_tooling.platforms.host import is_local_build
from crossbuild_tooling.platforms.registry import PlatformSpec, resolve_all

log = logging.getLogger(__name__)

CANCELLED = "Cancelled"


def preflight(config: BuildConfig, tokens: list[str]) -> list[PlatformSpec]:
    """Validate tokens, backend support and the manifest. Duplicate tokens are built once."""
    if not tokens:
        msg = "no targets requested (pass platform tokens or --all)"
        raise InvalidArgument(msg)
    specs = resolve_all(tokens)
    unique: list[PlatformSpec] = []
    for spec in specs:
        if spec in unique:
            log.debug("Ignoring duplicate target %s", spec.token)
            continue
        unique.append(spec)
    for spec in unique:
        if not is_local_build(spec.token):
            check_backend_support(config, spec)
    config.require_manifest()
    return unique


def build_one(config: BuildConfig, spec: PlatformSpec, *, isolated: bool = False) -> TargetResult:
    """Install, build and package one target; failures become a failed TargetResult."""
    start = time.monotonic()
    backend: str | None = None
    try:
        plan = plan_build(config, spec.token, isolated=isolated)
        backend = plan.backend
        prepare_plan(config, plan)
        artifact = run_plan(plan)
        result = package(artifact, spec.token, spec, config, backend=backend)
    except PER_TARGET_ERRORS as e:
        print(f"❌ {spec.token}: {e}", file=sys.stderr)
        result = TargetResult.failure(spec.token, e, backend=backend)
    except OSError as e:
        print(f"❌ {spec.token}: could not package artifact: {e}", file=sys.stderr)
        result = TargetResult.failure(spec.token, e, backend=backend)
    return replace(result, duration_seconds=time.monotonic() - start)


def _cancelled(spec: PlatformSpec) -> TargetResult:
    return TargetResult.failure(spec.token, "cancelled before start", error_kind=CANCELLED)


def _is_cancelled(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


def run_build(
    config: BuildConfig,
    tokens: list[str],
    *,
    cancel: threading.Event | None = None,
    check_deps: bool = True,
) -> BuildReport:
    """Build every token; returns the finalized BuildReport (see BuildReport.exit_code)."""
    specs = preflight(config, tokens)
    if check_deps:
        deps = check_dependencies(config)
        deps.print()
        if not deps.ok:
            raise DependencyUnsatisfied(deps.failed)

    report = BuildReport(total_requested=len(specs))
    print(f"🚀 Building {len(specs)} target(s) ({config.mode.value}, backend {config.backend.value})")

    if config.jobs <= 1 or len(specs) == 1:
        for spec in specs:
            if _is_cancelled(cancel):
                report.record(_cancelled(spec))
                continue
            report.record(build_one(config, spec))
    else:
        # Each worker gets its own CARGO_TARGET_DIR; results keep requested order.
        slots: list[TargetResult | None] = [None] * len(specs)
        lock = threading.Lock()

        def work(i: int, spec: PlatformSpec) -> None:
            r = _cancelled(spec) if _is_cancelled(cancel) else build_one(config, spec, isolated=True)
            with lock:
                slots[i] = r

        with ThreadPoolExecutor(max_workers=config.jobs) as pool:
            futures = [pool.submit(work, i, spec) for i, spec in enumerate(specs)]
            for f in futures:
                f.result()
        for r in slots:
            if r is not None:
                report.record(r)

    report.finalize()
    return report
