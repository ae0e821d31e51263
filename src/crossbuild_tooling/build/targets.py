"""Ensure a rustup target (std for a triple) is installed before a direct cross build."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
from pathlib import Path

from crossbuild_tooling.build.process import Invocation, probe, run_invocation
from crossbuild_tooling.errors import TargetInstallFailed

log = logging.getLogger(__name__)


def installed_targets() -> set[str] | None:
    """Triples from 'rustup target list --installed', or None when rustup is unavailable."""
    if not shutil.which("rustup"):
        return None
    out = probe(["rustup", "target", "list", "--installed"])
    if out is None:
        return None
    return {line.strip() for line in out.splitlines() if line.strip()}


def ensure_target(
    triple: str,
    force: bool = False,
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
) -> bool:
    """Install triple via rustup if missing. Returns True when the target is known to be installed.

    No rustup: skipped silently (False). Install failure: TargetInstallFailed if force,
    otherwise a warning and False; the build itself then reports whatever goes wrong.
    """
    installed = installed_targets()
    if installed is None:
        log.debug("rustup not available; skipping target install for %s", triple)
        return False
    if triple in installed:
        return True

    print(f"📦 Installing rust target {triple}...")
    detail = ""
    try:
        r = run_invocation(
            Invocation(("rustup", "target", "add", triple), cwd or Path.cwd(), timeout=timeout)
        )
        ok = r.returncode == 0
        if not ok:
            detail = f"rustup exited {r.returncode}"
    except (OSError, subprocess.TimeoutExpired) as e:
        ok = False
        detail = str(e)
    if ok:
        return True
    if force:
        raise TargetInstallFailed(f"rust target {triple}", detail)
    print(
        f"⚠️  Could not install rust target {triple} ({detail}); trying the build anyway",
        file=sys.stderr,
    )
    return False
