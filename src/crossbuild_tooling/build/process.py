"""Subprocess invocation with per-call environment and timeout.

Backend-specific variables (CARGO_TARGET_DIR, CROSS_CONTAINER_ENGINE, ...) travel in
Invocation.env and are merged into a copy of os.environ for that one subprocess.
os.environ itself is never modified, so concurrent targets cannot see each other's flags.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

PROBE_TIMEOUT = 60


@dataclass(frozen=True)
class Invocation:
    """One toolchain call: argv, working directory, extra env, timeout (None = unbounded)."""

    cmd: tuple[str, ...]
    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None

    def environ(self) -> dict[str, str] | None:
        if not self.env:
            return None
        merged = dict(os.environ)
        merged.update(self.env)
        return merged

    def describe(self) -> str:
        prefix = " ".join(f"{k}={v}" for k, v in sorted(self.env.items()))
        cmd = shlex.join(self.cmd)
        return f"{prefix} {cmd}" if prefix else cmd


def run_invocation(inv: Invocation, *, capture: bool = False) -> subprocess.CompletedProcess:
    """Run inv; returns the CompletedProcess. TimeoutExpired and OSError propagate to the caller."""
    log.debug("Running (cwd=%s): %s", inv.cwd, inv.describe())
    return subprocess.run(
        list(inv.cmd),
        cwd=str(inv.cwd),
        env=inv.environ(),
        timeout=inv.timeout,
        capture_output=capture,
        text=True if capture else None,
        check=False,
    )


def probe(cmd: Sequence[str], cwd: Path | None = None, timeout: float = PROBE_TIMEOUT) -> str | None:
    """Run a quick query command (e.g. 'zig version'). Returns stripped stdout on exit 0, else None."""
    try:
        r = subprocess.run(
            list(cmd),
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        log.debug("Probe %s failed: %s", shlex.join(cmd), e)
        return None
    if r.returncode != 0:
        log.debug("Probe %s exited %s", shlex.join(cmd), r.returncode)
        return None
    return (r.stdout or "").strip()
