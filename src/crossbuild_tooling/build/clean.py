"""Remove the cargo build output and ask cargo to clean up after itself."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from crossbuild_tooling.build.process import Invocation, run_invocation
from crossbuild_tooling.config import MANIFEST_NAME, TARGET_DIR_NAME

log = logging.getLogger(__name__)


def clean(source_dir: Path, timeout: float | None = None) -> int:
    """rm -rf <source_dir>/target, then best-effort 'cargo clean'. Returns 0."""
    target = source_dir / TARGET_DIR_NAME
    if target.exists():
        print(f"🧹 Removing {target}")
        shutil.rmtree(target)
    else:
        log.debug("%s does not exist", target)

    if (source_dir / MANIFEST_NAME).is_file() and shutil.which("cargo"):
        try:
            r = run_invocation(
                Invocation(("cargo", "clean"), source_dir, timeout=timeout), capture=True
            )
            if r.returncode != 0:
                log.warning("cargo clean exited %s: %s", r.returncode, (r.stderr or "").strip())
        except (OSError, subprocess.TimeoutExpired) as e:
            log.warning("cargo clean failed: %s", e)
    print("✅ Clean complete")
    return 0
