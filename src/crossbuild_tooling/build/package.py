"""Copy a built binary to the output dir under its canonical name, optionally gzip it, checksum it.

Canonical name: <project_name>.<os>.<arch_label>[.gz] (no .exe, even for windows).
gzip runs with -n so the same input always yields the same compressed bytes.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

from crossbuild_tooling.build.report import TargetResult
from crossbuild_tooling.config import BuildConfig
from crossbuild_tooling.errors import CompressionFailed
from crossbuild_tooling.helpers import format_size, sha256_file
from crossbuild_tooling.platforms.registry import PlatformSpec

log = logging.getLogger(__name__)

COMPRESSED_SUFFIX = ".gz"
GZIP_CMD = ("gzip", "-9", "-n", "-c")


def artifact_name(config: BuildConfig, spec: PlatformSpec) -> str:
    return f"{config.project_name}.{spec.os}.{spec.arch_label}"


def compress_in_place(path: Path, timeout: float | None = None) -> Path:
    """gzip path into path.gz and remove path. On failure path is left untouched and no .gz remains."""
    final = path.with_name(path.name + COMPRESSED_SUFFIX)
    tmp = path.with_name(final.name + ".tmp")
    cmd = [*GZIP_CMD, str(path)]
    try:
        with tmp.open("wb") as out:
            r = subprocess.run(cmd, stdout=out, timeout=timeout, check=False)
    except (OSError, subprocess.TimeoutExpired) as e:
        tmp.unlink(missing_ok=True)
        raise CompressionFailed(path, str(e)) from e
    if r.returncode != 0:
        tmp.unlink(missing_ok=True)
        raise CompressionFailed(path, f"gzip exited {r.returncode}")
    os.replace(tmp, final)
    final.chmod(0o755)
    path.unlink()
    return final


def package(
    artifact_path: Path,
    token: str,
    spec: PlatformSpec,
    config: BuildConfig,
    *,
    backend: str | None = None,
) -> TargetResult:
    """Copy, chmod, optionally compress, and measure one artifact. duration_seconds is filled by the caller."""
    config.output_dir.mkdir(parents=True, exist_ok=True)
    dst = config.output_dir / artifact_name(config, spec)
    shutil.copy2(artifact_path, dst)
    dst.chmod(0o755)
    log.debug("Copied %s -> %s", artifact_path, dst)

    if config.compress:
        dst = compress_in_place(dst, config.timeout)

    size = dst.stat().st_size
    checksum = sha256_file(dst)
    print(f"📦 {token}: {dst} ({format_size(size)})")
    return TargetResult(
        token=token,
        succeeded=True,
        artifact_path=dst,
        size_bytes=size,
        checksum=checksum,
        backend=backend,
    )
