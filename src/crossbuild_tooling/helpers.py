"""Shared helpers for crossbuild_tooling (version, manifest, digest, text).

Used by config, build.deps, build.package, and the CLI.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

# --- Version ---

_VERSION_IN_TEXT = re.compile(r"(\d+\.\d+\.\d+(?:-[\w.-]+)?(?:\+[\w.-]+)?)")


def extract_version(text: str) -> str | None:
    """First X.Y.Z[-pre][+build] found in tool output (e.g. 'cargo-zigbuild 0.19.1'), else None."""
    m = _VERSION_IN_TEXT.search(text or "")
    return m.group(1) if m else None


def compare_versions(v1: str, v2: str) -> int:
    """Compare two version strings (semver). Returns positive if v1 > v2, negative if v1 < v2, zero if equal. Raises ValueError on invalid format.

    Build metadata (+...) is ignored, so zig dev builds like 0.14.0-dev.2+abc compare as prereleases.
    """
    v1 = v1.strip().lstrip("v").split("+", 1)[0]
    v2 = v2.strip().lstrip("v").split("+", 1)[0]

    def parse_version(v: str) -> tuple[int, int, int, str | None]:
        m = re.match(r"^(\d+)\.(\d+)\.(\d+)(?:-([\w.-]+))?$", v)
        if not m:
            msg = "Invalid version format: " + str(v)
            raise ValueError(msg)
        return (int(m.group(1)), int(m.group(2)), int(m.group(3)), m.group(4))

    major1, minor1, patch1, prerelease1 = parse_version(v1)
    major2, minor2, patch2, prerelease2 = parse_version(v2)

    if major1 != major2:
        return major1 - major2
    if minor1 != minor2:
        return minor1 - minor2
    if patch1 != patch2:
        return patch1 - patch2

    if prerelease1 is None and prerelease2 is not None:
        return 1
    if prerelease1 is not None and prerelease2 is None:
        return -1
    if prerelease1 is None and prerelease2 is None:
        return 0

    if prerelease1 < prerelease2:
        return -1
    if prerelease1 > prerelease2:
        return 1
    return 0


# --- Manifest ---


def read_package_name(cargo_toml: Path) -> str | None:
    """Read name from the [package] section of Cargo.toml. Returns None for workspaces or when absent."""
    if not cargo_toml.is_file():
        return None
    in_sec = False
    for line in cargo_toml.read_text().splitlines():
        s = line.strip()
        if s.startswith("["):
            in_sec = s.strip("[]").strip() == "package"
            continue
        if in_sec:
            m = re.match(r'^\s*name\s*=\s*"([^"]+)"', line)
            if m:
                return m.group(1)
    return None


# --- Digest / size ---


def sha256_file(path: Path, chunk_size: int = 1 << 20) -> str:
    """Hex sha256 of a file, read in chunks."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def format_size(size_bytes: int) -> str:
    """Human-readable size: 512 B, 1.5 KiB, 12.3 MiB."""
    size = float(size_bytes)
    for unit in ("B", "KiB", "MiB"):
        if size < 1024 or unit == "MiB":
            return f"{int(size)} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} MiB"


# --- Text ---


def split_features(value: str | list[str] | None) -> frozenset[str]:
    """Parse a cargo feature list given as 'a,b c' or a list of such strings."""
    if value is None:
        return frozenset()
    items = [value] if isinstance(value, str) else list(value)
    out: set[str] = set()
    for item in items:
        out.update(f for f in re.split(r"[,\s]+", str(item)) if f)
    return frozenset(out)
