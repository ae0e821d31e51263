"""Platform registry: canonical os-arch tokens -> toolchain target triples and artifact labels.

PLATFORM_TABLE is the single source of truth; Platform is the closed set of its keys.
The zig triple may carry a glibc version suffix (.2.17); cargo still writes artifacts
under target/<host_triple>/, so artifact paths always use host_triple.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from crossbuild_tooling.errors import UnknownPlatform

OPERATING_SYSTEMS = ("linux", "darwin", "windows")
ARCHITECTURES = ("amd64", "arm64", "armv7")


@dataclass(frozen=True)
class PlatformSpec:
    """Registry entry for one token."""

    token: str
    host_triple: str
    zig_triple: str | None
    arch_label: str

    @property
    def os(self) -> str:
        return self.token.split("-", 1)[0]

    @property
    def arch(self) -> str:
        return self.token.split("-", 1)[1]

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self.os == "windows" else ""


# Order here is the order used by --all and --list.
PLATFORM_TABLE: tuple[PlatformSpec, ...] = (
    PlatformSpec(
        "linux-amd64", "x86_64-unknown-linux-gnu", "x86_64-unknown-linux-gnu.2.17", "x86_64"
    ),
    PlatformSpec(
        "linux-arm64", "aarch64-unknown-linux-gnu", "aarch64-unknown-linux-gnu.2.17", "aarch64"
    ),
    PlatformSpec(
        "linux-armv7",
        "armv7-unknown-linux-gnueabihf",
        "armv7-unknown-linux-gnueabihf.2.17",
        "armv7",
    ),
    PlatformSpec("darwin-amd64", "x86_64-apple-darwin", "x86_64-apple-darwin", "x86_64"),
    PlatformSpec("darwin-arm64", "aarch64-apple-darwin", "aarch64-apple-darwin", "aarch64"),
    PlatformSpec("windows-amd64", "x86_64-pc-windows-gnu", None, "x86_64"),
    PlatformSpec("windows-arm64", "aarch64-pc-windows-msvc", None, "aarch64"),
)

Platform = Enum(  # type: ignore[misc]
    "Platform",
    [(spec.token.replace("-", "_").upper(), spec.token) for spec in PLATFORM_TABLE],
    type=str,
)

_BY_TOKEN: dict[str, PlatformSpec] = {spec.token: spec for spec in PLATFORM_TABLE}


def resolve(token: str | Platform) -> PlatformSpec:
    """Return the PlatformSpec for token. Raises UnknownPlatform if it is not registered."""
    key = token.value if isinstance(token, Platform) else str(token).strip()
    spec = _BY_TOKEN.get(key)
    if spec is None:
        raise UnknownPlatform(key)
    return spec


def list_known() -> list[str]:
    """All registered tokens in registry order."""
    return [spec.token for spec in PLATFORM_TABLE]


def resolve_all(tokens: list[str]) -> list[PlatformSpec]:
    """Resolve every token up front; the first unknown one raises UnknownPlatform."""
    return [resolve(t) for t in tokens]
