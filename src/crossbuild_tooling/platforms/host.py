"""Detect the host platform and normalise it into registry tokens."""

from __future__ import annotations

import logging
import platform

from crossbuild_tooling.errors import UnknownPlatform, UnsupportedHost
from crossbuild_tooling.platforms.registry import resolve

log = logging.getLogger(__name__)

SYSTEM_ALIASES: dict[str, str] = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "windows",
}

MACHINE_ALIASES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8l": "arm64",
    "armv7l": "armv7",
    "armv7": "armv7",
    "armv7hl": "armv7",
}


def detect_host() -> str:
    """Return the host as an os-arch token. Raises UnsupportedHost if either axis is unknown."""
    system = platform.system()
    machine = platform.machine()
    os_name = SYSTEM_ALIASES.get(system.lower())
    arch = MACHINE_ALIASES.get(machine.lower())
    if os_name is None or arch is None:
        raise UnsupportedHost(system, machine)
    return f"{os_name}-{arch}"


def is_local_build(token: str) -> bool:
    """True iff the host is detectable, registered, and equal to token."""
    try:
        host = detect_host()
    except UnsupportedHost as e:
        log.debug("Local-build shortcut disabled: %s", e)
        return False
    try:
        resolve(host)
    except UnknownPlatform:
        log.debug("Host %s is not a registered platform", host)
        return False
    return host == token
