"""Platform registry and host detection."""

from .host import detect_host, is_local_build
from .registry import (
    PLATFORM_TABLE,
    Platform,
    PlatformSpec,
    list_known,
    resolve,
    resolve_all,
)

__all__ = [
    "PLATFORM_TABLE",
    "Platform",
    "PlatformSpec",
    "detect_host",
    "is_local_build",
    "list_known",
    "resolve",
    "resolve_all",
]
