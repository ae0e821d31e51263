"""Error taxonomy for crossbuild.

Run-fatal: UnknownPlatform, InvalidArgument, ManifestNotFound, DependencyUnsatisfied.
Target-fatal (recorded per target, run continues): see PER_TARGET_ERRORS.
UnsupportedHost only disables the local-build shortcut.
"""

from __future__ import annotations

from pathlib import Path


class CrossbuildError(RuntimeError):
    """Base class for every error raised by crossbuild_tooling."""


class UnknownPlatform(CrossbuildError):
    def __init__(self, token: str) -> None:
        super().__init__(f"unknown platform: {token}")
        self.token = token


class UnsupportedHost(CrossbuildError):
    def __init__(self, system: str, machine: str) -> None:
        super().__init__(f"unsupported host: system={system!r} machine={machine!r}")
        self.system = system
        self.machine = machine


class InvalidArgument(CrossbuildError):
    pass


class ManifestNotFound(CrossbuildError):
    def __init__(self, manifest: Path) -> None:
        super().__init__(f"{manifest} not found")
        self.manifest = manifest


class DependencyUnsatisfied(CrossbuildError):
    def __init__(self, failed: list[str]) -> None:
        super().__init__(f"missing or broken dependencies: {', '.join(failed)}")
        self.failed = failed


class TargetInstallFailed(CrossbuildError):
    def __init__(self, what: str, detail: str = "") -> None:
        msg = f"failed to install {what}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.what = what


class BuildInvocationFailed(CrossbuildError):
    def __init__(
        self, token: str, backend: str, exit_code: int | None, *, timed_out: bool = False
    ) -> None:
        if timed_out:
            msg = f"{backend} build for {token} timed out"
        else:
            msg = f"{backend} build for {token} failed (exit code {exit_code})"
        super().__init__(msg)
        self.token = token
        self.backend = backend
        self.exit_code = exit_code
        self.timed_out = timed_out


class ArtifactNotFound(CrossbuildError):
    """Build reported success but the binary is not where it should be."""

    def __init__(self, expected_path: Path) -> None:
        super().__init__(f"build succeeded but artifact not found: {expected_path}")
        self.expected_path = expected_path


class CompressionFailed(CrossbuildError):
    def __init__(self, path: Path, detail: str = "") -> None:
        msg = f"compression failed for {path}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.path = path


PER_TARGET_ERRORS: tuple[type[CrossbuildError], ...] = (
    TargetInstallFailed,
    BuildInvocationFailed,
    ArtifactNotFound,
    CompressionFailed,
)
