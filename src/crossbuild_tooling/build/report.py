"""Per-target results and the aggregate build report (summary printing and JSON export)."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from crossbuild_tooling.helpers import format_size


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TargetResult:
    """Outcome of one token. artifact_path is set iff succeeded."""

    token: str
    succeeded: bool
    artifact_path: Path | None = None
    duration_seconds: float = 0.0
    size_bytes: int | None = None
    checksum: str | None = None
    backend: str | None = None
    error: str | None = None
    error_kind: str | None = None

    def __post_init__(self) -> None:
        if self.succeeded != (self.artifact_path is not None):
            msg = "artifact_path must be set iff the target succeeded"
            raise ValueError(msg)

    @classmethod
    def failure(
        cls,
        token: str,
        error: BaseException | str,
        *,
        duration_seconds: float = 0.0,
        backend: str | None = None,
        error_kind: str | None = None,
    ) -> TargetResult:
        kind = error_kind or (type(error).__name__ if isinstance(error, BaseException) else None)
        return cls(
            token=token,
            succeeded=False,
            duration_seconds=duration_seconds,
            backend=backend,
            error=str(error),
            error_kind=kind,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token,
            "succeeded": self.succeeded,
            "artifact_path": str(self.artifact_path) if self.artifact_path else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "size_bytes": self.size_bytes,
            "sha256": self.checksum,
            "backend": self.backend,
            "error": self.error,
            "error_kind": self.error_kind,
        }


@dataclass
class BuildReport:
    """Aggregate of one run. Results are recorded in requested order and never mutated."""

    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    total_requested: int = 0
    results: list[TargetResult] = field(default_factory=list)

    @property
    def total_succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> list[TargetResult]:
        return [r for r in self.results if not r.succeeded]

    @property
    def ok(self) -> bool:
        return self.total_succeeded == self.total_requested

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or utcnow()
        return (end - self.started_at).total_seconds()

    def record(self, result: TargetResult) -> None:
        self.results.append(result)

    def finalize(self) -> None:
        finished = utcnow()
        self.finished_at = max(finished, self.started_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total_requested": self.total_requested,
            "total_succeeded": self.total_succeeded,
            "results": [r.to_dict() for r in self.results],
        }

    def write_json(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n")

    def print_summary(self) -> None:
        print("")
        print("📊 Build summary")
        print("=" * 60)
        for r in self.results:
            if r.succeeded:
                size = format_size(r.size_bytes or 0)
                print(f"  ✅ {r.token:<14} {r.artifact_path} ({size}, {r.duration_seconds:.1f}s)")
                print(f"     sha256 {r.checksum}")
            else:
                print(
                    f"  ❌ {r.token:<14} {r.error_kind}: {r.error} ({r.duration_seconds:.1f}s)",
                    file=sys.stderr,
                )
        print("=" * 60)
        print(
            f"{self.total_succeeded}/{self.total_requested} targets built "
            f"in {self.duration_seconds:.1f}s"
        )
        if self.failed:
            names = ", ".join(r.token for r in self.failed)
            print(f"❌ Failed targets: {names}", file=sys.stderr)
