"""Value objects returned by regeneration, dry runs, rehash and status."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from dircontext.core.fingerprint import FreshnessState


class RegenMode(str, Enum):
    """Which Targets a run rebuilds.

    ``ALL`` rebuilds every Target in scope, ``STALE_ONLY`` skips FRESH ones,
    ``FORCE`` rebuilds everything and also overwrites artifacts written by a
    newer schema version.
    """

    ALL = "all"
    STALE_ONLY = "stale_only"
    FORCE = "force"


class FailureKind(str, Enum):
    BUILD = "build"
    PERSIST = "persist"
    VALIDATION = "validation"
    UNSUPPORTED_VERSION = "unsupported_version"


@dataclass(frozen=True, slots=True)
class TargetFailure:
    target_id: str
    message: str
    kind: FailureKind

    def to_dict(self) -> dict[str, str]:
        return {"target_id": self.target_id, "kind": self.kind.value, "message": self.message}


@dataclass(frozen=True, slots=True)
class TargetOutcome:
    """A Target whose artifact was written during the run."""

    target_id: str
    previous_state: FreshnessState
    fingerprint: str
    path: Path

    def to_dict(self) -> dict[str, str]:
        return {
            "target_id": self.target_id,
            "previous_state": self.previous_state.value,
            "fingerprint": self.fingerprint,
            "path": str(self.path),
        }


@dataclass(frozen=True, slots=True)
class RegenerationReport:
    mode: RegenMode
    scope: str
    updated: tuple[TargetOutcome, ...] = ()
    skipped_fresh: tuple[str, ...] = ()
    failed: tuple[TargetFailure, ...] = ()
    wave_count: int = 0
    peak_concurrency: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def updated_ids(self) -> tuple[str, ...]:
        return tuple(item.target_id for item in self.updated)

    @property
    def failed_ids(self) -> tuple[str, ...]:
        return tuple(item.target_id for item in self.failed)

    @property
    def total(self) -> int:
        return len(self.updated) + len(self.skipped_fresh) + len(self.failed)

    def counts(self) -> dict[str, int]:
        return {
            "total": self.total,
            "updated": len(self.updated),
            "skipped_fresh": len(self.skipped_fresh),
            "failed": len(self.failed),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "mode": self.mode.value,
            "scope": self.scope,
            "waves": self.wave_count,
            "peak_concurrency": self.peak_concurrency,
            "counts": self.counts(),
            "updated": [item.to_dict() for item in self.updated],
            "skipped_fresh": list(self.skipped_fresh),
            "failed": [item.to_dict() for item in self.failed],
        }


@dataclass(frozen=True, slots=True)
class PlannedTarget:
    target_id: str
    wave: int
    state: str
    would_rebuild: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_id": self.target_id,
            "wave": self.wave,
            "state": self.state,
            "would_rebuild": self.would_rebuild,
        }


@dataclass(frozen=True, slots=True)
class DryRunReport:
    mode: RegenMode
    scope: str
    entries: tuple[PlannedTarget, ...] = ()

    @property
    def wave_count(self) -> int:
        return 1 + max((entry.wave for entry in self.entries), default=-1)

    @property
    def rebuild_ids(self) -> tuple[str, ...]:
        return tuple(entry.target_id for entry in self.entries if entry.would_rebuild)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "scope": self.scope,
            "waves": self.wave_count,
            "would_rebuild": len(self.rebuild_ids),
            "targets": [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True, slots=True)
class RehashResult:
    updated: int
    stale: int
    skipped: tuple[str, ...] = ()
    unreadable: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated": self.updated,
            "stale": self.stale,
            "skipped": list(self.skipped),
            "unreadable": list(self.unreadable),
        }


@dataclass(frozen=True, slots=True)
class StatusEntry:
    target_id: str
    state: FreshnessState
    fingerprint: str | None = None
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.target_id,
            "state": self.state.value,
            "fingerprint": self.fingerprint,
            "summary": self.summary,
        }


@dataclass(frozen=True, slots=True)
class StatusReport:
    root: Path
    entries: tuple[StatusEntry, ...] = ()
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def count(self, state: FreshnessState) -> int:
        return sum(1 for entry in self.entries if entry.state is state)

    @property
    def tracked(self) -> int:
        return len(self.entries) - self.count(FreshnessState.MISSING)

    @property
    def healthy(self) -> bool:
        return all(entry.state is FreshnessState.FRESH for entry in self.entries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "directories": [entry.to_dict() for entry in self.entries],
            "summary": {
                "total": len(self.entries),
                "tracked": self.tracked,
                "fresh": self.count(FreshnessState.FRESH),
                "stale": self.count(FreshnessState.STALE),
                "missing": self.count(FreshnessState.MISSING),
            },
            "warnings": list(self.warnings),
        }


__all__ = [
    "DryRunReport",
    "FailureKind",
    "PlannedTarget",
    "RegenMode",
    "RegenerationReport",
    "RehashResult",
    "StatusEntry",
    "StatusReport",
    "TargetFailure",
    "TargetOutcome",
]
