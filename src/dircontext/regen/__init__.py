"""Regeneration: the wave-ordered orchestrator and artifact maintenance."""

from dircontext.regen.maintenance import collect_status, rehash
from dircontext.regen.models import (
    DryRunReport,
    FailureKind,
    PlannedTarget,
    RegenerationReport,
    RegenMode,
    RehashResult,
    StatusEntry,
    StatusReport,
    TargetFailure,
    TargetOutcome,
)
from dircontext.regen.orchestrator import Orchestrator, ScopeError, resolve_scope

__all__ = [
    "DryRunReport",
    "FailureKind",
    "Orchestrator",
    "PlannedTarget",
    "RegenMode",
    "RegenerationReport",
    "RehashResult",
    "ScopeError",
    "StatusEntry",
    "StatusReport",
    "TargetFailure",
    "TargetOutcome",
    "collect_status",
    "rehash",
    "resolve_scope",
]
