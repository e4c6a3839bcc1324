"""Incremental-build core: ignore rules, scanning, fingerprints, waves, artifacts."""

from dircontext.core.fingerprint import (
    FreshnessState,
    check_freshness,
    classify,
    compute_fingerprint,
)
from dircontext.core.ignore import IgnoreMatcher, IgnoreRule, PatternKind, add_to_ignore
from dircontext.core.scanner import (
    ScanError,
    Target,
    filter_by_min_tokens,
    find_target,
    flatten_bottom_up,
    relative_id_for,
    scan_project,
)
from dircontext.core.schema import Artifact, ArtifactValidationIssue, validate_artifact
from dircontext.core.store import (
    ArtifactError,
    ArtifactStore,
    ArtifactValidationError,
    UnsupportedVersionError,
)
from dircontext.core.waves import WaveOrderError, compute_heights, partition_waves, validate_waves

__all__ = [
    "Artifact",
    "ArtifactError",
    "ArtifactStore",
    "ArtifactValidationError",
    "ArtifactValidationIssue",
    "FreshnessState",
    "IgnoreMatcher",
    "IgnoreRule",
    "PatternKind",
    "ScanError",
    "Target",
    "UnsupportedVersionError",
    "WaveOrderError",
    "add_to_ignore",
    "check_freshness",
    "classify",
    "compute_fingerprint",
    "compute_heights",
    "filter_by_min_tokens",
    "find_target",
    "flatten_bottom_up",
    "partition_waves",
    "relative_id_for",
    "scan_project",
    "validate_artifact",
    "validate_waves",
]
