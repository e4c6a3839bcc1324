"""Metadata fingerprints and the fresh/stale/missing classifier."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from dircontext.constants import FINGERPRINT_LENGTH, RESERVED_FILENAMES
from dircontext.core.scanner import Target, is_source_file
from dircontext.utils.hashing import short_digest


class FreshnessState(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    MISSING = "missing"


def compute_fingerprint(target: Target | str | os.PathLike[str]) -> str:
    """Return the fingerprint of a directory's direct source-like files.

    Only ``stat`` metadata is consulted (name, mtime in whole milliseconds,
    size). Files that vanish or cannot be stat'ed are left out.
    """

    directory = target.absolute_path if isinstance(target, Target) else Path(target)
    entries: list[str] = []
    with os.scandir(directory) as iterator:
        for entry in iterator:
            if entry.name in RESERVED_FILENAMES or not is_source_file(entry.name):
                continue
            try:
                if not entry.is_file():
                    continue
                info = entry.stat()
            except OSError:
                continue
            entries.append(f"{entry.name}:{info.st_mtime_ns // 1_000_000}:{info.st_size}")

    entries.sort()
    return short_digest("\n".join(entries), length=FINGERPRINT_LENGTH)


def classify(stored: str | None, computed: str) -> FreshnessState:
    """Compare a stored fingerprint against a freshly computed one."""

    if stored is None:
        return FreshnessState.MISSING
    if stored == computed:
        return FreshnessState.FRESH
    return FreshnessState.STALE


def check_freshness(target: Target, stored: str | None) -> tuple[FreshnessState, str]:
    """Compute the fingerprint for ``target`` and classify it against ``stored``."""

    computed = compute_fingerprint(target)
    return classify(stored, computed), computed


__all__ = [
    "FreshnessState",
    "check_freshness",
    "classify",
    "compute_fingerprint",
]
