"""Operations over stored artifacts that never invoke a build action."""

from __future__ import annotations

import structlog

from dircontext.core.fingerprint import FreshnessState, classify, compute_fingerprint
from dircontext.core.scanner import Target, flatten_bottom_up
from dircontext.core.store import ArtifactStore, UnsupportedVersionError
from dircontext.regen.models import RehashResult, StatusEntry, StatusReport

logger = structlog.get_logger(__name__)


def rehash(root: Target, store: ArtifactStore) -> RehashResult:
    """Rewrite only the fingerprint of every readable stored artifact.

    ``stale`` counts artifacts whose fingerprint actually changed. Artifacts
    written by a newer schema are left alone and listed in ``skipped``; directories
    that can no longer be listed are left alone and listed in ``unreadable``.
    """

    updated = 0
    stale = 0
    skipped: list[str] = []
    unreadable: list[str] = []
    for target in flatten_bottom_up(root):
        try:
            artifact = store.read(target)
        except UnsupportedVersionError as exc:
            logger.warning(
                "rehash_skipped_unsupported", target_id=target.relative_id, error=str(exc)
            )
            skipped.append(target.relative_id)
            continue
        if artifact is None:
            continue

        try:
            fingerprint = compute_fingerprint(target)
        except OSError as exc:
            logger.warning("rehash_unreadable", target_id=target.relative_id, error=str(exc))
            unreadable.append(target.relative_id)
            continue
        if artifact.fingerprint != fingerprint:
            stale += 1
        store.write(target, artifact.with_fingerprint(fingerprint))
        updated += 1

    logger.info(
        "rehash_finished",
        updated=updated,
        stale=stale,
        skipped=len(skipped),
        unreadable=len(unreadable),
    )
    return RehashResult(
        updated=updated, stale=stale, skipped=tuple(skipped), unreadable=tuple(unreadable)
    )


def collect_status(root: Target, store: ArtifactStore) -> StatusReport:
    """Classify every Target; entries are sorted by id.

    A tracked directory that can no longer be listed is reported ``stale`` with a
    warning, since its stored fingerprint cannot be confirmed.
    """

    entries: list[StatusEntry] = []
    warnings: list[str] = []
    for target in flatten_bottom_up(root):
        try:
            artifact = store.read(target)
        except UnsupportedVersionError as exc:
            warnings.append(f"{_label(target)}: {exc}")
            artifact = None

        if artifact is None:
            entries.append(StatusEntry(target_id=target.relative_id, state=FreshnessState.MISSING))
            continue

        try:
            state = classify(artifact.fingerprint, compute_fingerprint(target))
        except OSError as exc:
            warnings.append(f"{_label(target)}: cannot fingerprint: {exc}")
            state = FreshnessState.STALE
        entries.append(
            StatusEntry(
                target_id=target.relative_id,
                state=state,
                fingerprint=artifact.fingerprint,
                summary=artifact.summary,
            )
        )

    entries.sort(key=lambda entry: entry.target_id)
    return StatusReport(root=root.absolute_path, entries=tuple(entries), warnings=tuple(warnings))


def _label(target: Target) -> str:
    return "(root)" if target.is_root else target.relative_id


__all__ = ["collect_status", "rehash"]
