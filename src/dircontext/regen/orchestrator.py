"""
dircontext: regeneration orchestrator

Purpose
- Rebuild the artifacts of a Target tree leaves first, in parallel within a
  wave and with a hard barrier between waves.

Functional requirements
- A scope names one Target; it and its descendants are processed, never its
  ancestors. An unknown scope raises ``ScopeError``.
- At most ``concurrency`` build steps run at once.
- Each parent's build sees the current artifact of every direct child: the one
  written in this run, else the stored one, else ``None``.
- A failing Target is reported and leaves its stored artifact untouched; the
  rest of its wave and all later waves still run.
- The optional index hook runs once, after the last wave, on the orchestrator.
  A failing index hook is raised to the caller; artifacts already written stay.
- A dry run never raises for one Target: a directory that cannot be
  fingerprinted is planned as ``unreadable`` and would be rebuilt.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from dircontext.constants import ROOT_TARGET_ID
from dircontext.core.fingerprint import FreshnessState, check_freshness, compute_fingerprint
from dircontext.core.scanner import Target, find_target
from dircontext.core.schema import Artifact
from dircontext.core.store import ArtifactStore, ArtifactValidationError, UnsupportedVersionError
from dircontext.core.waves import BuildWave, partition_waves
from dircontext.generator.base import BuildAction, BuildRequest
from dircontext.observability.logging import correlation_scope, get_correlation_context
from dircontext.regen.models import (
    DryRunReport,
    FailureKind,
    PlannedTarget,
    RegenerationReport,
    RegenMode,
    TargetFailure,
    TargetOutcome,
)
from dircontext.utils.concurrency import WorkerPool

ArtifactMap = Mapping[str, Artifact | None]
IndexWriter = Callable[[Target, ArtifactMap], "Awaitable[None] | None"]

_UNSUPPORTED_STATE = "unsupported_version"
_UNREADABLE_STATE = "unreadable"


class ScopeError(ValueError):
    """Raised when a requested scope does not name a Target in the tree."""


@dataclass(frozen=True, slots=True)
class _StepResult:
    target_id: str
    artifact: Artifact | None
    outcome: TargetOutcome | None = None
    skipped: bool = False
    failure: TargetFailure | None = None


class Orchestrator:
    """Drive a build action over a Target tree through an ``ArtifactStore``."""

    def __init__(
        self,
        store: ArtifactStore,
        build_action: BuildAction,
        *,
        concurrency: int = 1,
        logger: Any | None = None,
        index_writer: IndexWriter | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._store = store
        self._build_action = build_action
        self._concurrency = concurrency
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._index_writer = index_writer

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def regenerate(
        self,
        root: Target,
        *,
        scope: str | None = None,
        mode: RegenMode = RegenMode.ALL,
    ) -> RegenerationReport:
        scope_target = resolve_scope(root, scope)
        waves = partition_waves(scope_target)
        pool: WorkerPool[Target, _StepResult] = WorkerPool(self._concurrency)
        artifacts: dict[str, Artifact | None] = {}
        updated: list[TargetOutcome] = []
        skipped: list[str] = []
        failed: list[TargetFailure] = []
        run_id = get_correlation_context().get("run_id") or uuid.uuid4().hex[:12]

        with correlation_scope(run_id=run_id):
            self._logger.info(
                "regen_started",
                scope=scope_target.relative_id,
                mode=mode.value,
                waves=len(waves),
                targets=sum(len(wave) for wave in waves),
                concurrency=self._concurrency,
            )

            for index, wave in enumerate(waves):
                results = await self._run_wave(pool, wave, index, artifacts, mode)
                for result in results:
                    artifacts[result.target_id] = result.artifact
                    if result.outcome is not None:
                        updated.append(result.outcome)
                    elif result.skipped:
                        skipped.append(result.target_id)
                    elif result.failure is not None:
                        failed.append(result.failure)

            if self._index_writer is not None:
                written = self._index_writer(scope_target, dict(artifacts))
                if inspect.isawaitable(written):
                    await written

            report = RegenerationReport(
                mode=mode,
                scope=scope_target.relative_id,
                updated=tuple(updated),
                skipped_fresh=tuple(skipped),
                failed=tuple(failed),
                wave_count=len(waves),
                peak_concurrency=pool.semaphore.peak,
            )
            self._logger.info("regen_finished", ok=report.ok, **report.counts())
        return report

    def regenerate_sync(
        self,
        root: Target,
        *,
        scope: str | None = None,
        mode: RegenMode = RegenMode.ALL,
    ) -> RegenerationReport:
        return asyncio.run(self.regenerate(root, scope=scope, mode=mode))

    async def plan(
        self,
        root: Target,
        *,
        scope: str | None = None,
        mode: RegenMode = RegenMode.ALL,
    ) -> DryRunReport:
        """Classify every Target in scope without building or writing anything."""
        scope_target = resolve_scope(root, scope)
        entries: list[PlannedTarget] = []
        for index, wave in enumerate(partition_waves(scope_target)):
            for target in wave:
                state = await asyncio.to_thread(self._classify_for_plan, target)
                if state == _UNREADABLE_STATE:
                    would_rebuild = True
                elif state == _UNSUPPORTED_STATE:
                    would_rebuild = mode is RegenMode.FORCE
                elif mode is RegenMode.STALE_ONLY:
                    would_rebuild = state != FreshnessState.FRESH.value
                else:
                    would_rebuild = True
                entries.append(
                    PlannedTarget(
                        target_id=target.relative_id,
                        wave=index,
                        state=state,
                        would_rebuild=would_rebuild,
                    )
                )
        return DryRunReport(mode=mode, scope=scope_target.relative_id, entries=tuple(entries))

    def _classify_for_plan(self, target: Target) -> str:
        try:
            stored = self._store.read(target)
        except UnsupportedVersionError:
            return _UNSUPPORTED_STATE
        try:
            state, _ = check_freshness(target, stored.fingerprint if stored else None)
        except OSError as exc:
            self._logger.warning(
                "regen_plan_unreadable", target_id=target.relative_id, error=str(exc)
            )
            return _UNREADABLE_STATE
        return state.value

    async def _run_wave(
        self,
        pool: WorkerPool[Target, _StepResult],
        wave: BuildWave,
        index: int,
        artifacts: Mapping[str, Artifact | None],
        mode: RegenMode,
    ) -> list[_StepResult]:
        async def step(target: Target) -> _StepResult:
            with correlation_scope(target_id=target.relative_id, wave=str(index)):
                return await self._build_target(target, artifacts, mode)

        self._logger.debug("regen_wave_started", wave_index=index, size=len(wave))
        return await pool.map(wave, step)

    async def _build_target(
        self,
        target: Target,
        artifacts: Mapping[str, Artifact | None],
        mode: RegenMode,
    ) -> _StepResult:
        target_id = target.relative_id

        try:
            stored = await asyncio.to_thread(self._store.read, target)
        except UnsupportedVersionError as exc:
            if mode is not RegenMode.FORCE:
                return self._failed(target_id, None, FailureKind.UNSUPPORTED_VERSION, str(exc))
            self._logger.warning("regen_overwriting_unsupported", target_id=target_id)
            stored = None

        try:
            state, _ = await asyncio.to_thread(
                check_freshness, target, stored.fingerprint if stored else None
            )
        except OSError as exc:
            return self._failed(target_id, stored, FailureKind.BUILD, f"fingerprint failed: {exc}")

        if mode is RegenMode.STALE_ONLY and state is FreshnessState.FRESH:
            self._logger.debug("regen_target_fresh", target_id=target_id)
            return _StepResult(target_id=target_id, artifact=stored, skipped=True)

        request = BuildRequest(
            target=target,
            child_artifacts={
                child.relative_id: artifacts.get(child.relative_id) for child in target.children
            },
        )
        try:
            content = await self._build_action.build(request)
        except Exception as exc:
            return self._failed(target_id, stored, FailureKind.BUILD, _describe(exc))
        if not isinstance(content, Mapping):
            return self._failed(
                target_id,
                stored,
                FailureKind.VALIDATION,
                f"build action returned {type(content).__name__}, expected a mapping",
            )

        try:
            fingerprint = await asyncio.to_thread(compute_fingerprint, target)
            artifact = Artifact.from_content(content, fingerprint=fingerprint)
            path = await asyncio.to_thread(self._store.write, target, artifact)
        except ArtifactValidationError as exc:
            return self._failed(target_id, stored, FailureKind.VALIDATION, str(exc))
        except OSError as exc:
            return self._failed(target_id, stored, FailureKind.PERSIST, _describe(exc))

        self._logger.info(
            "regen_target_updated",
            target_id=target_id,
            previous_state=state.value,
            fingerprint=fingerprint,
        )
        return _StepResult(
            target_id=target_id,
            artifact=artifact,
            outcome=TargetOutcome(
                target_id=target_id,
                previous_state=state,
                fingerprint=fingerprint,
                path=path,
            ),
        )

    def _failed(
        self,
        target_id: str,
        previous: Artifact | None,
        kind: FailureKind,
        message: str,
    ) -> _StepResult:
        self._logger.warning(
            "regen_target_failed", target_id=target_id, kind=kind.value, error=message
        )
        return _StepResult(
            target_id=target_id,
            artifact=previous,
            failure=TargetFailure(target_id=target_id, message=message, kind=kind),
        )


def resolve_scope(root: Target, scope: str | None) -> Target:
    """Return the Target named by ``scope``; ``None`` and ``"."`` mean the whole tree."""
    if scope is None or scope.strip() in {"", ROOT_TARGET_ID, "./"}:
        return root
    found = find_target(root, scope)
    if found is None:
        raise ScopeError(f"no build target named {scope!r} under {root.absolute_path}")
    return found


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


__all__ = [
    "ArtifactMap",
    "IndexWriter",
    "Orchestrator",
    "ScopeError",
    "resolve_scope",
]
