"""
dircontext: build-action contract

Purpose
- Define what the orchestrator hands to a build action and what it expects back.

Functional requirements
- A build action receives one Target plus the current artifacts of its direct
  children and returns the artifact content fields as a mapping.
- Reserved fields (``version``, ``fingerprint``, ``last_updated``) in the
  returned mapping are ignored; the orchestrator stamps them.
- Any exception raised is isolated to that Target by the orchestrator.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, TypeAlias, runtime_checkable

from dircontext.core.scanner import Target
from dircontext.core.schema import Artifact

ArtifactContent: TypeAlias = Mapping[str, Any]
BuildFn: TypeAlias = Callable[["BuildRequest"], "ArtifactContent | Awaitable[ArtifactContent]"]


class BuildActionError(RuntimeError):
    """Raised by build actions for expected, reportable failures."""


@dataclass(frozen=True, slots=True)
class BuildRequest:
    """Inputs for one Target's build step."""

    target: Target
    child_artifacts: Mapping[str, Artifact | None] = field(default_factory=dict)

    @property
    def files(self) -> tuple[str, ...]:
        return self.target.direct_files

    @property
    def is_root(self) -> bool:
        return self.target.is_root

    def child_artifact(self, child: Target) -> Artifact | None:
        return self.child_artifacts.get(child.relative_id)

    def file_path(self, filename: str) -> Path:
        if filename not in self.target.direct_files:
            raise BuildActionError(
                f"{filename!r} is not a direct file of {self.target.relative_id!r}"
            )
        return self.target.absolute_path / filename

    def read_file(self, filename: str) -> str:
        """Return a direct file's text; undecodable bytes are replaced."""
        return self.file_path(filename).read_text(encoding="utf-8", errors="replace")


@runtime_checkable
class BuildAction(Protocol):
    """Turns a ``BuildRequest`` into artifact content."""

    async def build(self, request: BuildRequest) -> ArtifactContent: ...


class CallableBuildAction:
    """Adapt a plain function (sync or async) to ``BuildAction``.

    Sync functions run in a worker thread so they do not block the event loop.
    """

    __slots__ = ("_fn",)

    def __init__(self, fn: BuildFn) -> None:
        self._fn = fn

    async def build(self, request: BuildRequest) -> ArtifactContent:
        if inspect.iscoroutinefunction(self._fn):
            return await self._fn(request)
        result = await asyncio.to_thread(self._fn, request)
        if inspect.isawaitable(result):
            return await result
        return result


__all__ = [
    "ArtifactContent",
    "BuildAction",
    "BuildActionError",
    "BuildFn",
    "BuildRequest",
    "CallableBuildAction",
]
