"""
dircontext: artifact store

Purpose
- Read, validate and atomically write one ``.context.yaml`` per Target directory.

Functional requirements
- ``write`` validates before touching disk; invalid artifacts are rejected whole.
- ``read`` returns ``None`` for missing, unparsable, or schema-invalid files,
  including versions below the supported minimum.
- ``read`` raises ``UnsupportedVersionError`` for versions newer than supported,
  so forward-incompatible data is never silently discarded.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog
import yaml

from dircontext.constants import CONTEXT_FILENAME, SCHEMA_VERSION
from dircontext.core.scanner import Target
from dircontext.core.schema import (
    Artifact,
    ArtifactValidationIssue,
    stored_version,
    validate_artifact,
)
from dircontext.utils.fs import atomic_write

logger = structlog.get_logger(__name__)

_YAML_WIDTH = 120


class ArtifactError(RuntimeError):
    """Base class for artifact persistence failures."""


class ArtifactValidationError(ArtifactError):
    """Raised when an artifact fails schema validation before a write."""

    def __init__(self, issues: Sequence[ArtifactValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "; ".join(f"{item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid artifact: {rendered}")


class UnsupportedVersionError(ArtifactError):
    """Raised when a stored artifact was written by a newer schema."""

    def __init__(self, path: Path, found: int, supported: int = SCHEMA_VERSION) -> None:
        self.path = path
        self.found = found
        self.supported = supported
        super().__init__(
            f"{path}: schema version {found} is newer than supported {supported}; "
            "upgrade dircontext to read this file"
        )


class ArtifactStore:
    """Filesystem-backed artifact persistence keyed by Target directory."""

    def __init__(self, filename: str = CONTEXT_FILENAME) -> None:
        if not filename or Path(filename).name != filename:
            raise ValueError("artifact filename must be a bare file name")
        self._filename = filename

    @property
    def filename(self) -> str:
        return self._filename

    def path_for(self, target: Target | str | os.PathLike[str]) -> Path:
        directory = target.absolute_path if isinstance(target, Target) else Path(target)
        return directory / self._filename

    def exists(self, target: Target | str | os.PathLike[str]) -> bool:
        return self.path_for(target).is_file()

    def load_payload(self, target: Target | str | os.PathLike[str]) -> Any:
        """Return the raw parsed YAML.

        Raises ``FileNotFoundError`` when absent, ``OSError`` when unreadable,
        and ``yaml.YAMLError`` when unparsable.
        """
        path = self.path_for(target)
        text = path.read_text(encoding="utf-8")
        return yaml.safe_load(text)

    def read(self, target: Target | str | os.PathLike[str]) -> Artifact | None:
        path = self.path_for(target)
        try:
            payload = self.load_payload(target)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            logger.warning("artifact_unreadable", path=str(path), error=str(exc))
            return None

        version = stored_version(payload)
        if version is not None and version > SCHEMA_VERSION:
            raise UnsupportedVersionError(path, version)

        result = validate_artifact(payload)
        if result.artifact is None:
            logger.info(
                "artifact_invalid",
                path=str(path),
                issues=[f"{issue.path}: {issue.message}" for issue in result.issues],
            )
            return None
        return result.artifact

    def inspect(
        self, target: Target | str | os.PathLike[str]
    ) -> tuple[ArtifactValidationIssue, ...] | None:
        """Return schema issues for the stored file, or ``None`` when it does not exist."""
        try:
            payload = self.load_payload(target)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            return (ArtifactValidationIssue(path="<file>", message=str(exc)),)
        return validate_artifact(payload).issues

    def write(self, target: Target | str | os.PathLike[str], artifact: Artifact) -> Path:
        text = self.dumps(artifact)
        path = self.path_for(target)
        atomic_write(path, text)
        return path

    def dumps(self, artifact: Artifact) -> str:
        """Validate ``artifact`` and render it as YAML.

        Raises ``ArtifactValidationError`` for schema issues and for values YAML
        cannot represent.
        """
        payload = artifact.to_payload()
        result = validate_artifact(payload)
        if not result.is_valid:
            raise ArtifactValidationError(result.issues)
        try:
            return yaml.safe_dump(
                payload,
                sort_keys=False,
                allow_unicode=True,
                width=_YAML_WIDTH,
                default_flow_style=False,
            )
        except yaml.YAMLError as exc:
            # Unknown keys pass the schema untyped; their values may not be representable.
            raise ArtifactValidationError(
                [ArtifactValidationIssue(path="<payload>", message=f"not serializable: {exc}")]
            ) from exc


__all__ = [
    "ArtifactError",
    "ArtifactStore",
    "ArtifactValidationError",
    "UnsupportedVersionError",
]
