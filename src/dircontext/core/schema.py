"""
dircontext: artifact schema and validation

Purpose
- Define the ``.context.yaml`` payload shape and validate it with structured
  issues (field path + message).

Functional requirements
- ``version``, ``last_updated``, ``fingerprint``, ``scope``, ``summary`` and
  ``maintenance`` are required.
- Known optional fields are shape-checked; unknown fields are preserved.
- Versions outside ``MIN_SCHEMA_VERSION..SCHEMA_VERSION`` are reported as issues.
  Callers that need to tell "too new" apart check ``version`` first.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Any, Final

from dircontext.constants import MIN_SCHEMA_VERSION, SCHEMA_VERSION

RESERVED_FIELDS: Final[tuple[str, ...]] = ("version", "last_updated", "fingerprint")
REQUIRED_TEXT_FIELDS: Final[tuple[str, ...]] = ("scope", "summary", "maintenance")

STRING_LIST_FIELDS: Final[tuple[str, ...]] = (
    "constraints",
    "environment",
    "testing",
    "todos",
    "data_models",
    "events",
    "config",
    "exports",
    "derived_fields",
)

# field -> (required keys, optional keys) for lists of records
RECORD_LIST_FIELDS: Final[dict[str, tuple[tuple[str, ...], tuple[str, ...]]]] = {
    "files": (("name", "purpose"), ("test_file",)),
    "interfaces": (("name", "description"), ()),
    "decisions": (("what", "why"), ("tradeoff",)),
    "subdirectories": (("name", "summary"), ()),
    "structure": (("path", "summary"), ()),
}

# field -> optional keys holding lists of strings
GROUPED_LIST_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "dependencies": ("internal", "external"),
    "current_state": ("working", "broken", "in_progress"),
}

PROJECT_REQUIRED: Final[tuple[str, ...]] = ("name", "description", "language")
PROJECT_OPTIONAL: Final[tuple[str, ...]] = ("framework", "package_manager")

TEST_STATUSES: Final[tuple[str, ...]] = ("passing", "failing", "unknown")
TYPECHECK_STATES: Final[tuple[str, ...]] = ("clean", "errors", "unknown")

DEFAULT_MAINTENANCE: Final[str] = (
    "If you modify files in this directory, update this .context.yaml to reflect\n"
    "your changes. Update the summary, and any decisions or constraints that changed.\n"
    "Do NOT update the fingerprint manually; run `dircontext rehash` or regenerate.\n"
    "If you only read files in this directory, do not modify this file.\n"
    "Do not include secrets, API keys, passwords, or PII in this file."
)

FULL_MAINTENANCE: Final[str] = (
    "If you modify files in this directory, update this .context.yaml to reflect\n"
    "your changes. Update the files list, interfaces, and current_state sections.\n"
    "Do NOT update the fingerprint manually; run `dircontext rehash` or regenerate.\n"
    "If you only read files in this directory, do not modify this file.\n"
    "Do not include secrets, API keys, passwords, or PII in this file."
)


@dataclass(frozen=True, slots=True)
class Artifact:
    """Persisted result of a successful build for one Target."""

    version: int
    fingerprint: str
    last_updated: str
    content: dict[str, Any] = field(default_factory=dict)

    @property
    def summary(self) -> str | None:
        value = self.content.get("summary")
        return value if isinstance(value, str) else None

    @property
    def scope(self) -> str | None:
        value = self.content.get("scope")
        return value if isinstance(value, str) else None

    def with_fingerprint(self, fingerprint: str) -> Artifact:
        return replace(self, fingerprint=fingerprint)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "version": self.version,
            "last_updated": self.last_updated,
            "fingerprint": self.fingerprint,
        }
        for key, value in self.content.items():
            if key not in RESERVED_FIELDS:
                payload[key] = value
        return payload

    @classmethod
    def from_content(
        cls,
        content: Mapping[str, Any],
        *,
        fingerprint: str,
        last_updated: str | None = None,
    ) -> Artifact:
        """Stamp build-action output with the current version, fingerprint and time."""
        body = {key: value for key, value in content.items() if key not in RESERVED_FIELDS}
        return cls(
            version=SCHEMA_VERSION,
            fingerprint=fingerprint,
            last_updated=last_updated if last_updated is not None else utc_timestamp(),
            content=body,
        )


@dataclass(frozen=True, slots=True)
class ArtifactValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ArtifactValidationResult:
    artifact: Artifact | None
    issues: tuple[ArtifactValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.artifact is not None and not self.issues


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ArtifactValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ArtifactValidationIssue(path=path, message=message))

    def items(self) -> tuple[ArtifactValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def utc_timestamp(moment: datetime | None = None) -> str:
    """Return an ISO 8601 UTC timestamp with millisecond precision and ``Z`` suffix."""

    value = moment if moment is not None else datetime.now(UTC)
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def stored_version(payload: object) -> int | None:
    """Return the integer ``version`` of a raw payload, if it has one."""

    if not isinstance(payload, Mapping):
        return None
    raw = payload.get("version")
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    return raw


def validate_artifact(payload: object) -> ArtifactValidationResult:
    """Validate a raw payload and build an ``Artifact`` when it is well formed."""

    issues = _IssueCollector()
    if not isinstance(payload, Mapping):
        issues.add("<root>", f"expected mapping, got {type(payload).__name__}")
        return ArtifactValidationResult(artifact=None, issues=issues.items())

    root: dict[str, Any] = {}
    for key, value in payload.items():
        if not isinstance(key, str):
            issues.add("<root>", f"mapping key must be string, got {type(key).__name__}")
            continue
        root[key] = value

    version = _validate_version(root.get("version"), issues)
    last_updated = _as_timestamp(root.get("last_updated"), "last_updated", issues)
    fingerprint = _as_text(root.get("fingerprint"), "fingerprint", issues, allow_empty=False)

    for key in REQUIRED_TEXT_FIELDS:
        _as_text(root.get(key), key, issues)

    for key in STRING_LIST_FIELDS:
        if key in root:
            _as_string_list(root[key], key, issues)

    for key, (required, optional) in RECORD_LIST_FIELDS.items():
        if key in root:
            _as_record_list(root[key], key, issues, required=required, optional=optional)

    for key, members in GROUPED_LIST_FIELDS.items():
        if key in root:
            _as_grouped_lists(root[key], key, issues, members=members)

    if "project" in root:
        _as_record(
            root["project"], "project", issues, required=PROJECT_REQUIRED, optional=PROJECT_OPTIONAL
        )
    if "evidence" in root:
        _validate_evidence(root["evidence"], "evidence", issues)

    if issues.has_issues or version is None or last_updated is None or fingerprint is None:
        return ArtifactValidationResult(artifact=None, issues=issues.items())

    content = {key: value for key, value in root.items() if key not in RESERVED_FIELDS}
    artifact = Artifact(
        version=version,
        fingerprint=fingerprint,
        last_updated=last_updated,
        content=content,
    )
    return ArtifactValidationResult(artifact=artifact, issues=())


def _validate_version(value: object, issues: _IssueCollector) -> int | None:
    if value is None:
        issues.add("version", "missing required field")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add("version", f"expected integer, got {type(value).__name__}")
        return None
    if value < MIN_SCHEMA_VERSION:
        issues.add(
            "version",
            f"schema version {value} is older than the minimum supported {MIN_SCHEMA_VERSION}",
        )
        return None
    if value > SCHEMA_VERSION:
        issues.add(
            "version", f"schema version {value} is newer than supported {SCHEMA_VERSION}"
        )
        return None
    return value


def _as_text(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allow_empty: bool = True,
) -> str | None:
    if value is None:
        issues.add(path, "missing required field")
        return None
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    if not allow_empty and not value.strip():
        issues.add(path, "must not be empty")
        return None
    return value


def _as_timestamp(value: object, path: str, issues: _IssueCollector) -> str | None:
    # Unquoted timestamps in hand-edited YAML load as datetime objects.
    if isinstance(value, datetime):
        return utc_timestamp(value)
    if isinstance(value, date):
        return utc_timestamp(datetime(value.year, value.month, value.day, tzinfo=UTC))
    text = _as_text(value, path, issues, allow_empty=False)
    if text is None:
        return None
    try:
        datetime.fromisoformat(text)
    except ValueError:
        issues.add(path, f"not an ISO 8601 timestamp: {text!r}")
        return None
    return text


def _as_string_list(value: object, path: str, issues: _IssueCollector) -> None:
    if not isinstance(value, list):
        issues.add(path, f"expected list, got {type(value).__name__}")
        return
    for index, item in enumerate(value):
        if not isinstance(item, str):
            issues.add(f"{path}[{index}]", f"expected string, got {type(item).__name__}")


def _as_record(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    required: Sequence[str],
    optional: Sequence[str],
) -> None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected mapping, got {type(value).__name__}")
        return
    for key in required:
        _as_text(value.get(key), f"{path}.{key}", issues)
    for key in optional:
        if key in value and value[key] is not None:
            _as_text(value[key], f"{path}.{key}", issues)


def _as_record_list(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    required: Sequence[str],
    optional: Sequence[str],
) -> None:
    if not isinstance(value, list):
        issues.add(path, f"expected list, got {type(value).__name__}")
        return
    for index, item in enumerate(value):
        _as_record(item, f"{path}[{index}]", issues, required=required, optional=optional)


def _as_grouped_lists(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    members: Sequence[str],
) -> None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected mapping, got {type(value).__name__}")
        return
    for key in members:
        if key in value and value[key] is not None:
            _as_string_list(value[key], f"{path}.{key}", issues)


def _validate_evidence(value: object, path: str, issues: _IssueCollector) -> None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected mapping, got {type(value).__name__}")
        return
    _as_timestamp(value.get("collected_at"), f"{path}.collected_at", issues)
    _as_enum(value.get("test_status"), f"{path}.test_status", issues, allowed=TEST_STATUSES)
    _as_enum(value.get("typecheck"), f"{path}.typecheck", issues, allowed=TYPECHECK_STATES)
    count = value.get("test_count")
    if count is not None and (isinstance(count, bool) or not isinstance(count, int)):
        issues.add(f"{path}.test_count", f"expected integer, got {type(count).__name__}")
    if value.get("failing_tests") is not None:
        _as_string_list(value["failing_tests"], f"{path}.failing_tests", issues)


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed: tuple[str, ...],
) -> None:
    if value is None:
        return
    if value not in allowed:
        expected = ", ".join(allowed)
        issues.add(path, f"invalid value {value!r}; expected one of: {expected}")


__all__ = [
    "Artifact",
    "ArtifactValidationIssue",
    "ArtifactValidationResult",
    "DEFAULT_MAINTENANCE",
    "FULL_MAINTENANCE",
    "GROUPED_LIST_FIELDS",
    "RECORD_LIST_FIELDS",
    "REQUIRED_TEXT_FIELDS",
    "RESERVED_FIELDS",
    "STRING_LIST_FIELDS",
    "stored_version",
    "utc_timestamp",
    "validate_artifact",
]
