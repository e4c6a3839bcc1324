"""
dircontext: project configuration schema

Purpose
- Built-in defaults for ``.context.config.yaml`` and strict validation of a
  fully merged config.

Functional requirements
- Every problem is reported as a ``(field, message)`` issue; nothing stops at
  the first one.
- Unknown fields are rejected so typos surface instead of being ignored.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, Literal, TypedDict

from dircontext.constants import DEFAULT_MAX_DEPTH

BUILD_MODES: Final[tuple[str, ...]] = ("lean", "full")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# Resolved against the project root by the loader.
PATH_FIELDS: Final[tuple[str, ...]] = ("log_dir",)


class DirContextConfig(TypedDict):
    ignore: list[str]
    max_depth: int
    min_tokens: int
    concurrency: int
    mode: Literal["lean", "full"]
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str


DEFAULT_CONFIG: Final[DirContextConfig] = {
    "ignore": [],
    "max_depth": DEFAULT_MAX_DEPTH,
    "min_tokens": 0,
    "concurrency": 1,
    "mode": "lean",
    "log_level": "INFO",
    "log_dir": ".dircontext/logs",
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Normalized config, or ``None`` with the issues that prevented it."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.config is not None


class ConfigValidationError(ValueError):
    """A merged config failed validation; ``issues`` lists every problem."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <unknown>"))


@dataclass(slots=True)
class _Issues:
    found: list[ConfigValidationIssue] = field(default_factory=list)

    def add(self, path: str, message: str) -> None:
        self.found.append(ConfigValidationIssue(path, message))


_Check = Callable[[object, str, _Issues], Any]


def _text(value: object, path: str, issues: _Issues) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    if not value.strip():
        issues.add(path, "must not be empty")
        return None
    return value.strip()


def _integer(minimum: int) -> _Check:
    def check(value: object, path: str, issues: _Issues) -> int | None:
        # bool is an int subclass; ``concurrency: true`` is a typo, not 1.
        if isinstance(value, bool) or not isinstance(value, int):
            issues.add(path, f"expected integer, got {type(value).__name__}")
            return None
        if value < minimum:
            issues.add(path, f"must be >= {minimum}")
            return None
        return value

    return check


def _choice(allowed: tuple[str, ...], *, upper: bool = False) -> _Check:
    def check(value: object, path: str, issues: _Issues) -> str | None:
        text = _text(value, path, issues)
        if text is None:
            return None
        if upper:
            text = text.upper()
        if text not in allowed:
            issues.add(path, f"invalid value {text!r}; expected one of: {', '.join(allowed)}")
            return None
        return text

    return check


def _patterns(value: object, path: str, issues: _Issues) -> list[str] | None:
    if not isinstance(value, list):
        issues.add(path, f"expected list, got {type(value).__name__}")
        return None
    parsed = [_text(item, f"{path}[{index}]", issues) for index, item in enumerate(value)]
    return [item for item in parsed if item is not None]


_FIELD_CHECKS: Final[dict[str, _Check]] = {
    "ignore": _patterns,
    "max_depth": _integer(0),
    "min_tokens": _integer(0),
    "concurrency": _integer(1),
    "mode": _choice(BUILD_MODES),
    "log_level": _choice(LOG_LEVELS, upper=True),
    "log_dir": _text,
}


def default_config() -> DirContextConfig:
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Top-level overlay; list values are replaced, not concatenated."""

    merged = copy.deepcopy(dict(base))
    merged.update(copy.deepcopy(dict(overlay)))
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    """Check a complete config: every known field present and well-formed, nothing else."""

    issues = _Issues()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(None, tuple(issues.found))

    for key in sorted(set(map(str, config)) - set(_FIELD_CHECKS)):
        issues.add(key, "unknown field")

    normalized: dict[str, Any] = {}
    for key, check in _FIELD_CHECKS.items():
        if key not in config:
            issues.add(key, "missing required field")
            continue
        value = check(config[key], key, issues)
        if value is not None:
            normalized[key] = value

    if issues.found:
        return ConfigValidationResult(None, tuple(issues.found))
    return ConfigValidationResult(normalized)


def assert_valid_config(config: object) -> dict[str, Any]:
    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


__all__ = [
    "BUILD_MODES",
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DirContextConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
