"""
dircontext: ignore-pattern matcher

Purpose
- Compile ``.gitignore``/``.contextignore`` style lines into a predicate over
  directory paths relative to the project root.

Functional requirements
- Lines without ``/`` are segment patterns and match any single path segment.
- Lines with ``/`` are path patterns and match the whole relative path.
- ``*`` and ``?`` never cross ``/``; ``**`` inside a path pattern does.
- Evaluation is last-match-wins; ``!`` negates. No match means kept.
- Malformed lines never match and never raise.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from dircontext.constants import CONTEXTIGNORE_FILENAME, GITIGNORE_FILENAME
from dircontext.utils.fs import read_text_lines

_COMMENT_PREFIX: Final[str] = "#"
_NEGATION_PREFIX: Final[str] = "!"
_ESCAPE_PREFIX: Final[str] = "\\"


class PatternKind(str, Enum):
    SEGMENT = "segment"
    PATH = "path"


@dataclass(frozen=True, slots=True)
class IgnoreRule:
    """One compiled ignore line.

    ``regex`` is ``None`` for malformed lines, which then never match.
    """

    pattern: str
    negated: bool
    kind: PatternKind
    regex: re.Pattern[str] | None

    @property
    def is_valid(self) -> bool:
        return self.regex is not None

    def matches(self, relative_path: str) -> bool:
        if self.regex is None:
            return False
        if self.kind is PatternKind.PATH:
            return self.regex.fullmatch(relative_path) is not None
        return any(self.regex.fullmatch(segment) for segment in relative_path.split("/"))


def parse_rule(line: str) -> IgnoreRule | None:
    """Compile a single raw line; blank lines and comments yield ``None``."""

    text = line.strip()
    if not text or text.startswith(_COMMENT_PREFIX):
        return None

    negated = False
    if text.startswith(_NEGATION_PREFIX):
        negated = True
        text = text[1:]
    elif text.startswith(_ESCAPE_PREFIX + _NEGATION_PREFIX) or text.startswith(
        _ESCAPE_PREFIX + _COMMENT_PREFIX
    ):
        text = text[1:]

    body = text.rstrip("/")
    kind = PatternKind.PATH if "/" in body else PatternKind.SEGMENT
    if kind is PatternKind.PATH:
        body = body.lstrip("/")

    if not body:
        return IgnoreRule(pattern=line.strip(), negated=negated, kind=kind, regex=None)

    try:
        regex = re.compile(_translate(body, globstar=kind is PatternKind.PATH))
    except re.error:
        regex = None
    return IgnoreRule(pattern=body, negated=negated, kind=kind, regex=regex)


def compile_rules(lines: Iterable[str]) -> tuple[IgnoreRule, ...]:
    """Compile lines in order, dropping blanks and comments."""

    rules: list[IgnoreRule] = []
    for line in lines:
        rule = parse_rule(line)
        if rule is not None:
            rules.append(rule)
    return tuple(rules)


class IgnoreMatcher:
    """Last-match-wins predicate over root-relative POSIX directory paths."""

    __slots__ = ("_rules",)

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self._rules = compile_rules(lines)

    @classmethod
    def from_project(cls, root: str | Path, extra: Sequence[str] = ()) -> IgnoreMatcher:
        """Build a matcher from the project's ignore files followed by ``extra`` lines."""
        return cls([*load_ignore_lines(root), *extra])

    @property
    def rules(self) -> tuple[IgnoreRule, ...]:
        return self._rules

    def is_ignored(self, relative_path: str) -> bool:
        path = _normalize(relative_path)
        if not path:
            return False

        ignored = False
        for rule in self._rules:
            if rule.matches(path):
                ignored = not rule.negated
        return ignored

    def __call__(self, relative_path: str) -> bool:
        return self.is_ignored(relative_path)


def load_ignore_lines(root: str | Path) -> list[str]:
    """Return ``.gitignore`` lines followed by ``.contextignore`` lines."""

    base = Path(root)
    lines: list[str] = []
    for filename in (GITIGNORE_FILENAME, CONTEXTIGNORE_FILENAME):
        loaded = read_text_lines(base / filename)
        if loaded:
            lines.extend(loaded)
    return lines


def add_to_ignore(root: str | Path, pattern: str) -> bool:
    """Append ``pattern`` to ``.contextignore``; return ``False`` if already present."""

    entry = pattern.strip()
    if not entry:
        raise ValueError("ignore pattern must not be empty")

    path = Path(root) / CONTEXTIGNORE_FILENAME
    existing = [line for line in (read_text_lines(path) or []) if line]
    if entry in existing:
        return False

    existing.append(entry)
    path.write_text("\n".join(existing) + "\n", encoding="utf-8")
    return True


def _translate(pattern: str, *, globstar: bool) -> str:
    parts: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if globstar and pattern.startswith("**", index):
                at_boundary = index == 0 or pattern[index - 1] == "/"
                if at_boundary and pattern[index + 2 : index + 3] == "/":
                    # "**/" may also stand for no directories at all.
                    parts.append("(?:.*/)?")
                    index += 3
                    continue
                parts.append(".*")
                index += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    return "".join(parts)


def _normalize(relative_path: str) -> str:
    path = relative_path.replace("\\", "/").strip("/")
    while path.startswith("./"):
        path = path[2:]
    if path == ".":
        return ""
    return path


__all__ = [
    "IgnoreMatcher",
    "IgnoreRule",
    "PatternKind",
    "add_to_ignore",
    "compile_rules",
    "load_ignore_lines",
    "parse_rule",
]
