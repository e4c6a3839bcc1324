"""
dircontext: directory-tree scanner

Purpose
- Walk the project tree and produce the immutable tree of build Targets.

Functional requirements
- Only directories with source-like content somewhere below them become Targets.
- Deny-listed, hidden, and ignore-matched directories are never descended into.
- Unreadable subdirectories are omitted; an unreadable root raises ``ScanError``.
- ``direct_files`` and ``children`` are name-sorted for determinism.
- ``filter_by_min_tokens`` drops small leaf-ward directories after the scan;
  a kept directory always keeps its parent.
"""

from __future__ import annotations

import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath

import structlog

from dircontext.constants import (
    ALWAYS_IGNORED_DIRS,
    CONFIG_FILENAME,
    CONTEXT_FILENAME,
    DEFAULT_MAX_DEPTH,
    MEANINGFUL_FILENAMES,
    ROOT_TARGET_ID,
    SOURCE_EXTENSIONS,
)
from dircontext.core.ignore import IgnoreMatcher

logger = structlog.get_logger(__name__)


class ScanError(RuntimeError):
    """Raised when the scan root itself cannot be read."""


@dataclass(frozen=True, slots=True)
class Target:
    """A directory node in the build graph."""

    absolute_path: Path
    relative_id: str
    direct_files: tuple[str, ...]
    children: tuple[Target, ...] = ()
    has_stored_artifact: bool = False

    @property
    def is_root(self) -> bool:
        return self.relative_id == ROOT_TARGET_ID

    @property
    def name(self) -> str:
        if self.is_root:
            return self.absolute_path.name
        return PurePosixPath(self.relative_id).name

    @property
    def child_ids(self) -> tuple[str, ...]:
        return tuple(child.relative_id for child in self.children)

    def walk(self) -> Iterator[Target]:
        """Yield this Target and every descendant, parents before children."""
        yield self
        for child in self.children:
            yield from child.walk()


def is_source_file(filename: str) -> bool:
    """Return ``True`` for files that count as directory content."""

    if filename in MEANINGFUL_FILENAMES:
        return True
    suffix = PurePosixPath(filename).suffix
    if not suffix:
        return False
    return suffix.lower() in SOURCE_EXTENSIONS


def scan_project(
    root: str | os.PathLike[str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    extra_ignore: Sequence[str] = (),
    matcher: IgnoreMatcher | None = None,
) -> Target:
    """Scan ``root`` and return the root Target of the kept tree.

    ``max_depth`` is inclusive: with ``max_depth=1`` the root's direct
    subdirectories are scanned but nothing below them.
    """

    if max_depth < 0:
        raise ValueError("max_depth must be >= 0")

    root_path = Path(root).resolve()
    if not root_path.is_dir():
        raise ScanError(f"scan root is not a directory: {root_path}")

    active_matcher = matcher if matcher is not None else IgnoreMatcher.from_project(
        root_path, extra_ignore
    )
    scanner = _Scanner(matcher=active_matcher, max_depth=max_depth)
    result = scanner.scan(root_path, ROOT_TARGET_ID, depth=0)
    if result is None:
        raise ScanError(f"unable to read scan root: {root_path}")
    return result


BYTES_PER_TOKEN = 4


def estimate_tokens(target: Target) -> int:
    """Rough token count of a Target's direct files: total bytes over four, rounded up."""

    total = 0
    for name in target.direct_files:
        try:
            total += (target.absolute_path / name).stat().st_size
        except OSError:
            continue
    return -(-total // BYTES_PER_TOKEN)


def filter_by_min_tokens(root: Target, min_tokens: int) -> tuple[Target, int]:
    """Drop Targets below ``min_tokens`` and return the pruned tree and the drop count.

    The root is always kept, as is every Target with a kept descendant, so
    directories that only route to larger children survive. ``min_tokens <= 0``
    disables the filter.
    """

    if min_tokens <= 0:
        return root, 0
    dropped = 0

    def prune(node: Target) -> Target | None:
        nonlocal dropped
        kept = tuple(child for child in map(prune, node.children) if child is not None)
        if kept or estimate_tokens(node) >= min_tokens:
            return replace(node, children=kept) if kept != node.children else node
        dropped += 1
        return None

    kept_children = tuple(child for child in map(prune, root.children) if child is not None)
    pruned = root if kept_children == root.children else replace(root, children=kept_children)
    if dropped:
        logger.info("scan_filtered_min_tokens", min_tokens=min_tokens, skipped=dropped)
    return pruned, dropped


def flatten_bottom_up(root: Target) -> list[Target]:
    """Return Targets children-first (post-order)."""

    flat: list[Target] = []

    def visit(node: Target) -> None:
        for child in node.children:
            visit(child)
        flat.append(node)

    visit(root)
    return flat


def iter_targets(root: Target) -> Iterator[Target]:
    """Yield Targets parents-first (pre-order)."""

    return root.walk()


def find_target(root: Target, relative_id: str) -> Target | None:
    """Return the Target with ``relative_id`` or ``None``."""

    wanted = relative_id.strip().strip("/") or ROOT_TARGET_ID
    if wanted.startswith("./"):
        wanted = wanted[2:]
    for target in root.walk():
        if target.relative_id == wanted:
            return target
    return None


def relative_id_for(root: str | os.PathLike[str], path: str | os.PathLike[str]) -> str:
    """Translate a filesystem path into a Target id relative to ``root``.

    Relative ``path`` values are interpreted against ``root``. Raises
    ``ValueError`` when the path lies outside the root.
    """

    root_path = Path(root).resolve()
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = root_path / candidate
    resolved = candidate.resolve()
    try:
        relative = resolved.relative_to(root_path)
    except ValueError as exc:
        raise ValueError(f"{resolved} is outside the project root {root_path}") from exc
    posix = relative.as_posix()
    return ROOT_TARGET_ID if posix in {"", "."} else posix


class _Scanner:
    __slots__ = ("_matcher", "_max_depth")

    def __init__(self, *, matcher: IgnoreMatcher, max_depth: int) -> None:
        self._matcher = matcher
        self._max_depth = max_depth

    def scan(self, path: Path, relative_id: str, *, depth: int) -> Target | None:
        try:
            with os.scandir(path) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            logger.warning("scan_directory_unreadable", target_id=relative_id, error=str(exc))
            return None

        files: list[str] = []
        children: list[Target] = []
        has_artifact = False

        for entry in entries:
            entry_name = entry.name
            if entry_name == CONTEXT_FILENAME:
                has_artifact = True
                continue
            if entry_name == CONFIG_FILENAME:
                continue

            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file()
            except OSError as exc:
                logger.warning("scan_entry_unreadable", target_id=relative_id, error=str(exc))
                continue

            if is_dir:
                child = self._scan_child(path, relative_id, entry_name, depth=depth)
                if child is not None:
                    children.append(child)
            elif is_file and is_source_file(entry_name):
                files.append(entry_name)

        return Target(
            absolute_path=path,
            relative_id=relative_id,
            direct_files=tuple(sorted(files)),
            children=tuple(children),
            has_stored_artifact=has_artifact,
        )

    def _scan_child(
        self, parent: Path, parent_id: str, dir_name: str, *, depth: int
    ) -> Target | None:
        if dir_name in ALWAYS_IGNORED_DIRS or dir_name.startswith("."):
            return None
        child_id = dir_name if parent_id == ROOT_TARGET_ID else f"{parent_id}/{dir_name}"
        if self._matcher.is_ignored(child_id):
            return None
        if depth >= self._max_depth:
            return None

        child = self.scan(parent / dir_name, child_id, depth=depth + 1)
        if child is None:
            return None
        if not child.direct_files and not child.children:
            return None
        return child


__all__ = [
    "BYTES_PER_TOKEN",
    "ScanError",
    "Target",
    "estimate_tokens",
    "filter_by_min_tokens",
    "find_target",
    "flatten_bottom_up",
    "is_source_file",
    "iter_targets",
    "relative_id_for",
    "scan_project",
]
