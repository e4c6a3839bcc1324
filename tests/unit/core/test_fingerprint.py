"""
dircontext: unit tests for fingerprints and freshness classification

Purpose
- Fingerprints depend only on direct source-like file metadata, are stable
  across calls, and ignore the artifact file itself.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from dircontext.core.fingerprint import (
    FreshnessState,
    check_freshness,
    classify,
    compute_fingerprint,
)
from dircontext.core.scanner import find_target, scan_project

if TYPE_CHECKING:
    from tests.conftest import TreeFactory


def test_fingerprint_is_short_hex_and_deterministic(make_tree: TreeFactory) -> None:
    root = make_tree({"a.py": "x = 1\n", "b.ts": "export const b = 2;\n"})

    first = compute_fingerprint(root)
    second = compute_fingerprint(scan_project(root))

    assert first == second
    assert len(first) == 8
    assert all(char in "0123456789abcdef" for char in first)


def test_fingerprint_changes_when_size_changes(make_tree: TreeFactory) -> None:
    root = make_tree({"a.py": "x = 1\n"})
    before = compute_fingerprint(root)

    (root / "a.py").write_text("x = 100000\n", encoding="utf-8")

    assert compute_fingerprint(root) != before


def test_fingerprint_changes_when_mtime_changes(make_tree: TreeFactory) -> None:
    root = make_tree({"a.py": "x = 1\n"})
    path = root / "a.py"
    os.utime(path, ns=(1_700_000_000_000_000_000, 1_700_000_000_000_000_000))
    before = compute_fingerprint(root)

    os.utime(path, ns=(1_700_000_005_000_000_000, 1_700_000_005_000_000_000))

    assert compute_fingerprint(root) != before


def test_fingerprint_changes_when_a_file_is_added_or_removed(make_tree: TreeFactory) -> None:
    root = make_tree({"a.py": "x = 1\n"})
    before = compute_fingerprint(root)

    (root / "b.py").write_text("y = 2\n", encoding="utf-8")
    added = compute_fingerprint(root)
    (root / "b.py").unlink()

    assert added != before
    assert compute_fingerprint(root) == before


def test_fingerprint_ignores_artifact_and_non_source_files(make_tree: TreeFactory) -> None:
    root = make_tree({"a.py": "x = 1\n"})
    before = compute_fingerprint(root)

    (root / ".context.yaml").write_text("version: 1\nfingerprint: abc\n", encoding="utf-8")
    (root / ".context.config.yaml").write_text("max_depth: 2\n", encoding="utf-8")
    (root / "image.png").write_bytes(b"\x89PNG")

    assert compute_fingerprint(root) == before


def test_fingerprint_ignores_subdirectory_contents(make_tree: TreeFactory) -> None:
    root = make_tree({"a.py": "x = 1\n", "src/b.py": "y = 2\n"})
    before = compute_fingerprint(root)

    (root / "src" / "b.py").write_text("y = 2000000\n", encoding="utf-8")
    (root / "src" / "c.py").write_text("z = 3\n", encoding="utf-8")

    assert compute_fingerprint(root) == before


def test_empty_directory_still_has_a_fingerprint(make_tree: TreeFactory) -> None:
    root = make_tree({"sub/a.py": ""})

    assert len(compute_fingerprint(root)) == 8


def test_classify_three_way() -> None:
    assert classify(None, "deadbeef") is FreshnessState.MISSING
    assert classify("deadbeef", "deadbeef") is FreshnessState.FRESH
    assert classify("00000000", "deadbeef") is FreshnessState.STALE


def test_check_freshness_returns_state_and_computed(make_tree: TreeFactory) -> None:
    root = make_tree({"src/a.py": "x = 1\n"})
    target = find_target(scan_project(root), "src")
    assert target is not None

    state, computed = check_freshness(target, None)
    assert state is FreshnessState.MISSING
    assert computed == compute_fingerprint(target)

    assert check_freshness(target, computed) == (FreshnessState.FRESH, computed)
    assert check_freshness(target, "ffffffff")[0] is FreshnessState.STALE
