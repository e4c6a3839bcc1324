"""Shared fixtures: on-disk project trees and structlog routing."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

import pytest

from dircontext.observability.logging import configure_structlog

TreeFactory = Callable[[Mapping[str, str]], Path]


@pytest.fixture(autouse=True, scope="session")
def _route_structlog_to_stdlib() -> None:
    # Keep library log events off stdout so CLI JSON assertions stay clean.
    configure_structlog()


def write_tree(root: Path, files: Mapping[str, str]) -> Path:
    """Create ``files`` (POSIX relative path -> text) below ``root``."""

    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def make_tree(tmp_path: Path) -> TreeFactory:
    project = tmp_path / "project"
    project.mkdir()

    def _make(files: Mapping[str, str]) -> Path:
        return write_tree(project, files)

    return _make


@pytest.fixture
def two_level_project(make_tree: TreeFactory) -> Path:
    """``root/ (a.ts)`` with ``root/src/ (b.ts)``."""

    return make_tree(
        {
            "a.ts": "export const a = 1;\n",
            "src/b.ts": "export function b() { return 2; }\n",
        }
    )


@pytest.fixture
def layered_project(make_tree: TreeFactory) -> Path:
    """Root with two subtrees of different heights.

    Heights: ``src/api`` 0, ``lib`` 0, ``src`` 1, root 2.
    """

    return make_tree(
        {
            "README.md": "# demo\n",
            "src/main.py": "def main() -> None:\n    pass\n",
            "src/api/handler.py": "def handle(request):\n    return request\n",
            "lib/util.py": "def helper(x):\n    return x\n",
        }
    )
