"""
dircontext: filesystem helpers

Purpose
- Replace artifact files in one step so readers never see a partial write.
- Decide whether a user-supplied path stays inside the project root.
- Read optional text files (ignore files, manifests) without raising.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

PathLike = str | os.PathLike[str]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """Write ``data`` to a sibling temp file, fsync it, then ``os.replace`` onto ``path``.

    The parent directory must already exist. On any failure the temp file is
    removed and ``path`` keeps its previous content.
    """

    target = Path(path)
    directory = target.parent.resolve(strict=True)
    payload = data.encode(encoding) if isinstance(data, str) else data

    with tempfile.NamedTemporaryFile(
        mode="wb",
        dir=directory,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    ) as handle:
        temp_path = Path(handle.name)
        try:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        except BaseException:
            handle.close()
            with contextlib.suppress(OSError):
                temp_path.unlink()
            raise

    try:
        os.replace(temp_path, target)
    except BaseException:
        with contextlib.suppress(OSError):
            temp_path.unlink()
        raise


def is_within(child: PathLike, parent: PathLike) -> bool:
    """``True`` when ``child`` resolves to ``parent`` or somewhere beneath it."""

    return Path(child).resolve().is_relative_to(Path(parent).resolve())


def read_text_lines(path: PathLike, *, encoding: str = "utf-8") -> list[str] | None:
    """Lines of ``path``, or ``None`` if it is missing, unreadable or not valid text."""

    try:
        return Path(path).read_text(encoding=encoding).splitlines()
    except (OSError, UnicodeDecodeError):
        return None


__all__ = ["atomic_write", "is_within", "read_text_lines"]
