"""Plain-text output for the dircontext CLI.

Color is only ever applied to the per-directory state marker, and only when
stdout is a terminal and neither ``--no-color`` nor ``NO_COLOR`` is set.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, Final, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

# state -> (fixed-width marker, ANSI color)
_MARKERS: Final[dict[str, tuple[str, str]]] = {
    "fresh": ("fresh  ", "\033[32m"),
    "stale": ("stale  ", "\033[33m"),
    "missing": ("missing", "\033[31m"),
    "unsupported_version": ("newer  ", "\033[35m"),
    "valid": ("ok     ", "\033[32m"),
    "invalid": ("invalid", "\033[31m"),
    "unreadable": ("unread ", "\033[31m"),
}
_RESET: Final[str] = "\033[0m"


def _wants_color(no_color: bool, stream: TextIO) -> bool:
    if no_color or os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class CLIRenderer:
    """Writes human-readable command output; warnings go to stderr."""

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.verbose = verbose
        self._out = out
        self._err = err
        self._color = _wants_color(no_color, self.out)

    @property
    def out(self) -> TextIO:
        # Looked up late so pytest's capsys swaps are honoured.
        return self._out or sys.stdout

    def _print(self, text: str = "") -> None:
        print(text, file=self.out)

    def heading(self, text: str) -> None:
        self._print(text)

    def text(self, line: str) -> None:
        self._print(line)

    def blank(self) -> None:
        self._print()

    def section(self, title: str) -> None:
        self._print(f"\n{title}")

    def kv(self, key: str, value: object) -> None:
        self._print(f"{key}: {value}")

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self._print(f"  {prefix}{entry}")

    def warning(self, text: str) -> None:
        print(f"  Warning: {text}", file=self._err or sys.stderr)

    def state(self, state: str, label: str) -> None:
        """One directory line led by its state marker (fresh, stale, invalid, ...)."""
        marker, color = _MARKERS.get(state, (state, ""))
        if self._color and color:
            marker = f"{color}{marker}{_RESET}"
        self._print(f"  {marker}  {label}")

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        if not rows:
            return
        cells = [list(headers), *([str(cell) for cell in row] for row in rows)]
        widths = [
            max(len(line[i]) if i < len(line) else 0 for line in cells)
            for i in range(len(headers))
        ]

        def render(line: Sequence[str]) -> str:
            padded = (
                (line[i] if i < len(line) else "").ljust(width) for i, width in enumerate(widths)
            )
            return "  " + "  ".join(padded).rstrip()

        if title:
            self.section(title)
        self._print(render(cells[0]))
        self._print("  " + "  ".join("-" * width for width in widths))
        for line in cells[1:]:
            self._print(render(line))

    def next_steps(self, steps: Sequence[str]) -> None:
        if steps:
            self.section("Next steps:")
            self.items(steps, prefix="$ ")


def create_renderer(*, no_color: bool = False, verbose: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose)


__all__ = ["CLIRenderer", "create_renderer"]
