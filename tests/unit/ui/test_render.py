from __future__ import annotations

import io

import pytest

from dircontext.ui.render import CLIRenderer


def _renderer(**kwargs: object) -> tuple[CLIRenderer, io.StringIO, io.StringIO]:
    out, err = io.StringIO(), io.StringIO()
    return CLIRenderer(out=out, err=err, **kwargs), out, err  # type: ignore[arg-type]


def test_state_line_uses_fixed_width_marker_without_color() -> None:
    renderer, out, _ = _renderer()
    renderer.state("missing", "src/api")
    renderer.state("fresh", ".")
    assert out.getvalue().splitlines() == ["  missing  src/api", "  fresh    ."]


def test_unknown_state_falls_back_to_its_name() -> None:
    renderer, out, _ = _renderer()
    renderer.state("weird", "lib")
    assert out.getvalue() == "  weird  lib\n"


def test_table_aligns_columns_and_skips_empty_rows() -> None:
    renderer, out, _ = _renderer()
    renderer.table(["Dir", "State"], [])
    assert out.getvalue() == ""

    renderer.table(["Dir", "State"], [["src/api", "stale"], [".", "fresh"]], title="Status")
    assert out.getvalue().splitlines() == [
        "",
        "Status",
        "  Dir      State",
        "  -------  -----",
        "  src/api  stale",
        "  .        fresh",
    ]


def test_warnings_go_to_stderr_and_next_steps_are_prefixed() -> None:
    renderer, out, err = _renderer()
    renderer.warning("lib: artifact is newer than supported")
    renderer.next_steps(["dircontext regen"])
    assert err.getvalue() == "  Warning: lib: artifact is newer than supported\n"
    assert out.getvalue().splitlines() == ["", "Next steps:", "  $ dircontext regen"]


def test_no_color_env_disables_ansi_on_tty(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Tty(io.StringIO):
        def isatty(self) -> bool:
            return True

    out = _Tty()
    monkeypatch.delenv("NO_COLOR", raising=False)
    CLIRenderer(out=out).state("stale", "src")
    assert "\033[33m" in out.getvalue()

    out = _Tty()
    monkeypatch.setenv("NO_COLOR", "1")
    CLIRenderer(out=out).state("stale", "src")
    assert "\033[" not in out.getvalue()
