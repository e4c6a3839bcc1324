"""
dircontext: process entrypoint

Purpose
- Run the CLI and turn whatever escapes it into a stable process exit code.

Functional requirements
- Usage and configuration problems (bad config, unknown scope, unreadable
  root) exit with ``CONFIG_ERROR`` and a one-line message.
- Anything else exits with ``INTERNAL_ERROR`` and a traceback on stderr.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    SUCCESS = 0
    TARGET_FAILED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


_KNOWN_CODES = frozenset(int(code) for code in ExitCode)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Console-script and ``python -m dircontext`` entrypoint."""

    try:
        from dircontext.ui.cli import run_cli

        code: object = run_cli(argv)
    except SystemExit as exc:
        code = exc.code
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return int(ExitCode.INTERNAL_ERROR)
    except Exception as exc:  # noqa: BLE001 - last line before the process exits.
        return _report_crash(exc)
    return _as_exit_code(code)


def _as_exit_code(code: object) -> int:
    if code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(code, int) and code in _KNOWN_CODES:
        return code
    if isinstance(code, str) and code.strip():
        print(code.strip(), file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _report_crash(exc: BaseException) -> int:
    if _is_usage_error(exc):
        print(str(exc).strip() or type(exc).__name__, file=sys.stderr)
        return int(ExitCode.CONFIG_ERROR)
    traceback.print_exception(exc, file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _is_usage_error(exc: BaseException) -> bool:
    from dircontext.config import ConfigLoadError, ConfigValidationError
    from dircontext.core.scanner import ScanError
    from dircontext.regen import ScopeError

    usage_types = (
        ConfigLoadError,
        ConfigValidationError,
        ScanError,
        ScopeError,
        FileNotFoundError,
        NotADirectoryError,
        PermissionError,
        ValueError,
    )
    return any(isinstance(item, usage_types) for item in _causes(exc))


def _causes(exc: BaseException) -> Iterator[BaseException]:
    """Walk ``__cause__``/``__context__`` links, stopping on cycles."""

    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


__all__ = ["ExitCode", "cli_entrypoint"]
