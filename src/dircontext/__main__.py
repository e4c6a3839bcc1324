"""Module entrypoint for ``python -m dircontext``."""

from __future__ import annotations

from dircontext.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
