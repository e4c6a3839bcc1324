"""Command-line interface router for dircontext."""

from __future__ import annotations

import argparse
import asyncio
import contextvars
import json
import sys
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from dircontext import __version__
from dircontext.config import ConfigLoadError, ConfigValidationError, load_config
from dircontext.constants import CONTEXT_FILENAME
from dircontext.core.ignore import add_to_ignore
from dircontext.core.scanner import (
    ScanError,
    Target,
    filter_by_min_tokens,
    flatten_bottom_up,
    relative_id_for,
    scan_project,
)
from dircontext.core.store import ArtifactStore
from dircontext.generator.static import StaticBuildAction
from dircontext.main import ExitCode
from dircontext.observability.logging import (
    LoggingConfig,
    StructuredLoggingHandle,
    configure_structlog,
    reset_correlation_fields,
    set_correlation_fields,
    setup_structured_logging,
    shutdown_logging,
)
from dircontext.regen import (
    DryRunReport,
    Orchestrator,
    RegenerationReport,
    RegenMode,
    ScopeError,
    collect_status,
    rehash,
)
from dircontext.ui.render import CLIRenderer, create_renderer
from dircontext.utils.fs import is_within


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Command failure carrying the exit code the process should end with."""

    message: str
    exit_code: int = int(ExitCode.CONFIG_ERROR)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Top-level parser with one subcommand per dircontext operation."""

    parser = argparse.ArgumentParser(
        prog="dircontext",
        description=(
            "dircontext keeps a .context.yaml in every meaningful directory in sync "
            "with the files it describes.\n\n"
            "Common workflows:\n"
            "  dircontext regen                 Rebuild every artifact\n"
            "  dircontext regen --stale-only    Rebuild only what changed\n"
            "  dircontext status                Show fresh/stale/missing per directory\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"dircontext {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--root",
        default=".",
        help="Project root directory (default: current working directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to a config file (default: <root>/.context.config.yaml if present).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Also write structured logs to stderr.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # regen ---------------------------------------------------------------
    regen_parser = subparsers.add_parser(
        "regen",
        parents=[common],
        help="Rebuild artifacts leaves first",
        description=(
            "Rebuild .context.yaml artifacts bottom-up, in parallel within each depth wave.\n\n"
            "Examples:\n"
            "  dircontext regen\n"
            "  dircontext regen src/api --stale-only\n"
            "  dircontext regen --concurrency 4 --dry-run\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    regen_parser.add_argument(
        "scope",
        nargs="?",
        default=None,
        help="Directory to rebuild with its descendants (default: whole project).",
    )
    selection = regen_parser.add_mutually_exclusive_group()
    selection.add_argument(
        "--stale-only",
        action="store_true",
        default=False,
        help="Skip directories whose fingerprint still matches.",
    )
    selection.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Rebuild everything, overwriting artifacts written by newer versions.",
    )
    regen_parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Maximum build steps in flight (default: config, else 1).",
    )
    regen_parser.add_argument(
        "--mode",
        dest="build_mode",
        choices=("lean", "full"),
        default=None,
        help="Artifact detail level (default: config, else lean).",
    )
    regen_parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum scan depth below the root (default: config, else 10).",
    )
    regen_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Report what would be rebuilt without writing anything.",
    )
    regen_parser.add_argument(
        "--evidence",
        action="store_true",
        default=False,
        help="Record test results found in existing report files on the root artifact.",
    )
    regen_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    regen_parser.set_defaults(handler=_cmd_regen)

    # status --------------------------------------------------------------
    status_parser = subparsers.add_parser(
        "status",
        parents=[common],
        help="Show freshness of every artifact",
    )
    status_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    status_parser.set_defaults(handler=_cmd_status)

    # rehash --------------------------------------------------------------
    rehash_parser = subparsers.add_parser(
        "rehash",
        parents=[common],
        help="Refresh stored fingerprints without rebuilding content",
    )
    rehash_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    rehash_parser.set_defaults(handler=_cmd_rehash)

    # validate ------------------------------------------------------------
    validate_parser = subparsers.add_parser(
        "validate",
        parents=[common],
        help="Check every stored artifact against the schema",
    )
    validate_parser.add_argument(
        "--json", action="store_true", help="Emit deterministic JSON output"
    )
    validate_parser.set_defaults(handler=_cmd_validate)

    # ignore --------------------------------------------------------------
    ignore_parser = subparsers.add_parser(
        "ignore",
        parents=[common],
        help="Add a pattern to .contextignore",
    )
    ignore_parser.add_argument("pattern", help="Ignore pattern (gitignore syntax)")
    ignore_parser.set_defaults(handler=_cmd_ignore)

    # show ----------------------------------------------------------------
    show_parser = subparsers.add_parser(
        "show",
        parents=[common],
        help="Print the artifact stored for a directory",
    )
    show_parser.add_argument(
        "path", nargs="?", default=".", help="Directory to show (default: the root)."
    )
    show_parser.set_defaults(handler=_cmd_show)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Dispatch ``argv`` to its subcommand handler and return the exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    configure_structlog()
    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_regen(args: argparse.Namespace) -> int:
    root = _project_root(args)
    config = _load_effective_config(
        args,
        root,
        overrides={
            "concurrency": getattr(args, "concurrency", None),
            "mode": getattr(args, "build_mode", None),
            "max_depth": getattr(args, "max_depth", None),
        },
    )
    mode = _regen_mode(args)

    with _LoggingSession(args, config, command="regen"):
        tree = _scan(root, config)
        scope = _scope_id(root, getattr(args, "scope", None))
        orchestrator = Orchestrator(
            ArtifactStore(),
            StaticBuildAction(mode=str(config["mode"]), evidence=_flag(args, "evidence")),
            concurrency=int(config["concurrency"]),
        )
        try:
            if _flag(args, "dry_run"):
                plan = asyncio.run(orchestrator.plan(tree, scope=scope, mode=mode))
                return _render_plan(args, plan)
            report = asyncio.run(orchestrator.regenerate(tree, scope=scope, mode=mode))
        except ScopeError as exc:
            raise CLIError(str(exc)) from exc

    return _render_report(args, report)


def _cmd_status(args: argparse.Namespace) -> int:
    root = _project_root(args)
    config = _load_effective_config(args, root)
    tree = _scan(root, config)
    report = collect_status(tree, ArtifactStore())

    if _flag(args, "json"):
        _emit_json({"command": "status", **report.to_dict()})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    for warning in report.warnings:
        renderer.warning(warning)
    for entry in report.entries:
        renderer.state(entry.state.value, _label(entry.target_id))
    summary = report.to_dict()["summary"]
    renderer.section(
        f"context health: {summary['tracked']} of {summary['total']} directories tracked"
    )
    renderer.kv("fresh", summary["fresh"])
    renderer.kv("stale", summary["stale"])
    renderer.kv("missing", summary["missing"])
    if not report.healthy:
        renderer.next_steps(["dircontext regen --stale-only"])
    return int(ExitCode.SUCCESS)


def _cmd_rehash(args: argparse.Namespace) -> int:
    root = _project_root(args)
    config = _load_effective_config(args, root)

    with _LoggingSession(args, config, command="rehash"):
        tree = _scan(root, config)
        result = rehash(tree, ArtifactStore())

    if _flag(args, "json"):
        _emit_json({"command": "rehash", **result.to_dict()})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.text(f"Updated fingerprints for {result.updated} directories.")
    if result.stale:
        renderer.text(
            f"{result.stale} directories were stale (fingerprints updated, content unchanged)."
        )
    for target_id in result.skipped:
        renderer.warning(f"{_label(target_id)}: written by a newer version, left unchanged")
    for target_id in result.unreadable:
        renderer.warning(f"{_label(target_id)}: directory could not be listed, left unchanged")
    return int(ExitCode.SUCCESS)


def _cmd_validate(args: argparse.Namespace) -> int:
    root = _project_root(args)
    config = _load_effective_config(args, root)
    tree = _scan(root, config)
    store = ArtifactStore()

    results: list[dict[str, Any]] = []
    for target in flatten_bottom_up(tree):
        issues = store.inspect(target)
        if issues is None:
            status = "missing"
        elif issues:
            status = "invalid"
        else:
            status = "valid"
        results.append(
            {
                "scope": target.relative_id,
                "status": status,
                "issues": [f"{issue.path}: {issue.message}" for issue in issues or ()],
            }
        )

    counts = {
        key: sum(1 for item in results if item["status"] == key)
        for key in ("valid", "invalid", "missing")
    }
    exit_code = ExitCode.TARGET_FAILED if counts["invalid"] else ExitCode.SUCCESS

    if _flag(args, "json"):
        _emit_json({"command": "validate", "counts": counts, "directories": results})
        return int(exit_code)

    renderer = _get_renderer(args)
    for item in results:
        if item["status"] == "missing":
            continue
        renderer.state(item["status"], _label(item["scope"]))
        renderer.items(item["issues"], prefix="")
    renderer.section(
        f"{counts['valid']} valid, {counts['invalid']} invalid, {counts['missing']} missing."
    )
    return int(exit_code)


def _cmd_ignore(args: argparse.Namespace) -> int:
    root = _project_root(args)
    pattern = str(getattr(args, "pattern", ""))
    try:
        added = add_to_ignore(root, pattern)
    except ValueError as exc:
        raise CLIError(str(exc)) from exc

    renderer = _get_renderer(args)
    if added:
        renderer.text(f'Added "{pattern.strip()}" to .contextignore')
    else:
        renderer.text(f'"{pattern.strip()}" is already in .contextignore')
    return int(ExitCode.SUCCESS)


def _cmd_show(args: argparse.Namespace) -> int:
    root = _project_root(args)
    raw = str(getattr(args, "path", "."))
    directory = _resolve_user_path(root, raw)
    path = ArtifactStore().path_for(directory)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise CLIError(f"no {CONTEXT_FILENAME} found at {raw}") from exc
    except OSError as exc:
        raise CLIError(f"unable to read {path}: {exc}") from exc

    renderer = _get_renderer(args)
    renderer.heading(f"# {raw.rstrip('/')}/{CONTEXT_FILENAME}")
    renderer.blank()
    renderer.text(content.rstrip("\n"))
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_report(args: argparse.Namespace, report: RegenerationReport) -> int:
    exit_code = ExitCode.SUCCESS if report.ok else ExitCode.TARGET_FAILED

    if _flag(args, "json"):
        _emit_json({"command": "regen", **report.to_dict()})
        return int(exit_code)

    renderer = _get_renderer(args)
    counts = report.counts()
    renderer.heading(
        f"Regenerated {counts['updated']} of {counts['total']} directories "
        f"in {report.wave_count} waves (mode: {report.mode.value})."
    )
    if renderer.verbose:
        for outcome in report.updated:
            renderer.state(outcome.previous_state.value, _label(outcome.target_id))
    if report.skipped_fresh:
        renderer.kv("Skipped (fresh)", len(report.skipped_fresh))
    if report.failed:
        renderer.table(
            ("directory", "kind", "error"),
            [
                (_label(failure.target_id), failure.kind.value, failure.message)
                for failure in report.failed
            ],
            title="Failed:",
        )
    return int(exit_code)


def _render_plan(args: argparse.Namespace, plan: DryRunReport) -> int:
    if _flag(args, "json"):
        _emit_json({"command": "regen", "dry_run": True, **plan.to_dict()})
        return int(ExitCode.SUCCESS)

    renderer = _get_renderer(args)
    renderer.table(
        ("wave", "directory", "state", "action"),
        [
            (
                str(entry.wave),
                _label(entry.target_id),
                entry.state,
                "rebuild" if entry.would_rebuild else "skip",
            )
            for entry in plan.entries
        ],
        title=f"Dry run (mode: {plan.mode.value}, {plan.wave_count} waves):",
    )
    renderer.section(
        f"{len(plan.rebuild_ids)} of {len(plan.entries)} directories would be rebuilt."
    )
    return int(ExitCode.SUCCESS)


def _emit_json(payload: Mapping[str, object]) -> None:
    """Print ``payload`` as compact, key-sorted JSON."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


# ---------------------------------------------------------------------------
# Helpers: config, paths, logging
# ---------------------------------------------------------------------------


def _project_root(args: argparse.Namespace) -> Path:
    raw = str(getattr(args, "root", ".") or ".")
    candidate = Path(raw).expanduser().resolve()
    if not candidate.is_dir():
        raise CLIError(f"project root is not a directory: {candidate}")
    return candidate


def _load_effective_config(
    args: argparse.Namespace,
    root: Path,
    *,
    overrides: Mapping[str, object] | None = None,
) -> dict[str, Any]:
    config_path = getattr(args, "config_path", None)
    try:
        return load_config(root, config_path=config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc)) from exc


def _scan(root: Path, config: Mapping[str, Any]) -> Target:
    try:
        tree = scan_project(
            root,
            max_depth=int(config["max_depth"]),
            extra_ignore=tuple(config["ignore"]),
        )
    except ScanError as exc:
        raise CLIError(str(exc)) from exc
    tree, _ = filter_by_min_tokens(tree, int(config["min_tokens"]))
    return tree


def _regen_mode(args: argparse.Namespace) -> RegenMode:
    if _flag(args, "force"):
        return RegenMode.FORCE
    if _flag(args, "stale_only"):
        return RegenMode.STALE_ONLY
    return RegenMode.ALL


def _scope_id(root: Path, raw: str | None) -> str | None:
    if raw is None:
        return None
    return relative_id_for(root, _resolve_user_path(root, raw))


def _resolve_user_path(root: Path, raw: str) -> Path:
    """Resolve a user-supplied directory against the root, falling back to the cwd."""
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        from_root = root / candidate
        candidate = from_root if from_root.exists() else Path.cwd() / candidate
    resolved = candidate.resolve()
    if not is_within(resolved, root):
        raise CLIError(f"{raw} is outside the project root {root}")
    return resolved


class _LoggingSession:
    """Per-command structured logging with ``run_id``/``command`` correlation.

    Exceptions pass through ``__exit__`` unmodified (``CLIError`` is frozen).
    """

    def __init__(
        self, args: argparse.Namespace, config: Mapping[str, Any], *, command: str
    ) -> None:
        self._config = LoggingConfig(
            run_id=_new_run_id(),
            base_log_dir=Path(str(config["log_dir"])),
            level=str(config["log_level"]),
            log_to_stderr=_flag(args, "verbose"),
        )
        self._command = command
        self._handle: StructuredLoggingHandle | None = None
        self._token: contextvars.Token[Any] | None = None

    def __enter__(self) -> _LoggingSession:
        self._handle = setup_structured_logging(self._config)
        self._token = set_correlation_fields(run_id=self._config.run_id, command=self._command)
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._token is not None:
            reset_correlation_fields(self._token)
            self._token = None
        if self._handle is not None:
            shutdown_logging(self._handle)
            self._handle = None


def _new_run_id() -> str:
    stamp = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{uuid.uuid4().hex[:6]}"


def _label(target_id: str) -> str:
    return "(root)" if target_id == "." else target_id


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
