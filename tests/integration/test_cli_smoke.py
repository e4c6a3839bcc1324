"""
dircontext: CLI smoke contracts

Purpose
- Exercise every subcommand end to end against a real project tree.
- Verify exit codes, JSON payloads, and on-disk side effects.
- Keep one subprocess run of ``python -m dircontext`` so module wiring stays honest.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any

import pytest
import yaml

from dircontext.main import cli_entrypoint

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"


def _write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def _seed_repo(repo_root: Path) -> Path:
    _write(repo_root / "README.md", "# demo\n")
    _write(repo_root / "src" / "app.py", "def run() -> None:\n    pass\n")
    _write(repo_root / "src" / "api" / "routes.py", "def index():\n    return 'ok'\n")
    _write(repo_root / "lib" / "util.ts", "export function pad(s: string) { return s; }\n")
    _write(repo_root / "node_modules" / "dep" / "index.js", "module.exports = 1;\n")
    return repo_root


@pytest.fixture
def repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in list(os.environ):
        if name.startswith("DIRCONTEXT_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("NO_COLOR", "1")
    return _seed_repo(tmp_path / "repo")


def _run(repo_root: Path, capsys: pytest.CaptureFixture[str], *args: str) -> tuple[int, str, str]:
    command, *rest = args
    exit_code = cli_entrypoint([command, "--root", str(repo_root), *rest])
    captured = capsys.readouterr()
    return exit_code, captured.out, captured.err


def _run_json(
    repo_root: Path, capsys: pytest.CaptureFixture[str], *args: str
) -> tuple[int, dict[str, Any]]:
    exit_code, out, _ = _run(repo_root, capsys, *args, "--json")
    return exit_code, json.loads(out)


def test_regen_status_and_stale_only_roundtrip(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code, payload = _run_json(repo, capsys, "regen")

    assert exit_code == 0
    assert payload["command"] == "regen"
    assert payload["ok"] is True
    assert payload["waves"] == 3
    assert payload["counts"] == {"total": 4, "updated": 4, "skipped_fresh": 0, "failed": 0}
    for relative in (".", "src", "src/api", "lib"):
        assert (repo / relative / ".context.yaml").is_file()
    assert not (repo / "node_modules" / ".context.yaml").exists()
    assert list((repo / ".dircontext" / "logs").glob("*/dircontext.jsonl"))

    exit_code, status = _run_json(repo, capsys, "status")
    assert exit_code == 0
    assert status["summary"] == {"total": 4, "tracked": 4, "fresh": 4, "stale": 0, "missing": 0}

    exit_code, second = _run_json(repo, capsys, "regen", "--stale-only")
    assert exit_code == 0
    assert second["counts"] == {"total": 4, "updated": 0, "skipped_fresh": 4, "failed": 0}


def test_regen_writes_structured_logs_with_correlation(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code, _, _ = _run(repo, capsys, "regen")

    assert exit_code == 0
    (log_path,) = (repo / ".dircontext" / "logs").glob("*/dircontext.jsonl")
    events = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert events
    assert {event["command"] for event in events} == {"regen"}
    assert {event["run_id"] for event in events} == {log_path.parent.name}


def test_regen_evidence_flag_records_existing_test_results(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(repo / "junit.xml", '<testsuite tests="6" failures="1" errors="0"/>\n')

    exit_code, _ = _run_json(repo, capsys, "regen", "--evidence")

    assert exit_code == 0
    root_artifact = yaml.safe_load((repo / ".context.yaml").read_text(encoding="utf-8"))
    assert root_artifact["evidence"]["test_status"] == "failing"
    assert root_artifact["evidence"]["test_count"] == 6
    lib_artifact = yaml.safe_load((repo / "lib" / ".context.yaml").read_text(encoding="utf-8"))
    assert "evidence" not in lib_artifact


def test_min_tokens_config_skips_small_directories(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(repo / ".context.config.yaml", "min_tokens: 10\n")

    exit_code, payload = _run_json(repo, capsys, "regen")

    assert exit_code == 0
    assert payload["counts"]["updated"] == 2
    assert (repo / "lib" / ".context.yaml").is_file()
    assert not (repo / "src" / ".context.yaml").exists()

    exit_code, status = _run_json(repo, capsys, "status")
    assert exit_code == 0
    assert [entry["scope"] for entry in status["directories"]] == [".", "lib"]


def test_regen_dry_run_writes_nothing(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code, payload = _run_json(repo, capsys, "regen", "src", "--dry-run")

    assert exit_code == 0
    assert payload["dry_run"] is True
    assert payload["scope"] == "src"
    assert payload["would_rebuild"] == 2
    assert [entry["target_id"] for entry in payload["targets"]] == ["src/api", "src"]
    assert not list(repo.rglob(".context.yaml"))


def test_regen_text_output_and_scope(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code, out, _ = _run(repo, capsys, "regen", "lib", "--mode", "full")

    assert exit_code == 0
    assert "Regenerated 1 of 1 directories in 1 waves (mode: all)." in out
    assert (repo / "lib" / ".context.yaml").is_file()
    assert not (repo / ".context.yaml").exists()


def test_regen_unknown_scope_is_a_usage_error(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code, _, err = _run(repo, capsys, "regen", "node_modules/dep")

    assert exit_code == 2
    assert err.startswith("error: ")


def test_regen_scope_outside_root_is_rejected(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code, _, err = _run(repo, capsys, "regen", str(repo.parent))

    assert exit_code == 2
    assert "outside the project root" in err


def test_invalid_config_exits_with_config_error(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(repo / ".context.config.yaml", "concurrency: 0\n")

    exit_code, _, err = _run(repo, capsys, "status")

    assert exit_code == 2
    assert "concurrency" in err


def test_status_after_edit_and_rehash(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(repo, capsys, "regen")[0] == 0
    _write(repo / "lib" / "util.ts", "export function pad(s: string) { return s + ' '; }\n")

    exit_code, out, _ = _run(repo, capsys, "status")
    assert exit_code == 0
    assert "stale" in out
    assert "dircontext regen --stale-only" in out

    exit_code, payload = _run_json(repo, capsys, "rehash")
    assert exit_code == 0
    assert payload == {
        "command": "rehash",
        "updated": 4,
        "stale": 1,
        "skipped": [],
        "unreadable": [],
    }

    exit_code, status = _run_json(repo, capsys, "status")
    assert status["summary"]["stale"] == 0


def test_validate_flags_invalid_artifacts(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(repo, capsys, "regen")[0] == 0
    _write(repo / "lib" / ".context.yaml", "version: 1\nfingerprint: abcd1234\n")

    exit_code, payload = _run_json(repo, capsys, "validate")

    assert exit_code == 1
    assert payload["counts"] == {"valid": 3, "invalid": 1, "missing": 0}
    lib = next(item for item in payload["directories"] if item["scope"] == "lib")
    assert lib["status"] == "invalid"
    assert any(issue.startswith("summary:") for issue in lib["issues"])


def test_ignore_command_appends_once_and_affects_scans(
    repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code, out, _ = _run(repo, capsys, "ignore", "lib/")
    assert exit_code == 0
    assert out.strip() == 'Added "lib/" to .contextignore'

    exit_code, out, _ = _run(repo, capsys, "ignore", "lib/")
    assert exit_code == 0
    assert out.strip() == '"lib/" is already in .contextignore'
    assert (repo / ".contextignore").read_text(encoding="utf-8") == "lib/\n"

    exit_code, status = _run_json(repo, capsys, "status")
    assert [entry["scope"] for entry in status["directories"]] == [
        ".",
        "src",
        "src/api",
    ]


def test_show_prints_the_stored_artifact(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code, _, err = _run(repo, capsys, "show", "src")
    assert exit_code == 2
    assert "no .context.yaml found at src" in err

    assert _run(repo, capsys, "regen")[0] == 0
    exit_code, out, _ = _run(repo, capsys, "show", "src")

    assert exit_code == 0
    assert out.startswith("# src/.context.yaml\n")
    assert "scope: src" in out


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    from dircontext import __version__

    exit_code = cli_entrypoint(["--version"])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == f"dircontext {__version__}"


def test_python_module_entrypoint_runs_status(tmp_path: Path) -> None:
    repo_root = _seed_repo(tmp_path / "repo")
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath if not existing_pythonpath else f"{src_pythonpath}:{existing_pythonpath}"
    )
    env["NO_COLOR"] = "1"

    completed = subprocess.run(
        [sys.executable, "-m", "dircontext", "status", "--json"],
        cwd=repo_root,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )

    assert completed.returncode == 0, completed.stderr
    payload = json.loads(completed.stdout)
    assert payload["command"] == "status"
    assert payload["summary"]["missing"] == 4
