"""
dircontext: unit tests for config loader

Purpose
- Validate deterministic config loading from defaults, YAML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Env var mapping and type coercion.
- ``log_dir`` normalization relative to the project root.
- Strict rejection of unknown and malformed values.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dircontext.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from dircontext.config.schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    validate_config,
)


def _write_config(root: Path, text: str, name: str = ".context.config.yaml") -> Path:
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_a_config_file(tmp_path: Path) -> None:
    loaded = load_config(tmp_path, environ={})

    assert loaded["ignore"] == []
    assert loaded["max_depth"] == DEFAULT_CONFIG["max_depth"]
    assert loaded["concurrency"] == 1
    assert loaded["mode"] == "lean"
    assert loaded["log_level"] == "INFO"
    assert loaded["min_tokens"] == 0
    assert loaded["log_dir"] == (tmp_path.resolve() / ".dircontext/logs").as_posix()


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    _write_config(tmp_path, "concurrency: 2\nmode: full\n")

    file_loaded = load_config(tmp_path, environ={})
    env_loaded = load_config(tmp_path, environ={"DIRCONTEXT_CONCURRENCY": "3"})
    cli_loaded = load_config(
        tmp_path,
        environ={"DIRCONTEXT_CONCURRENCY": "3"},
        cli_overrides={"concurrency": 4, "mode": None},
    )

    assert file_loaded["concurrency"] == 2
    assert env_loaded["concurrency"] == 3
    assert cli_loaded["concurrency"] == 4
    assert cli_loaded["mode"] == "full"


def test_env_mapping_coerces_lists_ints_and_levels(tmp_path: Path) -> None:
    loaded = load_config(
        tmp_path,
        environ={
            "DIRCONTEXT_IGNORE": "dist, build/ ,,*.gen.ts",
            "DIRCONTEXT_MAX_DEPTH": " 4 ",
            "DIRCONTEXT_LOG_LEVEL": "debug",
            "DIRCONTEXT_MIN_TOKENS": "2048",
            "UNRELATED": "ignored",
        },
    )

    assert loaded["ignore"] == ["dist", "build/", "*.gen.ts"]
    assert loaded["max_depth"] == 4
    assert loaded["log_level"] == "DEBUG"
    assert loaded["min_tokens"] == 2048


def test_invalid_env_coercion_raises_actionable_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="DIRCONTEXT_MAX_DEPTH"):
        load_config(tmp_path, environ={"DIRCONTEXT_MAX_DEPTH": "deep"})


@pytest.mark.parametrize(
    ("text", "field"),
    [
        ("concurrency: 0\n", "concurrency"),
        ("max_depth: -1\n", "max_depth"),
        ("min_tokens: -5\n", "min_tokens"),
        ("mode: verbose\n", "mode"),
        ("concurrency: true\n", "concurrency"),
        ("ignore: dist\n", "ignore"),
        ("log_level: TRACE\n", "log_level"),
        ("colour: blue\n", "colour"),
    ],
)
def test_invalid_file_values_are_reported_by_field(tmp_path: Path, text: str, field: str) -> None:
    _write_config(tmp_path, text)

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(tmp_path, environ={})

    assert field in {issue.path for issue in excinfo.value.issues}


def test_invalid_env_value_fails_validation(tmp_path: Path) -> None:
    with pytest.raises(ConfigValidationError, match="concurrency"):
        load_config(tmp_path, environ={"DIRCONTEXT_CONCURRENCY": "0"})


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="not found"):
        load_config(tmp_path, config_path=tmp_path / "missing.yaml", environ={})


def test_explicit_config_path_is_used(tmp_path: Path) -> None:
    path = _write_config(tmp_path, "mode: full\n", name="conf/custom.yaml")

    loaded = load_config(tmp_path, config_path=path, environ={})

    assert loaded["mode"] == "full"


def test_invalid_yaml_and_non_mapping_roots(tmp_path: Path) -> None:
    _write_config(tmp_path, "ignore: [unclosed\n")
    with pytest.raises(ConfigLoadError, match="invalid YAML"):
        load_config(tmp_path, environ={})

    _write_config(tmp_path, "- a\n- b\n")
    with pytest.raises(ConfigLoadError, match="mapping"):
        load_config(tmp_path, environ={})


def test_empty_config_file_means_defaults(tmp_path: Path) -> None:
    _write_config(tmp_path, "")

    assert load_config(tmp_path, environ={})["mode"] == "lean"


def test_log_dir_is_normalized_relative_to_root(tmp_path: Path) -> None:
    _write_config(tmp_path, "log_dir: ./logs/../run-logs\n")

    loaded = load_config(tmp_path, environ={})
    absolute = load_config(tmp_path, environ={}, cli_overrides={"log_dir": "/var/tmp/dc"})

    assert loaded["log_dir"] == (tmp_path.resolve() / "run-logs").as_posix()
    assert absolute["log_dir"] == "/var/tmp/dc"


def test_unknown_cli_override_key_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="dry_run"):
        load_config(tmp_path, environ={}, cli_overrides={"dry_run": True})


def test_dump_effective_config_is_deterministic(tmp_path: Path) -> None:
    env = {"DIRCONTEXT_IGNORE": "b,a", "DIRCONTEXT_MODE": "full"}

    first = dump_effective_config(load_config(tmp_path, environ=env))
    second = dump_effective_config(load_config(tmp_path, environ=env))

    assert first == second
    parsed = json.loads(first)
    assert list(parsed) == sorted(parsed)
    assert parsed["ignore"] == ["b", "a"]


def test_validate_config_reports_missing_and_non_mapping() -> None:
    result = validate_config({"mode": "lean"})

    assert not result.is_valid
    assert {"ignore", "max_depth", "concurrency", "log_level", "log_dir"} <= {
        issue.path for issue in result.issues
    }
    assert validate_config(["not", "a", "mapping"]).issues[0].path == "<root>"
    assert validate_config(dict(DEFAULT_CONFIG)).is_valid


def test_config_package_exports_loader_and_errors(tmp_path: Path) -> None:
    import dircontext.config as config_pkg

    assert config_pkg.load_config(tmp_path, environ={})["concurrency"] == 1
    with pytest.raises(config_pkg.ConfigLoadError):
        config_pkg.load_config(tmp_path, config_path=tmp_path / "nope.yaml", environ={})
