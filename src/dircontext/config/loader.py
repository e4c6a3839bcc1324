"""
dircontext: effective config resolution

Purpose
- Combine built-in defaults, ``<root>/.context.config.yaml``, ``DIRCONTEXT_*``
  environment variables and CLI flags into one validated config.

Functional requirements
- Precedence: CLI > env > file > defaults.
- A missing config file is fine unless it was named explicitly.
- ``log_dir`` comes back as an absolute POSIX path resolved against the root.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

import yaml

from dircontext.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)
from dircontext.constants import CONFIG_FILENAME

DEFAULT_CONFIG_FILE: Final[str] = CONFIG_FILENAME
ENV_PREFIX: Final[str] = "DIRCONTEXT_"


class ConfigLoadError(ValueError):
    """The config file or an override could not be read or coerced."""


def load_config(
    root: str | Path,
    *,
    config_path: str | Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config for the project at ``root``.

    ``cli_overrides`` entries whose value is ``None`` mean "flag not given" and
    are ignored. Raises ``ConfigLoadError`` for unreadable input and
    ``ConfigValidationError`` for well-formed input with bad values.
    """

    project = Path(root).expanduser().resolve()
    if config_path is None:
        from_file = _read_config_file(project / DEFAULT_CONFIG_FILE, required=False)
    else:
        from_file = _read_config_file(Path(config_path).expanduser().resolve(), required=True)

    # Validate the file on its own first so its errors are not blamed on env/CLI.
    config = assert_valid_config(merge_config(default_config(), from_file))
    config = merge_config(config, env_overrides(os.environ if environ is None else environ))
    config = merge_config(config, _cli_layer(cli_overrides or {}))
    return normalize_paths(assert_valid_config(config), base_dir=project)


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Pick ``DIRCONTEXT_<FIELD>`` variables and coerce them by the field's default type."""

    layer: dict[str, Any] = {}
    for key, default in DEFAULT_CONFIG.items():
        name = ENV_PREFIX + key.upper()
        raw = environ.get(name)
        if raw is None:
            continue
        text = raw.strip()
        if isinstance(default, list):
            layer[key] = [part.strip() for part in text.split(",") if part.strip()]
        elif isinstance(default, int):
            try:
                layer[key] = int(text)
            except ValueError as exc:
                raise ConfigLoadError(f"{name} must be an integer, got {raw!r}") from exc
        else:
            layer[key] = text
    return layer


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    normalized = dict(config)
    for key in PATH_FIELDS:
        value = normalized.get(key)
        if isinstance(value, str):
            candidate = Path(os.path.expandvars(value)).expanduser()
            if not candidate.is_absolute():
                candidate = base_dir / candidate
            normalized[key] = Path(os.path.normpath(candidate)).as_posix()
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Compact, key-sorted JSON; identical inputs give identical text."""

    return json.dumps(dict(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if required:
            raise ConfigLoadError(f"config file not found: {path}") from None
        return {}
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"invalid YAML in {path}: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigLoadError(f"config root must be a mapping: {path}")
    return parsed


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    given = {key: value for key, value in overrides.items() if value is not None}
    unknown = sorted(set(given) - set(DEFAULT_CONFIG))
    if unknown:
        raise ConfigLoadError(f"invalid CLI override key(s): {', '.join(unknown)}")
    return given


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_overrides",
    "load_config",
    "normalize_paths",
]
