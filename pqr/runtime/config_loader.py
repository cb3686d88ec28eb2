"""Config loader for pqr.

Built-in defaults are overlaid with ``config.yaml`` and then
``config.local.yaml`` from the config directory. Missing files are treated as
empty.
"""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

_CONFIG_DIR_ENV = "PQR_CONFIG_DIR"
_EXEC_MODE_ENV = "PQR_EXEC_MODE"


class ConfigError(ValueError):
    """A config file exists but does not hold a YAML mapping."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Invalid config {path}: {reason}")
        self.path = path


def detect_config_dir(env: dict[str, str] | None = None) -> Path:
    env = env if env is not None else os.environ
    explicit = env.get(_CONFIG_DIR_ENV)
    if explicit:
        return Path(explicit).expanduser()
    xdg = env.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg).expanduser() / "pqr"
    return Path.home() / ".config" / "pqr"


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(path, str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(path, f"expected a mapping, got {type(data).__name__}")
    # Known sections are always mappings.
    for section in default_config():
        if section in data and not isinstance(data[section], dict):
            raise ConfigError(path, f"section {section!r} must be a mapping, got {type(data[section]).__name__}")
    return data


def deep_merge(base: dict, override: dict) -> dict:
    out = deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = deepcopy(v)
    return out


def default_config() -> dict:
    return {
        "manifest": {"filename": "package.json", "bin_dir": "node_modules/.bin"},
        "shell": {"path": "sh"},
        "exec": {"mode": "auto"},
        "log": {"path": None},
    }


def config_paths(config_dir: Path | None = None, env: dict[str, str] | None = None) -> tuple[Path, Path]:
    cd = config_dir or detect_config_dir(env)
    return cd / "config.yaml", cd / "config.local.yaml"


def load_config(config_dir: Path | None = None, env: dict[str, str] | None = None) -> dict[str, Any]:
    env = env if env is not None else os.environ
    base_path, local_path = config_paths(config_dir, env)

    merged = deep_merge(default_config(), _load_yaml(base_path))
    merged = deep_merge(merged, _load_yaml(local_path))

    mode = env.get(_EXEC_MODE_ENV)
    if mode:
        merged.setdefault("exec", {})["mode"] = mode
    return merged
