# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Data root resolution and configuration for taskpick.

Handles:
- Data root resolution (TASKPICK_DATA_HOME, ~/.config)
- History file and crash log paths
- Packaged YAML defaults loading (taskpick.defaults/config.yaml)
- User config overlay (<data_root>/taskpick/config.yaml)
- ANSI coloring constants for plain terminal output
"""

from __future__ import annotations

import os
import traceback
from datetime import datetime
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml

APP_DIR_NAME = "taskpick"
CONFIG_FILE_NAME = "config.yaml"
HISTORY_FILE_NAME = "history.yaml"

# Upper bound for history.max_entries.
MAX_HISTORY = 50


# -----------------------
# ANSI colors
# -----------------------

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "yellow": "\033[38;5;226;1m",
    "reset": "\033[0m",
    "dim": "\033[2m",
    "green": "\033[32m",
    "red": "\033[31m",
}


def colorize(text: str, color: str) -> str:
    return f"{ANSI_COLORS[color]}{text}{ANSI_COLORS['reset']}"


# -----------------------
# Config model wrapper
# -----------------------


class YAMLConfig:
    """Simple config wrapper that implements ConfigModel protocol."""

    def __init__(self, config_dict: dict[str, Any]):
        self._config = config_dict

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Nested lookup using dot-separated path.
        Example: get_path("ui.theme.style", {}) -> dict style mapping
        """
        if not path:
            return default

        cur: Any = self._config
        for part in path.split("."):
            if not isinstance(cur, dict):
                return default
            if part not in cur:
                return default
            cur = cur[part]
        return cur

    @property
    def max_history(self) -> int:
        value = self.get_path("history.max_entries", MAX_HISTORY)
        if not isinstance(value, int) or value < 1:
            return MAX_HISTORY
        return min(value, MAX_HISTORY)


# -----------------------
# Data root + file paths
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for taskpick.

    Resolution order:
    1. TASKPICK_DATA_HOME environment variable (if set)
    2. ~/.config (default)
    """
    data_home = os.getenv("TASKPICK_DATA_HOME")
    if data_home:
        return Path(data_home)
    return Path.home() / ".config"


def history_file_path(data_root: Path) -> Path:
    """<data_root>/taskpick/history.yaml"""
    return data_root / APP_DIR_NAME / HISTORY_FILE_NAME


def user_config_path(data_root: Path) -> Path:
    """<data_root>/taskpick/config.yaml"""
    return data_root / APP_DIR_NAME / CONFIG_FILE_NAME


def crash_log_path(data_root: Path) -> Path:
    """<data_root>/taskpick/logs/crash.log"""
    return data_root / APP_DIR_NAME / "logs" / "crash.log"


# -----------------------
# Packaged defaults loading
# -----------------------


def _defaults_dir() -> Path:
    """Return the installed path to packaged defaults directory."""
    return Path(
        importlib_resources.files("taskpick.defaults")
    )  # type: ignore[arg-type]


def load_defaults_yaml(filename: str) -> dict[str, Any]:
    """
    Load a YAML file from taskpick/defaults/.
    """
    defaults_dir = _defaults_dir()
    path = defaults_dir / filename
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} "
            f"(looked in {defaults_dir})"
        )

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(
            f"Defaults YAML {filename} must load to a mapping/dict."
        )
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated recursively with ``override``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(data_root: Path | None = None) -> YAMLConfig:
    """Packaged defaults, overlaid with the user's config.yaml if present.

    Raises:
        ValueError: if the user config is not valid YAML or not a mapping
    """
    config = load_defaults_yaml(CONFIG_FILE_NAME)

    if data_root is None:
        data_root = get_data_root()
    user_path = user_config_path(data_root)
    if user_path.is_file():
        try:
            with user_path.open("r", encoding="utf-8") as f:
                user = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid config file {user_path}: {e}") from e
        if not isinstance(user, dict):
            raise ValueError(
                f"Config file {user_path} must load to a mapping/dict."
            )
        config = deep_merge(config, user)

    return YAMLConfig(config)


# -----------------------
# Crash log
# -----------------------


def write_crash_log(
    error: BaseException,
    command: str = "",
    cwd: Path | None = None,
) -> None:
    """Write an entry to the crash log.

    Logs unhandled exceptions or critical failures.
    Only creates the log directory when actually needed.
    Appends to crash.log (never overwrites).
    """
    try:
        log_path = crash_log_path(get_data_root())
        log_path.parent.mkdir(parents=True, exist_ok=True)

        lines = [datetime.now().isoformat()]
        if cwd is not None:
            lines.append(f"cwd={cwd}")
        if command:
            lines.append(f"command={command}")
        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(
            "".join(
                traceback.format_exception(
                    type(error), error, error.__traceback__
                )
            )
        )
        lines.append("----")

        with log_path.open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

    except Exception:
        # Already in an error state; nothing more to do.
        pass
