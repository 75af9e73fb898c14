# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep discovery, the selection engine and the UI testable
without real task tools, a real history file, or a terminal.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .command import Command  # pragma: no cover
    from .executor import CaptureResult, TTYResult  # pragma: no cover


class Executor(Protocol):
    """Protocol for external tool invocation."""

    def capture(
        self, argv: list[str], cwd: Path | None = None
    ) -> CaptureResult:
        """Run a discovery query and return its buffered output."""
        ...

    def run_tty(
        self, argv: list[str], cwd: Path | None = None
    ) -> TTYResult:
        """Run a task tool attached to the user's terminal."""
        ...


class HistoryRepository(Protocol):
    """Protocol for persisted per-project command history."""

    def get(self, project_path: Path) -> list[Command]:
        """Commands executed in ``project_path``, newest first."""
        ...

    def append(self, project_path: Path, command: Command) -> None:
        """Record ``command`` as the newest entry for ``project_path``."""
        ...


class ConfigModel(Protocol):
    """Protocol for configuration access."""

    def get_path(self, path: str, default: Any = None) -> Any:
        """Nested lookup using a dot-separated path."""
        ...
