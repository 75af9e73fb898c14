# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Subprocess-backed executor implementation for taskpick.

This module provides:
- run_tty(): run the chosen task tool with the user's terminal
  (stdin/stdout/stderr inherited, no capture)
- capture(): run a discovery query (workspace listing, task listing)
  and return its buffered output

Both block until the child exits. Discovery calls are made before the
selector starts, so a hanging tool delays startup only.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path


class ExecutionError(Exception):
    """Raised when a task tool cannot be spawned or waited on."""

    def __init__(self, argv: list[str], reason: str) -> None:
        self.argv = argv
        self.reason = reason
        super().__init__(f"failed to run `{' '.join(argv)}`: {reason}")


@dataclass(frozen=True)
class CaptureResult:
    exit_code: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class TTYResult:
    """Result from passthrough execution (no output capture)."""

    exit_code: int


class SubprocessExecutor:
    """Subprocess implementation of the Executor protocol."""

    def capture(
        self, argv: list[str], cwd: Path | None = None
    ) -> CaptureResult:
        """Run ``argv`` and return its buffered output.

        Raises:
            ExecutionError: if the program cannot be started
        """
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                cwd=str(cwd) if cwd is not None else None,
            )
        except OSError as e:
            raise ExecutionError(argv, str(e)) from e

        return CaptureResult(
            exit_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    def run_tty(
        self, argv: list[str], cwd: Path | None = None
    ) -> TTYResult:
        """Run ``argv`` with full terminal control and wait for it.

        The command inherits stdin/stdout/stderr from this process so
        interactive tasks (prompts, watchers) behave normally.

        Raises:
            ExecutionError: if spawning or waiting fails
        """
        try:
            proc = subprocess.Popen(
                argv,
                stdin=None,  # inherit from parent
                stdout=None,
                stderr=None,
                cwd=str(cwd) if cwd is not None else None,
            )
        except OSError as e:
            raise ExecutionError(argv, f"failed to spawn: {e}") from e

        try:
            exit_code = proc.wait()
        except KeyboardInterrupt:
            # The child got the same SIGINT; let it finish shutting down.
            exit_code = proc.wait()
        except OSError as e:
            raise ExecutionError(argv, f"failed to wait: {e}") from e

        return TTYResult(exit_code=exit_code)
