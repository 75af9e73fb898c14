# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Runners and the command registry.

``discover()`` builds one Runner per applicable task tool, always in the
same order: make, npm, pnpm, yarn, just, task. A runner that applies but
fails to list its commands is skipped; the others are still offered.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from pathlib import Path

from . import just, make, taskfile
from .command import Command, RunnerKind
from .errors import DiscoveryError, NoRunnerFoundError
from .executor import ExecutionError, TTYResult
from .interfaces import Executor
from .js import Npm, Pnpm, Yarn


@dataclass
class Runner:
    """One task tool and the commands found for it."""

    kind: RunnerKind
    path: Path
    commands: list[Command] = field(default_factory=list)

    def list(self) -> list[Command]:
        return list(self.commands)

    def invocation_string(self, command: Command) -> str:
        """What the user would type, e.g. ``pnpm --filter app1 run build``."""
        return f"{self.kind.executable} {command.args}"

    def argv(self, command: Command) -> list[str]:
        try:
            args = shlex.split(command.args)
        except ValueError as e:
            raise ExecutionError(
                [self.kind.executable, command.args], f"cannot split arguments: {e}"
            ) from e
        return [self.kind.executable, *args]

    def execute(
        self, command: Command, executor: Executor, cwd: Path | None = None
    ) -> TTYResult:
        return executor.run_tty(self.argv(command), cwd=cwd)


def _load_runner(
    kind: RunnerKind, directory: Path, executor: Executor
) -> tuple[Path, list[Command]] | None:
    match kind:
        case RunnerKind.MAKE:
            return make.load(directory)
        case RunnerKind.NPM:
            return Npm(executor).load(directory)
        case RunnerKind.PNPM:
            return Pnpm(executor).load(directory)
        case RunnerKind.YARN:
            return Yarn(executor).load(directory)
        case RunnerKind.JUST:
            return just.load(directory)
        case RunnerKind.TASK:
            return taskfile.load(directory, executor)


class CommandRegistry:
    """Every runner found for one project directory."""

    def __init__(self, directory: Path, runners: list[Runner]):
        self.directory = directory
        self.runners = runners

    def list(self) -> list[Command]:
        commands: list[Command] = []
        for runner in self.runners:
            commands.extend(runner.list())
        return commands

    def runner_for(self, command: Command) -> Runner:
        for runner in self.runners:
            if runner.kind is command.runner_kind:
                return runner
        raise LookupError(f"no runner for {command.runner_kind}")

    def invocation_string(self, command: Command) -> str:
        return self.runner_for(command).invocation_string(command)

    def execute(self, command: Command, executor: Executor) -> TTYResult:
        """Run ``command`` in the project directory with the user's terminal.

        Raises:
            ExecutionError: if the tool cannot be started
        """
        return self.runner_for(command).execute(
            command, executor, cwd=self.directory
        )


def discover(directory: Path, executor: Executor) -> CommandRegistry:
    """Build the registry for ``directory``.

    Raises:
        NoRunnerFoundError: if no runner applies
    """
    runners: list[Runner] = []
    for kind in RunnerKind:
        try:
            found = _load_runner(kind, directory, executor)
        except DiscoveryError:
            continue
        if found is None:
            continue
        path, commands = found
        runners.append(Runner(kind, path, commands))

    if not runners:
        raise NoRunnerFoundError(directory)

    return CommandRegistry(directory, runners)
