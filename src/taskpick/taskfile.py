# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Task (taskfile.dev) discovery.

Taskfiles support includes, variables and templating, so tasks are listed
by the ``task`` tool itself::

    task --list-all --json
    {"tasks": [{"task": "build", "location": {"line": 4, "taskfile": "..."}}]}
"""

from __future__ import annotations

import json
from pathlib import Path

from .command import Command, RunnerKind, dedupe_commands
from .errors import DiscoveryError
from .executor import ExecutionError
from .interfaces import Executor
from .utils import find_file_in_ancestors

TASKFILE_NAMES = (
    "Taskfile.yml",
    "taskfile.yml",
    "Taskfile.yaml",
    "taskfile.yaml",
    "Taskfile.dist.yml",
    "taskfile.dist.yml",
    "Taskfile.dist.yaml",
    "taskfile.dist.yaml",
)

LIST_ARGV = ["task", "--list-all", "--json"]


def find_taskfile(directory: Path) -> Path | None:
    return find_file_in_ancestors(directory, TASKFILE_NAMES)


def parse_task_list(output: str, default_path: Path) -> list[Command]:
    """Decode ``task --list-all --json`` output.

    Raises:
        DiscoveryError: if the output is not the expected shape
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as e:
        raise DiscoveryError("task", f"invalid JSON from task: {e}") from e

    tasks = data.get("tasks") if isinstance(data, dict) else None
    if not isinstance(tasks, list):
        raise DiscoveryError("task", "task output has no 'tasks' list")

    commands: list[Command] = []
    for entry in tasks:
        if not isinstance(entry, dict) or not isinstance(entry.get("task"), str):
            raise DiscoveryError("task", f"unexpected task entry: {entry!r}")

        location = entry.get("location") or {}
        if not isinstance(location, dict):
            raise DiscoveryError("task", f"unexpected task location: {location!r}")
        line = location.get("line", 0)
        taskfile = location.get("taskfile") or ""
        if isinstance(line, bool) or not isinstance(line, int) or not isinstance(taskfile, str):
            raise DiscoveryError("task", f"unexpected task location: {location!r}")
        commands.append(
            Command(
                RunnerKind.TASK,
                entry["task"],
                Path(taskfile) if taskfile else default_path,
                line,
            )
        )
    return commands


def load(
    directory: Path, executor: Executor
) -> tuple[Path, list[Command]] | None:
    """Discover tasks for ``directory``.

    Returns:
        (taskfile_path, commands) or None if there is no Taskfile

    Raises:
        DiscoveryError: if ``task`` cannot be run or its output is unusable
    """
    taskfile = find_taskfile(directory)
    if taskfile is None:
        return None

    try:
        result = executor.capture(list(LIST_ARGV), cwd=directory)
    except ExecutionError as e:
        raise DiscoveryError("task", str(e)) from e

    if result.exit_code != 0:
        detail = result.stderr.strip() or f"exit code {result.exit_code}"
        raise DiscoveryError("task", f"task --list-all failed: {detail}")

    return taskfile, dedupe_commands(parse_task_list(result.stdout, taskfile))
