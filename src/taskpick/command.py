# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Uniform command model shared by every runner.

A Command is identified by (runner_kind, args). The file path and line number
only locate the definition for the preview pane.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path


class RunnerKind(Enum):
    """Backing task tools. The value is both the executable and the
    ``runner-type`` string stored in the history file."""

    MAKE = "make"
    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"
    JUST = "just"
    TASK = "task"

    @property
    def executable(self) -> str:
        return self.value

    @classmethod
    def from_runner_type(cls, value: str) -> RunnerKind:
        """Decode a history ``runner-type`` string.

        Raises:
            ValueError: for unknown runner types
        """
        return cls(value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Command:
    runner_kind: RunnerKind
    args: str
    file_path: Path = field(default=Path(""), compare=False)
    line_number: int = field(default=0, compare=False)

    def label(self) -> str:
        """Display and search name, e.g. ``(make) build``."""
        return f"({self.runner_kind}) {self.args}"

    def with_extra_args(self, extra: str) -> Command:
        extra = extra.strip()
        if not extra:
            return self
        return replace(self, args=f"{self.args} {extra}")

    def __str__(self) -> str:
        return self.label()


def dedupe_commands(
    commands: list[Command], keep_first: bool = False
) -> list[Command]:
    """Drop commands with duplicate identity.

    The first occurrence keeps its position. With ``keep_first`` its
    provenance is kept too; otherwise the last occurrence's provenance wins.
    """
    positions: dict[Command, int] = {}
    result: list[Command] = []
    for c in commands:
        idx = positions.get(c)
        if idx is None:
            positions[c] = len(result)
            result.append(c)
        elif not keep_first:
            result[idx] = c
    return result
