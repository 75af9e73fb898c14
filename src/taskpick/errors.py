# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""Discovery errors."""

from __future__ import annotations

from pathlib import Path


class DiscoveryError(Exception):
    """A runner applied but its commands could not be listed.

    Caught per runner during discovery; the runner is left out.
    """

    def __init__(self, runner: str, reason: str) -> None:
        self.runner = runner
        self.reason = reason
        super().__init__(f"{runner}: {reason}")


class NoRunnerFoundError(Exception):
    """No supported task file was found for a directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        super().__init__(
            "No task definitions found "
            "(Makefile, package.json, justfile or Taskfile)"
        )
