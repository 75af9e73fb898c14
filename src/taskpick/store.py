# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
YAML-backed command history for taskpick.

One document holds the history of every project, keyed by project path::

    histories:
      - path: /home/me/project
        commands:
          - runner-type: make
            name: build

Files written by older releases (make targets only) are still read::

    history:
      - path: /home/me/project
        executed-targets: [build, test]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .command import Command, RunnerKind
from .config import MAX_HISTORY


class HistoryDecodeError(ValueError):
    """History document does not match a known schema."""


@dataclass
class HistoryEntry:
    path: Path
    commands: list[Command] = field(default_factory=list)

    def append(self, command: Command, max_entries: int = MAX_HISTORY) -> None:
        """Move ``command`` to the front, newest first, capped."""
        # Provenance is not persisted.
        command = Command(command.runner_kind, command.args)
        self.commands = [c for c in self.commands if c != command]
        self.commands.insert(0, command)
        del self.commands[max_entries:]


# ----------------------------------------------------------------
# Schema decoding
# ----------------------------------------------------------------


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise HistoryDecodeError(message)


def decode_current(data: Any) -> list[HistoryEntry]:
    _require(isinstance(data, dict), "history document is not a mapping")
    histories = data.get("histories")
    _require(isinstance(histories, list), "missing 'histories' list")

    entries: list[HistoryEntry] = []
    for raw in histories:
        _require(isinstance(raw, dict), "history entry is not a mapping")
        _require(isinstance(raw.get("path"), str), "history entry has no path")
        raw_commands = raw.get("commands") or []
        _require(isinstance(raw_commands, list), "'commands' is not a list")

        commands: list[Command] = []
        for rc in raw_commands:
            _require(isinstance(rc, dict), "command is not a mapping")
            runner_type = rc.get("runner-type")
            name = rc.get("name")
            _require(
                isinstance(runner_type, str) and isinstance(name, str),
                "command needs 'runner-type' and 'name'",
            )
            try:
                kind = RunnerKind.from_runner_type(runner_type)
            except ValueError as e:
                raise HistoryDecodeError(
                    f"unknown runner-type: {runner_type!r}"
                ) from e
            commands.append(Command(kind, name))

        entries.append(HistoryEntry(Path(raw["path"]), commands))
    return entries


def decode_legacy(data: Any) -> list[HistoryEntry]:
    _require(isinstance(data, dict), "history document is not a mapping")
    history = data.get("history")
    _require(isinstance(history, list), "missing 'history' list")

    entries: list[HistoryEntry] = []
    for raw in history:
        _require(isinstance(raw, dict), "history entry is not a mapping")
        _require(isinstance(raw.get("path"), str), "history entry has no path")
        targets = raw.get("executed-targets") or []
        _require(
            isinstance(targets, list)
            and all(isinstance(t, str) for t in targets),
            "'executed-targets' is not a list of names",
        )
        entries.append(
            HistoryEntry(
                Path(raw["path"]),
                [Command(RunnerKind.MAKE, t) for t in targets],
            )
        )
    return entries


def encode(entries: list[HistoryEntry]) -> dict[str, Any]:
    return {
        "histories": [
            {
                "path": str(entry.path),
                "commands": [
                    {"runner-type": c.runner_kind.value, "name": c.args}
                    for c in entry.commands
                ],
            }
            for entry in entries
        ]
    }


def parse_history(text: str) -> list[HistoryEntry]:
    """Decode a history document, falling back to the legacy schema.

    Raises:
        HistoryDecodeError: if neither schema matches
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise HistoryDecodeError(f"invalid YAML: {e}") from e

    try:
        return decode_current(data)
    except HistoryDecodeError as current_error:
        try:
            return decode_legacy(data)
        except HistoryDecodeError:
            raise current_error from None


# ----------------------------------------------------------------
# Store
# ----------------------------------------------------------------


class HistoryStore:
    """YAML implementation of the HistoryRepository protocol.

    The file is read once on construction and rewritten on every append.
    An unreadable or undecodable file starts an empty history. A failed
    write keeps the in-memory history and is recorded in ``save_error``.
    """

    def __init__(self, path: Path, max_entries: int = MAX_HISTORY):
        self.path = path
        self.max_entries = max(1, min(max_entries, MAX_HISTORY))
        self.entries: list[HistoryEntry] = self._load()
        self.save_error: OSError | None = None

    def _load(self) -> list[HistoryEntry]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return []
        try:
            return parse_history(text)
        except HistoryDecodeError:
            return []

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(
                encode(self.entries), f, sort_keys=False, allow_unicode=True
            )

    def _find(self, project_path: Path) -> HistoryEntry | None:
        for entry in self.entries:
            if entry.path == project_path:
                return entry
        return None

    def get(self, project_path: Path) -> list[Command]:
        entry = self._find(project_path)
        return list(entry.commands) if entry else []

    def append(self, project_path: Path, command: Command) -> None:
        """Record ``command`` for ``project_path`` and persist."""
        entry = self._find(project_path)
        if entry is None:
            entry = HistoryEntry(project_path)
            self.entries.append(entry)
        entry.append(command, self.max_entries)
        try:
            self._save()
        except OSError as e:
            self.save_error = e
        else:
            self.save_error = None
