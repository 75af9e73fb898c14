# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Selection state machine.

The engine knows nothing about terminals: it receives one key at a time
(prompt_toolkit key names such as ``"down"``, ``"c-n"``, ``"enter"``, or a
single printable character) and moves between three states::

    SELECTING --enter/space--> CHOSEN
    SELECTING --escape/q-----> QUIT

Two panes share the screen. The main pane shows every discovered command,
ranked by the fuzzy query; the history pane shows commands previously run
in this project that still exist.
"""

from __future__ import annotations

from enum import Enum, auto
from pathlib import Path

from .command import Command
from .interfaces import HistoryRepository
from .utils import fuzzy_filter

NEXT_KEYS = ("down", "c-n")
PREV_KEYS = ("up", "c-p")
TAB_KEYS = ("tab", "c-i")
ENTER_KEYS = ("enter", "c-m")
BACKSPACE_KEYS = ("backspace", "c-h")
ESCAPE_KEY = "escape"
OVERLAY_KEY = "c-o"
SPACE = " "
QUIT_CHAR = "q"


class State(Enum):
    SELECTING = auto()
    CHOSEN = auto()
    QUIT = auto()


class Pane(Enum):
    MAIN = auto()
    HISTORY = auto()


def _is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def merge_history(
    commands: list[Command], history: list[Command]
) -> list[Command]:
    """Map stored history onto the current commands.

    Matching is by identity, so the current provenance is used for preview.
    Entries that are no longer defined are dropped.
    """
    current = {c: c for c in commands}
    return [current[h] for h in history if h in current]


class SelectionEngine:
    def __init__(
        self,
        commands: list[Command],
        history_commands: list[Command] | None = None,
        history: HistoryRepository | None = None,
        project_path: Path | None = None,
        focus_history: bool = False,
    ):
        self.commands = list(commands)
        self.history_commands = merge_history(
            self.commands, history_commands or []
        )
        self.history = history
        self.project_path = project_path

        self.state = State.SELECTING
        self.chosen: Command | None = None

        self.search_text = ""
        self.current_pane = Pane.HISTORY if focus_history else Pane.MAIN
        self.cursor: int | None = 0 if self.commands else None
        self.history_cursor: int | None = 0 if self.history_commands else None

        self.argument_overlay: Command | None = None
        self.overlay_text = ""

    # ----------------------------------------------------------------
    # Views
    # ----------------------------------------------------------------

    def filtered_commands(self) -> list[Command]:
        """Commands ranked by the current query (recomputed every call)."""
        return fuzzy_filter(
            self.commands, [c.label() for c in self.commands], self.search_text
        )

    def history_view(self) -> list[Command]:
        return list(self.history_commands)

    def current_view(self) -> list[Command]:
        if self.current_pane is Pane.MAIN:
            return self.filtered_commands()
        return self.history_view()

    def selected_command(self) -> Command | None:
        if self.current_pane is Pane.MAIN:
            view, cursor = self.filtered_commands(), self.cursor
        else:
            view, cursor = self.history_view(), self.history_cursor
        if cursor is None or cursor >= len(view):
            return None
        return view[cursor]

    # ----------------------------------------------------------------
    # Transitions
    # ----------------------------------------------------------------

    def handle_key(self, key: str) -> State:
        """Apply one key press and return the resulting state."""
        if self.state is not State.SELECTING:
            return self.state

        if self.argument_overlay is not None:
            self._handle_overlay_key(key)
            return self.state

        if key in NEXT_KEYS:
            self._move(1)
        elif key in PREV_KEYS:
            self._move(-1)
        elif key in TAB_KEYS:
            self._toggle_pane()
        elif key in ENTER_KEYS:
            self._choose(self.selected_command())
        elif key == ESCAPE_KEY:
            self.state = State.QUIT
        elif key == OVERLAY_KEY:
            self._open_overlay()
        elif self.current_pane is Pane.HISTORY:
            if key == QUIT_CHAR:
                self.state = State.QUIT
            elif key == SPACE:
                self._choose(self.selected_command())
        elif key in BACKSPACE_KEYS:
            self._edit_search(self.search_text[:-1])
        elif _is_printable(key):
            self._edit_search(self.search_text + key)

        return self.state

    def _move(self, step: int) -> None:
        size = len(self.current_view())
        if self.current_pane is Pane.MAIN:
            if self.cursor is not None and size:
                self.cursor = (self.cursor + step) % size
        elif self.history_cursor is not None and size:
            self.history_cursor = (self.history_cursor + step) % size

    def _toggle_pane(self) -> None:
        if self.current_pane is Pane.MAIN:
            self.current_pane = Pane.HISTORY
        else:
            self.current_pane = Pane.MAIN

    def _edit_search(self, text: str) -> None:
        self.search_text = text
        self.cursor = 0 if self.filtered_commands() else None

    def _choose(
        self, command: Command | None, extra_args: str = ""
    ) -> None:
        if command is None:
            return
        self.chosen = command.with_extra_args(extra_args)
        self.state = State.CHOSEN
        if self.history is not None and self.project_path is not None:
            self.history.append(self.project_path, command)

    # ----------------------------------------------------------------
    # Argument overlay
    # ----------------------------------------------------------------

    def _open_overlay(self) -> None:
        command = self.selected_command()
        if command is None:
            return
        self.argument_overlay = command
        self.overlay_text = ""

    def _close_overlay(self) -> None:
        self.argument_overlay = None
        self.overlay_text = ""

    def _handle_overlay_key(self, key: str) -> None:
        if key == ESCAPE_KEY:
            self._close_overlay()
        elif key in ENTER_KEYS:
            command, extra = self.argument_overlay, self.overlay_text
            self._close_overlay()
            self._choose(command, extra)
        elif key in BACKSPACE_KEYS:
            self.overlay_text = self.overlay_text[:-1]
        elif _is_printable(key):
            self.overlay_text += key
