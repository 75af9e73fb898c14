# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from prompt_toolkit.application import Application
from prompt_toolkit.data_structures import Point
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import HSplit, Layout, VSplit, Window
from prompt_toolkit.layout.containers import ConditionalContainer
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Frame

from .command import Command
from .engine import Pane, SelectionEngine, State

if TYPE_CHECKING:
    from .interfaces import ConfigModel  # pragma: no cover
    from .runner import CommandRegistry  # pragma: no cover
    from .updates import VersionCheck  # pragma: no cover


# Keys forwarded to the engine by name.
ENGINE_KEYS = (
    "down",
    "c-n",
    "up",
    "c-p",
    "tab",
    "enter",
    "escape",
    "backspace",
    "c-o",
)

HINT_MAIN = "Tab: history  ↑↓/C-n C-p: move  Enter: run  C-o: add args  Esc: quit"
HINT_HISTORY = "Tab: commands  ↑↓: move  Enter/Space: run  q/Esc: quit"
HINT_OVERLAY = "Enter: run with these arguments  Esc: cancel"


# ----------------------------
# Config helpers
# ----------------------------


def _cfg_get_path(config: ConfigModel | None, path: str, default):
    if config is None:
        return default
    try:
        return config.get_path(path, default)
    except Exception:
        return default


def _cfg_dict(config: ConfigModel | None, path: str, default: dict) -> dict:
    val = _cfg_get_path(config, path, default)
    return val if isinstance(val, dict) else default


def _cfg_float(config: ConfigModel | None, path: str, default: float) -> float:
    val = _cfg_get_path(config, path, default)
    try:
        return max(0.05, float(val))
    except (TypeError, ValueError):
        return default


def _cfg_int(config: ConfigModel | None, path: str, default: int) -> int:
    val = _cfg_get_path(config, path, default)
    return val if isinstance(val, int) and val >= 0 else default


# ----------------------------
# Theme / Style
# ----------------------------


def _default_style_dict() -> dict[str, str]:
    return {
        "frame.border": "#5f87d7",
        "title": "bold #5f87d7",
        "title.inactive": "#808080",
        "selected": "reverse bold",
        "preview.focus": "bg:#3a3a3a bold",
        "preview.lineno": "#808080",
        "search": "bold",
        "hint": "#808080",
        "notice": "bold #ffd700",
        "overlay": "bg:#303030 #ffffff",
    }


def build_style(config: ConfigModel | None) -> Style:
    base = _default_style_dict()
    overrides = _cfg_dict(config, "ui.theme.style", {})
    # only keep string->string
    for k, v in list(overrides.items()):
        if isinstance(k, str) and isinstance(v, str):
            base[k] = v
    return Style.from_dict(base)


# ----------------------------
# Rendering
# ----------------------------


class PreviewCache:
    """File contents keyed by path; each file is read at most once."""

    def __init__(self) -> None:
        self._lines: dict[Path, list[str] | None] = {}

    def lines(self, path: Path) -> list[str] | None:
        if path not in self._lines:
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                self._lines[path] = None
            else:
                self._lines[path] = text.splitlines()
        return self._lines[path]


def render_preview(
    command: Command | None, cache: PreviewCache, context: int = 12
) -> StyleAndTextTuples:
    """Lines around the definition of ``command``, its own line highlighted."""
    if command is None:
        return [("class:hint", "No command selected")]
    if not command.line_number or not str(command.file_path):
        return [("class:hint", f"No preview for {command.label()}")]

    lines = cache.lines(command.file_path)
    if lines is None:
        return [("class:hint", f"Cannot read {command.file_path}")]

    focus = command.line_number - 1
    start = max(0, focus - context)
    end = min(len(lines), focus + context + 1)
    width = len(str(end))

    fragments: StyleAndTextTuples = [
        ("class:preview.lineno", f"{command.file_path}\n")
    ]
    for idx in range(start, end):
        style = "class:preview.focus" if idx == focus else ""
        fragments.append(("class:preview.lineno", f"{idx + 1:>{width}} "))
        fragments.append((style, f"{lines[idx]}\n"))
    return fragments


def render_list(
    commands: list[Command], cursor: int | None, active: bool
) -> StyleAndTextTuples:
    if not commands:
        return [("class:hint", "(no matches)")]
    fragments: StyleAndTextTuples = []
    for idx, command in enumerate(commands):
        if active and idx == cursor:
            fragments.append(("class:selected", f"> {command.label()}\n"))
        else:
            fragments.append(("", f"  {command.label()}\n"))
    return fragments


# ----------------------------
# Full-screen picker
# ----------------------------


class PickerUI:
    """Full-screen prompt_toolkit front end for a SelectionEngine.

    Every key press is handed to the engine as exactly one transition; the
    layout is re-rendered from engine state afterwards and on every
    ``ui.refresh_interval`` tick.
    """

    def __init__(
        self,
        engine: SelectionEngine,
        registry: CommandRegistry | None = None,
        config: ConfigModel | None = None,
        version_check: VersionCheck | None = None,
    ) -> None:
        self.engine = engine
        self.registry = registry
        self.config = config
        self.version_check = version_check
        self.preview_cache = PreviewCache()
        self.preview_context = _cfg_int(config, "ui.preview_context", 12)
        self.app: Application | None = None

    # -- engine bridge -------------------------------------------------

    def apply_key(self, key: str, app: Application | None = None) -> State:
        state = self.engine.handle_key(key)
        if state is not State.SELECTING and app is not None:
            app.exit(result=state)
        return state

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        def bind(name: str) -> None:
            @kb.add(name, eager=True)
            def _(event) -> None:
                self.apply_key(name, event.app)

        for name in ENGINE_KEYS:
            bind(name)

        @kb.add("c-c", eager=True)
        def _(event) -> None:
            self.engine.state = State.QUIT
            event.app.exit(result=State.QUIT)

        @kb.add(Keys.Any)
        def _(event) -> None:
            data = event.data
            if len(data) == 1 and data.isprintable():
                self.apply_key(data, event.app)

        return kb

    # -- text fragments ------------------------------------------------

    def preview_fragments(self) -> StyleAndTextTuples:
        return render_preview(
            self.engine.selected_command(),
            self.preview_cache,
            self.preview_context,
        )

    def main_fragments(self) -> StyleAndTextTuples:
        return render_list(
            self.engine.filtered_commands(),
            self.engine.cursor,
            self.engine.current_pane is Pane.MAIN,
        )

    def history_fragments(self) -> StyleAndTextTuples:
        return render_list(
            self.engine.history_view(),
            self.engine.history_cursor,
            self.engine.current_pane is Pane.HISTORY,
        )

    def search_fragments(self) -> StyleAndTextTuples:
        return [("class:search", f"> {self.engine.search_text}")]

    def overlay_fragments(self) -> StyleAndTextTuples:
        command = self.engine.argument_overlay
        if command is None:
            return []
        base = (
            self.registry.invocation_string(command)
            if self.registry is not None
            else command.label()
        )
        return [("class:overlay", f" {base} {self.engine.overlay_text}")]

    def hint_fragments(self) -> StyleAndTextTuples:
        if self.engine.argument_overlay is not None:
            hint = HINT_OVERLAY
        elif self.engine.current_pane is Pane.HISTORY:
            hint = HINT_HISTORY
        else:
            hint = HINT_MAIN
        fragments: StyleAndTextTuples = [("class:hint", hint)]

        latest = self.version_check.result() if self.version_check else None
        if latest:
            fragments.append(
                ("class:notice", f"  taskpick v{latest} is available")
            )
        return fragments

    def _title(self, text: str, pane: Pane):
        def get():
            style = (
                "class:title"
                if self.engine.current_pane is pane
                else "class:title.inactive"
            )
            return [(style, text)]

        return get

    # -- layout ----------------------------------------------------------

    def build_layout(self) -> Layout:
        engine = self.engine

        main_window = Window(
            FormattedTextControl(
                self.main_fragments,
                get_cursor_position=lambda: Point(0, engine.cursor or 0),
            ),
            wrap_lines=False,
        )
        history_window = Window(
            FormattedTextControl(
                self.history_fragments,
                get_cursor_position=lambda: Point(
                    0, engine.history_cursor or 0
                ),
            ),
            wrap_lines=False,
        )
        preview_window = Window(
            FormattedTextControl(self.preview_fragments), wrap_lines=False
        )

        overlay_open = Condition(lambda: engine.argument_overlay is not None)

        body = VSplit(
            [
                HSplit(
                    [
                        Frame(preview_window, title="Preview"),
                        Frame(
                            main_window,
                            title=self._title("Commands", Pane.MAIN),
                        ),
                    ]
                ),
                Frame(
                    history_window,
                    title=self._title("History", Pane.HISTORY),
                    width=Dimension(weight=1, max=60),
                ),
            ]
        )

        root = HSplit(
            [
                body,
                ConditionalContainer(
                    Frame(
                        Window(
                            FormattedTextControl(self.overlay_fragments),
                            height=1,
                        ),
                        title="Arguments",
                    ),
                    filter=overlay_open,
                ),
                Frame(
                    Window(FormattedTextControl(self.search_fragments), height=1)
                ),
                Window(FormattedTextControl(self.hint_fragments), height=1),
            ]
        )
        return Layout(root)

    def build_application(self) -> Application:
        app: Application = Application(
            layout=self.build_layout(),
            key_bindings=self.build_key_bindings(),
            style=build_style(self.config),
            full_screen=True,
            refresh_interval=_cfg_float(
                self.config, "ui.refresh_interval", 0.5
            ),
        )
        # Make Esc responsive; the default waits 0.5s for escape sequences.
        app.ttimeoutlen = 0.05
        return app

    def run(self) -> State:
        """Run the picker until a command is chosen or the user quits."""
        self.app = self.build_application()
        result = self.app.run()
        return result if isinstance(result, State) else self.engine.state
