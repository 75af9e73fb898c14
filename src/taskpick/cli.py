# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
taskpick CLI entry point.

Design:
- CLI owns process startup: config, history file and discovery.
- SelectionEngine is the session state machine (history store injected).
- PickerUI is the full-screen prompt_toolkit front end.
- The chosen command runs after the UI has exited, attached to the terminal.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

from . import __version__, config
from .command import Command
from .config import colorize
from .engine import SelectionEngine, State, merge_history
from .errors import NoRunnerFoundError
from .executor import ExecutionError, SubprocessExecutor
from .interfaces import Executor
from .runner import CommandRegistry, discover
from .store import HistoryStore
from .updates import DEFAULT_URL, VersionCheck, version_check_enabled

HELP_TEXT = """\
taskpick: fuzzy-find and run tasks from Makefiles, package.json scripts,
justfiles and Taskfiles.

USAGE:
  taskpick [SUBCOMMAND]

SUBCOMMANDS:
  repeat, --repeat, -r      Run the last command executed in this directory
  history, --history, -h    Open the picker with the history pane focused
  version, --version, -v    Show version
  help, --help              Show this help
  (none)                    Open the picker
"""

HELP_ARGS = ("help", "--help")
VERSION_ARGS = ("version", "--version", "-v")
REPEAT_ARGS = ("repeat", "--repeat", "-r")
HISTORY_ARGS = ("history", "--history", "-h")


def _error(output_fn: Callable[[str], None], message: str) -> None:
    output_fn(colorize(f"[ERROR] {message}", "red"))


def _warn_unsaved(store: HistoryStore, output_fn: Callable[[str], None]) -> None:
    if store.save_error is not None:
        output_fn(
            colorize(f"[WARN] History not saved: {store.save_error}", "yellow")
        )


def _open_history(cfg: config.YAMLConfig) -> HistoryStore:
    path = config.history_file_path(config.get_data_root())
    return HistoryStore(path, max_entries=cfg.max_history)


def _execute(
    registry: CommandRegistry,
    command: Command,
    executor: Executor,
    output_fn: Callable[[str], None],
) -> int:
    output_fn(colorize(registry.invocation_string(command), "cyan"))
    result = registry.execute(command, executor)
    return result.exit_code


def run_repeat(
    cwd: Path,
    cfg: config.YAMLConfig,
    executor: Executor,
    output_fn: Callable[[str], None] = print,
) -> int:
    """Re-run the newest history entry for ``cwd`` that still exists."""
    registry = discover(cwd, executor)
    store = _open_history(cfg)

    available = merge_history(registry.list(), store.get(cwd))
    if not available:
        _error(output_fn, "No command found")
        return 1

    command = available[0]
    store.append(cwd, command)
    _warn_unsaved(store, output_fn)
    return _execute(registry, command, executor, output_fn)


def run_picker(
    cwd: Path,
    cfg: config.YAMLConfig,
    executor: Executor,
    focus_history: bool = False,
    output_fn: Callable[[str], None] = print,
    ui_factory: Callable | None = None,
) -> int:
    registry = discover(cwd, executor)
    store = _open_history(cfg)

    engine = SelectionEngine(
        registry.list(),
        store.get(cwd),
        history=store,
        project_path=cwd,
        focus_history=focus_history
        or bool(cfg.get_path("ui.focus_history", False)),
    )

    version_check = None
    if version_check_enabled(cfg.get_path("version_check.enabled", True)):
        version_check = VersionCheck(
            __version__,
            url=cfg.get_path("version_check.url", DEFAULT_URL),
            timeout=float(cfg.get_path("version_check.timeout", 3.0)),
        )
        version_check.start()

    if ui_factory is None:
        from .ui import PickerUI

        ui_factory = PickerUI

    ui = ui_factory(
        engine, registry=registry, config=cfg, version_check=version_check
    )
    state = ui.run()

    if state is not State.CHOSEN or engine.chosen is None:
        return 0
    _warn_unsaved(store, output_fn)
    return _execute(registry, engine.chosen, executor, output_fn)


def main(
    argv: list[str] | None = None,
    executor: Executor | None = None,
    output_fn: Callable[[str], None] = print,
    ui_factory: Callable | None = None,
) -> int:
    """Main entry point for the taskpick CLI."""
    args = sys.argv[1:] if argv is None else argv

    if len(args) > 1 or (args and args[0] not in (
        HELP_ARGS + VERSION_ARGS + REPEAT_ARGS + HISTORY_ARGS
    )):
        output_fn("Invalid argument.")
        output_fn(HELP_TEXT)
        return 1

    sub = args[0] if args else None
    if sub in HELP_ARGS:
        output_fn(HELP_TEXT)
        return 0
    if sub in VERSION_ARGS:
        output_fn(f"v{__version__}")
        return 0

    cwd = Path.cwd()
    if executor is None:
        executor = SubprocessExecutor()

    try:
        cfg = config.load_config()
    except ValueError as e:
        _error(output_fn, str(e))
        return 1

    try:
        if sub in REPEAT_ARGS:
            return run_repeat(cwd, cfg, executor, output_fn)
        return run_picker(
            cwd,
            cfg,
            executor,
            focus_history=sub in HISTORY_ARGS,
            output_fn=output_fn,
            ui_factory=ui_factory,
        )
    except NoRunnerFoundError as e:
        _error(output_fn, str(e))
        return 1
    except ExecutionError as e:
        _error(output_fn, str(e))
        return 1
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        config.write_crash_log(e, command=" ".join(args), cwd=cwd)
        _error(
            output_fn,
            f"Unhandled exception: {type(e).__name__}: {e} "
            f"(see {config.crash_log_path(config.get_data_root())})",
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
