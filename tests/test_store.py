# tests/test_store.py
"""
Tests for the YAML history store.

The history file is always read through HistoryStore; a broken or foreign
file must never be fatal, it just starts an empty history.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from taskpick.command import Command, RunnerKind
from taskpick.store import MAX_HISTORY, HistoryDecodeError, HistoryStore, parse_history

PROJECT = Path("/home/me/project")
OTHER = Path("/home/me/other")


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "taskpick" / "history.yaml"


@pytest.fixture
def store(history_path: Path) -> HistoryStore:
    return HistoryStore(history_path)


def _make(name: str) -> Command:
    return Command(RunnerKind.MAKE, name)


# ----------------------------------------------------------------
# append / get
# ----------------------------------------------------------------


def test_empty_store(store: HistoryStore) -> None:
    assert store.get(PROJECT) == []
    assert store.save_error is None


def test_append_creates_file_and_parents(store: HistoryStore, history_path: Path) -> None:
    store.append(PROJECT, _make("build"))

    assert history_path.exists()
    data = yaml.safe_load(history_path.read_text(encoding="utf-8"))
    assert data == {
        "histories": [
            {
                "path": str(PROJECT),
                "commands": [{"runner-type": "make", "name": "build"}],
            }
        ]
    }


def test_append_is_newest_first_and_moves_duplicates(store: HistoryStore) -> None:
    store.append(PROJECT, _make("build"))
    store.append(PROJECT, _make("test"))
    store.append(PROJECT, _make("build"))

    assert store.get(PROJECT) == [_make("build"), _make("test")]



def test_append_same_command_twice_is_idempotent(store: HistoryStore) -> None:
    store.append(PROJECT, _make("build"))
    before = store.get(PROJECT)
    store.append(PROJECT, _make("build"))
    assert store.get(PROJECT) == before


def test_runner_kind_is_part_of_identity(store: HistoryStore) -> None:
    store.append(PROJECT, Command(RunnerKind.NPM, "run build"))
    store.append(PROJECT, Command(RunnerKind.PNPM, "run build"))
    assert len(store.get(PROJECT)) == 2


def test_projects_are_separate(store: HistoryStore) -> None:
    store.append(PROJECT, _make("build"))
    store.append(OTHER, _make("lint"))
    assert store.get(PROJECT) == [_make("build")]
    assert store.get(OTHER) == [_make("lint")]


def test_history_is_capped(store: HistoryStore) -> None:
    for i in range(MAX_HISTORY + 10):
        store.append(PROJECT, _make(f"t{i}"))

    history = store.get(PROJECT)
    assert len(history) == MAX_HISTORY
    assert history[0] == _make(f"t{MAX_HISTORY + 9}")


def test_custom_cap(history_path: Path) -> None:
    store = HistoryStore(history_path, max_entries=3)
    for name in "abcde":
        store.append(PROJECT, _make(name))
    assert [c.args for c in store.get(PROJECT)] == ["e", "d", "c"]


def test_provenance_is_not_persisted(store: HistoryStore, history_path: Path) -> None:
    store.append(PROJECT, Command(RunnerKind.JUST, "fmt", Path("/x/justfile"), 7))

    reloaded = HistoryStore(history_path)
    (cmd,) = reloaded.get(PROJECT)
    assert cmd == Command(RunnerKind.JUST, "fmt")
    assert cmd.file_path == Path("")
    assert cmd.line_number == 0


def test_round_trip(store: HistoryStore, history_path: Path) -> None:
    commands = [
        Command(RunnerKind.TASK, "docs:serve"),
        Command(RunnerKind.YARN, "workspace web run start"),
        _make("build"),
    ]
    for c in reversed(commands):
        store.append(PROJECT, c)

    assert HistoryStore(history_path).get(PROJECT) == commands


# ----------------------------------------------------------------
# Decoding + legacy schema
# ----------------------------------------------------------------


def test_legacy_schema_is_read(history_path: Path) -> None:
    history_path.parent.mkdir(parents=True)
    history_path.write_text(
        "history:\n"
        f"  - path: {PROJECT}\n"
        "    executed-targets: [test, build]\n",
        encoding="utf-8",
    )

    store = HistoryStore(history_path)

    assert store.get(PROJECT) == [_make("test"), _make("build")]


def test_legacy_file_is_rewritten_in_current_schema(history_path: Path) -> None:
    history_path.parent.mkdir(parents=True)
    history_path.write_text(
        f"history:\n  - path: {PROJECT}\n    executed-targets: [test]\n",
        encoding="utf-8",
    )
    HistoryStore(history_path).append(PROJECT, _make("build"))

    data = yaml.safe_load(history_path.read_text(encoding="utf-8"))
    assert data["histories"][0]["commands"] == [
        {"runner-type": "make", "name": "build"},
        {"runner-type": "make", "name": "test"},
    ]


def test_unknown_runner_type_fails_decoding() -> None:
    text = (
        "histories:\n"
        "  - path: /p\n"
        "    commands:\n"
        "      - {runner-type: cargo, name: build}\n"
    )
    with pytest.raises(HistoryDecodeError):
        parse_history(text)


@pytest.mark.parametrize(
    "content",
    [
        "",
        "::: not yaml :::\n  - [",
        "just a string",
        "histories: 3",
        "histories:\n  - path: /p\n    commands:\n      - {runner-type: cargo, name: x}\n",
    ],
)
def test_unreadable_history_starts_empty(history_path: Path, content: str) -> None:
    history_path.parent.mkdir(parents=True)
    history_path.write_text(content, encoding="utf-8")

    store = HistoryStore(history_path)

    assert store.get(Path("/p")) == []
    store.append(Path("/p"), _make("ok"))
    assert HistoryStore(history_path).get(Path("/p")) == [_make("ok")]


def test_unwritable_history_keeps_in_memory_entries(tmp_path: Path) -> None:
    blocker = tmp_path / "taskpick"
    blocker.write_text("not a directory", encoding="utf-8")
    store = HistoryStore(blocker / "history.yaml")

    store.append(PROJECT, _make("build"))

    assert isinstance(store.save_error, OSError)
    assert store.get(PROJECT) == [_make("build")]


def test_save_error_clears_after_successful_write(history_path: Path) -> None:
    store = HistoryStore(history_path)
    store.save_error = OSError("earlier failure")
    store.append(PROJECT, _make("build"))
    assert store.save_error is None
