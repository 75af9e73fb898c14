"""
Tests for the shared command model.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from taskpick.command import Command, RunnerKind, dedupe_commands


def test_label() -> None:
    assert Command(RunnerKind.PNPM, "--filter web run dev").label() == "(pnpm) --filter web run dev"
    assert str(Command(RunnerKind.MAKE, "build")) == "(make) build"


def test_identity_ignores_provenance() -> None:
    a = Command(RunnerKind.MAKE, "build", Path("Makefile"), 3)
    b = Command(RunnerKind.MAKE, "build", Path("other.mk"), 9)
    assert a == b
    assert hash(a) == hash(b)
    assert a != Command(RunnerKind.JUST, "build")


@pytest.mark.parametrize("kind", list(RunnerKind))
def test_runner_kind_properties(kind: RunnerKind) -> None:
    assert kind.executable == kind.value
    assert RunnerKind.from_runner_type(kind.value) is kind


def test_unknown_runner_type() -> None:
    with pytest.raises(ValueError):
        RunnerKind.from_runner_type("cargo")


def test_with_extra_args() -> None:
    base = Command(RunnerKind.NPM, "run test", Path("package.json"), 4)

    extended = base.with_extra_args("  -- --watch ")

    assert extended.args == "run test -- --watch"
    assert extended.line_number == 4
    assert base.with_extra_args("   ") is base


def test_dedupe_keeps_first_position_and_last_provenance() -> None:
    commands = [
        Command(RunnerKind.MAKE, "a", Path("x"), 1),
        Command(RunnerKind.MAKE, "b", Path("x"), 2),
        Command(RunnerKind.MAKE, "a", Path("y"), 7),
    ]

    result = dedupe_commands(commands)

    assert [c.args for c in result] == ["a", "b"]
    assert result[0].file_path == Path("y")
    assert result[0].line_number == 7


def test_dedupe_keep_first() -> None:
    commands = [
        Command(RunnerKind.MAKE, "a", Path("x"), 1),
        Command(RunnerKind.MAKE, "a", Path("y"), 7),
    ]
    (only,) = dedupe_commands(commands, keep_first=True)
    assert only.line_number == 1
