"""
Tests for package.json script discovery (npm, pnpm, yarn).

Workspace listing queries go through a fake executor; no package manager
needs to be installed.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskpick.command import RunnerKind
from taskpick.executor import CaptureResult, ExecutionError
from taskpick.js import (
    Npm,
    Pnpm,
    Script,
    Yarn,
    parse_package_json,
    uses_filtering,
)

PACKAGE_JSON = """{
  "name": "project",
  "version": "1.0.0",
  "private": true,
  "scripts": {
    "build": "echo build",
    "start": "echo start",
    "test": "echo test"
  },
  "devDependencies": {
    "@babel/cli": "7.12.10"
  },
  "dependencies": {
    "firebase": "^8.6.8"
  }
}
"""


class FakeExecutor:
    """Returns canned output per argv; records calls."""

    def __init__(self, outputs: dict[tuple[str, ...], CaptureResult] | None = None):
        self.outputs = outputs or {}
        self.calls: list[tuple[list[str], Path | None]] = []

    def capture(self, argv: list[str], cwd: Path | None = None) -> CaptureResult:
        self.calls.append((argv, cwd))
        result = self.outputs.get(tuple(argv))
        if result is None:
            raise ExecutionError(argv, "not installed")
        return result

    def run_tty(self, argv, cwd=None):  # pragma: no cover
        raise AssertionError("discovery must not run tasks")


def _ok(stdout: str) -> CaptureResult:
    return CaptureResult(exit_code=0, stdout=stdout, stderr="")


def _write_package(directory: Path, name: str, scripts: dict[str, str]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "package.json"
    path.write_text(
        json.dumps({"name": name, "scripts": scripts}, indent=2),
        encoding="utf-8",
    )
    return path


# ----------------------------------------------------------------
# package.json reader
# ----------------------------------------------------------------


def test_parse_package_json_reports_script_lines() -> None:
    parsed = parse_package_json(PACKAGE_JSON)

    assert parsed is not None
    assert parsed.name == "project"
    assert parsed.scripts == [
        Script("build", "echo build", 6),
        Script("start", "echo start", 7),
        Script("test", "echo test", 8),
    ]


@pytest.mark.parametrize("content", ["", "not a json format", "{", "[1, 2]", "{} {}"])
def test_parse_package_json_invalid(content: str) -> None:
    assert parse_package_json(content) is None


def test_parse_package_json_without_scripts() -> None:
    parsed = parse_package_json('{"name": "lib"}')
    assert parsed is not None
    assert parsed.name == "lib"
    assert parsed.scripts == []


def test_parse_package_json_skips_non_string_scripts() -> None:
    parsed = parse_package_json(
        '{\n"scripts": {\n"a": 1,\n"b": "echo b",\n"c": null\n}\n}'
    )
    assert parsed is not None
    assert parsed.scripts == [Script("b", "echo b", 4)]


def test_parse_package_json_escaped_keys_and_unicode() -> None:
    content = '{\n  "scripts": {\n    "say\\"hi": "echo ✓",\n    "x": "y"\n  }\n}'
    parsed = parse_package_json(content)
    assert parsed is not None
    assert parsed.scripts == [Script('say"hi', "echo ✓", 3), Script("x", "y", 4)]


# ----------------------------------------------------------------
# Filter heuristic
# ----------------------------------------------------------------


@pytest.mark.parametrize(
    "manager,body,expected",
    [
        ("pnpm", "pnpm --filter app1", True),
        ("pnpm", "pnpm -F app1 dev", True),
        ("pnpm", "pnpm -C packages/app dev", True),
        ("pnpm", "pnpm --dir packages/app build", True),
        ("pnpm", "pnpm --filter app1 run test", False),
        ("pnpm", "pnpm build", False),
        ("pnpm", "npm --filter app1", False),
        ("yarn", "yarn --filter app1", True),
        ("npm", "echo --filter", False),
        ("npm", "", False),
    ],
)
def test_uses_filtering(manager: str, body: str, expected: bool) -> None:
    assert uses_filtering(manager, body) is expected


# ----------------------------------------------------------------
# Applicability
# ----------------------------------------------------------------


def test_not_applicable_without_package_json(tmp_path: Path) -> None:
    (tmp_path / "package-lock.json").write_text("{}", encoding="utf-8")
    assert Npm(FakeExecutor()).load(tmp_path) is None


def test_not_applicable_without_lockfile(tmp_path: Path) -> None:
    _write_package(tmp_path, "app", {"build": "tsc"})
    assert Npm(FakeExecutor()).load(tmp_path) is None
    assert Pnpm(FakeExecutor()).load(tmp_path) is None
    assert Yarn(FakeExecutor()).load(tmp_path) is None


def test_npm_root_without_workspaces(tmp_path: Path) -> None:
    (tmp_path / "package-lock.json").write_text("{}", encoding="utf-8")
    (tmp_path / "package.json").write_text(PACKAGE_JSON, encoding="utf-8")
    executor = FakeExecutor(
        {("npm", "query", ".workspace", "--json"): _ok("[]")}
    )

    found = Npm(executor).load(tmp_path)

    assert found is not None
    path, commands = found
    assert path == tmp_path
    assert [c.args for c in commands] == ["run build", "run start", "run test"]
    assert [c.line_number for c in commands] == [6, 7, 8]
    assert all(c.runner_kind is RunnerKind.NPM for c in commands)
    assert executor.calls == [(["npm", "query", ".workspace", "--json"], tmp_path)]


def test_workspace_child_lists_only_own_scripts(tmp_path: Path) -> None:
    (tmp_path / "pnpm-lock.yaml").write_text("", encoding="utf-8")
    child = tmp_path / "packages" / "app1"
    _write_package(child, "app1", {"dev": "vite"})
    executor = FakeExecutor()

    found = Pnpm(executor).load(child)

    assert found is not None
    _, commands = found
    assert [c.args for c in commands] == ["run dev"]
    assert executor.calls == []


# ----------------------------------------------------------------
# Workspaces
# ----------------------------------------------------------------


def test_npm_workspace_members(tmp_path: Path) -> None:
    (tmp_path / "package-lock.json").write_text("{}", encoding="utf-8")
    _write_package(tmp_path, "root", {"lint": "eslint ."})
    app = tmp_path / "packages" / "app"
    _write_package(app, "app", {"build": "tsc"})
    listing = json.dumps([{"path": str(tmp_path)}, {"path": str(app)}])
    executor = FakeExecutor(
        {("npm", "query", ".workspace", "--json"): _ok(listing)}
    )

    _, commands = Npm(executor).load(tmp_path)

    assert [c.args for c in commands] == ["run lint", "run build --workspace=app"]
    assert commands[1].file_path == app / "package.json"


def test_pnpm_workspace_members_and_filter_skip(tmp_path: Path) -> None:
    (tmp_path / "pnpm-lock.yaml").write_text("", encoding="utf-8")
    _write_package(
        tmp_path,
        "root",
        {"dev:app1": "pnpm --filter app1 dev", "build": "pnpm -r run build"},
    )
    app1 = tmp_path / "packages" / "app1"
    _write_package(app1, "app1", {"dev": "vite"})
    executor = FakeExecutor(
        {("pnpm", "-r", "exec", "pwd"): _ok(f"{tmp_path}\n{app1}\n")}
    )

    _, commands = Pnpm(executor).load(tmp_path)

    assert [c.args for c in commands] == ["run build", "--filter app1 run dev"]


def test_yarn_workspace_members(tmp_path: Path) -> None:
    (tmp_path / "yarn.lock").write_text("", encoding="utf-8")
    _write_package(tmp_path, "root", {"test": "jest"})
    _write_package(tmp_path / "packages" / "web", "web", {"start": "next"})
    listing = (
        '{"location":".","name":"root"}\n'
        '{"location":"packages/web","name":"web"}\n'
    )
    executor = FakeExecutor(
        {("yarn", "workspaces", "list", "--json"): _ok(listing)}
    )

    _, commands = Yarn(executor).load(tmp_path)

    assert [c.args for c in commands] == ["run test", "workspace web run start"]
    assert all(c.runner_kind is RunnerKind.YARN for c in commands)


def test_workspace_listing_failure_degrades_to_base_scripts(tmp_path: Path) -> None:
    (tmp_path / "yarn.lock").write_text("", encoding="utf-8")
    _write_package(tmp_path, "root", {"test": "jest"})

    found = Yarn(FakeExecutor()).load(tmp_path)

    assert found is not None
    assert [c.args for c in found[1]] == ["run test"]


def test_workspace_listing_nonzero_exit_degrades(tmp_path: Path) -> None:
    (tmp_path / "package-lock.json").write_text("{}", encoding="utf-8")
    _write_package(tmp_path, "root", {"test": "jest"})
    executor = FakeExecutor(
        {
            ("npm", "query", ".workspace", "--json"): CaptureResult(
                exit_code=1, stdout="", stderr="ENOWORKSPACES"
            )
        }
    )

    _, commands = Npm(executor).load(tmp_path)
    assert [c.args for c in commands] == ["run test"]


def test_workspace_member_without_name_is_skipped(tmp_path: Path) -> None:
    (tmp_path / "pnpm-lock.yaml").write_text("", encoding="utf-8")
    _write_package(tmp_path, "root", {})
    anon = tmp_path / "anon"
    _write_package(anon, "", {"x": "y"})
    executor = FakeExecutor({("pnpm", "-r", "exec", "pwd"): _ok(f"{anon}\n")})

    _, commands = Pnpm(executor).load(tmp_path)
    assert commands == []
