# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
JavaScript package-manager script discovery (npm, pnpm, yarn).

A manager applies when ``package.json`` is present and its lock file is
found either next to it (workspace root) or in an ancestor directory
(workspace child). At a workspace root, member packages are listed with the
manager's own workspace query; if that query fails only the root scripts
are offered.

Each manager owns its invocation syntax:
- npm:  ``run build`` / ``run build --workspace=app1``
- pnpm: ``run build`` / ``--filter app1 run build``
- yarn: ``run build`` / ``workspace app1 run build``
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from json.decoder import scanstring
from pathlib import Path
from typing import Any

from .command import Command, RunnerKind, dedupe_commands
from .errors import DiscoveryError
from .executor import ExecutionError
from .interfaces import Executor
from .utils import find_file_in_ancestors, list_file_names

METADATA_FILE_NAME = "package.json"
SCRIPTS_KEY = "scripts"

FILTER_FLAGS = ("-F", "--filter", "-C", "--dir")

_WS = re.compile(r"[ \t\n\r]*")
_decoder = json.JSONDecoder()


# ----------------------------------------------------------------
# package.json reading with line numbers
# ----------------------------------------------------------------


@dataclass(frozen=True)
class Script:
    name: str
    body: str
    line: int


@dataclass(frozen=True)
class PackageJson:
    name: str
    scripts: list[Script] = field(default_factory=list)


def _skip_ws(s: str, idx: int) -> int:
    return _WS.match(s, idx).end()


def _expect(s: str, idx: int, ch: str) -> None:
    if idx >= len(s) or s[idx] != ch:
        raise json.JSONDecodeError(f"Expecting {ch!r}", s, idx)


def _scan_object(
    s: str, idx: int, spanned_keys: frozenset[str] = frozenset()
) -> tuple[list[tuple[str, int, Any]], int]:
    """Decode the object starting at ``s[idx]`` keeping key offsets.

    Returns ``([(key, key_offset, value), ...], end_index)``. Values of
    keys in ``spanned_keys`` that are objects are scanned recursively (one
    level) instead of being decoded to dicts.
    """
    _expect(s, idx, "{")
    idx = _skip_ws(s, idx + 1)
    entries: list[tuple[str, int, Any]] = []

    if idx < len(s) and s[idx] == "}":
        return entries, idx + 1

    while True:
        _expect(s, idx, '"')
        key_offset = idx
        key, idx = scanstring(s, idx + 1)
        idx = _skip_ws(s, idx)
        _expect(s, idx, ":")
        idx = _skip_ws(s, idx + 1)

        if key in spanned_keys and idx < len(s) and s[idx] == "{":
            value, idx = _scan_object(s, idx)
        else:
            value, idx = _decoder.raw_decode(s, idx)
        entries.append((key, key_offset, value))

        idx = _skip_ws(s, idx)
        if idx < len(s) and s[idx] == ",":
            idx = _skip_ws(s, idx + 1)
            continue
        _expect(s, idx, "}")
        return entries, idx + 1


def _line_of(s: str, offset: int) -> int:
    return s.count("\n", 0, offset) + 1


def parse_package_json(content: str) -> PackageJson | None:
    """Parse package.json text into its name and scripts.

    Script line numbers are 1-based and point at the script's key.
    Returns None for empty or invalid JSON.
    """
    try:
        start = _skip_ws(content, 0)
        entries, end = _scan_object(
            content, start, spanned_keys=frozenset({SCRIPTS_KEY})
        )
        if _skip_ws(content, end) != len(content):
            raise json.JSONDecodeError("Extra data", content, end)
    except (json.JSONDecodeError, ValueError):
        return None

    name = ""
    scripts: list[Script] = []
    seen_scripts = False
    for key, _offset, value in entries:
        if key == "name" and isinstance(value, str):
            name = value
        elif key == SCRIPTS_KEY and not seen_scripts:
            seen_scripts = True
            if not isinstance(value, list):
                continue
            for script_name, offset, body in value:
                if isinstance(body, str):
                    scripts.append(
                        Script(script_name, body, _line_of(content, offset))
                    )

    return PackageJson(name=name, scripts=scripts)


def read_package_json(path: Path) -> PackageJson | None:
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    return parse_package_json(content)


def uses_filtering(manager: str, body: str) -> bool:
    """True if ``body`` already runs ``manager`` scoped to another package.

    ``pnpm --filter app1`` -> True, ``pnpm --filter app1 run test`` -> False.
    """
    args = body.split()
    if not args or args[0] != manager:
        return False
    has_filter = any(a in FILTER_FLAGS for a in args)
    return has_filter and "run" not in args


# ----------------------------------------------------------------
# Managers
# ----------------------------------------------------------------


class JsPackageManager:
    """Base discovery flow; subclasses define the manager policy."""

    kind: RunnerKind
    lockfile: str

    def __init__(self, executor: Executor) -> None:
        self.executor = executor

    # -- policy ------------------------------------------------------

    def script_args(self, script: str) -> str:
        raise NotImplementedError

    def workspace_script_args(self, package: str, script: str) -> str:
        raise NotImplementedError

    def workspace_package_dirs(self, directory: Path) -> list[Path]:
        """Directories of workspace members, via the manager's own query.

        Raises:
            DiscoveryError: if the query fails or its output is unusable
        """
        raise NotImplementedError

    # -- discovery ---------------------------------------------------

    def _capture(self, argv: list[str], directory: Path) -> str:
        try:
            result = self.executor.capture(argv, cwd=directory)
        except ExecutionError as e:
            raise DiscoveryError(self.kind.value, str(e)) from e
        if result.exit_code != 0:
            raise DiscoveryError(
                self.kind.value,
                f"`{' '.join(argv)}` exited with {result.exit_code}",
            )
        return result.stdout

    def _commands_for(
        self, package_json: Path, parsed: PackageJson, package: str | None
    ) -> list[Command]:
        manager = self.kind.executable
        commands: list[Command] = []
        for script in parsed.scripts:
            if uses_filtering(manager, script.body):
                continue
            if package is None:
                args = self.script_args(script.name)
            else:
                args = self.workspace_script_args(package, script.name)
            commands.append(
                Command(self.kind, args, package_json, script.line)
            )
        return commands

    def applies(self, directory: Path) -> tuple[bool, bool]:
        """(applies, is_workspace_root) for ``directory``."""
        names = list_file_names(directory)
        if METADATA_FILE_NAME not in names:
            return False, False
        if self.lockfile in names:
            return True, True
        if find_file_in_ancestors(directory, [self.lockfile]) is not None:
            return True, False
        # Neither a workspace root nor a child: manager is undetermined.
        return False, False

    def load(self, directory: Path) -> tuple[Path, list[Command]] | None:
        applies, is_root = self.applies(directory)
        if not applies:
            return None

        own_json = directory / METADATA_FILE_NAME
        parsed = read_package_json(own_json)
        if parsed is None:
            return None

        commands = self._commands_for(own_json, parsed, None)

        if is_root:
            try:
                member_dirs = self.workspace_package_dirs(directory)
            except DiscoveryError:
                member_dirs = []
            commands.extend(self._member_commands(directory, member_dirs))

        return directory, dedupe_commands(commands)

    def _member_commands(
        self, directory: Path, member_dirs: list[Path]
    ) -> list[Command]:
        own_json = (directory / METADATA_FILE_NAME).resolve()
        commands: list[Command] = []
        for member_dir in member_dirs:
            member_json = member_dir / METADATA_FILE_NAME
            if member_json.resolve() == own_json:
                continue
            parsed = read_package_json(member_json)
            if parsed is None or not parsed.name:
                continue
            commands.extend(
                self._commands_for(member_json, parsed, parsed.name)
            )
        return commands


class Npm(JsPackageManager):
    kind = RunnerKind.NPM
    lockfile = "package-lock.json"

    def script_args(self, script: str) -> str:
        return f"run {script}"

    def workspace_script_args(self, package: str, script: str) -> str:
        return f"run {script} --workspace={package}"

    def workspace_package_dirs(self, directory: Path) -> list[Path]:
        # npm 8.16+
        out = self._capture(["npm", "query", ".workspace", "--json"], directory)
        try:
            packages = json.loads(out)
        except json.JSONDecodeError as e:
            raise DiscoveryError("npm", f"bad workspace query output: {e}") from e
        if not isinstance(packages, list):
            raise DiscoveryError("npm", "workspace query did not return a list")

        dirs: list[Path] = []
        for pkg in packages:
            if isinstance(pkg, dict) and isinstance(pkg.get("path"), str):
                dirs.append(Path(pkg["path"]))
        return dirs


class Pnpm(JsPackageManager):
    kind = RunnerKind.PNPM
    lockfile = "pnpm-lock.yaml"

    def script_args(self, script: str) -> str:
        return f"run {script}"

    def workspace_script_args(self, package: str, script: str) -> str:
        return f"--filter {package} run {script}"

    def workspace_package_dirs(self, directory: Path) -> list[Path]:
        # One absolute package directory per line.
        out = self._capture(["pnpm", "-r", "exec", "pwd"], directory)
        return [Path(line.strip()) for line in out.splitlines() if line.strip()]


class Yarn(JsPackageManager):
    kind = RunnerKind.YARN
    lockfile = "yarn.lock"

    def script_args(self, script: str) -> str:
        return f"run {script}"

    def workspace_script_args(self, package: str, script: str) -> str:
        return f"workspace {package} run {script}"

    def workspace_package_dirs(self, directory: Path) -> list[Path]:
        # JSON lines: {"location":"packages/app1","name":"app1"}
        out = self._capture(["yarn", "workspaces", "list", "--json"], directory)
        dirs: list[Path] = []
        for line in out.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                raise DiscoveryError(
                    "yarn", f"bad workspace list output: {e}"
                ) from e
            location = entry.get("location") if isinstance(entry, dict) else None
            if isinstance(location, str):
                dirs.append(directory / location)
        return dirs


JS_PACKAGE_MANAGERS: tuple[type[JsPackageManager], ...] = (Npm, Pnpm, Yarn)
