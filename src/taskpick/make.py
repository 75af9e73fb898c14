# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Make-family target discovery.

Handles:
- Makefile name resolution (GNUmakefile, makefile, Makefile)
- Line classification (normal / recipe / define / endef)
- Target extraction that ignores ``define`` block bodies
- ``include`` / ``-include`` / ``sinclude`` expansion into a file tree

Make semantics (variables, prerequisites, pattern rules) are never
interpreted: only target names and where they are defined.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from .command import Command, RunnerKind, dedupe_commands

# GNU make search order.
MAKEFILE_NAMES = ("GNUmakefile", "makefile", "Makefile")

DEFAULT_RECIPE_PREFIX = "\t"

DEFINE_BLOCK_START = "define"
DEFINE_BLOCK_END = "endef"
OVERRIDE = "override"

# Full-width space is excluded from the first character too.
_TARGET_RE = re.compile(r"^ *[^.#\s　][^=]*:[^=]*$")

# Tabs are not allowed before the directive: a tab starts a recipe line.
_INCLUDE_RE = re.compile(r"^ *(include|-include|sinclude)")

_RECIPEPREFIX_RE = re.compile(
    r"^\s*\.RECIPEPREFIX\s*(?:::=|:=|\?=|=)[ \t]*(.*)$"
)


class LineType(Enum):
    NORMAL = auto()
    RECIPE = auto()
    DEFINE_START = auto()
    DEFINE_END = auto()


@dataclass
class FileNode:
    """One parsed make file and the files it includes."""

    path: Path
    targets: list[Command] = field(default_factory=list)
    included: list[FileNode] = field(default_factory=list)

    def commands(self) -> list[Command]:
        """Own targets first, then each included file depth-first."""
        result = list(self.targets)
        for child in self.included:
            result.extend(child.commands())
        return result


def classify_line(
    line: str, recipe_prefix: str | None = None
) -> LineType:
    prefix = recipe_prefix or DEFAULT_RECIPE_PREFIX
    if line.startswith(prefix):
        return LineType.RECIPE

    words = line.split()
    if not words:
        return LineType.NORMAL

    if len(words) >= 2 and words[0] == OVERRIDE and words[1] == DEFINE_BLOCK_START:
        return LineType.DEFINE_START
    if words[0] == DEFINE_BLOCK_START:
        return LineType.DEFINE_START
    if words[0] == DEFINE_BLOCK_END:
        return LineType.DEFINE_END
    return LineType.NORMAL


def line_to_target(line: str) -> str | None:
    """Return the target name declared on ``line``, if any.

    ``test: # run test`` -> ``test``; ``hoge := 1`` and ``.PHONY:`` -> None.
    """
    if not _TARGET_RE.match(line):
        return None
    return line.split(":", 1)[0].strip()


def recipe_prefix(content: str) -> str | None:
    """Value of the first ``.RECIPEPREFIX`` assignment, if it sets one."""
    for line in content.splitlines():
        m = _RECIPEPREFIX_RE.match(line)
        if m is None:
            continue
        value = m.group(1)
        return value[0] if value else None
    return None


def extract_targets(
    content: str, path: Path, recipe_prefix: str | None = None
) -> list[Command]:
    targets: list[Command] = []
    define_depth = 0

    for lineno, line in enumerate(content.splitlines(), start=1):
        line_type = classify_line(line, recipe_prefix)

        if line_type is LineType.DEFINE_START:
            define_depth += 1
        elif line_type is LineType.DEFINE_END:
            define_depth = max(0, define_depth - 1)
        elif line_type is LineType.NORMAL and define_depth == 0:
            name = line_to_target(line)
            if name is not None:
                targets.append(
                    Command(RunnerKind.MAKE, name, path, lineno)
                )

    return targets


def line_to_include_paths(line: str) -> list[Path] | None:
    """Paths named by an include directive, or None for other lines.

    Patterns like ``include *.mk $(foo)`` are taken literally and will
    simply fail to open later.
    """
    if not _INCLUDE_RE.match(line):
        return None

    without_comment = line.split("#", 1)[0]
    tokens = without_comment.split()
    return [Path(t) for t in tokens[1:]]


def include_paths(content: str) -> list[Path]:
    """All include paths in ``content``, relative to the make invocation
    directory. ``../`` paths are not supported."""
    result: list[Path] = []
    for line in content.splitlines():
        paths = line_to_include_paths(line)
        if paths:
            result.extend(paths)
    return result


def parse_file(
    path: Path,
    inherited_prefix: str | None = None,
    base_dir: Path | None = None,
) -> FileNode | None:
    """Parse ``path`` and its includes. Unreadable files yield None.

    Include paths are resolved against ``base_dir`` (the directory make
    runs in, default: cwd). Include cycles are not detected.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None

    prefix = recipe_prefix(content) or inherited_prefix
    base = base_dir if base_dir is not None else Path.cwd()

    included: list[FileNode] = []
    for include_path in include_paths(content):
        child = parse_file(base / include_path, prefix, base)
        if child is not None:
            included.append(child)

    return FileNode(
        path=path,
        targets=extract_targets(content, path, prefix),
        included=included,
    )


def find_makefile(directory: Path) -> Path | None:
    """Pick the makefile ``make`` would use in ``directory``.

    Names are compared exactly so that case-insensitive filesystems still
    honour the priority order.
    """
    try:
        names = {p.name for p in directory.iterdir()}
    except OSError:
        return None

    for candidate in MAKEFILE_NAMES:
        if candidate in names:
            return directory / candidate
    return None


def load(directory: Path) -> tuple[Path, list[Command]] | None:
    """Discover make targets in ``directory``.

    ``make`` runs in ``directory``, so include paths are resolved there.

    Returns:
        (makefile_path, commands) or None if there is no makefile
    """
    makefile = find_makefile(directory)
    if makefile is None:
        return None

    root = parse_file(makefile, base_dir=directory)
    if root is None:
        return None

    return makefile, dedupe_commands(root.commands(), keep_first=True)
