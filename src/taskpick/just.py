# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Just recipe discovery.

Justfiles are parsed with the tree-sitter ``just`` grammar from
tree-sitter-language-pack. Relevant shape of the parse tree::

    source_file
    └── recipe (multiple)
        ├── attribute (optional, multiple)   e.g. [private]
        ├── recipe_header                    e.g. run arg:
        └── recipe_body
"""

from __future__ import annotations

from pathlib import Path

from tree_sitter_language_pack import get_parser, prefetch

from .command import Command, RunnerKind, dedupe_commands
from .errors import DiscoveryError
from .utils import find_file_in_ancestors

JUSTFILE_NAMES = ("justfile", ".justfile")
GRAMMAR = "just"


def _get_parser():
    """Return a parser for the just grammar.

    The pack keeps grammars in a local cache; ``prefetch`` downloads the
    just grammar on first use and is a no-op once it is cached.

    Raises:
        DiscoveryError: if the grammar cannot be fetched or loaded
    """
    try:
        prefetch([GRAMMAR])
        return get_parser(GRAMMAR)
    except Exception as e:
        raise DiscoveryError("just", f"just grammar not available: {e}") from e


def _node_text(source: bytes, node) -> str:
    return source[node.start_byte:node.end_byte].decode("utf-8", "replace")


def _is_private(source: bytes, recipe) -> bool:
    return any(
        child.type == "attribute" and "private" in _node_text(source, child)
        for child in recipe.children
    )


def parse_justfile(path: Path, source_code: str) -> list[Command] | None:
    """Extract public recipes from ``source_code``.

    The line number is the recipe header's line, so attributes and comments
    above a recipe do not shift it. Returns None when no recipe is found.

    Raises:
        DiscoveryError: if the just grammar is unavailable
    """
    parser = _get_parser()
    source = source_code.encode("utf-8")
    tree = parser.parse(source)

    commands: list[Command] = []
    for node in tree.root_node.named_children:
        if node.type != "recipe" or _is_private(source, node):
            continue

        for child in node.named_children:
            if child.type != "recipe_header":
                continue
            # "run arg:" -> "run"
            before_colon = _node_text(source, child).split(":", 1)[0]
            words = before_colon.split()
            if words:
                commands.append(
                    Command(
                        RunnerKind.JUST,
                        words[0],
                        path,
                        child.start_point[0] + 1,
                    )
                )
            break

    return commands or None


def find_justfile(directory: Path) -> Path | None:
    return find_file_in_ancestors(directory, JUSTFILE_NAMES)


def load(directory: Path) -> tuple[Path, list[Command]] | None:
    """Discover just recipes for ``directory``.

    Returns:
        (justfile_path, commands) or None if there is no justfile

    Raises:
        DiscoveryError: if the file is unreadable, the grammar is missing,
            or no recipe is defined
    """
    justfile = find_justfile(directory)
    if justfile is None:
        return None

    try:
        source_code = justfile.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DiscoveryError("just", f"cannot read {justfile}: {e}") from e

    commands = parse_justfile(justfile, source_code)
    if commands is None:
        raise DiscoveryError("just", f"no recipes in {justfile}")

    return justfile, dedupe_commands(commands)
