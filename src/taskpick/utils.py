# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Utility functions for taskpick.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TypeVar

from prompt_toolkit.completion import CompleteEvent, FuzzyWordCompleter
from prompt_toolkit.document import Document

T = TypeVar("T")


def find_file_in_ancestors(
    start: Path, file_names: Iterable[str]
) -> Path | None:
    """Walk up from ``start`` and return the first matching file.

    Names are compared case-insensitively, so ``Justfile`` matches
    ``justfile``. Within one directory entries are checked in sorted order.
    """
    wanted = {n.lower() for n in file_names}
    current = start.resolve()

    while True:
        try:
            entries = sorted(current.iterdir())
        except OSError:
            entries = []

        for entry in entries:
            if entry.name.lower() in wanted and entry.is_file():
                return entry

        parent = current.parent
        if parent == current:
            return None
        current = parent


def list_file_names(directory: Path) -> list[str]:
    """Names of the entries in ``directory``, or [] if unreadable."""
    try:
        return sorted(p.name for p in directory.iterdir())
    except OSError:
        return []


def normalize_query(text: str) -> str:
    """Remove every whitespace character from search input."""
    return "".join(text.split())


def fuzzy_filter(
    items: Sequence[T], labels: Sequence[str], query: str
) -> list[T]:
    """Rank ``items`` by fuzzy match of their ``labels`` against ``query``.

    Matching is a case-insensitive subsequence match. Earlier and tighter
    matches come first; ties keep input order. An empty query returns the
    items unchanged.
    """
    query = normalize_query(query)
    if not query:
        return list(items)

    by_label: dict[str, T] = {}
    for item, label in zip(items, labels):
        by_label.setdefault(label, item)

    completer = FuzzyWordCompleter(list(by_label), WORD=True)
    document = Document(query, cursor_position=len(query))

    result: list[T] = []
    for completion in completer.get_completions(document, CompleteEvent()):
        item = by_label.get(completion.text)
        if item is not None:
            result.append(item)
    return result
