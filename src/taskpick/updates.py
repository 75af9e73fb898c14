# taskpick - Fuzzy Task Picker for Make, JS Package Managers, Just and Task
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Background check for a newer taskpick release.

The check runs once in a daemon thread. Its only output is a single slot
that the UI polls on each redraw; any failure (offline, timeout, bad JSON)
leaves the slot empty.
"""

from __future__ import annotations

import http.client
import json
import os
import threading
import urllib.request

DISABLE_ENV = "TASKPICK_NO_VERSION_CHECK"
DEFAULT_URL = "https://pypi.org/pypi/taskpick/json"


def parse_version(text: str) -> tuple[int, ...] | None:
    """``"v1.2.3"`` -> ``(1, 2, 3)``; None for anything non-numeric."""
    text = text.strip().lstrip("v")
    parts = text.split(".")
    if not parts or not all(p.isdigit() for p in parts):
        return None
    return tuple(int(p) for p in parts)


def is_newer(latest: str, current: str) -> bool:
    latest_v = parse_version(latest)
    current_v = parse_version(current)
    if latest_v is None or current_v is None:
        return False
    return latest_v > current_v


def fetch_latest_version(url: str, timeout: float) -> str:
    """Return ``info.version`` from a PyPI-style JSON document.

    Raises:
        OSError: on network failure (``urllib.error.URLError`` included)
        ValueError: if the response is not the expected JSON
    """
    request = urllib.request.Request(
        url, headers={"Accept": "application/json"}
    )
    with urllib.request.urlopen(request, timeout=timeout) as resp:
        payload = json.loads(resp.read().decode("utf-8"))

    version = payload.get("info", {}).get("version") if isinstance(payload, dict) else None
    if not isinstance(version, str):
        raise ValueError("no info.version in response")
    return version


class VersionCheck:
    """Single-shot background version lookup.

    ``result()`` never blocks: it returns None until the thread has found a
    newer version, then that version string.
    """

    def __init__(
        self,
        current_version: str,
        url: str = DEFAULT_URL,
        timeout: float = 3.0,
        fetch=fetch_latest_version,
    ):
        self.current_version = current_version
        self.url = url
        self.timeout = timeout
        self._fetch = fetch
        self._lock = threading.Lock()
        self._slot: dict[str, str] = {}
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        try:
            latest = self._fetch(self.url, self.timeout)
        except (OSError, ValueError, http.client.HTTPException):
            return
        if is_newer(latest, self.current_version):
            with self._lock:
                self._slot["latest"] = latest

    def result(self) -> str | None:
        with self._lock:
            return self._slot.get("latest")


def version_check_enabled(config_enabled: bool = True) -> bool:
    if os.getenv(DISABLE_ENV) == "1":
        return False
    return bool(config_enabled)
