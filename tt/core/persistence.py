"""Durable key-value scopes used for crash recovery of the active timer.

The scope is never the source of truth for billed time, it only lets an
in-progress timer survive an unplanned restart.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Protocol
from tt.common.logger import log


# The single well-known key holding the process-wide active timer.
ACTIVE_TIMER_KEY = "active_timer"


class DurableScope(Protocol):
    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any) -> None: ...
    def delete(self, key: str) -> None: ...


# In-process scope. Values are deep-copied in and out so callers can't mutate what's "on disk".
class MemoryScope:

    def __init__(self, initial=None):
        self._data = copy.deepcopy(dict(initial or {}))

    def get(self, key):
        value = self._data.get(key)
        return copy.deepcopy(value)
    def set(self, key, value):
        self._data[key] = copy.deepcopy(value)
    def delete(self, key):
        self._data.pop(key, None)

    def __contains__(self, key):
        return key in self._data


# Scope backed by a single JSON file. Every write replaces the whole file through a temp file, so a crash in the
# middle of a write leaves the previous version in place instead of half a document.
class JsonFileScope:

    def __init__(self, path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self):
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            log.warning(f"Durable scope at '{self.path}' is unreadable, treating it as empty.", exc_info=True)
            return {}
        if not isinstance(data, dict):
            log.warning(f"Durable scope at '{self.path}' does not hold an object, treating it as empty.")
            return {}
        return data

    def _write_all(self, data):
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    def get(self, key):
        return self._read_all().get(key)

    def set(self, key, value):
        data = self._read_all()
        data[key] = value
        self._write_all(data)
        log.debug(f"Wrote '{key}' to durable scope '{self.path}'")

    def delete(self, key):
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)
            log.debug(f"Removed '{key}' from durable scope '{self.path}'")
