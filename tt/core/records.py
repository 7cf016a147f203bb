"""Time-record store: the system of record that opens and closes timer entries.

The engine only depends on the ``RecordStore`` protocol.  ``JsonRecordStore``
is the local implementation the desktop app ships with: one JSON file per
record under the data folder.
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol
from tt.common.logger import log
from tt.util.misc import now_iso


STATUS_OK = 0
STATUS_INVALID_TASK = 1
STATUS_WRITE_FAILED = 2

RECORD_OPEN = "open"
RECORD_CLOSED = "closed"

DEFAULT_QUICK_SAVE_DESCRIPTION = "Time logged"


@dataclass(frozen=True)
class OpenResult:
    record_id: object
    status_code: int

    @property
    def ok(self):
        return self.status_code == STATUS_OK and self.record_id is not None


class RecordStore(Protocol):
    def open(self, task_id: str) -> OpenResult: ...
    def close(self, record_id, billable_seconds: int, time_adjust_seconds: int, description: str,
              save_immediately: bool) -> bool: ...


class JsonRecordStore:

    def __init__(self, records_dir, quick_save_description=DEFAULT_QUICK_SAVE_DESCRIPTION):
        self.records_dir = Path(records_dir)
        self.records_dir.mkdir(parents=True, exist_ok=True)
        self.quick_save_description = quick_save_description

    def _path_for(self, record_id):
        return self.records_dir / f"record_{record_id}.json"

    def _write(self, path, record):
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2)
        os.replace(tmp_path, path)

    def _new_record_id(self):
        record_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        suffix = 0
        while self._path_for(record_id if not suffix else f"{record_id}_{suffix}").exists():
            suffix += 1
        return record_id if not suffix else f"{record_id}_{suffix}"

    def open(self, task_id):
        if not isinstance(task_id, str) or not task_id.strip():
            log.warning(f"Refusing to open a record for invalid task id {task_id!r}")
            return OpenResult(None, STATUS_INVALID_TASK)

        record_id = self._new_record_id()
        record = {
            "record_id": record_id,
            "task_id": task_id,
            "status": RECORD_OPEN,
            "opened_at": now_iso(),
            "closed_at": None,
            "billable_seconds": None,
            "time_adjust_seconds": None,
            "description": None,
        }
        try:
            self._write(self._path_for(record_id), record)
        except OSError:
            log.error(f"Could not write new record for task '{task_id}'", exc_info=True)
            return OpenResult(None, STATUS_WRITE_FAILED)
        log.info(f"Opened record '{record_id}' for task '{task_id}'")
        return OpenResult(record_id, STATUS_OK)

    # Closing a record that's already closed is a no-op success, so a retry after a lost confirmation never bills
    # the same time twice.
    def close(self, record_id, billable_seconds, time_adjust_seconds, description, save_immediately):
        path = self._path_for(record_id)
        record = self.get(record_id)
        if record is None:
            log.warning(f"Cannot close unknown record '{record_id}'")
            return False
        if record.get("status") == RECORD_CLOSED:
            log.info(f"Record '{record_id}' was already closed, leaving it as is")
            return True

        record.update({
            "status": RECORD_CLOSED,
            "closed_at": now_iso(),
            "billable_seconds": int(billable_seconds),
            "time_adjust_seconds": int(time_adjust_seconds),
            "description": self.quick_save_description if save_immediately else description,
        })
        try:
            self._write(path, record)
        except OSError:
            log.error(f"Could not write closed record '{record_id}'", exc_info=True)
            return False
        log.info(f"Closed record '{record_id}' with {int(billable_seconds)} billable seconds")
        return True

    def get(self, record_id):
        path = self._path_for(record_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError):
            log.warning(f"Record file '{path}' is unreadable", exc_info=True)
            return None

    # All records for a task, oldest first.
    def records_for(self, task_id):
        found = []
        for path in sorted(self.records_dir.glob("record_*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    record = json.load(f)
            except (json.JSONDecodeError, OSError):
                log.warning(f"Skipping unreadable record file '{path}'")
                continue
            if record.get("task_id") == task_id:
                found.append(record)
        return found
