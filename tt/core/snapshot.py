from dataclasses import dataclass, replace
from datetime import datetime
from tt.core.errors import SnapshotError
from tt.util.misc import now_iso, parse_iso


_SCHEMA_VERSION = 1

# The complete state of the single active timer. record_id is opaque (whatever the record store handed back on
# open). Timestamps are always aware datetimes so a saved snapshot means the same instant after a restart.
@dataclass
class TimerSnapshot:
    record_id: object
    task_id: str
    started_at: datetime
    is_paused: bool = False
    pause_started_at: datetime | None = None
    total_paused_seconds: float = 0.0
    manual_adjustment_seconds: int = 0

    # Returns a copy with the currently open pause folded into total_paused_seconds. The copy is still marked as
    # paused when the original was, it just has nothing left open.
    def with_pause_closed(self, now):
        if not self.is_paused or self.pause_started_at is None:
            return replace(self)
        closed = max(0.0, (now - self.pause_started_at).total_seconds())
        return replace(self, pause_started_at=now, total_paused_seconds=self.total_paused_seconds + closed)

    def to_dict(self):
        return {
            "meta": {
                "schema_version": _SCHEMA_VERSION,
                "saved_at": now_iso(),
            },
            "record_id": self.record_id,
            "task_id": self.task_id,
            "started_at": self.started_at.isoformat(),
            "is_paused": self.is_paused,
            "pause_started_at": self.pause_started_at.isoformat() if self.pause_started_at else None,
            "total_paused_seconds": self.total_paused_seconds,
            "manual_adjustment_seconds": self.manual_adjustment_seconds,
        }

    # Rebuilds a snapshot from to_dict() output, refusing anything that would break the pause invariant or lose
    # the record handle.
    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise SnapshotError(f"Expected a dict, got {type(data).__name__}")

        record_id = data.get("record_id")
        if record_id is None or record_id == "":
            raise SnapshotError("Snapshot has no record_id")
        task_id = data.get("task_id")
        if not isinstance(task_id, str) or not task_id:
            raise SnapshotError("Snapshot has no task_id")

        try:
            started_at = parse_iso(data.get("started_at"))
            raw_pause_start = data.get("pause_started_at")
            pause_started_at = parse_iso(raw_pause_start) if raw_pause_start is not None else None
        except (TypeError, ValueError) as e:
            raise SnapshotError(f"Snapshot has an unreadable timestamp: {e}") from e

        is_paused = data.get("is_paused", False)
        if not isinstance(is_paused, bool):
            raise SnapshotError("Snapshot is_paused must be a bool")
        if is_paused != (pause_started_at is not None):
            raise SnapshotError("Snapshot pause_started_at must be set exactly when is_paused is true")

        total_paused = data.get("total_paused_seconds", 0.0)
        adjustment = data.get("manual_adjustment_seconds", 0)
        if isinstance(total_paused, bool) or not isinstance(total_paused, (int, float)) or total_paused < 0:
            raise SnapshotError("Snapshot total_paused_seconds must be a non-negative number")
        if isinstance(adjustment, bool) or not isinstance(adjustment, int):
            raise SnapshotError("Snapshot manual_adjustment_seconds must be an integer")

        return cls(
            record_id=record_id,
            task_id=task_id,
            started_at=started_at,
            is_paused=is_paused,
            pause_started_at=pause_started_at,
            total_paused_seconds=float(total_paused),
            manual_adjustment_seconds=adjustment,
        )
