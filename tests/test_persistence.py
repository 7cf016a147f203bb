"""Tests for snapshot serialization and the durable scopes in tt.core.persistence."""

import json
import shutil
import tempfile
import unittest
from datetime import timedelta
from pathlib import Path

from tests.fakes import T0
from tt.core.errors import SnapshotError
from tt.core.persistence import ACTIVE_TIMER_KEY, JsonFileScope, MemoryScope
from tt.core.snapshot import TimerSnapshot


def _paused_snapshot():
    return TimerSnapshot(
        record_id="rec-3",
        task_id="task-3",
        started_at=T0,
        is_paused=True,
        pause_started_at=T0 + timedelta(seconds=45),
        total_paused_seconds=12.5,
        manual_adjustment_seconds=-360,
    )


class TestSnapshotSerialization(unittest.TestCase):

    def test_roundtrip_keeps_absolute_timestamps(self):
        snap = _paused_snapshot()
        data = snap.to_dict()
        self.assertEqual(data["started_at"], "2026-03-02T09:00:00+00:00")
        self.assertEqual(data["pause_started_at"], "2026-03-02T09:00:45+00:00")
        self.assertEqual(data["meta"]["schema_version"], 1)
        self.assertEqual(TimerSnapshot.from_dict(json.loads(json.dumps(data))), snap)

    def test_integer_record_id_survives(self):
        snap = TimerSnapshot(record_id=4411, task_id="t", started_at=T0)
        self.assertEqual(TimerSnapshot.from_dict(snap.to_dict()).record_id, 4411)

    def test_naive_timestamp_is_read_as_local_time(self):
        data = TimerSnapshot("rec-1", "t", T0).to_dict()
        data["started_at"] = "2026-03-02T09:00:00"
        restored = TimerSnapshot.from_dict(data)
        self.assertIsNotNone(restored.started_at.tzinfo)

    def test_rejects_malformed_payloads(self):
        good = _paused_snapshot().to_dict()
        broken = {
            "not a dict": [],
            "missing record": {**good, "record_id": None},
            "missing task": {**good, "task_id": ""},
            "bad timestamp": {**good, "started_at": "noon"},
            "paused without start": {**good, "pause_started_at": None},
            "start without pause": {**good, "is_paused": False},
            "negative pauses": {**good, "total_paused_seconds": -1},
            "fractional adjustment": {**good, "manual_adjustment_seconds": 1.5},
            "string paused flag": {**good, "is_paused": "yes"},
        }
        for name, payload in broken.items():
            with self.subTest(name):
                with self.assertRaises(SnapshotError):
                    TimerSnapshot.from_dict(payload)

    def test_with_pause_closed_folds_open_pause_into_copy(self):
        snap = _paused_snapshot()
        now = T0 + timedelta(seconds=60)
        closed = snap.with_pause_closed(now)
        self.assertEqual(closed.total_paused_seconds, 27.5)
        self.assertTrue(closed.is_paused)
        self.assertEqual(closed.pause_started_at, now)
        self.assertEqual(snap.total_paused_seconds, 12.5)


class TestMemoryScope(unittest.TestCase):

    def test_get_set_delete(self):
        scope = MemoryScope()
        self.assertIsNone(scope.get(ACTIVE_TIMER_KEY))
        scope.set(ACTIVE_TIMER_KEY, {"a": 1})
        self.assertEqual(scope.get(ACTIVE_TIMER_KEY), {"a": 1})
        scope.delete(ACTIVE_TIMER_KEY)
        self.assertNotIn(ACTIVE_TIMER_KEY, scope)
        scope.delete(ACTIVE_TIMER_KEY)

    def test_values_are_isolated_from_callers(self):
        scope = MemoryScope()
        value = {"nested": [1]}
        scope.set("k", value)
        value["nested"].append(2)
        scope.get("k")["nested"].append(3)
        self.assertEqual(scope.get("k"), {"nested": [1]})


class TestJsonFileScope(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.path = Path(self.tmpdir) / "current" / "active_timer.json"

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_missing_file_reads_empty(self):
        self.assertIsNone(JsonFileScope(self.path).get(ACTIVE_TIMER_KEY))

    def test_values_survive_a_new_instance(self):
        """A fresh scope on the same file stands in for a process restart."""
        JsonFileScope(self.path).set(ACTIVE_TIMER_KEY, _paused_snapshot().to_dict())
        restored = JsonFileScope(self.path).get(ACTIVE_TIMER_KEY)
        self.assertEqual(TimerSnapshot.from_dict(restored), _paused_snapshot())

    def test_delete_removes_only_that_key(self):
        scope = JsonFileScope(self.path)
        scope.set("a", 1)
        scope.set("b", 2)
        scope.delete("a")
        self.assertIsNone(scope.get("a"))
        self.assertEqual(scope.get("b"), 2)

    def test_no_temp_file_left_behind(self):
        JsonFileScope(self.path).set("a", 1)
        self.assertEqual(sorted(p.name for p in self.path.parent.iterdir()), ["active_timer.json"])

    def test_corrupt_file_reads_empty_and_is_overwritten(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("{not json", encoding="utf-8")
        scope = JsonFileScope(self.path)
        self.assertIsNone(scope.get(ACTIVE_TIMER_KEY))
        scope.set(ACTIVE_TIMER_KEY, {"ok": True})
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {ACTIVE_TIMER_KEY: {"ok": True}})

    def test_non_object_file_reads_empty(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("[1, 2]", encoding="utf-8")
        self.assertIsNone(JsonFileScope(self.path).get("a"))


if __name__ == "__main__":
    unittest.main()
