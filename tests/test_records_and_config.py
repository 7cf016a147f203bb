"""Tests for the local JSON record store and the settings layer in tt.core.config."""

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from tests.fakes import FakeClock
from tt.core.engine import IDLE, RUNNING
from tt.core.records import (
    RECORD_CLOSED,
    RECORD_OPEN,
    STATUS_INVALID_TASK,
    STATUS_OK,
    JsonRecordStore,
)


class TestJsonRecordStore(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.store = JsonRecordStore(Path(self.tmpdir) / "records")

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_open_creates_open_record(self):
        result = self.store.open("task-1")
        self.assertEqual(result.status_code, STATUS_OK)
        self.assertTrue(result.ok)
        record = self.store.get(result.record_id)
        self.assertEqual(record["task_id"], "task-1")
        self.assertEqual(record["status"], RECORD_OPEN)
        self.assertIsNone(record["closed_at"])

    def test_open_rejects_blank_task(self):
        result = self.store.open("")
        self.assertEqual(result.status_code, STATUS_INVALID_TASK)
        self.assertFalse(result.ok)
        self.assertEqual(list(self.store.records_dir.iterdir()), [])

    def test_record_ids_are_unique(self):
        ids = {self.store.open("task-1").record_id for _ in range(5)}
        self.assertEqual(len(ids), 5)

    def test_close_writes_final_values(self):
        record_id = self.store.open("task-1").record_id
        self.assertTrue(self.store.close(record_id, 1500, 120, "wrote tests", False))
        record = self.store.get(record_id)
        self.assertEqual(record["status"], RECORD_CLOSED)
        self.assertEqual(record["billable_seconds"], 1500)
        self.assertEqual(record["time_adjust_seconds"], 120)
        self.assertEqual(record["description"], "wrote tests")
        self.assertIsNotNone(record["closed_at"])

    def test_quick_save_uses_default_description(self):
        record_id = self.store.open("task-1").record_id
        self.store.close(record_id, 60, 0, None, True)
        self.assertEqual(self.store.get(record_id)["description"], "Time logged")

    def test_second_close_does_not_double_charge(self):
        record_id = self.store.open("task-1").record_id
        self.store.close(record_id, 600, 0, "first", False)
        first = self.store.get(record_id)
        self.assertTrue(self.store.close(record_id, 900, 0, "second", False))
        self.assertEqual(self.store.get(record_id), first)

    def test_close_unknown_record_fails(self):
        self.assertFalse(self.store.close("nope", 10, 0, "x", False))

    def test_records_for_filters_by_task(self):
        a = self.store.open("task-a").record_id
        self.store.open("task-b")
        a2 = self.store.open("task-a").record_id
        self.assertEqual([r["record_id"] for r in self.store.records_for("task-a")], [a, a2])


class TestSettings(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self._tmppath = Path(self.tmpdir)

        # Monkey-patch config paths to use temp dir
        from tt.core import config
        self._orig_settings_path = config.SETTINGS_PATH
        self._orig_scope_path = config.SCOPE_PATH
        self._orig_records_dir = config.RECORDS_DIR
        config.SETTINGS_PATH = self._tmppath / "settings.json"
        config.SCOPE_PATH = self._tmppath / "active_timer.json"
        config.RECORDS_DIR = self._tmppath / "records"

    def tearDown(self):
        from tt.core import config
        config.SETTINGS_PATH = self._orig_settings_path
        config.SCOPE_PATH = self._orig_scope_path
        config.RECORDS_DIR = self._orig_records_dir
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_fresh_start_returns_defaults(self):
        from tt.core.config import load_settings
        settings = load_settings()
        self.assertEqual(settings["tick_interval_ms"], 1000)
        self.assertEqual(settings["adjust_step_minutes"], 6)
        self.assertEqual(settings["adjust_increment_minutes"], 1)
        self.assertEqual(settings["quick_save_description"], "Time logged")

    def test_save_and_load_roundtrip(self):
        from tt.core.config import build_default_settings, load_settings, save_settings
        settings = build_default_settings()
        settings["adjust_step_minutes"] = 15
        settings["always_on_top"] = False
        save_settings(settings)
        loaded = load_settings()
        self.assertEqual(loaded["adjust_step_minutes"], 15)
        self.assertFalse(loaded["always_on_top"])

    def test_invalid_values_are_defaulted(self):
        from tt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            json.dump({"tick_interval_ms": 0, "adjust_step_minutes": True, "confirm_discard": "no",
                       "quick_save_description": "Logged"}, f)
        loaded = config.load_settings()
        self.assertEqual(loaded["tick_interval_ms"], 1000)
        self.assertEqual(loaded["adjust_step_minutes"], 6)
        self.assertTrue(loaded["confirm_discard"])
        self.assertEqual(loaded["quick_save_description"], "Logged")

    def test_corrupted_settings_fall_back_to_defaults(self):
        from tt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            f.write("{invalid json!!")
        self.assertEqual(config.load_settings(), config.build_default_settings())

    def test_build_engine_survives_restart(self):
        """An engine built on the file scope picks up the timer a previous engine left running."""
        from tt.core import config
        clock = FakeClock()
        settings = config.build_default_settings()
        engine, store = config.build_engine(settings, now=clock)
        record_id = engine.start("task-1")

        clock.advance(30)
        recovered, _ = config.build_engine(settings, now=clock)
        self.assertEqual(recovered.state, RUNNING)
        self.assertAlmostEqual(recovered.billable_seconds(), 30.0, delta=1)

        result = recovered.stop(False, "done")
        self.assertEqual(result.record_id, record_id)
        self.assertEqual(recovered.state, IDLE)
        self.assertEqual(store.get(record_id)["billable_seconds"], 30)
        self.assertIsNone(config.build_engine(settings, now=clock)[0].snapshot)


if __name__ == "__main__":
    unittest.main()
