"""The timer engine. Owns the one active timer and every transition it goes through.

States are Idle (no snapshot), Running and Paused.  Each mutation is mirrored
into the durable scope straight away, and the scope copy is only cleared once
the record store has confirmed a stop (or the timer is explicitly discarded).
The two record store calls are the only slow operations.  While one of them is
pending every other command is refused, and a failed stop leaves the snapshot
exactly as it was so the operator can retry.
"""

from dataclasses import dataclass, replace
from tt.common.logger import log
from tt.core import clock
from tt.core.errors import (
    DescriptionRequired,
    InvalidAdjustment,
    InvalidTransition,
    OperationInProgress,
    PersistenceFailure,
    RemoteCloseFailure,
    RemoteOpenFailure,
    SnapshotError,
)
from tt.core.persistence import ACTIVE_TIMER_KEY
from tt.core.scheduler import NullScheduler
from tt.core.snapshot import TimerSnapshot
from tt.util.misc import now_local


IDLE = "idle"
RUNNING = "running"
PAUSED = "paused"


@dataclass(frozen=True)
class StopResult:
    record_id: object
    task_id: str
    billable_seconds: int
    time_adjust_seconds: int
    description: str | None


class TimerEngine:

    def __init__(self, store, scope, scheduler=None, now=None, tick_interval=1.0, adjust_increment=1):
        self._store = store
        self._scope = scope
        self._scheduler = scheduler or NullScheduler()
        self._now = now or now_local
        self._tick_interval = tick_interval
        self._adjust_increment = adjust_increment

        self._snapshot = None
        self._pending = None       # name of the store call in flight, if any
        self._tick_handle = None
        self._listeners = []

        self._recover()

    #region === Observers ===

    @property
    def state(self):
        if self._snapshot is None:
            return IDLE
        return PAUSED if self._snapshot.is_paused else RUNNING

    # A copy, so callers can look but not touch.
    @property
    def snapshot(self):
        return replace(self._snapshot) if self._snapshot is not None else None

    @property
    def task_id(self):
        return self._snapshot.task_id if self._snapshot is not None else None

    def is_active(self):
        return self._snapshot is not None
    def is_paused(self):
        return self._snapshot is not None and self._snapshot.is_paused
    def is_busy(self):
        return self._pending is not None
    def is_ticking(self):
        return self._tick_handle is not None

    def elapsed_seconds(self, now=None):
        if self._snapshot is None:
            return 0.0
        return clock.elapsed_seconds(self._snapshot, now or self._now())

    def billable_seconds(self, now=None):
        if self._snapshot is None:
            return 0.0
        return clock.billable_seconds(self._snapshot, now or self._now())

    # (elapsed, billable) as HH:MM:SS strings, what the owning UI puts on screen.
    def display(self, now=None):
        now = now or self._now()
        return clock.format_time(self.elapsed_seconds(now)), clock.format_time(self.billable_seconds(now))

    # Listeners get (elapsed_text, billable_text) on every tick and after every command that changes the numbers.
    def add_listener(self, callback):
        self._listeners.append(callback)
    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    #endregion === Observers ===

    #region === Commands ===

    def start(self, task_id):
        self._require("start", IDLE)
        if not isinstance(task_id, str) or not task_id.strip():
            raise ValueError("A task id is required to start a timer.")

        self._pending = "start"
        try:
            result = self._store.open(task_id)
        except Exception as e:
            log.error(f"Record store raised while opening a record for task '{task_id}'", exc_info=True)
            raise RemoteOpenFailure(task_id, message=f"Could not open a record for task '{task_id}': {e}") from e
        finally:
            self._pending = None

        status_code = getattr(result, "status_code", None)
        if result is None or not result.ok:
            log.warning(f"Record store rejected start for task '{task_id}' with status {status_code}")
            raise RemoteOpenFailure(task_id, status_code)

        snapshot = TimerSnapshot(record_id=result.record_id, task_id=task_id, started_at=self._now())
        try:
            self._commit(snapshot)
        except PersistenceFailure:
            log.error(f"Record '{result.record_id}' for task '{task_id}' was opened but the timer could not be "
                      f"saved locally, staying idle")
            raise
        self._start_ticking()
        log.info(f"Started timer for task '{task_id}' on record '{result.record_id}'")
        self._notify()
        return result.record_id

    def pause(self):
        self._require("pause", RUNNING)
        now = self._now()
        self._commit(replace(self._snapshot, is_paused=True, pause_started_at=now))
        self._stop_ticking()
        log.debug(f"Paused timer for task '{self._snapshot.task_id}' at {now.isoformat()}")
        self._notify(now)

    def resume(self):
        self._require("resume", PAUSED)
        now = self._now()
        pause_length = clock.current_pause_seconds(self._snapshot, now)
        self._commit(replace(
            self._snapshot,
            is_paused=False,
            pause_started_at=None,
            total_paused_seconds=self._snapshot.total_paused_seconds + pause_length,
        ))
        self._start_ticking()
        log.debug(f"Resumed timer for task '{self._snapshot.task_id}' after a {pause_length:.1f}s pause")
        self._notify(now)

    # Positive minutes take time off the bill, negative minutes add it back.
    def adjust(self, minutes):
        self._require("adjust", RUNNING, PAUSED)
        if isinstance(minutes, bool) or not isinstance(minutes, int):
            raise InvalidAdjustment(f"Adjustment must be a whole number of minutes, got {minutes!r}")
        if minutes == 0 or minutes % self._adjust_increment != 0:
            raise InvalidAdjustment(
                f"Adjustment must be a non-zero multiple of {self._adjust_increment} minutes, got {minutes}")

        self._commit(replace(
            self._snapshot,
            manual_adjustment_seconds=self._snapshot.manual_adjustment_seconds + minutes * 60,
        ))
        log.debug(f"Adjusted timer for task '{self._snapshot.task_id}' by {minutes} min, "
                  f"manual adjustment now {self._snapshot.manual_adjustment_seconds}s")
        self._notify()

    def stop(self, save_immediately=False, description=None):
        self._require("stop", RUNNING, PAUSED)
        if not save_immediately and description is None:
            raise DescriptionRequired("A description is required before the timer can be stopped.")

        # Everything below works on a copy, the live snapshot is only dropped once the store confirms.
        now = self._now()
        final = self._snapshot.with_pause_closed(now)
        billable = round(clock.billable_seconds(final, now))
        time_adjust = clock.time_adjust_seconds(final, now)
        description = None if save_immediately else description

        self._pending = "stop"
        try:
            closed = self._store.close(final.record_id, billable, time_adjust, description, save_immediately)
        except Exception as e:
            log.error(f"Record store raised while closing record '{final.record_id}'", exc_info=True)
            raise RemoteCloseFailure(final.record_id, message=f"Could not close record '{final.record_id}': {e}") from e
        finally:
            self._pending = None
        if not closed:
            log.warning(f"Record store did not confirm close of record '{final.record_id}', keeping the timer")
            raise RemoteCloseFailure(final.record_id)

        # If the local copy can't be cleared the timer stays active and stop can be retried.
        self._clear()
        self._stop_ticking()
        log.info(f"Stopped timer for task '{final.task_id}' on record '{final.record_id}': "
                 f"{billable}s billable, {time_adjust}s adjusted off")
        self._notify(now)
        return StopResult(
            record_id=final.record_id,
            task_id=final.task_id,
            billable_seconds=billable,
            time_adjust_seconds=time_adjust,
            description=description,
        )

    # Drops the local timer without telling the record store. The open record stays open on the store's side.
    def discard(self):
        self._require("discard", RUNNING, PAUSED)
        record_id = self._snapshot.record_id
        self._clear()
        self._stop_ticking()
        log.warning(f"Discarded local timer for record '{record_id}' without closing it")
        self._notify()

    #endregion === Commands ===

    #region === Internals ===

    def _require(self, command, *states):
        if self._pending is not None:
            raise OperationInProgress(command, self._pending)
        if self.state not in states:
            raise InvalidTransition(command, self.state)

    # Writes the new snapshot to the scope and only swaps it in once the write went through. On failure the live
    # snapshot, the durable copy and the tick are all still the pre-command ones.
    def _commit(self, snapshot):
        try:
            self._scope.set(ACTIVE_TIMER_KEY, snapshot.to_dict())
        except Exception as e:
            log.error(f"Could not save timer for record '{snapshot.record_id}' to durable scope", exc_info=True)
            raise PersistenceFailure(f"Could not save the active timer: {e}") from e
        self._snapshot = snapshot

    def _clear(self):
        try:
            self._scope.delete(ACTIVE_TIMER_KEY)
        except Exception as e:
            log.error(f"Could not remove timer for record '{self._snapshot.record_id}' from durable scope",
                      exc_info=True)
            raise PersistenceFailure(f"Could not clear the saved timer: {e}") from e
        self._snapshot = None

    def _start_ticking(self):
        if self._tick_handle is None:
            self._tick_handle = self._scheduler.schedule(self._tick_interval, self._tick)

    def _stop_ticking(self):
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _tick(self):
        if self.state != RUNNING:
            return
        self._notify()

    def _notify(self, now=None):
        if not self._listeners:
            return
        elapsed_text, billable_text = self.display(now)
        for listener in list(self._listeners):
            listener(elapsed_text, billable_text)

    # Picks the active timer back up after a restart. Timestamps in the scope are absolute, so the recovered timer
    # has kept counting while the process was down. The record store is not consulted.
    def _recover(self):
        data = self._scope.get(ACTIVE_TIMER_KEY)
        if data is None:
            log.debug("No active timer found in durable scope, starting idle.")
            return
        try:
            snapshot = TimerSnapshot.from_dict(data)
        except SnapshotError:
            log.warning("Active timer in durable scope could not be read, starting idle.", exc_info=True)
            return

        self._snapshot = snapshot
        if not snapshot.is_paused:
            self._start_ticking()
        log.info(f"Recovered {self.state} timer for task '{snapshot.task_id}' on record '{snapshot.record_id}', "
                 f"started at {snapshot.started_at.isoformat()}")

    #endregion === Internals ===
