"""Timer arithmetic: pure functions over a snapshot and a ``now`` timestamp.

Sign convention for manual corrections: ``manual_adjustment_seconds`` is the
amount subtracted from billable time.  A positive value means less billable
time, a negative value means more.  Every duration here clamps at zero, so a
clock that jumped backwards never produces a negative reading.
"""


def _seconds_between(later, earlier):
    return max(0.0, (later - earlier).total_seconds())


# Total wall-clock time since the timer opened, pauses included.
def elapsed_seconds(snapshot, now):
    return _seconds_between(now, snapshot.started_at)

# Length of the pause that is still open, 0 when running.
def current_pause_seconds(snapshot, now):
    if not snapshot.is_paused or snapshot.pause_started_at is None:
        return 0.0
    return _seconds_between(now, snapshot.pause_started_at)

# Completed pauses plus the open one, i.e. what total_paused_seconds would be if the timer stopped at `now`.
def closed_pause_seconds(snapshot, now):
    return snapshot.total_paused_seconds + current_pause_seconds(snapshot, now)

def billable_seconds(snapshot, now):
    billable = elapsed_seconds(snapshot, now) - closed_pause_seconds(snapshot, now) - snapshot.manual_adjustment_seconds
    return max(0.0, billable)

# Whole seconds the record store should knock off its own start-to-end span: every pause plus the manual correction.
def time_adjust_seconds(snapshot, now):
    return round(closed_pause_seconds(snapshot, now) + snapshot.manual_adjustment_seconds)

def format_time(seconds):
    """Format seconds as HH:MM:SS. Negative values clamp to zero, hours never wrap."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"
