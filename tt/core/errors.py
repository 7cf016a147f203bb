"""Error taxonomy for the timer engine.

Programmer errors (``InvalidTransition`` and friends) are raised immediately and
never retried.  Remote failures leave the engine in a state the operator can
retry from.
"""


class TimerError(Exception):
    """Base class for every error the timer core raises."""


class InvalidTransition(TimerError):
    """A command was issued from a state that does not support it."""

    def __init__(self, command, state):
        super().__init__(f"Cannot {command} while {state}")
        self.command = command
        self.state = state


class OperationInProgress(InvalidTransition):
    """A command arrived while a start/stop call to the record store is still pending."""

    def __init__(self, command, pending):
        TimerError.__init__(self, f"Cannot {command} while '{pending}' is still in progress")
        self.command = command
        self.state = "busy"
        self.pending = pending


class RemoteOpenFailure(TimerError):
    """The record store refused to open a record. The engine stays idle."""

    def __init__(self, task_id, status_code=None, message=None):
        super().__init__(message or f"Record store rejected start for task '{task_id}' (status {status_code})")
        self.task_id = task_id
        self.status_code = status_code


class RemoteCloseFailure(TimerError):
    """The record store did not confirm a close. The active timer is left untouched."""

    def __init__(self, record_id, message=None):
        super().__init__(message or f"Record store did not confirm close of record '{record_id}'")
        self.record_id = record_id


class DescriptionRequired(TimerError):
    """A normal stop needs the operator's description before it can be finalized."""


class InvalidAdjustment(TimerError):
    """Manual correction is zero, fractional, or off the configured increment."""


class SnapshotError(TimerError):
    """Persisted timer data could not be turned back into a snapshot."""


class PersistenceFailure(TimerError):
    """The durable copy could not be written. The command is rolled back, the timer is as it was before."""
