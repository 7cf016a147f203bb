"""Tick scheduling seam between the engine and whatever event loop drives it."""

from typing import Callable, Protocol


class TickHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, interval_seconds: float, callback: Callable[[], None]) -> TickHandle: ...


# Used when nothing drives the display (headless use, scripts). Ticks never fire, observers still work on demand.
class NullScheduler:

    class _Handle:
        def cancel(self):
            pass

    def schedule(self, interval_seconds, callback):
        return NullScheduler._Handle()
