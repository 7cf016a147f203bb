from PySide6.QtCore import QTimer


# A single repeating QTimer handed to the engine as its tick handle.
class QtTickHandle:

    def __init__(self, timer):
        self._timer = timer

    @property
    def active(self):
        return self._timer is not None and self._timer.isActive()

    def cancel(self):
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None


# Scheduler that runs engine ticks on the Qt event loop. Every schedule() call gets its own QTimer, parented to
# `parent` so it can't outlive the window.
class QtScheduler:

    def __init__(self, parent=None):
        self._parent = parent

    def schedule(self, interval_seconds, callback):
        timer = QTimer(self._parent)
        timer.setInterval(max(1, int(interval_seconds * 1000)))
        timer.timeout.connect(callback)
        timer.start()
        return QtTickHandle(timer)
