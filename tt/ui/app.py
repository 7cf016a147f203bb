import sys
from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from tt.common.logger import log
from tt.core import config
from tt.core.engine import IDLE, PAUSED, RUNNING
from tt.core.errors import TimerError
from tt.ui.ticker import QtScheduler


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window of the task timer. One task, one timer, with the elapsed and billable counters side by side.
class MainWindow(QMainWindow):

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Task Timer")

        # -- Settings --
        self.settings = config.load_settings()
        self.adjust_step = self.settings["adjust_step_minutes"]
        self.confirm_discard = self.settings["confirm_discard"]
        if self.settings["always_on_top"]:
            self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        # -- Engine (recovers any timer left running by the last session) --
        self.engine, self.store = config.build_engine(self.settings, scheduler=QtScheduler(self))

        # -- Build UI --
        central = QWidget()
        self.setCentralWidget(central)
        lay = QVBoxLayout(central)

        task_row = QHBoxLayout()
        task_row.addWidget(QLabel("Task"))
        self._task_input = QLineEdit()
        self._task_input.setPlaceholderText("Task id")
        self._task_input.returnPressed.connect(self._on_start)
        task_row.addWidget(self._task_input, 1)
        lay.addLayout(task_row)

        time_font = QFont()
        time_font.setPointSize(20)
        times_row = QHBoxLayout()
        self._elapsed_lbl = QLabel("00:00:00")
        self._billable_lbl = QLabel("00:00:00")
        for caption, lbl in (("Elapsed", self._elapsed_lbl), ("Billable", self._billable_lbl)):
            col = QVBoxLayout()
            col.addWidget(QLabel(caption))
            lbl.setFont(time_font)
            col.addWidget(lbl)
            times_row.addLayout(col)
        lay.addLayout(times_row)

        controls = QHBoxLayout()
        self._start_btn = QPushButton("Start")
        self._start_btn.clicked.connect(self._on_start)
        self._pause_btn = QPushButton("Pause")
        self._pause_btn.clicked.connect(self._on_pause_toggle)
        self._stop_btn = QPushButton("Stop")
        self._stop_btn.clicked.connect(self._on_stop)
        self._quick_btn = QPushButton("Quick Save")
        self._quick_btn.setToolTip("Stop and save right away, without a description")
        self._quick_btn.clicked.connect(self._on_quick_save)
        for btn in (self._start_btn, self._pause_btn, self._stop_btn, self._quick_btn):
            controls.addWidget(btn)
        lay.addLayout(controls)

        # Adjustments are stored as time taken off the bill, so "Deduct" is a positive adjustment.
        adjust_row = QHBoxLayout()
        self._deduct_btn = QPushButton(f"Deduct {self.adjust_step} min")
        self._deduct_btn.clicked.connect(lambda: self._on_adjust(self.adjust_step))
        self._credit_btn = QPushButton(f"Credit {self.adjust_step} min")
        self._credit_btn.clicked.connect(lambda: self._on_adjust(-self.adjust_step))
        self._discard_btn = QPushButton("Discard")
        self._discard_btn.clicked.connect(self._on_discard)
        for btn in (self._deduct_btn, self._credit_btn, self._discard_btn):
            adjust_row.addWidget(btn)
        lay.addLayout(adjust_row)

        self._status_lbl = QLabel("")
        lay.addWidget(self._status_lbl)

        self.engine.add_listener(self._on_times_changed)
        if self.engine.is_active():
            self._task_input.setText(self.engine.task_id)
            self._status_lbl.setText(f"Recovered timer for '{self.engine.task_id}'")
        self._on_times_changed(*self.engine.display())
        self._refresh_controls()

    # ------------------------------------------------------------------ #
    #  Button handlers                                                     #
    # ------------------------------------------------------------------ #

    def _on_start(self):
        if self.engine.state != IDLE:
            return
        task_id = self._task_input.text().strip()
        if not task_id:
            QMessageBox.information(self, "Task Timer", "Enter a task id first.")
            return
        try:
            self.engine.start(task_id)
        except TimerError as e:
            QMessageBox.warning(self, "Could Not Start", f"The timer could not be started:\n{e}")
        self._refresh_controls()

    def _on_pause_toggle(self):
        try:
            if self.engine.state == RUNNING:
                self.engine.pause()
            elif self.engine.state == PAUSED:
                self.engine.resume()
        except TimerError as e:
            QMessageBox.warning(self, "Pause", str(e))
        self._refresh_controls()

    def _on_adjust(self, minutes):
        try:
            self.engine.adjust(minutes)
        except TimerError as e:
            QMessageBox.warning(self, "Adjustment", str(e))

    # Normal stop: finalization waits on the description prompt, Cancel leaves the timer running.
    def _on_stop(self):
        if not self.engine.is_active():
            return
        description, ok = QInputDialog.getMultiLineText(self, "Stop Timer", "What did you work on?")
        if not ok:
            log.debug("Stop cancelled at the description prompt")
            return
        self._finish_stop(save_immediately=False, description=description)

    def _on_quick_save(self):
        if self.engine.is_active():
            self._finish_stop(save_immediately=True)

    def _finish_stop(self, save_immediately, description=None):
        try:
            result = self.engine.stop(save_immediately=save_immediately, description=description)
        except TimerError as e:
            QMessageBox.warning(self, "Could Not Save",
                                f"The timer was not saved and is still active, try again:\n{e}")
        else:
            count = len(self.store.records_for(result.task_id))
            self._status_lbl.setText(f"Saved {result.billable_seconds // 60} min to '{result.task_id}' "
                                     f"({count} record{'s' if count != 1 else ''})")
        self._refresh_controls()

    def _on_discard(self):
        if not self.engine.is_active():
            return
        if self.confirm_discard and QMessageBox.question(
                self, "Confirm", "Discard this timer without saving it?"
        ) != QMessageBox.Yes:
            return
        try:
            self.engine.discard()
        except TimerError as e:
            QMessageBox.warning(self, "Discard", str(e))
        else:
            self._status_lbl.setText("Timer discarded")
        self._refresh_controls()

    # ------------------------------------------------------------------ #
    #  Display helpers                                                     #
    # ------------------------------------------------------------------ #

    def _on_times_changed(self, elapsed_text, billable_text):
        self._elapsed_lbl.setText(elapsed_text)
        self._billable_lbl.setText(billable_text)

    def _refresh_controls(self):
        state = self.engine.state
        active = state != IDLE
        self._task_input.setEnabled(not active)
        self._start_btn.setEnabled(not active)
        self._pause_btn.setEnabled(active)
        self._pause_btn.setText("Resume" if state == PAUSED else "Pause")
        for btn in (self._stop_btn, self._quick_btn, self._deduct_btn, self._credit_btn, self._discard_btn):
            btn.setEnabled(active)

    # ------------------------------------------------------------------ #
    #  Window close                                                        #
    # ------------------------------------------------------------------ #

    # The active timer is already mirrored to disk, closing just leaves it there for the next launch.
    def closeEvent(self, event):
        if self.engine.is_active():
            log.info(f"Closing with an active {self.engine.state} timer for '{self.engine.task_id}', it will be recovered on next launch")
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())
