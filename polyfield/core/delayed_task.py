"""
================================================================================
Delayed Task - Cancelable Countdown Before a Device Read
================================================================================

Wind readings are taken a few seconds after the operator presses the
button, so the gauge samples the air while the athlete is in the run-up.
This module wraps that countdown in a single object with one owner.

Lifecycle:
    start(n)  -> tick(n-1) ... tick(1) -> fired()
    cancel()  -> cancelled()          (never fires afterwards)

Starting a new countdown cancels the running one first.
"""

from PyQt6.QtCore import QObject, QTimer, pyqtSignal
from loguru import logger

from ..utils.constants import WIND_COUNTDOWN_SECONDS


class DelayedTask(QObject):
    """
    One-shot countdown that fires once unless cancelled.

    Signals:
        tick: Seconds remaining, emitted once per second while counting
        fired: Countdown reached zero; the owner issues the read now
        cancelled: Countdown was stopped before reaching zero

    Example:
        >>> task = DelayedTask(parent=self)
        >>> task.tick.connect(lambda s: label.setText(str(s)))
        >>> task.fired.connect(self._read_wind)
        >>> task.start(5)
        >>> # Event type changed...
        >>> task.cancel()
    """

    tick = pyqtSignal(int)
    fired = pyqtSignal()
    cancelled = pyqtSignal()

    def __init__(self, interval_ms: int = 1000, parent=None):
        super().__init__(parent)
        self.remaining = 0
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._tick)

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self, seconds: int = WIND_COUNTDOWN_SECONDS) -> None:
        """
        Begin counting down.

        Args:
            seconds: Whole seconds before ``fired`` is emitted (at least 1)
        """
        if seconds < 1:
            raise ValueError(f"Countdown needs at least 1 second, got {seconds}")
        if self.is_active:
            self.cancel()

        self.remaining = int(seconds)
        self.tick.emit(self.remaining)
        self._timer.start()
        logger.debug("Countdown started ({}s)", seconds)

    def cancel(self) -> bool:
        """
        Stop the countdown. Safe to call when idle.

        Returns:
            True if a running countdown was stopped
        """
        if not self.is_active:
            return False
        self._timer.stop()
        self.remaining = 0
        self.cancelled.emit()
        logger.debug("Countdown cancelled")
        return True

    def _tick(self) -> None:
        self.remaining -= 1
        if self.remaining > 0:
            self.tick.emit(self.remaining)
            return

        self._timer.stop()
        self.remaining = 0
        self.fired.emit()
