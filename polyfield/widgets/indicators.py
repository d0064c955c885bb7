"""
================================================================================
Indicator Widgets - Status Display
================================================================================

Small painted indicators: a pulsing connection dot per device and the
colour legend beside the landing heat map.

Design Philosophy:
    "Make it simple. Make it memorable." - Leo Burnett
"""

from PyQt6.QtCore import Qt, QPropertyAnimation, QEasingCurve, QRect, pyqtProperty
from PyQt6.QtGui import QBrush, QColor, QFont, QLinearGradient, QPainter, QPen
from PyQt6.QtWidgets import QWidget

from ..styles.theme import COLORS, FONT_FAMILY, HEATMAP_HIGH_COLOR, HEATMAP_LOW_COLOR
from ..utils.constants import CELL_ALPHA_MAX, CELL_ALPHA_MIN


class PulsingDot(QWidget):
    """
    Connection status dot. Pulses while a request to the device is running.

    Example:
        >>> dot = PulsingDot()
        >>> dot.set_connected(True)
        >>> dot.start()   # request in flight
        >>> dot.stop()
    """

    def __init__(self, color: str = None, parent=None):
        super().__init__(parent)
        self.color = color or COLORS['danger']
        self._pulse = 1.0
        self.setFixedSize(20, 20)

        self._pulse_anim = QPropertyAnimation(self, b"pulse")
        self._pulse_anim.setDuration(800)
        self._pulse_anim.setStartValue(0.5)
        self._pulse_anim.setEndValue(1.0)
        self._pulse_anim.setEasingCurve(QEasingCurve.Type.InOutSine)
        self._pulse_anim.setLoopCount(-1)

    @pyqtProperty(float)
    def pulse(self) -> float:
        return self._pulse

    @pulse.setter
    def pulse(self, value: float) -> None:
        self._pulse = value
        self.update()

    def set_connected(self, connected: bool) -> None:
        self.color = COLORS['success'] if connected else COLORS['danger']
        self.update()

    def start(self) -> None:
        self._pulse_anim.start()

    def stop(self) -> None:
        self._pulse_anim.stop()
        self._pulse = 1.0
        self.update()

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setPen(Qt.PenStyle.NoPen)

        glow = QColor(self.color)
        glow.setAlpha(int(100 * self._pulse))
        painter.setBrush(QBrush(glow))
        size = 8 + int(6 * self._pulse)
        painter.drawEllipse((self.width() - size) // 2, (self.height() - size) // 2, size, size)

        painter.setBrush(QBrush(QColor(self.color)))
        painter.drawEllipse(7, 7, 6, 6)


class ColorLegendWidget(QWidget):
    """
    Vertical legend for the landing heat map.

    The gradient runs from the sparse-cell colour (bottom) to the
    dense-cell colour (top), with the same alpha ramp the canvas uses.
    The top label shows the busiest cell's throw count.

    Example:
        >>> legend = ColorLegendWidget()
        >>> legend.set_max_count(7)
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.max_count = 0
        self.setFixedWidth(70)
        self.setMinimumHeight(200)

    def set_max_count(self, count: int) -> None:
        self.max_count = count
        self.update()

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor(COLORS['bg_card']))

        bar = QRect(10, 40, 20, self.height() - 80)
        gradient = QLinearGradient(0, bar.bottom(), 0, bar.top())
        low = QColor(*HEATMAP_LOW_COLOR, CELL_ALPHA_MIN)
        high = QColor(*HEATMAP_HIGH_COLOR, CELL_ALPHA_MAX)
        gradient.setColorAt(0.0, low)
        gradient.setColorAt(1.0, high)

        painter.setBrush(gradient)
        painter.setPen(QPen(QColor(COLORS['border']), 1))
        painter.drawRoundedRect(bar, 4, 4)

        painter.setPen(QPen(QColor(COLORS['text_dark'])))
        painter.setFont(QFont(FONT_FAMILY.split(',')[0], 9))
        painter.drawText(5, 25, "Throws")
        painter.drawText(35, bar.top() + 12, str(self.max_count) if self.max_count else "High")
        painter.drawText(35, bar.bottom() + 4, "1" if self.max_count else "Low")
