"""
================================================================================
Warning Widgets - Tolerance Alert
================================================================================

Banner shown in the calibration dialog when an edge verification falls
outside tolerance. A failed verification is a valid outcome, not an
error, so the banner explains what to do next instead of just flagging it.
"""

from PyQt6.QtCore import Qt, QPropertyAnimation, QEasingCurve, QPoint
from PyQt6.QtGui import QColor, QFont
from PyQt6.QtWidgets import QGraphicsDropShadowEffect, QLabel, QVBoxLayout, QWidget

from ..core.tolerance import ToleranceResult, describe_verdict
from ..styles.theme import COLORS, FONT_FAMILY

_FONT = FONT_FAMILY.split(',')[0]


class ToleranceWarningWidget(QWidget):
    """
    Out-of-tolerance banner with a short drop-in animation.

    Example:
        >>> banner = ToleranceWarningWidget(dialog)
        >>> banner.show_result(state.edge)   # hides itself when in tolerance
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setVisible(False)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(18, 12, 18, 12)

        self.title_label = QLabel("Edge out of tolerance")
        self.title_label.setFont(QFont(_FONT, 12, QFont.Weight.Bold))
        self.title_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.title_label.setStyleSheet(f"color: {COLORS['text_white']};")
        layout.addWidget(self.title_label)

        self.detail_label = QLabel("")
        self.detail_label.setWordWrap(True)
        self.detail_label.setFont(QFont(_FONT, 10))
        self.detail_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.detail_label.setStyleSheet("color: rgba(255,255,255,0.9);")
        layout.addWidget(self.detail_label)

        self.setStyleSheet(f"""
            QWidget {{
                background-color: {COLORS['danger']};
                border-radius: 12px;
            }}
        """)
        shadow = QGraphicsDropShadowEffect()
        shadow.setBlurRadius(24)
        shadow.setColor(QColor(220, 38, 38, 90))
        shadow.setOffset(0, 6)
        self.setGraphicsEffect(shadow)

        self._drop_anim = QPropertyAnimation(self, b"pos")
        self._drop_anim.setDuration(150)
        self._drop_anim.setEasingCurve(QEasingCurve.Type.OutBounce)

    def show_result(self, result: ToleranceResult) -> None:
        if result is None or result.is_in_tolerance:
            self.hide_warning()
            return
        self.show_warning(describe_verdict(result))

    def show_warning(self, message: str) -> None:
        self.detail_label.setText(message)
        was_visible = self.isVisible()
        self.setVisible(True)
        if not was_visible:
            end = self.pos()
            self._drop_anim.setStartValue(QPoint(end.x(), end.y() - 12))
            self._drop_anim.setEndValue(end)
            self._drop_anim.start()

    def hide_warning(self) -> None:
        self._drop_anim.stop()
        self.setVisible(False)
