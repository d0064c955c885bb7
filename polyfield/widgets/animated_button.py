"""
================================================================================
Animated Button Widget
================================================================================

Action button used for every device request. Besides the hover colour
transition it has a *busy* state: while a request is in flight the button
is disabled and shows what it is waiting for ("Measuring...").

Design Philosophy:
    "The user should always know what the system is doing." - Jakob Nielsen

An optional accent border reflects the last result of the action, e.g.
green after a clean edge verification, red after a failed one.
"""

from typing import Optional

from PyQt6.QtCore import Qt, QPropertyAnimation, QEasingCurve, pyqtProperty
from PyQt6.QtGui import QColor, QFont
from PyQt6.QtWidgets import QPushButton

from ..styles.theme import COLORS, FONT_FAMILY


class AnimatedButton(QPushButton):
    """
    Push button with hover animation, busy state and accent border.

    Example:
        >>> btn = AnimatedButton("Set Centre", "primary")
        >>> btn.set_busy(True, "Reading EDM...")
        >>> btn.set_busy(False)
        >>> btn.set_accent(COLORS['success'])
    """

    def __init__(self, text: str, color_scheme: str = "primary", parent=None):
        super().__init__(text, parent)

        self.color_scheme = color_scheme
        self._idle_text = text
        self._busy = False
        self._accent: Optional[str] = None
        self._bg_color = QColor(COLORS[f'btn_{color_scheme}'])

        self.setFont(QFont(FONT_FAMILY.split(',')[0], 11, QFont.Weight.Bold))
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self.setMinimumHeight(40)

        self._color_anim = QPropertyAnimation(self, b"bgColor")
        self._color_anim.setDuration(150)
        self._color_anim.setEasingCurve(QEasingCurve.Type.OutCubic)

        self._update_style()

    def _update_style(self) -> None:
        text_color = COLORS['text_white'] if self.color_scheme != 'secondary' else COLORS['text_dark']
        border = f"3px solid {self._accent}" if self._accent else "none"

        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._bg_color.name()};
                color: {text_color};
                border: {border};
                border-radius: 8px;
                padding: 8px 18px;
                font-family: {FONT_FAMILY};
                font-weight: bold;
                font-size: 12px;
            }}
            QPushButton:disabled {{
                background-color: {COLORS['btn_disabled']};
                color: {COLORS['text_light']};
            }}
        """)

    # =========================================================================
    # Qt Properties for Animation
    # =========================================================================

    @pyqtProperty(QColor)
    def bgColor(self) -> QColor:
        return self._bg_color

    @bgColor.setter
    def bgColor(self, value: QColor) -> None:
        self._bg_color = value
        self._update_style()

    def _animate_to(self, key: str) -> None:
        self._color_anim.stop()
        self._color_anim.setStartValue(self._bg_color)
        self._color_anim.setEndValue(QColor(COLORS[key]))
        self._color_anim.start()

    def enterEvent(self, event) -> None:
        if self.isEnabled():
            self._animate_to(f'btn_{self.color_scheme}_hover')
        super().enterEvent(event)

    def leaveEvent(self, event) -> None:
        self._animate_to(f'btn_{self.color_scheme}')
        super().leaveEvent(event)

    # =========================================================================
    # Public Methods
    # =========================================================================

    @property
    def is_busy(self) -> bool:
        return self._busy

    def set_busy(self, busy: bool, text: str = "Working...") -> None:
        """Disable the button and show ``text`` while a request is pending."""
        self._busy = busy
        self.setEnabled(not busy)
        self.setText(text if busy else self._idle_text)

    def set_idle_text(self, text: str) -> None:
        self._idle_text = text
        if not self._busy:
            self.setText(text)

    def set_accent(self, color: Optional[str]) -> None:
        """Show (or clear, with None) a coloured border reflecting the last result."""
        self._accent = color
        self._update_style()

    def set_color_scheme(self, scheme: str) -> None:
        self.color_scheme = scheme
        self._bg_color = QColor(COLORS[f'btn_{scheme}'])
        self._update_style()
