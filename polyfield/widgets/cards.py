"""
================================================================================
Card Widgets - Container Components
================================================================================

Cards group the controls for one job (event, devices, calibration,
measurement) so the operator can find them at a glance in the field.

StepCard is the calibration variant: a numbered step with a status line
and a state colour (pending, active, done, failed).
"""

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor, QFont
from PyQt6.QtWidgets import (
    QFrame, QGraphicsDropShadowEffect, QHBoxLayout, QLabel, QVBoxLayout, QWidget
)

from ..styles.theme import COLORS, FONT_FAMILY

_FONT = FONT_FAMILY.split(',')[0]

STEP_PENDING = "pending"
STEP_ACTIVE = "active"
STEP_DONE = "done"
STEP_FAILED = "failed"

_STEP_COLORS = {
    STEP_PENDING: COLORS['text_muted'],
    STEP_ACTIVE: COLORS['primary'],
    STEP_DONE: COLORS['success'],
    STEP_FAILED: COLORS['danger'],
}


class FriendlyCard(QFrame):
    """
    A card with a drop shadow, rounded corners and an optional title.

    Example:
        >>> card = FriendlyCard("Devices")
        >>> card.add_widget(connect_button)
        >>> card.add_layout(port_row)
    """

    def __init__(self, title: str = "", parent=None):
        super().__init__(parent)
        self.title = title

        self.setStyleSheet(f"""
            FriendlyCard {{
                background-color: {COLORS['bg_card']};
                border-radius: 12px;
                border: 1px solid {COLORS['border']};
            }}
        """)
        shadow = QGraphicsDropShadowEffect()
        shadow.setBlurRadius(16)
        shadow.setColor(QColor(0, 0, 0, 25))
        shadow.setOffset(0, 3)
        self.setGraphicsEffect(shadow)

        self.main_layout = QVBoxLayout(self)
        self.main_layout.setContentsMargins(16, 16, 16, 16)
        self.main_layout.setSpacing(10)

        if title:
            title_label = QLabel(title)
            title_label.setFont(QFont(_FONT, 13, QFont.Weight.Bold))
            title_label.setStyleSheet(f"color: {COLORS['text_dark']}; background: transparent; border: none;")
            self.main_layout.addWidget(title_label)

    def add_widget(self, widget: QWidget) -> None:
        self.main_layout.addWidget(widget)

    def add_layout(self, layout) -> None:
        self.main_layout.addLayout(layout)


class StepCard(FriendlyCard):
    """
    One calibration step: number badge, title, status text and a row for
    the step's buttons.

    Example:
        >>> card = StepCard(2, "Set Centre")
        >>> card.button_row.addWidget(set_centre_btn)
        >>> card.set_state(STEP_DONE, "Station at X=-9.12m Y=3.40m")
    """

    def __init__(self, number: int, title: str, parent=None):
        super().__init__("", parent)
        self.number = number
        self.state = STEP_PENDING

        header = QHBoxLayout()
        self.badge = QLabel(str(number))
        self.badge.setFixedSize(28, 28)
        self.badge.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.badge.setFont(QFont(_FONT, 11, QFont.Weight.Bold))
        header.addWidget(self.badge)

        title_label = QLabel(title)
        title_label.setFont(QFont(_FONT, 12, QFont.Weight.Bold))
        title_label.setStyleSheet(f"color: {COLORS['text_dark']}; background: transparent; border: none;")
        header.addWidget(title_label)
        header.addStretch()
        self.add_layout(header)

        self.status_label = QLabel("")
        self.status_label.setWordWrap(True)
        self.status_label.setFont(QFont(_FONT, 10))
        self.add_widget(self.status_label)

        self.button_row = QHBoxLayout()
        self.add_layout(self.button_row)

        self.set_state(STEP_PENDING)

    def set_state(self, state: str, status: str = "") -> None:
        """
        Args:
            state: One of 'pending', 'active', 'done', 'failed'
            status: Status line shown under the title
        """
        self.state = state
        color = _STEP_COLORS[state]
        self.badge.setStyleSheet(
            f"background-color: {color}; color: {COLORS['text_white']}; border-radius: 14px; border: none;"
        )
        self.status_label.setText(status)
        self.status_label.setStyleSheet(
            f"color: {color if state == STEP_FAILED else COLORS['text_light']}; "
            "background: transparent; border: none;"
        )


class StatDisplay(QWidget):
    """
    A compact value-over-label display (throws, mean distance, spread...).

    Example:
        >>> stat = StatDisplay("Best", "-", COLORS['success'])
        >>> stat.set_value("17.42 m")
    """

    def __init__(self, label: str, value: str = "-", color: str = None, parent=None):
        super().__init__(parent)
        self.color = color or COLORS['primary']

        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 8, 10, 8)
        layout.setSpacing(2)
        layout.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.value_label = QLabel(value)
        self.value_label.setFont(QFont(_FONT, 18, QFont.Weight.Bold))
        self.value_label.setStyleSheet(f"color: {self.color};")
        self.value_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.value_label)

        text_label = QLabel(label)
        text_label.setFont(QFont(_FONT, 9))
        text_label.setStyleSheet(f"color: {COLORS['text_light']};")
        text_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(text_label)

        self.setStyleSheet(f"""
            StatDisplay {{
                background-color: {COLORS['bg_card']};
                border-radius: 8px;
                border: 1px solid {COLORS['border']};
            }}
        """)

    def set_value(self, value: str) -> None:
        self.value_label.setText(value)
