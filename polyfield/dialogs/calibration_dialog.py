"""
================================================================================
Calibration Dialog - EDM Circle Calibration Workflow
================================================================================

Walks the operator through calibrating one EDM against the throwing circle:

    1. Select Circle      choose the circle (or enter a custom radius)
    2. Set Centre         aim at the centre peg and take a reading
    3. Verify Edge        aim at the circle edge; the radius is checked
    4. Check Mark         optional reading of a fixed reference peg

Each step has a Retry button that goes back to the start of that step.
Buttons for a step only enable once the step before it is complete, and
stay disabled while the EDM is busy with a reading.
"""

from typing import Callable, Optional

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import (
    QComboBox, QDialog, QDoubleSpinBox, QHBoxLayout, QLabel, QVBoxLayout
)
from loguru import logger

from ..core.backend import READ_CONTEXT_CHECK_MARK
from ..core.calibration import (
    CalibrationBusyError, CalibrationError, CalibrationStateMachine, CalibrationStep,
    measured_radius_from_record, parse_timestamp, station_from_record
)
from ..core.circles import CircleType
from ..core.device_client import DeviceClient
from ..core.tolerance import describe_verdict, grade_verdict
from ..styles.theme import COLORS, FONT_FAMILY, VERDICT_COLORS
from ..widgets.animated_button import AnimatedButton
from ..widgets.cards import STEP_ACTIVE, STEP_DONE, STEP_FAILED, STEP_PENDING, StepCard
from ..widgets.warnings import ToleranceWarningWidget

_FONT = FONT_FAMILY.split(',')[0]


class CalibrationDialog(QDialog):
    """
    Step-by-step calibration dialog for one measurement device.

    Signals:
        calibration_changed: Emitted with the device id after every transition

    Example:
        >>> dialog = CalibrationDialog(machine, client, "edm", parent)
        >>> dialog.calibration_changed.connect(self._refresh_calibration_status)
        >>> dialog.exec()
    """

    calibration_changed = pyqtSignal(str)

    def __init__(self, machine: CalibrationStateMachine, client: DeviceClient,
                 device_id: str, parent=None):
        super().__init__(parent)
        self.machine = machine
        self.client = client
        self.device_id = device_id

        self.setWindowTitle(f"Calibrate {device_id.upper()}")
        self.setMinimumSize(560, 640)
        self.setModal(True)

        self._build_ui()
        self.client.request_finished.connect(self._on_request_finished)
        self._sync_from_backend()
        self._refresh()

    # =========================================================================
    # UI Construction
    # =========================================================================

    def _build_ui(self) -> None:
        self.setStyleSheet(f"""
            QDialog {{
                background-color: {COLORS['bg_main']};
            }}
            QLabel {{
                font-family: {FONT_FAMILY};
                color: {COLORS['text_dark']};
            }}
        """)

        layout = QVBoxLayout(self)
        layout.setSpacing(12)
        layout.setContentsMargins(24, 24, 24, 24)

        title = QLabel("Circle Calibration")
        title.setFont(QFont(_FONT, 18, QFont.Weight.Bold))
        title.setStyleSheet(f"color: {COLORS['primary']};")
        layout.addWidget(title)

        self.warning_banner = ToleranceWarningWidget(self)
        layout.addWidget(self.warning_banner)

        layout.addWidget(self._build_circle_step())
        layout.addWidget(self._build_centre_step())
        layout.addWidget(self._build_edge_step())
        layout.addWidget(self._build_check_mark_step())

        self.status_label = QLabel("")
        self.status_label.setWordWrap(True)
        self.status_label.setFont(QFont(_FONT, 10))
        layout.addWidget(self.status_label)

        layout.addStretch()

        buttons = QHBoxLayout()
        self.reset_btn = AnimatedButton("Reset Calibration", "danger")
        self.reset_btn.clicked.connect(self._reset)
        buttons.addWidget(self.reset_btn)
        buttons.addStretch()
        close_btn = AnimatedButton("Close", "secondary")
        close_btn.clicked.connect(self.accept)
        buttons.addWidget(close_btn)
        layout.addLayout(buttons)

    def _build_circle_step(self) -> StepCard:
        self.circle_card = StepCard(1, "Select Circle")

        self.circle_combo = QComboBox()
        for circle_type in CircleType:
            self.circle_combo.addItem(circle_type.label, circle_type)
        self.circle_combo.currentIndexChanged.connect(lambda _: self._on_circle_combo_changed())
        self.circle_card.button_row.addWidget(self.circle_combo)

        self.custom_radius = QDoubleSpinBox()
        self.custom_radius.setDecimals(4)
        self.custom_radius.setRange(0.0001, 100.0)
        self.custom_radius.setSingleStep(0.001)
        self.custom_radius.setSuffix(" m")
        self.custom_radius.setValue(1.0)
        self.custom_radius.setVisible(False)
        self.circle_card.button_row.addWidget(self.custom_radius)

        self.apply_circle_btn = AnimatedButton("Apply", "primary")
        self.apply_circle_btn.clicked.connect(self._select_circle)
        self.circle_card.button_row.addWidget(self.apply_circle_btn)
        return self.circle_card

    def _build_centre_step(self) -> StepCard:
        self.centre_card = StepCard(2, "Set Centre")
        self.centre_btn = AnimatedButton("Set Centre", "primary")
        self.centre_btn.clicked.connect(self._set_centre)
        self.centre_retry_btn = AnimatedButton("Retry", "secondary")
        self.centre_retry_btn.clicked.connect(lambda: self._retry(CalibrationStep.CENTRE_SET))
        self.centre_card.button_row.addWidget(self.centre_btn)
        self.centre_card.button_row.addWidget(self.centre_retry_btn)
        return self.centre_card

    def _build_edge_step(self) -> StepCard:
        self.edge_card = StepCard(3, "Verify Edge")
        self.edge_btn = AnimatedButton("Verify Edge", "primary")
        self.edge_btn.clicked.connect(self._verify_edge)
        self.edge_retry_btn = AnimatedButton("Retry", "secondary")
        self.edge_retry_btn.clicked.connect(lambda: self._retry(CalibrationStep.EDGE_VERIFIED))
        self.edge_card.button_row.addWidget(self.edge_btn)
        self.edge_card.button_row.addWidget(self.edge_retry_btn)
        return self.edge_card

    def _build_check_mark_step(self) -> StepCard:
        self.check_card = StepCard(4, "Check Mark (optional)")
        self.check_btn = AnimatedButton("Measure Check Mark", "primary")
        self.check_btn.clicked.connect(self._record_check_mark)
        self.check_retry_btn = AnimatedButton("Retry", "secondary")
        self.check_retry_btn.clicked.connect(lambda: self._retry(CalibrationStep.CHECK_MARK_RECORDED))
        self.check_card.button_row.addWidget(self.check_btn)
        self.check_card.button_row.addWidget(self.check_retry_btn)
        return self.check_card

    # =========================================================================
    # Request Plumbing
    # =========================================================================

    def _start_request(self, action: str, fn: Callable, args: tuple,
                       button: Optional[AnimatedButton], busy_text: str,
                       on_success: Callable,
                       on_abort: Optional[Callable[[], None]] = None) -> bool:
        """
        Run one request that reads or writes the device's calibration.

        The device stays locked in the state machine until the request
        finishes, so no other calibration step can start on top of it.

        Args:
            action: Action name, also the request gate key
            fn: Backend callable run on the worker thread
            args: Arguments for fn
            button: Button shown busy while the request runs, if any
            busy_text: Text for the busy button
            on_success: Called with the result on the GUI thread
            on_abort: Called when the request fails or is refused

        Returns:
            True if the request was started
        """
        try:
            self.machine.begin_request(self.device_id, action)
        except CalibrationBusyError as e:
            self._set_status(str(e), COLORS['warning'])
            return False

        if button is not None:
            button.set_busy(True, busy_text)

        def finish() -> None:
            self.machine.end_request(self.device_id)
            if button is not None:
                button.set_busy(False)

        def succeeded(result) -> None:
            finish()
            try:
                on_success(result)
            except CalibrationError as e:
                self._set_status(str(e), COLORS['danger'])
            self._refresh()

        def failed(error) -> None:
            finish()
            if on_abort is not None:
                on_abort()
            self._set_status(f"{action.replace('_', ' ').capitalize()} failed: {error}", COLORS['danger'])
            self._refresh()

        started = self.client.request(self.device_id, action, fn, *args,
                                      on_success=succeeded, on_failure=failed)
        if not started:
            finish()
            if on_abort is not None:
                on_abort()
            self._set_status("A request for this step is already running.", COLORS['warning'])
        self._refresh()
        return started

    def _sync_from_backend(self) -> None:
        """Pull the device's stored calibration so the dialog reflects it."""
        def loaded(record) -> None:
            if record:
                self.machine.apply_record(self.device_id, record)
                self._emit_changed()

        self._start_request("get_calibration", self.client.backend.get_calibration, (self.device_id,),
                            None, "", loaded)

    def _on_request_finished(self, device_id: str, action: str) -> None:
        # Requests started outside the dialog also hold the device lock
        if device_id == self.device_id:
            self._refresh()

    # =========================================================================
    # Step Actions
    # =========================================================================

    def _on_circle_combo_changed(self) -> None:
        self.custom_radius.setVisible(self.circle_combo.currentData() is CircleType.CUSTOM)

    def _select_circle(self) -> None:
        pending = self.machine.pending_action(self.device_id)
        if pending is not None:
            self._set_status(f"Wait for '{pending}' to finish before changing the circle.", COLORS['warning'])
            return

        circle_type = self.circle_combo.currentData()
        custom = self.custom_radius.value() if circle_type is CircleType.CUSTOM else None
        previous = self.machine.state(self.device_id)
        try:
            state = self.machine.select_circle(self.device_id, circle_type, custom)
        except ValueError as e:
            self._set_status(str(e), COLORS['danger'])
            return
        self._emit_changed()

        def saved(_) -> None:
            self._set_status(
                f"{circle_type.label} selected, radius {state.target_radius:.4f} m. Set the centre next."
            )

        def rejected() -> None:
            self.machine.restore(self.device_id, previous)
            self._emit_changed()

        self._start_request("save_calibration", self.client.backend.save_calibration,
                            (self.device_id, self.machine.to_wire(self.device_id)),
                            self.apply_circle_btn, "Saving...", saved, on_abort=rejected)

    def _set_centre(self) -> None:
        def on_centre(record: dict) -> None:
            station = station_from_record(record)
            self.machine.set_centre(self.device_id, station, parse_timestamp(record.get("timestamp")))
            self._set_status(f"Centre set. Station at X={station.x:.3f} m, Y={station.y:.3f} m.",
                             COLORS['success'])
            self._emit_changed()

        self._start_request("set_centre", self.client.backend.set_circle_centre, (self.device_id,),
                            self.centre_btn, "Reading EDM...", on_centre)

    def _verify_edge(self) -> None:
        def on_edge(record: dict) -> None:
            state = self.machine.verify_edge(self.device_id, measured_radius_from_record(record))
            verdict = state.edge
            color = COLORS['success'] if verdict.is_in_tolerance else COLORS['danger']
            self._set_status(describe_verdict(verdict), color)
            self._emit_changed()

        self._start_request("verify_edge", self.client.backend.verify_circle_edge, (self.device_id,),
                            self.edge_btn, "Reading EDM...", on_edge)

    def _record_check_mark(self) -> None:
        def on_check(reading: dict) -> None:
            value = str((reading or {}).get("value", "")).strip()
            if not value:
                raise CalibrationError("Check mark read returned no value")
            self.machine.record_check_mark(self.device_id, value)
            self._set_status(f"Check mark recorded: {value}", COLORS['success'])
            self._emit_changed()

        self._start_request("check_mark", self.client.backend.trigger_device_read,
                            (self.device_id, READ_CONTEXT_CHECK_MARK),
                            self.check_btn, "Reading EDM...", on_check)

    def _retry(self, step: CalibrationStep) -> None:
        try:
            self.machine.retry(self.device_id, step)
        except CalibrationError as e:
            self._set_status(str(e), COLORS['warning'])
            return
        self._set_status(f"Retrying {step.name.replace('_', ' ').lower()}.")
        self._emit_changed()
        self._refresh()

    def _reset(self) -> None:
        if self.machine.pending_action(self.device_id) is not None:
            self._set_status("Wait for the current reading to finish before resetting.", COLORS['warning'])
            return

        previous = self.machine.state(self.device_id)
        self.machine.reset(self.device_id)
        record = self.machine.to_wire(self.device_id)
        backend = self.client.backend
        self._emit_changed()

        def reset_remote() -> None:
            backend.reset_calibration(self.device_id)
            backend.save_calibration(self.device_id, record)

        def done(_) -> None:
            self._set_status("Calibration reset. Circle selection kept.")

        def rejected() -> None:
            self.machine.restore(self.device_id, previous)
            self._emit_changed()

        self._start_request("reset_calibration", reset_remote, (), self.reset_btn, "Resetting...",
                            done, on_abort=rejected)

    # =========================================================================
    # Display
    # =========================================================================

    def _emit_changed(self) -> None:
        self.calibration_changed.emit(self.device_id)

    def _set_status(self, text: str, color: Optional[str] = None) -> None:
        self.status_label.setText(text)
        self.status_label.setStyleSheet(f"color: {color or COLORS['text_light']};")

    def _refresh(self) -> None:
        """Re-derive every control's state from the calibration state."""
        state = self.machine.state(self.device_id)
        step = state.step
        busy = self.machine.pending_action(self.device_id) is not None
        circle = state.circle

        index = self.circle_combo.findData(circle.circle_type)
        if index >= 0 and not self.apply_circle_btn.is_busy:
            self.circle_combo.blockSignals(True)
            self.circle_combo.setCurrentIndex(index)
            self.circle_combo.blockSignals(False)
            self._on_circle_combo_changed()
        self.circle_card.set_state(STEP_DONE, f"{circle.circle_type.label} - radius {circle.target_radius:.4f} m")
        self.circle_combo.setEnabled(not busy)
        self.apply_circle_btn.setEnabled(not busy)

        centre = state.centre
        if centre is not None:
            self.centre_card.set_state(
                STEP_DONE, f"Station X={centre.station.x:.3f} m, Y={centre.station.y:.3f} m "
                           f"({centre.centre_set_at:%H:%M:%S})"
            )
        else:
            self.centre_card.set_state(STEP_ACTIVE, "Aim the EDM at the centre peg.")
        if not self.centre_btn.is_busy:
            self.centre_btn.setEnabled(step == CalibrationStep.CIRCLE_SELECTED and not busy)
        self.centre_retry_btn.setEnabled(step >= CalibrationStep.CENTRE_SET and not busy)

        edge = state.edge
        if edge is not None:
            card_state = STEP_DONE if edge.is_in_tolerance else STEP_FAILED
            self.edge_card.set_state(
                card_state, f"Measured {edge.measured_radius:.4f} m, "
                            f"{edge.difference_mm:+.1f} mm (±{edge.tolerance_applied_mm:.1f} mm)"
            )
            self.edge_btn.set_accent(VERDICT_COLORS[grade_verdict(edge).value])
        else:
            self.edge_card.set_state(STEP_ACTIVE if centre else STEP_PENDING, "Aim the EDM at the circle edge.")
            self.edge_btn.set_accent(None)
        if not self.edge_btn.is_busy:
            self.edge_btn.setEnabled(step == CalibrationStep.CENTRE_SET and not busy)
        self.edge_retry_btn.setEnabled(step >= CalibrationStep.EDGE_VERIFIED and not busy)
        self.warning_banner.show_result(edge)

        if state.check_mark_value is not None:
            self.check_card.set_state(STEP_DONE, f"Recorded {state.check_mark_value}")
        elif edge is not None and edge.is_in_tolerance:
            self.check_card.set_state(STEP_ACTIVE, "Optional: aim at the check mark peg.")
        else:
            self.check_card.set_state(STEP_PENDING, "Available after a passing edge verification.")
        if not self.check_btn.is_busy:
            self.check_btn.setEnabled(
                step == CalibrationStep.EDGE_VERIFIED and edge.is_in_tolerance and not busy
            )
        self.check_retry_btn.setEnabled(step == CalibrationStep.CHECK_MARK_RECORDED and not busy)

        self.reset_btn.setEnabled(not busy)
        logger.debug("{}: dialog refreshed at step {}", self.device_id, step.name)
