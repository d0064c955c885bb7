"""
================================================================================
Main Window - Field Event Console
================================================================================

The operator's single screen during a competition: it ties together the
device connections, EDM calibration, measurement and the landing heat map.

Design Philosophy:
    "Simplicity is the ultimate sophistication." - Leonardo da Vinci

The window is organized into clear sections:
    - Left side: Landing heat map, session statistics, throw history
    - Right side: Event, devices, calibration, measurement, settings

Every device request runs through the DeviceClient, so the window never
blocks while the EDM is taking a reading.
"""

from typing import Dict, List, Optional, Set

import pyqtgraph as pg
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import (
    QApplication, QComboBox, QFileDialog, QHBoxLayout, QLabel, QLineEdit,
    QMainWindow, QScrollArea, QSpinBox, QStatusBar, QVBoxLayout, QWidget
)
from loguru import logger

from .core import (
    CalibrationStateMachine, CircleType, DelayedTask, DemoDeviceBackend, DeviceBackend,
    DeviceClient, HeatmapData, HttpDeviceBackend, NoCoordinatesError, REGULATION_RADII,
    compute_statistics, empty_heatmap, export_plan_figure
)
from .dialogs import CalibrationDialog
from .session_config import (
    CONNECTION_NETWORK, CONNECTION_SERIAL, SessionConfig, save_default_config
)
from .styles.theme import COLORS, FONT_FAMILY
from .utils.constants import (
    DEVICE_EDM, DEVICE_SCOREBOARD, DEVICE_WIND, EVENT_HORIZONTAL_JUMPS, EVENT_THROWS,
    GRID_SIZES, WIND_COUNTDOWN_SECONDS
)
from .widgets import (
    AnimatedButton, ColorLegendWidget, FriendlyCard, HeatmapCanvas, PulsingDot, StatDisplay
)

_FONT = FONT_FAMILY.split(',')[0]

DEVICE_LABELS = {
    DEVICE_EDM: "EDM",
    DEVICE_WIND: "Wind Gauge",
    DEVICE_SCOREBOARD: "Scoreboard",
}

# Request keys for operations that do not address a single device
_SYSTEM = "system"
_HEATMAP = "heatmap"


def _transparent(color: str) -> str:
    return f"color: {color}; background: transparent; border: none;"


class DeviceRow(QWidget):
    """
    Connection controls for one device: status dot, serial/network choice,
    port or address, connect button.
    """

    def __init__(self, device_id: str, parent=None):
        super().__init__(parent)
        self.device_id = device_id

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 4, 0, 4)
        layout.setSpacing(6)

        header = QHBoxLayout()
        self.dot = PulsingDot()
        header.addWidget(self.dot)
        name = QLabel(DEVICE_LABELS.get(device_id, device_id))
        name.setFont(QFont(_FONT, 11, QFont.Weight.Bold))
        name.setStyleSheet(_transparent(COLORS['text_dark']))
        header.addWidget(name)
        header.addStretch()
        self.type_combo = QComboBox()
        self.type_combo.addItem("Serial", CONNECTION_SERIAL)
        self.type_combo.addItem("Network", CONNECTION_NETWORK)
        self.type_combo.currentIndexChanged.connect(lambda _: self._on_type_changed())
        header.addWidget(self.type_combo)
        layout.addLayout(header)

        address = QHBoxLayout()
        self.port_combo = QComboBox()
        address.addWidget(self.port_combo, stretch=1)
        self.ip_edit = QLineEdit()
        self.ip_edit.setPlaceholderText("192.168.1.100")
        address.addWidget(self.ip_edit, stretch=1)
        self.tcp_spin = QSpinBox()
        self.tcp_spin.setRange(1, 65535)
        address.addWidget(self.tcp_spin)
        layout.addLayout(address)

        self.connect_btn = AnimatedButton("Connect", "success")
        layout.addWidget(self.connect_btn)

        self._on_type_changed()

    def connection_type(self) -> str:
        return self.type_combo.currentData()

    def _on_type_changed(self) -> None:
        network = self.connection_type() == CONNECTION_NETWORK
        self.port_combo.setVisible(not network)
        self.ip_edit.setVisible(network)
        self.tcp_spin.setVisible(network)

    def set_ports(self, ports: List[str], preferred: str = "") -> None:
        current = self.port_combo.currentData() or preferred
        self.port_combo.clear()
        for port in ports:
            self.port_combo.addItem(port, port)
        if not ports:
            self.port_combo.addItem("No ports found", None)
        index = self.port_combo.findData(current)
        if index >= 0:
            self.port_combo.setCurrentIndex(index)

    def set_connected(self, connected: bool) -> None:
        self.dot.set_connected(connected)
        self.connect_btn.set_idle_text("Disconnect" if connected else "Connect")
        self.connect_btn.set_color_scheme("danger" if connected else "success")
        self.type_combo.setEnabled(not connected)
        self.port_combo.setEnabled(not connected)
        self.ip_edit.setEnabled(not connected)
        self.tcp_spin.setEnabled(not connected)


class FieldEventWindow(QMainWindow):
    """
    Main application window.

    Args:
        config: Session configuration (devices always start disconnected)
        backend: Initial DeviceBackend; created from the config if omitted

    Example:
        >>> app = QApplication(sys.argv)
        >>> window = FieldEventWindow(get_default_config())
        >>> window.show()
        >>> sys.exit(app.exec())
    """

    def __init__(self, config: SessionConfig, backend: Optional[DeviceBackend] = None):
        super().__init__()
        self.setWindowTitle("PolyField - Field Event Console")
        self.setMinimumSize(1280, 820)

        self.config = config
        self.config.disconnect_all()
        self._demo_backend: Optional[DemoDeviceBackend] = None
        self.client = DeviceClient(backend or self._backend_for_mode(config.demo_mode), parent=self)
        self.machine = CalibrationStateMachine()

        self.wind_task = DelayedTask(parent=self)
        self.wind_task.tick.connect(self._on_wind_tick)
        self.wind_task.fired.connect(self._read_wind)
        self.wind_task.cancelled.connect(self._on_wind_cancelled)

        self.history: List[float] = []
        self.last_result: Optional[str] = None
        self.calibration_dialog: Optional[CalibrationDialog] = None
        self.device_rows: Dict[str, DeviceRow] = {}
        # Refreshes refused by the request gate, re-run when that key frees up
        self._pending_refresh: Set[str] = set()

        self._build_ui()
        self.client.request_started.connect(self._on_request_started)
        self.client.request_finished.connect(self._on_request_finished)
        self.client.request_failed.connect(self._on_request_failed)

        self._apply_event_type(self.config.last_event_type)
        self._refresh_ports()
        self._sync_calibration()
        self._refresh_heatmap()

    # =========================================================================
    # Backend Selection
    # =========================================================================

    def _backend_for_mode(self, demo: bool) -> DeviceBackend:
        if demo:
            if self._demo_backend is None:
                self._demo_backend = DemoDeviceBackend()
            return self._demo_backend
        return HttpDeviceBackend(self.config)

    @property
    def backend(self) -> DeviceBackend:
        return self.client.backend

    # =========================================================================
    # UI Construction
    # =========================================================================

    def _build_ui(self) -> None:
        """Build the complete user interface."""
        self._apply_global_styles()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setSpacing(20)
        main_layout.setContentsMargins(20, 20, 20, 20)

        main_layout.addLayout(self._build_display_panel(), stretch=3)
        main_layout.addWidget(self._build_controls_panel())

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage("Connect the devices, then calibrate the EDM.")

    def _apply_global_styles(self) -> None:
        self.setStyleSheet(f"""
            QMainWindow {{
                background-color: {COLORS['bg_main']};
            }}
            QLabel {{
                font-family: {FONT_FAMILY};
            }}
            QComboBox, QLineEdit, QSpinBox {{
                font-family: {FONT_FAMILY};
                background-color: {COLORS['bg_card']};
                border: 2px solid {COLORS['border']};
                border-radius: 8px;
                padding: 6px 10px;
                font-size: 12px;
                color: {COLORS['text_dark']};
            }}
            QComboBox:hover, QLineEdit:focus {{
                border-color: {COLORS['primary']};
            }}
            QStatusBar {{
                background-color: {COLORS['bg_card']};
                color: {COLORS['text_light']};
                font-family: {FONT_FAMILY};
                font-size: 11px;
                padding: 6px;
            }}
        """)

    def _build_display_panel(self) -> QVBoxLayout:
        layout = QVBoxLayout()
        layout.setSpacing(16)

        header = QLabel("Landing Heat Map")
        header.setFont(QFont(_FONT, 20, QFont.Weight.Bold))
        header.setStyleSheet(f"color: {COLORS['text_dark']};")
        layout.addWidget(header)

        layout.addWidget(self._build_heatmap_card(), stretch=3)
        layout.addLayout(self._build_stats_row())
        layout.addWidget(self._build_history_card(), stretch=1)
        return layout

    def _build_heatmap_card(self) -> FriendlyCard:
        card = FriendlyCard()

        controls = QHBoxLayout()
        self.heatmap_circle_combo = QComboBox()
        for circle_type in CircleType:
            self.heatmap_circle_combo.addItem(circle_type.label, circle_type)
        self.heatmap_circle_combo.currentIndexChanged.connect(lambda _: self._refresh_heatmap())
        controls.addWidget(self.heatmap_circle_combo)

        self.grid_combo = QComboBox()
        for size in GRID_SIZES:
            self.grid_combo.addItem(f"{size:g} m grid", size)
        index = self.grid_combo.findData(self.config.heatmap_grid_size)
        self.grid_combo.setCurrentIndex(index if index >= 0 else 1)
        self.grid_combo.currentIndexChanged.connect(lambda _: self._on_grid_changed())
        controls.addWidget(self.grid_combo)
        controls.addStretch()

        self.refresh_heatmap_btn = AnimatedButton("Refresh", "secondary")
        self.refresh_heatmap_btn.clicked.connect(self._refresh_heatmap)
        controls.addWidget(self.refresh_heatmap_btn)

        self.export_btn = AnimatedButton("Export", "primary")
        self.export_btn.clicked.connect(self._export_heatmap)
        controls.addWidget(self.export_btn)
        card.add_layout(controls)

        body = QHBoxLayout()
        self.heatmap_canvas = HeatmapCanvas()
        body.addWidget(self.heatmap_canvas, stretch=1)
        self.color_legend = ColorLegendWidget()
        body.addWidget(self.color_legend)
        card.add_layout(body)
        return card

    def _build_stats_row(self) -> QHBoxLayout:
        layout = QHBoxLayout()
        layout.setSpacing(12)

        self.throws_stat = StatDisplay("Throws", "0", COLORS['primary'])
        self.best_stat = StatDisplay("Best", "-", COLORS['success'])
        self.mean_stat = StatDisplay("Average", "-", COLORS['info'])
        self.spread_stat = StatDisplay("Spread", "-", COLORS['warning'])

        for stat in (self.throws_stat, self.best_stat, self.mean_stat, self.spread_stat):
            layout.addWidget(stat)
        return layout

    def _build_history_card(self) -> FriendlyCard:
        card = FriendlyCard("Throw History")

        self.history_plot = pg.PlotWidget()
        self.history_plot.setBackground(COLORS['bg_card'])
        self.history_plot.setLabel('left', 'Distance (m)')
        self.history_plot.setLabel('bottom', 'Attempt')
        self.history_plot.showGrid(x=True, y=True, alpha=0.2)
        self.history_curve = self.history_plot.plot(
            pen=pg.mkPen(color=COLORS['primary'], width=2),
            symbol='o', symbolSize=7, symbolBrush=COLORS['primary']
        )

        card.add_widget(self.history_plot)
        return card

    def _build_controls_panel(self) -> QScrollArea:
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setStyleSheet("QScrollArea { border: none; background-color: transparent; }")

        widget = QWidget()
        layout = QVBoxLayout(widget)
        layout.setSpacing(16)
        layout.setContentsMargins(0, 0, 0, 0)

        layout.addWidget(self._build_event_card())
        layout.addWidget(self._build_devices_card())
        layout.addWidget(self._build_calibration_card())
        layout.addWidget(self._build_measurement_card())
        layout.addWidget(self._build_settings_card())
        layout.addStretch()

        scroll.setWidget(widget)
        scroll.setFixedWidth(360)
        return scroll

    def _build_event_card(self) -> FriendlyCard:
        card = FriendlyCard("Event")
        self.event_combo = QComboBox()
        self.event_combo.addItem(EVENT_THROWS, EVENT_THROWS)
        self.event_combo.addItem(EVENT_HORIZONTAL_JUMPS, EVENT_HORIZONTAL_JUMPS)
        self.event_combo.currentIndexChanged.connect(
            lambda: self._apply_event_type(self.event_combo.currentData())
        )
        card.add_widget(self.event_combo)
        return card

    def _build_devices_card(self) -> FriendlyCard:
        card = FriendlyCard("Devices")

        for device_id in (DEVICE_EDM, DEVICE_WIND, DEVICE_SCOREBOARD):
            row = DeviceRow(device_id)
            conn = self.config.device(device_id)
            index = row.type_combo.findData(conn.connection_type)
            row.type_combo.setCurrentIndex(max(index, 0))
            row.ip_edit.setText(conn.ip)
            row.tcp_spin.setValue(conn.tcp_port)
            row.connect_btn.clicked.connect(lambda _, d=device_id: self._toggle_connection(d))
            self.device_rows[device_id] = row
            card.add_widget(row)

        self.refresh_ports_btn = AnimatedButton("Refresh Ports", "secondary")
        self.refresh_ports_btn.clicked.connect(self._refresh_ports)
        card.add_widget(self.refresh_ports_btn)
        return card

    def _build_calibration_card(self) -> FriendlyCard:
        card = FriendlyCard("Calibration")

        self.calib_status = QLabel("Not calibrated yet")
        self.calib_status.setFont(QFont(_FONT, 11))
        self.calib_status.setWordWrap(True)
        self.calib_status.setStyleSheet(_transparent(COLORS['warning']))
        self.calib_status.setAlignment(Qt.AlignmentFlag.AlignCenter)
        card.add_widget(self.calib_status)

        self.calibrate_btn = AnimatedButton("Calibrate EDM", "primary")
        self.calibrate_btn.clicked.connect(self._open_calibration)
        card.add_widget(self.calibrate_btn)
        return card

    def _build_measurement_card(self) -> FriendlyCard:
        card = FriendlyCard("Measurement")

        self.result_label = QLabel("-")
        self.result_label.setFont(QFont(_FONT, 30, QFont.Weight.Bold))
        self.result_label.setStyleSheet(_transparent(COLORS['primary']))
        self.result_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        card.add_widget(self.result_label)

        self.measure_btn = AnimatedButton("Measure Throw", "success")
        self.measure_btn.clicked.connect(self._measure_throw)
        card.add_widget(self.measure_btn)

        self.countdown_label = QLabel("")
        self.countdown_label.setFont(QFont(_FONT, 24, QFont.Weight.Bold))
        self.countdown_label.setStyleSheet(_transparent(COLORS['danger']))
        self.countdown_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        card.add_widget(self.countdown_label)

        wind_row = QHBoxLayout()
        self.wind_btn = AnimatedButton("Measure Wind", "primary")
        self.wind_btn.clicked.connect(self._start_wind_countdown)
        wind_row.addWidget(self.wind_btn)
        self.wind_cancel_btn = AnimatedButton("Cancel", "secondary")
        self.wind_cancel_btn.setEnabled(False)
        self.wind_cancel_btn.clicked.connect(lambda: self.wind_task.cancel())
        wind_row.addWidget(self.wind_cancel_btn)
        card.add_layout(wind_row)

        self.scoreboard_btn = AnimatedButton("Send to Scoreboard", "secondary")
        self.scoreboard_btn.setEnabled(False)
        self.scoreboard_btn.clicked.connect(self._send_to_scoreboard)
        card.add_widget(self.scoreboard_btn)
        return card

    def _build_settings_card(self) -> FriendlyCard:
        card = FriendlyCard("Settings")

        self.demo_btn = AnimatedButton("", "primary")
        self.demo_btn.clicked.connect(self._toggle_demo)
        card.add_widget(self.demo_btn)
        self._update_demo_button()

        url_label = QLabel("Device server")
        url_label.setStyleSheet(_transparent(COLORS['text_light']))
        card.add_widget(url_label)

        url_row = QHBoxLayout()
        self.server_url_edit = QLineEdit(self.config.server_url)
        url_row.addWidget(self.server_url_edit, stretch=1)
        apply_btn = AnimatedButton("Apply", "secondary")
        apply_btn.clicked.connect(self._apply_server_url)
        url_row.addWidget(apply_btn)
        card.add_layout(url_row)
        return card

    # =========================================================================
    # Request Feedback
    # =========================================================================

    def _on_request_started(self, device_id: str, action: str) -> None:
        row = self.device_rows.get(device_id)
        if row is not None:
            row.dot.start()

    def _on_request_finished(self, device_id: str, action: str) -> None:
        row = self.device_rows.get(device_id)
        if row is not None and not self.client.is_busy(device_id):
            row.dot.stop()

        if device_id in self._pending_refresh:
            self._pending_refresh.discard(device_id)
            if device_id == _HEATMAP:
                self._refresh_heatmap()
            elif device_id == DEVICE_EDM:
                self._sync_calibration()

    def _on_request_failed(self, device_id: str, action: str, message: str) -> None:
        self.status_bar.showMessage(f"{action.replace('_', ' ')}: {message}")

    # =========================================================================
    # Event Type
    # =========================================================================

    def _apply_event_type(self, event_type: str) -> None:
        """Switch between throws and horizontal jumps; cancels a running wind countdown."""
        if event_type not in (EVENT_THROWS, EVENT_HORIZONTAL_JUMPS):
            event_type = EVENT_THROWS
        self.wind_task.cancel()
        self.config.last_event_type = event_type

        index = self.event_combo.findData(event_type)
        if index != self.event_combo.currentIndex():
            self.event_combo.blockSignals(True)
            self.event_combo.setCurrentIndex(index)
            self.event_combo.blockSignals(False)

        throws = event_type == EVENT_THROWS
        self.measure_btn.setVisible(throws)
        self.calibrate_btn.setEnabled(throws)
        self.wind_btn.setVisible(not throws)
        self.wind_cancel_btn.setVisible(not throws)
        self.countdown_label.setText("")
        logger.info("Event type set to {}", event_type)

    # =========================================================================
    # Devices
    # =========================================================================

    def _refresh_ports(self) -> None:
        def loaded(ports) -> None:
            for device_id, row in self.device_rows.items():
                row.set_ports(list(ports), self.config.device(device_id).port)

        self.client.request(_SYSTEM, "list_ports", self.backend.list_serial_ports, on_success=loaded)

    def _toggle_connection(self, device_id: str) -> None:
        row = self.device_rows[device_id]
        conn = self.config.device(device_id)

        if conn.connected:
            self.client.request(
                device_id, "disconnect", self.backend.disconnect_device, device_id,
                on_success=lambda msg: self._on_connection_changed(device_id, False, msg),
                on_failure=lambda e: self._on_connection_changed(device_id, False, str(e)),
            )
            return

        conn.connection_type = row.connection_type()
        if conn.connection_type == CONNECTION_SERIAL:
            conn.port = row.port_combo.currentData() or ""
            if not conn.port:
                self.status_bar.showMessage(f"Choose a serial port for the {DEVICE_LABELS[device_id]}")
                return
            fn, args = self.backend.connect_serial_device, (device_id, conn.port)
        else:
            conn.ip = row.ip_edit.text().strip()
            conn.tcp_port = row.tcp_spin.value()
            issues = [i for i in self.config.validate() if i.startswith(f"{device_id}:")]
            if issues:
                self.status_bar.showMessage(issues[0])
                return
            fn, args = self.backend.connect_network_device, (device_id, conn.ip, conn.tcp_port)

        row.connect_btn.set_busy(True, "Connecting...")
        self.client.request(
            device_id, "connect", fn, *args,
            on_success=lambda msg: self._on_connection_changed(device_id, True, msg),
            on_failure=lambda e: row.connect_btn.set_busy(False),
        )

    def _on_connection_changed(self, device_id: str, connected: bool, message) -> None:
        self.config.device(device_id).connected = connected
        row = self.device_rows[device_id]
        row.connect_btn.set_busy(False)
        row.set_connected(connected)
        if message:
            self.status_bar.showMessage(str(message))

    # =========================================================================
    # Calibration
    # =========================================================================

    def _sync_calibration(self) -> None:
        """Adopt the EDM calibration stored by the backend."""
        pending = self.machine.pending_action(DEVICE_EDM)
        if pending is not None:
            self._pending_refresh.add(DEVICE_EDM)
            logger.debug("Calibration sync deferred until '{}' finishes", pending)
            return
        self.machine.begin_request(DEVICE_EDM, "get_calibration")

        def loaded(record) -> None:
            self.machine.end_request(DEVICE_EDM)
            if record:
                self.machine.apply_record(DEVICE_EDM, record)
            self._refresh_calibration_status()

        def failed(_) -> None:
            self.machine.end_request(DEVICE_EDM)

        if not self.client.request(DEVICE_EDM, "get_calibration", self.backend.get_calibration,
                                   DEVICE_EDM, on_success=loaded, on_failure=failed):
            self.machine.end_request(DEVICE_EDM)
            self._pending_refresh.add(DEVICE_EDM)

    def _open_calibration(self) -> None:
        if self.calibration_dialog is None:
            self.calibration_dialog = CalibrationDialog(self.machine, self.client, DEVICE_EDM, self)
            self.calibration_dialog.calibration_changed.connect(self._on_calibration_changed)
        self.calibration_dialog.exec()

    def _on_calibration_changed(self, device_id: str) -> None:
        self._refresh_calibration_status()
        circle_type = self.machine.state(device_id).circle.circle_type
        index = self.heatmap_circle_combo.findData(circle_type)
        if index >= 0 and index != self.heatmap_circle_combo.currentIndex():
            self.heatmap_circle_combo.setCurrentIndex(index)

    def _refresh_calibration_status(self) -> None:
        state = self.machine.state(DEVICE_EDM)
        circle = state.circle
        if self.machine.is_ready(DEVICE_EDM):
            text = f"Ready - {circle.circle_type.label}, edge {state.edge.difference_mm:+.1f} mm"
            color = COLORS['success']
        elif state.edge is not None:
            text = "Edge out of tolerance - verify the edge again"
            color = COLORS['danger']
        elif state.centre is not None:
            text = "Centre set - verify the edge"
            color = COLORS['warning']
        else:
            text = f"Not calibrated ({circle.circle_type.label})"
            color = COLORS['warning']
        self.calib_status.setText(text)
        self.calib_status.setStyleSheet(_transparent(color))

    # =========================================================================
    # Measurement
    # =========================================================================

    def _measure_throw(self) -> None:
        if not self.config.demo_mode and not self.machine.is_ready(DEVICE_EDM):
            self.status_bar.showMessage("Calibrate the EDM (centre and edge) before measuring.")
            return

        self.measure_btn.set_busy(True, "Measuring...")
        started = self.client.request(
            DEVICE_EDM, "measure_throw", self.backend.measure_throw, DEVICE_EDM,
            on_success=self._on_throw_measured,
            on_failure=lambda e: self.measure_btn.set_busy(False),
        )
        if not started:
            self.measure_btn.set_busy(False)

    def _on_throw_measured(self, result: str) -> None:
        self.measure_btn.set_busy(False)
        self._show_result(result)
        try:
            self.history.append(float(result.split()[0]))
        except (ValueError, IndexError):
            logger.warning("Could not parse throw result {!r}", result)
        self.history_curve.setData(list(range(1, len(self.history) + 1)), self.history)
        self._refresh_heatmap()

    def _start_wind_countdown(self) -> None:
        self.wind_btn.setEnabled(False)
        self.wind_cancel_btn.setEnabled(True)
        self.wind_task.start(WIND_COUNTDOWN_SECONDS)

    def _on_wind_tick(self, remaining: int) -> None:
        self.countdown_label.setText(str(remaining))

    def _on_wind_cancelled(self) -> None:
        self.countdown_label.setText("")
        self.wind_btn.setEnabled(True)
        self.wind_cancel_btn.setEnabled(False)

    def _read_wind(self) -> None:
        self.countdown_label.setText("")
        self.wind_cancel_btn.setEnabled(False)
        self.wind_btn.set_busy(True, "Reading...")

        def done(result) -> None:
            self.wind_btn.set_busy(False)
            self._show_result(result)

        started = self.client.request(
            DEVICE_WIND, "measure_wind", self.backend.measure_wind, DEVICE_WIND,
            on_success=done, on_failure=lambda e: self.wind_btn.set_busy(False),
        )
        if not started:
            self.wind_btn.set_busy(False)

    def _show_result(self, result: str) -> None:
        self.last_result = result
        self.result_label.setText(result)
        self.scoreboard_btn.setEnabled(True)
        self.status_bar.showMessage(f"Measured {result}")

    def _send_to_scoreboard(self) -> None:
        if not self.last_result:
            return
        value = self.last_result.split()[0]
        self.client.request(
            DEVICE_SCOREBOARD, "send", self.backend.send_to_scoreboard, value,
            on_success=lambda _: self.status_bar.showMessage(f"Scoreboard shows {value}"),
        )

    # =========================================================================
    # Heat Map
    # =========================================================================

    def _heatmap_radius(self, circle_type: CircleType) -> float:
        circle = self.machine.state(DEVICE_EDM).circle
        if circle.circle_type is circle_type:
            return circle.target_radius
        return REGULATION_RADII.get(circle_type, circle.target_radius)

    def _on_grid_changed(self) -> None:
        self.config.heatmap_grid_size = self.grid_combo.currentData()
        self._refresh_heatmap()

    def _refresh_heatmap(self) -> None:
        circle_type = self.heatmap_circle_combo.currentData()
        grid_size = self.grid_combo.currentData()

        def loaded(data: dict) -> None:
            try:
                heatmap = HeatmapData.from_dict(data or {})
            except ValueError as e:
                self.status_bar.showMessage(f"Heat map data rejected: {e}")
                return
            self._show_heatmap(heatmap)

        def failed(error) -> None:
            if isinstance(error, NoCoordinatesError):
                self._show_heatmap(empty_heatmap(circle_type, grid_size))

        if not self.client.request(_HEATMAP, "export", self.backend.export_heatmap_data,
                                   circle_type.value, grid_size, on_success=loaded, on_failure=failed):
            # Fetched again with the current selection once the running export lands
            self._pending_refresh.add(_HEATMAP)
            self.status_bar.showMessage("Heat map update queued behind the running export.")

    def _show_heatmap(self, heatmap: HeatmapData) -> None:
        self.heatmap_canvas.set_data(heatmap, self._heatmap_radius(heatmap.circle_type))
        self.color_legend.set_max_count(heatmap.max_count)

        stats = compute_statistics(heatmap.coordinates)
        self.throws_stat.set_value(str(heatmap.total_throws))
        if stats.total_throws:
            self.best_stat.set_value(f"{stats.max_distance:.2f} m")
            self.mean_stat.set_value(f"{stats.average_distance:.2f} m")
            self.spread_stat.set_value(f"{stats.spread_radius:.1f} m")
        else:
            for stat in (self.best_stat, self.mean_stat, self.spread_stat):
                stat.set_value("-")

    def _export_heatmap(self) -> None:
        plan = self.heatmap_canvas.current_plan()
        filepath, _ = QFileDialog.getSaveFileName(
            self, "Export Heat Map", f"heatmap_{plan.circle_type.value.lower()}.png",
            "Images (*.png *.pdf *.svg)"
        )
        if not filepath:
            return
        title = f"{plan.circle_type.label} - {plan.total_throws} throws"
        try:
            path = export_plan_figure(plan, filepath, title=title)
        except (OSError, ValueError) as e:
            logger.error("Heat map export failed: {}", e)
            self.status_bar.showMessage(f"Export failed: {e}")
            return
        self.status_bar.showMessage(f"Heat map saved to {path}")

    # =========================================================================
    # Settings
    # =========================================================================

    def _update_demo_button(self) -> None:
        if self.config.demo_mode:
            self.demo_btn.set_idle_text("Demo Mode: ON")
            self.demo_btn.set_color_scheme("primary")
        else:
            self.demo_btn.set_idle_text("Demo Mode: OFF")
            self.demo_btn.set_color_scheme("secondary")

    def _toggle_demo(self) -> None:
        if self.client.gate.pending():
            self.status_bar.showMessage("Wait for running requests to finish before switching mode.")
            return

        self.wind_task.cancel()
        self.config.demo_mode = not self.config.demo_mode
        self.config.disconnect_all()
        for row in self.device_rows.values():
            row.set_connected(False)

        backend = self._backend_for_mode(self.config.demo_mode)
        self.client.set_backend(backend)
        self.client.request(_SYSTEM, "set_demo_mode", backend.set_demo_mode, self.config.demo_mode)
        self._update_demo_button()
        self.status_bar.showMessage(
            "Demo mode: simulated devices" if self.config.demo_mode
            else f"Live mode: {self.config.server_url}"
        )

        self._refresh_ports()
        self._sync_calibration()
        self._refresh_heatmap()

    def _apply_server_url(self) -> None:
        previous = self.config.server_url
        self.config.server_url = self.server_url_edit.text().strip()
        issues = [i for i in self.config.validate() if i.startswith("Server URL")]
        if issues:
            self.config.server_url = previous
            self.status_bar.showMessage(issues[0])
            return
        save_default_config(self.config)
        self.status_bar.showMessage(f"Device server set to {self.config.server_url}")

    # =========================================================================
    # Cleanup
    # =========================================================================

    def closeEvent(self, event) -> None:
        """Cancel the countdown, let running requests finish, save settings."""
        self.wind_task.cancel()
        if not self.client.wait_for_idle():
            logger.warning("Closing with device requests still running")
        try:
            save_default_config(self.config)
        except OSError as e:
            logger.error("Could not save session config: {}", e)
        event.accept()
        app = QApplication.instance()
        if app is not None:
            app.quit()
