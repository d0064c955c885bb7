"""Tests for the main window's heat map and calibration refreshes."""

import threading

import numpy as np
import pytest
from PyQt6.QtWidgets import QApplication

from polyfield.core.circles import CircleType
from polyfield.core.demo_backend import DemoDeviceBackend
from polyfield.main_window import FieldEventWindow
from polyfield.session_config import SessionConfig

pytestmark = pytest.mark.qt


class SlowExportBackend(DemoDeviceBackend):
    """Demo rig whose heat-map exports and calibration reads can be held back."""

    def __init__(self):
        super().__init__(np.random.default_rng(7), centre_delay=0, edge_delay=0, throw_delay=0)
        self.release = threading.Event()
        self.release.set()
        self.exports = []
        self.calibration_reads = 0

    def export_heatmap_data(self, circle_type, grid_size):
        self.release.wait(5)
        self.exports.append((circle_type, grid_size))
        return super().export_heatmap_data(circle_type, grid_size)

    def get_calibration(self, device_id):
        self.release.wait(5)
        self.calibration_reads += 1
        return super().get_calibration(device_id)


def _drain(client):
    for _ in range(3):
        assert client.wait_for_idle(5000)
        for _ in range(5):
            QApplication.processEvents()


@pytest.fixture
def window(qapp):
    backend = SlowExportBackend()
    win = FieldEventWindow(SessionConfig(demo_mode=True), backend=backend)
    _drain(win.client)
    yield win, backend
    backend.release.set()
    _drain(win.client)
    win.deleteLater()


def test_refused_refresh_runs_after_running_export(window):
    win, backend = window
    backend.set_circle_centre("edm")
    backend.measure_throw("edm")
    backend.exports.clear()

    backend.release.clear()
    win._refresh_heatmap()
    assert win.client.is_busy("heatmap", "export")

    # Throw landed while the first export is still running
    backend.measure_throw("edm")
    win._refresh_heatmap()
    assert "queued" in win.status_bar.currentMessage()

    backend.release.set()
    _drain(win.client)

    assert len(backend.exports) == 2
    assert win.throws_stat.value_label.text() == "2"
    assert not win.client.is_busy("heatmap")


def test_refresh_uses_selection_current_when_rerun(window):
    win, backend = window
    backend.exports.clear()
    backend.release.clear()

    win._refresh_heatmap()
    index = win.grid_combo.findData(5.0)
    win.grid_combo.setCurrentIndex(index)

    backend.release.set()
    _drain(win.client)

    assert backend.exports == [(CircleType.SHOT.value, 1.0), (CircleType.SHOT.value, 5.0)]


def test_calibration_sync_deferred_while_device_is_busy(window):
    win, backend = window
    reads = backend.calibration_reads

    win.machine.begin_request("edm", "set_centre")
    win._sync_calibration()
    assert backend.calibration_reads == reads

    win.machine.end_request("edm")
    backend.set_circle_centre("edm")
    # The device's own request finishing triggers the deferred read
    win.client.request("edm", "read_status", lambda: None)
    _drain(win.client)

    assert backend.calibration_reads == reads + 1
    assert win.machine.step("edm").name == "CENTRE_SET"
