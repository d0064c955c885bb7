"""Tests for the calibration dialog's request handling against a slow device server."""

import threading

import numpy as np
import pytest
from PyQt6.QtWidgets import QApplication

from polyfield.core.backend import BackendError
from polyfield.core.calibration import CalibrationStateMachine, CalibrationStep
from polyfield.core.circles import CircleType
from polyfield.core.demo_backend import DemoDeviceBackend
from polyfield.core.device_client import DeviceClient
from polyfield.dialogs import CalibrationDialog

pytestmark = pytest.mark.qt

EDM = "edm"


class SlowSaveBackend(DemoDeviceBackend):
    """Demo rig whose saves block until the test lets them through."""

    def __init__(self):
        super().__init__(np.random.default_rng(99), centre_delay=0, edge_delay=0, throw_delay=0)
        self.release = threading.Event()
        self.release.set()
        self.fail_saves = False
        self.saved_circles = []

    def save_calibration(self, device_id, record):
        self.release.wait(5)
        if self.fail_saves:
            raise BackendError("disk full")
        self.saved_circles.append(record["selectedCircleType"])
        super().save_calibration(device_id, record)


def _drain(client):
    assert client.wait_for_idle(5000)
    for _ in range(5):
        QApplication.processEvents()


@pytest.fixture
def rig(qapp):
    backend = SlowSaveBackend()
    client = DeviceClient(backend)
    machine = CalibrationStateMachine()
    dialog = CalibrationDialog(machine, client, EDM)
    _drain(client)
    yield dialog, machine, client, backend
    backend.release.set()
    _drain(client)
    dialog.deleteLater()


def _choose(dialog, circle_type):
    dialog.circle_combo.setCurrentIndex(dialog.circle_combo.findData(circle_type))
    dialog._select_circle()


def test_second_circle_choice_waits_for_running_save(rig):
    dialog, machine, client, backend = rig
    backend.release.clear()

    _choose(dialog, CircleType.DISCUS)
    assert machine.pending_action(EDM) == "save_calibration"
    assert not dialog.apply_circle_btn.isEnabled()

    _choose(dialog, CircleType.HAMMER)
    assert "Wait for" in dialog.status_label.text()
    assert machine.state(EDM).circle.circle_type is CircleType.DISCUS

    backend.release.set()
    _drain(client)

    assert machine.pending_action(EDM) is None
    assert backend.saved_circles == ["DISCUS"]
    assert backend.get_calibration(EDM)["selectedCircleType"] == "DISCUS"
    assert machine.state(EDM).circle.circle_type is CircleType.DISCUS


def test_centre_stays_locked_until_circle_is_saved(rig):
    dialog, machine, client, backend = rig
    backend.release.clear()

    _choose(dialog, CircleType.DISCUS)
    assert not dialog.centre_btn.isEnabled()
    dialog._set_centre()
    assert machine.step(EDM) == CalibrationStep.CIRCLE_SELECTED

    backend.release.set()
    _drain(client)
    assert dialog.centre_btn.isEnabled()

    dialog._set_centre()
    _drain(client)
    assert machine.step(EDM) == CalibrationStep.CENTRE_SET
    assert backend.get_calibration(EDM)["isCentreSet"] is True

    dialog._verify_edge()
    _drain(client)
    assert machine.step(EDM) == CalibrationStep.EDGE_VERIFIED


def test_failed_save_rolls_back_circle_choice(rig):
    dialog, machine, client, backend = rig
    backend.fail_saves = True
    changed = []
    dialog.calibration_changed.connect(changed.append)

    _choose(dialog, CircleType.JAVELIN_ARC)
    _drain(client)

    assert machine.state(EDM).circle.circle_type is CircleType.SHOT
    assert backend.get_calibration(EDM)["selectedCircleType"] == "SHOT"
    assert dialog.circle_combo.currentData() is CircleType.SHOT
    assert "failed: disk full" in dialog.status_label.text()
    assert changed == [EDM, EDM]


def test_reset_holds_the_device_until_saved(rig):
    dialog, machine, client, backend = rig
    dialog._set_centre()
    _drain(client)
    assert machine.step(EDM) == CalibrationStep.CENTRE_SET

    backend.release.clear()
    dialog._reset()
    assert machine.pending_action(EDM) == "reset_calibration"
    assert not dialog.centre_btn.isEnabled()

    backend.release.set()
    _drain(client)
    assert machine.step(EDM) == CalibrationStep.CIRCLE_SELECTED
    assert backend.get_calibration(EDM)["isCentreSet"] is False
    assert dialog.centre_btn.isEnabled()
