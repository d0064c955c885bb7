"""Tests for worker-thread request dispatch."""

import threading

import pytest
from PyQt6.QtCore import QCoreApplication

from polyfield.core.backend import BackendError
from polyfield.core.device_client import DeviceClient, RequestGate

pytestmark = pytest.mark.qt


def _drain(client):
    assert client.wait_for_idle(5000)
    # Queued signals from the workers are delivered on the next pass
    for _ in range(5):
        QCoreApplication.processEvents()


def test_gate():
    gate = RequestGate()
    assert gate.acquire("edm", "verify_edge")
    assert not gate.acquire("edm", "verify_edge")
    assert gate.acquire("edm", "set_centre")
    assert gate.is_busy("edm")
    assert gate.is_busy("edm", "verify_edge")
    assert not gate.is_busy("wind")

    gate.release("edm", "verify_edge")
    gate.release("edm", "set_centre")
    assert not gate.is_busy("edm")
    assert gate.pending() == set()


def test_success_path(qapp, demo_backend):
    client = DeviceClient(demo_backend)
    results, finished = [], []
    client.request_finished.connect(lambda d, a: finished.append((d, a)))

    assert client.call("edm", "set_centre", "set_circle_centre", "edm", on_success=results.append)
    _drain(client)

    assert len(results) == 1
    assert results[0]["isCentreSet"] is True
    assert finished == [("edm", "set_centre")]
    assert not client.is_busy("edm")


def test_failure_path_still_finishes(qapp, demo_backend):
    client = DeviceClient(demo_backend)
    errors, failed, finished = [], [], []
    client.request_failed.connect(lambda d, a, m: failed.append(m))
    client.request_finished.connect(lambda d, a: finished.append(a))

    client.call("edm", "verify_edge", "verify_circle_edge", "edm", on_failure=errors.append)
    _drain(client)

    assert isinstance(errors[0], BackendError)
    assert failed == ["must set circle centre first"]
    assert finished == ["verify_edge"]
    assert not client.is_busy("edm", "verify_edge")


def test_duplicate_request_is_refused(qapp, demo_backend):
    client = DeviceClient(demo_backend)
    release = threading.Event()
    results = []

    def slow_read():
        release.wait(5)
        return "done"

    assert client.request("edm", "measure_throw", slow_read, on_success=results.append)
    assert client.is_busy("edm", "measure_throw")
    assert not client.request("edm", "measure_throw", slow_read)
    # A different action on the same device is a different key
    assert client.request("edm", "get_calibration", demo_backend.get_calibration, "edm")

    release.set()
    _drain(client)

    assert results == ["done"]
    assert not client.is_busy("edm")
    assert client.request("edm", "measure_throw", lambda: "again", on_success=results.append)
    _drain(client)
    assert results == ["done", "again"]


def test_unexpected_exception_is_reported(qapp, demo_backend):
    client = DeviceClient(demo_backend)
    errors = []

    def broken():
        raise RuntimeError("boom")

    client.request("edm", "broken", broken, on_failure=errors.append)
    _drain(client)

    assert isinstance(errors[0], RuntimeError)
    assert not client.is_busy("edm")


def test_handler_errors_do_not_escape(qapp, demo_backend):
    client = DeviceClient(demo_backend)

    def bad_handler(_):
        raise ValueError("handler bug")

    client.request("edm", "ports", demo_backend.list_serial_ports, on_success=bad_handler)
    _drain(client)
    assert not client.is_busy("edm")


def test_set_backend(qapp, demo_backend):
    client = DeviceClient(demo_backend)
    other = object()
    client.set_backend(other)
    assert client.backend is other
