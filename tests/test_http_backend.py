"""Tests for the HTTP/JSON device backend (no network: the session is faked)."""

import pytest
import requests

from polyfield.core.backend import (
    BackendError, DeviceNotConnectedError, NoCoordinatesError, TransportError
)
from polyfield.core.http_backend import HttpDeviceBackend
from polyfield.session_config import SessionConfig


class FakeResponse:
    def __init__(self, payload=None, status_code=200, raw=None):
        self._payload = payload
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._raw = raw

    def json(self):
        if self._raw is not None:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    """Records POSTs and replays queued responses (or raises queued errors)."""

    def __init__(self):
        self.calls = []
        self.responses = []

    def queue(self, item):
        self.responses.append(item)

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def backend(session):
    config = SessionConfig(server_url="http://rig.local:8080/", request_timeout_s=7.5)
    return HttpDeviceBackend(config, session=session)


def test_posts_named_arguments_with_timeout(backend, session):
    record = {"deviceId": "edm", "isCentreSet": True}
    session.queue(FakeResponse({"result": record}))

    assert backend.set_circle_centre("edm") == record
    url, body, timeout = session.calls[0]
    assert url == "http://rig.local:8080/api/SetCircleCentre"
    assert body == {"deviceId": "edm"}
    assert timeout == 7.5


def test_timeout_follows_config_changes(backend, session):
    backend.config.request_timeout_s = 2.0
    session.queue(FakeResponse({"result": "+0.4 m/s"}))
    assert backend.measure_wind("wind") == "+0.4 m/s"
    assert session.calls[0][2] == 2.0


@pytest.mark.parametrize("call, operation, body", [
    (lambda b: b.trigger_device_read("edm", "check_mark"), "TriggerDeviceRead",
     {"deviceId": "edm", "context": "check_mark"}),
    (lambda b: b.connect_network_device("edm", "192.168.1.100", "10001"), "ConnectNetworkDevice",
     {"deviceId": "edm", "ip": "192.168.1.100", "tcpPort": 10001}),
    (lambda b: b.connect_serial_device("wind", "COM4"), "ConnectSerialDevice",
     {"deviceId": "wind", "port": "COM4"}),
    (lambda b: b.send_to_scoreboard("12.34"), "SendToScoreboard", {"value": "12.34"}),
    (lambda b: b.export_heatmap_data("shot", 2), "ExportHeatmapData",
     {"circleType": "SHOT", "gridSize": 2.0}),
    (lambda b: b.set_demo_mode(1), "SetDemoMode", {"enabled": True}),
    (lambda b: b.save_calibration("edm", {"isCentreSet": False}), "SaveCalibration",
     {"deviceId": "edm", "record": {"isCentreSet": False}}),
])
def test_operation_mapping(backend, session, call, operation, body):
    session.queue(FakeResponse({"result": None}))
    call(backend)
    url, sent, _ = session.calls[0]
    assert url.endswith(f"/api/{operation}")
    assert sent == body


def test_list_ports_handles_null(backend, session):
    session.queue(FakeResponse({"result": None}))
    assert backend.list_serial_ports() == []


def test_timeout_is_transport_error(backend, session):
    session.queue(requests.exceptions.Timeout("read timed out"))
    with pytest.raises(TransportError, match="timed out after 7.5s"):
        backend.verify_circle_edge("edm")


def test_connection_failure_is_transport_error(backend, session):
    session.queue(requests.exceptions.ConnectionError("refused"))
    with pytest.raises(TransportError, match="Cannot reach device server"):
        backend.get_calibration("edm")


def test_no_coordinates_error(backend, session):
    session.queue(FakeResponse({"error": "no coordinates found for circle type SHOT"}, status_code=404))
    with pytest.raises(NoCoordinatesError):
        backend.export_heatmap_data("SHOT", 1.0)


def test_not_connected_error(backend, session):
    session.queue(FakeResponse({"error": "scoreboard not connected"}, status_code=400))
    with pytest.raises(DeviceNotConnectedError):
        backend.send_to_scoreboard("88:88")


def test_error_in_ok_response(backend, session):
    session.queue(FakeResponse({"error": "must set circle centre first"}))
    with pytest.raises(BackendError, match="must set circle centre first"):
        backend.verify_circle_edge("edm")


def test_http_error_without_body(backend, session):
    session.queue(FakeResponse(status_code=500, raw="<html>"))
    with pytest.raises(BackendError, match="HTTP 500"):
        backend.measure_throw("edm")


def test_malformed_success_body(backend, session):
    session.queue(FakeResponse(["not", "a", "dict"]))
    with pytest.raises(BackendError, match="malformed"):
        backend.reset_calibration("edm")


def test_transport_errors_are_backend_errors():
    assert issubclass(TransportError, BackendError)
    assert issubclass(NoCoordinatesError, BackendError)
