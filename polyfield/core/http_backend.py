"""
================================================================================
HTTP Device Backend - Remote Operations over JSON
================================================================================

Talks to the device-control server. Every operation is a POST to
``{server_url}/api/{OperationName}`` with the named arguments as a JSON
body:

    POST /api/VerifyCircleEdge   {"deviceId": "edm"}
    200  {"result": {...calibration record...}}
    4xx/5xx {"error": "must set circle centre first"}

The session's request timeout applies to every call; a timed-out call is
reported as a TransportError and never retried automatically.
"""

from typing import List, Optional

import requests
from loguru import logger

from .backend import (
    BackendError, DeviceBackend, DeviceNotConnectedError,
    NoCoordinatesError, TransportError
)
from .circles import parse_circle_type
from ..session_config import SessionConfig


class HttpDeviceBackend(DeviceBackend):
    """
    DeviceBackend backed by the remote server.

    Args:
        config: Session configuration (server URL and timeout are read on
                every call, so settings changes apply immediately)
        session: Optional requests.Session (injected by tests)
    """

    def __init__(self, config: SessionConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    # =========================================================================
    # Transport
    # =========================================================================

    def _url(self, operation: str) -> str:
        return f"{self.config.server_url.rstrip('/')}/api/{operation}"

    def _call(self, operation: str, **params):
        """
        Invoke one remote operation.

        Returns:
            The ``result`` member of the response (may be None)

        Raises:
            TransportError: Connection failure or timeout
            NoCoordinatesError: Server has no throws for the circle type
            DeviceNotConnectedError: Addressed device is not connected
            BackendError: Any other failure
        """
        url = self._url(operation)
        logger.debug("POST {} {}", url, params)
        try:
            response = self.session.post(url, json=params, timeout=self.config.request_timeout_s)
        except requests.exceptions.Timeout:
            raise TransportError(
                f"{operation} timed out after {self.config.request_timeout_s:g}s"
            ) from None
        except requests.exceptions.ConnectionError as e:
            raise TransportError(f"Cannot reach device server at {self.config.server_url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{operation} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.ok or (isinstance(payload, dict) and payload.get("error")):
            message = payload.get("error") if isinstance(payload, dict) else None
            message = message or f"{operation} failed with HTTP {response.status_code}"
            raise _classify_error(message)

        if not isinstance(payload, dict):
            raise BackendError(f"{operation} returned a malformed response")
        return payload.get("result")

    # =========================================================================
    # Connections
    # =========================================================================

    def list_serial_ports(self) -> List[str]:
        return list(self._call("ListSerialPorts") or [])

    def connect_serial_device(self, device_id: str, port: str) -> str:
        return self._call("ConnectSerialDevice", deviceId=device_id, port=port)

    def connect_network_device(self, device_id: str, ip: str, port: int) -> str:
        return self._call("ConnectNetworkDevice", deviceId=device_id, ip=ip, tcpPort=int(port))

    def disconnect_device(self, device_id: str) -> str:
        return self._call("DisconnectDevice", deviceId=device_id)

    def set_demo_mode(self, enabled: bool) -> None:
        self._call("SetDemoMode", enabled=bool(enabled))

    # =========================================================================
    # Calibration
    # =========================================================================

    def set_circle_centre(self, device_id: str) -> dict:
        return self._call("SetCircleCentre", deviceId=device_id)

    def verify_circle_edge(self, device_id: str) -> dict:
        return self._call("VerifyCircleEdge", deviceId=device_id)

    def trigger_device_read(self, device_id: str, context: str) -> dict:
        return self._call("TriggerDeviceRead", deviceId=device_id, context=context)

    def get_calibration(self, device_id: str) -> dict:
        return self._call("GetCalibration", deviceId=device_id)

    def save_calibration(self, device_id: str, record: dict) -> None:
        self._call("SaveCalibration", deviceId=device_id, record=record)

    def reset_calibration(self, device_id: str) -> None:
        self._call("ResetCalibration", deviceId=device_id)

    # =========================================================================
    # Measurement
    # =========================================================================

    def measure_throw(self, device_id: str) -> str:
        return self._call("MeasureThrow", deviceId=device_id)

    def measure_wind(self, device_id: str) -> str:
        return self._call("MeasureWind", deviceId=device_id)

    def send_to_scoreboard(self, value: str) -> None:
        self._call("SendToScoreboard", value=value)

    def export_heatmap_data(self, circle_type: str, grid_size: float) -> dict:
        return self._call(
            "ExportHeatmapData", circleType=parse_circle_type(circle_type).value, gridSize=float(grid_size)
        )


def _classify_error(message: str) -> BackendError:
    lowered = message.lower()
    if "no coordinates found" in lowered:
        return NoCoordinatesError(message)
    if "not connected" in lowered:
        return DeviceNotConnectedError(message)
    return BackendError(message)
