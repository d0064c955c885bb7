"""
================================================================================
Device Backend - Remote Operations Contract
================================================================================

The measurement rig (EDM, wind gauge, scoreboard) is driven by a separate
device-control service. The interface only ever talks to it through the
operations below, so the same screens run against the live server
(HttpDeviceBackend) or the in-process simulation (DemoDeviceBackend).

Every operation is synchronous and may block for seconds while the EDM
takes a paired reading; callers run them on worker threads
(see device_client.DeviceClient).

Error Taxonomy:
    BackendError                any failed remote operation
      TransportError            connection lost, timeout
      DeviceNotConnectedError   the addressed device is not connected
      NoCoordinatesError        no stored throws for a circle type
"""

from abc import ABC, abstractmethod
from typing import List

# Contexts accepted by trigger_device_read
READ_CONTEXT_EDGE = "edge_measurement"
READ_CONTEXT_CHECK_MARK = "check_mark"
READ_CONTEXTS = (READ_CONTEXT_EDGE, READ_CONTEXT_CHECK_MARK)


class BackendError(Exception):
    """A remote operation failed. The message is shown to the operator verbatim."""


class TransportError(BackendError):
    pass


class DeviceNotConnectedError(BackendError):
    pass


class NoCoordinatesError(BackendError):
    """No throws stored for the requested circle type. Not a failure for the UI."""


class DeviceBackend(ABC):
    """Abstract device-control service."""

    # =========================================================================
    # Connections
    # =========================================================================

    @abstractmethod
    def list_serial_ports(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def connect_serial_device(self, device_id: str, port: str) -> str:
        """Returns a status message, e.g. 'Connected to edm on COM3'."""
        raise NotImplementedError

    @abstractmethod
    def connect_network_device(self, device_id: str, ip: str, port: int) -> str:
        raise NotImplementedError

    @abstractmethod
    def disconnect_device(self, device_id: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def set_demo_mode(self, enabled: bool) -> None:
        raise NotImplementedError

    # =========================================================================
    # Calibration
    # =========================================================================

    @abstractmethod
    def set_circle_centre(self, device_id: str) -> dict:
        """Take a centre reading; returns the updated calibration record."""
        raise NotImplementedError

    @abstractmethod
    def verify_circle_edge(self, device_id: str) -> dict:
        """Take an edge reading; the record embeds edgeVerificationResult."""
        raise NotImplementedError

    @abstractmethod
    def trigger_device_read(self, device_id: str, context: str) -> dict:
        """Single raw reading, returned as ``{"value": str}``."""
        raise NotImplementedError

    @abstractmethod
    def get_calibration(self, device_id: str) -> dict:
        raise NotImplementedError

    @abstractmethod
    def save_calibration(self, device_id: str, record: dict) -> None:
        raise NotImplementedError

    @abstractmethod
    def reset_calibration(self, device_id: str) -> None:
        raise NotImplementedError

    # =========================================================================
    # Measurement
    # =========================================================================

    @abstractmethod
    def measure_throw(self, device_id: str) -> str:
        """Distance beyond the circle edge, formatted like '12.34 m'."""
        raise NotImplementedError

    @abstractmethod
    def measure_wind(self, device_id: str) -> str:
        """Averaged wind speed, formatted like '+1.2 m/s'."""
        raise NotImplementedError

    @abstractmethod
    def send_to_scoreboard(self, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def export_heatmap_data(self, circle_type: str, grid_size: float) -> dict:
        """
        Aggregated landing data in the HeatmapData wire shape.

        Raises:
            NoCoordinatesError: If no throws are stored for ``circle_type``
        """
        raise NotImplementedError
