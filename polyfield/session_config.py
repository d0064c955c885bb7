"""
================================================================================
Session Configuration Module
================================================================================

Operator settings that survive a restart: where the device-control server
lives, how long to wait for it, demo mode, the last event and heat-map
grid, and how each device (EDM, wind gauge, scoreboard) is reached.

Features:
- Per-device connection details (serial port or IP address + TCP port)
- Configuration save/load to JSON
- Validation before use

Connection *state* is never persisted: every session starts with all
devices disconnected and the operator connects them explicitly.
================================================================================
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlparse

from loguru import logger

from .utils.constants import (
    DEFAULT_REQUEST_TIMEOUT_S, DEFAULT_GRID_SIZE, GRID_SIZES,
    DEVICE_EDM, DEVICE_WIND, DEVICE_SCOREBOARD,
    EVENT_THROWS, EVENT_HORIZONTAL_JUMPS
)

CONNECTION_SERIAL = "serial"
CONNECTION_NETWORK = "network"

DEFAULT_SERVER_URL = "http://127.0.0.1:8080"
DEFAULT_TCP_PORT = 10001

# Factory addresses of the rig's network bridges
DEFAULT_DEVICE_IPS = {
    DEVICE_EDM: "192.168.1.100",
    DEVICE_SCOREBOARD: "192.168.1.101",
    DEVICE_WIND: "192.168.1.102",
}


@dataclass
class DeviceConnection:
    """
    How one device is reached.

    Attributes:
        connection_type: 'serial' or 'network'
        port: Serial port name (serial only)
        ip: IP address (network only)
        tcp_port: TCP port (network only)
        connected: Runtime flag, never saved
    """

    connection_type: str = CONNECTION_SERIAL
    port: str = ""
    ip: str = ""
    tcp_port: int = DEFAULT_TCP_PORT
    connected: bool = False

    def to_dict(self) -> dict:
        return {
            "connection_type": self.connection_type,
            "port": self.port,
            "ip": self.ip,
            "tcp_port": self.tcp_port,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DeviceConnection':
        return cls(
            connection_type=data.get("connection_type", CONNECTION_SERIAL),
            port=data.get("port", ""),
            ip=data.get("ip", ""),
            tcp_port=int(data.get("tcp_port", DEFAULT_TCP_PORT)),
        )


def _default_devices() -> Dict[str, DeviceConnection]:
    return {
        device_id: DeviceConnection(ip=ip)
        for device_id, ip in DEFAULT_DEVICE_IPS.items()
    }


@dataclass
class SessionConfig:
    """
    Complete operator configuration.

    Attributes:
        server_url: Base URL of the device-control server
        request_timeout_s: Per-request transport timeout
        demo_mode: Use the in-process simulated rig
        last_event_type: 'Throws' or 'Horizontal Jumps'
        heatmap_grid_size: Cell size used for the heat map (metres)
        devices: Connection details keyed by device id
    """

    server_url: str = DEFAULT_SERVER_URL
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    demo_mode: bool = True
    last_event_type: str = EVENT_THROWS
    heatmap_grid_size: float = DEFAULT_GRID_SIZE
    devices: Dict[str, DeviceConnection] = field(default_factory=_default_devices)

    def device(self, device_id: str) -> DeviceConnection:
        """Connection details for a device, created with defaults if missing."""
        if device_id not in self.devices:
            self.devices[device_id] = DeviceConnection(ip=DEFAULT_DEVICE_IPS.get(device_id, ""))
        return self.devices[device_id]

    def disconnect_all(self) -> None:
        for conn in self.devices.values():
            conn.connected = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "server_url": self.server_url,
            "request_timeout_s": self.request_timeout_s,
            "demo_mode": self.demo_mode,
            "last_event_type": self.last_event_type,
            "heatmap_grid_size": self.heatmap_grid_size,
            "devices": {k: v.to_dict() for k, v in self.devices.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionConfig':
        devices = _default_devices()
        for device_id, conn in (data.get("devices") or {}).items():
            devices[device_id] = DeviceConnection.from_dict(conn)

        return cls(
            server_url=data.get("server_url", DEFAULT_SERVER_URL),
            request_timeout_s=float(data.get("request_timeout_s", DEFAULT_REQUEST_TIMEOUT_S)),
            demo_mode=bool(data.get("demo_mode", True)),
            last_event_type=data.get("last_event_type", EVENT_THROWS),
            heatmap_grid_size=float(data.get("heatmap_grid_size", DEFAULT_GRID_SIZE)),
            devices=devices,
        )

    def save(self, filepath) -> None:
        """Save configuration to JSON file."""
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath) -> 'SessionConfig':
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of issues.

        Returns:
            List of validation error messages (empty if valid)
        """
        issues = []

        parsed = urlparse(self.server_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            issues.append(f"Server URL must be http(s)://host[:port], got '{self.server_url}'")

        if self.request_timeout_s <= 0:
            issues.append("Request timeout must be positive")

        if self.last_event_type not in (EVENT_THROWS, EVENT_HORIZONTAL_JUMPS):
            issues.append(f"Unknown event type '{self.last_event_type}'")

        if self.heatmap_grid_size not in GRID_SIZES:
            issues.append(f"Grid size must be one of {GRID_SIZES}")

        for device_id, conn in self.devices.items():
            if conn.connection_type not in (CONNECTION_SERIAL, CONNECTION_NETWORK):
                issues.append(f"{device_id}: unknown connection type '{conn.connection_type}'")
            elif conn.connection_type == CONNECTION_NETWORK:
                if not conn.ip:
                    issues.append(f"{device_id}: network connection needs an IP address")
                if not 0 < conn.tcp_port < 65536:
                    issues.append(f"{device_id}: TCP port {conn.tcp_port} out of range")

        return issues


# Default configuration file location
DEFAULT_CONFIG_PATH = Path.home() / ".polyfield" / "session.json"


def get_default_config(path: Optional[Path] = None) -> SessionConfig:
    """Get default configuration (loads from file if exists, otherwise creates new)."""
    path = Path(path) if path else DEFAULT_CONFIG_PATH
    if path.exists():
        try:
            return SessionConfig.load(path)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Error loading session config {}: {}", path, e)

    return SessionConfig()


def save_default_config(config: SessionConfig, path: Optional[Path] = None) -> None:
    """Save as default configuration."""
    config.save(Path(path) if path else DEFAULT_CONFIG_PATH)
