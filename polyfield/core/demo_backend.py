"""
================================================================================
Demo Device Backend - Simulated Measurement Rig
================================================================================

An in-process stand-in for the device-control server, used for operator
training and for running the interface without hardware.

Simulation:
    - The EDM station is placed 8-15 m from the circle centre at a random
      bearing (one station per device, kept until the calibration changes)
    - Every reading is produced as the instrument would report it:
      slope distance (mm), vertical angle and horizontal angle (degrees),
      with a little measurement noise
    - Readings are resolved back into field coordinates with the same
      polar geometry used for live data:

          horizontal = slope * sin(vertical angle)
          station    = -horizontal * (cos(har), sin(har))     centre shot
          point      = station + horizontal * (cos(har), sin(har))

Edge readings land within +/-4 mm of the target radius, so a demo
calibration normally passes. Throws fall in an event-typical range within
+/-30 degrees of the sector centre line.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from .backend import (
    BackendError, DeviceBackend, DeviceNotConnectedError,
    NoCoordinatesError, READ_CONTEXTS, READ_CONTEXT_EDGE
)
from .circles import CircleType, parse_circle_type, target_radius_for
from .heatmap import ThrowCoordinate, aggregate_throws
from .tolerance import evaluate_tolerance
from ..utils.constants import (
    DEMO_CENTRE_DELAY_S, DEMO_EDGE_DELAY_S, DEMO_THROW_DELAY_S,
    DEVICE_SCOREBOARD, DEVICE_WIND, SCOREBOARD_TEST_PATTERN,
    WIND_BUFFER_SIZE, WIND_WINDOW_SECONDS
)

# Landing distance beyond the circle edge per event (metres)
THROW_RANGES = {
    CircleType.SHOT: (8.0, 18.0),
    CircleType.DISCUS: (25.0, 65.0),
    CircleType.HAMMER: (20.0, 75.0),
    CircleType.JAVELIN_ARC: (35.0, 85.0),
}
DEFAULT_THROW_RANGE = (15.0, 50.0)

DEMO_SERIAL_PORTS = ["DEMO-COM1", "DEMO-COM2", "DEMO-COM3"]


# ============================================================================
# Reading Geometry
# ============================================================================

@dataclass(frozen=True)
class EdmReading:
    """One instrument reading, in the units the EDM reports."""

    slope_distance_mm: float
    vertical_angle_deg: float
    horizontal_angle_deg: float

    @property
    def horizontal_distance(self) -> float:
        """Horizontal distance from the station (metres)."""
        return self.slope_distance_mm / 1000.0 * math.sin(math.radians(self.vertical_angle_deg))

    def offset(self) -> Tuple[float, float]:
        """Target position relative to the station (metres)."""
        h = self.horizontal_distance
        har = math.radians(self.horizontal_angle_deg)
        return h * math.cos(har), h * math.sin(har)

    def describe(self) -> str:
        return (f"SD {self.slope_distance_mm:.0f}mm VAz {self.vertical_angle_deg:.4f} "
                f"HAR {self.horizontal_angle_deg:.4f}")


def station_from_centre_reading(reading: EdmReading) -> Tuple[float, float]:
    """Station position when the reading was aimed at the circle centre."""
    dx, dy = reading.offset()
    return -dx, -dy


def point_from_reading(station: Tuple[float, float], reading: EdmReading) -> Tuple[float, float]:
    """Field coordinates (relative to the centre) of the reading's target."""
    dx, dy = reading.offset()
    return station[0] + dx, station[1] + dy


@dataclass
class _StationSim:
    x: float
    y: float
    centre_vaz: Optional[float] = None


# ============================================================================
# Backend
# ============================================================================

class DemoDeviceBackend(DeviceBackend):
    """
    Simulated rig implementing the full DeviceBackend contract.

    Args:
        rng: numpy random Generator (seed it for repeatable sessions)
        centre_delay: Simulated latency of a centre reading (seconds)
        edge_delay: Simulated latency of an edge reading (seconds)
        throw_delay: Simulated latency of a throw reading (seconds)

    Example:
        >>> backend = DemoDeviceBackend(np.random.default_rng(7), 0, 0, 0)
        >>> backend.set_circle_centre("edm")["isCentreSet"]
        True
    """

    def __init__(self, rng: Optional[np.random.Generator] = None,
                 centre_delay: float = DEMO_CENTRE_DELAY_S,
                 edge_delay: float = DEMO_EDGE_DELAY_S,
                 throw_delay: float = DEMO_THROW_DELAY_S):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.centre_delay = centre_delay
        self.edge_delay = edge_delay
        self.throw_delay = throw_delay

        self.demo_mode = True
        self._lock = threading.RLock()
        self._connections: Dict[str, str] = {}
        self._records: Dict[str, dict] = {}
        self._sims: Dict[str, _StationSim] = {}
        self._throws: List[ThrowCoordinate] = []
        self._wind_buffer = deque(maxlen=WIND_BUFFER_SIZE)
        self.scoreboard_log: List[str] = []

    # =========================================================================
    # Connections
    # =========================================================================

    def list_serial_ports(self) -> List[str]:
        return list(DEMO_SERIAL_PORTS)

    def connect_serial_device(self, device_id: str, port: str) -> str:
        self._connect(device_id, port)
        return f"Connected to {device_id} on {port}"

    def connect_network_device(self, device_id: str, ip: str, port: int) -> str:
        address = f"{ip}:{port}"
        self._connect(device_id, address)
        return f"Connected to {device_id} at {address}"

    def _connect(self, device_id: str, address: str) -> None:
        with self._lock:
            self._connections[device_id] = address
        logger.info("DEMO: {} connected ({})", device_id, address)
        if device_id == DEVICE_SCOREBOARD:
            self.send_to_scoreboard(SCOREBOARD_TEST_PATTERN)

    def disconnect_device(self, device_id: str) -> str:
        with self._lock:
            if self._connections.pop(device_id, None) is None:
                raise DeviceNotConnectedError(f"{device_id} not connected")
        return f"Disconnected {device_id}"

    def is_connected(self, device_id: str) -> bool:
        with self._lock:
            return device_id in self._connections

    def set_demo_mode(self, enabled: bool) -> None:
        with self._lock:
            self.demo_mode = bool(enabled)
            if self.demo_mode:
                self._sims.clear()
        logger.info("DEMO: demo mode {}", "enabled" if enabled else "disabled")

    # =========================================================================
    # Calibration
    # =========================================================================

    def get_calibration(self, device_id: str) -> dict:
        with self._lock:
            return dict(self._record(device_id))

    def save_calibration(self, device_id: str, record: dict) -> None:
        with self._lock:
            saved = dict(record)
            saved["deviceId"] = device_id
            existing = self._records.get(device_id)
            if existing is not None:
                saved["timestamp"] = existing.get("timestamp")
            self._records[device_id] = saved
            self._sims.pop(device_id, None)

    def reset_calibration(self, device_id: str) -> None:
        with self._lock:
            self._records.pop(device_id, None)
            self._sims.pop(device_id, None)

    def set_circle_centre(self, device_id: str) -> dict:
        self._require_device(device_id)
        with self._lock:
            record = self._record(device_id)
            target_radius = float(record["targetRadius"])

        self._sleep(self.centre_delay)
        reading = self._centre_reading(device_id)
        station_x, station_y = station_from_centre_reading(reading)
        logger.info("DEMO: centre reading {} -> station X={:.4f}m Y={:.4f}m",
                    reading.describe(), station_x, station_y)

        with self._lock:
            record = dict(self._record(device_id))
            record.update({
                "stationCoordinates": {"x": station_x, "y": station_y},
                "isCentreSet": True,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "targetRadius": target_radius,
            })
            record.pop("edgeVerificationResult", None)
            record.pop("checkMarkValue", None)
            self._records[device_id] = record
            return dict(record)

    def verify_circle_edge(self, device_id: str) -> dict:
        self._require_device(device_id)
        with self._lock:
            record = self._record(device_id)
            if not record.get("isCentreSet"):
                raise BackendError("must set circle centre first")
            target_radius = float(record["targetRadius"])
            circle_type = record["selectedCircleType"]

        self._sleep(self.edge_delay)
        measured_radius = self._measure_edge_radius(device_id, target_radius)
        result = evaluate_tolerance(circle_type, measured_radius, target_radius)
        logger.info("DEMO: edge radius {:.4f}m, diff {:+.1f}mm ({})", measured_radius,
                    result.difference_mm, "PASS" if result.is_in_tolerance else "FAIL")

        with self._lock:
            record = dict(self._record(device_id))
            record["edgeVerificationResult"] = result.to_dict()
            record.pop("checkMarkValue", None)
            self._records[device_id] = record
            return dict(record)

    def trigger_device_read(self, device_id: str, context: str) -> dict:
        if context not in READ_CONTEXTS:
            raise BackendError(f"Unknown read context '{context}'")
        self._require_device(device_id)

        with self._lock:
            record = self._record(device_id)
            if not record.get("isCentreSet"):
                raise BackendError("must set circle centre first")
            target_radius = float(record["targetRadius"])

        if context == READ_CONTEXT_EDGE:
            return {"value": f"{self._measure_edge_radius(device_id, target_radius):.4f}"}

        # Check mark: a fixed peg a few metres outside the circle
        bearing = self.rng.random() * 2 * math.pi
        distance = target_radius + 3.0 + self._noise(0.01)
        reading = self._reading_to(device_id, (distance * math.cos(bearing), distance * math.sin(bearing)), 1.0)
        return {"value": f"{reading.horizontal_distance:.3f}"}

    # =========================================================================
    # Measurement
    # =========================================================================

    def measure_throw(self, device_id: str) -> str:
        self._require_device(device_id)
        with self._lock:
            record = self._record(device_id)
            if not record.get("isCentreSet"):
                raise BackendError("EDM is not calibrated - centre not set")
            edge = record.get("edgeVerificationResult")
            if not self.demo_mode and not (edge and edge.get("isInTolerance")):
                raise BackendError("EDM must be calibrated with valid edge verification before measurement")
            target_radius = float(record["targetRadius"])
            circle_type = parse_circle_type(record["selectedCircleType"])
            station = self._station(record)

        self._sleep(self.throw_delay)
        low, high = THROW_RANGES.get(circle_type, DEFAULT_THROW_RANGE)
        throw_distance = low + self.rng.random() * (high - low)
        angle = (self.rng.random() - 0.5) * math.pi / 3
        reach = throw_distance + target_radius
        reading = self._reading_to(device_id, (reach * math.cos(angle), reach * math.sin(angle)), 3.0, sd_noise=0.02)

        x, y = point_from_reading(station, reading)
        distance = math.hypot(x, y) - target_radius
        result = f"{distance:.2f} m"

        with self._lock:
            round_number = sum(1 for t in self._throws if t.circle_type is circle_type) + 1
            self._throws.append(ThrowCoordinate(
                x=x, y=y, distance=distance, circle_type=circle_type,
                timestamp=datetime.now(timezone.utc), round=str(round_number),
                edm_reading=reading.describe(),
            ))
        logger.info("DEMO: throw {} landed at X={:.3f}m Y={:.3f}m", result, x, y)

        self.send_to_scoreboard(f"{distance:.2f}")
        return result

    def measure_wind(self, device_id: str) -> str:
        now = datetime.now(timezone.utc)
        if self.demo_mode:
            speed = self.rng.random() * 4.0 - 2.0
            self.push_wind_reading(speed, now)
        else:
            with self._lock:
                if device_id not in self._connections:
                    raise DeviceNotConnectedError("wind gauge not connected")
                window_start = now - timedelta(seconds=WIND_WINDOW_SECONDS)
                values = [v for ts, v in self._wind_buffer if ts > window_start]
            if not values:
                raise BackendError("no wind readings in the last 5 seconds")
            speed = float(np.mean(values))

        result = f"{speed:+.1f} m/s"
        self.send_to_scoreboard(result)
        return result

    def push_wind_reading(self, value: float, timestamp: Optional[datetime] = None) -> None:
        """Feed one gauge sample into the rolling wind buffer."""
        with self._lock:
            self._wind_buffer.append((timestamp or datetime.now(timezone.utc), float(value)))

    def send_to_scoreboard(self, value: str) -> None:
        with self._lock:
            if not self.demo_mode and DEVICE_SCOREBOARD not in self._connections:
                raise DeviceNotConnectedError("scoreboard not connected")
            self.scoreboard_log.append(value)
        logger.debug("DEMO: scoreboard <- '{}'", value)

    def export_heatmap_data(self, circle_type: str, grid_size: float) -> dict:
        circle_type = parse_circle_type(circle_type)
        with self._lock:
            coords = [t for t in self._throws if t.circle_type is circle_type]
        if not coords:
            raise NoCoordinatesError(f"no coordinates found for circle type {circle_type.value}")
        return aggregate_throws(coords, grid_size, circle_type).to_dict()

    @property
    def throws(self) -> List[ThrowCoordinate]:
        with self._lock:
            return list(self._throws)

    # =========================================================================
    # Simulation Internals
    # =========================================================================

    def _record(self, device_id: str) -> dict:
        if device_id not in self._records:
            self._records[device_id] = {
                "deviceId": device_id,
                "timestamp": None,
                "selectedCircleType": CircleType.SHOT.value,
                "targetRadius": target_radius_for(CircleType.SHOT),
                "stationCoordinates": {"x": 0.0, "y": 0.0},
                "isCentreSet": False,
            }
        return self._records[device_id]

    @staticmethod
    def _station(record: dict) -> Tuple[float, float]:
        coords = record.get("stationCoordinates") or {}
        return float(coords.get("x", 0.0)), float(coords.get("y", 0.0))

    def _require_device(self, device_id: str) -> None:
        if self.demo_mode or device_id == DEVICE_WIND:
            return
        if not self.is_connected(device_id):
            raise DeviceNotConnectedError(f"EDM device type '{device_id}' not connected")

    def _sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def _noise(self, span: float) -> float:
        """Uniform noise in [-span/2, span/2)."""
        return (self.rng.random() - 0.5) * span

    def _sim(self, device_id: str) -> _StationSim:
        with self._lock:
            if device_id not in self._sims:
                distance = 8.0 + self.rng.random() * 7.0
                angle = self.rng.random() * 2 * math.pi
                self._sims[device_id] = _StationSim(distance * math.cos(angle), distance * math.sin(angle))
                logger.debug("DEMO: {} station placed at X={:.4f}m Y={:.4f}m",
                             device_id, self._sims[device_id].x, self._sims[device_id].y)
            return self._sims[device_id]

    def _centre_reading(self, device_id: str) -> EdmReading:
        sim = self._sim(device_id)
        vaz = 88.0 + self.rng.random() * 4.0
        sim.centre_vaz = vaz
        return self._make_reading(sim, (0.0, 0.0), vaz, sd_noise=0.01)

    def _reading_to(self, device_id: str, target: Tuple[float, float],
                    vaz_spread: float, sd_noise: float = 0.01) -> EdmReading:
        sim = self._sim(device_id)
        if sim.centre_vaz is None:
            self._centre_reading(device_id)
        vaz = sim.centre_vaz + self._noise(vaz_spread)
        return self._make_reading(sim, target, vaz, sd_noise)

    def _make_reading(self, sim: _StationSim, target: Tuple[float, float],
                      vaz: float, sd_noise: float) -> EdmReading:
        dx = target[0] - sim.x
        dy = target[1] - sim.y
        har = math.degrees(math.atan2(dy, dx)) % 360.0
        slope = math.hypot(dx, dy) / math.sin(math.radians(vaz))
        return EdmReading(
            slope_distance_mm=(slope + self._noise(sd_noise)) * 1000.0,
            vertical_angle_deg=vaz + self._noise(0.1),
            horizontal_angle_deg=har + self._noise(0.1),
        )

    def _measure_edge_radius(self, device_id: str, target_radius: float) -> float:
        with self._lock:
            station = self._station(self._record(device_id))
        radius = target_radius + self._noise(0.008)
        bearing = self.rng.random() * 2 * math.pi
        reading = self._reading_to(device_id, (radius * math.cos(bearing), radius * math.sin(bearing)), 2.0)
        x, y = point_from_reading(station, reading)
        return math.hypot(x, y)
