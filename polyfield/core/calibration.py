"""
================================================================================
Calibration State Machine - EDM Circle Calibration
================================================================================

Before a throw can be measured, the EDM must know where the circle centre
is. Calibration walks through four ordered steps per measurement device:

    1. CIRCLE_SELECTED      circle type and target radius chosen
    2. CENTRE_SET           station position resolved from a centre reading
    3. EDGE_VERIFIED        edge reading compared against the target radius
    4. CHECK_MARK_RECORDED  optional informational reading

Each step is an explicit state class carrying only the fields that are
valid in that state, so an edge result without a centre (or a check mark
without a passing edge) cannot be represented at all.

The device is ready for live measurement only while the centre is set and
the edge verdict is in tolerance. Readiness is derived from the current
state every time it is asked for.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import ClassVar, Dict, Optional, Union

from loguru import logger

from .circles import CircleType, parse_circle_type, target_radius_for
from .tolerance import ToleranceResult, evaluate_tolerance


class CalibrationError(ValueError):
    """Raised for a transition whose prerequisite step is missing."""


class CalibrationBusyError(CalibrationError):
    """Raised when a device already has a calibration request in flight."""


class CalibrationStep(IntEnum):
    CIRCLE_SELECTED = 1
    CENTRE_SET = 2
    EDGE_VERIFIED = 3
    CHECK_MARK_RECORDED = 4


# =============================================================================
# States
# =============================================================================

@dataclass(frozen=True)
class StationPoint:
    """EDM station position relative to the circle centre (metres)."""

    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class CircleSelected:
    circle_type: CircleType
    target_radius: float

    step: ClassVar[CalibrationStep] = CalibrationStep.CIRCLE_SELECTED

    @property
    def circle(self) -> 'CircleSelected':
        return self

    @property
    def centre(self) -> Optional['CentreSet']:
        return None

    @property
    def edge(self) -> Optional[ToleranceResult]:
        return None

    @property
    def check_mark_value(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class CentreSet:
    circle: CircleSelected
    station: StationPoint
    centre_set_at: datetime

    step: ClassVar[CalibrationStep] = CalibrationStep.CENTRE_SET

    @property
    def centre(self) -> 'CentreSet':
        return self

    @property
    def edge(self) -> Optional[ToleranceResult]:
        return None

    @property
    def check_mark_value(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class EdgeVerified:
    centre: CentreSet
    edge: ToleranceResult

    step: ClassVar[CalibrationStep] = CalibrationStep.EDGE_VERIFIED

    @property
    def circle(self) -> CircleSelected:
        return self.centre.circle

    @property
    def check_mark_value(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class CheckMarkRecorded:
    verified: EdgeVerified
    check_mark_value: str

    step: ClassVar[CalibrationStep] = CalibrationStep.CHECK_MARK_RECORDED

    @property
    def circle(self) -> CircleSelected:
        return self.verified.circle

    @property
    def centre(self) -> CentreSet:
        return self.verified.centre

    @property
    def edge(self) -> ToleranceResult:
        return self.verified.edge


CalibrationState = Union[CircleSelected, CentreSet, EdgeVerified, CheckMarkRecorded]


def is_ready(state: CalibrationState) -> bool:
    """Centre set AND edge verified in tolerance."""
    return state.centre is not None and state.edge is not None and state.edge.is_in_tolerance


# =============================================================================
# Wire helpers
# =============================================================================

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse a backend timestamp (RFC 3339, possibly with nanoseconds).

    Returns None for empty values and for the zero time the backend sends
    before a centre has been set.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value

    text = str(value).replace("Z", "+00:00")
    text = _FRACTION_RE.sub(r"\1", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Ignoring unparseable calibration timestamp {!r}", value)
        return None
    if parsed.year <= 1:
        return None
    return parsed


def station_from_record(record: dict) -> StationPoint:
    coords = record.get("stationCoordinates") or {}
    return StationPoint(x=float(coords.get("x", 0.0)), y=float(coords.get("y", 0.0)))


def measured_radius_from_record(record: dict) -> float:
    """
    Extract the measured edge radius from a verify-edge response.

    Raises:
        CalibrationError: If the record carries no edge result
    """
    result = record.get("edgeVerificationResult")
    if not result or result.get("measuredRadius") is None:
        raise CalibrationError("Edge verification failed - no result data received.")
    return float(result["measuredRadius"])


def reading_value(reading: dict) -> float:
    """
    Convert a raw ``{"value": "..."}`` device reading into metres.

    Tolerates a trailing unit, e.g. ``"1.0705 m"``.
    """
    raw = str(reading.get("value", "")).strip()
    if raw.endswith("m"):
        raw = raw[:-1].strip()
    try:
        return float(raw)
    except ValueError:
        raise CalibrationError(f"Device returned a non-numeric reading: {reading.get('value')!r}") from None


# =============================================================================
# State Machine
# =============================================================================

class CalibrationStateMachine:
    """
    Owns one calibration state per measurement device.

    Transitions are driven by results of remote device requests. The
    machine also tracks which devices have a calibration request in
    flight so a second one cannot start on top of it.

    Example:
        >>> machine = CalibrationStateMachine()
        >>> machine.select_circle("edm", CircleType.SHOT)
        >>> machine.set_centre("edm", StationPoint(-9.1, 3.2))
        >>> machine.verify_edge("edm", 1.0705).edge.is_in_tolerance
        True
        >>> machine.is_ready("edm")
        True
    """

    def __init__(self, default_circle: CircleType = CircleType.SHOT):
        self.default_circle = parse_circle_type(default_circle)
        self._states: Dict[str, CalibrationState] = {}
        self._pending: Dict[str, str] = {}

    # =========================================================================
    # Queries
    # =========================================================================

    def state(self, device_id: str) -> CalibrationState:
        """Current state, created with defaults on first access."""
        if device_id not in self._states:
            self._states[device_id] = CircleSelected(
                circle_type=self.default_circle,
                target_radius=target_radius_for(self.default_circle),
            )
        return self._states[device_id]

    def step(self, device_id: str) -> CalibrationStep:
        return self.state(device_id).step

    def is_ready(self, device_id: str) -> bool:
        return is_ready(self.state(device_id))

    def devices(self) -> list:
        return sorted(self._states)

    # =========================================================================
    # Transitions
    # =========================================================================

    def select_circle(self, device_id: str, circle_type, custom_radius: Optional[float] = None) -> CircleSelected:
        """Choose the circle; always clears centre, edge and check mark."""
        circle_type = parse_circle_type(circle_type)
        radius = target_radius_for(circle_type, custom_radius)
        previous = self.state(device_id)

        new_state = CircleSelected(circle_type=circle_type, target_radius=radius)
        self._states[device_id] = new_state
        if previous.step > CalibrationStep.CIRCLE_SELECTED:
            logger.info(
                "{}: circle changed to {} ({:.4f}m), downstream calibration cleared",
                device_id, circle_type.value, radius
            )
        else:
            logger.info("{}: circle set to {} ({:.4f}m)", device_id, circle_type.value, radius)
        return new_state

    def set_centre(self, device_id: str, station: StationPoint,
                   timestamp: Optional[datetime] = None) -> CentreSet:
        current = self.state(device_id)
        if current.step != CalibrationStep.CIRCLE_SELECTED:
            raise CalibrationError("Centre is already set - retry the centre step to set it again")

        new_state = CentreSet(
            circle=current,
            station=station,
            centre_set_at=timestamp or datetime.now(timezone.utc),
        )
        self._states[device_id] = new_state
        logger.info("{}: centre set, station at X={:.4f}m Y={:.4f}m", device_id, station.x, station.y)
        return new_state

    def verify_edge(self, device_id: str, measured_radius: float) -> EdgeVerified:
        """Evaluate an edge reading; the verdict is stored pass or fail."""
        current = self.state(device_id)
        if current.step == CalibrationStep.CIRCLE_SELECTED:
            raise CalibrationError("Must set circle centre first")
        if current.step != CalibrationStep.CENTRE_SET:
            raise CalibrationError("Edge already verified - retry the edge step to measure again")

        circle = current.circle
        result = evaluate_tolerance(circle.circle_type, measured_radius, circle.target_radius)
        new_state = EdgeVerified(centre=current, edge=result)
        self._states[device_id] = new_state

        logger.info(
            "{}: edge {} - measured {:.4f}m, target {:.4f}m, diff {:+.1f}mm (±{:.1f}mm)",
            device_id, "PASS" if result.is_in_tolerance else "FAIL",
            measured_radius, circle.target_radius, result.difference_mm, result.tolerance_applied_mm
        )
        return new_state

    def record_check_mark(self, device_id: str, value: str) -> CheckMarkRecorded:
        current = self.state(device_id)
        if current.step != CalibrationStep.EDGE_VERIFIED:
            raise CalibrationError("Check mark can only be recorded straight after edge verification")
        if not current.edge.is_in_tolerance:
            raise CalibrationError("Check mark needs an edge verification within tolerance")

        new_state = CheckMarkRecorded(verified=current, check_mark_value=str(value))
        self._states[device_id] = new_state
        logger.info("{}: check mark recorded ({})", device_id, value)
        return new_state

    def retry(self, device_id: str, step: CalibrationStep) -> CalibrationState:
        """
        Return to the start of ``step``.

        Clears that step's result and anything depending on it. Retrying
        CIRCLE_SELECTED is a full reset.

        Raises:
            CalibrationError: If ``step`` has not been reached yet
        """
        step = CalibrationStep(step)
        current = self.state(device_id)
        if step == CalibrationStep.CIRCLE_SELECTED:
            return self.reset(device_id)
        if current.step < step:
            raise CalibrationError(f"Nothing to retry - {step.name} has not been completed")

        if step == CalibrationStep.CENTRE_SET:
            new_state = current.circle
        elif step == CalibrationStep.EDGE_VERIFIED:
            new_state = current.centre
        else:
            new_state = current.verified

        self._states[device_id] = new_state
        logger.info("{}: retrying {}", device_id, step.name)
        return new_state

    def reset(self, device_id: str) -> CircleSelected:
        """Back to step 1, keeping the circle type and radius."""
        circle = self.state(device_id).circle
        self._states[device_id] = circle
        logger.info("{}: calibration reset ({})", device_id, circle.circle_type.value)
        return circle

    def restore(self, device_id: str, state: CalibrationState) -> CalibrationState:
        """Put back a state captured earlier, e.g. when a save was rejected."""
        self._states[device_id] = state
        logger.info("{}: calibration restored to {}", device_id, state.step.name)
        return state

    # =========================================================================
    # Request Guard
    # =========================================================================

    def begin_request(self, device_id: str, action: str) -> None:
        if device_id in self._pending:
            raise CalibrationBusyError(
                f"{device_id} is busy with '{self._pending[device_id]}' - wait for it to finish"
            )
        self._pending[device_id] = action

    def end_request(self, device_id: str) -> None:
        self._pending.pop(device_id, None)

    def pending_action(self, device_id: str) -> Optional[str]:
        return self._pending.get(device_id)

    # =========================================================================
    # Wire Format
    # =========================================================================

    def to_wire(self, device_id: str) -> dict:
        """Serialize the device's state into the backend record shape."""
        state = self.state(device_id)
        circle = state.circle
        centre = state.centre

        record = {
            "deviceId": device_id,
            "timestamp": centre.centre_set_at.isoformat() if centre else None,
            "selectedCircleType": circle.circle_type.value,
            "targetRadius": circle.target_radius,
            "stationCoordinates": centre.station.to_dict() if centre else StationPoint().to_dict(),
            "isCentreSet": centre is not None,
        }
        if state.edge is not None:
            record["edgeVerificationResult"] = state.edge.to_dict()
        if state.check_mark_value is not None:
            record["checkMarkValue"] = state.check_mark_value
        return record

    def apply_record(self, device_id: str, record: dict) -> CalibrationState:
        """
        Replace the device's state with one rebuilt from a backend record.

        Edge results are re-evaluated locally. Illegal combinations are
        dropped rather than trusted.
        """
        circle_type = parse_circle_type(record.get("selectedCircleType") or self.default_circle)
        radius = record.get("targetRadius")
        if circle_type is CircleType.CUSTOM:
            circle = CircleSelected(circle_type, target_radius_for(circle_type, radius))
        else:
            circle = CircleSelected(circle_type, target_radius_for(circle_type))
            if radius and abs(float(radius) - circle.target_radius) > 1e-9:
                logger.warning(
                    "{}: record radius {} does not match {} regulation radius, using {:.4f}m",
                    device_id, radius, circle_type.value, circle.target_radius
                )

        state: CalibrationState = circle
        edge = record.get("edgeVerificationResult")
        check_mark = record.get("checkMarkValue")

        if record.get("isCentreSet"):
            state = CentreSet(
                circle=circle,
                station=station_from_record(record),
                centre_set_at=parse_timestamp(record.get("timestamp")) or datetime.now(timezone.utc),
            )
            if edge:
                state = EdgeVerified(
                    centre=state,
                    edge=evaluate_tolerance(circle_type, float(edge["measuredRadius"]), circle.target_radius),
                )
                if check_mark is not None:
                    if state.edge.is_in_tolerance:
                        state = CheckMarkRecorded(verified=state, check_mark_value=str(check_mark))
                    else:
                        logger.warning("{}: dropping check mark recorded against a failed edge", device_id)
        elif edge or check_mark is not None:
            logger.warning("{}: dropping edge/check mark results from a record without a centre", device_id)

        self._states[device_id] = state
        return state
