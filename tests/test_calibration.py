"""Tests for the calibration state machine."""

from datetime import datetime, timezone

import pytest

from polyfield.core.calibration import (
    CalibrationBusyError, CalibrationError, CalibrationStateMachine, CalibrationStep,
    CentreSet, CheckMarkRecorded, CircleSelected, EdgeVerified, StationPoint,
    measured_radius_from_record, parse_timestamp, reading_value
)
from polyfield.core.circles import CircleType

DEVICE = "edm"
STATION = StationPoint(-9.1, 3.2)


@pytest.fixture
def machine():
    return CalibrationStateMachine()


def _calibrated(machine, measured=1.0705):
    machine.select_circle(DEVICE, CircleType.SHOT)
    machine.set_centre(DEVICE, STATION)
    machine.verify_edge(DEVICE, measured)
    return machine


def test_new_device_starts_at_circle_selected(machine):
    state = machine.state(DEVICE)
    assert isinstance(state, CircleSelected)
    assert state.circle_type is CircleType.SHOT
    assert state.target_radius == 1.0675
    assert state.centre is None and state.edge is None and state.check_mark_value is None
    assert not machine.is_ready(DEVICE)


def test_full_walkthrough(machine):
    machine.select_circle(DEVICE, CircleType.SHOT)
    centre = machine.set_centre(DEVICE, STATION)
    assert isinstance(centre, CentreSet)
    assert machine.step(DEVICE) == CalibrationStep.CENTRE_SET
    assert not machine.is_ready(DEVICE)

    verified = machine.verify_edge(DEVICE, 1.0705)
    assert isinstance(verified, EdgeVerified)
    assert verified.edge.is_in_tolerance
    assert machine.is_ready(DEVICE)

    recorded = machine.record_check_mark(DEVICE, "12.345")
    assert isinstance(recorded, CheckMarkRecorded)
    assert recorded.check_mark_value == "12.345"
    assert machine.is_ready(DEVICE)


def test_edge_without_centre_is_rejected(machine):
    with pytest.raises(CalibrationError, match="Must set circle centre first"):
        machine.verify_edge(DEVICE, 1.0675)
    assert machine.step(DEVICE) == CalibrationStep.CIRCLE_SELECTED


def test_failed_edge_is_stored_but_not_ready(machine):
    _calibrated(machine, measured=1.0800)
    state = machine.state(DEVICE)
    assert state.step == CalibrationStep.EDGE_VERIFIED
    assert not state.edge.is_in_tolerance
    assert not machine.is_ready(DEVICE)


def test_check_mark_needs_passing_edge(machine):
    _calibrated(machine, measured=1.0800)
    with pytest.raises(CalibrationError, match="within tolerance"):
        machine.record_check_mark(DEVICE, "12.345")


def test_check_mark_needs_edge_step(machine):
    machine.select_circle(DEVICE, CircleType.SHOT)
    machine.set_centre(DEVICE, STATION)
    with pytest.raises(CalibrationError):
        machine.record_check_mark(DEVICE, "12.345")


def test_setting_centre_twice_needs_retry(machine):
    machine.set_centre(DEVICE, STATION)
    with pytest.raises(CalibrationError):
        machine.set_centre(DEVICE, StationPoint(1.0, 1.0))


def test_verifying_edge_twice_needs_retry(machine):
    _calibrated(machine)
    with pytest.raises(CalibrationError):
        machine.verify_edge(DEVICE, 1.0675)


@pytest.mark.parametrize("circle_type", list(CircleType)[:4])
def test_changing_circle_clears_everything(machine, circle_type):
    _calibrated(machine)
    machine.record_check_mark(DEVICE, "10.000")

    state = machine.select_circle(DEVICE, circle_type)
    assert state.step == CalibrationStep.CIRCLE_SELECTED
    assert state.centre is None
    assert state.edge is None
    assert state.check_mark_value is None
    assert not machine.is_ready(DEVICE)


def test_custom_circle_uses_given_radius(machine):
    state = machine.select_circle(DEVICE, CircleType.CUSTOM, 2.135)
    assert state.target_radius == 2.135
    with pytest.raises(ValueError):
        machine.select_circle(DEVICE, CircleType.CUSTOM)


def test_retry_edge_keeps_centre(machine):
    _calibrated(machine)
    machine.record_check_mark(DEVICE, "10.000")

    state = machine.retry(DEVICE, CalibrationStep.EDGE_VERIFIED)
    assert state.step == CalibrationStep.CENTRE_SET
    assert state.station == STATION
    assert state.edge is None
    assert state.check_mark_value is None


def test_retry_centre_clears_centre(machine):
    _calibrated(machine)
    state = machine.retry(DEVICE, CalibrationStep.CENTRE_SET)
    assert state.step == CalibrationStep.CIRCLE_SELECTED
    assert state.centre is None


def test_retry_check_mark_returns_to_edge_verified(machine):
    _calibrated(machine)
    machine.record_check_mark(DEVICE, "10.000")
    state = machine.retry(DEVICE, CalibrationStep.CHECK_MARK_RECORDED)
    assert state.step == CalibrationStep.EDGE_VERIFIED
    assert state.check_mark_value is None
    assert machine.is_ready(DEVICE)


def test_retry_unreached_step_is_rejected(machine):
    with pytest.raises(CalibrationError, match="Nothing to retry"):
        machine.retry(DEVICE, CalibrationStep.EDGE_VERIFIED)


def test_reset_keeps_circle(machine):
    machine.select_circle(DEVICE, CircleType.DISCUS)
    machine.set_centre(DEVICE, STATION)
    machine.verify_edge(DEVICE, 1.251)

    state = machine.reset(DEVICE)
    assert state.step == CalibrationStep.CIRCLE_SELECTED
    assert state.circle_type is CircleType.DISCUS
    assert state.target_radius == 1.250


def test_devices_are_independent(machine):
    _calibrated(machine)
    assert machine.step("edm2") == CalibrationStep.CIRCLE_SELECTED
    assert machine.devices() == ["edm", "edm2"]


def test_request_guard(machine):
    machine.begin_request(DEVICE, "verify_edge")
    assert machine.pending_action(DEVICE) == "verify_edge"
    with pytest.raises(CalibrationBusyError):
        machine.begin_request(DEVICE, "set_centre")
    machine.end_request(DEVICE)
    assert machine.pending_action(DEVICE) is None
    machine.begin_request(DEVICE, "set_centre")


def test_wire_round_trip(machine):
    _calibrated(machine)
    machine.record_check_mark(DEVICE, "10.000")
    record = machine.to_wire(DEVICE)

    assert record["selectedCircleType"] == "SHOT"
    assert record["isCentreSet"] is True
    assert record["stationCoordinates"] == {"x": -9.1, "y": 3.2}
    assert record["edgeVerificationResult"]["isInTolerance"] is True

    other = CalibrationStateMachine()
    state = other.apply_record(DEVICE, record)
    assert state == machine.state(DEVICE)


def test_apply_record_drops_edge_without_centre(machine):
    state = machine.apply_record(DEVICE, {
        "selectedCircleType": "SHOT",
        "targetRadius": 1.0675,
        "isCentreSet": False,
        "edgeVerificationResult": {"measuredRadius": 1.0675},
        "checkMarkValue": "5.0",
    })
    assert state.step == CalibrationStep.CIRCLE_SELECTED


def test_apply_record_drops_check_mark_after_failed_edge(machine):
    state = machine.apply_record(DEVICE, {
        "selectedCircleType": "SHOT",
        "isCentreSet": True,
        "stationCoordinates": {"x": 1.0, "y": 2.0},
        "edgeVerificationResult": {"measuredRadius": 1.2},
        "checkMarkValue": "5.0",
    })
    assert state.step == CalibrationStep.EDGE_VERIFIED
    assert not state.edge.is_in_tolerance


def test_apply_record_re_evaluates_edge_locally(machine):
    state = machine.apply_record(DEVICE, {
        "selectedCircleType": "SHOT",
        "isCentreSet": True,
        "edgeVerificationResult": {"measuredRadius": 1.0705, "isInTolerance": False},
    })
    assert state.edge.is_in_tolerance


def test_parse_timestamp_handles_nanoseconds():
    parsed = parse_timestamp("2024-06-01T10:15:30.123456789Z")
    assert parsed == datetime(2024, 6, 1, 10, 15, 30, 123456, tzinfo=timezone.utc)


def test_parse_timestamp_zero_time_is_none():
    assert parse_timestamp("0001-01-01T00:00:00Z") is None
    assert parse_timestamp("") is None
    assert parse_timestamp("not a time") is None


def test_measured_radius_from_record():
    assert measured_radius_from_record({"edgeVerificationResult": {"measuredRadius": 1.07}}) == 1.07
    with pytest.raises(CalibrationError):
        measured_radius_from_record({})


def test_reading_value():
    assert reading_value({"value": "1.0705 m"}) == 1.0705
    assert reading_value({"value": "12.5"}) == 12.5
    with pytest.raises(CalibrationError):
        reading_value({"value": "ERR"})
