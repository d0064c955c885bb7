"""Tests for edge tolerance verdicts."""

import pytest

from polyfield.core.circles import CircleType, parse_circle_type, target_radius_for
from polyfield.core.tolerance import (
    VerdictGrade, describe_verdict, evaluate_tolerance, grade_verdict, tolerance_for
)


@pytest.mark.parametrize("circle_type", [CircleType.SHOT, CircleType.DISCUS, CircleType.HAMMER, CircleType.CUSTOM])
def test_throws_circles_use_five_mm(circle_type):
    assert tolerance_for(circle_type) == 5.0


def test_javelin_arc_uses_ten_mm():
    assert tolerance_for(CircleType.JAVELIN_ARC) == 10.0
    assert tolerance_for("JAVELIN_ARC") == 10.0


def test_shot_three_mm_over_passes():
    result = evaluate_tolerance(CircleType.SHOT, 1.0705, 1.0675)
    assert result.difference_mm == pytest.approx(3.0)
    assert result.tolerance_applied_mm == 5.0
    assert result.is_in_tolerance


def test_shot_exact_boundary_passes():
    result = evaluate_tolerance(CircleType.SHOT, 1.0625, 1.0675)
    assert result.difference_mm == pytest.approx(-5.0)
    assert result.is_in_tolerance


def test_javelin_twelve_mm_over_fails():
    result = evaluate_tolerance(CircleType.JAVELIN_ARC, 8.012, 8.000)
    assert result.difference_mm == pytest.approx(12.0)
    assert result.tolerance_applied_mm == 10.0
    assert not result.is_in_tolerance


def test_just_outside_boundary_fails():
    assert not evaluate_tolerance(CircleType.DISCUS, 1.2551, 1.250).is_in_tolerance


def test_result_wire_keys():
    d = evaluate_tolerance(CircleType.SHOT, 1.0705, 1.0675).to_dict()
    assert set(d) == {"measuredRadius", "differenceMm", "isInTolerance", "toleranceAppliedMm"}
    assert d["measuredRadius"] == 1.0705


@pytest.mark.parametrize("measured, grade", [
    (1.0680, VerdictGrade.EXCELLENT),
    (1.0700, VerdictGrade.GOOD),
    (1.0715, VerdictGrade.ACCEPTABLE),
    (1.0800, VerdictGrade.FAILED),
])
def test_grade_verdict(measured, grade):
    assert grade_verdict(evaluate_tolerance(CircleType.SHOT, measured, 1.0675)) is grade


def test_describe_pass():
    text = describe_verdict(evaluate_tolerance(CircleType.SHOT, 1.0705, 1.0675))
    assert text.startswith("Edge verification PASSED")
    assert "3.0mm" in text
    assert "Ready to measure" in text


def test_describe_small_failure_suggests_remeasure():
    text = describe_verdict(evaluate_tolerance(CircleType.SHOT, 1.0775, 1.0675))
    assert "FAILED" in text
    assert "Remeasure edge" in text


def test_describe_large_failure_suggests_recalibrating_centre():
    text = describe_verdict(evaluate_tolerance(CircleType.SHOT, 1.2, 1.0675))
    assert "Recalibrate centre position" in text


def test_regulation_radii():
    assert target_radius_for(CircleType.SHOT) == 1.0675
    assert target_radius_for(CircleType.DISCUS) == 1.250
    assert target_radius_for(CircleType.HAMMER) == 1.0675
    assert target_radius_for(CircleType.JAVELIN_ARC) == 8.000


def test_regulation_radius_ignores_custom_value():
    assert target_radius_for(CircleType.DISCUS, 3.0) == 1.250


def test_custom_radius_required():
    assert target_radius_for(CircleType.CUSTOM, 2.5) == 2.5
    with pytest.raises(ValueError):
        target_radius_for(CircleType.CUSTOM)
    with pytest.raises(ValueError):
        target_radius_for(CircleType.CUSTOM, -1.0)


def test_parse_circle_type():
    assert parse_circle_type("shot") is CircleType.SHOT
    assert parse_circle_type(CircleType.HAMMER) is CircleType.HAMMER
    with pytest.raises(ValueError):
        parse_circle_type("TRIPLE_JUMP")
