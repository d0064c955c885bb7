"""
================================================================================
Tolerance Evaluator - Edge Verification Verdicts
================================================================================

After the circle centre has been set, the operator aims the EDM at the
circle edge. The measured radius is compared against the regulation
radius; if the difference is outside tolerance, every distance measured
afterwards would be wrong by the same amount.

Tolerance Policy:
    - Javelin arc: +/-10.0 mm
    - All other circles: +/-5.0 mm
    - The boundary itself is in tolerance
"""

from dataclasses import dataclass
from enum import Enum

from .circles import CircleType, parse_circle_type
from ..utils.constants import (
    TOLERANCE_THROWS_CIRCLE_MM, TOLERANCE_JAVELIN_MM, TOLERANCE_EPSILON_MM,
    GRADE_EXCELLENT_MM, GRADE_GOOD_MM, RECALIBRATE_CENTRE_MM
)


@dataclass(frozen=True)
class ToleranceResult:
    """
    Outcome of one edge verification.

    Attributes:
        measured_radius: Radius resolved from the edge reading (metres)
        difference_mm: Signed deviation from the target radius (mm)
        tolerance_applied_mm: Half-width of the accepted band (mm)
        is_in_tolerance: True when abs(difference_mm) is within the band
    """

    measured_radius: float
    difference_mm: float
    tolerance_applied_mm: float
    is_in_tolerance: bool

    def to_dict(self) -> dict:
        return {
            "measuredRadius": self.measured_radius,
            "differenceMm": self.difference_mm,
            "isInTolerance": self.is_in_tolerance,
            "toleranceAppliedMm": self.tolerance_applied_mm,
        }


class VerdictGrade(str, Enum):
    """How comfortably an edge verification passed."""

    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    FAILED = "failed"


def tolerance_for(circle_type) -> float:
    """Return the edge tolerance (mm) for a circle type."""
    if parse_circle_type(circle_type) is CircleType.JAVELIN_ARC:
        return TOLERANCE_JAVELIN_MM
    return TOLERANCE_THROWS_CIRCLE_MM


def evaluate_tolerance(circle_type, measured_radius: float, target_radius: float) -> ToleranceResult:
    """
    Compare a measured edge radius against the target radius.

    Args:
        circle_type: CircleType (or its wire string)
        measured_radius: Radius resolved from the edge reading (metres)
        target_radius: Expected radius (metres)

    Returns:
        ToleranceResult with the signed deviation and verdict

    Example:
        >>> evaluate_tolerance(CircleType.SHOT, 1.0705, 1.0675).is_in_tolerance
        True
    """
    tolerance_mm = tolerance_for(circle_type)
    difference_mm = (measured_radius - target_radius) * 1000.0
    is_in_tolerance = abs(difference_mm) <= tolerance_mm + TOLERANCE_EPSILON_MM

    return ToleranceResult(
        measured_radius=measured_radius,
        difference_mm=difference_mm,
        tolerance_applied_mm=tolerance_mm,
        is_in_tolerance=is_in_tolerance,
    )


def grade_verdict(result: ToleranceResult) -> VerdictGrade:
    """Grade a verdict for display (border colour of the verify button)."""
    if not result.is_in_tolerance:
        return VerdictGrade.FAILED

    deviation = abs(result.difference_mm)
    if deviation <= GRADE_EXCELLENT_MM:
        return VerdictGrade.EXCELLENT
    if deviation <= GRADE_GOOD_MM:
        return VerdictGrade.GOOD
    return VerdictGrade.ACCEPTABLE


def describe_verdict(result: ToleranceResult) -> str:
    """
    Build the operator status text for an edge verification.

    Failed verdicts carry guidance: a deviation beyond 50 mm usually
    means the centre was set on the wrong point.
    """
    deviation = abs(result.difference_mm)
    tolerance = result.tolerance_applied_mm

    if result.is_in_tolerance:
        return (
            f"Edge verification PASSED. Difference: {deviation:.1f}mm "
            f"(within ±{tolerance:.1f}mm tolerance). Ready to measure."
        )

    if deviation > RECALIBRATE_CENTRE_MM:
        advice = "Recalibrate centre position."
    else:
        advice = "Remeasure edge or check circle alignment."
    return (
        f"Edge verification FAILED tolerance check. Difference: {deviation:.1f}mm "
        f"(exceeds ±{tolerance:.1f}mm tolerance). {advice}"
    )
