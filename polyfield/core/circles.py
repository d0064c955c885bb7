"""
================================================================================
Circles - Throwing Circle Types and Regulation Radii
================================================================================

Every throwing event calibrates against a circle (or, for the javelin,
an arc) of known radius. The circle type decides both the target radius
and the edge tolerance used during calibration.
"""

import math
from enum import Enum
from typing import Optional

from ..utils.constants import (
    RADIUS_SHOT, RADIUS_DISCUS, RADIUS_HAMMER, RADIUS_JAVELIN_ARC
)


class CircleType(str, Enum):
    """Throwing-event circle category. Values match the wire format."""

    SHOT = "SHOT"
    DISCUS = "DISCUS"
    HAMMER = "HAMMER"
    JAVELIN_ARC = "JAVELIN_ARC"
    CUSTOM = "CUSTOM"

    @property
    def label(self) -> str:
        """Human-readable name for combo boxes."""
        return CIRCLE_LABELS[self]


REGULATION_RADII = {
    CircleType.SHOT: RADIUS_SHOT,
    CircleType.DISCUS: RADIUS_DISCUS,
    CircleType.HAMMER: RADIUS_HAMMER,
    CircleType.JAVELIN_ARC: RADIUS_JAVELIN_ARC,
}

CIRCLE_LABELS = {
    CircleType.SHOT: "Shot Put",
    CircleType.DISCUS: "Discus",
    CircleType.HAMMER: "Hammer",
    CircleType.JAVELIN_ARC: "Javelin Arc",
    CircleType.CUSTOM: "Custom",
}


def parse_circle_type(value) -> CircleType:
    """
    Convert a wire string (or an existing CircleType) into a CircleType.

    Raises:
        ValueError: If the value is not a known circle type
    """
    if isinstance(value, CircleType):
        return value
    try:
        return CircleType(str(value).upper())
    except ValueError:
        raise ValueError(f"Unknown circle type: {value!r}") from None


def target_radius_for(circle_type: CircleType, custom_radius: Optional[float] = None) -> float:
    """
    Resolve the target radius for a circle type.

    Regulation types always use the lookup table; ``custom_radius`` is
    only consulted for CUSTOM.

    Raises:
        ValueError: If CUSTOM is given without a positive, finite radius
    """
    circle_type = parse_circle_type(circle_type)
    if circle_type is not CircleType.CUSTOM:
        return REGULATION_RADII[circle_type]

    if custom_radius is None:
        raise ValueError("A custom circle needs an operator-supplied radius")
    radius = float(custom_radius)
    if not math.isfinite(radius) or radius <= 0:
        raise ValueError(f"Custom radius must be a positive number of metres, got {custom_radius!r}")
    return radius
