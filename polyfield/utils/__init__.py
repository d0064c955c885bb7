"""
================================================================================
Utils Package - Constants and Logging
================================================================================

Fundamental constants and log setup shared by the whole application.

Modules:
    constants: Circle radii, tolerances, grid sizes, ring distances, timing
    logging: loguru sink configuration
"""

from .constants import (
    # Circle geometry
    RADIUS_SHOT,
    RADIUS_DISCUS,
    RADIUS_HAMMER,
    RADIUS_JAVELIN_ARC,
    # Tolerance
    TOLERANCE_THROWS_CIRCLE_MM,
    TOLERANCE_JAVELIN_MM,
    # Heat map
    GRID_SIZES,
    DEFAULT_GRID_SIZE,
    # Devices and events
    DEVICE_EDM,
    DEVICE_WIND,
    DEVICE_SCOREBOARD,
    EVENT_THROWS,
    EVENT_HORIZONTAL_JUMPS,
)
from .logging import start_log, log_default_path

__all__ = [
    'RADIUS_SHOT',
    'RADIUS_DISCUS',
    'RADIUS_HAMMER',
    'RADIUS_JAVELIN_ARC',
    'TOLERANCE_THROWS_CIRCLE_MM',
    'TOLERANCE_JAVELIN_MM',
    'GRID_SIZES',
    'DEFAULT_GRID_SIZE',
    'DEVICE_EDM',
    'DEVICE_WIND',
    'DEVICE_SCOREBOARD',
    'EVENT_THROWS',
    'EVENT_HORIZONTAL_JUMPS',
    'start_log',
    'log_default_path',
]
