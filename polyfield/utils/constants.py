"""
================================================================================
Constants - Application-Wide Configuration Values
================================================================================

This module defines the constants used throughout the field-event
measurement interface. Centralizing these values keeps the regulation
numbers, the heat-map layout rules and the timing in one place.

Design Philosophy:
    "Measure twice, cut once." - Carpenter's proverb
"""

# =============================================================================
# Circle Geometry (UKA regulation radii, metres)
# =============================================================================

RADIUS_SHOT: float = 1.0675
RADIUS_DISCUS: float = 1.250
RADIUS_HAMMER: float = 1.0675
RADIUS_JAVELIN_ARC: float = 8.000

# =============================================================================
# Edge Tolerance (millimetres)
# =============================================================================

TOLERANCE_THROWS_CIRCLE_MM: float = 5.0
TOLERANCE_JAVELIN_MM: float = 10.0

# Guards exact boundary cases against binary floating-point error
TOLERANCE_EPSILON_MM: float = 1e-9

# Verdict grades used for button styling
GRADE_EXCELLENT_MM: float = 1.0
GRADE_GOOD_MM: float = 3.0

# Beyond this deviation the centre is more likely wrong than the edge
RECALIBRATE_CENTRE_MM: float = 50.0

# =============================================================================
# Heat Map Aggregation
# =============================================================================

GRID_SIZES: tuple = (0.5, 1.0, 2.0, 5.0)
DEFAULT_GRID_SIZE: float = 1.0

# =============================================================================
# Coordinate Rendering
# =============================================================================

CANVAS_MARGIN_PX: int = 30
PADDING_FRACTION: float = 0.10
MIN_PADDING_M: float = 2.0

# Fixed scale when there are no throws to fit
EMPTY_SCALE_PX_PER_M: float = 20.0

# Cells smaller than this do not get a count label
MIN_LABEL_CELL_PX: float = 18.0

# Rings smaller than this are skipped
MIN_RING_RADIUS_PX: float = 12.0

# Alpha range (0-255) for heat cells, sparse to dense
CELL_ALPHA_MIN: int = 70
CELL_ALPHA_MAX: int = 230

# Distance rings, measured from the circle edge (metres)
SHOT_RING_DISTANCES: tuple = (6, 8, 10, 12, 14)
THROWS_RING_DISTANCES: tuple = (10, 20, 30, 40, 50, 60)

# =============================================================================
# Measurement Timing
# =============================================================================

# Countdown before a wind reading is taken (seconds)
WIND_COUNTDOWN_SECONDS: int = 5

# Wind readings averaged over this trailing window (seconds)
WIND_WINDOW_SECONDS: float = 5.0

# Approx 2 minutes of wind data at 1 reading/sec
WIND_BUFFER_SIZE: int = 120

# Default per-request transport timeout (seconds)
DEFAULT_REQUEST_TIMEOUT_S: float = 30.0

# Simulated device latency in demo mode (seconds)
DEMO_CENTRE_DELAY_S: float = 2.0
DEMO_EDGE_DELAY_S: float = 2.0
DEMO_THROW_DELAY_S: float = 1.5

# =============================================================================
# Device Identifiers
# =============================================================================

DEVICE_EDM: str = "edm"
DEVICE_WIND: str = "wind"
DEVICE_SCOREBOARD: str = "scoreboard"

EVENT_THROWS: str = "Throws"
EVENT_HORIZONTAL_JUMPS: str = "Horizontal Jumps"

# Shown on the scoreboard right after it connects
SCOREBOARD_TEST_PATTERN: str = "88:88"
