"""
================================================================================
Core Package - Calibration, Heat Map and Device Access
================================================================================

Everything that decides *what* the operator sees, kept free of widgets:
circle calibration and its tolerance verdicts, landing-point aggregation
and layout, and the asynchronous path to the measurement rig.

Design Philosophy:
    "Measure what is measurable, and make measurable what is not so."
     - Galileo Galilei

Modules:
    circles: Circle types and regulation radii
    tolerance: Edge verification verdicts
    calibration: Per-device calibration state machine
    heatmap: Landing-point aggregation and session statistics
    renderer: World-to-canvas layout of the heat map
    delayed_task: Cancelable countdown before a device read
    backend: Remote operations contract and error taxonomy
    http_backend: Remote operations over HTTP/JSON
    demo_backend: Simulated rig for demo mode
    device_client: Worker-thread request dispatch
"""

from .circles import CircleType, REGULATION_RADII, parse_circle_type, target_radius_for
from .tolerance import ToleranceResult, VerdictGrade, evaluate_tolerance, grade_verdict, describe_verdict
from .calibration import (
    CalibrationError,
    CalibrationBusyError,
    CalibrationStep,
    CalibrationStateMachine,
    StationPoint,
)
from .heatmap import (
    ThrowCoordinate,
    HeatmapBounds,
    HeatmapData,
    SessionStatistics,
    aggregate_throws,
    compute_statistics,
    empty_heatmap,
)
from .renderer import CoordinateRenderer, RenderPlan, export_plan_figure
from .delayed_task import DelayedTask
from .backend import (
    DeviceBackend,
    BackendError,
    TransportError,
    DeviceNotConnectedError,
    NoCoordinatesError,
)
from .http_backend import HttpDeviceBackend
from .demo_backend import DemoDeviceBackend
from .device_client import DeviceClient, RequestGate

__all__ = [
    'CircleType',
    'REGULATION_RADII',
    'parse_circle_type',
    'target_radius_for',
    'ToleranceResult',
    'VerdictGrade',
    'evaluate_tolerance',
    'grade_verdict',
    'describe_verdict',
    'CalibrationError',
    'CalibrationBusyError',
    'CalibrationStep',
    'CalibrationStateMachine',
    'StationPoint',
    'ThrowCoordinate',
    'HeatmapBounds',
    'HeatmapData',
    'SessionStatistics',
    'aggregate_throws',
    'compute_statistics',
    'empty_heatmap',
    'CoordinateRenderer',
    'RenderPlan',
    'export_plan_figure',
    'DelayedTask',
    'DeviceBackend',
    'BackendError',
    'TransportError',
    'DeviceNotConnectedError',
    'NoCoordinatesError',
    'HttpDeviceBackend',
    'DemoDeviceBackend',
    'DeviceClient',
    'RequestGate',
]
