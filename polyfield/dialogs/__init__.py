"""
================================================================================
Dialogs Package - Modal Dialog Windows
================================================================================

Dialogs have one job each: guide the official through a task and close.

Modules:
    calibration_dialog: EDM circle calibration workflow
"""

from .calibration_dialog import CalibrationDialog

__all__ = [
    'CalibrationDialog',
]
