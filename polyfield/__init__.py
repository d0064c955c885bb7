"""
================================================================================
PolyField - Field Event Measurement Console
================================================================================

Operator interface for a field-athletics measurement rig: an EDM (electronic
distance meter) for throws, a wind gauge for horizontal jumps, and a
scoreboard. Calibrates the EDM against the throwing circle and shows where
throws land as a heat map.

Package Structure:
    polyfield/
    ├── __init__.py          # This file - package metadata
    ├── app.py               # Application launcher
    ├── main_window.py       # Main application window
    ├── session_config.py    # Persisted operator settings
    ├── core/                # Logic, no widgets
    │   ├── calibration.py       # Calibration state machine
    │   ├── tolerance.py         # Edge verification verdicts
    │   ├── heatmap.py           # Landing-point aggregation
    │   ├── renderer.py          # Heat map layout and export
    │   ├── device_client.py     # Worker-thread requests
    │   └── ...                  # Backends, countdown, circles
    ├── dialogs/             # Modal dialogs
    │   └── calibration_dialog.py
    ├── styles/              # Colours, fonts, styles
    ├── utils/               # Constants and log setup
    └── widgets/             # Custom UI components

Usage:
    # Launch the application
    python -m polyfield.app

    # Or, once installed
    polyfield
"""

__version__ = "1.0.0"
