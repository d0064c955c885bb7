"""
================================================================================
Widgets Package - Custom UI Components
================================================================================

Self-contained widgets used by the main window and the calibration dialog.

Modules:
    animated_button: Action buttons with hover animation and busy state
    cards: Card containers, calibration step cards, stat displays
    indicators: Connection dot and heat-map colour legend
    heatmap_canvas: Painted landing heat map
    warnings: Out-of-tolerance banner
"""

from .animated_button import AnimatedButton
from .cards import FriendlyCard, StepCard, StatDisplay
from .indicators import PulsingDot, ColorLegendWidget
from .heatmap_canvas import HeatmapCanvas
from .warnings import ToleranceWarningWidget

__all__ = [
    'AnimatedButton',
    'FriendlyCard',
    'StepCard',
    'StatDisplay',
    'PulsingDot',
    'ColorLegendWidget',
    'HeatmapCanvas',
    'ToleranceWarningWidget',
]
