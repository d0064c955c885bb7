"""
================================================================================
Styles Package - Visual Design System
================================================================================

Colours, typography and component styles shared by every screen.

Modules:
    theme: Colour palette, heat-map gradient, fonts and stylesheet helpers
"""

from .theme import (
    # Color palette
    COLORS,
    VERDICT_COLORS,
    HEATMAP_LOW_COLOR,
    HEATMAP_HIGH_COLOR,
    # Typography
    FONT_FAMILY,
    # Helper functions
    get_button_style,
    get_card_style,
    rgb_to_hex,
)

__all__ = [
    'COLORS',
    'VERDICT_COLORS',
    'HEATMAP_LOW_COLOR',
    'HEATMAP_HIGH_COLOR',
    'FONT_FAMILY',
    'get_button_style',
    'get_card_style',
    'rgb_to_hex',
]
