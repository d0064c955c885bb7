"""
================================================================================
Theme - Application Visual Design System
================================================================================

Colours, fonts and stylesheet helpers for the field-event interface.
The operator works outdoors on a laptop, often in bright sun, so the
palette favours high contrast over subtle tints.

Design Philosophy:
    "Good design is as little design as possible." - Dieter Rams

Colour Meaning:
    - Blue (Primary): actions the operator can take now
    - Green (Success): calibrated, connected, in tolerance
    - Amber (Warning): calibrated but borderline, countdown running
    - Red (Danger): out of tolerance, disconnected, errors
"""

from typing import Dict, Tuple

# =============================================================================
# Color Palette
# =============================================================================

COLORS: Dict[str, str] = {
    # -------------------------------------------------------------------------
    # Background Colors
    # -------------------------------------------------------------------------
    'bg_main': '#f1f4f8',           # Light grey-blue - main background
    'bg_card': '#ffffff',           # White - card backgrounds
    'bg_canvas': '#fbfcfd',         # Near-white - heat map field
    'bg_header': '#1e3a5f',         # Navy - header bar

    # -------------------------------------------------------------------------
    # Text Colors
    # -------------------------------------------------------------------------
    'text_dark': '#1f2933',         # Near-black - primary text
    'text_light': '#52606d',        # Medium grey - secondary text
    'text_white': '#ffffff',        # White - text on dark backgrounds
    'text_muted': '#9aa5b1',        # Light grey - disabled/placeholder

    # -------------------------------------------------------------------------
    # Accent Colors
    # -------------------------------------------------------------------------
    'primary': '#2563eb',           # Blue - primary actions
    'success': '#16a34a',           # Green - in tolerance / connected
    'warning': '#d97706',           # Amber - borderline / countdown
    'danger': '#dc2626',            # Red - failed / disconnected
    'info': '#0891b2',              # Cyan - information

    # -------------------------------------------------------------------------
    # Button States
    # -------------------------------------------------------------------------
    'btn_primary': '#2563eb',
    'btn_primary_hover': '#1d4ed8',
    'btn_success': '#16a34a',
    'btn_success_hover': '#15803d',
    'btn_danger': '#dc2626',
    'btn_danger_hover': '#b91c1c',
    'btn_secondary': '#e4e7eb',
    'btn_secondary_hover': '#cbd2d9',
    'btn_disabled': '#cbd2d9',

    # -------------------------------------------------------------------------
    # Field Drawing
    # -------------------------------------------------------------------------
    'circle_outline': '#1f2933',
    'centre_marker': '#dc2626',
    'ring': '#9aa5b1',
    'ring_label': '#52606d',

    # -------------------------------------------------------------------------
    # Utility Colors
    # -------------------------------------------------------------------------
    'border': '#d9e2ec',
    'highlight': '#93c5fd',
}

# Border colour of the verify-edge control per verdict grade
VERDICT_COLORS: Dict[str, str] = {
    'excellent': COLORS['success'],
    'good': '#65a30d',
    'acceptable': COLORS['warning'],
    'failed': COLORS['danger'],
}

# =============================================================================
# Heatmap Color Gradient
# =============================================================================

# Sparse cells are cool blue, dense cells hot red; alpha is set per cell
HEATMAP_LOW_COLOR: Tuple[int, int, int] = (59, 130, 246)
HEATMAP_HIGH_COLOR: Tuple[int, int, int] = (220, 38, 38)

# =============================================================================
# Typography
# =============================================================================

FONT_FAMILY: str = "Segoe UI, Helvetica Neue, Arial, sans-serif"


# =============================================================================
# Style Helper Functions
# =============================================================================

def get_button_style(color_scheme: str, font_family: str = FONT_FAMILY) -> str:
    """
    Generate CSS stylesheet for action buttons.

    Args:
        color_scheme: One of 'primary', 'success', 'danger', 'secondary'
        font_family: Font family to use

    Returns:
        CSS stylesheet string for QPushButton, including the disabled look
        shown while a device request is pending
    """
    bg_color = COLORS.get(f'btn_{color_scheme}', COLORS['btn_primary'])
    text_color = COLORS['text_white'] if color_scheme != 'secondary' else COLORS['text_dark']

    return f"""
        QPushButton {{
            background-color: {bg_color};
            color: {text_color};
            border: none;
            border-radius: 8px;
            padding: 10px 18px;
            font-family: {font_family};
            font-weight: bold;
            font-size: 12px;
        }}
        QPushButton:disabled {{
            background-color: {COLORS['btn_disabled']};
            color: {COLORS['text_light']};
        }}
    """


def get_card_style() -> str:
    return f"""
        FriendlyCard, StepCard {{
            background-color: {COLORS['bg_card']};
            border-radius: 12px;
            border: 1px solid {COLORS['border']};
        }}
    """


def rgb_to_hex(color: Tuple[int, int, int]) -> str:
    return '#{:02x}{:02x}{:02x}'.format(*color)
