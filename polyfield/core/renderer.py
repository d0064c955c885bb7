"""
================================================================================
Coordinate Renderer - World-to-Canvas Layout for the Landing Heat Map
================================================================================

Turns aggregated landing data plus the circle's true geometry into a
RenderPlan: every rectangle, ring and label already placed in canvas
pixels. The plan is plain data, so the Qt canvas only has to paint it and
the matplotlib export draws exactly the same picture.

Layout:
    1. Data bounds (cell extents) are widened to include the circle centre
       and +/-target radius on both axes, then padded by
       max(10% of the span, 2 m)
    2. One uniform scale (pixels per metre) fits the padded region into the
       canvas margins; the region is centred
    3. World y grows upwards, canvas y grows downwards

With no throws the circle, centre and rings are drawn around the canvas
centre at a fixed 20 px/m so the operator still has a reference.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Sequence, Tuple

from loguru import logger

from .circles import CircleType, parse_circle_type
from .heatmap import HeatmapBounds, HeatmapData
from ..styles.theme import HEATMAP_LOW_COLOR, HEATMAP_HIGH_COLOR
from ..utils.constants import (
    CANVAS_MARGIN_PX, PADDING_FRACTION, MIN_PADDING_M, EMPTY_SCALE_PX_PER_M,
    MIN_LABEL_CELL_PX, MIN_RING_RADIUS_PX, CELL_ALPHA_MIN, CELL_ALPHA_MAX,
    SHOT_RING_DISTANCES, THROWS_RING_DISTANCES
)

RGB = Tuple[int, int, int]


# ============================================================================
# Plan Data Structures
# ============================================================================

@dataclass(frozen=True)
class CellGlyph:
    """One heat cell in canvas pixels (x, y is the top-left corner)."""

    x: float
    y: float
    width: float
    height: float
    count: int
    intensity: float
    color: RGB
    alpha: int
    show_label: bool


@dataclass(frozen=True)
class RingGlyph:
    """A distance guide, measured from the circle edge."""

    distance: float
    radius_px: float
    label: str
    label_x: float
    label_y: float


@dataclass(frozen=True)
class RenderPlan:
    width: int
    height: int
    scale: float
    origin_x: float
    origin_y: float
    bounds: HeatmapBounds
    circle_type: CircleType
    target_radius: float
    circle_radius_px: float
    total_throws: int
    cells: Tuple[CellGlyph, ...] = field(default_factory=tuple)
    rings: Tuple[RingGlyph, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.total_throws == 0

    def to_canvas(self, x: float, y: float) -> Tuple[float, float]:
        """World metres -> canvas pixels."""
        return self.origin_x + x * self.scale, self.origin_y - y * self.scale

    def to_world(self, px: float, py: float) -> Tuple[float, float]:
        """Canvas pixels -> world metres."""
        return (px - self.origin_x) / self.scale, (self.origin_y - py) / self.scale


# ============================================================================
# Helpers
# ============================================================================

def ring_distances_for(circle_type) -> Sequence[float]:
    if parse_circle_type(circle_type) is CircleType.SHOT:
        return SHOT_RING_DISTANCES
    return THROWS_RING_DISTANCES


def lerp_color(low: RGB, high: RGB, t: float) -> RGB:
    t = min(max(t, 0.0), 1.0)
    return tuple(int(round(lo + (hi - lo) * t)) for lo, hi in zip(low, high))


def expand_bounds(heatmap: HeatmapData, target_radius: float) -> HeatmapBounds:
    """Cell extents widened to the circle, then padded on each axis."""
    b = heatmap.bounds
    min_x = min(b.min_x, -target_radius)
    max_x = max(b.min_x + heatmap.grid_width * heatmap.grid_size, target_radius)
    min_y = min(b.min_y, -target_radius)
    max_y = max(b.min_y + heatmap.grid_height * heatmap.grid_size, target_radius)

    pad_x = max((max_x - min_x) * PADDING_FRACTION, MIN_PADDING_M)
    pad_y = max((max_y - min_y) * PADDING_FRACTION, MIN_PADDING_M)
    return HeatmapBounds(min_x - pad_x, max_x + pad_x, min_y - pad_y, max_y + pad_y)


# ============================================================================
# Renderer
# ============================================================================

class CoordinateRenderer:
    """
    Lays out heat-map data on a fixed-size canvas.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels
        margin: Blank border kept on every side (pixels)
        low_color: RGB of the sparsest cell
        high_color: RGB of the densest cell

    Example:
        >>> renderer = CoordinateRenderer(600, 500)
        >>> plan = renderer.plan(heatmap, 1.0675, CircleType.SHOT)
        >>> plan.to_canvas(0.0, 0.0)
    """

    def __init__(self, width: int, height: int, margin: int = CANVAS_MARGIN_PX,
                 low_color: RGB = HEATMAP_LOW_COLOR, high_color: RGB = HEATMAP_HIGH_COLOR):
        if width <= 2 * margin or height <= 2 * margin:
            raise ValueError(f"Canvas {width}x{height} is too small for a {margin}px margin")
        self.width = int(width)
        self.height = int(height)
        self.margin = int(margin)
        self.low_color = low_color
        self.high_color = high_color

    def plan(self, heatmap: HeatmapData, target_radius: float,
             circle_type: Optional[CircleType] = None) -> RenderPlan:
        """
        Build the render plan for one heat map.

        Args:
            heatmap: Aggregated data (may be empty)
            target_radius: Circle radius in metres
            circle_type: Selects the ring set (defaults to the heat map's type)

        Returns:
            RenderPlan with cells, rings and the circle in canvas pixels
        """
        circle_type = parse_circle_type(circle_type or heatmap.circle_type)

        if heatmap.is_empty:
            scale = EMPTY_SCALE_PX_PER_M
            origin_x = self.width / 2.0
            origin_y = self.height / 2.0
            half_w = origin_x / scale
            half_h = origin_y / scale
            bounds = HeatmapBounds(-half_w, half_w, -half_h, half_h)
        else:
            bounds = expand_bounds(heatmap, target_radius)
            avail_w = self.width - 2 * self.margin
            avail_h = self.height - 2 * self.margin
            scale = min(avail_w / bounds.width, avail_h / bounds.height)

            offset_x = self.margin + (avail_w - bounds.width * scale) / 2.0
            offset_y = self.margin + (avail_h - bounds.height * scale) / 2.0
            origin_x = offset_x - bounds.min_x * scale
            origin_y = offset_y + bounds.max_y * scale

        logger.debug(
            "Render plan {}: {} throws, scale {:.2f}px/m, origin ({:.1f}, {:.1f})",
            circle_type.value, heatmap.total_throws, scale, origin_x, origin_y
        )

        plan = RenderPlan(
            width=self.width,
            height=self.height,
            scale=scale,
            origin_x=origin_x,
            origin_y=origin_y,
            bounds=bounds,
            circle_type=circle_type,
            target_radius=target_radius,
            circle_radius_px=target_radius * scale,
            total_throws=heatmap.total_throws,
        )
        return replace(plan, cells=self._layout_cells(plan, heatmap), rings=self._layout_rings(plan))

    # =========================================================================
    # Layout Passes
    # =========================================================================

    def _layout_cells(self, plan: RenderPlan, heatmap: HeatmapData) -> Tuple[CellGlyph, ...]:
        max_count = heatmap.max_count
        if max_count == 0:
            return ()

        size_px = heatmap.grid_size * plan.scale
        glyphs = []
        for col, row, count in heatmap.non_empty_cells():
            x0, y0 = heatmap.cell_origin(col, row)
            # Top-left corner is the cell's max-y edge
            px, py = plan.to_canvas(x0, y0 + heatmap.grid_size)
            intensity = count / max_count
            glyphs.append(CellGlyph(
                x=px,
                y=py,
                width=size_px,
                height=size_px,
                count=count,
                intensity=intensity,
                color=lerp_color(self.low_color, self.high_color, intensity),
                alpha=int(round(CELL_ALPHA_MIN + (CELL_ALPHA_MAX - CELL_ALPHA_MIN) * intensity)),
                show_label=size_px >= MIN_LABEL_CELL_PX,
            ))
        return tuple(glyphs)

    def _layout_rings(self, plan: RenderPlan) -> Tuple[RingGlyph, ...]:
        largest = max(self.width, self.height)
        rings = []
        for distance in ring_distances_for(plan.circle_type):
            radius_px = (plan.target_radius + distance) * plan.scale
            if radius_px < MIN_RING_RADIUS_PX or radius_px > largest:
                continue
            rings.append(RingGlyph(
                distance=float(distance),
                radius_px=radius_px,
                label=f"{distance:g}m",
                label_x=plan.origin_x + 4,
                label_y=plan.origin_y - radius_px - 2,
            ))
        return tuple(rings)


# ============================================================================
# Export
# ============================================================================

def _rgba(color: RGB, alpha: int = 255) -> Tuple[float, float, float, float]:
    return color[0] / 255.0, color[1] / 255.0, color[2] / 255.0, alpha / 255.0


def export_plan_figure(plan: RenderPlan, path, dpi: int = 100,
                       title: Optional[str] = None) -> Path:
    """
    Draw a render plan with matplotlib and save it.

    The output format follows the file suffix (.png, .pdf, .svg).

    Args:
        plan: Layout produced by CoordinateRenderer.plan
        path: Destination file
        dpi: Output resolution
        title: Optional caption drawn in the top-left corner

    Returns:
        Path that was written
    """
    # Figure, not pyplot: no global figure state
    from matplotlib.figure import Figure
    from matplotlib.patches import Circle, Rectangle

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig = Figure(figsize=(plan.width / dpi, plan.height / dpi), dpi=dpi)
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, plan.width)
    ax.set_ylim(plan.height, 0)
    ax.set_aspect('equal')
    ax.axis('off')

    for cell in plan.cells:
        ax.add_patch(Rectangle(
            (cell.x, cell.y), cell.width, cell.height,
            facecolor=_rgba(cell.color, cell.alpha), edgecolor='none'
        ))
        if cell.show_label:
            ax.text(cell.x + cell.width / 2, cell.y + cell.height / 2, str(cell.count),
                    ha='center', va='center', fontsize=8, color='white')

    for ring in plan.rings:
        ax.add_patch(Circle((plan.origin_x, plan.origin_y), ring.radius_px,
                            fill=False, linestyle='--', linewidth=0.8, edgecolor='#b2bec3'))
        ax.text(ring.label_x, ring.label_y, ring.label, fontsize=7, color='#636e72', va='bottom')

    ax.add_patch(Circle((plan.origin_x, plan.origin_y), plan.circle_radius_px,
                        fill=False, linewidth=1.5, edgecolor='#2d3436'))
    ax.plot([plan.origin_x], [plan.origin_y], marker='+', markersize=8, color='#d63031')

    if title:
        ax.text(8, 16, title, fontsize=9, color='#2d3436')

    fig.savefig(path, dpi=dpi)
    logger.info("Heat map exported to {}", path)
    return path
