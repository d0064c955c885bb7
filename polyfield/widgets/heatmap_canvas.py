"""
================================================================================
Heatmap Canvas - Painted Landing Map
================================================================================

QPainter widget that paints a RenderPlan: heat cells, distance rings, the
circle outline and the centre marker. Layout is recomputed for the widget's
current size on every resize, so the drawing is always to scale.
"""

from typing import Optional

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QBrush, QColor, QFont, QPainter, QPen
from PyQt6.QtWidgets import QSizePolicy, QWidget

from ..core.circles import CircleType
from ..core.heatmap import HeatmapData, empty_heatmap
from ..core.renderer import CoordinateRenderer, RenderPlan
from ..styles.theme import COLORS, FONT_FAMILY

_FONT = FONT_FAMILY.split(',')[0]


class HeatmapCanvas(QWidget):
    """
    Landing heat map drawn to scale around the throwing circle.

    Example:
        >>> canvas = HeatmapCanvas()
        >>> canvas.set_data(heatmap, target_radius=1.0675)
        >>> canvas.current_plan().scale
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.heatmap: HeatmapData = empty_heatmap(CircleType.SHOT)
        self.target_radius = 1.0675
        self._plan: Optional[RenderPlan] = None

        self.setMinimumSize(320, 280)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

    def set_data(self, heatmap: HeatmapData, target_radius: float) -> None:
        self.heatmap = heatmap
        self.target_radius = target_radius
        self._plan = None
        self.update()

    def current_plan(self) -> RenderPlan:
        """Render plan for the current size (rebuilt lazily)."""
        if self._plan is None or (self._plan.width, self._plan.height) != (self.width(), self.height()):
            renderer = CoordinateRenderer(max(self.width(), 61), max(self.height(), 61))
            self._plan = renderer.plan(self.heatmap, self.target_radius, self.heatmap.circle_type)
        return self._plan

    def resizeEvent(self, event) -> None:
        self._plan = None
        super().resizeEvent(event)

    # =========================================================================
    # Painting
    # =========================================================================

    def paintEvent(self, event) -> None:
        plan = self.current_plan()
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.fillRect(self.rect(), QColor(COLORS['bg_canvas']))

        self._paint_cells(painter, plan)
        self._paint_rings(painter, plan)
        self._paint_circle(painter, plan)

        if plan.is_empty:
            painter.setPen(QPen(QColor(COLORS['text_light'])))
            painter.setFont(QFont(_FONT, 10))
            painter.drawText(
                QRectF(0, 8, self.width(), 20),
                Qt.AlignmentFlag.AlignHCenter,
                f"No throws recorded for {plan.circle_type.label} yet"
            )
        painter.end()

    def _paint_cells(self, painter: QPainter, plan: RenderPlan) -> None:
        painter.setFont(QFont(_FONT, 8, QFont.Weight.Bold))
        for cell in plan.cells:
            rect = QRectF(cell.x, cell.y, cell.width, cell.height)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(QBrush(QColor(*cell.color, cell.alpha)))
            painter.drawRect(rect)
            if cell.show_label:
                painter.setPen(QPen(QColor(COLORS['text_white'])))
                painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, str(cell.count))

    def _paint_rings(self, painter: QPainter, plan: RenderPlan) -> None:
        centre = QPointF(plan.origin_x, plan.origin_y)
        ring_pen = QPen(QColor(COLORS['ring']), 1, Qt.PenStyle.DashLine)
        painter.setFont(QFont(_FONT, 8))
        for ring in plan.rings:
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.setPen(ring_pen)
            painter.drawEllipse(centre, ring.radius_px, ring.radius_px)
            painter.setPen(QPen(QColor(COLORS['ring_label'])))
            painter.drawText(QPointF(ring.label_x, ring.label_y), ring.label)

    def _paint_circle(self, painter: QPainter, plan: RenderPlan) -> None:
        centre = QPointF(plan.origin_x, plan.origin_y)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.setPen(QPen(QColor(COLORS['circle_outline']), 2))
        painter.drawEllipse(centre, plan.circle_radius_px, plan.circle_radius_px)

        marker = QPen(QColor(COLORS['centre_marker']), 2)
        painter.setPen(marker)
        painter.drawLine(QPointF(centre.x() - 5, centre.y()), QPointF(centre.x() + 5, centre.y()))
        painter.drawLine(QPointF(centre.x(), centre.y() - 5), QPointF(centre.x(), centre.y() + 5))
