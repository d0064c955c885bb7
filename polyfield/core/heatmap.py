"""
================================================================================
Heatmap Aggregator - Landing Point Histogram
================================================================================

Bins the stored landing coordinates of one circle type into a 2D grid of
fixed-size cells so the operator can see where throws cluster.

Algorithm:
    1. Bounds are the min/max x and y of the coordinates
    2. Each coordinate lands in cell (floor((x - minX)/g), floor((y - minY)/g))
    3. The grid is floor(span/g) + 1 cells wide (and high), so it is never
       smaller than 1x1 and coordinates on the max edge get their own cell

Cells are indexed [row][col] = [y bin][x bin]. The returned grid is read-only;
every request builds a fresh HeatmapData.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .calibration import parse_timestamp
from .circles import CircleType, parse_circle_type
from ..utils.constants import GRID_SIZES


# ============================================================================
# Data Structures
# ============================================================================

@dataclass(frozen=True)
class ThrowCoordinate:
    """A recorded landing point, relative to the circle centre (metres)."""

    x: float
    y: float
    distance: float = 0.0
    circle_type: CircleType = CircleType.SHOT
    timestamp: Optional[datetime] = None
    athlete_id: str = ""
    round: str = ""
    edm_reading: str = ""

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "distance": self.distance,
            "circleType": self.circle_type.value,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "athleteId": self.athlete_id,
            "competitionRound": self.round,
            "edmReading": self.edm_reading,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'ThrowCoordinate':
        return cls(
            x=float(d["x"]),
            y=float(d["y"]),
            distance=float(d.get("distance", 0.0)),
            circle_type=parse_circle_type(d.get("circleType", CircleType.SHOT)),
            timestamp=parse_timestamp(d.get("timestamp")),
            athlete_id=d.get("athleteId", ""),
            round=d.get("competitionRound", d.get("round", "")),
            edm_reading=d.get("edmReading", ""),
        )


@dataclass(frozen=True)
class HeatmapBounds:
    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def to_dict(self) -> dict:
        return {"minX": self.min_x, "maxX": self.max_x, "minY": self.min_y, "maxY": self.max_y}

    @classmethod
    def from_dict(cls, d: dict) -> 'HeatmapBounds':
        return cls(
            min_x=float(d.get("minX", 0.0)),
            max_x=float(d.get("maxX", 0.0)),
            min_y=float(d.get("minY", 0.0)),
            max_y=float(d.get("maxY", 0.0)),
        )


@dataclass(frozen=True)
class HeatmapData:
    """Aggregated landing histogram for one circle type and grid size."""

    circle_type: CircleType
    grid_size: float
    bounds: HeatmapBounds
    grid_width: int
    grid_height: int
    cells: np.ndarray
    total_throws: int
    coordinates: Tuple[ThrowCoordinate, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.total_throws == 0

    @property
    def max_count(self) -> int:
        return int(self.cells.max()) if self.cells.size else 0

    def cell_origin(self, col: int, row: int) -> Tuple[float, float]:
        """World coordinates of the lower-left corner of a cell."""
        return (
            self.bounds.min_x + col * self.grid_size,
            self.bounds.min_y + row * self.grid_size,
        )

    def non_empty_cells(self) -> List[Tuple[int, int, int]]:
        """(col, row, count) for every cell holding at least one throw."""
        rows, cols = np.nonzero(self.cells)
        return [(int(c), int(r), int(self.cells[r, c])) for r, c in zip(rows, cols)]

    def to_dict(self) -> dict:
        return {
            "circleType": self.circle_type.value,
            "gridSize": self.grid_size,
            "bounds": self.bounds.to_dict(),
            "gridWidth": self.grid_width,
            "gridHeight": self.grid_height,
            "heatmap": self.cells.tolist(),
            "totalThrows": self.total_throws,
            "coordinates": [c.to_dict() for c in self.coordinates],
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'HeatmapData':
        """
        Build HeatmapData from the backend's export shape.

        Raises:
            ValueError: If the grid does not match the declared dimensions
        """
        width = int(d.get("gridWidth", 0))
        height = int(d.get("gridHeight", 0))
        rows = d.get("heatmap") or []
        cells = np.array(rows, dtype=np.int64).reshape(height, width) if width and height \
            else np.zeros((0, 0), dtype=np.int64)
        if cells.shape != (height, width):
            raise ValueError(f"Heatmap grid is {cells.shape}, expected {(height, width)}")
        cells.setflags(write=False)

        return cls(
            circle_type=parse_circle_type(d.get("circleType", CircleType.SHOT)),
            grid_size=float(d.get("gridSize", 1.0)),
            bounds=HeatmapBounds.from_dict(d.get("bounds") or {}),
            grid_width=width,
            grid_height=height,
            cells=cells,
            total_throws=int(d.get("totalThrows", int(cells.sum()))),
            coordinates=tuple(ThrowCoordinate.from_dict(c) for c in d.get("coordinates") or []),
        )


@dataclass(frozen=True)
class SessionStatistics:
    total_throws: int = 0
    average_x: float = 0.0
    average_y: float = 0.0
    max_distance: float = 0.0
    min_distance: float = 0.0
    average_distance: float = 0.0
    spread_radius: float = 0.0

    def to_dict(self) -> dict:
        return {
            "totalThrows": self.total_throws,
            "averageX": self.average_x,
            "averageY": self.average_y,
            "maxDistance": self.max_distance,
            "minDistance": self.min_distance,
            "averageDistance": self.average_distance,
            "spreadRadius": self.spread_radius,
        }


# ============================================================================
# Aggregation
# ============================================================================

def validate_grid_size(grid_size: float) -> float:
    grid_size = float(grid_size)
    if grid_size not in GRID_SIZES:
        raise ValueError(f"Grid size must be one of {GRID_SIZES}, got {grid_size}")
    return grid_size


def empty_heatmap(circle_type=CircleType.SHOT, grid_size: float = 1.0) -> HeatmapData:
    """The 'no data yet' state: zero throws, degenerate bounds, empty grid."""
    cells = np.zeros((0, 0), dtype=np.int64)
    cells.setflags(write=False)
    return HeatmapData(
        circle_type=parse_circle_type(circle_type),
        grid_size=float(grid_size),
        bounds=HeatmapBounds(),
        grid_width=0,
        grid_height=0,
        cells=cells,
        total_throws=0,
    )


def aggregate_throws(coordinates: Iterable[ThrowCoordinate], grid_size: float,
                     circle_type=None) -> HeatmapData:
    """
    Bin landing coordinates into a heat-map grid.

    Args:
        coordinates: Throws for a single circle type
        grid_size: Cell size in metres (0.5, 1.0, 2.0 or 5.0)
        circle_type: Circle type to tag the result with (defaults to the
                     first coordinate's type)

    Returns:
        HeatmapData whose cell counts sum to the number of coordinates

    Raises:
        ValueError: If grid_size is not one of the supported sizes
    """
    grid_size = validate_grid_size(grid_size)
    coords = tuple(coordinates)

    if circle_type is None:
        circle_type = coords[0].circle_type if coords else CircleType.SHOT
    if not coords:
        return empty_heatmap(circle_type, grid_size)

    xs = np.array([c.x for c in coords], dtype=float)
    ys = np.array([c.y for c in coords], dtype=float)
    bounds = HeatmapBounds(
        min_x=float(xs.min()), max_x=float(xs.max()),
        min_y=float(ys.min()), max_y=float(ys.max()),
    )

    grid_width = int(math.floor(bounds.width / grid_size)) + 1
    grid_height = int(math.floor(bounds.height / grid_size)) + 1

    cols = np.floor((xs - bounds.min_x) / grid_size).astype(int)
    rows = np.floor((ys - bounds.min_y) / grid_size).astype(int)

    cells = np.zeros((grid_height, grid_width), dtype=np.int64)
    np.add.at(cells, (rows, cols), 1)
    cells.setflags(write=False)

    return HeatmapData(
        circle_type=parse_circle_type(circle_type),
        grid_size=grid_size,
        bounds=bounds,
        grid_width=grid_width,
        grid_height=grid_height,
        cells=cells,
        total_throws=int(cells.sum()),
        coordinates=coords,
    )


def compute_statistics(coordinates: Iterable[ThrowCoordinate]) -> SessionStatistics:
    """Summary statistics for a set of landing points."""
    coords = tuple(coordinates)
    if not coords:
        return SessionStatistics()

    xs = np.array([c.x for c in coords], dtype=float)
    ys = np.array([c.y for c in coords], dtype=float)
    distances = np.array([c.distance for c in coords], dtype=float)

    mean_x = float(xs.mean())
    mean_y = float(ys.mean())
    spread = float(np.max(np.hypot(xs - mean_x, ys - mean_y)))

    return SessionStatistics(
        total_throws=len(coords),
        average_x=mean_x,
        average_y=mean_y,
        max_distance=float(distances.max()),
        min_distance=float(distances.min()),
        average_distance=float(distances.mean()),
        spread_radius=spread,
    )
