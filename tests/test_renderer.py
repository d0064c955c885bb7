"""Tests for heat-map layout on the canvas."""

import numpy as np
import pytest

from polyfield.core.circles import CircleType
from polyfield.core.heatmap import ThrowCoordinate, aggregate_throws, empty_heatmap
from polyfield.core.renderer import (
    CoordinateRenderer, expand_bounds, export_plan_figure, lerp_color, ring_distances_for
)

SHOT_R = 1.0675


def _heatmap(points, grid_size=1.0, circle_type=CircleType.SHOT):
    coords = [ThrowCoordinate(x=x, y=y, distance=float(np.hypot(x, y)) - SHOT_R, circle_type=circle_type)
              for x, y in points]
    return aggregate_throws(coords, grid_size, circle_type)


@pytest.fixture
def shot_cluster():
    return _heatmap([(10.2, 0.5), (10.8, 0.9), (11.4, -1.2), (12.1, 0.3), (10.5, 0.6)])


def test_empty_plan_is_centred_at_fixed_scale():
    plan = CoordinateRenderer(600, 400).plan(empty_heatmap(CircleType.SHOT), SHOT_R)
    assert plan.is_empty
    assert plan.scale == 20.0
    assert (plan.origin_x, plan.origin_y) == (300.0, 200.0)
    assert plan.cells == ()
    assert plan.circle_radius_px == pytest.approx(SHOT_R * 20.0)


def test_expanded_bounds_contain_origin_and_circle(shot_cluster):
    bounds = expand_bounds(shot_cluster, SHOT_R)
    for x, y in [(0, 0), (SHOT_R, 0), (-SHOT_R, 0), (0, SHOT_R), (0, -SHOT_R)]:
        assert bounds.contains(x, y)


def test_expanded_bounds_cover_every_cell():
    heatmap = _heatmap([(-30.0, 40.0), (25.0, 55.0)], grid_size=5.0, circle_type=CircleType.DISCUS)
    bounds = expand_bounds(heatmap, 1.25)
    top_right = heatmap.cell_origin(heatmap.grid_width - 1, heatmap.grid_height - 1)
    assert bounds.contains(top_right[0] + 5.0, top_right[1] + 5.0)
    assert bounds.contains(0.0, 0.0)


def test_padding_is_at_least_two_metres():
    heatmap = _heatmap([(1.0, 1.0)])
    bounds = expand_bounds(heatmap, SHOT_R)
    assert bounds.min_x <= -SHOT_R - 2.0
    assert bounds.min_y <= -SHOT_R - 2.0


def test_scale_is_uniform_and_fits(shot_cluster):
    renderer = CoordinateRenderer(800, 500, margin=30)
    plan = renderer.plan(shot_cluster, SHOT_R)

    assert plan.scale == pytest.approx(min(740 / plan.bounds.width, 440 / plan.bounds.height))
    left, top = plan.to_canvas(plan.bounds.min_x, plan.bounds.max_y)
    right, bottom = plan.to_canvas(plan.bounds.max_x, plan.bounds.min_y)
    assert left >= 30 - 1e-6 and top >= 30 - 1e-6
    assert right <= 770 + 1e-6 and bottom <= 470 + 1e-6
    # Uniform: a metre is the same length on both axes
    assert (right - left) / plan.bounds.width == pytest.approx((bottom - top) / plan.bounds.height)


def test_y_axis_points_up(shot_cluster):
    plan = CoordinateRenderer(600, 600).plan(shot_cluster, SHOT_R)
    _, y_low = plan.to_canvas(0.0, 0.0)
    _, y_high = plan.to_canvas(0.0, 5.0)
    assert y_high < y_low


def test_to_world_inverts_to_canvas(shot_cluster):
    plan = CoordinateRenderer(640, 480).plan(shot_cluster, SHOT_R)
    assert plan.to_world(*plan.to_canvas(11.3, -0.7)) == pytest.approx((11.3, -0.7))


def test_one_glyph_per_non_empty_cell(shot_cluster):
    plan = CoordinateRenderer(600, 400).plan(shot_cluster, SHOT_R)
    assert len(plan.cells) == len(shot_cluster.non_empty_cells())
    assert sum(cell.count for cell in plan.cells) == shot_cluster.total_throws


def test_densest_cell_is_fully_opaque_end_of_ramp(shot_cluster):
    plan = CoordinateRenderer(600, 400).plan(shot_cluster, SHOT_R)
    densest = max(plan.cells, key=lambda c: c.count)
    assert densest.intensity == 1.0
    assert densest.alpha == 230
    assert densest.color == (220, 38, 38)
    assert all(70 <= cell.alpha <= 230 for cell in plan.cells)


def test_small_cells_have_no_label():
    heatmap = _heatmap([(1.0, 1.0), (60.0, 40.0)], grid_size=0.5, circle_type=CircleType.JAVELIN_ARC)
    plan = CoordinateRenderer(300, 300).plan(heatmap, 8.0)
    assert all(not cell.show_label for cell in plan.cells)


def test_shot_rings():
    assert tuple(ring_distances_for(CircleType.SHOT)) == (6, 8, 10, 12, 14)
    assert tuple(ring_distances_for(CircleType.DISCUS)) == (10, 20, 30, 40, 50, 60)


def test_ring_radius_measured_from_circle_edge(shot_cluster):
    plan = CoordinateRenderer(800, 800).plan(shot_cluster, SHOT_R)
    assert plan.rings
    for ring in plan.rings:
        assert ring.radius_px == pytest.approx((SHOT_R + ring.distance) * plan.scale)
        assert ring.label == f"{ring.distance:g}m"


def test_tiny_rings_are_skipped():
    heatmap = _heatmap([(2000.0, 2000.0)], grid_size=5.0, circle_type=CircleType.HAMMER)
    plan = CoordinateRenderer(200, 200).plan(heatmap, SHOT_R)
    assert all(ring.radius_px >= 12.0 for ring in plan.rings)
    assert len(plan.rings) < 6


def test_canvas_must_exceed_margins():
    with pytest.raises(ValueError):
        CoordinateRenderer(60, 400, margin=30)


def test_lerp_color_clamps():
    assert lerp_color((0, 0, 0), (200, 100, 50), 0.5) == (100, 50, 25)
    assert lerp_color((0, 0, 0), (200, 100, 50), 2.0) == (200, 100, 50)


def test_export_writes_png(tmp_path, shot_cluster):
    pytest.importorskip("matplotlib")
    plan = CoordinateRenderer(400, 300).plan(shot_cluster, SHOT_R)
    path = export_plan_figure(plan, tmp_path / "out" / "shot.png", title="Shot Put - 5 throws")
    assert path.exists()
    assert path.stat().st_size > 0


def test_single_cell_heatmap_gets_finite_uniform_scale():
    heatmap = _heatmap([(3.3, 4.4)] * 5, grid_size=2.0)
    plan = CoordinateRenderer(640, 480, margin=20).plan(heatmap, SHOT_R)

    assert np.isfinite(plan.scale) and plan.scale > 0
    assert plan.scale == pytest.approx(min(600 / plan.bounds.width, 440 / plan.bounds.height))
    assert len(plan.cells) == 1
    glyph = plan.cells[0]
    assert glyph.count == 5
    assert glyph.width == pytest.approx(glyph.height)
    assert glyph.width == pytest.approx(2.0 * plan.scale)
