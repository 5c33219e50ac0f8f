"""Tests for the time/price to pixel projection."""

from __future__ import annotations

import random
from datetime import timedelta

import pytest

from wallchart.charts.projection import Domain, TimeSeriesProjector, Viewport
from wallchart.charts.statistics import EmptySeriesError, compute_statistics
from wallchart.providers.models import PricePoint

from conftest import BASE_TS, make_series


def _projector(series):
    stats = compute_statistics(series)
    return TimeSeriesProjector(Domain.from_series(series, stats), Viewport()), stats


def test_default_viewport_geometry() -> None:
    vp = Viewport()
    assert (vp.width, vp.height) == (1280, 720)
    assert (vp.chart_x, vp.chart_y) == (40, 80)
    assert vp.chart_width == 1160
    assert vp.chart_height == 580
    assert vp.chart_right == 1200
    assert vp.chart_floor == 660


def test_x_endpoints_map_to_chart_edges() -> None:
    series = make_series([10, 12, 11, 15])
    proj, _ = _projector(series)
    vp = proj.viewport
    assert proj.project_x(series[0].time) == vp.chart_x
    assert proj.project_x(series[-1].time) == vp.chart_x + vp.chart_width


def test_y_extrema_map_to_chart_top_and_floor() -> None:
    series = make_series([100, 105, 95])
    proj, stats = _projector(series)
    vp = proj.viewport
    assert proj.project_y(stats.max) == vp.chart_y
    assert proj.project_y(stats.min) == vp.chart_y + vp.chart_height
    # Price axis is inverted: a higher price is higher on screen
    assert proj.project_y(100) < proj.project_y(95)


def test_projection_is_monotonic_for_random_series() -> None:
    rng = random.Random(99)
    for _ in range(100):
        n = rng.randint(2, 80)
        offsets = sorted(rng.sample(range(0, 100_000), n))
        series = [
            PricePoint(time=BASE_TS + timedelta(seconds=o), close=rng.uniform(1, 500))
            for o in offsets
        ]
        proj, stats = _projector(series)
        xs = [proj.project_x(p.time) for p in series]
        assert xs == sorted(xs)
        assert xs[0] == proj.viewport.chart_x
        assert xs[-1] == proj.viewport.chart_right
        if stats.max != stats.min:
            assert proj.project_y(stats.max) == proj.viewport.chart_y
            assert proj.project_y(stats.min) == proj.viewport.chart_floor
        prices = sorted(p.close for p in series)
        ys = [proj.project_y(p) for p in prices]
        assert ys == sorted(ys, reverse=True)


def test_project_x_accepts_epoch_seconds() -> None:
    series = make_series([1, 2, 3])
    proj, _ = _projector(series)
    assert proj.project_x(series[1].time.timestamp()) == pytest.approx(proj.project_x(series[1].time))
    assert proj.project_x(series[1].time) == pytest.approx(40 + 1160 / 2)


def test_single_timestamp_maps_to_left_edge() -> None:
    series = make_series([50.0])
    proj, _ = _projector(series)
    assert proj.time_is_degenerate
    assert proj.project_x(series[0].time) == proj.viewport.chart_x


def test_flat_price_maps_to_mid_height() -> None:
    series = make_series([7.0, 7.0, 7.0])
    proj, stats = _projector(series)
    vp = proj.viewport
    assert proj.price_is_degenerate
    assert proj.project_y(stats.avg) == vp.chart_y + vp.chart_height / 2
    assert proj.project_y(stats.min) == proj.project_y(stats.max)


def test_domain_requires_points() -> None:
    stats = compute_statistics(make_series([1.0]))
    with pytest.raises(EmptySeriesError):
        Domain.from_series([], stats)
