"""Mapping of (time, price) data space onto the chart's pixel space.

The projection is affine in both axes.  Pixel ``y`` grows downward, so
the price axis is inverted: the highest price lands on the top edge of
the chart area and the lowest on its floor.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence, Union

from ..config import CANVAS_HEIGHT, CANVAS_WIDTH
from ..providers.models import PricePoint
from .statistics import ChartStatistics, EmptySeriesError

TimeLike = Union[datetime, float, int]


@dataclass(frozen=True)
class Viewport:
    """Fixed pixel geometry: canvas size and the chart area inside it.

    The margins around the chart area are reserved for the header (top),
    the price labels (right) and the time labels (bottom).
    """

    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT
    chart_x: float = 40
    chart_y: float = 80
    margin_right: float = 80
    margin_bottom: float = 60

    @property
    def chart_width(self) -> float:
        return self.width - self.chart_x - self.margin_right

    @property
    def chart_height(self) -> float:
        return self.height - self.chart_y - self.margin_bottom

    @property
    def chart_right(self) -> float:
        return self.chart_x + self.chart_width

    @property
    def chart_floor(self) -> float:
        return self.chart_y + self.chart_height


@dataclass(frozen=True)
class Domain:
    """Data-space extrema; times are POSIX seconds."""

    x_min: float
    x_max: float
    price_min: float
    price_max: float

    @classmethod
    def from_series(cls, series: Sequence[PricePoint], stats: ChartStatistics) -> "Domain":
        """Build the domain from the first/last timestamps and the price extrema."""
        if not series:
            raise EmptySeriesError("Price series is empty")
        return cls(
            x_min=series[0].time.timestamp(),
            x_max=series[-1].time.timestamp(),
            price_min=stats.min,
            price_max=stats.max,
        )


def _as_seconds(value: TimeLike) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


class TimeSeriesProjector:
    """Project timestamps and prices into pixel coordinates.

    Degenerate domains never divide by zero: a zero-width time domain
    maps every timestamp to the chart's left edge, and a flat price
    domain maps every price to the chart's vertical middle.
    """

    def __init__(self, domain: Domain, viewport: Viewport) -> None:
        self.domain = domain
        self.viewport = viewport

    @property
    def time_is_degenerate(self) -> bool:
        return self.domain.x_max == self.domain.x_min

    @property
    def price_is_degenerate(self) -> bool:
        return self.domain.price_max == self.domain.price_min

    def project_x(self, time: TimeLike) -> float:
        vp = self.viewport
        if self.time_is_degenerate:
            return vp.chart_x
        span = self.domain.x_max - self.domain.x_min
        return vp.chart_x + (_as_seconds(time) - self.domain.x_min) / span * vp.chart_width

    def project_y(self, price: float) -> float:
        vp = self.viewport
        if self.price_is_degenerate:
            return vp.chart_y + vp.chart_height / 2
        span = self.domain.price_max - self.domain.price_min
        return vp.chart_y + (self.domain.price_max - price) / span * vp.chart_height

    def project(self, point: PricePoint) -> tuple[float, float]:
        return self.project_x(point.time), self.project_y(point.close)
