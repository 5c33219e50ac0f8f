"""Deterministic chart renderer for wallchart.

This module turns a close-price series into the wallpaper image.  The
drawing is issued against a :class:`~wallchart.charts.surface.DrawingSurface`
in a fixed layer order:

1. solid background,
2. close-price polyline,
3. gradient fill between the polyline and the chart floor,
4. dashed reference lines at min/avg/max,
5. min/avg/max price labels right of the chart,
6. start/end time labels below the chart,
7. header with ticker, last price and change,
8. current wall-clock time in the top-right corner.

Colors, sizes and offsets come from :class:`ChartStyle`; nothing about
the look is computed from the data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence, Tuple

from ..providers.models import PricePoint
from .projection import Domain, TimeSeriesProjector, Viewport
from .statistics import ChartStatistics, EmptySeriesError
from .surface import DrawingSurface, MatplotlibSurface, Point, SurfaceFactory

ARROW_UP = "▲"
ARROW_DOWN = "▼"


@dataclass(frozen=True)
class ChartStyle:
    background: str = "#0d0d0d"
    line_color: str = "#00ff00"
    line_width: float = 2
    fill_top: str = "rgba(0,255,0,0.3)"
    fill_bottom: str = "rgba(0,255,0,0)"
    ref_line_color: str = "#444444"
    ref_line_width: float = 1
    ref_line_dash: Tuple[float, ...] = (5, 5)
    label_color: str = "#cccccc"
    label_size: float = 20
    label_gap: float = 10
    time_label_offset: float = 30
    header_size: float = 40
    header_offset: float = 25
    increase_color: str = "#00ff00"
    decrease_color: str = "#ff4444"
    clock_color: str = "#00ff00"
    clock_size: float = 40
    clock_right_margin: float = 90
    clock_baseline: float = 55
    currency_symbol: str = "₽"


DEFAULT_STYLE = ChartStyle()


def format_time(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """Format ``dt`` as a zero-padded 24-hour ``HH:MM`` string.

    Aware datetimes are converted to ``tz`` first (system local time when
    ``tz`` is None).  Naive datetimes are formatted as given.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(tz) if tz is not None else dt.astimezone()
    return f"{dt.hour:02d}:{dt.minute:02d}"


def format_price(value: float) -> str:
    return f"{value:.2f}"


def _format_last(value: float) -> str:
    # Shortest plain form: 100.0 -> "100", 95.35 -> "95.35"
    return f"{value:.10g}"


def build_header(ticker: str, stats: ChartStatistics, style: ChartStyle = DEFAULT_STYLE) -> Tuple[str, str]:
    """Return the header text and its color.

    The arrow and color follow the sign of ``diff``; zero counts as an
    increase.
    """
    rising = stats.diff >= 0
    arrow = ARROW_UP if rising else ARROW_DOWN
    color = style.increase_color if rising else style.decrease_color
    cur = style.currency_symbol
    text = (
        f"{ticker}: {_format_last(stats.last)} {cur}, "
        f"{arrow} {abs(stats.diff):.2f} {cur} ({stats.percent:.2f}%)"
    )
    return text, color


def render_chart(
    surface: DrawingSurface,
    series: Sequence[PricePoint],
    stats: ChartStatistics,
    domain: Domain,
    viewport: Viewport,
    label: str,
    now: datetime,
    style: ChartStyle = DEFAULT_STYLE,
    tz: Optional[tzinfo] = None,
) -> None:
    """Issue the drawing operations for one frame onto ``surface``.

    Parameters
    ----------
    surface : DrawingSurface
        Target surface sized to the viewport's canvas.
    series : sequence of PricePoint
        Non-empty, time ordered close prices.
    stats : ChartStatistics
        Statistics computed from ``series``.
    domain : Domain
        Data-space extrema used for projection.
    viewport : Viewport
        Canvas and chart-area geometry.
    label : str
        Instrument display ticker for the header.
    now : datetime
        Current time shown in the top-right corner.
    style : ChartStyle, optional
        Colors and sizes.
    tz : tzinfo, optional
        Display timezone for time labels; system local time when None.
    """
    if not series:
        raise EmptySeriesError("Cannot render an empty series")
    proj = TimeSeriesProjector(domain, viewport)
    vp = viewport

    surface.fill_rect(0, 0, vp.width, vp.height, style.background)

    line: List[Point] = [proj.project(p) for p in series]
    surface.stroke_path(line, style.line_color, style.line_width)

    floor = vp.chart_floor
    area = line + [(line[-1][0], floor), (line[0][0], floor)]
    surface.fill_gradient_path(area, vp.chart_y, floor, style.fill_top, style.fill_bottom)

    levels = (stats.min, stats.avg, stats.max)
    surface.set_dash(style.ref_line_dash)
    for price in levels:
        y = proj.project_y(price)
        surface.stroke_path([(vp.chart_x, y), (vp.chart_right, y)], style.ref_line_color, style.ref_line_width)
    surface.set_dash(())

    label_x = vp.chart_right + style.label_gap
    for price in levels:
        surface.draw_text(
            format_price(price), label_x, proj.project_y(price), style.label_color, style.label_size, "left"
        )

    time_y = floor + style.time_label_offset
    surface.draw_text(
        format_time(series[0].time, tz), vp.chart_x, time_y, style.label_color, style.label_size, "center"
    )
    surface.draw_text(
        format_time(series[-1].time, tz), vp.chart_right, time_y, style.label_color, style.label_size, "center"
    )

    header, header_color = build_header(label, stats, style)
    surface.draw_text(header, vp.chart_x, vp.chart_y - style.header_offset, header_color, style.header_size, "left")

    surface.draw_text(
        format_time(now, tz),
        vp.width - style.clock_right_margin,
        style.clock_baseline,
        style.clock_color,
        style.clock_size,
        "right",
    )


def render_frame(
    series: Sequence[PricePoint],
    stats: ChartStatistics,
    domain: Domain,
    label: str,
    now: datetime,
    viewport: Optional[Viewport] = None,
    style: ChartStyle = DEFAULT_STYLE,
    tz: Optional[tzinfo] = None,
    surface_factory: SurfaceFactory = MatplotlibSurface,
) -> bytes:
    """Render a full frame and return it as PNG bytes."""
    vp = viewport or Viewport()
    surface = surface_factory(vp.width, vp.height)
    render_chart(surface, series, stats, domain, vp, label, now, style=style, tz=tz)
    return surface.to_png()
