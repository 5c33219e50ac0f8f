"""Chart computation and rendering for wallchart.

This package provides the statistics, the time/price projection and the
layered renderer that produce the wallpaper PNG.  See
:mod:`wallchart.charts.renderer` for details.
"""

from .projection import Domain, TimeSeriesProjector, Viewport
from .renderer import (
    DEFAULT_STYLE,
    ChartStyle,
    build_header,
    format_time,
    render_chart,
    render_frame,
)
from .statistics import ChartStatistics, EmptySeriesError, compute_statistics
from .surface import DrawingSurface, MatplotlibSurface

__all__ = [
    "ChartStatistics",
    "ChartStyle",
    "DEFAULT_STYLE",
    "Domain",
    "DrawingSurface",
    "EmptySeriesError",
    "MatplotlibSurface",
    "TimeSeriesProjector",
    "Viewport",
    "build_header",
    "compute_statistics",
    "format_time",
    "render_chart",
    "render_frame",
]
