"""2D drawing surface used by the chart renderer.

:class:`DrawingSurface` is the small set of primitives the renderer
needs.  :class:`MatplotlibSurface` implements it with matplotlib's Agg
backend on a figure whose data coordinates are canvas pixels with the
origin in the top-left corner.  Every primitive is stacked above the
previous one so the call order is the paint order.
"""

from __future__ import annotations

import abc
import io
import re
from typing import Callable, List, Sequence, Tuple

import numpy as np
import matplotlib
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.colors import to_rgba
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Polygon, Rectangle

Point = Tuple[float, float]
SurfaceFactory = Callable[[int, int], "DrawingSurface"]
RGBA = Tuple[float, float, float, float]

_RGBA_RE = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$"
)


def parse_color(spec: str) -> RGBA:
    """Convert a CSS-like color (``#rrggbb`` or ``rgba(r,g,b,a)``) to RGBA floats."""
    match = _RGBA_RE.match(spec.strip())
    if match:
        r, g, b, a = match.groups()
        return (
            float(r) / 255.0,
            float(g) / 255.0,
            float(b) / 255.0,
            float(a) if a is not None else 1.0,
        )
    return to_rgba(spec)


class DrawingSurface(abc.ABC):
    """Minimal raster drawing capability for the chart renderer."""

    width: int
    height: int

    @abc.abstractmethod
    def fill_rect(self, x: float, y: float, width: float, height: float, color: str) -> None:
        """Fill an axis-aligned rectangle with a solid color."""

    @abc.abstractmethod
    def set_dash(self, pattern: Sequence[float]) -> None:
        """Set the dash pattern (in pixels) for later strokes; empty means solid."""

    @abc.abstractmethod
    def stroke_path(self, points: Sequence[Point], color: str, line_width: float) -> None:
        """Stroke an open polyline through ``points``."""

    @abc.abstractmethod
    def fill_gradient_path(
        self,
        points: Sequence[Point],
        top_y: float,
        bottom_y: float,
        top_color: str,
        bottom_color: str,
    ) -> None:
        """Fill the closed polygon ``points`` with a vertical linear gradient."""

    @abc.abstractmethod
    def draw_text(
        self,
        text: str,
        x: float,
        y: float,
        color: str,
        size: float,
        align: str = "left",
    ) -> None:
        """Draw ``text`` with its baseline at ``y``; ``align`` is left/center/right."""

    @abc.abstractmethod
    def to_png(self) -> bytes:
        """Encode the surface as PNG bytes."""


class MatplotlibSurface(DrawingSurface):
    """:class:`DrawingSurface` backed by a matplotlib Agg figure."""

    def __init__(self, width: int, height: int, dpi: int = 100, font_family: str = "sans-serif") -> None:
        self.width = width
        self.height = height
        self.dpi = dpi
        self.font_family = font_family
        self.figure = Figure(figsize=(width / dpi, height / dpi), dpi=dpi)
        FigureCanvasAgg(self.figure)
        self.ax = self.figure.add_axes((0.0, 0.0, 1.0, 1.0))
        self.ax.set_autoscale_on(False)
        self.ax.axis("off")
        self._apply_limits()
        self._dash: List[float] = []
        self._z = 0

    def _apply_limits(self) -> None:
        self.ax.set_xlim(0, self.width)
        self.ax.set_ylim(self.height, 0)

    def _next_z(self) -> int:
        self._z += 1
        return self._z

    def _px_to_pt(self, px: float) -> float:
        return px * 72.0 / self.dpi

    def fill_rect(self, x: float, y: float, width: float, height: float, color: str) -> None:
        self.ax.add_patch(
            Rectangle(
                (x, y),
                width,
                height,
                facecolor=parse_color(color),
                edgecolor="none",
                linewidth=0,
                zorder=self._next_z(),
            )
        )

    def set_dash(self, pattern: Sequence[float]) -> None:
        self._dash = [float(p) for p in pattern]

    def stroke_path(self, points: Sequence[Point], color: str, line_width: float) -> None:
        if not points:
            return
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        lw = self._px_to_pt(line_width)
        line = Line2D(
            xs,
            ys,
            color=parse_color(color),
            linewidth=lw,
            solid_joinstyle="miter",
            solid_capstyle="butt",
            zorder=self._next_z(),
        )
        if self._dash:
            seq = [self._px_to_pt(d) for d in self._dash]
            # Line2D scales dash lengths by the line width
            if matplotlib.rcParams["lines.scale_dashes"] and lw:
                seq = [s / lw for s in seq]
            line.set_linestyle((0, seq))
        self.ax.add_line(line)

    def fill_gradient_path(
        self,
        points: Sequence[Point],
        top_y: float,
        bottom_y: float,
        top_color: str,
        bottom_color: str,
    ) -> None:
        if len(points) < 3:
            return
        top = np.array(parse_color(top_color))
        bottom = np.array(parse_color(bottom_color))
        ramp = np.linspace(0.0, 1.0, 256)[:, None]
        gradient = (top + (bottom - top) * ramp)[:, None, :]
        xs = [p[0] for p in points]
        if max(xs) == min(xs):
            return
        clip = Polygon(points, closed=True, facecolor="none", edgecolor="none", transform=self.ax.transData)
        image = self.ax.imshow(
            gradient,
            extent=(min(xs), max(xs), bottom_y, top_y),
            origin="upper",
            aspect="auto",
            interpolation="bilinear",
            zorder=self._next_z(),
        )
        image.set_clip_path(clip)
        self._apply_limits()

    def draw_text(
        self,
        text: str,
        x: float,
        y: float,
        color: str,
        size: float,
        align: str = "left",
    ) -> None:
        self.ax.text(
            x,
            y,
            text,
            color=parse_color(color),
            fontsize=self._px_to_pt(size),
            fontfamily=self.font_family,
            ha=align,
            va="baseline",
            zorder=self._next_z(),
        )

    def to_png(self) -> bytes:
        self._apply_limits()
        buf = io.BytesIO()
        self.figure.savefig(buf, format="png", dpi=self.dpi)
        return buf.getvalue()


__all__ = [
    "DrawingSurface",
    "MatplotlibSurface",
    "SurfaceFactory",
    "parse_color",
]
