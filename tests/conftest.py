"""Shared test helpers: synthetic series, a fake provider and a recording surface."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence, Tuple

import pytest

from wallchart.charts.surface import DrawingSurface
from wallchart.providers.base import CandleProvider
from wallchart.providers.models import Instrument, PricePoint

BASE_TS = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def make_series(closes: Sequence[float], start: datetime = BASE_TS, step_minutes: int = 3) -> List[PricePoint]:
    """Build a time-ordered series with one point every ``step_minutes``."""
    return [
        PricePoint(time=start + timedelta(minutes=step_minutes * i), close=c)
        for i, c in enumerate(closes)
    ]


class FakeProvider(CandleProvider):
    """In-memory provider that records the requests it receives."""

    def __init__(
        self,
        series: Optional[List[PricePoint]] = None,
        ticker: str = "VKCO",
        error: Optional[Exception] = None,
    ) -> None:
        self.series = list(series or [])
        self.ticker = ticker
        self.error = error
        self.candle_requests: List[Tuple[str, datetime, datetime, str, int]] = []

    def resolve_instrument(self, ticker: str, class_code: str) -> Instrument:
        if self.error is not None:
            raise self.error
        return Instrument(uid="uid-123", ticker=self.ticker, class_code=class_code)

    def get_candles(self, instrument_id, start, end, interval, limit) -> List[PricePoint]:
        self.candle_requests.append((instrument_id, start, end, interval, limit))
        return list(self.series)


class RecordingSurface(DrawingSurface):
    """Surface that records every drawing call instead of rasterising."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ops: List[Tuple[Any, ...]] = []
        self._dash: Tuple[float, ...] = ()

    def fill_rect(self, x, y, width, height, color) -> None:
        self.ops.append(("fill_rect", (x, y, width, height), color))

    def set_dash(self, pattern) -> None:
        self._dash = tuple(pattern)
        self.ops.append(("set_dash", self._dash))

    def stroke_path(self, points, color, line_width) -> None:
        self.ops.append(("stroke_path", list(points), color, line_width, self._dash))

    def fill_gradient_path(self, points, top_y, bottom_y, top_color, bottom_color) -> None:
        self.ops.append(("fill_gradient_path", list(points), top_y, bottom_y, top_color, bottom_color))

    def draw_text(self, text, x, y, color, size, align="left") -> None:
        self.ops.append(("draw_text", text, x, y, color, size, align))

    def to_png(self) -> bytes:
        return PNG_SIGNATURE + b"recorded"

    def texts(self) -> List[Tuple[Any, ...]]:
        return [op for op in self.ops if op[0] == "draw_text"]


@pytest.fixture
def recording_factory():
    """Surface factory that keeps every surface it creates in ``.created``."""

    class _Factory:
        def __init__(self) -> None:
            self.created: List[RecordingSurface] = []

        def __call__(self, width: int, height: int) -> RecordingSurface:
            surface = RecordingSurface(width, height)
            self.created.append(surface)
            return surface

    return _Factory()
