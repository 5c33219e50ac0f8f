"""Snapshot pipeline: one fetch → compute → render → write cycle.

:class:`SnapshotPipeline` glues the market data provider to the chart
renderer.  Each call to :meth:`SnapshotPipeline.run_cycle` is
independent: failures of any step are reported on the console and the
cycle ends, leaving the scheduler's future firings untouched.

The output file is replaced atomically (write to a temporary file in the
same directory, then ``os.replace``).  Cycles may overlap when a fetch
is slow; the file is never half-written, but whichever cycle finishes
its write last wins, even if it carries older data.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import click

from ..charts.projection import Domain, Viewport
from ..charts.renderer import DEFAULT_STYLE, ChartStyle, render_frame
from ..charts.statistics import EmptySeriesError, compute_statistics
from ..charts.surface import MatplotlibSurface, SurfaceFactory
from ..config import Settings
from ..providers.base import CandleProvider
from ..providers.models import Instrument, PricePoint
from ..providers.tinkoff import CANDLE_INTERVAL_DEFAULT, CANDLE_LIMIT_DEFAULT

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def write_atomic(path: Path, data: bytes) -> Path:
    """Write ``data`` to ``path`` via a temporary file and an atomic rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return path


def fetch_window(settings: Settings, now: datetime) -> Tuple[datetime, datetime]:
    """Return the ``(start, end)`` request window relative to ``now``."""
    other = now + settings.history_window()
    return (other, now) if other < now else (now, other)


class SnapshotPipeline:
    """Run wallpaper update cycles against a :class:`CandleProvider`.

    Parameters
    ----------
    provider : CandleProvider
        Source of instruments and candles.
    settings : Settings
        Validated runtime settings (ticker, window, output path, timezone).
    clock : callable, optional
        Returns the current aware datetime.  Defaults to UTC now.
    surface_factory : callable, optional
        Builds the drawing surface for a frame.  Defaults to
        :class:`MatplotlibSurface`.
    """

    def __init__(
        self,
        provider: CandleProvider,
        settings: Settings,
        clock: Optional[Clock] = None,
        surface_factory: SurfaceFactory = MatplotlibSurface,
        style: ChartStyle = DEFAULT_STYLE,
        viewport: Optional[Viewport] = None,
        interval: str = CANDLE_INTERVAL_DEFAULT,
        limit: int = CANDLE_LIMIT_DEFAULT,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.clock = clock or _utc_now
        self.surface_factory = surface_factory
        self.style = style
        self.viewport = viewport or Viewport()
        self.interval = interval
        self.limit = limit

    @property
    def output_path(self) -> Path:
        return Path(self.settings.output_path)

    def fetch(self, now: datetime) -> Tuple[Instrument, List[PricePoint]]:
        """Resolve the configured instrument and fetch its close prices."""
        instrument = self.provider.resolve_instrument(self.settings.ticker, self.settings.class_code)
        start, end = fetch_window(self.settings, now)
        series = self.provider.get_candles(instrument.uid, start, end, self.interval, self.limit)
        return instrument, series

    def build_frame(self, instrument: Instrument, series: List[PricePoint], now: datetime) -> bytes:
        """Compute statistics and domain for ``series`` and render the PNG."""
        if not series:
            raise EmptySeriesError(f"No candles returned for {instrument.ticker}")
        stats = compute_statistics(series)
        domain = Domain.from_series(series, stats)
        return render_frame(
            series,
            stats,
            domain,
            instrument.ticker,
            now,
            viewport=self.viewport,
            style=self.style,
            tz=self.settings.display_tz(),
            surface_factory=self.surface_factory,
        )

    def _stamp(self) -> str:
        local = self.clock().astimezone(self.settings.display_tz())
        return local.strftime("%H:%M:%S")

    async def run_cycle(self, now: Optional[datetime] = None) -> Optional[Path]:
        """Execute one cycle.

        Returns the written path on success, or ``None`` when any step
        failed.  Failures are reported on stderr and never raised.
        """
        now = now or self.clock()
        try:
            instrument, series = await asyncio.to_thread(self.fetch, now)
            frame = self.build_frame(instrument, series, now)
            path = await asyncio.to_thread(write_atomic, self.output_path, frame)
        except Exception as exc:
            click.echo(f"[{self._stamp()}] Chart update failed: {type(exc).__name__}: {exc}", err=True)
            return None
        click.echo(f"[{self._stamp()}] Chart saved to {path}")
        return path
