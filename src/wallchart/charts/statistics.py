"""Summary statistics for a close-price series.

The statistics drive both the vertical domain of the chart (``min`` and
``max``) and the annotations drawn on it (reference lines and header).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..providers.models import PricePoint


class EmptySeriesError(ValueError):
    """Raised when a price series has no points."""


@dataclass(frozen=True)
class ChartStatistics:
    min: float
    max: float
    avg: float
    first: float
    last: float
    diff: float
    percent: float

    @property
    def is_decrease(self) -> bool:
        return self.diff < 0


def compute_statistics(series: Sequence[PricePoint]) -> ChartStatistics:
    """Derive :class:`ChartStatistics` from a non-empty series in one pass.

    ``first`` and ``last`` are taken by position.  When ``first`` is zero
    the percent change is undefined and reported as ``0.0``.  The mean is
    clamped into ``[min, max]`` so float rounding can never push it past
    an extreme.

    Raises
    ------
    EmptySeriesError
        If ``series`` is empty.
    """
    if not series:
        raise EmptySeriesError("Price series is empty")
    lo = hi = total = series[0].close
    for point in series[1:]:
        close = point.close
        if close < lo:
            lo = close
        if close > hi:
            hi = close
        total += close
    avg = min(max(total / len(series), lo), hi)
    first = series[0].close
    last = series[-1].close
    diff = last - first
    percent = diff / first * 100 if first != 0 else 0.0
    return ChartStatistics(
        min=lo,
        max=hi,
        avg=avg,
        first=first,
        last=last,
        diff=diff,
        percent=percent,
    )
