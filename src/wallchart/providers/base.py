"""Abstract base class for market data providers.

This module defines the interface that the snapshot pipeline relies on.
Providers return normalized data structures defined in
:mod:`wallchart.providers.models`.
"""

from __future__ import annotations

import abc
from datetime import datetime
from typing import List

from .models import Instrument, PricePoint


class ProviderError(RuntimeError):
    """Raised when a provider request fails or returns unusable data."""


class CandleProvider(abc.ABC):
    """Interface for market data providers."""

    @abc.abstractmethod
    def resolve_instrument(self, ticker: str, class_code: str) -> Instrument:
        """Look up an instrument by ticker and class code.

        Args:
            ticker: The exchange ticker (e.g. "VKCO").
            class_code: The market/class code (e.g. "TQBR").

        Returns:
            The resolved :class:`Instrument`.

        Raises:
            ProviderError: If the instrument cannot be resolved.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def get_candles(
        self,
        instrument_id: str,
        start: datetime,
        end: datetime,
        interval: str,
        limit: int,
    ) -> List[PricePoint]:
        """Fetch historical close prices for an instrument.

        Args:
            instrument_id: The identifier returned by :meth:`resolve_instrument`.
            start: Start of the requested period (inclusive).
            end: End of the requested period.
            interval: Provider specific candle granularity.
            limit: Maximum number of candles to return.

        Returns:
            A list of :class:`PricePoint` instances in chronological order.
            The list may be empty; callers decide how to treat that.
        """
        raise NotImplementedError
