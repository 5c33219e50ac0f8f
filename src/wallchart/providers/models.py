"""Pydantic models for normalized provider outputs.

These classes define the canonical representation of the price points
and instrument metadata returned by data providers.  Only the closing
price and the candle timestamp are carried; everything else the market
data service returns is discarded at the provider boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class PricePoint(BaseModel):
    """A single close price observation.

    Attributes:
        time: The candle timestamp as an aware datetime.
        close: The closing price of the candle.
    """

    model_config = ConfigDict(frozen=True)

    time: datetime
    close: float

    @field_validator("time")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        # Naive timestamps are treated as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Instrument(BaseModel):
    """Represents a resolved tradable instrument.

    Attributes:
        uid: The provider's opaque instrument identifier.
        ticker: The display ticker (e.g. "VKCO").
        class_code: The market/class code the ticker was resolved in.
        name: Human readable instrument name, if available.
        currency: Trading currency code, if available.
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    ticker: str
    class_code: str
    name: Optional[str] = None
    currency: Optional[str] = None
