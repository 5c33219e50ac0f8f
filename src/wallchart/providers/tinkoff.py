"""Tinkoff Invest market data provider implementation.

This module implements the :class:`CandleProvider` interface on top of the
Tinkoff Invest REST gateway (the JSON transcoding of the gRPC contract).
Two calls are used: ``InstrumentsService/GetInstrumentBy`` to resolve a
ticker + class code into an instrument UID, and
``MarketDataService/GetCandles`` to fetch historical candles.

Requests carry the access token as a bearer header.  No retries are
performed; a failed request raises :class:`ProviderError` and the next
scheduled cycle acts as the retry.  The request timeout is ``None`` by
default, so a hung connection stalls only the cycle that issued it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from .base import CandleProvider, ProviderError
from .models import Instrument, PricePoint

DEFAULT_BASE_URL = "https://invest-public-api.tinkoff.ru/rest"

_CONTRACT = "tinkoff.public.invest.api.contract.v1"
INSTRUMENT_BY_PATH = f"/{_CONTRACT}.InstrumentsService/GetInstrumentBy"
CANDLES_PATH = f"/{_CONTRACT}.MarketDataService/GetCandles"

# Granularity and page size used for the wallpaper chart
CANDLE_INTERVAL_DEFAULT = "CANDLE_INTERVAL_3_MIN"
CANDLE_LIMIT_DEFAULT = 250


def _parse_timestamp(ts_str: str) -> datetime:
    """Parse an RFC 3339 timestamp into a timezone-aware datetime.

    The gateway returns timestamps with a trailing ``Z`` and, at times,
    nanosecond precision.  Fractions are truncated to microseconds so
    that :meth:`datetime.fromisoformat` accepts them.
    """
    if ts_str.endswith("Z"):
        ts_str = ts_str[:-1] + "+00:00"
    if "." in ts_str:
        head, _, rest = ts_str.partition(".")
        digits = ""
        for ch in rest:
            if not ch.isdigit():
                break
            digits += ch
        tail = rest[len(digits):]
        ts_str = f"{head}.{digits[:6].ljust(6, '0')}{tail}"
    dt = datetime.fromisoformat(ts_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def quotation_to_float(quotation: Optional[Dict[str, Any]]) -> float:
    """Convert a ``Quotation`` message (``units`` + ``nano``) into a float."""
    if not quotation:
        raise ProviderError("Missing quotation value")
    units = int(quotation.get("units", 0) or 0)
    nano = int(quotation.get("nano", 0) or 0)
    return units + nano / 1_000_000_000


class TinkoffDataProvider(CandleProvider):
    """Concrete data provider using the Tinkoff Invest REST gateway."""

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize the provider.

        Args:
            token: Tinkoff Invest API access token.
            base_url: Base URL of the REST gateway.  Defaults to
                ``DEFAULT_BASE_URL``.
            timeout: Request timeout in seconds, or ``None`` to wait
                indefinitely.
        """
        if not token:
            raise ValueError("Tinkoff Invest API token is not set")
        self.token = token
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Perform an HTTP POST request and return the decoded JSON.

        Args:
            path: Service method path relative to the base URL.
            payload: JSON request body.

        Returns:
            A dictionary parsed from the JSON response.

        Raises:
            ProviderError: If the request fails or the response cannot be decoded.
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(
                url, json=payload, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise ProviderError(f"Tinkoff request failed: {exc}") from exc
        if response.status_code in (401, 403):
            raise ProviderError(
                f"Tinkoff authentication failed: {response.status_code} {response.text}"
            )
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise ProviderError(f"Tinkoff API request failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"Failed to decode Tinkoff JSON response: {exc}") from exc

    @staticmethod
    def _format_datetime(dt: datetime) -> str:
        """Format a datetime as an RFC 3339 string in UTC without microseconds."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc).replace(microsecond=0)
        return dt.strftime("%Y-%m-%dT%H:%M:%SZ")

    def resolve_instrument(self, ticker: str, class_code: str) -> Instrument:
        data = self._post(
            INSTRUMENT_BY_PATH,
            {
                "idType": "INSTRUMENT_ID_TYPE_TICKER",
                "classCode": class_code,
                "id": ticker,
            },
        )
        raw = data.get("instrument") or {}
        uid = raw.get("uid")
        if not uid:
            raise ProviderError(f"Instrument {ticker}/{class_code} not found")
        return Instrument(
            uid=uid,
            ticker=raw.get("ticker") or ticker,
            class_code=raw.get("classCode") or class_code,
            name=raw.get("name"),
            currency=raw.get("currency"),
        )

    def get_candles(
        self,
        instrument_id: str,
        start: datetime,
        end: datetime,
        interval: str = CANDLE_INTERVAL_DEFAULT,
        limit: int = CANDLE_LIMIT_DEFAULT,
    ) -> List[PricePoint]:
        data = self._post(
            CANDLES_PATH,
            {
                "instrumentId": instrument_id,
                "from": self._format_datetime(start),
                "to": self._format_datetime(end),
                "interval": interval,
                "limit": limit,
            },
        )
        points: List[PricePoint] = []
        for candle in data.get("candles") or []:
            ts = candle.get("time")
            if ts is None:
                continue
            points.append(
                PricePoint(time=_parse_timestamp(ts), close=quotation_to_float(candle.get("close")))
            )
        return points
