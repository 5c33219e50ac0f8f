"""
Configuration for the wallchart project.

This module centralises the fixed rendering constants and the runtime
settings that are read from the environment.  Settings are built once
at startup by :func:`load_settings` and passed down as a plain value;
no other module reads environment variables directly.
"""

from __future__ import annotations

import os
import re
from datetime import timedelta, tzinfo
from pathlib import Path
from typing import Final, Mapping, Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

PROJECT_NAME: Final[str] = "wallchart"

# Canvas size of the generated wallpaper in pixels.
CANVAS_WIDTH: Final[int] = 1280
CANVAS_HEIGHT: Final[int] = 720

DEFAULT_OUTPUT_FILE: Final[str] = "./background.png"
DEFAULT_HISTORY_TIME: Final[str] = "-1h"
DEFAULT_TICKER: Final[str] = "VKCO"
DEFAULT_CLASS_CODE: Final[str] = "TQBR"

# Period of the recurring refresh once aligned to a minute boundary.
UPDATE_INTERVAL_SECONDS: Final[float] = 60.0

_WINDOW_RE = re.compile(r"^\s*([+-]?)\s*(\d+)\s*([smhdw])\s*$")
_WINDOW_UNITS: Final[dict[str, str]] = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


class ConfigError(ValueError):
    """Raised when the runtime configuration is missing or invalid."""


def parse_history_window(expr: str) -> timedelta:
    """Parse a relative window expression such as ``-1h`` or ``-30m``.

    The expression is an optional sign, an integer amount and a unit
    (``s``, ``m``, ``h``, ``d`` or ``w``).  A negative value looks back
    from now, which is the usual form; a positive value looks forward.

    Raises
    ------
    ConfigError
        If the expression cannot be parsed or has a zero length.
    """
    match = _WINDOW_RE.match(expr or "")
    if not match:
        raise ConfigError(
            f"Invalid history window {expr!r}; expected e.g. '-1h', '-30m', '-1d'"
        )
    sign, amount, unit = match.groups()
    delta = timedelta(**{_WINDOW_UNITS[unit]: int(amount)})
    if not delta:
        raise ConfigError(f"History window {expr!r} must not be empty")
    return -delta if sign == "-" else delta


class Settings(BaseModel):
    """Validated runtime settings.

    Attributes:
        token: Access token for the market data API.  Mandatory.
        history_time: Relative lookback window, e.g. ``-1h``.
        ticker: Instrument ticker symbol.
        class_code: Market/class code the ticker is listed in.
        output_path: Where the rendered PNG is written.
        timezone: IANA name used for the time labels; ``None`` means
            the system local timezone.
        base_url: Override for the market data REST gateway.
        request_timeout: Optional request timeout in seconds.
        skip_if_busy: Skip a scheduled firing while the previous cycle
            is still running.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    history_time: str = DEFAULT_HISTORY_TIME
    ticker: str = DEFAULT_TICKER
    class_code: str = DEFAULT_CLASS_CODE
    output_path: Path = Path(DEFAULT_OUTPUT_FILE)
    timezone: Optional[str] = None
    base_url: Optional[str] = None
    request_timeout: Optional[float] = None
    skip_if_busy: bool = False

    @field_validator("token")
    @classmethod
    def _token_present(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("TOKEN is not set")
        return value.strip()

    @field_validator("history_time")
    @classmethod
    def _window_parses(cls, value: str) -> str:
        parse_history_window(value)
        return value.strip()

    @field_validator("ticker", "class_code")
    @classmethod
    def _upper(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("timezone")
    @classmethod
    def _zone_exists(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @field_validator("request_timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("must be positive")
        return value

    def history_window(self) -> timedelta:
        return parse_history_window(self.history_time)

    def display_tz(self) -> Optional[tzinfo]:
        """Return the display timezone, or ``None`` for system local time."""
        return ZoneInfo(self.timezone) if self.timezone else None


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    output_path: Optional[Path] = None,
) -> Settings:
    """Build :class:`Settings` from environment variables.

    Parameters
    ----------
    env : mapping, optional
        Source of variables.  Defaults to ``os.environ``.
    output_path : Path, optional
        Overrides ``WALLCHART_OUTPUT`` (used by the ``--output`` CLI option).

    Raises
    ------
    ConfigError
        When ``TOKEN`` is missing or any value fails validation.  The
        message lists every offending field.
    """
    source = os.environ if env is None else env
    token = source.get("TOKEN")
    if not token:
        raise ConfigError("TOKEN is not set in the environment")
    values: dict[str, object] = {
        "token": token,
        "history_time": source.get("HISTORY_TIME") or DEFAULT_HISTORY_TIME,
        "ticker": source.get("TICKER") or DEFAULT_TICKER,
        "class_code": source.get("CLASS_CODE") or DEFAULT_CLASS_CODE,
        "output_path": output_path or source.get("WALLCHART_OUTPUT") or DEFAULT_OUTPUT_FILE,
        "timezone": source.get("WALLCHART_TZ") or None,
        "base_url": source.get("WALLCHART_BASE_URL") or None,
        "request_timeout": source.get("WALLCHART_REQUEST_TIMEOUT") or None,
        "skip_if_busy": _env_flag(source.get("WALLCHART_SKIP_IF_BUSY")),
    }
    try:
        return Settings(**values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from exc


__all__ = [
    "PROJECT_NAME",
    "CANVAS_WIDTH",
    "CANVAS_HEIGHT",
    "DEFAULT_OUTPUT_FILE",
    "UPDATE_INTERVAL_SECONDS",
    "ConfigError",
    "Settings",
    "load_settings",
    "parse_history_window",
]
