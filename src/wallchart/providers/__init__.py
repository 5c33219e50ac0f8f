"""Market data providers for wallchart.

Providers resolve instruments and fetch close-price series.  See
:mod:`wallchart.providers.tinkoff` for the Tinkoff Invest implementation.
"""

from .base import CandleProvider, ProviderError  # noqa: F401
from .models import Instrument, PricePoint  # noqa: F401
from .tinkoff import TinkoffDataProvider  # noqa: F401
