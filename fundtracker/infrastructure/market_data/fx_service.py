"""
FX rate service.
TRY rates for every supported currency with a derived previous rate.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fundtracker.domain.models import BASE_CURRENCY, Currency, ExchangeRateSet, RatePair
from fundtracker.infrastructure.market_data.types import PriceSource

logger = logging.getLogger(__name__)

# Used only until the first successful fetch
DEFAULT_RATES: Dict[str, RatePair] = {
    "USD": RatePair(current=38.00, prev=38.00),
    "EUR": RatePair(current=40.00, prev=40.00),
    "CHF": RatePair(current=42.00, prev=42.00),
    "CAD": RatePair(current=27.00, prev=27.00),
    "DKK": RatePair(current=5.50, prev=5.50),
    "NOK": RatePair(current=3.50, prev=3.50),
    "GBP": RatePair(current=48.00, prev=48.00),
}


def fx_symbol(currency: Currency) -> str:
    return f"{currency.value}{BASE_CURRENCY.value}=X"


class FxRateService:
    """
    Builds an ExchangeRateSet from FX quotes

    prev = current / (1 + change% / 100). A currency whose quote fails keeps
    its last good pair, else the static default.
    """

    def __init__(self, price_source: PriceSource):
        self._price_source = price_source
        self._last_good: Dict[str, RatePair] = dict(DEFAULT_RATES)
        self.source = "default"

    async def fetch_rates(self) -> ExchangeRateSet:
        currencies = [c for c in Currency if c != BASE_CURRENCY]
        symbols = {fx_symbol(c): c for c in currencies}

        try:
            quotes = await self._price_source.fetch_quotes(list(symbols.keys()), is_foreign=True)
        except Exception as exc:
            logger.error(f"FX fetch failed, using last known rates: {exc}")
            return ExchangeRateSet(rates=dict(self._last_good))

        fetched = 0
        for quote in quotes:
            currency = symbols.get(quote.code)
            if currency is None or not quote.success:
                continue
            pair = self._pair_from_quote(quote.current_price, quote.change_percent)
            if pair is None:
                continue
            self._last_good[currency.value] = pair
            fetched += 1

        if fetched:
            self.source = "live"
        missing = len(currencies) - fetched
        if missing:
            logger.warning(f"{missing} FX rate(s) unavailable, using last known values")
        return ExchangeRateSet(rates=dict(self._last_good))

    @staticmethod
    def _pair_from_quote(current: float, change_percent: Optional[float]) -> Optional[RatePair]:
        if current is None or current <= 0:
            return None
        pair = RatePair.from_change_percent(current, change_percent or 0.0)
        return pair if pair.is_valid else None
