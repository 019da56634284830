"""
Market Overview Service
Headline indicators shown next to the funds: BIST100, USD/TRY, Bitcoin
and gram gold / silver in TRY
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from fundtracker.infrastructure.market_data.types import PriceSource, Quote
from fundtracker.utils.numbers import finite_or_zero
from fundtracker.utils.time import now_trt

logger = logging.getLogger(__name__)

TROY_OUNCE_GRAMS = 31.1

# display symbol -> provider code
DIRECT_INDICATORS = (
    ("BIST100", "BIST100"),
    ("USDTRY", "USDTRY"),
    ("BTCUSD", "BTCUSD"),
)

# display symbol -> USD/ounce provider code, converted to TRY per gram
GRAM_METALS = (
    ("XAUTRYG", "XAUUSD"),
    ("XAGTRYG", "XAGUSD"),
)


@dataclass(frozen=True)
class MarketIndicator:
    symbol: str
    price: float
    change: float
    change_percent: float

    @classmethod
    def from_prices(cls, symbol: str, price: float, prev: float) -> Optional["MarketIndicator"]:
        if price <= 0 or prev <= 0:
            return None
        return cls(
            symbol=symbol,
            price=price,
            change=price - prev,
            change_percent=(price - prev) / prev * 100,
        )


@dataclass
class MarketOverview:
    indicators: List[MarketIndicator]
    as_of: datetime
    stale: bool = False


class MarketOverviewService:
    """
    Builds the market overview from a (cached) price source

    Indicators whose quote fails are left out. When nothing at all can be
    priced, the last successful overview is returned and marked stale.
    """

    def __init__(self, price_source: PriceSource):
        self.price_source = price_source
        self._last: Optional[MarketOverview] = None

    async def overview(self) -> MarketOverview:
        codes = [code for _, code in DIRECT_INDICATORS] + [code for _, code in GRAM_METALS]
        try:
            quotes = await self.price_source.fetch_quotes(codes, is_foreign=True)
        except Exception as exc:
            logger.error(f"❌ Market overview fetch failed: {exc}")
            quotes = []

        by_code: Dict[str, Quote] = {q.code: q for q in quotes if q.is_live}
        indicators = self.build_indicators(by_code)

        if not indicators:
            if self._last is not None:
                logger.warning("⚠️ No market quotes, serving last overview")
                return MarketOverview(indicators=self._last.indicators, as_of=self._last.as_of, stale=True)
            return MarketOverview(indicators=[], as_of=now_trt(), stale=True)

        self._last = MarketOverview(indicators=indicators, as_of=now_trt())
        logger.info(f"📈 Market overview: {len(indicators)} indicator(s)")
        return self._last

    @staticmethod
    def build_indicators(quotes: Dict[str, Quote]) -> List[MarketIndicator]:
        indicators = []
        for symbol, code in DIRECT_INDICATORS:
            quote = quotes.get(code)
            if quote is None:
                continue
            indicator = MarketIndicator.from_prices(
                symbol, finite_or_zero(quote.current_price), finite_or_zero(quote.prev_close)
            )
            if indicator is not None:
                indicators.append(indicator)

        usd = quotes.get("USDTRY")
        if usd is None:
            # metals are quoted in USD; without the rate there is no TRY price
            return indicators

        for symbol, code in GRAM_METALS:
            quote = quotes.get(code)
            if quote is None:
                continue
            price = finite_or_zero(quote.current_price) / TROY_OUNCE_GRAMS * finite_or_zero(usd.current_price)
            prev = finite_or_zero(quote.prev_close) / TROY_OUNCE_GRAMS * finite_or_zero(usd.prev_close)
            indicator = MarketIndicator.from_prices(symbol, price, prev)
            if indicator is not None:
                indicators.append(indicator)
        return indicators
