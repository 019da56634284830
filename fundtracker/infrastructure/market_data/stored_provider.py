"""
Stored price provider.
Last-resort quotes from the prices saved with each portfolio.
"""

from __future__ import annotations

from typing import Dict, List

from fundtracker.domain.models import PriceHistory
from fundtracker.domain.services.config_engine import ConfigEngine
from fundtracker.infrastructure.market_data.types import STORED_SOURCE, Quote


class StoredPriceProvider:
    """Serves the last persisted current price / cost of every configured holding"""

    def __init__(self, config_engine: ConfigEngine):
        self._config_engine = config_engine

    def _stored_prices(self) -> Dict[str, Quote]:
        prices: Dict[str, Quote] = {}
        for portfolio in self._config_engine.portfolios:
            for holding in portfolio.holdings:
                if holding.current_price > 0 and holding.code not in prices:
                    prices[holding.code] = Quote(
                        code=holding.code,
                        current_price=holding.current_price,
                        prev_close=holding.cost or holding.current_price,
                        source=STORED_SOURCE,
                    )
        return prices

    async def fetch_quotes(self, symbols: List[str], is_foreign: bool = False) -> List[Quote]:
        stored = self._stored_prices()
        return [stored.get(symbol) or Quote.failed(symbol, source=STORED_SOURCE) for symbol in symbols]

    async def fetch_history(self, symbol: str, is_foreign: bool = False) -> PriceHistory:
        return PriceHistory(symbol=symbol)
