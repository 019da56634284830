"""
Portfolio Valuation Service
Glue between the price/FX sources and the pure return engines
"""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from fundtracker.domain.models import (
    AssetKind,
    ExchangeRateSet,
    Holding,
    HoldingValuation,
    PortfolioConfig,
    PortfolioSnapshot,
    PriceHistory,
    TimeSeriesPoint,
)
from fundtracker.domain.services.config_engine import ConfigEngine
from fundtracker.domain.services.return_aggregator import ReturnAggregator
from fundtracker.domain.services.time_series_replay import TimeSeriesReplay
from fundtracker.infrastructure.market_data.types import FxRateSource, PriceSource, Quote
from fundtracker.utils.time import now_trt

logger = logging.getLogger(__name__)


@dataclass
class PortfolioValuation:
    """Everything the summary view needs for one portfolio"""
    portfolio: PortfolioConfig
    holdings: List[Holding]
    snapshot: PortfolioSnapshot
    valuations: List[HoldingValuation]
    gainers: List[HoldingValuation]
    losers: List[HoldingValuation]
    price_count: int
    rates: ExchangeRateSet
    as_of: datetime = field(default_factory=now_trt)


class PortfolioValuationService:
    """
    Prices a configured portfolio

    Quotes are applied to the stored holdings before the engines run:
    live price replaces current_price and a fresh previous close becomes
    the cost. Manual holdings keep their stored prices; unquoted funds are
    held flat at their stored price.
    """

    def __init__(
        self,
        config_engine: ConfigEngine,
        price_source: PriceSource,
        fx_source: FxRateSource,
        aggregator: Optional[ReturnAggregator] = None,
        replay: Optional[TimeSeriesReplay] = None,
        top_movers_limit: int = 5,
    ):
        self.config_engine = config_engine
        self.price_source = price_source
        self.fx_source = fx_source
        self.aggregator = aggregator or ReturnAggregator()
        self.replay = replay or TimeSeriesReplay()
        self.top_movers_limit = top_movers_limit

    # ------------------------------------------------------------------
    # QUOTES
    # ------------------------------------------------------------------

    async def priced_holdings(self, portfolio: PortfolioConfig) -> Tuple[List[Holding], int]:
        """
        Holdings with live prices applied

        Returns:
            (holdings, number of holdings that received a live quote)
        """
        domestic = [h.code for h in portfolio.holdings if not h.is_manual and not h.is_foreign]
        foreign = [h.code for h in portfolio.holdings if not h.is_manual and h.is_foreign]

        quotes: Dict[str, Quote] = {}
        for symbols, is_foreign in ((domestic, False), (foreign, True)):
            if not symbols:
                continue
            for quote in await self.price_source.fetch_quotes(symbols, is_foreign=is_foreign):
                # stored fallback quotes are the holding's own prices
                if quote.is_live:
                    quotes[quote.code] = quote

        priced = []
        price_count = 0
        for holding in portfolio.holdings:
            quote = quotes.get(holding.code)
            if holding.is_manual or quote is None or quote.current_price <= 0:
                priced.append(self._unquoted(holding))
                continue
            price_count += 1
            priced.append(self._apply_quote(holding, quote))

        missing = len(domestic) + len(foreign) - price_count
        if missing:
            logger.warning(f"⚠️ {portfolio.code}: {missing} holding(s) without a live price, using stored prices")
        return priced, price_count

    @staticmethod
    def _unquoted(holding: Holding) -> Holding:
        # TEFAS funds price once a day; without a quote they are flat for the session
        if holding.kind == AssetKind.FUND and not holding.is_manual and holding.current_price > 0:
            return dataclasses.replace(holding, cost=holding.current_price)
        return holding

    @staticmethod
    def _apply_quote(holding: Holding, quote: Quote) -> Holding:
        cost = quote.prev_close if quote.prev_close > 0 else holding.cost
        return dataclasses.replace(holding, current_price=quote.current_price, cost=cost)

    # ------------------------------------------------------------------
    # SNAPSHOT
    # ------------------------------------------------------------------

    async def snapshot(self, code: str) -> PortfolioValuation:
        """
        Price one portfolio right now

        Raises:
            ValueError: Unknown portfolio code
        """
        portfolio = self.config_engine.get_portfolio(code)
        holdings, price_count = await self.priced_holdings(portfolio)
        rates = await self.fx_source.fetch_rates()

        snapshot = self.aggregator.compute_snapshot(holdings, rates, portfolio.weights)
        valuations = self.aggregator.value_holdings(holdings, rates, portfolio.weights)
        gainers, losers = self.aggregator.top_movers(valuations, self.top_movers_limit)

        logger.info(
            f"✅ {portfolio.code} snapshot | value={snapshot.total_value:.2f} "
            f"profit={snapshot.total_profit:.2f} return={snapshot.return_percent:.2f}%"
        )
        return PortfolioValuation(
            portfolio=portfolio,
            holdings=holdings,
            snapshot=snapshot,
            valuations=valuations,
            gainers=gainers,
            losers=losers,
            price_count=price_count,
            rates=rates,
        )

    # ------------------------------------------------------------------
    # INTRADAY
    # ------------------------------------------------------------------

    async def intraday_curve(
        self,
        code: str,
        now: Optional[datetime] = None,
        foreign_window: Optional[bool] = None,
    ) -> List[TimeSeriesPoint]:
        """
        Intraday blended-return curve for one portfolio

        Args:
            code: Portfolio code
            now: Wall-clock time; defaults to the current Istanbul time
            foreign_window: Clip histories to the previous-to-current 17:30
                window. Defaults to True for funds holding any foreign asset.

        Raises:
            ValueError: Unknown portfolio code
        """
        portfolio = self.config_engine.get_portfolio(code)
        now = now or now_trt()

        holdings, _ = await self.priced_holdings(portfolio)
        rates = await self.fx_source.fetch_rates()
        histories = await self._histories([h for h in holdings if not h.is_manual])

        if foreign_window is None:
            foreign_window = self.uses_foreign_window(portfolio)
        window = self.replay.foreign_session_window(now) if foreign_window else None

        curve = self.replay.build_return_curve(
            histories,
            holdings,
            portfolio.weights,
            now,
            rates=rates,
            window=window,
        )
        logger.info(f"📈 {portfolio.code} intraday curve: {len(curve)} points")
        return curve

    @staticmethod
    def uses_foreign_window(portfolio: PortfolioConfig) -> bool:
        """Foreign funds follow the overseas session; a single foreign holding is enough"""
        name = portfolio.name.casefold()
        if "yabancı" in name or "yabanci" in name:
            return True
        return any(h.is_foreign for h in portfolio.holdings if not h.is_manual)

    async def _histories(self, holdings: Sequence[Holding]) -> Dict[str, PriceHistory]:
        results = await asyncio.gather(
            *(self.price_source.fetch_history(h.code, is_foreign=h.is_foreign) for h in holdings),
            return_exceptions=True,
        )
        histories: Dict[str, PriceHistory] = {}
        for holding, result in zip(holdings, results):
            if isinstance(result, Exception):
                logger.warning(f"History fetch failed for {holding.code}: {result}")
                continue
            histories[holding.code] = result
        return histories
