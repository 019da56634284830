"""
RETURN AGGREGATOR
Point-in-time portfolio value, cost, profit and blended return

RESPONSIBILITIES:
- Convert every holding into TRY with its currency's rate pair
- Sum mark-to-market value and reference cost
- Blend profit with the PPF / GYF sleeves
- Per-holding breakdown (profit, return, impact, allocation share)

RULES:
❌ No I/O, no caching, no hidden state
❌ Never raise on data quality (unknown currency, zero cost, NaN)
✅ Unknown currency -> identity rate {1, 1}
✅ return% is 0 when cost <= 0
✅ total_value stays unblended; only profit and return are blended
"""

import logging
from typing import Iterable, List, Sequence, Tuple

from fundtracker.domain.models import (
    ExchangeRateSet,
    Holding,
    HoldingValuation,
    PortfolioSnapshot,
    WeightConfig,
)
from fundtracker.domain.services.weighting import blend_profit, return_percent
from fundtracker.utils.numbers import finite_or_zero

logger = logging.getLogger(__name__)


class ReturnAggregator:
    """
    Return Aggregator
    Pure function over holdings, FX rates and weights
    """

    def compute_snapshot(
        self,
        holdings: Iterable[Holding],
        rates: ExchangeRateSet,
        weights: WeightConfig,
    ) -> PortfolioSnapshot:
        """
        Compute portfolio totals for a single point in time

        Args:
            holdings: Positions with current and previous reference prices
            rates: TRY rate pairs per currency
            weights: Blending parameters

        Returns:
            PortfolioSnapshot with blended profit and return%
        """
        total_value = 0.0
        total_cost = 0.0

        for holding in holdings:
            value, cost = self._value_in_base(holding, rates)
            total_value += value
            total_cost += cost

        return self._totals(total_value, total_cost, weights)

    def value_holdings(
        self,
        holdings: Sequence[Holding],
        rates: ExchangeRateSet,
        weights: WeightConfig,
    ) -> List[HoldingValuation]:
        """
        Per-holding breakdown in TRY

        impact_percent is the holding's weighted profit as a share of the
        portfolio cost; weight_percent is its share of the portfolio value.
        """
        rows: List[Tuple[Holding, float, float]] = []
        total_value = 0.0
        total_cost = 0.0
        for holding in holdings:
            value, cost = self._value_in_base(holding, rates)
            rows.append((holding, value, cost))
            total_value += value
            total_cost += cost

        stock_weight = finite_or_zero(weights.stock_weight)
        valuations = []
        for holding, value, cost in rows:
            profit = value - cost
            impact = return_percent(profit * stock_weight, total_cost)
            weight = return_percent(value, total_value)
            valuations.append(
                HoldingValuation(
                    code=holding.code,
                    currency=str(getattr(holding.currency, "value", holding.currency)),
                    current_value=finite_or_zero(value),
                    cost=finite_or_zero(cost),
                    profit=finite_or_zero(profit),
                    return_percent=return_percent(profit, cost),
                    impact_percent=impact,
                    weight_percent=weight,
                )
            )
        return valuations

    @staticmethod
    def top_movers(
        valuations: Iterable[HoldingValuation],
        limit: int = 5,
    ) -> Tuple[List[HoldingValuation], List[HoldingValuation]]:
        """
        Biggest gainers and losers by TRY profit

        Returns:
            Tuple of (gainers desc, losers asc), each at most ``limit`` long
        """
        items = list(valuations)
        gainers = sorted((v for v in items if v.profit > 0), key=lambda v: v.profit, reverse=True)
        losers = sorted((v for v in items if v.profit < 0), key=lambda v: v.profit)
        return gainers[:limit], losers[:limit]

    def _value_in_base(self, holding: Holding, rates: ExchangeRateSet) -> Tuple[float, float]:
        """Current value and reference cost of one holding in TRY"""
        if not rates.has(holding.currency):
            logger.debug("No rate for %s (%s), using identity", holding.currency, holding.code)
        rate = rates.resolve(holding.currency)

        quantity = finite_or_zero(holding.quantity)
        current_price = finite_or_zero(holding.current_price)
        cost_price = finite_or_zero(holding.cost)

        value = quantity * current_price * rate.current
        cost = quantity * cost_price * rate.prev
        return value, cost

    @staticmethod
    def _totals(total_value: float, total_cost: float, weights: WeightConfig) -> PortfolioSnapshot:
        raw_profit = total_value - total_cost
        blended = finite_or_zero(blend_profit(raw_profit, total_cost, weights))

        return PortfolioSnapshot(
            total_value=finite_or_zero(total_value),
            total_cost=finite_or_zero(total_cost),
            total_profit=blended,
            return_percent=return_percent(blended, total_cost),
        )
