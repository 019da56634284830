"""
DOMAIN MODELS - VALUATION OUTPUTS

Immutable results produced by the return engines.
No database access. No market data fetching.
"""

from dataclasses import dataclass, asdict
from typing import Dict


@dataclass(frozen=True)
class HoldingValuation:
    """
    Value of a single holding in TRY against its reference cost.
    """
    code: str
    currency: str
    current_value: float
    cost: float
    profit: float
    return_percent: float
    impact_percent: float = 0.0
    weight_percent: float = 0.0


@dataclass(frozen=True)
class PortfolioSnapshot:
    """
    Portfolio totals at a point in time.

    total_value is mark-to-market; total_profit and return_percent are blended.
    """
    total_value: float = 0.0
    total_cost: float = 0.0
    total_profit: float = 0.0
    return_percent: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One point of the intraday return curve"""
    timestamp: int
    time: str
    return_percent: float
