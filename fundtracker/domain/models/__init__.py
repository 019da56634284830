"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    AssetKind,
    Currency,
    classify_code,

    # Entities
    BASE_CURRENCY,
    ExchangeRateSet,
    Holding,
    PortfolioConfig,
    PriceHistory,
    PricePoint,
    RatePair,
    WeightConfig,
)
from .portfolio import (
    HoldingValuation,
    PortfolioSnapshot,
    TimeSeriesPoint,
)

__all__ = [
    # Enums
    "AssetKind",
    "Currency",
    "classify_code",

    # Entities
    "BASE_CURRENCY",
    "ExchangeRateSet",
    "Holding",
    "PortfolioConfig",
    "PriceHistory",
    "PricePoint",
    "RatePair",
    "WeightConfig",

    # Outputs
    "HoldingValuation",
    "PortfolioSnapshot",
    "TimeSeriesPoint",
]
