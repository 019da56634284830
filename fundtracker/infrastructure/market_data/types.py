"""
Price and FX source protocols for type hints.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol

from fundtracker.domain.models import ExchangeRateSet, PriceHistory


# Quotes replayed from the prices saved with each portfolio, not market data
STORED_SOURCE = "stored"


@dataclass(frozen=True)
class Quote:
    code: str
    current_price: float
    prev_close: float
    success: bool = True
    source: Optional[str] = None

    @classmethod
    def failed(cls, code: str, source: Optional[str] = None) -> "Quote":
        return cls(code=code, current_price=0.0, prev_close=0.0, success=False, source=source)

    @property
    def change_percent(self) -> Optional[float]:
        if not self.success or self.prev_close <= 0:
            return None
        return (self.current_price / self.prev_close - 1) * 100

    @property
    def is_live(self) -> bool:
        return self.success and self.source != STORED_SOURCE


class PriceSource(Protocol):
    async def fetch_quotes(self, symbols: List[str], is_foreign: bool = False) -> List[Quote]:
        ...

    async def fetch_history(self, symbol: str, is_foreign: bool = False) -> PriceHistory:
        ...


class FxRateSource(Protocol):
    async def fetch_rates(self) -> ExchangeRateSet:
        ...
