"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple

from fundtracker.utils.numbers import parse_turkish_float


class Currency(str, Enum):
    """Supported quote currencies; TRY is the reporting currency"""
    TRY = "TRY"
    USD = "USD"
    EUR = "EUR"
    CHF = "CHF"
    CAD = "CAD"
    DKK = "DKK"
    NOK = "NOK"
    GBP = "GBP"

    @classmethod
    def parse(cls, value: object) -> Optional["Currency"]:
        """Case-insensitive lookup; None for unknown codes."""
        if isinstance(value, Currency):
            return value
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


BASE_CURRENCY = Currency.TRY


class AssetKind(str, Enum):
    """What a holding code trades as; drives pricing and the fund flat-day rule"""
    STOCK = "stock"
    FUND = "fund"
    FOREIGN_STOCK = "foreign_stock"
    FX = "fx"
    COMMODITY = "commodity"


def classify_code(code: str, is_foreign: bool = False) -> AssetKind:
    """
    Tag a portfolio code with its asset kind.

    TEFAS fund codes are three letters (or carry "FON"); FX pairs end in
    "=X"; futures end in "=F".
    """
    symbol = (code or "").strip().upper()
    if symbol.endswith("=X"):
        return AssetKind.FX
    if symbol.endswith("=F"):
        return AssetKind.COMMODITY
    if is_foreign:
        return AssetKind.FOREIGN_STOCK
    if len(symbol) == 3 or "FON" in symbol:
        return AssetKind.FUND
    return AssetKind.STOCK


@dataclass(frozen=True)
class Holding:
    """One position in a portfolio"""
    code: str
    quantity: float
    current_price: float
    cost: float
    currency: Currency = Currency.TRY
    is_manual: bool = False
    kind: AssetKind = AssetKind.STOCK

    def __post_init__(self):
        if not self.code or not str(self.code).strip():
            raise ValueError("Holding code cannot be empty")

    @property
    def is_foreign(self) -> bool:
        return self.currency != BASE_CURRENCY or self.kind == AssetKind.FOREIGN_STOCK


@dataclass(frozen=True)
class RatePair:
    """TRY value of one unit of a currency, now and at the previous close"""
    current: float
    prev: float

    @classmethod
    def identity(cls) -> "RatePair":
        return cls(current=1.0, prev=1.0)

    @classmethod
    def from_change_percent(cls, current: float, change_percent: float) -> "RatePair":
        """Derive the previous rate as current / (1 + change% / 100)."""
        divisor = 1 + change_percent / 100
        if not divisor or not math.isfinite(divisor):
            return cls(current=current, prev=current)
        return cls(current=current, prev=current / divisor)

    @property
    def is_valid(self) -> bool:
        return (
            math.isfinite(self.current) and math.isfinite(self.prev)
            and self.current > 0 and self.prev > 0
        )


@dataclass(frozen=True)
class ExchangeRateSet:
    """Currency code -> RatePair; unknown or invalid entries resolve to identity"""
    rates: Mapping[str, RatePair] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> "ExchangeRateSet":
        """
        Build from ``{"USD": {"current": 35, "prev": 34}}`` or RatePair values.
        """
        rates: Dict[str, RatePair] = {}
        for code, value in raw.items():
            if isinstance(value, RatePair):
                pair = value
            elif isinstance(value, Mapping):
                pair = RatePair(
                    current=float(value.get("current", 1) or 0),
                    prev=float(value.get("prev", 1) or 0),
                )
            else:
                continue
            rates[str(code).upper()] = pair
        return cls(rates=rates)

    def resolve(self, currency: object) -> RatePair:
        parsed = Currency.parse(currency)
        if parsed is None or parsed == BASE_CURRENCY:
            return RatePair.identity()
        pair = self.rates.get(parsed.value)
        if pair is None or not pair.is_valid:
            return RatePair.identity()
        return pair

    def has(self, currency: object) -> bool:
        parsed = Currency.parse(currency)
        if parsed == BASE_CURRENCY:
            return True
        if parsed is None:
            return False
        pair = self.rates.get(parsed.value)
        return pair is not None and pair.is_valid

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        data = {code: {"current": p.current, "prev": p.prev} for code, p in self.rates.items()}
        data[BASE_CURRENCY.value] = {"current": 1.0, "prev": 1.0}
        return data


@dataclass(frozen=True)
class WeightConfig:
    """
    Blended-return parameters.

    stock_weight is the share of raw equity profit counted; the PPF sleeve
    earns ppf_rate on ppf_weight of the cost base; the GYF sleeve earns
    gyf_rate on whatever weight remains (clamped at zero).
    """
    stock_weight: float = 1.0
    ppf_rate: float = 0.0
    ppf_weight: Optional[float] = None
    gyf_rate: float = 0.0

    @classmethod
    def from_raw(
        cls,
        multiplier: object = None,
        ppf_rate: object = None,
        ppf_weight: object = None,
        gyf_rate: object = None,
    ) -> "WeightConfig":
        """Build from stored values that may be Turkish-decimal strings."""
        stock = parse_turkish_float(multiplier)
        return cls(
            stock_weight=1.0 if stock is None else stock,
            ppf_rate=parse_turkish_float(ppf_rate) or 0.0,
            ppf_weight=parse_turkish_float(ppf_weight),
            gyf_rate=parse_turkish_float(gyf_rate) or 0.0,
        )

    @property
    def blending_enabled(self) -> bool:
        return bool(self.stock_weight) and math.isfinite(self.stock_weight)

    @property
    def resolved_ppf_weight(self) -> float:
        if self.ppf_weight is None:
            return 1 - self.stock_weight
        return self.ppf_weight

    @property
    def resolved_gyf_weight(self) -> float:
        return max(0.0, 1 - self.stock_weight - self.resolved_ppf_weight)


@dataclass(frozen=True)
class PricePoint:
    """One sample of a price series"""
    timestamp: int
    price: float


@dataclass(frozen=True)
class PriceHistory:
    """Intraday series for one symbol plus the close it is measured against"""
    data: Tuple[PricePoint, ...] = ()
    prev_close: Optional[float] = None
    symbol: str = ""

    @classmethod
    def of(
        cls,
        points: Iterable[PricePoint],
        prev_close: Optional[float] = None,
        symbol: str = "",
    ) -> "PriceHistory":
        ordered = tuple(sorted(points, key=lambda p: p.timestamp))
        return cls(data=ordered, prev_close=prev_close, symbol=symbol)

    @property
    def is_empty(self) -> bool:
        return not self.data

    @property
    def last_timestamp(self) -> Optional[int]:
        return self.data[-1].timestamp if self.data else None


@dataclass(frozen=True)
class PortfolioConfig:
    """Stored definition of a portfolio (fund)"""
    code: str
    name: str
    holdings: Tuple[Holding, ...]
    weights: WeightConfig = field(default_factory=WeightConfig)

    def __post_init__(self):
        if not self.code:
            raise ValueError("Portfolio code cannot be empty")
        codes = [h.code for h in self.holdings]
        if len(codes) != len(set(codes)):
            raise ValueError(f"Duplicate holding codes in portfolio {self.code}")

    def holding(self, code: str) -> Holding:
        for item in self.holdings:
            if item.code == code:
                return item
        raise ValueError(f"Holding not found: {code}")
