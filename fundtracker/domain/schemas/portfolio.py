from pydantic import BaseModel
from datetime import date
from typing import Dict, List, Optional


class PortfolioListItem(BaseModel):
    code: str
    name: str
    holding_count: int
    multiplier: Optional[float] = None
    last_return_percent: Optional[float] = None


class SnapshotSchema(BaseModel):
    total_value: float
    total_cost: float
    total_profit: float
    return_percent: float


class HoldingValuationSchema(BaseModel):
    code: str
    currency: str
    current_value: float
    cost: float
    profit: float
    return_percent: float
    impact_percent: float
    weight_percent: float


class PortfolioSummaryResponse(BaseModel):
    code: str
    name: str
    as_of: str
    price_count: int
    summary: SnapshotSchema
    holdings: List[HoldingValuationSchema]
    top_gainers: List[HoldingValuationSchema]
    top_losers: List[HoldingValuationSchema]
    rates: Dict[str, Dict[str, float]]


class TimeSeriesPointSchema(BaseModel):
    timestamp: int
    time: str
    return_percent: float


class IntradayCurveResponse(BaseModel):
    code: str
    points: List[TimeSeriesPointSchema]


class IntradaySnapshotSchema(BaseModel):
    time: str
    total_value: float
    total_cost: float
    return_percent: float
    price_count: int


class SnapshotHistoryResponse(BaseModel):
    code: str
    date: date
    snapshots: List[IntradaySnapshotSchema]


class MarketIndicatorSchema(BaseModel):
    symbol: str
    price: float
    change: float
    change_percent: float


class MarketOverviewResponse(BaseModel):
    as_of: str
    stale: bool
    indicators: List[MarketIndicatorSchema]
