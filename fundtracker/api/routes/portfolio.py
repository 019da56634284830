"""
Portfolio API Routes
Current blended returns, intraday curve and the snapshot log
"""

from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fundtracker.domain.models import HoldingValuation
from fundtracker.domain.schemas.portfolio import (
    HoldingValuationSchema,
    IntradayCurveResponse,
    IntradaySnapshotSchema,
    PortfolioListItem,
    PortfolioSummaryResponse,
    SnapshotHistoryResponse,
    SnapshotSchema,
    TimeSeriesPointSchema,
)
from fundtracker.infrastructure.db.database import get_db
from fundtracker.infrastructure.db.repositories.intraday_snapshot_repository import IntradaySnapshotRepository
from fundtracker.infrastructure.db.repositories.totals_repository import PortfolioTotalsRepository
from fundtracker.services.portfolio_valuation_service import PortfolioValuationService
from fundtracker.utils.time import now_trt

logger = logging.getLogger(__name__)
router = APIRouter()


def get_valuation_service(request: Request) -> PortfolioValuationService:
    service = getattr(request.app.state, "valuation_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Valuation service not initialized")
    return service


def _valuation_schema(row: HoldingValuation) -> HoldingValuationSchema:
    return HoldingValuationSchema(
        code=row.code,
        currency=row.currency,
        current_value=round(row.current_value, 2),
        cost=round(row.cost, 2),
        profit=round(row.profit, 2),
        return_percent=round(row.return_percent, 4),
        impact_percent=round(row.impact_percent, 4),
        weight_percent=round(row.weight_percent, 4),
    )


def _resolve_code(service: PortfolioValuationService, code: str) -> str:
    try:
        return service.config_engine.get_portfolio(code).code
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("", response_model=List[PortfolioListItem])
async def list_portfolios(
    db: AsyncSession = Depends(get_db),
    service: PortfolioValuationService = Depends(get_valuation_service),
):
    """All configured portfolios with their last stored return"""
    totals = {row.portfolio_code: row for row in await PortfolioTotalsRepository(db).list_all()}
    items = []
    for portfolio in service.config_engine.portfolios:
        stored = totals.get(portfolio.code)
        items.append(
            PortfolioListItem(
                code=portfolio.code,
                name=portfolio.name,
                holding_count=len(portfolio.holdings),
                multiplier=portfolio.weights.stock_weight,
                last_return_percent=stored.return_percent if stored else None,
            )
        )
    return items


@router.get("/{code}/summary", response_model=PortfolioSummaryResponse)
async def portfolio_summary(
    code: str,
    service: PortfolioValuationService = Depends(get_valuation_service),
):
    """Live totals, per-holding breakdown and top movers"""
    code = _resolve_code(service, code)
    valuation = await service.snapshot(code)
    snapshot = valuation.snapshot

    return PortfolioSummaryResponse(
        code=valuation.portfolio.code,
        name=valuation.portfolio.name,
        as_of=valuation.as_of.isoformat(),
        price_count=valuation.price_count,
        summary=SnapshotSchema(
            total_value=round(snapshot.total_value, 2),
            total_cost=round(snapshot.total_cost, 2),
            total_profit=round(snapshot.total_profit, 2),
            return_percent=round(snapshot.return_percent, 4),
        ),
        holdings=[_valuation_schema(v) for v in valuation.valuations],
        top_gainers=[_valuation_schema(v) for v in valuation.gainers],
        top_losers=[_valuation_schema(v) for v in valuation.losers],
        rates=valuation.rates.to_dict(),
    )


@router.get("/{code}/intraday", response_model=IntradayCurveResponse)
async def portfolio_intraday(
    code: str,
    foreign: Optional[bool] = Query(None, description="Force the 17:30-to-17:30 foreign fund window"),
    service: PortfolioValuationService = Depends(get_valuation_service),
):
    """Blended return curve since the previous close"""
    code = _resolve_code(service, code)
    curve = await service.intraday_curve(code, foreign_window=foreign)
    return IntradayCurveResponse(
        code=code,
        points=[
            TimeSeriesPointSchema(timestamp=p.timestamp, time=p.time, return_percent=round(p.return_percent, 4))
            for p in curve
        ],
    )


@router.get("/{code}/snapshots", response_model=SnapshotHistoryResponse)
async def portfolio_snapshots(
    code: str,
    day: Optional[date] = Query(None, description="Snapshot date (defaults to today, Istanbul time)"),
    db: AsyncSession = Depends(get_db),
    service: PortfolioValuationService = Depends(get_valuation_service),
):
    """Stored intraday snapshots for one day"""
    code = _resolve_code(service, code)
    day = day or now_trt().date()
    rows = await IntradaySnapshotRepository(db).list_for_day(code, day)
    return SnapshotHistoryResponse(
        code=code,
        date=day,
        snapshots=[
            IntradaySnapshotSchema(
                time=row.time,
                total_value=row.total_value,
                total_cost=row.total_cost,
                return_percent=row.return_percent,
                price_count=row.price_count,
            )
            for row in rows
        ],
    )
