"""
Market API Routes
Headline market indicators
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from fundtracker.domain.schemas.portfolio import MarketIndicatorSchema, MarketOverviewResponse
from fundtracker.services.market_overview_service import MarketOverviewService

router = APIRouter()


def get_market_service(request: Request) -> MarketOverviewService:
    service = getattr(request.app.state, "market_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Market overview service not initialized")
    return service


@router.get("", response_model=MarketOverviewResponse)
async def market_overview(service: MarketOverviewService = Depends(get_market_service)):
    """BIST100, USD/TRY, BTC/USD and gram gold / silver in TRY"""
    overview = await service.overview()
    return MarketOverviewResponse(
        as_of=overview.as_of.isoformat(),
        stale=overview.stale,
        indicators=[
            MarketIndicatorSchema(
                symbol=item.symbol,
                price=round(item.price, 4),
                change=round(item.change, 4),
                change_percent=round(item.change_percent, 4),
            )
            for item in overview.indicators
        ],
    )
