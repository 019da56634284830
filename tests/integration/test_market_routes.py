import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from fundtracker.api.routes import market
from fundtracker.infrastructure.market_data.types import Quote
from fundtracker.services.market_overview_service import MarketOverviewService


class StubSource:
    async def fetch_quotes(self, symbols, is_foreign=False):
        prices = {"BIST100": (10100.0, 10000.0), "USDTRY": (36.0, 35.0)}
        return [
            Quote(code=s, current_price=prices[s][0], prev_close=prices[s][1]) if s in prices else Quote.failed(s)
            for s in symbols
        ]


def _app(service=None) -> FastAPI:
    app = FastAPI()
    app.include_router(market.router, prefix="/api/v1/market", tags=["Market"])
    if service is not None:
        app.state.market_service = service
    return app


@pytest.mark.asyncio
@pytest.mark.integration
async def test_market_overview_route():
    transport = ASGITransport(app=_app(MarketOverviewService(StubSource())))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/market")

    assert response.status_code == 200
    body = response.json()
    assert body["stale"] is False
    assert [i["symbol"] for i in body["indicators"]] == ["BIST100", "USDTRY"]
    assert body["indicators"][0]["change_percent"] == pytest.approx(1.0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_market_overview_unavailable_without_service():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/v1/market")

    assert response.status_code == 503
