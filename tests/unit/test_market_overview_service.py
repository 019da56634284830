import pytest

from fundtracker.infrastructure.market_data.types import STORED_SOURCE, Quote
from fundtracker.services.market_overview_service import MarketOverviewService


class StubSource:
    def __init__(self, prices):
        self.prices = prices
        self.calls = []

    async def fetch_quotes(self, symbols, is_foreign=False):
        self.calls.append((list(symbols), is_foreign))
        return [
            Quote(code=s, current_price=self.prices[s][0], prev_close=self.prices[s][1])
            if s in self.prices else Quote.failed(s)
            for s in symbols
        ]


PRICES = {
    "BIST100": (10100.0, 10000.0),
    "USDTRY": (36.0, 35.0),
    "BTCUSD": (60000.0, 61000.0),
    "XAUUSD": (3110.0, 3000.0),
    "XAGUSD": (31.1, 31.1),
}


async def test_overview_builds_every_indicator():
    source = StubSource(PRICES)

    overview = await MarketOverviewService(source).overview()

    by_symbol = {i.symbol: i for i in overview.indicators}
    assert list(by_symbol) == ["BIST100", "USDTRY", "BTCUSD", "XAUTRYG", "XAGTRYG"]
    assert by_symbol["BIST100"].change == pytest.approx(100)
    assert by_symbol["BIST100"].change_percent == pytest.approx(1)
    assert by_symbol["BTCUSD"].change_percent < 0
    assert source.calls == [(["BIST100", "USDTRY", "BTCUSD", "XAUUSD", "XAGUSD"], True)]
    assert not overview.stale


async def test_metals_are_converted_to_try_per_gram():
    overview = await MarketOverviewService(StubSource(PRICES)).overview()

    gold = next(i for i in overview.indicators if i.symbol == "XAUTRYG")
    silver = next(i for i in overview.indicators if i.symbol == "XAGTRYG")
    assert gold.price == pytest.approx(3110.0 / 31.1 * 36.0)
    assert gold.change == pytest.approx(3110.0 / 31.1 * 36.0 - 3000.0 / 31.1 * 35.0)
    # flat in USD, still moves with the rate
    assert silver.price == pytest.approx(36.0)
    assert silver.change_percent == pytest.approx((36.0 / 35.0 - 1) * 100)


async def test_metals_need_usdtry():
    prices = {k: v for k, v in PRICES.items() if k != "USDTRY"}

    overview = await MarketOverviewService(StubSource(prices)).overview()

    assert [i.symbol for i in overview.indicators] == ["BIST100", "BTCUSD"]


async def test_stored_quotes_are_ignored():
    class StoredOnly:
        async def fetch_quotes(self, symbols, is_foreign=False):
            return [Quote(code=s, current_price=1.0, prev_close=1.0, source=STORED_SOURCE) for s in symbols]

    overview = await MarketOverviewService(StoredOnly()).overview()

    assert overview.indicators == []
    assert overview.stale


async def test_last_overview_served_when_everything_fails():
    source = StubSource(PRICES)
    service = MarketOverviewService(source)
    first = await service.overview()

    source.prices = {}
    second = await service.overview()

    assert second.stale
    assert second.indicators == first.indicators
    assert second.as_of == first.as_of


async def test_source_exception_is_not_raised():
    class Broken:
        async def fetch_quotes(self, symbols, is_foreign=False):
            raise RuntimeError("provider down")

    overview = await MarketOverviewService(Broken()).overview()

    assert overview.indicators == []
