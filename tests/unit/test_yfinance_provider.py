import pandas as pd
import pytest

from fundtracker.domain.models import AssetKind, classify_code
from fundtracker.infrastructure.market_data import yfinance_provider
from fundtracker.infrastructure.market_data.yfinance_provider import YFinanceProvider


class FakeTicker:
    """Stands in for yfinance.Ticker; no network"""

    frames = {}
    calls = []

    def __init__(self, symbol):
        self.symbol = symbol
        self.history_metadata = {"chartPreviousClose": 9.5}

    def history(self, period=None, interval=None, auto_adjust=False):
        FakeTicker.calls.append((self.symbol, period, interval))
        frame = FakeTicker.frames.get(self.symbol)
        if isinstance(frame, Exception):
            raise frame
        return frame if frame is not None else pd.DataFrame()


@pytest.fixture()
def provider(monkeypatch):
    FakeTicker.frames = {}
    FakeTicker.calls = []
    monkeypatch.setattr(yfinance_provider.yf, "Ticker", FakeTicker)
    return YFinanceProvider(retries=0)


@pytest.mark.parametrize(
    "code,is_foreign,expected",
    [
        ("THYAO", False, AssetKind.STOCK),
        ("TCD", False, AssetKind.FUND),
        ("ABCFON", False, AssetKind.FUND),
        ("AAPL", True, AssetKind.FOREIGN_STOCK),
        ("USDTRY=X", True, AssetKind.FX),
        ("GC=F", False, AssetKind.COMMODITY),
    ],
)
def test_classify_code(code, is_foreign, expected):
    assert classify_code(code, is_foreign) == expected


def test_yahoo_symbol_mapping(monkeypatch):
    monkeypatch.setenv("YF_SYMBOL_OVERRIDES", "KOZAL=TRALT.IS, bad-entry")
    provider = YFinanceProvider()

    assert provider.yahoo_symbol("thyao") == "THYAO.IS"
    assert provider.yahoo_symbol("AAPL", is_foreign=True) == "AAPL"
    assert provider.yahoo_symbol("USDTRY=X") == "USDTRY=X"
    assert provider.yahoo_symbol("BIST100") == "XU100.IS"
    assert provider.yahoo_symbol("BTCUSD", is_foreign=True) == "BTC-USD"
    assert provider.yahoo_symbol("KOZAL") == "TRALT.IS"


async def test_quotes_use_last_two_daily_closes(provider):
    FakeTicker.frames["THYAO.IS"] = pd.DataFrame({"Close": [9.0, 10.0, 11.0]})

    quotes = await provider.fetch_quotes(["THYAO"])

    assert quotes[0].success
    assert (quotes[0].current_price, quotes[0].prev_close) == (11.0, 10.0)
    assert quotes[0].change_percent == pytest.approx(10)


async def test_failures_and_funds_do_not_abort_batch(provider):
    FakeTicker.frames["THYAO.IS"] = pd.DataFrame({"Close": [10.0, 11.0]})
    FakeTicker.frames["ASELS.IS"] = RuntimeError("rate limited")

    quotes = await provider.fetch_quotes(["THYAO", "ASELS", "TCD"])

    assert [q.success for q in quotes] == [True, False, False]
    assert all(call[0] != "TCD.IS" for call in FakeTicker.calls)


async def test_history_converts_bars_to_epoch_ms(provider):
    index = pd.DatetimeIndex(
        ["2026-03-10 10:00", "2026-03-10 10:05"], tz="Europe/Istanbul"
    )
    FakeTicker.frames["THYAO.IS"] = pd.DataFrame({"Close": [10.5, 10.6]}, index=index)

    history = await provider.fetch_history("THYAO")

    assert history.prev_close == 9.5
    assert [p.price for p in history.data] == [10.5, 10.6]
    assert history.data[1].timestamp - history.data[0].timestamp == 5 * 60 * 1000
    assert FakeTicker.calls[-1] == ("THYAO.IS", "1d", "5m")


async def test_foreign_history_requests_five_days(provider):
    await provider.fetch_history("AAPL", is_foreign=True)

    assert FakeTicker.calls[-1] == ("AAPL", "5d", "5m")


async def test_fund_history_is_empty(provider):
    assert (await provider.fetch_history("TCD")).is_empty
    assert FakeTicker.calls == []
