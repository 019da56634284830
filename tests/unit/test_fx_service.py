import pytest

from fundtracker.domain.models import Currency
from fundtracker.infrastructure.market_data.fx_service import DEFAULT_RATES, FxRateService, fx_symbol
from fundtracker.infrastructure.market_data.types import Quote


class FxQuotes:
    def __init__(self, quotes=None, error=None):
        self.quotes = quotes or {}
        self.error = error
        self.foreign_flags = []

    async def fetch_quotes(self, symbols, is_foreign=False):
        self.foreign_flags.append(is_foreign)
        if self.error:
            raise self.error
        return [self.quotes.get(s) or Quote.failed(s) for s in symbols]

    async def fetch_history(self, symbol, is_foreign=False):
        raise NotImplementedError


def test_fx_symbol():
    assert fx_symbol(Currency.USD) == "USDTRY=X"


async def test_previous_rate_derived_from_change():
    source = FxQuotes({"USDTRY=X": Quote(code="USDTRY=X", current_price=35.0, prev_close=34.0)})
    service = FxRateService(source)

    rates = await service.fetch_rates()

    usd = rates.resolve(Currency.USD)
    assert usd.current == pytest.approx(35.0)
    assert usd.prev == pytest.approx(34.0)
    assert service.source == "live"
    assert source.foreign_flags == [True]


async def test_unfetched_currencies_keep_defaults():
    service = FxRateService(FxQuotes())

    rates = await service.fetch_rates()

    assert rates.resolve("EUR") == DEFAULT_RATES["EUR"]
    assert service.source == "default"


async def test_last_good_rates_survive_failure():
    source = FxQuotes({"EURTRY=X": Quote(code="EURTRY=X", current_price=41.0, prev_close=40.0)})
    service = FxRateService(source)
    await service.fetch_rates()

    source.error = RuntimeError("network down")
    rates = await service.fetch_rates()

    assert rates.resolve("EUR").current == pytest.approx(41.0)


async def test_try_is_always_identity():
    rates = await FxRateService(FxQuotes()).fetch_rates()

    pair = rates.resolve(Currency.TRY)
    assert (pair.current, pair.prev) == (1.0, 1.0)
