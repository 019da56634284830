"""
Unit Tests for ReturnAggregator

✅ Plain and blended totals
✅ FX normalisation with current / previous rates
✅ Degenerate inputs (zero cost, NaN, unknown currency)
✅ Per-holding breakdown and top movers
"""

import math

import pytest

from fundtracker.domain.models import (
    Currency,
    ExchangeRateSet,
    Holding,
    PortfolioSnapshot,
    RatePair,
    WeightConfig,
)
from fundtracker.domain.services.return_aggregator import ReturnAggregator


@pytest.fixture()
def aggregator():
    return ReturnAggregator()


def _holding(code="THYAO", quantity=100, cost=10, current_price=11, **kwargs):
    return Holding(code=code, quantity=quantity, cost=cost, current_price=current_price, **kwargs)


def test_single_try_holding_plain_return(aggregator):
    snapshot = aggregator.compute_snapshot([_holding()], ExchangeRateSet(), WeightConfig(stock_weight=1))

    assert snapshot.total_value == pytest.approx(1100)
    assert snapshot.total_cost == pytest.approx(1000)
    assert snapshot.total_profit == pytest.approx(100)
    assert snapshot.return_percent == pytest.approx(10)


def test_blended_return_mixes_ppf_sleeve(aggregator):
    weights = WeightConfig(stock_weight=0.5, ppf_rate=0.02, ppf_weight=0.5)

    snapshot = aggregator.compute_snapshot([_holding()], ExchangeRateSet(), weights)

    # 100 * 0.5 + 1000 * 0.02 * 0.5
    assert snapshot.total_profit == pytest.approx(60)
    assert snapshot.return_percent == pytest.approx(6)
    # value stays mark-to-market
    assert snapshot.total_value == pytest.approx(1100)


def test_foreign_holding_uses_current_and_previous_rate(aggregator):
    holding = _holding(code="AAPL", quantity=10, cost=100, current_price=100, currency=Currency.USD)
    rates = ExchangeRateSet.from_mapping({"USD": {"current": 35, "prev": 34}})

    snapshot = aggregator.compute_snapshot([holding], rates, WeightConfig())

    assert snapshot.total_value == pytest.approx(35000)
    assert snapshot.total_cost == pytest.approx(34000)
    assert snapshot.total_profit == pytest.approx(1000)
    assert snapshot.return_percent == pytest.approx(2.941, abs=1e-3)


def test_empty_portfolio_is_all_zero(aggregator):
    snapshot = aggregator.compute_snapshot([], ExchangeRateSet(), WeightConfig())

    assert snapshot.to_dict() == {
        "total_value": 0.0,
        "total_cost": 0.0,
        "total_profit": 0.0,
        "return_percent": 0.0,
    }


def test_zero_quantity_contributes_nothing(aggregator):
    snapshot = aggregator.compute_snapshot(
        [_holding(), _holding(code="ASELS", quantity=0, cost=50, current_price=70)],
        ExchangeRateSet(),
        WeightConfig(),
    )

    assert snapshot.total_value == pytest.approx(1100)
    assert snapshot.return_percent == pytest.approx(10)


def test_zero_cost_returns_zero_percent(aggregator):
    snapshot = aggregator.compute_snapshot([_holding(cost=0)], ExchangeRateSet(), WeightConfig())

    assert snapshot.total_cost == 0
    assert snapshot.total_profit == pytest.approx(1100)
    assert snapshot.return_percent == 0


def test_non_finite_inputs_are_treated_as_zero(aggregator):
    holdings = [
        _holding(),
        _holding(code="BAD1", current_price=float("nan")),
        _holding(code="BAD2", quantity=float("inf")),
    ]

    snapshot = aggregator.compute_snapshot(holdings, ExchangeRateSet(), WeightConfig())

    for value in snapshot.to_dict().values():
        assert math.isfinite(value)
    # BAD1 keeps its cost, BAD2 vanishes
    assert snapshot.total_value == pytest.approx(1100)
    assert snapshot.total_cost == pytest.approx(2000)


def test_missing_or_invalid_rate_falls_back_to_identity(aggregator):
    usd = _holding(code="AAPL", currency=Currency.USD)
    unknown = _holding(code="XYZ1", currency="XYZ")
    rates = ExchangeRateSet(rates={"USD": RatePair(current=0, prev=34)})

    snapshot = aggregator.compute_snapshot([usd, unknown], rates, WeightConfig())

    assert snapshot.total_value == pytest.approx(2200)
    assert snapshot.total_cost == pytest.approx(2000)


def test_zero_stock_weight_disables_blending(aggregator):
    weights = WeightConfig(stock_weight=0, ppf_rate=0.5, ppf_weight=1)

    snapshot = aggregator.compute_snapshot([_holding()], ExchangeRateSet(), weights)

    assert snapshot.total_profit == pytest.approx(100)


def test_compute_snapshot_is_deterministic(aggregator):
    holdings = [_holding(), _holding(code="AAPL", currency=Currency.USD)]
    rates = ExchangeRateSet.from_mapping({"USD": {"current": 35, "prev": 34}})
    weights = WeightConfig(stock_weight=0.7, ppf_rate=0.01)

    first = aggregator.compute_snapshot(holdings, rates, weights)
    second = aggregator.compute_snapshot(list(reversed(holdings)), rates, weights)

    assert first.total_value == pytest.approx(second.total_value)
    assert first.return_percent == pytest.approx(second.return_percent)


def test_identical_inputs_give_identical_snapshots(aggregator):
    holdings = [_holding(), _holding(code="AAPL", quantity=3, cost=101.3, current_price=99.7, currency=Currency.USD)]
    rates = ExchangeRateSet.from_mapping({"USD": {"current": 35.17, "prev": 34.93}})
    weights = WeightConfig(stock_weight=0.7, ppf_rate=0.013, gyf_rate=0.021, ppf_weight=0.2)

    first = aggregator.compute_snapshot(holdings, rates, weights)
    second = aggregator.compute_snapshot(holdings, rates, weights)

    assert first == second
    assert first.to_dict() == second.to_dict()


def test_all_zero_quantities_give_zero_snapshot(aggregator):
    holdings = [_holding(quantity=0), _holding(code="AAPL", quantity=0, currency=Currency.USD)]
    rates = ExchangeRateSet.from_mapping({"USD": {"current": 35, "prev": 34}})
    weights = WeightConfig(stock_weight=0.5, ppf_rate=0.02, ppf_weight=0.5)

    snapshot = aggregator.compute_snapshot(holdings, rates, weights)

    assert snapshot == PortfolioSnapshot(total_value=0, total_cost=0, total_profit=0, return_percent=0)


def test_value_holdings_breakdown(aggregator):
    holdings = [
        _holding(code="UP", quantity=100, cost=10, current_price=11),
        _holding(code="DOWN", quantity=50, cost=20, current_price=18),
    ]

    rows = {r.code: r for r in aggregator.value_holdings(holdings, ExchangeRateSet(), WeightConfig())}

    assert rows["UP"].profit == pytest.approx(100)
    assert rows["UP"].return_percent == pytest.approx(10)
    assert rows["UP"].impact_percent == pytest.approx(5)
    assert rows["UP"].weight_percent == pytest.approx(55)
    assert rows["DOWN"].profit == pytest.approx(-100)
    assert rows["DOWN"].impact_percent == pytest.approx(-5)
    assert rows["DOWN"].weight_percent == pytest.approx(45)


def test_impact_is_scaled_by_stock_weight(aggregator):
    rows = aggregator.value_holdings([_holding()], ExchangeRateSet(), WeightConfig(stock_weight=0.5))

    assert rows[0].impact_percent == pytest.approx(5)


def test_top_movers_orders_and_limits(aggregator):
    holdings = [
        _holding(code=f"G{i}", quantity=1, cost=10, current_price=10 + i) for i in range(1, 8)
    ] + [
        _holding(code="L1", quantity=1, cost=10, current_price=9),
        _holding(code="L2", quantity=1, cost=10, current_price=5),
        _holding(code="FLAT", quantity=1, cost=10, current_price=10),
    ]
    rows = aggregator.value_holdings(holdings, ExchangeRateSet(), WeightConfig())

    gainers, losers = aggregator.top_movers(rows)

    assert [g.code for g in gainers] == ["G7", "G6", "G5", "G4", "G3"]
    assert [loser.code for loser in losers] == ["L2", "L1"]
