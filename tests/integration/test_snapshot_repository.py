from datetime import date

import pytest

from fundtracker.domain.models import PortfolioSnapshot
from fundtracker.infrastructure.db.repositories.intraday_snapshot_repository import IntradaySnapshotRepository
from fundtracker.infrastructure.db.repositories.totals_repository import PortfolioTotalsRepository


@pytest.mark.asyncio
@pytest.mark.integration
async def test_intraday_snapshots_listed_per_day_in_time_order(db_session):
    repo = IntradaySnapshotRepository(db_session)
    snapshot = PortfolioSnapshot(total_value=1100, total_cost=1000, total_profit=60, return_percent=6)

    await repo.add("TLY", date(2026, 3, 10), "10:05", snapshot, price_count=3)
    await repo.add("TLY", date(2026, 3, 10), "10:00", snapshot, price_count=2)
    await repo.add("TLY", date(2026, 3, 9), "17:55", snapshot, price_count=3)
    await repo.add("DFI", date(2026, 3, 10), "10:00", snapshot, price_count=1)
    await db_session.commit()

    rows = await repo.list_for_day("TLY", date(2026, 3, 10))

    assert [r.time for r in rows] == ["10:00", "10:05"]
    # stored value is cost + blended profit
    assert rows[0].total_value == pytest.approx(1060)
    assert rows[0].total_cost == pytest.approx(1000)
    assert rows[0].return_percent == pytest.approx(6)
    assert rows[0].price_count == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_non_finite_values_are_stored_as_zero(db_session):
    repo = IntradaySnapshotRepository(db_session)
    snapshot = PortfolioSnapshot(
        total_value=float("nan"), total_cost=float("inf"), total_profit=float("nan"), return_percent=float("nan")
    )

    await repo.add("TLY", date(2026, 3, 10), "10:00", snapshot, price_count=0)
    await db_session.commit()

    row = (await repo.list_for_day("TLY", date(2026, 3, 10)))[0]
    assert (row.total_value, row.total_cost, row.return_percent) == (0.0, 0.0, 0.0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_totals_upsert_keeps_one_row_per_portfolio(db_session):
    repo = PortfolioTotalsRepository(db_session)

    await repo.upsert("TLY", PortfolioSnapshot(total_value=1100, total_cost=1000, total_profit=100, return_percent=10))
    await repo.upsert("TLY", PortfolioSnapshot(total_value=1200, total_cost=1000, total_profit=200, return_percent=20))
    await repo.upsert("DFI", PortfolioSnapshot(total_value=5, total_cost=5, total_profit=0, return_percent=0))
    await db_session.commit()

    rows = await repo.list_all()
    assert [r.portfolio_code for r in rows] == ["DFI", "TLY"]
    tly = await repo.get("TLY")
    assert tly.return_percent == pytest.approx(20)
    assert tly.total_value == pytest.approx(1200)
    assert await repo.get("NOPE") is None
