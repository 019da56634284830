"""
Intraday Snapshot Repository
Append-only log of periodic portfolio captures
"""

from datetime import date
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fundtracker.domain.models import PortfolioSnapshot
from fundtracker.infrastructure.db.models import IntradaySnapshotModel
from fundtracker.utils.numbers import finite_or_zero


class IntradaySnapshotRepository:
    """Repository for intraday snapshots"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        portfolio_code: str,
        snapshot_date: date,
        time_label: str,
        snapshot: PortfolioSnapshot,
        price_count: int,
    ) -> int:
        """
        Store one capture. totalValue is stored as cost + blended profit,
        the figure the intraday chart plots.
        """
        total_cost = finite_or_zero(snapshot.total_cost)
        model = IntradaySnapshotModel(
            portfolio_code=portfolio_code,
            snapshot_date=snapshot_date,
            time=time_label,
            total_value=finite_or_zero(total_cost + finite_or_zero(snapshot.total_profit)),
            total_cost=total_cost,
            return_percent=finite_or_zero(snapshot.return_percent),
            price_count=price_count,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def list_for_day(self, portfolio_code: str, snapshot_date: date) -> List[IntradaySnapshotModel]:
        result = await self.session.execute(
            select(IntradaySnapshotModel)
            .where(
                IntradaySnapshotModel.portfolio_code == portfolio_code,
                IntradaySnapshotModel.snapshot_date == snapshot_date,
            )
            .order_by(IntradaySnapshotModel.time, IntradaySnapshotModel.id)
        )
        return list(result.scalars().all())
