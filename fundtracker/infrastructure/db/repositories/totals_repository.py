"""
Portfolio Totals Repository
Latest totals per portfolio (one row each)
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fundtracker.domain.models import PortfolioSnapshot
from fundtracker.infrastructure.db.models import PortfolioTotalsModel
from fundtracker.utils.numbers import finite_or_zero
from fundtracker.utils.time import now_trt_naive


class PortfolioTotalsRepository:
    """Repository for the latest portfolio totals"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, portfolio_code: str) -> Optional[PortfolioTotalsModel]:
        return await self.session.get(PortfolioTotalsModel, portfolio_code)

    async def list_all(self) -> List[PortfolioTotalsModel]:
        result = await self.session.execute(
            select(PortfolioTotalsModel).order_by(PortfolioTotalsModel.portfolio_code)
        )
        return list(result.scalars().all())

    async def upsert(self, portfolio_code: str, snapshot: PortfolioSnapshot) -> PortfolioTotalsModel:
        model = await self.get(portfolio_code)
        if model is None:
            model = PortfolioTotalsModel(portfolio_code=portfolio_code)
            self.session.add(model)

        # never hand NaN / Infinity to the store
        model.total_value = finite_or_zero(snapshot.total_value)
        model.total_cost = finite_or_zero(snapshot.total_cost)
        model.total_profit = finite_or_zero(snapshot.total_profit)
        model.return_percent = finite_or_zero(snapshot.return_percent)
        model.updated_at = now_trt_naive()

        await self.session.flush()
        return model
