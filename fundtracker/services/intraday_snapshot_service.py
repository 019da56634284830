"""
Intraday Snapshot Service
Periodic capture of every portfolio's totals into the database
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fundtracker.infrastructure.db.repositories.intraday_snapshot_repository import IntradaySnapshotRepository
from fundtracker.infrastructure.db.repositories.totals_repository import PortfolioTotalsRepository
from fundtracker.services.portfolio_valuation_service import PortfolioValuation, PortfolioValuationService
from fundtracker.utils.time import now_trt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureResult:
    portfolio_code: str
    time: str
    return_percent: float
    price_count: int
    snapshot_id: int


class IntradaySnapshotService:
    """Captures snapshots for one or all configured portfolios"""

    def __init__(
        self,
        valuation_service: PortfolioValuationService,
        session_factory: async_sessionmaker,
    ):
        self.valuation_service = valuation_service
        self.session_factory = session_factory

    async def capture(self, code: str, now: Optional[datetime] = None) -> Optional[CaptureResult]:
        """
        Price a portfolio and append the result to the snapshot log

        Returns None when no holding received a live price, so a data
        outage never lands in the log as a flat line.

        Raises:
            ValueError: Unknown portfolio code
        """
        now = now or now_trt()
        valuation = await self.valuation_service.snapshot(code)
        if valuation.price_count == 0:
            logger.warning(f"⏭️  {valuation.portfolio.code}: no live prices, snapshot skipped")
            return None

        time_label = now.strftime("%H:%M")
        async with self.session_factory() as session:
            snapshot_id = await self._persist(session, valuation.portfolio.code, now, time_label, valuation)
            await session.commit()

        logger.info(
            f"💾 {valuation.portfolio.code} snapshot saved at {time_label} "
            f"({valuation.snapshot.return_percent:.2f}%, {valuation.price_count} prices)"
        )
        return CaptureResult(
            portfolio_code=valuation.portfolio.code,
            time=time_label,
            return_percent=valuation.snapshot.return_percent,
            price_count=valuation.price_count,
            snapshot_id=snapshot_id,
        )

    @staticmethod
    async def _persist(
        session: AsyncSession,
        code: str,
        now: datetime,
        time_label: str,
        valuation: PortfolioValuation,
    ) -> int:
        await PortfolioTotalsRepository(session).upsert(code, valuation.snapshot)
        return await IntradaySnapshotRepository(session).add(
            portfolio_code=code,
            snapshot_date=now.date(),
            time_label=time_label,
            snapshot=valuation.snapshot,
            price_count=valuation.price_count,
        )

    async def capture_all(self, now: Optional[datetime] = None) -> List[CaptureResult]:
        """Capture every portfolio; one failing portfolio does not stop the rest"""
        now = now or now_trt()
        results = []
        for portfolio in self.valuation_service.config_engine.portfolios:
            try:
                result = await self.capture(portfolio.code, now)
            except Exception as exc:
                logger.error(f"❌ Snapshot failed for {portfolio.code}: {exc}")
                continue
            if result is not None:
                results.append(result)
        logger.info(f"📊 Captured {len(results)} portfolio snapshot(s)")
        return results
