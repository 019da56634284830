"""
Snapshot Scheduler
Captures intraday portfolio snapshots during Borsa Istanbul session hours
"""

import logging
from datetime import datetime, time
from typing import Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from fundtracker.config import settings
from fundtracker.services.intraday_snapshot_service import IntradaySnapshotService

logger = logging.getLogger(__name__)


def session_bounds() -> tuple:
    """(open, cutoff) local times from settings"""
    return (
        time(settings.SESSION_OPEN_HOUR, settings.SESSION_OPEN_MINUTE),
        time(settings.SESSION_CUTOFF_HOUR, settings.SESSION_CUTOFF_MINUTE),
    )


def in_session(now: datetime) -> bool:
    """Weekday and between the session open and the close cutoff"""
    if now.weekday() >= 5:
        return False
    open_at, cutoff = session_bounds()
    return open_at <= now.time().replace(second=0, microsecond=0) <= cutoff


class SnapshotScheduler:
    """
    Snapshot Scheduler
    Runs capture_all every SNAPSHOT_INTERVAL_MINUTES on weekdays
    """

    JOB_ID = "intraday_snapshot"

    def __init__(self, snapshot_service: IntradaySnapshotService):
        self.timezone = pytz.timezone(settings.TIMEZONE)
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self.snapshot_service = snapshot_service

    def build_trigger(self) -> CronTrigger:
        open_at, cutoff = session_bounds()
        interval = max(1, settings.SNAPSHOT_INTERVAL_MINUTES)
        return CronTrigger(
            day_of_week="mon-fri",
            hour=f"{open_at.hour}-{cutoff.hour}",
            minute=f"*/{interval}",
            timezone=self.timezone,
        )

    async def snapshot_job(self, now: Optional[datetime] = None) -> int:
        """Capture all portfolios if the market session is open"""
        now = now or datetime.now(self.timezone)
        if not in_session(now):
            logger.info(f"⏭️  Skipping snapshot - {now:%a %H:%M} is outside session hours")
            return 0

        logger.info("🔄 Running intraday snapshot job...")
        try:
            results = await self.snapshot_service.capture_all(now)
        except Exception as exc:
            logger.error(f"❌ Snapshot job failed: {exc}")
            return 0
        return len(results)

    def start(self) -> None:
        self.scheduler.add_job(
            self.snapshot_job,
            trigger=self.build_trigger(),
            id=self.JOB_ID,
            name="Intraday portfolio snapshot",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"✅ Scheduler started (every {settings.SNAPSHOT_INTERVAL_MINUTES} min, {settings.TIMEZONE})")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler stopped")

    @property
    def running(self) -> bool:
        return bool(self.scheduler.running)
