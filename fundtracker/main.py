"""
FastAPI Main Application with Snapshot Scheduler
Wires config, price sources, return engines and the API together
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import time, timedelta
from pathlib import Path
from typing import AsyncGenerator
import logging

from fundtracker import __version__
from fundtracker.api.routes import health, market, portfolio
from fundtracker.config import settings
from fundtracker.core.logging import setup_logging
from fundtracker.domain.services.config_engine import ConfigEngine
from fundtracker.domain.services.time_series_replay import TimeSeriesReplay
from fundtracker.infrastructure.db.database import async_session_factory, close_db, init_db
from fundtracker.infrastructure.market_data.fx_service import FxRateService
from fundtracker.infrastructure.market_data.provider_factory import (
    get_fx_price_source,
    get_market_price_source,
    get_price_source,
    get_redis_cache,
)
from fundtracker.scheduler.snapshot_scheduler import SnapshotScheduler
from fundtracker.services.intraday_snapshot_service import IntradaySnapshotService
from fundtracker.services.market_overview_service import MarketOverviewService
from fundtracker.services.portfolio_valuation_service import PortfolioValuationService
from fundtracker.utils.time import TRT

setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = logging.getLogger(__name__)


def resolve_config_dir() -> Path:
    config_dir = Path(settings.CONFIG_DIR)
    if config_dir.is_absolute():
        return config_dir
    return Path(__file__).resolve().parent.parent / config_dir


def build_replay() -> TimeSeriesReplay:
    """Replay engine with session hours from settings"""
    return TimeSeriesReplay(
        tz=TRT,
        session_open=time(settings.SESSION_OPEN_HOUR, settings.SESSION_OPEN_MINUTE),
        session_close=time(settings.SESSION_CLOSE_HOUR, settings.SESSION_CLOSE_MINUTE),
        close_cutoff=time(settings.SESSION_CUTOFF_HOUR, settings.SESSION_CUTOFF_MINUTE),
        sample_interval=timedelta(minutes=settings.MANUAL_SAMPLE_INTERVAL_MINUTES),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("🚀 Starting Fund Return Tracker")
    logger.info("=" * 60)

    logger.info("📊 Step 1/4: Initializing database...")
    await init_db()
    logger.info("✅ Database initialized")

    logger.info("⚙️  Step 2/4: Loading configuration...")
    config_engine = ConfigEngine(resolve_config_dir())
    config_engine.load_all()
    logger.info(f"✅ Configuration loaded: {len(config_engine.portfolios)} portfolio(s)")

    logger.info("🏗️  Step 3/4: Initializing market data...")
    redis_cache = get_redis_cache()
    price_source = get_price_source(config_engine, redis_cache=redis_cache)
    fx_service = FxRateService(get_fx_price_source(redis_cache=redis_cache))
    valuation_service = PortfolioValuationService(
        config_engine=config_engine,
        price_source=price_source,
        fx_source=fx_service,
        replay=build_replay(),
    )
    app.state.config_engine = config_engine
    app.state.fx_service = fx_service
    app.state.valuation_service = valuation_service
    app.state.market_service = MarketOverviewService(get_market_price_source(redis_cache=redis_cache))
    app.state.scheduler = None
    logger.info(f"✅ Market data provider: {settings.MARKET_DATA_PROVIDER}")

    logger.info("🚀 Step 4/4: Starting background services...")
    if settings.SCHEDULER_ENABLED:
        try:
            scheduler = SnapshotScheduler(IntradaySnapshotService(valuation_service, async_session_factory))
            scheduler.start()
            app.state.scheduler = scheduler
        except Exception as e:
            logger.error(f"❌ Failed to start scheduler: {e}")
    else:
        logger.info("⏰ Scheduler disabled")

    logger.info(f"🎯 API Server: http://{settings.API_HOST}:{settings.API_PORT}/docs")

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("🛑 Shutting down Fund Return Tracker...")
    if app.state.scheduler:
        app.state.scheduler.stop()
    if redis_cache:
        await redis_cache.close()
    await close_db()
    logger.info("👋 Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Fund Return Tracker",
    description="Blended daily returns for BIST and foreign equity funds",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(portfolio.router, prefix="/api/v1/portfolios", tags=["Portfolios"])
app.include_router(market.router, prefix="/api/v1/market", tags=["Market"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Fund Return Tracker",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fundtracker.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
