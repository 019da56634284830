from fastapi import APIRouter, Request
from sqlalchemy import text

from fundtracker import __version__
from fundtracker.config import settings
from fundtracker.infrastructure.db.database import engine

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Database, scheduler and price source status"""
    db_status = "connected"
    db_error = None
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        db_status = "error"
        db_error = str(exc)

    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        scheduler_status = "disabled"
    else:
        scheduler_status = "running" if scheduler.running else "stopped"

    fx_service = getattr(request.app.state, "fx_service", None)

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "service": "Fund Return Tracker",
        "version": __version__,
        "environment": settings.APP_ENV,
        "services": {
            "api": "running",
            "database": db_status,
            "scheduler": scheduler_status,
            "fx_rates": getattr(fx_service, "source", "not_initialized"),
        },
        "database_error": db_error,
    }
