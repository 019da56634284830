"""
Database Models (SQLAlchemy ORM)
Latest totals per portfolio and the append-only intraday snapshot log
"""

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, String

from fundtracker.infrastructure.db.database import Base
from fundtracker.utils.time import now_trt_naive


class PortfolioTotalsModel(Base):
    """Latest sanitised totals shown on the overview"""
    __tablename__ = "portfolio_totals"

    portfolio_code = Column(String(20), primary_key=True)
    total_value = Column(Float, nullable=False, default=0.0)
    total_cost = Column(Float, nullable=False, default=0.0)
    total_profit = Column(Float, nullable=False, default=0.0)
    return_percent = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, nullable=False, default=now_trt_naive, onupdate=now_trt_naive)


class IntradaySnapshotModel(Base):
    """One periodic capture of a portfolio's blended return"""
    __tablename__ = "intraday_snapshot"

    id = Column(Integer, primary_key=True, autoincrement=True)
    portfolio_code = Column(String(20), nullable=False)
    snapshot_date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    total_value = Column(Float, nullable=False)
    total_cost = Column(Float, nullable=False)
    return_percent = Column(Float, nullable=False)
    price_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=now_trt_naive)

    __table_args__ = (
        Index("ix_intraday_snapshot_code_date", "portfolio_code", "snapshot_date"),
    )
