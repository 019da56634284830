from pathlib import Path
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fundtracker.domain.services.config_engine import ConfigEngine
from fundtracker.infrastructure.db.database import Base
from fundtracker.infrastructure.db import models  # noqa: F401

PORTFOLIOS_YML = """
portfolios:
  - code: TLY
    name: Test Blended Fund
    multiplier: "0,5"
    ppf_rate: 0.02
    ppf_weight: "0,5"
    gyf_rate: 0
    holdings:
      - code: THYAO
        quantity: 100
        cost: 10
        current_price: 10
        currency: TRY
      - code: MEVDUAT
        quantity: 1
        cost: 1000
        current_price: 1000
        currency: TRY
        is_manual: true
        kind: fund
  - code: DFI
    name: Test Foreign Fund
    multiplier: 1
    holdings:
      - code: AAPL
        quantity: 10
        cost: 100
        current_price: 100
        currency: USD
"""


@pytest.fixture()
def config_dir(tmp_path) -> Path:
    path = tmp_path / "config"
    path.mkdir()
    (path / "portfolios.yml").write_text(PORTFOLIOS_YML, encoding="utf-8")
    return path


@pytest.fixture()
def config_engine(config_dir) -> ConfigEngine:
    engine = ConfigEngine(config_dir)
    engine.load_all()
    return engine


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
