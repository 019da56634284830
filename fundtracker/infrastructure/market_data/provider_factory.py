"""
Price source factory (settings-driven).
"""

from __future__ import annotations

from typing import List, Optional

from fundtracker.config import settings
from fundtracker.domain.services.config_engine import ConfigEngine
from fundtracker.infrastructure.cache.redis_cache import RedisCache
from fundtracker.infrastructure.market_data.cached_source import CachedPriceSource
from fundtracker.infrastructure.market_data.provider_chain import (
    ChainedPriceSource,
    NamedProvider,
    TrackedPriceSource,
)
from fundtracker.infrastructure.market_data.stored_provider import StoredPriceProvider
from fundtracker.infrastructure.market_data.types import STORED_SOURCE, PriceSource
from fundtracker.infrastructure.market_data.yfinance_provider import YFinanceProvider


def _build_provider(name: str) -> PriceSource:
    name = (name or "").lower()
    if name == "yfinance":
        return YFinanceProvider()
    raise ValueError(f"Unknown market data provider: {name}")


def get_redis_cache() -> Optional[RedisCache]:
    if not settings.REDIS_ENABLED:
        return None
    return RedisCache(settings.REDIS_URL)


def get_price_source(
    config_engine: Optional[ConfigEngine] = None,
    redis_cache: Optional[RedisCache] = None,
) -> CachedPriceSource:
    """
    Primary provider from settings, stored portfolio prices as the fallback,
    wrapped in the TTL cache.
    """
    providers: List[NamedProvider] = [
        NamedProvider(settings.MARKET_DATA_PROVIDER.lower(), _build_provider(settings.MARKET_DATA_PROVIDER))
    ]
    if config_engine is not None:
        providers.append(NamedProvider(STORED_SOURCE, StoredPriceProvider(config_engine)))

    if len(providers) == 1:
        only = providers[0]
        source: PriceSource = TrackedPriceSource(only.provider, only.name)
    else:
        source = ChainedPriceSource(providers)

    return CachedPriceSource(
        source,
        ttl_seconds=settings.MARKET_DATA_CACHE_TTL,
        redis_cache=redis_cache,
    )


def get_fx_price_source(redis_cache: Optional[RedisCache] = None) -> CachedPriceSource:
    """FX quotes come from the primary provider only; stored prices have none."""
    provider = TrackedPriceSource(_build_provider(settings.MARKET_DATA_PROVIDER), settings.MARKET_DATA_PROVIDER)
    return CachedPriceSource(provider, ttl_seconds=settings.FX_CACHE_TTL, redis_cache=redis_cache)


def get_market_price_source(redis_cache: Optional[RedisCache] = None) -> CachedPriceSource:
    """Index, FX, crypto and metal quotes for the market overview."""
    provider = TrackedPriceSource(_build_provider(settings.MARKET_DATA_PROVIDER), settings.MARKET_DATA_PROVIDER)
    return CachedPriceSource(provider, ttl_seconds=settings.MARKET_OVERVIEW_CACHE_TTL, redis_cache=redis_cache)
