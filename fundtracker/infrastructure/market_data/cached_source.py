"""
TTL cache decorator around any PriceSource.

Quotes are cached per symbol. When the wrapped source fails for a symbol,
or only has the stored fallback price, an expired live entry is served
instead. Stored fallback quotes are passed through but never cached.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from fundtracker.domain.models import PriceHistory
from fundtracker.infrastructure.cache.redis_cache import RedisCache
from fundtracker.infrastructure.market_data.types import PriceSource, Quote

logger = logging.getLogger(__name__)


class CachedPriceSource:
    def __init__(
        self,
        source: PriceSource,
        ttl_seconds: int = 60,
        history_ttl_seconds: Optional[int] = None,
        redis_cache: Optional[RedisCache] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._source = source
        self.ttl_seconds = ttl_seconds
        self.history_ttl_seconds = history_ttl_seconds or ttl_seconds
        self._redis = redis_cache
        self._clock = clock
        self._cache: Dict[str, Tuple[float, object]] = {}

    @property
    def source(self) -> PriceSource:
        return self._source

    def _cache_get(self, key: str, ttl: int, allow_stale: bool = False) -> Optional[object]:
        cached = self._cache.get(key)
        if not cached:
            return None
        ts, value = cached
        if not allow_stale and self._clock() - ts > ttl:
            return None
        return value

    def _cache_set(self, key: str, value: object) -> None:
        self._cache[key] = (self._clock(), value)

    def clear(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # QUOTES
    # ------------------------------------------------------------------

    async def fetch_quotes(self, symbols: List[str], is_foreign: bool = False) -> List[Quote]:
        found: Dict[str, Quote] = {}
        missing: List[str] = []

        for symbol in symbols:
            cached = self._cache_get(RedisCache.quote_key(symbol, is_foreign), self.ttl_seconds)
            if cached is not None:
                found[symbol] = cached  # type: ignore[assignment]
            else:
                missing.append(symbol)

        if missing and self._redis is not None:
            for symbol in list(missing):
                quote = await self._redis.get_quote(symbol, is_foreign)
                if quote is not None:
                    found[symbol] = quote
                    self._cache_set(RedisCache.quote_key(symbol, is_foreign), quote)
                    missing.remove(symbol)

        if missing:
            fresh = await self._source.fetch_quotes(missing, is_foreign=is_foreign)
            for quote in fresh:
                key = RedisCache.quote_key(quote.code, is_foreign)
                if quote.is_live:
                    found[quote.code] = quote
                    self._cache_set(key, quote)
                    if self._redis is not None:
                        await self._redis.set_quote(quote, is_foreign, self.ttl_seconds)
                    continue
                # a stale live quote beats the stored fallback; neither is re-cached
                stale = self._cache_get(key, self.ttl_seconds, allow_stale=True)
                if stale is not None:
                    logger.info(f"Serving stale quote for {quote.code}")
                    found[quote.code] = stale  # type: ignore[assignment]
                else:
                    found[quote.code] = quote

        return [found.get(symbol) or Quote.failed(symbol) for symbol in symbols]

    # ------------------------------------------------------------------
    # HISTORY
    # ------------------------------------------------------------------

    async def fetch_history(self, symbol: str, is_foreign: bool = False) -> PriceHistory:
        key = RedisCache.history_key(symbol, is_foreign)
        cached = self._cache_get(key, self.history_ttl_seconds)
        if cached is not None:
            return cached  # type: ignore[return-value]

        if self._redis is not None:
            shared = await self._redis.get_history(symbol, is_foreign)
            if shared is not None:
                self._cache_set(key, shared)
                return shared

        history = await self._source.fetch_history(symbol, is_foreign=is_foreign)
        if history.is_empty:
            stale = self._cache_get(key, self.history_ttl_seconds, allow_stale=True)
            if stale is not None:
                logger.info(f"Serving stale history for {symbol}")
                return stale  # type: ignore[return-value]
            return history

        self._cache_set(key, history)
        if self._redis is not None:
            await self._redis.set_history(history, symbol, is_foreign, self.history_ttl_seconds)
        return history
