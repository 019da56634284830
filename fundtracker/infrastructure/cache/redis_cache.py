"""
Redis-backed cache for quotes and intraday histories.

Shared between the API process and the snapshot scheduler so both hit
Yahoo at most once per TTL. Redis being down only costs a cache miss.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

import redis.asyncio as redis

from fundtracker.domain.models import PriceHistory, PricePoint
from fundtracker.infrastructure.market_data.types import Quote

logger = logging.getLogger(__name__)


def history_to_dict(history: PriceHistory) -> Dict[str, Any]:
    return {
        "symbol": history.symbol,
        "prev_close": history.prev_close,
        "data": [[p.timestamp, p.price] for p in history.data],
    }


def history_from_dict(data: Dict[str, Any]) -> PriceHistory:
    points = [PricePoint(timestamp=int(ts), price=float(price)) for ts, price in data.get("data", [])]
    return PriceHistory.of(points, prev_close=data.get("prev_close"), symbol=data.get("symbol", ""))


class RedisCache:
    def __init__(self, url: str = "", prefix: str = "ft:", enabled: bool = True, client=None):
        self._client = client if client is not None else redis.Redis.from_url(url, decode_responses=True)
        self._prefix = prefix
        self._enabled = enabled

    @staticmethod
    def quote_key(symbol: str, is_foreign: bool) -> str:
        return f"quote:{int(is_foreign)}:{symbol}"

    @staticmethod
    def history_key(symbol: str, is_foreign: bool) -> str:
        return f"history:{int(is_foreign)}:{symbol}"

    async def _read(self, key: str) -> Optional[Dict[str, Any]]:
        if not self._enabled:
            return None
        try:
            raw = await self._client.get(f"{self._prefix}{key}")
        except Exception as exc:
            logger.debug("Redis read of %s failed: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"⚠️ Discarding corrupt cache entry {key}")
            return None

    async def _write(self, key: str, payload: Dict[str, Any], ttl_seconds: int) -> None:
        if not self._enabled:
            return
        try:
            await self._client.set(f"{self._prefix}{key}", json.dumps(payload), ex=ttl_seconds)
        except Exception as exc:
            logger.debug("Redis write of %s failed: %s", key, exc)

    async def get_quote(self, symbol: str, is_foreign: bool = False) -> Optional[Quote]:
        data = await self._read(self.quote_key(symbol, is_foreign))
        return Quote(**data) if data else None

    async def set_quote(self, quote: Quote, is_foreign: bool, ttl_seconds: int) -> None:
        # Only live quotes reach the shared cache
        if quote.is_live:
            await self._write(self.quote_key(quote.code, is_foreign), asdict(quote), ttl_seconds)

    async def get_history(self, symbol: str, is_foreign: bool = False) -> Optional[PriceHistory]:
        data = await self._read(self.history_key(symbol, is_foreign))
        return history_from_dict(data) if data else None

    async def set_history(self, history: PriceHistory, symbol: str, is_foreign: bool, ttl_seconds: int) -> None:
        if not history.is_empty:
            await self._write(self.history_key(symbol, is_foreign), history_to_dict(history), ttl_seconds)

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except Exception as exc:
            logger.debug("Redis close failed: %s", exc)
