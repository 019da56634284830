"""
Provider chain - try primary, then fallbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List

from fundtracker.domain.models import PriceHistory
from fundtracker.infrastructure.market_data.types import PriceSource, Quote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedProvider:
    name: str
    provider: PriceSource


class TrackedPriceSource:
    def __init__(self, provider: PriceSource, name: str):
        self.provider = provider
        self.name = name
        self.last_price_sources: Dict[str, str] = {}
        self.last_history_sources: Dict[str, str] = {}

    def get_last_sources(self) -> Dict[str, Dict[str, str]]:
        return {
            "prices": dict(self.last_price_sources),
            "history": dict(self.last_history_sources),
        }

    async def fetch_quotes(self, symbols: List[str], is_foreign: bool = False) -> List[Quote]:
        quotes = await self.provider.fetch_quotes(symbols, is_foreign=is_foreign)
        for quote in quotes:
            if quote.success:
                self.last_price_sources[quote.code] = self.name
        return quotes

    async def fetch_history(self, symbol: str, is_foreign: bool = False) -> PriceHistory:
        history = await self.provider.fetch_history(symbol, is_foreign=is_foreign)
        if not history.is_empty:
            self.last_history_sources[symbol] = self.name
        return history


class ChainedPriceSource:
    def __init__(self, providers: List[NamedProvider]):
        if not providers:
            raise ValueError("ChainedPriceSource needs at least one provider")
        self.providers = providers
        self.last_price_sources: Dict[str, str] = {}
        self.last_history_sources: Dict[str, str] = {}

    def get_last_sources(self) -> Dict[str, Dict[str, str]]:
        return {
            "prices": dict(self.last_price_sources),
            "history": dict(self.last_history_sources),
        }

    async def fetch_quotes(self, symbols: List[str], is_foreign: bool = False) -> List[Quote]:
        results: Dict[str, Quote] = {}
        remaining = list(symbols)
        for named in self.providers:
            if not remaining:
                break
            try:
                quotes = await named.provider.fetch_quotes(remaining, is_foreign=is_foreign)
            except Exception as exc:
                logger.warning(f"Provider {named.name} failed for quotes: {exc}")
                continue
            for quote in quotes:
                if quote.success and quote.code in remaining:
                    results[quote.code] = quote
                    self.last_price_sources[quote.code] = named.name
            remaining = [s for s in remaining if s not in results]

        return [results.get(symbol) or Quote.failed(symbol) for symbol in symbols]

    async def fetch_history(self, symbol: str, is_foreign: bool = False) -> PriceHistory:
        for named in self.providers:
            try:
                history = await named.provider.fetch_history(symbol, is_foreign=is_foreign)
            except Exception as exc:
                logger.warning(f"Provider {named.name} failed for {symbol} history: {exc}")
                continue
            if not history.is_empty:
                self.last_history_sources[symbol] = named.name
                return history
        return PriceHistory(symbol=symbol)
