"""
YFinance Price Provider
Async-safe Yahoo Finance integration for Borsa Istanbul and foreign listings
"""

import asyncio
import logging
import math
import os
import random
from typing import Dict, List, Optional, Tuple

import pandas as pd
import yfinance as yf

from fundtracker.domain.models import AssetKind, PriceHistory, PricePoint, classify_code
from fundtracker.infrastructure.market_data.types import Quote

logger = logging.getLogger(__name__)

BIST_SUFFIX = ".IS"


class YFinanceProvider:
    """
    Yahoo Finance price provider
    Async-safe via thread offloading
    """

    def __init__(
        self,
        retries: int = 2,
        intraday_interval: str = "5m",
    ):
        self.symbol_mapping: Dict[str, str] = {
            "BIST100": "XU100.IS",
            "USDTRY": "USDTRY=X",
            "XAUUSD": "GC=F",
            "XAGUSD": "SI=F",
            "BTCUSD": "BTC-USD",
        }
        self.retries = retries
        self.intraday_interval = intraday_interval
        self._apply_symbol_overrides()

    def _apply_symbol_overrides(self) -> None:
        """
        Apply Yahoo symbol mapping overrides from env.

        Format: YF_SYMBOL_OVERRIDES="KOZAL=TRALT.IS,FOO=FOO.IS"
        """
        raw = os.getenv("YF_SYMBOL_OVERRIDES", "").strip()
        if not raw:
            return
        overrides: Dict[str, str] = {}
        for pair in raw.split(","):
            pair = pair.strip()
            if not pair or "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            key = key.strip().upper()
            value = value.strip()
            if key and value:
                overrides[key] = value
        if overrides:
            self.symbol_mapping.update(overrides)

    def yahoo_symbol(self, code: str, is_foreign: bool = False) -> str:
        symbol = code.strip().upper()
        if symbol in self.symbol_mapping:
            return self.symbol_mapping[symbol]
        if is_foreign or "=" in symbol or symbol.endswith(BIST_SUFFIX):
            return symbol
        return f"{symbol}{BIST_SUFFIX}"

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    async def _history(self, ticker: yf.Ticker, **kwargs) -> pd.DataFrame:
        """
        Async-safe wrapper around yfinance history()
        """
        return await asyncio.to_thread(ticker.history, **kwargs)

    async def _history_with_retry(self, ticker: yf.Ticker, **kwargs) -> pd.DataFrame:
        """
        Retry wrapper around history() to handle transient failures.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                return await self._history(ticker, **kwargs)
            except Exception as exc:
                last_exc = exc
                await asyncio.sleep(0.4 * (2 ** attempt) + random.random() * 0.2)
        raise last_exc

    @staticmethod
    def _closes(hist: pd.DataFrame) -> pd.Series:
        if hist is None or hist.empty or "Close" not in hist:
            return pd.Series(dtype=float)
        return hist["Close"].dropna()

    @staticmethod
    def _previous_close(ticker: yf.Ticker) -> Optional[float]:
        meta = getattr(ticker, "history_metadata", None) or {}
        for key in ("chartPreviousClose", "previousClose", "regularMarketPreviousClose"):
            value = meta.get(key)
            if value is not None and math.isfinite(float(value)) and float(value) > 0:
                return float(value)
        return None

    # ------------------------------------------------------------------
    # QUOTES
    # ------------------------------------------------------------------

    async def fetch_quotes(self, symbols: List[str], is_foreign: bool = False) -> List[Quote]:
        """
        Latest price and previous close per symbol.
        A failing symbol yields ``success=False`` and never aborts the batch.
        """
        results = await asyncio.gather(
            *(self._fetch_quote(symbol, is_foreign) for symbol in symbols)
        )
        return list(results)

    async def _fetch_quote(self, symbol: str, is_foreign: bool) -> Quote:
        if classify_code(symbol, is_foreign) == AssetKind.FUND:
            # TEFAS funds are priced once a day outside Yahoo
            logger.debug(f"Skipping Yahoo quote for fund code {symbol}")
            return Quote.failed(symbol, source="yfinance")

        try:
            ticker = yf.Ticker(self.yahoo_symbol(symbol, is_foreign))
            hist = await self._history_with_retry(
                ticker,
                period="5d",
                interval="1d",
                auto_adjust=False,
            )
            closes = self._closes(hist)
            if closes.empty:
                logger.warning(f"No price data for {symbol}")
                return Quote.failed(symbol, source="yfinance")

            current = float(closes.iloc[-1])
            prev = float(closes.iloc[-2]) if len(closes) > 1 else current
            if current <= 0:
                return Quote.failed(symbol, source="yfinance")

            return Quote(code=symbol, current_price=current, prev_close=prev, source="yfinance")
        except Exception as e:
            logger.error(f"Error fetching quote for {symbol}: {e}")
            return Quote.failed(symbol, source="yfinance")

    # ------------------------------------------------------------------
    # INTRADAY HISTORY
    # ------------------------------------------------------------------

    async def fetch_history(self, symbol: str, is_foreign: bool = False) -> PriceHistory:
        """
        Intraday bars (5 minute) for today, or the last 5 days for foreign
        listings, plus the previous session close.
        """
        if classify_code(symbol, is_foreign) == AssetKind.FUND:
            return PriceHistory(symbol=symbol)

        try:
            ticker = yf.Ticker(self.yahoo_symbol(symbol, is_foreign))
            hist, prev_close = await asyncio.to_thread(
                self._download_intraday, ticker, "5d" if is_foreign else "1d"
            )
        except Exception as e:
            logger.error(f"Error fetching intraday history for {symbol}: {e}")
            return PriceHistory(symbol=symbol)

        closes = self._closes(hist)
        points = [
            PricePoint(timestamp=int(pd.Timestamp(ts).timestamp() * 1000), price=float(price))
            for ts, price in closes.items()
            if float(price) > 0
        ]
        return PriceHistory.of(points, prev_close=prev_close, symbol=symbol)

    def _download_intraday(self, ticker: yf.Ticker, period: str) -> Tuple[pd.DataFrame, Optional[float]]:
        hist = ticker.history(period=period, interval=self.intraday_interval, auto_adjust=False)
        return hist, self._previous_close(ticker)
