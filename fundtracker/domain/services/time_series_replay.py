"""
TIME SERIES REPLAY
Rebuild the intraday blended-return curve from per-symbol price histories

RESPONSIBILITIES:
- Fix the reference cost (previous close, in TRY) once per curve
- Merge every symbol's timestamps into one ascending axis
- Fill forward each symbol onto that axis
- Append a trailing "current" point from live prices

RULES:
❌ No I/O, no caching, no hidden state
✅ Missing sample before a symbol's first bar -> previous close
✅ Manual holdings -> flat synthetic series, never external history
✅ Trailing point only after the last bar and within max_gap
"""

import logging
import math
from bisect import bisect_right
from datetime import datetime, time, timedelta, tzinfo
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from fundtracker.domain.models import (
    ExchangeRateSet,
    Holding,
    PriceHistory,
    PricePoint,
    TimeSeriesPoint,
    WeightConfig,
)
from fundtracker.domain.services.weighting import blend_profit, return_percent
from fundtracker.utils.numbers import finite_or_zero
from fundtracker.utils.time import TRT, format_hhmm, from_epoch_ms, to_epoch_ms

logger = logging.getLogger(__name__)

HistoryInput = Union[PriceHistory, Sequence[PricePoint], None]
Timestamp = Union[datetime, int]


class _AlignedSeries:
    """One holding's samples prepared for fill-forward lookups"""

    __slots__ = ("timestamps", "prices", "prev_close")

    def __init__(self, points: Sequence[PricePoint], prev_close: float):
        timestamps: List[int] = []
        prices: List[float] = []
        for point in points:
            # first sample wins on duplicate timestamps
            if timestamps and timestamps[-1] == point.timestamp:
                continue
            timestamps.append(point.timestamp)
            prices.append(point.price)
        self.timestamps = timestamps
        self.prices = prices
        self.prev_close = prev_close

    def price_at(self, ts: int) -> float:
        """Exact sample, else the latest earlier one, else previous close"""
        idx = bisect_right(self.timestamps, ts) - 1
        if idx >= 0:
            return self.prices[idx]
        return self.prev_close


class TimeSeriesReplay:
    """
    Time Series Replay
    Intraday return curve for a portfolio
    """

    def __init__(
        self,
        tz: tzinfo = TRT,
        session_open: time = time(10, 0),
        session_close: time = time(18, 0),
        close_cutoff: time = time(18, 10),
        sample_interval: timedelta = timedelta(minutes=5),
        max_gap: timedelta = timedelta(hours=12),
        foreign_cutoff: time = time(17, 30),
    ):
        """
        Initialize replay engine

        Args:
            tz: Zone used for session boundaries and HH:MM labels
            session_open: First bar of the synthetic manual series
            session_close: Last bar of the synthetic manual series
            close_cutoff: Label used for the trailing point after the close
            sample_interval: Spacing of the synthetic manual series
            max_gap: Largest allowed jump to the trailing point
            foreign_cutoff: Daily boundary of the foreign fund window
        """
        if sample_interval <= timedelta(0):
            raise ValueError("sample_interval must be positive")
        self.tz = tz
        self.session_open = session_open
        self.session_close = session_close
        self.close_cutoff = close_cutoff
        self.sample_interval = sample_interval
        self.max_gap = max_gap
        self.foreign_cutoff = foreign_cutoff

    # ------------------------------------------------------------------
    # CURVE
    # ------------------------------------------------------------------

    def build_return_curve(
        self,
        histories: Mapping[str, HistoryInput],
        holdings: Sequence[Holding],
        weights: WeightConfig,
        now: Timestamp,
        rates: Optional[ExchangeRateSet] = None,
        window: Optional[Tuple[int, int]] = None,
    ) -> List[TimeSeriesPoint]:
        """
        Replay the blended return over the union of all sample times

        Args:
            histories: Symbol -> PriceHistory (or bare list of PricePoint)
            holdings: Portfolio positions; manual ones ignore ``histories``
            weights: Blending parameters
            now: Wall-clock time of the call (aware datetime or epoch ms)
            rates: TRY rate pairs; identity for every currency when omitted
            window: Optional (start_ms, end_ms) to clip histories to

        Returns:
            Points ordered by timestamp, trailing live point last
        """
        holdings = list(holdings)
        if not holdings:
            return []

        rates = rates or ExchangeRateSet()
        now_ms = self._to_ms(now)

        aligned: List[Tuple[Holding, _AlignedSeries]] = []
        total_prev_cost = 0.0
        axis = set()

        for holding in holdings:
            if holding.is_manual:
                history = self.manual_history(holding, now_ms)
            else:
                history = self._as_history(histories.get(holding.code), holding.code)
                if window is not None:
                    history = self._clip(history, window)

            prev_close = self._reference_price(history, holding)
            quantity = finite_or_zero(holding.quantity)
            total_prev_cost += quantity * prev_close * rates.resolve(holding.currency).prev

            points = sorted(
                (p for p in history.data if self._is_usable(p)),
                key=lambda p: p.timestamp,
            )
            axis.update(p.timestamp for p in points)
            aligned.append((holding, _AlignedSeries(points, prev_close)))

        curve: List[TimeSeriesPoint] = []
        for ts in sorted(axis):
            value = 0.0
            for holding, series in aligned:
                rate = rates.resolve(holding.currency)
                value += series.price_at(ts) * finite_or_zero(holding.quantity) * rate.current
            curve.append(self._point(ts, value, total_prev_cost, weights))

        trailing = self._trailing_point(curve, holdings, rates, weights, total_prev_cost, now_ms)
        if trailing is not None:
            curve.append(trailing)
        return curve

    # ------------------------------------------------------------------
    # SESSION HELPERS
    # ------------------------------------------------------------------

    def manual_history(self, holding: Holding, now: Timestamp) -> PriceHistory:
        """
        Flat series at the holding's static price across today's session,
        sampled every ``sample_interval`` and never past ``now``.
        """
        now_ms = self._to_ms(now)
        day = from_epoch_ms(now_ms, self.tz).date()
        start = to_epoch_ms(datetime.combine(day, self.session_open, tzinfo=self.tz))
        end = to_epoch_ms(datetime.combine(day, self.session_close, tzinfo=self.tz))
        step = int(self.sample_interval.total_seconds() * 1000)
        price = finite_or_zero(holding.current_price)

        points = []
        ts = start
        while ts <= end and ts <= now_ms:
            points.append(PricePoint(timestamp=ts, price=price))
            ts += step
        return PriceHistory(data=tuple(points), prev_close=holding.cost, symbol=holding.code)

    def foreign_session_window(self, now: Timestamp) -> Tuple[int, int]:
        """
        Window shown for foreign funds, cut at ``foreign_cutoff`` each day

        - Saturday / Sunday: Friday -> Saturday (Friday's session)
        - Monday: Friday -> Monday
        - Tuesday..Friday: yesterday -> today
        """
        local = from_epoch_ms(self._to_ms(now), self.tz)
        today = local.date()
        weekday = today.weekday()

        if weekday >= 5:
            friday = today - timedelta(days=weekday - 4)
            start_day, end_day = friday, friday + timedelta(days=1)
        elif weekday == 0:
            start_day, end_day = today - timedelta(days=3), today
        else:
            start_day, end_day = today - timedelta(days=1), today

        start = datetime.combine(start_day, self.foreign_cutoff, tzinfo=self.tz)
        end = datetime.combine(end_day, self.foreign_cutoff, tzinfo=self.tz)
        return to_epoch_ms(start), to_epoch_ms(end)

    # ------------------------------------------------------------------
    # INTERNAL
    # ------------------------------------------------------------------

    def _trailing_point(
        self,
        curve: List[TimeSeriesPoint],
        holdings: Sequence[Holding],
        rates: ExchangeRateSet,
        weights: WeightConfig,
        total_prev_cost: float,
        now_ms: int,
    ) -> Optional[TimeSeriesPoint]:
        if total_prev_cost <= 0:
            return None

        live_value = sum(
            finite_or_zero(h.quantity)
            * finite_or_zero(h.current_price)
            * rates.resolve(h.currency).current
            for h in holdings
        )

        if not curve:
            return self._point(now_ms, live_value, total_prev_cost, weights)

        last_ts = curve[-1].timestamp
        last_local = from_epoch_ms(last_ts, self.tz)
        cutoff = datetime.combine(last_local.date(), self.close_cutoff, tzinfo=self.tz)
        cutoff_ms = to_epoch_ms(cutoff)

        ts = cutoff_ms if now_ms > cutoff_ms else now_ms
        gap_ms = ts - last_ts
        if ts <= last_ts or gap_ms > self.max_gap.total_seconds() * 1000:
            logger.debug("Skipping trailing point (gap %s ms)", gap_ms)
            return None
        return self._point(ts, live_value, total_prev_cost, weights)

    def _point(
        self,
        ts: int,
        value: float,
        total_prev_cost: float,
        weights: WeightConfig,
    ) -> TimeSeriesPoint:
        profit = blend_profit(value - total_prev_cost, total_prev_cost, weights)
        return TimeSeriesPoint(
            timestamp=ts,
            time=format_hhmm(ts, self.tz),
            return_percent=return_percent(finite_or_zero(profit), total_prev_cost),
        )

    @staticmethod
    def _reference_price(history: PriceHistory, holding: Holding) -> float:
        prev_close = finite_or_zero(history.prev_close)
        if prev_close > 0:
            return prev_close
        return finite_or_zero(holding.cost)

    @staticmethod
    def _is_usable(point: PricePoint) -> bool:
        if point.timestamp is None or not isinstance(point.price, (int, float)):
            return False
        return math.isfinite(point.price)

    @staticmethod
    def _as_history(raw: HistoryInput, code: str) -> PriceHistory:
        if raw is None:
            return PriceHistory(symbol=code)
        if isinstance(raw, PriceHistory):
            return raw
        return PriceHistory.of(raw, symbol=code)

    @staticmethod
    def _clip(history: PriceHistory, window: Tuple[int, int]) -> PriceHistory:
        start, end = window
        kept = tuple(p for p in history.data if start <= p.timestamp <= end)
        return PriceHistory(data=kept, prev_close=history.prev_close, symbol=history.symbol)

    def _to_ms(self, value: Timestamp) -> int:
        if isinstance(value, datetime):
            return to_epoch_ms(value, naive_assumed_tz=self.tz)
        return int(value)
