"""Time utilities (Turkey time, epoch milliseconds)."""

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

TRT = ZoneInfo("Europe/Istanbul")


def now_trt() -> datetime:
    """Current time in Turkey, timezone-aware."""
    return datetime.now(TRT)


def now_trt_naive() -> datetime:
    """
    Current time in Turkey, returned as naive datetime for DB storage.
    """
    return now_trt().replace(tzinfo=None)


def to_epoch_ms(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> int:
    """Convert datetime to integer epoch milliseconds."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_assumed_tz)
    return int(round(dt.timestamp() * 1000))


def from_epoch_ms(ms: int, tz: tzinfo = TRT) -> datetime:
    """Convert epoch milliseconds to an aware datetime in ``tz``."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone(tz)


def format_hhmm(ms: int, tz: tzinfo = TRT) -> str:
    """Wall-clock ``HH:MM`` label for an epoch-millisecond timestamp."""
    return from_epoch_ms(ms, tz).strftime("%H:%M")
