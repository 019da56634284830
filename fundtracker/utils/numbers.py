"""Numeric helpers for values coming from spreadsheets and quote vendors."""

from __future__ import annotations

import math
from typing import Any, Optional


def finite_or_zero(value: Any) -> float:
    """
    Coerce to float, mapping None, NaN and +/-Infinity to 0.0.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_turkish_float(value: Any) -> Optional[float]:
    """
    Parse a number that may use a decimal comma ("0,55").

    Returns None for empty or unparsable input so callers can apply their
    own default.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None

    text = str(value).strip()
    if not text:
        return None
    if "," in text and "." in text:
        # 1.234,56 -> thousands dot, decimal comma
        text = text.replace(".", "")
    text = text.replace(",", ".")
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
