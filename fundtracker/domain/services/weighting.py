"""
WEIGHTING RULE
Blend raw equity profit with the PPF and GYF sleeves.

    blended = raw * stock_weight
            + cost * ppf_rate * ppf_weight
            + cost * gyf_rate * gyf_weight

gyf_weight = max(0, 1 - stock_weight - ppf_weight). A zero or unset stock
weight disables blending and the raw profit passes through unchanged.
"""

import math

from fundtracker.domain.models import WeightConfig


def blend_profit(raw_profit: float, cost_base: float, weights: WeightConfig) -> float:
    """Apply the three-tier blend to a raw profit measured against cost_base."""
    if not weights.blending_enabled:
        return raw_profit

    stock_part = raw_profit * weights.stock_weight
    ppf_part = cost_base * weights.ppf_rate * weights.resolved_ppf_weight
    gyf_part = cost_base * weights.gyf_rate * weights.resolved_gyf_weight
    return stock_part + ppf_part + gyf_part


def return_percent(profit: float, cost_base: float) -> float:
    """profit / cost * 100, or 0 when the cost base is not a positive number."""
    if not math.isfinite(cost_base) or cost_base <= 0:
        return 0.0
    result = (profit / cost_base) * 100.0
    return result if math.isfinite(result) else 0.0
