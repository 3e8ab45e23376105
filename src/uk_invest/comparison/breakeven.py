"""Portfolio value at which two brokers cost the same.

Fee schedules are piecewise linear with jumps at caps, thresholds and
minimums, so the cost difference is scanned on a log-spaced grid from the
bottom of the range and the first sign change is narrowed by bisection.
Only that first crossing is reported; later ones are ignored.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..fees.composer import compute_cost
from ..models import BrokerFeeProfile, UserProfile

logger = logging.getLogger(__name__)

SEARCH_MIN = 500.0
SEARCH_MAX = 5_000_000.0
GRID_POINTS = 240
# Stop bisecting once the bracket is this narrow (pounds)
TOLERANCE = 1.0
MAX_BISECTIONS = 60
# Differences smaller than half a penny count as equal
EPSILON = 0.005


def cost_difference(a: BrokerFeeProfile, b: BrokerFeeProfile, profile: UserProfile, value: float) -> float:
    scaled = profile.with_portfolio_value(value)
    return compute_cost(a, scaled).total_cost - compute_cost(b, scaled).total_cost


def _sign(diff: float) -> int:
    if diff > EPSILON:
        return 1
    if diff < -EPSILON:
        return -1
    return 0


def search_grid(low: float = SEARCH_MIN, high: float = SEARCH_MAX, points: int = GRID_POINTS) -> List[float]:
    ratio = high / low
    return [low * ratio ** (i / (points - 1)) for i in range(points)]


def _bisect(a, b, profile, low: float, high: float, low_sign: int) -> float:
    for _ in range(MAX_BISECTIONS):
        if high - low <= TOLERANCE:
            break
        mid = (low + high) / 2
        sign = _sign(cost_difference(a, b, profile, mid))
        if sign == 0:
            return float(round(mid))
        if sign == low_sign:
            low = mid
        else:
            high = mid
    return float(round((low + high) / 2))


def find_breakeven(
    a: BrokerFeeProfile,
    b: BrokerFeeProfile,
    profile: UserProfile,
    low: float = SEARCH_MIN,
    high: float = SEARCH_MAX,
) -> Optional[float]:
    """Lowest portfolio value in ``[low, high]`` where ``a`` and ``b`` swap places.

    Returns None when one broker is never more expensive than the other
    across the range, including when they always cost the same.
    """
    previous_value = None
    previous_sign = 0
    for value in search_grid(low, high):
        sign = _sign(cost_difference(a, b, profile, value))
        if sign == 0:
            continue
        if previous_sign and sign != previous_sign:
            breakeven = _bisect(a, b, profile, previous_value, value, previous_sign)
            logger.debug(f"Breakeven {a.name} vs {b.name}: £{breakeven:,.0f}")
            return breakeven
        previous_value, previous_sign = value, sign

    logger.debug(f"No breakeven between {a.name} and {b.name} in £{low:,.0f}-£{high:,.0f}")
    return None
