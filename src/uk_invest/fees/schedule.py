"""Fee schedule evaluation.

Four schedule shapes cover every platform in the snapshot:

- ``Fixed``        -- constant annual charge
- ``Percentage``   -- rate x value (+ flat extra), then minimum, then cap
- ``Tiered``       -- marginal bands, last band open-ended
- ``Thresholded``  -- flat fee up to a balance threshold, tiered (and capped) above

Evaluation never raises: a missing schedule, an unrecognised object or a
malformed band contributes nothing rather than breaking a comparison.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from ..models import FeeSchedule, Fixed, Percentage, Thresholded, Tier, Tiered

logger = logging.getLogger(__name__)


def _finite(value: Optional[float]) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


def clamp_value(value: Optional[float]) -> float:
    """Portfolio values below zero, NaN or infinite are treated as zero."""
    if not _finite(value) or value < 0:
        if value not in (None, 0):
            logger.debug(f"Clamping portfolio value {value!r} to 0")
        return 0.0
    return float(value)


def round_money(value: float) -> float:
    """Round a currency amount to pennies, never returning -0.0 or a negative."""
    if not _finite(value) or value <= 0:
        return 0.0
    return round(value, 2)


def accumulate_tiers(tiers: Iterable[Tier], portfolio_value: float) -> float:
    """Walk ascending bands and sum the marginal fee on each.

    A bounded band charges ``min(remaining, up_to - previous_limit)`` at its
    rate. The open-ended band charges everything left and ends the walk.
    Bands with a non-finite limit or rate are skipped; an open-ended band
    without a usable rate ends the walk without charging.
    """
    fee = 0.0
    remaining = clamp_value(portfolio_value)
    prev_limit = 0.0

    for tier in tiers:
        if remaining <= 0:
            break
        if tier.is_terminal:
            if _finite(tier.rate):
                fee += remaining * tier.rate
            else:
                logger.warning(f"Open-ended tier has no usable rate ({tier.rate!r}); ignoring it")
            break
        if not _finite(tier.up_to) or not _finite(tier.rate):
            logger.warning(f"Skipping malformed tier {tier!r}")
            continue
        band = max(0.0, tier.up_to - prev_limit)
        in_band = min(remaining, band)
        fee += in_band * tier.rate
        remaining -= in_band
        prev_limit = max(prev_limit, tier.up_to)

    return fee


def evaluate_fee_schedule(schedule: Optional[FeeSchedule], portfolio_value: float) -> float:
    """Annual amount charged by ``schedule`` on ``portfolio_value``."""
    if schedule is None:
        return 0.0
    value = clamp_value(portfolio_value)

    if isinstance(schedule, Fixed):
        return schedule.amount if _finite(schedule.amount) else 0.0

    if isinstance(schedule, Percentage):
        raw = value * schedule.rate if _finite(schedule.rate) else 0.0
        if schedule.flat_extra:
            raw += schedule.flat_extra
        result = max(raw, schedule.minimum) if schedule.minimum else raw
        if schedule.cap:
            result = min(result, schedule.cap)
        return result

    if isinstance(schedule, Tiered):
        return accumulate_tiers(schedule.tiers, value)

    if isinstance(schedule, Thresholded):
        if value <= schedule.below_threshold:
            return schedule.below_amount
        fee = accumulate_tiers(schedule.tiers, value)
        if schedule.cap:
            fee = min(fee, schedule.cap)
        return fee

    logger.warning(f"Unrecognised fee schedule {type(schedule).__name__}; treating as £0")
    return 0.0
