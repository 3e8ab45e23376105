"""Human-readable explanations of fee schedules.

``describe_fee_schedule`` explains how a figure was reached for one portfolio
value (used in cost breakdowns). ``summarise_fee_schedule`` states the tariff
itself (used in broker listings).
"""
from __future__ import annotations

from typing import Iterable, Optional

from ..models import BrokerFeeProfile, FeeSchedule, Fixed, Percentage, Thresholded, Tier, Tiered
from .schedule import _finite, accumulate_tiers, clamp_value


def format_money(value: float) -> str:
    """£1,234 for whole pounds, £1,234.50 otherwise."""
    if not _finite(value):
        return "£0"
    if value < 0:
        return "-" + format_money(-value)
    value = round(value, 2)
    if value == int(value):
        return f"£{value:,.0f}"
    return f"£{value:,.2f}"


def format_rate(rate: float) -> str:
    if not _finite(rate):
        return "0%"
    pct = rate * 100
    if round(pct, 6) == int(round(pct, 6)):
        return f"{pct:.0f}%"
    return f"{pct:.2f}%"


def format_thousands(value: float) -> str:
    if value >= 1000:
        return f"£{value / 1000:g}k"
    return f"£{value:g}"


def _describe_tiers(tiers: Iterable[Tier], portfolio_value: float) -> str:
    parts = []
    remaining = clamp_value(portfolio_value)
    prev_limit = 0.0
    for tier in tiers:
        if remaining <= 0:
            break
        if tier.is_terminal:
            if _finite(tier.rate):
                amount = round(remaining * tier.rate, 2)
                parts.append(
                    f"Above {format_thousands(prev_limit)} × {format_rate(tier.rate)} = {format_money(amount)}"
                )
            break
        if not _finite(tier.up_to) or not _finite(tier.rate):
            continue
        in_band = min(remaining, max(0.0, tier.up_to - prev_limit))
        if in_band > 0:
            amount = round(in_band * tier.rate, 2)
            if prev_limit == 0:
                label = f"First {format_thousands(tier.up_to)}"
            else:
                label = f"Above {format_thousands(prev_limit)}"
            parts.append(f"{label} × {format_rate(tier.rate)} = {format_money(amount)}")
        remaining -= in_band
        prev_limit = max(prev_limit, tier.up_to)
    return ", ".join(parts)


def describe_fee_schedule(schedule: Optional[FeeSchedule], portfolio_value: float) -> str:
    """Explain the charge ``schedule`` makes on ``portfolio_value``."""
    if schedule is None:
        return "£0"
    value = clamp_value(portfolio_value)

    if isinstance(schedule, Fixed):
        return f"{format_money(schedule.amount)} flat fee"

    if isinstance(schedule, Percentage):
        raw = value * schedule.rate if _finite(schedule.rate) else 0.0
        desc = f"{format_money(value)} × {format_rate(schedule.rate)}"
        if schedule.flat_extra:
            desc += f" + {format_money(schedule.flat_extra)}"
        if schedule.minimum and raw < schedule.minimum:
            desc += f" (min {format_money(schedule.minimum)})"
        if schedule.cap and raw + (schedule.flat_extra or 0) > schedule.cap:
            desc += f", capped at {format_money(schedule.cap)}"
        return desc

    if isinstance(schedule, Tiered):
        return _describe_tiers(schedule.tiers, value)

    if isinstance(schedule, Thresholded):
        if value <= schedule.below_threshold:
            return f"Below {format_money(schedule.below_threshold)}: {format_money(schedule.below_amount)} flat"
        desc = _describe_tiers(schedule.tiers, value)
        if schedule.cap and accumulate_tiers(schedule.tiers, value) > schedule.cap:
            desc += f", capped at {format_money(schedule.cap)}"
        return desc

    return "£0"


# ========================================================================================
# TARIFF SUMMARIES
# ========================================================================================

def _summarise_tiers(tiers: Iterable[Tier]) -> str:
    parts = []
    prev = 0.0
    for tier in tiers:
        if not _finite(tier.rate):
            continue
        if tier.is_terminal:
            parts.append(f"{tier.rate * 100:.2f}% above £{tier.above / 1000:.0f}k")
            continue
        if not _finite(tier.up_to):
            continue
        which = "first" if prev == 0 else "next"
        parts.append(f"{tier.rate * 100:.2f}% on {which} £{(tier.up_to - prev) / 1000:.0f}k")
        prev = tier.up_to
    return ", ".join(parts)


def summarise_fee_schedule(schedule: Optional[FeeSchedule]) -> str:
    if schedule is None:
        return "N/A"
    if isinstance(schedule, Fixed):
        return "Free (£0)" if schedule.amount == 0 else f"£{schedule.amount:.2f} per year"
    if isinstance(schedule, Percentage):
        desc = f"{schedule.rate * 100:.2f}% of portfolio value"
        if schedule.flat_extra:
            desc += f" + {format_money(schedule.flat_extra)} base fee"
        if schedule.minimum:
            desc += f" (min {format_money(schedule.minimum)})"
        if schedule.cap:
            desc += f" (max {format_money(schedule.cap)})"
        return desc
    if isinstance(schedule, Tiered):
        return _summarise_tiers(schedule.tiers)
    if isinstance(schedule, Thresholded):
        desc = (
            f"Flat {format_money(schedule.below_amount)} up to {format_money(schedule.below_threshold)}, "
            f"otherwise {_summarise_tiers(schedule.tiers)}"
        )
        if schedule.cap:
            desc += f" (capped at {format_money(schedule.cap)})"
        if schedule.regular_waives_below:
            desc += "; flat fee waived for regular investors"
        return desc
    return "See provider"


def summarise_sipp_fee(broker: BrokerFeeProfile) -> str:
    if not broker.has_sipp:
        return "N/A - no SIPP available"
    desc = ""
    fee = broker.sipp_fee
    if isinstance(fee, Fixed):
        desc = "Included (£0 extra)" if fee.amount == 0 else f"£{fee.amount:.2f} per year"
    elif fee is not None:
        desc = summarise_fee_schedule(fee)
    if broker.sipp_extra:
        desc += f" + {format_money(broker.sipp_extra)}/yr surcharge"
    if broker.sipp_min:
        desc += f" (min {format_money(broker.sipp_min)})"
    if broker.sipp_surcharge_amount and broker.sipp_surcharge_below:
        desc += (
            f" + {format_money(broker.sipp_surcharge_amount)} below "
            f"{format_money(broker.sipp_surcharge_below)}"
        )
    return desc.strip(" +") or "Included"


def format_trade_fee(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    if value == 0:
        return "Free"
    return f"£{value:.2f}"


def format_fx_rate(rate: Optional[float]) -> str:
    if rate is None:
        return "Not disclosed"
    if rate == 0:
        return "Free (0%)"
    return f"{rate * 100:.2f}%"
