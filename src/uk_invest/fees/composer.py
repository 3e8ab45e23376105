"""Total annual cost of holding a user's portfolio at one broker.

compute_cost() adds five components, each rounded to pennies:

    platform fee + SIPP surcharge + trading + FX + drawdown

Platform fee overrides apply in this order:
    1. GIA-only holders at brokers with a GIA-specific schedule
    2. an account-specific schedule replacing the general one (e.g. ISA)
    3. aggregate fee, split per account when balances and caps are known
    4. aggregate fee with a pooled cap otherwise
    5. per-account minimum charge
    6. flat sub-threshold fee waived for regular investors
then the broker's pricing strategy may replace the trading cost (and, for
plan-based pricing, the platform fee).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..models import (
    ACCOUNT_LABELS,
    GIA,
    SIPP,
    AccountFeeBreakdown,
    BrokerFeeProfile,
    ComponentBreakdown,
    CostBreakdown,
    CostResult,
    Percentage,
    Thresholded,
    UserProfile,
)
from .allocator import allocate_platform_fee
from .context import PricingContext, build_context
from .describe import describe_fee_schedule, format_money
from .schedule import evaluate_fee_schedule, round_money
from .strategies import get_strategy

logger = logging.getLogger(__name__)

FX_FACTORS = {"rarely": 0.0, "sometimes": 0.03, "frequently": 0.10}
# Share of the portfolio converted each year by frequent traders of international shares
FX_FACTOR_INTL_FREQUENT = 0.12
# Assumed dividend yield on international holdings
DIVIDEND_YIELD = 0.02
# fx_rates key priced for SIPP holders (the plan that unlocks a SIPP)
SIPP_FX_TIER = "plus"


@dataclass(frozen=True)
class PlatformFee:
    amount: float
    formula: str
    per_account: Dict[str, AccountFeeBreakdown] = field(default_factory=dict)


def _funded_account_count(broker: BrokerFeeProfile, ctx: PricingContext) -> int:
    count = 0
    for account in ctx.accounts:
        if account not in broker.accounts:
            continue
        if ctx.balances is not None and account in ctx.balances and ctx.balances[account] <= 0:
            continue
        count += 1
    return count


def _platform_fee(broker: BrokerFeeProfile, ctx: PricingContext) -> PlatformFee:
    """Platform fee after account overrides, minimums and the regular-investor waiver.

    An account-specific schedule is priced on that account's balance only.
    Without balances the account is assumed to hold an even share of the
    total, not the whole portfolio, so an ISA override for an ISA + GIA
    holder is not charged on money sitting in the GIA.
    """
    schedule = broker.platform_fee
    if schedule is None:
        return PlatformFee(0.0, "£0")

    overridden = next((a for a in ctx.accounts if a != GIA and a in broker.account_fees), None)
    per_account: Dict[str, AccountFeeBreakdown] = {}

    if ctx.accounts == (GIA,) and GIA in broker.account_fees:
        gia_schedule = broker.account_fees[GIA]
        amount = evaluate_fee_schedule(gia_schedule, ctx.value)
        formula = describe_fee_schedule(gia_schedule, ctx.value) if amount else "£0 (no fee on GIA-only holdings)"
    elif overridden is not None:
        override = broker.account_fees[overridden]
        balance = ctx.account_balance(overridden)
        amount = evaluate_fee_schedule(override, balance)
        formula = f"{ACCOUNT_LABELS[overridden]}: {describe_fee_schedule(override, balance)}"
    else:
        allocation = allocate_platform_fee(
            schedule,
            ctx.balances,
            ctx.accounts,
            ctx.fund_share,
            caps=broker.platform_fee_caps,
            portfolio_value=ctx.value,
        )
        amount = allocation.total
        per_account = allocation.per_account
        if per_account:
            formula = "; ".join(info.formula for info in per_account.values())
        else:
            formula = describe_fee_schedule(schedule, ctx.value)
            if amount < evaluate_fee_schedule(schedule, ctx.value):
                formula += f", ETF/share portion capped → {format_money(amount)}"

    if broker.minimum_per_account and isinstance(schedule, Percentage) and schedule.minimum:
        accounts_charged = _funded_account_count(broker, ctx)
        minimum_total = schedule.minimum * accounts_charged
        if minimum_total > amount:
            amount = minimum_total
            formula = f"{format_money(schedule.minimum)} minimum × {accounts_charged} accounts"

    if (
        isinstance(schedule, Thresholded)
        and schedule.regular_waives_below
        and ctx.is_regular
        and ctx.value <= schedule.below_threshold
    ):
        amount = 0.0
        formula = f"£0 (waived for regular investors below {format_money(schedule.below_threshold)})"

    return PlatformFee(amount, formula, per_account)


def _sipp_cost(broker: BrokerFeeProfile, ctx: PricingContext) -> ComponentBreakdown:
    if not ctx.needs_sipp:
        return ComponentBreakdown("N/A", 0.0)
    balance = ctx.balances.get(SIPP, 0.0) if ctx.balances is not None else ctx.value
    if balance <= 0:
        return ComponentBreakdown("£0", 0.0)

    cost = 0.0
    parts = []
    if broker.sipp_fee is not None:
        cost = evaluate_fee_schedule(broker.sipp_fee, balance)
        parts.append(describe_fee_schedule(broker.sipp_fee, balance))
    if broker.sipp_extra:
        cost += broker.sipp_extra
        parts.append(f"{format_money(broker.sipp_extra)} SIPP surcharge")
    if broker.sipp_min and cost < broker.sipp_min:
        cost = broker.sipp_min
        parts.append(f"min {format_money(broker.sipp_min)}")
    if broker.sipp_surcharge_amount and broker.sipp_surcharge_below and balance < broker.sipp_surcharge_below:
        cost += broker.sipp_surcharge_amount
        parts.append(
            f"{format_money(broker.sipp_surcharge_amount)} (below {format_money(broker.sipp_surcharge_below)})"
        )

    total = round_money(cost)
    if total <= 0:
        return ComponentBreakdown("£0", 0.0)
    return ComponentBreakdown(" + ".join(parts) if parts else format_money(total), total)


def effective_fx_rate(broker: BrokerFeeProfile, profile_needs_sipp: bool) -> float:
    rate = broker.fx_rate or 0.0
    if profile_needs_sipp and SIPP_FX_TIER in broker.fx_rates:
        rate = broker.fx_rates[SIPP_FX_TIER]
    return rate


def _fx_cost(broker: BrokerFeeProfile, ctx: PricingContext) -> ComponentBreakdown:
    rate = effective_fx_rate(broker, ctx.needs_sipp)
    factor = FX_FACTORS.get(ctx.fx_trading, 0.0)
    cost = 0.0
    if rate > 0 and factor > 0:
        if ctx.holds_intl and ctx.fx_trading == "frequently":
            factor = max(factor, FX_FACTOR_INTL_FREQUENT)
        cost = ctx.value * rate * factor
    if broker.fx_dividends_rate and ctx.holds_intl and factor > 0:
        cost += ctx.value * broker.fx_dividends_rate * DIVIDEND_YIELD

    total = round_money(cost)
    if total > 0:
        return ComponentBreakdown(
            f"{format_money(ctx.value)} × {rate * 100:.2f}% FX rate (estimated)", total
        )
    return ComponentBreakdown("£0 (no FX trading)" if factor == 0 else "£0", 0.0)


def _drawdown_cost(broker: BrokerFeeProfile, ctx: PricingContext) -> ComponentBreakdown:
    if not ctx.needs_drawdown:
        return ComponentBreakdown("N/A", 0.0)
    total = round_money(broker.sipp_drawdown_fee or 0.0)
    if total > 0:
        return ComponentBreakdown(f"{format_money(total)}/yr drawdown fee", total)
    return ComponentBreakdown("£0", 0.0)


def _trading_formula(total: float, ctx: PricingContext, override: Optional[str]) -> str:
    if total > 0 and override:
        return override
    if total > 0 and ctx.trades_per_year > 0:
        return f"{ctx.trades_per_year} trades/yr × {format_money(round(total / ctx.trades_per_year, 2))} avg"
    if total > 0:
        return f"{format_money(total)} total"
    return "£0 (free regular investing)" if ctx.is_regular else "£0"


def compute_cost(broker: BrokerFeeProfile, profile: UserProfile) -> CostResult:
    """Annual cost of ``profile``'s portfolio at ``broker``, with an itemised breakdown."""
    ctx = build_context(profile)

    platform = _platform_fee(broker, ctx)
    outcome = get_strategy(broker.pricing_strategy).price(broker, ctx, platform.amount)
    sipp = _sipp_cost(broker, ctx)
    fx = _fx_cost(broker, ctx)
    drawdown = _drawdown_cost(broker, ctx)

    platform_total = round_money(outcome.platform_fee)
    trading_total = round_money(outcome.trading_cost)
    platform_formula = outcome.platform_formula or platform.formula
    per_account = platform.per_account if outcome.plan is None else {}

    total = round_money(platform_total + sipp.total + trading_total + fx.total + drawdown.total)
    logger.debug(f"{broker.name}: {format_money(total)} total for {format_money(ctx.value)}")

    breakdown = CostBreakdown(
        platform_fee=ComponentBreakdown(platform_formula, platform_total),
        sipp_cost=sipp,
        trading_cost=ComponentBreakdown(
            _trading_formula(trading_total, ctx, outcome.trading_formula), trading_total
        ),
        fx_cost=fx,
        drawdown_cost=drawdown,
        per_account=per_account,
    )
    return CostResult(
        broker=broker.name,
        platform_fee=platform_total,
        sipp_cost=sipp.total,
        trading_cost=trading_total,
        fx_cost=fx.total,
        drawdown_cost=drawdown.total,
        total_cost=total,
        fund_pv=round_money(ctx.value * ctx.fund_share),
        share_pv=round_money(ctx.value * ctx.share_share),
        breakdown=breakdown,
        fx_not_disclosed=broker.fx_rate is None,
        plan=outcome.plan,
    )
