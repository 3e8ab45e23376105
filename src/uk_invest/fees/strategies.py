"""Pricing strategies for platforms whose charges don't fit the generic model.

A broker names its strategy in the snapshot (``pricing_strategy``); the
registry below resolves that name. Strategies receive the platform fee the
generic model produced and return the platform fee and trading cost to use.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..models import (
    STRATEGY_ALLOWANCE,
    STRATEGY_DUAL_PLAN,
    STRATEGY_GENERIC,
    BrokerFeeProfile,
    PricingPlan,
)
from .context import FAMILY_BONDS, FAMILY_ETFS, FAMILY_FUNDS, FAMILY_SHARES, PricingContext
from .describe import format_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingOutcome:
    platform_fee: float
    trading_cost: float
    platform_formula: Optional[str] = None
    trading_formula: Optional[str] = None
    plan: Optional[str] = None


def _regular_price(broker: BrokerFeeProfile, ctx: PricingContext) -> Optional[float]:
    if ctx.is_regular and broker.regular_investing_price is not None:
        return broker.regular_investing_price
    return None


def standard_trading_cost(broker: BrokerFeeProfile, ctx: PricingContext) -> float:
    """Trades spread evenly over the user's instrument families, priced per trade."""
    per_family = ctx.trades_per_family
    regular = _regular_price(broker, ctx)
    cost = 0.0

    if ctx.holds(FAMILY_FUNDS) and broker.fund_trade is not None:
        if regular is not None:
            price = broker.regular_investing_funds if broker.regular_investing_funds is not None else regular
        else:
            price = broker.fund_trade
        cost += price * per_family

    if ctx.holds(FAMILY_ETFS) and broker.etf_trade is not None:
        cost += (regular if regular is not None else broker.etf_trade) * per_family

    if ctx.holds(FAMILY_SHARES) and broker.supports_shares():
        if broker.share_trade is not None or broker.etf_trade is not None:
            if regular is not None:
                price = regular
            else:
                price = broker.share_trade if broker.share_trade is not None else broker.etf_trade
                if ctx.gia_without_isa:
                    if ctx.intl_shares_only and broker.share_trade_gia_intl is not None:
                        price = broker.share_trade_gia_intl
                    elif broker.share_trade_gia_uk is not None:
                        price = broker.share_trade_gia_uk
            cost += price * per_family

    if ctx.holds(FAMILY_BONDS):
        bond_price = next(
            (p for p in (broker.bond_trade, broker.share_trade, broker.etf_trade) if p is not None),
            None,
        )
        if bond_price is not None:
            cost += (regular if regular is not None else bond_price) * per_family

    return cost


class PricingStrategy:
    name = STRATEGY_GENERIC

    def price(self, broker: BrokerFeeProfile, ctx: PricingContext, platform_fee: float) -> PricingOutcome:
        return PricingOutcome(platform_fee=platform_fee, trading_cost=standard_trading_cost(broker, ctx))


class PercentageAfterAllowance(PricingStrategy):
    """A monthly allowance of free ETF/share trades, then a percentage per trade.

    Trade size is a fixed contribution for regular investors. For ad-hoc
    trading it is the portfolio spread over the year's trades, held to a
    ceiling so large portfolios don't imply absurd trade sizes.
    """

    name = STRATEGY_ALLOWANCE

    def price(self, broker, ctx, platform_fee):
        allowance = broker.allowance
        if allowance is None:
            logger.warning(f"{broker.name}: {self.name} pricing without an allowance, using standard prices")
            return super().price(broker, ctx, platform_fee)

        per_family = ctx.trades_per_family
        relevant = (per_family if ctx.holds(FAMILY_ETFS) else 0) + (per_family if ctx.holds(FAMILY_SHARES) else 0)
        if relevant <= 0:
            return PricingOutcome(platform_fee=platform_fee, trading_cost=0.0)

        paid = max(0.0, relevant - allowance.free_trades_per_month * 12)
        if ctx.is_regular:
            trade_size = allowance.regular_trade_size
        else:
            trade_size = min(ctx.value / max(relevant, 1), allowance.max_trade_size)
        cost = paid * trade_size * allowance.rate
        formula = None
        if cost > 0:
            formula = (
                f"{paid:g} paid trades × {format_money(trade_size)} × {allowance.rate * 100:.2f}%"
                f" ({allowance.free_trades_per_month} free/month)"
            )
        return PricingOutcome(platform_fee=platform_fee, trading_cost=cost, trading_formula=formula)


class DualPlan(PricingStrategy):
    """Flat-fee subscription plans, each with its own dealing prices.

    Every plan is costed in full and the cheapest wins; the earlier plan wins
    a tie. Regular investing is priced at the plan's regular-investing price.
    """

    name = STRATEGY_DUAL_PLAN

    @staticmethod
    def plan_trading_cost(plan: PricingPlan, ctx: PricingContext) -> float:
        if ctx.is_regular:
            return plan.regular_investing * ctx.trades_per_year
        etf_share_price = plan.etf_trade if plan.etf_trade is not None else plan.fund_trade
        per_family = ctx.trades_per_family
        cost = 0.0
        if ctx.holds(FAMILY_FUNDS):
            cost += plan.fund_trade * per_family
        for family in (FAMILY_ETFS, FAMILY_SHARES, FAMILY_BONDS):
            if ctx.holds(family):
                cost += etf_share_price * per_family
        return cost

    def price(self, broker, ctx, platform_fee):
        if not broker.plans:
            logger.warning(f"{broker.name}: {self.name} pricing without plans, using standard prices")
            return super().price(broker, ctx, platform_fee)

        best = None
        for plan in broker.plans:
            trading = self.plan_trading_cost(plan, ctx)
            if best is None or plan.fee + trading < best[0].fee + best[1]:
                best = (plan, trading)
        plan, trading = best
        logger.debug(f"{broker.name}: selected {plan.name} plan ({format_money(plan.fee + trading)})")
        return PricingOutcome(
            platform_fee=plan.fee,
            trading_cost=trading,
            platform_formula=f"{format_money(plan.fee)} flat fee ({plan.name} Plan)",
            plan=plan.name,
        )


STRATEGIES: Dict[str, PricingStrategy] = {
    STRATEGY_GENERIC: PricingStrategy(),
    STRATEGY_ALLOWANCE: PercentageAfterAllowance(),
    STRATEGY_DUAL_PLAN: DualPlan(),
}


def get_strategy(name: str) -> PricingStrategy:
    strategy = STRATEGIES.get(name)
    if strategy is None:
        logger.warning(f"Unknown pricing strategy {name!r}, using generic pricing")
        return STRATEGIES[STRATEGY_GENERIC]
    return strategy
