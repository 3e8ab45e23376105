"""Rank brokers for a user by blending annual cost with stated preferences."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List

from ..fees.composer import compute_cost
from ..models import (
    ETFS,
    FUNDS,
    BrokerFeeProfile,
    CostResult,
    RankedBroker,
    UserProfile,
)
from .eligibility import check_eligibility

logger = logging.getLogger(__name__)

RATING_WEIGHT = 8
DRAWDOWN_BONUS = 20

COST_WEIGHT_LOWEST_FEES = 0.8
COST_WEIGHT_DEFAULT = 0.55


def score_broker(broker: BrokerFeeProfile, profile: UserProfile) -> float:
    """Preference score: rating matches plus fee-model bonuses and penalties."""
    priorities = profile.priorities or ("lowest_fees",)
    ratings = broker.ratings
    score = 0.0

    if "customer_service" in priorities:
        score += ratings.customer_service * RATING_WEIGHT
    if "wide_range" in priorities:
        score += ratings.investment_range * RATING_WEIGHT
    if "easy_to_use" in priorities:
        score += ratings.ease_of_use * RATING_WEIGHT
    if "fscs" in priorities:
        score += ratings.established * RATING_WEIGHT
    if "drawdown" in priorities and broker.has_drawdown:
        score += DRAWDOWN_BONUS

    fee_model = profile.fee_model
    if fee_model == "zero_fee":
        score += 40 if broker.zero_fees else -15
    elif fee_model == "flat_fee":
        if broker.category == "flat" and not broker.zero_fees:
            score += 35
        elif broker.category == "flat":
            score += 15
        else:
            score -= 10
    elif fee_model == "percentage_fee":
        score += 35 if broker.category == "percentage" else -10
    elif fee_model == "direct_fee":
        if ratings.established >= 4 and not broker.zero_fees:
            score += 40
        elif broker.zero_fees:
            score -= 20
        elif broker.category == "trading":
            score -= 15

    return score


def _portfolio_label(value: float) -> str:
    if value >= 1000:
        return f"£{value / 1000:.0f}k"
    return f"£{value:g}"


def recommendation_reason(broker: BrokerFeeProfile, cost: CostResult, profile: UserProfile) -> str:
    value = profile.total_value
    investment_types = profile.investment_types or (ETFS,)
    reasons = []

    if cost.total_cost == 0:
        reasons.append("zero total fees")
    elif cost.platform_fee == 0:
        reasons.append("zero platform fee")

    if value >= 100_000 and broker.category == "flat":
        reasons.append("flat fee saves money on larger portfolios")
    if value < 25_000 and broker.category == "percentage":
        reasons.append("percentage fee is low on smaller portfolios")

    if FUNDS in investment_types and broker.fund_trade == 0:
        reasons.append("free fund trading")
    if ETFS in investment_types and broker.etf_trade == 0:
        reasons.append("free ETF trading")
    if broker.ratings.customer_service >= 5:
        reasons.append("top-rated customer service")
    if broker.ratings.investment_range >= 5:
        reasons.append("widest investment range")

    if not reasons:
        reasons.append("competitive overall costs")
    return f"{' and '.join(reasons[:2])} on your {_portfolio_label(value)} portfolio"


def rank_brokers(brokers: Iterable[BrokerFeeProfile], profile: UserProfile) -> List[RankedBroker]:
    """Cost, eligibility and score for every broker, best first.

    Cost and preference score are normalised against the eligible brokers
    (cheapest scores 100 on cost, best-matching 100 on preference) and blended
    80/20 when the user prioritises low fees, 55/45 otherwise. Ineligible
    brokers sort last and carry no rank.
    """
    evaluated = []
    for broker in brokers:
        eligibility = check_eligibility(broker, profile)
        cost = compute_cost(broker, profile)
        evaluated.append(
            RankedBroker(
                broker=broker,
                cost=cost,
                eligible=eligibility.eligible,
                warnings=eligibility.warnings,
                priority_score=score_broker(broker, profile),
                blended_score=0.0,
                reason=recommendation_reason(broker, cost, profile),
            )
        )

    eligible = [r for r in evaluated if r.eligible]
    max_cost = max([r.cost.total_cost for r in eligible] + [1])
    max_priority = max([r.priority_score for r in eligible] + [1])
    cost_weight = COST_WEIGHT_LOWEST_FEES if "lowest_fees" in (profile.priorities or ()) else COST_WEIGHT_DEFAULT
    priority_weight = 1 - cost_weight

    blended = []
    for result in evaluated:
        cost_score = 100 * (1 - result.cost.total_cost / max_cost)
        priority_score = max(0.0, 100 * (result.priority_score / max_priority))
        score = round(cost_score * cost_weight + priority_score * priority_weight, 4)
        blended.append(replace(result, blended_score=score))

    blended.sort(key=lambda r: (not r.eligible, -r.blended_score))

    ranked = []
    position = 0
    for result in blended:
        if result.eligible:
            position += 1
            result = replace(result, rank=position)
        ranked.append(result)

    logger.info(f"Ranked {len(ranked)} brokers ({len(eligible)} eligible)")
    return ranked
