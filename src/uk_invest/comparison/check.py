"""Quick "am I overpaying?" check under default assumptions.

Every broker offering an ISA with ETFs is costed for an ISA holding ETFs,
investing monthly and rarely converting currency, then sorted by total cost.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..fees.composer import compute_cost
from ..models import ETFS, INSTRUMENT_ETF, ISA, BrokerFeeProfile, CostResult, UserProfile

logger = logging.getLogger(__name__)

CHECK_DEFAULTS = UserProfile(
    accounts=(ISA,),
    investment_types=(ETFS,),
    trading_frequency="monthly",
    fx_trading="rarely",
    drawdown_soon=False,
)
MAX_ALTERNATIVES = 3
COMPOUND_YEARS = 20
COMPOUND_GROWTH_RATE = 0.07


@dataclass(frozen=True)
class QuickCheckResult:
    portfolio_value: float
    costs: List[Tuple[BrokerFeeProfile, CostResult]]
    current: Optional[Tuple[BrokerFeeProfile, CostResult]] = None
    rank: Optional[int] = None
    cheaper_count: int = 0
    alternatives: List[Tuple[BrokerFeeProfile, CostResult]] = field(default_factory=list)
    annual_saving: float = 0.0
    compound_saving: float = 0.0

    @property
    def cheapest(self) -> Optional[Tuple[BrokerFeeProfile, CostResult]]:
        return self.costs[0] if self.costs else None


def compound_savings(annual_saving: float, years: int = COMPOUND_YEARS, growth_rate: float = COMPOUND_GROWTH_RATE) -> float:
    """Future value of investing ``annual_saving`` at the start of each year."""
    total = 0.0
    for _ in range(years):
        total = (total + annual_saving) * (1 + growth_rate)
    return total


def quick_check(
    brokers: Iterable[BrokerFeeProfile],
    portfolio_value: float,
    current_slug: Optional[str] = None,
) -> QuickCheckResult:
    profile = CHECK_DEFAULTS.with_portfolio_value(max(0.0, portfolio_value or 0.0))
    candidates = [b for b in brokers if ISA in b.accounts and INSTRUMENT_ETF in b.investment_types]
    costs = sorted(
        ((b, compute_cost(b, profile)) for b in candidates),
        key=lambda entry: entry[1].total_cost,
    )
    if current_slug is None or not costs:
        return QuickCheckResult(
            portfolio_value=profile.portfolio_value,
            costs=costs,
            alternatives=costs[:MAX_ALTERNATIVES],
        )

    position = next((i for i, (b, _) in enumerate(costs) if b.slug == current_slug), None)
    if position is None:
        logger.info(f"{current_slug} does not offer an ISA with ETFs, skipping rank")
        return QuickCheckResult(
            portfolio_value=profile.portfolio_value,
            costs=costs,
            alternatives=costs[:MAX_ALTERNATIVES],
        )

    current = costs[position]
    alternatives = [entry for entry in costs if entry[0].slug != current_slug][:MAX_ALTERNATIVES]
    saving = round(max(0.0, current[1].total_cost - costs[0][1].total_cost), 2)
    return QuickCheckResult(
        portfolio_value=profile.portfolio_value,
        costs=costs,
        current=current,
        rank=position + 1,
        cheaper_count=position,
        alternatives=alternatives,
        annual_saving=saving,
        compound_saving=round(compound_savings(saving), 2) if saving > 0 else 0.0,
    )
