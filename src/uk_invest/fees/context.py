"""Derived facts about a user profile that every pricing step needs."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..models import (
    BONDS,
    ETFS,
    FUND_LIKE,
    FUNDS,
    GIA,
    ISA,
    SHARE_LIKE,
    SHARES_INTL,
    SHARES_UK,
    TRADING_FREQUENCIES,
    UserProfile,
)
from .schedule import clamp_value

# Families that trades are spread across; UK and international shares share one
FAMILY_FUNDS = "funds"
FAMILY_ETFS = "etfs"
FAMILY_SHARES = "shares"
FAMILY_BONDS = "bonds"

DEFAULT_TRADING = TRADING_FREQUENCIES["monthly"]


@dataclass(frozen=True)
class PricingContext:
    accounts: Tuple[str, ...]
    investment_types: Tuple[str, ...]
    value: float
    balances: Optional[Dict[str, float]]
    trades_per_year: int
    is_regular: bool
    fund_share: float
    share_share: float
    families: Tuple[str, ...]
    fx_trading: str
    needs_sipp: bool
    needs_drawdown: bool

    @property
    def trades_per_family(self) -> float:
        return self.trades_per_year / (len(self.families) or 1)

    def holds(self, family: str) -> bool:
        return family in self.families

    @property
    def holds_intl(self) -> bool:
        return SHARES_INTL in self.investment_types

    @property
    def intl_shares_only(self) -> bool:
        return SHARES_INTL in self.investment_types and SHARES_UK not in self.investment_types

    @property
    def gia_without_isa(self) -> bool:
        return GIA in self.accounts and ISA not in self.accounts

    def account_balance(self, account: str) -> float:
        """Balance held in ``account``; an even split of the total when balances are unknown."""
        if self.balances is None:
            return self.value / len(self.accounts)
        return self.balances.get(account, 0.0)


def _dedupe(items, default) -> Tuple[str, ...]:
    seen = []
    for item in items or ():
        if item not in seen:
            seen.append(item)
    return tuple(seen) or default


def _fund_split(investment_types: Tuple[str, ...], asset_split: Optional[float]) -> Tuple[float, float]:
    has_fund_like = any(t in FUND_LIKE for t in investment_types)
    has_share_like = any(t in SHARE_LIKE for t in investment_types)
    if has_fund_like and has_share_like:
        if asset_split is None:
            fund = 0.5
        else:
            fund = min(max(clamp_value(asset_split), 0.0), 100.0) / 100
        return fund, 1 - fund
    if has_fund_like:
        return 1.0, 0.0
    return 0.0, 1.0


def build_context(profile: UserProfile) -> PricingContext:
    accounts = _dedupe(profile.accounts, (ISA,))
    investment_types = _dedupe(profile.investment_types, (ETFS,))
    trades_per_year, is_regular = TRADING_FREQUENCIES.get(profile.trading_frequency, DEFAULT_TRADING)

    balances = None
    if profile.balances is not None:
        balances = {a: clamp_value(profile.balances.get(a)) for a in accounts}
        value = sum(balances.values())
    else:
        value = clamp_value(profile.portfolio_value)

    fund_share, share_share = _fund_split(investment_types, profile.asset_split)

    families = []
    if FUNDS in investment_types:
        families.append(FAMILY_FUNDS)
    if ETFS in investment_types:
        families.append(FAMILY_ETFS)
    if SHARES_UK in investment_types or SHARES_INTL in investment_types:
        families.append(FAMILY_SHARES)
    if BONDS in investment_types:
        families.append(FAMILY_BONDS)

    return PricingContext(
        accounts=accounts,
        investment_types=investment_types,
        value=value,
        balances=balances,
        trades_per_year=trades_per_year,
        is_regular=is_regular,
        fund_share=fund_share,
        share_share=share_share,
        families=tuple(families),
        fx_trading=profile.fx_trading,
        needs_sipp=profile.needs_sipp,
        needs_drawdown=profile.needs_drawdown,
    )
