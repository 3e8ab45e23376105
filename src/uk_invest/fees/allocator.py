"""Split an aggregate platform fee across a household's accounts.

UK platforms charge on the combined value of every wrapper a customer holds,
then cap the share/ETF part of the fee per wrapper. Fund-like holdings are
never capped.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Optional

from ..models import ACCOUNT_LABELS, GIA, AccountFeeBreakdown, FeeSchedule
from .describe import format_money
from .schedule import clamp_value, evaluate_fee_schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allocation:
    total: float
    per_account: Dict[str, AccountFeeBreakdown] = field(default_factory=dict)


def pooled_cap(caps: Mapping[str, float], accounts: Iterable[str]) -> Optional[float]:
    """Combined share/ETF cap for ``accounts`` when balances per account are unknown.

    Returns None (no capping) if a GIA is among the accounts: without balances
    there is no telling whether a capped wrapper is large enough for its cap to
    bind, so capping is disabled rather than guessed. Callers that want caps to
    apply should supply per-account balances.
    """
    accounts = list(accounts)
    if GIA in accounts:
        return None
    total = 0.0
    has_cap = False
    for account in accounts:
        cap = caps.get(account)
        if cap:
            total += cap
            has_cap = True
    return total if has_cap else None


def _account_formula(account: str, info: AccountFeeBreakdown) -> str:
    label = ACCOUNT_LABELS.get(account, account.upper())
    if info.cap and info.final < info.base_fee:
        return (
            f"{label}: {format_money(info.base_fee)}, capped at {format_money(info.cap)}"
            f" → {format_money(info.final)}"
        )
    return f"{label}: {format_money(info.final)}"


def allocate_platform_fee(
    schedule: Optional[FeeSchedule],
    balances: Optional[Mapping[str, float]],
    accounts: Iterable[str],
    fund_share: float,
    caps: Optional[Mapping[str, float]] = None,
    portfolio_value: float = 0.0,
) -> Allocation:
    """Platform fee for the household, with per-account detail when it was split.

    With ``balances`` the fee is computed once on their sum and apportioned by
    balance; each account's share/ETF portion is capped at that account's cap.
    Without ``balances`` the schedule is evaluated on ``portfolio_value`` and
    the share/ETF portion is held to the pooled cap, if any.
    """
    caps = caps or {}
    accounts = list(dict.fromkeys(accounts))
    fund_share = min(max(fund_share, 0.0), 1.0)
    share_share = 1 - fund_share

    if balances is None:
        fee = evaluate_fee_schedule(schedule, portfolio_value)
        if not caps or share_share <= 0:
            return Allocation(fee)
        cap = pooled_cap(caps, accounts)
        if cap is None:
            return Allocation(fee)
        return Allocation(fee * fund_share + min(fee * share_share, cap))

    funded = {}
    for account in accounts:
        balance = clamp_value(balances.get(account))
        if balance > 0:
            funded[account] = balance
    total_value = sum(funded.values())
    if total_value <= 0:
        return Allocation(0.0)

    base_fee = evaluate_fee_schedule(schedule, total_value)
    if not caps or share_share <= 0:
        return Allocation(base_fee)

    total = 0.0
    per_account: Dict[str, AccountFeeBreakdown] = {}
    for account, balance in funded.items():
        account_fee = base_fee * balance / total_value
        fund_fee = account_fee * fund_share
        share_fee_raw = account_fee * share_share
        cap = caps.get(account)
        share_fee = min(share_fee_raw, cap) if cap and cap > 0 else share_fee_raw
        final = fund_fee + share_fee
        total += final

        info = AccountFeeBreakdown(
            balance=balance,
            base_fee=round(account_fee, 2),
            fund_fee=round(fund_fee, 2),
            share_fee_raw=round(share_fee_raw, 2),
            cap=cap,
            final=round(final, 2),
        )
        per_account[account] = replace(info, formula=_account_formula(account, info))

    logger.debug(f"Allocated {format_money(base_fee)} across {len(per_account)} accounts -> {format_money(total)}")
    return Allocation(total, per_account)
