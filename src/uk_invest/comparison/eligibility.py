"""Whether a broker can serve a user's accounts and investments at all."""
from __future__ import annotations

import logging
from typing import List

from ..models import (
    BONDS,
    ETFS,
    FUNDS,
    GIA,
    INSTRUMENT_BOND,
    INSTRUMENT_ETF,
    INSTRUMENT_FUND,
    INSTRUMENT_SHARE_INTL,
    INSTRUMENT_SHARE_UK,
    ISA,
    JISA,
    LISA,
    SHARES_INTL,
    SHARES_UK,
    SIPP,
    BrokerFeeProfile,
    EligibilityResult,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Wrappers a broker must offer if the user asks for them
REQUIRED_ACCOUNT_MESSAGES = {
    ISA: "No ISA available",
    SIPP: "No SIPP available",
    JISA: "No JISA available",
    LISA: "No LISA available",
}

INVESTMENT_MESSAGES = {
    FUNDS: "No funds available",
    ETFS: "No ETFs available",
    SHARES_UK: "No UK shares",
    SHARES_INTL: "No international shares",
    BONDS: "No bonds/gilts available",
}


def supports_investment(broker: BrokerFeeProfile, investment_type: str) -> bool:
    if investment_type == FUNDS:
        return broker.fund_trade is not None or INSTRUMENT_FUND in broker.investment_types
    if investment_type == ETFS:
        return broker.etf_trade is not None or INSTRUMENT_ETF in broker.investment_types
    if investment_type == SHARES_UK:
        return INSTRUMENT_SHARE_UK in broker.investment_types
    if investment_type == SHARES_INTL:
        return INSTRUMENT_SHARE_INTL in broker.investment_types
    if investment_type == BONDS:
        return INSTRUMENT_BOND in broker.investment_types
    return False


def check_eligibility(broker: BrokerFeeProfile, profile: UserProfile) -> EligibilityResult:
    """Hard requirements decide ``eligible``; everything else becomes a warning.

    A broker is ineligible if it lacks a wrapper the user needs, if the user
    only wants one kind of investment and the broker doesn't offer it, if it
    offers none of the kinds the user wants, or if the user only wants a GIA
    and the broker has none. Missing drawdown or partial instrument coverage
    only produce warnings.
    """
    accounts = profile.accounts or (ISA,)
    investment_types = profile.investment_types or (ETFS,)
    warnings: List[str] = []
    eligible = True

    for account, message in REQUIRED_ACCOUNT_MESSAGES.items():
        if account in accounts and account not in broker.accounts:
            warnings.append(message)
            eligible = False

    if SIPP in accounts and broker.has_sipp and not broker.has_drawdown:
        if profile.drawdown_soon:
            warnings.append("No SIPP drawdown available")
        else:
            warnings.append("No SIPP drawdown if you need it later")

    unsupported = [t for t in dict.fromkeys(investment_types) if not supports_investment(broker, t)]
    if unsupported:
        warnings.extend(INVESTMENT_MESSAGES.get(t, f"No {t}") for t in unsupported)
        if len(unsupported) == len(set(investment_types)):
            eligible = False
        else:
            warnings.append("Only some of your investment types are available")

    if set(accounts) == {GIA} and GIA not in broker.accounts:
        warnings.append("No GIA available")
        eligible = False

    if not eligible:
        logger.debug(f"{broker.name} ineligible: {'; '.join(warnings)}")
    return EligibilityResult(eligible=eligible, warnings=warnings)
