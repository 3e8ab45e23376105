"""Data models for UK platform fee comparison."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

# Account wrappers
ISA = "isa"
SIPP = "sipp"
GIA = "gia"
JISA = "jisa"
LISA = "lisa"
ACCOUNT_TYPES = (ISA, SIPP, GIA, JISA, LISA)
ACCOUNT_LABELS = {ISA: "ISA", SIPP: "SIPP", GIA: "GIA", JISA: "JISA", LISA: "LISA"}

# What the user wants to hold
FUNDS = "funds"
ETFS = "etfs"
SHARES_UK = "shares_uk"
SHARES_INTL = "shares_intl"
BONDS = "bonds"
INVESTMENT_TYPES = (FUNDS, ETFS, SHARES_UK, SHARES_INTL, BONDS)
FUND_LIKE = (FUNDS, BONDS)
SHARE_LIKE = (ETFS, SHARES_UK, SHARES_INTL)

# What the broker offers
INSTRUMENT_FUND = "fund"
INSTRUMENT_ETF = "etf"
INSTRUMENT_SHARE_UK = "share_uk"
INSTRUMENT_SHARE_INTL = "share_intl"
INSTRUMENT_BOND = "bond"
INSTRUMENT_TYPES = (
    INSTRUMENT_FUND,
    INSTRUMENT_ETF,
    INSTRUMENT_SHARE_UK,
    INSTRUMENT_SHARE_INTL,
    INSTRUMENT_BOND,
)

# trading frequency -> (trades per year, regular investor)
TRADING_FREQUENCIES: Dict[str, Tuple[int, bool]] = {
    "set_and_forget": (2, False),
    "monthly": (12, True),
    "occasional": (9, False),
    "active": (30, False),
}
FX_USAGE = ("rarely", "sometimes", "frequently")

PRIORITIES = (
    "lowest_fees",
    "customer_service",
    "wide_range",
    "easy_to_use",
    "fscs",
    "drawdown",
)
FEE_MODELS = ("no_preference", "zero_fee", "flat_fee", "percentage_fee", "direct_fee")

CATEGORIES = ("flat", "percentage", "trading")

STRATEGY_GENERIC = "generic"
STRATEGY_ALLOWANCE = "percentage_after_allowance"
STRATEGY_DUAL_PLAN = "dual_plan"
PRICING_STRATEGIES = (STRATEGY_GENERIC, STRATEGY_ALLOWANCE, STRATEGY_DUAL_PLAN)


# ========================================================================================
# FEE SCHEDULES
# ========================================================================================

@dataclass(frozen=True)
class Tier:
    """One marginal band. ``above`` is set only on the open-ended final band."""

    rate: Optional[float]
    up_to: Optional[float] = None
    above: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.above is not None


@dataclass(frozen=True)
class Fixed:
    """Constant annual charge."""

    amount: float


@dataclass(frozen=True)
class Percentage:
    """``rate * value (+ flat_extra)``, floored at ``minimum`` then ceiled at ``cap``."""

    rate: float
    flat_extra: Optional[float] = None
    minimum: Optional[float] = None
    cap: Optional[float] = None


@dataclass(frozen=True)
class Tiered:
    tiers: Tuple[Tier, ...]


@dataclass(frozen=True)
class Thresholded:
    """Flat fee at or below ``below_threshold``, tiered percentage above it."""

    below_threshold: float
    below_amount: float
    tiers: Tuple[Tier, ...]
    cap: Optional[float] = None
    regular_waives_below: bool = False


FeeSchedule = Union[Fixed, Percentage, Tiered, Thresholded]


# ========================================================================================
# BROKER SNAPSHOT
# ========================================================================================

@dataclass(frozen=True)
class TradeAllowance:
    """Free trades per month, then a percentage of an estimated trade size."""

    free_trades_per_month: int
    rate: float
    regular_trade_size: float = 500.0
    max_trade_size: float = 5000.0


@dataclass(frozen=True)
class PricingPlan:
    """A flat-fee subscription tier with its own dealing prices."""

    name: str
    fee: float
    fund_trade: float
    etf_trade: Optional[float] = None
    regular_investing: float = 0.0


@dataclass(frozen=True)
class Ratings:
    customer_service: int = 0
    investment_range: int = 0
    ease_of_use: int = 0
    established: int = 0


@dataclass(frozen=True)
class BrokerFeeProfile:
    """Everything needed to price a user's portfolio at one platform."""

    name: str
    slug: str
    category: str
    accounts: Tuple[str, ...]
    investment_types: Tuple[str, ...]
    platform_fee: Optional[FeeSchedule] = None
    # Schedules replacing ``platform_fee`` for a given account type
    account_fees: Dict[str, FeeSchedule] = field(default_factory=dict)
    # Cap on the share/ETF part of the platform fee, per account type
    platform_fee_caps: Dict[str, float] = field(default_factory=dict)
    minimum_per_account: bool = False
    sipp_fee: Optional[FeeSchedule] = None
    sipp_extra: Optional[float] = None
    sipp_min: Optional[float] = None
    sipp_surcharge_amount: Optional[float] = None
    sipp_surcharge_below: Optional[float] = None
    sipp_drawdown_fee: Optional[float] = None
    has_drawdown: bool = False
    fund_trade: Optional[float] = None
    etf_trade: Optional[float] = None
    share_trade: Optional[float] = None
    share_trade_gia_uk: Optional[float] = None
    share_trade_gia_intl: Optional[float] = None
    bond_trade: Optional[float] = None
    regular_investing_price: Optional[float] = None
    regular_investing_funds: Optional[float] = None
    fx_rate: Optional[float] = None  # None means "not disclosed", 0 means free
    fx_rates: Dict[str, float] = field(default_factory=dict)
    fx_dividends_rate: Optional[float] = None
    pricing_strategy: str = STRATEGY_GENERIC
    allowance: Optional[TradeAllowance] = None
    plans: Tuple[PricingPlan, ...] = ()
    zero_fees: bool = False
    ratings: Ratings = field(default_factory=Ratings)
    last_verified: Optional[str] = None
    notes: Optional[str] = None

    @property
    def has_sipp(self) -> bool:
        return SIPP in self.accounts

    def supports_shares(self) -> bool:
        return INSTRUMENT_SHARE_UK in self.investment_types or INSTRUMENT_SHARE_INTL in self.investment_types


# ========================================================================================
# USER PROFILE
# ========================================================================================

@dataclass(frozen=True)
class UserProfile:
    """A user's requirements. Build a new one for every what-if."""

    accounts: Tuple[str, ...] = (ISA,)
    investment_types: Tuple[str, ...] = (ETFS,)
    portfolio_value: float = 0.0
    balances: Optional[Dict[str, float]] = None
    asset_split: Optional[float] = None  # percent of the portfolio held in funds
    trading_frequency: str = "monthly"
    fx_trading: str = "rarely"
    drawdown_soon: bool = False
    priorities: Tuple[str, ...] = ("lowest_fees",)
    fee_model: str = "no_preference"

    @property
    def needs_sipp(self) -> bool:
        return SIPP in self.accounts

    @property
    def needs_drawdown(self) -> bool:
        return self.needs_sipp and bool(self.drawdown_soon)

    @property
    def total_value(self) -> float:
        """Sum of the selected accounts' balances, or the single portfolio value."""
        if self.balances is None:
            return self.portfolio_value
        return sum(v for a, v in self.balances.items() if a in self.accounts and v and v > 0)

    def with_portfolio_value(self, value: float) -> "UserProfile":
        """Same profile at a different total, keeping the per-account proportions."""
        if self.balances is None:
            return replace(self, portfolio_value=value)
        current = self.total_value
        if current > 0:
            balances = {a: (v or 0.0) * value / current for a, v in self.balances.items()}
        else:
            balances = {a: value / len(self.accounts) for a in self.accounts}
        return replace(self, portfolio_value=value, balances=balances)


# ========================================================================================
# RESULTS
# ========================================================================================

@dataclass(frozen=True)
class ComponentBreakdown:
    formula: str
    total: float


@dataclass(frozen=True)
class AccountFeeBreakdown:
    """How one account's share of the aggregate platform fee was derived."""

    balance: float
    base_fee: float
    fund_fee: float
    share_fee_raw: float
    cap: Optional[float]
    final: float
    formula: str = ""


@dataclass(frozen=True)
class CostBreakdown:
    platform_fee: ComponentBreakdown
    sipp_cost: ComponentBreakdown
    trading_cost: ComponentBreakdown
    fx_cost: ComponentBreakdown
    drawdown_cost: ComponentBreakdown
    per_account: Dict[str, AccountFeeBreakdown] = field(default_factory=dict)


@dataclass(frozen=True)
class CostResult:
    """Annual cost of holding the user's portfolio at one broker."""

    broker: str
    platform_fee: float
    sipp_cost: float
    trading_cost: float
    fx_cost: float
    drawdown_cost: float
    total_cost: float
    fund_pv: float
    share_pv: float
    breakdown: CostBreakdown
    fx_not_disclosed: bool = False
    plan: Optional[str] = None

    @property
    def platform_fee_per_account(self) -> Dict[str, AccountFeeBreakdown]:
        return self.breakdown.per_account


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RankedBroker:
    """One broker's place in a comparison."""

    broker: BrokerFeeProfile
    cost: CostResult
    eligible: bool
    warnings: List[str]
    priority_score: float
    blended_score: float
    reason: str
    rank: Optional[int] = None
