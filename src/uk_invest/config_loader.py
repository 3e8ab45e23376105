"""Utilities for loading the broker snapshot and user profiles from YAML."""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml

from .models import (
    ACCOUNT_TYPES,
    CATEGORIES,
    FEE_MODELS,
    FX_USAGE,
    INSTRUMENT_TYPES,
    INVESTMENT_TYPES,
    PRICING_STRATEGIES,
    PRIORITIES,
    STRATEGY_ALLOWANCE,
    STRATEGY_DUAL_PLAN,
    TRADING_FREQUENCIES,
    BrokerFeeProfile,
    FeeSchedule,
    Fixed,
    Percentage,
    PricingPlan,
    Ratings,
    Thresholded,
    Tier,
    Tiered,
    TradeAllowance,
    UserProfile,
)

logger = logging.getLogger(__name__)

BROKERS_ENV_VAR = "UK_INVEST_BROKERS"
DEFAULT_BROKERS_FILE = Path("data") / "brokers.yaml"
REPO_ROOT = Path(__file__).resolve().parents[2]


def _load_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def broker_slug(name: str) -> str:
    """URL-safe identifier, e.g. ``"Dodl by AJ Bell"`` -> ``"dodl-by-aj-bell"``."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def default_brokers_path() -> Path:
    """Snapshot location: ``$UK_INVEST_BROKERS``, else ``data/brokers.yaml`` here or at the repo root."""
    override = os.environ.get(BROKERS_ENV_VAR)
    if override:
        return Path(override)
    local = Path.cwd() / DEFAULT_BROKERS_FILE
    if local.exists():
        return local
    return REPO_ROOT / DEFAULT_BROKERS_FILE


# ========================================================================================
# FEE SCHEDULES
# ========================================================================================

def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _parse_tiers(raw: Iterable[Mapping[str, Any]]) -> tuple:
    tiers = []
    for entry in raw or ():
        tiers.append(
            Tier(
                rate=_optional_float(entry.get("rate")),
                up_to=_optional_float(entry.get("up_to")),
                above=_optional_float(entry.get("above")),
            )
        )
    return tuple(tiers)


def parse_fee_schedule(raw: Optional[Mapping[str, Any]], owner: str = "") -> Optional[FeeSchedule]:
    """Build a schedule from its ``type``-tagged mapping. Unknown types raise ValueError."""
    if raw is None:
        return None
    kind = raw.get("type")
    if kind == "fixed":
        return Fixed(amount=float(raw.get("amount", 0)))
    if kind == "percentage":
        return Percentage(
            rate=float(raw.get("rate", 0)),
            flat_extra=_optional_float(raw.get("flat_extra")),
            minimum=_optional_float(raw.get("minimum")),
            cap=_optional_float(raw.get("cap")),
        )
    if kind == "tiered":
        return Tiered(tiers=_parse_tiers(raw.get("tiers")))
    if kind == "thresholded":
        return Thresholded(
            below_threshold=float(raw["below_threshold"]),
            below_amount=float(raw.get("below_amount", 0)),
            tiers=_parse_tiers(raw.get("tiers")),
            cap=_optional_float(raw.get("cap")),
            regular_waives_below=bool(raw.get("regular_waives_below", False)),
        )
    raise ValueError(f"{owner}: unknown fee schedule type {kind!r}")


# ========================================================================================
# BROKERS
# ========================================================================================

def _check_vocabulary(owner: str, field_name: str, values: Iterable[str], allowed: Iterable[str]) -> None:
    unknown = sorted(set(values) - set(allowed))
    if unknown:
        raise ValueError(f"{owner}: unknown {field_name} {', '.join(unknown)}")


def parse_broker(entry: Mapping[str, Any]) -> BrokerFeeProfile:
    name = entry.get("name", "")
    if not name:
        raise ValueError("Broker entry without a name")

    accounts = tuple(entry.get("accounts", []))
    investment_types = tuple(entry.get("investment_types", []))
    _check_vocabulary(name, "account type", accounts, ACCOUNT_TYPES)
    _check_vocabulary(name, "instrument type", investment_types, INSTRUMENT_TYPES)

    category = entry.get("category", "percentage")
    if category not in CATEGORIES:
        raise ValueError(f"{name}: unknown category {category!r}")

    account_fees = {
        account: parse_fee_schedule(schedule, f"{name} {account}")
        for account, schedule in (entry.get("account_fees") or {}).items()
    }
    caps = {account: float(cap) for account, cap in (entry.get("platform_fee_caps") or {}).items()}
    _check_vocabulary(name, "account type", list(account_fees) + list(caps), ACCOUNT_TYPES)

    strategy = entry.get("pricing_strategy", "generic")
    if strategy not in PRICING_STRATEGIES:
        raise ValueError(f"{name}: unknown pricing strategy {strategy!r}")

    allowance = None
    if entry.get("allowance"):
        raw = entry["allowance"]
        allowance = TradeAllowance(
            free_trades_per_month=int(raw.get("free_trades_per_month", 0)),
            rate=float(raw["rate"]),
            regular_trade_size=float(raw.get("regular_trade_size", 500)),
            max_trade_size=float(raw.get("max_trade_size", 5000)),
        )
    plans = tuple(
        PricingPlan(
            name=plan["name"],
            fee=float(plan["fee"]),
            fund_trade=float(plan["fund_trade"]),
            etf_trade=_optional_float(plan.get("etf_trade")),
            regular_investing=float(plan.get("regular_investing", 0)),
        )
        for plan in entry.get("plans", [])
    )
    if strategy == STRATEGY_ALLOWANCE and allowance is None:
        raise ValueError(f"{name}: {strategy} pricing needs an allowance")
    if strategy == STRATEGY_DUAL_PLAN and not plans:
        raise ValueError(f"{name}: {strategy} pricing needs plans")

    ratings = entry.get("ratings") or {}
    return BrokerFeeProfile(
        name=name,
        slug=entry.get("slug") or broker_slug(name),
        category=category,
        accounts=accounts,
        investment_types=investment_types,
        platform_fee=parse_fee_schedule(entry.get("platform_fee"), name),
        account_fees=account_fees,
        platform_fee_caps=caps,
        minimum_per_account=bool(entry.get("minimum_per_account", False)),
        sipp_fee=parse_fee_schedule(entry.get("sipp_fee"), f"{name} SIPP"),
        sipp_extra=_optional_float(entry.get("sipp_extra")),
        sipp_min=_optional_float(entry.get("sipp_min")),
        sipp_surcharge_amount=_optional_float(entry.get("sipp_surcharge_amount")),
        sipp_surcharge_below=_optional_float(entry.get("sipp_surcharge_below")),
        sipp_drawdown_fee=_optional_float(entry.get("sipp_drawdown_fee")),
        has_drawdown=bool(entry.get("has_drawdown", False)),
        fund_trade=_optional_float(entry.get("fund_trade")),
        etf_trade=_optional_float(entry.get("etf_trade")),
        share_trade=_optional_float(entry.get("share_trade")),
        share_trade_gia_uk=_optional_float(entry.get("share_trade_gia_uk")),
        share_trade_gia_intl=_optional_float(entry.get("share_trade_gia_intl")),
        bond_trade=_optional_float(entry.get("bond_trade")),
        regular_investing_price=_optional_float(entry.get("regular_investing_price")),
        regular_investing_funds=_optional_float(entry.get("regular_investing_funds")),
        fx_rate=_optional_float(entry.get("fx_rate")),
        fx_rates={tier: float(rate) for tier, rate in (entry.get("fx_rates") or {}).items()},
        fx_dividends_rate=_optional_float(entry.get("fx_dividends_rate")),
        pricing_strategy=strategy,
        allowance=allowance,
        plans=plans,
        zero_fees=bool(entry.get("zero_fees", False)),
        ratings=Ratings(
            customer_service=int(ratings.get("customer_service", 0)),
            investment_range=int(ratings.get("investment_range", 0)),
            ease_of_use=int(ratings.get("ease_of_use", 0)),
            established=int(ratings.get("established", 0)),
        ),
        last_verified=str(entry["last_verified"]) if entry.get("last_verified") else None,
        notes=entry.get("notes"),
    )


def load_brokers_from_yaml(path: Path) -> List[BrokerFeeProfile]:
    """Load broker fee profiles from the provided YAML snapshot."""

    raw = _load_yaml(Path(path))
    brokers = [parse_broker(entry) for entry in raw.get("brokers", [])]
    slugs = [b.slug for b in brokers]
    duplicates = sorted({s for s in slugs if slugs.count(s) > 1})
    if duplicates:
        raise ValueError(f"Duplicate broker slugs in {path}: {', '.join(duplicates)}")
    logger.info(f"Loaded {len(brokers)} brokers from {path} (snapshot {raw.get('snapshot_version', 'unversioned')})")
    return brokers


def find_broker(brokers: Iterable[BrokerFeeProfile], key: str) -> Optional[BrokerFeeProfile]:
    """Look a broker up by slug or display name."""
    wanted = broker_slug(key)
    for broker in brokers:
        if broker.slug == key or broker.slug == wanted:
            return broker
    return None


# ========================================================================================
# USER PROFILES
# ========================================================================================

def user_profile_from_dict(data: Mapping[str, Any]) -> UserProfile:
    """Build a UserProfile from API- or YAML-style keys, rejecting unknown vocabulary."""
    accounts = tuple(data.get("accounts") or ("isa",))
    investment_types = tuple(data.get("investment_types") or ("etfs",))
    priorities = tuple(data.get("priorities") or ("lowest_fees",))
    _check_vocabulary("profile", "account type", accounts, ACCOUNT_TYPES)
    _check_vocabulary("profile", "investment type", investment_types, INVESTMENT_TYPES)
    _check_vocabulary("profile", "priority", priorities, PRIORITIES)

    trading_frequency = data.get("trading_frequency") or "monthly"
    fx_trading = data.get("fx_trading") or "rarely"
    fee_model = data.get("fee_model") or "no_preference"
    if trading_frequency not in TRADING_FREQUENCIES:
        raise ValueError(f"profile: unknown trading frequency {trading_frequency!r}")
    if fx_trading not in FX_USAGE:
        raise ValueError(f"profile: unknown FX usage {fx_trading!r}")
    if fee_model not in FEE_MODELS:
        raise ValueError(f"profile: unknown fee model {fee_model!r}")

    balances: Optional[Dict[str, float]] = None
    if data.get("balances"):
        balances = {account: float(value or 0) for account, value in data["balances"].items()}
        _check_vocabulary("profile", "account type", balances, ACCOUNT_TYPES)

    asset_split = data.get("asset_split")
    return UserProfile(
        accounts=accounts,
        investment_types=investment_types,
        portfolio_value=float(data.get("portfolio_value") or 0),
        balances=balances,
        asset_split=float(asset_split) if asset_split is not None else None,
        trading_frequency=trading_frequency,
        fx_trading=fx_trading,
        drawdown_soon=bool(data.get("drawdown_soon", False)),
        priorities=priorities,
        fee_model=fee_model,
    )


def load_user_profile_from_yaml(path: Path) -> UserProfile:
    return user_profile_from_dict(_load_yaml(Path(path)))
