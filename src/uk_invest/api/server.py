from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..comparison.breakeven import find_breakeven
from ..comparison.check import quick_check
from ..config_loader import default_brokers_path, find_broker, load_brokers_from_yaml, user_profile_from_dict
from ..fees.composer import compute_cost
from ..fees.describe import format_fx_rate, format_trade_fee, summarise_fee_schedule, summarise_sipp_fee
from ..models import BrokerFeeProfile, CostResult, RankedBroker, UserProfile
from ..pipeline import compare_brokers


# ========================================================================================
# PYDANTIC MODELS
# ========================================================================================

AccountType = Literal["isa", "sipp", "gia", "jisa", "lisa"]
InvestmentType = Literal["funds", "etfs", "shares_uk", "shares_intl", "bonds"]
Priority = Literal["lowest_fees", "customer_service", "wide_range", "easy_to_use", "fscs", "drawdown"]


class ProfileRequest(BaseModel):
    """A user's accounts, holdings and habits."""
    accounts: List[AccountType] = Field(default_factory=lambda: ["isa"])
    investment_types: List[InvestmentType] = Field(default_factory=lambda: ["etfs"])
    portfolio_value: float = Field(0, ge=0)
    balances: Optional[Dict[AccountType, float]] = None
    asset_split: Optional[float] = Field(None, ge=0, le=100)
    trading_frequency: Literal["set_and_forget", "monthly", "occasional", "active"] = "monthly"
    fx_trading: Literal["rarely", "sometimes", "frequently"] = "rarely"
    drawdown_soon: bool = False
    priorities: List[Priority] = Field(default_factory=lambda: ["lowest_fees"])
    fee_model: Literal["no_preference", "zero_fee", "flat_fee", "percentage_fee", "direct_fee"] = "no_preference"


class BreakevenRequest(BaseModel):
    """Request model for finding where two brokers cost the same."""
    broker_a: str
    broker_b: str
    profile: ProfileRequest = Field(default_factory=ProfileRequest)


# ========================================================================================
# FASTAPI APPLICATION
# ========================================================================================

app = FastAPI(title="uk-invest Fee Comparison API", version="0.1.0")
logger = logging.getLogger(__name__)

# Wildcard origins require credentials to stay off
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _load_brokers() -> List[BrokerFeeProfile]:
    path = default_brokers_path()
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"Brokers file not found: {path}")
    return load_brokers_from_yaml(path)


def _get_broker(brokers: List[BrokerFeeProfile], slug: str) -> BrokerFeeProfile:
    broker = find_broker(brokers, slug)
    if broker is None:
        raise HTTPException(status_code=404, detail=f"Unknown broker: {slug}")
    return broker


def _to_profile(request: ProfileRequest) -> UserProfile:
    try:
        return user_profile_from_dict(request.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def _cost_payload(broker: BrokerFeeProfile, cost: CostResult) -> Dict[str, Any]:
    payload = asdict(cost)
    payload["slug"] = broker.slug
    payload["platform_fee_per_account"] = payload["breakdown"].pop("per_account")
    return payload


def _ranked_payload(entry: RankedBroker) -> Dict[str, Any]:
    return {
        "rank": entry.rank,
        "broker": entry.broker.name,
        "slug": entry.broker.slug,
        "eligible": entry.eligible,
        "warnings": entry.warnings,
        "priority_score": entry.priority_score,
        "blended_score": entry.blended_score,
        "reason": entry.reason,
        "cost": _cost_payload(entry.broker, entry.cost),
    }


def _broker_summary(broker: BrokerFeeProfile) -> Dict[str, Any]:
    return {
        "name": broker.name,
        "slug": broker.slug,
        "category": broker.category,
        "accounts": list(broker.accounts),
        "investment_types": list(broker.investment_types),
        "platform_fee": summarise_fee_schedule(broker.platform_fee),
        "sipp_fee": summarise_sipp_fee(broker),
        "fund_trade": format_trade_fee(broker.fund_trade),
        "etf_trade": format_trade_fee(broker.etf_trade),
        "share_trade": format_trade_fee(broker.share_trade),
        "fx_rate": format_fx_rate(broker.fx_rate),
        "pricing_strategy": broker.pricing_strategy,
        "zero_fees": broker.zero_fees,
        "has_drawdown": broker.has_drawdown,
        "last_verified": broker.last_verified,
        "notes": broker.notes,
    }


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/brokers")
def list_brokers() -> List[Dict[str, Any]]:
    return [_broker_summary(b) for b in _load_brokers()]


@app.post("/cost/{slug}", response_class=JSONResponse)
def broker_cost(slug: str, request: ProfileRequest) -> Dict[str, Any]:
    broker = _get_broker(_load_brokers(), slug)
    cost = compute_cost(broker, _to_profile(request))
    return _cost_payload(broker, cost)


@app.post("/compare", response_class=JSONResponse)
def compare(request: ProfileRequest) -> List[Dict[str, Any]]:
    profile = _to_profile(request)
    ranked = compare_brokers(_load_brokers(), profile)
    logger.info(f"Compared {len(ranked)} brokers for a £{profile.total_value:,.0f} portfolio")
    return [_ranked_payload(entry) for entry in ranked]


@app.post("/breakeven")
def breakeven(request: BreakevenRequest) -> Dict[str, Any]:
    brokers = _load_brokers()
    broker_a = _get_broker(brokers, request.broker_a)
    broker_b = _get_broker(brokers, request.broker_b)
    value = find_breakeven(broker_a, broker_b, _to_profile(request.profile))
    return {"broker_a": broker_a.slug, "broker_b": broker_b.slug, "breakeven": value}


@app.get("/check")
def check(
    portfolio: float = Query(..., gt=0, description="Portfolio value in GBP"),
    broker: Optional[str] = Query(None, description="Slug of the current broker"),
) -> Dict[str, Any]:
    brokers = _load_brokers()
    current_slug = _get_broker(brokers, broker).slug if broker else None
    result = quick_check(brokers, portfolio, current_slug)

    def entry(item):
        b, cost = item
        return {"broker": b.name, "slug": b.slug, "total_cost": cost.total_cost}

    return {
        "portfolio_value": result.portfolio_value,
        "eligible_count": len(result.costs),
        "current": entry(result.current) if result.current else None,
        "rank": result.rank,
        "cheaper_count": result.cheaper_count,
        "cheapest": entry(result.cheapest) if result.cheapest else None,
        "alternatives": [entry(item) for item in result.alternatives],
        "annual_saving": result.annual_saving,
        "compound_saving": result.compound_saving,
    }
