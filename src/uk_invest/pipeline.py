"""Pipeline utilities for comparing brokers against a user profile."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Optional

from .comparison.ranking import rank_brokers
from .config_loader import default_brokers_path, load_brokers_from_yaml
from .models import BrokerFeeProfile, RankedBroker, UserProfile


def load_brokers(path: Optional[Path] = None) -> List[BrokerFeeProfile]:
    """Load the broker snapshot, from the default location unless ``path`` is given."""

    return load_brokers_from_yaml(path or default_brokers_path())


def compare_brokers(brokers: Iterable[BrokerFeeProfile], profile: UserProfile) -> List[RankedBroker]:
    return rank_brokers(brokers, profile)


def generate_report(ranked: List[RankedBroker]) -> List[dict]:
    """Convert ranked brokers into dictionaries ready for CSV/JSON export."""

    report_rows: List[dict] = []
    for entry in ranked:
        cost = entry.cost
        report_rows.append(
            {
                "rank": entry.rank,
                "broker": entry.broker.name,
                "slug": entry.broker.slug,
                "eligible": entry.eligible,
                "warnings": "; ".join(entry.warnings),
                "platform_fee": cost.platform_fee,
                "sipp_cost": cost.sipp_cost,
                "trading_cost": cost.trading_cost,
                "fx_cost": cost.fx_cost,
                "drawdown_cost": cost.drawdown_cost,
                "total_cost": cost.total_cost,
                "fx_not_disclosed": cost.fx_not_disclosed,
                "plan": cost.plan,
                "blended_score": entry.blended_score,
                "last_verified": entry.broker.last_verified,
            }
        )
    return report_rows


REPORT_FIELDS = [
    "rank",
    "broker",
    "slug",
    "eligible",
    "warnings",
    "platform_fee",
    "sipp_cost",
    "trading_cost",
    "fx_cost",
    "drawdown_cost",
    "total_cost",
    "fx_not_disclosed",
    "plan",
    "blended_score",
    "last_verified",
]


def export_report_to_csv(rows: Iterable[dict], path: Path) -> None:
    """Write report rows to a CSV file."""

    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=REPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow({key: "" if row.get(key) is None else row[key] for key in REPORT_FIELDS})
