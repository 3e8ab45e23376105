"""Rank UK investment platforms by annual cost for a portfolio."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from uk_invest.comparison.breakeven import find_breakeven
from uk_invest.config_loader import find_broker, load_user_profile_from_yaml, user_profile_from_dict
from uk_invest.fees.describe import format_money
from uk_invest.models import TRADING_FREQUENCIES, FX_USAGE
from uk_invest.pipeline import compare_brokers, export_report_to_csv, generate_report, load_brokers


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--brokers", type=Path, default=None, help="Broker snapshot YAML.")
    parser.add_argument("--profile", type=Path, default=None, help="User profile YAML (overrides the flags below).")
    parser.add_argument("--portfolio", type=float, default=50000, help="Total portfolio value in GBP.")
    parser.add_argument("--accounts", nargs="+", default=["isa"], help="Account types, e.g. isa sipp gia.")
    parser.add_argument("--investments", nargs="+", default=["etfs"], help="Investment types, e.g. funds etfs.")
    parser.add_argument("--asset-split", type=float, default=None, help="Percent held in funds when mixing.")
    parser.add_argument("--frequency", choices=sorted(TRADING_FREQUENCIES), default="monthly")
    parser.add_argument("--fx", choices=FX_USAGE, default="rarely")
    parser.add_argument("--drawdown", action="store_true", help="Drawing a pension income soon.")
    parser.add_argument("--breakeven", nargs=2, metavar=("BROKER_A", "BROKER_B"), help="Find the breakeven value.")
    parser.add_argument("--output", type=Path, default=None, help="Write the ranking to this CSV file.")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s - %(name)s - %(message)s'
    )

    brokers = load_brokers(args.brokers)
    if args.profile:
        profile = load_user_profile_from_yaml(args.profile)
    else:
        profile = user_profile_from_dict(
            {
                "accounts": args.accounts,
                "investment_types": args.investments,
                "portfolio_value": args.portfolio,
                "asset_split": args.asset_split,
                "trading_frequency": args.frequency,
                "fx_trading": args.fx,
                "drawdown_soon": args.drawdown,
            }
        )

    if args.breakeven:
        broker_a, broker_b = (find_broker(brokers, key) for key in args.breakeven)
        if broker_a is None or broker_b is None:
            raise SystemExit(f"Unknown broker in {args.breakeven}")
        value = find_breakeven(broker_a, broker_b, profile)
        if value is None:
            print(f"No breakeven between {broker_a.name} and {broker_b.name}")
        else:
            print(f"{broker_a.name} and {broker_b.name} cost the same at about {format_money(value)}")
        return

    ranked = compare_brokers(brokers, profile)
    for entry in ranked:
        position = f"{entry.rank:>2}" if entry.rank else " -"
        note = entry.reason if entry.eligible else "; ".join(entry.warnings)
        print(f"{position}. {entry.broker.name:<28} {format_money(entry.cost.total_cost):>10}/yr  {note}")

    if args.output:
        rows = generate_report(ranked)
        args.output.parent.mkdir(parents=True, exist_ok=True)
        export_report_to_csv(rows, args.output)
        print(f"Wrote {len(rows)} rows to {args.output}.")


if __name__ == "__main__":
    main()
