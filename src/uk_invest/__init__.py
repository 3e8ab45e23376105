"""uk_invest package."""

from .models import BrokerFeeProfile, CostResult, UserProfile
from .fees import compute_cost, evaluate_fee_schedule
from .comparison import check_eligibility, find_breakeven, rank_brokers
from .pipeline import load_brokers, compare_brokers, generate_report

__all__ = [
    "BrokerFeeProfile",
    "CostResult",
    "UserProfile",
    "compute_cost",
    "evaluate_fee_schedule",
    "check_eligibility",
    "find_breakeven",
    "rank_brokers",
    "load_brokers",
    "compare_brokers",
    "generate_report",
]
