"""Fee engine: schedule evaluation, account allocation and cost composition."""

from .schedule import evaluate_fee_schedule, accumulate_tiers
from .allocator import allocate_platform_fee, Allocation
from .composer import compute_cost
from .describe import describe_fee_schedule, summarise_fee_schedule, format_money
from .strategies import STRATEGIES, get_strategy

__all__ = [
    "evaluate_fee_schedule",
    "accumulate_tiers",
    "allocate_platform_fee",
    "Allocation",
    "compute_cost",
    "describe_fee_schedule",
    "summarise_fee_schedule",
    "format_money",
    "STRATEGIES",
    "get_strategy",
]
