"""Broker comparison: eligibility, ranking, breakeven and the quick check."""

from .eligibility import check_eligibility
from .ranking import rank_brokers, score_broker, recommendation_reason
from .breakeven import find_breakeven
from .check import quick_check, QuickCheckResult

__all__ = [
    "check_eligibility",
    "rank_brokers",
    "score_broker",
    "recommendation_reason",
    "find_breakeven",
    "quick_check",
    "QuickCheckResult",
]
