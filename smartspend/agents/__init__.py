"""AI agents package."""

from smartspend.agents.ai_agents import (
    EMPTY_REPLY_ADVICE,
    NO_EXPENSES_ADVICE,
    UNAVAILABLE_ADVICE,
    ExpenseExtractionAgent,
    ExtractedExpense,
    InsightsAgent,
    merge_extraction,
)

__all__ = [
    "EMPTY_REPLY_ADVICE",
    "NO_EXPENSES_ADVICE",
    "UNAVAILABLE_ADVICE",
    "ExpenseExtractionAgent",
    "ExtractedExpense",
    "InsightsAgent",
    "merge_extraction",
]
