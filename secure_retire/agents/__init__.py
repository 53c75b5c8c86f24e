"""LLM-assisted features."""

from secure_retire.agents.assistant import (
    GREETING,
    QUICK_QUESTIONS,
    AdvisorAgent,
    consultation_reply,
    rule_based_advice,
)
from secure_retire.agents.insights import (
    InsightAgent,
    parse_insights,
    rule_based_insights,
)

__all__ = [
    "GREETING",
    "QUICK_QUESTIONS",
    "AdvisorAgent",
    "InsightAgent",
    "consultation_reply",
    "parse_insights",
    "rule_based_advice",
    "rule_based_insights",
]
