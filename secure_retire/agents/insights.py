"""
Dashboard Insight Agent

DESIGN DECISION: The figures are computed in calculators.summary; the
LLM only turns them into short advice. It gets the numbers, never the
raw rows, and is told not to introduce any figure it was not given.

BOUNDARIES:
- CAN: Explain what the numbers mean and suggest next steps
- CANNOT: Invent balances, rates or amounts
- CANNOT: Persist anything

When the model is unavailable or answers with something that is not
the expected JSON, rule-based insights built from the same summary are
returned instead, so the dashboard always has something to show.
"""

import json
from decimal import Decimal
from typing import Optional

import google.generativeai as genai
import structlog

from secure_retire.calculators.summary import readiness_band
from secure_retire.config import get_settings
from secure_retire.currency import format_amount
from secure_retire.models.financial import (
    FinancialInsight,
    FinancialSummary,
    InsightPriority,
)


logger = structlog.get_logger(__name__)

SOURCE_MODEL = "gemini"
SOURCE_RULES = "rules"

MAX_INSIGHTS = 4


def rule_based_insights(summary: FinancialSummary, currency: str) -> list[FinancialInsight]:
    """Deterministic insights from the summary figures."""
    insights = []

    if summary.monthly_income <= 0:
        insights.append(FinancialInsight(
            title="Add your income",
            description="No income sources are recorded yet, so savings and debt ratios can't be worked out.",
            priority=InsightPriority.HIGH,
        ))

    if summary.debt_to_income > 36:
        insights.append(FinancialInsight(
            title="Reduce debt payments",
            description=(
                f"Debt payments take {summary.debt_to_income:.1f}% of monthly income. "
                "Lenders consider anything above 36% high; paying down the highest-rate debt first frees up cash fastest."
            ),
            priority=InsightPriority.HIGH,
        ))

    if summary.monthly_income > 0 and summary.savings_rate < 15:
        target = (summary.monthly_income * Decimal("0.15")).quantize(Decimal("0.01"))
        gap = max(target - summary.monthly_savings, Decimal("0"))
        insights.append(FinancialInsight(
            title="Increase retirement contributions",
            description=(
                f"You save {summary.savings_rate:.1f}% of income. Reaching 15% means "
                f"contributing about {format_amount(target, currency)} a month."
            ),
            priority=InsightPriority.MEDIUM if summary.savings_rate >= 10 else InsightPriority.HIGH,
            action_amount=gap,
        ))

    if summary.monthly_income > 0:
        emergency_fund = summary.monthly_income * 6
        if summary.total_assets < emergency_fund:
            insights.append(FinancialInsight(
                title="Build an emergency fund",
                description=(
                    f"Six months of income is {format_amount(emergency_fund, currency)}; "
                    f"current non-retirement assets are {format_amount(summary.total_assets, currency)}."
                ),
                priority=InsightPriority.MEDIUM,
                action_amount=(emergency_fund - summary.total_assets).quantize(Decimal("0.01")),
            ))

    band = readiness_band(summary.readiness_score)
    insights.append(FinancialInsight(
        title=f"Readiness: {band}",
        description=(
            f"Your retirement readiness score is {summary.readiness_score}/100 "
            f"with a net worth of {format_amount(summary.net_worth, currency)}."
        ),
        priority=InsightPriority.LOW if summary.readiness_score >= 60 else InsightPriority.MEDIUM,
    ))

    return insights[:MAX_INSIGHTS]


def parse_insights(text: str) -> list[FinancialInsight]:
    """
    Pull the insights array out of a model reply.

    Raises:
        ValueError: If no usable JSON is found
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in response")

    data = json.loads(text[start:end])
    items = data.get("insights")
    if not isinstance(items, list) or not items:
        raise ValueError("Response has no insights")

    insights = []
    for item in items[:MAX_INSIGHTS]:
        priority = str(item.get("priority", "medium")).lower()
        if priority not in {p.value for p in InsightPriority}:
            priority = InsightPriority.MEDIUM.value
        insights.append(FinancialInsight(
            title=str(item.get("title", "")).strip() or "Insight",
            description=str(item.get("description", "")).strip() or "-",
            priority=InsightPriority(priority),
        ))
    return insights


class InsightAgent:
    """
    Turns a FinancialSummary into a few prioritised insights.

    The Gemini model is configured lazily, so the agent can be built
    without an API key and will simply use the rules.
    """

    def __init__(self, model=None):
        self._model = model

    def _get_model(self):
        if self._model is None:
            settings = get_settings().gemini
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,
                    "max_output_tokens": settings.max_tokens,
                },
            )
        return self._model

    def _prompt(self, summary: FinancialSummary, currency: str) -> str:
        figures = "\n".join([
            f"- Net worth: {format_amount(summary.net_worth, currency)}",
            f"- Monthly income: {format_amount(summary.monthly_income, currency)}",
            f"- Monthly retirement savings: {format_amount(summary.monthly_savings, currency)}",
            f"- Total debts: {format_amount(summary.total_debts, currency)}",
            f"- Savings rate: {summary.savings_rate:.1f}%",
            f"- Debt-to-income ratio: {summary.debt_to_income:.1f}%",
            f"- Age: {summary.age}",
            f"- Retirement readiness score: {summary.readiness_score}/100",
        ])
        return f"""You are helping a user of a retirement planning app understand their finances.

Financial figures (already calculated, in {currency}):
{figures}

Write at most {MAX_INSIGHTS} short, practical insights about retirement readiness.

Rules:
- Use ONLY the figures above. Do not invent balances, rates or amounts.
- Each description is one or two sentences.
- priority is one of: high, medium, low

Respond with ONLY a JSON object in this exact format:
{{"insights": [{{"title": "...", "description": "...", "priority": "high"}}]}}"""

    async def generate(
        self,
        summary: FinancialSummary,
        currency: str,
    ) -> tuple[list[FinancialInsight], str]:
        """
        Returns: (insights, source) where source is "gemini" or "rules".
        """
        try:
            model = self._get_model()
            response = await model.generate_content_async(self._prompt(summary, currency))
            insights = parse_insights(response.text.strip())
            return insights, SOURCE_MODEL
        except Exception as e:
            logger.warning("insight_generation_fell_back", error=str(e))

        return rule_based_insights(summary, currency), SOURCE_RULES
