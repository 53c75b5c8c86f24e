"""
Tests for the dashboard insight agent and the assistants.

The Gemini model is always mocked.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from secure_retire.agents import (
    AdvisorAgent,
    InsightAgent,
    consultation_reply,
    parse_insights,
    rule_based_insights,
)
from secure_retire.models.financial import FinancialSummary, InsightPriority


def make_summary(**overrides) -> FinancialSummary:
    data = dict(
        total_assets=Decimal("5000.00"),
        net_worth=Decimal("45000.00"),
        monthly_income=Decimal("4000.00"),
        monthly_savings=Decimal("200.00"),
        savings_rate=5.0,
        debt_to_income=40.0,
        age=45,
        readiness_score=42,
    )
    data.update(overrides)
    return FinancialSummary(**data)


def model_replying(text: str) -> MagicMock:
    model = MagicMock()
    model.generate_content_async = AsyncMock(return_value=MagicMock(text=text))
    return model


class TestRuleBasedInsights:
    """Fallback insights."""

    def test_struggling_household(self):
        """Test high debt, low savings and a thin emergency fund."""
        insights = rule_based_insights(make_summary(), "USD")
        titles = [i.title for i in insights]
        assert titles == [
            "Reduce debt payments",
            "Increase retirement contributions",
            "Build an emergency fund",
            "Readiness: Needs attention",
        ]
        contributions = insights[1]
        assert contributions.priority == InsightPriority.HIGH
        assert contributions.action_amount == Decimal("400.00")
        assert "$600.00" in contributions.description
        assert insights[2].action_amount == Decimal("19000.00")

    def test_no_income(self):
        """Test a summary without income asks for it."""
        insights = rule_based_insights(FinancialSummary(), "LKR")
        assert insights[0].title == "Add your income"
        assert insights[-1].title == "Readiness: At risk"

    def test_healthy_household(self):
        """Test only the readiness line remains when all is well."""
        insights = rule_based_insights(make_summary(
            total_assets=Decimal("50000.00"),
            monthly_savings=Decimal("800.00"),
            savings_rate=20.0,
            debt_to_income=10.0,
            readiness_score=85,
        ), "USD")
        assert len(insights) == 1
        assert insights[0].priority == InsightPriority.LOW


class TestParseInsights:
    """Reading the model reply."""

    def test_parses_json_in_prose(self):
        """Test JSON wrapped in text or code fences."""
        text = 'Here you go:\n```json\n{"insights": [{"title": "Save", "description": "More.", "priority": "HIGH"}]}\n```'
        insights = parse_insights(text)
        assert insights[0].title == "Save"
        assert insights[0].priority == InsightPriority.HIGH

    def test_unknown_priority_becomes_medium(self):
        """Test priority normalisation and blank fields."""
        insights = parse_insights('{"insights": [{"title": "", "description": "x", "priority": "urgent"}]}')
        assert insights[0].priority == InsightPriority.MEDIUM
        assert insights[0].title == "Insight"

    def test_caps_count(self):
        """Test at most four insights are kept."""
        items = ",".join('{"title": "t%d", "description": "d"}' % i for i in range(6))
        assert len(parse_insights('{"insights": [%s]}' % items)) == 4

    @pytest.mark.parametrize("text", ["no json here", '{"insights": []}', '{"other": 1}'])
    def test_rejects_unusable(self, text):
        """Test replies without insights raise."""
        with pytest.raises(ValueError):
            parse_insights(text)


class TestInsightAgent:
    """Model call with rule fallback."""

    @pytest.mark.asyncio
    async def test_uses_model_reply(self):
        """Test a good reply is returned with the model as source."""
        model = model_replying('{"insights": [{"title": "Keep going", "description": "Nice work.", "priority": "low"}]}')
        insights, source = await InsightAgent(model=model).generate(make_summary(), "USD")
        assert source == "gemini"
        assert insights[0].title == "Keep going"

        prompt = model.generate_content_async.await_args.args[0]
        assert "- Savings rate: 5.0%" in prompt
        assert "Do not invent balances" in prompt

    @pytest.mark.asyncio
    async def test_bad_reply_falls_back(self):
        """Test unparseable replies use the rules."""
        insights, source = await InsightAgent(model=model_replying("Sorry, I can't help.")).generate(
            make_summary(), "USD",
        )
        assert source == "rules"
        assert insights[0].title == "Reduce debt payments"

    @pytest.mark.asyncio
    async def test_model_error_falls_back(self):
        """Test transport errors use the rules."""
        model = MagicMock()
        model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota"))
        _, source = await InsightAgent(model=model).generate(make_summary(), "USD")
        assert source == "rules"


class TestConsultationAssistant:
    """Canned consultation replies."""

    @pytest.mark.parametrize("message,expected", [
        ("How do I prepare for my consultation?", "To prepare for your consultation"),
        ("What documents should I bring?", "Please gather these documents"),
        ("Can I reschedule my appointment?", "reschedule or cancel"),
        ("How much do consultations cost?", "Financial Planning: $150"),
        ("Thanks!", "You're welcome"),
        ("Is it a Zoom call?", "video call"),
    ])
    def test_topics(self, message, expected):
        """Test each topic gets its reply."""
        assert expected in consultation_reply(message)

    def test_greeting_needs_a_whole_word(self):
        """Test "hi" inside another word is not a greeting."""
        assert consultation_reply("hi there").startswith("Hello!")
        reply = consultation_reply("Which annuity is best?")
        assert reply.startswith('I understand you\'re asking about: "Which annuity is best?"')


class TestAdvisorAgent:
    """Free-text financial questions."""

    @pytest.mark.asyncio
    async def test_uses_model_reply(self):
        """Test the model answer is returned and the figures are in the prompt."""
        model = model_replying("  Pay down the car loan first.  ")
        answer, source = await AdvisorAgent(model).answer("What should I do first?", make_summary(), "USD")
        assert answer == "Pay down the car loan first."
        assert source == "gemini"
        prompt = model.generate_content_async.call_args.args[0]
        assert "Debt-to-income ratio: 40.0%" in prompt
        assert "What should I do first?" in prompt

    @pytest.mark.asyncio
    async def test_model_error_falls_back(self):
        """Test the rule-based answer when the model fails."""
        model = MagicMock()
        model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota"))
        answer, source = await AdvisorAgent(model).answer("Am I on track?", make_summary(), "USD")
        assert source == "rules"
        assert "**Reduce debt payments**" in answer

    @pytest.mark.asyncio
    async def test_rejects_empty_question(self):
        """Test blank questions are refused before calling the model."""
        model = model_replying("unused")
        with pytest.raises(ValueError, match="cannot be empty"):
            await AdvisorAgent(model).answer("   ", make_summary(), "USD")
        model.generate_content_async.assert_not_called()
