"""
Consultation Assistant and Financial Advice

Two conversational helpers:
- The consultation assistant answers questions about booking and
  preparing for a consultation from a fixed set of replies. It needs no
  model and never fails.
- The advice agent answers a free-text question about the user's own
  finances with Gemini, grounded in the computed FinancialSummary. When
  the model is unavailable the rule-based insights are returned as the
  answer instead.
"""

import re
from typing import Optional

import google.generativeai as genai
import structlog

from secure_retire.agents.insights import SOURCE_MODEL, SOURCE_RULES, rule_based_insights
from secure_retire.config import get_settings
from secure_retire.currency import format_amount
from secure_retire.models.financial import FinancialSummary


logger = structlog.get_logger(__name__)

GREETING = (
    "Hello! I'm your financial consultation assistant. I can help you prepare "
    "for your upcoming consultation or answer questions about our services. "
    "How can I assist you today?"
)

QUICK_QUESTIONS = [
    "How do I prepare for my consultation?",
    "What documents should I bring?",
    "Can I reschedule my appointment?",
    "What types of consultations do you offer?",
    "How much do consultations cost?",
]

MAX_QUESTION_LENGTH = 1000

# (words that trigger the reply, reply); the first match wins
_REPLIES: list[tuple[tuple[str, ...], str]] = [
    (("prepare", "preparation"), (
        "To prepare for your consultation:\n\n"
        "1. Gather your financial documents (bank statements, investment accounts, insurance policies)\n"
        "2. Prepare a list of your financial goals\n"
        "3. Note any specific questions or concerns\n"
        "4. Ensure you have a stable internet connection for the video call\n\n"
        "Would you like more specific guidance for any consultation type?"
    )),
    (("documents", "document", "bring"), (
        "Please gather these documents before your consultation:\n\n"
        "- Recent bank statements\n"
        "- Investment account statements\n"
        "- Insurance policies\n"
        "- Mortgage or loan documents\n"
        "- Tax returns (last 2 years)\n"
        "- Estate planning documents\n\n"
        "You can upload these securely through the Documents page if needed."
    )),
    (("reschedule", "cancel"), (
        "You can reschedule or cancel your appointment from your consultations list. "
        "Cancellations must be made at least 24 hours in advance to avoid fees."
    )),
    (("types", "services", "offer"), (
        "We offer three types of consultations:\n\n"
        "- Financial Planning (60 min): investment strategy, retirement planning, budget optimization\n"
        "- Tax Consultation (45 min): tax planning strategies, deductions, tax law updates\n"
        "- Legal Consultation (45 min): estate planning, will and trust review, legal documents"
    )),
    (("cost", "costs", "price", "fee", "fees"), (
        "Our consultation fees are:\n\n"
        "- Financial Planning: $150 (60 minutes)\n"
        "- Tax Consultation: $100 (45 minutes)\n"
        "- Legal Consultation: $200 (45 minutes)\n\n"
        "Every consultation includes a video session, a follow-up summary and an action plan."
    )),
    (("hello", "hi", "hey"), (
        "Hello! I'm here to help with your consultation questions. Ask me about "
        "preparation, required documents, scheduling, or service types and pricing."
    )),
    (("thank", "thanks"), (
        "You're welcome! Is there anything else I can help you with regarding your consultation?"
    )),
    (("zoom", "video", "call"), (
        "Your consultation is held over a video call. The meeting link is shared 24 hours "
        "before the appointment and appears in your consultation details. Please test "
        "your camera and microphone beforehand."
    )),
]


def consultation_reply(message: str) -> str:
    """Canned answer for the first topic the message mentions."""
    words = set(re.findall(r"[a-z]+", message.lower()))
    for triggers, reply in _REPLIES:
        if words.intersection(triggers):
            return reply
    return (
        f'I understand you\'re asking about: "{message.strip()}"\n\n'
        "I can help with consultation preparation, required documents, scheduling "
        "questions and service information. Could you be more specific?"
    )


def rule_based_advice(summary: FinancialSummary, currency: str) -> str:
    insights = rule_based_insights(summary, currency)
    return "\n\n".join(f"**{i.title}**: {i.description}" for i in insights)


class AdvisorAgent:
    """
    Answers a question about the user's finances.

    Like InsightAgent, the model is configured on first use and only
    sees computed figures.
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

    @staticmethod
    def check_question(question: str) -> str:
        question = question.strip()
        if not question:
            raise ValueError("Question cannot be empty")
        if len(question) > MAX_QUESTION_LENGTH:
            raise ValueError(f"Question is too long (max {MAX_QUESTION_LENGTH} characters)")
        return question

    def _prompt(self, question: str, summary: FinancialSummary, currency: str) -> str:
        return f"""You are a careful financial planning assistant in a retirement planning app.

The user's figures (already calculated, in {currency}):
- Net worth: {format_amount(summary.net_worth, currency)}
- Monthly income: {format_amount(summary.monthly_income, currency)}
- Monthly retirement savings: {format_amount(summary.monthly_savings, currency)}
- Total debts: {format_amount(summary.total_debts, currency)}
- Savings rate: {summary.savings_rate:.1f}%
- Debt-to-income ratio: {summary.debt_to_income:.1f}%
- Age: {summary.age}
- Retirement readiness score: {summary.readiness_score}/100

Question: {question}

Answer in at most three short paragraphs. Use ONLY the figures above; do not
invent balances, rates or amounts. This is general guidance, not regulated advice."""

    async def answer(
        self,
        question: str,
        summary: FinancialSummary,
        currency: str,
    ) -> tuple[str, str]:
        """
        Returns: (answer, source) where source is "gemini" or "rules".

        Raises:
            ValueError: For an empty or overlong question
        """
        question = self.check_question(question)
        try:
            model = self._get_model()
            response = await model.generate_content_async(self._prompt(question, summary, currency))
            text: Optional[str] = response.text.strip()
            if text:
                return text, SOURCE_MODEL
            logger.warning("advice_empty_reply")
        except Exception as e:
            logger.warning("advice_generation_fell_back", error=str(e))

        return rule_based_advice(summary, currency), SOURCE_RULES
