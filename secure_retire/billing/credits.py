"""
Credits and Subscription Paywall

Free accounts get a monthly allowance of credits; AI-assisted features
cost credits. Pro accounts with an active payment have unlimited use.

DESIGN DECISION: The gate here is cosmetic. It decides what the UI
offers and explains why something is disabled; the deduct-credits edge
function holds the authoritative counter and can refuse a deduction the
client thought was fine. When no edge function client is configured
(offline demo, tests) the gate updates the credits row directly.
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from pydantic import BaseModel

from secure_retire.audit import AuditLogger
from secure_retire.config import get_settings
from secure_retire.models.account import (
    CreditBalance,
    PaymentStatus,
    PlanType,
    Subscription,
)
from secure_retire.services.functions import EdgeFunctionClient
from secure_retire.services.storage import AccountStorageInterface


logger = structlog.get_logger(__name__)

UNLIMITED_CREDITS = 999999

CREDIT_COSTS: dict[str, int] = {
    "AI_INSIGHT": 1,
    "RETIREMENT_CALCULATION": 1,
    "INVESTMENT_RECOMMENDATION": 2,
    "DOCUMENT_GENERATION": 3,
    "AI_CONSULTATION": 5,
    "PORTFOLIO_ANALYSIS": 2,
    "TAX_ESTIMATION": 1,
    "WILL_GENERATION": 5,
    "FINANCIAL_ADVICE": 2,
    "TRANSLATION": 1,
}


class CreditOperation(BaseModel):
    """A feature that costs credits."""
    key: str
    feature: str
    cost: int
    description: str


def _op(key: str, feature: str, description: str) -> CreditOperation:
    return CreditOperation(key=key, feature=feature, cost=CREDIT_COSTS[key], description=description)


CREDIT_OPERATIONS: dict[str, CreditOperation] = {
    op.key: op
    for op in [
        _op("RETIREMENT_CALCULATION", "Retirement Calculator",
            "Calculate retirement projections and savings goals"),
        _op("AI_INSIGHT", "AI Financial Insight",
            "Get AI-powered insights on your financial data"),
        _op("INVESTMENT_RECOMMENDATION", "AI Investment Recommendation",
            "Receive personalized investment recommendations"),
        _op("AI_CONSULTATION", "AI Consultation",
            "Interactive AI consultation session"),
        _op("WILL_GENERATION", "Will Generation",
            "Generate legal will documents"),
        _op("DOCUMENT_GENERATION", "Document Generation",
            "Generate financial planning documents"),
        _op("PORTFOLIO_ANALYSIS", "Portfolio Analysis",
            "Analyze investment portfolio performance"),
        _op("TAX_ESTIMATION", "Tax Estimation",
            "Calculate tax estimates and optimization strategies"),
        _op("TRANSLATION", "Real-time Translation",
            "Translate content to your preferred language"),
        _op("FINANCIAL_ADVICE", "Financial Advice",
            "Get personalized financial planning advice"),
    ]
}


def credit_operation(key: str) -> CreditOperation:
    try:
        return CREDIT_OPERATIONS[key]
    except KeyError:
        raise ValueError(f"Unknown credit operation: {key}")


def is_feature_restricted(key: str) -> bool:
    return key in CREDIT_OPERATIONS


def total_cost(operations: list[CreditOperation]) -> int:
    return sum(op.cost for op in operations)


def _plural(n: int) -> str:
    return f"{n} credit{'s' if n != 1 else ''}"


class InsufficientCreditsError(Exception):
    """The user can't afford an operation."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Need {_plural(required)} for this action. You have {available} remaining."
        )


class SubscriptionStatus(BaseModel):
    """Plan and credit counters combined, as the paywall sees them."""

    plan_type: PlanType = PlanType.FREE
    payment_status: PaymentStatus = PaymentStatus.ACTIVE
    available_credits: int = 100
    used_credits: int = 0
    reset_date: Optional[date] = None

    @classmethod
    def from_rows(
        cls,
        subscription: Optional[Subscription],
        credits: Optional[CreditBalance],
    ) -> "SubscriptionStatus":
        """Missing rows count as a fresh free account."""
        subscription = subscription or Subscription()
        credits = credits or CreditBalance(
            available_credits=get_settings().app.free_plan_credits
        )
        return cls(
            plan_type=subscription.plan_type,
            payment_status=subscription.payment_status,
            available_credits=credits.available_credits,
            used_credits=credits.used_credits,
            reset_date=credits.reset_date,
        )

    @property
    def is_pro(self) -> bool:
        return (
            self.plan_type == PlanType.PRO
            and self.payment_status == PaymentStatus.ACTIVE
        )

    @property
    def remaining_credits(self) -> int:
        if self.is_pro:
            return UNLIMITED_CREDITS
        return max(0, self.available_credits - self.used_credits)

    @property
    def is_low(self) -> bool:
        threshold = get_settings().app.low_credit_threshold
        return not self.is_pro and 0 < self.remaining_credits <= threshold

    @property
    def is_empty(self) -> bool:
        return not self.is_pro and self.remaining_credits <= 0

    def can_afford(self, cost: int) -> bool:
        return self.is_pro or self.remaining_credits >= cost


def check_operation(status: SubscriptionStatus, cost: int) -> tuple[bool, str]:
    """
    Whether an operation of this cost may run, and what to tell the user.

    Returns: (allowed, message)
    """
    if status.is_pro:
        return True, "Unlimited access"
    if status.is_empty:
        return False, "No credits remaining. Upgrade to Pro for unlimited access."
    if not status.can_afford(cost):
        return False, (
            f"Need {_plural(cost)} for this action. "
            f"You have {status.remaining_credits} remaining."
        )
    return True, f"Will use {_plural(cost)}"


def next_reset_date(today: date) -> date:
    """First day of the month after today."""
    if today.month == 12:
        return date(today.year + 1, 1, 1)
    return date(today.year, today.month + 1, 1)


def reset_monthly_credits(
    balance: CreditBalance,
    plan: PlanType,
    today: date,
) -> tuple[CreditBalance, bool]:
    """
    Refill a free account whose reset date has passed.

    Returns: (balance, was_reset). Pro accounts and balances whose reset
    date is still ahead come back unchanged.
    """
    if plan != PlanType.FREE:
        return balance, False
    if balance.reset_date is not None and balance.reset_date > today:
        return balance, False

    refreshed = balance.model_copy(update={
        "available_credits": get_settings().app.free_plan_credits,
        "used_credits": 0,
        "reset_date": next_reset_date(today),
    })
    return refreshed, True


def plan_price(plan: PlanType, currency: str) -> tuple[float, str]:
    """Monthly price of a plan; Pro is billed in LKR or USD."""
    if plan == PlanType.FREE:
        return 0.0, currency.upper()
    settings = get_settings().app
    if currency.upper() == "LKR":
        return settings.pro_plan_price_lkr, "LKR"
    return settings.pro_plan_price_usd, "USD"


class CreditGate:
    """
    Paywall for one user.

    Reads subscription and credits rows, answers "may I?" and spends
    credits through the edge function when one is configured.
    """

    def __init__(
        self,
        user_id: UUID,
        account_storage: AccountStorageInterface,
        functions: Optional[EdgeFunctionClient] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._user_id = user_id
        self._storage = account_storage
        self._functions = functions
        self._audit = audit_logger or AuditLogger()

    async def status(self) -> SubscriptionStatus:
        subscription = await self._storage.get_subscription(self._user_id)
        credits = await self._storage.get_credits(self._user_id)
        return SubscriptionStatus.from_rows(subscription, credits)

    async def check(self, operation_key: str) -> tuple[bool, str]:
        operation = credit_operation(operation_key)
        return check_operation(await self.status(), operation.cost)

    async def spend(self, operation_key: str) -> SubscriptionStatus:
        """
        Pay for an operation.

        Pro users pass through without a deduction.

        Raises:
            InsufficientCreditsError: If the balance can't cover the cost
            EdgeFunctionError: If the backend refuses the deduction
        """
        operation = credit_operation(operation_key)
        status = await self.status()

        if status.is_pro:
            return status

        if not status.can_afford(operation.cost):
            await self._audit.log_credits_denied(
                self._user_id,
                operation.key,
                operation.cost,
                status.remaining_credits,
            )
            raise InsufficientCreditsError(operation.cost, status.remaining_credits)

        if self._functions is not None:
            await self._functions.deduct_credits(
                amount=operation.cost,
                feature_name=operation.feature,
                description=operation.description,
            )
        else:
            credits = await self._storage.get_credits(self._user_id) or CreditBalance(
                user_id=self._user_id,
                available_credits=status.available_credits,
            )
            credits.used_credits += operation.cost
            await self._storage.save_credits(credits)

        updated = await self.status()
        await self._audit.log_credits_spent(
            self._user_id,
            operation.key,
            operation.cost,
            updated.remaining_credits,
        )
        return updated

    async def refresh_monthly(self, today: Optional[date] = None) -> SubscriptionStatus:
        """Apply the monthly refill if it is due."""
        today = today or date.today()
        status = await self.status()
        credits = await self._storage.get_credits(self._user_id)
        if credits is None:
            return status

        refreshed, was_reset = reset_monthly_credits(credits, status.plan_type, today)
        if was_reset:
            await self._storage.save_credits(refreshed)
            await self._audit.log_credits_reset(
                self._user_id,
                refreshed.available_credits,
                refreshed.reset_date.isoformat(),
            )
            return await self.status()
        return status

    async def create_checkout_link(
        self,
        plan: PlanType,
        currency: str,
        redirect_url: Optional[str] = None,
    ) -> str:
        """
        Hosted checkout URL for upgrading.

        Raises:
            ValueError: For the free plan or without an edge function client
        """
        if plan == PlanType.FREE:
            raise ValueError("The free plan does not need a checkout")
        if self._functions is None:
            raise ValueError("Checkout requires the backend to be configured")

        amount, billed_currency = plan_price(plan, currency)
        url = await self._functions.create_payment_link(
            plan_type=plan.value,
            amount=amount,
            currency=billed_currency,
            redirect_url=redirect_url or f"{get_settings().app.app_base_url}/?checkout=success",
        )
        await self._audit.log_checkout_started(
            self._user_id,
            plan.value,
            f"{amount:.2f}",
            billed_currency,
        )
        return url

    async def confirm_checkout(self) -> SubscriptionStatus:
        """
        Activate Pro after the checkout redirect came back successful.

        The success handler on the backend writes the subscription and
        credits rows; the returned status is read back from them.

        Raises:
            ValueError: Without an edge function client
            EdgeFunctionError: If the backend refuses the activation
        """
        if self._functions is None:
            raise ValueError("Checkout requires the backend to be configured")

        await self._functions.confirm_payment()
        status = await self.status()
        await self._audit.log_checkout_completed(self._user_id, status.plan_type.value)
        logger.info("plan_activated", user_id=str(self._user_id), plan=status.plan_type.value)
        return status

    async def downgrade_to_free(self) -> SubscriptionStatus:
        """Move to the free plan; the monthly refill then applies the free allowance."""
        subscription = await self._storage.get_subscription(self._user_id) or Subscription(
            user_id=self._user_id
        )
        subscription.plan_type = PlanType.FREE
        subscription.payment_status = PaymentStatus.ACTIVE
        await self._storage.save_subscription(subscription)
        await self._audit.log_settings_updated(self._user_id, {"plan_type": PlanType.FREE.value})
        logger.info("plan_downgraded", user_id=str(self._user_id))
        return await self.status()
