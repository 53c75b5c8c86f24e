"""
Tests for the credits paywall.
"""

from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from secure_retire.audit import AuditLogger
from secure_retire.billing import (
    CREDIT_OPERATIONS,
    CreditGate,
    InsufficientCreditsError,
    SubscriptionStatus,
    check_operation,
    credit_operation,
    next_reset_date,
    plan_price,
    reset_monthly_credits,
    total_cost,
)
from secure_retire.models.account import (
    CreditBalance,
    PaymentStatus,
    PlanType,
    Subscription,
)
from secure_retire.models.audit import AuditEventType
from secure_retire.services.functions import EdgeFunctionError
from secure_retire.services.storage import InMemoryAccountStorage, InMemoryAuditStorage


class TestSubscriptionStatus:
    """Plan and balance arithmetic."""

    def test_missing_rows_are_a_fresh_free_account(self):
        """Test defaults when nothing is stored yet."""
        status = SubscriptionStatus.from_rows(None, None)
        assert status.plan_type == PlanType.FREE
        assert status.remaining_credits == 100
        assert status.is_pro is False

    def test_pro_needs_active_payment(self):
        """Test an unpaid pro plan is treated like free."""
        unpaid = SubscriptionStatus(plan_type=PlanType.PRO, payment_status=PaymentStatus.INACTIVE)
        paid = SubscriptionStatus(plan_type=PlanType.PRO)
        assert unpaid.is_pro is False
        assert paid.is_pro is True
        assert paid.remaining_credits == 999999

    def test_low_and_empty(self):
        """Test the low-credit banner thresholds."""
        assert SubscriptionStatus(available_credits=100, used_credits=95).is_low is True
        assert SubscriptionStatus(available_credits=100, used_credits=80).is_low is False
        empty = SubscriptionStatus(available_credits=100, used_credits=100)
        assert empty.is_low is False
        assert empty.is_empty is True

    def test_used_above_allowance_clamps_to_zero(self):
        """Test remaining credits never go negative."""
        assert SubscriptionStatus(available_credits=10, used_credits=25).remaining_credits == 0


class TestCheckOperation:
    """Messages shown before a paid action."""

    def test_pro_unlimited(self):
        """Test pro users always pass."""
        assert check_operation(SubscriptionStatus(plan_type=PlanType.PRO), 5) == (True, "Unlimited access")

    def test_no_credits(self):
        """Test an empty balance."""
        status = SubscriptionStatus(available_credits=100, used_credits=100)
        assert check_operation(status, 1) == (
            False, "No credits remaining. Upgrade to Pro for unlimited access.",
        )

    def test_not_enough(self):
        """Test a balance below the cost."""
        status = SubscriptionStatus(available_credits=100, used_credits=97)
        assert check_operation(status, 5) == (
            False, "Need 5 credits for this action. You have 3 remaining.",
        )

    def test_allowed_messages(self):
        """Test singular and plural costs."""
        status = SubscriptionStatus()
        assert check_operation(status, 1) == (True, "Will use 1 credit")
        assert check_operation(status, 5) == (True, "Will use 5 credits")


class TestCreditHelpers:
    """Catalogue, pricing and monthly reset."""

    def test_catalogue(self):
        """Test operation costs."""
        assert credit_operation("WILL_GENERATION").cost == 5
        assert credit_operation("AI_INSIGHT").cost == 1
        assert total_cost([CREDIT_OPERATIONS["PORTFOLIO_ANALYSIS"], CREDIT_OPERATIONS["TAX_ESTIMATION"]]) == 3
        with pytest.raises(ValueError, match="Unknown credit operation"):
            credit_operation("TIME_TRAVEL")

    def test_plan_price(self):
        """Test pro pricing in rupees and dollars."""
        assert plan_price(PlanType.PRO, "lkr") == (320.0, "LKR")
        assert plan_price(PlanType.PRO, "EUR") == (1.0, "USD")
        assert plan_price(PlanType.FREE, "usd") == (0.0, "USD")

    def test_next_reset_date(self):
        """Test month and year rollover."""
        assert next_reset_date(date(2026, 10, 19)) == date(2026, 11, 1)
        assert next_reset_date(date(2026, 12, 31)) == date(2027, 1, 1)

    def test_reset_when_due(self):
        """Test a free balance past its reset date is refilled."""
        balance = CreditBalance(available_credits=100, used_credits=60, reset_date=date(2026, 10, 1))
        refreshed, was_reset = reset_monthly_credits(balance, PlanType.FREE, date(2026, 10, 19))
        assert was_reset is True
        assert refreshed.used_credits == 0
        assert refreshed.available_credits == 100
        assert refreshed.reset_date == date(2026, 11, 1)

    def test_no_reset_before_date_or_for_pro(self):
        """Test balances are left alone when not due."""
        balance = CreditBalance(used_credits=60, reset_date=date(2026, 11, 1))
        assert reset_monthly_credits(balance, PlanType.FREE, date(2026, 10, 19)) == (balance, False)
        due = CreditBalance(used_credits=60, reset_date=date(2026, 10, 1))
        assert reset_monthly_credits(due, PlanType.PRO, date(2026, 10, 19)) == (due, False)


class TestCreditGate:
    """Spending against stored rows."""

    async def make_gate(self, used: int = 0, plan: PlanType = PlanType.FREE, functions=None):
        user_id = uuid4()
        storage = InMemoryAccountStorage()
        audit_storage = InMemoryAuditStorage()
        await storage.save_subscription(Subscription(user_id=user_id, plan_type=plan))
        await storage.save_credits(CreditBalance(
            user_id=user_id,
            available_credits=100,
            used_credits=used,
            reset_date=date(2026, 11, 1),
        ))
        gate = CreditGate(user_id, storage, functions, AuditLogger(audit_storage))
        return gate, storage, audit_storage

    @pytest.mark.asyncio
    async def test_spend_updates_row_without_backend(self):
        """Test the offline path increments used_credits."""
        gate, storage, audit_storage = await self.make_gate()
        status = await gate.spend("WILL_GENERATION")
        assert status.remaining_credits == 95
        assert audit_storage.events[-1].event_type == AuditEventType.CREDITS_SPENT

    @pytest.mark.asyncio
    async def test_spend_refused_when_short(self):
        """Test spending more than the balance raises and is audited."""
        gate, _, audit_storage = await self.make_gate(used=98)
        with pytest.raises(InsufficientCreditsError) as exc_info:
            await gate.spend("WILL_GENERATION")
        assert exc_info.value.required == 5
        assert exc_info.value.available == 2
        assert str(exc_info.value) == "Need 5 credits for this action. You have 2 remaining."
        assert audit_storage.events[-1].event_type == AuditEventType.CREDITS_DENIED

    @pytest.mark.asyncio
    async def test_spend_uses_backend_when_configured(self):
        """Test the edge function is asked to deduct."""
        functions = AsyncMock()
        gate, storage, _ = await self.make_gate(functions=functions)
        await gate.spend("PORTFOLIO_ANALYSIS")
        functions.deduct_credits.assert_awaited_once_with(
            amount=2,
            feature_name="Portfolio Analysis",
            description="Analyze investment portfolio performance",
        )
        # The backend owns the counter; the local row is untouched
        assert (await storage.get_credits(gate._user_id)).used_credits == 0

    @pytest.mark.asyncio
    async def test_pro_spends_nothing(self):
        """Test pro users pass through."""
        gate, storage, audit_storage = await self.make_gate(used=100, plan=PlanType.PRO)
        status = await gate.spend("AI_CONSULTATION")
        assert status.is_pro is True
        assert audit_storage.events == []

    @pytest.mark.asyncio
    async def test_check(self):
        """Test check reads the stored balance."""
        gate, _, _ = await self.make_gate(used=99)
        assert await gate.check("AI_INSIGHT") == (True, "Will use 1 credit")
        assert (await gate.check("TAX_ESTIMATION"))[0] is True
        assert (await gate.check("INVESTMENT_RECOMMENDATION"))[0] is False

    @pytest.mark.asyncio
    async def test_refresh_monthly(self):
        """Test the refill is applied once the reset date passes."""
        gate, storage, audit_storage = await self.make_gate(used=70)
        unchanged = await gate.refresh_monthly(today=date(2026, 10, 19))
        assert unchanged.remaining_credits == 30

        refreshed = await gate.refresh_monthly(today=date(2026, 11, 2))
        assert refreshed.remaining_credits == 100
        assert refreshed.reset_date == date(2026, 12, 1)
        assert audit_storage.events[-1].event_type == AuditEventType.CREDITS_RESET

    @pytest.mark.asyncio
    async def test_checkout_link(self):
        """Test pro checkout goes through the payment function."""
        functions = AsyncMock()
        functions.create_payment_link.return_value = "https://pay.example.com/abc"
        gate, _, audit_storage = await self.make_gate(functions=functions)

        url = await gate.create_checkout_link(PlanType.PRO, "LKR", redirect_url="https://app/")
        assert url == "https://pay.example.com/abc"
        functions.create_payment_link.assert_awaited_once_with(
            plan_type="pro",
            amount=320.0,
            currency="LKR",
            redirect_url="https://app/",
        )
        assert audit_storage.events[-1].event_type == AuditEventType.CHECKOUT_STARTED

    @pytest.mark.asyncio
    async def test_checkout_requires_backend_and_paid_plan(self):
        """Test checkout errors."""
        gate, _, _ = await self.make_gate()
        with pytest.raises(ValueError, match="Checkout requires the backend"):
            await gate.create_checkout_link(PlanType.PRO, "USD")
        with pytest.raises(ValueError, match="free plan"):
            await gate.create_checkout_link(PlanType.FREE, "USD")

    @pytest.mark.asyncio
    async def test_downgrade(self):
        """Test moving back to the free plan."""
        gate, storage, _ = await self.make_gate(plan=PlanType.PRO)
        status = await gate.downgrade_to_free()
        assert status.plan_type == PlanType.FREE
        assert status.remaining_credits == 100

    @pytest.mark.asyncio
    async def test_confirm_checkout(self):
        """Test a confirmed payment reads back the activated plan."""
        functions = AsyncMock()
        gate, storage, audit_storage = await self.make_gate(functions=functions)
        await storage.save_subscription(Subscription(
            user_id=gate._user_id, plan_type=PlanType.PRO, payment_status=PaymentStatus.ACTIVE,
        ))

        status = await gate.confirm_checkout()

        functions.confirm_payment.assert_awaited_once_with()
        assert status.is_pro is True
        assert audit_storage.events[-1].event_type == AuditEventType.CHECKOUT_COMPLETED
        assert audit_storage.events[-1].details == {"plan": "pro"}

    @pytest.mark.asyncio
    async def test_confirm_checkout_refused(self):
        """Test a refused activation is raised and not audited as completed."""
        functions = AsyncMock()
        functions.confirm_payment.side_effect = EdgeFunctionError("stripe-success-handler", "Subscription was not activated")
        gate, _, audit_storage = await self.make_gate(functions=functions)

        with pytest.raises(EdgeFunctionError):
            await gate.confirm_checkout()
        assert audit_storage.events == []

        offline, _, _ = await self.make_gate()
        with pytest.raises(ValueError, match="Checkout requires the backend"):
            await offline.confirm_checkout()
