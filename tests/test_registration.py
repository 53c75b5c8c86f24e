"""
Tests for the registration wizard.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from secure_retire.audit import AuditLogger
from secure_retire.models.account import PaymentStatus, PlanType
from secure_retire.models.audit import AuditEventType
from secure_retire.models.financial import (
    Asset,
    AssetType,
    Beneficiary,
    Debt,
    DebtType,
    IncomeSource,
    RelationshipType,
)
from secure_retire.registration import (
    RegistrationWizard,
    WizardStepError,
)
from secure_retire.services.storage import (
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryFinancialStorage,
    StorageError,
)


TODAY = date(2026, 10, 19)


def fill_personal_info(wizard: RegistrationWizard) -> None:
    wizard.update_personal_info(
        email="kamal@example.com",
        full_name="Kamal Silva",
        date_of_birth=date(1980, 5, 17),
        national_id="801234567V",
        phone="077 123 4567",
        street="45 Galle Road",
        city="Colombo",
        state="Western",
        zip_code="00300",
    )


class BrokenAccountStorage(InMemoryAccountStorage):
    async def save_credits(self, credits):
        raise StorageError("credits table unavailable")


class TestWizardNavigation:
    """Moving between steps."""

    def test_starts_on_step_one_with_default_country(self):
        """Test a new draft."""
        wizard = RegistrationWizard(today=TODAY)
        assert wizard.current_step == 1
        assert wizard.step_name == "Personal Information"
        assert wizard.progress == pytest.approx(0.2)
        assert wizard.draft.personal_info.address.country == "LK"

    @pytest.mark.asyncio
    async def test_invalid_step_blocks_advance(self):
        """Test an empty profile keeps the wizard on step one."""
        audit_storage = InMemoryAuditStorage()
        wizard = RegistrationWizard(today=TODAY, audit_logger=AuditLogger(audit_storage))
        with pytest.raises(WizardStepError) as exc_info:
            await wizard.next_step()
        assert exc_info.value.step == 1
        assert exc_info.value.result.has_errors is True
        assert wizard.current_step == 1
        assert audit_storage.events[-1].event_type == AuditEventType.VALIDATION_FAILED

    @pytest.mark.asyncio
    async def test_walk_through_all_steps(self):
        """Test a valid draft reaches the summary and going back works."""
        wizard = RegistrationWizard(today=TODAY)
        fill_personal_info(wizard)
        assert await wizard.next_step() == 2
        assert await wizard.next_step() == 3
        assert await wizard.next_step() == 4
        assert await wizard.next_step() == 5
        assert await wizard.next_step() == 5
        assert wizard.prev_step() == 4
        assert wizard.set_step(0) == 1

    @pytest.mark.asyncio
    async def test_financial_step_reports_indexed_fields(self):
        """Test errors on a financial row name the row."""
        wizard = RegistrationWizard(today=TODAY)
        fill_personal_info(wizard)
        await wizard.next_step()
        wizard.add("income_sources", IncomeSource(source_type="Salary", amount=Decimal("0.00")))
        with pytest.raises(WizardStepError) as exc_info:
            await wizard.next_step()
        assert exc_info.value.result.issues[0].field.startswith("income_sources[0].")

    @pytest.mark.asyncio
    async def test_beneficiary_step_requires_full_split(self):
        """Test beneficiaries must add up before moving on."""
        wizard = RegistrationWizard(today=TODAY)
        wizard.set_step(3)
        wizard.add("beneficiaries", Beneficiary(
            full_name="Amara Silva",
            relationship=RelationshipType.SPOUSE,
            percentage=Decimal("60"),
        ))
        with pytest.raises(WizardStepError):
            await wizard.next_step()


class TestDraftEditing:
    """Adding, changing and removing draft rows."""

    def test_flat_address_fields_and_country(self):
        """Test address parts can be passed flat."""
        wizard = RegistrationWizard(today=TODAY)
        profile = wizard.update_personal_info(city="Kandy", country="us")
        assert profile.address.city == "Kandy"
        assert profile.country == "US"
        assert profile.address.country == "US"

    def test_add_update_remove(self):
        """Test collection editing."""
        wizard = RegistrationWizard(today=TODAY)
        asset = wizard.add("assets", Asset(
            type=AssetType.SAVINGS, institution_name="HNB", amount=Decimal("1000.00"),
        ))
        updated = wizard.update("assets", asset.id, amount=Decimal("1500.00"))
        assert updated.amount == Decimal("1500.00")
        assert wizard.draft.assets[0].amount == Decimal("1500.00")
        assert wizard.remove("assets", asset.id) is True
        assert wizard.remove("assets", asset.id) is False

    def test_wrong_collection_rejected(self):
        """Test rows must match their collection."""
        wizard = RegistrationWizard(today=TODAY)
        debt = Debt(debt_type=DebtType.MORTGAGE, balance=Decimal("10.00"))
        with pytest.raises(ValueError):
            wizard.add("assets", debt)
        with pytest.raises(ValueError, match="Unknown draft collection"):
            wizard.add("pets", debt)
        with pytest.raises(KeyError):
            wizard.update("debts", uuid4(), balance=Decimal("1.00"))

    def test_update_revalidates(self):
        """Test invalid changes are refused."""
        wizard = RegistrationWizard(today=TODAY)
        debt = wizard.add("debts", Debt(debt_type=DebtType.MORTGAGE, balance=Decimal("10.00")))
        with pytest.raises(ValueError):
            wizard.update("debts", debt.id, balance=Decimal("-5.00"))

    def test_reset(self):
        """Test reset starts a fresh draft."""
        wizard = RegistrationWizard(today=TODAY)
        old_id = wizard.draft.correlation_id
        wizard.select_plan(PlanType.PRO)
        draft = wizard.reset()
        assert draft.correlation_id != old_id
        assert draft.selected_plan == PlanType.FREE


class TestWizardCompletion:
    """Persisting a finished draft."""

    def make_wizard(self, account_storage=None, functions=None):
        financial = InMemoryFinancialStorage()
        accounts = account_storage or InMemoryAccountStorage()
        audit_storage = InMemoryAuditStorage()
        wizard = RegistrationWizard(
            financial_storage=financial,
            account_storage=accounts,
            functions=functions,
            audit_logger=AuditLogger(audit_storage),
            today=TODAY,
        )
        fill_personal_info(wizard)
        return wizard, financial, accounts, audit_storage

    @pytest.mark.asyncio
    async def test_complete_without_storage(self):
        """Test completion needs storage."""
        with pytest.raises(StorageError):
            await RegistrationWizard(today=TODAY).complete(uuid4())

    @pytest.mark.asyncio
    async def test_complete_free_plan(self):
        """Test every row is written for the new user."""
        wizard, financial, accounts, audit_storage = self.make_wizard()
        wizard.add("income_sources", IncomeSource(source_type="Salary", amount=Decimal("250000.00")))
        wizard.add("beneficiaries", Beneficiary(
            full_name="Amara Silva",
            relationship=RelationshipType.SPOUSE,
            percentage=Decimal("100"),
        ))
        user_id = uuid4()

        outcome = await wizard.complete(user_id, email="kamal@silva.lk")

        assert outcome.plan == PlanType.FREE
        assert outcome.record_counts["income_sources"] == 1
        assert outcome.record_counts["beneficiaries"] == 1
        assert outcome.checkout_url is None
        assert wizard.draft.is_completed is True

        profile = await financial.get_profile(user_id)
        assert profile.email == "kamal@silva.lk"
        assert profile.currency == "LKR"
        incomes = await financial.list_records(IncomeSource, user_id)
        assert incomes[0].user_id == user_id

        subscription = await accounts.get_subscription(user_id)
        assert subscription.payment_status == PaymentStatus.ACTIVE
        credits = await accounts.get_credits(user_id)
        assert credits.available_credits == 100
        assert credits.reset_date == date(2026, 11, 1)
        settings = await accounts.get_user_settings(user_id)
        assert settings.currency == "LKR"
        assert audit_storage.events[-1].event_type == AuditEventType.REGISTRATION_COMPLETED

    @pytest.mark.asyncio
    async def test_complete_rejects_invalid_draft(self):
        """Test completion jumps back to the failing step."""
        wizard, financial, _, _ = self.make_wizard()
        wizard.update_personal_info(phone="1")
        wizard.set_step(5)
        with pytest.raises(WizardStepError):
            await wizard.complete(uuid4())
        assert wizard.current_step == 1

    @pytest.mark.asyncio
    async def test_complete_pro_plan_requests_checkout(self):
        """Test pro signups get a checkout link and stay inactive."""
        functions = AsyncMock()
        functions.create_payment_link.return_value = "https://pay.example.com/checkout"
        wizard, _, accounts, _ = self.make_wizard(functions=functions)
        wizard.select_plan(PlanType.PRO)
        user_id = uuid4()

        outcome = await wizard.complete(user_id)

        assert outcome.checkout_url == "https://pay.example.com/checkout"
        assert functions.create_payment_link.await_args.kwargs["currency"] == "LKR"
        subscription = await accounts.get_subscription(user_id)
        assert subscription.plan_type == PlanType.PRO
        assert subscription.payment_status == PaymentStatus.INACTIVE

    @pytest.mark.asyncio
    async def test_checkout_failure_keeps_registration(self):
        """Test a missing payment backend is reported, not raised."""
        wizard, financial, _, _ = self.make_wizard()
        wizard.select_plan(PlanType.PRO)
        user_id = uuid4()

        outcome = await wizard.complete(user_id)

        assert outcome.checkout_url is None
        assert outcome.checkout_error == "Checkout requires the backend to be configured"
        assert await financial.get_profile(user_id) is not None

    @pytest.mark.asyncio
    async def test_storage_failure_is_audited(self):
        """Test write failures are logged and re-raised."""
        wizard, _, _, audit_storage = self.make_wizard(account_storage=BrokenAccountStorage())
        with pytest.raises(StorageError, match="credits table unavailable"):
            await wizard.complete(uuid4())
        assert audit_storage.events[-1].event_type == AuditEventType.REGISTRATION_FAILED
        assert wizard.draft.is_completed is False
