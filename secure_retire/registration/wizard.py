"""
Registration Wizard

Five steps: personal information, financial details, beneficiaries,
pricing plan, summary. The draft is kept in the Streamlit session and
nothing is written until complete() runs on the summary step.

DESIGN DECISION: The wizard refuses to advance past a step whose
validation has errors, but it never rewrites what the user typed.
Going back is always allowed.
"""

from datetime import date
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, Field

from secure_retire.audit import AuditLogger
from secure_retire.billing.credits import CreditGate, next_reset_date
from secure_retire.config import get_settings
from secure_retire.currency import currency_for_country
from secure_retire.models.account import (
    CreditBalance,
    PaymentStatus,
    PlanType,
    Subscription,
    UserSettings,
)
from secure_retire.models.financial import (
    Asset,
    Beneficiary,
    Debt,
    IncomeSource,
    RecordBase,
    RetirementAccount,
    UserProfile,
)
from secure_retire.models.validation import ValidationResult
from secure_retire.services.functions import EdgeFunctionClient, EdgeFunctionError
from secure_retire.services.storage import (
    AccountStorageInterface,
    FinancialStorageInterface,
    StorageError,
)
from secure_retire.validation import (
    BeneficiaryValidator,
    FinancialRecordValidator,
    PersonalInfoValidator,
)


logger = structlog.get_logger(__name__)

FIRST_STEP = 1
LAST_STEP = 5

STEP_NAMES = {
    1: "Personal Information",
    2: "Financial Details",
    3: "Beneficiaries",
    4: "Pricing Plan",
    5: "Summary",
}

# Draft collections, keyed by the name used in add/update/remove
COLLECTIONS: dict[str, type[RecordBase]] = {
    "income_sources": IncomeSource,
    "assets": Asset,
    "debts": Debt,
    "retirement_accounts": RetirementAccount,
    "beneficiaries": Beneficiary,
}


class WizardStepError(Exception):
    """A step failed validation and the wizard stayed where it was."""

    def __init__(self, step: int, result: ValidationResult):
        self.step = step
        self.result = result
        super().__init__(
            f"Step {step} ({STEP_NAMES[step]}) has {result.error_count} error(s)"
        )


class RegistrationDraft(BaseModel):
    """Everything entered so far."""

    correlation_id: UUID = Field(default_factory=uuid4)
    current_step: int = Field(default=FIRST_STEP, ge=FIRST_STEP, le=LAST_STEP)
    personal_info: UserProfile = Field(default_factory=UserProfile)
    income_sources: list[IncomeSource] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    retirement_accounts: list[RetirementAccount] = Field(default_factory=list)
    beneficiaries: list[Beneficiary] = Field(default_factory=list)
    selected_plan: PlanType = PlanType.FREE
    is_completed: bool = False


class RegistrationOutcome(BaseModel):
    user_id: UUID
    plan: PlanType
    record_counts: dict[str, int]
    checkout_url: Optional[str] = None
    checkout_error: Optional[str] = None


def _new_draft() -> RegistrationDraft:
    draft = RegistrationDraft()
    country = get_settings().app.default_country
    draft.personal_info.country = country
    draft.personal_info.address.country = country
    return draft


class RegistrationWizard:
    """
    Step state machine over a RegistrationDraft.

    Storage is only needed for complete(); the UI can drive every other
    method without a backend.
    """

    def __init__(
        self,
        draft: Optional[RegistrationDraft] = None,
        financial_storage: Optional[FinancialStorageInterface] = None,
        account_storage: Optional[AccountStorageInterface] = None,
        functions: Optional[EdgeFunctionClient] = None,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[date] = None,
    ):
        self.draft = draft or _new_draft()
        self._financial = financial_storage
        self._accounts = account_storage
        self._functions = functions
        self._audit = audit_logger or AuditLogger()
        self._today = today

    # -------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------

    @property
    def current_step(self) -> int:
        return self.draft.current_step

    @property
    def step_name(self) -> str:
        return STEP_NAMES[self.draft.current_step]

    @property
    def progress(self) -> float:
        return self.draft.current_step / LAST_STEP

    def set_step(self, step: int) -> int:
        self.draft.current_step = min(max(step, FIRST_STEP), LAST_STEP)
        return self.draft.current_step

    def validate_step(self, step: Optional[int] = None) -> ValidationResult:
        """Validation for one step; steps without rules always pass."""
        step = step or self.draft.current_step
        if step == 1:
            return PersonalInfoValidator(today=self._today).validate(self.draft.personal_info)
        if step == 2:
            return self._validate_financial_details()
        if step == 3:
            return BeneficiaryValidator().validate(self.draft.beneficiaries)
        return ValidationResult(
            subject=STEP_NAMES[step].lower().replace(" ", "_"),
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
        )

    def _validate_financial_details(self) -> ValidationResult:
        validator = FinancialRecordValidator()
        issues = []
        for name in ("income_sources", "assets", "debts", "retirement_accounts"):
            for idx, record in enumerate(getattr(self.draft, name)):
                for issue in validator.validate(record).issues:
                    issues.append(issue.model_copy(update={"field": f"{name}[{idx}].{issue.field}"}))
        has_errors = any(i.severity == "error" for i in issues)
        return ValidationResult(
            subject="financial_details",
            schema_valid=not has_errors,
            semantic_valid=not has_errors,
            is_valid=not has_errors,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    async def next_step(self) -> int:
        """
        Validate the current step and move forward.

        Raises:
            WizardStepError: If the current step has errors
        """
        step = self.draft.current_step
        result = self.validate_step(step)
        if not result.is_valid:
            await self._audit.log_validation_failed(
                subject=result.subject,
                issues=[i.model_dump() for i in result.issues],
                correlation_id=self.draft.correlation_id,
            )
            raise WizardStepError(step, result)

        await self._audit.log_registration_step(step, STEP_NAMES[step], self.draft.correlation_id)
        return self.set_step(step + 1)

    def prev_step(self) -> int:
        return self.set_step(self.draft.current_step - 1)

    # -------------------------------------------------------------------
    # Draft editing
    # -------------------------------------------------------------------

    def update_personal_info(self, **changes: Any) -> UserProfile:
        """
        Merge changes into the profile. Address fields can be passed
        either as `address={...}` or flat (street=, city=, ...).
        """
        current = self.draft.personal_info.model_dump()
        address = dict(current["address"])
        address.update(changes.pop("address", {}) or {})
        for key in ("street", "city", "state", "zip_code"):
            if key in changes:
                address[key] = changes.pop(key)
        if "country" in changes:
            address["country"] = changes["country"]
        current.update(changes)
        current["address"] = address
        self.draft.personal_info = UserProfile.model_validate(current)
        return self.draft.personal_info

    def _collection(self, name: str) -> list:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown draft collection: {name}")
        return getattr(self.draft, name)

    def add(self, name: str, record: RecordBase) -> RecordBase:
        items = self._collection(name)
        if not isinstance(record, COLLECTIONS[name]):
            raise ValueError(f"{type(record).__name__} does not belong in {name}")
        items.append(record)
        return record

    def update(self, name: str, record_id: UUID, **changes: Any) -> RecordBase:
        """Re-validates the merged record, so bad changes raise ValueError."""
        items = self._collection(name)
        for idx, item in enumerate(items):
            if item.id == record_id:
                merged = type(item).model_validate({**item.model_dump(), **changes})
                items[idx] = merged
                return merged
        raise KeyError(f"No {name} entry with id {record_id}")

    def remove(self, name: str, record_id: UUID) -> bool:
        items = self._collection(name)
        before = len(items)
        items[:] = [item for item in items if item.id != record_id]
        return len(items) != before

    def select_plan(self, plan: PlanType) -> None:
        self.draft.selected_plan = plan

    def reset(self) -> RegistrationDraft:
        self.draft = _new_draft()
        return self.draft

    # -------------------------------------------------------------------
    # Completion
    # -------------------------------------------------------------------

    def _own(self, user_id: UUID) -> dict[str, list[RecordBase]]:
        owned = {}
        for name in COLLECTIONS:
            owned[name] = [
                item.model_copy(update={"user_id": user_id})
                for item in getattr(self.draft, name)
            ]
        return owned

    async def complete(self, user_id: UUID, email: str = "") -> RegistrationOutcome:
        """
        Persist the whole draft for a freshly signed-up user.

        Writes the profile, every financial row, beneficiaries, the
        subscription, the credit allowance and display settings. For the
        Pro plan a checkout link is requested last; failing to get one
        doesn't undo the registration.

        Raises:
            WizardStepError: If personal info or beneficiaries are invalid
            StorageError: If any write fails
        """
        if self._financial is None or self._accounts is None:
            raise StorageError("Registration needs storage to complete")

        cid = self.draft.correlation_id
        for step in (1, 2, 3):
            result = self.validate_step(step)
            if not result.is_valid:
                self.set_step(step)
                raise WizardStepError(step, result)

        profile = self.draft.personal_info.model_copy(deep=True)
        profile.id = user_id
        profile.email = email or profile.email
        profile.country = profile.address.country or profile.country
        profile.currency = currency_for_country(profile.country)

        plan = self.draft.selected_plan
        today = self._today or date.today()
        owned = self._own(user_id)

        try:
            await self._financial.save_profile(profile)
            for name in ("income_sources", "assets", "debts", "retirement_accounts", "beneficiaries"):
                for record in owned[name]:
                    await self._financial.save_record(record)

            await self._accounts.save_subscription(Subscription(
                user_id=user_id,
                plan_type=plan,
                # Pro stays inactive until the payment webhook confirms it
                payment_status=PaymentStatus.ACTIVE if plan == PlanType.FREE else PaymentStatus.INACTIVE,
                start_date=today,
            ))
            await self._accounts.save_credits(CreditBalance(
                user_id=user_id,
                available_credits=get_settings().app.free_plan_credits,
                used_credits=0,
                reset_date=next_reset_date(today),
            ))
            await self._accounts.save_user_settings(UserSettings(
                user_id=user_id,
                currency=profile.currency,
                language=get_settings().app.default_language,
            ))
        except StorageError as e:
            await self._audit.log_registration_failed(
                step=self.draft.current_step,
                error_message=str(e),
                correlation_id=cid,
                user_id=user_id,
            )
            raise

        counts = {name: len(items) for name, items in owned.items()}
        self.draft.is_completed = True
        await self._audit.log_registration_completed(user_id, plan.value, counts, cid)

        outcome = RegistrationOutcome(user_id=user_id, plan=plan, record_counts=counts)
        if plan == PlanType.PRO:
            gate = CreditGate(user_id, self._accounts, self._functions, self._audit)
            try:
                outcome.checkout_url = await gate.create_checkout_link(plan, profile.currency)
            except (EdgeFunctionError, ValueError) as e:
                outcome.checkout_error = str(e)
                await self._audit.log_external_service_error("create-payment-link", str(e), cid)

        logger.info("registration_completed", user_id=str(user_id), plan=plan.value)
        return outcome
