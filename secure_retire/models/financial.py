"""
Core Financial Models for Secure Retire

These models mirror the rows of the hosted database tables
(users, assets, debts, income_sources, retirement_savings, beneficiaries,
consultations, portfolio_allocations). They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: The database schema and its row-level security own the
real invariants. These models only reject values that can never be right
(negative balances, percentages above 100) so forms fail early.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values (literals match the database enums)
# =============================================================================

class IncomeFrequency(str, Enum):
    """How often an income source pays out."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class AssetType(str, Enum):
    """Kinds of assets a user can track."""
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    RETIREMENT = "retirement"
    CRYPTO = "crypto"
    OTHER = "other"


class DebtType(str, Enum):
    """Kinds of debts a user can track."""
    MORTGAGE = "mortgage"
    CREDIT_CARD = "credit_card"
    AUTO_LOAN = "auto_loan"
    STUDENT_LOAN = "student_loan"
    PERSONAL_LOAN = "personal_loan"
    OTHER = "other"


class RetirementAccountType(str, Enum):
    """Retirement account wrappers."""
    K401 = "401k"
    B403 = "403b"
    IRA = "ira"
    ROTH_IRA = "roth_ira"
    PENSION = "pension"
    SEP_IRA = "sep_ira"
    SIMPLE_IRA = "simple_ira"


class RelationshipType(str, Enum):
    """Relationship of a beneficiary to the account holder."""
    SPOUSE = "spouse"
    CHILD = "child"
    PARENT = "parent"
    SIBLING = "sibling"
    FRIEND = "friend"
    OTHER = "other"


class ConsultationStatus(str, Enum):
    """Lifecycle of a booked consultation."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


# =============================================================================
# BASE ROW
# =============================================================================

class RecordBase(BaseModel):
    """
    Common columns for every user-owned row.

    user_id is optional so that drafts (e.g. during registration)
    can be built before the account exists.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Row identifier"
    )
    user_id: Optional[UUID] = Field(
        default=None,
        description="Owning user"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow
    )


# =============================================================================
# USER PROFILE
# =============================================================================

class Address(BaseModel):
    """Postal address stored as JSON on the users row."""
    model_config = ConfigDict(str_strip_whitespace=True)

    street: str = Field(default="", max_length=200)
    city: str = Field(default="", max_length=100)
    state: str = Field(default="", max_length=100)
    zip_code: str = Field(default="", max_length=20)
    country: str = Field(default="", max_length=2)

    @field_validator("country")
    @classmethod
    def upper_country(cls, v: str) -> str:
        return v.upper()

    def one_line(self) -> str:
        parts = [self.street, self.city, self.state, self.zip_code, self.country]
        return ", ".join(p for p in parts if p)


class UserProfile(BaseModel):
    """
    Personal information captured in step 1 of registration.

    national_id maps to the `ssn` column; outside the US it holds
    whatever national identity number the country uses.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[UUID] = None
    email: str = Field(default="", max_length=254)
    full_name: str = Field(default="", max_length=200)
    date_of_birth: Optional[date] = None
    national_id: str = Field(default="", max_length=20)
    phone: str = Field(default="", max_length=30)
    address: Address = Field(default_factory=Address)
    country: str = Field(default="LK", max_length=2)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    @field_validator("country", "currency")
    @classmethod
    def upper_codes(cls, v: str) -> str:
        return v.upper()


# =============================================================================
# FINANCIAL ROWS
# =============================================================================

class Asset(RecordBase):
    """A bank account, investment account or other holding."""

    type: AssetType = Field(
        ...,
        description="Asset category"
    )
    institution_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Bank or broker holding the asset"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Current value"
    )
    currency: str = Field(default="USD", min_length=3, max_length=3)
    account_number: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Masked account number"
    )


class Debt(RecordBase):
    """An outstanding liability."""

    debt_type: DebtType
    balance: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Outstanding balance"
    )
    interest_rate: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        description="Annual interest rate in percent"
    )
    monthly_payment: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
    )
    due_date: Optional[date] = None


class IncomeSource(RecordBase):
    """Salary, pension, rental income and so on."""

    source_type: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text label, e.g. 'Salary'"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
    )
    currency: str = Field(default="USD", min_length=3, max_length=3)
    frequency: IncomeFrequency = IncomeFrequency.MONTHLY
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'IncomeSource':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Income end date cannot be before start date")
        return self


class RetirementAccount(RecordBase):
    """A row of retirement_savings."""

    account_type: RetirementAccountType
    institution_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    balance: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
    )
    contribution_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Regular contribution"
    )
    contribution_frequency: IncomeFrequency = IncomeFrequency.MONTHLY


class Beneficiary(RecordBase):
    """
    A person who inherits a share of the estate.

    Percentages across all beneficiaries should total 100. That is
    checked by the validator for user feedback, not enforced here,
    because a single row cannot see its siblings.
    """

    full_name: str = Field(
        ...,
        min_length=2,
        max_length=200,
    )
    relationship: RelationshipType
    date_of_birth: Optional[date] = None
    percentage: Decimal = Field(
        ...,
        ge=1,
        le=100,
        description="Share of the estate in percent"
    )
    is_primary: bool = True
    contact_email: Optional[str] = Field(default=None, max_length=254)


class Consultation(RecordBase):
    """
    A booked session with a financial consultant.

    scheduled_at is stored in the table's `date` column.
    """

    scheduled_at: datetime
    status: ConsultationStatus = ConsultationStatus.SCHEDULED
    consultant_id: Optional[UUID] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    meeting_url: Optional[str] = None


class PortfolioAllocation(RecordBase):
    """Target vs current weight of one asset class."""

    asset_class: str = Field(..., min_length=1, max_length=100)
    target_percentage: Decimal = Field(..., ge=0, le=100)
    current_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    rebalance_threshold: Decimal = Field(
        default=Decimal("5"),
        ge=0,
        le=100,
        description="Drift in percentage points that triggers a rebalance"
    )


# =============================================================================
# AGGREGATES
# =============================================================================

class FinancialSnapshot(BaseModel):
    """Everything the dashboard needs, fetched in one go."""

    profile: Optional[UserProfile] = None
    assets: list[Asset] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    income_sources: list[IncomeSource] = Field(default_factory=list)
    retirement_accounts: list[RetirementAccount] = Field(default_factory=list)
    beneficiaries: list[Beneficiary] = Field(default_factory=list)


class FinancialSummary(BaseModel):
    """
    Computed dashboard figures.

    All amounts are in the user's display currency. Rates are percentages.
    """

    total_assets: Decimal = Decimal("0")
    total_retirement: Decimal = Decimal("0")
    total_debts: Decimal = Decimal("0")
    net_worth: Decimal = Decimal("0")
    monthly_income: Decimal = Decimal("0")
    monthly_savings: Decimal = Decimal("0")
    monthly_debt_payments: Decimal = Decimal("0")
    savings_rate: float = 0.0
    debt_to_income: float = 0.0
    age: int = 35
    readiness_score: int = Field(default=0, ge=0, le=100)


class InsightPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FinancialInsight(BaseModel):
    """One dashboard insight, narrated by the LLM or derived by rule."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=120)
    description: str = Field(..., min_length=1, max_length=1000)
    priority: InsightPriority = InsightPriority.MEDIUM
    action_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Suggested amount to act on, in the display currency"
    )
