"""
Tax Estimator

Table lookup over 2023 US federal brackets plus flat state rates and FICA.
This is an estimate for planning conversations, not tax advice: no credits,
no AMT, no local taxes.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED_JOINT = "marriedJoint"
    MARRIED_SEPARATE = "marriedSeparate"
    HEAD_OF_HOUSEHOLD = "headOfHousehold"


# (upper bound of bracket, rate); None means no upper bound
Bracket = tuple[Optional[float], float]

FEDERAL_BRACKETS: dict[FilingStatus, list[Bracket]] = {
    FilingStatus.SINGLE: [
        (11000, 0.10),
        (44725, 0.12),
        (95375, 0.22),
        (182050, 0.24),
        (231250, 0.32),
        (578125, 0.35),
        (None, 0.37),
    ],
    FilingStatus.MARRIED_JOINT: [
        (22000, 0.10),
        (89450, 0.12),
        (190750, 0.22),
        (364200, 0.24),
        (462500, 0.32),
        (693750, 0.35),
        (None, 0.37),
    ],
}

STANDARD_DEDUCTIONS: dict[FilingStatus, float] = {
    FilingStatus.SINGLE: 13850,
    FilingStatus.MARRIED_JOINT: 27700,
    FilingStatus.MARRIED_SEPARATE: 13850,
    FilingStatus.HEAD_OF_HOUSEHOLD: 20800,
}

STATE_TAX_RATES: dict[str, float] = {
    "CA": 0.093,
    "NY": 0.082,
    "TX": 0.0,
    "FL": 0.0,
    "WA": 0.0,
    "OR": 0.099,
    "IL": 0.0495,
}

SOCIAL_SECURITY_WAGE_BASE = 160200
SOCIAL_SECURITY_RATE = 0.062
MEDICARE_RATE = 0.0145
ADDITIONAL_MEDICARE_RATE = 0.009
ADDITIONAL_MEDICARE_THRESHOLD = 200000
ADDITIONAL_MEDICARE_THRESHOLD_JOINT = 250000

K401_CONTRIBUTION_LIMIT = 22500
HSA_CONTRIBUTION_LIMIT = 3650
CHARITABLE_AGI_LIMIT = 0.60


class TaxInput(BaseModel):
    """What the user types into the estimator."""

    annual_income: float = Field(..., ge=0)
    filing_status: FilingStatus = FilingStatus.SINGLE
    state: str = Field(default="CA", min_length=2, max_length=2)
    retirement_contributions: float = Field(default=0.0, ge=0)
    other_deductions: float = Field(
        default=0.0,
        ge=0,
        description="Itemised deductions; the larger of this and the standard deduction applies"
    )


class TaxStrategy(BaseModel):
    title: str
    description: str
    potential_savings: Optional[float] = Field(
        default=None,
        description="Estimated federal saving; None when it depends on choices we can't see"
    )
    potential_label: str = ""


class TaxEstimate(BaseModel):
    adjusted_gross_income: float
    deduction: float
    taxable_income: float
    federal_tax: float
    state_tax: float
    fica_tax: float
    total_tax: float
    effective_rate: float = Field(description="Total tax / income, in percent")
    marginal_rate: float = Field(description="Federal rate on the last dollar, in percent")
    take_home: float
    strategies: list[TaxStrategy] = Field(default_factory=list)


def brackets_for(status: FilingStatus) -> list[Bracket]:
    """Statuses without their own table fall back to single."""
    return FEDERAL_BRACKETS.get(status, FEDERAL_BRACKETS[FilingStatus.SINGLE])


def federal_tax(taxable_income: float, status: FilingStatus) -> tuple[float, float]:
    """
    Progressive tax on taxable_income.

    Returns (tax, marginal_rate) with the rate as a fraction; the rate is
    0 when there is no taxable income.
    """
    tax = 0.0
    lower = 0.0
    marginal = 0.0
    for upper, rate in brackets_for(status):
        if taxable_income <= lower:
            break
        top = taxable_income if upper is None else min(taxable_income, upper)
        tax += (top - lower) * rate
        marginal = rate
        if upper is None:
            break
        lower = upper
    return tax, marginal


def fica_tax(income: float, status: FilingStatus) -> float:
    threshold = (
        ADDITIONAL_MEDICARE_THRESHOLD_JOINT
        if status == FilingStatus.MARRIED_JOINT
        else ADDITIONAL_MEDICARE_THRESHOLD
    )
    return (
        min(income, SOCIAL_SECURITY_WAGE_BASE) * SOCIAL_SECURITY_RATE
        + income * MEDICARE_RATE
        + max(0.0, income - threshold) * ADDITIONAL_MEDICARE_RATE
    )


def suggest_strategies(
    retirement_contributions: float,
    marginal_rate: float,
    adjusted_gross_income: float = 0.0,
) -> list[TaxStrategy]:
    """Deduction ideas; the deductible ones are valued at the marginal rate (a fraction)."""
    strategies = []
    room = max(0.0, K401_CONTRIBUTION_LIMIT - retirement_contributions)
    if room > 0:
        strategies.append(TaxStrategy(
            title="Maximize 401(k) contributions",
            description=(
                f"Contributing another ${room:,.0f} pre-tax lowers "
                "your taxable income dollar for dollar."
            ),
            potential_savings=room * marginal_rate,
        ))
    strategies.append(TaxStrategy(
        title="Open a Health Savings Account",
        description=(
            f"HSA contributions up to ${HSA_CONTRIBUTION_LIMIT:,} are deductible "
            "and grow tax-free for medical costs."
        ),
        potential_savings=HSA_CONTRIBUTION_LIMIT * marginal_rate,
    ))
    strategies.append(TaxStrategy(
        title="Tax-loss harvesting",
        description="Offset capital gains with investment losses to reduce your tax liability.",
        potential_label="Varies",
    ))
    strategies.append(TaxStrategy(
        title="Charitable giving",
        description=(
            "Donations to qualified charities are deductible when you itemise, "
            "up to 60% of AGI for cash gifts."
        ),
        potential_label=(
            f"Up to 60% of AGI (${adjusted_gross_income * CHARITABLE_AGI_LIMIT:,.0f})"
        ),
    ))
    return strategies


def estimate_taxes(data: TaxInput) -> TaxEstimate:
    """Run the full estimate for one household."""
    income = data.annual_income
    agi = max(0.0, income - data.retirement_contributions)
    deduction = max(
        STANDARD_DEDUCTIONS.get(data.filing_status, STANDARD_DEDUCTIONS[FilingStatus.SINGLE]),
        data.other_deductions,
    )
    taxable = max(0.0, agi - deduction)

    federal, marginal = federal_tax(taxable, data.filing_status)
    state = agi * STATE_TAX_RATES.get(data.state.upper(), 0.0)
    fica = fica_tax(income, data.filing_status)
    total = federal + state + fica

    return TaxEstimate(
        adjusted_gross_income=agi,
        deduction=deduction,
        taxable_income=taxable,
        federal_tax=federal,
        state_tax=state,
        fica_tax=fica,
        total_tax=total,
        effective_rate=(total / income * 100) if income > 0 else 0.0,
        marginal_rate=marginal * 100,
        take_home=income - total,
        strategies=suggest_strategies(data.retirement_contributions, marginal, agi),
    )
