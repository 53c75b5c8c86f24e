"""
Financial Summary and Retirement-Readiness Score

Pure functions over a FinancialSnapshot. No storage, no network:
the dashboard fetches rows once and hands them here.

The readiness score is a weighted sum of four parts, clipped to [0, 100]:
    retirement savings vs a simple target   up to 40
    savings rate                            up to 25
    debt-to-income ratio                    up to 20
    age (time left to compound)             up to 15
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from secure_retire.models.financial import (
    FinancialSnapshot,
    FinancialSummary,
    IncomeFrequency,
)


DEFAULT_AGE = 35

# Multipliers that turn a per-period amount into a monthly one
MONTHLY_FACTORS: dict[IncomeFrequency, Decimal] = {
    IncomeFrequency.WEEKLY: Decimal("4.33"),
    IncomeFrequency.BIWEEKLY: Decimal("2.17"),
    IncomeFrequency.MONTHLY: Decimal("1"),
    IncomeFrequency.QUARTERLY: Decimal("1") / Decimal("3"),
    IncomeFrequency.ANNUALLY: Decimal("1") / Decimal("12"),
}


def to_monthly(amount: Decimal, frequency) -> Decimal:
    """
    Normalise an amount paid at `frequency` to a monthly figure.

    Unknown frequencies are treated as monthly.
    """
    try:
        factor = MONTHLY_FACTORS[IncomeFrequency(frequency)]
    except ValueError:
        factor = Decimal("1")
    return Decimal(amount) * factor


def calculate_age(date_of_birth: Optional[date], today: Optional[date] = None) -> int:
    """Whole years since date_of_birth, or DEFAULT_AGE when unknown."""
    if date_of_birth is None:
        return DEFAULT_AGE
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def _total(values: Iterable[Decimal]) -> Decimal:
    return sum(values, Decimal("0"))


def _retirement_points(total_retirement: float, monthly_income: float, age: int) -> float:
    recommended = monthly_income * 12 * max(age - 25, 0) * 0.15
    return min(total_retirement / max(recommended, 1) * 40, 40)


def _savings_points(savings_rate: float) -> float:
    if savings_rate >= 15:
        return 25
    if savings_rate >= 10:
        return 20
    if savings_rate >= 5:
        return 10
    return savings_rate * 2


def _debt_points(debt_to_income: float) -> float:
    if debt_to_income <= 20:
        return 20
    if debt_to_income <= 36:
        return 15
    if debt_to_income <= 50:
        return 10
    return max(0.0, 10 - (debt_to_income - 50) / 5)


def _age_points(age: int) -> float:
    if age <= 30:
        return 15
    if age <= 40:
        return 12
    if age <= 50:
        return 8
    if age <= 60:
        return 5
    return 2


def retirement_readiness_score(
    total_retirement: float,
    monthly_income: float,
    savings_rate: float,
    debt_to_income: float,
    age: int,
) -> int:
    """
    Score retirement readiness from 0 to 100.

    Savings rate and debt-to-income are percentages.
    """
    score = (
        _retirement_points(total_retirement, monthly_income, age)
        + _savings_points(savings_rate)
        + _debt_points(debt_to_income)
        + _age_points(age)
    )
    return round(min(max(score, 0), 100))


def readiness_band(score: int) -> str:
    """Short label shown next to the score gauge."""
    if score >= 80:
        return "On track"
    if score >= 60:
        return "Good progress"
    if score >= 40:
        return "Needs attention"
    return "At risk"


def calculate_financial_summary(
    snapshot: FinancialSnapshot,
    today: Optional[date] = None,
) -> FinancialSummary:
    """
    Compute every dashboard figure from a snapshot.

    Amounts are summed as-is; convert them to one currency before calling
    if the user holds several.
    """
    total_assets = _total(a.amount for a in snapshot.assets)
    total_retirement = _total(r.balance for r in snapshot.retirement_accounts)
    total_debts = _total(d.balance for d in snapshot.debts)

    monthly_income = _total(
        to_monthly(i.amount, i.frequency) for i in snapshot.income_sources
    )
    monthly_savings = _total(
        to_monthly(r.contribution_amount, r.contribution_frequency)
        for r in snapshot.retirement_accounts
    )
    monthly_debt_payments = _total(d.monthly_payment for d in snapshot.debts)

    if monthly_income > 0:
        savings_rate = float(monthly_savings / monthly_income * 100)
        debt_to_income = float(monthly_debt_payments / monthly_income * 100)
    else:
        savings_rate = 0.0
        debt_to_income = 0.0

    dob = snapshot.profile.date_of_birth if snapshot.profile else None
    age = calculate_age(dob, today)

    score = retirement_readiness_score(
        total_retirement=float(total_retirement),
        monthly_income=float(monthly_income),
        savings_rate=savings_rate,
        debt_to_income=debt_to_income,
        age=age,
    )

    cents = Decimal("0.01")
    return FinancialSummary(
        total_assets=total_assets.quantize(cents),
        total_retirement=total_retirement.quantize(cents),
        total_debts=total_debts.quantize(cents),
        net_worth=(total_assets + total_retirement - total_debts).quantize(cents),
        monthly_income=monthly_income.quantize(cents),
        monthly_savings=monthly_savings.quantize(cents),
        monthly_debt_payments=monthly_debt_payments.quantize(cents),
        savings_rate=savings_rate,
        debt_to_income=debt_to_income,
        age=age,
        readiness_score=score,
    )
