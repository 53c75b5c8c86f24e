"""
Monthly Budget Plan

Splits monthly income across spending categories using recommended
shares of income (a 50/30/20-style split), lets the user override any
category's budget, and compares it with what was actually spent.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


# Recommended share of monthly income per category, in percent
RECOMMENDED_PERCENTAGES: dict[str, int] = {
    "housing": 30,
    "healthcare": 8,
    "transportation": 15,
    "food": 12,
    "entertainment": 8,
    "shopping": 5,
    "travel": 5,
    "savings": 20,
}

CATEGORY_NAMES: dict[str, str] = {
    "housing": "Housing & Utilities",
    "healthcare": "Healthcare",
    "transportation": "Transportation",
    "food": "Food & Groceries",
    "entertainment": "Entertainment",
    "shopping": "Shopping",
    "travel": "Travel",
    "savings": "Savings",
}

# Utilisation above this is flagged before the budget is exceeded
WARNING_UTILIZATION = 80


class BudgetCategory(BaseModel):
    key: str
    name: str
    recommended_percentage: int
    budgeted: Decimal
    spent: Decimal
    utilization: float
    status: str

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.budgeted - self.spent)


class BudgetPlan(BaseModel):
    monthly_income: Decimal
    categories: list[BudgetCategory]
    total_budgeted: Decimal
    total_spent: Decimal
    utilization: float
    unallocated: Decimal

    @property
    def overspent(self) -> list[BudgetCategory]:
        return [c for c in self.categories if c.status == "over"]


def _status(utilization: float) -> str:
    if utilization > 100:
        return "over"
    if utilization > WARNING_UTILIZATION:
        return "warning"
    return "ok"


def build_budget(
    monthly_income: Decimal,
    spent: Optional[dict[str, Decimal]] = None,
    custom_budgets: Optional[dict[str, Decimal]] = None,
) -> BudgetPlan:
    """
    Budget every category and compare with spending.

    A category's budget is its recommended share of income unless a
    positive custom amount is given. unallocated is income minus the
    total budget and goes negative when the budgets exceed income.

    Raises:
        ValueError: For an unknown category key
    """
    spent = spent or {}
    custom_budgets = custom_budgets or {}
    for key in [*spent, *custom_budgets]:
        if key not in RECOMMENDED_PERCENTAGES:
            raise ValueError(f"Unknown budget category: {key}")

    income = Decimal(str(monthly_income))
    categories = []
    for key, percentage in RECOMMENDED_PERCENTAGES.items():
        custom = Decimal(str(custom_budgets.get(key, 0)))
        budgeted = custom if custom > 0 else (income * percentage / 100).quantize(Decimal("0.01"))
        category_spent = Decimal(str(spent.get(key, 0)))
        utilization = float(category_spent / budgeted * 100) if budgeted > 0 else 0.0
        categories.append(BudgetCategory(
            key=key,
            name=CATEGORY_NAMES[key],
            recommended_percentage=percentage,
            budgeted=budgeted,
            spent=category_spent,
            utilization=round(utilization, 1),
            status=_status(utilization),
        ))

    total_budgeted = sum((c.budgeted for c in categories), Decimal("0"))
    total_spent = sum((c.spent for c in categories), Decimal("0"))
    return BudgetPlan(
        monthly_income=income,
        categories=categories,
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        utilization=round(float(total_spent / total_budgeted * 100), 1) if total_budgeted > 0 else 0.0,
        unallocated=income - total_budgeted,
    )
