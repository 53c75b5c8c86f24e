"""
Retirement Projection

Deterministic projection plus a Monte Carlo spread of outcomes.

Rates in RetirementGoals are percentages (7 means 7%). Regional factors
scale inflation and haircut returns for tax drag before anything else runs.
"""

from enum import Enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field, model_validator


class RiskTolerance(str, Enum):
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class RegionalFactor(BaseModel):
    inflation: float
    tax: float
    social_security: float


REGIONAL_FACTORS: dict[str, RegionalFactor] = {
    "US": RegionalFactor(inflation=1.0, tax=0.22, social_security=0.40),
    "CA": RegionalFactor(inflation=1.02, tax=0.26, social_security=0.35),
    "UK": RegionalFactor(inflation=1.05, tax=0.28, social_security=0.30),
    "AU": RegionalFactor(inflation=1.03, tax=0.24, social_security=0.25),
    "EU": RegionalFactor(inflation=1.04, tax=0.30, social_security=0.45),
}

VOLATILITY: dict[RiskTolerance, float] = {
    RiskTolerance.CONSERVATIVE: 8.0,
    RiskTolerance.MODERATE: 12.0,
    RiskTolerance.AGGRESSIVE: 18.0,
}

# 4% withdrawal rule
WITHDRAWAL_MULTIPLE = 25
MONTE_CARLO_ITERATIONS = 1000


class RetirementGoals(BaseModel):
    current_age: int = Field(..., ge=16, le=100)
    target_retirement_age: int = Field(..., ge=30, le=100)
    desired_monthly_income: float = Field(..., ge=0)
    current_savings: float = Field(default=0.0, ge=0)
    inflation_rate: float = Field(default=3.0, ge=0, le=20)
    expected_return: float = Field(default=7.0, ge=-10, le=30)
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE
    region: str = "US"

    @model_validator(mode='after')
    def validate_ages(self) -> 'RetirementGoals':
        if self.target_retirement_age < self.current_age:
            raise ValueError("Retirement age cannot be before current age")
        return self

    @property
    def years_to_retirement(self) -> int:
        return self.target_retirement_age - self.current_age


class YearlyProjection(BaseModel):
    age: int
    portfolio_value: float
    contributions: float
    withdrawals: float = 0.0


class MonteCarloResult(BaseModel):
    percentile10: float
    percentile50: float
    percentile90: float
    success_rate: float = Field(description="Share of paths reaching the target, in percent")


class RetirementProjection(BaseModel):
    total_needed: float
    current_savings: float
    future_value_of_savings: float
    savings_gap: float
    monthly_contribution_needed: float
    projected_portfolio_value: float
    success_probability: float
    yearly_projections: list[YearlyProjection]
    monte_carlo: MonteCarloResult


def regional_factor(region: str) -> RegionalFactor:
    return REGIONAL_FACTORS.get(region.upper(), REGIONAL_FACTORS["US"])


def required_monthly_contribution(gap: float, annual_return: float, years: int) -> float:
    """
    Level monthly deposit that grows to `gap` at annual_return (percent).

    Zero return falls back to straight division. No months left means
    no contribution can close the gap, so 0 is returned and the gap stands.
    """
    months = years * 12
    if months <= 0 or gap <= 0:
        return 0.0
    monthly_rate = annual_return / 100 / 12
    if monthly_rate == 0:
        return gap / months
    annuity_factor = ((1 + monthly_rate) ** months - 1) / monthly_rate
    if annuity_factor == 0:
        return gap / months
    return gap / annuity_factor


def run_monte_carlo(
    initial_value: float,
    monthly_contribution: float,
    years: int,
    expected_return: float,
    volatility: float,
    iterations: int = MONTE_CARLO_ITERATIONS,
    seed: Optional[int] = None,
) -> MonteCarloResult:
    """
    Simulate `iterations` paths of annual returns drawn uniformly from
    expected_return +/- volatility (both percent).

    Percentiles are read by sorted index floor(n * p). Success means ending
    at or above 25x the initial value.
    """
    rng = np.random.default_rng(seed)
    values = np.full(iterations, float(initial_value))
    annual_contribution = monthly_contribution * 12
    for _ in range(max(years, 0)):
        returns = expected_return + (rng.random(iterations) - 0.5) * volatility * 2
        values = values * (1 + returns / 100) + annual_contribution

    ordered = np.sort(values)
    target = initial_value * WITHDRAWAL_MULTIPLE
    return MonteCarloResult(
        percentile10=float(ordered[int(iterations * 0.1)]),
        percentile50=float(ordered[int(iterations * 0.5)]),
        percentile90=float(ordered[int(iterations * 0.9)]),
        success_rate=float(np.count_nonzero(values >= target) / iterations * 100),
    )


def project_retirement(
    goals: RetirementGoals,
    seed: Optional[int] = None,
) -> RetirementProjection:
    """Build the full projection shown on the calculator page."""
    factor = regional_factor(goals.region)
    years = goals.years_to_retirement

    adjusted_inflation = goals.inflation_rate * factor.inflation
    adjusted_return = goals.expected_return * (1 - factor.tax)

    annual_need = goals.desired_monthly_income * 12 * (1 + adjusted_inflation / 100) ** years
    total_needed = annual_need * WITHDRAWAL_MULTIPLE

    current = goals.current_savings
    future_current = current * (1 + adjusted_return / 100) ** years
    gap = max(0.0, total_needed - future_current)
    monthly = required_monthly_contribution(gap, adjusted_return, years)

    yearly = []
    value = current
    for i in range(years + 1):
        if i > 0:
            value = value * (1 + adjusted_return / 100) + monthly * 12
        yearly.append(YearlyProjection(
            age=goals.current_age + i,
            portfolio_value=value,
            contributions=monthly * 12,
        ))

    monte_carlo = run_monte_carlo(
        initial_value=current,
        monthly_contribution=monthly,
        years=years,
        expected_return=adjusted_return,
        volatility=VOLATILITY[goals.risk_tolerance],
        seed=seed,
    )

    projected = future_current + monthly * 12 * years * 1.5
    if total_needed > 0:
        success = min(100.0, projected / total_needed * 100 * 0.8)
    else:
        success = 100.0

    return RetirementProjection(
        total_needed=total_needed,
        current_savings=current,
        future_value_of_savings=future_current,
        savings_gap=gap,
        monthly_contribution_needed=monthly,
        projected_portfolio_value=value,
        success_probability=success,
        yearly_projections=yearly,
        monte_carlo=monte_carlo,
    )
