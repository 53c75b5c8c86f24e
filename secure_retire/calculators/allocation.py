"""
Percentage Allocation Checks

Two places split a whole into percentages: beneficiaries share an estate,
and a portfolio splits across asset classes. Both should add up to 100.

Portfolios are also compared with the target weights of a 1-5 risk
profile, and the current weights give a rough expected return and
volatility.
"""

from decimal import Decimal
from typing import Iterable, Union

from pydantic import BaseModel

from secure_retire.models.financial import PortfolioAllocation


Number = Union[int, float, Decimal]

# Targets per risk level (1 = conservative ... 5 = aggressive)
RISK_PROFILES: dict[int, dict[str, int]] = {
    1: {"equity": 20, "bonds": 60, "international": 10, "alternatives": 10},
    2: {"equity": 40, "bonds": 50, "international": 15, "alternatives": 5},
    3: {"equity": 60, "bonds": 30, "international": 20, "alternatives": 10},
    4: {"equity": 80, "bonds": 15, "international": 25, "alternatives": 15},
    5: {"equity": 90, "bonds": 5, "international": 30, "alternatives": 20},
}


class RebalanceRecommendation(BaseModel):
    asset_class: str
    current_percentage: float
    target_percentage: float
    drift: float
    action: str
    priority: str
    rationale: str


def percentage_total(values: Iterable[Number]) -> Decimal:
    return sum((Decimal(str(v)) for v in values), Decimal("0"))


def validate_percentage_total(
    values: Iterable[Number],
    expected: Number = 100,
    tolerance: Number = Decimal("0.01"),
) -> tuple[bool, Decimal]:
    """Returns (is_valid, actual_total)."""
    total = percentage_total(values)
    return abs(total - Decimal(str(expected))) <= Decimal(str(tolerance)), total


def percentage_total_message(total: Decimal) -> str:
    return f"Total percentage should equal 100%. Current total: {total.normalize():f}%"


def _priority(drift: float) -> str:
    if drift > 15:
        return "high"
    if drift > 10:
        return "medium"
    return "low"


def rebalancing_recommendations(
    allocations: Iterable[PortfolioAllocation],
) -> list[RebalanceRecommendation]:
    """
    One recommendation per asset class whose drift exceeds its threshold,
    largest drift first.
    """
    recommendations = []
    for allocation in allocations:
        target = float(allocation.target_percentage)
        current = float(allocation.current_percentage)
        drift = abs(target - current)
        if drift <= float(allocation.rebalance_threshold):
            continue

        if target > current:
            action = "increase"
            rationale = (
                f"{allocation.asset_class} is {drift:.1f}% below its target weight."
            )
        else:
            action = "decrease"
            rationale = (
                f"You're overexposed to {allocation.asset_class} by {drift:.1f}%."
            )

        recommendations.append(RebalanceRecommendation(
            asset_class=allocation.asset_class,
            current_percentage=current,
            target_percentage=target,
            drift=drift,
            action=action,
            priority=_priority(drift),
            rationale=rationale,
        ))

    recommendations.sort(key=lambda r: r.drift, reverse=True)
    return recommendations


def target_profile(risk_level: int) -> dict[str, int]:
    """Target weights for a 1-5 risk level; anything else gets the moderate profile."""
    return dict(RISK_PROFILES.get(risk_level, RISK_PROFILES[3]))


# Risk-profile category for each asset class; unknown classes count as equity
ASSET_CLASS_CATEGORIES: dict[str, str] = {
    "US Equity": "equity",
    "International Equity": "international",
    "Fixed Income": "bonds",
    "Real Estate": "alternatives",
    "Technology": "equity",
    "Consumer Staples": "equity",
    "Government Bonds": "bonds",
    "Municipal Bonds": "bonds",
}

# (annual volatility %, expected annual return %)
ASSET_CLASS_RISK_RETURN: dict[str, tuple[float, float]] = {
    "US Equity": (16, 10),
    "International Equity": (18, 8),
    "Fixed Income": (4, 3),
    "Real Estate": (20, 9),
    "Technology": (25, 15),
    "Consumer Staples": (12, 8),
    "Government Bonds": (3, 2),
    "Municipal Bonds": (3, 2.5),
}
DEFAULT_RISK_RETURN = (15, 8)

# Drift from the risk-profile target that warrants a recommendation
RECOMMENDATION_THRESHOLD = 5


class PortfolioRiskMetrics(BaseModel):
    expected_return: float
    volatility: float
    sharpe_ratio: float
    risk_level: str


class InvestmentAnalysis(BaseModel):
    """Risk-profile recommendations for a portfolio, with its current metrics."""

    risk_tolerance: int
    portfolio_value: float
    current_metrics: PortfolioRiskMetrics
    recommendations: list[RebalanceRecommendation]
    return_improvement: float
    risk_reduction: float
    efficiency_gain: str


def portfolio_risk_metrics(allocations: Iterable[PortfolioAllocation]) -> PortfolioRiskMetrics:
    """
    Expected return and volatility of the current weights.

    Asset classes are treated as uncorrelated, so volatility is the root
    of the summed squared weighted risks. Sharpe ratio uses a zero
    risk-free rate.
    """
    variance = 0.0
    expected = 0.0
    for allocation in allocations:
        weight = float(allocation.current_percentage) / 100
        risk, annual_return = ASSET_CLASS_RISK_RETURN.get(allocation.asset_class, DEFAULT_RISK_RETURN)
        variance += (weight * risk) ** 2
        expected += weight * annual_return

    volatility = variance ** 0.5
    if volatility < 8:
        risk_level = "Low"
    elif volatility < 15:
        risk_level = "Medium"
    else:
        risk_level = "High"

    return PortfolioRiskMetrics(
        expected_return=round(expected, 2),
        volatility=round(volatility, 2),
        sharpe_ratio=round(expected / volatility, 2) if volatility else 0.0,
        risk_level=risk_level,
    )


def investment_recommendations(
    allocations: Iterable[PortfolioAllocation],
    risk_tolerance: int = 3,
    portfolio_value: float = 100000,
    asset_classes: Iterable[str] = (),
) -> InvestmentAnalysis:
    """
    Compare each asset class with the target weight of its category for
    the given risk tolerance.

    Args:
        allocations: The user's current allocations
        risk_tolerance: 1 (conservative) to 5 (aggressive)
        portfolio_value: Used only for reporting
        asset_classes: Extra classes to consider that the user doesn't hold yet
    """
    allocations = list(allocations)
    profile = target_profile(risk_tolerance)
    current = {a.asset_class: float(a.current_percentage) for a in allocations}

    candidates = list(dict.fromkeys([*current, *asset_classes]))
    recommendations = []
    for asset_class in candidates:
        category = ASSET_CLASS_CATEGORIES.get(asset_class, "equity")
        target = float(profile.get(category, 0))
        held = current.get(asset_class, 0.0)
        drift = abs(target - held)
        if drift <= RECOMMENDATION_THRESHOLD:
            continue

        if target > held:
            action = "increase"
            rationale = (
                f"Your current allocation is {drift:.1f}% below the optimal level "
                f"for your risk profile."
            )
        else:
            action = "decrease"
            rationale = f"You're overexposed to {asset_class} by {drift:.1f}%."

        recommendations.append(RebalanceRecommendation(
            asset_class=asset_class,
            current_percentage=held,
            target_percentage=target,
            drift=drift,
            action=action,
            priority=_priority(drift),
            rationale=rationale,
        ))
    recommendations.sort(key=lambda r: r.drift, reverse=True)

    metrics = portfolio_risk_metrics(allocations)
    optimized_return = sum(r.target_percentage * 0.08 for r in recommendations)
    return InvestmentAnalysis(
        risk_tolerance=risk_tolerance if risk_tolerance in RISK_PROFILES else 3,
        portfolio_value=portfolio_value,
        current_metrics=metrics,
        recommendations=recommendations,
        return_improvement=round(max(0.0, optimized_return - metrics.expected_return), 2),
        risk_reduction=round(metrics.volatility * 0.05, 2),
        efficiency_gain="High" if recommendations else "Already Optimized",
    )
