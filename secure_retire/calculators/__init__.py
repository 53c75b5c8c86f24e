"""Pure financial arithmetic: no storage, no network."""

from secure_retire.calculators.allocation import (
    InvestmentAnalysis,
    PortfolioRiskMetrics,
    RebalanceRecommendation,
    investment_recommendations,
    percentage_total_message,
    portfolio_risk_metrics,
    rebalancing_recommendations,
    target_profile,
    validate_percentage_total,
)
from secure_retire.calculators.budget import (
    BudgetCategory,
    BudgetPlan,
    build_budget,
)
from secure_retire.calculators.retirement import (
    RetirementGoals,
    RetirementProjection,
    RiskTolerance,
    project_retirement,
    run_monte_carlo,
)
from secure_retire.calculators.summary import (
    calculate_age,
    calculate_financial_summary,
    readiness_band,
    retirement_readiness_score,
    to_monthly,
)
from secure_retire.calculators.tax import (
    FilingStatus,
    TaxEstimate,
    TaxInput,
    estimate_taxes,
)

__all__ = [
    "BudgetCategory",
    "BudgetPlan",
    "FilingStatus",
    "InvestmentAnalysis",
    "PortfolioRiskMetrics",
    "RebalanceRecommendation",
    "RetirementGoals",
    "RetirementProjection",
    "RiskTolerance",
    "TaxEstimate",
    "TaxInput",
    "build_budget",
    "calculate_age",
    "calculate_financial_summary",
    "estimate_taxes",
    "investment_recommendations",
    "percentage_total_message",
    "portfolio_risk_metrics",
    "project_retirement",
    "readiness_band",
    "rebalancing_recommendations",
    "retirement_readiness_score",
    "run_monte_carlo",
    "target_profile",
    "to_monthly",
    "validate_percentage_total",
]
