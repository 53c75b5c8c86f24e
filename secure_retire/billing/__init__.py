"""Subscription plans and the credits paywall."""

from secure_retire.billing.credits import (
    CREDIT_COSTS,
    CREDIT_OPERATIONS,
    UNLIMITED_CREDITS,
    CreditGate,
    CreditOperation,
    InsufficientCreditsError,
    SubscriptionStatus,
    check_operation,
    credit_operation,
    is_feature_restricted,
    next_reset_date,
    plan_price,
    reset_monthly_credits,
    total_cost,
)

__all__ = [
    "CREDIT_COSTS",
    "CREDIT_OPERATIONS",
    "UNLIMITED_CREDITS",
    "CreditGate",
    "CreditOperation",
    "InsufficientCreditsError",
    "SubscriptionStatus",
    "check_operation",
    "credit_operation",
    "is_feature_restricted",
    "next_reset_date",
    "plan_price",
    "reset_monthly_credits",
    "total_cost",
]
