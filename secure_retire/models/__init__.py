"""
Data Models Package

This package contains all Pydantic models used in Secure Retire.
All data flowing through the system must conform to these schemas.
"""

from secure_retire.models.financial import (
    Address,
    Asset,
    AssetType,
    Beneficiary,
    Consultation,
    ConsultationStatus,
    Debt,
    DebtType,
    FinancialSnapshot,
    FinancialInsight,
    FinancialSummary,
    IncomeFrequency,
    IncomeSource,
    InsightPriority,
    PortfolioAllocation,
    RecordBase,
    RelationshipType,
    RetirementAccount,
    RetirementAccountType,
    UserProfile,
)
from secure_retire.models.account import (
    CreditBalance,
    Notification,
    NotificationPreferences,
    NotificationType,
    PaymentStatus,
    PlanType,
    PrivacyPreferences,
    Subscription,
    Theme,
    UserSettings,
)
from secure_retire.models.documents import (
    ALLOWED_MIME_TYPES,
    DocumentType,
    DocumentUpload,
    OCRResult,
    JURISDICTIONS,
    StoredDocument,
    WillData,
    witness_requirements_for,
)
from secure_retire.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from secure_retire.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Financial models
    "Address",
    "Asset",
    "AssetType",
    "Beneficiary",
    "Consultation",
    "ConsultationStatus",
    "Debt",
    "DebtType",
    "FinancialSnapshot",
    "FinancialInsight",
    "FinancialSummary",
    "IncomeFrequency",
    "IncomeSource",
    "InsightPriority",
    "PortfolioAllocation",
    "RecordBase",
    "RelationshipType",
    "RetirementAccount",
    "RetirementAccountType",
    "UserProfile",
    # Account models
    "CreditBalance",
    "Notification",
    "NotificationPreferences",
    "NotificationType",
    "PaymentStatus",
    "PlanType",
    "PrivacyPreferences",
    "Subscription",
    "Theme",
    "UserSettings",
    # Document models
    "ALLOWED_MIME_TYPES",
    "DocumentType",
    "DocumentUpload",
    "OCRResult",
    "JURISDICTIONS",
    "StoredDocument",
    "WillData",
    "witness_requirements_for",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
