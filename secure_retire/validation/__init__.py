"""Form validation."""

from secure_retire.validation.validator import (
    BeneficiaryValidator,
    DocumentUploadValidator,
    FinancialRecordValidator,
    PersonalInfoValidator,
    TwoStageValidator,
    WillValidator,
    format_national_id,
    get_user_friendly_summary,
    is_valid_national_id,
    national_id_label,
    national_id_placeholder,
)

__all__ = [
    "BeneficiaryValidator",
    "DocumentUploadValidator",
    "FinancialRecordValidator",
    "PersonalInfoValidator",
    "TwoStageValidator",
    "WillValidator",
    "format_national_id",
    "get_user_friendly_summary",
    "is_valid_national_id",
    "national_id_label",
    "national_id_placeholder",
]
