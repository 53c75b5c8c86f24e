"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Minimum lengths
- Format validation (emails, national IDs, MIME types)
- This catches empty and malformed form input

STAGE 2 - SEMANTIC VALIDATION:
- Business logic checks
- Future dates of birth, percentages that don't add up
- Suspicious values (a payment larger than the balance)
- This catches logically impossible or surprising data

WHY TWO STAGES:
1. Separation of concerns (structural vs logical)
2. Better error messages (know exactly what kind of issue)
3. Can skip stage 2 if stage 1 fails

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from secure_retire.calculators.allocation import (
    percentage_total_message,
    validate_percentage_total,
)
from secure_retire.config import get_settings
from secure_retire.models.documents import (
    ALLOWED_MIME_TYPES,
    DocumentUpload,
    WillData,
)
from secure_retire.models.financial import (
    Asset,
    Beneficiary,
    Debt,
    IncomeSource,
    RecordBase,
    RetirementAccount,
    UserProfile,
)
from secure_retire.models.validation import ValidationIssue, ValidationResult
from secure_retire.services.ocr import CorruptImageError, verify_image


EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

GB_NATIONAL_INSURANCE = re.compile(r"^[A-Z]{2}[0-9]{6}[A-Z]$")
LK_NIC = re.compile(r"^([0-9]{9}[VX]|[0-9]{12})$")

NATIONAL_ID_LABELS = {
    "US": "Social Security Number (SSN)",
    "CA": "Social Insurance Number (SIN)",
    "GB": "National Insurance Number",
    "LK": "National Identity Card (NIC)",
}

NATIONAL_ID_PLACEHOLDERS = {
    "US": "123-45-6789",
    "CA": "123-456-789",
    "GB": "AB123456C",
    "LK": "123456789V",
}


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def national_id_label(country: str) -> str:
    return NATIONAL_ID_LABELS.get(country.upper(), "National ID Number")


def national_id_placeholder(country: str) -> str:
    return NATIONAL_ID_PLACEHOLDERS.get(country.upper(), "")


def is_valid_national_id(value: str, country: str) -> bool:
    """
    Country-specific shape check.

    US and CA take 9 digits in any punctuation, GB a National Insurance
    number, LK an old (9 digits + V/X) or new (12 digit) NIC. Everywhere
    else at least 8 digits.
    """
    country = (country or "").upper()
    compact = re.sub(r"[\s-]", "", value or "").upper()
    if country in ("US", "CA"):
        return len(_digits(value)) == 9
    if country == "GB":
        return bool(GB_NATIONAL_INSURANCE.match(compact))
    if country == "LK":
        return bool(LK_NIC.match(compact))
    return len(_digits(value)) >= 8


def format_national_id(value: str, country: str) -> str:
    """
    Display format while typing: US XXX-XX-XXXX, CA XXX-XXX-XXX.

    Letter-bearing formats (GB, LK) are upper-cased with spaces removed;
    all other countries keep only digits.
    """
    country = (country or "").upper()
    digits = _digits(value)
    if country == "US":
        if len(digits) >= 5:
            return f"{digits[:3]}-{digits[3:5]}-{digits[5:9]}"
        if len(digits) >= 3:
            return f"{digits[:3]}-{digits[3:]}"
        return digits
    if country == "CA":
        if len(digits) >= 6:
            return f"{digits[:3]}-{digits[3:6]}-{digits[6:9]}"
        if len(digits) >= 3:
            return f"{digits[:3]}-{digits[3:]}"
        return digits
    if country in ("GB", "LK"):
        return re.sub(r"\s", "", value or "").upper()
    return digits


def _has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


class TwoStageValidator:
    """
    Runs a schema stage and, if that passes, a semantic stage.

    Subclasses implement _validate_schema and _validate_semantic, each
    returning (is_valid, issues).
    """

    subject = "form"

    def __init__(self):
        self._settings = get_settings().app

    def _validate_schema(self, data) -> tuple[bool, list[ValidationIssue]]:
        raise NotImplementedError

    def _validate_semantic(self, data) -> tuple[bool, list[ValidationIssue]]:
        return True, []

    def validate(self, data) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(data)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(data)
            all_issues.extend(semantic_issues)

        warnings = [i.message for i in all_issues if i.severity == "warning"]

        return ValidationResult(
            subject=self.subject,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )


class PersonalInfoValidator(TwoStageValidator):
    """Registration step 1."""

    subject = "personal_info"

    def __init__(self, today: Optional[date] = None):
        super().__init__()
        self._today = today

    def _min_length(
        self,
        issues: list[ValidationIssue],
        field: str,
        value: str,
        length: int,
        message: str,
    ) -> None:
        if len((value or "").strip()) < length:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing" if not value else "too_short",
                message=message,
                severity="error",
            ))

    def _validate_schema(self, profile: UserProfile) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []

        self._min_length(issues, "full_name", profile.full_name, 2,
                         "Full name must be at least 2 characters")

        if profile.date_of_birth is None:
            issues.append(ValidationIssue(
                field="date_of_birth",
                issue_type="missing",
                message="Date of birth is required",
                severity="error",
            ))

        self._min_length(issues, "national_id", profile.national_id, 9,
                         "Please enter a valid SSN/National ID")

        if len(_digits(profile.phone)) < 10:
            issues.append(ValidationIssue(
                field="phone",
                issue_type="invalid_format",
                message="Please enter a valid phone number",
                severity="error",
                suggested_fix="Include the area code, at least 10 digits",
            ))

        address = profile.address
        self._min_length(issues, "address.street", address.street, 5, "Street address is required")
        self._min_length(issues, "address.city", address.city, 2, "City is required")
        self._min_length(issues, "address.state", address.state, 2, "State/Province is required")
        self._min_length(issues, "address.zip_code", address.zip_code, 5, "ZIP/Postal code is required")
        self._min_length(issues, "address.country", address.country, 2, "Country is required")

        if profile.email and not EMAIL_PATTERN.match(profile.email):
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message="Invalid email format",
                severity="error",
            ))

        return not _has_errors(issues), issues

    def _validate_semantic(self, profile: UserProfile) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        today = self._today or date.today()

        if profile.date_of_birth and profile.date_of_birth >= today:
            issues.append(ValidationIssue(
                field="date_of_birth",
                issue_type="future_date",
                message="Date of birth must be in the past",
                severity="error",
            ))
        elif profile.date_of_birth and (today.year - profile.date_of_birth.year) > 120:
            issues.append(ValidationIssue(
                field="date_of_birth",
                issue_type="suspicious_date",
                message=f"Date of birth ({profile.date_of_birth}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the year",
            ))

        country = profile.address.country or profile.country
        if not is_valid_national_id(profile.national_id, country):
            issues.append(ValidationIssue(
                field="national_id",
                issue_type="invalid_format",
                message=f"Invalid {national_id_label(country)}",
                severity="error",
                suggested_fix=(
                    f"Expected format: {national_id_placeholder(country)}"
                    if national_id_placeholder(country) else None
                ),
            ))

        return not _has_errors(issues), issues


class FinancialRecordValidator(TwoStageValidator):
    """
    Asset, debt, income and retirement rows.

    The models already reject negatives; this adds the checks that need
    more than one field.
    """

    subject = "financial_record"

    def _validate_schema(self, record: RecordBase) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []

        if isinstance(record, (Asset, RetirementAccount)) and not record.institution_name:
            issues.append(ValidationIssue(
                field="institution_name",
                issue_type="missing",
                message="Institution name is required",
                severity="error",
            ))
        if isinstance(record, IncomeSource) and not record.source_type:
            issues.append(ValidationIssue(
                field="source_type",
                issue_type="missing",
                message="Income source type is required",
                severity="error",
            ))
        if isinstance(record, IncomeSource) and record.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Income amount must be greater than zero",
                severity="error",
            ))

        return not _has_errors(issues), issues

    def _validate_semantic(self, record: RecordBase) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []

        if isinstance(record, Debt):
            if record.balance > 0 and record.monthly_payment > record.balance:
                issues.append(ValidationIssue(
                    field="monthly_payment",
                    issue_type="suspicious_value",
                    message="Monthly payment is larger than the remaining balance",
                    severity="warning",
                    suggested_fix="Please verify the payment and balance",
                ))
            if record.interest_rate > Decimal("36"):
                issues.append(ValidationIssue(
                    field="interest_rate",
                    issue_type="suspicious_value",
                    message=f"Interest rate ({record.interest_rate}%) seems unusually high",
                    severity="warning",
                    suggested_fix="Enter the annual rate as a percentage, e.g. 5.5",
                ))

        if isinstance(record, RetirementAccount):
            if record.contribution_amount > 0 and record.balance == 0:
                issues.append(ValidationIssue(
                    field="balance",
                    issue_type="suspicious_value",
                    message="Account has contributions but no balance",
                    severity="info",
                ))

        return not _has_errors(issues), issues


class BeneficiaryValidator(TwoStageValidator):
    """A full beneficiary list; shares must add to 100% when any exist."""

    subject = "beneficiaries"

    def _validate_schema(
        self,
        beneficiaries: list[Beneficiary],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        for idx, beneficiary in enumerate(beneficiaries):
            if beneficiary.contact_email and not EMAIL_PATTERN.match(beneficiary.contact_email):
                issues.append(ValidationIssue(
                    field=f"beneficiaries[{idx}].contact_email",
                    issue_type="invalid_format",
                    message=f"Invalid email format for {beneficiary.full_name}",
                    severity="error",
                ))
        return not _has_errors(issues), issues

    def _validate_semantic(
        self,
        beneficiaries: list[Beneficiary],
    ) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        if not beneficiaries:
            return True, issues

        ok, total = validate_percentage_total(b.percentage for b in beneficiaries)
        if not ok:
            issues.append(ValidationIssue(
                field="percentage",
                issue_type="inconsistent",
                message=percentage_total_message(total),
                severity="error",
                suggested_fix="Adjust the shares so they add up to exactly 100%",
            ))

        if not any(b.is_primary for b in beneficiaries):
            issues.append(ValidationIssue(
                field="is_primary",
                issue_type="missing",
                message="No primary beneficiary has been designated",
                severity="warning",
            ))

        names = [b.full_name.lower() for b in beneficiaries]
        if len(set(names)) != len(names):
            issues.append(ValidationIssue(
                field="full_name",
                issue_type="potential_duplicate",
                message="The same beneficiary appears more than once",
                severity="warning",
                suggested_fix="Combine their shares into one entry",
            ))

        return not _has_errors(issues), issues


class DocumentUploadValidator(TwoStageValidator):
    """
    Size and type limits, plus a Pillow check for images.

    Validate with (upload, data) so the bytes can be inspected.
    """

    subject = "document_upload"

    def __init__(self, today: Optional[date] = None):
        super().__init__()
        self._today = today

    def _validate_schema(
        self,
        payload: tuple[DocumentUpload, bytes],
    ) -> tuple[bool, list[ValidationIssue]]:
        upload, data = payload
        issues: list[ValidationIssue] = []

        if not data:
            issues.append(ValidationIssue(
                field="file",
                issue_type="empty",
                message="The file is empty",
                severity="error",
            ))

        max_bytes = self._settings.max_upload_size_bytes
        if upload.file_size_bytes > max_bytes:
            issues.append(ValidationIssue(
                field="file",
                issue_type="too_large",
                message=(
                    f"File is too large ({upload.file_size_bytes / 1024 / 1024:.1f} MB). "
                    f"Maximum is {self._settings.max_upload_size_mb} MB"
                ),
                severity="error",
                suggested_fix="Compress the file or upload a smaller scan",
            ))

        if upload.mime_type not in ALLOWED_MIME_TYPES:
            issues.append(ValidationIssue(
                field="mime_type",
                issue_type="invalid_format",
                message=f"Unsupported file type: {upload.mime_type}",
                severity="error",
            ))

        return not _has_errors(issues), issues

    def _validate_semantic(
        self,
        payload: tuple[DocumentUpload, bytes],
    ) -> tuple[bool, list[ValidationIssue]]:
        upload, data = payload
        issues: list[ValidationIssue] = []

        if upload.mime_type.startswith("image/"):
            try:
                verify_image(data)
            except CorruptImageError as e:
                issues.append(ValidationIssue(
                    field="file",
                    issue_type="corrupt",
                    message=str(e),
                    severity="error",
                    suggested_fix="Try exporting the image again",
                ))

        today = self._today or date.today()
        if upload.renewal_date and upload.renewal_date < today:
            issues.append(ValidationIssue(
                field="renewal_date",
                issue_type="past_date",
                message=f"Renewal date ({upload.renewal_date}) has already passed",
                severity="warning",
            ))

        return not _has_errors(issues), issues

    def validate_upload(self, upload: DocumentUpload, data: bytes) -> ValidationResult:
        return self.validate((upload, data))


class WillValidator(TwoStageValidator):
    """Will generator form plus the beneficiary split it distributes."""

    subject = "will"

    def __init__(self, beneficiaries: Iterable[Beneficiary] = ()):
        super().__init__()
        self._beneficiaries = list(beneficiaries)

    def _validate_schema(self, will: WillData) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        required = [
            ("jurisdiction", will.jurisdiction, "Jurisdiction is required"),
            ("testator_name", will.testator_name, "Testator name is required"),
            ("testator_address", will.testator_address, "Testator address is required"),
            ("executor_name", will.executor_name, "Executor name is required"),
            ("executor_email", will.executor_email, "Executor email is required"),
        ]
        for field, value, message in required:
            if not value:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=message,
                    severity="error",
                ))

        if will.executor_email and not EMAIL_PATTERN.match(will.executor_email):
            issues.append(ValidationIssue(
                field="executor_email",
                issue_type="invalid_format",
                message="Invalid email format",
                severity="error",
            ))

        return not _has_errors(issues), issues

    def _validate_semantic(self, will: WillData) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []

        if not self._beneficiaries:
            issues.append(ValidationIssue(
                field="beneficiaries",
                issue_type="missing",
                message="Add at least one beneficiary before generating a will",
                severity="error",
            ))
        else:
            ok, total = validate_percentage_total(b.percentage for b in self._beneficiaries)
            if not ok:
                issues.append(ValidationIssue(
                    field="beneficiaries",
                    issue_type="inconsistent",
                    message=percentage_total_message(total),
                    severity="error",
                ))

        return not _has_errors(issues), issues


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Generate a user-friendly summary of validation results.

    This is what we show next to the form.
    """
    if result.is_valid and not result.warnings:
        return "✅ All checks passed!"

    lines = []

    if result.has_errors:
        lines.append("❌ Please fix the following:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("⚠️ Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    if result.is_valid:
        lines.append("")
        lines.append("You can still continue, but please double-check.")

    return "\n".join(lines)
