"""
Validation Models

Shared by every form in the app: registration steps, financial records,
beneficiaries and uploads.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """One problem with one form field."""

    field: str = Field(
        ...,
        description="Form field name, or a group such as 'beneficiaries'"
    )
    issue_type: str = Field(
        ...,
        description="missing, invalid_format, out_of_range, inconsistent, ..."
    )
    message: str = Field(
        ...,
        description="Shown next to the field"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Optional hint shown under the message"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (presence, lengths, formats)
    Stage 2: Semantic validation (cross-field and business checks)
    """

    subject: str = Field(
        ...,
        description="What was validated, e.g. 'personal_info'"
    )
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    def errors_for(self, field: str) -> list[str]:
        """Error messages for one form field, for inline display."""
        return [
            issue.message
            for issue in self.issues
            if issue.field == field and issue.severity == "error"
        ]
