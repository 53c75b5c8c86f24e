"""
Tests for Secure Retire

Test strategy:
1. Unit tests for individual components (models, validators, calculators)
2. Integration tests for flows (in-memory storage, mocked hosted services)
3. No real API calls in tests (use mocks)
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from secure_retire.models import (
    Address,
    Asset,
    AssetType,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Beneficiary,
    Debt,
    DebtType,
    DocumentType,
    DocumentUpload,
    FinancialInsight,
    IncomeSource,
    InsightPriority,
    PortfolioAllocation,
    RelationshipType,
    StoredDocument,
    UserProfile,
    UserSettings,
    ValidationIssue,
    ValidationResult,
    witness_requirements_for,
)


class TestFinancialModels:
    """Tests for the financial row models."""

    def test_asset_creation(self):
        """Test Asset model creation."""
        asset = Asset(
            type=AssetType.SAVINGS,
            institution_name="  Commercial Bank  ",
            amount=Decimal("2500.00"),
        )
        assert asset.institution_name == "Commercial Bank"
        assert asset.currency == "USD"
        assert asset.user_id is None

    def test_asset_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Asset(
                type=AssetType.CHECKING,
                institution_name="Bank",
                amount=Decimal("-1.00"),
            )

    def test_asset_rejects_sub_cent_amount(self):
        """Test that amounts carry at most two decimal places."""
        with pytest.raises(ValueError):
            Asset(
                type=AssetType.CHECKING,
                institution_name="Bank",
                amount=Decimal("10.001"),
            )

    def test_debt_interest_rate_capped(self):
        """Test that an interest rate above 100% is rejected."""
        with pytest.raises(ValueError):
            Debt(
                debt_type=DebtType.CREDIT_CARD,
                balance=Decimal("100.00"),
                interest_rate=Decimal("120"),
            )

    def test_income_end_before_start_rejected(self):
        """Test income end date cannot be before start."""
        with pytest.raises(ValueError, match="end date cannot be before start"):
            IncomeSource(
                source_type="Salary",
                amount=Decimal("1000.00"),
                start_date=date(2024, 6, 1),
                end_date=date(2024, 1, 1),
            )

    def test_beneficiary_percentage_bounds(self):
        """Test beneficiary share must be between 1 and 100."""
        with pytest.raises(ValueError):
            Beneficiary(
                full_name="Nimal Perera",
                relationship=RelationshipType.CHILD,
                percentage=Decimal("0"),
            )
        with pytest.raises(ValueError):
            Beneficiary(
                full_name="Nimal Perera",
                relationship=RelationshipType.CHILD,
                percentage=Decimal("101"),
            )

    def test_portfolio_allocation_default_threshold(self):
        """Test rebalance threshold defaults to 5 points."""
        allocation = PortfolioAllocation(asset_class="Equity", target_percentage=Decimal("60"))
        assert allocation.rebalance_threshold == Decimal("5")
        assert allocation.current_percentage == Decimal("0")

    def test_profile_upper_cases_codes(self):
        """Test country and currency codes are normalised to upper case."""
        profile = UserProfile(country="lk", currency="lkr")
        assert profile.country == "LK"
        assert profile.currency == "LKR"

    def test_address_one_line_skips_blanks(self):
        """Test address rendering leaves out empty parts."""
        address = Address(street="12 Galle Road", city="Colombo", country="LK")
        assert address.one_line() == "12 Galle Road, Colombo, LK"

    def test_insight_defaults(self):
        """Test FinancialInsight default priority."""
        insight = FinancialInsight(title="Save more", description="Raise contributions.")
        assert insight.priority == InsightPriority.MEDIUM
        assert insight.action_amount is None


class TestDocumentModels:
    """Tests for document models."""

    def test_upload_rejects_unknown_mime_type(self):
        """Test that unsupported MIME types fail at the model."""
        with pytest.raises(ValueError, match="Unsupported file type"):
            DocumentUpload(
                original_filename="archive.zip",
                file_size_bytes=10,
                mime_type="application/zip",
            )

    def test_upload_extension_and_ocr_flag(self):
        """Test extension lookup and which types are OCR'd."""
        pdf = DocumentUpload(original_filename="a.pdf", file_size_bytes=1, mime_type="Application/PDF")
        txt = DocumentUpload(original_filename="a.txt", file_size_bytes=1, mime_type="text/plain")
        assert pdf.mime_type == "application/pdf"
        assert pdf.extension == "pdf"
        assert pdf.needs_ocr is True
        assert txt.needs_ocr is False

    def test_days_until_renewal(self):
        """Test renewal countdown."""
        doc = StoredDocument(
            name="Policy",
            file_url="memory://documents/x.pdf",
            storage_path="x.pdf",
            mime_type="application/pdf",
            type=DocumentType.INSURANCE_POLICY,
            renewal_date=date(2026, 11, 1),
        )
        assert doc.days_until_renewal(date(2026, 10, 19)) == 13

    def test_witness_requirements_fallback(self):
        """Test unknown jurisdictions get the generic requirement."""
        assert witness_requirements_for("US-NY") == "Requires 2 witnesses and notarization"
        assert witness_requirements_for("XX") == "Check local requirements"


class TestAccountModels:
    """Tests for account models."""

    def test_user_settings_defaults(self):
        """Test default display settings."""
        settings = UserSettings(user_id=uuid4())
        assert settings.currency == "USD"
        assert settings.language == "en"
        assert settings.notifications.document_renewals is True


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.DOCUMENT_UPLOADED,
            description="Test document uploaded",
        )
        assert event.event_type == AuditEventType.DOCUMENT_UPLOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.CREDITS_SPENT,
            description="1 credit(s) spent",
            details={"operation": "AI_INSIGHT", "amount": 1},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "credits_spent"
        assert log_dict["details"]["operation"] == "AI_INSIGHT"

    def test_audit_event_row_round_trip(self):
        """Test audit_logs row layout and rebuilding from new_data."""
        user_id = uuid4()
        record_id = uuid4()
        event = AuditEventBuilder.record_changed(
            AuditEventType.RECORD_CREATED, user_id, "assets", record_id,
        )
        row = event.to_row()
        assert row["operation"] == "record_created"
        assert row["table_name"] == "assets"
        assert row["record_id"] == str(record_id)
        assert row["user_id"] == str(user_id)

        rebuilt = AuditEvent.from_row(row)
        assert rebuilt.event_id == event.event_id
        assert rebuilt.description == "Record created in assets"

    def test_audit_event_builder_credits_denied(self):
        """Test AuditEventBuilder.credits_denied."""
        event = AuditEventBuilder.credits_denied(uuid4(), "WILL_GENERATION", 5, 2)
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"operation": "WILL_GENERATION", "required": 5, "available": 2}
        assert event.is_user_action is False


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            subject="will",
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="executor_email",
                    issue_type="missing",
                    message="Executor email is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.errors_for("executor_email") == ["Executor email is required"]
        assert result.errors_for("testator_name") == []

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            subject="financial_record",
            validated_at=datetime.utcnow(),
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="interest_rate",
                    issue_type="suspicious_value",
                    message="Interest rate seems unusually high",
                    severity="warning",
                ),
            ],
            warnings=["Interest rate seems unusually high"],
        )
        assert result.has_errors is False
        assert result.error_count == 0
