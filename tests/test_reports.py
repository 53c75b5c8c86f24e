"""
Tests for PDF reports.
"""

from datetime import date
from decimal import Decimal

import pytest

from secure_retire.models.documents import WillData
from secure_retire.models.financial import (
    Asset,
    AssetType,
    Beneficiary,
    Debt,
    DebtType,
    FinancialInsight,
    FinancialSummary,
    RelationshipType,
)
from secure_retire.reports import (
    InvalidWillError,
    overview_lines,
    overview_report,
    will_document,
    will_sections,
)


def make_will(**overrides) -> WillData:
    data = dict(
        jurisdiction="US-CA",
        testator_name="Jane Doe",
        testator_address="1 Main St, Springfield",
        executor_name="John Doe",
        executor_email="john@example.com",
    )
    data.update(overrides)
    return WillData(**data)


def make_beneficiaries() -> list[Beneficiary]:
    return [
        Beneficiary(full_name="Amy Doe", relationship=RelationshipType.CHILD,
                    percentage=Decimal("60")),
        Beneficiary(full_name="Ben Doe", relationship=RelationshipType.CHILD,
                    percentage=Decimal("40.0"), is_primary=False),
    ]


class TestOverviewReport:
    """Financial overview PDF."""

    def test_lines(self):
        """Test headline figures and the readiness label."""
        summary = FinancialSummary(
            net_worth=Decimal("52000.00"),
            monthly_income=Decimal("5000.00"),
            debt_to_income=8.0,
            readiness_score=64,
        )
        lines = dict(overview_lines(summary, "USD"))
        assert lines["Net Worth"] == "$52,000.00"
        assert lines["Debt-to-Income Ratio"] == "8.0%"
        assert lines["Retirement Readiness Score"] == "64/100 (Good progress)"

    def test_renders_pdf(self):
        """Test the report is a PDF with and without optional sections."""
        summary = FinancialSummary(net_worth=Decimal("1000.00"))
        bare = overview_report(summary, "LKR")
        full = overview_report(
            summary,
            "LKR",
            assets=[Asset(type=AssetType.INVESTMENT, institution_name="Bank <One>",
                          amount=Decimal("1000.00"), currency="LKR")],
            debts=[Debt(debt_type=DebtType.PERSONAL_LOAN, balance=Decimal("50.00"))],
            insights=[FinancialInsight(title="Save & invest", description="Raise contributions.")],
            full_name="Kamal Silva",
            today=date(2026, 10, 19),
        )
        assert bare.startswith(b"%PDF")
        assert full.startswith(b"%PDF")
        assert len(full) > len(bare)


class TestWillDocument:
    """Will text and PDF."""

    def test_sections(self):
        """Test the articles, shares and signature date."""
        sections = will_sections(make_will(), make_beneficiaries(), date(2026, 10, 5))
        headings = [heading for heading, _ in sections]
        assert headings[0] == ""
        assert "ARTICLE IV - GUARDIANSHIP" not in headings
        assert headings[-1] == "WITNESS ATTESTATION"

        body = dict(sections)
        residuary = body["ARTICLE III - DISTRIBUTION OF RESIDUARY ESTATE"]
        assert "Amy Doe (child) - 60% (Primary Beneficiary)" in residuary
        assert "Ben Doe (child) - 40% (Contingent Beneficiary)" in residuary
        assert body["ARTICLE II - SPECIFIC BEQUESTS"] == ["No specific bequests have been designated."]
        assert body["ARTICLE V - EXECUTION"][0].endswith("this October 5, 2026.")
        assert "Requires 2 witnesses" in body["WITNESS ATTESTATION"][0]

    def test_optional_clauses(self):
        """Test guardianship and residuary instructions appear when given."""
        will = make_will(guardianship_clause="My sister shall be guardian.",
                         residuary_clause="Donate books to the library.")
        body = dict(will_sections(will, make_beneficiaries(), date(2026, 1, 1)))
        assert body["ARTICLE IV - GUARDIANSHIP"] == ["My sister shall be guardian."]
        assert body["ARTICLE III - DISTRIBUTION OF RESIDUARY ESTATE"][-1] == (
            "Additional Instructions: Donate books to the library."
        )

    def test_renders_pdf(self):
        """Test a valid will renders."""
        pdf = will_document(make_will(testator_name="Jane <Doe>"), make_beneficiaries(), date(2026, 10, 19))
        assert pdf.startswith(b"%PDF")

    def test_invalid_will_raises(self):
        """Test missing fields and bad splits are refused."""
        with pytest.raises(InvalidWillError) as exc_info:
            will_document(make_will(executor_email="nope"), make_beneficiaries())
        assert "Cannot generate will" in str(exc_info.value)
        assert exc_info.value.result.is_valid is False

        with pytest.raises(InvalidWillError):
            will_document(make_will(), make_beneficiaries()[:1])
