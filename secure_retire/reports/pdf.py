"""
PDF Reports

Two documents are generated in memory and handed to st.download_button:
- the financial overview (dashboard figures, assets, debts, insights)
- a draft will built from the will form and the beneficiaries table

DESIGN DECISION: Text content is assembled separately from layout
(overview_lines, will_sections) so wording can be checked without
parsing a PDF. The reportlab code only places what those return.
"""

import io
from datetime import date
from typing import Iterable, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from secure_retire.calculators.summary import readiness_band
from secure_retire.currency import format_amount
from secure_retire.models.documents import JURISDICTIONS, WillData, witness_requirements_for
from secure_retire.models.financial import (
    Asset,
    Beneficiary,
    Debt,
    FinancialInsight,
    FinancialSummary,
)
from secure_retire.models.validation import ValidationResult
from secure_retire.validation import WillValidator


NAVY = colors.HexColor("#1B2A4A")
LIGHT_GRAY = colors.HexColor("#F5F5F5")
MED_GRAY = colors.HexColor("#CCCCCC")
DARK_TEXT = colors.HexColor("#222222")


class InvalidWillError(Exception):
    """The will form or beneficiary split is not ready for a document."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(i.message for i in result.issues if i.severity == "error")
        super().__init__(f"Cannot generate will: {messages}")


def _styles() -> dict[str, ParagraphStyle]:
    return {
        "title": ParagraphStyle("title", fontName="Helvetica-Bold", fontSize=18,
                                textColor=NAVY, spaceAfter=6, leading=22),
        "center_title": ParagraphStyle("center_title", fontName="Helvetica-Bold",
                                       fontSize=16, textColor=DARK_TEXT,
                                       alignment=TA_CENTER, spaceAfter=4, leading=20),
        "subtitle": ParagraphStyle("subtitle", fontName="Helvetica", fontSize=9,
                                   textColor=colors.HexColor("#666666"),
                                   spaceAfter=10, leading=12),
        "h2": ParagraphStyle("h2", fontName="Helvetica-Bold", fontSize=12,
                             textColor=NAVY, spaceBefore=12, spaceAfter=6, leading=16),
        "body": ParagraphStyle("body", fontName="Helvetica", fontSize=10,
                               textColor=DARK_TEXT, leading=14, spaceAfter=6),
    }


def _table(data: list[list[str]], col_widths: Optional[list[float]] = None) -> Table:
    """Header row in navy, alternating grey rows below."""
    tbl = Table(data, colWidths=col_widths, hAlign="LEFT")
    cmds = [
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("TEXTCOLOR", (0, 0), (-1, -1), DARK_TEXT),
        ("LINEBELOW", (0, 0), (-1, -1), 0.5, MED_GRAY),
        ("BACKGROUND", (0, 0), (-1, 0), NAVY),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ]
    for i in range(2, len(data), 2):
        cmds.append(("BACKGROUND", (0, i), (-1, i), LIGHT_GRAY))
    tbl.setStyle(TableStyle(cmds))
    return tbl


def _render(elements: list, title: str) -> bytes:
    buffer = io.BytesIO()

    def _footer(canvas, doc):
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(colors.HexColor("#999999"))
        canvas.drawString(0.75 * inch, 0.45 * inch, "Secure Retire")
        canvas.drawRightString(7.75 * inch, 0.45 * inch, f"Page {doc.page}")
        canvas.restoreState()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        title=title,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
    )
    doc.build(elements, onFirstPage=_footer, onLaterPages=_footer)
    return buffer.getvalue()


# =============================================================================
# OVERVIEW REPORT
# =============================================================================

def overview_lines(summary: FinancialSummary, currency: str) -> list[tuple[str, str]]:
    """Headline figures as (label, value) pairs."""
    return [
        ("Net Worth", format_amount(summary.net_worth, currency)),
        ("Monthly Income", format_amount(summary.monthly_income, currency)),
        ("Monthly Savings", format_amount(summary.monthly_savings, currency)),
        ("Total Debts", format_amount(summary.total_debts, currency)),
        ("Debt-to-Income Ratio", f"{summary.debt_to_income:.1f}%"),
        ("Retirement Readiness Score",
         f"{summary.readiness_score}/100 ({readiness_band(summary.readiness_score)})"),
    ]


def overview_report(
    summary: FinancialSummary,
    currency: str,
    assets: Iterable[Asset] = (),
    debts: Iterable[Debt] = (),
    insights: Iterable[FinancialInsight] = (),
    full_name: str = "",
    today: Optional[date] = None,
) -> bytes:
    """Financial overview as PDF bytes."""
    today = today or date.today()
    styles = _styles()
    elements = [
        Paragraph("Financial Overview Report", styles["title"]),
        Paragraph(
            escape(f"{full_name + ' - ' if full_name else ''}Generated {today.isoformat()}"),
            styles["subtitle"],
        ),
        Paragraph("Summary", styles["h2"]),
        _table([["Metric", "Value"]] + [list(pair) for pair in overview_lines(summary, currency)],
               col_widths=[3 * inch, 3 * inch]),
    ]

    asset_rows = [
        [a.type.value.replace("_", " ").title(), escape(a.institution_name),
         format_amount(a.amount, a.currency)]
        for a in assets
    ]
    if asset_rows:
        elements += [
            Paragraph("Assets", styles["h2"]),
            _table([["Type", "Institution", "Amount"]] + asset_rows),
        ]

    debt_rows = [
        [d.debt_type.value.replace("_", " ").title(),
         d.due_date.isoformat() if d.due_date else "-",
         format_amount(d.balance, currency), f"{d.interest_rate}%",
         format_amount(d.monthly_payment, currency)]
        for d in debts
    ]
    if debt_rows:
        elements += [
            Paragraph("Debts", styles["h2"]),
            _table([["Type", "Next due", "Balance", "Rate", "Monthly"]] + debt_rows),
        ]

    insights = list(insights)
    if insights:
        elements.append(Paragraph("AI Insights", styles["h2"]))
        for insight in insights:
            elements.append(Paragraph(
                f"<b>{escape(insight.title)}</b> ({insight.priority.value} priority)",
                styles["body"],
            ))
            elements.append(Paragraph(escape(insight.description), styles["body"]))

    return _render(elements, "Financial Overview Report")


# =============================================================================
# WILL DOCUMENT
# =============================================================================

def _long_date(value: date) -> str:
    return value.strftime("%B %d, %Y").replace(" 0", " ")


def will_sections(
    will: WillData,
    beneficiaries: list[Beneficiary],
    today: date,
) -> list[tuple[str, list[str]]]:
    """
    The will as (heading, paragraphs) in document order. An empty
    heading is the preamble.
    """
    name = will.testator_name
    executor = will.executor_name
    witness_requirements = will.witness_requirements or witness_requirements_for(will.jurisdiction)

    sections: list[tuple[str, list[str]]] = [
        ("", [
            f"I, {name}, of {will.testator_address}, being of sound mind and disposing "
            "memory, do hereby make, publish, and declare this to be my Last Will and "
            "Testament, hereby revoking all wills and codicils previously made by me.",
        ]),
        ("ARTICLE I - APPOINTMENT OF EXECUTOR", [
            f"I hereby nominate and appoint {executor} as the Executor of this Will. "
            f"If {executor} is unable or unwilling to serve, I nominate "
            "[Alternative Executor] as successor Executor.",
        ]),
        ("ARTICLE II - SPECIFIC BEQUESTS", [
            will.specific_bequests or "No specific bequests have been designated.",
        ]),
    ]

    residuary = [
        "I give, devise, and bequeath the rest, residue, and remainder of my estate "
        "to the following beneficiaries in the proportions specified:",
    ]
    for b in beneficiaries:
        kind = "Primary Beneficiary" if b.is_primary else "Contingent Beneficiary"
        share = f"{b.percentage.normalize():f}"
        residuary.append(f"{b.full_name} ({b.relationship.value}) - {share}% ({kind})")
    if will.residuary_clause:
        residuary.append(f"Additional Instructions: {will.residuary_clause}")
    sections.append(("ARTICLE III - DISTRIBUTION OF RESIDUARY ESTATE", residuary))

    if will.guardianship_clause:
        sections.append(("ARTICLE IV - GUARDIANSHIP", [will.guardianship_clause]))

    sections.append(("ARTICLE V - EXECUTION", [
        f"IN WITNESS WHEREOF, I have hereunto set my hand this {_long_date(today)}.",
        "_______________________________",
        f"{name}, Testator",
    ]))
    sections.append(("WITNESS ATTESTATION", [
        "We, the undersigned witnesses, certify that the testator signed this Will "
        "in our presence, and that we signed as witnesses in the presence of the "
        f"testator and each other. {witness_requirements}",
        "Witness 1: _______________________________  Date: ____________",
        "Witness 2: _______________________________  Date: ____________",
    ]))
    return sections


def will_document(
    will: WillData,
    beneficiaries: list[Beneficiary],
    today: Optional[date] = None,
) -> bytes:
    """
    Draft will as PDF bytes.

    Raises:
        InvalidWillError: If required fields are missing, the executor
            email is malformed, or beneficiary shares don't total 100%
    """
    result = WillValidator(beneficiaries).validate(will)
    if not result.is_valid:
        raise InvalidWillError(result)

    today = today or date.today()
    styles = _styles()
    elements = [
        Paragraph("LAST WILL AND TESTAMENT", styles["center_title"]),
        Paragraph(escape(f"OF {will.testator_name.upper()}"), styles["center_title"]),
    ]
    if will.jurisdiction:
        label = JURISDICTIONS.get(will.jurisdiction, will.jurisdiction)
        elements.append(Paragraph(escape(f"Jurisdiction: {label}"), styles["subtitle"]))
    elements.append(Spacer(1, 0.2 * inch))

    for heading, paragraphs in will_sections(will, beneficiaries, today):
        if heading:
            elements.append(Paragraph(heading, styles["h2"]))
        for text in paragraphs:
            elements.append(Paragraph(escape(text), styles["body"]))

    return _render(elements, f"Last Will and Testament of {will.testator_name}")
