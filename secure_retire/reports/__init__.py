"""Downloadable PDF documents."""

from secure_retire.reports.pdf import (
    InvalidWillError,
    overview_lines,
    overview_report,
    will_document,
    will_sections,
)

__all__ = [
    "InvalidWillError",
    "overview_lines",
    "overview_report",
    "will_document",
    "will_sections",
]
