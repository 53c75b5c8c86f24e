"""
Secure Retire - Source Package

Retirement planning for households: registration, financial records,
documents, dashboards and planning calculators on a hosted backend.

DESIGN PRINCIPLES:
1. Calculations are plain functions; the LLM only narrates them
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Secure Retire Team"
