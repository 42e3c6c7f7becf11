"""Coherence checks and independent audits of computed payslips.

Scope:
- coherence: invariant checks over an assembled PayBreakdown
- audit: second-path recomputation per request, region rule audits at startup

Constraints:
- Both only report findings; PayrollEngine applies the failure policy.
"""

from .audit import (
    MONEY_TOLERANCE,
    PERCENT_TOLERANCE,
    audit_brackets,
    audit_breakdown,
    audit_region_rules,
    boundary_parity,
    recompute_annual_quota,
)
from .coherence import check_occupational_accident, validate_breakdown

__all__ = [
    "MONEY_TOLERANCE",
    "PERCENT_TOLERANCE",
    "audit_brackets",
    "audit_breakdown",
    "audit_region_rules",
    "boundary_parity",
    "recompute_annual_quota",
    "check_occupational_accident",
    "validate_breakdown",
]
