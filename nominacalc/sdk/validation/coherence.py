"""Post-computation invariant checks on an assembled PayBreakdown.

Findings are only reported here; PayrollEngine applies the failure policy.

CRITICAL  BASE_EXCEEDS_GROSS, OCCUPATIONAL_ACCIDENT_ZERO
ERROR     NET_NOT_BELOW_GROSS, ITEMIZED_SUM_MISMATCH,
          TAXABLE_BELOW_CONTRIBUTION_BASE, NEGATIVE_CONTRIBUTIONS
WARNING   EMPLOYER_COST_NOT_ABOVE_GROSS, EFFECTIVE_RATE_HIGH,
          STATE_TAKE_OUT_OF_BAND, SECTOR_NET_LOW, SECTOR_NET_HIGH,
          SECTOR_STATE_TAKE_OUT_OF_RANGE
"""

from typing import List, Optional

from ..rules.schemas import RegionRule, SectorRule
from ..schemas import Finding, PayBreakdown, Severity

SUM_TOLERANCE = 0.01
EFFECTIVE_RATE_CEILING = 30.0
STATE_TAKE_BAND = (20.0, 50.0)


def _finding(severity: Severity, code: str, message: str, remedy: Optional[str] = None) -> Finding:
    return Finding(severity=severity, code=code, message=message, remedy=remedy)


def check_occupational_accident(region: RegionRule) -> Optional[Finding]:
    """CRITICAL finding when the employer AT/EP rate is zero."""
    if region.social_security.employer_rates.occupational_accident <= 0:
        return _finding(
            Severity.CRITICAL, "OCCUPATIONAL_ACCIDENT_ZERO",
            f"Occupational accident (AT/EP) employer rate is 0 for {region.name}; "
            "the rate is mandatory and can never be zero (RD 2064/1995)",
            remedy="Set social_security.employer_rates.occupational_accident from the RD 2064/1995 tariff",
        )
    return None


def _sum_mismatches(breakdown: PayBreakdown) -> List[Finding]:
    findings = []
    parts = [
        ("salaried", breakdown.salaried),
        ("non-salaried", breakdown.non_salaried),
        ("employee contributions", breakdown.employee_contributions),
        ("employer contributions", breakdown.employer_contributions),
    ]
    for label, part in parts:
        if abs(part.total - part.items_sum) > SUM_TOLERANCE:
            findings.append(_finding(
                Severity.ERROR, "ITEMIZED_SUM_MISMATCH",
                f"{label} total {part.total:.2f} != sum of items {part.items_sum:.2f}",
            ))
    return findings


def validate_breakdown(breakdown: PayBreakdown, region: RegionRule,
                       sector: Optional[SectorRule] = None) -> List[Finding]:
    """Run every invariant check; returns findings in severity order."""
    findings: List[Finding] = []

    # CRITICAL
    if breakdown.contribution_base > breakdown.gross_total + SUM_TOLERANCE:
        findings.append(_finding(
            Severity.CRITICAL, "BASE_EXCEEDS_GROSS",
            f"Contribution base {breakdown.contribution_base:.2f} exceeds gross total "
            f"{breakdown.gross_total:.2f}",
            remedy="Check the region's minimum contribution base against the sector wage tables",
        ))
    accident = check_occupational_accident(region)
    if accident:
        findings.append(accident)

    # ERROR
    if breakdown.net_pay >= breakdown.gross_total:
        findings.append(_finding(
            Severity.ERROR, "NET_NOT_BELOW_GROSS",
            f"Net pay {breakdown.net_pay:.2f} is not below gross total {breakdown.gross_total:.2f}",
        ))
    findings.extend(_sum_mismatches(breakdown))
    if breakdown.taxable_monthly_base + SUM_TOLERANCE < breakdown.contribution_base:
        findings.append(_finding(
            Severity.ERROR, "TAXABLE_BELOW_CONTRIBUTION_BASE",
            f"Monthly taxable base {breakdown.taxable_monthly_base:.2f} below contribution base "
            f"{breakdown.contribution_base:.2f}",
        ))
    negative = [
        name
        for result in (breakdown.employee_contributions, breakdown.employer_contributions)
        for name, amount in result.items.items()
        if amount < 0
    ]
    if negative:
        findings.append(_finding(
            Severity.ERROR, "NEGATIVE_CONTRIBUTIONS",
            f"Negative contribution amounts: {', '.join(negative)}",
        ))

    # WARNING
    if breakdown.employer_cost <= breakdown.gross_total:
        findings.append(_finding(
            Severity.WARNING, "EMPLOYER_COST_NOT_ABOVE_GROSS",
            f"Employer cost {breakdown.employer_cost:.2f} not above gross total {breakdown.gross_total:.2f}",
        ))
    if breakdown.tax.effective_rate > EFFECTIVE_RATE_CEILING:
        findings.append(_finding(
            Severity.WARNING, "EFFECTIVE_RATE_HIGH",
            f"Effective tax rate {breakdown.tax.effective_rate:.2f}% above {EFFECTIVE_RATE_CEILING:.0f}%",
        ))
    low, high = STATE_TAKE_BAND
    if not low <= breakdown.state_take_percent <= high:
        findings.append(_finding(
            Severity.WARNING, "STATE_TAKE_OUT_OF_BAND",
            f"State take {breakdown.state_take_percent:.2f}% outside the {low:.0f}-{high:.0f}% band",
        ))

    if sector is not None:
        findings.extend(_expected_range_findings(breakdown, sector))

    return findings


def _expected_range_findings(breakdown: PayBreakdown, sector: SectorRule) -> List[Finding]:
    worker = breakdown.worker
    expected = sector.expected_range(worker.category, worker.level)
    if expected is None:
        return []

    key = f"{worker.category}/{worker.level}"
    findings = []
    if expected.net_pay_min is not None and breakdown.net_pay < expected.net_pay_min:
        findings.append(_finding(
            Severity.WARNING, "SECTOR_NET_LOW",
            f"Net pay {breakdown.net_pay:.2f} unusually low for {key} (min {expected.net_pay_min})",
        ))
    if expected.net_pay_max is not None and breakdown.net_pay > expected.net_pay_max:
        findings.append(_finding(
            Severity.WARNING, "SECTOR_NET_HIGH",
            f"Net pay {breakdown.net_pay:.2f} unusually high for {key} (max {expected.net_pay_max})",
        ))
    below = expected.state_take_min is not None and breakdown.state_take_percent < expected.state_take_min
    above = expected.state_take_max is not None and breakdown.state_take_percent > expected.state_take_max
    if below or above:
        findings.append(_finding(
            Severity.WARNING, "SECTOR_STATE_TAKE_OUT_OF_RANGE",
            f"State take {breakdown.state_take_percent:.2f}% outside expected range for {key} "
            f"({expected.state_take_min}-{expected.state_take_max}%)",
        ))
    return findings
