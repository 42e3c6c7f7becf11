"""Independent recomputation of computed payslips and region rule audits.

Per request (audit_breakdown), totals are recomputed by a second formula
path and compared on values rounded to cents:

    AUDIT_COST          gross + employer contributions       (0.02)
    AUDIT_STATE_TAKE    employee + employer contributions    (0.02)
    AUDIT_PERCENT       state take / employer cost * 100     (0.1 points)
    AUDIT_TAX_BRACKETS  full bracket walk from the region rule (0.02)

All are WARNING; strict mode in PayrollEngine may make them fatal.

Per region (audit_region_rules), run once at startup, the bracket
schedules are checked for emptiness, missing limits, ordering, a terminal
infinite bracket and progressivity, and optionally diffed against a
reference fixture.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from ..rules.schemas import RegionRule, TaxBracket
from ..schemas import Finding, PayBreakdown, Severity, round2

logger = logging.getLogger(__name__)

MONEY_TOLERANCE = 0.02
PERCENT_TOLERANCE = 0.1
REFERENCE_TOLERANCE = 0.01

RATE_RANGE = (5.0, 30.0)


def _finding(severity: Severity, code: str, message: str, remedy: Optional[str] = None) -> Finding:
    return Finding(severity=severity, code=code, message=message, remedy=remedy)


def _diverges(expected: float, actual: float, tolerance: float) -> bool:
    # Rounded values compared with a small epsilon so 0.02 itself passes
    return abs(round2(expected) - round2(actual)) > tolerance + 1e-9


# =============================================================================
# Per-request audit
# =============================================================================


def _walk(base: float, brackets: Sequence[TaxBracket]) -> float:
    tax = 0.0
    lower = 0.0
    for bracket in brackets:
        if bracket.infinite:
            return tax + max(0.0, base - lower) * bracket.rate / 100
        if bracket.up_to is None:
            break
        tax += max(0.0, min(base, bracket.up_to) - lower) * bracket.rate / 100
        lower = bracket.up_to
    return tax


def _children_minimum(region: RegionRule, num_children: int) -> float:
    m = region.minimums
    total = 0.0
    for child in range(1, num_children + 1):
        if child == 1:
            total += m.first_child
        elif child == 2:
            total += m.second_child
        elif child == 3:
            total += m.third_child
        else:
            total += m.each_additional_child
    return total


def recompute_annual_quota(annual_base: float, num_children: int, region: RegionRule) -> float:
    """Annual quota from scratch, without the ProgressiveTaxEngine."""
    schedule = region.tax_schedule
    liquidable = (
        annual_base * (1 - schedule.assumed_insurance_rate / 100)
        - region.minimums.deductible_expenses
        - region.minimums.personal
        - _children_minimum(region, num_children)
    )
    if liquidable <= 0:
        return 0.0
    return _walk(liquidable, schedule.state) + _walk(liquidable, schedule.regional)


def audit_breakdown(breakdown: PayBreakdown, region: RegionRule) -> List[Finding]:
    """Recompute cost, state take, percentage and tax; report divergences."""
    findings = []

    employee_total = sum(breakdown.employee_contributions.items.values())
    employer_total = sum(breakdown.employer_contributions.items.values())

    cost = breakdown.gross_total + employer_total
    if _diverges(cost, breakdown.employer_cost, MONEY_TOLERANCE):
        findings.append(_finding(
            Severity.WARNING, "AUDIT_COST",
            f"Employer cost {round2(breakdown.employer_cost):.2f} != audited {round2(cost):.2f}",
        ))

    state_take = employee_total + employer_total
    if _diverges(state_take, breakdown.state_take, MONEY_TOLERANCE):
        findings.append(_finding(
            Severity.WARNING, "AUDIT_STATE_TAKE",
            f"State take {round2(breakdown.state_take):.2f} != audited {round2(state_take):.2f}",
        ))

    percent = state_take / cost * 100 if cost > 0 else 0.0
    if _diverges(percent, breakdown.state_take_percent, PERCENT_TOLERANCE):
        findings.append(_finding(
            Severity.WARNING, "AUDIT_PERCENT",
            f"State take {round2(breakdown.state_take_percent):.2f}% != audited {round2(percent):.2f}%",
        ))

    quota = recompute_annual_quota(breakdown.annual_taxable_base, breakdown.family.num_children, region)
    quota_off = _diverges(quota, breakdown.tax.annual_quota, MONEY_TOLERANCE)
    monthly_off = _diverges(quota / 12, breakdown.tax.monthly_withholding, MONEY_TOLERANCE)
    if quota_off or monthly_off:
        findings.append(_finding(
            Severity.WARNING, "AUDIT_TAX_BRACKETS",
            f"Tax quota {round2(breakdown.tax.annual_quota):.2f} / withholding "
            f"{round2(breakdown.tax.monthly_withholding):.2f} != audited "
            f"{round2(quota):.2f} / {round2(quota / 12):.2f}",
        ))

    if findings:
        logger.warning(f"Audit divergences for {breakdown.region_id}/{breakdown.sector_id}: "
                       f"{', '.join(f.code for f in findings)}")
    return findings


# =============================================================================
# Region rule audit
# =============================================================================


def audit_brackets(brackets: Sequence[TaxBracket], label: str, check_rate_range: bool = False) -> List[Finding]:
    """Structural checks on one bracket schedule."""
    if not brackets:
        return [_finding(Severity.ERROR, "E_EMPTY_BRACKETS", f"{label}: no brackets defined")]

    findings = []
    for index in range(len(brackets) - 1):
        current, following = brackets[index], brackets[index + 1]
        position = f"bracket {index + 1}->{index + 2}"
        if following.infinite:
            if current.up_to is None:
                findings.append(_finding(
                    Severity.ERROR, "E_NULL_LIMIT", f"{label}: bracket {index + 1} has no upper limit",
                ))
            continue
        if current.up_to is None or following.up_to is None:
            findings.append(_finding(
                Severity.ERROR, "E_NULL_LIMIT", f"{label}: bracket {index + 1} or {index + 2} has no upper limit",
            ))
            continue
        if current.up_to >= following.up_to:
            findings.append(_finding(
                Severity.ERROR, "E_BRACKET_ORDER",
                f"{label}: {current.up_to} >= {following.up_to} ({position})",
            ))
        if current.rate > following.rate:
            findings.append(_finding(
                Severity.WARNING, "W_REGRESSIVE",
                f"{label}: rate drops {current.rate}% -> {following.rate}% ({position})",
            ))

    if not brackets[-1].infinite:
        findings.append(_finding(
            Severity.ERROR, "E_NO_INFINITE", f"{label}: last bracket is not infinite",
            remedy="Add a terminal bracket with 'infinite: true'",
        ))

    if check_rate_range:
        rates = [b.rate for b in brackets]
        low, high = RATE_RANGE
        if min(rates) < low or max(rates) > high:
            findings.append(_finding(
                Severity.INFO, "I_RATE_RANGE",
                f"{label}: rates span {min(rates)}%-{max(rates)}% (usual range {low:.0f}-{high:.0f}%)",
            ))
    return findings


def _bounds(brackets: Sequence[TaxBracket]) -> List[float]:
    return [b.up_to for b in brackets if not b.infinite and b.up_to is not None]


def boundary_parity(region_id: str, region: RegionRule) -> Optional[Finding]:
    """INFO finding when state and regional schedules use different boundaries.

    Schedules are applied independently, so divergence is reported but
    never enforced.
    """
    state = set(_bounds(region.tax_schedule.state))
    regional = set(_bounds(region.tax_schedule.regional))
    if state == regional:
        return None
    only_state = sorted(state - regional)
    only_regional = sorted(regional - state)
    return _finding(
        Severity.INFO, "I_BOUNDARY_PARITY",
        f"{region_id}: state and regional boundaries differ "
        f"(state only: {only_state}, regional only: {only_regional})",
    )


def _diff_reference(label: str, brackets: Sequence[TaxBracket], reference: Sequence[Mapping[str, Any]],
                    tolerance: float) -> List[Finding]:
    findings = []
    if len(brackets) != len(reference):
        findings.append(_finding(
            Severity.ERROR, "E_REFERENCE_COUNT",
            f"{label}: {len(brackets)} brackets, reference has {len(reference)}",
        ))

    bounds = _bounds(brackets)
    for ref in reference:
        up_to = ref.get("up_to")
        if up_to is not None and not any(abs(b - up_to) <= tolerance for b in bounds):
            findings.append(_finding(
                Severity.ERROR, "E_REFERENCE_MISSING_BOUNDARY", f"{label}: reference boundary {up_to} not found",
            ))

    for index, (bracket, ref) in enumerate(zip(brackets, reference)):
        ref_infinite = bool(ref.get("infinite", False))
        ref_up_to = ref.get("up_to")
        rate_off = abs(bracket.rate - float(ref.get("rate", 0))) > tolerance
        bound_off = bracket.infinite != ref_infinite or (
            not ref_infinite and (bracket.up_to is None or ref_up_to is None
                                  or abs(bracket.up_to - ref_up_to) > tolerance)
        )
        if rate_off or bound_off:
            findings.append(_finding(
                Severity.ERROR, "E_REFERENCE_MISMATCH",
                f"{label}: bracket {index + 1} is {bracket.up_to or 'inf'} @ {bracket.rate}%, "
                f"reference {ref_up_to or 'inf'} @ {ref.get('rate')}%",
            ))
    return findings


def audit_region_rules(region_id: str, region: RegionRule,
                       reference: Optional[Mapping[str, Any]] = None) -> List[Finding]:
    """Audit one region's rule set; ``reference`` is that region's fixture entry."""
    schedule = region.tax_schedule
    findings = audit_brackets(schedule.state, f"{region_id} state")
    findings += audit_brackets(schedule.regional, f"{region_id} regional", check_rate_range=True)

    if region.social_security.employer_rates.occupational_accident <= 0:
        findings.append(_finding(
            Severity.ERROR, "E_OCCUPATIONAL_ACCIDENT_ZERO",
            f"{region_id}: occupational accident (AT/EP) rate is 0 (RD 2064/1995 requires a non-zero rate)",
        ))

    parity = boundary_parity(region_id, region)
    if parity:
        findings.append(parity)

    if reference:
        tolerance = float(reference.get("tolerance", REFERENCE_TOLERANCE))
        for scale in ("state", "regional"):
            if scale in reference:
                findings += _diff_reference(
                    f"{region_id} {scale}", getattr(schedule, scale), reference[scale], tolerance,
                )
    return findings
