"""Progressive income-tax (IRPF) computation.

The annual taxable base is reduced by the assumed employee insurance,
deductible expenses and the personal and family minimums. The remaining
liquidable base is walked through the state and regional bracket schedules
independently and the two amounts are summed. The schedules need not share
bracket boundaries.
"""

import logging
from typing import List, Sequence

from ..errors import InvalidConfigError
from ..rules.schemas import PersonalMinimums, RegionRule, TaxBracket
from ..schemas import BracketSlice, FamilyInput, TaxResult

logger = logging.getLogger(__name__)


def family_minimum(minimums: PersonalMinimums, num_children: int) -> float:
    """Family minimum: fixed amounts for children 1-3, flat amount per child after that."""
    steps = [minimums.first_child, minimums.second_child, minimums.third_child]
    total = sum(steps[:num_children])
    if num_children > len(steps):
        total += (num_children - len(steps)) * minimums.each_additional_child
    return total


def compute_minimums(minimums: PersonalMinimums, num_children: int) -> float:
    """Personal minimum + deductible expenses + family minimum."""
    return minimums.personal + minimums.deductible_expenses + family_minimum(minimums, num_children)


def check_schedule(brackets: Sequence[TaxBracket]) -> None:
    """Raise InvalidConfigError unless the schedule can be walked.

    Every bracket but the last needs an upper bound and the last one must be
    infinite. Ordering and progressivity are audited separately.
    """
    if not brackets:
        raise InvalidConfigError("Bracket schedule is empty")
    for index, bracket in enumerate(brackets[:-1]):
        if bracket.infinite or bracket.up_to is None:
            raise InvalidConfigError(f"Bracket {index + 1} has no upper bound but is not the last bracket")
    if not brackets[-1].infinite:
        raise InvalidConfigError("Last bracket of the schedule is not infinite")


def bracket_slices(base: float, brackets: Sequence[TaxBracket]) -> List[BracketSlice]:
    """Per-bracket detail of the walk; only brackets the base reaches are listed."""
    check_schedule(brackets)
    slices = []
    floor = 0.0
    for bracket in brackets:
        if base <= floor:
            break
        upper = None if bracket.infinite else bracket.up_to
        taxed = base - floor if upper is None else max(0.0, min(base, upper) - floor)
        slices.append(BracketSlice(
            floor=floor, up_to=upper, rate=bracket.rate, taxed=taxed, amount=taxed * bracket.rate / 100,
        ))
        if upper is None:
            break
        floor = max(floor, upper)
    return slices


def apply_brackets(base: float, brackets: Sequence[TaxBracket]) -> float:
    """Tax due on ``base`` under one bracket schedule."""
    return sum(s.amount for s in bracket_slices(base, brackets))


def marginal_rate(base: float, brackets: Sequence[TaxBracket]) -> float:
    """Rate applied to the last euro of ``base`` (0 when base <= 0)."""
    slices = bracket_slices(base, brackets)
    return slices[-1].rate if slices else 0.0


def compute_for_region(annual_base: float, family: FamilyInput, region: RegionRule) -> TaxResult:
    """Annual quota and monthly withholding for a region.

    If the liquidable base is not positive every downstream amount is 0.
    """
    schedule = region.tax_schedule
    minimums = region.minimums

    insurance = annual_base * schedule.assumed_insurance_rate / 100
    family_min = family_minimum(minimums, family.num_children)
    liquidable = (
        annual_base - insurance - minimums.deductible_expenses - minimums.personal - family_min
    )

    result = TaxResult(
        annual_taxable_base=annual_base,
        insurance_deduction=insurance,
        deductible_expenses=minimums.deductible_expenses,
        personal_minimum=minimums.personal,
        family_minimum=family_min,
    )
    if liquidable <= 0:
        logger.debug(f"Liquidable base {liquidable:.2f} <= 0, no withholding")
        return result

    state_slices = bracket_slices(liquidable, schedule.state)
    regional_slices = bracket_slices(liquidable, schedule.regional)
    state_tax = sum(s.amount for s in state_slices)
    regional_tax = sum(s.amount for s in regional_slices)
    quota = state_tax + regional_tax

    result.liquidable_base = liquidable
    result.state_tax = state_tax
    result.regional_tax = regional_tax
    result.annual_quota = quota
    result.effective_rate = quota / annual_base * 100 if annual_base > 0 else 0.0
    result.monthly_withholding = quota / 12
    result.marginal_rate = state_slices[-1].rate + regional_slices[-1].rate
    result.state_slices = state_slices
    result.regional_slices = regional_slices
    return result
