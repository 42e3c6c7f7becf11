"""Pay components and social-insurance contributions.

All pay is taxable, but only salaried pay (clamped to the region's
contribution base limits) is insurable:

    gross              = salaried.total + non_salaried.total
    contribution_base  = clamp(salaried.total, min_base, max_base)
    annual_taxable     = gross * 12
    contributions      = contribution_base * rate / 100   (per named rate)
"""

import logging
from typing import Mapping, Optional

from .errors import InvalidCategoryError
from .rules.schemas import EmployeeRates, EmployerRates, SectorRule, SocialSecurityRules, WageEntry
from .schemas import ContributionResult, PayComponents, WorkerInput
from .sectors import ConceptCalculator, get_calculator

logger = logging.getLogger(__name__)


class ContributionEngine:
    """Turns a worker and a sector rule into money.

    Args:
        calculators: Optional calculator_id -> ConceptCalculator override
            (defaults to the built-in sector strategies).
    """

    def __init__(self, calculators: Optional[Mapping[str, ConceptCalculator]] = None):
        self._calculators = dict(calculators) if calculators is not None else None

    def _calculator(self, sector: SectorRule) -> ConceptCalculator:
        if self._calculators is not None and sector.calculator in self._calculators:
            return self._calculators[sector.calculator]
        return get_calculator(sector.calculator)

    def wage_entry(self, worker: WorkerInput, sector: SectorRule) -> WageEntry:
        """Wage table cell for the worker, or InvalidCategoryError."""
        entry = sector.wage_entry(worker.wage_table, worker.level)
        if entry is None:
            raise InvalidCategoryError(worker.wage_table, worker.level, sector.name)
        return entry

    def compute_salaried_concepts(self, worker: WorkerInput, sector: SectorRule) -> PayComponents:
        wage = self.wage_entry(worker, sector)
        items = self._calculator(sector).salaried_items(worker, sector, wage)
        return PayComponents.from_items(items)

    def compute_non_salaried_concepts(self, worker: WorkerInput, sector: SectorRule) -> PayComponents:
        items = self._calculator(sector).non_salaried_items(worker, sector)
        return PayComponents.from_items(items)

    @staticmethod
    def gross_total(salaried: PayComponents, non_salaried: PayComponents) -> float:
        return salaried.total + non_salaried.total

    @staticmethod
    def contribution_base(salaried: PayComponents, social_security: SocialSecurityRules) -> float:
        """Salaried total clamped to the region's minimum and maximum base."""
        base = min(max(salaried.total, social_security.min_base), social_security.max_base)
        if base != salaried.total:
            logger.debug(f"Contribution base capped: {salaried.total:.2f} -> {base:.2f}")
        return base

    @staticmethod
    def annual_taxable_base(gross_total: float) -> float:
        return gross_total * 12

    @staticmethod
    def _apply_rates(base: float, rates: Mapping[str, float]) -> ContributionResult:
        items = {name: base * rate / 100 for name, rate in rates.items()}
        return ContributionResult(base=base, items=items, rates=dict(rates), total=sum(items.values()))

    def employee_contributions(self, base: float, rates: EmployeeRates) -> ContributionResult:
        return self._apply_rates(base, rates.model_dump())

    def employer_contributions(self, base: float, rates: EmployerRates) -> ContributionResult:
        """Employer share, including occupational accident and wage guarantee fund."""
        return self._apply_rates(base, rates.model_dump())
