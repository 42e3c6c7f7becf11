"""Strategy interfaces shared by the sector implementations.

A sector plugs into the engine with two strategies, both selected by id
from its SectorRule:

- ConceptCalculator: worker flags -> salaried / non-salaried line items
- SectorValidator: computed breakdown -> sector-specific findings

Sectors do not inherit from each other; common arithmetic lives in the
helper functions below.
"""

from typing import Dict, List, Protocol

from ..rules.schemas import Complements, SectorRule, WageEntry
from ..schemas import Finding, PayBreakdown, SectorOptions, Severity, WorkerInput


class ConceptCalculator(Protocol):
    """Computes a sector's pay line items from canonical complements."""

    def salaried_items(self, worker: WorkerInput, sector: SectorRule, wage: WageEntry) -> Dict[str, float]:
        """Items that contribute to social insurance."""
        ...

    def non_salaried_items(self, worker: WorkerInput, sector: SectorRule) -> Dict[str, float]:
        """Items that are taxed but not insured."""
        ...


class SectorValidator(Protocol):
    """Adds sector-specific findings to a computed breakdown."""

    def validate(self, breakdown: PayBreakdown, sector: SectorRule, options: SectorOptions) -> List[Finding]:
        ...


def base_items(wage: WageEntry, sector: SectorRule) -> Dict[str, float]:
    """Base wage plus the monthly share of the extra payments."""
    return {
        "base_salary": wage.salary,
        "extra_pay_proration": wage.salary * sector.extra_payments_per_year / 12,
    }


def uniform_cost(worker: WorkerInput, complements: Complements) -> float:
    """Uniform/PPE cost: priced selected items, or the category's flat total.

    Unknown item ids are priced at 0; the input validator rejects them
    before a calculation gets here.
    """
    uniform = complements.uniform
    if uniform.itemized:
        return sum(uniform.items[item].price for item in worker.uniform_items if item in uniform.items)
    return uniform.category_total(worker.category)


def finding(severity: Severity, code: str, message: str, remedy: str = None) -> Finding:
    return Finding(severity=severity, code=code, message=message, remedy=remedy)
