"""Hospitality sector strategies (Valencia agreement).

Salaried items: base wage, extra-pay proration, training bonus, meal
allowance (per establishment). Non-salaried items: transport (per
establishment, zone and shift) and uniform.
"""

from typing import Dict, List

from ..rules.schemas import SectorRule, WageEntry
from ..schemas import Finding, PayBreakdown, SectorOptions, Severity, WorkerInput
from .base import base_items, finding, uniform_cost


class HosteleriaCalculator:
    """ConceptCalculator for the hospitality agreement."""

    def salaried_items(self, worker: WorkerInput, sector: SectorRule, wage: WageEntry) -> Dict[str, float]:
        complements = sector.complements
        items = base_items(wage, sector)
        items["training_bonus"] = complements.training_bonus if worker.applies_training_bonus else 0.0
        items["meal_allowance"] = complements.meal_for(worker.is_hotel) if worker.applies_meal_allowance else 0.0
        return items

    def non_salaried_items(self, worker: WorkerInput, sector: SectorRule) -> Dict[str, float]:
        complements = sector.complements
        transport = 0.0
        if worker.applies_transport:
            transport = complements.transport_for(worker.is_hotel, worker.urban_transport, worker.shift_type)
        uniform = 0.0
        if worker.applies_uniform or worker.uniform_items:
            uniform = uniform_cost(worker, complements)
        return {"transport": transport, "uniform": uniform}


class HosteleriaValidator:
    """Hours, contribution cap and sector plausibility checks."""

    def validate(self, breakdown: PayBreakdown, sector: SectorRule, options: SectorOptions) -> List[Finding]:
        findings = []
        limits = sector.validator_options
        typical = sector.typical_ranges

        if abs(breakdown.contribution_base - breakdown.salaried.total) > 0.01:
            findings.append(finding(
                Severity.INFO, "CONTRIBUTION_CAP_APPLIED",
                f"Contribution base capped at {breakdown.contribution_base:.2f} "
                f"(salaried total {breakdown.salaried.total:.2f})",
            ))

        base_salary = breakdown.salaried.items.get("base_salary", 0.0)
        too_low = typical.base_salary_min is not None and base_salary < typical.base_salary_min
        too_high = typical.base_salary_max is not None and base_salary > typical.base_salary_max
        if too_low or too_high:
            findings.append(finding(
                Severity.INFO, "SALARY_ATYPICAL",
                f"Base salary {base_salary:.2f} outside the usual sector range "
                f"{typical.base_salary_min}-{typical.base_salary_max}",
            ))

        if typical.effective_rate_max is not None and breakdown.tax.effective_rate > typical.effective_rate_max:
            findings.append(finding(
                Severity.INFO, "TAX_HIGH_FOR_SECTOR",
                f"Effective tax rate {breakdown.tax.effective_rate:.2f}% above the usual "
                f"{typical.effective_rate_max}% for this sector",
            ))

        overtime_max = limits.get("overtime_hours_max", 80)
        if options.overtime_hours > overtime_max:
            findings.append(finding(
                Severity.WARNING, "OVERTIME_HIGH",
                f"Very high overtime ({options.overtime_hours} h)",
                remedy="Check working-time compliance and overtime cost",
            ))

        night_max = limits.get("night_hours_max", 60)
        if options.night_hours > night_max:
            findings.append(finding(
                Severity.WARNING, "NIGHT_HOURS_HIGH",
                f"High night hours ({options.night_hours} h)",
                remedy="Verify the night-shift bonus is applied",
            ))

        holidays_max = limits.get("holidays_max", 6)
        if options.holidays_worked > holidays_max:
            findings.append(finding(
                Severity.WARNING, "HOLIDAYS_HIGH",
                f"High number of holidays worked ({options.holidays_worked})",
                remedy="Confirm holiday compensation",
            ))

        return findings
