"""Cleaning sector strategies.

Two extra payments, flag-driven salaried bonuses, zone-based transport
and itemized PPE.
"""

from typing import Dict, List

from ..rules.schemas import SectorRule, WageEntry
from ..schemas import Finding, PayBreakdown, SectorOptions, Severity, WorkerInput
from .base import base_items, finding, uniform_cost


class LimpiezaCalculator:
    """ConceptCalculator for the cleaning agreement."""

    def salaried_items(self, worker: WorkerInput, sector: SectorRule, wage: WageEntry) -> Dict[str, float]:
        complements = sector.complements
        items = base_items(wage, sector)
        items["training_bonus"] = complements.training_bonus if worker.applies_training_bonus else 0.0
        items["meal_allowance"] = complements.meal_for(worker.is_hotel) if worker.applies_meal_allowance else 0.0
        items["night_shift_bonus"] = complements.night_shift_bonus if worker.applies_night_shift else 0.0
        items["hazard_bonus"] = complements.hazard_bonus if worker.applies_hazard_pay else 0.0
        return items

    def non_salaried_items(self, worker: WorkerInput, sector: SectorRule) -> Dict[str, float]:
        complements = sector.complements
        transport = 0.0
        if worker.applies_transport:
            transport = complements.transport_for(worker.is_hotel, worker.urban_transport, worker.shift_type)
        ppe = uniform_cost(worker, complements) if worker.uniform_items else 0.0
        return {"transport": transport, "ppe": ppe}


class LimpiezaValidator:
    """Night work, PPE and bonus consistency checks."""

    def validate(self, breakdown: PayBreakdown, sector: SectorRule, options: SectorOptions) -> List[Finding]:
        findings = []
        worker = breakdown.worker
        limits = sector.validator_options

        night_max = limits.get("night_hours_max", 120)
        if options.night_hours > night_max:
            findings.append(finding(
                Severity.WARNING, "NIGHT_HOURS_EXCEPTIONAL",
                f"Exceptional night hours ({options.night_hours} h/month, limit {night_max})",
            ))

        missing = [item for item in sector.complements.uniform.mandatory_items() if item not in worker.uniform_items]
        if missing:
            findings.append(finding(
                Severity.WARNING, "MANDATORY_PPE_MISSING",
                f"Mandatory PPE not selected: {', '.join(missing)}",
                remedy="Add the mandatory items to uniform_items",
            ))

        keywords = limits.get("chemical_keywords", [])
        handles_chemicals = any(keyword in worker.category for keyword in keywords)
        if handles_chemicals and breakdown.non_salaried.items.get("ppe", 0.0) <= 0:
            findings.append(finding(
                Severity.WARNING, "PPE_REQUIRED_CHEMICALS",
                "PPE is mandatory for work with chemical products",
            ))

        if worker.applies_hazard_pay and sector.complements.hazard_bonus <= 0:
            findings.append(finding(
                Severity.WARNING, "HAZARD_PAY_INCONSISTENT",
                "Hazardous-work flag set but the agreement defines no hazard bonus",
                remedy="Add hazard_bonus to the sector complements or clear applies_hazard_pay",
            ))

        if worker.applies_night_shift and worker.applies_hazard_pay:
            findings.append(finding(
                Severity.INFO, "NIGHT_AND_HAZARD_COMBINED",
                "Night-shift and hazard bonuses combined; verify they are compatible",
            ))

        if not worker.urban_transport and not worker.applies_transport:
            findings.append(finding(
                Severity.INFO, "INTERURBAN_WITHOUT_TRANSPORT",
                "Interurban zone indicated but no transport allowance applied",
            ))

        return findings
