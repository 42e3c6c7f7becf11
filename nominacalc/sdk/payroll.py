"""Payroll orchestration: one deterministic pipeline per request.

    rate limit -> resolve region/sector -> input checks -> contributions
    -> tax -> assemble PayBreakdown -> coherence + sector checks -> audit
    -> failure policy

PayrollEngine.initialize() must be awaited once before computing. It runs
the integrity checks for every registered rule set in parallel, audits
every region and freezes the registry.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .collaborators import Collaborators
from .config import EngineSettings
from .contributions import ContributionEngine
from .errors import (
    CalculationRejectedError,
    EngineNotInitializedError,
    InvalidConfigError,
    InvalidInputError,
    PayrollError,
    UnknownJurisdictionError,
)
from .rules.loader import load_reference_brackets
from .rules.registry import RuleRegistry
from .rules.schemas import RegionRule, SectorRule
from .schemas import (
    FamilyInput,
    Finding,
    PayBreakdown,
    SectorOptions,
    Severity,
    ValidationResult,
    WorkerInput,
    round2,
)
from .sectors import get_calculator, get_validator
from .taxes import compute_for_region
from .validation import audit_breakdown, audit_region_rules, validate_breakdown

logger = logging.getLogger(__name__)


@dataclass
class StartupReport:
    """What initialize() checked."""
    regions: List[str]
    sectors: List[str]
    integrity_checked: int
    region_findings: Dict[str, List[Finding]] = field(default_factory=dict)

    @property
    def errors(self) -> List[Finding]:
        return [
            f for findings in self.region_findings.values() for f in findings
            if f.severity in (Severity.CRITICAL, Severity.ERROR)
        ]

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class PayrollResult:
    breakdown: PayBreakdown
    validation: ValidationResult

    def to_output(self) -> Dict[str, Any]:
        output = self.breakdown.to_output()
        output["validacion"] = {
            "es_valido": self.validation.is_valid,
            "resumen": self.validation.summary(),
            "hallazgos": [f.model_dump(mode="json") for f in self.validation.findings],
        }
        return output


class Scenario(BaseModel):
    """One side of compare_scenarios()."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    worker: WorkerInput
    family: FamilyInput = Field(default_factory=FamilyInput)
    sector_options: Optional[SectorOptions] = None
    region_id: Optional[str] = None
    sector_id: Optional[str] = None


def _coerce(model, value, label: str):
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value or {})
    except ValidationError as e:
        raise InvalidInputError([f"{label}.{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                                 for err in e.errors()]) from e


class PayrollEngine:
    """Computes and verifies payslips against an injected rule registry.

    Usage:
        engine = PayrollEngine(build_default_registry())
        asyncio.run(engine.initialize())
        result = engine.compute_full_payroll(worker, FamilyInput(num_children=1))
    """

    def __init__(self, registry: RuleRegistry, settings: Optional[EngineSettings] = None,
                 collaborators: Optional[Collaborators] = None,
                 contribution_engine: Optional[ContributionEngine] = None):
        self.registry = registry
        self.settings = settings or EngineSettings()
        self.collaborators = collaborators or Collaborators()
        self.contributions = contribution_engine or ContributionEngine()
        self._startup: Optional[StartupReport] = None

    @property
    def initialized(self) -> bool:
        return self._startup is not None

    @property
    def startup_report(self) -> Optional[StartupReport]:
        return self._startup

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def initialize(self) -> StartupReport:
        """Verify rule integrity, audit regions, freeze the registry.

        Idempotent: later calls return the first report.

        Raises:
            InvalidConfigError: integrity failure, unknown sector strategy, or
                a region audit ERROR while ``fail_on_region_audit`` is set.
        """
        if self._startup is not None:
            return self._startup

        regions = self.registry.list_regions()
        sectors = self.registry.list_sectors()

        checker = self.collaborators.integrity_checker
        targets = [(f"region:{rid}", rule) for rid, rule in regions]
        targets += [(f"sector:{sid}", rule) for sid, rule in sectors]
        await asyncio.gather(*(checker.ensure_integrity(name, rule) for name, rule in targets))

        for sector_id, sector in sectors:
            get_calculator(sector.calculator)
            get_validator(sector.validator)

        reference = {}
        if self.settings.reference_brackets:
            reference = load_reference_brackets(Path(self.settings.reference_brackets))

        region_findings = {}
        for region_id, region in regions:
            findings = audit_region_rules(region_id, region, reference.get(region_id))
            region_findings[region_id] = findings
            for f in findings:
                log = logger.error if f.severity in (Severity.CRITICAL, Severity.ERROR) else logger.debug
                log(f"Region audit {region_id}: {f}")

        report = StartupReport(
            regions=[rid for rid, _ in regions],
            sectors=[sid for sid, _ in sectors],
            integrity_checked=len(targets),
            region_findings=region_findings,
        )
        if report.errors and self.settings.fail_on_region_audit:
            first = report.errors[0]
            raise InvalidConfigError(f"Region rule audit failed ({len(report.errors)} errors): {first.message}")

        self.registry.freeze()
        self._startup = report
        logger.info(f"Payroll engine ready: {len(report.regions)} regions, {len(report.sectors)} sectors")
        return report

    # -------------------------------------------------------------------------
    # Computation
    # -------------------------------------------------------------------------

    def _resolve(self, kind: str, requested: Optional[str], validation: ValidationResult):
        if kind == "region":
            getter, default = self.registry.get_region, self.settings.default_region
        else:
            getter, default = self.registry.get_sector, self.settings.default_sector

        rule_id = requested if requested is not None else default
        rule = getter(rule_id)
        if rule is not None:
            return rule_id, rule

        if requested is not None and self.settings.jurisdiction_fallback:
            fallback = getter(default)
            if fallback is not None:
                logger.warning(f"Unknown {kind} '{requested}', falling back to '{default}'")
                validation.add(
                    Severity.INFO, "JURISDICTION_FALLBACK",
                    f"Unknown {kind} '{requested}'; computed with default '{default}'",
                )
                return default, fallback
        raise UnknownJurisdictionError(kind, rule_id)

    def compute_breakdown(self, worker: WorkerInput, family: FamilyInput, region: RegionRule,
                          sector: SectorRule, region_id: str = "", sector_id: str = "") -> PayBreakdown:
        """Primary computation path, without validation or failure policy."""
        ce = self.contributions
        salaried = ce.compute_salaried_concepts(worker, sector)
        non_salaried = ce.compute_non_salaried_concepts(worker, sector)
        gross = ce.gross_total(salaried, non_salaried)

        social_security = region.social_security
        base = ce.contribution_base(salaried, social_security)
        annual = ce.annual_taxable_base(gross)
        employee = ce.employee_contributions(base, social_security.employee_rates)
        employer = ce.employer_contributions(base, social_security.employer_rates)

        tax = compute_for_region(annual, family, region)

        total_deductions = employee.total + tax.monthly_withholding
        employer_cost = gross + employer.total
        state_take = employee.total + employer.total

        return PayBreakdown(
            region_id=region_id,
            sector_id=sector_id,
            worker=worker,
            family=family,
            salaried=salaried,
            non_salaried=non_salaried,
            gross_total=gross,
            contribution_base=base,
            annual_taxable_base=annual,
            employee_contributions=employee,
            employer_contributions=employer,
            tax=tax,
            total_deductions=total_deductions,
            net_pay=gross - total_deductions,
            employer_cost=employer_cost,
            state_take=state_take,
            state_take_percent=state_take / employer_cost * 100 if employer_cost > 0 else 0.0,
        )

    def compute_full_payroll(self, worker: Union[WorkerInput, Mapping[str, Any]],
                             family: Union[FamilyInput, Mapping[str, Any], None] = None,
                             sector_options: Union[SectorOptions, Mapping[str, Any], None] = None,
                             region_id: Optional[str] = None,
                             sector_id: Optional[str] = None) -> PayrollResult:
        """Compute, validate and audit one payslip.

        Args:
            worker: WorkerInput or an equivalent mapping.
            family: FamilyInput or mapping (default: no children).
            sector_options: Activity figures for sector validators.
            region_id: Region id (None = settings.default_region).
            sector_id: Sector id (None = settings.default_sector).

        Returns:
            PayrollResult with the breakdown and every finding.

        Raises:
            EngineNotInitializedError: initialize() has not completed.
            InvalidInputError: input failed schema or whitelist checks.
            UnknownJurisdictionError: region/sector id not registered.
            InvalidCategoryError: wage table/level not in the sector.
            CalculationRejectedError: the failure policy rejected the result.
        """
        if not self.initialized:
            raise EngineNotInitializedError("PayrollEngine.initialize() must be awaited before computing")

        self.collaborators.rate_limiter.check_rate_limit()

        worker = _coerce(WorkerInput, worker, "worker")
        family = _coerce(FamilyInput, family, "family")
        options = _coerce(SectorOptions, sector_options, "sector_options")

        validation = ValidationResult()
        region_id, region = self._resolve("region", region_id, validation)
        sector_id, sector = self._resolve("sector", sector_id, validation)

        validator = self.collaborators.input_validator
        errors = []
        for schema_name, obj in (("worker", worker), ("family", family)):
            check = validator.validate_input(schema_name, obj, sector)
            if not check.valid:
                errors.extend(check.errors)
        if errors:
            raise InvalidInputError(errors)

        breakdown = self.compute_breakdown(worker, family, region, sector, region_id, sector_id)

        validation.extend(validate_breakdown(breakdown, region, sector))
        validation.extend(get_validator(sector.validator).validate(breakdown, sector, options))
        validation.extend(audit_breakdown(breakdown, region))

        self._apply_failure_policy(validation, breakdown)
        return PayrollResult(breakdown=breakdown, validation=validation)

    def _apply_failure_policy(self, validation: ValidationResult, breakdown: PayBreakdown) -> None:
        fatal_severities = set(self.settings.fatal_severities)
        strict_codes = set(self.settings.strict_codes) if self.settings.strict_mode else set()
        fatal = [
            f for f in validation.findings
            if f.severity in fatal_severities or f.code in strict_codes
        ]
        if fatal:
            logger.error(
                f"Calculation rejected for {breakdown.region_id}/{breakdown.sector_id}: "
                f"{', '.join(f.code for f in fatal)}"
            )
            raise CalculationRejectedError(fatal[0].message, findings=validation.findings, fatal=fatal)

    # -------------------------------------------------------------------------
    # Convenience
    # -------------------------------------------------------------------------

    def quick_estimate(self, worker: Union[WorkerInput, Mapping[str, Any]], num_children: int = 0,
                       region_id: Optional[str] = None, sector_id: Optional[str] = None) -> Dict[str, Any]:
        """Headline figures. Rejected or invalid requests return ``valid: False`` and the error."""
        try:
            result = self.compute_full_payroll(
                worker, {"num_children": num_children}, region_id=region_id, sector_id=sector_id,
            )
        except EngineNotInitializedError:
            raise
        except PayrollError as e:
            logger.warning(f"Quick estimate failed: {e}")
            return {"valid": False, "error": str(e)}

        b = result.breakdown
        return {
            "valid": result.validation.is_valid,
            "gross_pay": round2(b.gross_total),
            "net_pay": round2(b.net_pay),
            "state_take_percent": round2(b.state_take_percent),
            "monthly_withholding": round2(b.tax.monthly_withholding),
            "employee_contributions": round2(b.employee_contributions.total),
        }

    def compare_scenarios(self, first: Union[Scenario, Mapping[str, Any]],
                          second: Union[Scenario, Mapping[str, Any]]) -> Dict[str, Any]:
        """Net pay, state take and withholding differences (second minus first).

        The recommendation names the scenario with the higher net pay; ties
        go to the first.
        """
        first = _coerce(Scenario, first, "first")
        second = _coerce(Scenario, second, "second")
        name_1 = first.name or "scenario_1"
        name_2 = second.name or "scenario_2"

        def run(scenario: Scenario) -> PayBreakdown:
            result = self.compute_full_payroll(
                scenario.worker, scenario.family, scenario.sector_options,
                region_id=scenario.region_id, sector_id=scenario.sector_id,
            )
            return result.breakdown

        def summary(name: str, b: PayBreakdown) -> Dict[str, Any]:
            return {
                "name": name,
                "region": b.region_id,
                "sector": b.sector_id,
                "net_pay": round2(b.net_pay),
                "state_take_percent": round2(b.state_take_percent),
                "monthly_withholding": round2(b.tax.monthly_withholding),
            }

        b1, b2 = run(first), run(second)
        return {
            "scenario_1": summary(name_1, b1),
            "scenario_2": summary(name_2, b2),
            "differences": {
                "net_pay": round2(b2.net_pay - b1.net_pay),
                "state_take_percent": round2(b2.state_take_percent - b1.state_take_percent),
                "monthly_withholding": round2(b2.tax.monthly_withholding - b1.tax.monthly_withholding),
            },
            "recommendation": name_2 if b2.net_pay > b1.net_pay else name_1,
        }
