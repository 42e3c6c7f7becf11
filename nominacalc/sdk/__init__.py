"""Nomina Calc SDK - payroll computation with independent verification.

Scope:
- Rule registry for regions (tax brackets, minimums, social security) and
  sectors (wage tables, complements)
- Contribution and progressive income-tax engines
- Coherence checks and second-path audits of every payslip
- PayrollEngine: the orchestrator applying the failure policy

Usage:
    import asyncio
    from nominacalc.sdk import PayrollEngine, WorkerInput, build_default_registry

    engine = PayrollEngine(build_default_registry())
    asyncio.run(engine.initialize())
    result = engine.compute_full_payroll(
        WorkerInput(category="cocinero", wage_table="TABLE_I", level="LEVEL_III"),
    )
    print(result.breakdown.to_output()["resumen"])
"""

from .config import (
    EngineSettings,
    configure_logging,
    get_config_dir,
    get_setting,
    get_settings_path,
    load_engine_settings,
    load_settings,
    save_settings,
    set_setting,
    unset_setting,
)

from .errors import (
    CalculationRejectedError,
    EngineNotInitializedError,
    InvalidCategoryError,
    InvalidConfigError,
    InvalidInputError,
    PayrollError,
    UnknownJurisdictionError,
)

from .schemas import (
    ContributionResult,
    FamilyInput,
    Finding,
    PayBreakdown,
    PayComponents,
    SectorOptions,
    Severity,
    TaxResult,
    ValidationResult,
    WorkerInput,
)

from .rules import (
    RegionRule,
    RegistrationResult,
    RuleRegistry,
    SectorRule,
    build_default_registry,
)

from .contributions import ContributionEngine

from .taxes import apply_brackets, compute_for_region, compute_minimums, marginal_rate

from .validation import audit_breakdown, audit_region_rules, validate_breakdown

from .collaborators import (
    ChecksumIntegrityChecker,
    Collaborators,
    InputCheck,
    WhitelistInputValidator,
)

from .payroll import PayrollEngine, PayrollResult, Scenario, StartupReport

__all__ = [
    # Config
    "EngineSettings",
    "configure_logging",
    "get_config_dir",
    "get_setting",
    "get_settings_path",
    "load_engine_settings",
    "load_settings",
    "save_settings",
    "set_setting",
    "unset_setting",
    # Errors
    "CalculationRejectedError",
    "EngineNotInitializedError",
    "InvalidCategoryError",
    "InvalidConfigError",
    "InvalidInputError",
    "PayrollError",
    "UnknownJurisdictionError",
    # Schemas
    "ContributionResult",
    "FamilyInput",
    "Finding",
    "PayBreakdown",
    "PayComponents",
    "SectorOptions",
    "Severity",
    "TaxResult",
    "ValidationResult",
    "WorkerInput",
    # Rules
    "RegionRule",
    "RegistrationResult",
    "RuleRegistry",
    "SectorRule",
    "build_default_registry",
    # Engines
    "ContributionEngine",
    "apply_brackets",
    "compute_for_region",
    "compute_minimums",
    "marginal_rate",
    "audit_breakdown",
    "audit_region_rules",
    "validate_breakdown",
    # Collaborators
    "ChecksumIntegrityChecker",
    "Collaborators",
    "InputCheck",
    "WhitelistInputValidator",
    # Orchestrator
    "PayrollEngine",
    "PayrollResult",
    "Scenario",
    "StartupReport",
]
