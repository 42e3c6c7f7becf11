"""Jurisdiction rules: schemas, registry and YAML loading.

Scope:
- RegionRule: state/regional bracket schedules, personal minimums, social security
- SectorRule: wage tables, extra payments, canonical complements
- RuleRegistry: id -> rule lookup, frozen after startup

Usage:
    from nominacalc.sdk.rules import build_default_registry

    registry = build_default_registry()
    region = registry.get_region("valencia")
"""

from .bootstrap import build_default_registry
from .loader import (
    get_rules_dir,
    load_reference_brackets,
    load_region_rules,
    load_sector_rules,
    normalize_complements,
)
from .registry import RegistrationResult, RuleRegistry
from .schemas import (
    Complements,
    PersonalMinimums,
    RegionRule,
    SectorRule,
    SocialSecurityRules,
    TaxBracket,
    TaxSchedule,
    WageEntry,
)

__all__ = [
    "build_default_registry",
    "get_rules_dir",
    "load_reference_brackets",
    "load_region_rules",
    "load_sector_rules",
    "normalize_complements",
    "RegistrationResult",
    "RuleRegistry",
    "Complements",
    "PersonalMinimums",
    "RegionRule",
    "SectorRule",
    "SocialSecurityRules",
    "TaxBracket",
    "TaxSchedule",
    "WageEntry",
]
