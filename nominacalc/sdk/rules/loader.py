"""Load jurisdiction rule tables from rules/*.yaml.

Layout of the rules directory:

    national-YYYY.yaml           state schedule, minimums, social security
    regions-YYYY.yaml            regional schedules (optionally a foral state schedule)
    sectors/<sector_id>.yaml     wage convention per sector
    sectors/legacy-complements.yaml
                                 complement amounts used when a sector omits them

Loading merges the national defaults into every region and resolves each
sector's complements into the canonical Complements shape, so the registry
only ever sees finished rule sets.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from ..errors import InvalidConfigError
from .schemas import ESTABLISHMENTS, SHIFTS, ZONES, Complements, transport_key

logger = logging.getLogger(__name__)

DEFAULT_YEAR = 2025
LEGACY_COMPLEMENTS_FILE = "legacy-complements.yaml"


def get_rules_dir(override: Optional[str] = None) -> Path:
    """Get the rules directory (override, else the bundled nominacalc/rules)."""
    if override:
        return Path(override)
    package_root = Path(__file__).parent.parent.parent  # rules -> sdk -> nominacalc
    return package_root / "rules"


def load_yaml(path: Path) -> dict:
    """Load a YAML mapping, raising InvalidConfigError on a missing or malformed file."""
    if not path.exists():
        raise InvalidConfigError(f"Rules file not found: {path}")
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigError(f"Malformed YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Rules file {path} must contain a mapping")
    return data


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict:
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


# =============================================================================
# Regions
# =============================================================================


def load_region_rules(rules_dir: Optional[Path] = None, year: int = DEFAULT_YEAR) -> Dict[str, dict]:
    """Load every region with national defaults merged in.

    A region entry supplies ``name`` and ``regional`` brackets, and may
    override ``state`` brackets (foral regimes), ``assumed_insurance_rate``,
    ``minimums`` or ``social_security`` keys.

    Returns:
        Ordered mapping region_id -> raw rule dict ready for RuleRegistry.
    """
    rules_dir = rules_dir or get_rules_dir()
    national = load_yaml(rules_dir / f"national-{year}.yaml")
    regions_file = load_yaml(rules_dir / f"regions-{year}.yaml")

    national_schedule = national.get("tax_schedule", {})
    regions: Dict[str, dict] = {}
    for region_id, entry in (regions_file.get("regions") or {}).items():
        if not isinstance(entry, Mapping):
            raise InvalidConfigError(f"Region '{region_id}' in regions-{year}.yaml must be a mapping")
        schedule = {
            "state": copy.deepcopy(entry.get("state", national_schedule.get("state"))),
            "regional": copy.deepcopy(entry.get("regional")),
        }
        insurance_rate = entry.get("assumed_insurance_rate", national_schedule.get("assumed_insurance_rate"))
        if insurance_rate is not None:
            schedule["assumed_insurance_rate"] = insurance_rate

        regions[region_id] = {
            "name": entry.get("name"),
            "tax_schedule": schedule if schedule["regional"] is not None else None,
            "minimums": _deep_merge(national.get("minimums", {}), entry.get("minimums", {})),
            "social_security": _deep_merge(national.get("social_security", {}), entry.get("social_security", {})),
        }
    logger.debug(f"Loaded {len(regions)} regions from {rules_dir}")
    return regions


def load_reference_brackets(path: Path) -> Dict[str, dict]:
    """Load a reference bracket fixture for audit_region_rules().

    Format: ``{region_id: {state: [...], regional: [...], tolerance: 0.01}}``.
    """
    data = load_yaml(path)
    return data.get("regions", data)


# =============================================================================
# Sectors
# =============================================================================


def _resolve_transport(spec: Any, establishment: str, zone: str, shift: str, sector_id: str) -> float:
    """Resolve one transport cell from a flat, zoned, shift-based or per-establishment spec."""
    if isinstance(spec, (int, float)) and not isinstance(spec, bool):
        return float(spec)
    if isinstance(spec, Mapping):
        for key in (establishment, zone, shift):
            if key in spec:
                return _resolve_transport(spec[key], establishment, zone, shift, sector_id)
    raise InvalidConfigError(
        f"Sector '{sector_id}': cannot resolve transport for {transport_key(establishment, zone, shift)} from {spec!r}"
    )


def _resolve_meal(spec: Any, establishment: str, sector_id: str) -> float:
    if isinstance(spec, (int, float)) and not isinstance(spec, bool):
        return float(spec)
    if isinstance(spec, Mapping) and establishment in spec:
        return _resolve_meal(spec[establishment], establishment, sector_id)
    raise InvalidConfigError(f"Sector '{sector_id}': cannot resolve meal allowance for {establishment} from {spec!r}")


def normalize_complements(raw: Optional[Mapping[str, Any]], legacy: Mapping[str, Any],
                          sector_id: str = "?") -> Complements:
    """Resolve a sector's complements into the canonical shape.

    For each complement the sector's own value wins (structured or flat),
    otherwise the legacy table's value is used. After this step every lookup
    is a single table read.
    """
    raw = raw or {}

    def pick(key: str, default: Any = None) -> Any:
        if key in raw and raw[key] is not None:
            return raw[key]
        if key in legacy and legacy[key] is not None:
            logger.debug(f"Sector '{sector_id}': '{key}' taken from legacy complements")
            return legacy[key]
        return default

    meal_spec = pick("meal_allowance", 0)
    transport_spec = pick("transport", 0)
    uniform_spec = pick("uniform", {})

    data = {
        "training_bonus": pick("training_bonus", 0),
        "night_shift_bonus": raw.get("night_shift_bonus", 0),
        "hazard_bonus": raw.get("hazard_bonus", 0),
        "meal_allowance": {e: _resolve_meal(meal_spec, e, sector_id) for e in ESTABLISHMENTS},
        "transport": {
            transport_key(e, z, s): _resolve_transport(transport_spec, e, z, s, sector_id)
            for e in ESTABLISHMENTS for z in ZONES for s in SHIFTS
        },
        "uniform": uniform_spec,
    }
    try:
        return Complements.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigError(f"Sector '{sector_id}' complements are invalid: {e}") from e


def load_legacy_complements(rules_dir: Optional[Path] = None) -> dict:
    rules_dir = rules_dir or get_rules_dir()
    path = rules_dir / "sectors" / LEGACY_COMPLEMENTS_FILE
    if not path.exists():
        return {}
    return load_yaml(path)


def load_sector_rules(rules_dir: Optional[Path] = None) -> Dict[str, dict]:
    """Load every sectors/<id>.yaml with complements normalized.

    Returns:
        Mapping sector_id -> raw rule dict ready for RuleRegistry, sorted by id.
    """
    rules_dir = rules_dir or get_rules_dir()
    legacy = load_legacy_complements(rules_dir)

    sectors: Dict[str, dict] = {}
    for path in sorted((rules_dir / "sectors").glob("*.yaml")):
        if path.name == LEGACY_COMPLEMENTS_FILE:
            continue
        sector_id = path.stem
        data = load_yaml(path)
        data["complements"] = normalize_complements(data.get("complements"), legacy, sector_id)
        sectors[sector_id] = data
    logger.debug(f"Loaded {len(sectors)} sectors from {rules_dir}")
    return sectors
