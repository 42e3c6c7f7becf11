"""Registry of jurisdiction rule sets (regions and sectors).

Rules are registered once during startup, then the registry is frozen and
only read. Lookups never raise; registration problems raise
InvalidConfigError.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..errors import InvalidConfigError
from .schemas import RegionRule, SectorRule

logger = logging.getLogger(__name__)

RuleT = TypeVar("RuleT", bound=BaseModel)

REGION_REQUIRED = ("name", "tax_schedule")
SECTOR_REQUIRED = ("name", "wage_tables", "calculator", "validator")


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a registration.

    ``conflict`` is True when the id was already registered; ``replaced``
    then holds the previous rule. The caller decides whether that is fatal.
    """
    kind: str
    id: str
    conflict: bool = False
    replaced: Optional[BaseModel] = None


class _RuleTable(Generic[RuleT]):
    """Ordered id -> rule mapping for one kind of rule."""

    def __init__(self, kind: str, model: Type[RuleT], required: Tuple[str, ...]):
        self.kind = kind
        self.model = model
        self.required = required
        self._rules: Dict[str, RuleT] = {}

    def parse(self, rule_id: str, rule: Union[RuleT, Mapping[str, Any]]) -> RuleT:
        if not rule_id or not str(rule_id).strip():
            raise InvalidConfigError(f"{self.kind} id must not be empty")
        if isinstance(rule, self.model):
            return rule
        if not isinstance(rule, Mapping):
            raise InvalidConfigError(
                f"{self.kind} '{rule_id}': expected mapping or {self.model.__name__}, "
                f"got {type(rule).__name__}"
            )
        missing = [field for field in self.required if not rule.get(field)]
        if missing:
            raise InvalidConfigError(f"{self.kind} '{rule_id}' missing required fields: {', '.join(missing)}")
        try:
            return self.model.model_validate(dict(rule))
        except ValidationError as e:
            raise InvalidConfigError(f"{self.kind} '{rule_id}' is invalid: {e}") from e

    def put(self, rule_id: str, rule: RuleT) -> RegistrationResult:
        previous = self._rules.get(rule_id)
        self._rules[rule_id] = rule
        if previous is not None:
            logger.warning(f"{self.kind} '{rule_id}' re-registered; previous rule replaced")
            return RegistrationResult(kind=self.kind, id=rule_id, conflict=True, replaced=previous)
        logger.debug(f"Registered {self.kind} '{rule_id}' ({rule.name})")
        return RegistrationResult(kind=self.kind, id=rule_id)

    def get(self, rule_id: Optional[str]) -> Optional[RuleT]:
        if rule_id is None:
            return None
        return self._rules.get(rule_id)

    def items(self) -> List[Tuple[str, RuleT]]:
        return list(self._rules.items())


class RuleRegistry:
    """Region and sector rule sets keyed by id.

    Usage:
        registry = RuleRegistry()
        registry.register_region("valencia", region_rule)
        registry.register_sector("hosteleria_valencia", sector_rule)
        registry.freeze()
    """

    def __init__(self):
        self._regions: _RuleTable[RegionRule] = _RuleTable("region", RegionRule, REGION_REQUIRED)
        self._sectors: _RuleTable[SectorRule] = _RuleTable("sector", SectorRule, SECTOR_REQUIRED)
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """End the startup phase. Later registrations raise InvalidConfigError."""
        if not self._frozen:
            logger.debug(
                f"Registry frozen with {len(self._regions.items())} regions, "
                f"{len(self._sectors.items())} sectors"
            )
        self._frozen = True

    def _register(self, table: _RuleTable, rule_id: str, rule) -> RegistrationResult:
        if self._frozen:
            raise InvalidConfigError(f"Cannot register {table.kind} '{rule_id}': registry is frozen")
        parsed = table.parse(rule_id, rule)
        return table.put(rule_id, parsed)

    def register_region(self, region_id: str, rule: Union[RegionRule, Mapping[str, Any]]) -> RegistrationResult:
        return self._register(self._regions, region_id, rule)

    def register_sector(self, sector_id: str, rule: Union[SectorRule, Mapping[str, Any]]) -> RegistrationResult:
        return self._register(self._sectors, sector_id, rule)

    def get_region(self, region_id: Optional[str]) -> Optional[RegionRule]:
        return self._regions.get(region_id)

    def get_sector(self, sector_id: Optional[str]) -> Optional[SectorRule]:
        return self._sectors.get(sector_id)

    def list_regions(self) -> List[Tuple[str, RegionRule]]:
        """(id, rule) pairs in registration order."""
        return self._regions.items()

    def list_sectors(self) -> List[Tuple[str, SectorRule]]:
        """(id, rule) pairs in registration order."""
        return self._sectors.items()
