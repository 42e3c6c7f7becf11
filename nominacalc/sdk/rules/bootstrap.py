"""Startup wiring: register the bundled regions and sectors."""

import logging
from pathlib import Path
from typing import Optional

from .loader import DEFAULT_YEAR, get_rules_dir, load_region_rules, load_sector_rules
from .registry import RuleRegistry

logger = logging.getLogger(__name__)


def build_default_registry(rules_dir: Optional[Path] = None, year: int = DEFAULT_YEAR,
                           registry: Optional[RuleRegistry] = None) -> RuleRegistry:
    """Load every region and sector from ``rules_dir`` into a registry.

    The registry is returned unfrozen; PayrollEngine.initialize() freezes it
    once the startup audits pass. Registration conflicts are logged by the
    registry and do not stop the load.
    """
    rules_dir = rules_dir or get_rules_dir()
    registry = registry or RuleRegistry()

    for region_id, rule in load_region_rules(rules_dir, year).items():
        registry.register_region(region_id, rule)
    for sector_id, rule in load_sector_rules(rules_dir).items():
        registry.register_sector(sector_id, rule)

    logger.info(
        f"Rules loaded from {rules_dir}: {len(registry.list_regions())} regions, "
        f"{len(registry.list_sectors())} sectors"
    )
    return registry
