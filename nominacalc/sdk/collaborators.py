"""Hooks PayrollEngine calls out to: rate limiting, input checks, rule integrity.

Each hook is a Protocol with a default implementation. Applications swap in
their own through the Collaborators bundle.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, NamedTuple, Optional, Protocol

from .errors import InvalidConfigError
from .rules.schemas import SectorRule
from .schemas import WorkerInput

logger = logging.getLogger(__name__)


class InputCheck(NamedTuple):
    valid: bool
    errors: List[str]


class RateLimiter(Protocol):
    def check_rate_limit(self) -> None:
        """Raise to refuse the request."""
        ...


class InputValidator(Protocol):
    def validate_input(self, schema_name: str, obj: Any, sector: Optional[SectorRule] = None) -> InputCheck:
        ...


class IntegrityChecker(Protocol):
    async def ensure_integrity(self, name: str, data: Any) -> None:
        """Raise if the rule data was tampered with."""
        ...


class NoRateLimit:
    def check_rate_limit(self) -> None:
        return None


class WhitelistInputValidator:
    """Checks a worker's category and uniform items against the sector's whitelists.

    Field shapes (wage table/level patterns, children range) are already
    enforced by the pydantic input models.
    """

    def validate_input(self, schema_name: str, obj: Any, sector: Optional[SectorRule] = None) -> InputCheck:
        if schema_name != "worker" or sector is None or not isinstance(obj, WorkerInput):
            return InputCheck(True, [])

        errors = []
        if sector.categories and obj.category not in sector.categories:
            errors.append(f"category '{obj.category}' not allowed in {sector.name}")
        uniform = sector.complements.uniform
        for item in obj.uniform_items:
            if not uniform.accepts(item):
                errors.append(f"uniform item '{item}' not allowed in {sector.name}")
        return InputCheck(not errors, errors)


class NoIntegrityCheck:
    async def ensure_integrity(self, name: str, data: Any) -> None:
        return None


def rule_digest(data: Any) -> str:
    """SHA-256 of a rule set's canonical JSON form."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ChecksumIntegrityChecker:
    """Compares rule sets against known SHA-256 digests.

    Args:
        expected: name -> hex digest. Names without a digest pass unchecked.
    """

    def __init__(self, expected: Mapping[str, str]):
        self.expected = dict(expected)

    async def ensure_integrity(self, name: str, data: Any) -> None:
        digest = self.expected.get(name)
        if digest is None:
            logger.debug(f"No checksum registered for {name}")
            return
        actual = rule_digest(data)
        if actual != digest:
            raise InvalidConfigError(f"Integrity check failed for {name}: digest {actual[:12]} != {digest[:12]}")


@dataclass
class Collaborators:
    rate_limiter: RateLimiter = field(default_factory=NoRateLimit)
    input_validator: InputValidator = field(default_factory=WhitelistInputValidator)
    integrity_checker: IntegrityChecker = field(default_factory=NoIntegrityCheck)
