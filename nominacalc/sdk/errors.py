"""Exception taxonomy for the payroll engine.

Component functions raise these and never swallow them. Only the
orchestrator (payroll.PayrollEngine) decides which validation findings
terminate a calculation.
"""

from typing import List, Optional


class PayrollError(Exception):
    """Base class for all engine errors."""
    pass


class InvalidConfigError(PayrollError):
    """Raised when a rule set is malformed or registered at the wrong time."""
    pass


class UnknownJurisdictionError(PayrollError):
    """Raised when a region or sector id is not in the registry."""

    def __init__(self, kind: str, jurisdiction_id: str):
        self.kind = kind
        self.jurisdiction_id = jurisdiction_id
        super().__init__(f"Unknown {kind}: '{jurisdiction_id}'")


class InvalidCategoryError(PayrollError):
    """Raised when a wage table/level combination has no entry."""

    def __init__(self, wage_table: str, level: str, sector: Optional[str] = None):
        self.wage_table = wage_table
        self.level = level
        self.sector = sector
        where = f" in sector '{sector}'" if sector else ""
        super().__init__(f"Invalid wage table/level combination{where}: {wage_table}/{level}")


class InvalidInputError(PayrollError):
    """Raised when worker or family input fails validation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Invalid input: {', '.join(self.errors)}")


class EngineNotInitializedError(PayrollError):
    """Raised when computing before PayrollEngine.initialize() completed."""
    pass


class CalculationRejectedError(PayrollError):
    """Raised when the failure policy rejects a computed breakdown.

    The message is the first fatal finding's message. All findings, fatal
    or not, are kept on ``findings``.
    """

    def __init__(self, message: str, findings=None, fatal=None):
        self.findings = list(findings or [])
        self.fatal = list(fatal or [])
        super().__init__(message)
