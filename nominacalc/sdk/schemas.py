"""Pydantic schemas for payroll inputs, results and validation findings.

All schemas use extra='forbid' to reject unknown fields. Inputs are frozen:
a calculation never mutates what the caller passed in.

Internal amounts keep full float precision. Rounding to cents happens only
in PayBreakdown.to_output() and in the audit comparisons.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def round2(value: float) -> float:
    """Round a monetary amount to cents."""
    return round(value, 2)


# =============================================================================
# Inputs
# =============================================================================


class WorkerInput(BaseModel):
    """Worker category, wage table cell and concept flags for one payslip."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    category: str = Field(..., min_length=1, description="Sector category (e.g. cocinero)")
    wage_table: str = Field(..., pattern=r"^TABLE_[IVXLC]+$")
    level: str = Field(..., pattern=r"^LEVEL_[IVXLC]+$")
    shift_type: Literal["continuous", "split"] = "split"
    is_hotel: bool = Field(default=False, description="Hotel establishment (else restaurant-style)")
    urban_transport: bool = Field(default=True, description="Urban zone (else interurban/metropolitan)")

    applies_training_bonus: bool = False
    applies_transport: bool = False
    applies_meal_allowance: bool = False
    applies_night_shift: bool = False
    applies_hazard_pay: bool = False
    applies_uniform: bool = False
    uniform_items: List[str] = Field(default_factory=list, description="Selected uniform/PPE item ids")


class FamilyInput(BaseModel):
    """Family data relevant to the personal and family minimums."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    num_children: int = Field(default=0, ge=0, le=10)


class SectorOptions(BaseModel):
    """Monthly activity figures read only by sector validators."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    overtime_hours: int = Field(default=0, ge=0)
    night_hours: int = Field(default=0, ge=0)
    holidays_worked: int = Field(default=0, ge=0)


# =============================================================================
# Computation results
# =============================================================================


class PayComponents(BaseModel):
    """Named pay line items with a stored total.

    The total is stored rather than derived so the coherence validator can
    catch a primary path that sums incorrectly.
    """
    model_config = ConfigDict(extra="forbid")

    items: Dict[str, float] = Field(default_factory=dict)
    total: float = 0.0

    @field_validator("items")
    @classmethod
    def check_non_negative(cls, items: Dict[str, float]) -> Dict[str, float]:
        negative = [name for name, amount in items.items() if amount < 0]
        if negative:
            raise ValueError(f"negative line items: {', '.join(negative)}")
        return items

    @classmethod
    def from_items(cls, items: Dict[str, float]) -> "PayComponents":
        return cls(items=dict(items), total=sum(items.values()))

    @property
    def items_sum(self) -> float:
        return sum(self.items.values())


class ContributionResult(BaseModel):
    """Social-insurance contributions on the capped base."""
    model_config = ConfigDict(extra="forbid")

    base: float = Field(..., ge=0, description="Capped contribution base the rates apply to")
    items: Dict[str, float] = Field(default_factory=dict)
    rates: Dict[str, float] = Field(default_factory=dict, description="Percentage rate per item")
    total: float = 0.0

    @property
    def items_sum(self) -> float:
        return sum(self.items.values())


class BracketSlice(BaseModel):
    """Portion of the liquidable base taxed inside one bracket."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    floor: float
    up_to: Optional[float] = None
    rate: float
    taxed: float
    amount: float


class TaxResult(BaseModel):
    """Annual income-tax computation and its monthly withholding."""
    model_config = ConfigDict(extra="forbid")

    annual_taxable_base: float = Field(..., ge=0)
    insurance_deduction: float = 0.0
    deductible_expenses: float = 0.0
    personal_minimum: float = 0.0
    family_minimum: float = 0.0
    liquidable_base: float = 0.0
    state_tax: float = 0.0
    regional_tax: float = 0.0
    annual_quota: float = 0.0
    effective_rate: float = 0.0
    monthly_withholding: float = 0.0
    marginal_rate: float = 0.0
    state_slices: List[BracketSlice] = Field(default_factory=list)
    regional_slices: List[BracketSlice] = Field(default_factory=list)

    @property
    def total_minimums(self) -> float:
        return self.deductible_expenses + self.personal_minimum + self.family_minimum


class PayBreakdown(BaseModel):
    """Full monthly payslip as produced by the primary computation path."""
    model_config = ConfigDict(extra="forbid")

    region_id: str
    sector_id: str
    worker: WorkerInput
    family: FamilyInput
    salaried: PayComponents
    non_salaried: PayComponents
    gross_total: float
    contribution_base: float
    annual_taxable_base: float
    employee_contributions: ContributionResult
    employer_contributions: ContributionResult
    tax: TaxResult
    total_deductions: float
    net_pay: float
    employer_cost: float
    state_take: float
    state_take_percent: float

    @property
    def taxable_monthly_base(self) -> float:
        return self.annual_taxable_base / 12

    def to_output(self) -> Dict[str, Any]:
        """Stable output groups, every amount rounded to cents.

        Groups: ingresos (income), deducciones (employee deductions),
        empresa (employer side), expolio (state take), resumen (headline).
        """
        def rounded(items: Dict[str, float]) -> Dict[str, float]:
            return {name: round2(amount) for name, amount in items.items()}

        return {
            "jurisdiccion": {"region": self.region_id, "sector": self.sector_id},
            "ingresos": {
                "conceptos_salariales": {**rounded(self.salaried.items), "total": round2(self.salaried.total)},
                "conceptos_no_salariales": {
                    **rounded(self.non_salaried.items), "total": round2(self.non_salaried.total),
                },
                "salario_bruto_total": round2(self.gross_total),
                "base_cotizacion": round2(self.contribution_base),
                "base_irpf_anual": round2(self.annual_taxable_base),
            },
            "deducciones": {
                "seguridad_social": {
                    **rounded(self.employee_contributions.items),
                    "total": round2(self.employee_contributions.total),
                },
                "irpf": {
                    "retencion_mensual": round2(self.tax.monthly_withholding),
                    "cuota_anual": round2(self.tax.annual_quota),
                    "tipo_efectivo": round2(self.tax.effective_rate),
                    "tipo_marginal": round2(self.tax.marginal_rate),
                    "base_liquidable": round2(self.tax.liquidable_base),
                },
                "total": round2(self.total_deductions),
            },
            "empresa": {
                "seguridad_social": {
                    **rounded(self.employer_contributions.items),
                    "total": round2(self.employer_contributions.total),
                },
                "coste_total": round2(self.employer_cost),
            },
            "expolio": {
                "cotizacion_trabajador": round2(self.employee_contributions.total),
                "cotizacion_empresa": round2(self.employer_contributions.total),
                "total": round2(self.state_take),
                "porcentaje": round2(self.state_take_percent),
            },
            "resumen": {
                "salario_neto": round2(self.net_pay),
                "total_deducciones": round2(self.total_deductions),
                "coste_empresa": round2(self.employer_cost),
                "expolio_total": round2(self.state_take),
                "expolio_porcentaje": round2(self.state_take_percent),
            },
        }


# =============================================================================
# Validation findings
# =============================================================================


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


BLOCKING_SEVERITIES = frozenset({Severity.CRITICAL, Severity.ERROR})


class Finding(BaseModel):
    """One validation or audit finding."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    severity: Severity
    code: str
    message: str
    remedy: Optional[str] = None

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.code}: {self.message}"


class ValidationResult(BaseModel):
    """Ordered findings from coherence, sector and audit checks."""
    model_config = ConfigDict(extra="forbid")

    findings: List[Finding] = Field(default_factory=list)

    def add(self, severity: Severity, code: str, message: str, remedy: Optional[str] = None) -> Finding:
        finding = Finding(severity=severity, code=code, message=message, remedy=remedy)
        self.findings.append(finding)
        return finding

    def extend(self, findings: List[Finding]) -> None:
        self.findings.extend(findings)

    def by_severity(self, severity: Severity) -> List[Finding]:
        return [f for f in self.findings if f.severity == severity]

    @property
    def codes(self) -> List[str]:
        return [f.code for f in self.findings]

    def has(self, code: str) -> bool:
        return code in self.codes

    @property
    def is_valid(self) -> bool:
        """True when there is no CRITICAL or ERROR finding."""
        return not any(f.severity in BLOCKING_SEVERITIES for f in self.findings)

    def summary(self) -> Dict[str, int]:
        counts = {severity.value.lower(): 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity.value.lower()] += 1
        counts["total"] = len(self.findings)
        return counts
