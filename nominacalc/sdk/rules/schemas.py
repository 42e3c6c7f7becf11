"""Pydantic schemas for jurisdiction rule sets.

These schemas validate the rules/*.yaml files and provide typed access to
tax brackets, personal minimums, social-insurance rates (RegionRule) and
wage tables plus pay complements (SectorRule).

Rates are percentages (4.70 means 4.70%), amounts are euros per month
unless the field says otherwise.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


ESTABLISHMENTS = ("hotel", "restaurant")
ZONES = ("urban", "interurban")
SHIFTS = ("continuous", "split")


def transport_key(establishment: str, zone: str, shift: str) -> str:
    """Key into the canonical transport table."""
    return f"{establishment}:{zone}:{shift}"


# =============================================================================
# Region rules
# =============================================================================


class TaxBracket(BaseModel):
    """Single progressive tax bracket.

    Brackets are walked in list order. Every bracket but the last carries an
    ``up_to`` bound; the last one must set ``infinite``. Malformed schedules
    are accepted here so the region audit can report them.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    up_to: Optional[float] = Field(default=None, description="Upper bound (None on the infinite bracket)")
    infinite: bool = Field(default=False, description="Terminal bracket with no upper bound")
    rate: float = Field(..., ge=0, le=100, description="Marginal rate as a percentage")


class TaxSchedule(BaseModel):
    """State and regional bracket schedules, applied independently and summed."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    state: List[TaxBracket]
    regional: List[TaxBracket]
    assumed_insurance_rate: float = Field(
        default=6.48, ge=0, le=100,
        description="Employee social-insurance rate assumed when deriving the liquidable base",
    )


class PersonalMinimums(BaseModel):
    """Annual amounts deducted before the bracket walk."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    personal: float = Field(..., ge=0)
    deductible_expenses: float = Field(..., ge=0)
    first_child: float = Field(..., ge=0)
    second_child: float = Field(..., ge=0)
    third_child: float = Field(..., ge=0)
    each_additional_child: float = Field(..., ge=0, description="Per child beyond the third")


class EmployeeRates(BaseModel):
    """Employee social-insurance rates."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    common_contingencies: float = Field(..., ge=0)
    unemployment: float = Field(..., ge=0)
    training: float = Field(..., ge=0)
    intergenerational_equity: float = Field(..., ge=0)


class EmployerRates(BaseModel):
    """Employer social-insurance rates.

    ``occupational_accident`` has a regulatory floor above zero
    (RD 2064/1995). Zero is accepted here and reported as CRITICAL by the
    coherence validator.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    common_contingencies: float = Field(..., ge=0)
    occupational_accident: float = Field(..., ge=0)
    unemployment: float = Field(..., ge=0)
    wage_guarantee_fund: float = Field(..., ge=0)
    training: float = Field(..., ge=0)
    intergenerational_equity: float = Field(..., ge=0)


class SocialSecurityRules(BaseModel):
    """Contribution base caps and rates."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    min_base: float = Field(..., gt=0, description="Monthly minimum contribution base")
    max_base: float = Field(..., gt=0, description="Monthly maximum contribution base")
    employee_rates: EmployeeRates
    employer_rates: EmployerRates

    @model_validator(mode="after")
    def check_base_order(self) -> "SocialSecurityRules":
        if self.min_base > self.max_base:
            raise ValueError(f"min_base ({self.min_base}) > max_base ({self.max_base})")
        return self


class RegionRule(BaseModel):
    """Complete rule set for one region, national defaults already merged."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    tax_schedule: TaxSchedule
    minimums: PersonalMinimums
    social_security: SocialSecurityRules


# =============================================================================
# Sector rules
# =============================================================================


class WageEntry(BaseModel):
    """One wage table cell."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    salary: float = Field(..., gt=0, description="Monthly base wage")
    overtime_hour: float = Field(default=0, ge=0)
    holiday: float = Field(default=0, ge=0)


class UniformItem(BaseModel):
    """Priced protective/uniform item."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    price: float = Field(..., ge=0)
    mandatory: bool = False


class UniformCategory(BaseModel):
    """Flat uniform allowance for categories matching any keyword."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    keywords: List[str] = Field(default_factory=list)
    total: float = Field(..., ge=0)


class UniformAllowance(BaseModel):
    """Either an item price table or flat per-category totals."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    items: Dict[str, UniformItem] = Field(default_factory=dict)
    categories: Dict[str, UniformCategory] = Field(default_factory=dict)
    default_category: Optional[str] = None
    allowed_items: List[str] = Field(
        default_factory=list, description="Unpriced item ids accepted when there is no item table",
    )

    @property
    def itemized(self) -> bool:
        return bool(self.items)

    def accepts(self, item: str) -> bool:
        """Whether an item id is on this sector's whitelist."""
        return item in self.items or item in self.allowed_items

    def mandatory_items(self) -> List[str]:
        return [name for name, item in self.items.items() if item.mandatory]

    def category_total(self, category: str) -> float:
        """Flat total for a worker category (keyword match, then default)."""
        lowered = category.lower()
        for entry in self.categories.values():
            if any(keyword.lower() in lowered for keyword in entry.keywords):
                return entry.total
        if self.default_category and self.default_category in self.categories:
            return self.categories[self.default_category].total
        return 0.0


class Complements(BaseModel):
    """Canonical pay complements for a sector.

    Produced by loader.normalize_complements(); every lookup is a plain
    table read, whatever shape the sector's rule file used.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    training_bonus: float = Field(default=0, ge=0)
    night_shift_bonus: float = Field(default=0, ge=0)
    hazard_bonus: float = Field(default=0, ge=0)
    meal_allowance: Dict[str, float] = Field(..., description="establishment -> amount")
    transport: Dict[str, float] = Field(..., description="establishment:zone:shift -> amount")
    uniform: UniformAllowance = Field(default_factory=UniformAllowance)

    @model_validator(mode="after")
    def check_tables_complete(self) -> "Complements":
        missing = [e for e in ESTABLISHMENTS if e not in self.meal_allowance]
        missing += [
            transport_key(e, z, s)
            for e in ESTABLISHMENTS for z in ZONES for s in SHIFTS
            if transport_key(e, z, s) not in self.transport
        ]
        if missing:
            raise ValueError(f"complement tables incomplete: {', '.join(missing)}")
        return self

    def meal_for(self, is_hotel: bool) -> float:
        return self.meal_allowance["hotel" if is_hotel else "restaurant"]

    def transport_for(self, is_hotel: bool, urban: bool, shift: str) -> float:
        key = transport_key(
            "hotel" if is_hotel else "restaurant",
            "urban" if urban else "interurban",
            shift,
        )
        return self.transport[key]


class ExpectedRange(BaseModel):
    """Plausible net pay / state-take range for a category and level."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    category: str
    level: str
    net_pay_min: Optional[float] = None
    net_pay_max: Optional[float] = None
    state_take_min: Optional[float] = None
    state_take_max: Optional[float] = None


class TypicalRanges(BaseModel):
    """Sector-wide plausibility bounds used for INFO findings."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_salary_min: Optional[float] = None
    base_salary_max: Optional[float] = None
    effective_rate_max: Optional[float] = None


class SectorRule(BaseModel):
    """Wage convention for one sector."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1)
    calculator: str = Field(..., min_length=1, description="ConceptCalculator strategy id")
    validator: str = Field(..., min_length=1, description="Sector validator strategy id")
    extra_payments_per_year: int = Field(..., ge=0, le=12)
    wage_tables: Dict[str, Dict[str, WageEntry]]
    complements: Complements
    categories: List[str] = Field(default_factory=list, description="Allowed worker categories")
    expected_ranges: List[ExpectedRange] = Field(default_factory=list)
    typical_ranges: TypicalRanges = Field(default_factory=TypicalRanges)
    validator_options: Dict[str, Any] = Field(default_factory=dict)

    def wage_entry(self, wage_table: str, level: str) -> Optional[WageEntry]:
        return self.wage_tables.get(wage_table, {}).get(level)

    def expected_range(self, category: str, level: str) -> Optional[ExpectedRange]:
        for entry in self.expected_ranges:
            if entry.category == category and entry.level == level:
                return entry
        return None
