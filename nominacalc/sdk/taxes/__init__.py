"""Income-tax withholding for registered regions."""

from .progressive import (
    apply_brackets,
    bracket_slices,
    check_schedule,
    compute_for_region,
    compute_minimums,
    family_minimum,
    marginal_rate,
)

__all__ = [
    "apply_brackets",
    "bracket_slices",
    "check_schedule",
    "compute_for_region",
    "compute_minimums",
    "family_minimum",
    "marginal_rate",
]
