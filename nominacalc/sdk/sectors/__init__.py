"""Sector strategies, keyed by the ids used in SectorRule.calculator/validator."""

from typing import Dict

from ..errors import InvalidConfigError
from .base import ConceptCalculator, SectorValidator
from .hosteleria import HosteleriaCalculator, HosteleriaValidator
from .limpieza import LimpiezaCalculator, LimpiezaValidator

CALCULATORS: Dict[str, ConceptCalculator] = {
    "hosteleria": HosteleriaCalculator(),
    "limpieza": LimpiezaCalculator(),
}

VALIDATORS: Dict[str, SectorValidator] = {
    "hosteleria": HosteleriaValidator(),
    "limpieza": LimpiezaValidator(),
}


def get_calculator(calculator_id: str) -> ConceptCalculator:
    try:
        return CALCULATORS[calculator_id]
    except KeyError:
        raise InvalidConfigError(f"Unknown concept calculator: '{calculator_id}'") from None


def get_validator(validator_id: str) -> SectorValidator:
    try:
        return VALIDATORS[validator_id]
    except KeyError:
        raise InvalidConfigError(f"Unknown sector validator: '{validator_id}'") from None


__all__ = [
    "CALCULATORS",
    "VALIDATORS",
    "ConceptCalculator",
    "SectorValidator",
    "get_calculator",
    "get_validator",
    "HosteleriaCalculator",
    "HosteleriaValidator",
    "LimpiezaCalculator",
    "LimpiezaValidator",
]
