"""Nomina Calc - payroll breakdown engine with independent verification."""

__version__ = "0.4.0"
