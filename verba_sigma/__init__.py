"""Payroll verba validation with six-sigma control limits."""

__version__ = "2.0.0"
