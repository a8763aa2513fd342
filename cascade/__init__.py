"""Cascade payroll streaming backend: accrual read models and stream risk alerts."""

__version__ = "0.1.0"
