"""Payroll-week reconciliation and weekly cost aggregation."""

__version__ = "0.3.0"
