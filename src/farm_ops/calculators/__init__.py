"""Payroll calculation engine."""

from farm_ops.calculators.engine import (
    PayrollEngine,
    PeriodCalculationResult,
    WorkerCalculationResult,
)
from farm_ops.calculators.line_builder import LineBuilder
from farm_ops.calculators.rate_resolver import RateNotFoundError, RateResolver

__all__ = [
    "PayrollEngine",
    "PeriodCalculationResult",
    "WorkerCalculationResult",
    "LineBuilder",
    "RateNotFoundError",
    "RateResolver",
]
