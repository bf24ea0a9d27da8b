"""Farm operations engine: plans, job logs, approvals and per-acre payroll."""

__version__ = "0.1.0"
