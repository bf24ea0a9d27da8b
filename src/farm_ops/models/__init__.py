"""ORM models."""

from farm_ops.models.base import Base, TimestampMixin
from farm_ops.models.farm import Farm, FarmMembership, Plot, Team, TeamMembership, Worker
from farm_ops.models.payroll import Adjustment, PayPeriod, PayrollLine, Rate, RateCard
from farm_ops.models.planning import Job, JobLog, JobType, Plan

__all__ = [
    "Adjustment",
    "Base",
    "Farm",
    "FarmMembership",
    "Job",
    "JobLog",
    "JobType",
    "PayPeriod",
    "PayrollLine",
    "Plan",
    "Plot",
    "Rate",
    "RateCard",
    "Team",
    "TeamMembership",
    "TimestampMixin",
    "Worker",
]
