"""Farm operations services."""

from farm_ops.services.dashboard_service import DashboardKPIs, DashboardService, JobSummary
from farm_ops.services.export_service import ExportService
from farm_ops.services.farm_service import FarmService
from farm_ops.services.job_log_service import JobLogService
from farm_ops.services.payroll_service import PayrollRunResult, PayrollService
from farm_ops.services.planning_service import PlanningService
from farm_ops.services.rate_card_service import RateCardService
from farm_ops.services.roster_service import RosterService
from farm_ops.services.state_machine import JobLogStateMachine, JobLogStatus, JobStatus

__all__ = [
    "DashboardKPIs",
    "DashboardService",
    "JobSummary",
    "ExportService",
    "FarmService",
    "JobLogService",
    "PayrollRunResult",
    "PayrollService",
    "PlanningService",
    "RateCardService",
    "RosterService",
    "JobLogStateMachine",
    "JobLogStatus",
    "JobStatus",
]
