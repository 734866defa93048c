from .analytics import (
    BillingMode,
    BillingModeResponse,
    CostBreakdown,
    ExtensionStatus,
    ProjectAnalytics,
    TaskBreakdownItem,
    TaskMemberItem,
    TeamBreakdownItem,
    TeamTaskItem,
    TimeRecord,
    WeeklyBucket,
)
from .erp import (
    ApprovalState,
    CostCategory,
    DailyDetail,
    LedgerEntry,
    LineIntent,
    PlanningLine,
    Resource,
    Timesheet,
    TimesheetLine,
)

__all__ = [
    "ApprovalState",
    "BillingMode",
    "BillingModeResponse",
    "CostBreakdown",
    "CostCategory",
    "DailyDetail",
    "ExtensionStatus",
    "LedgerEntry",
    "LineIntent",
    "PlanningLine",
    "ProjectAnalytics",
    "Resource",
    "TaskBreakdownItem",
    "TaskMemberItem",
    "TeamBreakdownItem",
    "TeamTaskItem",
    "TimeRecord",
    "Timesheet",
    "TimesheetLine",
    "WeeklyBucket",
]
