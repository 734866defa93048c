from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

ApprovalState = Literal["Open", "Submitted", "Rejected", "Approved"]
CostCategory = Literal["labor", "material", "overhead"]

# Planning line "type" values as the ERP reports them.
PLANNING_CATEGORY_BY_TYPE = {
    "Resource": "labor",
    "Item": "material",
    "G/L Account": "overhead",
    "G_x002F_L_x0020_Account": "overhead",
}

PROJECT_WORK_LINE_TYPE = "Job"


class LineIntent(BaseModel):
    """Whether a planning line counts toward the budget, the billable plan, or both."""

    model_config = ConfigDict(frozen=True)

    budget: bool = False
    billable: bool = False

    @classmethod
    def from_line_type(cls, raw: Optional[str]) -> "LineIntent":
        value = (raw or "").replace("_x0020_", " ").strip().lower()
        if value == "budget":
            return cls(budget=True)
        if value == "billable":
            return cls(billable=True)
        if value == "both budget and billable":
            return cls(budget=True, billable=True)
        return cls()


class Resource(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    unit_price: Optional[float] = None


class Timesheet(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    starting_date: date


class TimesheetLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    line_id: str
    category: str
    project_code: Optional[str] = None
    task_code: str = ""
    description: str = ""
    total_quantity: float = 0.0
    approval_state: ApprovalState = "Open"

    @property
    def is_project_work(self) -> bool:
        return self.category == PROJECT_WORK_LINE_TYPE


class DailyDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    work_date: date
    quantity: float = 0.0


class PlanningLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: CostCategory
    intent: LineIntent
    quantity: float = 0.0
    unit_cost: float = 0.0
    total_cost: float = 0.0
    unit_price: float = 0.0
    total_price: float = 0.0
    task_code: str = ""
    resource_id: Optional[str] = None


class LedgerEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource_id: str
    task_code: str = ""
    quantity: float = 0.0
    total_cost: float = 0.0
    total_price: float = 0.0
