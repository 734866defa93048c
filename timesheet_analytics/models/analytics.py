from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from .erp import ApprovalState

BillingMode = Literal["Not Set", "T&M", "Fixed Price", "Mixed"]


class AnalyticsModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class TimeRecord(AnalyticsModel):
    resource_id: str
    resource_name: str
    task_code: str = ""
    description: str = ""
    hours: float = Field(ge=0)
    work_date: date = Field(alias="date")
    iso_week: str
    approval_state: ApprovalState


class WeeklyBucket(AnalyticsModel):
    iso_week: str = Field(alias="week")
    total_hours: float = Field(default=0.0, alias="hours")
    approved_hours: float = 0.0
    pending_hours: float = 0.0
    cumulative_hours: float = Field(default=0.0, alias="cumulative")


class CostBreakdown(AnalyticsModel):
    labor: float = 0.0
    material: float = 0.0
    overhead: float = 0.0

    @computed_field
    @property
    def total(self) -> float:
        return self.labor + self.material + self.overhead


class TaskMemberItem(AnalyticsModel):
    resource_id: str
    name: str
    hours: float = 0.0
    approved_hours: float = 0.0
    pending_hours: float = 0.0
    posted_hours: float = 0.0
    unit_price: Optional[float] = None


class TaskBreakdownItem(AnalyticsModel):
    task_code: str
    description: str
    hours: float = 0.0
    approved_hours: float = 0.0
    pending_hours: float = 0.0
    posted_hours: float = 0.0
    unit_price: Optional[float] = None
    team_members: List[TaskMemberItem] = Field(default_factory=list)


class TeamTaskItem(AnalyticsModel):
    task_code: str
    description: str
    hours: float = 0.0
    approved_hours: float = 0.0
    pending_hours: float = 0.0
    posted_hours: float = 0.0


class TeamBreakdownItem(AnalyticsModel):
    resource_id: str
    name: str
    hours: float = 0.0
    approved_hours: float = 0.0
    pending_hours: float = 0.0
    posted_hours: float = 0.0
    unit_price: Optional[float] = None
    tasks: List[TeamTaskItem] = Field(default_factory=list)


class ProjectAnalytics(AnalyticsModel):
    project_code: str
    billing_mode: BillingMode = "Not Set"

    hours_spent: float = 0.0
    hours_planned: float = 0.0
    hours_this_week: float = 0.0
    hours_posted: float = 0.0
    hours_unposted: float = 0.0

    budget_cost_breakdown: CostBreakdown = Field(default_factory=CostBreakdown)
    actual_cost_breakdown: CostBreakdown = Field(default_factory=CostBreakdown)
    unposted_cost: float = 0.0

    billable_price_breakdown: CostBreakdown = Field(default_factory=CostBreakdown)
    invoiced_price_breakdown: CostBreakdown = Field(default_factory=CostBreakdown)
    unposted_billable: float = 0.0

    team_member_count: int = 0
    weekly_data: List[WeeklyBucket] = Field(default_factory=list)
    task_breakdown: List[TaskBreakdownItem] = Field(default_factory=list)
    team_breakdown: List[TeamBreakdownItem] = Field(default_factory=list)
    generated_at: Optional[datetime] = None

    @computed_field
    @property
    def budget_cost(self) -> float:
        return self.budget_cost_breakdown.total

    @computed_field
    @property
    def actual_cost(self) -> float:
        return self.actual_cost_breakdown.total

    @computed_field
    @property
    def billable_price(self) -> float:
        return self.billable_price_breakdown.total

    @computed_field
    @property
    def invoiced_price(self) -> float:
        return self.invoiced_price_breakdown.total

    # Aliases kept for report consumers written against the older field names.
    @computed_field
    @property
    def total_hours(self) -> float:
        return self.hours_spent

    @computed_field
    @property
    def billable_hours(self) -> float:
        return self.hours_spent

    @computed_field
    @property
    def non_billable_hours(self) -> float:
        return 0.0

    @computed_field
    @property
    def budget_hours(self) -> float:
        return self.hours_planned

    @classmethod
    def empty(cls, project_code: str, generated_at: Optional[datetime] = None) -> "ProjectAnalytics":
        return cls(project_code=project_code, generated_at=generated_at)


class BillingModeResponse(AnalyticsModel):
    project_code: str
    billing_mode: BillingMode


class ExtensionStatus(AnalyticsModel):
    installed: bool
