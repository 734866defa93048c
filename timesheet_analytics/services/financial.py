from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, NamedTuple, Sequence, Tuple

from ..models import BillingMode, CostBreakdown, LedgerEntry, PlanningLine, Resource

NO_TASK = "no-task"


class BudgetSummary(NamedTuple):
    hours_planned: float
    budget: CostBreakdown
    billable: CostBreakdown


class PostedSummary(NamedTuple):
    hours_posted: float
    actual: CostBreakdown
    invoiced: CostBreakdown


class UnpostedEstimate(NamedTuple):
    hours: float
    cost: float
    billable: float


def _breakdown(amounts: Dict[str, float]) -> CostBreakdown:
    return CostBreakdown(
        labor=amounts.get("labor", 0.0),
        material=amounts.get("material", 0.0),
        overhead=amounts.get("overhead", 0.0),
    )


def compute_budget(planning_lines: Iterable[PlanningLine]) -> BudgetSummary:
    """Sum planning lines into planned hours plus budget and billable breakdowns.

    A line whose intent is both budget and billable contributes to both
    breakdowns. Only labor lines carry hours.
    """
    hours_planned = 0.0
    budget: Dict[str, float] = defaultdict(float)
    billable: Dict[str, float] = defaultdict(float)
    for line in planning_lines:
        if line.intent.budget:
            budget[line.category] += line.total_cost
            if line.category == "labor":
                hours_planned += line.quantity
        if line.intent.billable:
            billable[line.category] += line.total_price
    return BudgetSummary(hours_planned, _breakdown(budget), _breakdown(billable))


def compute_posted(entries: Iterable[LedgerEntry]) -> PostedSummary:
    # Posted time entries are labor by construction.
    hours_posted = 0.0
    cost = 0.0
    price = 0.0
    for entry in entries:
        hours_posted += entry.quantity
        cost += entry.total_cost
        price += entry.total_price
    return PostedSummary(hours_posted, CostBreakdown(labor=cost), CostBreakdown(labor=price))


def estimate_unposted(hours_spent: float, budget: BudgetSummary, posted: PostedSummary) -> UnpostedEstimate:
    """Price hours that are in timesheets but not yet in the ledger.

    Posted average rates are preferred; otherwise the labor budget rate; with
    neither, the estimate is zero.
    """
    hours_unposted = max(0.0, hours_spent - posted.hours_posted)
    if hours_unposted <= 0:
        return UnpostedEstimate(hours_unposted, 0.0, 0.0)
    if posted.hours_posted > 0:
        cost_rate = posted.actual.total / posted.hours_posted
        price_rate = posted.invoiced.total / posted.hours_posted
    elif budget.hours_planned > 0:
        cost_rate = budget.budget.labor / budget.hours_planned
        price_rate = budget.billable.labor / budget.hours_planned
    else:
        return UnpostedEstimate(hours_unposted, 0.0, 0.0)
    return UnpostedEstimate(hours_unposted, hours_unposted * cost_rate, hours_unposted * price_rate)


def classify_billing_mode(billable: CostBreakdown) -> BillingMode:
    has_labor = billable.labor > 0
    positive = sum(1 for amount in (billable.labor, billable.material, billable.overhead) if amount > 0)
    if positive == 0:
        return "Not Set"
    if positive > 1:
        return "Mixed"
    return "T&M" if has_labor else "Fixed Price"


def unit_price_maps(
    resources: Sequence[Resource],
    planning_lines: Sequence[PlanningLine],
) -> Tuple[Dict[str, float], Dict[str, float]]:
    """Return ``(by_resource, by_task)`` unit prices.

    Resource records win. Planning lines fill the gaps in fetch order: the first
    labor line with a positive unit price sets a resource's rate, and the first
    labor line of a task sets that task's rate.
    """
    by_resource: Dict[str, float] = {
        resource.id: resource.unit_price
        for resource in resources
        if resource.unit_price is not None and resource.unit_price > 0
    }
    by_task: Dict[str, float] = {}
    for line in planning_lines:
        if line.category != "labor":
            continue
        if line.resource_id and line.resource_id not in by_resource and line.unit_price > 0:
            by_resource[line.resource_id] = line.unit_price
        if line.task_code and line.task_code not in by_task:
            by_task[line.task_code] = line.unit_price
    return by_resource, by_task


class PostedHours(NamedTuple):
    by_task: Dict[str, float]
    by_resource: Dict[str, float]
    by_task_resource: Dict[Tuple[str, str], float]


def posted_hours(entries: Iterable[LedgerEntry]) -> PostedHours:
    by_task: Dict[str, float] = defaultdict(float)
    by_resource: Dict[str, float] = defaultdict(float)
    by_task_resource: Dict[Tuple[str, str], float] = defaultdict(float)
    for entry in entries:
        task = entry.task_code or NO_TASK
        by_task[task] += entry.quantity
        by_resource[entry.resource_id] += entry.quantity
        by_task_resource[(task, entry.resource_id)] += entry.quantity
    return PostedHours(dict(by_task), dict(by_resource), dict(by_task_resource))
