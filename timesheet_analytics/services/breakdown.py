from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..models import (
    TaskBreakdownItem,
    TaskMemberItem,
    TeamBreakdownItem,
    TeamTaskItem,
    TimeRecord,
)
from .financial import NO_TASK, PostedHours
from .weekly import split_hours

UNKNOWN_TASK = "Unknown Task"


class _Tally:
    __slots__ = ("label", "hours", "approved", "pending", "children")

    def __init__(self, label: str) -> None:
        self.label = label
        self.hours = 0.0
        self.approved = 0.0
        self.pending = 0.0
        self.children: Dict[str, "_Tally"] = {}

    def add(self, record: TimeRecord) -> None:
        approved, pending = split_hours(record)
        self.hours += record.hours
        self.approved += approved
        self.pending += pending

    def child(self, key: str, label: str) -> "_Tally":
        tally = self.children.get(key)
        if tally is None:
            tally = self.children[key] = _Tally(label)
        return tally


def _by_hours(items: Iterable[Tuple[str, _Tally]]) -> List[Tuple[str, _Tally]]:
    # sorted() is stable, so equal hours keep first-seen order
    return sorted(items, key=lambda item: item[1].hours, reverse=True)


def reduce_breakdowns(
    records: Iterable[TimeRecord],
    *,
    unit_price_by_resource: Optional[Mapping[str, float]] = None,
    unit_price_by_task: Optional[Mapping[str, float]] = None,
    posted: Optional[PostedHours] = None,
) -> Tuple[List[TaskBreakdownItem], List[TeamBreakdownItem]]:
    """Group records by task and by team member in one pass.

    Each task lists its team members and each member lists their tasks; every
    list is sorted by hours descending.
    """
    resource_prices = unit_price_by_resource or {}
    task_prices = unit_price_by_task or {}
    posted = posted or PostedHours({}, {}, {})

    tasks: Dict[str, _Tally] = {}
    team: Dict[str, _Tally] = {}
    for record in records:
        task_key = record.task_code or NO_TASK
        description = record.description or UNKNOWN_TASK

        task = tasks.get(task_key)
        if task is None:
            task = tasks[task_key] = _Tally(description)
        task.add(record)
        task.child(record.resource_id, record.resource_name).add(record)

        member = team.get(record.resource_id)
        if member is None:
            member = team[record.resource_id] = _Tally(record.resource_name)
        member.add(record)
        member.child(task_key, description).add(record)

    task_items = [
        TaskBreakdownItem(
            task_code=task_key,
            description=task.label,
            hours=task.hours,
            approved_hours=task.approved,
            pending_hours=task.pending,
            posted_hours=posted.by_task.get(task_key, 0.0),
            unit_price=task_prices.get(task_key),
            team_members=[
                TaskMemberItem(
                    resource_id=resource_id,
                    name=member.label,
                    hours=member.hours,
                    approved_hours=member.approved,
                    pending_hours=member.pending,
                    posted_hours=posted.by_task_resource.get((task_key, resource_id), 0.0),
                    unit_price=resource_prices.get(resource_id),
                )
                for resource_id, member in _by_hours(task.children.items())
            ],
        )
        for task_key, task in _by_hours(tasks.items())
    ]

    team_items = [
        TeamBreakdownItem(
            resource_id=resource_id,
            name=member.label,
            hours=member.hours,
            approved_hours=member.approved,
            pending_hours=member.pending,
            posted_hours=posted.by_resource.get(resource_id, 0.0),
            unit_price=resource_prices.get(resource_id),
            tasks=[
                TeamTaskItem(
                    task_code=task_key,
                    description=task.label,
                    hours=task.hours,
                    approved_hours=task.approved,
                    pending_hours=task.pending,
                    posted_hours=posted.by_task_resource.get((task_key, resource_id), 0.0),
                )
                for task_key, task in _by_hours(member.children.items())
            ],
        )
        for resource_id, member in _by_hours(team.items())
    ]
    return task_items, team_items


def by_task(records: Iterable[TimeRecord], **pricing) -> List[TaskBreakdownItem]:
    return reduce_breakdowns(records, **pricing)[0]


def by_team_member(records: Iterable[TimeRecord], **pricing) -> List[TeamBreakdownItem]:
    return reduce_breakdowns(records, **pricing)[1]
