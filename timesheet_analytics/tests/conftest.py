from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pytest

from timesheet_analytics.models import (
    DailyDetail,
    LedgerEntry,
    PlanningLine,
    Resource,
    Timesheet,
    TimesheetLine,
)
from timesheet_analytics.services.analytics import clear_analytics_cache


class FakeErpRepo:
    """In-memory stand-in for ErpRepo that records every call it receives."""

    def __init__(
        self,
        *,
        available: bool = True,
        resources: Sequence[Resource] = (),
        timesheets: Optional[Dict[str, List[Timesheet]]] = None,
        lines: Optional[Dict[str, List[TimesheetLine]]] = None,
        details: Optional[Dict[Tuple[str, str], List[DailyDetail]]] = None,
        planning_lines: Sequence[PlanningLine] = (),
        posted_entries: Sequence[LedgerEntry] = (),
        failures: Iterable[Tuple[str, object]] = (),
    ) -> None:
        self.available = available
        self.resources = list(resources)
        self.timesheets = timesheets or {}
        self.lines = lines or {}
        self.details = details or {}
        self.planning_lines = list(planning_lines)
        self.posted_entries = list(posted_entries)
        self.failures: Set[Tuple[str, object]] = set(failures)
        self.calls: List[Tuple[str, object]] = []

    def _record(self, operation: str, key: object = None) -> None:
        self.calls.append((operation, key))
        if (operation, key) in self.failures:
            raise RuntimeError(f"{operation} failed for {key}")

    def calls_to(self, operation: str) -> List[object]:
        return [key for name, key in self.calls if name == operation]

    async def probe_capability(self) -> bool:
        self._record("probe_capability")
        return self.available

    async def list_resources(self) -> List[Resource]:
        self._record("list_resources")
        return list(self.resources)

    async def list_timesheets(self, resource_id: str, since: date) -> List[Timesheet]:
        self._record("list_timesheets", resource_id)
        return list(self.timesheets.get(resource_id, []))

    async def list_timesheet_lines(self, timesheet_id: str) -> List[TimesheetLine]:
        self._record("list_timesheet_lines", timesheet_id)
        return list(self.lines.get(timesheet_id, []))

    async def list_daily_details(self, timesheet_id: str, line_id: str) -> List[DailyDetail]:
        self._record("list_daily_details", (timesheet_id, line_id))
        return list(self.details.get((timesheet_id, line_id), []))

    async def list_planning_lines(self, project_code: str) -> List[PlanningLine]:
        self._record("list_planning_lines", project_code)
        return list(self.planning_lines)

    async def list_posted_entries(self, project_code: str) -> List[LedgerEntry]:
        self._record("list_posted_entries", project_code)
        return list(self.posted_entries)


def project_line(line_id: str, hours: float, *, task: str = "T100", state: str = "Approved",
                 project: str = "PR001", description: str = "Build") -> TimesheetLine:
    return TimesheetLine(
        line_id=line_id,
        category="Job",
        project_code=project,
        task_code=task,
        description=description,
        total_quantity=hours,
        approval_state=state,
    )


def build_team_repo(**overrides) -> FakeErpRepo:
    """Three resources with one recent timesheet each on project PR001."""
    data = dict(
        resources=[
            Resource(id="R1", name="Ada", unit_price=120.0),
            Resource(id="R2", name="Brian"),
            Resource(id="R3", name="Chen"),
        ],
        timesheets={
            "R1": [Timesheet(id="TS1", starting_date=date(2024, 5, 6))],
            "R2": [Timesheet(id="TS2", starting_date=date(2024, 5, 6))],
            "R3": [Timesheet(id="TS3", starting_date=date(2024, 5, 13))],
        },
        lines={
            "TS1": [project_line("10000", 8.0), project_line("20000", 2.0, task="T200", state="Open")],
            "TS2": [project_line("10000", 4.0, state="Submitted")],
            "TS3": [project_line("10000", 6.0, state="Rejected")],
        },
        details={
            ("TS1", "10000"): [
                DailyDetail(work_date=date(2024, 5, 6), quantity=5.0),
                DailyDetail(work_date=date(2024, 5, 7), quantity=3.0),
            ],
            ("TS1", "20000"): [DailyDetail(work_date=date(2024, 5, 8), quantity=2.0)],
            ("TS2", "10000"): [DailyDetail(work_date=date(2024, 5, 9), quantity=4.0)],
            ("TS3", "10000"): [
                DailyDetail(work_date=date(2024, 5, 13), quantity=6.0),
                DailyDetail(work_date=date(2024, 5, 14), quantity=0.0),
            ],
        },
    )
    data.update(overrides)
    return FakeErpRepo(**data)


@pytest.fixture(autouse=True)
def _fresh_analytics_cache():
    clear_analytics_cache()
    yield
    clear_analytics_cache()


@pytest.fixture
def team_repo() -> FakeErpRepo:
    return build_team_repo()


@pytest.fixture
def repo_factory():
    return build_team_repo


@pytest.fixture
def line_factory():
    return project_line
