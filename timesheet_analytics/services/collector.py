from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable, Iterable, List, Sequence, Set, TypeVar

from ..models import DailyDetail, Resource, TimeRecord, Timesheet, TimesheetLine
from ..repos.erp_repo import ErpRepo
from .capability import CapabilityGate
from .weekly import iso_week

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResourceEnumerationError(RuntimeError):
    """The resource list could not be fetched, so no aggregate can be built."""


async def attempt(fetch: Callable[[], Awaitable[List[T]]], what: str, *args: object) -> List[T]:
    """Run one fetch node, turning any failure into an empty contribution."""
    try:
        return await fetch()
    except Exception as exc:
        logger.warning("Skipping %s: %s", what % args, exc)
        return []


def _flatten(batches: Iterable[List[T]]) -> List[T]:
    return [item for batch in batches for item in batch]


class RecordCollector:
    def __init__(self, repo: ErpRepo, gate: CapabilityGate, *, max_concurrency: int = 8) -> None:
        self._repo = repo
        self._gate = gate
        self._max_concurrency = max(1, max_concurrency)
        # resources with at least one positive project line in the last collect()
        self.contributors: Set[str] = set()

    async def collect(
        self,
        project_code: str,
        resources: Sequence[Resource],
        since: date,
    ) -> List[TimeRecord]:
        self.contributors = set()
        if not await self._gate.is_available():
            return []
        # Bounds concurrent fetches for this call only; held around a single
        # request, never while awaiting children.
        limiter = asyncio.Semaphore(self._max_concurrency)
        batches = await asyncio.gather(
            *(
                attempt(
                    lambda resource=resource: self._collect_resource(limiter, project_code, resource, since),
                    "timesheets for resource %s",
                    resource.id,
                )
                for resource in resources
            )
        )
        records = _flatten(batches)
        logger.debug("Collected %s time records for project %s", len(records), project_code)
        return records

    async def _limited(self, limiter: asyncio.Semaphore, fetch: Callable[[], Awaitable[List[T]]]) -> List[T]:
        async with limiter:
            return await fetch()

    async def _collect_resource(
        self,
        limiter: asyncio.Semaphore,
        project_code: str,
        resource: Resource,
        since: date,
    ) -> List[TimeRecord]:
        timesheets = await self._limited(limiter, lambda: self._repo.list_timesheets(resource.id, since))
        recent = [timesheet for timesheet in timesheets if timesheet.starting_date >= since]
        batches = await asyncio.gather(
            *(
                attempt(
                    lambda timesheet=timesheet: self._collect_timesheet(limiter, project_code, resource, timesheet),
                    "lines of timesheet %s",
                    timesheet.id,
                )
                for timesheet in recent
            )
        )
        return _flatten(batches)

    async def _collect_timesheet(
        self,
        limiter: asyncio.Semaphore,
        project_code: str,
        resource: Resource,
        timesheet: Timesheet,
    ) -> List[TimeRecord]:
        lines = await self._limited(limiter, lambda: self._repo.list_timesheet_lines(timesheet.id))
        project_lines = [
            line
            for line in lines
            if line.is_project_work and line.project_code == project_code and line.total_quantity > 0
        ]
        if project_lines:
            self.contributors.add(resource.id)
        batches = await asyncio.gather(
            *(
                attempt(
                    lambda line=line: self._collect_line(limiter, resource, timesheet, line),
                    "details of timesheet %s line %s",
                    timesheet.id,
                    line.line_id,
                )
                for line in project_lines
            )
        )
        return _flatten(batches)

    async def _collect_line(
        self,
        limiter: asyncio.Semaphore,
        resource: Resource,
        timesheet: Timesheet,
        line: TimesheetLine,
    ) -> List[TimeRecord]:
        details = await self._limited(
            limiter, lambda: self._repo.list_daily_details(timesheet.id, line.line_id)
        )
        return [self._to_record(resource, line, detail) for detail in details if detail.quantity > 0]

    @staticmethod
    def _to_record(resource: Resource, line: TimesheetLine, detail: DailyDetail) -> TimeRecord:
        return TimeRecord(
            resource_id=resource.id,
            resource_name=resource.name or resource.id,
            task_code=line.task_code,
            description=line.description,
            hours=detail.quantity,
            work_date=detail.work_date,
            iso_week=iso_week(detail.work_date),
            approval_state=line.approval_state,
        )


async def enumerate_resources(repo: ErpRepo) -> List[Resource]:
    try:
        return await repo.list_resources()
    except Exception as exc:
        raise ResourceEnumerationError(f"Unable to list resources: {exc}") from exc
