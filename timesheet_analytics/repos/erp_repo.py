from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import settings
from ..models import (
    DailyDetail,
    LedgerEntry,
    LineIntent,
    PlanningLine,
    Resource,
    Timesheet,
    TimesheetLine,
)
from ..models.erp import PLANNING_CATEGORY_BY_TYPE

logger = logging.getLogger(__name__)

APPROVAL_STATES = {"Open", "Submitted", "Rejected", "Approved"}


class ErpRequestError(RuntimeError):
    def __init__(self, url: str, status_code: int, detail: str = "") -> None:
        super().__init__(f"ERP API error ({status_code}) for {url}: {detail[:200]}")
        self.url = url
        self.status_code = status_code


def _quote(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


class ErpRepo:
    """Read access to the ERP's standard API and the timesheet extension API."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        standard_url: Optional[str] = None,
        extension_url: Optional[str] = None,
        authorized: Optional[bool] = None,
    ) -> None:
        self._http = http
        self._standard_url = (standard_url or settings.standard_api_url).rstrip("/")
        self._extension_url = (extension_url or settings.extension_api_url).rstrip("/")
        self._authorized = bool(settings.erp_access_token) if authorized is None else authorized

    async def _get_values(self, url: str, params: Optional[Dict[str, str]] = None) -> List[dict]:
        rows: List[dict] = []
        next_url: Optional[str] = url
        next_params = params
        while next_url:
            response = await self._http.get(next_url, params=next_params)
            if not response.is_success:
                raise ErpRequestError(next_url, response.status_code, response.text)
            payload = response.json()
            rows.extend(payload.get("value") or [])
            # nextLink already carries the query string
            next_url = payload.get("@odata.nextLink")
            next_params = None
        return rows

    # Row mappers

    @staticmethod
    def _resources_from_rows(rows: Iterable[dict]) -> List[Resource]:
        resources: List[Resource] = []
        for row in rows:
            number = row.get("number")
            if not number:
                continue
            unit_price = _to_float(row.get("unitPrice"))
            resources.append(
                Resource(
                    id=number,
                    name=row.get("displayName") or row.get("name") or number,
                    unit_price=unit_price if unit_price > 0 else None,
                )
            )
        return resources

    @staticmethod
    def _timesheets_from_rows(rows: Iterable[dict]) -> List[Timesheet]:
        timesheets: List[Timesheet] = []
        for row in rows:
            starting = _to_date(row.get("startingDate"))
            if not row.get("number") or starting is None:
                continue
            timesheets.append(Timesheet(id=row["number"], starting_date=starting))
        return timesheets

    @staticmethod
    def _lines_from_rows(rows: Iterable[dict]) -> List[TimesheetLine]:
        lines: List[TimesheetLine] = []
        for row in rows:
            status = row.get("status")
            lines.append(
                TimesheetLine(
                    line_id=str(row.get("lineNo", "")),
                    category=row.get("type") or "",
                    project_code=row.get("jobNo") or None,
                    task_code=row.get("jobTaskNo") or "",
                    description=row.get("description") or "",
                    total_quantity=_to_float(row.get("totalQuantity")),
                    approval_state=status if status in APPROVAL_STATES else "Open",
                )
            )
        return lines

    @staticmethod
    def _details_from_rows(rows: Iterable[dict]) -> List[DailyDetail]:
        details: List[DailyDetail] = []
        for row in rows:
            work_date = _to_date(row.get("date"))
            if work_date is None:
                continue
            details.append(DailyDetail(work_date=work_date, quantity=_to_float(row.get("quantity"))))
        return details

    @staticmethod
    def _planning_lines_from_rows(rows: Iterable[dict]) -> List[PlanningLine]:
        lines: List[PlanningLine] = []
        for row in rows:
            category = PLANNING_CATEGORY_BY_TYPE.get(row.get("type") or "")
            if category is None:
                # Text lines carry no amounts
                continue
            lines.append(
                PlanningLine(
                    category=category,
                    intent=LineIntent.from_line_type(row.get("lineType")),
                    quantity=_to_float(row.get("quantity")),
                    unit_cost=_to_float(row.get("unitCost")),
                    total_cost=_to_float(row.get("totalCost")),
                    unit_price=_to_float(row.get("unitPrice")),
                    total_price=_to_float(row.get("totalPrice")),
                    task_code=row.get("jobTaskNo") or "",
                    resource_id=(row.get("number") or None) if category == "labor" else None,
                )
            )
        return lines

    @staticmethod
    def _ledger_entries_from_rows(rows: Iterable[dict]) -> List[LedgerEntry]:
        return [
            LedgerEntry(
                resource_id=row.get("resourceNo") or "",
                task_code=row.get("jobTaskNo") or "",
                quantity=_to_float(row.get("quantity")),
                total_cost=_to_float(row.get("totalCost")),
                total_price=_to_float(row.get("totalPrice")),
            )
            for row in rows
        ]

    # Collaborator operations

    async def probe_capability(self) -> bool:
        if not self._authorized:
            return False
        response = await self._http.get(f"{self._extension_url}/projects", params={"$top": "1"})
        return response.is_success

    async def list_resources(self) -> List[Resource]:
        rows = await self._get_values(
            f"{self._standard_url}/resources",
            {"$filter": "type eq 'Person'"},
        )
        return self._resources_from_rows(rows)

    async def list_timesheets(self, resource_id: str, since: date) -> List[Timesheet]:
        rows = await self._get_values(
            f"{self._extension_url}/timeSheets",
            {"$filter": f"resourceNo eq {_quote(resource_id)} and startingDate ge {since.isoformat()}"},
        )
        return self._timesheets_from_rows(rows)

    async def list_timesheet_lines(self, timesheet_id: str) -> List[TimesheetLine]:
        rows = await self._get_values(
            f"{self._extension_url}/timeSheetLines",
            {"$filter": f"timeSheetNo eq {_quote(timesheet_id)}"},
        )
        return self._lines_from_rows(rows)

    async def list_daily_details(self, timesheet_id: str, line_id: str) -> List[DailyDetail]:
        rows = await self._get_values(
            f"{self._extension_url}/timeSheetDetails",
            {"$filter": f"timeSheetNo eq {_quote(timesheet_id)} and timeSheetLineNo eq {line_id}"},
        )
        return self._details_from_rows(rows)

    async def list_planning_lines(self, project_code: str) -> List[PlanningLine]:
        rows = await self._get_values(
            f"{self._extension_url}/jobPlanningLines",
            {"$filter": f"jobNo eq {_quote(project_code)}"},
        )
        return self._planning_lines_from_rows(rows)

    async def list_posted_entries(self, project_code: str) -> List[LedgerEntry]:
        rows = await self._get_values(
            f"{self._extension_url}/timeEntries",
            {"$filter": f"jobNo eq {_quote(project_code)}"},
        )
        return self._ledger_entries_from_rows(rows)
