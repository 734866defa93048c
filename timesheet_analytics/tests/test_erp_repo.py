from __future__ import annotations

import asyncio
from datetime import date

import httpx
import pytest

from timesheet_analytics.models import LineIntent
from timesheet_analytics.repos.erp_repo import ErpRepo, ErpRequestError

STANDARD = "https://erp.test/sandbox/api/v2.0/companies(c1)"
EXTENSION = "https://erp.test/sandbox/api/knowall/thyme/v1.0/companies(c1)"


def _run(handler, call, *, authorized=True):
    seen = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(_handler)) as http:
            repo = ErpRepo(http, standard_url=STANDARD, extension_url=EXTENSION, authorized=authorized)
            return await call(repo)

    return asyncio.run(_go()), seen


def test_probe_reports_extension_presence():
    ok, seen = _run(lambda request: httpx.Response(200, json={"value": []}), lambda repo: repo.probe_capability())
    assert ok is True
    assert seen[0].url.path.endswith("/projects")
    assert seen[0].url.params["$top"] == "1"

    missing, _ = _run(lambda request: httpx.Response(404), lambda repo: repo.probe_capability())
    assert missing is False


def test_probe_without_token_makes_no_request():
    result, seen = _run(lambda request: httpx.Response(200), lambda repo: repo.probe_capability(), authorized=False)
    assert result is False
    assert seen == []


def test_list_resources_follows_next_link():
    def handler(request):
        if "$skiptoken" in request.url.params:
            return httpx.Response(200, json={"value": [{"number": "R2", "displayName": "Brian", "unitPrice": 0}]})
        return httpx.Response(
            200,
            json={
                "value": [{"number": "R1", "displayName": "Ada", "unitPrice": 120}, {"displayName": "no number"}],
                "@odata.nextLink": f"{STANDARD}/resources?$skiptoken=R1",
            },
        )

    resources, seen = _run(handler, lambda repo: repo.list_resources())
    assert [(r.id, r.name, r.unit_price) for r in resources] == [("R1", "Ada", 120.0), ("R2", "Brian", None)]
    assert seen[0].url.params["$filter"] == "type eq 'Person'"
    assert len(seen) == 2


def test_list_timesheets_filters_by_resource_and_date():
    rows = {"value": [{"number": "TS1", "startingDate": "2024-05-06"}, {"number": "TS2", "startingDate": None}]}
    timesheets, seen = _run(
        lambda request: httpx.Response(200, json=rows),
        lambda repo: repo.list_timesheets("O'BRIEN", date(2024, 1, 1)),
    )
    assert [(t.id, t.starting_date) for t in timesheets] == [("TS1", date(2024, 5, 6))]
    assert seen[0].url.path.endswith("/timeSheets")
    assert seen[0].url.params["$filter"] == "resourceNo eq 'O''BRIEN' and startingDate ge 2024-01-01"


def test_list_timesheet_lines_maps_fields():
    rows = {
        "value": [
            {
                "lineNo": 10000,
                "type": "Job",
                "jobNo": "PR001",
                "jobTaskNo": "T100",
                "description": "Build",
                "totalQuantity": "7.5",
                "status": "Submitted",
            },
            {"lineNo": 20000, "type": "Absence", "status": "Weird"},
        ]
    }
    lines, _ = _run(lambda request: httpx.Response(200, json=rows), lambda repo: repo.list_timesheet_lines("TS1"))
    assert lines[0].line_id == "10000"
    assert lines[0].is_project_work
    assert lines[0].total_quantity == 7.5
    assert lines[0].approval_state == "Submitted"
    assert not lines[1].is_project_work
    assert lines[1].approval_state == "Open"


def test_list_daily_details():
    rows = {"value": [{"date": "2024-05-06", "quantity": 4}, {"date": "bad", "quantity": 1}]}
    details, seen = _run(
        lambda request: httpx.Response(200, json=rows),
        lambda repo: repo.list_daily_details("TS1", "10000"),
    )
    assert [(d.work_date, d.quantity) for d in details] == [(date(2024, 5, 6), 4.0)]
    assert seen[0].url.params["$filter"] == "timeSheetNo eq 'TS1' and timeSheetLineNo eq 10000"


def test_list_planning_lines_maps_categories_and_intent():
    rows = {
        "value": [
            {"type": "Resource", "lineType": "Both_x0020_Budget_x0020_and_x0020_Billable", "number": "R1",
             "quantity": 8, "unitPrice": 100, "totalCost": 400, "totalPrice": 800, "jobTaskNo": "T1"},
            {"type": "Item", "lineType": "Billable", "number": "ITEM-7", "totalPrice": 50},
            {"type": "G/L Account", "lineType": "Budget", "totalCost": 25},
            {"type": "Text", "lineType": "Budget"},
        ]
    }
    lines, _ = _run(lambda request: httpx.Response(200, json=rows), lambda repo: repo.list_planning_lines("PR001"))
    assert [line.category for line in lines] == ["labor", "material", "overhead"]
    assert lines[0].intent == LineIntent(budget=True, billable=True)
    assert lines[0].resource_id == "R1"
    assert lines[1].resource_id is None
    assert lines[2].intent == LineIntent(budget=True)


def test_list_posted_entries():
    rows = {"value": [{"resourceNo": "R1", "jobTaskNo": "T1", "quantity": 3, "totalCost": 150, "totalPrice": 240}]}
    entries, seen = _run(lambda request: httpx.Response(200, json=rows), lambda repo: repo.list_posted_entries("PR001"))
    assert entries[0].quantity == 3.0
    assert entries[0].total_price == 240.0
    assert seen[0].url.path.endswith("/timeEntries")


def test_error_status_raises():
    with pytest.raises(ErpRequestError) as excinfo:
        _run(lambda request: httpx.Response(500, text="boom"), lambda repo: repo.list_timesheet_lines("TS1"))
    assert excinfo.value.status_code == 500
