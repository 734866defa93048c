from __future__ import annotations

import asyncio
import calendar
import logging
import time
from datetime import date, datetime, timezone
from typing import Dict, Optional, Tuple

from fastapi import HTTPException, status

from ..config import settings
from ..models import BillingMode, ProjectAnalytics
from ..repos.erp_repo import ErpRepo
from .breakdown import reduce_breakdowns
from .capability import CapabilityGate
from .collector import RecordCollector, attempt, enumerate_resources
from .financial import (
    classify_billing_mode,
    compute_budget,
    compute_posted,
    estimate_unposted,
    posted_hours,
    unit_price_maps,
)
from .weekly import aggregate_weekly, hours_in_week, iso_week, total_hours

logger = logging.getLogger(__name__)

_analytics_cache: Dict[str, Tuple[float, ProjectAnalytics]] = {}


def clear_analytics_cache() -> None:
    _analytics_cache.clear()


def _cache_get(key: str) -> Optional[ProjectAnalytics]:
    entry = _analytics_cache.get(key)
    if not entry:
        return None
    ts, payload = entry
    if time.time() - ts > settings.analytics_cache_ttl_seconds:
        _analytics_cache.pop(key, None)
        return None
    return payload


def _cache_set(key: str, payload: ProjectAnalytics) -> None:
    _analytics_cache[key] = (time.time(), payload)


def _ensure_feature_enabled() -> None:
    if not settings.feature_project_analytics:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Project analytics is disabled")


def months_before(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


class AnalyticsAssembler:
    def __init__(
        self,
        repo: ErpRepo,
        gate: CapabilityGate,
        *,
        today: Optional[date] = None,
        lookback_months: Optional[int] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self._repo = repo
        self._gate = gate
        self._today = today
        self._lookback_months = settings.analytics_lookback_months if lookback_months is None else lookback_months
        self._max_concurrency = max_concurrency or settings.max_concurrent_requests

    async def assemble(self, project_code: str) -> ProjectAnalytics:
        generated_at = datetime.now(timezone.utc)
        today = self._today or generated_at.date()

        if not await self._gate.is_available():
            return ProjectAnalytics.empty(project_code, generated_at=generated_at)

        resources = await enumerate_resources(self._repo)
        since = months_before(today, self._lookback_months)
        collector = RecordCollector(self._repo, self._gate, max_concurrency=self._max_concurrency)

        records, planning_lines, ledger_entries = await asyncio.gather(
            collector.collect(project_code, resources, since),
            attempt(
                lambda: self._repo.list_planning_lines(project_code),
                "planning lines of project %s",
                project_code,
            ),
            attempt(
                lambda: self._repo.list_posted_entries(project_code),
                "posted entries of project %s",
                project_code,
            ),
        )

        hours_spent = total_hours(records)
        budget = compute_budget(planning_lines)
        posted = compute_posted(ledger_entries)
        unposted = estimate_unposted(hours_spent, budget, posted)

        price_by_resource, price_by_task = unit_price_maps(resources, planning_lines)
        task_breakdown, team_breakdown = reduce_breakdowns(
            records,
            unit_price_by_resource=price_by_resource,
            unit_price_by_task=price_by_task,
            posted=posted_hours(ledger_entries),
        )

        logger.debug(
            "Assembled analytics for %s: %s records from %s resources since %s",
            project_code,
            len(records),
            len(resources),
            since,
        )
        return ProjectAnalytics(
            project_code=project_code,
            billing_mode=classify_billing_mode(budget.billable),
            hours_spent=hours_spent,
            hours_planned=budget.hours_planned,
            hours_this_week=hours_in_week(records, iso_week(today)),
            hours_posted=posted.hours_posted,
            hours_unposted=unposted.hours,
            budget_cost_breakdown=budget.budget,
            actual_cost_breakdown=posted.actual,
            unposted_cost=unposted.cost,
            billable_price_breakdown=budget.billable,
            invoiced_price_breakdown=posted.invoiced,
            unposted_billable=unposted.billable,
            team_member_count=len(collector.contributors),
            weekly_data=aggregate_weekly(records),
            task_breakdown=task_breakdown,
            team_breakdown=team_breakdown,
            generated_at=generated_at,
        )


async def fetch_project_analytics(project_code: str, repo: ErpRepo, gate: CapabilityGate) -> ProjectAnalytics:
    _ensure_feature_enabled()
    cached = _cache_get(project_code)
    if cached is not None:
        return cached
    analytics = await AnalyticsAssembler(repo, gate).assemble(project_code)
    _cache_set(project_code, analytics)
    return analytics


def get_project_analytics(project_code: str) -> ProjectAnalytics:
    """Blocking entry point for scripts; builds its own ERP client."""
    from .. import erp

    async def _run() -> ProjectAnalytics:
        async with erp.session() as repo:
            return await fetch_project_analytics(project_code, repo, erp.get_gate())

    return asyncio.run(_run())


async def fetch_billing_mode(project_code: str, repo: ErpRepo, gate: CapabilityGate) -> BillingMode:
    """Billing mode from planning lines alone, for project lists."""
    if not await gate.is_available():
        return "Not Set"
    try:
        planning_lines = await repo.list_planning_lines(project_code)
    except Exception as exc:
        logger.warning("Billing mode unavailable for project %s: %s", project_code, exc)
        return "Not Set"
    return classify_billing_mode(compute_budget(planning_lines).billable)


def reset_capability(gate: CapabilityGate) -> None:
    gate.reset()
    clear_analytics_cache()
