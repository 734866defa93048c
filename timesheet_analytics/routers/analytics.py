from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status

from ..erp import get_gate, get_repo
from ..models import BillingModeResponse, ExtensionStatus, ProjectAnalytics
from ..repos.erp_repo import ErpRepo
from ..services.analytics import fetch_billing_mode, fetch_project_analytics, reset_capability
from ..services.capability import CapabilityGate
from ..services.collector import ResourceEnumerationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["project-analytics"])


@router.get("/projects/{project_code}/analytics", response_model=ProjectAnalytics)
async def project_analytics(
    project_code: str = Path(..., min_length=1),
    repo: ErpRepo = Depends(get_repo),
    gate: CapabilityGate = Depends(get_gate),
) -> ProjectAnalytics:
    try:
        return await fetch_project_analytics(project_code, repo, gate)
    except ResourceEnumerationError as exc:
        logger.warning("Project analytics failed for %s: %s", project_code, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Unable to load team members from the ERP. Please retry.",
        ) from exc


@router.get("/projects/{project_code}/billing-mode", response_model=BillingModeResponse)
async def project_billing_mode(
    project_code: str = Path(..., min_length=1),
    repo: ErpRepo = Depends(get_repo),
    gate: CapabilityGate = Depends(get_gate),
) -> BillingModeResponse:
    mode = await fetch_billing_mode(project_code, repo, gate)
    return BillingModeResponse(project_code=project_code, billing_mode=mode)


@router.get("/extension/status", response_model=ExtensionStatus)
async def extension_status(gate: CapabilityGate = Depends(get_gate)) -> ExtensionStatus:
    return ExtensionStatus(installed=await gate.is_available())


@router.post("/extension/reset", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def extension_reset(gate: CapabilityGate = Depends(get_gate)) -> Response:
    reset_capability(gate)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
