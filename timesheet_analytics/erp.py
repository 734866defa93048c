import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from .config import settings
from .repos.erp_repo import ErpRepo
from .services.capability import CapabilityGate

logger = logging.getLogger(__name__)

# start closed, we'll open in app lifespan
client: Optional[httpx.AsyncClient] = None


def _build_client() -> httpx.AsyncClient:
    headers = {"Accept": "application/json"}
    if settings.erp_access_token:
        headers["Authorization"] = f"Bearer {settings.erp_access_token}"
    return httpx.AsyncClient(timeout=settings.erp_timeout_seconds, headers=headers)


def open_client() -> None:
    global client
    if client is None:
        client = _build_client()


async def close_client() -> None:
    global client
    if client is not None:
        await client.aclose()
        client = None


def get_repo() -> ErpRepo:
    if client is None:
        raise RuntimeError("ERP client is not open")
    return ErpRepo(client)


@asynccontextmanager
async def session() -> AsyncIterator[ErpRepo]:
    """Repo on a dedicated client, for callers outside the app lifespan."""
    async with _build_client() as http:
        yield ErpRepo(http)


async def _probe_extension() -> bool:
    if client is None:
        async with session() as repo:
            return await repo.probe_capability()
    return await get_repo().probe_capability()


# One gate per configured company; reset when the active company changes.
gate = CapabilityGate(_probe_extension)


def get_gate() -> CapabilityGate:
    return gate
