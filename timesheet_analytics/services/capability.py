from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]


class CapabilityGate:
    """Caches whether the timesheet extension API exists for the active company.

    Concurrent callers share one in-flight probe. The probe runs as its own task
    and each waiter awaits it through ``asyncio.shield`` so a cancelled waiter
    never cancels the probe for everyone else. If the probe task itself is
    cancelled, all waiters see the cancellation and the next caller probes again.
    """

    def __init__(self, probe: Probe) -> None:
        self._probe = probe
        self._known = False
        self._value = False
        self._in_flight: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def known(self) -> bool:
        return self._known

    async def is_available(self) -> bool:
        if self._known:
            return self._value
        task = self._in_flight
        if task is None or task.done():
            task = asyncio.ensure_future(self._run_probe(self._generation))
            self._in_flight = task
        return await asyncio.shield(task)

    async def _run_probe(self, generation: int) -> bool:
        try:
            try:
                available = bool(await self._probe())
            except Exception as exc:
                logger.info("Timesheet extension probe failed: %s", exc)
                available = False
            if generation == self._generation:
                self._known = True
                self._value = available
                logger.info("Timesheet extension %s", "available" if available else "not available")
            return available
        finally:
            if self._in_flight is asyncio.current_task():
                self._in_flight = None

    def reset(self) -> None:
        # An in-flight probe started before the reset may still finish, but its
        # result is discarded.
        self._generation += 1
        self._known = False
        self._value = False
        self._in_flight = None
