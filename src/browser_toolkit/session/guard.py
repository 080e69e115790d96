"""Mutual exclusion over the shared browser session."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionLease:
    """Proof that the holder currently owns the browser session."""

    number: int
    label: str
    acquired_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class GuardEvent:
    """Entry in the guard's acquire/release log."""

    action: str
    lease: int
    label: str


class SessionGuard:
    """Serialize every operation that touches window focus.

    Focus is global to the WebDriver session, so two requests driving tabs at
    the same time would act on each other's windows. Waiters queue without a
    timeout and are served in arrival order.
    """

    def __init__(self, *, history_size: int = 256) -> None:
        self._lock = asyncio.Lock()
        self._counter = itertools.count(1)
        self._history: list[GuardEvent] = []
        self._history_size = history_size
        self._active: SessionLease | None = None

    @property
    def active(self) -> SessionLease | None:
        return self._active

    def locked(self) -> bool:
        return self._lock.locked()

    def history(self) -> list[GuardEvent]:
        return list(self._history)

    @asynccontextmanager
    async def acquire(self, label: str = "") -> AsyncIterator[SessionLease]:
        await self._lock.acquire()
        lease = SessionLease(number=next(self._counter), label=label)
        self._active = lease
        self._record("acquire", lease)
        LOGGER.debug("Session lease %d acquired for %s", lease.number, label)
        try:
            yield lease
        finally:
            self._record("release", lease)
            self._active = None
            self._lock.release()
            LOGGER.debug("Session lease %d released", lease.number)

    def _record(self, action: str, lease: SessionLease) -> None:
        self._history.append(GuardEvent(action=action, lease=lease.number, label=lease.label))
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]
