"""Owner of the process-wide browser session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar

from ..browser.base import BrowserDriver
from ..config import SessionConfig
from ..errors import CleanupError, FatalSessionError
from ..models import ExtractionKind, ExtractionRequest
from .extraction import OPERATIONS, extract_html
from .guard import SessionGuard
from .lifecycle import ReadyTab, Sleeper, TabLifecycle, TabState

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class BrowserSessionManager:
    """Run extraction requests one at a time on a single browser session.

    Each request gets its own tab. Whatever happens during setup or
    extraction, the tab is closed and focus returns to the home window before
    the session lease is released.
    """

    def __init__(
        self,
        driver: BrowserDriver,
        config: Optional[SessionConfig] = None,
        *,
        guard: Optional[SessionGuard] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._driver = driver
        self._config = config or SessionConfig()
        self._guard = guard or SessionGuard()
        self._sleep = sleep
        self._home_window: Optional[str] = None
        self._fatal: Optional[FatalSessionError] = None
        self._started = False

    @property
    def guard(self) -> SessionGuard:
        return self._guard

    @property
    def home_window(self) -> Optional[str]:
        return self._home_window

    @property
    def broken(self) -> bool:
        return self._fatal is not None

    async def start(self) -> None:
        LOGGER.info("Starting browser session")
        await asyncio.to_thread(self._driver.start)
        self._home_window = await asyncio.to_thread(self._driver.current_window)
        self._started = True
        LOGGER.info("Browser session ready, home window %s", self._home_window)

    async def stop(self) -> None:
        if not self._started:
            return
        LOGGER.info("Stopping browser session")
        self._started = False
        async with self._guard.acquire(label="shutdown"):
            await asyncio.to_thread(self._driver.stop)

    async def run(
        self,
        request: ExtractionRequest,
        operation: Callable[[ReadyTab], Awaitable[T]],
    ) -> T:
        """Execute ``operation`` on a fresh tab loaded with ``request``.

        The traversal is shielded: if the caller goes away, the tab lifecycle
        still runs to the end, cleanup included.
        """

        self._raise_if_broken()
        url = request.target_url(self._config.paywall_proxy_prefix)
        task = asyncio.ensure_future(self._traverse(url, request.delay_ms, operation))
        task.add_done_callback(_log_orphaned_failure)
        return await asyncio.shield(task)

    async def extract(self, kind: ExtractionKind, request: ExtractionRequest) -> Any:
        return await self.run(request, OPERATIONS[kind])

    async def health(self) -> None:
        """Run a full setup/extract/cleanup cycle against the health-check URL."""

        request = ExtractionRequest(url=self._config.health_check_url, delay_ms=0)
        await self.run(request, extract_html)

    # Internal helpers -------------------------------------------------

    async def _traverse(
        self,
        url: str,
        delay_ms: int,
        operation: Callable[[ReadyTab], Awaitable[T]],
    ) -> T:
        async with self._guard.acquire(label=url) as lease:
            self._raise_if_broken()
            lifecycle = TabLifecycle(
                self._driver,
                lease,
                home_window=self._home_window,
                probe_tag=self._config.readiness_probe_tag,
                sleep=self._sleep,
            )
            try:
                tab = await lifecycle.setup(url, delay_ms)
            except FatalSessionError as exc:
                self._mark_broken(exc)
                raise
            except BaseException:
                if lifecycle.state is not TabState.IDLE:
                    await self._finish(lifecycle, failed=True)
                raise
            self._home_window = lifecycle.home_window

            try:
                result = await operation(tab)
            except BaseException:
                await self._finish(lifecycle, failed=True)
                raise
            await self._finish(lifecycle, failed=False)
            return result

    async def _finish(self, lifecycle: TabLifecycle, *, failed: bool) -> None:
        try:
            self._home_window = await lifecycle.cleanup()
        except FatalSessionError as exc:
            self._mark_broken(exc)
            raise
        except CleanupError as exc:
            if self._config.report_cleanup_failure:
                raise
            LOGGER.warning(
                "Ignoring cleanup failure after %s extraction url=%s: %s",
                "failed" if failed else "successful",
                lifecycle.url,
                exc.message,
            )

    def _mark_broken(self, exc: FatalSessionError) -> None:
        LOGGER.critical("Browser session is unusable, restart required: %s", exc.message)
        self._fatal = exc

    def _raise_if_broken(self) -> None:
        if self._fatal is not None:
            raise FatalSessionError(self._fatal.message)


def _log_orphaned_failure(task: asyncio.Future[Any]) -> None:
    # Retrieve the exception so a traversal whose caller went away does not
    # trigger "exception was never retrieved".
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.debug("Traversal finished with %s", exc.__class__.__name__)
