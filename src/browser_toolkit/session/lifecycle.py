"""Per-request tab lifecycle on the shared browser session.

A request walks the session through the states below while holding the
session lease::

    IDLE -> OPENING_TAB -> FOCUSING_TAB -> NAVIGATING -> SOFT_WAITING -> READY
         -> EXTRACTING -> CLOSING_TAB -> RESTORING_FOCUS -> IDLE

Failures after a tab exists jump straight to ``CLOSING_TAB`` so that the
session always ends with only the home window open.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar

from ..browser.base import BrowserDriver, BrowserDriverError
from ..errors import (
    CleanupError,
    FatalSessionError,
    IllegalTransitionError,
    SetupError,
)
from .guard import SessionLease

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class TabState(str, enum.Enum):
    """Lifecycle states of a request tab."""

    IDLE = "idle"
    OPENING_TAB = "opening_tab"
    FOCUSING_TAB = "focusing_tab"
    NAVIGATING = "navigating"
    SOFT_WAITING = "soft_waiting"
    READY = "ready"
    EXTRACTING = "extracting"
    CLOSING_TAB = "closing_tab"
    RESTORING_FOCUS = "restoring_focus"


_TRANSITIONS: dict[TabState, frozenset[TabState]] = {
    TabState.IDLE: frozenset({TabState.OPENING_TAB}),
    TabState.OPENING_TAB: frozenset({TabState.FOCUSING_TAB, TabState.IDLE}),
    TabState.FOCUSING_TAB: frozenset({TabState.NAVIGATING, TabState.CLOSING_TAB}),
    TabState.NAVIGATING: frozenset({TabState.SOFT_WAITING, TabState.CLOSING_TAB}),
    TabState.SOFT_WAITING: frozenset({TabState.READY, TabState.CLOSING_TAB}),
    TabState.READY: frozenset({TabState.EXTRACTING, TabState.CLOSING_TAB}),
    TabState.EXTRACTING: frozenset({TabState.CLOSING_TAB}),
    # A failed close or refocus still ends the traversal.
    TabState.CLOSING_TAB: frozenset({TabState.RESTORING_FOCUS, TabState.IDLE}),
    TabState.RESTORING_FOCUS: frozenset({TabState.IDLE}),
}

Sleeper = Callable[[float], Awaitable[Any]]


class TabLifecycle:
    """Drive one tab through setup and cleanup on a leased session."""

    def __init__(
        self,
        driver: BrowserDriver,
        lease: SessionLease,
        *,
        home_window: Optional[str],
        probe_tag: str = "img",
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._driver = driver
        self._lease = lease
        self._home_window = home_window
        self._probe_tag = probe_tag
        self._sleep = sleep
        self._state = TabState.IDLE
        self._tab: Optional[str] = None
        self._focused = False
        self._url = ""
        self.transitions: list[TabState] = [TabState.IDLE]

    @property
    def state(self) -> TabState:
        return self._state

    @property
    def tab(self) -> Optional[str]:
        return self._tab

    @property
    def home_window(self) -> Optional[str]:
        return self._home_window

    @property
    def url(self) -> str:
        return self._url

    async def setup(self, url: str, delay_ms: int) -> "ReadyTab":
        """Open, focus and load a tab for ``url`` and wait ``delay_ms``."""

        self._url = url
        self._advance(TabState.OPENING_TAB)
        try:
            self._tab = await self._call(self._driver.new_tab)
        except BrowserDriverError as exc:
            LOGGER.error("Failed to create new tab url=%s error=%s", url, exc)
            self._advance(TabState.IDLE)
            raise SetupError("Failed to create new tab") from exc

        self._advance(TabState.FOCUSING_TAB)
        try:
            await self._call(self._driver.switch_to_window, self._tab)
            self._focused = True
        except BrowserDriverError as exc:
            LOGGER.error("Failed to switch to new tab url=%s error=%s", url, exc)
            await self._abort_setup()
            raise SetupError("Failed to switch to new tab") from exc

        self._advance(TabState.NAVIGATING)
        try:
            await self._call(self._driver.goto, url)
        except BrowserDriverError as exc:
            LOGGER.error("Failed to navigate to URL url=%s error=%s", url, exc)
            await self._abort_setup()
            raise SetupError("Failed to navigate to URL") from exc

        self._advance(TabState.SOFT_WAITING)
        await self._advisory_wait()
        await self._sleep(delay_ms / 1000)

        self._advance(TabState.READY)
        return ReadyTab(self)

    async def cleanup(self) -> str:
        """Close the request tab and refocus the home window.

        Returns the handle that holds focus afterwards. Raises
        :class:`CleanupError` when closing or refocusing fails and
        :class:`FatalSessionError` when no window is left to refocus.
        """

        url = self._url
        self._advance(TabState.CLOSING_TAB)
        try:
            await self._close_tab()
        except BrowserDriverError as exc:
            LOGGER.error("Failed to close tab url=%s error=%s", url, exc)
            self._advance(TabState.IDLE)
            raise CleanupError("Failed to close tab") from exc

        self._advance(TabState.RESTORING_FOCUS)
        try:
            handles = await self._call(self._driver.window_handles)
        except BrowserDriverError as exc:
            LOGGER.error("Failed to get windows url=%s error=%s", url, exc)
            self._advance(TabState.IDLE)
            raise CleanupError("Failed to get windows") from exc

        if not handles:
            LOGGER.critical("No window left to refocus url=%s", url)
            self._advance(TabState.IDLE)
            raise FatalSessionError("Failed to get window handle")

        target = self._home_window if self._home_window in handles else handles[0]
        if target != self._home_window:
            LOGGER.warning(
                "Home window %s is gone; refocusing %s instead url=%s",
                self._home_window,
                target,
                url,
            )
        if len(handles) > 1:
            LOGGER.warning("%d windows open after cleanup url=%s", len(handles), url)

        try:
            await self._call(self._driver.switch_to_window, target)
        except BrowserDriverError as exc:
            LOGGER.error("Failed to switch to window url=%s error=%s", url, exc)
            self._advance(TabState.IDLE)
            raise CleanupError("Failed to switch to window") from exc

        self._home_window = target
        self._advance(TabState.IDLE)
        return target

    # Internal helpers -------------------------------------------------

    def _advance(self, new_state: TabState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise IllegalTransitionError(
                f"Cannot move tab from {self._state.value} to {new_state.value}"
            )
        LOGGER.debug(
            "Lease %d: %s -> %s", self._lease.number, self._state.value, new_state.value
        )
        self._state = new_state
        self.transitions.append(new_state)

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(func, *args)

    async def _close_tab(self) -> None:
        if self._tab is None or self._tab == self._home_window:
            return
        if not self._focused:
            # The focus switch failed during setup; closing now would close
            # the home window instead of the request tab.
            await self._call(self._driver.switch_to_window, self._tab)
            self._focused = True
        await self._call(self._driver.close_window)
        self._tab = None
        self._focused = False

    async def _abort_setup(self) -> None:
        """Best-effort cleanup after a failed setup step."""

        try:
            await self.cleanup()
        except FatalSessionError:
            raise
        except CleanupError as exc:
            LOGGER.warning(
                "Cleanup after failed setup also failed url=%s error=%s", self._url, exc.message
            )

    async def _advisory_wait(self) -> None:
        """Wait for the first ``probe_tag`` element; absence is not an error.

        Pages without images are legitimate, so the probe result is only
        logged. The settle delay that follows applies either way.
        """

        try:
            await self._call(self._driver.find_element, self._probe_tag)
        except BrowserDriverError as exc:
            LOGGER.debug("Readiness probe found no <%s> url=%s: %s", self._probe_tag, self._url, exc)


class ReadyTab:
    """A tab that finished setup and can serve exactly one extraction."""

    def __init__(self, lifecycle: TabLifecycle) -> None:
        self._lifecycle = lifecycle

    @property
    def url(self) -> str:
        return self._lifecycle.url

    @property
    def state(self) -> TabState:
        return self._lifecycle.state

    async def extract(self, func: Callable[[BrowserDriver], T]) -> T:
        """Run ``func`` against the driver while the tab holds focus."""

        self._lifecycle._advance(TabState.EXTRACTING)
        return await self._lifecycle._call(func, self._lifecycle._driver)
