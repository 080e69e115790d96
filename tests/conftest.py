from __future__ import annotations

import threading
import time
from typing import Optional

import pytest

from browser_toolkit.browser.base import (
    BrowserDriver,
    BrowserDriverError,
    ElementRect,
    PageElement,
)


class FakeElement(PageElement):
    def __init__(
        self,
        attributes: Optional[dict[str, str]] = None,
        *,
        width: float = 0.0,
        height: float = 0.0,
        text: str = "",
        broken: frozenset[str] = frozenset(),
    ) -> None:
        self.attributes = attributes or {}
        self.width = width
        self.height = height
        self.content = text
        self.broken = broken

    def get_attribute(self, name: str) -> Optional[str]:
        if name in self.broken:
            raise BrowserDriverError(f"stale element while reading {name}")
        return self.attributes.get(name)

    def rect(self) -> ElementRect:
        if "rect" in self.broken:
            raise BrowserDriverError("stale element while reading rect")
        return ElementRect(x=0.0, y=0.0, width=self.width, height=self.height)

    def text(self) -> str:
        if "text" in self.broken:
            raise BrowserDriverError("stale element while reading text")
        return self.content


class FakeDriver(BrowserDriver):
    """In-memory WebDriver session that tracks windows and focus."""

    def __init__(self) -> None:
        self.windows: list[str] = []
        self.focused: Optional[str] = None
        self.urls: dict[str, str] = {}
        self.elements: dict[str, list[FakeElement]] = {}
        self.calls: list[tuple[str, Optional[str]]] = []
        self.navigated: list[str] = []
        self.timeline: list[tuple[str, float]] = []
        self.opened = 0
        self.closed = 0
        self.started = False
        self.stopped = False
        self._failures: dict[str, Optional[int]] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def fail(self, method: str, times: Optional[int] = 1) -> None:
        """Make ``method`` raise ``times`` times (forever when ``None``)."""

        self._failures[method] = times

    def _enter(self, method: str, arg: Optional[str] = None) -> None:
        with self._lock:
            self.calls.append((method, arg))
            self.timeline.append((method, time.monotonic()))
            if method in self._failures:
                remaining = self._failures[method]
                if remaining is not None:
                    if remaining <= 1:
                        del self._failures[method]
                    else:
                        self._failures[method] = remaining - 1
                raise BrowserDriverError(f"{method} failed")

    def start(self) -> None:
        self._enter("start")
        self.started = True
        self.windows = ["home"]
        self.focused = "home"

    def stop(self) -> None:
        self._enter("stop")
        self.stopped = True
        self.windows = []
        self.focused = None

    def current_window(self) -> str:
        self._enter("current_window")
        assert self.focused is not None
        return self.focused

    def window_handles(self) -> list[str]:
        self._enter("window_handles")
        return list(self.windows)

    def new_tab(self) -> str:
        self._enter("new_tab")
        self._counter += 1
        handle = f"tab-{self._counter}"
        self.windows.append(handle)
        self.opened += 1
        return handle

    def switch_to_window(self, handle: str) -> None:
        self._enter("switch_to_window", handle)
        if handle not in self.windows:
            raise BrowserDriverError(f"no such window: {handle}")
        self.focused = handle

    def close_window(self) -> None:
        self._enter("close_window", self.focused)
        if self.focused not in self.windows:
            raise BrowserDriverError("no such window")
        self.windows.remove(self.focused)
        self.urls.pop(self.focused, None)
        self.focused = None
        self.closed += 1

    def goto(self, url: str) -> None:
        self._enter("goto", url)
        assert self.focused is not None
        self.urls[self.focused] = url
        self.navigated.append(url)

    def page_source(self) -> str:
        self._enter("page_source")
        return f"<html><body>{self.urls.get(self.focused or '', '')}</body></html>"

    def find_element(self, tag: str) -> PageElement:
        self._enter("find_element", tag)
        elements = self.elements.get(tag)
        if not elements:
            raise BrowserDriverError(f"no such element: {tag}")
        return elements[0]

    def find_elements(self, tag: str) -> list[PageElement]:
        self._enter("find_elements", tag)
        return list(self.elements.get(tag, []))

    def screenshot_png(self) -> bytes:
        self._enter("screenshot_png")
        return b"\x89PNG\r\n\x1a\nfake"


@pytest.fixture
def driver() -> FakeDriver:
    fake = FakeDriver()
    fake.start()
    fake.calls.clear()
    fake.timeline.clear()
    return fake
