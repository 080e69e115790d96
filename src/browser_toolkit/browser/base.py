"""Browser session abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ElementRect:
    """Rendered geometry of a page element."""

    x: float
    y: float
    width: float
    height: float


class BrowserDriverError(RuntimeError):
    """Raised when a WebDriver command fails."""


class PageElement(ABC):
    """Element located in the focused window."""

    @abstractmethod
    def get_attribute(self, name: str) -> str | None:
        """Return the attribute value or ``None`` when it is absent."""

    @abstractmethod
    def rect(self) -> ElementRect:
        """Return the rendered geometry of the element."""

    @abstractmethod
    def text(self) -> str:
        """Return the rendered text content of the element."""


class BrowserDriver(ABC):
    """Blocking interface to one long-lived WebDriver session.

    Window focus is session-wide state: every command below acts on whichever
    window was last passed to :meth:`switch_to_window`.
    """

    @abstractmethod
    def start(self) -> None:
        """Open the WebDriver session."""

    @abstractmethod
    def stop(self) -> None:
        """Quit the WebDriver session."""

    @abstractmethod
    def current_window(self) -> str:
        """Return the handle of the focused window."""

    @abstractmethod
    def window_handles(self) -> list[str]:
        """Return the handles of every open window."""

    @abstractmethod
    def new_tab(self) -> str:
        """Open a new tab without focusing it and return its handle."""

    @abstractmethod
    def switch_to_window(self, handle: str) -> None:
        """Focus the window identified by ``handle``."""

    @abstractmethod
    def close_window(self) -> None:
        """Close the focused window."""

    @abstractmethod
    def goto(self, url: str) -> None:
        """Navigate the focused window to ``url``."""

    @abstractmethod
    def page_source(self) -> str:
        """Return the serialized document of the focused window."""

    @abstractmethod
    def find_element(self, tag: str) -> PageElement:
        """Return the first element with the given tag name."""

    @abstractmethod
    def find_elements(self, tag: str) -> list[PageElement]:
        """Return every element with the given tag name."""

    @abstractmethod
    def screenshot_png(self) -> bytes:
        """Capture the visible viewport of the focused window as PNG."""
