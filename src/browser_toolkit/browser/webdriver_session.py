"""Selenium-powered remote WebDriver session implementation."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.command import Command
from selenium.webdriver.remote.webelement import WebElement
from urllib3.exceptions import HTTPError as TransportError

from ..config import BrowserConfig
from .base import BrowserDriver, BrowserDriverError, ElementRect, PageElement

LOGGER = logging.getLogger(__name__)


@contextmanager
def _driver_errors() -> Iterator[None]:
    try:
        yield
    except WebDriverException as exc:
        raise BrowserDriverError(exc.msg or exc.__class__.__name__) from exc
    except (TransportError, OSError) as exc:
        # The endpoint hung up or timed out before answering.
        raise BrowserDriverError(str(exc) or exc.__class__.__name__) from exc


class SeleniumElement(PageElement):
    """Adapter exposing a Selenium ``WebElement`` as a :class:`PageElement`."""

    def __init__(self, element: WebElement) -> None:
        self._element = element

    def get_attribute(self, name: str) -> Optional[str]:
        with _driver_errors():
            return self._element.get_attribute(name)

    def rect(self) -> ElementRect:
        with _driver_errors():
            rect = self._element.rect
        return ElementRect(
            x=float(rect["x"]),
            y=float(rect["y"]),
            width=float(rect["width"]),
            height=float(rect["height"]),
        )

    def text(self) -> str:
        with _driver_errors():
            return self._element.text


class RemoteWebDriverSession(BrowserDriver):
    """Browser session backed by a remote Chrome WebDriver endpoint."""

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self._config = config or BrowserConfig()
        self._driver: Optional[webdriver.Remote] = None

    def start(self) -> None:
        LOGGER.debug("Connecting to WebDriver endpoint %s", self._config.endpoint)
        options = webdriver.ChromeOptions()
        if self._config.headless:
            options.add_argument("--headless=new")
        if self._config.ignore_certificate_errors:
            options.add_argument("--ignore-certificate-errors")
            options.accept_insecure_certs = True
        if self._config.no_sandbox:
            options.add_argument("--no-sandbox")
        if self._config.disable_gpu:
            options.add_argument("--disable-gpu")
        if self._config.disable_dev_shm_usage:
            options.add_argument("--disable-dev-shm-usage")
        with _driver_errors():
            self._driver = webdriver.Remote(
                command_executor=self._config.endpoint,
                options=options,
            )
            if self._config.page_load_timeout is not None:
                self._driver.set_page_load_timeout(self._config.page_load_timeout)

    def stop(self) -> None:
        LOGGER.debug("Quitting WebDriver session")
        driver, self._driver = self._driver, None
        if driver is not None:
            with _driver_errors():
                driver.quit()

    def current_window(self) -> str:
        with _driver_errors():
            return self._require().current_window_handle

    def window_handles(self) -> list[str]:
        with _driver_errors():
            return list(self._require().window_handles)

    def new_tab(self) -> str:
        # ``switch_to.new_window`` would also move focus; focusing is a
        # separate lifecycle step.
        with _driver_errors():
            response = self._require().execute(Command.NEW_WINDOW, {"type": "tab"})
            try:
                return response["value"]["handle"]
            except (KeyError, TypeError) as exc:
                raise BrowserDriverError(f"Unexpected new window response: {response!r}") from exc

    def switch_to_window(self, handle: str) -> None:
        with _driver_errors():
            self._require().switch_to.window(handle)

    def close_window(self) -> None:
        with _driver_errors():
            self._require().close()

    def goto(self, url: str) -> None:
        with _driver_errors():
            self._require().get(url)

    def page_source(self) -> str:
        with _driver_errors():
            return self._require().page_source

    def find_element(self, tag: str) -> PageElement:
        with _driver_errors():
            return SeleniumElement(self._require().find_element(By.TAG_NAME, tag))

    def find_elements(self, tag: str) -> list[PageElement]:
        with _driver_errors():
            elements = self._require().find_elements(By.TAG_NAME, tag)
        return [SeleniumElement(element) for element in elements]

    def screenshot_png(self) -> bytes:
        with _driver_errors():
            return self._require().get_screenshot_as_png()

    def _require(self) -> webdriver.Remote:
        if self._driver is None:
            raise BrowserDriverError("WebDriver session is not started")
        return self._driver
