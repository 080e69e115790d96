"""Factories for constructing components from configuration."""

from __future__ import annotations

from typing import Optional

from .browser.base import BrowserDriver
from .browser.webdriver_session import RemoteWebDriverSession
from .config import BrowserConfig, ToolkitConfig
from .session.manager import BrowserSessionManager


def build_driver(config: BrowserConfig) -> RemoteWebDriverSession:
    return RemoteWebDriverSession(config)


def build_manager(
    config: ToolkitConfig,
    driver: Optional[BrowserDriver] = None,
) -> BrowserSessionManager:
    return BrowserSessionManager(driver or build_driver(config.browser), config.session)
