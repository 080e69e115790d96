"""Read-only operations executed against a ready tab."""

from __future__ import annotations

import base64
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..browser.base import BrowserDriver, BrowserDriverError, PageElement
from ..errors import ExtractionError
from ..models import ExtractedImage, ExtractionKind
from .lifecycle import ReadyTab

LOGGER = logging.getLogger(__name__)


async def extract_html(tab: ReadyTab) -> str:
    """Return the serialized document source."""

    try:
        return await tab.extract(lambda driver: driver.page_source())
    except BrowserDriverError as exc:
        LOGGER.error("Failed to get page source url=%s error=%s", tab.url, exc)
        raise ExtractionError("Failed to get page source") from exc


async def extract_text(tab: ReadyTab) -> str:
    """Return the rendered text of the ``body`` element."""

    def _read(driver: BrowserDriver) -> str:
        try:
            body = driver.find_element("body")
        except BrowserDriverError as exc:
            LOGGER.error("Failed to get the body of the page url=%s error=%s", tab.url, exc)
            raise ExtractionError("Failed to get the body of the page") from exc
        try:
            return body.text()
        except BrowserDriverError as exc:
            LOGGER.error("Failed to get the text of the body url=%s error=%s", tab.url, exc)
            raise ExtractionError("Failed to get the text of the body") from exc

    return await tab.extract(_read)


async def capture_screenshot(tab: ReadyTab) -> str:
    """Return the visible viewport as a ``data:image/png;base64`` URI."""

    try:
        png = await tab.extract(lambda driver: driver.screenshot_png())
    except BrowserDriverError as exc:
        LOGGER.error("Failed to get the screenshot of the page url=%s error=%s", tab.url, exc)
        raise ExtractionError("Failed to get the screenshot of the page") from exc
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


async def list_images(tab: ReadyTab) -> list[ExtractedImage]:
    """Return every image with a source, largest rendered area first.

    A failure on one element only drops that element: unreadable ``src`` or
    geometry skips it, unreadable ``alt`` keeps it without alt text.
    """

    def _collect(driver: BrowserDriver) -> list[ExtractedImage]:
        try:
            elements = driver.find_elements("img")
        except BrowserDriverError as exc:
            LOGGER.error("Failed to get the images of the page url=%s error=%s", tab.url, exc)
            raise ExtractionError("Failed to get the images of the page") from exc
        images = []
        for element in elements:
            image = _read_image(element, tab.url)
            if image is not None:
                images.append(image)
        return images

    images = await tab.extract(_collect)
    # sorted() is stable, so equal sizes keep document order.
    return sorted(images, key=lambda image: image.size, reverse=True)


def _read_image(element: PageElement, url: str) -> ExtractedImage | None:
    try:
        src = element.get_attribute("src")
    except BrowserDriverError as exc:
        LOGGER.error("Failed to get the src of the image url=%s error=%s", url, exc)
        return None
    if not src:
        return None
    try:
        alt = element.get_attribute("alt")
    except BrowserDriverError as exc:
        LOGGER.error("Failed to get the alt of the image url=%s error=%s", url, exc)
        alt = None
    try:
        rect = element.rect()
    except BrowserDriverError as exc:
        LOGGER.error("Failed to get the size of the image url=%s error=%s", url, exc)
        return None
    return ExtractedImage.from_geometry(src, alt, rect.width, rect.height)


OPERATIONS: dict[ExtractionKind, Callable[[ReadyTab], Awaitable[Any]]] = {
    ExtractionKind.HTML: extract_html,
    ExtractionKind.TEXT: extract_text,
    ExtractionKind.SCREENSHOT: capture_screenshot,
    ExtractionKind.IMAGES: list_images,
}
