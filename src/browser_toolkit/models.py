"""Shared models used across the browser toolkit."""

from __future__ import annotations

import enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ExtractionKind(str, enum.Enum):
    """Read-only operations that can run against a ready tab."""

    HTML = "html"
    TEXT = "text"
    SCREENSHOT = "screenshot"
    IMAGES = "images"


class ExtractionRequest(BaseModel):
    """Caller-supplied parameters for a single page extraction."""

    url: str
    delay_ms: int = Field(default=0, ge=0, description="Settle delay after navigation.")
    bypass_paywall: bool = False

    def target_url(self, proxy_prefix: str) -> str:
        """Return the URL to navigate, rewritten behind ``proxy_prefix`` if requested."""

        if self.bypass_paywall:
            return f"{proxy_prefix}{self.url}"
        return self.url


class ExtractedImage(BaseModel):
    """Image found on a rendered page."""

    url: str = Field(description="URL of the image")
    alt: Optional[str] = Field(default=None, description="Alt text of the image")
    width: float = Field(description="Rendered width of the image")
    height: float = Field(description="Rendered height of the image")
    size: float = Field(description="Rendered area, used for ordering")

    @classmethod
    def from_geometry(
        cls,
        url: str,
        alt: Optional[str],
        width: float,
        height: float,
    ) -> "ExtractedImage":
        return cls(url=url, alt=alt, width=width, height=height, size=width * height)


class ResponseEnvelope(BaseModel, Generic[T]):
    """JSON body returned by every browser endpoint."""

    data: Optional[T] = None
    error: Optional[str] = None
