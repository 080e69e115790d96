"""HTTP client for a running browser toolkit service."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from .models import ExtractedImage, ExtractionKind


class ToolkitClientError(RuntimeError):
    """Raised when the service answers with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class ToolkitClient:
    """Wrapper around the toolkit HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def get_html(self, url: str, *, delay: int = 0, bypass_paywall: bool = False) -> str:
        return await self._extract(ExtractionKind.HTML, url, delay, bypass_paywall)

    async def get_text(self, url: str, *, delay: int = 0, bypass_paywall: bool = False) -> str:
        return await self._extract(ExtractionKind.TEXT, url, delay, bypass_paywall)

    async def get_screenshot(
        self,
        url: str,
        *,
        delay: int = 0,
        bypass_paywall: bool = False,
    ) -> str:
        return await self._extract(ExtractionKind.SCREENSHOT, url, delay, bypass_paywall)

    async def get_images(
        self,
        url: str,
        *,
        delay: int = 0,
        bypass_paywall: bool = False,
    ) -> List[ExtractedImage]:
        data = await self._extract(ExtractionKind.IMAGES, url, delay, bypass_paywall)
        return [ExtractedImage.model_validate(item) for item in data]

    async def extract(
        self,
        kind: ExtractionKind,
        url: str,
        *,
        delay: int = 0,
        bypass_paywall: bool = False,
    ) -> Any:
        if kind is ExtractionKind.IMAGES:
            return await self.get_images(url, delay=delay, bypass_paywall=bypass_paywall)
        return await self._extract(kind, url, delay, bypass_paywall)

    async def liveness(self) -> str:
        async with self._client() as client:
            response = await client.get("/api/v1/health/liveness")
        if response.status_code != 200:
            raise ToolkitClientError(response.status_code, response.text)
        return response.text

    async def readiness(self) -> str:
        async with self._client() as client:
            response = await client.get("/api/v1/health/readiness")
        if response.status_code != 200:
            raise ToolkitClientError(response.status_code, response.text)
        return response.text

    async def _extract(
        self,
        kind: ExtractionKind,
        url: str,
        delay: int,
        bypass_paywall: bool,
    ) -> Any:
        params = {"url": url, "delay": delay, "bypass_paywall": str(bypass_paywall).lower()}
        async with self._client() as client:
            response = await client.get(f"/api/v1/browser/{kind.value}", params=params)
        payload: Dict[str, Any] = {}
        if response.headers.get("content-type", "").startswith("application/json"):
            payload = response.json()
        if response.status_code != 200:
            message = payload.get("error") or response.reason_phrase
            raise ToolkitClientError(response.status_code, message)
        return payload.get("data")

    def _client(self) -> httpx.AsyncClient:
        headers = {"API-Key": self._api_key} if self._api_key else {}
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=headers,
            transport=self._transport,
        )
