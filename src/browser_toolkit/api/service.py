"""FastAPI application exposing the page-rendering endpoints."""

from __future__ import annotations

import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from ..config import ToolkitConfig
from ..errors import AuthError, ToolkitError
from ..factory import build_manager
from ..models import ExtractedImage, ExtractionKind, ExtractionRequest, ResponseEnvelope
from ..session.manager import BrowserSessionManager

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def get_manager(request: Request) -> BrowserSessionManager:
    return request.app.state.manager


def extraction_request(
    url: Annotated[str, Query(description="URL of the page to render")],
    delay: Annotated[
        int,
        Query(ge=0, description="Settle delay in milliseconds after navigation"),
    ],
    bypass_paywall: Annotated[
        bool,
        Query(description="Load the page through the paywall-bypass proxy"),
    ] = False,
) -> ExtractionRequest:
    return ExtractionRequest(url=url, delay_ms=delay, bypass_paywall=bypass_paywall)


class ToolkitApplication:
    def __init__(self, config: ToolkitConfig, manager: BrowserSessionManager) -> None:
        self._config = config
        self._manager = manager

    def verify_api_key(
        self,
        api_key: Annotated[
            Optional[str],
            Header(alias="API-Key", description="Private API Key"),
        ] = None,
    ) -> None:
        if api_key is None:
            raise AuthError("API-Key header is missing")
        if not secrets.compare_digest(api_key.encode(), self._config.api_key.encode()):
            raise AuthError("Invalid API-Key")

    def create_app(self) -> FastAPI:
        manager = self._manager

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncIterator[None]:
            await manager.start()
            try:
                yield
            finally:
                await manager.stop()

        servers = None
        if self._config.server.public_url:
            servers = [{"url": self._config.server.public_url}]
        app = FastAPI(title="ToolKit", version="1.0", lifespan=lifespan, servers=servers)
        app.state.manager = manager
        app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
        app.add_exception_handler(ToolkitError, _toolkit_error_handler)
        app.add_exception_handler(RequestValidationError, _validation_error_handler)

        app.include_router(self._browser_router(), prefix=API_PREFIX)
        app.include_router(self._health_router(), prefix=API_PREFIX)
        return app

    def _browser_router(self) -> APIRouter:
        router = APIRouter(
            prefix="/browser",
            tags=["Selenium"],
            dependencies=[Depends(self.verify_api_key)],
        )

        @router.get(
            "/html",
            response_model=ResponseEnvelope[str],
            operation_id="browser::get_html",
        )
        async def get_html(
            params: Annotated[ExtractionRequest, Depends(extraction_request)],
            manager: Annotated[BrowserSessionManager, Depends(get_manager)],
        ) -> ResponseEnvelope[str]:
            """Return the rendered HTML source."""
            html = await manager.extract(ExtractionKind.HTML, params)
            return ResponseEnvelope[str](data=html)

        @router.get(
            "/text",
            response_model=ResponseEnvelope[str],
            operation_id="browser::get_text",
        )
        async def get_text(
            params: Annotated[ExtractionRequest, Depends(extraction_request)],
            manager: Annotated[BrowserSessionManager, Depends(get_manager)],
        ) -> ResponseEnvelope[str]:
            """Return the visible text of the page body."""
            text = await manager.extract(ExtractionKind.TEXT, params)
            return ResponseEnvelope[str](data=text)

        @router.get(
            "/screenshot",
            response_model=ResponseEnvelope[str],
            operation_id="browser::get_screenshot",
        )
        async def get_screenshot(
            params: Annotated[ExtractionRequest, Depends(extraction_request)],
            manager: Annotated[BrowserSessionManager, Depends(get_manager)],
        ) -> ResponseEnvelope[str]:
            """Return a PNG screenshot of the viewport as a data URI."""
            screenshot = await manager.extract(ExtractionKind.SCREENSHOT, params)
            return ResponseEnvelope[str](data=screenshot)

        @router.get(
            "/images",
            response_model=ResponseEnvelope[List[ExtractedImage]],
            operation_id="browser::get_images",
        )
        async def get_images(
            params: Annotated[ExtractionRequest, Depends(extraction_request)],
            manager: Annotated[BrowserSessionManager, Depends(get_manager)],
        ) -> ResponseEnvelope[List[ExtractedImage]]:
            """Return the images on the page, largest first."""
            images = await manager.extract(ExtractionKind.IMAGES, params)
            return ResponseEnvelope[List[ExtractedImage]](data=images)

        return router

    def _health_router(self) -> APIRouter:
        router = APIRouter(prefix="/health", tags=["HealthCheck"])

        @router.get("/liveness", response_class=PlainTextResponse)
        async def liveness() -> str:
            return "OK"

        @router.get("/readiness", response_class=PlainTextResponse)
        async def readiness(
            manager: Annotated[BrowserSessionManager, Depends(get_manager)],
        ) -> PlainTextResponse:
            try:
                await manager.health()
            except ToolkitError as exc:
                LOGGER.error("Readiness check failed: %s", exc.message)
                return PlainTextResponse(exc.message, status_code=503)
            return PlainTextResponse("OK")

        return router


async def _toolkit_error_handler(request: Request, exc: ToolkitError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ResponseEnvelope[Any](error=exc.message).model_dump(),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
    return JSONResponse(
        status_code=400,
        content=ResponseEnvelope[Any](error=f"Invalid request parameters: {fields}").model_dump(),
    )


def create_app(
    config: ToolkitConfig,
    manager: BrowserSessionManager | None = None,
) -> FastAPI:
    if manager is None:
        manager = build_manager(config)
    return ToolkitApplication(config, manager).create_app()
