"""FastAPI application factory for paperless-ngx-gateway."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import (
    BaseHTTPMiddleware,
    RequestResponseEndpoint,
)
from starlette.responses import Response  # noqa: TC002

from paperless_ngx_gateway.observability import (
    clear_request_context,
    get_logger,
    set_request_id,
)
from paperless_ngx_gateway.paperless import handler
from paperless_ngx_gateway.paperless.exceptions import PaperlessError
from paperless_ngx_gateway.web.ratelimit import RateLimiter


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from paperless_ngx_gateway.config import Settings
    from paperless_ngx_gateway.paperless import PaperlessClient


__all__ = [
    "RequestIDMiddleware",
    "create_app",
    "get_app_settings",
    "get_paperless_client",
]


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the shared PaperlessClient on startup and close it on shutdown."""
    from paperless_ngx_gateway import paperless

    logger = get_logger(__name__)
    settings: Settings = app.state.settings

    client = paperless.PaperlessClient.from_settings(settings)
    app.state.paperless = client

    logger.info(
        "app_started",
        host=settings.web.host,
        port=settings.web.port,
        paperless_url=settings.server.url,
        api_auth=settings.api_auth.method if settings.api_auth.enabled else "off",
    )

    try:
        yield
    finally:
        logger.info("app_shutting_down")
        await client.close()
        logger.info("app_shutdown_complete")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind an ``X-Request-ID`` (incoming or generated) to each request.

    The id is bound to the structlog context and echoed in the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request with request id tracking."""
        clear_request_context()
        request_id = set_request_id(request.headers.get("x-request-id"))

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def _configure_middleware(app: FastAPI) -> None:
    """Add middleware; the last one added is the outermost layer."""
    from paperless_ngx_gateway.web.auth import ApiAuthMiddleware

    app.add_middleware(ApiAuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)


def _register_exception_handlers(app: FastAPI) -> None:
    logger = get_logger(__name__)

    @app.exception_handler(PaperlessError)
    async def paperless_error_handler(
        _request: Request,
        exc: PaperlessError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=handler.http_status_code(exc),
            content=handler.handle(exc),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(
        _request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "unhandled_error",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Internal server error",
                "error": type(exc).__name__,
            },
        )


def _include_routers(app: FastAPI) -> None:
    from paperless_ngx_gateway.web.routes import (
        auth_router,
        health_router,
        paperless_router,
    )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(paperless_router)


def get_app_settings(request: Request) -> Settings:
    """FastAPI dependency: the application settings."""
    return request.app.state.settings  # type: ignore[no-any-return]


def get_paperless_client(request: Request) -> PaperlessClient:
    """FastAPI dependency: the shared PaperlessClient created at startup."""
    return request.app.state.paperless  # type: ignore[no-any-return]


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; loaded through ``get_settings()``
            when None.

    Returns:
        The configured application.
    """
    from paperless_ngx_gateway import __version__
    from paperless_ngx_gateway.config import get_settings

    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="paperless-ngx-gateway",
        version=__version__,
        description="REST gateway to the Paperless-ngx document API",
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.rate_limiter = RateLimiter()

    _configure_middleware(app)
    _register_exception_handlers(app)
    _include_routers(app)

    return app
