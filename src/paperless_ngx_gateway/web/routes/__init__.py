"""API routes."""

from __future__ import annotations

from paperless_ngx_gateway.web.routes.auth import router as auth_router
from paperless_ngx_gateway.web.routes.health import router as health_router
from paperless_ngx_gateway.web.routes.paperless import router as paperless_router


__all__ = ["auth_router", "health_router", "paperless_router"]
