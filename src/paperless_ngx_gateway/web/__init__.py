"""Web application module (FastAPI)."""

from __future__ import annotations

from paperless_ngx_gateway.web.app import (
    create_app,
    get_app_settings,
    get_paperless_client,
)


__all__ = [
    "create_app",
    "get_app_settings",
    "get_paperless_client",
]
