"""Liveness endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter


__all__ = ["router"]

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Return 200 while the process is serving; Paperless-ngx is not contacted."""
    from paperless_ngx_gateway import __version__

    return {"status": "ok", "version": __version__}
