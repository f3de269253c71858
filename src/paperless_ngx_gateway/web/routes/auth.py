"""Login and logout routes for the ``session`` authentication method."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from paperless_ngx_gateway.web.auth import (
    AUTH_COOKIE_MAX_AGE,
    AUTH_COOKIE_NAME,
    GUARDED_PREFIX,
    unauthorized_response,
    validate_token,
)


if TYPE_CHECKING:
    from paperless_ngx_gateway.config import Settings


__all__ = ["LoginRequest", "router"]

router = APIRouter(prefix=GUARDED_PREFIX, tags=["auth"])


class LoginRequest(BaseModel):
    """A Paperless-ngx API token to store in the session cookie."""

    token: str = Field(min_length=1)


@router.post("/login")
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Validate the token upstream and set the session cookie."""
    settings: Settings = request.app.state.settings

    profile: dict[str, Any] | None = await validate_token(
        settings.server.url,
        body.token,
        verify_ssl=settings.server.verify_ssl,
    )
    if profile is None:
        return unauthorized_response("Invalid token or cannot reach Paperless-ngx")

    response = JSONResponse(
        content={
            "success": True,
            "message": "Logged in",
            "data": {"username": profile.get("username")},
        },
    )
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=body.token,
        max_age=AUTH_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=settings.api_auth.cookie_secure,
    )
    return response


@router.post("/logout")
async def logout(request: Request) -> JSONResponse:
    """Clear the session cookie."""
    settings: Settings = request.app.state.settings
    response = JSONResponse(content={"success": True, "message": "Logged out"})
    response.delete_cookie(
        key=AUTH_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=settings.api_auth.cookie_secure,
    )
    return response
