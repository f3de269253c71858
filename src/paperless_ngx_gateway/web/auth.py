"""Authentication middleware for the ``/api/paperless`` routes.

Checks run in a fixed order and stop at the first failure: the IP
allowlist, the per-IP rate limit, then the configured method
(``session``, ``token``, ``basic`` or ``none``). Login and logout skip
only the method check.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import secrets
import time
from typing import TYPE_CHECKING, Any

from fastapi.responses import JSONResponse
from starlette.middleware.base import (
    BaseHTTPMiddleware,
    RequestResponseEndpoint,
)

from paperless_ngx_gateway.config.schema import ApiAuthMethod
from paperless_ngx_gateway.observability import get_logger
from paperless_ngx_gateway.paperless.exceptions import PaperlessError


if TYPE_CHECKING:
    from fastapi import Request
    from starlette.responses import Response

    from paperless_ngx_gateway.config import ApiAuthConfig, Settings
    from paperless_ngx_gateway.web.ratelimit import RateLimiter


__all__ = [
    "AUTH_COOKIE_MAX_AGE",
    "AUTH_COOKIE_NAME",
    "GUARDED_PREFIX",
    "ApiAuthMiddleware",
    "client_ip",
    "ip_allowed",
    "validate_token",
]

AUTH_COOKIE_NAME = "paperless_token"
AUTH_COOKIE_MAX_AGE = 28800  # 8 hours

GUARDED_PREFIX = "/api/paperless"
_PUBLIC_PATHS = frozenset((f"{GUARDED_PREFIX}/login", f"{GUARDED_PREFIX}/logout"))

RATE_LIMIT_KEY_PREFIX = "paperless-api:"
BASIC_REALM = 'Basic realm="Paperless API"'

logger = get_logger(__name__)


def unauthorized_response(
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """401 body shared by every authentication failure."""
    return JSONResponse(
        status_code=401,
        content={
            "success": False,
            "message": message,
            "error": "authentication_required",
        },
        headers=headers,
    )


def client_ip(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Return the caller's IP address.

    Args:
        request: The incoming request.
        trust_forwarded_for: Use the first ``X-Forwarded-For`` entry when
            present (only behind a trusted proxy).
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",", 1)[0].strip()
        if first:
            return first
    if request.client is None:
        return "unknown"
    return request.client.host


def ip_allowed(ip: str, allowlist: list[str]) -> bool:
    """Whether ``ip`` equals an entry or falls inside a CIDR entry.

    An empty allowlist allows everything. IPv4 and IPv6 are both
    supported; unparseable entries never match.
    """
    if not allowlist:
        return True

    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        address = None

    for entry in allowlist:
        if "/" in entry:
            if address is None:
                continue
            try:
                network = ipaddress.ip_network(entry, strict=False)
            except ValueError:
                logger.warning("invalid_ip_allowlist_entry", entry=entry)
                continue
            if address in network:
                return True
        elif entry == ip:
            return True
        elif address is not None:
            try:
                if ipaddress.ip_address(entry) == address:
                    return True
            except ValueError:
                continue
    return False


def _basic_credentials(request: Request) -> tuple[str, str] | None:
    header = request.headers.get("authorization", "")
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


async def validate_token(
    base_url: str,
    token: str,
    *,
    verify_ssl: bool = True,
) -> dict[str, Any] | None:
    """Check a Paperless-ngx token against ``/api/profile/``.

    Args:
        base_url: The Paperless-ngx base URL.
        token: The API token to check.
        verify_ssl: Verify TLS certificates.

    Returns:
        The user's profile when the token is accepted, otherwise None.
    """
    from paperless_ngx_gateway.paperless import PaperlessClient

    client = PaperlessClient(base_url, token=token, verify_ssl=verify_ssl)
    try:
        return await client.get_profile()
    except PaperlessError as exc:
        logger.warning(
            "token_validation_failed",
            base_url=base_url,
            error=exc.message,
        )
        return None
    finally:
        await client.close()


class ApiAuthMiddleware(BaseHTTPMiddleware):
    """Guard ``/api/paperless/*``; login and logout need no credentials.

    Reads ``api_auth`` from ``app.state.settings`` and the shared
    limiter from ``app.state.rate_limiter`` on every request.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request, enforcing the configured checks."""
        path = request.url.path
        if not self._is_guarded(path):
            return await call_next(request)

        settings: Settings = request.app.state.settings
        config = settings.api_auth
        if not config.enabled:
            return await call_next(request)

        ip = client_ip(request, trust_forwarded_for=config.trust_forwarded_for)
        log = logger.bind(ip=ip, path=path)

        if not ip_allowed(ip, config.ip_allowlist):
            log.warning("ip_not_allowed")
            return unauthorized_response("IP address not allowed")

        if config.rate_limit.enabled:
            limited = self._check_rate_limit(request, config, ip)
            if limited is not None:
                log.warning("rate_limit_exceeded")
                return limited

        # Login and logout are reachable without credentials but still
        # pass the allowlist and the rate limit.
        if path in _PUBLIC_PATHS:
            return await call_next(request)

        match config.method:
            case ApiAuthMethod.SESSION:
                failure = await self._check_session(request, settings)
            case ApiAuthMethod.TOKEN:
                failure = self._check_token(request, config)
            case ApiAuthMethod.BASIC:
                failure = self._check_basic(request, config)
            case ApiAuthMethod.NONE:
                failure = None
            case _:
                log.warning("invalid_auth_method", method=config.method)
                return unauthorized_response("Invalid authentication method")

        if failure is not None:
            log.warning("paperless_api_rejected", method=config.method)
            return failure

        log.info("paperless_api_accessed", method=config.method)
        return await call_next(request)

    @staticmethod
    def _is_guarded(path: str) -> bool:
        return path == GUARDED_PREFIX or path.startswith(f"{GUARDED_PREFIX}/")

    @staticmethod
    def _check_rate_limit(
        request: Request,
        config: ApiAuthConfig,
        ip: str,
    ) -> JSONResponse | None:
        limiter: RateLimiter = request.app.state.rate_limiter
        key = f"{RATE_LIMIT_KEY_PREFIX}{ip}"
        max_attempts = config.rate_limit.max_attempts

        allowed, retry_after = limiter.attempt(
            key,
            max_attempts,
            config.rate_limit.decay_minutes * 60,
        )
        if not allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Rate limit exceeded. Please try again later.",
                    "retry_after": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(max_attempts),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(time.time()) + retry_after),
                },
            )

        return None

    @staticmethod
    async def _check_session(
        request: Request,
        settings: Settings,
    ) -> JSONResponse | None:
        token = request.cookies.get(AUTH_COOKIE_NAME)
        if not token:
            return unauthorized_response("Session authentication required")

        profile = await validate_token(
            settings.server.url,
            token,
            verify_ssl=settings.server.verify_ssl,
        )
        if profile is None:
            return unauthorized_response("Authentication failed")

        request.state.paperless_token = token
        request.state.paperless_user = profile.get("username")
        logger.info(
            "paperless_session_user",
            username=request.state.paperless_user,
        )
        return None

    @staticmethod
    def _check_token(
        request: Request,
        config: ApiAuthConfig,
    ) -> JSONResponse | None:
        header_name = config.token.header_name
        provided = request.headers.get(header_name)
        if not provided:
            return unauthorized_response(f"Missing {header_name} header")

        if not config.token.tokens:
            logger.warning("api_tokens_not_configured")
            return unauthorized_response("API tokens not configured")

        candidate = provided.encode()
        if not any(
            secrets.compare_digest(candidate, allowed.encode())
            for allowed in config.token.tokens
        ):
            return unauthorized_response("Invalid API token")
        return None

    @staticmethod
    def _check_basic(
        request: Request,
        config: ApiAuthConfig,
    ) -> JSONResponse | None:
        username = config.basic.username
        password = config.basic.password
        if not username or not password:
            logger.warning("basic_auth_not_configured")
            return unauthorized_response("Basic authentication not configured")

        credentials = _basic_credentials(request) or ("", "")
        provided = f"{credentials[0]}:{credentials[1]}".encode()
        expected = f"{username}:{password}".encode()
        if not secrets.compare_digest(provided, expected):
            return unauthorized_response(
                "Invalid credentials",
                headers={"WWW-Authenticate": BASIC_REALM},
            )
        return None
