"""Configuration schema models for paperless-ngx-gateway.

This module defines Pydantic models for all configuration sections.
These models are used by the Settings class to validate and type-check
configuration loaded from YAML files and environment variables.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path  # noqa: TC003 - needed at runtime for Pydantic
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


__all__ = [
    "ApiAuthConfig",
    "ApiAuthMethod",
    "BasicAuthConfig",
    "BulkConfig",
    "ConfigBaseModel",
    "LoggingConfig",
    "LogLevel",
    "MappingsConfig",
    "ObservabilityConfig",
    "RateLimitConfig",
    "SearchConfig",
    "ServerAuthMethod",
    "ServerConfig",
    "TokenAuthConfig",
    "UploadConfig",
    "WebConfig",
]


DEFAULT_ALLOWED_MIME_TYPES = [
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/tiff",
    "image/bmp",
    "image/gif",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
]


def _split_csv(value: object) -> object:
    """Accept comma-separated strings where a list of strings is expected."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ServerAuthMethod(StrEnum):
    """How the gateway authenticates against Paperless-ngx.

    Attributes:
        TOKEN: ``Authorization: Token <token>`` header.
        BASIC: HTTP basic credentials.
    """

    TOKEN = "token"
    BASIC = "basic"


class ApiAuthMethod(StrEnum):
    """How inbound requests to the gateway routes are authenticated.

    Attributes:
        SESSION: Cookie holding a Paperless-ngx token, validated upstream.
        TOKEN: Static shared-secret header.
        BASIC: Static username/password.
        NONE: No authentication.
    """

    SESSION = "session"
    TOKEN = "token"
    BASIC = "basic"
    NONE = "none"


class LogLevel(StrEnum):
    """Log verbosity level.

    Attributes:
        DEBUG: Detailed debugging information.
        INFO: General operational information.
        WARNING: Warning messages for potential issues.
        ERROR: Error messages for failures.
        CRITICAL: Critical errors that may cause shutdown.
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------------------------------------------------------------------------
# Base Configuration Model
# ---------------------------------------------------------------------------


class ConfigBaseModel(BaseModel):
    """Base model for all configuration sections.

    Uses stricter settings than API models to catch configuration typos:
    - extra="forbid" raises errors for unknown fields
    - validate_default=True ensures defaults are validated
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        validate_default=True,
    )


# ---------------------------------------------------------------------------
# Paperless-ngx Connection
# ---------------------------------------------------------------------------


class ServerConfig(ConfigBaseModel):
    """Paperless-ngx connection configuration.

    Token authentication is used when ``auth_method`` is ``token``;
    basic authentication when it is ``basic`` and both ``username`` and
    ``password`` are set.

    Attributes:
        url: Base URL of the Paperless-ngx instance.
        token: API authentication token (supports ${VAR} interpolation).
        token_file: Path to a file containing the API token.
        username: Username for basic authentication.
        password: Password for basic authentication.
        auth_method: Which credentials to send.
        timeout: Request timeout in seconds.
        connect_timeout: Connection timeout in seconds.
        retry_attempts: Connection retries performed by the transport.
        verify_ssl: Verify TLS certificates.
        page_size: Default page size for list operations.
    """

    url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the Paperless-ngx instance",
    )
    token: str | None = Field(
        default=None,
        description="API authentication token (supports ${VAR} interpolation)",
    )
    token_file: Path | None = Field(
        default=None,
        description="Path to file containing the API token",
    )
    username: str | None = None
    password: str | None = None
    auth_method: ServerAuthMethod = Field(default=ServerAuthMethod.TOKEN)
    timeout: Annotated[float, Field(gt=0, le=3600)] = 30.0
    connect_timeout: Annotated[float, Field(gt=0, le=600)] = 10.0
    retry_attempts: Annotated[
        int,
        Field(ge=0, le=10, description="Transport-level connect retries"),
    ] = 3
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    page_size: Annotated[int, Field(ge=1, le=100000)] = 25

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Remove trailing slash from URL to avoid double slashes."""
        return v.rstrip("/")

    @property
    def uses_basic_auth(self) -> bool:
        """Whether basic credentials should be sent instead of a token."""
        return (
            self.auth_method is ServerAuthMethod.BASIC
            and bool(self.username)
            and bool(self.password)
        )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class UploadConfig(ConfigBaseModel):
    """Document upload limits.

    Attributes:
        max_file_size: Largest accepted upload, in bytes.
        allowed_mime_types: Accepted MIME types; empty accepts any.
        timeout: Request timeout for uploads, in seconds.
    """

    max_file_size: Annotated[int, Field(ge=1)] = 50 * 1024 * 1024
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES),
    )
    timeout: Annotated[float, Field(gt=0, le=3600)] = 300.0

    @field_validator("allowed_mime_types", mode="before")
    @classmethod
    def split_mime_types(cls, v: object) -> object:
        """Accept a comma-separated string of MIME types."""
        return _split_csv(v)


class SearchConfig(ConfigBaseModel):
    """Search defaults.

    Attributes:
        default_limit: Autocomplete suggestion limit when none is given.
        db_only: Default for the ``db_only`` flag on full-text search.
    """

    default_limit: Annotated[int, Field(ge=1, le=1000)] = 10
    db_only: bool = False


class BulkConfig(ConfigBaseModel):
    """Bulk operation limits.

    Attributes:
        max_documents: Most document ids accepted per bulk request.
        timeout: Request timeout for bulk operations, in seconds.
    """

    max_documents: Annotated[int, Field(ge=1)] = 100
    timeout: Annotated[float, Field(gt=0, le=3600)] = 300.0


class MappingsConfig(ConfigBaseModel):
    """Name-to-id mappings for Paperless-ngx objects.

    Lets callers refer to ``"invoice"`` instead of a numeric document
    type id in upload metadata.
    """

    tags: dict[str, int] = Field(default_factory=dict)
    correspondents: dict[str, int] = Field(default_factory=dict)
    document_types: dict[str, int] = Field(default_factory=dict)
    storage_paths: dict[str, int] = Field(default_factory=dict)
    custom_fields: dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Inbound API authentication
# ---------------------------------------------------------------------------


class TokenAuthConfig(ConfigBaseModel):
    """Shared-secret header authentication.

    Attributes:
        header_name: Header carrying the token.
        tokens: Accepted tokens (comma-separated string or list).
    """

    header_name: str = "X-Paperless-Token"
    tokens: list[str] = Field(default_factory=list)

    @field_validator("tokens", mode="before")
    @classmethod
    def split_tokens(cls, v: object) -> object:
        """Accept a comma-separated string of tokens."""
        return _split_csv(v)


class BasicAuthConfig(ConfigBaseModel):
    """Static basic-auth credentials for inbound requests."""

    username: str | None = None
    password: str | None = None


class RateLimitConfig(ConfigBaseModel):
    """Per-client-IP rate limiting.

    Attributes:
        enabled: Whether rate limiting is applied.
        max_attempts: Requests allowed per window.
        decay_minutes: Window length in minutes.
    """

    enabled: bool = True
    max_attempts: Annotated[int, Field(ge=1)] = 60
    decay_minutes: Annotated[float, Field(gt=0)] = 1


class ApiAuthConfig(ConfigBaseModel):
    """Authentication for the gateway's own routes.

    Attributes:
        enabled: Whether the middleware enforces anything at all.
        method: Which authentication strategy to apply.
        token: Shared-secret header settings.
        basic: Basic-auth credentials.
        ip_allowlist: Allowed client IPs or CIDR blocks; empty allows all.
        trust_forwarded_for: Take the client IP from ``X-Forwarded-For``.
        rate_limit: Rate limiting settings.
        cookie_secure: Set the Secure flag on the session cookie.
    """

    enabled: bool = False
    # A plain string so that an unknown method is rejected per request
    # rather than at startup.
    method: str = ApiAuthMethod.TOKEN.value
    token: TokenAuthConfig = Field(default_factory=TokenAuthConfig)
    basic: BasicAuthConfig = Field(default_factory=BasicAuthConfig)
    ip_allowlist: list[str] = Field(default_factory=list)
    trust_forwarded_for: bool = False
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    cookie_secure: bool = Field(
        default=False,
        description="Set Secure flag on session cookie (requires HTTPS)",
    )

    @field_validator("ip_allowlist", mode="before")
    @classmethod
    def split_allowlist(cls, v: object) -> object:
        """Accept a comma-separated string of IPs and CIDR blocks."""
        return _split_csv(v)


# ---------------------------------------------------------------------------
# Web server
# ---------------------------------------------------------------------------


class WebConfig(ConfigBaseModel):
    """API server configuration.

    Attributes:
        host: Bind address for the web server.
        port: Port number for the web server.
    """

    host: str = Field(default="0.0.0.0")  # noqa: S104
    port: Annotated[
        int,
        Field(ge=1, le=65535, description="Port number"),
    ] = 8080


# ---------------------------------------------------------------------------
# Observability
# ---------------------------------------------------------------------------


class LoggingConfig(ConfigBaseModel):
    """Logging configuration.

    Attributes:
        enabled: Whether anything is logged.
        level: Log verbosity level.
        channel: Channel name bound to every log event.
    """

    enabled: bool = True
    level: LogLevel = Field(default=LogLevel.INFO)
    channel: str = "paperless"


class ObservabilityConfig(ConfigBaseModel):
    """Observability configuration.

    Attributes:
        logging: Logging configuration.
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
