"""Configuration for paperless-ngx-gateway.

Settings are Pydantic models loaded from a YAML file and ``PAPERLESS_*``
environment variables. YAML values may reference the environment with
``${VAR}`` and ``${VAR:-default}``.

Example:
    >>> from paperless_ngx_gateway.config import load_settings
    >>> settings = load_settings("config.yaml")
    >>> settings.upload.max_file_size
    52428800
"""

from __future__ import annotations

from paperless_ngx_gateway.config.exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)
from paperless_ngx_gateway.config.schema import (
    ApiAuthConfig,
    ApiAuthMethod,
    BasicAuthConfig,
    BulkConfig,
    ConfigBaseModel,
    LoggingConfig,
    LogLevel,
    MappingsConfig,
    ObservabilityConfig,
    RateLimitConfig,
    SearchConfig,
    ServerAuthMethod,
    ServerConfig,
    TokenAuthConfig,
    UploadConfig,
    WebConfig,
)
from paperless_ngx_gateway.config.settings import (
    Settings,
    clear_settings_cache,
    find_config_file,
    get_settings,
    load_settings,
)


__all__ = [
    "ApiAuthConfig",
    "ApiAuthMethod",
    "BasicAuthConfig",
    "BulkConfig",
    "ConfigBaseModel",
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
    "LogLevel",
    "LoggingConfig",
    "MappingsConfig",
    "ObservabilityConfig",
    "RateLimitConfig",
    "SearchConfig",
    "ServerAuthMethod",
    "ServerConfig",
    "Settings",
    "TokenAuthConfig",
    "UploadConfig",
    "WebConfig",
    "clear_settings_cache",
    "find_config_file",
    "get_settings",
    "load_settings",
]
