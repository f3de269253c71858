"""Observability helpers (structured logging and request ids)."""

from __future__ import annotations

from paperless_ngx_gateway.observability.logging import (
    DEFAULT_CHANNEL,
    LogLevel,
    clear_request_context,
    configure_logging,
    generate_request_id,
    get_logger,
    get_request_id,
    set_request_id,
)


__all__ = [
    "DEFAULT_CHANNEL",
    "LogLevel",
    "clear_request_context",
    "configure_logging",
    "generate_request_id",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
