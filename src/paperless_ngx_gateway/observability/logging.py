"""Structured logging for paperless-ngx-gateway.

structlog renders events as logfmt (or colourised console output on a
TTY). Every event carries the configured channel name and, inside a
request, the request id bound by ``RequestIDMiddleware``.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog
from structlog.contextvars import (
    bind_contextvars,
    clear_contextvars,
    merge_contextvars,
)
from structlog.processors import TimeStamper, add_log_level


if TYPE_CHECKING:
    from structlog.typing import EventDict, Processor, WrappedLogger

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

DEFAULT_CHANNEL = "paperless"

# Stdlib level for a disabled configuration; nothing is logged at any level.
_DISABLED_LEVEL = logging.CRITICAL + 10


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_stdlib_level(self) -> int:
        """Return the matching ``logging`` module constant."""
        level: int = getattr(logging, self.name)
        return level


_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    """Return a short random request id (8 hex characters)."""
    return uuid.uuid4().hex[:8]


def get_request_id() -> str | None:
    """Return the request id bound to the current context, if any."""
    return _request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request id to the current context and to structlog.

    Args:
        request_id: Id to bind; a new one is generated when None.

    Returns:
        The bound request id.
    """
    if request_id is None:
        request_id = generate_request_id()

    _request_id_var.set(request_id)
    bind_contextvars(request_id=request_id)
    return request_id


def clear_request_context() -> None:
    """Drop the request id and any other structlog context variables."""
    _request_id_var.set(None)
    clear_contextvars()


def add_request_id(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Processor adding ``request_id`` when bound and not already present."""
    del logger, method_name
    if "request_id" not in event_dict:
        request_id = get_request_id()
        if request_id is not None:
            event_dict["request_id"] = request_id
    return event_dict


def _drop_event(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Processor discarding every event."""
    del logger, method_name, event_dict
    raise structlog.DropEvent


def _channel_processor(channel: str) -> Processor:
    def add_channel(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        del logger, method_name
        event_dict.setdefault("channel", channel)
        return event_dict

    return add_channel


def _create_renderer(
    *,
    colors: bool,
) -> structlog.dev.ConsoleRenderer | structlog.processors.LogfmtRenderer:
    if colors:
        return structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
    return structlog.processors.LogfmtRenderer(
        key_order=["timestamp", "level", "channel", "event", "request_id"],
        drop_missing=True,
        bool_as_flag=False,
    )


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    *,
    enabled: bool = True,
    channel: str | None = None,
    force_colors: bool | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Call once at startup, from the CLI or ``create_app``.

    Args:
        level: Minimum level, as a ``LogLevel`` or a case-insensitive
            name such as ``"INFO"``.
        enabled: When False nothing is emitted at any level.
        channel: Name bound to every event as ``channel``; defaults to
            ``"paperless"``.
        force_colors: Force console colours on or off; None detects a TTY
            on stderr.

    Example:
        >>> configure_logging("debug", channel="gateway")
        >>> get_logger(__name__).info("ready")
    """
    if not isinstance(level, LogLevel):
        level = LogLevel(str(level).lower())

    if force_colors is not None:
        use_colors = force_colors
    else:
        use_colors = (
            sys.stderr is not None
            and hasattr(sys.stderr, "isatty")
            and sys.stderr.isatty()
        )

    min_level = level.to_stdlib_level()

    processors: list[Processor] = [] if enabled else [_drop_event]
    processors += [
        merge_contextvars,
        add_request_id,
        _channel_processor(channel or DEFAULT_CHANNEL),
        add_log_level,
        TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _create_renderer(colors=use_colors),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # httpx and uvicorn log through the stdlib.
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=min_level if enabled else _DISABLED_LEVEL,
        force=True,
    )


def get_logger(
    name: str | None = None,
    **initial_context: object,
) -> structlog.BoundLogger:
    """Return a structlog logger, optionally with bound context.

    Example:
        >>> logger = get_logger(__name__, document_id=12)
        >>> logger.info("document_fetched")
    """
    log: structlog.BoundLogger = structlog.get_logger(name)
    if initial_context:
        log = log.bind(**initial_context)
    return log
