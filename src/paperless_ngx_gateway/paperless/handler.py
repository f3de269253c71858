"""Translate Paperless errors into JSON bodies, status codes, and advice.

This is the single place where a ``PaperlessError`` becomes an HTTP
response for the gateway's own routes. Direct client callers receive
the typed exception instead.
"""

from __future__ import annotations

from typing import Any

from paperless_ngx_gateway.observability import get_logger
from paperless_ngx_gateway.paperless.exceptions import (
    PaperlessApiError,
    PaperlessConnectionError,
    PaperlessError,
    PaperlessFileError,
    PaperlessValidationError,
)


__all__ = [
    "handle",
    "http_status_code",
    "is_retryable",
    "user_friendly_message",
]

logger = get_logger(__name__)


def handle(exc: PaperlessError) -> dict[str, Any]:
    """Log ``exc`` and build a structured error body.

    Args:
        exc: The error to translate.

    Returns:
        ``{"success": False, "error": {...}}`` with kind-specific fields.
    """
    logger.error(
        "paperless_error",
        error=exc.message,
        error_type=type(exc).__name__,
        kind=exc.kind.value,
        context=exc.context or None,
    )

    error: dict[str, Any] = {
        "message": exc.message,
        "kind": exc.kind.value,
        "type": type(exc).__name__,
        "retryable": is_retryable(exc),
        "user_message": user_friendly_message(exc),
    }

    match exc:
        case PaperlessApiError():
            error.update(
                status_code=exc.status_code,
                response_data=exc.response_data,
                is_client_error=exc.is_client_error,
                is_server_error=exc.is_server_error,
                is_authentication_error=exc.is_authentication_error,
                is_authorization_error=exc.is_authorization_error,
                is_not_found_error=exc.is_not_found_error,
                is_validation_error=exc.is_validation_error,
                is_unique_constraint_violation=exc.is_unique_constraint_violation,
                is_bad_request_error=exc.is_bad_request_error,
            )
        case PaperlessConnectionError():
            error.update(
                base_url=exc.base_url,
                reason=exc.reason,
                is_timeout_error=exc.is_timeout_error,
                is_dns_error=exc.is_dns_error,
                is_ssl_error=exc.is_ssl_error,
                is_network_unreachable=exc.is_network_unreachable,
            )
        case PaperlessValidationError():
            error.update(
                field=exc.field,
                validation_errors=exc.errors,
                first_error=exc.first_error,
            )
        case PaperlessFileError():
            error.update(
                file_path=exc.file_path,
                file_name=exc.file_name,
                file_size=exc.file_size,
                operation=exc.operation,
                is_file_size_error=exc.is_file_size_error,
                is_file_type_error=exc.is_file_type_error,
                is_permission_error=exc.is_permission_error,
                is_file_not_found_error=exc.is_file_not_found_error,
                is_file_corruption_error=exc.is_file_corruption_error,
            )

    if exc.context:
        error["context"] = exc.context

    return {"success": False, "error": error}


def is_retryable(exc: PaperlessError) -> bool:
    """Whether the caller may reasonably retry the failed operation.

    Nothing in this package retries; this only classifies.
    """
    match exc:
        case PaperlessApiError():
            return exc.is_server_error
        case PaperlessConnectionError():
            return exc.is_timeout_error or exc.is_network_unreachable
        case _:
            return False


def user_friendly_message(exc: PaperlessError) -> str:  # noqa: C901, PLR0911, PLR0912
    """Return a message suitable for end users."""
    match exc:
        case PaperlessApiError():
            if exc.is_authentication_error:
                return "Authentication failed. Please check your credentials."
            if exc.is_authorization_error:
                return (
                    "Access denied. You do not have permission "
                    "to perform this action."
                )
            if exc.is_not_found_error:
                return "The requested resource was not found."
            if exc.is_validation_error:
                return "The request data is invalid. Please check your input."
            if exc.is_unique_constraint_violation:
                return (
                    "A resource with this name already exists. "
                    "Please use a different name."
                )
            if exc.is_bad_request_error:
                return "The request is invalid. Please check your input and try again."
            if exc.is_server_error:
                return "The server encountered an error. Please try again later."
            return "An error occurred while processing your request."

        case PaperlessConnectionError():
            if exc.is_timeout_error:
                return (
                    "The request timed out. Please check your connection "
                    "and try again."
                )
            if exc.is_dns_error:
                return (
                    "Unable to resolve the server address. "
                    "Please check your configuration."
                )
            if exc.is_ssl_error:
                return "SSL connection failed. Please check your SSL configuration."
            if exc.is_network_unreachable:
                return "Network connection failed. Please check your network settings."
            return "Unable to connect to the server. Please check your connection."

        case PaperlessValidationError():
            return f"Validation failed: {exc.first_error or exc.message}"

        case PaperlessFileError():
            if exc.is_file_size_error:
                return "File size exceeds the maximum allowed limit."
            if exc.is_file_type_error:
                return "File type is not supported."
            if exc.is_permission_error:
                return "Unable to access the file. Please check file permissions."
            if exc.is_file_not_found_error:
                return "File not found or inaccessible."
            if exc.is_file_corruption_error:
                return "File appears to be corrupted or invalid."
            return f"File operation failed: {exc.message}"

    return "An unexpected error occurred."


def http_status_code(exc: PaperlessError) -> int:
    """Map an error to the status code the gateway responds with."""
    match exc:
        case PaperlessApiError(status_code):
            return status_code
        case PaperlessConnectionError():
            return 503
        case PaperlessValidationError():
            return 422
        case PaperlessFileError():
            return 400
    return 500
