"""Custom exceptions for the Paperless-ngx API client.

The four concrete error classes form a tagged family: each carries an
``ErrorKind`` and declares ``__match_args__`` so callers may dispatch
with a ``match`` statement instead of a chain of ``except`` clauses:

    match exc:
        case PaperlessApiError(404):
            ...
        case PaperlessConnectionError(_, reason) if "timeout" in reason:
            ...

Classification helpers (``is_timeout_error``, ``is_file_size_error``,
...) are substring heuristics over the upstream error text. They are
brittle across Paperless-ngx versions and kept for compatibility.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar, Self


__all__ = [
    "ErrorKind",
    "PaperlessApiError",
    "PaperlessConnectionError",
    "PaperlessError",
    "PaperlessFileError",
    "PaperlessValidationError",
]


_UNIQUE_MESSAGE_MARKERS = (
    "unique constraint",
    "already exists",
    "duplicate",
)
_UNIQUE_FIELD_MARKERS = ("unique", "already exists", "duplicate")


class ErrorKind(StrEnum):
    """Discriminator for the Paperless error family."""

    API = "api"
    CONNECTION = "connection"
    VALIDATION = "validation"
    FILE = "file"


class PaperlessError(Exception):
    """Base exception for all Paperless-ngx gateway errors.

    Attributes:
        message: Human-readable error description.
        context: Free-form structured context for logging and error bodies.
    """

    kind: ClassVar[ErrorKind]

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            context: Additional structured context.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def _message_contains(self, *needles: str) -> bool:
        lowered = self.message.lower()
        return any(needle in lowered for needle in needles)


class PaperlessApiError(PaperlessError):
    """Raised when Paperless-ngx answers with a non-2xx status.

    Attributes:
        status_code: The HTTP status received from Paperless-ngx.
        response_data: The decoded error body (empty if not a JSON object).
    """

    kind = ErrorKind.API
    __match_args__ = ("status_code", "response_data")

    def __init__(
        self,
        message: str,
        status_code: int,
        response_data: dict[str, Any] | None = None,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the API error.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code of the failed response.
            response_data: Decoded JSON error body.
            context: Additional structured context.
        """
        super().__init__(message, context=context)
        self.status_code = status_code
        self.response_data = response_data or {}

    def __str__(self) -> str:
        """Return the message (which already embeds the status)."""
        return self.message

    @property
    def is_client_error(self) -> bool:
        """Whether the status is in the 4xx range."""
        return 400 <= self.status_code < 500  # noqa: PLR2004

    @property
    def is_server_error(self) -> bool:
        """Whether the status is 5xx or above."""
        return self.status_code >= 500  # noqa: PLR2004

    @property
    def is_authentication_error(self) -> bool:
        """Whether the status is 401."""
        return self.status_code == 401  # noqa: PLR2004

    @property
    def is_authorization_error(self) -> bool:
        """Whether the status is 403."""
        return self.status_code == 403  # noqa: PLR2004

    @property
    def is_not_found_error(self) -> bool:
        """Whether the status is 404."""
        return self.status_code == 404  # noqa: PLR2004

    @property
    def is_validation_error(self) -> bool:
        """Whether the status is 422."""
        return self.status_code == 422  # noqa: PLR2004

    @property
    def is_bad_request_error(self) -> bool:
        """Whether the status is 400."""
        return self.status_code == 400  # noqa: PLR2004

    @property
    def is_unique_constraint_violation(self) -> bool:
        """Whether a 400 response reports a duplicate name or similar.

        Checks the message, then every string inside list-valued fields
        of the response body.
        """
        if not self.is_bad_request_error:
            return False

        if self._message_contains(*_UNIQUE_MESSAGE_MARKERS):
            return True

        for value in self.response_data.values():
            if not isinstance(value, list):
                continue
            for error in value:
                if isinstance(error, str) and any(
                    marker in error.lower() for marker in _UNIQUE_FIELD_MARKERS
                ):
                    return True
        return False


class PaperlessConnectionError(PaperlessError):
    """Raised when Paperless-ngx cannot be reached.

    Attributes:
        base_url: The base URL that was being connected to.
        reason: Free-text reason, used for classification.
    """

    kind = ErrorKind.CONNECTION
    __match_args__ = ("base_url", "reason")

    def __init__(
        self,
        message: str = "Failed to connect to Paperless-ngx",
        base_url: str = "",
        reason: str | None = None,
        *,
        cause: Exception | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error description.
            base_url: Base URL of the Paperless-ngx instance.
            reason: Why the connection failed.
            cause: The underlying transport exception.
            context: Additional structured context.
        """
        super().__init__(message, context=context)
        self.base_url = base_url
        self.reason = reason
        self.__cause__ = cause

    def _reason_contains(self, needle: str) -> bool:
        return self.reason is not None and needle in self.reason.lower()

    @property
    def is_timeout_error(self) -> bool:
        """Whether the reason mentions a timeout."""
        return self._reason_contains("timeout")

    @property
    def is_dns_error(self) -> bool:
        """Whether the reason mentions DNS resolution."""
        return self._reason_contains("dns")

    @property
    def is_ssl_error(self) -> bool:
        """Whether the reason mentions SSL/TLS."""
        return self._reason_contains("ssl")

    @property
    def is_network_unreachable(self) -> bool:
        """Whether the reason mentions the network."""
        return self._reason_contains("network")


class PaperlessValidationError(PaperlessError):
    """Raised when local input validation fails.

    Attributes:
        field: The primary field that failed validation.
        errors: Mapping of field names to lists of error messages.
    """

    kind = ErrorKind.VALIDATION
    __match_args__ = ("field", "errors")

    def __init__(
        self,
        message: str,
        field: str = "",
        errors: dict[str, list[str]] | None = None,
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the validation error.

        Args:
            message: Human-readable error description.
            field: The field that failed validation.
            errors: Field-level validation errors.
            context: Additional structured context.
        """
        super().__init__(message, context=context)
        self.field = field
        self.errors: dict[str, list[str]] = {
            name: list(messages) for name, messages in (errors or {}).items()
        }

    def add_error(self, field: str, message: str) -> Self:
        """Record another error message for ``field``."""
        self.errors.setdefault(field, []).append(message)
        return self

    def has_error(self, field: str) -> bool:
        """Whether ``field`` has at least one error."""
        return bool(self.errors.get(field))

    def get_field_errors(self, field: str) -> list[str]:
        """Return the errors recorded for ``field``."""
        return list(self.errors.get(field, []))

    @property
    def first_error(self) -> str | None:
        """The first recorded error message, in insertion order."""
        for field_errors in self.errors.values():
            if field_errors:
                return field_errors[0]
        return None


class PaperlessFileError(PaperlessError):
    """Raised for file problems during uploads and downloads.

    Attributes:
        file_path: Path of the file involved.
        file_name: Name of the file involved.
        file_size: Size in bytes, if known.
        operation: The operation being performed (e.g. ``"upload"``).
    """

    kind = ErrorKind.FILE
    __match_args__ = ("file_path", "operation")

    def __init__(  # noqa: PLR0913
        self,
        message: str,
        file_path: str = "",
        file_name: str = "",
        file_size: int | None = None,
        operation: str = "",
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the file error.

        Args:
            message: Human-readable error description.
            file_path: Path of the file.
            file_name: Name of the file.
            file_size: Size in bytes, if known.
            operation: The operation being performed.
            context: Additional structured context.
        """
        super().__init__(message, context=context)
        self.file_path = file_path
        self.file_name = file_name
        self.file_size = file_size
        self.operation = operation

    @property
    def is_file_size_error(self) -> bool:
        """Whether the message reports a size problem."""
        return self._message_contains("size")

    @property
    def is_file_type_error(self) -> bool:
        """Whether the message reports a type/MIME problem."""
        return self._message_contains("type", "mime")

    @property
    def is_permission_error(self) -> bool:
        """Whether the message reports a permission problem."""
        return self._message_contains("permission", "readable")

    @property
    def is_file_not_found_error(self) -> bool:
        """Whether the message reports a missing file."""
        return self._message_contains("not found", "does not exist")

    @property
    def is_file_corruption_error(self) -> bool:
        """Whether the message reports a corrupt or invalid file."""
        return self._message_contains("corrupt", "invalid")
