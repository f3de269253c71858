"""Errors raised while loading the gateway configuration.

The CLI prints ``message`` after ``Error:`` and then each line of ``details``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


__all__ = [
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
]

ENV_HINT = (
    "pass --config or set PAPERLESS_SERVER__URL and PAPERLESS_TOKEN "
    "in the environment"
)


class ConfigurationError(Exception):
    """Settings could not be loaded.

    Attributes:
        message: One-line summary.
        details: Further lines, one per problem.
    """

    def __init__(self, message: str, details: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details)


class ConfigurationFileNotFoundError(ConfigurationError):
    """No YAML file at ``--config`` or in any of the search locations.

    Attributes:
        path: The explicit path, or None when the defaults were searched.
        searched_paths: Locations tried in order.
    """

    def __init__(
        self,
        path: str | None = None,
        searched_paths: Sequence[str] | None = None,
    ) -> None:
        self.path = path
        self.searched_paths = list(searched_paths or [])

        if path:
            message = f"Configuration file not found: {path}"
        elif self.searched_paths:
            message = "Configuration file not found. Searched: " + ", ".join(
                self.searched_paths
            )
        else:
            message = "Configuration file not found"
        super().__init__(message, [] if path else [f"Hint: {ENV_HINT}"])


class ConfigurationValidationError(ConfigurationError):
    """The merged YAML, environment and defaults failed validation.

    ``errors`` holds pydantic's error dicts; each becomes a
    ``section.key: reason`` line in ``details``.
    """

    def __init__(
        self,
        message: str,
        errors: Sequence[Mapping[str, object]] | None = None,
    ) -> None:
        self.errors = [dict(error) for error in errors or []]
        super().__init__(message, [_describe(error) for error in self.errors])

    @property
    def fields(self) -> list[str]:
        """Dotted setting names that failed, e.g. ``web.port``."""
        return [_location(error) for error in self.errors]


def _location(error: Mapping[str, object]) -> str:
    loc = error.get("loc")
    if isinstance(loc, (list, tuple)):
        return ".".join(str(part) for part in loc) or "(root)"
    return str(loc) if loc else "(root)"


def _describe(error: Mapping[str, object]) -> str:
    return f"{_location(error)}: {error.get('msg', 'invalid value')}"
