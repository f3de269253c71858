"""Settings management for paperless-ngx-gateway.

Settings come from keyword arguments, ``PAPERLESS_*`` environment
variables, a YAML file, and defaults, highest precedence first.

Example:
    >>> from paperless_ngx_gateway.config import load_settings
    >>> settings = load_settings()
    >>> settings.server.url
    'http://localhost:8000'
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from paperless_ngx_gateway.config.exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)
from paperless_ngx_gateway.config.schema import (
    ApiAuthConfig,
    BulkConfig,
    MappingsConfig,
    ObservabilityConfig,
    SearchConfig,
    ServerConfig,
    UploadConfig,
    WebConfig,
)


if TYPE_CHECKING:
    from collections.abc import Sequence


__all__ = [
    "Settings",
    "clear_settings_cache",
    "find_config_file",
    "get_settings",
    "load_settings",
]


# ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

TOKEN_ENV_VAR = "PAPERLESS_TOKEN"


def _interpolate_env_vars(value: object) -> object:
    """Recursively expand ``${VAR}`` and ``${VAR:-default}`` in strings.

    Unset variables without a default expand to the empty string.

    Example:
        >>> os.environ["MY_TOKEN"] = "secret123"
        >>> _interpolate_env_vars({"token": "${MY_TOKEN}"})
        {'token': 'secret123'}
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            return match.group(2) or ""

        return _ENV_VAR_PATTERN.sub(replace, value)

    if isinstance(value, dict):
        return {key: _interpolate_env_vars(item) for key, item in value.items()}

    if isinstance(value, list):
        return [_interpolate_env_vars(item) for item in value]

    return value


class _InterpolatingYamlConfigSettingsSource(YamlConfigSettingsSource):
    """YAML source that expands environment references before validation."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | str | None = None,
    ) -> None:
        if yaml_file is None:
            super().__init__(settings_cls)
        else:
            super().__init__(settings_cls, yaml_file=yaml_file)

    def _read_files(
        self,
        files: Path | str | Sequence[Path | str] | None,
    ) -> dict[str, Any]:
        data = _interpolate_env_vars(super()._read_files(files))
        if not isinstance(data, dict):  # pragma: no cover
            return {}
        return data


class Settings(BaseSettings):
    """Gateway settings.

    Nested values are addressed from the environment with a double
    underscore, e.g. ``PAPERLESS_SERVER__URL`` or
    ``PAPERLESS_API_AUTH__METHOD``. List-valued settings read from the
    environment must be JSON (``'["a", "b"]'``); YAML and keyword
    arguments also accept comma-separated strings.

    Attributes:
        server: Paperless-ngx connection settings.
        upload: Upload size and type limits.
        search: Search defaults.
        bulk: Bulk operation limits.
        mappings: Name-to-id mappings used when uploading.
        api_auth: Authentication for the gateway's own routes.
        web: Bind address for the API server.
        observability: Logging settings.
    """

    model_config = SettingsConfigDict(
        yaml_file=None,
        yaml_file_encoding="utf-8",
        env_prefix="PAPERLESS_",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    CONFIG_SEARCH_PATHS: ClassVar[list[Path]] = [
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".config" / "paperless-gateway" / "config.yaml",
        Path("/etc/paperless-gateway/config.yaml"),
    ]

    # Set by load_settings() for the duration of one instantiation.
    _yaml_file_override: ClassVar[Path | str | None] = None

    server: ServerConfig = Field(default_factory=ServerConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    bulk: BulkConfig = Field(default_factory=BulkConfig)
    mappings: MappingsConfig = Field(default_factory=MappingsConfig)
    api_auth: ApiAuthConfig = Field(default_factory=ApiAuthConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @model_validator(mode="after")
    def resolve_server_token(self) -> Settings:
        """Fill ``server.token`` from ``token_file`` or ``PAPERLESS_TOKEN``.

        An explicit token always wins. A configured ``token_file`` that
        does not exist is an error.

        Raises:
            ValueError: If ``token_file`` is set but missing.
        """
        if self.server.token:
            return self

        if self.server.token_file:
            token_path = self.server.token_file
            if not token_path.is_file():
                msg = f"Token file not found: {token_path}"
                raise ValueError(msg)
            self.server.token = token_path.read_text().strip()
            return self

        env_token = os.environ.get(TOKEN_ENV_VAR)
        if env_token:
            self.server.token = env_token

        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources: arguments, environment, YAML, secrets (no dotenv)."""
        return (
            init_settings,
            env_settings,
            _InterpolatingYamlConfigSettingsSource(
                settings_cls,
                yaml_file=cls._yaml_file_override,
            ),
            file_secret_settings,
        )


_cached_settings: Settings | None = None


def find_config_file(config_path: Path | str | None = None) -> Path | None:
    """Locate the configuration file.

    Args:
        config_path: Explicit path, or None to try ``CONFIG_SEARCH_PATHS``.

    Returns:
        The first existing file, or None.
    """
    if config_path is not None:
        path = Path(config_path)
        return path if path.is_file() else None

    for search_path in Settings.CONFIG_SEARCH_PATHS:
        if search_path.is_file():
            return search_path
    return None


def load_settings(
    config_path: Path | str | None = None,
    *,
    require_config_file: bool = False,
) -> Settings:
    """Load, validate, and cache the gateway settings.

    Args:
        config_path: YAML file to read. When None the standard locations
            are searched (./config.yaml, ./config.yml,
            ~/.config/paperless-gateway/config.yaml,
            /etc/paperless-gateway/config.yaml).
        require_config_file: Fail when no file is found instead of
            falling back to the environment and defaults.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationFileNotFoundError: No file found and one is required.
        ConfigurationValidationError: The configuration is invalid.
    """
    global _cached_settings  # noqa: PLW0603

    config_file = find_config_file(config_path)

    if config_file is None and require_config_file:
        raise ConfigurationFileNotFoundError(
            path=str(config_path) if config_path else None,
            searched_paths=[str(p) for p in Settings.CONFIG_SEARCH_PATHS],
        )

    try:
        Settings._yaml_file_override = config_file  # noqa: SLF001
        try:
            settings = Settings()
        finally:
            Settings._yaml_file_override = None  # noqa: SLF001
    except ConfigurationError:
        raise
    except Exception as exc:
        msg = f"Failed to load configuration: {exc}"
        errors = exc.errors() if hasattr(exc, "errors") else None
        raise ConfigurationValidationError(msg, errors) from exc

    _cached_settings = settings
    return settings


def get_settings() -> Settings:
    """Return the cached settings, loading them on first use."""
    global _cached_settings  # noqa: PLW0603

    if _cached_settings is None:
        _cached_settings = load_settings()
    return _cached_settings


def clear_settings_cache() -> None:
    """Forget the cached settings so the next access reloads them."""
    global _cached_settings  # noqa: PLW0603
    _cached_settings = None
