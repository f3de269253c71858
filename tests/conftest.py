"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import pytest
import structlog

from paperless_ngx_gateway.config import Settings, clear_settings_cache
from paperless_ngx_gateway.observability import clear_request_context


if TYPE_CHECKING:
    from collections.abc import Iterator


PAPERLESS_URL = "http://paperless.test:8000"
PAPERLESS_TOKEN = "test-token-abc123"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Hide the caller's ``PAPERLESS_*`` variables and reset cached settings."""
    for name in list(os.environ):
        if name.startswith("PAPERLESS_"):
            monkeypatch.delenv(name)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo ``configure_logging`` after each test.

    It binds the current ``sys.stderr``; a stream that a test replaced and
    closed must not leak into the next test.
    """
    root = logging.getLogger()
    level = root.level
    yield
    structlog.reset_defaults()
    clear_request_context()
    # basicConfig installs a plain StreamHandler; pytest's own handlers
    # are subclasses and stay.
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def paperless_url() -> str:
    """Base URL of the mocked Paperless-ngx instance."""
    return PAPERLESS_URL


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the mocked Paperless-ngx instance."""
    return Settings(
        server={"url": PAPERLESS_URL, "token": PAPERLESS_TOKEN},
    )
