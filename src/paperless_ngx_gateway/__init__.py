"""Paperless-ngx REST API gateway: async client, HTTP routes, and CLI."""

from __future__ import annotations


__version__ = "0.1.0"

__all__ = ["__version__"]
