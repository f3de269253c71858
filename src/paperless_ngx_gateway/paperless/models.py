"""Pydantic models for request bodies accepted by the gateway routes.

Responses from Paperless-ngx are passed through as plain mappings; these
models only validate what the gateway's own callers send in.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


__all__ = [
    "BulkEditRequest",
    "DocumentUpdate",
]


class PaperlessBaseModel(BaseModel):
    """Base model with common configuration for gateway request bodies."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class DocumentUpdate(PaperlessBaseModel):
    """Fields accepted when updating a document.

    Only non-None fields are forwarded to Paperless-ngx.
    """

    title: str | None = Field(default=None, max_length=255)
    correspondent: int | None = None
    document_type: int | None = None
    tags: list[int] | None = None
    storage_path: int | None = None
    archive_serial_number: int | None = None


class BulkEditRequest(PaperlessBaseModel):
    """Body for the bulk-edit route.

    ``method`` and ``parameters`` follow the Paperless-ngx bulk edit
    contract; the flat fields are forwarded as-is for callers that use
    them instead.
    """

    documents: list[int] = Field(min_length=1)
    method: str | None = None
    parameters: dict[str, Any] | None = None
    title: str | None = Field(default=None, max_length=255)
    correspondent: int | None = None
    document_type: int | None = None
    tags: list[int] | None = None
    storage_path: int | None = None

    def edit_data(self) -> dict[str, Any]:
        """Return everything except the document ids, dropping unset fields."""
        return self.model_dump(exclude_none=True, exclude={"documents"})
