"""Paperless-ngx API client, error family, and error handler.

Example:
    ```python
    from paperless_ngx_gateway.paperless import PaperlessApiError, PaperlessClient

    async with PaperlessClient("http://paperless:8000", token="...") as client:
        result = await client.upload_document(
            Path("scan.pdf"),
            {"title": "Scan", "tags": ["inbox", 7]},
        )
        task = await client.get_task(result["task_id"])

        try:
            await client.get_document(999)
        except PaperlessApiError as exc:
            if exc.is_not_found_error:
                ...
    ```
"""

from __future__ import annotations

from paperless_ngx_gateway.paperless.client import MAPPING_KINDS, PaperlessClient
from paperless_ngx_gateway.paperless.exceptions import (
    ErrorKind,
    PaperlessApiError,
    PaperlessConnectionError,
    PaperlessError,
    PaperlessFileError,
    PaperlessValidationError,
)
from paperless_ngx_gateway.paperless.models import BulkEditRequest, DocumentUpdate


__all__ = [
    "MAPPING_KINDS",
    "BulkEditRequest",
    "DocumentUpdate",
    "ErrorKind",
    "PaperlessApiError",
    "PaperlessClient",
    "PaperlessConnectionError",
    "PaperlessError",
    "PaperlessFileError",
    "PaperlessValidationError",
]
