"""Async HTTP client for the Paperless-ngx REST API.

One coroutine per remote endpoint. Reads and writes return the decoded
JSON body as a plain mapping, deletes return whether the server answered
2xx, and binary endpoints return the raw bytes. Any other non-2xx answer
raises ``PaperlessApiError``; transport failures raise
``PaperlessConnectionError``.
"""

from __future__ import annotations

import mimetypes
import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Self

import httpx
import structlog

from paperless_ngx_gateway.config.schema import (
    BulkConfig,
    MappingsConfig,
    SearchConfig,
    UploadConfig,
)
from paperless_ngx_gateway.paperless.exceptions import (
    PaperlessApiError,
    PaperlessConnectionError,
    PaperlessError,
    PaperlessFileError,
    PaperlessValidationError,
)


if TYPE_CHECKING:
    from paperless_ngx_gateway.config import Settings


__all__ = ["MAPPING_KINDS", "PaperlessClient"]


MAPPING_KINDS = frozenset(MappingsConfig.model_fields)

# Upload metadata keys whose string values may name a configured mapping.
_MAPPED_METADATA_KEYS = {
    "tags": "tags",
    "correspondent": "correspondents",
    "document_type": "document_types",
    "storage_path": "storage_paths",
}

_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated with hostname",
)

_MESSAGE_KEYS = ("detail", "message", "error")

Filters = Mapping[str, Any]


def _decode_json(response: httpx.Response) -> Any:  # noqa: ANN401
    """Return the decoded body, or None when it is empty or not JSON."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _join(values: list[Any]) -> str:
    return ", ".join(str(value) for value in values)


def _format_form_value(value: Any) -> str:  # noqa: ANN401
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _stream_size(handle: BinaryIO) -> int | None:
    """Bytes remaining in a seekable stream; None when it cannot seek."""
    if not handle.seekable():
        return None
    position = handle.tell()
    end = handle.seek(0, os.SEEK_END)
    handle.seek(position)
    return end - position


class PaperlessClient:
    """Async client for the Paperless-ngx REST API.

    Authenticates with ``Authorization: Token <token>`` or, when both a
    username and password are given, HTTP basic credentials. Credentials
    are attached per request, so ``set_token`` and ``set_basic_auth``
    apply to the very next call.

    Example:
        ```python
        async with PaperlessClient("http://paperless:8000", token="...") as client:
            page = await client.get_documents({"title__icontains": "invoice"})
            for doc in page["results"]:
                print(doc["title"])
        ```

    Attributes:
        base_url: Base URL of the Paperless-ngx instance, without a
            trailing slash.
        page_size: Page size used when a list call passes none.
    """

    DEFAULT_TIMEOUT = 30.0
    DEFAULT_CONNECT_TIMEOUT = 10.0

    def __init__(  # noqa: PLR0913
        self,
        base_url: str,
        token: str | None = None,
        username: str | None = None,
        password: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        retry_attempts: int = 0,
        verify_ssl: bool = True,
        page_size: int = 25,
        upload: UploadConfig | None = None,
        search: SearchConfig | None = None,
        bulk: BulkConfig | None = None,
        mappings: MappingsConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the Paperless-ngx instance
                (e.g. ``"http://localhost:8000"``).
            token: API token.
            username: Username for basic authentication.
            password: Password for basic authentication.
            timeout: Default request timeout in seconds.
            connect_timeout: Connection timeout in seconds.
            retry_attempts: Connection retries performed by the transport.
            verify_ssl: Verify TLS certificates.
            page_size: Default page size for list operations.
            upload: Upload limits; defaults apply when omitted.
            search: Search defaults.
            bulk: Bulk operation limits.
            mappings: Name-to-id mappings used for upload metadata.
            transport: Custom transport, mainly for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self._token = token
        self._username = username
        self._password = password
        self._use_basic_auth = bool(username) and bool(password)
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._connect_timeout = connect_timeout
        self._retry_attempts = retry_attempts
        self._verify_ssl = verify_ssl
        self._upload = upload or UploadConfig()
        self._search = search or SearchConfig()
        self._bulk = bulk or BulkConfig()
        self._mappings = mappings or MappingsConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        """Build a client from the ``server``, ``upload``, ``search``,
        ``bulk`` and ``mappings`` settings sections."""
        server = settings.server
        basic = server.uses_basic_auth
        return cls(
            server.url,
            token=server.token,
            username=server.username if basic else None,
            password=server.password if basic else None,
            timeout=server.timeout,
            connect_timeout=server.connect_timeout,
            retry_attempts=server.retry_attempts,
            verify_ssl=server.verify_ssl,
            page_size=server.page_size,
            upload=settings.upload,
            search=settings.search,
            bulk=settings.bulk,
            mappings=settings.mappings,
        )

    @property
    def uses_basic_auth(self) -> bool:
        """Whether requests currently carry basic credentials."""
        return self._use_basic_auth

    def set_token(self, token: str) -> Self:
        """Switch this instance to token authentication."""
        self._token = token
        self._use_basic_auth = False
        return self

    def set_basic_auth(self, username: str, password: str) -> Self:
        """Switch this instance to HTTP basic authentication."""
        self._username = username
        self._password = password
        self._use_basic_auth = True
        return self

    def resolve_mapped_id(self, kind: str, name: str) -> int | None:
        """Look up ``name`` in the configured ``kind`` mapping.

        Args:
            kind: One of ``tags``, ``correspondents``, ``document_types``,
                ``storage_paths``, ``custom_fields``.
            name: The configured name.

        Returns:
            The mapped id, or None when the name is not configured.

        Raises:
            ValueError: If ``kind`` is not a mapping section.
        """
        if kind not in MAPPING_KINDS:
            msg = f"Unknown mapping kind: {kind!r}"
            raise ValueError(msg)
        mapping: dict[str, int] = getattr(self._mappings, kind)
        return mapping.get(name)

    async def __aenter__(self) -> Self:
        """Enter async context and create the HTTP client."""
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context and close the HTTP client."""
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            transport = self._transport or httpx.AsyncHTTPTransport(
                retries=self._retry_attempts,
                verify=self._verify_ssl,
            )
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
                transport=transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release its connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    def _auth_kwargs(self) -> dict[str, Any]:
        if self._use_basic_auth and self._username and self._password:
            return {"auth": httpx.BasicAuth(self._username, self._password)}
        if self._token:
            return {"headers": {"Authorization": f"Token {self._token}"}}
        return {}

    def _timeout_for(self, seconds: float) -> httpx.Timeout:
        return httpx.Timeout(seconds, connect=self._connect_timeout)

    async def _send(  # noqa: PLR0913
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any | None = None,  # noqa: ANN401
        data: Mapping[str, Any] | None = None,
        files: Mapping[str, Any] | None = None,
        timeout: httpx.Timeout | None = None,  # noqa: ASYNC109
    ) -> httpx.Response:
        """Send one request and map transport failures.

        Raises:
            PaperlessConnectionError: If Paperless-ngx cannot be reached.
        """
        client = await self._ensure_client()
        log = self._logger.bind(method=method, path=path)

        try:
            response = await client.request(
                method,
                path,
                params=dict(params) if params else None,
                json=json,
                data=dict(data) if data else None,
                files=files,
                timeout=timeout or self._timeout,
                **self._auth_kwargs(),
            )
        except httpx.TimeoutException as exc:
            raise self._connection_error(f"Connection timeout: {exc}", exc) from exc
        except httpx.TransportError as exc:
            raise self._connection_error(self._transport_reason(exc), exc) from exc

        log.debug(
            "paperless_response",
            status_code=response.status_code,
            elapsed_ms=round(response.elapsed.total_seconds() * 1000, 1),
        )
        return response

    @staticmethod
    def _transport_reason(exc: httpx.TransportError) -> str:
        text = str(exc) or type(exc).__name__
        lowered = text.lower()
        if any(marker in lowered for marker in _DNS_MARKERS):
            return f"DNS resolution failed: {text}"
        if "ssl" in lowered:
            return text
        if "certificate" in lowered:
            return f"SSL error: {text}"
        if isinstance(exc, httpx.NetworkError):
            return f"Network error: {text}"
        return text

    def _connection_error(
        self,
        reason: str,
        cause: Exception,
    ) -> PaperlessConnectionError:
        self._logger.warning(
            "paperless_connection_failed",
            base_url=self.base_url,
            reason=reason,
        )
        return PaperlessConnectionError(
            f"Failed to connect to Paperless-ngx at {self.base_url}: {reason}",
            base_url=self.base_url,
            reason=reason,
            cause=cause,
        )

    def _api_error(self, response: httpx.Response) -> PaperlessApiError:  # noqa: C901
        """Build the error for a non-2xx response."""
        status = response.status_code
        message = f"Paperless API Error: {status}"
        body = _decode_json(response)

        if isinstance(body, dict):
            for key in _MESSAGE_KEYS:
                if body.get(key) is not None:
                    message += f" - {body[key]}"
            non_field = body.get("non_field_errors")
            if isinstance(non_field, list) and non_field:
                message += f" - {_join(non_field)}"
            for field, value in body.items():
                if field in _MESSAGE_KEYS or field == "non_field_errors":
                    continue
                if isinstance(value, list) and value:
                    message += f" - {field}: {_join(value)}"
        elif isinstance(body, list) and body:
            if all(isinstance(item, str) for item in body):
                message += f" - {_join(body)}"
        elif body is None and response.text.strip():
            message += f" - {response.text.strip()}"

        return PaperlessApiError(
            message,
            status,
            body if isinstance(body, dict) else {},
            context={
                "method": response.request.method,
                "url": str(response.request.url),
            },
        )

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Normalize a response into a mapping or raise ``PaperlessApiError``."""
        if not response.is_success:
            raise self._api_error(response)

        payload = _decode_json(response)
        if isinstance(payload, dict):
            return payload
        # Upload answers with the bare task id as a JSON string.
        if isinstance(payload, str):
            return {"id": payload}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,  # noqa: ANN401
    ) -> dict[str, Any]:
        return self._handle_response(await self._send(method, path, **kwargs))

    async def _request_payload(
        self,
        method: str,
        path: str,
        **kwargs: Any,  # noqa: ANN401
    ) -> Any:  # noqa: ANN401
        """Like ``_request`` but return the decoded body whatever its shape."""
        response = await self._send(method, path, **kwargs)
        if not response.is_success:
            raise self._api_error(response)
        return _decode_json(response)

    async def _request_bytes(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
        json: Any | None = None,  # noqa: ANN401
    ) -> bytes:
        response = await self._send(method, path, params=params, json=json)
        if not response.is_success:
            raise self._api_error(response)
        return response.content

    async def _delete(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> bool:
        response = await self._send("DELETE", path, params=params)
        if not response.is_success:
            self._logger.info(
                "paperless_delete_rejected",
                path=path,
                status_code=response.status_code,
            )
        return response.is_success

    def _page_params(
        self,
        filters: Filters | None,
        page: int,
        page_size: int | None,
    ) -> dict[str, Any]:
        return {
            **(filters or {}),
            "page": page,
            "page_size": page_size or self.page_size,
        }

    async def _list(
        self,
        path: str,
        filters: Filters | None,
        page: int,
        page_size: int | None,
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            path,
            params=self._page_params(filters, page, page_size),
        )

    # -------------------------------------------------------------------------
    # System and profile
    # -------------------------------------------------------------------------

    async def get_status(self) -> dict[str, Any]:
        """Return the server status report."""
        return await self._request("GET", "/api/status/")

    async def get_remote_version(self) -> dict[str, Any]:
        """Return the latest released Paperless-ngx version info."""
        return await self._request("GET", "/api/remote_version/")

    async def get_profile(self) -> dict[str, Any]:
        """Return the profile of the authenticated user."""
        return await self._request("GET", "/api/profile/")

    async def generate_auth_token(self) -> dict[str, Any]:
        """Rotate and return the API token of the authenticated user."""
        return await self._request("POST", "/api/profile/generate_auth_token/")

    async def get_statistics(self) -> dict[str, Any]:
        """Return document and inbox statistics."""
        return await self._request("GET", "/api/statistics/")

    async def test_connection(self) -> bool:
        """Whether ``get_status`` succeeds. Failures are logged, not raised."""
        try:
            await self.get_status()
        except PaperlessError as exc:
            self._logger.error(
                "paperless_connection_test_failed",
                error=exc.message,
                base_url=self.base_url,
            )
            return False
        return True

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def get_documents(
        self,
        filters: Filters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List documents.

        Args:
            filters: Query parameters passed through verbatim
                (e.g. ``{"tags__id": 3, "created__gte": "2024-01-01"}``).
            page: Page number, 1-based.
            page_size: Results per page; the configured default when None.

        Returns:
            The paginated result (``count``, ``next``, ``previous``,
            ``results``).
        """
        return await self._list("/api/documents/", filters, page, page_size)

    async def get_document(self, document_id: int) -> dict[str, Any]:
        """Return one document."""
        return await self._request("GET", f"/api/documents/{document_id}/")

    async def update_document(
        self,
        document_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Replace document fields (PUT)."""
        return await self._request(
            "PUT",
            f"/api/documents/{document_id}/",
            json=dict(data),
        )

    async def patch_document(
        self,
        document_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Partially update a document (PATCH)."""
        return await self._request(
            "PATCH",
            f"/api/documents/{document_id}/",
            json=dict(data),
        )

    async def delete_document(self, document_id: int) -> bool:
        """Delete a document; True iff the server answered 2xx."""
        return await self._delete(f"/api/documents/{document_id}/")

    async def download_document(
        self,
        document_id: int,
        *,
        original: bool = False,
    ) -> bytes:
        """Return the document file.

        Args:
            document_id: The document id.
            original: Fetch the original upload instead of the archived
                version.
        """
        params = {"original": "true"} if original else None
        return await self._request_bytes(
            f"/api/documents/{document_id}/download/",
            params=params,
        )

    async def get_document_preview(self, document_id: int) -> bytes:
        """Return the document preview file."""
        return await self._request_bytes(f"/api/documents/{document_id}/preview/")

    async def get_document_thumbnail(self, document_id: int) -> bytes:
        """Return the document thumbnail image."""
        return await self._request_bytes(f"/api/documents/{document_id}/thumb/")

    async def get_document_metadata(self, document_id: int) -> dict[str, Any]:
        """Return file metadata (checksums, sizes, media filenames)."""
        return await self._request("GET", f"/api/documents/{document_id}/metadata/")

    async def get_document_suggestions(self, document_id: int) -> dict[str, Any]:
        """Return classifier suggestions for a document."""
        return await self._request(
            "GET",
            f"/api/documents/{document_id}/suggestions/",
        )

    async def get_document_notes(
        self,
        document_id: int,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List the notes of a document."""
        return await self._list(
            f"/api/documents/{document_id}/notes/",
            None,
            page,
            page_size,
        )

    async def add_document_note(self, document_id: int, note: str) -> dict[str, Any]:
        """Attach a note to a document."""
        return await self._request(
            "POST",
            f"/api/documents/{document_id}/notes/",
            json={"note": note},
        )

    async def delete_document_note(self, document_id: int, note_id: int) -> bool:
        """Delete one note; True iff the server answered 2xx."""
        return await self._delete(
            f"/api/documents/{document_id}/notes/",
            params={"id": note_id},
        )

    async def get_document_history(
        self,
        document_id: int,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """Return the audit history of a document."""
        return await self._list(
            f"/api/documents/{document_id}/history/",
            None,
            page,
            page_size,
        )

    async def email_document(
        self,
        document_id: int,
        email_data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Ask Paperless-ngx to email a document."""
        return await self._request(
            "POST",
            f"/api/documents/{document_id}/email/",
            json=dict(email_data),
        )

    async def get_document_share_links(self, document_id: int) -> dict[str, Any]:
        """Return the share links of a document."""
        return await self._request(
            "GET",
            f"/api/documents/{document_id}/share_links/",
        )

    async def bulk_download_documents(self, document_ids: list[int]) -> bytes:
        """Return a zip archive of the given documents."""
        return await self._request_bytes(
            "/api/documents/bulk_download/",
            method="POST",
            json={"documents": list(document_ids)},
        )

    async def bulk_edit_documents(
        self,
        document_ids: list[int],
        edit_data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Apply one edit to many documents.

        Args:
            document_ids: Documents to edit; at least one and at most
                ``bulk.max_documents``.
            edit_data: Merged into the body after ``documents``, typically
                ``{"method": ..., "parameters": {...}}``.

        Raises:
            PaperlessValidationError: If the id list is empty or too long.
        """
        if not document_ids:
            msg = "At least one document id is required"
            raise PaperlessValidationError(msg, "documents", {"documents": [msg]})
        if len(document_ids) > self._bulk.max_documents:
            msg = (
                f"Bulk operations accept at most {self._bulk.max_documents} "
                f"documents, got {len(document_ids)}"
            )
            raise PaperlessValidationError(msg, "documents", {"documents": [msg]})

        return await self._request(
            "POST",
            "/api/documents/bulk_edit/",
            json={"documents": list(document_ids), **edit_data},
            timeout=self._timeout_for(self._bulk.timeout),
        )

    async def get_next_asn(self) -> int:
        """Return the next free archive serial number."""
        response = await self._send("GET", "/api/documents/next_asn/")
        if not response.is_success:
            raise self._api_error(response)
        payload = _decode_json(response)
        if isinstance(payload, int) and not isinstance(payload, bool):
            return payload
        msg = (
            f"Paperless API Error: {response.status_code} - "
            "unexpected next_asn payload"
        )
        raise PaperlessApiError(msg, response.status_code)

    async def get_document_selection_data(
        self,
        document_ids: list[int],
    ) -> dict[str, Any]:
        """Return the tags, correspondents and types used by a selection."""
        return await self._request(
            "POST",
            "/api/documents/selection_data/",
            json={"documents": list(document_ids)},
        )

    async def get_task(self, task_id: str) -> dict[str, Any]:
        """Return the ingestion task with ``task_id``, or ``{}`` if unknown."""
        payload = await self._request_payload(
            "GET",
            "/api/tasks/",
            params={"task_id": task_id},
        )
        if isinstance(payload, list):
            return next((task for task in payload if isinstance(task, dict)), {})
        if isinstance(payload, dict):
            return payload
        return {}

    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------

    async def upload_document(
        self,
        file: Path | str | BinaryIO,
        metadata: Mapping[str, Any] | None = None,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        """Upload a document for ingestion.

        Args:
            file: A filesystem path, or an open binary file the caller
                keeps ownership of.
            metadata: Form fields such as ``title``, ``created``,
                ``tags``. None values are skipped, lists become repeated
                fields, booleans become ``"true"``/``"false"``. Names in
                ``tags``, ``correspondent``, ``document_type`` and
                ``storage_path`` are resolved through the configured
                mappings.
            filename: Name sent to Paperless-ngx; defaults to the path or
                handle name.
            content_type: MIME type; guessed from the file name if omitted.

        Returns:
            ``{"task_id": ...}`` for the ingestion task Paperless-ngx
            queued, or the server's mapping if it answered differently.

        Raises:
            PaperlessFileError: If the file or metadata fails the local
                checks.
        """
        if isinstance(file, (str, Path)):
            path = Path(file)
            name = filename or path.name
            self._check_upload_path(path)
            self._check_upload_file(
                name,
                path.stat().st_size,
                content_type,
                file_path=str(path),
            )
            fields = self._encode_metadata(metadata, name)
            with path.open("rb") as handle:
                return await self._post_document(handle, name, content_type, fields)

        handle_name = getattr(file, "name", None)
        if filename:
            name = filename
        elif isinstance(handle_name, str) and handle_name:
            name = Path(handle_name).name
        else:
            name = "document"
        self._check_upload_file(name, _stream_size(file), content_type)
        fields = self._encode_metadata(metadata, name)
        return await self._post_document(file, name, content_type, fields)

    def _check_upload_path(self, path: Path) -> None:
        if not path.exists():
            msg = f"File does not exist: {path}"
            raise PaperlessFileError(
                msg,
                file_path=str(path),
                file_name=path.name,
                operation="upload",
            )
        if not path.is_file() or not os.access(path, os.R_OK):
            msg = f"File is not readable: {path}"
            raise PaperlessFileError(
                msg,
                file_path=str(path),
                file_name=path.name,
                operation="upload",
            )

    def _check_upload_file(
        self,
        name: str,
        size: int | None,
        content_type: str | None,
        *,
        file_path: str = "",
    ) -> None:
        max_size = self._upload.max_file_size
        if size is not None and size > max_size:
            msg = (
                f"File size {size} bytes exceeds maximum allowed size of "
                f"{max_size / 1024 / 1024:g}MB"
            )
            raise PaperlessFileError(
                msg,
                file_path=file_path,
                file_name=name,
                file_size=size,
                operation="upload",
            )

        allowed = self._upload.allowed_mime_types
        mime = self._guess_mime(name, content_type)
        if allowed and mime not in allowed:
            msg = f"File type {mime} is not allowed"
            raise PaperlessFileError(
                msg,
                file_path=file_path,
                file_name=name,
                file_size=size,
                operation="upload",
                context={"allowed_mime_types": list(allowed)},
            )

    @staticmethod
    def _guess_mime(name: str, content_type: str | None) -> str:
        if content_type:
            return content_type.split(";", 1)[0].strip().lower()
        guessed, _ = mimetypes.guess_type(name)
        return guessed or "application/octet-stream"

    def _encode_metadata(
        self,
        metadata: Mapping[str, Any] | None,
        name: str,
    ) -> dict[str, str | list[str]]:
        """Validate metadata and turn it into multipart form fields."""
        fields: dict[str, str | list[str]] = {}
        for key, value in (metadata or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                if not value:
                    msg = f"Metadata field '{key}' cannot be an empty list"
                    raise PaperlessFileError(msg, file_name=name, operation="upload")
                for index, item in enumerate(value):
                    if item is None:
                        msg = f"Metadata field '{key}[{index}]' cannot be null"
                        raise PaperlessFileError(
                            msg,
                            file_name=name,
                            operation="upload",
                        )
                fields[key] = [
                    _format_form_value(self._map_value(key, item)) for item in value
                ]
            else:
                fields[key] = _format_form_value(self._map_value(key, value))
        return fields

    def _map_value(self, key: str, value: Any) -> Any:  # noqa: ANN401
        kind = _MAPPED_METADATA_KEYS.get(key)
        if kind is None or not isinstance(value, str):
            return value
        mapped = self.resolve_mapped_id(kind, value)
        return value if mapped is None else mapped

    async def _post_document(
        self,
        handle: BinaryIO,
        name: str,
        content_type: str | None,
        fields: dict[str, str | list[str]],
    ) -> dict[str, Any]:
        files = {"document": (name, handle, self._guess_mime(name, content_type))}
        self._logger.info("paperless_upload_started", file_name=name)
        data = await self._request(
            "POST",
            "/api/documents/post_document/",
            data=fields,
            files=files,
            timeout=self._timeout_for(self._upload.timeout),
        )
        if set(data) == {"id"}:
            return {"task_id": data["id"]}
        return data

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    async def search_documents(
        self,
        query: str,
        db_only: bool | None = None,
    ) -> dict[str, Any]:
        """Run a global search.

        Args:
            query: Search text.
            db_only: Skip the full-text index; ``search.db_only`` when None.
        """
        if db_only is None:
            db_only = self._search.db_only
        return await self._request(
            "GET",
            "/api/search/",
            params={"query": query, "db_only": _format_form_value(db_only)},
        )

    async def get_search_autocomplete(
        self,
        term: str,
        limit: int | None = None,
    ) -> list[str]:
        """Return autocomplete suggestions for ``term``."""
        payload = await self._request_payload(
            "GET",
            "/api/search/autocomplete/",
            params={"term": term, "limit": limit or self._search.default_limit},
        )
        if isinstance(payload, list):
            return [str(item) for item in payload]
        return []

    # -------------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------------

    async def get_tags(
        self,
        filters: Filters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List tags."""
        return await self._list("/api/tags/", filters, page, page_size)

    async def create_tag(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a tag."""
        return await self._request("POST", "/api/tags/", json=dict(data))

    async def update_tag(self, tag_id: int, data: Mapping[str, Any]) -> dict[str, Any]:
        """Replace a tag."""
        return await self._request("PUT", f"/api/tags/{tag_id}/", json=dict(data))

    async def delete_tag(self, tag_id: int) -> bool:
        """Delete a tag."""
        return await self._delete(f"/api/tags/{tag_id}/")

    # -------------------------------------------------------------------------
    # Correspondents
    # -------------------------------------------------------------------------

    async def get_correspondents(
        self,
        filters: Filters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List correspondents."""
        return await self._list("/api/correspondents/", filters, page, page_size)

    async def create_correspondent(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a correspondent."""
        return await self._request("POST", "/api/correspondents/", json=dict(data))

    async def update_correspondent(
        self,
        correspondent_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Replace a correspondent."""
        return await self._request(
            "PUT",
            f"/api/correspondents/{correspondent_id}/",
            json=dict(data),
        )

    async def delete_correspondent(self, correspondent_id: int) -> bool:
        """Delete a correspondent."""
        return await self._delete(f"/api/correspondents/{correspondent_id}/")

    # -------------------------------------------------------------------------
    # Document types
    # -------------------------------------------------------------------------

    async def get_document_types(
        self,
        filters: Filters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List document types."""
        return await self._list("/api/document_types/", filters, page, page_size)

    async def create_document_type(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a document type."""
        return await self._request("POST", "/api/document_types/", json=dict(data))

    async def update_document_type(
        self,
        document_type_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Replace a document type."""
        return await self._request(
            "PUT",
            f"/api/document_types/{document_type_id}/",
            json=dict(data),
        )

    async def delete_document_type(self, document_type_id: int) -> bool:
        """Delete a document type."""
        return await self._delete(f"/api/document_types/{document_type_id}/")

    # -------------------------------------------------------------------------
    # Storage paths
    # -------------------------------------------------------------------------

    async def get_storage_paths(
        self,
        filters: Filters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List storage paths."""
        return await self._list("/api/storage_paths/", filters, page, page_size)

    async def create_storage_path(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a storage path."""
        return await self._request("POST", "/api/storage_paths/", json=dict(data))

    async def update_storage_path(
        self,
        storage_path_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Replace a storage path."""
        return await self._request(
            "PUT",
            f"/api/storage_paths/{storage_path_id}/",
            json=dict(data),
        )

    async def delete_storage_path(self, storage_path_id: int) -> bool:
        """Delete a storage path."""
        return await self._delete(f"/api/storage_paths/{storage_path_id}/")

    # -------------------------------------------------------------------------
    # Custom fields
    # -------------------------------------------------------------------------

    async def get_custom_fields(
        self,
        filters: Filters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List custom field definitions."""
        return await self._list("/api/custom_fields/", filters, page, page_size)

    async def create_custom_field(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a custom field definition."""
        return await self._request("POST", "/api/custom_fields/", json=dict(data))

    async def update_custom_field(
        self,
        custom_field_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Replace a custom field definition."""
        return await self._request(
            "PUT",
            f"/api/custom_fields/{custom_field_id}/",
            json=dict(data),
        )

    async def delete_custom_field(self, custom_field_id: int) -> bool:
        """Delete a custom field definition."""
        return await self._delete(f"/api/custom_fields/{custom_field_id}/")

    # -------------------------------------------------------------------------
    # Share links
    # -------------------------------------------------------------------------

    async def get_share_links(
        self,
        filters: Filters | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List share links."""
        return await self._list("/api/share_links/", filters, page, page_size)

    async def create_share_link(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a share link."""
        return await self._request("POST", "/api/share_links/", json=dict(data))

    async def update_share_link(
        self,
        share_link_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Replace a share link."""
        return await self._request(
            "PUT",
            f"/api/share_links/{share_link_id}/",
            json=dict(data),
        )

    async def delete_share_link(self, share_link_id: int) -> bool:
        """Delete a share link."""
        return await self._delete(f"/api/share_links/{share_link_id}/")

    # -------------------------------------------------------------------------
    # Saved views
    # -------------------------------------------------------------------------

    async def get_saved_views(
        self,
        page: int = 1,
        page_size: int | None = None,
    ) -> dict[str, Any]:
        """List saved views."""
        return await self._list("/api/saved_views/", None, page, page_size)

    async def create_saved_view(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a saved view."""
        return await self._request("POST", "/api/saved_views/", json=dict(data))

    async def update_saved_view(
        self,
        saved_view_id: int,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Replace a saved view."""
        return await self._request(
            "PUT",
            f"/api/saved_views/{saved_view_id}/",
            json=dict(data),
        )

    async def delete_saved_view(self, saved_view_id: int) -> bool:
        """Delete a saved view."""
        return await self._delete(f"/api/saved_views/{saved_view_id}/")
