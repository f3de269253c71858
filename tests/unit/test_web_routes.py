"""Unit tests for the /api/paperless gateway routes."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx  # noqa: TC002
from fastapi.testclient import TestClient

from paperless_ngx_gateway.config import Settings
from paperless_ngx_gateway.paperless import (
    PaperlessApiError,
    PaperlessConnectionError,
    PaperlessFileError,
    PaperlessValidationError,
)
from paperless_ngx_gateway.web import create_app


if TYPE_CHECKING:
    from collections.abc import Iterator


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def paperless() -> AsyncMock:
    """Mocked PaperlessClient shared by the app."""
    return AsyncMock()


@pytest.fixture
def client(settings: Settings, paperless: AsyncMock) -> Iterator[TestClient]:
    """Test client for an app without inbound authentication."""
    with patch("paperless_ngx_gateway.paperless.PaperlessClient") as mock_cls:
        mock_cls.from_settings.return_value = paperless
        with TestClient(create_app(settings=settings)) as c:
            yield c


def _page(*results: dict[str, object]) -> dict[str, object]:
    return {
        "count": len(results),
        "next": None,
        "previous": None,
        "results": list(results),
    }


# ---------------------------------------------------------------------------
# TestTestConnection
# ---------------------------------------------------------------------------


class TestTestConnection:
    """Tests for GET /api/paperless/test-connection."""

    def test_connected(self, client: TestClient, paperless: AsyncMock) -> None:
        """The status report is returned when Paperless-ngx answers."""
        paperless.test_connection.return_value = True
        paperless.get_status.return_value = {"version": "2.7.0"}

        response = client.get("/api/paperless/test-connection")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"version": "2.7.0"},
            "message": "Successfully connected to Paperless-ngx",
        }

    def test_unreachable(self, client: TestClient, paperless: AsyncMock) -> None:
        """A failed check answers 503."""
        paperless.test_connection.return_value = False

        response = client.get("/api/paperless/test-connection")

        assert response.status_code == 503
        assert response.json() == {
            "success": False,
            "message": "Failed to connect to Paperless-ngx",
        }
        paperless.get_status.assert_not_awaited()


# ---------------------------------------------------------------------------
# TestDocuments
# ---------------------------------------------------------------------------


class TestListDocuments:
    """Tests for GET /api/paperless/documents."""

    def test_defaults(self, client: TestClient, paperless: AsyncMock) -> None:
        """Page 1 and the configured page size are requested by default."""
        paperless.get_documents.return_value = _page({"id": 1})

        response = client.get("/api/paperless/documents")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": _page({"id": 1})}
        paperless.get_documents.assert_awaited_once_with({}, 1, None)

    def test_filters_are_allow_listed(
        self,
        client: TestClient,
        paperless: AsyncMock,
    ) -> None:
        """Only supported filters are forwarded; empty ones are dropped."""
        paperless.get_documents.return_value = _page()

        client.get(
            "/api/paperless/documents",
            params={
                "title__icontains": "invoice",
                "tags__id": "7",
                "created__gte": "",
                "ordering": "-created",
                "page": "2",
                "page_size": "10",
            },
        )

        paperless.get_documents.assert_awaited_once_with(
            {"title__icontains": "invoice", "tags__id": "7"},
            2,
            10,
        )

    def test_invalid_page(self, client: TestClient, paperless: AsyncMock) -> None:
        """Pages start at 1."""
        response = client.get("/api/paperless/documents", params={"page": "0"})

        assert response.status_code == 422
        paperless.get_documents.assert_not_awaited()


class TestGetDocument:
    """Tests for GET /api/paperless/documents/{id}."""

    def test_found(self, client: TestClient, paperless: AsyncMock) -> None:
        """The document is wrapped in the success envelope."""
        paperless.get_document.return_value = {"id": 5, "title": "Invoice"}

        response = client.get("/api/paperless/documents/5")

        assert response.json() == {
            "success": True,
            "data": {"id": 5, "title": "Invoice"},
        }
        paperless.get_document.assert_awaited_once_with(5)

    def test_not_found(self, client: TestClient, paperless: AsyncMock) -> None:
        """Upstream errors keep their status."""
        paperless.get_document.side_effect = PaperlessApiError(
            "Paperless API Error: 404 - Not found.",
            404,
            {"detail": "Not found."},
        )

        response = client.get("/api/paperless/documents/5")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["message"] == "Paperless API Error: 404 - Not found."
        assert body["error"]["is_not_found_error"] is True


class TestUploadDocument:
    """Tests for POST /api/paperless/documents."""

    def test_upload(self, client: TestClient, paperless: AsyncMock) -> None:
        """The file and metadata are forwarded and the task id returned."""
        paperless.upload_document.return_value = {"task_id": "task-1"}

        response = client.post(
            "/api/paperless/documents",
            files={"document": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
            data={"title": "Scan", "tags": ["1", "2"], "correspondent": "3"},
        )

        assert response.status_code == 201
        assert response.json() == {
            "success": True,
            "data": {"task_id": "task-1"},
            "message": "Document uploaded successfully",
            "task_id": "task-1",
        }
        call = paperless.upload_document.await_args
        assert call.kwargs == {"filename": "scan.pdf", "content_type": "application/pdf"}
        metadata = call.args[1]
        assert metadata["title"] == "Scan"
        assert metadata["tags"] == ["1", "2"]
        assert metadata["correspondent"] == "3"
        assert metadata["created"] is None

    @pytest.mark.respx(base_url="http://paperless.test:8000")
    def test_upload_resolves_mapped_names(
        self,
        respx_mock: respx.MockRouter,
    ) -> None:
        """Configured names reach Paperless-ngx as ids; plain ids pass through."""
        route = respx_mock.post("/api/documents/post_document/").mock(
            return_value=httpx.Response(200, json="task-9")
        )
        settings = Settings(
            server={"url": "http://paperless.test:8000", "token": "secret"},
            mappings={"document_types": {"invoice": 5}, "tags": {"urgent": 7}},
        )

        with TestClient(create_app(settings=settings)) as c:
            response = c.post(
                "/api/paperless/documents",
                files={"document": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
                data={"document_type": "invoice", "tags": ["urgent", "12"]},
            )

        assert response.status_code == 201
        assert response.json()["task_id"] == "task-9"
        body = route.calls.last.request.content
        assert b'name="document_type"\r\n\r\n5\r\n' in body
        assert b'name="tags"\r\n\r\n7\r\n' in body
        assert b'name="tags"\r\n\r\n12\r\n' in body

    def test_missing_file(self, client: TestClient, paperless: AsyncMock) -> None:
        """The document part is required."""
        response = client.post("/api/paperless/documents", data={"title": "Scan"})

        assert response.status_code == 422
        paperless.upload_document.assert_not_awaited()

    def test_title_too_long(self, client: TestClient, paperless: AsyncMock) -> None:
        """Titles are limited to 255 characters."""
        response = client.post(
            "/api/paperless/documents",
            files={"document": ("scan.pdf", b"%PDF-1.4", "application/pdf")},
            data={"title": "x" * 256},
        )

        assert response.status_code == 422
        paperless.upload_document.assert_not_awaited()

    def test_rejected_file(self, client: TestClient, paperless: AsyncMock) -> None:
        """Local file checks answer 400."""
        paperless.upload_document.side_effect = PaperlessFileError(
            "File type application/zip is not allowed",
            file_name="a.zip",
            operation="upload",
        )

        response = client.post(
            "/api/paperless/documents",
            files={"document": ("a.zip", b"PK", "application/zip")},
        )

        assert response.status_code == 400
        assert response.json()["error"]["is_file_type_error"] is True


class TestUpdateDocument:
    """Tests for PUT /api/paperless/documents/{id}."""

    def test_only_given_fields(self, client: TestClient, paperless: AsyncMock) -> None:
        """Unset fields are not forwarded."""
        paperless.update_document.return_value = {"id": 5, "title": "Renamed"}

        response = client.put(
            "/api/paperless/documents/5",
            json={"title": "Renamed", "tags": [1]},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Document updated successfully"
        paperless.update_document.assert_awaited_once_with(
            5,
            {"title": "Renamed", "tags": [1]},
        )

    def test_invalid_field(self, client: TestClient, paperless: AsyncMock) -> None:
        """Field types are validated."""
        response = client.put(
            "/api/paperless/documents/5",
            json={"correspondent": "not-a-number"},
        )

        assert response.status_code == 422
        paperless.update_document.assert_not_awaited()


class TestDeleteDocument:
    """Tests for DELETE /api/paperless/documents/{id}."""

    def test_deleted(self, client: TestClient, paperless: AsyncMock) -> None:
        """A successful delete answers 200."""
        paperless.delete_document.return_value = True

        response = client.delete("/api/paperless/documents/5")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Document deleted successfully",
        }

    def test_rejected(self, client: TestClient, paperless: AsyncMock) -> None:
        """An upstream refusal answers 502."""
        paperless.delete_document.return_value = False

        response = client.delete("/api/paperless/documents/5")

        assert response.status_code == 502
        assert response.json()["message"] == "Failed to delete document"


class TestDownloadDocument:
    """Tests for GET /api/paperless/documents/{id}/download."""

    def test_base64_content(self, client: TestClient, paperless: AsyncMock) -> None:
        """The file is returned base64 encoded with its size."""
        paperless.download_document.return_value = b"%PDF-1.4 data"

        response = client.get("/api/paperless/documents/5/download")

        body = response.json()
        assert base64.b64decode(body["data"]) == b"%PDF-1.4 data"
        assert body["size"] == 13
        paperless.download_document.assert_awaited_once_with(5, original=False)

    def test_original(self, client: TestClient, paperless: AsyncMock) -> None:
        """``original=true`` is passed through."""
        paperless.download_document.return_value = b""

        client.get("/api/paperless/documents/5/download", params={"original": "true"})

        paperless.download_document.assert_awaited_once_with(5, original=True)


# ---------------------------------------------------------------------------
# TestSearchAndTaxonomies
# ---------------------------------------------------------------------------


class TestSearch:
    """Tests for GET /api/paperless/search."""

    def test_search(self, client: TestClient, paperless: AsyncMock) -> None:
        """The query is forwarded with db_only unset by default."""
        paperless.search_documents.return_value = {"documents": []}

        response = client.get("/api/paperless/search", params={"query": "invoice"})

        assert response.status_code == 200
        paperless.search_documents.assert_awaited_once_with("invoice", None)

    def test_db_only(self, client: TestClient, paperless: AsyncMock) -> None:
        """db_only is parsed as a boolean."""
        paperless.search_documents.return_value = {}

        client.get("/api/paperless/search", params={"query": "x", "db_only": "true"})

        paperless.search_documents.assert_awaited_once_with("x", True)

    def test_query_required(self, client: TestClient) -> None:
        """A missing or empty query is rejected."""
        assert client.get("/api/paperless/search").status_code == 422
        assert client.get("/api/paperless/search?query=").status_code == 422


class TestTaxonomies:
    """Tests for the tag, correspondent and document type listings."""

    @pytest.mark.parametrize(
        ("path", "method"),
        [
            ("/api/paperless/tags", "get_tags"),
            ("/api/paperless/correspondents", "get_correspondents"),
            ("/api/paperless/document-types", "get_document_types"),
        ],
    )
    def test_listing(
        self,
        client: TestClient,
        paperless: AsyncMock,
        path: str,
        method: str,
    ) -> None:
        """Only name and id filters are forwarded."""
        getattr(paperless, method).return_value = _page({"id": 1, "name": "x"})

        response = client.get(
            path,
            params={"name__icontains": "inv", "title__icontains": "ignored"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["count"] == 1
        getattr(paperless, method).assert_awaited_once_with(
            {"name__icontains": "inv"},
            1,
            None,
        )

    def test_statistics(self, client: TestClient, paperless: AsyncMock) -> None:
        """Statistics are passed through."""
        paperless.get_statistics.return_value = {"documents_total": 12}

        response = client.get("/api/paperless/statistics")

        assert response.json() == {"success": True, "data": {"documents_total": 12}}

    def test_upstream_unreachable(
        self,
        client: TestClient,
        paperless: AsyncMock,
    ) -> None:
        """Connection failures answer 503."""
        paperless.get_statistics.side_effect = PaperlessConnectionError(
            "Failed to connect",
            "http://paperless.test:8000",
            "Connection timeout: timed out",
        )

        response = client.get("/api/paperless/statistics")

        assert response.status_code == 503
        assert response.json()["error"]["retryable"] is True


# ---------------------------------------------------------------------------
# TestBulkEdit
# ---------------------------------------------------------------------------


class TestBulkEdit:
    """Tests for POST /api/paperless/bulk-edit."""

    def test_bulk_edit(self, client: TestClient, paperless: AsyncMock) -> None:
        """Ids and edit data are forwarded separately."""
        paperless.bulk_edit_documents.return_value = {"result": "OK"}

        response = client.post(
            "/api/paperless/bulk-edit",
            json={
                "documents": [1, 2],
                "method": "add_tag",
                "parameters": {"tag": 7},
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"result": "OK"},
            "message": "Documents updated successfully",
        }
        paperless.bulk_edit_documents.assert_awaited_once_with(
            [1, 2],
            {"method": "add_tag", "parameters": {"tag": 7}},
        )

    def test_empty_documents(self, client: TestClient, paperless: AsyncMock) -> None:
        """At least one document id is required."""
        response = client.post("/api/paperless/bulk-edit", json={"documents": []})

        assert response.status_code == 422
        paperless.bulk_edit_documents.assert_not_awaited()

    def test_too_many_documents(
        self,
        client: TestClient,
        paperless: AsyncMock,
    ) -> None:
        """The client's limit check answers 422."""
        paperless.bulk_edit_documents.side_effect = PaperlessValidationError(
            "Bulk operations accept at most 100 documents, got 101",
            "documents",
            {"documents": ["Bulk operations accept at most 100 documents, got 101"]},
        )

        response = client.post(
            "/api/paperless/bulk-edit",
            json={"documents": list(range(101)), "method": "delete"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "documents"
