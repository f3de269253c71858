"""Gateway routes proxying Paperless-ngx under ``/api/paperless``.

Routes never catch ``PaperlessError``: the application's exception
handler turns it into a JSON body and status code.
"""

from __future__ import annotations

import base64
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from paperless_ngx_gateway.observability import get_logger
from paperless_ngx_gateway.paperless import (
    BulkEditRequest,
    DocumentUpdate,
    PaperlessClient,
)
from paperless_ngx_gateway.web.app import get_paperless_client
from paperless_ngx_gateway.web.auth import GUARDED_PREFIX


__all__ = [
    "DOCUMENT_FILTERS",
    "TAXONOMY_FILTERS",
    "router",
]

router = APIRouter(prefix=GUARDED_PREFIX, tags=["paperless"])

logger = get_logger(__name__)

ClientDep = Annotated[PaperlessClient, Depends(get_paperless_client)]
PageQuery = Annotated[int, Query(ge=1)]
PageSizeQuery = Annotated[int | None, Query(ge=1, le=100000)]

DOCUMENT_FILTERS = (
    "search",
    "title__icontains",
    "content__icontains",
    "correspondent__id",
    "document_type__id",
    "tags__id",
    "created__gte",
    "created__lte",
    "added__gte",
    "added__lte",
)
TAXONOMY_FILTERS = ("name__icontains", "id__in")


def _filters(request: Request, allowed: tuple[str, ...]) -> dict[str, str]:
    """Pick the allow-listed query parameters; everything else is dropped."""
    params = request.query_params
    return {key: params[key] for key in allowed if params.get(key)}


def _ok(data: Any, **extra: Any) -> dict[str, Any]:  # noqa: ANN401
    return {"success": True, "data": data, **extra}


@router.get("/test-connection")
async def test_connection(client: ClientDep) -> JSONResponse:
    """Report whether Paperless-ngx answers ``/api/status/``."""
    if not await client.test_connection():
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "message": "Failed to connect to Paperless-ngx",
            },
        )
    status = await client.get_status()
    return JSONResponse(
        content=_ok(status, message="Successfully connected to Paperless-ngx"),
    )


@router.get("/documents")
async def list_documents(
    request: Request,
    client: ClientDep,
    page: PageQuery = 1,
    page_size: PageSizeQuery = None,
) -> dict[str, Any]:
    """List documents, passing through the supported filters.

    Supported filters: ``search``, ``title__icontains``,
    ``content__icontains``, ``correspondent__id``, ``document_type__id``,
    ``tags__id``, ``created__gte``, ``created__lte``, ``added__gte``,
    ``added__lte``.
    """
    filters = _filters(request, DOCUMENT_FILTERS)
    return _ok(await client.get_documents(filters, page, page_size))


@router.get("/documents/{document_id}")
async def get_document(document_id: int, client: ClientDep) -> dict[str, Any]:
    """Return one document."""
    return _ok(await client.get_document(document_id))


@router.post("/documents", status_code=201)
async def upload_document(  # noqa: PLR0913
    client: ClientDep,
    document: Annotated[UploadFile, File()],
    title: Annotated[str | None, Form(max_length=255)] = None,
    correspondent: Annotated[str | None, Form(min_length=1)] = None,
    document_type: Annotated[str | None, Form(min_length=1)] = None,
    tags: Annotated[list[str] | None, Form()] = None,
    storage_path: Annotated[str | None, Form(min_length=1)] = None,
    archive_serial_number: Annotated[int | None, Form()] = None,
    created: Annotated[str | None, Form()] = None,
) -> dict[str, Any]:
    """Upload a document for ingestion and return its task id.

    ``correspondent``, ``document_type``, ``storage_path`` and ``tags`` take
    ids or names configured under ``mappings``.
    """
    metadata = {
        "title": title,
        "correspondent": correspondent,
        "document_type": document_type,
        "tags": tags,
        "storage_path": storage_path,
        "archive_serial_number": archive_serial_number,
        "created": created,
    }
    try:
        result = await client.upload_document(
            document.file,
            metadata,
            filename=document.filename or "document",
            content_type=document.content_type,
        )
    finally:
        await document.close()

    logger.info(
        "document_uploaded",
        file_name=document.filename,
        task_id=result.get("task_id"),
    )
    return _ok(
        result,
        message="Document uploaded successfully",
        task_id=result.get("task_id"),
    )


@router.put("/documents/{document_id}")
async def update_document(
    document_id: int,
    body: DocumentUpdate,
    client: ClientDep,
) -> dict[str, Any]:
    """Update document fields; omitted fields are left unchanged."""
    data = body.model_dump(exclude_none=True)
    document = await client.update_document(document_id, data)
    return _ok(document, message="Document updated successfully")


@router.delete("/documents/{document_id}")
async def delete_document(document_id: int, client: ClientDep) -> JSONResponse:
    """Delete a document."""
    if not await client.delete_document(document_id):
        return JSONResponse(
            status_code=502,
            content={"success": False, "message": "Failed to delete document"},
        )
    return JSONResponse(
        content={"success": True, "message": "Document deleted successfully"},
    )


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: int,
    client: ClientDep,
    original: Annotated[bool, Query()] = False,  # noqa: FBT002
) -> dict[str, Any]:
    """Return the document file base64-encoded, with its size in bytes."""
    content = await client.download_document(document_id, original=original)
    return _ok(base64.b64encode(content).decode("ascii"), size=len(content))


@router.get("/search")
async def search_documents(
    client: ClientDep,
    query: Annotated[str, Query(min_length=1)],
    db_only: Annotated[bool | None, Query()] = None,
) -> dict[str, Any]:
    """Run a global search."""
    return _ok(await client.search_documents(query, db_only))


@router.get("/tags")
async def list_tags(
    request: Request,
    client: ClientDep,
    page: PageQuery = 1,
    page_size: PageSizeQuery = None,
) -> dict[str, Any]:
    """List tags (filters: ``name__icontains``, ``id__in``)."""
    filters = _filters(request, TAXONOMY_FILTERS)
    return _ok(await client.get_tags(filters, page, page_size))


@router.get("/correspondents")
async def list_correspondents(
    request: Request,
    client: ClientDep,
    page: PageQuery = 1,
    page_size: PageSizeQuery = None,
) -> dict[str, Any]:
    """List correspondents (filters: ``name__icontains``, ``id__in``)."""
    filters = _filters(request, TAXONOMY_FILTERS)
    return _ok(await client.get_correspondents(filters, page, page_size))


@router.get("/document-types")
async def list_document_types(
    request: Request,
    client: ClientDep,
    page: PageQuery = 1,
    page_size: PageSizeQuery = None,
) -> dict[str, Any]:
    """List document types (filters: ``name__icontains``, ``id__in``)."""
    filters = _filters(request, TAXONOMY_FILTERS)
    return _ok(await client.get_document_types(filters, page, page_size))


@router.get("/statistics")
async def get_statistics(client: ClientDep) -> dict[str, Any]:
    """Return Paperless-ngx statistics."""
    return _ok(await client.get_statistics())


@router.post("/bulk-edit")
async def bulk_edit(body: BulkEditRequest, client: ClientDep) -> dict[str, Any]:
    """Apply one edit to several documents."""
    result = await client.bulk_edit_documents(body.documents, body.edit_data())
    return _ok(result, message="Documents updated successfully")
