"""API routes - document block editing."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import HTMLResponse, PlainTextResponse

from ..errors import (
    ComplexBlocksError,
    DocumentNotFoundError,
    EditRejectedError,
    NotAnAccordionError,
    SnapshotNotFoundError,
    VersionConflictError,
)
from ..models import (
    AccordionRequest,
    AccordionResponse,
    CreateDocumentRequest,
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    EditRequest,
    EditResponse,
    InsertRequest,
    RangeRequest,
    SnapshotListResponse,
    StructureResponse,
    UpdateDocumentRequest,
)
from ..services import document_service

router = APIRouter(prefix="/api", tags=["api"])


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, (DocumentNotFoundError, SnapshotNotFoundError)):
        return HTTPException(404, str(e))
    if isinstance(e, ComplexBlocksError):
        return HTTPException(409, {"message": str(e), "block_types": e.block_types})
    if isinstance(e, VersionConflictError):
        return HTTPException(409, str(e))
    if isinstance(e, EditRejectedError):
        return HTTPException(422, {"message": str(e), "warnings": e.warnings})
    return HTTPException(400, str(e))


_HANDLED = (
    DocumentNotFoundError,
    SnapshotNotFoundError,
    ComplexBlocksError,
    VersionConflictError,
    EditRejectedError,
    NotAnAccordionError,
    ValueError,
)


@router.post("/documents", response_model=DocumentResponse, status_code=201)
async def api_create_document(body: CreateDocumentRequest):
    """Create a document. Content may be Markdown, plain text, Content JSON or Tree JSON."""
    return document_service.create_document(body.title, body.content)


@router.get("/documents", response_model=DocumentListResponse)
async def api_list_documents(page: int = Query(1, ge=1), size: int = Query(20, ge=1, le=100)):
    return document_service.list_documents(page=page, size=size)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def api_get_document(document_id: str):
    try:
        return document_service.get_document(document_id)
    except _HANDLED as e:
        raise _http_error(e)


@router.patch("/documents/{document_id}", response_model=DocumentResponse)
async def api_update_document(document_id: str, body: UpdateDocumentRequest):
    """Update title and/or replace the whole content (refused when complex blocks exist)."""
    kwargs = {}
    if "content" in body.model_fields_set:
        kwargs["content"] = body.content
    try:
        return document_service.update_document(document_id, title=body.title, **kwargs)
    except _HANDLED as e:
        raise _http_error(e)


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
async def api_delete_document(document_id: str):
    try:
        return document_service.delete_document(document_id)
    except _HANDLED as e:
        raise _http_error(e)


@router.get("/documents/{document_id}/structure", response_model=StructureResponse)
async def api_document_structure(document_id: str):
    """Top-level block summary: index, type, preview, block_id."""
    try:
        return document_service.get_structure(document_id)
    except _HANDLED as e:
        raise _http_error(e)


@router.post("/documents/{document_id}/insert", response_model=DocumentResponse)
async def api_insert(document_id: str, body: InsertRequest):
    try:
        return document_service.insert_content(document_id, body.content, body.position)
    except _HANDLED as e:
        raise _http_error(e)


@router.post("/documents/{document_id}/replace", response_model=DocumentResponse)
async def api_replace(document_id: str, body: RangeRequest):
    """Replace blocks [start, end) with content."""
    try:
        return document_service.replace_blocks(document_id, body.start, body.end, body.content)
    except _HANDLED as e:
        raise _http_error(e)


@router.post("/documents/{document_id}/remove", response_model=DocumentResponse)
async def api_remove(document_id: str, body: RangeRequest):
    """Remove blocks [start, end)."""
    try:
        return document_service.remove_blocks(document_id, body.start, body.end)
    except _HANDLED as e:
        raise _http_error(e)


@router.post("/documents/{document_id}/edit", response_model=EditResponse)
async def api_edit(document_id: str, body: EditRequest):
    """Batch edit. Targets are indices or heading text in the current document."""
    operations = [op.model_dump(exclude_none=True) for op in body.operations]
    try:
        return document_service.edit_document(document_id, operations)
    except _HANDLED as e:
        raise _http_error(e)


@router.post("/documents/{document_id}/accordion", response_model=AccordionResponse)
async def api_edit_accordion(document_id: str, body: AccordionRequest):
    operations = [op.model_dump(exclude_none=True) for op in body.operations]
    try:
        return document_service.edit_accordion(document_id, operations, block_id=body.block_id, index=body.index)
    except _HANDLED as e:
        raise _http_error(e)


@router.get("/documents/{document_id}/export")
async def api_export(document_id: str, format: Literal["markdown", "html", "styled_html"] = "markdown"):
    try:
        text = document_service.export_document(document_id, format)
    except _HANDLED as e:
        raise _http_error(e)
    if format == "markdown":
        return PlainTextResponse(text, media_type="text/markdown; charset=utf-8")
    return HTMLResponse(text)


@router.get("/documents/{document_id}/snapshots", response_model=SnapshotListResponse)
async def api_document_snapshots(document_id: str, limit: int = Query(50, ge=1, le=200)):
    return SnapshotListResponse(snapshots=document_service.list_document_snapshots(document_id, limit=limit))


@router.post("/snapshots/{token}/restore", response_model=DocumentResponse)
async def api_restore_snapshot(token: str):
    """Restore a snapshot; the current state is snapshotted first."""
    try:
        return document_service.restore_snapshot(token)
    except _HANDLED as e:
        raise _http_error(e)
