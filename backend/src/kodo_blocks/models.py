"""Pydantic models for API request/response."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class CreateDocumentRequest(BaseModel):
    title: str | None = None
    content: Any = None


class UpdateDocumentRequest(BaseModel):
    title: str | None = None
    content: Any = None


class DocumentResponse(BaseModel):
    id: str
    title: str
    content: dict[str, Any]
    version: int
    created_at: str | None = None
    updated_at: str | None = None


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]
    total: int


class DeleteResponse(BaseModel):
    id: str
    deleted: bool
    snapshot_token: str


class StructureBlock(BaseModel):
    index: int
    type: str
    preview: str
    block_id: str | None = None
    attrs: dict[str, Any] | None = None


class StructureResponse(BaseModel):
    id: str
    title: str | None = None
    total_blocks: int
    blocks: list[StructureBlock] = Field(default_factory=list)


class InsertRequest(BaseModel):
    content: Any
    position: int | None = None


class RangeRequest(BaseModel):
    start: int
    end: int
    content: Any = None


class EditOperation(BaseModel):
    action: Literal["insert_before", "insert_after", "replace", "remove", "append"]
    target: int | str | None = None
    end_target: int | str | None = None
    block_id: str | None = None
    end_block_id: str | None = None
    content: Any = None


class EditRequest(BaseModel):
    operations: list[EditOperation] = Field(min_length=1)


class EditResponse(BaseModel):
    document: DocumentResponse
    operations_applied: int
    warnings: list[str] = Field(default_factory=list)


class AccordionOperation(BaseModel):
    action: Literal["add", "update", "remove"]
    items: list[Any] | None = None
    position: int | None = None
    item_index: int | None = None
    count: int | None = None
    title: str | None = None
    content: Any = None
    icon: str | None = None
    iconColor: str | None = None
    titleColor: str | None = None


class AccordionRequest(BaseModel):
    block_id: str | None = None
    index: int | None = None
    operations: list[AccordionOperation] = Field(min_length=1)


class AccordionResponse(EditResponse):
    accordion_removed: bool = False


class SnapshotItem(BaseModel):
    token: str
    entity_type: str
    entity_id: str
    tool_name: str
    operation: str
    created_at: str


class SnapshotListResponse(BaseModel):
    snapshots: list[SnapshotItem]
