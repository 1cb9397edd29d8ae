"""Document service: fetch, transform, snapshot the old state, persist the new one.

Every write goes through ``_write`` so that a snapshot of the previous record
exists before anything is changed, and so that the save is checked against
the version that was read.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .. import config
from ..errors import (
    ComplexBlocksError,
    DocumentNotFoundError,
    EditRejectedError,
    SnapshotNotFoundError,
    VersionConflictError,
)
from . import document_store
from .accordion_editor import apply_accordion_operations, locate_accordion
from .block_ids import IdFactory
from .document_operations import (
    apply_edit_operations,
    get_complex_block_types,
    get_document_structure,
    insert_blocks_at,
    remove_blocks_range,
    replace_blocks_range,
    top_level_blocks,
)
from .normalizer import normalize_content
from .serializers import tree_to_html, tree_to_markdown, tree_to_styled_html

logger = logging.getLogger(__name__)

ENTITY_TYPE = "document"
EXPORT_FORMATS = ("markdown", "html", "styled_html")
DEFAULT_TITLE = "Untitled"

_UNSET: Any = object()


def _load(document_id: str) -> dict[str, Any]:
    record = document_store.get_document(document_id)
    if record is None:
        raise DocumentNotFoundError(document_id)
    return record


def _write(record: dict[str, Any], changes: dict[str, Any], tool_name: str, operation: str) -> dict[str, Any]:
    snapshot = document_store.save_snapshot(
        entity_type=ENTITY_TYPE,
        entity_id=record["id"],
        tool_name=tool_name,
        operation=operation,
        data=record,
    )
    try:
        saved = document_store.save_document({**record, **changes}, expected_version=record.get("version", 0))
    except VersionConflictError:
        document_store.delete_snapshot(snapshot["token"])
        raise
    logger.info("Document %s saved by %s (version %s)", saved["id"], tool_name, saved["version"])
    return saved


# =============================================================================
# CRUD
# =============================================================================


def create_document(title: str | None = None, content: Any = None, id_factory: IdFactory | None = None) -> dict[str, Any]:
    """Create a document from any content shape the normalizer accepts."""
    record = {
        "id": document_store.new_document_id(),
        "title": (title or "").strip() or DEFAULT_TITLE,
        "content": normalize_content(content, id_factory),
    }
    saved = document_store.save_document(record, expected_version=0)
    logger.info("Document %s created with %d blocks", saved["id"], len(top_level_blocks(saved["content"])))
    return saved


def get_document(document_id: str) -> dict[str, Any]:
    return _load(document_id)


def list_documents(page: int = 1, size: int = 20) -> dict[str, Any]:
    return document_store.list_documents(page=page, size=size)


def update_document(
    document_id: str,
    title: str | None = None,
    content: Any = _UNSET,
    id_factory: IdFactory | None = None,
) -> dict[str, Any]:
    """Update title and/or replace the whole content.

    Replacing the content of a document that holds complex blocks is refused
    with ``ComplexBlocksError``; those blocks cannot be expressed in the
    formats callers send and would be lost. Title-only updates always work.
    """
    record = _load(document_id)
    changes: dict[str, Any] = {}
    if title is not None:
        changes["title"] = title.strip() or DEFAULT_TITLE
    if content is not _UNSET:
        complex_types = get_complex_block_types(record.get("content"))
        if complex_types:
            logger.warning("Refusing full content replacement of %s: %s", document_id, ", ".join(complex_types))
            raise ComplexBlocksError(complex_types)
        changes["content"] = normalize_content(content, id_factory)
    if not changes:
        raise ValueError("Nothing to update: provide title and/or content")
    return _write(record, changes, "update_document", "update")


def delete_document(document_id: str) -> dict[str, Any]:
    """Delete a document; returns the snapshot that can bring it back."""
    record = _load(document_id)
    snapshot = document_store.save_snapshot(
        entity_type=ENTITY_TYPE,
        entity_id=document_id,
        tool_name="delete_document",
        operation="delete",
        data=record,
    )
    document_store.delete_document(document_id)
    logger.info("Document %s deleted (snapshot %s)", document_id, snapshot["token"])
    return {"id": document_id, "deleted": True, "snapshot_token": snapshot["token"]}


# =============================================================================
# Block-level edits
# =============================================================================


def get_structure(document_id: str) -> dict[str, Any]:
    record = _load(document_id)
    structure = get_document_structure(record.get("content"), config.PREVIEW_LENGTH)
    return {"id": document_id, "title": record.get("title"), **structure}


def insert_content(
    document_id: str,
    content: Any,
    position: int | None = None,
    id_factory: IdFactory | None = None,
) -> dict[str, Any]:
    """Insert content before top-level ``position``; appends when omitted."""
    record = _load(document_id)
    doc = record["content"]
    blocks = normalize_content(content, id_factory)["content"]
    at = len(top_level_blocks(doc)) if position is None else position
    return _write(record, {"content": insert_blocks_at(doc, at, blocks)}, "insert_content", "insert")


def _check_range(doc: Any, start: int, end: int) -> None:
    total = len(top_level_blocks(doc))
    if end <= start:
        raise ValueError(f"end ({end}) must be greater than start ({start})")
    if start < 0 or start >= total:
        raise ValueError(f"start ({start}) out of range (0-{total - 1})")


def replace_blocks(
    document_id: str,
    start: int,
    end: int,
    content: Any,
    id_factory: IdFactory | None = None,
) -> dict[str, Any]:
    """Replace top-level blocks ``[start, end)`` with ``content``."""
    record = _load(document_id)
    doc = record["content"]
    _check_range(doc, start, end)
    blocks = normalize_content(content, id_factory)["content"]
    return _write(record, {"content": replace_blocks_range(doc, start, end, blocks)}, "replace_blocks", "replace")


def remove_blocks(document_id: str, start: int, end: int) -> dict[str, Any]:
    """Remove top-level blocks ``[start, end)``."""
    record = _load(document_id)
    doc = record["content"]
    _check_range(doc, start, end)
    return _write(record, {"content": remove_blocks_range(doc, start, end)}, "remove_blocks", "remove")


def edit_document(
    document_id: str,
    operations: list[Mapping[str, Any]],
    id_factory: IdFactory | None = None,
) -> dict[str, Any]:
    """Apply a batch of edit operations; nothing is saved if none applied."""
    record = _load(document_id)
    result = apply_edit_operations(record["content"], operations, id_factory)
    if not result.ok:
        logger.warning("Edit of %s rejected: %s", document_id, "; ".join(result.warnings))
        raise EditRejectedError(result.warnings)
    saved = _write(record, {"content": result.doc}, "edit_document", "edit")
    return {"document": saved, **result.to_dict()}


def edit_accordion(
    document_id: str,
    operations: list[Mapping[str, Any]],
    block_id: str | None = None,
    index: int | None = None,
    id_factory: IdFactory | None = None,
) -> dict[str, Any]:
    """Edit the items of the accordion addressed by ``block_id`` or ``index``."""
    record = _load(document_id)
    doc = record["content"]
    at = locate_accordion(doc, block_id=block_id, index=index)
    if at is None:
        where = f"block_id {block_id!r}" if block_id else f"index {index!r}"
        raise ValueError(f"No block found at {where}")
    result = apply_accordion_operations(doc, at, operations, id_factory)
    if result.operations_applied == 0:
        logger.warning("Accordion edit of %s rejected: %s", document_id, "; ".join(result.warnings))
        raise EditRejectedError(result.warnings)
    saved = _write(record, {"content": result.doc}, "edit_accordion", "edit")
    return {"document": saved, **result.to_dict()}


# =============================================================================
# Export and snapshots
# =============================================================================


def export_document(document_id: str, fmt: str = "markdown") -> str:
    record = _load(document_id)
    doc = record.get("content")
    if fmt == "markdown":
        return tree_to_markdown(doc)
    if fmt == "html":
        return tree_to_html(doc)
    if fmt == "styled_html":
        return tree_to_styled_html(doc, record.get("title") or DEFAULT_TITLE)
    raise ValueError(f"Unsupported export format: {fmt} (expected one of {', '.join(EXPORT_FORMATS)})")


def list_document_snapshots(document_id: str, limit: int = 50) -> list[dict[str, Any]]:
    return document_store.list_snapshots(entity_type=ENTITY_TYPE, entity_id=document_id, limit=limit)


def restore_snapshot(token: str) -> dict[str, Any]:
    """Bring a document back to the state stored in a snapshot.

    The current state is snapshotted first; a deleted document is recreated.
    """
    snapshot = document_store.get_snapshot(token)
    if snapshot is None:
        raise SnapshotNotFoundError(token)
    data = snapshot.get("data") or {}
    document_id = snapshot["entity_id"]
    restored = {"title": data.get("title") or DEFAULT_TITLE, "content": normalize_content(data.get("content"))}
    current = document_store.get_document(document_id)
    if current is not None:
        complex_types = get_complex_block_types(current.get("content"))
        if complex_types:
            logger.warning(
                "Restoring %s over complex blocks (%s); the current state is kept in a snapshot",
                document_id,
                ", ".join(complex_types),
            )
    if current is None:
        saved = document_store.save_document({"id": document_id, **restored}, expected_version=0)
        logger.info("Document %s recreated from snapshot %s", document_id, token)
        return saved
    return _write(current, restored, "restore_snapshot", "restore")
