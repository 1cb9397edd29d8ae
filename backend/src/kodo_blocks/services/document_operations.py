"""Top-level block operations on Tree JSON documents.

Everything here works on the top-level children of a ``doc`` node so that
callers can inspect and edit a document by index, block id or heading text
without ever handling Tree JSON themselves:

- structure summary (``get_document_structure``)
- complex block guard (``has_complex_blocks`` / ``get_complex_block_types``)
- target resolution (``resolve_target``)
- batch edits in original coordinates (``apply_edit_operations``)
- single range helpers (``insert_blocks_at`` / ``replace_blocks_range`` /
  ``remove_blocks_range``)

None of these functions modify the document passed in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .block_converter import empty_paragraph
from .block_ids import IdFactory
from .normalizer import normalize_content

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LENGTH = 120

COMPLEX_BLOCK_TYPES = frozenset({"columns", "accordionGroup", "databaseTable", "spreadsheet", "mindmap"})

EDIT_ACTIONS = ("insert_before", "insert_after", "replace", "remove", "append")

_READABLE_TYPES = {
    "bulletList": "list",
    "orderedList": "ordered_list",
    "taskList": "checklist",
    "codeBlock": "code",
    "blockquote": "quote",
    "horizontalRule": "divider",
    "databaseTable": "database_table",
    "accordionGroup": "accordion",
    "spreadsheet": "spreadsheet",
    "mindmap": "mindmap",
}

# Structure entries only ever expose these attrs.
_STRUCTURE_ATTRS = ("level", "databaseId")

# Tie-break for operations on the same target: inserts before the block
# go first, inserts after it go last.
_ACTION_RANK = {"insert_before": 0, "replace": 1, "remove": 1, "insert_after": 2}


@dataclass
class TargetResolution:
    index: int | None
    warnings: list[str] = field(default_factory=list)


@dataclass
class EditResult:
    """Outcome of a batch of edit operations."""

    doc: dict[str, Any]
    operations_applied: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.operations_applied > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "operations_applied": self.operations_applied,
            "warnings": list(self.warnings),
        }


@dataclass
class _ResolvedOp:
    position: int
    action: str
    label: str
    blocks: list[dict[str, Any]]
    start: int
    end: int


# =============================================================================
# Text helpers
# =============================================================================


def top_level_blocks(doc: Any) -> list[dict[str, Any]]:
    if not isinstance(doc, dict) or not isinstance(doc.get("content"), list):
        return []
    return doc["content"]


def extract_text(node: Any) -> str:
    """Concatenate every text leaf under ``node``, depth-first."""
    if not isinstance(node, dict):
        return ""
    if node.get("type") == "text":
        text = node.get("text")
        return text if isinstance(text, str) else ""
    children = node.get("content")
    if not isinstance(children, list):
        return ""
    return "".join(extract_text(child) for child in children)


def readable_type(node_type: str) -> str:
    return _READABLE_TYPES.get(node_type, node_type)


# =============================================================================
# Structure extraction
# =============================================================================


def get_document_structure(doc: Any, preview_length: int = DEFAULT_PREVIEW_LENGTH) -> dict[str, Any]:
    """Summarize the top-level blocks of a document.

    Returns ``{"total_blocks": n, "blocks": [...]}`` where each entry has
    ``index``, ``type`` (readable alias), ``preview`` and, when present,
    ``block_id`` and a small whitelist of ``attrs``.
    """
    if not isinstance(doc, dict) or doc.get("type") != "doc" or not isinstance(doc.get("content"), list):
        return {"total_blocks": 0, "blocks": []}

    blocks = []
    for index, node in enumerate(doc["content"]):
        if not isinstance(node, dict):
            continue
        entry: dict[str, Any] = {
            "index": index,
            "type": readable_type(str(node.get("type"))),
            "preview": extract_preview(node, preview_length),
        }
        attrs = node.get("attrs") if isinstance(node.get("attrs"), dict) else {}
        if attrs.get("blockId"):
            entry["block_id"] = attrs["blockId"]
        relevant = {key: attrs[key] for key in _STRUCTURE_ATTRS if key in attrs and attrs[key] is not None}
        if relevant:
            entry["attrs"] = relevant
        blocks.append(entry)
    return {"total_blocks": len(doc["content"]), "blocks": blocks}


def extract_preview(node: dict[str, Any], preview_length: int = DEFAULT_PREVIEW_LENGTH) -> str:
    text = extract_text(node).strip()[:preview_length]
    if text:
        return text
    node_type = node.get("type")
    count = len(node["content"]) if isinstance(node.get("content"), list) else 0
    if node_type == "columns":
        return f"[{count} columns]"
    if node_type == "accordionGroup":
        return f"[accordion: {count} items]"
    if node_type == "databaseTable":
        return "[database table]"
    if node_type == "spreadsheet":
        return "[spreadsheet]"
    if node_type == "mindmap":
        return "[mindmap]"
    if node_type == "horizontalRule":
        return "---"
    if node_type == "table":
        return f"[table: {count} rows]"
    if node_type == "taskList":
        return f"[checklist: {count} items]"
    return f"[{node_type}]"


# =============================================================================
# Complex block guard
# =============================================================================


def has_complex_blocks(doc: Any) -> bool:
    """True when a full content replacement would destroy complex blocks."""
    return any(node.get("type") in COMPLEX_BLOCK_TYPES for node in top_level_blocks(doc) if isinstance(node, dict))


def get_complex_block_types(doc: Any) -> list[str]:
    """Readable names of the complex block types present, first-seen order."""
    found: list[str] = []
    for node in top_level_blocks(doc):
        if isinstance(node, dict) and node.get("type") in COMPLEX_BLOCK_TYPES:
            name = readable_type(node["type"])
            if name not in found:
                found.append(name)
    return found


# =============================================================================
# Lookup and target resolution
# =============================================================================


def find_block_index_by_block_id(doc: Any, block_id: str) -> int | None:
    for i, node in enumerate(top_level_blocks(doc)):
        attrs = node.get("attrs") if isinstance(node, dict) else None
        if isinstance(attrs, dict) and attrs.get("blockId") == block_id:
            return i
    return None


def find_heading_matches(doc: Any, search: str) -> list[dict[str, Any]]:
    """Top-level headings whose text contains ``search`` (case-insensitive)."""
    needle = search.lower()
    matches = []
    for i, node in enumerate(top_level_blocks(doc)):
        if not isinstance(node, dict) or node.get("type") != "heading":
            continue
        text = extract_text(node).strip()
        if needle in text.lower():
            attrs = node.get("attrs") if isinstance(node.get("attrs"), dict) else {}
            matches.append({"index": i, "level": attrs.get("level") or 1, "text": text})
    return matches


def resolve_target(doc: Any, target: int | str | None, label: str) -> TargetResolution:
    """Resolve an index or heading text to a top-level index.

    Out-of-range numbers are clamped with a warning. Heading text that
    matches several headings resolves to the first one, also with a warning.
    """
    if target is None:
        return TargetResolution(None)

    if isinstance(target, int) and not isinstance(target, bool):
        total = len(top_level_blocks(doc))
        if target < 0 or target >= total:
            clamped = max(0, min(target, total - 1))
            return TargetResolution(
                clamped,
                [f"{label} index {target} out of range (0-{total - 1}), clamped to {clamped}"],
            )
        return TargetResolution(target)

    if not isinstance(target, str):
        return TargetResolution(None, [f"{label} {target!r} is neither an index nor heading text"])

    matches = find_heading_matches(doc, target)
    if not matches:
        return TargetResolution(None, [f'{label} heading "{target}" not found'])
    warnings = []
    if len(matches) > 1:
        listed = ", ".join(f'[{m["index"]}] "{m["text"]}"' for m in matches)
        warnings.append(f'{label} heading "{target}" matched {len(matches)} headings ({listed}), using first')
    return TargetResolution(matches[0]["index"], warnings)


# =============================================================================
# Edit operations engine
# =============================================================================


def apply_edit_operations(
    doc: dict[str, Any],
    operations: list[Mapping[str, Any]],
    id_factory: IdFactory | None = None,
) -> EditResult:
    """Apply a batch of edit operations expressed in the document's current indices.

    Each operation is ``{action, target?, end_target?, block_id?,
    end_block_id?, content?}``. ``block_id``/``end_block_id`` win over
    ``target``/``end_target`` when the latter are absent. Ranges are
    inclusive on both ends. Content accepts anything ``normalize_content``
    accepts.

    All targets are resolved against the original document, then indexed
    operations are applied in ascending target order while a running delta
    tracks how much earlier operations grew or shrank the document. Appends
    run last. Bad operations are skipped with a warning; the caller should
    not persist the result when ``operations_applied`` is zero.
    """
    warnings: list[str] = []
    original = top_level_blocks(doc)
    resolved: list[_ResolvedOp] = []
    appends: list[list[dict[str, Any]]] = []

    for position, op in enumerate(operations):
        action = op.get("action") if isinstance(op, Mapping) else None
        label = f"Op[{position}] {action}"
        if action not in EDIT_ACTIONS:
            warnings.append(f"{label}: unknown action, skipped")
            continue

        blocks: list[dict[str, Any]] = []
        if action != "remove":
            if _is_empty_content(op.get("content")):
                warnings.append(f"{label}: no content provided, skipped")
                continue
            blocks = normalize_content(op.get("content"), id_factory)["content"]

        if action == "append":
            appends.append(blocks)
            continue

        target = _address(doc, op, "target", "block_id", warnings)
        start = resolve_target(doc, target, f"{label} target")
        warnings.extend(start.warnings)
        if start.index is None:
            warnings.append(f"{label}: target could not be resolved, skipped")
            continue

        end_index = start.index
        if action in ("replace", "remove") and (op.get("end_target") is not None or op.get("end_block_id")):
            end_target = _address(doc, op, "end_target", "end_block_id", warnings)
            end = resolve_target(doc, end_target, f"{label} end_target")
            warnings.extend(end.warnings)
            if end.index is None:
                warnings.append(f"{label}: end_target could not be resolved, skipped")
                continue
            if end.index < start.index:
                warnings.append(f"{label}: end_target ({end.index}) < target ({start.index}), skipped")
                continue
            end_index = end.index

        resolved.append(_ResolvedOp(position, action, label, blocks, start.index, end_index))

    resolved.sort(key=lambda r: (r.start, _ACTION_RANK[r.action], r.position))

    content = list(original)
    applied = 0
    delta = 0
    consumed_until = -1
    for r in resolved:
        # insert_after on the last replaced index lands after the replacement
        if r.start < consumed_until or (r.start == consumed_until and r.action != "insert_after"):
            warnings.append(f"{r.label}: target {r.start} overlaps a range already replaced or removed, skipped")
            continue
        at = r.start + delta
        if r.action == "insert_after":
            content[at + 1 : at + 1] = r.blocks
            delta += len(r.blocks)
        elif r.action == "insert_before":
            content[at:at] = r.blocks
            delta += len(r.blocks)
        else:
            count = r.end - r.start + 1
            content[at : at + count] = r.blocks
            delta += len(r.blocks) - count
            consumed_until = r.end
        applied += 1

    for blocks in appends:
        content.extend(blocks)
        applied += 1

    if not content:
        content = [empty_paragraph()]

    if applied == 0:
        logger.debug("No edit operation applied out of %d", len(operations))
    return EditResult(doc={**doc, "content": content}, operations_applied=applied, warnings=warnings)


def _address(doc: Any, op: Mapping[str, Any], target_key: str, block_key: str, warnings: list[str]) -> Any:
    """Pick the address for one end of an operation, resolving block ids first."""
    if op.get(target_key) is not None:
        return op.get(target_key)
    block_id = op.get(block_key)
    if not block_id:
        return None
    index = find_block_index_by_block_id(doc, block_id)
    if index is None:
        warnings.append(f'{block_key} "{block_id}" not found in document')
    return index


def _is_empty_content(content: Any) -> bool:
    if content is None:
        return True
    if isinstance(content, (str, list, dict)):
        return not (content.strip() if isinstance(content, str) else content)
    return False


# =============================================================================
# Single range helpers
# =============================================================================


def insert_blocks_at(doc: dict[str, Any], position: int, blocks: list[dict[str, Any]]) -> dict[str, Any]:
    """Insert ``blocks`` before ``position`` (clamped to ``[0, len]``)."""
    content = list(top_level_blocks(doc))
    at = max(0, min(position, len(content)))
    content[at:at] = blocks
    return {**doc, "content": content or [empty_paragraph()]}


def replace_blocks_range(doc: dict[str, Any], start: int, end: int, blocks: list[dict[str, Any]]) -> dict[str, Any]:
    """Replace the half-open range ``[start, end)`` with ``blocks``."""
    content = list(top_level_blocks(doc))
    lo, hi = _clamp_range(len(content), start, end)
    content[lo:hi] = blocks
    return {**doc, "content": content or [empty_paragraph()]}


def remove_blocks_range(doc: dict[str, Any], start: int, end: int) -> dict[str, Any]:
    """Remove the half-open range ``[start, end)``; never leaves the doc empty."""
    content = list(top_level_blocks(doc))
    lo, hi = _clamp_range(len(content), start, end)
    del content[lo:hi]
    return {**doc, "content": content or [empty_paragraph()]}


def _clamp_range(total: int, start: int, end: int) -> tuple[int, int]:
    lo = max(0, min(start, total))
    hi = max(lo, min(end, total))
    return lo, hi
