"""Edit the items of one accordion (``accordionGroup``) block.

Operations run one after another against the live item list, so every
``item_index`` refers to the list as left by the previous operation in the
same call. This is unlike ``apply_edit_operations``, which works in the
document's original coordinates.

Supported operations:

- ``{"action": "add", "items": [...], "position"?: int}``
- ``{"action": "update", "item_index": int, "title"?, "content"?, "icon"?,
  "iconColor"?, "titleColor"?}``
- ``{"action": "remove", "item_index": int, "count"?: int}``
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..errors import NotAnAccordionError
from .block_converter import build_accordion_item, convert_nested_content, empty_paragraph
from .block_ids import IdFactory, assign_block_ids
from .document_operations import find_block_index_by_block_id, top_level_blocks
from .inline_parser import parse_inline

logger = logging.getLogger(__name__)

_TITLE_ATTRS = ("icon", "iconColor", "titleColor")


@dataclass
class AccordionEditResult:
    doc: dict[str, Any]
    operations_applied: int = 0
    warnings: list[str] = field(default_factory=list)
    removed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "operations_applied": self.operations_applied,
            "warnings": list(self.warnings),
            "accordion_removed": self.removed,
        }


def locate_accordion(doc: Any, block_id: str | None = None, index: int | None = None) -> int | None:
    """Top-level index of the block addressed by ``block_id`` or ``index``."""
    if block_id:
        return find_block_index_by_block_id(doc, block_id)
    if index is not None and 0 <= index < len(top_level_blocks(doc)):
        return index
    return None


def apply_accordion_operations(
    doc: dict[str, Any],
    index: int,
    operations: list[Mapping[str, Any]],
    id_factory: IdFactory | None = None,
) -> AccordionEditResult:
    """Apply item operations to the accordion at top-level ``index``.

    Raises ``NotAnAccordionError`` when that block is not an accordion.
    An accordion left without items is replaced by an empty paragraph.
    """
    content = list(top_level_blocks(doc))
    node = content[index] if 0 <= index < len(content) else None
    if not isinstance(node, dict) or node.get("type") != "accordionGroup":
        raise NotAnAccordionError(index, node.get("type") if isinstance(node, dict) else None)

    group = copy.deepcopy(node)
    items: list[dict[str, Any]] = group["content"] if isinstance(group.get("content"), list) else []
    group["content"] = items
    warnings: list[str] = []
    applied = 0

    for position, op in enumerate(operations):
        action = op.get("action") if isinstance(op, Mapping) else None
        label = f"Op[{position}] {action}"
        if action == "add":
            ok = _add(items, op, label, warnings, id_factory)
        elif action == "update":
            ok = _update(items, op, label, warnings, id_factory)
        elif action == "remove":
            ok = _remove(items, op, label, warnings)
        else:
            warnings.append(f"{label}: unknown action, skipped")
            ok = False
        applied += int(ok)

    removed = not items
    if removed:
        logger.debug("Accordion at %d has no items left, replacing with paragraph", index)
        content[index] = assign_block_ids(empty_paragraph(), id_factory)
    else:
        content[index] = group
    return AccordionEditResult(
        doc={**doc, "content": content},
        operations_applied=applied,
        warnings=warnings,
        removed=removed,
    )


def _add(
    items: list[dict[str, Any]],
    op: Mapping[str, Any],
    label: str,
    warnings: list[str],
    id_factory: IdFactory | None,
) -> bool:
    new_items = op.get("items")
    if not isinstance(new_items, list) or not new_items:
        warnings.append(f"{label}: no items provided, skipped")
        return False
    position = op.get("position")
    if position is None:
        at = len(items)
    elif isinstance(position, int) and not isinstance(position, bool):
        at = max(0, min(position, len(items)))
        if at != position:
            warnings.append(f"{label}: position {position} out of range, clamped to {at}")
    else:
        warnings.append(f"{label}: position {position!r} is not an index, skipped")
        return False
    built = [assign_block_ids(build_accordion_item(item), id_factory) for item in new_items]
    items[at:at] = built
    return True


def _update(
    items: list[dict[str, Any]],
    op: Mapping[str, Any],
    label: str,
    warnings: list[str],
    id_factory: IdFactory | None,
) -> bool:
    item_index = _item_index(items, op, label, warnings)
    if item_index is None:
        return False
    if not isinstance(items[item_index], dict):
        warnings.append(f"{label}: item {item_index} is not an accordion item, skipped")
        return False
    fields = [key for key in ("title", "content", *_TITLE_ATTRS) if op.get(key) is not None]
    if not fields:
        warnings.append(f"{label}: nothing to update, skipped")
        return False

    item = items[item_index]
    title, body = _item_parts(item)
    if op.get("title") is not None:
        title["content"] = parse_inline(str(op["title"]))
    if not isinstance(title.get("attrs"), dict):
        title["attrs"] = {}
    for key in _TITLE_ATTRS:
        if op.get(key) is not None:
            title["attrs"][key] = op[key]
    if op.get("content") is not None:
        body["content"] = convert_nested_content(op["content"])
    assign_block_ids(item, id_factory)
    return True


def _remove(items: list[dict[str, Any]], op: Mapping[str, Any], label: str, warnings: list[str]) -> bool:
    item_index = _item_index(items, op, label, warnings)
    if item_index is None:
        return False
    count = op.get("count", 1)
    if count is None:
        count = 1
    if not isinstance(count, int) or isinstance(count, bool) or count < 1:
        warnings.append(f"{label}: count {count!r} must be a positive integer, skipped")
        return False
    del items[item_index : item_index + count]
    return True


def _item_index(items: list[dict[str, Any]], op: Mapping[str, Any], label: str, warnings: list[str]) -> int | None:
    item_index = op.get("item_index")
    if not isinstance(item_index, int) or isinstance(item_index, bool):
        warnings.append(f"{label}: item_index is required, skipped")
        return None
    if not 0 <= item_index < len(items):
        warnings.append(f"{label}: item_index {item_index} out of range (0-{len(items) - 1}), skipped")
        return None
    return item_index


def _item_parts(item: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Title and content nodes of an item, created when missing."""
    children = item.get("content")
    if not isinstance(children, list):
        children = item["content"] = []
    title = next((c for c in children if isinstance(c, dict) and c.get("type") == "accordionTitle"), None)
    if title is None:
        title = {"type": "accordionTitle", "attrs": {}, "content": []}
        children.insert(0, title)
    body = next((c for c in children if isinstance(c, dict) and c.get("type") == "accordionContent"), None)
    if body is None:
        body = {"type": "accordionContent", "content": [empty_paragraph()]}
        children.append(body)
    return title, body
