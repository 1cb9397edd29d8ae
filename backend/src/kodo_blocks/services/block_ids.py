"""Stable block identifiers (``attrs.blockId``) for Tree JSON nodes."""

from __future__ import annotations

import uuid
from typing import Any, Callable

IdFactory = Callable[[], str]

BLOCKID_ELIGIBLE_TYPES = frozenset(
    {
        "paragraph",
        "heading",
        "blockquote",
        "codeBlock",
        "bulletList",
        "orderedList",
        "taskList",
        "listItem",
        "taskItem",
        "table",
        "tableRow",
        "tableCell",
        "tableHeader",
        "horizontalRule",
        "image",
        "columns",
        "column",
        "databaseTable",
        "taskSection",
        "accordionGroup",
        "accordionItem",
        "accordionTitle",
        "accordionContent",
        "spreadsheet",
        "mindmap",
        "taskMention",
    }
)


def generate_block_id() -> str:
    return f"block-{uuid.uuid4()}"


def assign_block_ids(node: dict[str, Any], id_factory: IdFactory | None = None) -> dict[str, Any]:
    """Give every eligible node without a ``blockId`` a fresh one.

    Walks the tree depth-first and mutates it in place. Existing ids are
    never replaced, so calling this on an already-processed tree is a no-op.
    Returns the node for chaining.
    """
    factory = id_factory or generate_block_id
    _assign(node, factory)
    return node


def _assign(node: Any, factory: IdFactory) -> None:
    if not isinstance(node, dict):
        return
    if node.get("type") in BLOCKID_ELIGIBLE_TYPES:
        attrs = node.get("attrs")
        if not isinstance(attrs, dict):
            attrs = {}
            node["attrs"] = attrs
        if not attrs.get("blockId"):
            attrs["blockId"] = factory()
    children = node.get("content")
    if isinstance(children, list):
        for child in children:
            _assign(child, factory)
