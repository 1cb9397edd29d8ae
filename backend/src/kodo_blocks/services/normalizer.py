"""Normalize any content value into a Tree JSON document.

Callers send content in whatever shape is convenient: nothing at all, plain
text, a Markdown string, a JSON string, a Content JSON array, raw Tree nodes,
a full Tree document or a single block. ``normalize_content`` accepts all of
them and always returns ``{"type": "doc", "content": [...]}`` with at least
one block and block ids assigned. It never raises; the worst case is the
input rendered back as literal paragraph text.

Dispatch order (first match wins):

1. ``None`` → empty document
2. string → JSON string (re-normalized) or Markdown / plain text
3. list → Content JSON, raw Tree nodes, or a Content JSON attempt
4. dict → Tree document, single Tree block, single Content JSON block,
   or stringified text
5. anything else → stringified text
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any

from .block_converter import CONTENT_JSON_TYPES, TREE_BLOCK_TYPES, convert_blocks, empty_paragraph, is_tree_node
from .block_ids import IdFactory, assign_block_ids
from .markdown_parser import markdown_to_tree

logger = logging.getLogger(__name__)

_RECOGNIZED_NODE_TYPES = TREE_BLOCK_TYPES | {"text"}


def normalize_content(content: Any, id_factory: IdFactory | None = None) -> dict[str, Any]:
    """Normalize ``content`` into a Tree JSON document with block ids.

    The caller's value is never modified.
    """
    try:
        if content is None:
            doc = empty_doc()
        elif isinstance(content, str):
            doc = normalize_string(content)
        elif isinstance(content, list):
            doc = normalize_array(copy.deepcopy(content))
        elif isinstance(content, dict):
            doc = normalize_object(copy.deepcopy(content))
        else:
            doc = wrap_text_in_doc(str(content))
    except RecursionError:
        logger.warning("Content nested too deeply, stored as text")
        doc = wrap_text_in_doc(_safe_dump(content))
    return assign_block_ids(doc, id_factory)


def normalize_string(value: str) -> dict[str, Any]:
    trimmed = value.strip()
    if not trimmed:
        return empty_doc()
    if trimmed.startswith("{") or trimmed.startswith("["):
        parsed = parse_json_string(trimmed)
        if isinstance(parsed, list):
            return normalize_array(parsed)
        if isinstance(parsed, dict):
            return normalize_object(parsed)
    logger.debug("Normalizing string content as markdown")
    return markdown_to_tree(trimmed)


def parse_json_string(value: str) -> Any:
    """Return the decoded JSON value, or ``None`` when ``value`` is not JSON."""
    try:
        return json.loads(value)
    except ValueError:
        return None


def normalize_array(items: list[Any]) -> dict[str, Any]:
    if not items:
        return empty_doc()
    if _any_type_in(items, CONTENT_JSON_TYPES):
        logger.debug("Normalizing %d items as Content JSON", len(items))
        return {"type": "doc", "content": convert_blocks(items)}
    if _any_type_in(items, TREE_BLOCK_TYPES):
        logger.debug("Normalizing %d items as Tree nodes", len(items))
        return {"type": "doc", "content": validate_tree_nodes(items)}
    # Unknown shape: attempt Content JSON anyway.
    return {"type": "doc", "content": convert_blocks(items)}


def normalize_object(obj: dict[str, Any]) -> dict[str, Any]:
    node_type = obj.get("type")
    if node_type == "doc":
        children = obj.get("content")
        if isinstance(children, list):
            return {**obj, "content": validate_tree_nodes(children)}
        return empty_doc()
    if not isinstance(node_type, str):
        return wrap_text_in_doc(_safe_dump(obj))
    if node_type in _RECOGNIZED_NODE_TYPES and (is_tree_node(obj) or node_type not in CONTENT_JSON_TYPES):
        return {"type": "doc", "content": validate_tree_nodes([obj])}
    if node_type in CONTENT_JSON_TYPES:
        return {"type": "doc", "content": convert_blocks([obj])}
    return wrap_text_in_doc(_safe_dump(obj))


def validate_tree_nodes(nodes: list[Any]) -> list[dict[str, Any]]:
    """Filter raw Tree nodes for storage as top-level blocks.

    Drops anything without a recognized ``type``, wraps stray ``text`` nodes in a
    paragraph, and guarantees a non-empty result.
    """
    result: list[dict[str, Any]] = []
    for node in nodes:
        if not isinstance(node, dict) or not _is_recognized(node.get("type")):
            logger.debug("Dropping unrecognized node %r", node.get("type") if isinstance(node, dict) else node)
            continue
        if node["type"] == "text":
            result.append({"type": "paragraph", "content": [node]})
            continue
        result.append(node)
    return result or [empty_paragraph()]


def empty_doc() -> dict[str, Any]:
    return {"type": "doc", "content": [empty_paragraph()]}


def wrap_text_in_doc(text: str) -> dict[str, Any]:
    if not text.strip():
        return empty_doc()
    return {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}]}


def _is_recognized(node_type: Any) -> bool:
    return isinstance(node_type, str) and node_type in _RECOGNIZED_NODE_TYPES


def _any_type_in(items: list[Any], types: frozenset[str]) -> bool:
    return any(isinstance(it, dict) and isinstance(it.get("type"), str) and it["type"] in types for it in items)


def _safe_dump(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError, RecursionError):
        pass
    try:
        return str(value)
    except RecursionError:
        return "[content nested too deeply]"
