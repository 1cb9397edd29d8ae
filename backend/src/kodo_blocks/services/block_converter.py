"""Content JSON → Tree JSON block conversion.

Content JSON is the flat block format callers (often an AI agent) send:

    [
      {"type": "heading", "level": 1, "text": "Title"},
      {"type": "paragraph", "text": "Text with **bold** and *italic*"},
      {"type": "list", "items": ["Point 1", "Point 2"]},
      {"type": "checklist", "items": [{"text": "Done", "checked": true}]},
      {"type": "table", "headers": ["Name"], "rows": [["Alice"]]},
      {"type": "accordion", "items": [{"title": "Section", "content": "Text"}]},
      {"type": "columns", "columns": ["Col 1", [{"type": "paragraph", "text": "Col 2"}]]}
    ]

It is never stored. Every block is turned into the Tree JSON node the
editor persists; all text fields go through the inline parser.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .inline_parser import parse_inline

logger = logging.getLogger(__name__)

CONTENT_JSON_TYPES = frozenset(
    {
        "heading",
        "paragraph",
        "list",
        "ordered_list",
        "checklist",
        "quote",
        "code",
        "divider",
        "table",
        "image",
        "accordion",
        "columns",
    }
)

TREE_BLOCK_TYPES = frozenset(
    {
        "paragraph",
        "heading",
        "bulletList",
        "orderedList",
        "listItem",
        "taskList",
        "taskItem",
        "codeBlock",
        "blockquote",
        "horizontalRule",
        "table",
        "tableRow",
        "tableHeader",
        "tableCell",
        "image",
        "columns",
        "column",
        "accordionGroup",
        "accordionItem",
        "accordionTitle",
        "accordionContent",
        "databaseTable",
        "spreadsheet",
        "mindmap",
        "taskMention",
        "taskSection",
        "hardBreak",
    }
)

DEFAULT_ACCORDION_ICON = "description"
DEFAULT_ACCORDION_ICON_COLOR = "#3b82f6"
DEFAULT_ACCORDION_TITLE_COLOR = "#1f2937"
DEFAULT_ACCORDION_TITLE = "Section"


def empty_paragraph() -> dict[str, Any]:
    return {"type": "paragraph"}


def convert_blocks(blocks: list[Any]) -> list[dict[str, Any]]:
    """Convert a Content JSON array, skipping blocks that cannot be converted.

    Never returns an empty list: a single empty paragraph stands in when
    nothing survives.
    """
    nodes: list[dict[str, Any]] = []
    for block in blocks:
        node = convert_block(block)
        if node is not None:
            nodes.append(node)
    return nodes or [empty_paragraph()]


def convert_block(block: Any) -> dict[str, Any] | None:
    """Convert one Content JSON block into a Tree node.

    Nodes that are already Tree JSON (a Tree type carrying ``content`` or
    ``attrs``) pass through untouched. Unknown kinds become a paragraph when
    they carry ``text`` and are dropped (``None``) otherwise.
    """
    if not isinstance(block, dict) or not isinstance(block.get("type"), str):
        return None
    if is_tree_node(block):
        return block
    converter = _CONVERTERS.get(block["type"])
    if converter is None:
        return _convert_unknown(block)
    return converter(block)


def is_tree_node(block: dict[str, Any]) -> bool:
    if block.get("type") not in TREE_BLOCK_TYPES:
        return False
    return isinstance(block.get("content"), list) or isinstance(block.get("attrs"), dict)


def build_accordion_item(item: Any) -> dict[str, Any]:
    """Build one ``accordionItem`` (title + content) from a simplified item.

    ``item`` is ``{"title", "content", "icon"?, "iconColor"?, "titleColor"?}``
    where ``content`` is a string or a list of Content JSON blocks.
    """
    if not isinstance(item, dict):
        item = {"title": _text(item)}
    title = {
        "type": "accordionTitle",
        "attrs": {
            "icon": item.get("icon") or DEFAULT_ACCORDION_ICON,
            "iconColor": item.get("iconColor") or DEFAULT_ACCORDION_ICON_COLOR,
            "titleColor": item.get("titleColor") or DEFAULT_ACCORDION_TITLE_COLOR,
            "collapsed": False,
        },
        "content": parse_inline(_text(item.get("title")) or DEFAULT_ACCORDION_TITLE),
    }
    body = {"type": "accordionContent", "content": convert_nested_content(item.get("content"))}
    return {"type": "accordionItem", "content": [title, body]}


def convert_nested_content(value: Any) -> list[dict[str, Any]]:
    """Content of a column or accordion section: a string or a block list."""
    if isinstance(value, str):
        if value.strip():
            return [{"type": "paragraph", "content": parse_inline(value)}]
        return [empty_paragraph()]
    if isinstance(value, list) and value:
        return convert_blocks(value)
    return [empty_paragraph()]


# --- per-kind converters -----------------------------------------------------


def _convert_heading(block: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "heading",
        "attrs": {"level": _level(block.get("level"))},
        "content": parse_inline(_text(block.get("text"))),
    }


def _convert_paragraph(block: dict[str, Any]) -> dict[str, Any]:
    return {"type": "paragraph", "content": parse_inline(_text(block.get("text")))}


def _convert_bullet_list(block: dict[str, Any]) -> dict[str, Any]:
    return _list_node("bulletList", _items(block))


def _convert_ordered_list(block: dict[str, Any]) -> dict[str, Any]:
    return _list_node("orderedList", _items(block))


def _list_node(list_type: str, items: list[Any]) -> dict[str, Any]:
    list_items = [
        {"type": "listItem", "content": [{"type": "paragraph", "content": parse_inline(_item_text(it))}]}
        for it in items
    ]
    return {"type": list_type, "content": list_items}


def _convert_checklist(block: dict[str, Any]) -> dict[str, Any]:
    task_items = []
    for it in _items(block):
        checked = bool(it.get("checked", False)) if isinstance(it, dict) else False
        task_items.append(
            {
                "type": "taskItem",
                "attrs": {"checked": checked},
                "content": [{"type": "paragraph", "content": parse_inline(_item_text(it))}],
            }
        )
    return {"type": "taskList", "content": task_items}


def _convert_quote(block: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "blockquote",
        "content": [{"type": "paragraph", "content": parse_inline(_text(block.get("text")))}],
    }


def _convert_code(block: dict[str, Any]) -> dict[str, Any]:
    language = block.get("language")
    code = _text(block.get("text"))
    return {
        "type": "codeBlock",
        "attrs": {"language": language} if language else {},
        "content": [{"type": "text", "text": code}] if code else [],
    }


def _convert_divider(_block: dict[str, Any]) -> dict[str, Any]:
    return {"type": "horizontalRule"}


def _convert_table(block: dict[str, Any]) -> dict[str, Any]:
    headers = block.get("headers") if isinstance(block.get("headers"), list) else []
    rows = block.get("rows") if isinstance(block.get("rows"), list) else []
    table_rows: list[dict[str, Any]] = []
    if headers:
        table_rows.append({"type": "tableRow", "content": [_table_cell("tableHeader", h) for h in headers]})
    for row in rows:
        cells = row if isinstance(row, list) else [row]
        table_rows.append({"type": "tableRow", "content": [_table_cell("tableCell", c) for c in cells]})
    return {"type": "table", "content": table_rows}


def _table_cell(cell_type: str, value: Any) -> dict[str, Any]:
    return {
        "type": cell_type,
        "attrs": {"colspan": 1, "rowspan": 1},
        "content": [{"type": "paragraph", "content": parse_inline(_text(value))}],
    }


def _convert_image(block: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "image",
        "attrs": {
            "src": _text(block.get("url")) or _text(block.get("text")),
            "alt": _text(block.get("alt")),
            "alignment": "center",
        },
    }


def _convert_accordion(block: dict[str, Any]) -> dict[str, Any]:
    items = _items(block)
    if not items:
        # The editor schema requires at least one item.
        items = [{"title": DEFAULT_ACCORDION_TITLE, "content": ""}]
    return {"type": "accordionGroup", "content": [build_accordion_item(it) for it in items]}


def _convert_columns(block: dict[str, Any]) -> dict[str, Any]:
    columns = block.get("columns") if isinstance(block.get("columns"), list) else []
    if not columns:
        columns = ["", ""]
    return {
        "type": "columns",
        "content": [{"type": "column", "content": convert_nested_content(col)} for col in columns],
    }


def _convert_unknown(block: dict[str, Any]) -> dict[str, Any] | None:
    text = block.get("text")
    if text:
        logger.debug("Unknown block type %r rendered as paragraph", block.get("type"))
        return {"type": "paragraph", "content": parse_inline(_text(text))}
    logger.debug("Unknown block type %r without text dropped", block.get("type"))
    return None


_CONVERTERS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
    "heading": _convert_heading,
    "paragraph": _convert_paragraph,
    "list": _convert_bullet_list,
    "ordered_list": _convert_ordered_list,
    "checklist": _convert_checklist,
    "quote": _convert_quote,
    "code": _convert_code,
    "divider": _convert_divider,
    "table": _convert_table,
    "image": _convert_image,
    "accordion": _convert_accordion,
    "columns": _convert_columns,
}


# --- field coercion ----------------------------------------------------------


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _item_text(item: Any) -> str:
    if isinstance(item, dict):
        return _text(item.get("text"))
    return _text(item)


def _items(block: dict[str, Any]) -> list[Any]:
    items = block.get("items")
    return items if isinstance(items, list) else []


def _level(value: Any) -> int:
    if isinstance(value, bool):
        return 1
    try:
        level = int(value)
    except (TypeError, ValueError, OverflowError):
        return 1
    return level or 1
