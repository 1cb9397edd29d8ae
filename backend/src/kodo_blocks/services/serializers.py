"""Tree JSON → Markdown / HTML.

One-way renderers for reading documents back. They accept any value and
never raise: an unrenderable document yields a short placeholder instead.
"""

from __future__ import annotations

import html
import logging
from typing import Any

logger = logging.getLogger(__name__)

MARKDOWN_ERROR = "[Error converting document to Markdown]"
HTML_ERROR = "<!-- Error converting document to HTML -->"


# =============================================================================
# Markdown
# =============================================================================


def tree_to_markdown(doc: Any) -> str:
    if not isinstance(doc, dict) or not doc.get("type"):
        return ""
    try:
        return _md_node(doc, 0).strip()
    except (TypeError, ValueError, AttributeError, KeyError, OverflowError, MemoryError, RecursionError):
        logger.exception("Markdown rendering failed")
        return MARKDOWN_ERROR


def _md_node(node: dict[str, Any], depth: int) -> str:
    t = node.get("type")
    attrs = _attrs(node)
    if t == "doc":
        return _md_children(node, depth)
    if t == "paragraph":
        return _md_inline(node) + "\n\n"
    if t == "heading":
        return f"{'#' * _heading_level(attrs)} {_md_inline(node)}\n\n"
    if t == "text":
        return _md_marks(node.get("text") or "", node.get("marks"))
    if t == "hardBreak":
        return "  \n"
    if t == "horizontalRule":
        return "---\n\n"
    if t in ("bulletList", "orderedList"):
        return _md_list(node, ordered=t == "orderedList", depth=depth)
    if t == "taskList":
        return _md_task_list(node, depth)
    if t == "blockquote":
        inner = _md_children(node, depth).strip()
        return "\n".join(f"> {line}" for line in inner.split("\n")) + "\n\n"
    if t == "codeBlock":
        return f"```{attrs.get('language') or ''}\n{_plain_text(node)}\n```\n\n"
    if t == "table":
        return _md_table(node)
    if t in ("tableRow", "tableHeader", "tableCell"):
        return _md_inline(node)
    if t == "image":
        md = f"![{attrs.get('alt') or ''}]({attrs.get('src') or ''})"
        if attrs.get("caption"):
            md += f"\n*{attrs['caption']}*"
        return md + "\n\n"
    if t == "accordionTitle":
        return f"**{_md_inline(node)}**\n\n"
    if t in ("accordionGroup", "accordionItem", "accordionContent", "column"):
        return _md_children(node, depth)
    if t == "columns":
        return "---\n\n".join(_md_children(column, depth) for column in _children(node))
    if t == "databaseTable":
        name = (attrs.get("config") or {}).get("name") or "Database"
        return f"> **[Database: {name}]**\n> Database ID: `{attrs.get('databaseId') or ''}`\n\n"
    if t == "spreadsheet":
        name = (attrs.get("config") or {}).get("name") or "Spreadsheet"
        return f"> **[Spreadsheet: {name}]**\n> Spreadsheet ID: `{attrs.get('spreadsheetId') or ''}`\n\n"
    if t == "mindmap":
        return f"> **[Mind Map]** (ID: `{attrs.get('mindmapId') or ''}`)\n\n"
    if t == "taskMention":
        return (
            f"**[#{attrs.get('taskNumber')} {attrs.get('taskTitle') or ''} "
            f"({attrs.get('taskStatus') or ''}, {attrs.get('taskPriority') or ''})]**\n\n"
        )
    if t == "taskSection":
        return "> **[Task section linked to this document]**\n\n"
    if _children(node):
        return _md_children(node, depth)
    return f"[Unknown block: {t}]\n\n"


def _md_children(node: dict[str, Any], depth: int) -> str:
    return "".join(_md_node(child, depth) for child in _children(node))


def _md_inline(node: dict[str, Any]) -> str:
    return "".join(_md_node(child, 0) for child in _children(node)).strip()


def _md_marks(text: str, marks: Any) -> str:
    if not isinstance(marks, list):
        return text
    for mark in marks:
        kind = mark.get("type") if isinstance(mark, dict) else None
        if kind == "bold":
            text = f"**{text}**"
        elif kind == "italic":
            text = f"*{text}*"
        elif kind == "strike":
            text = f"~~{text}~~"
        elif kind == "code":
            text = f"`{text}`"
        elif kind == "link":
            text = f"[{text}]({_attrs(mark).get('href') or ''})"
    return text


def _md_list(node: dict[str, Any], ordered: bool, depth: int) -> str:
    indent = "  " * depth
    parts = []
    for number, item in enumerate(_children(node), start=1):
        bullet = f"{number}. " if ordered else "- "
        parts.append(_md_item(item, indent, bullet, depth))
    return "".join(parts) + ("\n" if depth == 0 else "")


def _md_task_list(node: dict[str, Any], depth: int) -> str:
    indent = "  " * depth
    parts = []
    for item in _children(node):
        box = "x" if _attrs(item).get("checked") else " "
        parts.append(_md_item(item, indent, f"- [{box}] ", depth))
    return "".join(parts) + ("\n" if depth == 0 else "")


def _md_item(item: dict[str, Any], indent: str, bullet: str, depth: int) -> str:
    children = _children(item)
    if not children:
        return f"{indent}{bullet}\n"
    parts = []
    for i, child in enumerate(children):
        if child.get("type") == "paragraph":
            text = _md_inline(child)
            parts.append(f"{indent}{bullet}{text}\n" if i == 0 else f"{indent}  {text}\n")
        elif child.get("type") in ("bulletList", "orderedList", "taskList"):
            parts.append(_md_node(child, depth + 1))
        else:
            parts.append(_md_node(child, depth))
    return "".join(parts)


def _md_table(node: dict[str, Any]) -> str:
    rows = []
    for row in _children(node):
        if row.get("type") != "tableRow":
            continue
        rows.append([_md_inline(cell).replace("|", "\\|").replace("\n", " ") for cell in _children(row)])
    if not rows:
        return ""
    col_count = max(len(r) for r in rows)
    widths = [3] * col_count
    for r in rows:
        for i, cell in enumerate(r):
            widths[i] = max(widths[i], len(cell))

    def fmt(cells: list[str]) -> str:
        padded = [(cells[i] if i < len(cells) else "").ljust(widths[i]) for i in range(col_count)]
        return "| " + " | ".join(padded) + " |"

    lines = [fmt(rows[0]), "| " + " | ".join("-" * w for w in widths) + " |"]
    lines.extend(fmt(r) for r in rows[1:])
    return "\n".join(lines) + "\n\n"


# =============================================================================
# HTML
# =============================================================================


def tree_to_html(doc: Any) -> str:
    """Render a document as an HTML fragment (no styles)."""
    if not isinstance(doc, dict) or not doc.get("type"):
        return ""
    try:
        return _html_node(doc)
    except (TypeError, ValueError, AttributeError, KeyError, OverflowError, MemoryError, RecursionError):
        logger.exception("HTML rendering failed")
        return HTML_ERROR


def tree_to_styled_html(doc: Any, title: str) -> str:
    """Render a full, printable HTML page for a document."""
    body = tree_to_html(doc)
    escaped_title = html.escape(title or "")
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escaped_title}</title>
  <style>
{PRINT_STYLES}
  </style>
</head>
<body>
  <h1 class="document-title">{escaped_title}</h1>
  <div class="document-content">
    {body}
  </div>
</body>
</html>"""


_SIMPLE_TAGS = {
    "paragraph": "p",
    "bulletList": "ul",
    "orderedList": "ol",
    "listItem": "li",
    "blockquote": "blockquote",
    "table": "table",
    "tableRow": "tr",
    "tableHeader": "th",
    "tableCell": "td",
}


def _html_node(node: dict[str, Any]) -> str:
    t = node.get("type")
    attrs = _attrs(node)
    if t == "doc":
        return _html_children(node)
    if t == "text":
        return _html_marks(html.escape(node.get("text") or ""), node.get("marks"))
    if t in _SIMPLE_TAGS:
        tag = _SIMPLE_TAGS[t]
        inner = _html_children(node)
        if t == "table":
            inner = f"<tbody>{inner}</tbody>"
        return f"<{tag}>{inner}</{tag}>"
    if t == "heading":
        level = _heading_level(attrs)
        return f"<h{level}>{_html_children(node)}</h{level}>"
    if t == "hardBreak":
        return "<br>"
    if t == "horizontalRule":
        return "<hr>"
    if t == "codeBlock":
        lang = attrs.get("language")
        cls = f' class="language-{html.escape(str(lang), quote=True)}"' if lang else ""
        return f"<pre><code{cls}>{html.escape(_plain_text(node))}</code></pre>"
    if t == "taskList":
        return f'<ul data-type="taskList">{_html_children(node)}</ul>'
    if t == "taskItem":
        checked = "true" if attrs.get("checked") else "false"
        box = '<input type="checkbox" disabled checked>' if attrs.get("checked") else '<input type="checkbox" disabled>'
        return f'<li data-type="taskItem" data-checked="{checked}"><label>{box}</label><div>{_html_children(node)}</div></li>'
    if t == "image":
        src = html.escape(str(attrs.get("src") or ""), quote=True)
        alt = html.escape(str(attrs.get("alt") or ""), quote=True)
        align = html.escape(str(attrs.get("alignment") or "center"), quote=True)
        return f'<figure class="image align-{align}"><img src="{src}" alt="{alt}"></figure>'
    if t == "accordionGroup":
        return f'<div class="accordion-group">{_html_children(node)}</div>'
    if t == "accordionItem":
        return f'<details class="accordion-item" open>{_html_children(node)}</details>'
    if t == "accordionTitle":
        color = html.escape(str(attrs.get("titleColor") or "#1f2937"), quote=True)
        return f'<summary class="accordion-title" style="color:{color}">{_html_children(node)}</summary>'
    if t == "accordionContent":
        return f'<div class="accordion-content">{_html_children(node)}</div>'
    if t == "columns":
        return f'<div class="columns" style="display:flex;gap:1rem">{_html_children(node)}</div>'
    if t == "column":
        return f'<div class="column" style="flex:1">{_html_children(node)}</div>'
    if t == "databaseTable":
        name = html.escape(str((attrs.get("config") or {}).get("name") or "Database"))
        return f'<div class="embed database-table">[Database: {name}]</div>'
    if t == "spreadsheet":
        name = html.escape(str((attrs.get("config") or {}).get("name") or "Spreadsheet"))
        return f'<div class="embed spreadsheet">[Spreadsheet: {name}]</div>'
    if t == "mindmap":
        return '<div class="embed mindmap">[Mind Map]</div>'
    if t == "taskMention":
        label = html.escape(f"#{attrs.get('taskNumber')} {attrs.get('taskTitle') or ''}".strip())
        return f'<span class="task-mention">{label}</span>'
    if t == "taskSection":
        return '<div class="embed task-section">[Task section]</div>'
    return _html_children(node)


def _html_children(node: dict[str, Any]) -> str:
    return "".join(_html_node(child) for child in _children(node))


def _html_marks(text: str, marks: Any) -> str:
    if not isinstance(marks, list):
        return text
    for mark in marks:
        kind = mark.get("type") if isinstance(mark, dict) else None
        if kind == "bold":
            text = f"<strong>{text}</strong>"
        elif kind == "italic":
            text = f"<em>{text}</em>"
        elif kind == "strike":
            text = f"<s>{text}</s>"
        elif kind == "code":
            text = f"<code>{text}</code>"
        elif kind == "link":
            href = html.escape(str(_attrs(mark).get("href") or ""), quote=True)
            text = f'<a href="{href}">{text}</a>'
    return text


# =============================================================================
# Shared helpers
# =============================================================================


def _children(node: dict[str, Any]) -> list[dict[str, Any]]:
    content = node.get("content")
    if not isinstance(content, list):
        return []
    return [child for child in content if isinstance(child, dict)]


def _attrs(node: dict[str, Any]) -> dict[str, Any]:
    attrs = node.get("attrs")
    return attrs if isinstance(attrs, dict) else {}


def _heading_level(attrs: dict[str, Any]) -> int:
    """Heading level clamped to 1-6; anything unreadable counts as 1."""
    try:
        level = int(attrs.get("level") or 1)
    except (TypeError, ValueError, OverflowError):
        return 1
    return min(max(level, 1), 6)


def _plain_text(node: dict[str, Any]) -> str:
    if isinstance(node.get("text"), str):
        return node["text"]
    return "".join(_plain_text(child) for child in _children(node))


PRINT_STYLES = """\
    @page { margin: 2cm; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
      color: #1f2937;
      line-height: 1.6;
      max-width: 800px;
      margin: 0 auto;
    }
    .document-title { font-size: 2rem; border-bottom: 1px solid #e5e7eb; padding-bottom: 0.5rem; }
    pre { background: #f3f4f6; padding: 0.75rem; border-radius: 4px; overflow-x: auto; }
    code { font-family: "SFMono-Regular", Consolas, monospace; font-size: 0.9em; }
    blockquote { border-left: 3px solid #d1d5db; margin: 0; padding-left: 1rem; color: #4b5563; }
    table { border-collapse: collapse; width: 100%; }
    th, td { border: 1px solid #d1d5db; padding: 0.4rem 0.6rem; text-align: left; }
    th { background: #f9fafb; }
    ul[data-type="taskList"] { list-style: none; padding-left: 0; }
    ul[data-type="taskList"] li { display: flex; gap: 0.5rem; }
    figure.image { margin: 1rem 0; text-align: center; }
    figure.image img { max-width: 100%; }
    .accordion-item { border: 1px solid #e5e7eb; border-radius: 6px; margin: 0.5rem 0; padding: 0.5rem 0.75rem; }
    .accordion-title { font-weight: 600; cursor: pointer; }
    .columns { page-break-inside: avoid; }
    .embed { border: 1px dashed #9ca3af; padding: 0.5rem; color: #6b7280; }
    @media print { details { page-break-inside: avoid; } }"""
