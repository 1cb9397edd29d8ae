"""Markdown string → Content JSON blocks → Tree JSON.

This is a small, line-based block parser. It emits the same Content JSON
blocks callers send directly, so a Markdown string goes through exactly the
same converter as structured input. Inline formatting is left in the text
fields for the inline parser.
"""

from __future__ import annotations

import re
from typing import Any

from .block_converter import convert_blocks

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_TASK_RE = re.compile(r"^[-*+]\s+\[([ xX])\]\s*(.*)$")
_BULLET_RE = re.compile(r"^[-*+]\s+(.*)$")
_ORDERED_RE = re.compile(r"^\d+[.)]\s+(.*)$")
_IMAGE_RE = re.compile(r"^!\[([^\]]*)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)$")
_TABLE_SEPARATOR_RE = re.compile(r"^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?$")
_HR_LINES = ("---", "***", "___")


def parse_markdown_to_blocks(markdown: str) -> list[dict[str, Any]]:
    """Parse markdown into a list of Content JSON blocks."""
    blocks: list[dict[str, Any]] = []
    _parse_blocks(markdown.replace("\r\n", "\n"), blocks)
    return blocks


def markdown_to_tree(markdown: str) -> dict[str, Any]:
    """Parse markdown (or plain text) into a Tree JSON document."""
    return {"type": "doc", "content": convert_blocks(parse_markdown_to_blocks(markdown))}


def _parse_blocks(text: str, out: list[dict[str, Any]]) -> None:
    lines = text.split("\n")
    i = 0
    while i < len(lines):
        stripped = lines[i].strip()
        if not stripped:
            i += 1
            continue
        # Heading
        heading = _HEADING_RE.match(stripped)
        if heading:
            out.append({"type": "heading", "level": len(heading.group(1)), "text": heading.group(2)})
            i += 1
            continue
        # Code block
        if stripped.startswith("```"):
            lang = stripped[3:].strip()
            code_lines = []
            i += 1
            while i < len(lines) and not lines[i].strip().startswith("```"):
                code_lines.append(lines[i])
                i += 1
            if i < len(lines):
                i += 1
            block: dict[str, Any] = {"type": "code", "text": "\n".join(code_lines)}
            if lang:
                block["language"] = lang
            out.append(block)
            continue
        # Blockquote
        if stripped.startswith(">"):
            quote_lines = []
            while i < len(lines) and lines[i].strip().startswith(">"):
                quote_lines.append(lines[i].strip()[1:].strip())
                i += 1
            out.append({"type": "quote", "text": "\n".join(quote_lines)})
            continue
        # HR
        if stripped in _HR_LINES:
            out.append({"type": "divider"})
            i += 1
            continue
        # Table: header row followed by a separator row
        if stripped.startswith("|") and i + 1 < len(lines) and _TABLE_SEPARATOR_RE.match(lines[i + 1].strip()):
            headers = _split_table_row(stripped)
            rows = []
            i += 2
            while i < len(lines) and lines[i].strip().startswith("|"):
                rows.append(_split_table_row(lines[i].strip()))
                i += 1
            out.append({"type": "table", "headers": headers, "rows": rows})
            continue
        # Checklist
        if _TASK_RE.match(stripped):
            items = []
            while i < len(lines):
                m = _TASK_RE.match(lines[i].strip())
                if not m:
                    break
                items.append({"text": m.group(2).strip(), "checked": m.group(1).lower() == "x"})
                i += 1
            out.append({"type": "checklist", "items": items})
            continue
        # Unordered list
        if _BULLET_RE.match(stripped):
            items = []
            while i < len(lines):
                s = lines[i].strip()
                m = _BULLET_RE.match(s)
                if not m or _TASK_RE.match(s) or s in _HR_LINES:
                    break
                items.append(m.group(1).strip())
                i += 1
            out.append({"type": "list", "items": items})
            continue
        # Ordered list
        if _ORDERED_RE.match(stripped):
            items = []
            while i < len(lines):
                m = _ORDERED_RE.match(lines[i].strip())
                if not m:
                    break
                items.append(m.group(1).strip())
                i += 1
            out.append({"type": "ordered_list", "items": items})
            continue
        # Standalone image
        image = _IMAGE_RE.match(stripped)
        if image:
            out.append({"type": "image", "alt": image.group(1), "url": image.group(2)})
            i += 1
            continue
        # Paragraph (collect until blank or another block)
        para_lines = []
        while i < len(lines) and lines[i].strip() and (not para_lines or not _is_block_start(lines[i])):
            para_lines.append(lines[i].strip())
            i += 1
        out.append({"type": "paragraph", "text": " ".join(para_lines)})


def _split_table_row(line: str) -> list[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|"):
        inner = inner[:-1]
    return [cell.strip() for cell in inner.split("|")]


def _is_block_start(line: str) -> bool:
    s = line.strip()
    if not s:
        return True
    if _HEADING_RE.match(s):
        return True
    if s.startswith("```"):
        return True
    if s.startswith(">"):
        return True
    if s in _HR_LINES:
        return True
    if s.startswith("|"):
        return True
    if _BULLET_RE.match(s) or _ORDERED_RE.match(s):
        return True
    if _IMAGE_RE.match(s):
        return True
    return False
