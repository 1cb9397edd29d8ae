"""Inline Markdown → Tree text runs.

Recognizes a deliberately small subset in one left-to-right pass:
**bold**, *italic*, ~~strike~~, `code` and [label](url). Markers are not
nested; anything that does not close is kept as literal text.
"""

from __future__ import annotations

import re
from typing import Any

_INLINE_RE = re.compile(
    r"\*\*(?P<bold>.+?)\*\*"
    r"|~~(?P<strike>.+?)~~"
    r"|`(?P<code>[^`]+)`"
    r"|\[(?P<label>[^\]]+)\]\((?P<href>[^)\s]+)\)"
    r"|\*(?P<italic>[^*\s](?:[^*]*[^*\s])?)\*"
)

# Group name → mark type, checked in pattern order.
_SIMPLE_MARKS = (("bold", "bold"), ("strike", "strike"), ("code", "code"), ("italic", "italic"))


def text_run(text: str, marks: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    run: dict[str, Any] = {"type": "text", "text": text}
    if marks:
        run["marks"] = marks
    return run


def parse_inline(text: str | None) -> list[dict[str, Any]]:
    """Convert a string with inline Markdown into a list of text nodes.

    Empty input yields a single ``" "`` run so the parent node always has
    something renderable.
    """
    if not text:
        return [text_run(" ")]
    if not isinstance(text, str):
        text = str(text)

    runs: list[dict[str, Any]] = []
    pos = 0
    for match in _INLINE_RE.finditer(text):
        if match.start() > pos:
            _append_plain(runs, text[pos : match.start()])
        runs.append(_run_for_match(match))
        pos = match.end()
    if pos < len(text):
        _append_plain(runs, text[pos:])
    return runs or [text_run(" ")]


def _run_for_match(match: re.Match[str]) -> dict[str, Any]:
    if match.group("label") is not None:
        return text_run(match.group("label"), [{"type": "link", "attrs": {"href": match.group("href")}}])
    for group, mark in _SIMPLE_MARKS:
        value = match.group(group)
        if value is not None:
            return text_run(value, [{"type": mark}])
    # Unreachable with the current pattern; keep the raw text.
    return text_run(match.group(0))


def _append_plain(runs: list[dict[str, Any]], text: str) -> None:
    if runs and "marks" not in runs[-1]:
        runs[-1]["text"] += text
    else:
        runs.append(text_run(text))
