from kodo_blocks.services import serializers
from kodo_blocks.services.normalizer import normalize_content
from kodo_blocks.services.serializers import (
    HTML_ERROR,
    MARKDOWN_ERROR,
    tree_to_html,
    tree_to_markdown,
    tree_to_styled_html,
)


def _doc(content):
    return normalize_content(content)


def test_markdown_round_trip_of_common_blocks():
    source = "# Title\n\nSome **bold** and [link](https://x.io)\n\n- a\n- b\n\n1. one\n\n> quote\n\n---"
    md = tree_to_markdown(_doc(source))
    assert md.startswith("# Title")
    assert "Some **bold** and [link](https://x.io)" in md
    assert "- a\n- b" in md
    assert "1. one" in md
    assert "> quote" in md
    assert "---" in md


def test_markdown_table_and_checklist():
    doc = _doc(
        [
            {"type": "table", "headers": ["Name", "Qty"], "rows": [["apple", "3"]]},
            {"type": "checklist", "items": [{"text": "done", "checked": True}, {"text": "todo"}]},
        ]
    )
    md = tree_to_markdown(doc)
    assert "| Name  | Qty |" in md
    assert "| apple | 3   |" in md
    assert "- [x] done" in md
    assert "- [ ] todo" in md


def test_markdown_code_and_embeds():
    doc = {
        "type": "doc",
        "content": [
            {"type": "codeBlock", "attrs": {"language": "py"}, "content": [{"type": "text", "text": "x = 1"}]},
            {"type": "databaseTable", "attrs": {"databaseId": "db-9", "config": {"name": "Tasks"}}},
            {"type": "mindmap", "attrs": {"mindmapId": "m-1"}},
        ],
    }
    md = tree_to_markdown(doc)
    assert "```py\nx = 1\n```" in md
    assert "[Database: Tasks]" in md
    assert "`db-9`" in md
    assert "m-1" in md


def test_markdown_accordion_renders_title_and_body():
    md = tree_to_markdown(_doc([{"type": "accordion", "items": [{"title": "FAQ", "content": "Answer"}]}]))
    assert "**FAQ**" in md
    assert "Answer" in md


def test_html_escapes_text_and_renders_marks():
    html = tree_to_html(_doc("Tom & <Jerry> **bold**"))
    assert "Tom &amp; &lt;Jerry&gt; <strong>bold</strong>" in html
    assert html.startswith("<p>")


def test_html_structures():
    doc = _doc(
        [
            {"type": "heading", "level": 9, "text": "Deep"},
            {"type": "accordion", "items": [{"title": "Q", "content": "A"}]},
            {"type": "columns", "columns": ["L", "R"]},
            {"type": "image", "url": "https://x/i.png", "alt": "pic"},
        ]
    )
    html = tree_to_html(doc)
    assert "<h6>Deep</h6>" in html
    assert "<details" in html and "<summary" in html
    assert html.count('class="column"') == 2
    assert '<img src="https://x/i.png" alt="pic">' in html


def test_styled_html_is_a_full_page():
    page = tree_to_styled_html(_doc("hello"), "Report <1>")
    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Report &lt;1&gt;</title>" in page
    assert "<p>hello</p>" in page
    assert "@page" in page


def test_heading_levels_are_clamped():
    for level in (10**30, 10**9, 7):
        doc = {"type": "doc", "content": [{"type": "heading", "attrs": {"level": level}, "content": [{"type": "text", "text": "x"}]}]}
        assert tree_to_markdown(doc).startswith("###### x")
        assert "<h6>x</h6>" in tree_to_html(doc)
    unreadable = {"type": "doc", "content": [{"type": "heading", "attrs": {"level": "x"}, "content": [{"type": "text", "text": "x"}]}]}
    assert tree_to_markdown(unreadable) == "# x"
    assert tree_to_html(unreadable) == "<h1>x</h1>"


def test_renderers_never_raise(monkeypatch):
    assert tree_to_markdown(None) == ""
    assert tree_to_html("nope") == ""

    def boom(*args):
        raise KeyError("content")

    monkeypatch.setattr(serializers, "_md_node", boom)
    monkeypatch.setattr(serializers, "_html_node", boom)
    doc = _doc("hello")
    assert tree_to_markdown(doc) == MARKDOWN_ERROR
    assert tree_to_html(doc) == HTML_ERROR
