import copy
import json

from kodo_blocks.services.normalizer import (
    normalize_array,
    normalize_content,
    normalize_object,
    normalize_string,
    parse_json_string,
    validate_tree_nodes,
)


def _types(doc):
    return [n["type"] for n in doc["content"]]


def test_none_and_blank_strings_give_one_empty_paragraph(ids):
    assert normalize_content(None, ids) == {
        "type": "doc",
        "content": [{"type": "paragraph", "attrs": {"blockId": "block-1"}}],
    }
    for blank in ("", "   \n "):
        doc = normalize_content(blank)
        assert _types(doc) == ["paragraph"]
        assert "content" not in doc["content"][0]


def test_empty_array_gives_one_empty_paragraph():
    assert _types(normalize_content([])) == ["paragraph"]


def test_plain_text_and_markdown_strings():
    doc = normalize_content("hello there")
    assert doc["content"][0]["content"] == [{"type": "text", "text": "hello there"}]

    doc = normalize_content("# Title\n\n- a\n- b")
    assert _types(doc) == ["heading", "bulletList"]


def test_json_string_is_decoded_first():
    payload = json.dumps([{"type": "heading", "level": 2, "text": "From JSON"}])
    doc = normalize_content(payload)
    assert _types(doc) == ["heading"]
    assert doc["content"][0]["attrs"]["level"] == 2


def test_invalid_json_string_falls_back_to_markdown():
    assert parse_json_string("{not json") is None
    doc = normalize_string("{not json")
    assert doc["content"][0]["content"][0]["text"] == "{not json"


def test_content_json_array_is_converted():
    doc = normalize_array([{"type": "paragraph", "text": "a"}, {"type": "table", "headers": ["h"], "rows": []}])
    assert _types(doc) == ["paragraph", "table"]


def test_raw_tree_nodes_are_validated():
    doc = normalize_array(
        [
            {"type": "bulletList", "content": []},
            {"type": "text", "text": "stray"},
            {"type": "bogus"},
            "junk",
        ]
    )
    assert _types(doc) == ["bulletList", "paragraph"]
    assert doc["content"][1]["content"] == [{"type": "text", "text": "stray"}]


def test_unrecognized_array_falls_back_to_one_empty_paragraph():
    assert normalize_array([{"foo": 1}, 7]) == {"type": "doc", "content": [{"type": "paragraph"}]}


def test_validate_tree_nodes_never_empty():
    assert validate_tree_nodes([{"type": "nope"}]) == [{"type": "paragraph"}]


def test_tree_document_passes_through_with_ids_kept():
    doc = {
        "type": "doc",
        "content": [
            {"type": "paragraph", "attrs": {"blockId": "block-a"}, "content": [{"type": "text", "text": "x"}]},
        ],
    }
    assert normalize_content(doc) == doc


def test_single_tree_block_and_single_content_json_block():
    tree = normalize_object({"type": "heading", "attrs": {"level": 3}, "content": [{"type": "text", "text": "H"}]})
    assert tree["content"][0]["attrs"] == {"level": 3}

    converted = normalize_object({"type": "heading", "level": 2, "text": "H"})
    assert converted["content"][0]["attrs"] == {"level": 2}
    assert converted["content"][0]["content"] == [{"type": "text", "text": "H"}]

    bullets = normalize_object({"type": "list", "items": ["a"]})
    assert _types(bullets) == ["bulletList"]


def test_unknown_object_is_stored_as_text():
    doc = normalize_content({"weird": True})
    assert doc["content"][0]["content"][0]["text"] == '{"weird": true}'


def test_other_scalars_are_stringified():
    doc = normalize_content(42)
    assert doc["content"][0]["content"][0]["text"] == "42"


def test_input_is_not_mutated():
    content = [{"type": "paragraph", "content": [{"type": "text", "text": "x"}]}]
    snapshot = copy.deepcopy(content)
    normalize_content(content)
    assert content == snapshot


def test_every_top_level_block_has_an_id():
    doc = normalize_content("# A\n\ntext\n\n---")
    assert all(n["attrs"]["blockId"].startswith("block-") for n in doc["content"])


def test_unreadable_heading_level_becomes_one():
    doc = normalize_content([{"type": "heading", "level": float("inf"), "text": "T"}])
    assert doc["content"][0]["attrs"]["level"] == 1
    doc = normalize_content('[{"type": "heading", "level": Infinity, "text": "T"}]')
    assert doc["content"][0]["attrs"]["level"] == 1
