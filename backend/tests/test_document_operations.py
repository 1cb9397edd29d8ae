from kodo_blocks.services.document_operations import (
    apply_edit_operations,
    extract_preview,
    find_block_index_by_block_id,
    get_complex_block_types,
    get_document_structure,
    has_complex_blocks,
    insert_blocks_at,
    remove_blocks_range,
    replace_blocks_range,
    resolve_target,
)


def _para(text, block_id=None):
    node = {"type": "paragraph", "content": [{"type": "text", "text": text}]}
    if block_id:
        node["attrs"] = {"blockId": block_id}
    return node


def _heading(text, level=1):
    return {"type": "heading", "attrs": {"level": level}, "content": [{"type": "text", "text": text}]}


def _doc(*nodes):
    return {"type": "doc", "content": list(nodes)}


def _numbered(n):
    return _doc(*[_para(f"p{i}", f"b{i}") for i in range(n)])


def _texts(doc):
    return ["".join(c.get("text", "") for c in n.get("content", [])) for n in doc["content"]]


# --- structure ---------------------------------------------------------------


def test_structure_lists_every_top_level_block():
    doc = _doc(_heading("Intro", 2), _para("body", "b1"), {"type": "horizontalRule"})
    structure = get_document_structure(doc)
    assert structure["total_blocks"] == 3
    assert structure["blocks"][0] == {"index": 0, "type": "heading", "preview": "Intro", "attrs": {"level": 2}}
    assert structure["blocks"][1] == {"index": 1, "type": "paragraph", "preview": "body", "block_id": "b1"}
    assert structure["blocks"][2]["preview"] == "---"


def test_structure_uses_readable_aliases_and_placeholders():
    doc = _doc(
        {"type": "bulletList", "content": []},
        {"type": "accordionGroup", "content": [{"type": "accordionItem"}, {"type": "accordionItem"}]},
        {"type": "columns", "content": [{"type": "column"}, {"type": "column"}, {"type": "column"}]},
        {"type": "databaseTable", "attrs": {"databaseId": "db-1"}},
    )
    blocks = get_document_structure(doc)["blocks"]
    assert [b["type"] for b in blocks] == ["list", "accordion", "columns", "database_table"]
    assert blocks[1]["preview"] == "[accordion: 2 items]"
    assert blocks[2]["preview"] == "[3 columns]"
    assert blocks[3]["preview"] == "[database table]"
    assert blocks[3]["attrs"] == {"databaseId": "db-1"}


def test_preview_is_truncated():
    assert len(extract_preview(_para("x" * 500))) == 120
    assert extract_preview(_para("abcdef"), preview_length=3) == "abc"


def test_structure_of_non_document_is_empty():
    assert get_document_structure(None) == {"total_blocks": 0, "blocks": []}
    assert get_document_structure({"type": "paragraph"}) == {"total_blocks": 0, "blocks": []}


# --- complex block guard -----------------------------------------------------


def test_complex_block_detection():
    simple = _doc(_para("a"), {"type": "table", "content": []})
    assert not has_complex_blocks(simple)
    assert get_complex_block_types(simple) == []

    mixed = _doc(_para("a"), {"type": "columns"}, {"type": "accordionGroup"}, {"type": "columns"})
    assert has_complex_blocks(mixed)
    assert get_complex_block_types(mixed) == ["columns", "accordion"]


# --- target resolution -------------------------------------------------------


def test_resolve_numeric_targets_with_clamping():
    doc = _numbered(4)
    assert resolve_target(doc, 2, "t").index == 2
    high = resolve_target(doc, 99, "t")
    assert high.index == 3
    assert high.warnings == ["t index 99 out of range (0-3), clamped to 3"]
    low = resolve_target(doc, -1, "t")
    assert low.index == 0
    assert low.warnings


def test_resolve_heading_text_first_match_with_warning():
    doc = _doc(_para("x"), _heading("Overview"), _para("y"), _heading("Project overview", 2))
    result = resolve_target(doc, "overview", "t")
    assert result.index == 1
    assert len(result.warnings) == 1
    assert "matched 2 headings" in result.warnings[0]
    assert "using first" in result.warnings[0]


def test_resolve_missing_heading():
    result = resolve_target(_numbered(2), "nowhere", "t")
    assert result.index is None
    assert result.warnings == ['t heading "nowhere" not found']


def test_find_by_block_id():
    doc = _numbered(3)
    assert find_block_index_by_block_id(doc, "b2") == 2
    assert find_block_index_by_block_id(doc, "missing") is None


# --- edit operations ---------------------------------------------------------


def test_replace_range_collapses_blocks(ids):
    result = apply_edit_operations(
        _numbered(5), [{"action": "replace", "target": 1, "end_target": 3, "content": "X"}], ids
    )
    assert result.operations_applied == 1
    assert _texts(result.doc) == ["p0", "X", "p4"]


def test_targets_refer_to_the_original_document(ids):
    ops = [
        {"action": "insert_after", "target": 0, "content": "A"},
        {"action": "replace", "target": 3, "end_target": 3, "content": [{"type": "paragraph", "text": "B"}, {"type": "paragraph", "text": "C"}]},
    ]
    result = apply_edit_operations(_numbered(5), ops, ids)
    assert result.operations_applied == 2
    assert _texts(result.doc) == ["p0", "A", "p1", "p2", "B", "C", "p4"]


def test_operation_order_does_not_matter(ids):
    ops = [
        {"action": "remove", "target": 3},
        {"action": "insert_before", "target": 1, "content": "A"},
    ]
    forward = apply_edit_operations(_numbered(5), ops, ids)
    backward = apply_edit_operations(_numbered(5), list(reversed(ops)), ids)
    assert _texts(forward.doc) == _texts(backward.doc) == ["p0", "A", "p1", "p2", "p4"]


def test_insert_after_and_replace_of_same_block(ids):
    ops = [
        {"action": "insert_after", "target": 1, "content": "after"},
        {"action": "replace", "target": 1, "content": "new"},
        {"action": "insert_before", "target": 1, "content": "before"},
    ]
    result = apply_edit_operations(_numbered(3), ops, ids)
    assert result.operations_applied == 3
    assert _texts(result.doc) == ["p0", "before", "new", "after", "p2"]


def test_overlapping_ranges_are_skipped(ids):
    ops = [
        {"action": "remove", "target": 1, "end_target": 3},
        {"action": "replace", "target": 2, "content": "Z"},
    ]
    result = apply_edit_operations(_numbered(5), ops, ids)
    assert result.operations_applied == 1
    assert _texts(result.doc) == ["p0", "p4"]
    assert any("overlaps" in w for w in result.warnings)


def test_clamped_targets_still_apply(ids):
    result = apply_edit_operations(
        _numbered(4),
        [{"action": "insert_after", "target": 99, "content": "end"}, {"action": "insert_before", "target": -1, "content": "start"}],
        ids,
    )
    assert _texts(result.doc) == ["start", "p0", "p1", "p2", "p3", "end"]
    assert "clamped to 3" in result.warnings[0]
    assert "clamped to 0" in result.warnings[1]


def test_heading_target_and_block_id_target(ids):
    doc = _doc(_heading("Intro"), _para("a", "b-a"), _heading("Usage"), _para("b", "b-b"))
    ops = [
        {"action": "insert_after", "target": "usage", "content": "new usage text"},
        {"action": "remove", "block_id": "b-a"},
    ]
    result = apply_edit_operations(doc, ops, ids)
    assert result.operations_applied == 2
    assert _texts(result.doc) == ["Intro", "Usage", "new usage text", "b"]


def test_appends_run_last(ids):
    ops = [
        {"action": "append", "content": "tail"},
        {"action": "insert_after", "target": 1, "content": "mid"},
    ]
    result = apply_edit_operations(_numbered(2), ops, ids)
    assert _texts(result.doc) == ["p0", "p1", "mid", "tail"]


def test_bad_operations_are_skipped_with_warnings(ids):
    ops = [
        {"action": "explode", "target": 0},
        {"action": "replace", "target": 0},
        {"action": "insert_after", "target": "missing heading", "content": "x"},
        {"action": "remove", "target": 3, "end_target": 1},
        {"action": "remove", "block_id": "nope"},
    ]
    result = apply_edit_operations(_numbered(4), ops, ids)
    assert result.operations_applied == 0
    assert not result.ok
    assert result.warnings[0] == "Op[0] explode: unknown action, skipped"
    assert result.warnings[1] == "Op[1] replace: no content provided, skipped"
    assert "Op[2] insert_after: target could not be resolved, skipped" in result.warnings
    assert "Op[3] remove: end_target (1) < target (3), skipped" in result.warnings
    assert 'block_id "nope" not found in document' in result.warnings
    assert _texts(result.doc) == ["p0", "p1", "p2", "p3"]


def test_removing_everything_leaves_one_empty_paragraph(ids):
    result = apply_edit_operations(_numbered(3), [{"action": "remove", "target": 0, "end_target": 2}], ids)
    assert result.doc["content"] == [{"type": "paragraph"}]


def test_new_blocks_get_ids_and_original_is_untouched(ids):
    doc = _numbered(2)
    result = apply_edit_operations(doc, [{"action": "insert_before", "target": 0, "content": "# New"}], ids)
    assert result.doc["content"][0]["attrs"]["blockId"] == "block-1"
    assert len(doc["content"]) == 2
    assert result.to_dict() == {"operations_applied": 1, "warnings": []}


# --- single range helpers ----------------------------------------------------


def test_half_open_range_helpers():
    doc = _numbered(5)
    assert _texts(replace_blocks_range(doc, 1, 3, [_para("X")])) == ["p0", "X", "p3", "p4"]
    assert _texts(remove_blocks_range(doc, 3, 99)) == ["p0", "p1", "p2"]
    assert _texts(insert_blocks_at(doc, 99, [_para("end")]))[-1] == "end"
    assert remove_blocks_range(doc, 0, 5)["content"] == [{"type": "paragraph"}]
    assert len(doc["content"]) == 5
