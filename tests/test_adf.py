"""
Unit tests for ADF flattening.
"""

from sprintlens.jira.adf import adf_to_plain_text


def text(value):
    return {"type": "text", "text": value}


def paragraph(*children):
    return {"type": "paragraph", "content": list(children)}


def test_none_and_strings():
    assert adf_to_plain_text(None) == ""
    assert adf_to_plain_text("  legacy wiki text \n") == "legacy wiki text"


def test_paragraphs_end_with_newlines():
    doc = {"type": "doc", "version": 1, "content": [paragraph(text("First")), paragraph(text("Second"))]}

    assert adf_to_plain_text(doc) == "First\nSecond"


def test_inline_text_is_concatenated():
    doc = {"type": "doc", "content": [paragraph(text("Hello "), {"type": "text", "text": "world", "marks": [{"type": "strong"}]})]}

    assert adf_to_plain_text(doc) == "Hello world"


def test_hard_break():
    doc = {"type": "doc", "content": [paragraph(text("line one"), {"type": "hardBreak"}, text("line two"))]}

    assert adf_to_plain_text(doc) == "line one\nline two"


def test_lists_rely_on_items_for_newlines():
    doc = {
        "type": "doc",
        "content": [
            {
                "type": "bulletList",
                "content": [
                    {"type": "listItem", "content": [paragraph(text("alpha"))]},
                    {"type": "listItem", "content": [paragraph(text("beta"))]},
                ],
            },
            {
                "type": "orderedList",
                "content": [{"type": "listItem", "content": [text("gamma")]}],
            },
        ],
    }

    # each listItem wraps a paragraph, so both add a newline
    assert adf_to_plain_text(doc) == "alpha\n\nbeta\n\ngamma"


def test_heading_and_blockquote():
    doc = {
        "type": "doc",
        "content": [
            {"type": "heading", "attrs": {"level": 2}, "content": [text("Acceptance criteria")]},
            {"type": "blockquote", "content": [text("quoted")]},
        ],
    }

    assert adf_to_plain_text(doc) == "Acceptance criteria\nquoted"


def test_code_block_takes_only_direct_text():
    doc = {
        "type": "doc",
        "content": [
            {
                "type": "codeBlock",
                "attrs": {"language": "python"},
                "content": [text("print('hi')"), {"type": "mention", "content": [text("ignored")]}],
            },
            paragraph(text("after")),
        ],
    }

    assert adf_to_plain_text(doc) == "print('hi')\nafter"


def test_unknown_nodes_recurse_without_formatting():
    doc = {
        "type": "doc",
        "content": [
            {"type": "panel", "content": [{"type": "mystery", "content": [text("inside")]}]},
            {"type": "rule"},
        ],
    }

    assert adf_to_plain_text(doc) == "inside"


def test_result_is_trimmed():
    doc = {"type": "doc", "content": [paragraph(text("  padded  ")), paragraph()]}

    assert adf_to_plain_text(doc) == "padded"
