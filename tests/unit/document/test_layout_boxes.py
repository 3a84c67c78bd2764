from __future__ import annotations

from chat_indexer.config import LayoutConfig
from chat_indexer.document import LiveDocument, parse_length

LAYOUT = LayoutConfig(viewport_width=800, line_height=20, char_width=8)


def _box(document: LiveDocument, selector: str):
    element = document.select_one(selector)
    assert element is not None
    return document.bounding_box(element)


def test_blocks_stack_vertically_in_document_order() -> None:
    document = LiveDocument(
        "<div id='a'>first</div><div id='b'>second</div><div id='c'>third</div>",
        layout=LAYOUT,
    )

    a, b, c = (_box(document, f"#{name}") for name in "abc")

    assert a.top == 0 and a.height == 20 and a.width == 800
    assert b.top == 20
    assert c.top == 40


def test_long_text_wraps_by_character_width() -> None:
    document = LiveDocument(f"<div id='long'>{'x' * 250}</div>", layout=LAYOUT)

    # 100 characters fit on one 800px line
    assert _box(document, "#long").height == 60


def test_display_none_collapses_the_whole_subtree() -> None:
    document = LiveDocument(
        "<div id='gone' style='display:none'><p id='inner'>text</p></div><div id='next'>x</div>",
        layout=LAYOUT,
    )

    assert _box(document, "#gone").is_empty
    assert _box(document, "#inner").is_empty
    assert _box(document, "#next").top == 0


def test_explicit_sizes_are_honoured() -> None:
    document = LiveDocument(
        "<div id='fixed' style='width: 50%; height: 0px'>text</div>"
        "<div id='after' style='top: 5px; left: 10px'>x</div>",
        layout=LAYOUT,
    )

    fixed = _box(document, "#fixed")
    after = _box(document, "#after")

    assert fixed.width == 400 and fixed.height == 0
    assert fixed.is_empty
    assert after.top == 5 and after.left == 10


def test_empty_elements_have_no_area() -> None:
    document = LiveDocument("<div id='empty'></div>", layout=LAYOUT)

    assert _box(document, "#empty").is_empty


def test_boxes_follow_mutations() -> None:
    document = LiveDocument("<div id='root'><div id='one'>one</div></div>", layout=LAYOUT)
    root = document.select_one("#root")
    assert root is not None

    document.insert_html(root, 0, "<div id='zero'>zero</div>")

    assert _box(document, "#zero").top == 0
    assert _box(document, "#one").top == 20
    assert _box(document, "#root").height == 40


def test_parse_length_units() -> None:
    assert parse_length("12px", 100) == 12
    assert parse_length("25%", 200) == 50
    assert parse_length("7", 0) == 7
    assert parse_length("auto", 100) is None
    assert parse_length("2em", 100) is None
