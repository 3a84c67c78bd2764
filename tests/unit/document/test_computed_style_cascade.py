from __future__ import annotations

from chat_indexer.document import LiveDocument, parse_declarations, selector_specificity

STYLED = """
<html><head><style>
:root { --surface: #202020; --accent: var(--missing, #10a37f); }
.card { color: red; background-color: var(--surface); }
div.card { color: blue; }
#special { color: green; }
.hidden { visibility: hidden; }
@media (prefers-color-scheme: dark) { .card { background: #000000; } }
@font-face { font-family: x; }
</style></head>
<body>
  <div class="card" id="special"><span class="inner">a</span></div>
  <div class="card" style="color: purple">b</div>
  <div class="hidden"><p class="child">c</p></div>
  <div class="accent" style="color: var(--accent)">d</div>
</body></html>
"""


def _style(document: LiveDocument, selector: str, name: str) -> str:
    element = document.select_one(selector)
    assert element is not None
    return document.computed_style(element).get_property_value(name)


def test_specificity_orders_rules_and_inline_style_wins() -> None:
    document = LiveDocument(STYLED)

    assert _style(document, "#special", "color") == "green"
    assert _style(document, '[style*="purple"]', "color") == "purple"


def test_color_and_visibility_inherit_but_background_does_not() -> None:
    document = LiveDocument(STYLED)

    assert _style(document, ".inner", "color") == "green"
    assert _style(document, ".inner", "background-color") == "rgba(0, 0, 0, 0)"
    assert _style(document, ".child", "visibility") == "hidden"


def test_custom_properties_resolve_with_fallbacks() -> None:
    document = LiveDocument(STYLED)

    assert _style(document, "#special", "background-color") == "#202020"
    assert _style(document, ".accent", "color") == "#10a37f"
    assert _style(document, "html", "--surface") == "#202020"


def test_color_scheme_media_blocks_follow_the_document_scheme() -> None:
    document = LiveDocument(STYLED)
    assert _style(document, "#special", "background-color") == "#202020"

    document.color_scheme = "dark"

    assert _style(document, "#special", "background-color") == "#000000"


def test_default_display_hides_metadata_tags() -> None:
    document = LiveDocument(STYLED)

    assert _style(document, "style", "display") == "none"
    assert _style(document, ".inner", "display") == "inline"
    assert _style(document, ".card", "display") == "block"


def test_declaration_parsing_drops_important_and_lowercases_names() -> None:
    parsed = parse_declarations("COLOR: Red !important; --Brand: #fff; broken; width:")

    assert parsed == {"color": "Red", "--Brand": "#fff"}


def test_selector_specificity_counts_ids_classes_and_types() -> None:
    assert selector_specificity("#a .b div") == (1, 1, 1)
    assert selector_specificity('div.card[data-x="1"]:hover') == (0, 3, 1)
