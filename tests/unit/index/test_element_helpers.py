from __future__ import annotations

from chat_indexer.document import LiveDocument
from chat_indexer.index import element_selector, is_visible

PAGE = """
<div id="msg:1" class="user-message">with id</div>
<div data-message-id='abc"1' class="user-message">with message id</div>
<div data-testid="user-turn">with test id</div>
<div class="one two three four">with classes</div>
<section>bare</section>
"""


def _element(document: LiveDocument, index: int):
    return [node for node in document.soup.find_all(True)][index]


def test_element_selector_prefers_id_then_data_attributes_then_classes() -> None:
    document = LiveDocument(PAGE)

    selectors = [element_selector(_element(document, index)) for index in range(5)]

    assert selectors[1] == '[data-message-id="abc\\"1"]'
    assert selectors[2] == '[data-testid="user-turn"]'
    assert selectors[3] == ".one.two.three"
    assert selectors[4] == "section"


def test_element_selectors_resolve_back_to_their_element() -> None:
    document = LiveDocument(PAGE)

    for index in range(5):
        element = _element(document, index)
        assert document.select_one(element_selector(element)) is element


def test_visibility_filter_excludes_hidden_candidates() -> None:
    document = LiveDocument(
        """
        <div id="shown">visible text</div>
        <div id="none" style="display: none">not displayed</div>
        <div id="invisible" style="visibility: hidden">invisible</div>
        <div id="transparent" style="opacity: 0">transparent</div>
        <div id="faint" style="opacity: 0.2">faint</div>
        <div id="empty"></div>
        <div style="visibility: hidden"><p id="nested">inherits hidden</p></div>
        """
    )

    def visible(element_id: str) -> bool:
        element = document.select_one(f"#{element_id}")
        assert element is not None
        return is_visible(document, element)

    assert visible("shown")
    assert visible("faint")
    assert not visible("none")
    assert not visible("invisible")
    assert not visible("transparent")
    assert not visible("empty")
    assert not visible("nested")
