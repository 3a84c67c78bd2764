from __future__ import annotations

import pytest
import soupsieve as sv

from chat_indexer.document import LiveDocument

PAGE = """
<html><body>
  <div id="thread" class="chat-container">
    <div class="user-message" data-message-id="m1"><p>First <b>question</b></p></div>
    <div class="assistant">Answer<script>var x = 1;</script></div>
    <div class="user-message" data-message-id="m2">Second<br>line</div>
  </div>
</body></html>
"""


def test_select_returns_matches_in_document_order() -> None:
    document = LiveDocument(PAGE, "https://claude.ai/chat/1")

    matches = document.select(".user-message")

    assert [node["data-message-id"] for node in matches] == ["m1", "m2"]
    assert document.select_one(".missing") is None


def test_select_with_scope_excludes_the_scope_element() -> None:
    document = LiveDocument(PAGE)
    thread = document.select_one("#thread")
    assert thread is not None

    assert document.select_one(".chat-container", scope=thread) is None
    assert len(document.select("div", scope=thread)) == 3


def test_matches_and_closest_use_the_selector_engine() -> None:
    document = LiveDocument(PAGE)
    bold = document.select_one("b")
    assert bold is not None

    message = document.closest(bold, ".user-message")

    assert message is not None
    assert message["data-message-id"] == "m1"
    assert document.matches(message, '[data-message-id="m1"]')
    assert not document.matches(message, ".assistant")


def test_malformed_selector_raises_selector_syntax_error() -> None:
    document = LiveDocument(PAGE)

    with pytest.raises(sv.SelectorSyntaxError):
        document.select("div[")


def test_text_content_skips_scripts_and_separates_blocks() -> None:
    document = LiveDocument(PAGE)
    assistant = document.select_one(".assistant")
    second = document.select_one('[data-message-id="m2"]')
    assert assistant is not None and second is not None

    assert document.text_content(assistant).strip() == "Answer"
    assert " ".join(document.text_content(second).split()) == "Second line"


def test_url_parts_are_exposed() -> None:
    document = LiveDocument(PAGE, "https://chatgpt.com/c/abc?x=1")

    assert document.hostname == "chatgpt.com"
    assert document.pathname == "/c/abc"


def test_contains_tracks_detached_and_replaced_trees() -> None:
    document = LiveDocument(PAGE)
    first = document.select_one('[data-message-id="m1"]')
    assert first is not None
    assert document.contains(first)

    document.remove(first)
    assert not document.contains(first)

    second = document.select_one('[data-message-id="m2"]')
    document.load("<div class='user-message'>New page</div>", "https://claude.ai/chat/2")
    assert not document.contains(second)
    assert document.url == "https://claude.ai/chat/2"


def test_unknown_color_scheme_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unsupported color scheme"):
        LiveDocument(PAGE, color_scheme="sepia")
