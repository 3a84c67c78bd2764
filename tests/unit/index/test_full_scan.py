from __future__ import annotations

from dataclasses import replace

import pytest
import soupsieve as sv

from chat_indexer.document import LiveDocument
from chat_indexer.index import scan_conversation
from chat_indexer.logging import MemoryEventLogger
from chat_indexer.platforms import build_profile_registry

SCAN_TIME = 1_700_000_000_000

CLAUDE = build_profile_registry().select("https://claude.ai/")

NOISY_PAGE = """
<div class="chat-container">
  <div class="user-message" id="q1">
    <div class="message-content">  What   is
      Python?  </div>
    <span class="timestamp" title="2024-01-02T03:04:05Z">Jan 2</span>
  </div>
  <div class="assistant">Python is a language.</div>
  <div class="user-message"><div class="message-content"> ok </div></div>
  <div class="user-message" style="display:none">
    <div class="message-content">hidden question</div>
  </div>
  <div class="user-message"><div class="message-content">Explain&#8203; decorators</div></div>
</div>
"""


def test_scan_skips_hidden_and_noise_candidates_and_normalizes_text() -> None:
    document = LiveDocument(NOISY_PAGE, "https://claude.ai/chat/1")
    diagnostics: dict[str, object] = {}

    records = scan_conversation(
        document, CLAUDE, scan_time_ms=SCAN_TIME, diagnostics=diagnostics
    )

    assert [record.text for record in records] == ["What is Python?", "Explain decorators"]
    assert [record.index for record in records] == [0, 2]
    assert records[0].element_selector == "#q1"
    assert records[0].timestamp == 1704164645000
    assert records[1].timestamp == SCAN_TIME
    assert records[0].position.top < records[1].position.top
    assert diagnostics["used_fallback"] is False
    assert diagnostics["candidates"] == 4
    assert diagnostics["hidden_excluded"] == 1
    assert diagnostics["noise_excluded"] == 1
    assert diagnostics["records"] == 2


def test_visible_matches_produce_contiguous_indices_in_document_order() -> None:
    messages = "".join(
        f"<div class='user-message'><div class='message-content'>question {n}</div></div>"
        f"<div class='assistant'>answer {n}</div>"
        for n in range(6)
    )
    document = LiveDocument(f"<div class='chat-container'>{messages}</div>")

    records = scan_conversation(document, CLAUDE, scan_time_ms=SCAN_TIME)

    assert [record.index for record in records] == list(range(6))
    assert [record.text for record in records] == [f"question {n}" for n in range(6)]
    assert len({record.id for record in records}) == 6


def test_fallback_locator_is_used_only_when_primary_matches_nothing() -> None:
    document = LiveDocument(
        """
        <div class="chat-container">
          <div class="human-message"><p class="content">Hello there</p></div>
          <div class="human-message"><p class="content">How are you?</p></div>
        </div>
        """
    )
    diagnostics: dict[str, object] = {}

    records = scan_conversation(document, CLAUDE, scan_time_ms=SCAN_TIME, diagnostics=diagnostics)

    assert [record.text for record in records] == ["Hello there", "How are you?"]
    assert [record.index for record in records] == [0, 1]
    assert diagnostics["used_fallback"] is True


def test_candidate_without_content_node_uses_its_own_text() -> None:
    document = LiveDocument("<div class='user-message'>plain <b>message</b> body</div>")

    records = scan_conversation(document, CLAUDE, scan_time_ms=SCAN_TIME)

    assert records[0].text == "plain message body"


def test_rescan_of_unchanged_tree_is_idempotent() -> None:
    document = LiveDocument(NOISY_PAGE)

    first = scan_conversation(document, CLAUDE, scan_time_ms=SCAN_TIME)
    second = scan_conversation(document, CLAUDE, scan_time_ms=SCAN_TIME)

    assert first == second
    assert [(r.id, r.text, r.index) for r in first] == [(r.id, r.text, r.index) for r in second]


def test_long_messages_are_truncated_for_display() -> None:
    long_text = "word " * 40
    document = LiveDocument(f"<div class='user-message'>{long_text}</div>")

    record = scan_conversation(document, CLAUDE, scan_time_ms=SCAN_TIME)[0]

    assert record.text == long_text.strip()
    assert record.truncated_text.endswith("...")
    assert len(record.truncated_text) <= 63


def test_malformed_user_selector_propagates() -> None:
    broken = replace(CLAUDE, user_message_selector="div[")
    document = LiveDocument(NOISY_PAGE)

    with pytest.raises(sv.SelectorSyntaxError):
        scan_conversation(document, broken, scan_time_ms=SCAN_TIME)


def test_candidate_failures_are_logged_and_skipped() -> None:
    broken = replace(CLAUDE, message_content_selector="p[")
    document = LiveDocument(NOISY_PAGE)
    logger = MemoryEventLogger()
    diagnostics: dict[str, object] = {}

    records = scan_conversation(
        document, broken, scan_time_ms=SCAN_TIME, event_logger=logger, diagnostics=diagnostics
    )

    assert records == ()
    assert diagnostics["failed"] == 3
    failures = logger.events("candidate_failed")
    assert len(failures) == 3
    assert failures[0].metadata["platform"] == "claude"
    assert "What is Python" not in str(failures[0].metadata)
