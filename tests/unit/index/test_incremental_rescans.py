from __future__ import annotations

from chat_indexer.document import LiveDocument
from chat_indexer.index import ConversationIndexer, IndexUpdate
from chat_indexer.logging import MemoryEventLogger
from chat_indexer.platforms import build_profile_registry

CLAUDE = build_profile_registry().select("https://claude.ai/")

PAGE = """
<div class="chat-container">
  <div class="user-message" id="m1"><div class="message-content">Original question</div></div>
  <div class="assistant" id="reply">An answer</div>
</div>
"""

USER_TURN = "<div class='user-message'><div class='message-content'>Follow up {n}</div></div>"


def _started(scheduler, hidden: bool = False):
    document = LiveDocument(PAGE, "https://claude.ai/chat/1", scheduler=scheduler, hidden=hidden)
    engine = ConversationIndexer(
        document, scheduler, debounce_ms=500, backstop_ms=2000, event_logger=MemoryEventLogger()
    )
    updates: list[IndexUpdate] = []
    engine.initialize(CLAUDE)
    engine.subscribe(updates.append)
    container = document.select_one(".chat-container")
    assert container is not None
    return document, engine, updates, container


def test_burst_of_relevant_batches_coalesces_into_one_scan(scheduler) -> None:
    document, engine, updates, container = _started(scheduler)

    for n in range(5):
        document.append_html(container, USER_TURN.format(n=n))
        scheduler.advance_ms(100)
    assert engine.status().scan_count == 1

    scheduler.advance_ms(600)

    assert engine.status().scan_count == 2
    assert [update.reason for update in updates] == ["mutation"]
    assert len(updates[0].queries) == 6
    assert [record.index for record in engine.get_queries()] == list(range(6))


def test_unrelated_mutations_schedule_nothing(scheduler) -> None:
    document, engine, updates, container = _started(scheduler)
    reply = document.select_one("#reply")
    assert reply is not None

    document.append_html(container, "<div class='assistant'>Streaming answer</div>")
    document.set_text(reply, "An answer, now longer")
    document.set_attribute(reply, "class", "assistant done")
    scheduler.run_ready()

    # only the backstop timer remains armed
    assert scheduler.pending == 1
    scheduler.advance_ms(1500)
    assert engine.status().scan_count == 1
    assert updates == []


def test_watched_attribute_edit_on_a_message_is_relevant(scheduler) -> None:
    document, engine, _, _ = _started(scheduler)
    message = document.select_one("#m1")
    assert message is not None

    document.set_attribute(message, "data-testid", "turn-1")
    scheduler.run_ready()

    assert scheduler.pending == 2


def test_unwatched_attribute_edit_is_ignored(scheduler) -> None:
    document, engine, _, _ = _started(scheduler)
    message = document.select_one("#m1")
    assert message is not None

    document.set_attribute(message, "aria-busy", "true")
    scheduler.run_ready()

    assert scheduler.pending == 1


def test_text_edit_inside_a_message_rescans_without_notifying(scheduler) -> None:
    document, engine, updates, _ = _started(scheduler)
    content = document.select_one("#m1 .message-content")
    assert content is not None

    document.set_text(content, "Edited question")
    scheduler.advance_ms(600)

    assert engine.status().scan_count == 2
    assert engine.get_queries()[0].text == "Edited question"
    # record count is unchanged, so consumers are not told
    assert updates == []


def test_backstop_catches_changes_the_observer_ignores(scheduler) -> None:
    document, engine, updates, _ = _started(scheduler)
    message = document.select_one("#m1")
    assert message is not None

    document.set_attribute(message, "style", "display: none")
    scheduler.advance_ms(1999)
    assert engine.get_queries() != []

    scheduler.advance_ms(50)

    assert engine.get_queries() == []
    assert [update.reason for update in updates] == ["backstop"]


def test_backstop_skips_hidden_pages(scheduler) -> None:
    document, engine, updates, _ = _started(scheduler, hidden=True)

    scheduler.advance_ms(10_000)

    assert engine.status().scan_count == 1
    assert scheduler.pending == 1
    document.hidden = False
    scheduler.advance_ms(2000)
    assert engine.status().scan_count == 2


def test_removed_message_is_dropped_after_debounce(scheduler) -> None:
    document, engine, updates, container = _started(scheduler)
    document.append_html(container, USER_TURN.format(n=1))
    scheduler.advance_ms(600)
    assert len(engine.get_queries()) == 2

    # removals alone are not relevant batches; the backstop reconciles them
    first = document.select_one("#m1")
    assert first is not None
    document.remove(first)
    scheduler.advance_ms(2000)

    assert [record.text for record in engine.get_queries()] == ["Follow up 1"]
    assert engine.get_queries()[0].index == 0
