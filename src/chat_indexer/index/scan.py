"""Full conversation scan: locate, filter and extract user messages."""

from __future__ import annotations

import time

from bs4 import Tag

from chat_indexer.document import LiveDocument
from chat_indexer.index.extraction import (
    MIN_QUERY_LENGTH,
    build_query_id,
    element_selector,
    extract_timestamp,
    is_visible,
    normalize_text,
    truncate_text,
)
from chat_indexer.index.models import Position, QueryRecord
from chat_indexer.logging import EventLogger, log_event
from chat_indexer.platforms import LocatorProfile


def find_user_messages(
    document: LiveDocument,
    profile: LocatorProfile,
    diagnostics: dict[str, object] | None = None,
) -> list[Tag]:
    """Return visible user-message candidates in document order.

    The fallback locator is consulted only when the primary one matches nothing.
    Selector syntax errors propagate to the caller.
    """
    used_fallback = False
    candidates = document.select(profile.user_message_selector)
    if not candidates and profile.fallback_user_message_selector:
        candidates = document.select(profile.fallback_user_message_selector)
        used_fallback = True
    visible = [element for element in candidates if is_visible(document, element)]
    if diagnostics is not None:
        diagnostics["used_fallback"] = used_fallback
        diagnostics["candidates"] = len(candidates)
        diagnostics["hidden_excluded"] = len(candidates) - len(visible)
    return visible


def find_content_element(document: LiveDocument, profile: LocatorProfile, element: Tag) -> Tag:
    """Return the message content node, else the candidate itself."""
    for selector in profile.content_selectors:
        found = document.select_one(selector, scope=element)
        if found is not None:
            return found
    return element


def candidate_text(document: LiveDocument, profile: LocatorProfile, element: Tag) -> str:
    """Return the normalized message text of a candidate."""
    content = find_content_element(document, profile, element)
    return normalize_text(document.text_content(content))


def extract_query(
    document: LiveDocument,
    profile: LocatorProfile,
    element: Tag,
    index: int,
    scan_time_ms: int,
    event_logger: EventLogger | None = None,
) -> QueryRecord | None:
    """Build a record for one candidate, or None when its text is noise."""
    text = candidate_text(document, profile, element)
    if len(text) < MIN_QUERY_LENGTH:
        return None
    timestamp = extract_timestamp(document, element, event_logger)
    box = document.bounding_box(element)
    return QueryRecord(
        id=build_query_id(text, index),
        text=text,
        truncated_text=truncate_text(text),
        timestamp=timestamp if timestamp is not None else scan_time_ms,
        index=index,
        position=Position(top=box.top, left=box.left, width=box.width, height=box.height),
        element_selector=element_selector(element),
        element=element,
    )


def scan_conversation(
    document: LiveDocument,
    profile: LocatorProfile,
    *,
    scan_time_ms: int | None = None,
    event_logger: EventLogger | None = None,
    diagnostics: dict[str, object] | None = None,
) -> tuple[QueryRecord, ...]:
    """Run one full scan and return the complete record sequence."""
    started = time.perf_counter()
    if scan_time_ms is None:
        scan_time_ms = int(time.time() * 1000)
    local: dict[str, object] = {}
    candidates = find_user_messages(document, profile, diagnostics=local)
    records: list[QueryRecord] = []
    noise = 0
    failed = 0
    for index, element in enumerate(candidates):
        try:
            record = extract_query(
                document, profile, element, index, scan_time_ms, event_logger=event_logger
            )
        except Exception as error:  # one bad candidate must not abort the scan
            failed += 1
            if event_logger is not None:
                log_event(
                    event_logger,
                    "index",
                    "candidate_failed",
                    level="warning",
                    platform=profile.name,
                    index=index,
                    error=f"{type(error).__name__}: {error}",
                )
            continue
        if record is None:
            noise += 1
            continue
        records.append(record)
    if diagnostics is not None:
        diagnostics.update(local)
        diagnostics["noise_excluded"] = noise
        diagnostics["failed"] = failed
        diagnostics["records"] = len(records)
        diagnostics["duration_ms"] = round((time.perf_counter() - started) * 1000, 3)
    return tuple(records)
