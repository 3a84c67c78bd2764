"""Conversation indexing engine: initial scan, change observation and rescans."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import soupsieve as sv
from bs4 import Tag

from chat_indexer.document import LiveDocument, MutationRecord, MutationSubscription
from chat_indexer.index.models import IndexerStatus, IndexUpdate, QueryRecord
from chat_indexer.index.scan import candidate_text, find_user_messages, scan_conversation
from chat_indexer.logging import EventLogger, MemoryEventLogger, log_event
from chat_indexer.platforms import LocatorProfile
from chat_indexer.scheduling import Debouncer, RepeatingTimer, Scheduler

UNINITIALIZED = "uninitialized"
SCANNING = "scanning"
OBSERVING = "observing"
RESCANNING = "rescanning"
DESTROYED = "destroyed"

DEFAULT_DEBOUNCE_MS = 500
DEFAULT_BACKSTOP_MS = 2000
WATCHED_ATTRIBUTES = frozenset({"class", "data-message-id", "data-testid"})

UpdateListener = Callable[[IndexUpdate], None]


@dataclass(slots=True, frozen=True)
class ScanFailed(Exception):
    """Raised when the initial full scan cannot run at all."""

    platform: str
    reason: str

    def __str__(self) -> str:
        return f"Initial scan failed for {self.platform}: {self.reason}"


@dataclass(slots=True, frozen=True)
class EngineDestroyed(Exception):
    """Raised when a lifecycle operation is attempted after destroy()."""

    operation: str

    def __str__(self) -> str:
        return f"Indexer already destroyed; cannot {self.operation}"


class ConversationIndexer:
    """Keeps an ordered index of user messages in sync with a live document."""

    def __init__(
        self,
        document: LiveDocument,
        scheduler: Scheduler,
        *,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        backstop_ms: int = DEFAULT_BACKSTOP_MS,
        event_logger: EventLogger | None = None,
    ) -> None:
        self._document = document
        self._event_logger: EventLogger = event_logger or MemoryEventLogger()
        self._debouncer = Debouncer(scheduler, debounce_ms, self._on_debounce)
        self._backstop = RepeatingTimer(scheduler, backstop_ms, self._on_backstop)
        self._profile: LocatorProfile | None = None
        self._queries: tuple[QueryRecord, ...] = ()
        self._listeners: list[UpdateListener] = []
        self._subscription: MutationSubscription | None = None
        self._state = UNINITIALIZED
        self._scanning = False
        self._follow_up = False
        self._scan_count = 0
        self._last_scan_ms: float | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def profile(self) -> LocatorProfile | None:
        return self._profile

    def initialize(self, profile: LocatorProfile) -> list[QueryRecord]:
        """Run the first full scan, then start observing changes."""
        if self._state == DESTROYED:
            raise EngineDestroyed(operation="initialize")
        self._detach()
        self._profile = profile
        self._state = SCANNING
        self._scanning = True
        try:
            records = self._full_scan("initialize")
        except Exception as error:
            self._state = UNINITIALIZED
            log_event(
                self._event_logger,
                "index",
                "initialize_failed",
                level="error",
                platform=profile.name,
                error=f"{type(error).__name__}: {error}",
            )
            raise ScanFailed(
                platform=profile.name, reason=f"{type(error).__name__}: {error}"
            ) from error
        finally:
            self._scanning = False
            self._follow_up = False
        self._queries = records
        self._subscription = self._document.observe(self._handle_mutations)
        self._backstop.start()
        self._state = OBSERVING
        log_event(
            self._event_logger,
            "index",
            "initialized",
            platform=profile.name,
            ui_version=profile.ui_version,
            queries=len(records),
        )
        self._notify("initialize")
        return list(self._queries)

    def refresh(self) -> list[QueryRecord]:
        """Rescan immediately and always notify subscribers."""
        if self._state == DESTROYED:
            raise EngineDestroyed(operation="refresh")
        if self._profile is None:
            raise RuntimeError("initialize() must run before refresh()")
        self._run_scan("refresh", force_notify=True)
        return list(self._queries)

    def get_queries(self) -> list[QueryRecord]:
        """Return a snapshot copy of the current records."""
        return list(self._queries)

    def subscribe(self, listener: UpdateListener) -> Callable[[], None]:
        """Register an update listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def locate(self, query: QueryRecord | str) -> Tag | None:
        """Re-resolve the element for a record or record id, or None."""
        if self._state == DESTROYED or self._profile is None:
            return None
        record = query if isinstance(query, QueryRecord) else self._find_record(query)
        if record is None:
            return None
        element = record.element
        if (
            element is not None
            and self._document.contains(element)
            and self._is_user_message(element)
        ):
            return element
        if record.element_selector:
            try:
                candidates = self._document.select(record.element_selector)
            except sv.SelectorSyntaxError:
                candidates = []
            for candidate in candidates:
                if candidate_text(self._document, self._profile, candidate) == record.text:
                    return candidate
        try:
            current = find_user_messages(self._document, self._profile)
        except sv.SelectorSyntaxError:
            return None
        if record.index < len(current):
            candidate = current[record.index]
            if candidate_text(self._document, self._profile, candidate) == record.text:
                return candidate
        return None

    def destroy(self) -> None:
        """Stop observing, cancel timers and clear the index; safe to repeat."""
        if self._state == DESTROYED:
            return
        self._detach()
        self._queries = ()
        self._listeners.clear()
        self._state = DESTROYED
        log_event(self._event_logger, "index", "destroyed", scans=self._scan_count)

    def status(self) -> IndexerStatus:
        """Return the current engine status snapshot."""
        return IndexerStatus(
            state=self._state,
            platform=self._profile.name if self._profile is not None else None,
            query_count=len(self._queries),
            scan_count=self._scan_count,
            last_scan_ms=self._last_scan_ms,
        )

    def _detach(self) -> None:
        if self._subscription is not None:
            self._subscription.disconnect()
            self._subscription = None
        self._debouncer.cancel()
        self._backstop.stop()

    def _full_scan(self, reason: str) -> tuple[QueryRecord, ...]:
        assert self._profile is not None
        diagnostics: dict[str, object] = {}
        records = scan_conversation(
            self._document,
            self._profile,
            scan_time_ms=_now_ms(),
            event_logger=self._event_logger,
            diagnostics=diagnostics,
        )
        self._scan_count += 1
        duration = diagnostics.get("duration_ms")
        self._last_scan_ms = float(duration) if isinstance(duration, (int, float)) else None
        log_event(
            self._event_logger,
            "index",
            "scan_completed",
            level="debug",
            reason=reason,
            platform=self._profile.name,
            **diagnostics,
        )
        return records

    def _run_scan(self, reason: str, force_notify: bool = False) -> None:
        if self._state == DESTROYED or self._profile is None:
            return
        if self._scanning:
            self._follow_up = True
            return
        self._scanning = True
        try:
            while True:
                self._follow_up = False
                self._state = RESCANNING
                previous = len(self._queries)
                try:
                    records = self._full_scan(reason)
                except Exception as error:  # steady-state failures keep the last good index
                    log_event(
                        self._event_logger,
                        "index",
                        "scan_failed",
                        level="warning",
                        reason=reason,
                        error=f"{type(error).__name__}: {error}",
                    )
                else:
                    self._queries = records
                    if force_notify or len(records) != previous:
                        self._notify(reason)
                if self._state == DESTROYED:
                    return
                self._state = OBSERVING
                if not self._follow_up:
                    return
                force_notify = False
                reason = "follow_up"
        finally:
            self._scanning = False

    def _notify(self, reason: str) -> None:
        assert self._profile is not None
        update = IndexUpdate(
            queries=self._queries,
            platform=self._profile.name,
            timestamp_ms=_now_ms(),
            reason=reason,
        )
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception as error:  # a faulty consumer must not stop the engine
                log_event(
                    self._event_logger,
                    "index",
                    "listener_failed",
                    level="warning",
                    error=f"{type(error).__name__}: {error}",
                )

    def _handle_mutations(self, batch: list[MutationRecord]) -> None:
        if self._state in {UNINITIALIZED, DESTROYED}:
            return
        if not self._is_relevant(batch):
            return
        log_event(self._event_logger, "index", "relevant_batch", level="debug", records=len(batch))
        self._debouncer.trigger()

    def _on_debounce(self) -> None:
        self._run_scan("mutation")

    def _on_backstop(self) -> None:
        if self._document.hidden:
            return
        self._run_scan("backstop")

    def _is_relevant(self, batch: list[MutationRecord]) -> bool:
        for record in batch:
            if record.kind == "childList":
                if any(self._holds_user_message(node) for node in record.added):
                    return True
            elif record.kind == "attributes":
                if record.attribute in WATCHED_ATTRIBUTES and self._holds_user_message(
                    record.target
                ):
                    return True
            elif record.kind == "characterData":
                if self._holds_user_message(record.target) or self._within_user_message(
                    record.target
                ):
                    return True
        return False

    def _selectors(self) -> tuple[str, ...]:
        if self._profile is None:
            return ()
        return self._profile.user_message_selectors

    def _is_user_message(self, element: Tag) -> bool:
        for selector in self._selectors():
            try:
                if self._document.matches(element, selector):
                    return True
            except sv.SelectorSyntaxError:
                continue
        return False

    def _holds_user_message(self, node: object) -> bool:
        if not isinstance(node, Tag):
            return False
        if self._is_user_message(node):
            return True
        for selector in self._selectors():
            try:
                if self._document.select_one(selector, scope=node) is not None:
                    return True
            except sv.SelectorSyntaxError:
                continue
        return False

    def _within_user_message(self, node: object) -> bool:
        if not isinstance(node, Tag):
            return False
        for selector in self._selectors():
            try:
                if self._document.closest(node, selector) is not None:
                    return True
            except sv.SelectorSyntaxError:
                continue
        return False

    def _find_record(self, query_id: str) -> QueryRecord | None:
        for record in self._queries:
            if record.id == query_id:
                return record
        return None


def _now_ms() -> int:
    return int(time.time() * 1000)
