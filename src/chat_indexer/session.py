"""Per-page orchestration: resolve, wait, theme, index, and react to host signals."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

from bs4 import Tag

from chat_indexer.config import IndexerConfig, default_config
from chat_indexer.document import LiveDocument
from chat_indexer.index import (
    ConversationIndexer,
    EngineDestroyed,
    IndexUpdate,
    QueryRecord,
    ScanFailed,
)
from chat_indexer.logging import EventLogger, MemoryEventLogger, log_event
from chat_indexer.platforms import (
    LocatorProfile,
    PlatformTimeout,
    ProfileRegistry,
    build_profile_registry,
    resolve,
    wait_until_ready,
)
from chat_indexer.scheduling import Debouncer, Scheduler
from chat_indexer.theme import ColorExtractor, Palette

VISIBLE_REFRESH_DELAY_MS = 500

PaletteListener = Callable[[Palette], None]
UpdateListener = Callable[[IndexUpdate], None]


@dataclass(slots=True, frozen=True)
class SessionStats:
    """Host-facing summary of the session."""

    query_count: int
    platform: str | None
    ui_version: str | None
    active: bool
    attempts: int


class IndexerSession:
    """Owns one indexer and palette for a page and rebuilds them on navigation."""

    def __init__(
        self,
        document: LiveDocument,
        config: IndexerConfig | None = None,
        *,
        registry: ProfileRegistry | None = None,
        event_logger: EventLogger | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._document = document
        self._config = config or default_config()
        self._registry = registry or build_profile_registry()
        self._event_logger: EventLogger = event_logger or MemoryEventLogger()
        self._scheduler = scheduler
        self._extractor = ColorExtractor(document, event_logger=self._event_logger)
        self._indexer: ConversationIndexer | None = None
        self._profile: LocatorProfile | None = None
        self._palette: Palette | None = None
        self._visible_refresh: Debouncer | None = None
        self._update_listeners: list[UpdateListener] = []
        self._palette_listeners: list[PaletteListener] = []
        self._attempts = 0
        self._closed = False
        # Bumped by close() and navigation; a start that sees it change stands down.
        self._start_generation = 0

    @property
    def profile(self) -> LocatorProfile | None:
        return self._profile

    @property
    def palette(self) -> Palette | None:
        return self._palette

    @property
    def indexer(self) -> ConversationIndexer | None:
        return self._indexer

    async def start(self) -> list[QueryRecord]:
        """Bring the session up, retrying readiness and scan failures with linear backoff.

        The last error is re-raised once the retries are spent. A start overtaken by
        ``close()`` or a navigation raises ``EngineDestroyed`` and leaves nothing running.
        """
        if self._closed:
            raise EngineDestroyed(operation="start")
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        if self._document.attach_scheduler(self._scheduler):
            log_event(self._event_logger, "session", "document_scheduler_attached")
        generation = self._start_generation
        retries = self._config.retry.max_attempts
        self._attempts = 0
        while True:
            self._attempts += 1
            try:
                return await self._start_once(generation)
            except (PlatformTimeout, ScanFailed) as error:
                self._ensure_current(generation)
                retry = self._attempts
                if retry > retries:
                    log_event(
                        self._event_logger,
                        "session",
                        "start_failed",
                        level="error",
                        attempts=self._attempts,
                        error=str(error),
                    )
                    raise
                delay_ms = self._config.retry.backoff_ms * retry
                log_event(
                    self._event_logger,
                    "session",
                    "start_retry",
                    level="warning",
                    attempt=retry,
                    delay_ms=delay_ms,
                    error=str(error),
                )
                await asyncio.sleep(delay_ms / 1000)
                self._ensure_current(generation)

    def on_update(self, listener: UpdateListener) -> Callable[[], None]:
        """Register an index update listener; returns an unsubscribe callable."""
        self._update_listeners.append(listener)
        return lambda: self._discard(self._update_listeners, listener)

    def on_palette(self, listener: PaletteListener) -> Callable[[], None]:
        """Register a palette listener; returns an unsubscribe callable."""
        self._palette_listeners.append(listener)
        return lambda: self._discard(self._palette_listeners, listener)

    async def handle_navigation(self, url: str, html: str | None = None) -> list[QueryRecord]:
        """Tear down and start over for a new page."""
        if html is None and url == self._document.url and self._indexer is not None:
            return self._indexer.get_queries()
        log_event(self._event_logger, "session", "navigation", url=url)
        self._start_generation += 1
        self._teardown()
        if html is not None:
            self._document.load(html, url)
        else:
            self._document.url = url
        self._extractor.invalidate()
        return await self.start()

    def refresh(self) -> list[QueryRecord]:
        """Force an immediate rescan; an idle session has nothing to refresh."""
        if self._indexer is None:
            return []
        return self._indexer.refresh()

    def handle_visibility_change(self, hidden: bool) -> None:
        """Track page visibility; becoming visible schedules a delayed refresh."""
        self._document.hidden = hidden
        if self._visible_refresh is None:
            return
        if hidden:
            self._visible_refresh.cancel()
        elif self._indexer is not None:
            self._visible_refresh.trigger()

    def handle_theme_change(self, color_scheme: str | None = None) -> Palette | None:
        """Re-extract the palette for the current profile and notify listeners."""
        if color_scheme is not None:
            self._document.color_scheme = color_scheme
        if self._profile is None:
            return None
        palette = self._extractor.refresh(self._profile)
        log_event(
            self._event_logger,
            "session",
            "theme_changed",
            color_scheme=self._document.color_scheme,
        )
        self._set_palette(palette)
        return palette

    def locate(self, query_id: str) -> Tag | None:
        if self._indexer is None:
            return None
        return self._indexer.locate(query_id)

    def stats(self) -> SessionStats:
        """Return query count, platform and whether an indexer is running."""
        return SessionStats(
            query_count=len(self._indexer.get_queries()) if self._indexer is not None else 0,
            platform=self._profile.name if self._profile is not None else None,
            ui_version=self._profile.ui_version if self._profile is not None else None,
            active=self._indexer is not None,
            attempts=self._attempts,
        )

    def close(self) -> None:
        """Release the indexer and timers; the session cannot be restarted."""
        if self._closed:
            return
        self._start_generation += 1
        self._teardown()
        self._update_listeners.clear()
        self._palette_listeners.clear()
        self._closed = True
        log_event(self._event_logger, "session", "closed")

    async def _start_once(self, generation: int) -> list[QueryRecord]:
        assert self._scheduler is not None
        self._teardown()
        timing = self._config.timing
        base = resolve(self._registry, self._document.url)
        await wait_until_ready(
            base,
            self._document,
            timeout_ms=timing.ready_timeout_ms,
            poll_ms=timing.ready_poll_ms,
            event_logger=self._event_logger,
        )
        self._ensure_current(generation)
        profile = resolve(self._registry, self._document.url, self._document)
        palette = self._extractor.extract(profile)
        indexer = ConversationIndexer(
            self._document,
            self._scheduler,
            debounce_ms=timing.debounce_ms,
            backstop_ms=timing.backstop_ms,
            event_logger=self._event_logger,
        )
        indexer.subscribe(self._forward_update)
        self._profile = profile
        self._set_palette(palette)
        try:
            records = indexer.initialize(profile)
            # listeners run synchronously above and may have closed the session
            self._ensure_current(generation)
        except (ScanFailed, EngineDestroyed):
            indexer.destroy()
            raise
        self._indexer = indexer
        self._visible_refresh = Debouncer(
            self._scheduler, VISIBLE_REFRESH_DELAY_MS, self._refresh_after_visible
        )
        log_event(
            self._event_logger,
            "session",
            "started",
            platform=profile.name,
            ui_version=profile.ui_version,
            attempts=self._attempts,
            queries=len(records),
        )
        return records

    def _ensure_current(self, generation: int) -> None:
        if not self._closed and generation == self._start_generation:
            return
        log_event(
            self._event_logger,
            "session",
            "start_abandoned",
            reason="closed" if self._closed else "navigation",
            attempts=self._attempts,
        )
        raise EngineDestroyed(operation="start")

    def _teardown(self) -> None:
        if self._visible_refresh is not None:
            self._visible_refresh.cancel()
            self._visible_refresh = None
        if self._indexer is not None:
            self._indexer.destroy()
            self._indexer = None

    def _refresh_after_visible(self) -> None:
        if self._indexer is not None and not self._document.hidden:
            self._indexer.refresh()

    def _forward_update(self, update: IndexUpdate) -> None:
        for listener in list(self._update_listeners):
            try:
                listener(update)
            except Exception as error:  # one consumer must not starve the others
                log_event(
                    self._event_logger,
                    "session",
                    "listener_failed",
                    level="warning",
                    error=f"{type(error).__name__}: {error}",
                )

    def _set_palette(self, palette: Palette) -> None:
        self._palette = palette
        for listener in list(self._palette_listeners):
            try:
                listener(palette)
            except Exception as error:  # one consumer must not starve the others
                log_event(
                    self._event_logger,
                    "session",
                    "listener_failed",
                    level="warning",
                    error=f"{type(error).__name__}: {error}",
                )

    @staticmethod
    def _discard(listeners: list, listener: object) -> None:
        if listener in listeners:
            listeners.remove(listener)
