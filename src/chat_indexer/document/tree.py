"""Live, mutable document tree with batched change notifications."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlsplit

import soupsieve as sv
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from chat_indexer.config import LayoutConfig
from chat_indexer.document.layout import Box, LayoutEngine
from chat_indexer.document.style import ComputedStyle, StyleResolver, default_display
from chat_indexer.scheduling import Scheduler

MutationKind = Literal["childList", "attributes", "characterData"]

_SKIPPED_TEXT_PARENTS = frozenset({"script", "style", "template", "noscript", "head", "title"})


@dataclass(slots=True, frozen=True)
class MutationRecord:
    """One low-level tree edit."""

    kind: MutationKind
    target: Tag
    added: tuple[Tag, ...] = ()
    removed: tuple[Tag, ...] = ()
    attribute: str | None = None


MutationCallback = Callable[[list[MutationRecord]], None]


class MutationSubscription:
    """Handle returned by LiveDocument.observe()."""

    def __init__(self, document: LiveDocument, callback: MutationCallback) -> None:
        self._document = document
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        """Return True until disconnect() is called."""
        return self._active

    def disconnect(self) -> None:
        """Stop receiving batches; idempotent."""
        if not self._active:
            return
        self._active = False
        self._document._detach(self)

    def _deliver(self, batch: list[MutationRecord]) -> None:
        if self._active:
            self._callback(batch)


class LiveDocument:
    """BeautifulSoup-backed tree exposing selector queries, style, layout and edits."""

    def __init__(
        self,
        html: str = "",
        url: str = "about:blank",
        *,
        scheduler: Scheduler | None = None,
        layout: LayoutConfig | None = None,
        color_scheme: str = "light",
        hidden: bool = False,
    ) -> None:
        self._soup = BeautifulSoup(html, "html.parser")
        self._url = url
        self._scheduler = scheduler
        self._color_scheme = _checked_scheme(color_scheme)
        self.hidden = hidden
        self.generation = 0
        self._pending: list[MutationRecord] = []
        self._flush_scheduled = False
        self._subscriptions: list[MutationSubscription] = []
        self._styles = StyleResolver(self)
        self._layout = LayoutEngine(self, self._styles, layout or LayoutConfig())

    @property
    def soup(self) -> BeautifulSoup:
        """Return the current parsed tree."""
        return self._soup

    @property
    def url(self) -> str:
        return self._url

    @url.setter
    def url(self, value: str) -> None:
        self._url = value

    @property
    def hostname(self) -> str:
        return urlsplit(self._url).hostname or ""

    @property
    def pathname(self) -> str:
        return urlsplit(self._url).path or "/"

    @property
    def color_scheme(self) -> str:
        """Return the preferred color scheme used to evaluate media blocks."""
        return self._color_scheme

    @color_scheme.setter
    def color_scheme(self, value: str) -> None:
        checked = _checked_scheme(value)
        if checked != self._color_scheme:
            self._color_scheme = checked
            self.generation += 1

    @property
    def root_element(self) -> Tag | None:
        """Return the document element (html), else the first top-level element."""
        html = self._soup.find("html")
        if isinstance(html, Tag):
            return html
        for child in self._soup.children:
            if isinstance(child, Tag):
                return child
        return None

    # Queries

    def select(self, selector: str, scope: Tag | None = None) -> list[Tag]:
        """Return matches in document order; raises SelectorSyntaxError when malformed."""
        return list(sv.select(selector, scope if scope is not None else self._soup))

    def select_one(self, selector: str, scope: Tag | None = None) -> Tag | None:
        """Return the first match in document order, or None."""
        return sv.select_one(selector, scope if scope is not None else self._soup)

    def matches(self, element: Tag, selector: str) -> bool:
        """Return True when the element itself matches the selector."""
        if isinstance(element, BeautifulSoup):
            return False
        return sv.match(selector, element)

    def closest(self, element: Tag, selector: str) -> Tag | None:
        """Return the nearest inclusive ancestor matching the selector."""
        if isinstance(element, BeautifulSoup):
            return None
        return sv.closest(selector, element)

    def contains(self, element: Tag | None) -> bool:
        """Return True when the element is attached to the current tree."""
        node: Tag | None = element
        while node is not None:
            if node is self._soup:
                return True
            node = node.parent
        return False

    def computed_style(self, element: Tag) -> ComputedStyle:
        return self._styles.computed(element)

    def bounding_box(self, element: Tag) -> Box:
        return self._layout.box(element)

    def text_content(self, element: Tag) -> str:
        """Plain-text projection of a subtree; block boundaries become spaces."""
        pieces: list[str] = []
        _collect_text(element, pieces)
        return "".join(pieces)

    # Change notifications

    def observe(self, callback: MutationCallback) -> MutationSubscription:
        """Subscribe to batches of mutation records."""
        subscription = MutationSubscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def attach_scheduler(self, scheduler: Scheduler) -> bool:
        """Deliver batches on the given scheduler's next tick from now on.

        A document that already has a scheduler keeps it. Records queued while no
        scheduler was attached are flushed on the next tick.
        """
        if self._scheduler is not None:
            return False
        self._scheduler = scheduler
        if self._pending and not self._flush_scheduled:
            self._flush_scheduled = True
            scheduler.call_later(0, self.flush)
        return True

    def flush(self) -> int:
        """Deliver queued records as one batch; returns the number delivered."""
        self._flush_scheduled = False
        if not self._pending:
            return 0
        batch = self._pending
        self._pending = []
        for subscription in list(self._subscriptions):
            subscription._deliver(list(batch))
        return len(batch)

    def _detach(self, subscription: MutationSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _record(self, record: MutationRecord) -> None:
        self.generation += 1
        if not self._subscriptions:
            return
        self._pending.append(record)
        if self._scheduler is not None and not self._flush_scheduled:
            self._flush_scheduled = True
            self._scheduler.call_later(0, self.flush)

    # Edits

    def append_html(self, parent: Tag, html: str) -> list[Tag]:
        """Parse an HTML fragment and append its nodes to parent."""
        return self.insert_html(parent, len(parent.contents), html)

    def insert_html(self, parent: Tag, position: int, html: str) -> list[Tag]:
        """Parse an HTML fragment and insert its nodes at a child position."""
        fragment = BeautifulSoup(html, "html.parser")
        nodes = list(fragment.contents)
        for offset, node in enumerate(nodes):
            parent.insert(position + offset, node.extract())
        added = tuple(node for node in nodes if isinstance(node, Tag))
        self._record(MutationRecord(kind="childList", target=parent, added=added))
        return list(added)

    def set_attribute(self, element: Tag, name: str, value: str) -> None:
        element[name] = value
        self._record(MutationRecord(kind="attributes", target=element, attribute=name))

    def remove_attribute(self, element: Tag, name: str) -> None:
        if name not in element.attrs:
            return
        del element[name]
        self._record(MutationRecord(kind="attributes", target=element, attribute=name))

    def set_text(self, element: Tag, text: str) -> None:
        """Replace the element's children with a single text node."""
        element.clear()
        element.append(NavigableString(text))
        self._record(MutationRecord(kind="characterData", target=element))

    def remove(self, element: Tag) -> None:
        parent = element.parent
        element.extract()
        if isinstance(parent, Tag):
            self._record(MutationRecord(kind="childList", target=parent, removed=(element,)))

    def replace_html(self, element: Tag, html: str) -> list[Tag]:
        """Replace an element with freshly parsed nodes (framework-style re-render)."""
        parent = element.parent
        if not isinstance(parent, Tag):
            raise ValueError("Cannot replace a detached element.")
        position = parent.index(element)
        element.extract()
        fragment = BeautifulSoup(html, "html.parser")
        nodes = list(fragment.contents)
        for offset, node in enumerate(nodes):
            parent.insert(position + offset, node.extract())
        added = tuple(node for node in nodes if isinstance(node, Tag))
        self._record(
            MutationRecord(kind="childList", target=parent, added=added, removed=(element,))
        )
        return list(added)

    def load(self, html: str, url: str | None = None) -> None:
        """Replace the whole tree, as a navigation does; old element references go stale."""
        self._soup = BeautifulSoup(html, "html.parser")
        if url is not None:
            self._url = url
        self._pending = []
        self.generation += 1


def _checked_scheme(value: str) -> str:
    lowered = value.strip().lower()
    if lowered not in {"light", "dark"}:
        raise ValueError(f"Unsupported color scheme: {value}")
    return lowered


def _collect_text(element: Tag, pieces: list[str]) -> None:
    for child in element.children:
        if isinstance(child, Tag):
            if child.name in _SKIPPED_TEXT_PARENTS:
                continue
            if child.name == "br":
                pieces.append(" ")
                continue
            is_block = default_display(child.name or "") == "block"
            if is_block:
                pieces.append(" ")
            _collect_text(child, pieces)
            if is_block:
                pieces.append(" ")
            continue
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            pieces.append(str(child))
