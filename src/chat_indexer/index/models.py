"""Typed models for indexing state."""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import Tag


@dataclass(slots=True, frozen=True)
class Position:
    """Element rectangle in document coordinates."""

    top: float
    left: float
    width: float
    height: float


@dataclass(slots=True, frozen=True)
class QueryRecord:
    """One discovered user message.

    ``element`` is a non-owning back reference used only to re-locate the
    message; it goes stale whenever the tree is replaced and is excluded from
    equality.
    """

    id: str
    text: str
    truncated_text: str
    timestamp: int
    index: int
    position: Position
    element_selector: str
    element: Tag | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, object]:
        """Return a serializable snapshot without the element reference."""
        return {
            "id": self.id,
            "text": self.text,
            "truncated_text": self.truncated_text,
            "timestamp": self.timestamp,
            "index": self.index,
            "position": {
                "top": self.position.top,
                "left": self.position.left,
                "width": self.position.width,
                "height": self.position.height,
            },
            "element_selector": self.element_selector,
        }


@dataclass(slots=True, frozen=True)
class IndexUpdate:
    """Notification emitted to consumers when the index changes."""

    queries: tuple[QueryRecord, ...]
    platform: str
    timestamp_ms: int
    reason: str


@dataclass(slots=True, frozen=True)
class IndexerStatus:
    """Current engine status snapshot."""

    state: str
    platform: str | None
    query_count: int
    scan_count: int
    last_scan_ms: float | None
