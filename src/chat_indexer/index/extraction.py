"""Text normalization, identity and per-element extraction helpers."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import soupsieve as sv
from bs4 import Tag

from chat_indexer.document import LiveDocument
from chat_indexer.logging import EventLogger, log_event

TRUNCATE_LENGTH = 60
ELLIPSIS = "..."
MIN_QUERY_LENGTH = 3

TIMESTAMP_SELECTORS = (
    "time",
    "[datetime]",
    ".timestamp",
    ".time",
    '[title*="PM"], [title*="AM"]',
)
TIMESTAMP_ATTRIBUTES = ("datetime", "title")

_WHITESPACE_RE = re.compile(r"\s+")
_EPOCH_RE = re.compile(r"^\d{9,13}$")
_DATETIME_FORMATS = (
    "%b %d, %Y, %I:%M %p",
    "%B %d, %Y, %I:%M %p",
    "%b %d, %Y %I:%M %p",
    "%B %d, %Y at %I:%M %p",
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%d %b %Y %H:%M",
    "%Y-%m-%d %H:%M",
)


def normalize_text(text: str) -> str:
    """Drop format characters, collapse whitespace runs and trim."""
    visible = "".join(char for char in text if unicodedata.category(char) != "Cf")
    return _WHITESPACE_RE.sub(" ", visible).strip()


def truncate_text(text: str, max_length: int = TRUNCATE_LENGTH) -> str:
    """Truncate at a word boundary when one lies beyond 70% of the limit."""
    if len(text) <= max_length:
        return text
    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.7:
        return truncated[:last_space] + ELLIPSIS
    return truncated + ELLIPSIS


def build_query_id(text: str, index: int) -> str:
    """Build a stable identifier from normalized text and rank."""
    digest = hashlib.sha256()
    digest.update(str(index).encode("ascii"))
    digest.update(b"|")
    digest.update(text.encode("utf-8"))
    return f"query_{index}_{digest.hexdigest()[:12]}"


def parse_timestamp(raw: str | None) -> int | None:
    """Parse a timestamp-shaped string into epoch milliseconds."""
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    if _EPOCH_RE.match(value):
        number = int(value)
        return number if len(value) == 13 else number * 1000
    parsed = _parse_datetime(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return int(parsed.timestamp() * 1000)


def _parse_datetime(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    # UI formats go before RFC 2822, which would read a trailing AM/PM as a zone name
    for pattern in _DATETIME_FORMATS:
        try:
            return datetime.strptime(value, pattern)
        except ValueError:
            continue
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None


def extract_timestamp(
    document: LiveDocument,
    element: Tag,
    event_logger: EventLogger | None = None,
) -> int | None:
    """Return the first parseable timestamp found under the element, else None."""
    seen = 0
    for selector in TIMESTAMP_SELECTORS:
        node = document.select_one(selector, scope=element)
        if node is None:
            continue
        seen += 1
        for attribute in TIMESTAMP_ATTRIBUTES:
            raw = node.get(attribute)
            if isinstance(raw, str):
                parsed = parse_timestamp(raw)
                if parsed is not None:
                    return parsed
        parsed = parse_timestamp(normalize_text(document.text_content(node)))
        if parsed is not None:
            return parsed
    if seen and event_logger is not None:
        log_event(event_logger, "index", "timestamp_unparsed", level="debug", candidates=seen)
    return None


def element_selector(element: Tag) -> str:
    """Build a selector that can help re-find the element."""
    element_id = element.get("id")
    if isinstance(element_id, str) and element_id:
        return f"#{sv.escape(element_id)}"
    for attribute in ("data-message-id", "data-testid"):
        value = element.get(attribute)
        if isinstance(value, str) and value:
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            return f'[{attribute}="{escaped}"]'
    classes = element.get("class")
    if isinstance(classes, list) and classes:
        return "." + ".".join(sv.escape(name) for name in classes[:3])
    return element.name or ""


def is_visible(document: LiveDocument, element: Tag) -> bool:
    """Return True when the element has a rendered area and is not styled hidden."""
    if document.bounding_box(element).is_empty:
        return False
    style = document.computed_style(element)
    if style.get_property_value("display") == "none":
        return False
    if style.get_property_value("visibility") in {"hidden", "collapse"}:
        return False
    return _opacity(style.get_property_value("opacity")) > 0


def _opacity(value: str) -> float:
    if not value:
        return 1.0
    try:
        if value.endswith("%"):
            return float(value[:-1]) / 100.0
        return float(value)
    except ValueError:
        return 1.0
