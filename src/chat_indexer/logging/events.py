"""Structured JSONL diagnostic event utilities."""

from __future__ import annotations

import json
from collections import deque
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

LEVELS = ("debug", "info", "warning", "error")


@dataclass(slots=True, frozen=True)
class DiagnosticEvent:
    """Sanitized representation of one engine diagnostic."""

    timestamp: str
    component: str
    event: str
    level: str
    metadata: dict[str, object]


class EventLogger(Protocol):
    """Sink accepting diagnostic events."""

    def append(self, event: DiagnosticEvent) -> None:
        """Record one event."""

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Return recent events as plain dicts."""


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_metadata(metadata: dict[str, object]) -> dict[str, object]:
    """Sanitize metadata so message text never reaches the log."""
    sanitized: dict[str, object] = {}
    for key in sorted(metadata.keys()):
        value = metadata[key]
        if key in {"text", "query", "content", "html"} and isinstance(value, str):
            sanitized[f"{key}_present"] = bool(value)
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, (int, float, bool)) or value is None:
            sanitized[key] = value
            continue
        if isinstance(value, str):
            sanitized[key] = value if len(value) <= 200 else f"{value[:200]}..."
            continue
        if isinstance(value, (list, tuple)):
            sanitized[f"{key}_type"] = "list"
            sanitized[f"{key}_length"] = len(value)
            continue
        if isinstance(value, dict):
            sanitized[f"{key}_type"] = "dict"
            sanitized[f"{key}_keys"] = sorted(str(k) for k in value.keys())
            continue
        sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


def log_event(
    logger: EventLogger,
    component: str,
    event: str,
    level: str = "info",
    **metadata: object,
) -> None:
    """Build, sanitize and append a diagnostic event."""
    if level not in LEVELS:
        raise ValueError(f"Unknown event level: {level}")
    logger.append(
        DiagnosticEvent(
            timestamp=utc_timestamp(),
            component=component,
            event=event,
            level=level,
            metadata=sanitize_metadata(metadata),
        )
    )


class JsonlEventLogger:
    """Append-only JSONL event logger and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def append(self, event: DiagnosticEvent) -> None:
        """Append a sanitized event as one JSON object per line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp lower bound."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        if not self._path.exists():
            return entries
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if since is not None:
                    ts = record.get("timestamp")
                    if not isinstance(ts, str) or ts < since:
                        continue
                entries.append(record)
        if len(entries) <= limit:
            return entries
        return entries[-limit:]


class MemoryEventLogger:
    """Bounded in-memory event buffer used when no log path is configured."""

    def __init__(self, capacity: int = 500) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._events: deque[DiagnosticEvent] = deque(maxlen=capacity)

    def append(self, event: DiagnosticEvent) -> None:
        self._events.append(event)

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        if limit < 1:
            return []
        entries = [
            asdict(event) for event in self._events if since is None or event.timestamp >= since
        ]
        return entries[-limit:]

    def events(self, event: str | None = None) -> list[DiagnosticEvent]:
        """Return buffered events, optionally filtered by event name."""
        return [item for item in self._events if event is None or item.event == event]
