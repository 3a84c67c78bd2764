"""Structured logging utilities."""

from .events import (
    DiagnosticEvent,
    EventLogger,
    JsonlEventLogger,
    MemoryEventLogger,
    log_event,
    sanitize_metadata,
    utc_timestamp,
)

__all__ = [
    "DiagnosticEvent",
    "EventLogger",
    "JsonlEventLogger",
    "MemoryEventLogger",
    "log_event",
    "sanitize_metadata",
    "utc_timestamp",
]
