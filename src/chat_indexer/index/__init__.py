"""Conversation indexing engine and its models."""

from .engine import (
    DESTROYED,
    OBSERVING,
    RESCANNING,
    SCANNING,
    UNINITIALIZED,
    ConversationIndexer,
    EngineDestroyed,
    ScanFailed,
)
from .extraction import (
    build_query_id,
    element_selector,
    extract_timestamp,
    is_visible,
    normalize_text,
    parse_timestamp,
    truncate_text,
)
from .models import IndexerStatus, IndexUpdate, Position, QueryRecord
from .scan import candidate_text, find_user_messages, scan_conversation

__all__ = [
    "ConversationIndexer",
    "DESTROYED",
    "EngineDestroyed",
    "IndexUpdate",
    "IndexerStatus",
    "OBSERVING",
    "Position",
    "QueryRecord",
    "RESCANNING",
    "SCANNING",
    "ScanFailed",
    "UNINITIALIZED",
    "build_query_id",
    "candidate_text",
    "element_selector",
    "extract_timestamp",
    "find_user_messages",
    "is_visible",
    "normalize_text",
    "parse_timestamp",
    "scan_conversation",
    "truncate_text",
]
