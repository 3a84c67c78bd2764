"""Runtime profile resolution, UI version detection and readiness polling."""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace

import soupsieve as sv

from chat_indexer.document import LiveDocument
from chat_indexer.logging import EventLogger, log_event
from chat_indexer.platforms.base import UNKNOWN_VERSION, LocatorProfile, PlatformTimeout
from chat_indexer.platforms.builtin import GENERIC, builtin_rules
from chat_indexer.platforms.registry import ProfileRegistry

DEFAULT_READY_TIMEOUT_MS = 10_000
DEFAULT_READY_POLL_MS = 500


def build_profile_registry() -> ProfileRegistry:
    """Build the registry of built-in platform profiles."""
    registry = ProfileRegistry()
    for rule in builtin_rules():
        registry.register(rule)
    registry.register_fallback(GENERIC)
    return registry


def detect_ui_version(
    registry: ProfileRegistry, profile_name: str, document: LiveDocument
) -> str:
    """Return the first UI revision whose marker is present, else 'unknown'."""
    rule = registry.rule_for(profile_name)
    if rule is None:
        return UNKNOWN_VERSION
    for marker in rule.version_markers:
        if document.select_one(marker.selector) is not None:
            return marker.version
    return UNKNOWN_VERSION


def resolve(
    registry: ProfileRegistry, identity: str, document: LiveDocument | None = None
) -> LocatorProfile:
    """Resolve a host identity to a profile, tagged with the UI version when possible."""
    profile = registry.select(identity)
    if document is None:
        return profile
    return replace(profile, ui_version=detect_ui_version(registry, profile.name, document))


def is_ready(profile: LocatorProfile, document: LiveDocument) -> bool:
    """Return True when the conversation container is present."""
    try:
        return document.select_one(profile.conversation_container_selector) is not None
    except sv.SelectorSyntaxError:
        return False


async def wait_until_ready(
    profile: LocatorProfile,
    document: LiveDocument,
    timeout_ms: int = DEFAULT_READY_TIMEOUT_MS,
    poll_ms: int = DEFAULT_READY_POLL_MS,
    event_logger: EventLogger | None = None,
) -> LocatorProfile:
    """Poll until the profile's container resolves, else raise PlatformTimeout."""
    started = time.monotonic()
    polls = 0
    while True:
        polls += 1
        if is_ready(profile, document):
            if event_logger is not None:
                log_event(
                    event_logger, "platforms", "platform_ready", platform=profile.name, polls=polls
                )
            return profile
        elapsed_ms = (time.monotonic() - started) * 1000
        if elapsed_ms >= timeout_ms:
            if event_logger is not None:
                log_event(
                    event_logger,
                    "platforms",
                    "platform_timeout",
                    level="warning",
                    platform=profile.name,
                    timeout_ms=timeout_ms,
                    polls=polls,
                )
            raise PlatformTimeout(platform=profile.name, timeout_ms=timeout_ms)
        await asyncio.sleep(min(poll_ms, max(0.0, timeout_ms - elapsed_ms)) / 1000)
