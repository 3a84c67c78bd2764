"""Locator profile types and platform rule contract."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import urlsplit

UNKNOWN_VERSION = "unknown"


@dataclass(slots=True, frozen=True)
class LocatorProfile:
    """Structural selectors locating user messages for one platform."""

    name: str
    display_name: str
    user_message_selector: str
    fallback_user_message_selector: str
    message_content_selector: str
    fallback_message_content_selector: str
    conversation_container_selector: str
    ui_version: str = UNKNOWN_VERSION

    @property
    def user_message_selectors(self) -> tuple[str, ...]:
        """Return the non-empty primary then fallback user-message selectors."""
        return _present(self.user_message_selector, self.fallback_user_message_selector)

    @property
    def content_selectors(self) -> tuple[str, ...]:
        """Return the non-empty primary then fallback content selectors."""
        return _present(self.message_content_selector, self.fallback_message_content_selector)


@dataclass(slots=True, frozen=True)
class VersionMarker:
    """Selector whose presence identifies a UI revision."""

    selector: str
    version: str


@dataclass(slots=True, frozen=True)
class PlatformRule:
    """Host pattern mapped to a locator profile."""

    pattern: re.Pattern[str]
    profile: LocatorProfile
    version_markers: tuple[VersionMarker, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return self.profile.name

    def supports_identity(self, identity: str) -> bool:
        """Return True when the host identity matches this rule."""
        return self.pattern.search(identity) is not None


@dataclass(slots=True, frozen=True)
class PlatformTimeout(Exception):
    """Raised when a profile's conversation container never appeared."""

    platform: str
    timeout_ms: int

    def __str__(self) -> str:
        return f"Platform '{self.platform}' not ready after {self.timeout_ms} ms."


def host_identity(url_or_identity: str) -> str:
    """Return hostname + pathname for a URL; bare identities pass through lowered."""
    candidate = url_or_identity.strip()
    if "://" not in candidate:
        return candidate.lower()
    parts = urlsplit(candidate)
    return f"{(parts.hostname or '').lower()}{parts.path or '/'}"


def _present(*selectors: str) -> tuple[str, ...]:
    return tuple(selector for selector in selectors if selector)
