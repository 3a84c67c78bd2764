"""Platform locator profiles and resolution."""

from .base import (
    UNKNOWN_VERSION,
    LocatorProfile,
    PlatformRule,
    PlatformTimeout,
    VersionMarker,
    host_identity,
)
from .builtin import GENERIC, builtin_rules
from .registry import ProfileRegistry
from .runtime import (
    build_profile_registry,
    detect_ui_version,
    is_ready,
    resolve,
    wait_until_ready,
)

__all__ = [
    "GENERIC",
    "LocatorProfile",
    "PlatformRule",
    "PlatformTimeout",
    "ProfileRegistry",
    "UNKNOWN_VERSION",
    "VersionMarker",
    "build_profile_registry",
    "builtin_rules",
    "detect_ui_version",
    "host_identity",
    "is_ready",
    "resolve",
    "wait_until_ready",
]
