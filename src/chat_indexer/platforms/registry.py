"""Profile registry with deterministic first-match selection."""

from __future__ import annotations

from dataclasses import dataclass, field

from chat_indexer.platforms.base import LocatorProfile, PlatformRule, host_identity


@dataclass(slots=True)
class ProfileRegistry:
    """Ordered platform rules with an explicit generic fallback profile."""

    _rules: list[PlatformRule] = field(default_factory=list)
    _fallback: LocatorProfile | None = None

    def register(self, rule: PlatformRule) -> None:
        """Register a rule in deterministic insertion order."""
        self._rules.append(rule)

    def register_fallback(self, profile: LocatorProfile) -> None:
        """Set the profile used when no rule matches."""
        self._fallback = profile

    def select_rule(self, identity: str) -> PlatformRule | None:
        """Return the first rule matching the identity, or None."""
        normalized = host_identity(identity)
        for rule in self._rules:
            if rule.supports_identity(normalized):
                return rule
        return None

    def select(self, identity: str) -> LocatorProfile:
        """Select the first matching profile, else the fallback."""
        rule = self.select_rule(identity)
        if rule is not None:
            return rule.profile
        if self._fallback is not None:
            return self._fallback
        raise LookupError(f"No platform profile supports: {identity}")

    def rule_for(self, name: str) -> PlatformRule | None:
        """Return the registered rule for a profile name."""
        for rule in self._rules:
            if rule.name == name:
                return rule
        return None

    def names(self) -> tuple[str, ...]:
        """Return registered profile names in deterministic order."""
        ordered = [rule.name for rule in self._rules]
        if self._fallback is not None:
            ordered.append(self._fallback.name)
        return tuple(ordered)
