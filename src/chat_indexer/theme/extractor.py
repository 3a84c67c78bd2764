"""Palette extraction with per-profile caching and contrast validation."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from chat_indexer.document import LiveDocument
from chat_indexer.logging import EventLogger, MemoryEventLogger, log_event
from chat_indexer.platforms import LocatorProfile
from chat_indexer.theme.colors import (
    Rgb,
    blend,
    contrast_ratio,
    normalize_color,
    parse_color,
    pick_contrasting,
)
from chat_indexer.theme.strategies import (
    GENERIC_STRATEGY,
    PALETTE_SLOTS,
    ExtractionStrategy,
    builtin_strategies,
)

MIN_ACCENT_CONTRAST = 3.0
_PAGE_BACKDROP: Rgb = (255, 255, 255)


@dataclass(slots=True, frozen=True)
class Palette:
    """Five-slot colour scheme derived from the host page."""

    primary: str
    secondary: str
    accent: str
    surface: str
    border: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


DEFAULT_PALETTE = Palette(
    primary="#1a1a1a",
    secondary="#0066cc",
    accent="#ffffff",
    surface="#2a2a2a",
    border="rgba(255, 255, 255, 0.1)",
)


def accent_contrast(palette: Palette) -> float:
    """Return the contrast ratio between accent and surface as displayed."""
    surface = _opaque(palette.surface, _PAGE_BACKDROP)
    return contrast_ratio(_opaque(palette.accent, surface), surface)


def validate_palette(candidate: dict[str, str | None]) -> Palette:
    """Normalize every slot, fill invalid ones with defaults and enforce accent contrast.

    Translucent slots are judged as composited: surface over a white page, accent over
    the surface.
    """
    values: dict[str, str] = {}
    for slot in PALETTE_SLOTS:
        normalized = normalize_color(candidate.get(slot))
        values[slot] = normalized if normalized is not None else getattr(DEFAULT_PALETTE, slot)
    palette = Palette(**values)
    if accent_contrast(palette) < MIN_ACCENT_CONTRAST:
        surface = _opaque(palette.surface, _PAGE_BACKDROP)
        values["accent"] = pick_contrasting(surface)
        palette = Palette(**values)
    return palette


class ColorExtractor:
    """Samples rendered styles into palettes cached by platform and UI version."""

    def __init__(
        self,
        document: LiveDocument,
        *,
        strategies: dict[str, ExtractionStrategy] | None = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        self._document = document
        self._strategies = strategies if strategies is not None else builtin_strategies()
        self._event_logger: EventLogger = event_logger or MemoryEventLogger()
        self._cache: dict[tuple[str, str], Palette] = {}

    def extract(self, profile: LocatorProfile) -> Palette:
        """Return the cached palette for the profile, extracting it on first use."""
        key = (profile.name, profile.ui_version)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        strategy = self._strategy_for(profile.name)
        raw = {slot: self._read_slot(strategy, slot) for slot in PALETTE_SLOTS}
        palette = validate_palette(raw)
        self._cache[key] = palette
        log_event(
            self._event_logger,
            "theme",
            "palette_extracted",
            platform=profile.name,
            ui_version=profile.ui_version,
            strategy=strategy.name,
            accent_forced=palette.accent != normalize_color(raw["accent"]),
        )
        return palette

    def refresh(self, profile: LocatorProfile) -> Palette:
        """Drop the cached palette for the profile and extract again."""
        self._cache.pop((profile.name, profile.ui_version), None)
        return self.extract(profile)

    def invalidate(self) -> None:
        """Forget every cached palette."""
        self._cache.clear()

    def cached(self, profile: LocatorProfile) -> Palette | None:
        return self._cache.get((profile.name, profile.ui_version))

    def _strategy_for(self, name: str) -> ExtractionStrategy:
        strategy = self._strategies.get(name)
        if strategy is not None:
            return strategy
        return self._strategies.get(GENERIC_STRATEGY.name, GENERIC_STRATEGY)

    def _read_slot(self, strategy: ExtractionStrategy, slot: str) -> str:
        recipe = strategy.recipe(slot)
        for probe in recipe.probes:
            try:
                value = probe.read(self._document)
            except Exception as error:  # a broken probe falls through to the next one
                log_event(
                    self._event_logger,
                    "theme",
                    "probe_failed",
                    level="warning",
                    strategy=strategy.name,
                    slot=slot,
                    error=f"{type(error).__name__}: {error}",
                )
                continue
            if value:
                return value
        return recipe.default


def _opaque(color: str, backdrop: Rgb) -> Rgb:
    parsed = parse_color(color)
    if parsed is None:
        return backdrop
    return blend(parsed, backdrop)
