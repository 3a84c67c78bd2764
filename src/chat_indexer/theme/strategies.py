"""Per-platform colour probes and extraction strategies."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Protocol

from chat_indexer.document import LiveDocument
from chat_indexer.theme.colors import format_color, normalize_color, parse_color

PALETTE_SLOTS = ("primary", "secondary", "accent", "surface", "border")
DOMINANT_SCOPE = "div, section, main, body"
DOMINANT_LIMIT = 400


class ColorProbe(Protocol):
    """Reads one candidate colour from the document."""

    def read(self, document: LiveDocument) -> str | None:
        """Return a normalized colour, or None when nothing usable was found."""


@dataclass(slots=True, frozen=True)
class StyleProbe:
    """Computed style property of the first element matching a selector."""

    selector: str
    property: str

    def read(self, document: LiveDocument) -> str | None:
        element = document.select_one(self.selector)
        if element is None:
            return None
        return _usable(document.computed_style(element).get_property_value(self.property))


@dataclass(slots=True, frozen=True)
class VariableProbe:
    """Custom property resolved on the root element."""

    name: str

    def read(self, document: LiveDocument) -> str | None:
        root = document.root_element
        if root is None:
            return None
        value = document.computed_style(root).get_property_value(self.name)
        if value in {"initial", "inherit"}:
            return None
        return _usable(value)


@dataclass(slots=True, frozen=True)
class DominantBackgroundProbe:
    """Most common opaque background colour over a bounded set of containers."""

    scope: str = DOMINANT_SCOPE
    limit: int = DOMINANT_LIMIT

    def read(self, document: LiveDocument) -> str | None:
        counts: Counter[str] = Counter()
        for element in document.select(self.scope)[: self.limit]:
            parsed = parse_color(
                document.computed_style(element).get_property_value("background-color")
            )
            if parsed is None or parsed[3] < 0.999:
                continue
            counts[format_color(parsed)] += 1
        if not counts:
            return None
        # Ties resolve to the first colour seen in document order.
        return counts.most_common(1)[0][0]


@dataclass(slots=True, frozen=True)
class SlotRecipe:
    """Ordered probes for one palette slot plus the slot default."""

    probes: tuple[ColorProbe, ...]
    default: str


@dataclass(slots=True, frozen=True)
class ExtractionStrategy:
    """Palette recipe for one platform."""

    name: str
    primary: SlotRecipe
    secondary: SlotRecipe
    accent: SlotRecipe
    surface: SlotRecipe
    border: SlotRecipe

    def recipe(self, slot: str) -> SlotRecipe:
        if slot not in PALETTE_SLOTS:
            raise KeyError(slot)
        return getattr(self, slot)


def _usable(value: str) -> str | None:
    parsed = parse_color(value)
    if parsed is None or parsed[3] <= 0.0:
        return None
    return normalize_color(value)


CHATGPT_STRATEGY = ExtractionStrategy(
    name="chatgpt",
    primary=SlotRecipe(
        probes=(
            StyleProbe("body", "background-color"),
            StyleProbe(".dark\\:bg-gray-800", "background-color"),
            StyleProbe('[class*="bg-"]', "background-color"),
        ),
        default="#212121",
    ),
    secondary=SlotRecipe(
        probes=(StyleProbe('[data-testid="send-button"]', "background-color"),),
        default="#10a37f",
    ),
    accent=SlotRecipe(
        probes=(StyleProbe('[data-message-author-role="user"]', "color"),),
        default="#ececf1",
    ),
    surface=SlotRecipe(probes=(StyleProbe("nav", "background-color"),), default="#171717"),
    border=SlotRecipe(
        probes=(VariableProbe("--border-light"),), default="rgba(255, 255, 255, 0.1)"
    ),
)

GEMINI_STRATEGY = ExtractionStrategy(
    name="gemini",
    primary=SlotRecipe(
        probes=(VariableProbe("--surface-container"), StyleProbe("body", "background-color")),
        default="#1e1e1e",
    ),
    secondary=SlotRecipe(
        probes=(
            VariableProbe("--primary"),
            StyleProbe('[data-mdc-dialog-action="ok"]', "background-color"),
        ),
        default="#1a73e8",
    ),
    accent=SlotRecipe(
        probes=(VariableProbe("--on-surface"), StyleProbe('[data-message-author="user"]', "color")),
        default="#e8eaed",
    ),
    surface=SlotRecipe(
        probes=(
            VariableProbe("--surface-container-high"),
            StyleProbe(".conversation-container", "background-color"),
        ),
        default="#2d2d30",
    ),
    border=SlotRecipe(
        probes=(VariableProbe("--outline-variant"),), default="rgba(255, 255, 255, 0.12)"
    ),
)

PERPLEXITY_STRATEGY = ExtractionStrategy(
    name="perplexity",
    primary=SlotRecipe(
        probes=(DominantBackgroundProbe(), StyleProbe("body", "background-color")),
        default="#202222",
    ),
    secondary=SlotRecipe(
        probes=(
            StyleProbe('button[type="submit"]', "background-color"),
            StyleProbe(".btn-primary", "background-color"),
        ),
        default="#20808d",
    ),
    accent=SlotRecipe(
        probes=(StyleProbe(".user-input-container", "color"), StyleProbe("h1", "color")),
        default="#ffffff",
    ),
    surface=SlotRecipe(
        probes=(
            StyleProbe(".thread-container", "background-color"),
            StyleProbe("main", "background-color"),
        ),
        default="#2c2d30",
    ),
    border=SlotRecipe(
        probes=(StyleProbe("hr", "border-color"),), default="rgba(255, 255, 255, 0.1)"
    ),
)

GENERIC_STRATEGY = ExtractionStrategy(
    name="generic",
    primary=SlotRecipe(probes=(), default="#1a1a1a"),
    secondary=SlotRecipe(probes=(), default="#0066cc"),
    accent=SlotRecipe(probes=(), default="#ffffff"),
    surface=SlotRecipe(probes=(), default="#2a2a2a"),
    border=SlotRecipe(probes=(), default="rgba(255, 255, 255, 0.1)"),
)


def builtin_strategies() -> dict[str, ExtractionStrategy]:
    """Return the built-in strategies keyed by platform name."""
    return {
        strategy.name: strategy
        for strategy in (CHATGPT_STRATEGY, GEMINI_STRATEGY, PERPLEXITY_STRATEGY, GENERIC_STRATEGY)
    }
