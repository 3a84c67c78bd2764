"""Adaptive palette extraction."""

from .colors import (
    NAMED_COLORS,
    blend,
    contrast_ratio,
    format_color,
    is_transparent,
    normalize_color,
    parse_color,
    pick_contrasting,
    relative_luminance,
)
from .extractor import (
    DEFAULT_PALETTE,
    MIN_ACCENT_CONTRAST,
    ColorExtractor,
    Palette,
    accent_contrast,
    validate_palette,
)
from .strategies import (
    PALETTE_SLOTS,
    ColorProbe,
    DominantBackgroundProbe,
    ExtractionStrategy,
    SlotRecipe,
    StyleProbe,
    VariableProbe,
    builtin_strategies,
)

__all__ = [
    "ColorExtractor",
    "ColorProbe",
    "DEFAULT_PALETTE",
    "DominantBackgroundProbe",
    "ExtractionStrategy",
    "MIN_ACCENT_CONTRAST",
    "NAMED_COLORS",
    "PALETTE_SLOTS",
    "Palette",
    "SlotRecipe",
    "StyleProbe",
    "VariableProbe",
    "accent_contrast",
    "blend",
    "builtin_strategies",
    "contrast_ratio",
    "format_color",
    "is_transparent",
    "normalize_color",
    "parse_color",
    "pick_contrasting",
    "relative_luminance",
    "validate_palette",
]
