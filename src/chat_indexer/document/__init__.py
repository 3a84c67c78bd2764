"""Live document tree, computed style and approximate layout."""

from .css import StyleRule, parse_declarations, parse_stylesheet, selector_specificity
from .layout import EMPTY_BOX, Box, LayoutEngine, parse_length
from .style import ComputedStyle, StyleResolver, default_display, substitute_variables
from .tree import LiveDocument, MutationRecord, MutationSubscription

__all__ = [
    "Box",
    "ComputedStyle",
    "EMPTY_BOX",
    "LayoutEngine",
    "LiveDocument",
    "MutationRecord",
    "MutationSubscription",
    "StyleResolver",
    "StyleRule",
    "default_display",
    "parse_declarations",
    "parse_length",
    "parse_stylesheet",
    "selector_specificity",
    "substitute_variables",
]
