"""Colour parsing, normalization and WCAG contrast helpers."""

from __future__ import annotations

import re

Rgb = tuple[int, int, int]
Rgba = tuple[int, int, int, float]

WHITE = "#ffffff"
BLACK = "#000000"

NAMED_COLORS = {
    "black": "#000000",
    "white": "#ffffff",
    "red": "#ff0000",
    "green": "#008000",
    "lime": "#00ff00",
    "blue": "#0000ff",
    "yellow": "#ffff00",
    "cyan": "#00ffff",
    "aqua": "#00ffff",
    "magenta": "#ff00ff",
    "fuchsia": "#ff00ff",
    "gray": "#808080",
    "grey": "#808080",
    "silver": "#c0c0c0",
    "maroon": "#800000",
    "olive": "#808000",
    "navy": "#000080",
    "purple": "#800080",
    "teal": "#008080",
    "orange": "#ffa500",
    "pink": "#ffc0cb",
    "brown": "#a52a2a",
    "gold": "#ffd700",
    "indigo": "#4b0082",
    "violet": "#ee82ee",
    "whitesmoke": "#f5f5f5",
    "gainsboro": "#dcdcdc",
    "lightgray": "#d3d3d3",
    "lightgrey": "#d3d3d3",
    "darkgray": "#a9a9a9",
    "darkgrey": "#a9a9a9",
    "dimgray": "#696969",
    "dimgrey": "#696969",
    "slategray": "#708090",
    "dodgerblue": "#1e90ff",
    "royalblue": "#4169e1",
    "steelblue": "#4682b4",
    "tomato": "#ff6347",
    "crimson": "#dc143c",
    "seagreen": "#2e8b57",
}

_HEX_RE = re.compile(r"#([0-9a-f]{3,4}|[0-9a-f]{6}|[0-9a-f]{8})")
_FUNCTION_RE = re.compile(r"rgba?\(\s*([^()]*)\)")


def parse_color(value: str | None) -> Rgba | None:
    """Parse hex, rgb()/rgba(), named colours and ``transparent``.

    >>> parse_color("#abc")
    (170, 187, 204, 1.0)
    """
    if not value:
        return None
    text = value.strip().lower()
    if not text:
        return None
    if text == "transparent":
        return (0, 0, 0, 0.0)
    text = NAMED_COLORS.get(text, text)
    hex_match = _HEX_RE.fullmatch(text)
    if hex_match:
        return _parse_hex(hex_match.group(1))
    function_match = _FUNCTION_RE.fullmatch(text)
    if function_match:
        return _parse_function(function_match.group(1))
    return None


def normalize_color(value: str | None) -> str | None:
    """Return ``#rrggbb`` for opaque colours, ``rgba(r, g, b, a)`` otherwise."""
    parsed = parse_color(value)
    if parsed is None:
        return None
    return format_color(parsed)


def format_color(rgba: Rgba) -> str:
    r, g, b, a = rgba
    if a >= 0.999:
        return "#%02x%02x%02x" % (r, g, b)
    return f"rgba({r}, {g}, {b}, {_format_alpha(a)})"


def is_transparent(value: str | None) -> bool:
    parsed = parse_color(value)
    return parsed is not None and parsed[3] <= 0.0


def blend(rgba: Rgba, backdrop: Rgb) -> Rgb:
    """Composite a translucent colour over an opaque backdrop."""
    r, g, b, a = rgba
    return (
        int(round(r * a + backdrop[0] * (1 - a))),
        int(round(g * a + backdrop[1] * (1 - a))),
        int(round(b * a + backdrop[2] * (1 - a))),
    )


def relative_luminance(rgb: Rgb) -> float:
    """Calculate relative luminance per WCAG.

    >>> round(relative_luminance((255, 255, 255)), 3)
    1.0
    """

    def channel(c: int) -> float:
        v = c / 255.0
        return v / 12.92 if v <= 0.03928 else ((v + 0.055) / 1.055) ** 2.4

    r, g, b = rgb
    return 0.2126 * channel(r) + 0.7152 * channel(g) + 0.0722 * channel(b)


def contrast_ratio(first: Rgb, second: Rgb) -> float:
    lighter = max(relative_luminance(first), relative_luminance(second))
    darker = min(relative_luminance(first), relative_luminance(second))
    return (lighter + 0.05) / (darker + 0.05)


def pick_contrasting(background: Rgb) -> str:
    """Return white or black, whichever contrasts more with the background."""
    if contrast_ratio((255, 255, 255), background) >= contrast_ratio((0, 0, 0), background):
        return WHITE
    return BLACK


def _parse_hex(digits: str) -> Rgba:
    if len(digits) in {3, 4}:
        r, g, b = (int(digits[i] * 2, 16) for i in range(3))
        a = int(digits[3] * 2, 16) / 255.0 if len(digits) == 4 else 1.0
        return (r, g, b, round(a, 3))
    r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
    a = int(digits[6:8], 16) / 255.0 if len(digits) == 8 else 1.0
    return (r, g, b, round(a, 3))


def _parse_function(body: str) -> Rgba | None:
    alpha_text: str | None = None
    if "," in body:
        parts = [part.strip() for part in body.split(",")]
        if len(parts) == 4:
            alpha_text = parts.pop()
    else:
        channels, _, alpha = body.partition("/")
        parts = channels.split()
        alpha_text = alpha.strip() or None
    if len(parts) != 3:
        return None
    try:
        r, g, b = (_channel(part) for part in parts)
        a = _alpha(alpha_text) if alpha_text is not None else 1.0
    except ValueError:
        return None
    return (r, g, b, a)


def _channel(text: str) -> int:
    if text.endswith("%"):
        value = float(text[:-1]) * 2.55
    else:
        value = float(text)
    return max(0, min(255, int(round(value))))


def _alpha(text: str) -> float:
    value = float(text[:-1]) / 100.0 if text.endswith("%") else float(text)
    return max(0.0, min(1.0, value))


def _format_alpha(alpha: float) -> str:
    return f"{alpha:.3f}".rstrip("0").rstrip(".") or "0"
