"""Minimal CSS text parsing: declarations, rule blocks and selector specificity."""

from __future__ import annotations

import re
from dataclasses import dataclass

_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_ID_RE = re.compile(r"#[\w-]+")
_CLASS_RE = re.compile(r"\.[\w-]+")
_ATTR_RE = re.compile(r"\[[^\]]*\]")
_PSEUDO_ELEMENT_RE = re.compile(r"::[\w-]+")
_PSEUDO_CLASS_RE = re.compile(r":[\w-]+")
_TYPE_RE = re.compile(r"(?:^|[\s>+~(,])([a-zA-Z][\w-]*)")
_SCHEME_RE = re.compile(r"prefers-color-scheme\s*:\s*(light|dark)", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class StyleRule:
    """One selector with its declarations, in source order."""

    selector: str
    declarations: tuple[tuple[str, str], ...]
    specificity: tuple[int, int, int]
    order: int


def parse_declarations(text: str) -> dict[str, str]:
    """Parse a declaration block body into property -> value."""
    output: dict[str, str] = {}
    for raw in _split_top_level(_COMMENT_RE.sub("", text), ";"):
        name, sep, value = raw.partition(":")
        if not sep:
            continue
        name = name.strip()
        value = value.strip()
        if not name or not value:
            continue
        if value.lower().endswith("!important"):
            value = value[: -len("!important")].strip()
        if not name.startswith("--"):
            name = name.lower()
        output[name] = value
    return output


def parse_stylesheet(
    text: str, color_scheme: str = "light", start_order: int = 0
) -> list[StyleRule]:
    """Parse rule blocks, evaluating prefers-color-scheme media blocks."""
    rules: list[StyleRule] = []
    order = start_order
    for prelude, body in _iter_blocks(_COMMENT_RE.sub("", text)):
        if prelude.startswith("@"):
            if prelude.lower().startswith("@media") and media_matches(prelude, color_scheme):
                nested = parse_stylesheet(body, color_scheme, start_order=order)
                rules.extend(nested)
                order += len(nested)
            continue
        declarations = tuple(parse_declarations(body).items())
        if not declarations:
            continue
        for selector in split_selector_list(prelude):
            rules.append(
                StyleRule(
                    selector=selector,
                    declarations=declarations,
                    specificity=selector_specificity(selector),
                    order=order,
                )
            )
            order += 1
    return rules


def media_matches(prelude: str, color_scheme: str) -> bool:
    """Evaluate the color-scheme part of a media query; other features match."""
    match = _SCHEME_RE.search(prelude)
    if match is None:
        return True
    return match.group(1).lower() == color_scheme


def split_selector_list(selector: str) -> list[str]:
    """Split a selector list on top-level commas."""
    return [part.strip() for part in _split_top_level(selector, ",") if part.strip()]


def selector_specificity(selector: str) -> tuple[int, int, int]:
    """Approximate (ids, classes, types) specificity of a single selector."""
    stripped = _ATTR_RE.sub("[]", selector)
    ids = len(_ID_RE.findall(stripped))
    classes = len(_CLASS_RE.findall(stripped)) + stripped.count("[]")
    without_elements = _PSEUDO_ELEMENT_RE.sub("", stripped)
    classes += len(_PSEUDO_CLASS_RE.findall(without_elements))
    types = len(_PSEUDO_ELEMENT_RE.findall(stripped))
    bare = _CLASS_RE.sub("", _ID_RE.sub("", _PSEUDO_CLASS_RE.sub("", without_elements)))
    types += len(_TYPE_RE.findall(bare))
    return (ids, classes, types)


def _iter_blocks(text: str) -> list[tuple[str, str]]:
    blocks: list[tuple[str, str]] = []
    depth = 0
    prelude_start = 0
    body_start = 0
    prelude = ""
    for position, char in enumerate(text):
        if char == "{":
            if depth == 0:
                prelude = text[prelude_start:position].strip()
                body_start = position + 1
            depth += 1
        elif char == "}":
            if depth == 0:
                prelude_start = position + 1
                continue
            depth -= 1
            if depth == 0:
                blocks.append((prelude, text[body_start:position]))
                prelude_start = position + 1
        elif char == ";" and depth == 0:
            # statement at-rules such as @import
            prelude_start = position + 1
    return blocks


def _split_top_level(text: str, separator: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    for position, char in enumerate(text):
        if quote is not None:
            if char == quote:
                quote = None
            continue
        if char in {'"', "'"}:
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth = max(0, depth - 1)
        elif char == separator and depth == 0:
            parts.append(text[start:position])
            start = position + 1
    parts.append(text[start:])
    return parts
