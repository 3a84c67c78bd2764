"""Computed style resolution over a parsed tree."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING

import soupsieve as sv
from bs4 import BeautifulSoup, Tag

from chat_indexer.document.css import StyleRule, parse_declarations, parse_stylesheet

if TYPE_CHECKING:
    from chat_indexer.document.tree import LiveDocument

INHERITED_PROPERTIES = frozenset(
    {
        "color",
        "visibility",
        "font-family",
        "font-size",
        "font-weight",
        "line-height",
        "white-space",
    }
)

INITIAL_VALUES: dict[str, str] = {
    "visibility": "visible",
    "opacity": "1",
    "color": "rgb(0, 0, 0)",
    "background-color": "rgba(0, 0, 0, 0)",
    "border-color": "rgb(0, 0, 0)",
}

HIDDEN_TAGS = frozenset(
    {"head", "script", "style", "template", "meta", "link", "title", "noscript", "base"}
)
INLINE_TAGS = frozenset(
    {
        "a",
        "abbr",
        "b",
        "bdi",
        "bdo",
        "br",
        "cite",
        "code",
        "data",
        "dfn",
        "em",
        "i",
        "img",
        "kbd",
        "label",
        "mark",
        "q",
        "s",
        "samp",
        "small",
        "span",
        "strong",
        "sub",
        "sup",
        "time",
        "u",
        "var",
        "button",
        "input",
        "svg",
    }
)

_VAR_RE = re.compile(r"var\(\s*(--[\w-]+)\s*(?:,\s*([^()]*(?:\([^()]*\))?[^()]*))?\)")


class ComputedStyle(Mapping[str, str]):
    """Read-only resolved property values for one element."""

    __slots__ = ("_values",)

    def __init__(self, values: dict[str, str]) -> None:
        self._values = values

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_property_value(self, name: str) -> str:
        """Return the value of a property or custom property, '' when unset."""
        return self._values.get(name, "").strip()


def default_display(tag_name: str) -> str:
    """Return the user-agent display value for a tag."""
    if tag_name in HIDDEN_TAGS:
        return "none"
    if tag_name in INLINE_TAGS:
        return "inline"
    return "block"


class StyleResolver:
    """Cascade stylesheet rules and inline styles, cached per tree generation."""

    def __init__(self, document: LiveDocument) -> None:
        self._document = document
        self._generation = -1
        self._rules: list[StyleRule] = []
        self._sheet_key: tuple[str, str] | None = None
        self._cache: dict[int, tuple[Tag, ComputedStyle]] = {}

    def computed(self, element: Tag) -> ComputedStyle:
        """Return the computed style of an element."""
        self._sync()
        cached = self._cache.get(id(element))
        if cached is not None and cached[0] is element:
            return cached[1]
        parent = element.parent
        parent_style = None
        if isinstance(parent, Tag) and not isinstance(parent, BeautifulSoup):
            parent_style = self.computed(parent)
        style = ComputedStyle(self._resolve(element, parent_style))
        self._cache[id(element)] = (element, style)
        return style

    def rules(self) -> list[StyleRule]:
        """Return the active stylesheet rules."""
        self._sync()
        return list(self._rules)

    def _sync(self) -> None:
        generation = self._document.generation
        if generation == self._generation:
            return
        self._generation = generation
        self._cache = {}
        sheet_text = "\n".join(
            node.get_text() for node in self._document.soup.find_all("style")
        )
        key = (sheet_text, self._document.color_scheme)
        if key != self._sheet_key:
            self._sheet_key = key
            parsed = parse_stylesheet(sheet_text, self._document.color_scheme)
            self._rules = sorted(
                (rule for rule in parsed if _compiles(rule.selector)),
                key=lambda rule: (rule.specificity, rule.order),
            )

    def _resolve(self, element: Tag, parent_style: ComputedStyle | None) -> dict[str, str]:
        declared: dict[str, str] = {"display": default_display(element.name or "")}
        for rule in self._rules:
            if _safe_match(rule.selector, element):
                _declare(declared, rule.declarations)
        inline = element.get("style")
        if isinstance(inline, str) and inline.strip():
            _declare(declared, parse_declarations(inline).items())

        values: dict[str, str] = {}
        if parent_style is not None:
            for name, value in parent_style.items():
                if name.startswith("--") or name in INHERITED_PROPERTIES:
                    values[name] = value
        for name, value in INITIAL_VALUES.items():
            values.setdefault(name, value)

        for name, value in declared.items():
            if name.startswith("--"):
                values[name] = value
        for name, value in declared.items():
            if name.startswith("--"):
                continue
            lowered = value.strip().lower()
            if lowered == "inherit":
                if parent_style is not None and name in parent_style:
                    values[name] = parent_style[name]
                continue
            if lowered in {"initial", "unset"}:
                if name in INITIAL_VALUES:
                    values[name] = INITIAL_VALUES[name]
                else:
                    values.pop(name, None)
                continue
            values[name] = substitute_variables(value, values)
        return values


def substitute_variables(value: str, variables: Mapping[str, str], depth: int = 0) -> str:
    """Replace var(--name, fallback) references using the given custom properties."""
    if "var(" not in value or depth > 8:
        return value

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        fallback = match.group(2)
        resolved = variables.get(name)
        if resolved is None or not resolved.strip():
            return (fallback or "").strip()
        return substitute_variables(resolved.strip(), variables, depth + 1)

    return _VAR_RE.sub(_replace, value).strip()


def _compiles(selector: str) -> bool:
    try:
        sv.compile(selector)
    except (sv.SelectorSyntaxError, NotImplementedError):
        return False
    return True


def _safe_match(selector: str, element: Tag) -> bool:
    try:
        return sv.match(selector, element)
    except (sv.SelectorSyntaxError, NotImplementedError):
        return False


def _declare(declared: dict[str, str], declarations: Iterable[tuple[str, str]]) -> None:
    # the background shorthand resets background-color at its position in the cascade
    for name, value in declarations:
        if name == "background":
            declared["background-color"] = value
        declared[name] = value
