"""Approximate block-flow layout producing element boxes in document coordinates."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from chat_indexer.config import LayoutConfig

if TYPE_CHECKING:
    from chat_indexer.document.style import StyleResolver
    from chat_indexer.document.tree import LiveDocument

_LENGTH_RE = re.compile(r"^(-?\d+(?:\.\d+)?)(px|%)?$")
_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_DISPLAYS = frozenset({"inline", "inline-block", "inline-flex", "inline-grid"})


@dataclass(slots=True, frozen=True)
class Box:
    """Element rectangle in document coordinates."""

    top: float
    left: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        """Return True when the box has no rendered area."""
        return self.width <= 0 or self.height <= 0


EMPTY_BOX = Box(top=0.0, left=0.0, width=0.0, height=0.0)


def parse_length(value: str | None, reference: float) -> float | None:
    """Parse px, unitless or percent lengths; None for auto or unsupported units."""
    if value is None:
        return None
    match = _LENGTH_RE.match(value.strip().lower())
    if match is None:
        return None
    number = float(match.group(1))
    if match.group(2) == "%":
        return reference * number / 100.0
    return number


class LayoutEngine:
    """Lays out the whole tree once per generation and serves cached boxes."""

    def __init__(self, document: LiveDocument, styles: StyleResolver, config: LayoutConfig) -> None:
        self._document = document
        self._styles = styles
        self._config = config
        self._generation = -1
        self._boxes: dict[int, tuple[Tag, Box]] = {}

    def box(self, element: Tag) -> Box:
        """Return the element's box, or an empty box for detached elements."""
        self._sync()
        cached = self._boxes.get(id(element))
        if cached is None or cached[0] is not element:
            return EMPTY_BOX
        return cached[1]

    def _sync(self) -> None:
        generation = self._document.generation
        if generation == self._generation:
            return
        self._generation = generation
        self._boxes = {}
        self._layout_contents(
            self._document.soup, top=0.0, left=0.0, width=float(self._config.viewport_width)
        )

    def _layout_block(self, element: Tag, top: float, left: float, available: float) -> float:
        style = self._styles.computed(element)
        if style.get("display", "block") == "none":
            self._collapse(element, top, left)
            return 0.0
        el_top = top + (parse_length(style.get("top"), 0.0) or 0.0)
        el_left = left + (parse_length(style.get("left"), available) or 0.0)
        width = parse_length(style.get("width"), available)
        if width is None:
            width = available
        content_height = self._layout_contents(element, el_top, el_left, width)
        height = parse_length(style.get("height"), 0.0)
        if height is None:
            height = content_height
        self._store(element, Box(top=el_top, left=el_left, width=width, height=height))
        return height

    def _layout_contents(self, element: Tag, top: float, left: float, width: float) -> float:
        cursor = top
        run_chars = 0
        for child in element.children:
            if isinstance(child, NavigableString):
                if isinstance(child, PreformattedString):
                    continue
                run_chars += len(_squash(str(child)))
                continue
            if not isinstance(child, Tag):
                continue
            display = self._styles.computed(child).get("display", "block")
            if display == "none":
                self._collapse(child, cursor, left)
                continue
            if display in _INLINE_DISPLAYS:
                run_chars += self._layout_inline(child, cursor, left, width, run_chars)
                continue
            cursor += self._lines(run_chars, width) * self._config.line_height
            run_chars = 0
            cursor += self._layout_block(child, cursor, left, width)
        cursor += self._lines(run_chars, width) * self._config.line_height
        return cursor - top

    def _layout_inline(
        self, element: Tag, top: float, left: float, width: float, preceding_chars: int
    ) -> int:
        style = self._styles.computed(element)
        text_length = len(_squash(self._document.text_content(element)))
        per_line = max(1, int(width // self._config.char_width))
        line_index, column = divmod(preceding_chars, per_line)
        el_top = top + line_index * self._config.line_height
        el_left = left + column * self._config.char_width
        natural_width = min(float(text_length * self._config.char_width), width)
        box_width = parse_length(style.get("width"), width)
        if box_width is None:
            box_width = natural_width
        box_height = parse_length(style.get("height"), 0.0)
        if box_height is None:
            box_height = float(self._lines(column + text_length, width) * self._config.line_height)
        self._store(element, Box(top=el_top, left=el_left, width=box_width, height=box_height))
        inner_width = max(box_width, float(self._config.char_width))
        self._layout_contents(element, el_top, el_left, inner_width)
        return text_length

    def _lines(self, chars: int, width: float) -> int:
        if chars <= 0:
            return 0
        usable = max(width, float(self._config.char_width))
        return math.ceil(chars * self._config.char_width / usable)

    def _collapse(self, element: Tag, top: float, left: float) -> None:
        empty = Box(top=top, left=left, width=0.0, height=0.0)
        self._store(element, empty)
        for descendant in element.descendants:
            if isinstance(descendant, Tag):
                self._store(descendant, empty)

    def _store(self, element: Tag, box: Box) -> None:
        if isinstance(element, BeautifulSoup):
            return
        self._boxes[id(element)] = (element, box)


def _squash(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()
