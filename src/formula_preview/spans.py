"""Locate ``formula(...)`` argument spans in raw document text."""

from __future__ import annotations

import re
from functools import lru_cache

from pydantic import BaseModel, ConfigDict

DEFAULT_MARKER = "formula"


class FormulaSpan(BaseModel):
    """Offsets of one formula's argument text, parentheses excluded.

    ``end`` is the offset of the closing parenthesis that balances the
    marker's opening one, so ``source[start:end]`` is the argument text.
    """

    model_config = ConfigDict(frozen=True)

    start: int
    end: int

    def text(self, source: str) -> str:
        return source[self.start:self.end]

    def contains(self, offset: int) -> bool:
        """Inclusive at both ends, like an editor range."""
        return self.start <= offset <= self.end


@lru_cache(maxsize=16)
def _marker_re(marker: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(marker)}\(")


def locate_formula_spans(text: str, marker: str = DEFAULT_MARKER) -> list[FormulaSpan]:
    """Find every balanced ``marker(...)`` argument span in *text*.

    Unbalanced matches (end of text reached first) are dropped, as are
    call sites whose closing parenthesis is directly followed by ``:``
    (annotation-like usages).  Spans are returned in document order.

    Args:
        text: Full document text.
        marker: Whole-word token that must be directly followed by ``(``.

    Returns:
        List of spans, one per balanced call site.
    """
    spans: list[FormulaSpan] = []
    length = len(text)

    for match in _marker_re(marker).finditer(text):
        depth = 1
        pos = match.end()
        while pos < length and depth > 0:
            ch = text[pos]
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            pos += 1

        if depth != 0:
            continue
        if pos < length and text[pos] == ":":
            continue
        spans.append(FormulaSpan(start=match.end(), end=pos - 1))

    return spans


def span_at(spans: list[FormulaSpan], offset: int) -> FormulaSpan | None:
    """Return the first span containing *offset*, or ``None``."""
    for span in spans:
        if span.contains(offset):
            return span
    return None


# ---------------------------------------------------------------------------
# Offset <-> (line, character) conversion
# ---------------------------------------------------------------------------


def offset_to_position(text: str, offset: int) -> tuple[int, int]:
    """Convert a character offset to a 0-based ``(line, character)`` pair.

    Offsets outside the text are clamped to its bounds.
    """
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start


def position_to_offset(text: str, line: int, character: int) -> int:
    """Convert a 0-based ``(line, character)`` pair to a character offset.

    A line past the end maps to the end of the text; a character past the
    end of its line maps to the line end.
    """
    if line < 0:
        return 0
    line_start = 0
    for _ in range(line):
        newline = text.find("\n", line_start)
        if newline < 0:
            return len(text)
        line_start = newline + 1
    line_end = text.find("\n", line_start)
    if line_end < 0:
        line_end = len(text)
    return line_start + max(0, min(character, line_end - line_start))
