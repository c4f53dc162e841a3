"""Tests for formula span location and position conversion."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from formula_preview.spans import (
    FormulaSpan,
    locate_formula_spans,
    offset_to_position,
    position_to_offset,
    span_at,
)


def _texts(text: str, marker: str = "formula") -> list[str]:
    return [s.text(text) for s in locate_formula_spans(text, marker)]


class TestLocateFormulaSpans:
    def test_simple_span(self) -> None:
        text = "formula(a+b)"
        spans = locate_formula_spans(text)
        assert spans == [FormulaSpan(start=8, end=11)]
        assert spans[0].text(text) == "a+b"

    def test_end_points_at_closing_paren(self) -> None:
        text = "v = formula(x * 2)\n"
        (span,) = locate_formula_spans(text)
        assert text[span.end] == ")"
        assert text[span.start - 1] == "("

    def test_nested_parentheses(self) -> None:
        assert _texts("formula(int((a + 1) * (b - 2)))") == ["int((a + 1) * (b - 2))"]

    def test_multiple_spans_in_order(self) -> None:
        text = "p = formula(a)\nq = formula(b * 2)\nr = formula(c)"
        assert _texts(text) == ["a", "b * 2", "c"]

    def test_unbalanced_span_dropped(self) -> None:
        assert _texts("formula(a + (b") == []

    def test_unbalanced_after_balanced(self) -> None:
        assert _texts("formula(a) and formula(b") == ["a"]

    def test_annotation_like_excluded(self) -> None:
        assert _texts("def f(x) -> formula(int):\n    pass") == []

    def test_colon_after_space_kept(self) -> None:
        assert _texts("formula(a) :") == ["a"]

    def test_whole_word_only(self) -> None:
        assert _texts("myformula(a) + formula_x(b) + formula(c)") == ["c"]

    def test_marker_requires_paren(self) -> None:
        assert _texts("formula (a)") == []
        assert _texts("formula") == []

    def test_attribute_access_counts_as_word_boundary(self) -> None:
        assert _texts("lib.formula(a * 2)") == ["a * 2"]

    def test_empty_argument(self) -> None:
        text = "formula()"
        (span,) = locate_formula_spans(text)
        assert span.start == span.end
        assert span.text(text) == ""

    def test_nested_marker_reported(self) -> None:
        assert _texts("formula(formula(a))") == ["formula(a)", "a"]

    def test_custom_marker(self) -> None:
        assert _texts("preview(a) formula(b)", marker="preview") == ["a"]

    def test_spans_always_balanced(self) -> None:
        text = "formula((a) formula(b)) formula(c)) formula((d"
        for span in locate_formula_spans(text):
            inner = span.text(text)
            assert inner.count("(") == inner.count(")")
            assert text[span.end] == ")"


class TestFormulaSpan:
    def test_contains_is_inclusive(self) -> None:
        span = FormulaSpan(start=8, end=11)
        assert span.contains(8)
        assert span.contains(11)
        assert not span.contains(7)
        assert not span.contains(12)

    def test_immutable(self) -> None:
        span = FormulaSpan(start=1, end=2)
        with pytest.raises(ValidationError):
            span.start = 5

    def test_span_at(self) -> None:
        spans = locate_formula_spans("formula(a) + formula(b)")
        assert span_at(spans, 9).start == 8
        assert span_at(spans, 21).start == 21
        assert span_at(spans, 14) is None


class TestPositions:
    TEXT = "first\nsecond line\n\nlast"

    def test_offset_to_position(self) -> None:
        assert offset_to_position(self.TEXT, 0) == (0, 0)
        assert offset_to_position(self.TEXT, 5) == (0, 5)
        assert offset_to_position(self.TEXT, 6) == (1, 0)
        assert offset_to_position(self.TEXT, 9) == (1, 3)
        assert offset_to_position(self.TEXT, 19) == (3, 0)

    def test_offset_clamped(self) -> None:
        assert offset_to_position(self.TEXT, -4) == (0, 0)
        assert offset_to_position(self.TEXT, 1000) == (3, 4)

    def test_position_to_offset(self) -> None:
        assert position_to_offset(self.TEXT, 0, 0) == 0
        assert position_to_offset(self.TEXT, 1, 3) == 9
        assert position_to_offset(self.TEXT, 2, 0) == 18
        assert position_to_offset(self.TEXT, 3, 2) == 21

    def test_position_clamped(self) -> None:
        assert position_to_offset(self.TEXT, 0, 99) == 5
        assert position_to_offset(self.TEXT, 99, 0) == len(self.TEXT)
        assert position_to_offset(self.TEXT, -1, 3) == 0

    def test_round_trip(self) -> None:
        for offset in range(len(self.TEXT) + 1):
            line, character = offset_to_position(self.TEXT, offset)
            assert position_to_offset(self.TEXT, line, character) == offset
