"""Tests for sample sequences and grid evaluation."""

from __future__ import annotations

import pytest

from formula_preview.directives import RangeDirective, parse_range_directives
from formula_preview.sampler import (
    build_grid,
    format_number,
    resolve_axis,
    sample_values,
)


def _directive(name: str, start: int, end: int, step: int = 1) -> dict[str, RangeDirective]:
    return {name: RangeDirective(variable=name, start=start, end=end, step=step)}


class TestSampleValues:
    def test_directive_sequence(self) -> None:
        d = parse_range_directives("# n = range(1, 10, 2)")["n"]
        assert sample_values(d.start, d.end, d.step) == ([1, 3, 5, 7, 9], False)

    def test_end_exclusive(self) -> None:
        assert sample_values(0, 5) == ([0, 1, 2, 3, 4], False)

    def test_negative_step_counts_down(self) -> None:
        assert sample_values(5, 0, -2) == ([5, 3, 1], False)

    @pytest.mark.parametrize(
        "start,end,step",
        [(0, 5, 0), (5, 0, 1), (3, 3, 1), (0, 5, -1)],
    )
    def test_degenerate_ranges_are_empty(self, start: int, end: int, step: int) -> None:
        assert sample_values(start, end, step) == ([], False)

    def test_truncated_at_cap(self) -> None:
        values, truncated = sample_values(0, 10**9, 1, max_samples=4)
        assert values == [0, 1, 2, 3]
        assert truncated is True

    def test_exactly_at_cap_not_truncated(self) -> None:
        assert sample_values(0, 4, 1, max_samples=4) == ([0, 1, 2, 3], False)

    def test_range_beyond_maxsize_is_capped(self) -> None:
        assert sample_values(0, 10**20, 1, max_samples=3) == ([0, 1, 2], True)
        assert sample_values(10**20, 0, -(10**18), max_samples=2) == ([10**20, 99 * 10**18], True)


class TestResolveAxis:
    def test_default_domain(self) -> None:
        assert resolve_axis("a", {}) == (list(range(11)), False)

    def test_directive_by_original_name(self) -> None:
        assert resolve_axis("n", _directive("n", 2, 5)) == ([2, 3, 4], False)

    def test_custom_default_range(self) -> None:
        assert resolve_axis("a", {}, default_range=[1, 4]) == ([1, 2, 3], False)


class TestFormatNumber:
    def test_integral(self) -> None:
        assert format_number(3.0) == "3"
        assert format_number(-0.0) == "0"
        assert format_number(1e20) == "100000000000000000000"

    def test_fractional(self) -> None:
        assert format_number(0.5) == "0.5"
        assert format_number(1 / 3) == "0.3333333333333333"

    def test_huge(self) -> None:
        assert format_number(1e21) == "1e+21"

    def test_small_exponent_without_leading_zero(self) -> None:
        assert format_number(1e-7) == "1e-7"
        assert format_number(-2.5e-8) == "-2.5e-8"
        assert format_number(1e-100) == "1e-100"


class TestBuildGrid:
    def test_two_variable_default_square(self) -> None:
        grid = build_grid("x + y", ["a", "b"])
        assert grid.label == "a/b"
        assert grid.rows[0] == ["a/b"] + [str(i) for i in range(11)]
        assert grid.rows[1] == ["0"] + [str(i) for i in range(11)]
        assert grid.rows[4] == ["3"] + [str(i) for i in range(3, 14)]
        assert len(grid.rows) == 12

    def test_one_variable_single_column(self) -> None:
        grid = build_grid("x // 2", ["x"], _directive("x", 0, 5))
        assert grid.rows[0] == ["x", "0"]
        assert [row[1] for row in grid.rows[1:]] == ["0", "0", "1", "1", "2"]
        assert [row[0] for row in grid.rows[1:]] == ["0", "1", "2", "3", "4"]

    def test_zero_variables_single_cell(self) -> None:
        grid = build_grid("6 * 7", [])
        assert grid.rows == [["const", "0"], ["0", "42"]]

    def test_row_major_order(self) -> None:
        grid = build_grid("x * 10 + y", ["a", "b"], {**_directive("a", 1, 3), **_directive("b", 0, 2)})
        assert grid.rows == [["a/b", "0", "1"], ["1", "10", "11"], ["2", "20", "21"]]

    def test_failed_cells_use_placeholder(self) -> None:
        grid = build_grid("x / y", ["a", "b"], {**_directive("a", 1, 3), **_directive("b", 0, 2)})
        assert grid.rows[1] == ["1", "-", "1"]
        assert grid.rows[2] == ["2", "-", "2"]
        assert grid.failed_cells == 2
        assert "Division by zero" in grid.first_error

    def test_custom_placeholder(self) -> None:
        grid = build_grid("math.log(x)", ["a"], _directive("a", 0, 2), placeholder="n/a")
        assert grid.rows[1] == ["0", "n/a"]
        assert grid.rows[2] == ["1", "0"]

    def test_parse_error_fills_grid(self) -> None:
        grid = build_grid("x +", ["a"], _directive("a", 0, 3))
        assert [row[1] for row in grid.rows[1:]] == ["-", "-", "-"]
        assert grid.failed_cells == 3
        assert "parse error" in grid.first_error

    def test_empty_axis(self) -> None:
        grid = build_grid("x + y", ["a", "b"], _directive("a", 0, 3, 0))
        assert grid.x_values == []
        assert grid.rows == [["a/b"] + [str(i) for i in range(11)]]

    def test_truncation_recorded(self) -> None:
        grid = build_grid("x", ["a"], _directive("a", 0, 100), max_samples=5)
        assert grid.x_values == [0, 1, 2, 3, 4]
        assert grid.truncated == ["a"]

    def test_more_than_two_variables_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_grid("x", ["a", "b", "c"])
