"""Tests for range directive parsing."""

from __future__ import annotations

from formula_preview.directives import RangeDirective, parse_range_directives


class TestParseRangeDirectives:
    def test_three_arguments(self) -> None:
        result = parse_range_directives("# n = range(1, 10, 2)")
        assert set(result) == {"n"}
        d = result["n"]
        assert (d.start, d.end, d.step) == (1, 10, 2)

    def test_step_defaults_to_one(self) -> None:
        d = parse_range_directives("# t = range(0, 5)")["t"]
        assert (d.start, d.end, d.step) == (0, 5, 1)

    def test_negative_literals(self) -> None:
        d = parse_range_directives("#k=range(-3,-10,-2)")["k"]
        assert (d.start, d.end, d.step) == (-3, -10, -2)

    def test_slash_comment_prefix(self) -> None:
        assert "a" in parse_range_directives("  // a = range(0, 3)")

    def test_dotted_and_indexed_names(self) -> None:
        text = "# cfg.rate = range(1, 4)\n# w[0] = range(0, 2)\n# p[1].q = range(5, 7)"
        assert set(parse_range_directives(text)) == {"cfg.rate", "w[0]", "p[1].q"}

    def test_line_numbers(self) -> None:
        text = "x = 1\n\n# n = range(0, 3)\n"
        assert parse_range_directives(text)["n"].line == 3

    def test_trailing_text_allowed(self) -> None:
        assert "n" in parse_range_directives("# n = range(0, 3)  # sample counts")

    def test_requires_comment_prefix(self) -> None:
        assert parse_range_directives("n = range(0, 3)") == {}

    def test_last_directive_wins(self) -> None:
        text = "# n = range(0, 3)\ncode()\n# n = range(10, 20, 5)"
        d = parse_range_directives(text)["n"]
        assert (d.start, d.end, d.step) == (10, 20, 5)
        assert d.line == 3

    def test_malformed_literal_skipped(self) -> None:
        text = "# a = range(0, 1.5)\n# b = range(0, 3)\n# c = range(x, 3)"
        result = parse_range_directives(text)
        assert set(result) == {"b"}

    def test_wrong_arity_skipped(self) -> None:
        text = "# a = range(5)\n# b = range(0, 3, 1, 1)\n# c = range(0, 2)"
        assert set(parse_range_directives(text)) == {"c"}

    def test_oversized_literal_skipped(self) -> None:
        text = "# a = range(0, 1" + "0" * 5000 + ")\n# b = range(0, 3)"
        assert set(parse_range_directives(text)) == {"b"}

    def test_long_literal_within_limit_kept(self) -> None:
        assert parse_range_directives("# n = range(0, 100000000000000000000)")["n"].end == 10**20

    def test_malformed_duplicate_keeps_earlier(self) -> None:
        text = "# n = range(0, 3)\n# n = range(0, three)"
        assert parse_range_directives(text)["n"].end == 3

    def test_zero_step_is_kept(self) -> None:
        """Zero steps parse; the sampler turns them into an empty axis."""
        assert parse_range_directives("# n = range(0, 3, 0)")["n"].step == 0

    def test_independent_of_formulas(self) -> None:
        text = "# a = range(0, 2)\nv = formula(a * 2)\n# b = range(1, 3)\n"
        assert set(parse_range_directives(text)) == {"a", "b"}

    def test_model(self) -> None:
        d = RangeDirective(variable="n", start=0, end=3)
        assert d.step == 1
        assert d.line is None


class TestDirectiveEvents:
    def test_skip_emits_warning(self, tmp_path) -> None:
        import json

        import formula_preview.logging.events as mod

        old_sink = mod._sink
        try:
            mod.set_project_dir(tmp_path)
            parse_range_directives("# bad = range(0, 2.5)")
            lines = (tmp_path / "logs" / "events.ndjson").read_text().strip().splitlines()
            assert len(lines) == 1
            evt = json.loads(lines[0])
            assert evt["event_type"] == "directive_skipped"
            assert evt["level"] == "warning"
            assert evt["error_code"] == "directive_malformed"
            assert evt["context"]["variable"] == "bad"
        finally:
            mod._sink = old_sink
