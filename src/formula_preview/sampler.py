"""Sample-domain resolution and grid evaluation.

Each axis is an integer arithmetic sequence: from a range directive for
the variable's original name, or the default domain ``0..10``.  The
canonical expression is parsed once and evaluated for every ``(x, y)``
pair, x outer and y inner.  A cell that fails becomes the placeholder.
"""

from __future__ import annotations

import re
from itertools import islice
from typing import Mapping, Sequence

from pydantic import BaseModel

from formula_preview.directives import RangeDirective
from formula_preview.formulas import FormulaError, evaluate_formula, parse_formula

DEFAULT_RANGE = (0, 11, 1)
DEFAULT_MAX_SAMPLES = 1000
PLACEHOLDER = "-"
CONSTANT_LABEL = "const"

# JavaScript-style number display switches to exponent notation here
_EXPONENT_THRESHOLD = 1e21
_EXPONENT_ZEROS_RE = re.compile(r"e([+-])0+(?=\d)")


class SampleGrid(BaseModel):
    """Evaluated preview grid.

    ``rows[0]`` is the header: the axis label followed by each y sample.
    Every following row is an x sample followed by its cells.
    """

    label: str
    x_values: list[int]
    y_values: list[int]
    rows: list[list[str]]
    truncated: list[str] = []
    failed_cells: int = 0
    first_error: str | None = None


def sample_values(
    start: int,
    end: int,
    step: int = 1,
    max_samples: int | None = None,
) -> tuple[list[int], bool]:
    """Generate ``start, start+step, ...`` up to (excluding) *end*.

    A positive step counts up while below *end*; a negative step counts
    down while above it.  A zero step, or a step pointing away from
    *end*, yields an empty sequence.

    Returns:
        ``(values, truncated)`` where *truncated* tells whether the
        sequence was cut at *max_samples*.
    """
    if step == 0:
        return [], False
    samples = range(start, end, step)
    if max_samples is None:
        return list(samples), False
    # len() overflows past sys.maxsize samples
    values = list(islice(samples, max_samples + 1))
    if len(values) > max_samples:
        return values[:max_samples], True
    return values, False


def resolve_axis(
    variable: str,
    directives: Mapping[str, RangeDirective],
    default_range: Sequence[int] = DEFAULT_RANGE,
    max_samples: int | None = DEFAULT_MAX_SAMPLES,
) -> tuple[list[int], bool]:
    """Sample sequence for *variable*, from its directive or the default."""
    directive = directives.get(variable)
    if directive is not None:
        return sample_values(directive.start, directive.end, directive.step, max_samples)
    start, end, *rest = default_range
    return sample_values(start, end, rest[0] if rest else 1, max_samples)


def format_number(value: float) -> str:
    """Display a finite float: ``3`` rather than ``3.0``, ``1e-7`` rather than ``1e-07``."""
    if value.is_integer() and abs(value) < _EXPONENT_THRESHOLD:
        return str(int(value))
    return _EXPONENT_ZEROS_RE.sub(r"e\1", repr(value))


def axis_label(variables: Sequence[str]) -> str:
    if not variables:
        return CONSTANT_LABEL
    return "/".join(variables)


def build_grid(
    canonical: str,
    variables: Sequence[str],
    directives: Mapping[str, RangeDirective] | None = None,
    *,
    default_range: Sequence[int] = DEFAULT_RANGE,
    max_samples: int | None = DEFAULT_MAX_SAMPLES,
    placeholder: str = PLACEHOLDER,
) -> SampleGrid:
    """Evaluate *canonical* over the sample grid of up to two variables.

    Args:
        canonical: Expression already rewritten to ``x``/``y``.
        variables: Original variable names (0 to 2), used for directive
            lookup and the header label.
        directives: Range directives keyed by original variable name.
        default_range: ``(start, end[, step])`` for undirected variables.
        max_samples: Per-axis cap; ``None`` disables it.
        placeholder: Cell text for failed evaluations.

    Returns:
        The evaluated grid.  Constant expressions (no variables) yield
        a single cell at ``x = y = 0``.
    """
    if len(variables) > 2:
        raise ValueError(f"A preview grid has at most 2 axes, got {len(variables)} variables")
    directives = directives or {}
    truncated: list[str] = []

    x_values: list[int] = [0]
    y_values: list[int] = [0]
    for index, variable in enumerate(variables):
        values, cut = resolve_axis(variable, directives, default_range, max_samples)
        if cut:
            truncated.append(variable)
        if index == 0:
            x_values = values
        else:
            y_values = values

    tree = None
    first_error: str | None = None
    try:
        tree = parse_formula(canonical)
    except FormulaError as exc:
        first_error = str(exc)

    rows: list[list[str]] = [[axis_label(variables)] + [str(y) for y in y_values]]
    failed = 0
    for x in x_values:
        row = [str(x)]
        for y in y_values:
            if tree is None:
                row.append(placeholder)
                failed += 1
                continue
            try:
                value = evaluate_formula(tree, {"x": float(x), "y": float(y)})
            except FormulaError as exc:
                row.append(placeholder)
                failed += 1
                if first_error is None:
                    first_error = str(exc)
                continue
            row.append(format_number(value))
        rows.append(row)

    return SampleGrid(
        label=axis_label(variables),
        x_values=x_values,
        y_values=y_values,
        rows=rows,
        truncated=truncated,
        failed_cells=failed,
        first_error=first_error,
    )
