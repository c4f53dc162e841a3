"""Preview entry point: expression text in, display text out.

``render_preview`` never raises for user input.  Too many variables
yields a fixed message, failing cells yield placeholders, and long
ranges are truncated with a notice after the table.
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel

from formula_preview.directives import RangeDirective
from formula_preview.logging.events import (
    CELL_EVAL_ERROR,
    RANGE_TRUNCATED,
    TOO_MANY_VARIABLES,
    EventLevel,
    EventType,
    emit,
    make_preview_event,
)
from formula_preview.project import resolve_config
from formula_preview.sampler import SampleGrid, build_grid
from formula_preview.table import render_table
from formula_preview.variables import extract_variables, rewrite_expression

MAX_VARIABLES = 2

TOO_MANY_VARIABLES_MESSAGE = (
    "Too many variables: a formula preview supports at most {limit} (found {count}: {names})"
)


class PreviewResult(BaseModel):
    """Everything computed for one preview request."""

    expression: str
    variables: list[str]
    canonical: str | None = None
    grid: SampleGrid | None = None
    message: str | None = None
    text: str


def build_preview(
    expression: str,
    directives: Mapping[str, RangeDirective] | None = None,
    config: dict[str, Any] | None = None,
    *,
    doc_id: str | None = None,
) -> PreviewResult:
    """Extract, rewrite, sample, evaluate and render *expression*.

    Args:
        expression: Raw formula text (a span's argument text).
        directives: Range directives of the enclosing document.
        config: Preview configuration, merged over the defaults.
        doc_id: Optional document id used to attribute events.

    Raises:
        ValueError: If *config* is invalid.
    """
    cfg = resolve_config(config)
    directives = directives or {}
    variables = extract_variables(expression)

    if len(variables) > MAX_VARIABLES:
        message = TOO_MANY_VARIABLES_MESSAGE.format(
            limit=MAX_VARIABLES, count=len(variables), names=", ".join(variables)
        )
        emit(
            make_preview_event(
                EventType.preview_too_many_variables,
                EventLevel.warning,
                message,
                expression=expression,
                variables=variables,
                error_code=TOO_MANY_VARIABLES,
            ),
            doc_id=doc_id,
        )
        return PreviewResult(expression=expression, variables=variables, message=message, text=message)

    canonical = rewrite_expression(expression, variables, mode=cfg["rewrite_mode"])
    grid = build_grid(
        canonical,
        variables,
        directives,
        default_range=cfg["default_range"],
        max_samples=cfg["max_samples"],
        placeholder=cfg["placeholder"],
    )

    if grid.failed_cells:
        emit(
            make_preview_event(
                EventType.preview_cell_error,
                EventLevel.warning,
                f"{grid.failed_cells} cell(s) failed to evaluate",
                expression=expression,
                variables=variables,
                error_code=CELL_EVAL_ERROR,
                extra={"canonical": canonical, "first_error": grid.first_error},
            ),
            doc_id=doc_id,
        )

    notices: list[str] = []
    for variable in grid.truncated:
        notice = f"({variable} samples truncated to {cfg['max_samples']})"
        notices.append(notice)
        emit(
            make_preview_event(
                EventType.range_truncated,
                EventLevel.warning,
                notice,
                expression=expression,
                variables=variables,
                error_code=RANGE_TRUNCATED,
                extra={"variable": variable, "max_samples": cfg["max_samples"]},
            ),
            doc_id=doc_id,
        )

    text = "\n".join([render_table(grid.rows, padding=cfg["padding"])] + notices)

    emit(
        make_preview_event(
            EventType.preview_rendered,
            EventLevel.info,
            f"Rendered {len(grid.x_values)}x{len(grid.y_values)} preview",
            expression=expression,
            variables=variables,
            extra={"canonical": canonical},
        ),
        doc_id=doc_id,
    )

    return PreviewResult(
        expression=expression,
        variables=variables,
        canonical=canonical,
        grid=grid,
        text=text,
    )


def render_preview(
    expression: str,
    directives: Mapping[str, RangeDirective] | None = None,
    config: dict[str, Any] | None = None,
    *,
    doc_id: str | None = None,
) -> str:
    """Return the display text for one formula preview.

    The result is either an aligned table (see ``formula_preview.table``)
    or the fixed too-many-variables message.
    """
    return build_preview(expression, directives, config, doc_id=doc_id).text
