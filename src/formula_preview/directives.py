"""Parse comment-style range directives that bound a variable's samples.

A directive is a comment line such as::

    # n = range(1, 10, 2)
    // weights[0].w = range(-5, 5)

Directives apply document-wide by variable name.  The last directive
for a name wins.
"""

from __future__ import annotations

import re

from pydantic import BaseModel

from formula_preview.logging.events import DIRECTIVE_MALFORMED, EventType, emit_warning

_DIRECTIVE_RE = re.compile(
    r"^[ \t]*(?:#|//)[ \t]*"
    r"(?P<variable>[A-Za-z_]\w*(?:\[\d+\])*(?:\.[A-Za-z_]\w*(?:\[\d+\])*)*)"
    r"[ \t]*=[ \t]*range[ \t]*\("
    r"(?P<args>[^()\n]*)"
    r"\)",
    re.MULTILINE,
)

_INT_RE = re.compile(r"^-?\d+$")


def _int_args(parts: list[str]) -> list[int] | None:
    """2 or 3 integer literals, or None when *parts* is not that."""
    if len(parts) not in (2, 3) or not all(_INT_RE.match(p) for p in parts):
        return None
    try:
        return [int(p) for p in parts]
    except ValueError:
        # past the interpreter's int/str digit limit
        return None


class RangeDirective(BaseModel):
    """Integer sample domain ``range(start, end, step)`` for one variable."""

    variable: str
    start: int
    end: int  # exclusive
    step: int = 1
    line: int | None = None  # 1-based source line, informational


def parse_range_directives(text: str, *, doc_id: str | None = None) -> dict[str, RangeDirective]:
    """Scan *text* for range directives.

    A directive whose arguments are not 2 or 3 integer literals is skipped
    (a ``directive_skipped`` warning is emitted); the rest still parse.

    Args:
        text: Full document text.
        doc_id: Optional document id used to attribute skip events.

    Returns:
        Mapping of variable name to its directive, last match winning.
    """
    directives: dict[str, RangeDirective] = {}

    for match in _DIRECTIVE_RE.finditer(text):
        variable = match.group("variable")
        line = text.count("\n", 0, match.start()) + 1
        parts = [p.strip() for p in match.group("args").split(",")]

        values = _int_args(parts)
        if values is None:
            emit_warning(
                EventType.directive_skipped,
                f"Skipping malformed range directive for {variable!r} on line {line}",
                {"variable": variable, "line": line, "args": match.group("args")},
                error_code=DIRECTIVE_MALFORMED,
                doc_id=doc_id,
            )
            continue

        directives[variable] = RangeDirective(
            variable=variable,
            start=values[0],
            end=values[1],
            step=values[2] if len(values) == 3 else 1,
            line=line,
        )

    return directives
