"""Monospace text table rendering for preview grids."""

from __future__ import annotations

from typing import Sequence


def column_widths(rows: Sequence[Sequence[str]]) -> list[int]:
    """Maximum cell width per column; short rows count as empty cells."""
    n_cols = max((len(row) for row in rows), default=0)
    widths = [0] * n_cols
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    return widths


def render_table(rows: Sequence[Sequence[str]], padding: int = 1, header: bool = True) -> str:
    """Render *rows* as an aligned ASCII table.

    Cells are left-aligned and padded by *padding* spaces on each side.
    With *header*, the first row is set off by a rule::

        +-----+---+---+
        | x/y | 0 | 1 |
        +-----+---+---+
        | 0   | 0 | 1 |
        | 1   | 1 | 2 |
        +-----+---+---+

    Args:
        rows: Cell strings, row-major.
        padding: Spaces on each side of every cell.
        header: Whether the first row is a header.

    Returns:
        The table without a trailing newline, or ``""`` for no rows.
    """
    if not rows:
        return ""

    widths = column_widths(rows)
    pad = " " * padding
    rule = "+" + "+".join("-" * (w + 2 * padding) for w in widths) + "+"

    lines = [rule]
    for index, row in enumerate(rows):
        cells = list(row) + [""] * (len(widths) - len(row))
        lines.append("|" + "|".join(f"{pad}{cell.ljust(w)}{pad}" for cell, w in zip(cells, widths)) + "|")
        if header and index == 0 and len(rows) > 1:
            lines.append(rule)
    lines.append(rule)
    return "\n".join(lines)
