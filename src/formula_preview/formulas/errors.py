"""Exceptions raised while parsing or evaluating a canonical formula.

Every cell failure in a preview is one of these; the sampler catches
``FormulaError`` and renders the placeholder instead.
"""

from __future__ import annotations


class FormulaError(Exception):
    """Root of the formula exception hierarchy."""


class FormulaParseError(FormulaError):
    """The text is not a valid formula.

    ``position`` is the column lark reported, when it reported one.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        where = "" if position is None else f" at column {position}"
        super().__init__(f"Formula parse error{where}: {message}")


class FormulaRefError(FormulaError):
    """A name the evaluation context does not bind."""

    def __init__(self, ref_name: str, available: list[str] | None = None) -> None:
        self.ref_name = ref_name
        self.available = list(available or [])
        bound = ", ".join(self.available) or "none"
        super().__init__(f"Name {ref_name!r} is not bound (bound names: {bound})")


class FormulaFunctionError(FormulaError):
    """A call to an unsupported function, or with the wrong argument count."""

    def __init__(self, func_name: str, message: str | None = None) -> None:
        self.func_name = func_name
        super().__init__(message or f"Unsupported function {func_name!r}")


class FormulaDomainError(FormulaError):
    """Division by zero, a math domain error, overflow, or a non-finite result."""
