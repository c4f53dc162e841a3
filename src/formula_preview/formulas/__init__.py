"""Canonical two-variable formula parsing and evaluation.

Public API::

    from formula_preview.formulas import parse_formula, evaluate_formula
"""

from formula_preview.formulas.errors import (
    FormulaDomainError,
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRefError,
)
from formula_preview.formulas.evaluator import RESERVED_FUNCTIONS, evaluate_formula
from formula_preview.formulas.parser import (
    extract_functions,
    extract_refs,
    parse_formula,
)

__all__ = [
    "FormulaDomainError",
    "FormulaError",
    "FormulaFunctionError",
    "FormulaParseError",
    "FormulaRefError",
    "RESERVED_FUNCTIONS",
    "evaluate_formula",
    "extract_functions",
    "extract_refs",
    "parse_formula",
]
