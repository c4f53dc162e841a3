"""Lark-based parser for canonical preview formulas.

Supports:
- Bound names ``x`` and ``y`` (any other name parses, but fails to evaluate)
- Numeric literals (integers, decimals, exponents)
- Infix ``+ - * / // % **`` with three precedence tiers
- Prefix functions ``math.log``, ``int`` and ``round`` with comma-separated args
- Parenthesised grouping and unary sign
"""

from __future__ import annotations

from lark import Lark, Token, Tree, Visitor

from formula_preview.formulas.errors import FormulaParseError

# LALR(1) grammar for preview formulas.
# Operator precedence (lowest to highest):
#   1. Addition/subtraction: + -
#   2. Multiplication/division: * / // %
#   3. Unary plus/minus: + -
#   4. Exponentiation: **  (left-to-right, like every other tier)
#   5. Atoms: number, function call, reference, parenthesized expr
GRAMMAR = r"""
start: expr

?expr: addition

?addition: multiplication
    | addition "+" multiplication  -> add
    | addition "-" multiplication  -> sub

?multiplication: unary
    | multiplication "*" unary   -> mul
    | multiplication "/" unary   -> div
    | multiplication "//" unary  -> floordiv
    | multiplication "%" unary   -> mod

?unary: exponentiation
    | "-" unary  -> neg
    | "+" unary  -> pos

?exponentiation: atom
    | exponentiation "**" exponent  -> pow

?exponent: atom
    | "-" exponent  -> neg
    | "+" exponent  -> pos

?atom: NUMBER                   -> number
    | NAME "(" args ")"         -> func_call
    | NAME                      -> ref
    | "(" expr ")"

args: expr ("," expr)*
    |

// Dotted names cover namespaced functions such as math.log
NAME: /[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*/

%import common.NUMBER
%import common.WS
%ignore WS
"""

_parser = Lark(GRAMMAR, parser="lalr", start="start")


def parse_formula(text: str) -> Tree:
    """Parse a canonical formula string into a Lark Tree.

    Args:
        text: The formula text, e.g. ``"x ** 2 + int(y / 3)"``.

    Returns:
        A Lark parse tree.

    Raises:
        FormulaParseError: If the formula has invalid syntax.
    """
    text = text.strip()
    if not text:
        raise FormulaParseError("Formula is empty", position=0)
    try:
        return _parser.parse(text)
    except Exception as exc:
        # Extract position info from Lark exception if available
        pos = getattr(exc, "column", None)
        raise FormulaParseError(str(exc), position=pos) from exc


class _RefCollector(Visitor):
    """Visitor that collects bare references and called function names."""

    def __init__(self) -> None:
        self.refs: set[str] = set()
        self.functions: set[str] = set()

    def ref(self, tree: Tree) -> None:
        token = tree.children[0]
        if isinstance(token, Token):
            self.refs.add(str(token))

    def func_call(self, tree: Tree) -> None:
        self.functions.add(str(tree.children[0]))


def extract_refs(tree: Tree) -> set[str]:
    """Extract all bare reference names from a parsed formula tree.

    For a canonical formula the result is a subset of ``{"x", "y"}``;
    anything else will fail at evaluation time.
    """
    collector = _RefCollector()
    collector.visit(tree)
    return collector.refs


def extract_functions(tree: Tree) -> set[str]:
    """Extract the names of all functions called in a parsed formula tree."""
    collector = _RefCollector()
    collector.visit(tree)
    return collector.functions
