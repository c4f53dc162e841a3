"""Free-variable extraction and canonical ``x``/``y`` rewriting."""

from __future__ import annotations

import re

from formula_preview.formulas.evaluator import RESERVED_FUNCTIONS

# Identifier with optional [n] indices and one optional .member suffix:
# a, a.b, a[0], a[0].b.  A token never starts right after a word
# character or a dot, so 1e5 yields no token and a.b.c yields only a.b.
_VARIABLE_RE = re.compile(r"(?<![\w.])[A-Za-z_]\w*(?:\[\d+\])*(?:\.\w+)?")

RESERVED_NAMESPACE = "math."

CANONICAL_NAMES = ("x", "y")


def _is_variable(token: str) -> bool:
    if token.startswith(RESERVED_NAMESPACE):
        return False
    if token in RESERVED_FUNCTIONS:
        return False
    return not token.isdigit()


def extract_variables(expr: str) -> list[str]:
    """Return the distinct free variables of *expr* in first-occurrence order.

    Numeric tokens, the reserved functions ``int`` and ``round`` and every
    ``math.*`` token are excluded.  The two-variable ceiling is left to the
    caller.

    Examples:
        ``"a + b*2"`` -> ``["a", "b"]``
        ``"math.log(a) + int(b)"`` -> ``["a", "b"]``
    """
    seen: dict[str, None] = {}
    for match in _VARIABLE_RE.finditer(expr):
        token = match.group(0)
        if _is_variable(token):
            seen.setdefault(token, None)
    return list(seen)


def rewrite_expression(expr: str, variables: list[str], mode: str = "token") -> str:
    """Rename the first variable to ``x`` and the second to ``y``.

    Args:
        expr: Expression text.
        variables: Variables from ``extract_variables`` (at most 2).
        mode: ``"token"`` replaces whole variable tokens in one pass.
            ``"literal"`` replaces every literal occurrence of each name in
            turn, so a name that is a substring of another token is
            rewritten inside it too.

    Returns:
        The canonical expression.

    Raises:
        ValueError: On more than 2 variables or an unknown mode.
    """
    if len(variables) > len(CANONICAL_NAMES):
        raise ValueError(
            f"At most {len(CANONICAL_NAMES)} variables can be rewritten, got {len(variables)}"
        )
    mapping = dict(zip(variables, CANONICAL_NAMES))

    if mode == "token":
        return _VARIABLE_RE.sub(lambda m: mapping.get(m.group(0), m.group(0)), expr)

    if mode == "literal":
        for name, canonical in mapping.items():
            expr = re.sub(re.escape(name), canonical, expr)
        return expr

    raise ValueError(f"Unknown rewrite mode: {mode!r}")
