"""Tree-walking evaluator for parsed preview formulas.

Operators and functions are looked up in dispatch tables whose entries
receive *deferred* operands: zero-argument callables that evaluate the
operand subtree when forced.  A tree is parsed once and evaluated many
times with a different ``{"x": ..., "y": ...}`` context per grid cell.
"""

from __future__ import annotations

import math
from typing import Any, Callable

from lark import Token, Tree

from formula_preview.formulas.errors import (
    FormulaDomainError,
    FormulaError,
    FormulaFunctionError,
    FormulaRefError,
)

Thunk = Callable[[], float]


def evaluate_formula(tree: Tree, context: dict[str, Any]) -> float:
    """Evaluate a parsed formula tree against a variable context.

    Args:
        tree: Parse tree from ``parse_formula()``.
        context: Mapping of bound names (``x``, ``y``) to numeric values.

    Returns:
        The computed value as a finite float.

    Raises:
        FormulaError: On unknown names or functions, wrong arity, or a
            numeric result that is undefined or not finite.
    """
    try:
        result = _eval(tree, context)
    except ZeroDivisionError as exc:
        raise FormulaDomainError("Division by zero in formula") from exc
    except OverflowError as exc:
        raise FormulaDomainError(f"Numeric overflow: {exc}") from exc
    except ValueError as exc:
        raise FormulaDomainError(f"Math domain error: {exc}") from exc
    except RecursionError as exc:
        raise FormulaError("Formula is nested too deeply") from exc
    if not math.isfinite(result):
        raise FormulaDomainError(f"Result is not finite: {result!r}")
    return result


def _eval(node: Tree | Token, ctx: dict[str, Any]) -> float:
    """Recursively evaluate a tree node."""
    if isinstance(node, Token):
        return _eval_token(node, ctx)

    rule = node.data

    # Start rule just wraps expr
    if rule == "start":
        return _eval(node.children[0], ctx)

    if rule in _INFIX_OPS:
        left, right = node.children
        return _INFIX_OPS[rule](_defer(left, ctx), _defer(right, ctx))

    if rule in _UNARY_OPS:
        return _UNARY_OPS[rule](_defer(node.children[0], ctx))

    if rule == "number":
        return _parse_number(node.children[0])

    if rule == "ref":
        return _resolve_ref(str(node.children[0]), ctx)

    if rule == "func_call":
        return _eval_func(node, ctx)

    raise FormulaError(f"Unknown node type: {rule}")


def _defer(node: Tree | Token, ctx: dict[str, Any]) -> Thunk:
    """Wrap *node* so it is evaluated only when the operator forces it."""
    return lambda: _eval(node, ctx)


def _eval_token(token: Token, ctx: dict[str, Any]) -> float:
    """Evaluate a bare token (shouldn't normally happen at top level)."""
    if token.type == "NUMBER":
        return _parse_number(token)
    return _resolve_ref(str(token), ctx)


def _parse_number(token: Token) -> float:
    """Parse a NUMBER token; all arithmetic happens on IEEE doubles."""
    return float(str(token))


def _resolve_ref(name: str, ctx: dict[str, Any]) -> float:
    if name in ctx:
        return float(ctx[name])
    raise FormulaRefError(name, available=sorted(ctx.keys()))


# ---------- Operators ----------


def _floordiv(a: Thunk, b: Thunk) -> float:
    # floor of the real quotient, kept as a float
    return float(math.floor(a() / b()))


_INFIX_OPS: dict[str, Callable[[Thunk, Thunk], float]] = {
    "add": lambda a, b: a() + b(),
    "sub": lambda a, b: a() - b(),
    "mul": lambda a, b: a() * b(),
    "div": lambda a, b: a() / b(),
    "floordiv": _floordiv,
    # Truncated modulo: the result takes the sign of the dividend
    "mod": lambda a, b: math.fmod(a(), b()),
    # math.pow never returns a complex number
    "pow": lambda a, b: math.pow(a(), b()),
}

_UNARY_OPS: dict[str, Callable[[Thunk], float]] = {
    "neg": lambda a: -a(),
    "pos": lambda a: +a(),
}


# ---------- Function dispatch ----------


def _eval_func(node: Tree, ctx: dict[str, Any]) -> float:
    """Evaluate a function call node."""
    func_name = str(node.children[0])
    args_node = node.children[1]
    raw_args = args_node.children if args_node.children else []

    if func_name not in _FUNC_TABLE:
        raise FormulaFunctionError(func_name)

    return _FUNC_TABLE[func_name]([_defer(arg, ctx) for arg in raw_args])


def _single_arg(func_name: str, args: list[Thunk]) -> float:
    if len(args) != 1:
        raise FormulaFunctionError(
            func_name, f"{func_name} requires exactly 1 argument, got {len(args)}"
        )
    return args[0]()


def _fn_log(args: list[Thunk]) -> float:
    """math.log(v): natural logarithm, undefined for v <= 0."""
    value = _single_arg("math.log", args)
    if value <= 0:
        raise FormulaDomainError(f"math.log is undefined for {value!r}")
    return math.log(value)


def _fn_int(args: list[Thunk]) -> float:
    """int(v): floor, so int(-2.5) == -3."""
    return float(math.floor(_single_arg("int", args)))


def _fn_round(args: list[Thunk]) -> float:
    """round(v): nearest integer, ties toward +infinity."""
    return float(math.floor(_single_arg("round", args) + 0.5))


_FUNC_TABLE: dict[str, Callable[[list[Thunk]], float]] = {
    "math.log": _fn_log,
    "int": _fn_int,
    "round": _fn_round,
}

RESERVED_FUNCTIONS: frozenset[str] = frozenset(_FUNC_TABLE)
