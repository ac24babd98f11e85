"""
region_planner.constraint

Position constraint predicates.

A constraint expression describes a region of the plane in the constraint frame, e.g. `x^2 + y^2 < 4` for "within
2m of the frame origin" or `abs(x) < 1 && y > 0` for a half box. The resolver only depends on the two-step contract:

    predicate = evaluator.compile(expression)   # raises ConstraintCompileError
    predicate.evaluate(x, y) -> bool

`ExpressionEvaluator` is the bundled grammar. Expressions are parsed with `ast` and turned into a tree of closures;
nothing is passed to `eval`. Supported syntax:
- variables `x`, `y` and constants `pi`, `e`
- numbers, `+ - * / %`, `**` or `^` for power, unary `-` / `+`
- comparisons `< <= > >= == !=` (chains like `0 < x < 1` allowed)
- `and` / `&&`, `or` / `||`, `not` / `!`
- functions `abs sqrt hypot sin cos tan atan2 min max floor ceil`

A point where the expression is undefined (division by zero, sqrt of a negative) is outside the region.
"""

import ast
import math
import operator
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from region_planner.errors import ConstraintCompileError

_Node = Callable[[float, float], float]

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_COMPARISONS: dict[type[ast.cmpop], Callable[[float, float], bool]] = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}

_FUNCTIONS: dict[str, tuple[Callable[..., float], int, int | None]] = {
    # name: (function, min args, max args or None for variadic)
    "abs": (abs, 1, 1),
    "sqrt": (math.sqrt, 1, 1),
    "hypot": (math.hypot, 1, None),
    "sin": (math.sin, 1, 1),
    "cos": (math.cos, 1, 1),
    "tan": (math.tan, 1, 1),
    "atan2": (math.atan2, 2, 2),
    "min": (min, 2, None),
    "max": (max, 2, None),
    "floor": (math.floor, 1, 1),
    "ceil": (math.ceil, 1, 1),
}

_CONSTANTS: dict[str, float] = {"pi": math.pi, "e": math.e}


class CompiledPredicate(Protocol):
    def evaluate(self, x: float, y: float) -> bool: ...


class ConstraintEvaluator(Protocol):
    def compile(self, expression: str) -> CompiledPredicate: ...


@dataclass(frozen=True)
class ExpressionPredicate:
    """A compiled constraint expression."""

    expression: str
    _root: _Node

    def evaluate(self, x: float, y: float) -> bool:
        try:
            return bool(self._root(x, y))
        # negative base to a fractional power yields a complex number, which fails to compare (TypeError)
        except (ArithmeticError, ValueError, TypeError):
            return False


class ExpressionEvaluator:
    """Compiles constraint expressions written in the bundled arithmetic/boolean grammar."""

    def compile(self, expression: str) -> ExpressionPredicate:
        source = _normalize(expression)
        if not source:
            raise ConstraintCompileError("Constraint expression is empty")

        try:
            tree = ast.parse(source, mode="eval")
        except SyntaxError as e:
            raise ConstraintCompileError(f"Could not parse constraint '{expression}': {e.msg}") from e

        return ExpressionPredicate(expression=expression, _root=_build(tree.body, expression))


def _normalize(expression: str) -> str:
    source = expression.strip()
    source = source.replace("&&", " and ").replace("||", " or ").replace("^", "**")
    return re.sub(r"!(?!=)", " not ", source)


def _build(node: ast.AST, expression: str) -> _Node:
    if isinstance(node, ast.Constant):
        if not isinstance(node.value, (int, float)):
            raise ConstraintCompileError(f"Unsupported literal {node.value!r} in constraint '{expression}'")
        # numbers are floats so an oversized power overflows instead of growing without bound
        value = float(node.value)
        return lambda x, y: value

    if isinstance(node, ast.Name):
        if node.id == "x":
            return lambda x, y: x
        if node.id == "y":
            return lambda x, y: y
        if node.id in _CONSTANTS:
            constant = _CONSTANTS[node.id]
            return lambda x, y: constant
        raise ConstraintCompileError(f"Unknown variable '{node.id}' in constraint '{expression}'")

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        binary = _BINARY_OPERATORS[type(node.op)]
        left = _build(node.left, expression)
        right = _build(node.right, expression)
        return lambda x, y: binary(left(x, y), right(x, y))

    if isinstance(node, ast.UnaryOp):
        operand = _build(node.operand, expression)
        if isinstance(node.op, ast.USub):
            return lambda x, y: -operand(x, y)
        if isinstance(node.op, ast.UAdd):
            return operand
        if isinstance(node.op, ast.Not):
            return lambda x, y: not operand(x, y)

    if isinstance(node, ast.BoolOp):
        values = [_build(value, expression) for value in node.values]
        if isinstance(node.op, ast.And):
            return lambda x, y: all(value(x, y) for value in values)
        return lambda x, y: any(value(x, y) for value in values)

    if isinstance(node, ast.Compare) and all(type(op) in _COMPARISONS for op in node.ops):
        return _build_comparison(node, expression)

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS or node.keywords:
            raise ConstraintCompileError(f"Unsupported function call in constraint '{expression}'")
        function, min_args, max_args = _FUNCTIONS[node.func.id]
        if len(node.args) < min_args or (max_args is not None and len(node.args) > max_args):
            raise ConstraintCompileError(
                f"Wrong number of arguments to '{node.func.id}' in constraint '{expression}'"
            )
        args = [_build(arg, expression) for arg in node.args]
        return lambda x, y: float(function(*(arg(x, y) for arg in args)))

    raise ConstraintCompileError(f"Unsupported syntax '{type(node).__name__}' in constraint '{expression}'")


def _build_comparison(node: ast.Compare, expression: str) -> _Node:
    first = _build(node.left, expression)
    chain = [
        (_COMPARISONS[type(op)], _build(comparator, expression))
        for op, comparator in zip(node.ops, node.comparators, strict=True)
    ]

    def compare(x: float, y: float) -> bool:
        left = first(x, y)
        for compare_op, comparator in chain:
            right = comparator(x, y)
            if not compare_op(left, right):
                return False
            left = right
        return True

    return compare
