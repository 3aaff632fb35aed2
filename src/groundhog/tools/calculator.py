"""Arithmetic tool backed by a restricted AST evaluator."""

import ast
import operator
from typing import (
    Callable,
    Dict,
    Type,
)

from groundhog.tools import register_tool

_BIN_OPS: Dict[Type[ast.operator], Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: Dict[Type[ast.unaryop], Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_MAX_EXPONENT = 1000


class CalculatorError(ValueError):
    """Raised for input that is not a plain arithmetic expression."""


def _eval(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _eval(node.body)
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        left, right = _eval(node.left), _eval(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise CalculatorError("exponent too large")
        return _BIN_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval(node.operand))
    raise CalculatorError(f"unsupported expression element: {type(node).__name__}")


def evaluate(expression: str) -> str:
    """Evaluate *expression* and return the result as text (integral floats lose the ``.0``)."""
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as exc:
        raise CalculatorError(f"invalid expression: {expression!r}") from exc

    try:
        value = _eval(tree)
    except ZeroDivisionError as exc:
        raise CalculatorError("division by zero") from exc

    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


@register_tool("calculator")
def calculator(tool_input: str) -> str:
    """
    Useful for getting the result of a math expression.
    The input must be a valid arithmetic expression, e.g. "(3 + 4) * 2".
    """
    return evaluate(tool_input)
