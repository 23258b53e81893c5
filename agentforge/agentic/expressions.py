"""Restricted expression interpreter.

Evaluates a small expression language by walking Python's AST and only
accepting whitelisted node types. Nothing is compiled or executed: there is no
attribute access, no imports, no comprehensions, no lambdas, and calls are
limited to a fixed table of pure functions.

Used by the calculator built-in (arithmetic only) and by custom tools whose
implementation is an ``expression`` variant (arithmetic, comparisons, boolean
logic, conditionals, subscripts and whitelisted calls over the call
arguments).
"""

import ast
import math
import operator
from typing import Any, Mapping

MAX_EXPRESSION_LENGTH = 1000
MAX_EXPONENT = 1000
MAX_RESULT_BITS = 100_000
MAX_SEQUENCE_LENGTH = 10_000


class ExpressionError(ValueError):
    """Expression is malformed or uses something outside the allowed subset."""


_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

SAFE_FUNCTIONS = {
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "len": len,
    "sum": sum,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "sqrt": math.sqrt,
    "floor": math.floor,
    "ceil": math.ceil,
    "lower": lambda s: str(s).lower(),
    "upper": lambda s: str(s).upper(),
}


def evaluate(
    expression: str,
    variables: Mapping[str, Any] | None = None,
    *,
    arithmetic_only: bool = False,
) -> Any:
    """
    Evaluate an expression in the restricted language.

    Args:
        expression: Source text, e.g. ``"price * quantity"``
        variables: Names the expression may reference
        arithmetic_only: Reject everything except numbers, + - * / // % **,
            unary signs and parentheses

    Raises:
        ExpressionError: on syntax errors, disallowed constructs, unknown
            names, or arithmetic failures
    """
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError("Expression too long")
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression: {e.msg}") from e

    evaluator = _Evaluator(variables or {}, arithmetic_only)
    try:
        return evaluator.visit(tree.body)
    except ExpressionError:
        raise
    except (ArithmeticError, TypeError, ValueError, KeyError, IndexError) as e:
        raise ExpressionError(str(e) or type(e).__name__) from e


class _Evaluator:
    def __init__(self, variables: Mapping[str, Any], arithmetic_only: bool):
        self.variables = variables
        self.arithmetic_only = arithmetic_only

    def visit(self, node: ast.AST) -> Any:
        if self.arithmetic_only and not isinstance(
            node, (ast.Constant, ast.BinOp, ast.UnaryOp)
        ):
            raise ExpressionError(f"Not allowed in arithmetic: {type(node).__name__}")
        method = getattr(self, f"visit_{type(node).__name__}", None)
        if method is None:
            raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")
        return method(node)

    def visit_Constant(self, node: ast.Constant) -> Any:
        if self.arithmetic_only and (
            isinstance(node.value, bool) or not isinstance(node.value, (int, float))
        ):
            raise ExpressionError("Only numbers are allowed")
        if not isinstance(node.value, (int, float, str, bool, type(None))):
            raise ExpressionError(f"Unsupported constant: {node.value!r}")
        return node.value

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = _BIN_OPS.get(type(node.op))
        if op is None:
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Pow) and isinstance(right, (int, float)) and abs(right) > MAX_EXPONENT:
            raise ExpressionError("Exponent too large")
        if (
            isinstance(node.op, ast.Pow)
            and isinstance(left, int)
            and isinstance(right, int)
            and abs(right) * max(1, abs(left).bit_length()) > MAX_RESULT_BITS
        ):
            raise ExpressionError("Result too large")
        if isinstance(node.op, ast.Mult):
            for seq, count in ((left, right), (right, left)):
                if isinstance(seq, (str, list, tuple)) and isinstance(count, int) and len(seq) * count > MAX_SEQUENCE_LENGTH:
                    raise ExpressionError("Result too large")
        return op(left, right)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        op = _UNARY_OPS.get(type(node.op))
        if op is None or (self.arithmetic_only and isinstance(node.op, ast.Not)):
            raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
        return op(self.visit(node.operand))

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            result: Any = True
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = self.visit(value)
            if result:
                return result
        return result

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            op = _COMPARE_OPS.get(type(op_node))
            if op is None:
                raise ExpressionError(f"Unsupported comparison: {type(op_node).__name__}")
            right = self.visit(comparator)
            if not op(left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_Name(self, node: ast.Name) -> Any:
        if node.id in ("True", "False", "None"):
            return {"True": True, "False": False, "None": None}[node.id]
        if node.id not in self.variables:
            raise ExpressionError(f"Unknown name: {node.id}")
        return self.variables[node.id]

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        container = self.visit(node.value)
        if not isinstance(container, (dict, list, str)):
            raise ExpressionError("Subscript target must be a mapping, list or string")
        return container[self.visit(node.slice)]

    def visit_List(self, node: ast.List) -> list:
        return [self.visit(element) for element in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> tuple:
        return tuple(self.visit(element) for element in node.elts)

    def visit_Dict(self, node: ast.Dict) -> dict:
        if any(key is None for key in node.keys):
            raise ExpressionError("Dict unpacking is not allowed")
        return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values)}

    def visit_Call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name) or node.func.id not in SAFE_FUNCTIONS:
            raise ExpressionError("Only whitelisted functions may be called")
        if node.keywords:
            raise ExpressionError("Keyword arguments are not allowed")
        args = [self.visit(arg) for arg in node.args]
        return SAFE_FUNCTIONS[node.func.id](*args)
