"""
Safe evaluation of user formulas for the CUSTOM node type.

Formulas are parsed with ``ast`` and walked node by node; only arithmetic,
comparisons, boolean logic, conditional expressions, calls to the math
functions below and names bound to the node's inputs are accepted.
``^`` is read as exponentiation, as in most calculator notations.

A formula may also be a dict literal, ``{"M": w * L**2 / 8, "V": w * L / 2}``,
to produce several named outputs at once.
"""

import ast
import operator
from typing import Any, Dict, Mapping

import numpy as np

FUNCTIONS = {
    'abs': np.abs,
    'sqrt': np.sqrt,
    'exp': np.exp,
    'log': np.log,
    'log10': np.log10,
    'sin': np.sin,
    'cos': np.cos,
    'tan': np.tan,
    'asin': np.arcsin,
    'acos': np.arccos,
    'atan': np.arctan,
    'atan2': np.arctan2,
    'floor': np.floor,
    'ceil': np.ceil,
    'round': np.round,
    'min': min,
    'max': max,
    'hypot': np.hypot,
}

CONSTANTS = {
    'pi': np.pi,
    'e': np.e,
}

_BINARY = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.BitXor: operator.pow,
}

_UNARY = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


class FormulaError(ValueError):
    """The formula is malformed or uses something outside the allowed subset."""


def parse_formula(formula: str) -> ast.Expression:
    try:
        return ast.parse(formula.strip(), mode='eval')
    except SyntaxError as e:
        raise FormulaError(f"Invalid formula '{formula}': {e.msg}") from e


def evaluate(formula: str, variables: Mapping[str, float]) -> Any:
    """
    Evaluate `formula` with `variables` in scope.

    Input names shadow the built-in constants. Raises FormulaError for
    unsupported syntax, unknown names and arithmetic failures.
    """
    tree = parse_formula(formula)
    namespace = dict(CONSTANTS)
    namespace.update(variables)
    try:
        return _Evaluator(namespace).visit(tree.body)
    except ZeroDivisionError as e:
        raise FormulaError(f"Division by zero in '{formula}'") from e
    except (TypeError, OverflowError) as e:
        raise FormulaError(f"Cannot evaluate '{formula}': {e}") from e


def evaluate_outputs(formula: str, variables: Mapping[str, float]) -> Dict[str, Any]:
    """Evaluate a formula into an output mapping ({'result': x} for scalars)."""
    value = evaluate(formula, variables)
    if isinstance(value, dict):
        return value
    return {'result': value}


class _Evaluator(ast.NodeVisitor):

    def __init__(self, namespace: Mapping[str, Any]):
        self.namespace = namespace

    def generic_visit(self, node):
        raise FormulaError(f"Unsupported expression: {type(node).__name__}")

    def visit_Constant(self, node):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaError(f"Unsupported constant: {node.value!r}")
        return float(node.value)

    def visit_Name(self, node):
        if node.id not in self.namespace:
            raise FormulaError(f"Unknown variable '{node.id}'")
        return self.namespace[node.id]

    def visit_BinOp(self, node):
        op = _BINARY.get(type(node.op))
        if op is None:
            raise FormulaError(f"Unsupported operator: {type(node.op).__name__}")
        return op(self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node):
        op = _UNARY.get(type(node.op))
        if op is None:
            raise FormulaError(f"Unsupported operator: {type(node.op).__name__}")
        return op(self.visit(node.operand))

    def visit_BoolOp(self, node):
        values = [self.visit(v) for v in node.values]
        if isinstance(node.op, ast.And):
            return float(all(values))
        return float(any(values))

    def visit_Compare(self, node):
        left = self.visit(node.left)
        for op_node, comparator in zip(node.ops, node.comparators):
            op = _COMPARE.get(type(op_node))
            if op is None:
                raise FormulaError(f"Unsupported comparison: {type(op_node).__name__}")
            right = self.visit(comparator)
            if not op(left, right):
                return 0.0
            left = right
        return 1.0

    def visit_IfExp(self, node):
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    def visit_Call(self, node):
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            name = getattr(node.func, 'id', type(node.func).__name__)
            raise FormulaError(f"Unknown function '{name}'")
        if node.keywords:
            raise FormulaError("Keyword arguments are not supported")
        args = [self.visit(arg) for arg in node.args]
        return FUNCTIONS[node.func.id](*args)

    def visit_Dict(self, node):
        result = {}
        for key, value in zip(node.keys, node.values):
            if not isinstance(key, ast.Constant) or not isinstance(key.value, str):
                raise FormulaError("Output names must be string literals")
            result[key.value] = self.visit(value)
        return result
