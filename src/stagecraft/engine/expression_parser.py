# src/stagecraft/engine/expression_parser.py
"""Sandboxed expression evaluator for filter conditions.

Filter stages carry a user-authored condition such as ``row.amount >= 500``.
The condition is parsed with Python's ast module and checked against a
whitelist before anything runs; evaluation then walks the validated tree
against one row at a time. Nothing is handed to eval() or exec().

Two phases:
1. Construction: parse, then reject forbidden constructs
   (ExpressionSyntaxError / ExpressionSecurityError)
2. Evaluation: walk the tree for a row
   (ExpressionEvaluationError for missing fields, bad types, etc.)
"""

from __future__ import annotations

import ast
import operator
from typing import Any


class ExpressionSecurityError(Exception):
    """Raised when an expression contains forbidden constructs."""


class ExpressionSyntaxError(Exception):
    """Raised when an expression is not valid Python syntax."""


class ExpressionEvaluationError(Exception):
    """Raised when a valid expression fails against a particular row.

    Wraps the operational error (KeyError, TypeError, ZeroDivisionError,
    OverflowError) via __cause__.
    """


_COMPARISON_OPS: dict[type[ast.cmpop], Any] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

_BINARY_OPS: dict[type[ast.operator], Any] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPS: dict[type[ast.unaryop], Any] = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

# Longest string or list a `*` repetition may build
_MAX_REPEAT_LENGTH = 100_000

_ALLOWED_NAMES = frozenset({"row", "True", "False", "None"})

# Constructs with no place in a row predicate
_FORBIDDEN_NODES: dict[type[ast.AST], str] = {
    ast.Lambda: "Lambda expressions",
    ast.ListComp: "List comprehensions",
    ast.DictComp: "Dict comprehensions",
    ast.SetComp: "Set comprehensions",
    ast.GeneratorExp: "Generator expressions",
    ast.Await: "Await expressions",
    ast.Yield: "Yield expressions",
    ast.YieldFrom: "Yield from expressions",
    ast.NamedExpr: "Assignment expressions (:=)",
    ast.JoinedStr: "F-strings",
    ast.Starred: "Starred expressions (*)",
    ast.Slice: "Slice syntax (e.g., [1:3])",
}


def _is_row(node: ast.expr) -> bool:
    return isinstance(node, ast.Name) and node.id == "row"


def _is_row_get_call(node: ast.expr) -> bool:
    return isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute) and _is_row(node.func.value) and node.func.attr == "get"


def _is_row_derived(node: ast.expr) -> bool:
    """True for row, row.field, row['field'], row.get(...) and subscripts of those."""
    if _is_row(node) or _is_row_get_call(node):
        return True
    if isinstance(node, ast.Attribute) and _is_row(node.value):
        return node.attr != "get"
    if isinstance(node, ast.Subscript):
        return _is_row_derived(node.value)
    return False


def _is_none(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is None


class _ExpressionValidator(ast.NodeVisitor):
    """Collects every whitelist violation in an expression tree."""

    def __init__(self) -> None:
        self.errors: list[str] = []

    def generic_visit(self, node: ast.AST) -> None:
        label = _FORBIDDEN_NODES.get(type(node))
        if label is not None:
            self.errors.append(f"{label} are forbidden")
            return
        super().generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id not in _ALLOWED_NAMES:
            self.errors.append(f"Forbidden name: {node.id!r}")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        # row.get is only reachable through visit_Call
        if not _is_row(node.value):
            self.errors.append(f"Forbidden attribute access: {node.attr!r} (only row.<field> is allowed)")
        elif node.attr == "get":
            self.errors.append("Bare 'row.get' is forbidden; use 'row.get(key)' or 'row.get(key, default)'")
        elif node.attr.startswith("__"):
            self.errors.append(f"Forbidden row attribute: {node.attr!r}")

    def visit_Call(self, node: ast.Call) -> None:
        if not _is_row_get_call(node):
            self.errors.append(f"Forbidden function call: {ast.unparse(node.func)}")
            return
        if not 1 <= len(node.args) <= 2:
            self.errors.append(f"row.get() requires 1 or 2 arguments, got {len(node.args)}")
        if node.keywords:
            self.errors.append("row.get() does not accept keyword arguments")
        for arg in node.args:
            self.visit(arg)

    def visit_Subscript(self, node: ast.Subscript) -> None:
        if not _is_row_derived(node.value):
            self.errors.append(f"Subscript access is only allowed on row data; got {ast.unparse(node.value)}")
        self.generic_visit(node)

    def visit_Compare(self, node: ast.Compare) -> None:
        operands = [node.left, *node.comparators]
        for i, op in enumerate(node.ops):
            if type(op) not in _COMPARISON_OPS:
                self.errors.append(f"Forbidden comparison operator: {type(op).__name__}")
            elif isinstance(op, ast.Is | ast.IsNot) and not (_is_none(operands[i]) or _is_none(operands[i + 1])):
                self.errors.append("'is' and 'is not' are only allowed for None checks")
        self.generic_visit(node)

    def visit_BinOp(self, node: ast.BinOp) -> None:
        if type(node.op) not in _BINARY_OPS:
            self.errors.append(f"Forbidden binary operator: {type(node.op).__name__}")
        self.generic_visit(node)

    def visit_UnaryOp(self, node: ast.UnaryOp) -> None:
        if type(node.op) not in _UNARY_OPS:
            self.errors.append(f"Forbidden unary operator: {type(node.op).__name__}")
        self.generic_visit(node)

    def visit_Constant(self, node: ast.Constant) -> None:
        if node.value is not None and not isinstance(node.value, str | int | float | bool):
            self.errors.append(f"Forbidden constant type: {type(node.value).__name__}")

    def visit_Dict(self, node: ast.Dict) -> None:
        if any(key is None for key in node.keys):
            self.errors.append("Dict spread (**) is forbidden")
        self.generic_visit(node)


def _check_repeat_length(left: Any, right: Any) -> None:
    """Reject sequence * int when the result would exceed _MAX_REPEAT_LENGTH."""
    for seq, count in ((left, right), (right, left)):
        if isinstance(seq, str | bytes | list | tuple) and isinstance(count, int):
            if len(seq) * count > _MAX_REPEAT_LENGTH:
                msg = f"repetition would build a {type(seq).__name__} longer than {_MAX_REPEAT_LENGTH} items"
                raise ExpressionEvaluationError(msg)
            return


class _ExpressionEvaluator(ast.NodeVisitor):
    """Walks a validated tree against one row."""

    def __init__(self, row: dict[str, Any]) -> None:
        self._row = row

    def generic_visit(self, node: ast.AST) -> Any:
        # Validation guarantees we never get here
        raise ExpressionSecurityError(f"Unsupported construct: {type(node).__name__}")

    def visit_Expression(self, node: ast.Expression) -> Any:
        return self.visit(node.body)

    def visit_Name(self, node: ast.Name) -> Any:
        constants: dict[str, Any] = {"True": True, "False": False, "None": None}
        if node.id == "row":
            return self._row
        if node.id in constants:
            return constants[node.id]
        raise ExpressionSecurityError(f"Unknown name: {node.id}")

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def _field(self, name: Any) -> Any:
        try:
            return self._row[name]
        except KeyError as e:
            raise ExpressionEvaluationError(f"Field '{name}' not found. Available fields: {list(self._row)}") from e
        except TypeError as e:
            raise ExpressionEvaluationError(f"Invalid field name {name!r}: {e}") from e

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        # row.<field> reads the field; it never touches Python attributes
        return self._field(node.attr)

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        value = self.visit(node.value)
        key = self.visit(node.slice)
        if value is self._row:
            return self._field(key)
        try:
            return value[key]
        except (KeyError, IndexError) as e:
            raise ExpressionEvaluationError(f"Key {key!r} not found in {type(value).__name__}") from e
        except TypeError as e:
            raise ExpressionEvaluationError(f"Cannot access {key!r} on {type(value).__name__}: {e}") from e

    def visit_Call(self, node: ast.Call) -> Any:
        args = [self.visit(arg) for arg in node.args]
        try:
            return self._row.get(*args)
        except TypeError as e:
            raise ExpressionEvaluationError(f"invalid argument to row.get(): {e}") from e

    def visit_Compare(self, node: ast.Compare) -> Any:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators, strict=True):
            right = self.visit(comparator)
            try:
                if not _COMPARISON_OPS[type(op)](left, right):
                    return False
            except TypeError as e:
                msg = f"cannot compare {type(left).__name__} and {type(right).__name__} with {type(op).__name__}"
                raise ExpressionEvaluationError(msg) from e
            left = right
        return True

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        # Short-circuit exactly like Python: return the deciding operand
        result: Any = None
        for value in node.values:
            result = self.visit(value)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        op_name = type(node.op).__name__
        if isinstance(node.op, ast.Mult):
            _check_repeat_length(left, right)
        try:
            return _BINARY_OPS[type(node.op)](left, right)
        except ZeroDivisionError as e:
            raise ExpressionEvaluationError(f"division by zero in {op_name} operation") from e
        except (OverflowError, MemoryError, ValueError) as e:
            raise ExpressionEvaluationError(f"{op_name} operation out of range: {e}") from e
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot apply {op_name} to {type(left).__name__} and {type(right).__name__}") from e

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        try:
            return _UNARY_OPS[type(node.op)](operand)
        except (OverflowError, MemoryError, ValueError) as e:
            raise ExpressionEvaluationError(f"unary {type(node.op).__name__} out of range: {e}") from e
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot apply unary {type(node.op).__name__} to {type(operand).__name__}") from e

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        return self.visit(node.body) if self.visit(node.test) else self.visit(node.orelse)

    def visit_List(self, node: ast.List) -> Any:
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> Any:
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Set(self, node: ast.Set) -> Any:
        try:
            return {self.visit(elt) for elt in node.elts}
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot create set literal: {e}") from e

    def visit_Dict(self, node: ast.Dict) -> Any:
        try:
            return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values, strict=True) if k is not None}
        except TypeError as e:
            raise ExpressionEvaluationError(f"cannot create dict literal: {e}") from e


class ExpressionParser:
    """Parse once, evaluate per row.

    Allowed:
    - Field access: row.field, row['field'], row.get('field'[, default])
    - Comparisons: ==, !=, <, >, <=, >=, in, not in, is None, is not None
    - Boolean operators: and, or, not
    - Literals: strings, numbers, booleans, None, list/tuple/set/dict
    - Ternary: x if condition else y
    - Arithmetic: +, -, *, /, //, %

    Everything else is rejected at construction, including function calls
    other than row.get(), lambdas, comprehensions, names other than
    row/True/False/None, and attribute access on anything but row.

    Example:
        parser = ExpressionParser("row.amount >= 500")
        parser.evaluate({"amount": 850})  # True
    """

    def __init__(self, expression: str) -> None:
        """Parse and validate.

        Raises:
            ExpressionSyntaxError: If expression is not valid Python syntax
            ExpressionSecurityError: If expression contains forbidden constructs
        """
        self._expression = expression

        try:
            self._ast = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            raise ExpressionSyntaxError(f"Invalid syntax: {e.msg}") from e
        except RecursionError as e:
            raise ExpressionSyntaxError("Expression is nested too deeply") from e
        except (MemoryError, ValueError) as e:
            # ValueError: source containing NUL bytes
            raise ExpressionSyntaxError(f"Cannot parse expression: {e}") from e

        validator = _ExpressionValidator()
        try:
            validator.visit(self._ast)
        except RecursionError as e:
            raise ExpressionSyntaxError("Expression is nested too deeply") from e
        if validator.errors:
            raise ExpressionSecurityError("; ".join(validator.errors))

    @property
    def expression(self) -> str:
        return self._expression

    def evaluate(self, row: dict[str, Any]) -> Any:
        """Evaluate against one row.

        Raises:
            ExpressionEvaluationError: If the row lacks a field or values
                cannot be combined as the expression asks
        """
        try:
            return _ExpressionEvaluator(row).visit(self._ast)
        except RecursionError as e:
            raise ExpressionEvaluationError("expression nested too deeply to evaluate") from e

    def matches(self, row: dict[str, Any]) -> bool:
        """Truthiness of evaluate(); evaluation errors propagate."""
        return bool(self.evaluate(row))

    def __repr__(self) -> str:
        return f"ExpressionParser({self._expression!r})"
