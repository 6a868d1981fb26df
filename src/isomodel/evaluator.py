"""
Reference evaluator for transpiled expressions.

Evaluates an Expression tree against a model instance (a mapping or any
object with attributes). Backends print the same trees; this module is
the executable definition of what the printed code must compute.

Semantics:
    - member access through a null receiver yields None
    - equality is strict: booleans never equal numbers
    - relational comparisons involving None are False
"""

from collections.abc import Mapping
from typing import Any

from .expressions import (
    BinaryExpression,
    BinaryOperator,
    Expression,
    Literal,
    MemberAccess,
    NullCheck,
    Ternary,
    UnaryExpression,
    UnaryOperator,
)


def _member(receiver: Any, name: str) -> Any:
    if receiver is None:
        return None
    if isinstance(receiver, Mapping):
        return receiver.get(name)
    return getattr(receiver, name, None)


def _strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _compare(operator: BinaryOperator, left: Any, right: Any) -> bool:
    if operator == BinaryOperator.EQUALS:
        return _strict_equals(left, right)
    if operator == BinaryOperator.NOT_EQUALS:
        return not _strict_equals(left, right)
    if left is None or right is None:
        return False
    if operator == BinaryOperator.GREATER_THAN:
        return left > right
    if operator == BinaryOperator.GREATER_EQUAL:
        return left >= right
    if operator == BinaryOperator.LESS_THAN:
        return left < right
    if operator == BinaryOperator.LESS_EQUAL:
        return left <= right
    raise TypeError(f"Unsupported comparison operator: {operator}")


def evaluate(expr: Expression, instance: Any) -> Any:
    """
    Evaluate an expression against one instance.

    Args:
        expr: Transpiled expression tree
        instance: Mapping or object providing the referenced properties

    Returns:
        The expression's value (bool for boolean expressions)
    """
    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, MemberAccess):
        value = instance
        for segment in expr.path:
            value = _member(value, segment)
        return value

    if isinstance(expr, NullCheck):
        is_null = evaluate(expr.operand, instance) is None
        return not is_null if expr.negated else is_null

    if isinstance(expr, UnaryExpression):
        if expr.operator == UnaryOperator.NOT:
            return not evaluate(expr.operand, instance)
        raise TypeError(f"Unsupported unary operator: {expr.operator}")

    if isinstance(expr, BinaryExpression):
        if expr.operator == BinaryOperator.AND:
            return bool(evaluate(expr.left, instance)) and bool(evaluate(expr.right, instance))
        if expr.operator == BinaryOperator.OR:
            return bool(evaluate(expr.left, instance)) or bool(evaluate(expr.right, instance))
        return _compare(expr.operator, evaluate(expr.left, instance), evaluate(expr.right, instance))

    if isinstance(expr, Ternary):
        if evaluate(expr.condition, instance):
            return evaluate(expr.when_true, instance)
        return evaluate(expr.when_false, instance)

    raise TypeError(f"Unsupported Expression type: {type(expr)}")


__all__ = ["evaluate"]
