"""
Mechanical printing of transpiled expressions.

Each backend subclasses ExpressionPrinter and supplies its operator
spellings, precedence table and member/literal syntax. The walk itself
is shared, so every backend parenthesizes the same tree the same way
modulo its own precedence rules.
"""

from typing import Dict, Tuple

from ..expressions import (
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

PRIMARY = 100


class ExpressionPrinter:
    """Base printer for C-family syntax."""

    OPERATORS: Dict[BinaryOperator, str] = {
        BinaryOperator.AND: "&&",
        BinaryOperator.OR: "||",
        BinaryOperator.EQUALS: "==",
        BinaryOperator.NOT_EQUALS: "!=",
        BinaryOperator.GREATER_THAN: ">",
        BinaryOperator.GREATER_EQUAL: ">=",
        BinaryOperator.LESS_THAN: "<",
        BinaryOperator.LESS_EQUAL: "<=",
    }

    TERNARY = 1
    PRECEDENCE: Dict[BinaryOperator, int] = {
        BinaryOperator.OR: 2,
        BinaryOperator.AND: 3,
        BinaryOperator.EQUALS: 4,
        BinaryOperator.NOT_EQUALS: 4,
        BinaryOperator.GREATER_THAN: 5,
        BinaryOperator.GREATER_EQUAL: 5,
        BinaryOperator.LESS_THAN: 5,
        BinaryOperator.LESS_EQUAL: 5,
    }
    NULL_CHECK = 4
    NOT = 6

    # Python chains comparisons, so comparison operands always need parentheses there
    CHAINED_COMPARISONS = False

    def print(self, expr: Expression) -> str:
        return self._print(expr)[0]

    def _wrap(self, expr: Expression, minimum: int) -> str:
        text, precedence = self._print(expr)
        return f"({text})" if precedence < minimum else text

    def _print(self, expr: Expression) -> Tuple[str, int]:
        if isinstance(expr, Literal):
            return self.literal(expr.value), PRIMARY

        if isinstance(expr, MemberAccess):
            return self.member(expr), PRIMARY

        if isinstance(expr, NullCheck):
            operand = self._wrap(expr.operand, self.NULL_CHECK + 1)
            return self.null_check(operand, expr.negated), self.NULL_CHECK

        if isinstance(expr, UnaryExpression):
            if expr.operator != UnaryOperator.NOT:
                raise TypeError(f"Unsupported unary operator: {expr.operator}")
            return self.negate(self._wrap(expr.operand, self.NOT)), self.NOT

        if isinstance(expr, BinaryExpression):
            precedence = self.PRECEDENCE[expr.operator]
            left_minimum = precedence
            if self.CHAINED_COMPARISONS and not expr.operator.is_logical:
                left_minimum = precedence + 1
            left = self._wrap(expr.left, left_minimum)
            right = self._wrap(expr.right, precedence + 1)
            return f"{left} {self.OPERATORS[expr.operator]} {right}", precedence

        if isinstance(expr, Ternary):
            condition = self._wrap(expr.condition, self.TERNARY + 1)
            when_true = self._wrap(expr.when_true, self.TERNARY + 1)
            when_false = self._wrap(expr.when_false, self.TERNARY)
            return self.ternary(condition, when_true, when_false), self.TERNARY

        raise TypeError(f"Unsupported Expression type: {type(expr)}")

    # Hooks

    def literal(self, value) -> str:
        raise NotImplementedError

    def member(self, expr: MemberAccess) -> str:
        raise NotImplementedError

    def null_check(self, operand: str, negated: bool) -> str:
        return f"{operand} {'!=' if negated else '=='} null"

    def negate(self, operand: str) -> str:
        return f"!{operand}"

    def ternary(self, condition: str, when_true: str, when_false: str) -> str:
        return f"{condition} ? {when_true} : {when_false}"
