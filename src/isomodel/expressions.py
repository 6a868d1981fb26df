"""
Portable Expression Trees for Computed Properties

Every computed property is stored as a small tagged tree, never as
source text in any particular language.

This ensures:
    - The same tree backs every code generator
    - The tree can be evaluated as well as printed
    - Serialization capability

ARCHITECTURAL RULE:
    The tree has no node for calls, loops, assignment or object
    construction. Anything that cannot be expressed with the nodes below
    is rejected by the transpiler.
"""

from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class Expression(ABC):
    """
    Base class for all transpiled expressions.

    DO NOT:
        - Add evaluation logic here (belongs in evaluator.py)
        - Add string representations (belongs in backends)

    This class is structure only.
    """
    pass


class BinaryOperator(Enum):
    """
    Binary operators supported in portable expressions.

    Every operator here must print unambiguously in every backend.
    """

    # Logical operators
    AND = "AND"
    OR = "OR"

    # Comparison operators
    EQUALS = "=="
    NOT_EQUALS = "!="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    LESS_EQUAL = "<="

    @property
    def is_logical(self) -> bool:
        return self in (BinaryOperator.AND, BinaryOperator.OR)


@dataclass(frozen=True)
class BinaryExpression(Expression):
    """
    A boolean operation or a comparison.

    Example:
        self.is_new and self.rating >= 4

    Becomes:
        BinaryExpression(
            operator=BinaryOperator.AND,
            left=MemberAccess(("is_new",)),
            right=BinaryExpression(
                operator=BinaryOperator.GREATER_EQUAL,
                left=MemberAccess(("rating",)),
                right=Literal(4)
            )
        )
    """

    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class MemberAccess(Expression):
    """
    Reads a property of the instance, possibly through nested references.

    Examples:
        - ("title",)            self.title
        - ("poster", "url")     self.poster.url

    Properties:
        path: Property names, outermost first
        null_safe: Segment indexes whose receiver may be null; backends
            print null-propagating access for these.
    """

    path: Tuple[str, ...]
    null_safe: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Literal(Expression):
    """
    A literal constant (string, number, boolean or null).
    """

    value: Union[int, float, str, bool, None]


class UnaryOperator(Enum):
    NOT = "NOT"


@dataclass(frozen=True)
class UnaryExpression(Expression):
    """
    Boolean negation.

    Example:
        not self.is_archived
    """

    operator: UnaryOperator
    operand: Expression


@dataclass(frozen=True)
class NullCheck(Expression):
    """
    Explicit comparison against null.

    Example:
        self.trailer is not None  ->  NullCheck(MemberAccess(("trailer",)), negated=True)

    Properties:
        operand: Expression being tested
        negated: False for "is null", True for "is not null"
    """

    operand: Expression
    negated: bool = False


@dataclass(frozen=True)
class Ternary(Expression):
    """
    Conditional expression: when_true if condition else when_false.
    """

    condition: Expression
    when_true: Expression
    when_false: Expression


def referenced_members(expr: Expression) -> Tuple[Tuple[str, ...], ...]:
    """Every member path an expression reads, in first-seen order."""
    seen = []

    def walk(node: Expression) -> None:
        if isinstance(node, MemberAccess):
            if node.path not in seen:
                seen.append(node.path)
        elif isinstance(node, BinaryExpression):
            walk(node.left)
            walk(node.right)
        elif isinstance(node, UnaryExpression):
            walk(node.operand)
        elif isinstance(node, NullCheck):
            walk(node.operand)
        elif isinstance(node, Ternary):
            walk(node.condition)
            walk(node.when_true)
            walk(node.when_false)

    walk(expr)
    return tuple(seen)
