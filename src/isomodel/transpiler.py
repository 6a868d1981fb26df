"""
Expression Transpiler (Layer 2: accessor AST → portable expression tree).

Converts the single returned expression of each @property accessor into
an isomodel Expression tree and infers its return type.

Supported Python constructs:
    self.a.b.c               member access (null-propagating through nullables)
    and / or / not           boolean operators
    == != < <= > >=          comparisons (chains become AND)
    x is None, x != None     null checks
    a if c else b            ternary
    str/int/float/bool/None  literals

Everything else (calls, arithmetic, subscripts, comprehensions, lambdas,
assignment expressions, free names) raises UnsupportedExpressionError.

Comparisons are typed. Ordering operators take integer or float operands;
a nullable operand gets an explicit "is not None" guard so a missing value
compares false everywhere. Equality takes primitive operands of the same
type, with integer and float interchangeable.
"""

import ast
import logging
from dataclasses import dataclass
from typing import Optional, Set, Tuple

from .class_parser import type_from_hint
from .errors import AmbiguousReturnType, UnresolvedTypeError, UnsupportedExpressionError
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
from .model import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    STRING,
    ClassDescriptor,
    ManifestSet,
    NullableType,
    PrimitiveType,
    PropertyDescriptor,
    ReferenceType,
    TypeRef,
    describe_type,
    nullable,
    strip_nullable,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _NullLiteralType(TypeRef):
    """Type of a bare None literal; never escapes the transpiler."""


NULL = _NullLiteralType()

_COMPARISONS = {
    ast.Eq: BinaryOperator.EQUALS,
    ast.NotEq: BinaryOperator.NOT_EQUALS,
    ast.Lt: BinaryOperator.LESS_THAN,
    ast.LtE: BinaryOperator.LESS_EQUAL,
    ast.Gt: BinaryOperator.GREATER_THAN,
    ast.GtE: BinaryOperator.GREATER_EQUAL,
}

_RELATIONAL = {
    BinaryOperator.GREATER_THAN,
    BinaryOperator.GREATER_EQUAL,
    BinaryOperator.LESS_THAN,
    BinaryOperator.LESS_EQUAL,
}

_NUMERIC = (INTEGER, FLOAT)

Typed = Tuple[Expression, TypeRef]


def _is_none(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is None


class ExpressionTranspiler:
    """
    Transpile one accessor expression in the scope of its class.

    Member references are resolved against `descriptor` and its
    ancestors; nested segments are resolved against the referenced
    classes in `manifests`.
    """

    def __init__(self, descriptor: ClassDescriptor, prop: PropertyDescriptor,
                 manifests: ManifestSet, in_progress: Optional[Set[Tuple[str, str]]] = None):
        self.descriptor = descriptor
        self.prop = prop
        self.manifests = manifests
        self.in_progress = in_progress if in_progress is not None else set()

    def _unsupported(self, detail: str) -> UnsupportedExpressionError:
        return UnsupportedExpressionError(detail, class_name=self.descriptor.name,
                                          property_name=self.prop.name)

    def _unresolved(self, detail: str) -> UnresolvedTypeError:
        return UnresolvedTypeError(detail, class_name=self.descriptor.name,
                                   property_name=self.prop.name)

    def transpile(self, node: ast.expr) -> Typed:
        expr, result_type = self.emit(node)
        if result_type is NULL:
            raise self._unresolved("expression always evaluates to None")
        return expr, result_type

    def emit(self, node: ast.expr) -> Typed:
        if isinstance(node, ast.Constant):
            return self._emit_constant(node)
        if isinstance(node, ast.Attribute):
            return self._emit_member(node)
        if isinstance(node, ast.BoolOp):
            return self._emit_boolop(node)
        if isinstance(node, ast.UnaryOp):
            return self._emit_unaryop(node)
        if isinstance(node, ast.Compare):
            return self._emit_compare(node)
        if isinstance(node, ast.IfExp):
            return self._emit_ternary(node)
        if isinstance(node, ast.Name):
            if node.id == "self":
                raise self._unsupported("bare 'self' cannot be returned")
            raise self._unsupported(
                f"free name '{node.id}'; only self.<property> may be referenced"
            )
        if isinstance(node, ast.Call):
            raise self._unsupported("function calls are not allowed in computed properties")
        raise self._unsupported(f"unsupported expression: {type(node).__name__}")

    def _emit_constant(self, node: ast.Constant) -> Typed:
        v = node.value
        if v is None:
            return Literal(None), NULL
        if isinstance(v, bool):
            return Literal(v), BOOLEAN
        if isinstance(v, str):
            return Literal(v), STRING
        if isinstance(v, int):
            return Literal(v), INTEGER
        if isinstance(v, float):
            return Literal(v), FLOAT
        raise self._unsupported(f"unsupported constant type: {type(v).__name__}")

    def _condition(self, node: ast.expr) -> Expression:
        """Emit an operand used for its truth value."""
        expr, t = self.emit(node)
        if t == BOOLEAN:
            return expr
        if isinstance(t, NullableType) and t.inner != BOOLEAN:
            return NullCheck(expr, negated=True)
        raise self._unsupported(
            f"truthiness of {describe_type(t)} is not portable; compare explicitly"
        )

    def _emit_boolop(self, node: ast.BoolOp) -> Typed:
        op = BinaryOperator.AND if isinstance(node.op, ast.And) else BinaryOperator.OR
        values = [self._condition(v) for v in node.values]
        result = values[0]
        for v in values[1:]:
            result = BinaryExpression(op, result, v)
        return result, BOOLEAN

    def _emit_unaryop(self, node: ast.UnaryOp) -> Typed:
        if isinstance(node.op, ast.Not):
            return UnaryExpression(UnaryOperator.NOT, self._condition(node.operand)), BOOLEAN
        if isinstance(node.op, ast.USub) and isinstance(node.operand, ast.Constant):
            expr, t = self._emit_constant(node.operand)
            if t in (INTEGER, FLOAT):
                return Literal(-node.operand.value), t
        raise self._unsupported(f"unsupported unary operator: {type(node.op).__name__}")

    def _emit_compare(self, node: ast.Compare) -> Typed:
        operands = [node.left, *node.comparators]
        parts = [
            self._build_comparison(operands[i], op, operands[i + 1])
            for i, op in enumerate(node.ops)
        ]
        result = parts[0]
        for part in parts[1:]:
            result = BinaryExpression(BinaryOperator.AND, result, part)
        return result, BOOLEAN

    def _build_comparison(self, left: ast.expr, op: ast.cmpop, right: ast.expr) -> Expression:
        null_test = isinstance(op, (ast.Is, ast.IsNot, ast.Eq, ast.NotEq))
        if null_test and (_is_none(left) or _is_none(right)):
            if _is_none(left) and _is_none(right):
                raise self._unsupported("comparison of None with None")
            subject = right if _is_none(left) else left
            expr, _ = self.emit(subject)
            return NullCheck(expr, negated=isinstance(op, (ast.IsNot, ast.NotEq)))

        if isinstance(op, (ast.Is, ast.IsNot)):
            raise self._unsupported("identity comparison is only supported against None")

        operator = _COMPARISONS.get(type(op))
        if operator is None:
            raise self._unsupported(f"unsupported comparison operator: {type(op).__name__}")
        left_expr, left_type = self.emit(left)
        right_expr, right_type = self.emit(right)
        if operator not in _RELATIONAL:
            self._check_equality(left_type, right_type)
            return BinaryExpression(operator, left_expr, right_expr)

        for t in (left_type, right_type):
            if strip_nullable(t) not in _NUMERIC:
                raise self._unsupported(
                    f"ordering comparison of {describe_type(t)}; only integer and float are ordered"
                )

        # A null operand makes the comparison false in every target
        guards = [
            NullCheck(expr, negated=True)
            for expr, t in ((left_expr, left_type), (right_expr, right_type))
            if isinstance(t, NullableType)
        ]
        result: Expression = BinaryExpression(operator, left_expr, right_expr)
        if guards:
            guard = guards[0]
            for extra in guards[1:]:
                guard = BinaryExpression(BinaryOperator.AND, guard, extra)
            result = BinaryExpression(BinaryOperator.AND, guard, result)
        return result

    def _check_equality(self, left: TypeRef, right: TypeRef) -> None:
        a, b = strip_nullable(left), strip_nullable(right)
        if not (isinstance(a, PrimitiveType) and isinstance(b, PrimitiveType)):
            raise self._unsupported(
                f"equality between {describe_type(left)} and {describe_type(right)}; "
                "only primitive values compare the same way in every target"
            )
        if a != b and not (a in _NUMERIC and b in _NUMERIC):
            raise self._unsupported(
                f"equality between {describe_type(left)} and {describe_type(right)} is always false"
            )

    def _emit_ternary(self, node: ast.IfExp) -> Typed:
        condition = self._condition(node.test)
        when_true, true_type = self.emit(node.body)
        when_false, false_type = self.emit(node.orelse)
        return Ternary(condition, when_true, when_false), self._agree(true_type, false_type)

    def _agree(self, a: TypeRef, b: TypeRef) -> TypeRef:
        if a == b:
            return a
        if a is NULL:
            return nullable(b)
        if b is NULL:
            return nullable(a)
        if nullable(a) == nullable(b):
            return nullable(a)
        raise AmbiguousReturnType(
            f"ternary branches disagree: {describe_type(a)} vs {describe_type(b)}",
            class_name=self.descriptor.name,
            property_name=self.prop.name,
        )

    def _member_path(self, node: ast.Attribute) -> Tuple[str, ...]:
        segments = []
        current: ast.expr = node
        while isinstance(current, ast.Attribute):
            segments.append(current.attr)
            current = current.value
        if not (isinstance(current, ast.Name) and current.id == "self"):
            raise self._unsupported("member access must start from self")
        return tuple(reversed(segments))

    def _emit_member(self, node: ast.Attribute) -> Typed:
        path = self._member_path(node)
        receiver = self.descriptor
        null_safe = []
        may_be_null = False
        leaf: Optional[TypeRef] = None

        for index, segment in enumerate(path):
            if index > 0:
                if not isinstance(strip_nullable(leaf), ReferenceType):
                    raise self._unresolved(
                        f"'{'.'.join(path[:index])}' is {describe_type(leaf)} and has no members"
                    )
                if isinstance(leaf, NullableType):
                    may_be_null = True
                    null_safe.append(index)
                target = self.manifests.get_class(strip_nullable(leaf).class_name)
                if target is None:
                    raise self._unresolved(
                        f"class '{strip_nullable(leaf).class_name}' has no manifest"
                    )
                receiver = target

            owner = receiver.find_owner(segment)
            if owner is None:
                raise self._unresolved(
                    f"'{'.'.join(path[:index + 1])}' does not name a property of {receiver.name}"
                )
            prop = owner.get_property(segment)
            if prop.computed and prop.type is None:
                ensure_transpiled(owner, prop, self.manifests, self.in_progress)
            leaf = prop.type

        result = nullable(leaf) if may_be_null else leaf
        return MemberAccess(path, tuple(null_safe)), result


def ensure_transpiled(descriptor: ClassDescriptor, prop: PropertyDescriptor,
                      manifests: ManifestSet,
                      in_progress: Optional[Set[Tuple[str, str]]] = None) -> None:
    """
    Transpile one computed property in place (no-op if already done).

    Raises:
        UnsupportedExpressionError: On disallowed constructs or reference cycles
        UnresolvedTypeError: On references to unknown members
        AmbiguousReturnType: On disagreeing branches or annotation
    """
    if not prop.computed or prop.expression is not None:
        return
    if in_progress is None:
        in_progress = set()
    key = (descriptor.name, prop.name)
    if key in in_progress:
        raise UnsupportedExpressionError(
            "computed properties reference each other in a cycle",
            class_name=descriptor.name,
            property_name=prop.name,
        )
    if prop.raw_expression is None:
        raise UnsupportedExpressionError(
            "computed property has no expression",
            class_name=descriptor.name,
            property_name=prop.name,
        )

    in_progress.add(key)
    try:
        transpiler = ExpressionTranspiler(descriptor, prop, manifests, in_progress)
        expr, inferred = transpiler.transpile(prop.raw_expression)
    finally:
        in_progress.discard(key)

    if prop.raw_annotation is not None:
        declared = type_from_hint(prop.raw_annotation, set(manifests.names()),
                                   descriptor.name, prop.name)
        if declared != inferred and declared != nullable(inferred):
            raise AmbiguousReturnType(
                f"annotated as {describe_type(declared)} but the expression is "
                f"{describe_type(inferred)}",
                class_name=descriptor.name,
                property_name=prop.name,
            )
        inferred = declared

    prop.expression = expr
    prop.type = inferred
    logger.debug("%s.%s -> %s", descriptor.name, prop.name, describe_type(inferred))


def transpile_class(descriptor: ClassDescriptor, manifests: ManifestSet) -> ClassDescriptor:
    """Transpile every computed property of one class in place."""
    for prop in descriptor.computed_properties:
        ensure_transpiled(descriptor, prop, manifests)
    return descriptor


def transpile_manifests(manifests: ManifestSet) -> ManifestSet:
    """Transpile every computed property of every class in place."""
    for descriptor in manifests:
        transpile_class(descriptor, manifests)
    return manifests


__all__ = [
    "ExpressionTranspiler",
    "ensure_transpiled",
    "transpile_class",
    "transpile_manifests",
]
