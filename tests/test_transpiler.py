"""
Tests for the expression transpiler (accessor AST → portable expression).

Tests cover:
    - Member access, including nested and null-propagating chains
    - Boolean, comparison, null-check and ternary translation
    - Return type inference and annotations
    - Computed properties referencing each other
    - Rejection of constructs outside the portable subset
"""

import pytest
from isomodel.class_parser import parse_class_string
from isomodel.errors import AmbiguousReturnType, UnresolvedTypeError, UnsupportedExpressionError
from isomodel.expressions import (
    BinaryExpression,
    BinaryOperator,
    Literal,
    MemberAccess,
    NullCheck,
    Ternary,
    UnaryExpression,
    UnaryOperator,
    referenced_members,
)
from isomodel.model import BOOLEAN, INTEGER, STRING, NullableType
from isomodel.transpiler import transpile_class, transpile_manifests

MODELS = """
class Image:
    url = ''

class Trailer:
    url = ''
    duration = 0.0

class Media:
    title = ''
    poster = Image()

class Movie(Media):
    is_new = False
    rating = 0
    tags = ['']
    trailer: Trailer = None
    score: int = None
"""


def transpile_value(expression, annotation=""):
    """Add `value` returning `expression` to Movie and transpile it."""
    source = MODELS + (
        "\n"
        "    @property\n"
        f"    def value(self){annotation}:\n"
        f"        return {expression}\n"
    )
    manifests = transpile_manifests(parse_class_string(source))
    return manifests.get_class("Movie").get_property("value")


class TestHasBadgeScenario:
    """The is_new-and-trailer badge property."""

    def test_expression_tree(self):
        """Should become AND(is_new, trailer is not null)."""
        prop = transpile_value("self.is_new and self.trailer is not None")
        assert prop.expression == BinaryExpression(
            BinaryOperator.AND,
            MemberAccess(("is_new",)),
            NullCheck(MemberAccess(("trailer",)), negated=True),
        )

    def test_returns_boolean(self):
        """Should infer a boolean return type."""
        prop = transpile_value("self.is_new and self.trailer is not None")
        assert prop.type == BOOLEAN
        assert prop.return_type == BOOLEAN

    def test_references(self):
        """Should reference exactly is_new and trailer."""
        prop = transpile_value("self.is_new and self.trailer is not None")
        assert referenced_members(prop.expression) == (("is_new",), ("trailer",))


class TestMemberAccess:
    """Test member chains."""

    def test_own_field(self):
        """A bare member has the member's type."""
        prop = transpile_value("self.rating")
        assert prop.expression == MemberAccess(("rating",))
        assert prop.type == INTEGER

    def test_inherited_field(self):
        """Members of ancestors resolve too."""
        prop = transpile_value("self.title")
        assert prop.type == STRING

    def test_nested_through_reference(self):
        """Nested access through a non-null reference is plain."""
        prop = transpile_value("self.poster.url")
        assert prop.expression == MemberAccess(("poster", "url"))
        assert prop.type == STRING

    def test_nested_through_nullable(self):
        """Access through a nullable reference is null-propagating."""
        prop = transpile_value("self.trailer.url")
        assert prop.expression == MemberAccess(("trailer", "url"), null_safe=(1,))
        assert prop.type == NullableType(STRING)

    def test_unknown_member(self):
        """Unknown members fail with UnresolvedTypeError."""
        with pytest.raises(UnresolvedTypeError) as exc:
            transpile_value("self.missing")
        assert exc.value.class_name == "Movie"
        assert exc.value.property_name == "value"

    def test_member_of_primitive(self):
        """Primitives have no members."""
        with pytest.raises(UnresolvedTypeError):
            transpile_value("self.title.upper")

    def test_member_not_on_self(self):
        """Chains must start from self."""
        with pytest.raises(UnsupportedExpressionError):
            transpile_value("other.title")


class TestOperators:
    """Test boolean and comparison operators."""

    def test_not(self):
        """not becomes a NOT unary expression."""
        prop = transpile_value("not self.is_new")
        assert prop.expression == UnaryExpression(UnaryOperator.NOT, MemberAccess(("is_new",)))
        assert prop.type == BOOLEAN

    def test_or_of_three(self):
        """Boolean operators fold left."""
        prop = transpile_value("self.is_new or self.rating > 3 or self.rating < 1")
        assert prop.expression.operator == BinaryOperator.OR
        assert prop.expression.left.operator == BinaryOperator.OR

    def test_comparison_with_negative_literal(self):
        """Negative numbers are literals."""
        prop = transpile_value("self.rating >= -1")
        assert prop.expression == BinaryExpression(
            BinaryOperator.GREATER_EQUAL, MemberAccess(("rating",)), Literal(-1)
        )

    def test_chained_comparison(self):
        """a < b <= c becomes (a < b) AND (b <= c)."""
        prop = transpile_value("0 < self.rating <= 5")
        assert prop.expression == BinaryExpression(
            BinaryOperator.AND,
            BinaryExpression(BinaryOperator.LESS_THAN, Literal(0), MemberAccess(("rating",))),
            BinaryExpression(BinaryOperator.LESS_EQUAL, MemberAccess(("rating",)), Literal(5)),
        )

    def test_equals_none_is_null_check(self):
        """== None and is None both become null checks."""
        assert transpile_value("self.trailer == None").expression == NullCheck(MemberAccess(("trailer",)))
        assert transpile_value("None is self.trailer").expression == NullCheck(MemberAccess(("trailer",)))

    def test_nullable_operand_becomes_null_check(self):
        """A nullable reference used as a condition means 'is not null'."""
        prop = transpile_value("self.trailer and self.is_new")
        assert prop.expression.left == NullCheck(MemberAccess(("trailer",)), negated=True)

    def test_string_truthiness_rejected(self):
        """Truthiness of strings is not portable."""
        with pytest.raises(UnsupportedExpressionError):
            transpile_value("self.title and self.is_new")

    def test_sequence_truthiness_rejected(self):
        """Truthiness of sequences is not portable."""
        with pytest.raises(UnsupportedExpressionError):
            transpile_value("not self.tags")

    def test_identity_with_non_none_rejected(self):
        """is is only supported against None."""
        with pytest.raises(UnsupportedExpressionError):
            transpile_value("self.trailer is self.poster")


class TestComparisonTypes:
    """Comparison operands must compare the same way in every target."""

    def test_nullable_operand_guarded(self):
        """Ordering a nullable value adds an explicit not-null guard."""
        prop = transpile_value("self.score > 3")
        assert prop.expression == BinaryExpression(
            BinaryOperator.AND,
            NullCheck(MemberAccess(("score",)), negated=True),
            BinaryExpression(BinaryOperator.GREATER_THAN, MemberAccess(("score",)), Literal(3)),
        )
        assert prop.type == BOOLEAN

    def test_null_propagating_operand_guarded(self):
        """A member reached through a nullable reference is guarded too."""
        prop = transpile_value("self.trailer.duration > 90.0")
        duration = MemberAccess(("trailer", "duration"), null_safe=(1,))
        assert prop.expression == BinaryExpression(
            BinaryOperator.AND,
            NullCheck(duration, negated=True),
            BinaryExpression(BinaryOperator.GREATER_THAN, duration, Literal(90.0)),
        )

    def test_both_operands_guarded(self):
        """Each nullable side gets its own guard, left first."""
        prop = transpile_value("self.score < self.trailer.duration")
        guard = prop.expression.left
        assert guard == BinaryExpression(
            BinaryOperator.AND,
            NullCheck(MemberAccess(("score",)), negated=True),
            NullCheck(MemberAccess(("trailer", "duration"), null_safe=(1,)), negated=True),
        )

    def test_plain_operands_unguarded(self):
        """Non-nullable numbers compare directly, int against float included."""
        prop = transpile_value("self.rating >= 4.5")
        assert prop.expression == BinaryExpression(
            BinaryOperator.GREATER_EQUAL, MemberAccess(("rating",)), Literal(4.5)
        )

    def test_equality_of_matching_primitives(self):
        """Equality accepts primitives of one type, or int with float."""
        assert transpile_value("self.title == 'Heat'").type == BOOLEAN
        assert transpile_value("self.rating != 2.0").type == BOOLEAN
        assert transpile_value("self.score == 3").type == BOOLEAN

    @pytest.mark.parametrize("expression", [
        "self.title > 3",
        "self.title < 'm'",
        "self.is_new > False",
        "self.tags < self.title",
        "self.poster > self.poster",
        "self.rating < None",
        "self.title == 3",
        "self.is_new == 1",
        "self.poster == self.poster",
        "self.tags != self.tags",
    ])
    def test_rejected(self, expression):
        """Unordered or mismatched operands fail at build time."""
        with pytest.raises(UnsupportedExpressionError) as exc:
            transpile_value(expression)
        assert exc.value.property_name == "value"


class TestTernary:
    """Test conditional expressions."""

    def test_string_or_none(self):
        """A None branch makes the result nullable."""
        prop = transpile_value("'New' if self.is_new else None")
        assert prop.expression == Ternary(MemberAccess(("is_new",)), Literal("New"), Literal(None))
        assert prop.type == NullableType(STRING)

    def test_agreeing_branches(self):
        """Branches of the same type agree."""
        prop = transpile_value("self.title if self.is_new else 'Old'")
        assert prop.type == STRING

    def test_disagreeing_branches(self):
        """Branches of different types are ambiguous."""
        with pytest.raises(AmbiguousReturnType):
            transpile_value("'New' if self.is_new else 0")

    def test_nullable_and_plain_agree(self):
        """T and nullable(T) agree as nullable(T)."""
        prop = transpile_value("self.trailer.url if self.is_new else self.title")
        assert prop.type == NullableType(STRING)


class TestAnnotations:
    """Test return annotations."""

    def test_matching_annotation(self):
        """A matching annotation is accepted."""
        assert transpile_value("self.rating > 3", " -> bool").type == BOOLEAN

    def test_nullable_annotation_widens(self):
        """Annotating as Optional widens the type."""
        prop = transpile_value("self.title", " -> Optional[str]")
        assert prop.type == NullableType(STRING)

    def test_mismatched_annotation(self):
        """A contradicting annotation is ambiguous."""
        with pytest.raises(AmbiguousReturnType):
            transpile_value("self.rating > 3", " -> int")


class TestUnsupported:
    """Constructs outside the portable subset."""

    @pytest.mark.parametrize("expression", [
        "len(self.tags) > 0",
        "self.rating + 1",
        "self.tags[0]",
        "[t for t in self.tags]",
        "lambda: self.rating",
        "self",
        "self.rating in (1, 2)",
    ])
    def test_rejected(self, expression):
        """Should raise UnsupportedExpressionError."""
        with pytest.raises(UnsupportedExpressionError):
            transpile_value(expression)

    def test_always_none(self):
        """An expression that is always None has no type."""
        with pytest.raises(UnresolvedTypeError):
            transpile_value("None")


class TestComputedReferences:
    """Computed properties referencing each other."""

    def test_reference_declared_later(self):
        """A computed property may use one declared after it."""
        manifests = parse_class_string(
            "class A:\n"
            "    rating = 0\n"
            "\n"
            "    @property\n"
            "    def label(self):\n"
            "        return 'Top' if self.is_top else None\n"
            "\n"
            "    @property\n"
            "    def is_top(self):\n"
            "        return self.rating >= 4\n"
        )
        a = transpile_class(manifests.get_class("A"), manifests)
        assert a.get_property("label").type == NullableType(STRING)
        assert a.get_property("is_top").type == BOOLEAN

    def test_inherited_computed(self):
        """A child may use a parent's computed property."""
        manifests = transpile_manifests(parse_class_string(
            "class A:\n"
            "    rating = 0\n"
            "\n"
            "    @property\n"
            "    def is_top(self):\n"
            "        return self.rating >= 4\n"
            "\n"
            "class B(A):\n"
            "    @property\n"
            "    def is_low(self):\n"
            "        return not self.is_top\n"
        ))
        assert manifests.get_class("B").get_property("is_low").type == BOOLEAN

    def test_cycle_rejected(self):
        """Mutually recursive computed properties fail."""
        with pytest.raises(UnsupportedExpressionError):
            transpile_manifests(parse_class_string(
                "class A:\n"
                "    @property\n"
                "    def a(self):\n"
                "        return not self.b\n"
                "\n"
                "    @property\n"
                "    def b(self):\n"
                "        return not self.a\n"
            ))
