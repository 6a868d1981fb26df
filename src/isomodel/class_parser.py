"""
Class Parser for isomodel (Layer 1: Authoring Source → Manifest).

Converts Python view-model class definitions into ClassDescriptors
without importing or executing them.

Source Format:
    class Movie(Media):
        title = ''                      # string
        extras = [Extra()]              # sequence-of(Extra)
        poster = Image()                # reference-to(Image)
        trailer: Trailer = None         # nullable(Trailer), needs the hint

        @property
        def has_badge(self):
            return self.is_new and self.trailer is not None

Building runs in two passes so that classes may reference each other
across files in any order:
    1. parse_class_source / parse_class_file collect RawClass records
    2. build_manifests resolves parents and property types
"""

import ast
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Union

from .errors import (
    ClassSourceError,
    DuplicatePropertyError,
    ManifestError,
    UnresolvedTypeError,
    UnsupportedExpressionError,
)
from .model import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    STRING,
    ClassDescriptor,
    DefaultValue,
    ManifestSet,
    PropertyDescriptor,
    ReferenceType,
    SequenceType,
    TypeRef,
    describe_type,
    nullable,
)

logger = logging.getLogger(__name__)

_PRIMITIVE_HINTS = {
    "str": STRING,
    "bool": BOOLEAN,
    "int": INTEGER,
    "float": FLOAT,
}
_SEQUENCE_HINTS = {"List", "list", "Sequence", "Iterable"}
_OPTIONAL_HINTS = {"Optional"}


@dataclass
class RawField:
    """A field initializer statement, before type inference."""
    name: str
    value: Optional[ast.expr]
    annotation: Optional[ast.expr]
    lineno: int = 0


@dataclass
class RawAccessor:
    """A @property accessor, reduced to its single returned expression."""
    name: str
    expression: ast.expr
    returns: Optional[ast.expr]
    lineno: int = 0


RawMember = Union[RawField, RawAccessor]


@dataclass
class RawClass:
    """One class definition as written, in declaration order."""
    name: str
    base: Optional[str]
    members: List[RawMember] = field(default_factory=list)
    source: Optional[str] = None
    lineno: int = 0


def _is_property_decorator(node: ast.expr) -> bool:
    return isinstance(node, ast.Name) and node.id == "property"


def _is_setter_decorator(node: ast.expr) -> bool:
    return isinstance(node, ast.Attribute) and node.attr in ("setter", "deleter")


def _strip_docstring(body: List[ast.stmt]) -> List[ast.stmt]:
    if (body and isinstance(body[0], ast.Expr)
            and isinstance(body[0].value, ast.Constant)
            and isinstance(body[0].value.value, str)):
        return body[1:]
    return body


def _base_name(node: ast.ClassDef) -> Optional[str]:
    if not node.bases:
        return None
    if len(node.bases) > 1:
        raise UnresolvedTypeError("multiple inheritance is not supported", class_name=node.name)
    base = node.bases[0]
    if isinstance(base, ast.Name):
        name = base.id
    elif isinstance(base, ast.Attribute):
        name = base.attr
    else:
        raise UnresolvedTypeError("base class must be a plain name", class_name=node.name)
    return None if name == "object" else name


def _parse_accessor(class_name: str, node: ast.FunctionDef) -> RawAccessor:
    body = _strip_docstring(node.body)
    if len(body) != 1 or not isinstance(body[0], ast.Return) or body[0].value is None:
        raise UnsupportedExpressionError(
            "accessor body must be a single return statement",
            class_name=class_name,
            property_name=node.name,
        )
    return RawAccessor(
        name=node.name,
        expression=body[0].value,
        returns=node.returns,
        lineno=node.lineno,
    )


def _parse_class(node: ast.ClassDef, source: Optional[str]) -> RawClass:
    raw = RawClass(name=node.name, base=_base_name(node), source=source, lineno=node.lineno)

    for stmt in _strip_docstring(node.body):
        if isinstance(stmt, ast.Assign):
            if len(stmt.targets) != 1 or not isinstance(stmt.targets[0], ast.Name):
                raise ClassSourceError(
                    f"line {stmt.lineno}: only simple 'name = value' field initializers are supported",
                    class_name=node.name,
                )
            raw.members.append(RawField(stmt.targets[0].id, stmt.value, None, stmt.lineno))
        elif isinstance(stmt, ast.AnnAssign):
            if not isinstance(stmt.target, ast.Name):
                raise ClassSourceError(
                    f"line {stmt.lineno}: only simple annotated field initializers are supported",
                    class_name=node.name,
                )
            raw.members.append(RawField(stmt.target.id, stmt.value, stmt.annotation, stmt.lineno))
        elif isinstance(stmt, ast.FunctionDef):
            if any(_is_setter_decorator(d) for d in stmt.decorator_list):
                raise UnsupportedExpressionError(
                    "computed properties are read-only; setters are not supported",
                    class_name=node.name,
                    property_name=stmt.name,
                )
            if any(_is_property_decorator(d) for d in stmt.decorator_list):
                raw.members.append(_parse_accessor(node.name, stmt))
            else:
                logger.debug("%s: skipping method %s", node.name, stmt.name)
        else:
            logger.debug("%s: skipping %s statement at line %d",
                         node.name, type(stmt).__name__, stmt.lineno)

    return raw


def parse_class_source(source: str, filename: str = "<source>") -> List[RawClass]:
    """
    Collect raw class definitions from Python source text (pass 1).

    Args:
        source: Python source text
        filename: Used in error messages and stored on each RawClass

    Returns:
        RawClass records in declaration order

    Raises:
        ClassSourceError: If the source is not valid Python
    """
    try:
        tree = ast.parse(source, filename=filename)
    except SyntaxError as e:
        raise ClassSourceError(f"{filename}:{e.lineno}: {e.msg}") from e

    return [
        _parse_class(node, filename)
        for node in tree.body
        if isinstance(node, ast.ClassDef)
    ]


def parse_class_file(filepath: str) -> List[RawClass]:
    """
    Collect raw class definitions from a file (pass 1).

    Raises:
        FileNotFoundError: If file doesn't exist
        ClassSourceError: If the file is not valid Python
    """
    with open(filepath, "r", encoding="utf-8") as f:
        content = f.read()
    return parse_class_source(content, filename=filepath)


# =========================================================================
# TYPE INFERENCE
# =========================================================================

def _literal_type(node: ast.expr) -> Optional[Tuple[TypeRef, DefaultValue]]:
    """Rule 1: string/boolean/numeric literal, including negated numbers."""
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        inner = _literal_type(node.operand)
        if inner is None or inner[0] not in (INTEGER, FLOAT):
            return None
        value = inner[1]
        return inner[0], -value if isinstance(node.op, ast.USub) else value

    if not isinstance(node, ast.Constant):
        return None
    value = node.value
    # bool is a subclass of int, so it must be checked first
    if isinstance(value, bool):
        return BOOLEAN, value
    if isinstance(value, str):
        return STRING, value
    if isinstance(value, int):
        return INTEGER, value
    if isinstance(value, float):
        return FLOAT, value
    return None


def _constructor_name(node: ast.expr) -> Optional[str]:
    if not isinstance(node, ast.Call):
        return None
    if isinstance(node.func, ast.Name):
        return node.func.id
    if isinstance(node.func, ast.Attribute):
        return node.func.attr
    return None


def type_from_hint(node: ast.expr, known: Set[str], class_name: str, prop: str) -> TypeRef:
    """Translate an adjacent type hint into a TypeRef."""

    def fail(detail: str) -> UnresolvedTypeError:
        return UnresolvedTypeError(detail, class_name=class_name, property_name=prop)

    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        try:
            parsed = ast.parse(node.value, mode="eval").body
        except SyntaxError as e:
            raise fail(f"unparseable type hint {node.value!r}") from e
        return type_from_hint(parsed, known, class_name, prop)

    if isinstance(node, (ast.Name, ast.Attribute)):
        name = node.id if isinstance(node, ast.Name) else node.attr
        if name in _PRIMITIVE_HINTS:
            return _PRIMITIVE_HINTS[name]
        if name in known:
            return ReferenceType(name)
        raise fail(f"type hint '{name}' names no primitive and no class with a manifest")

    if isinstance(node, ast.Subscript):
        outer = node.value
        outer_name = outer.id if isinstance(outer, ast.Name) else getattr(outer, "attr", None)
        if outer_name in _SEQUENCE_HINTS:
            return SequenceType(type_from_hint(node.slice, known, class_name, prop))
        if outer_name in _OPTIONAL_HINTS:
            return nullable(type_from_hint(node.slice, known, class_name, prop))
        raise fail(f"unsupported generic type hint '{outer_name}'")

    if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
        sides = [node.left, node.right]
        none_sides = [s for s in sides if isinstance(s, ast.Constant) and s.value is None]
        if len(none_sides) == 1:
            other = node.right if none_sides[0] is node.left else node.left
            return nullable(type_from_hint(other, known, class_name, prop))
        raise fail("union type hints are only supported as 'T | None'")

    raise fail(f"unsupported type hint ({type(node).__name__})")


def _type_from_value(node: ast.expr, known: Set[str], class_name: str,
                     prop: str) -> Optional[Tuple[TypeRef, DefaultValue]]:
    """Rules 1-3. Returns None when the value is null-like (rule 4 applies)."""
    if isinstance(node, ast.Constant) and node.value is None:
        return None

    literal = _literal_type(node)
    if literal is not None:
        return literal

    if isinstance(node, ast.List):
        if len(node.elts) != 1:
            raise UnresolvedTypeError(
                "sequence defaults must contain exactly one example element",
                class_name=class_name,
                property_name=prop,
            )
        element = _type_from_value(node.elts[0], known, class_name, prop)
        if element is None:
            raise UnresolvedTypeError(
                "sequence example element must not be None",
                class_name=class_name,
                property_name=prop,
            )
        return SequenceType(element[0]), None

    ctor = _constructor_name(node)
    if ctor is not None:
        if ctor not in known:
            raise UnresolvedTypeError(
                f"default constructs '{ctor}', which has no manifest",
                class_name=class_name,
                property_name=prop,
            )
        return ReferenceType(ctor), None

    raise UnresolvedTypeError(
        f"cannot infer a type from a {type(node).__name__} default",
        class_name=class_name,
        property_name=prop,
    )


def infer_field_type(raw: RawField, known: Set[str], class_name: str) -> Tuple[TypeRef, DefaultValue]:
    """
    Infer one field's type, in priority order:
        1. literal -> primitive
        2. [Element()] -> sequence-of(Element)
        3. Element() -> reference-to(Element)
        4. None/absent -> the adjacent hint, or UnresolvedTypeError

    Returns:
        (type, default) where default is the literal for primitives

    Raises:
        UnresolvedTypeError: If no rule applies
    """
    if (isinstance(raw.value, ast.List) and len(raw.value.elts) != 1
            and raw.annotation is not None):
        hinted = type_from_hint(raw.annotation, known, class_name, raw.name)
        if not isinstance(hinted, SequenceType):
            raise UnresolvedTypeError(
                f"list default with a non-sequence hint ({describe_type(hinted)})",
                class_name=class_name,
                property_name=raw.name,
            )
        return hinted, None

    if raw.value is not None:
        inferred = _type_from_value(raw.value, known, class_name, raw.name)
        if inferred is not None:
            return inferred

    if raw.annotation is None:
        raise UnresolvedTypeError(
            "default is None or absent and there is no type hint",
            class_name=class_name,
            property_name=raw.name,
        )

    hinted = type_from_hint(raw.annotation, known, class_name, raw.name)
    if raw.value is not None:
        # explicit None default
        hinted = nullable(hinted)
    return hinted, None


# =========================================================================
# PASS 2: RESOLUTION
# =========================================================================

def _link_parents(raw_classes: List[RawClass], shells: Dict[str, ClassDescriptor]) -> None:
    for raw in raw_classes:
        if raw.base is None:
            continue
        parent = shells.get(raw.base)
        if parent is None:
            raise UnresolvedTypeError(
                f"base class '{raw.base}' has no manifest",
                class_name=raw.name,
            )
        shells[raw.name].parent = parent

    for name, shell in shells.items():
        seen: Set[str] = set()
        for cls in shell.lineage():
            if cls.name in seen:
                raise UnresolvedTypeError("inheritance cycle", class_name=name)
            seen.add(cls.name)


def _fill_properties(raw: RawClass, descriptor: ClassDescriptor, known: Set[str]) -> None:
    for member in raw.members:
        if descriptor.get_property(member.name) is not None:
            raise DuplicatePropertyError(
                "property is declared more than once",
                class_name=raw.name,
                property_name=member.name,
            )
        if descriptor.parent is not None:
            owner = descriptor.parent.find_owner(member.name)
            if owner is not None:
                raise DuplicatePropertyError(
                    f"redeclares a property inherited from {owner.name}",
                    class_name=raw.name,
                    property_name=member.name,
                )

        if isinstance(member, RawField):
            prop_type, default = infer_field_type(member, known, raw.name)
            prop = PropertyDescriptor(name=member.name, type=prop_type, default=default)
        else:
            prop = PropertyDescriptor(
                name=member.name,
                computed=True,
                raw_expression=member.expression,
                raw_annotation=member.returns,
            )
        descriptor.properties.append(prop)


def build_manifests(raw_classes: List[RawClass]) -> ManifestSet:
    """
    Resolve raw classes into a ManifestSet (pass 2).

    Computed properties come out with raw expressions only; the
    transpiler fills in their expression trees and return types.

    Raises:
        ManifestError: On duplicate class names
        UnresolvedTypeError: On unknown parents, cycles or uninferable fields
        DuplicatePropertyError: On repeated property names
    """
    shells: Dict[str, ClassDescriptor] = {}
    for raw in raw_classes:
        if raw.name in shells:
            raise ManifestError(
                f"class is declared more than once (again in {raw.source})",
                class_name=raw.name,
            )
        shells[raw.name] = ClassDescriptor(name=raw.name, source=raw.source)

    _link_parents(raw_classes, shells)

    known = set(shells)
    raw_by_name = {raw.name: raw for raw in raw_classes}
    done: Set[str] = set()

    def fill(name: str) -> None:
        if name in done:
            return
        descriptor = shells[name]
        if descriptor.parent is not None:
            fill(descriptor.parent.name)
        _fill_properties(raw_by_name[name], descriptor, known)
        done.add(name)

    manifests = ManifestSet()
    for raw in raw_classes:
        fill(raw.name)
        manifests.add(shells[raw.name])

    logger.debug("resolved %d classes", len(manifests))
    return manifests


def parse_class_string(source: str, filename: str = "<source>") -> ManifestSet:
    """Both passes over a single source text."""
    return build_manifests(parse_class_source(source, filename=filename))


__all__ = [
    "RawClass",
    "RawField",
    "RawAccessor",
    "parse_class_source",
    "parse_class_file",
    "parse_class_string",
    "build_manifests",
    "infer_field_type",
]
