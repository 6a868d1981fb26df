"""
Python dataclass generator.

Emits one module per ClassDescriptor for the dynamically typed runtime,
plus a package __init__ re-exporting every class.
"""

from typing import List

from ..expressions import BinaryOperator, MemberAccess
from ..model import (
    ClassDescriptor,
    ManifestSet,
    NullableType,
    PrimitiveKind,
    PrimitiveType,
    PropertyDescriptor,
    ReferenceType,
    SequenceType,
    TypeRef,
)
from .naming import to_snake_case
from .printer import ExpressionPrinter
from .typescript import imported_classes

INDENT = "    "
HEADER = "# Generated by isomodel. Do not edit."

_PRIMITIVES = {
    PrimitiveKind.STRING: "str",
    PrimitiveKind.BOOLEAN: "bool",
    PrimitiveKind.INTEGER: "int",
    PrimitiveKind.FLOAT: "float",
}

_ZERO_VALUES = {
    PrimitiveKind.STRING: '""',
    PrimitiveKind.BOOLEAN: "False",
    PrimitiveKind.INTEGER: "0",
    PrimitiveKind.FLOAT: "0.0",
}


class PythonPrinter(ExpressionPrinter):

    OPERATORS = dict(ExpressionPrinter.OPERATORS)
    OPERATORS[BinaryOperator.AND] = "and"
    OPERATORS[BinaryOperator.OR] = "or"

    PRECEDENCE = {
        BinaryOperator.OR: 2,
        BinaryOperator.AND: 3,
        BinaryOperator.EQUALS: 5,
        BinaryOperator.NOT_EQUALS: 5,
        BinaryOperator.GREATER_THAN: 5,
        BinaryOperator.GREATER_EQUAL: 5,
        BinaryOperator.LESS_THAN: 5,
        BinaryOperator.LESS_EQUAL: 5,
    }
    NOT = 4
    NULL_CHECK = 5
    CHAINED_COMPARISONS = True

    def literal(self, value) -> str:
        return repr(value)

    def member(self, expr: MemberAccess) -> str:
        prefixes = []
        text = "self"
        for index, segment in enumerate(expr.path):
            if index in expr.null_safe:
                prefixes.append(text)
            text += f".{segment}"
        if not prefixes:
            return text
        guards = " and ".join(f"{p} is not None" for p in prefixes)
        return f"({text} if {guards} else None)"

    def null_check(self, operand: str, negated: bool) -> str:
        return f"{operand} {'is not' if negated else 'is'} None"

    def negate(self, operand: str) -> str:
        return f"not {operand}"

    def ternary(self, condition: str, when_true: str, when_false: str) -> str:
        return f"{when_true} if {condition} else {when_false}"


def python_type(t: TypeRef) -> str:
    if isinstance(t, PrimitiveType):
        return _PRIMITIVES[t.kind]
    if isinstance(t, ReferenceType):
        return t.class_name
    if isinstance(t, SequenceType):
        return f"List[{python_type(t.element)}]"
    if isinstance(t, NullableType):
        return f"Optional[{python_type(t.inner)}]"
    raise TypeError(f"Unsupported type: {t!r}")


def _default(prop: PropertyDescriptor) -> str:
    t = prop.type
    if isinstance(t, NullableType):
        return "None"
    if isinstance(t, PrimitiveType):
        return repr(prop.default) if prop.default is not None else _ZERO_VALUES[t.kind]
    if isinstance(t, SequenceType):
        return "field(default_factory=list)"
    return f"field(default_factory={t.class_name})"


def _contains(t: TypeRef, kind: type) -> bool:
    if isinstance(t, kind):
        return True
    if isinstance(t, SequenceType):
        return _contains(t.element, kind)
    if isinstance(t, NullableType):
        return _contains(t.inner, kind)
    return False


def module_name(class_name: str) -> str:
    return to_snake_case(class_name)


def python_file_name(descriptor: ClassDescriptor) -> str:
    return f"{module_name(descriptor.name)}.py"


def generate_python(descriptor: ClassDescriptor) -> str:
    """Generate a dataclass module for one class."""
    printer = PythonPrinter()

    body: List[str] = []
    types: List[TypeRef] = []
    after_accessor = False
    for prop in descriptor.properties:
        types.append(prop.type)
        if prop.computed:
            if body:
                body.append("")
            body.append(f"{INDENT}@property")
            body.append(f"{INDENT}def {prop.name}(self) -> {python_type(prop.type)}:")
            body.append(f"{INDENT * 2}return {printer.print(prop.expression)}")
            after_accessor = True
            continue
        if after_accessor:
            body.append("")
            after_accessor = False
        body.append(f"{INDENT}{prop.name}: {python_type(prop.type)} = {_default(prop)}")
    if not body:
        body.append(f"{INDENT}pass")

    uses_field = any(
        not p.computed and not isinstance(p.type, (PrimitiveType, NullableType))
        for p in descriptor.properties
    )
    typing_names = [
        name for name, kind in (("List", SequenceType), ("Optional", NullableType))
        if any(_contains(t, kind) for t in types)
    ]

    lines = [HEADER, "from __future__ import annotations", ""]
    if uses_field:
        lines.append("from dataclasses import dataclass, field")
    else:
        lines.append("from dataclasses import dataclass")
    if typing_names:
        lines.append(f"from typing import {', '.join(typing_names)}")

    imports = imported_classes(descriptor)
    if imports:
        lines.append("")
        for name in imports:
            lines.append(f"from .{module_name(name)} import {name}")

    base = f"({descriptor.parent.name})" if descriptor.parent else ""
    lines.extend(["", "", "@dataclass", f"class {descriptor.name}{base}:"])
    lines.extend(body)
    return "\n".join(lines) + "\n"


def generate_python_package(manifests: ManifestSet) -> str:
    """Generate the package __init__ re-exporting every generated class."""
    names = sorted(manifests.names(), key=module_name)
    lines = [HEADER]
    for name in names:
        lines.append(f"from .{module_name(name)} import {name}")
    lines.append("")
    lines.append("__all__ = [")
    for name in sorted(names):
        lines.append(f'{INDENT}"{name}",')
    lines.append("]")
    return "\n".join(lines) + "\n"


__all__ = [
    "PythonPrinter",
    "python_type",
    "python_file_name",
    "generate_python",
    "generate_python_package",
]
