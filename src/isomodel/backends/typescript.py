"""
TypeScript class generator.

Emits one exported class per ClassDescriptor for the browser runtime.
Field names are camelCase; null checks print as `== null` / `!= null`
so optional-chained members that evaluate to `undefined` test the same
way as explicit nulls.
"""

import json
from typing import Set

from ..expressions import BinaryOperator, MemberAccess
from ..model import (
    ClassDescriptor,
    NullableType,
    PrimitiveKind,
    PrimitiveType,
    PropertyDescriptor,
    ReferenceType,
    SequenceType,
    TypeRef,
)
from .naming import to_camel_case
from .printer import ExpressionPrinter

INDENT = "  "

_PRIMITIVES = {
    PrimitiveKind.STRING: "string",
    PrimitiveKind.BOOLEAN: "boolean",
    PrimitiveKind.INTEGER: "number",
    PrimitiveKind.FLOAT: "number",
}

_ZERO_VALUES = {
    PrimitiveKind.STRING: '""',
    PrimitiveKind.BOOLEAN: "false",
    PrimitiveKind.INTEGER: "0",
    PrimitiveKind.FLOAT: "0",
}


def _literal(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, float):
        return repr(value)
    return str(value)


class TypeScriptPrinter(ExpressionPrinter):

    OPERATORS = dict(ExpressionPrinter.OPERATORS)
    OPERATORS[BinaryOperator.EQUALS] = "==="
    OPERATORS[BinaryOperator.NOT_EQUALS] = "!=="

    def literal(self, value) -> str:
        return _literal(value)

    def member(self, expr: MemberAccess) -> str:
        text = "this"
        for index, segment in enumerate(expr.path):
            dot = "?." if index in expr.null_safe else "."
            text += f"{dot}{to_camel_case(segment)}"
        return text


def typescript_type(t: TypeRef) -> str:
    if isinstance(t, PrimitiveType):
        return _PRIMITIVES[t.kind]
    if isinstance(t, ReferenceType):
        return t.class_name
    if isinstance(t, SequenceType):
        element = typescript_type(t.element)
        if isinstance(t.element, NullableType):
            element = f"({element})"
        return f"{element}[]"
    if isinstance(t, NullableType):
        return f"{typescript_type(t.inner)} | null"
    raise TypeError(f"Unsupported type: {t!r}")


def _initializer(prop: PropertyDescriptor) -> str:
    t = prop.type
    if isinstance(t, NullableType):
        return "null"
    if isinstance(t, PrimitiveType):
        return _literal(prop.default) if prop.default is not None else _ZERO_VALUES[t.kind]
    if isinstance(t, SequenceType):
        return "[]"
    return f"new {t.class_name}()"


def _referenced_classes(t: TypeRef, found: Set[str]) -> None:
    if isinstance(t, ReferenceType):
        found.add(t.class_name)
    elif isinstance(t, SequenceType):
        _referenced_classes(t.element, found)
    elif isinstance(t, NullableType):
        _referenced_classes(t.inner, found)


def imported_classes(descriptor: ClassDescriptor) -> list:
    """Classes this file must import, sorted for stable output."""
    found: Set[str] = set()
    if descriptor.parent is not None:
        found.add(descriptor.parent.name)
    for prop in descriptor.properties:
        _referenced_classes(prop.type, found)
    found.discard(descriptor.name)
    return sorted(found)


def typescript_file_name(descriptor: ClassDescriptor) -> str:
    return f"{descriptor.name}.ts"


def generate_typescript(descriptor: ClassDescriptor) -> str:
    """Generate TypeScript source for one class."""
    printer = TypeScriptPrinter()
    lines = ["// Generated by isomodel. Do not edit."]

    imports = imported_classes(descriptor)
    for name in imports:
        lines.append(f'import {{ {name} }} from "./{name}";')
    lines.append("")

    extends = f" extends {descriptor.parent.name}" if descriptor.parent else ""
    lines.append(f"export class {descriptor.name}{extends} {{")

    for prop in descriptor.properties:
        name = to_camel_case(prop.name)
        type_name = typescript_type(prop.type)
        if not prop.computed:
            lines.append(f"{INDENT}{name}: {type_name} = {_initializer(prop)};")
            continue
        if not lines[-1].endswith("{"):
            lines.append("")
        lines.append(f"{INDENT}get {name}(): {type_name} {{")
        lines.append(f"{INDENT * 2}return {printer.print(prop.expression)};")
        lines.append(f"{INDENT}}}")

    lines.append("}")
    return "\n".join(lines) + "\n"


__all__ = [
    "TypeScriptPrinter",
    "typescript_type",
    "typescript_file_name",
    "generate_typescript",
    "imported_classes",
]
