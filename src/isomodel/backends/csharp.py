"""
C# class generator.

Emits one public class per ClassDescriptor for the statically typed
runtime:
    - auto-properties in manifest order, with initialisers
    - `: Parent` for inheritance (inherited properties are not repeated)
    - expression-bodied read-only properties for computed properties
"""

import json

from ..expressions import MemberAccess
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
from .naming import to_pascal_case
from .printer import ExpressionPrinter

DEFAULT_NAMESPACE = "ViewModels"
INDENT = "    "

_PRIMITIVES = {
    PrimitiveKind.STRING: "string",
    PrimitiveKind.BOOLEAN: "bool",
    PrimitiveKind.INTEGER: "int",
    PrimitiveKind.FLOAT: "double",
}

_ZERO_VALUES = {
    PrimitiveKind.STRING: '""',
    PrimitiveKind.BOOLEAN: "false",
    PrimitiveKind.INTEGER: "0",
    PrimitiveKind.FLOAT: "0.0",
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


class CSharpPrinter(ExpressionPrinter):

    def literal(self, value) -> str:
        return _literal(value)

    def member(self, expr: MemberAccess) -> str:
        text = "this"
        for index, segment in enumerate(expr.path):
            dot = "?." if index in expr.null_safe else "."
            text += f"{dot}{to_pascal_case(segment)}"
        return text


def csharp_type(t: TypeRef) -> str:
    if isinstance(t, PrimitiveType):
        return _PRIMITIVES[t.kind]
    if isinstance(t, ReferenceType):
        return t.class_name
    if isinstance(t, SequenceType):
        return f"List<{csharp_type(t.element)}>"
    if isinstance(t, NullableType):
        return f"{csharp_type(t.inner)}?"
    raise TypeError(f"Unsupported type: {t!r}")


def _initializer(prop: PropertyDescriptor) -> str:
    t = prop.type
    if isinstance(t, NullableType):
        return ""
    if isinstance(t, PrimitiveType):
        value = _literal(prop.default) if prop.default is not None else _ZERO_VALUES[t.kind]
        return f" = {value};"
    return f" = new {csharp_type(t)}();"


def csharp_file_name(descriptor: ClassDescriptor) -> str:
    return f"{descriptor.name}.cs"


def generate_csharp(descriptor: ClassDescriptor, namespace: str = DEFAULT_NAMESPACE) -> str:
    """
    Generate C# source for one class.

    Args:
        descriptor: Class with computed properties already transpiled
        namespace: Namespace wrapping the class

    Returns:
        C# source text
    """
    printer = CSharpPrinter()
    lines = [
        "// <auto-generated>",
        f"//     Generated by isomodel from {descriptor.name}. Do not edit.",
        "// </auto-generated>",
        "#nullable enable",
        "using System.Collections.Generic;",
        "",
        f"namespace {namespace}",
        "{",
    ]

    extends = f" : {descriptor.parent.name}" if descriptor.parent else ""
    lines.append(f"{INDENT}public class {descriptor.name}{extends}")
    lines.append(f"{INDENT}{{")

    for prop in descriptor.properties:
        name = to_pascal_case(prop.name)
        type_name = csharp_type(prop.type)
        if prop.computed:
            body = printer.print(prop.expression)
            lines.append(f"{INDENT * 2}public {type_name} {name} => {body};")
        else:
            accessor = "{ get; set; }"
            lines.append(f"{INDENT * 2}public {type_name} {name} {accessor}{_initializer(prop)}")

    lines.append(f"{INDENT}}}")
    lines.append("}")
    return "\n".join(lines) + "\n"


__all__ = ["CSharpPrinter", "csharp_type", "csharp_file_name", "generate_csharp"]
