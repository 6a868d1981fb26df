"""
Serialization helpers for manifests (ManifestSet, ClassDescriptor, types, expressions).

Manifests are written as plain dicts first, then as JSON (sorted keys) or
YAML. Every type and expression node carries an explicit "kind" or "type"
tag so the files stay readable by tools in other languages.
"""
from __future__ import annotations

import json
from typing import Any, Dict

import yaml

from isomodel.errors import ManifestError
from isomodel.model import (
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
from isomodel.expressions import (
    Expression,
    BinaryExpression,
    MemberAccess,
    Literal,
    NullCheck,
    Ternary,
    UnaryExpression,
    BinaryOperator,
    UnaryOperator,
)


def type_to_dict(t: TypeRef | None) -> Any:
    if t is None:
        return None
    if isinstance(t, PrimitiveType):
        return {"kind": "primitive", "name": t.kind.value}
    if isinstance(t, ReferenceType):
        return {"kind": "reference", "class": t.class_name}
    if isinstance(t, SequenceType):
        return {"kind": "sequence", "element": type_to_dict(t.element)}
    if isinstance(t, NullableType):
        return {"kind": "nullable", "inner": type_to_dict(t.inner)}
    raise TypeError(f"Unsupported type: {type(t)}")


def type_from_dict(d: Any) -> TypeRef | None:
    if d is None:
        return None
    k = d.get("kind")
    if k == "primitive":
        return PrimitiveType(PrimitiveKind(d["name"]))
    if k == "reference":
        return ReferenceType(d["class"])
    if k == "sequence":
        return SequenceType(type_from_dict(d["element"]))
    if k == "nullable":
        return NullableType(type_from_dict(d["inner"]))
    raise TypeError(f"Unsupported type dict kind: {k}")


def expr_to_dict(expr: Expression | None) -> Any:
    if expr is None:
        return None
    if isinstance(expr, BinaryExpression):
        return {
            "type": "binary",
            "operator": expr.operator.value,
            "left": expr_to_dict(expr.left),
            "right": expr_to_dict(expr.right),
        }
    if isinstance(expr, MemberAccess):
        return {"type": "member", "path": list(expr.path), "null_safe": list(expr.null_safe)}
    if isinstance(expr, Literal):
        return {"type": "lit", "value": expr.value}
    if isinstance(expr, UnaryExpression):
        return {
            "type": "unary",
            "operator": expr.operator.value,
            "operand": expr_to_dict(expr.operand),
        }
    if isinstance(expr, NullCheck):
        return {"type": "null_check", "operand": expr_to_dict(expr.operand), "negated": expr.negated}
    if isinstance(expr, Ternary):
        return {
            "type": "ternary",
            "condition": expr_to_dict(expr.condition),
            "when_true": expr_to_dict(expr.when_true),
            "when_false": expr_to_dict(expr.when_false),
        }
    raise TypeError(f"Unsupported Expression type: {type(expr)}")


def expr_from_dict(d: Any) -> Expression | None:
    if d is None:
        return None
    t = d.get("type")
    if t == "binary":
        op = BinaryOperator(d["operator"])
        left = expr_from_dict(d["left"])
        right = expr_from_dict(d["right"])
        return BinaryExpression(operator=op, left=left, right=right)
    if t == "member":
        return MemberAccess(tuple(d["path"]), tuple(d.get("null_safe", [])))
    if t == "lit":
        return Literal(d["value"])
    if t == "unary":
        op = UnaryOperator(d["operator"])
        operand = expr_from_dict(d["operand"])
        return UnaryExpression(operator=op, operand=operand)
    if t == "null_check":
        return NullCheck(expr_from_dict(d["operand"]), negated=d.get("negated", False))
    if t == "ternary":
        return Ternary(
            condition=expr_from_dict(d["condition"]),
            when_true=expr_from_dict(d["when_true"]),
            when_false=expr_from_dict(d["when_false"]),
        )
    raise TypeError(f"Unsupported expression dict type: {t}")


def property_to_dict(p: PropertyDescriptor) -> Dict[str, Any]:
    return {
        "name": p.name,
        "type": type_to_dict(p.type),
        "computed": p.computed,
        "expression": expr_to_dict(p.expression),
        "default": p.default,
    }


def property_from_dict(d: Dict[str, Any]) -> PropertyDescriptor:
    return PropertyDescriptor(
        name=d["name"],
        type=type_from_dict(d.get("type")),
        computed=d.get("computed", False),
        expression=expr_from_dict(d.get("expression")),
        default=d.get("default"),
    )


def class_to_dict(c: ClassDescriptor) -> Dict[str, Any]:
    return {
        "name": c.name,
        "parent": c.parent_name,
        "properties": [property_to_dict(p) for p in c.properties],
        "source": c.source,
    }


def class_from_dict(d: Dict[str, Any]) -> ClassDescriptor:
    """Parent is left unlinked; manifest_from_dict links it by name."""
    return ClassDescriptor(
        name=d["name"],
        properties=[property_from_dict(p) for p in d.get("properties", [])],
        source=d.get("source"),
    )


def manifest_to_dict(m: ManifestSet) -> Dict[str, Any]:
    return {"classes": [class_to_dict(c) for c in m.classes]}


def manifest_from_dict(d: Dict[str, Any]) -> ManifestSet:
    m = ManifestSet()
    entries = d.get("classes", [])
    for entry in entries:
        m.add(class_from_dict(entry))
    for entry in entries:
        parent_name = entry.get("parent")
        if parent_name is None:
            continue
        parent = m.get_class(parent_name)
        if parent is None:
            raise ManifestError(f"parent class '{parent_name}' is not in the manifest",
                                class_name=entry["name"])
        m.get_class(entry["name"]).parent = parent
    return m


def manifest_to_json(m: ManifestSet) -> str:
    return json.dumps(manifest_to_dict(m), sort_keys=True)


def manifest_from_json(s: str) -> ManifestSet:
    d = json.loads(s)
    return manifest_from_dict(d)


def manifest_to_yaml(m: ManifestSet) -> str:
    return yaml.safe_dump(manifest_to_dict(m))


def manifest_from_yaml(s: str) -> ManifestSet:
    d = yaml.safe_load(s)
    return manifest_from_dict(d)
