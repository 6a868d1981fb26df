"""
Core Manifest Objects

Defines the structural data contract derived from authoring-time
view-model classes:
    - Types (primitive, reference, sequence, nullable)
    - PropertyDescriptor (one field or computed property)
    - ClassDescriptor (one view-model shape)
    - ManifestSet (root container for one build)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about C#/TypeScript/Python output syntax
        - Store inheritance as a parent reference, never a flattened copy
        - Are fully serializable (see serialization.py)
        - Represent structure, not behavior
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Optional, Union

from .errors import ManifestError
from .expressions import Expression


class PrimitiveKind(Enum):
    """Primitive value kinds shared by every target language."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"


class TypeRef(ABC):
    """Base class for inferred property types."""
    pass


@dataclass(frozen=True)
class PrimitiveType(TypeRef):
    kind: PrimitiveKind


@dataclass(frozen=True)
class ReferenceType(TypeRef):
    """
    Reference to another view-model class.

    The class is stored by name and resolved through the ManifestSet, so
    mutually referencing classes never form object cycles.
    """

    class_name: str


@dataclass(frozen=True)
class SequenceType(TypeRef):
    element: TypeRef


@dataclass(frozen=True)
class NullableType(TypeRef):
    inner: TypeRef


STRING = PrimitiveType(PrimitiveKind.STRING)
BOOLEAN = PrimitiveType(PrimitiveKind.BOOLEAN)
INTEGER = PrimitiveType(PrimitiveKind.INTEGER)
FLOAT = PrimitiveType(PrimitiveKind.FLOAT)


def nullable(t: TypeRef) -> TypeRef:
    """Wrap a type as nullable (idempotent)."""
    if isinstance(t, NullableType):
        return t
    return NullableType(t)


def strip_nullable(t: TypeRef) -> TypeRef:
    if isinstance(t, NullableType):
        return t.inner
    return t


def describe_type(t: Optional[TypeRef]) -> str:
    """Human-readable type name for error messages and logs."""
    if t is None:
        return "<unresolved>"
    if isinstance(t, PrimitiveType):
        return t.kind.value
    if isinstance(t, ReferenceType):
        return t.class_name
    if isinstance(t, SequenceType):
        return f"sequence-of({describe_type(t.element)})"
    if isinstance(t, NullableType):
        return f"nullable({describe_type(t.inner)})"
    return type(t).__name__


DefaultValue = Union[str, int, float, bool, None]


@dataclass
class PropertyDescriptor:
    """
    One property of a view-model class.

    Properties:
        name:
            Property identifier as written in the authoring source
            (e.g., "is_new", "extras")

        type:
            Inferred type. For computed properties this is the return
            type, filled in by the transpiler.

        computed:
            True for read-only accessors

        expression:
            Transpiled expression tree (computed properties only)

        default:
            Literal default of a primitive field, used to initialise
            generated fields. None for everything else.

        raw_expression / raw_annotation:
            Authoring-language AST nodes kept between building and
            transpiling. Never serialized.
    """

    name: str
    type: Optional[TypeRef] = None
    computed: bool = False
    expression: Optional[Expression] = None
    default: DefaultValue = None
    raw_expression: Any = field(default=None, repr=False, compare=False)
    raw_annotation: Any = field(default=None, repr=False, compare=False)

    @property
    def return_type(self) -> Optional[TypeRef]:
        return self.type if self.computed else None


@dataclass
class ClassDescriptor:
    """
    One authoring-time view-model shape.

    INVARIANTS:
        - Property names are unique across the class and its ancestors
        - Properties keep declaration order
        - parent is a reference to the parent descriptor, not a copy
    """

    name: str
    parent: Optional["ClassDescriptor"] = None
    properties: List[PropertyDescriptor] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def parent_name(self) -> Optional[str]:
        return self.parent.name if self.parent else None

    def get_property(self, name: str) -> Optional[PropertyDescriptor]:
        """Own property by name (ancestors are not searched)."""
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def find_property(self, name: str) -> Optional[PropertyDescriptor]:
        """Property by name, searching this class then each ancestor."""
        for cls in self.lineage():
            prop = cls.get_property(name)
            if prop is not None:
                return prop
        return None

    def find_owner(self, name: str) -> Optional["ClassDescriptor"]:
        for cls in self.lineage():
            if cls.get_property(name) is not None:
                return cls
        return None

    def lineage(self) -> Iterator["ClassDescriptor"]:
        """This class followed by its ancestors, nearest first."""
        cls: Optional[ClassDescriptor] = self
        while cls is not None:
            yield cls
            cls = cls.parent

    def all_properties(self) -> List[PropertyDescriptor]:
        """Inherited properties first (root ancestor first), then own."""
        chain = list(self.lineage())
        result: List[PropertyDescriptor] = []
        for cls in reversed(chain):
            result.extend(cls.properties)
        return result

    @property
    def fields(self) -> List[PropertyDescriptor]:
        return [p for p in self.properties if not p.computed]

    @property
    def computed_properties(self) -> List[PropertyDescriptor]:
        return [p for p in self.properties if p.computed]


@dataclass
class ManifestSet:
    """
    Root container for every class of one build.

    Everything generated (C#, TypeScript, Python classes, manifest files)
    MUST be derivable from this object alone.
    """

    classes: List[ClassDescriptor] = field(default_factory=list)

    def add(self, descriptor: ClassDescriptor) -> None:
        if self.get_class(descriptor.name) is not None:
            raise ManifestError("class is declared more than once", class_name=descriptor.name)
        self.classes.append(descriptor)

    def get_class(self, name: str) -> Optional[ClassDescriptor]:
        """
        Retrieve a class by name.

        Returns:
            ClassDescriptor or None if not found
        """
        for cls in self.classes:
            if cls.name == name:
                return cls
        return None

    def names(self) -> List[str]:
        return [cls.name for cls in self.classes]

    def __iter__(self) -> Iterator[ClassDescriptor]:
        return iter(self.classes)

    def __len__(self) -> int:
        return len(self.classes)
