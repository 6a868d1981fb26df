"""
State Snapshot and Render Context

One immutable StateSnapshot is built per render call and passed
explicitly through the layout interpreter and the template renderer.

ARCHITECTURAL RULE:
    Nothing in the render pipeline writes to a snapshot. A state
    transition builds a new snapshot; a render against a stale one can
    simply be discarded.

Value semantics shared by layouts and templates live here too:
    - resolve_path: dotted lookup where anything missing is None
    - is_truthy: the one truthiness policy for if/unless/each
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Dict, Optional

from .errors import RenderError

# Wire key -> attribute name
SNAPSHOT_FIELDS = {
    "global": "global_",
    "config": "config",
    "entry": "entry",
    "user": "user",
    "state": "state",
    "modules": "modules",
}

MODULE_KEY = "module"

# ASCII digits only, as JavaScript array indexing reads them
INDEX_RE = re.compile(r"[0-9]+")


def freeze(value: Any) -> Any:
    """Deep-freeze mappings into MappingProxyType and lists into tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of freeze, for JSON output."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    return value


def _empty() -> Mapping:
    return MappingProxyType({})


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def resolve_path(root: Any, path: Optional[str]) -> Any:
    """
    Resolve a dotted path against nested data.

    Mappings are read by key, sequences by non-negative integer segment,
    other objects by public attribute. Any missing segment yields None.

    Args:
        root: Value the first segment is looked up in
        path: Dotted path, e.g. "user.profile.name" or "entry.items.0"

    Returns:
        The resolved value, or None
    """
    if not path:
        return root
    value = root
    for segment in path.split("."):
        value = resolve_segment(value, segment)
        if value is None:
            return None
    return value


def resolve_segment(value: Any, segment: str) -> Any:
    if value is None or segment == "":
        return None
    if isinstance(value, Mapping):
        return value.get(segment)
    if is_sequence(value):
        if INDEX_RE.fullmatch(segment):
            index = int(segment)
            return value[index] if index < len(value) else None
        return None
    if isinstance(value, (str, int, float, bool)) or segment.startswith("_"):
        return None
    return getattr(value, segment, None)


def is_truthy(value: Any) -> bool:
    """None, False, numeric zero, "" and empty sequences are falsy. Mappings are truthy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value != ""
    if is_sequence(value):
        return len(value) > 0
    return True


@dataclass(frozen=True)
class StateSnapshot:
    """
    The complete application state for one render call.

    Wire shape: {global, config, entry, user, state, modules}. The
    `global` key is exposed as the `global_` attribute.
    """

    global_: Any = field(default_factory=_empty)
    config: Any = field(default_factory=_empty)
    entry: Any = field(default_factory=_empty)
    user: Any = field(default_factory=_empty)
    state: Any = field(default_factory=_empty)
    modules: Any = field(default_factory=_empty)

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(self, f.name, freeze(getattr(self, f.name)))

    @classmethod
    def from_dict(cls, data: Mapping) -> "StateSnapshot":
        """Build from the wire shape. Unknown top-level keys are ignored."""
        if not isinstance(data, Mapping):
            raise RenderError(f"state snapshot must be an object, got {type(data).__name__}")
        kwargs = {
            attr: data[key]
            for key, attr in SNAPSHOT_FIELDS.items()
            if key in data and data[key] is not None
        }
        return cls(**kwargs)

    @classmethod
    def from_json(cls, text: str) -> "StateSnapshot":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RenderError(f"invalid state JSON: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {key: thaw(getattr(self, attr)) for key, attr in SNAPSHOT_FIELDS.items()}

    def as_scope(self) -> Mapping:
        """Top-level fields keyed by their wire names."""
        return MappingProxyType({key: getattr(self, attr) for key, attr in SNAPSHOT_FIELDS.items()})

    def resolve(self, path: str) -> Any:
        return resolve_path(self.as_scope(), path)


@dataclass(frozen=True)
class RenderContext:
    """
    Data visible to one module instantiation: the snapshot plus the
    `module` overlay.

    The overlay replaces any ancestor value outright; nothing is merged.
    """

    snapshot: StateSnapshot
    module: Any = None

    def __post_init__(self):
        object.__setattr__(self, "module", freeze(self.module))

    def with_module(self, value: Any) -> "RenderContext":
        return replace(self, module=value)

    def as_scope(self) -> Mapping:
        scope = dict(self.snapshot.as_scope())
        scope[MODULE_KEY] = self.module
        return MappingProxyType(scope)

    def resolve(self, path: str) -> Any:
        return resolve_path(self.as_scope(), path)


__all__ = [
    "StateSnapshot",
    "RenderContext",
    "freeze",
    "thaw",
    "resolve_path",
    "is_truthy",
    "is_sequence",
]
