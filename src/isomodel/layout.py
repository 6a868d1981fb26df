"""
Layout Interpreter (render time: layout tree + snapshot → render plan).

A layout is a JSON list of module descriptors:

    [
        {"name": "header"},
        {"name": "sidebar", "if": ["user.isSignedIn"]},
        {"name": "shelf", "each": "entry.shelves", "layout": [
            {"name": "tile", "import": "module.featured"}
        ]}
    ]

Walking the tree depth-first yields RenderUnits (module name + context)
in document order. At each node:
    1. `if` / `unless` are checked (every path, AND); failure prunes the subtree
    2. `each` instantiates the subtree once per element, binding `module`
    3. `import` rebinds `module` to the resolved value (replace, not merge)
    4. Leaves yield one unit; other nodes yield their children's units

Missing data never raises. Unknown module names do.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Container, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .errors import LayoutLoadError, UndefinedModuleReference
from .snapshot import RenderContext, StateSnapshot, is_sequence, is_truthy

logger = logging.getLogger(__name__)

_KEYS = {"name", "if", "unless", "each", "import", "layout"}


@dataclass(frozen=True)
class LayoutNode:
    """
    One module descriptor.

    Properties:
        name: Module (template) name
        if_: Paths that must all be truthy
        unless: Paths that must all be falsy
        each: Path to a sequence; one instantiation per element
        import_: Path rebound as the `module` overlay
        layout: Nested descriptors, in document order
    """

    name: str
    if_: Tuple[str, ...] = ()
    unless: Tuple[str, ...] = ()
    each: Optional[str] = None
    import_: Optional[str] = None
    layout: Tuple["LayoutNode", ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.layout


class RenderUnit(NamedTuple):
    """A module to render and the context to render it with."""
    name: str
    context: RenderContext


Layout = Sequence[LayoutNode]


# =========================================================================
# LOADING
# =========================================================================

def _paths(value: Any, key: str, where: str, source: Optional[str]) -> Tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(p, str) and p for p in value):
        raise LayoutLoadError(f"{where}: '{key}' must be a list of paths", source)
    return tuple(value)


def _path(value: Any, key: str, where: str, source: Optional[str]) -> str:
    if not isinstance(value, str) or not value:
        raise LayoutLoadError(f"{where}: '{key}' must be a path string", source)
    return value


def _node_from_dict(d: Any, where: str, source: Optional[str]) -> LayoutNode:
    if not isinstance(d, dict):
        raise LayoutLoadError(f"{where}: module descriptor must be an object", source)
    unknown = sorted(set(d) - _KEYS)
    if unknown:
        raise LayoutLoadError(f"{where}: unknown keys {unknown}", source)
    name = d.get("name")
    if not isinstance(name, str) or not name:
        raise LayoutLoadError(f"{where}: 'name' is required and must be a string", source)

    children = d.get("layout", [])
    if not isinstance(children, list):
        raise LayoutLoadError(f"{where}: 'layout' must be a list", source)

    return LayoutNode(
        name=name,
        if_=_paths(d["if"], "if", where, source) if "if" in d else (),
        unless=_paths(d["unless"], "unless", where, source) if "unless" in d else (),
        each=_path(d["each"], "each", where, source) if "each" in d else None,
        import_=_path(d["import"], "import", where, source) if "import" in d else None,
        layout=tuple(
            _node_from_dict(child, f"{where}.layout[{i}]", source)
            for i, child in enumerate(children)
        ),
    )


def layout_from_list(data: Any, source: Optional[str] = None) -> Tuple[LayoutNode, ...]:
    """Build a layout from already-decoded JSON data."""
    if not isinstance(data, list):
        raise LayoutLoadError("layout document must be a list of module descriptors", source)
    return tuple(_node_from_dict(d, f"[{i}]", source) for i, d in enumerate(data))


def parse_layout(text: str, source: Optional[str] = None) -> Tuple[LayoutNode, ...]:
    """
    Parse layout JSON text.

    Raises:
        LayoutLoadError: On invalid JSON or an invalid structure
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LayoutLoadError(f"invalid JSON at line {e.lineno} column {e.colno}: {e.msg}",
                              source) from e
    return layout_from_list(data, source)


def load_layout(filepath: str) -> Tuple[LayoutNode, ...]:
    """
    Load a layout file.

    Raises:
        FileNotFoundError: If file doesn't exist
        LayoutLoadError: If the file is malformed (message names the file)
    """
    with open(filepath, "r", encoding="utf-8") as f:
        content = f.read()
    return parse_layout(content, source=filepath)


def layout_to_list(layout: Layout) -> List[dict]:
    """Inverse of layout_from_list; omits empty directives."""
    result = []
    for node in layout:
        d: dict = {"name": node.name}
        if node.if_:
            d["if"] = list(node.if_)
        if node.unless:
            d["unless"] = list(node.unless)
        if node.each is not None:
            d["each"] = node.each
        if node.import_ is not None:
            d["import"] = node.import_
        if node.layout:
            d["layout"] = layout_to_list(node.layout)
        result.append(d)
    return result


# =========================================================================
# INTERPRETING
# =========================================================================

def _passes(node: LayoutNode, context: RenderContext) -> bool:
    if not all(is_truthy(context.resolve(p)) for p in node.if_):
        return False
    return not any(is_truthy(context.resolve(p)) for p in node.unless)


def _instantiate(node: LayoutNode, context: RenderContext,
                 registry: Optional[Container[str]], units: List[RenderUnit]) -> None:
    if node.import_ is not None:
        context = context.with_module(context.resolve(node.import_))
    if node.is_leaf:
        if registry is not None and node.name not in registry:
            raise UndefinedModuleReference(node.name)
        units.append(RenderUnit(node.name, context))
    else:
        _walk(node.layout, context, registry, units)


def _walk(nodes: Layout, context: RenderContext,
          registry: Optional[Container[str]], units: List[RenderUnit]) -> None:
    for node in nodes:
        if not _passes(node, context):
            logger.debug("pruned %s", node.name)
            continue
        if node.each is None:
            _instantiate(node, context, registry, units)
            continue
        items = context.resolve(node.each)
        if not is_sequence(items):
            logger.debug("%s: each path %s is not a sequence", node.name, node.each)
            continue
        for item in items:
            _instantiate(node, context.with_module(item), registry, units)


def interpret_layout(layout: Layout, snapshot: StateSnapshot,
                     registry: Optional[Container[str]] = None,
                     module: Any = None) -> List[RenderUnit]:
    """
    Produce the ordered render plan for one snapshot.

    Args:
        layout: Top-level module descriptors (the implicit root)
        snapshot: State for this render call
        registry: Known module names (anything supporting `in`); None skips the check
        module: Inherited `module` overlay for the top level

    Returns:
        RenderUnits in document order

    Raises:
        UndefinedModuleReference: If a rendered leaf names an unknown module
    """
    units: List[RenderUnit] = []
    _walk(layout, RenderContext(snapshot, module), registry, units)
    return units


def iter_leaves(layout: Layout) -> Iterator[LayoutNode]:
    """Every leaf node, depth-first, regardless of directives."""
    for node in layout:
        if node.is_leaf:
            yield node
        else:
            yield from iter_leaves(node.layout)


def validate_layout(layout: Layout, registry: Container[str]) -> None:
    """
    Check every leaf against the registry without any state.

    Raises:
        UndefinedModuleReference: For the first unknown module name
    """
    for node in iter_leaves(layout):
        if node.name not in registry:
            raise UndefinedModuleReference(node.name)


__all__ = [
    "LayoutNode",
    "RenderUnit",
    "parse_layout",
    "load_layout",
    "layout_from_list",
    "layout_to_list",
    "interpret_layout",
    "iter_leaves",
    "validate_layout",
]
