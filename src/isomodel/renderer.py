"""
Page rendering: module registry + layout + snapshot → markup.
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

from .layout import Layout, interpret_layout
from .snapshot import RenderContext, StateSnapshot
from .template import Template, parse_template, render_template
from .template_compiler import CompiledTemplate, compile_template

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".hbs"


class Engine(Enum):
    """Template engine used by a registry."""
    INTERPRETED = "interpreted"  # Walk the parsed node tree
    COMPILED = "compiled"        # Run generated Python functions


class TemplateRegistry:
    """
    Named module templates.

    Supports `in`, so a registry can be passed straight to
    interpret_layout / validate_layout as the set of known modules.
    """

    def __init__(self, templates: Optional[Dict[str, Union[str, Template]]] = None,
                 engine: Engine = Engine.INTERPRETED):
        self.engine = engine
        self._templates: Dict[str, Template] = {}
        self._compiled: Dict[str, CompiledTemplate] = {}
        for name, template in (templates or {}).items():
            self.add(name, template)

    def add(self, name: str, template: Union[str, Template], source: Optional[str] = None) -> None:
        """Register a template, parsing text eagerly so syntax errors surface at load time."""
        if isinstance(template, str):
            template = parse_template(template, source=source or name)
        self._templates[name] = template
        if self.engine == Engine.COMPILED:
            self._compiled[name] = compile_template(template)

    @classmethod
    def from_directory(cls, directory: str, suffix: str = DEFAULT_SUFFIX,
                       engine: Engine = Engine.INTERPRETED) -> "TemplateRegistry":
        """
        Load every `*<suffix>` file under a directory.

        Module names are paths relative to the directory, without the
        suffix, using "/" separators (e.g. "cards/tile").
        """
        registry = cls(engine=engine)
        for root, dirs, files in os.walk(directory):
            dirs.sort()
            for filename in sorted(files):
                if not filename.endswith(suffix):
                    continue
                path = os.path.join(root, filename)
                relative = os.path.relpath(path, directory)[:-len(suffix)]
                name = relative.replace(os.sep, "/")
                with open(path, "r", encoding="utf-8", newline="") as f:
                    registry.add(name, f.read(), source=path)
                logger.debug("loaded template %s from %s", name, path)
        return registry

    def get(self, name: str) -> Optional[Template]:
        return self._templates.get(name)

    def names(self) -> List[str]:
        return sorted(self._templates)

    def render(self, name: str, data: Any) -> str:
        """Render one module. Raises KeyError for unknown names."""
        if self.engine == Engine.COMPILED:
            return self._compiled[name].render(data)
        return render_template(self._templates[name], data)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._templates)


def render_page(layout: Layout, snapshot: StateSnapshot, registry: TemplateRegistry,
                module: Any = None) -> str:
    """
    Render a whole page: interpret the layout, render each unit, concatenate.

    Raises:
        UndefinedModuleReference: If the layout names a module the registry lacks
    """
    units = interpret_layout(layout, snapshot, registry, module=module)
    logger.debug("rendering %d units", len(units))
    return "".join(registry.render(unit.name, unit.context) for unit in units)


def render_module(registry: TemplateRegistry, name: str, snapshot: StateSnapshot,
                  module: Any = None) -> str:
    """Render a single module outside any layout."""
    return registry.render(name, RenderContext(snapshot, module))


__all__ = ["Engine", "TemplateRegistry", "render_page", "render_module"]
