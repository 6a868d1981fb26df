"""
Error taxonomy for both pipelines.

Build-time errors (manifest building, transpiling, code generation) are
fatal: they abort the build and name the offending class and property.

Render-time errors are fatal to a single render call only. Missing data
is NOT an error anywhere in the render pipeline; it degrades to empty or
falsy output instead.
"""

from typing import Optional


class ManifestError(Exception):
    """Base class for build-time errors."""

    def __init__(self, message: str, class_name: Optional[str] = None,
                 property_name: Optional[str] = None):
        self.class_name = class_name
        self.property_name = property_name
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        if self.class_name and self.property_name:
            return f"{self.class_name}.{self.property_name}: {self.message}"
        if self.class_name:
            return f"{self.class_name}: {self.message}"
        return self.message


class UnresolvedTypeError(ManifestError):
    """A default value (or member reference) has no inferable type."""


class AmbiguousReturnType(ManifestError):
    """A computed property's branches or annotation disagree on type."""


class UnsupportedExpressionError(ManifestError):
    """A computed property uses a construct outside the portable subset."""


class DuplicatePropertyError(ManifestError):
    """A property name is declared twice within one class hierarchy."""


class ClassSourceError(ManifestError):
    """Authoring source could not be parsed at all."""


class RenderError(Exception):
    """Base class for render-time errors."""


class UndefinedModuleReference(RenderError):
    """A layout names a module the registry does not know."""

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f"Layout references undefined module '{module_name}'")


class LayoutLoadError(RenderError):
    """A layout document is malformed."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}{message}")


class TemplateSyntaxError(RenderError):
    """A template uses syntax outside the logicless grammar."""

    def __init__(self, message: str, line: Optional[int] = None,
                 source: Optional[str] = None):
        self.line = line
        self.source = source
        where = source or "<template>"
        if line is not None:
            where = f"{where}:{line}"
        super().__init__(f"{where}: {message}")


__all__ = [
    "ManifestError",
    "UnresolvedTypeError",
    "AmbiguousReturnType",
    "UnsupportedExpressionError",
    "DuplicatePropertyError",
    "ClassSourceError",
    "RenderError",
    "UndefinedModuleReference",
    "LayoutLoadError",
    "TemplateSyntaxError",
]
