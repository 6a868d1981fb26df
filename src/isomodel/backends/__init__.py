"""Code generator backends (C#, TypeScript, Python)."""

import logging
import os
from enum import Enum

from ..model import ClassDescriptor
from .csharp import DEFAULT_NAMESPACE, csharp_file_name, generate_csharp
from .python import generate_python, generate_python_package, python_file_name
from .typescript import generate_typescript, typescript_file_name

logger = logging.getLogger(__name__)


class TargetLanguage(Enum):
    """Languages generated class files can be written in."""
    CSHARP = "csharp"          # Statically typed server runtime
    TYPESCRIPT = "typescript"  # Statically typed browser runtime
    PYTHON = "python"          # Dynamically typed runtime


def generate_class(descriptor: ClassDescriptor, target: TargetLanguage,
                   namespace: str = DEFAULT_NAMESPACE) -> str:
    """
    Generate source text for one class.

    Args:
        descriptor: Class with computed properties already transpiled
        target: Output language
        namespace: C# namespace (ignored by other targets)

    Returns:
        Source text for one file
    """
    if target == TargetLanguage.CSHARP:
        return generate_csharp(descriptor, namespace=namespace)
    if target == TargetLanguage.TYPESCRIPT:
        return generate_typescript(descriptor)
    if target == TargetLanguage.PYTHON:
        return generate_python(descriptor)
    raise ValueError(f"Unsupported target: {target}")


def file_name_for(descriptor: ClassDescriptor, target: TargetLanguage) -> str:
    if target == TargetLanguage.CSHARP:
        return csharp_file_name(descriptor)
    if target == TargetLanguage.TYPESCRIPT:
        return typescript_file_name(descriptor)
    if target == TargetLanguage.PYTHON:
        return python_file_name(descriptor)
    raise ValueError(f"Unsupported target: {target}")


def save_class_file(descriptor: ClassDescriptor, directory: str, target: TargetLanguage,
                    namespace: str = DEFAULT_NAMESPACE) -> str:
    """
    Generate one class and save it under `directory`.

    Returns:
        Path of the written file
    """
    source = generate_class(descriptor, target, namespace=namespace)
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, file_name_for(descriptor, target))
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(source)
    logger.info("wrote %s", path)
    return path


__all__ = [
    "TargetLanguage",
    "generate_class",
    "generate_python_package",
    "file_name_for",
    "save_class_file",
]
