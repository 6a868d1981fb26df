"""
Build pipeline: class files → manifests → transpiled expressions → target files.

    1. Collect raw classes from every matching file (in parallel)
    2. Resolve parents and property types (ManifestSet)
    3. Transpile computed properties
    4. Generate one file per class per target, plus an optional manifest file

Every step raises a ManifestError subclass on failure; nothing is
written until the whole set has been built and transpiled.
"""

import glob
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .backends import TargetLanguage, generate_python_package, save_class_file
from .class_parser import RawClass, build_manifests, parse_class_file
from .config import CompilerConfig
from .model import ManifestSet
from .serialization import manifest_to_json, manifest_to_yaml
from .transpiler import transpile_manifests

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    manifests: ManifestSet
    written: List[str] = field(default_factory=list)


def find_class_files(input_dir: str, pattern: str = "*.py") -> List[str]:
    """Matching files under input_dir, recursively, sorted for stable builds."""
    paths = glob.glob(os.path.join(input_dir, "**", pattern), recursive=True)
    return sorted(p for p in paths if os.path.isfile(p) and not os.path.basename(p).startswith("__"))


def collect_classes(paths: List[str], workers: Optional[int] = None) -> List[RawClass]:
    """Pass 1 over every file. Results keep file order, then declaration order."""
    with ThreadPoolExecutor(max_workers=workers) as pool:
        per_file = list(pool.map(parse_class_file, paths))
    raw: List[RawClass] = []
    for path, classes in zip(paths, per_file):
        logger.debug("%s: %d classes", path, len(classes))
        raw.extend(classes)
    return raw


def build_from_files(paths: List[str], workers: Optional[int] = None) -> ManifestSet:
    """Both passes plus transpiling."""
    manifests = build_manifests(collect_classes(paths, workers))
    return transpile_manifests(manifests)


def target_directory(output_dir: str, target: TargetLanguage, multiple: bool) -> str:
    return os.path.join(output_dir, target.value) if multiple else output_dir


def write_outputs(manifests: ManifestSet, config: CompilerConfig) -> List[str]:
    written: List[str] = []
    multiple = len(config.targets) > 1
    for target in config.targets:
        directory = target_directory(config.output_dir, target, multiple)
        for descriptor in manifests:
            written.append(save_class_file(descriptor, directory, target, namespace=config.namespace))
        if target == TargetLanguage.PYTHON:
            path = os.path.join(directory, "__init__.py")
            with open(path, "w", encoding="utf-8", newline="\n") as f:
                f.write(generate_python_package(manifests))
            logger.info("wrote %s", path)
            written.append(path)

    if config.manifest_file:
        written.append(save_manifest(manifests, config.manifest_file))
    return written


def save_manifest(manifests: ManifestSet, filepath: str) -> str:
    """Write the manifest as YAML for .yaml/.yml paths, JSON otherwise."""
    if filepath.endswith((".yaml", ".yml")):
        content = manifest_to_yaml(manifests)
    else:
        content = manifest_to_json(manifests)
    parent = os.path.dirname(filepath)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(filepath, "w", encoding="utf-8", newline="\n") as f:
        f.write(content)
    logger.info("wrote %s", filepath)
    return filepath


def compile_directory(config: CompilerConfig) -> BuildResult:
    """
    Run the whole build described by a config.

    Raises:
        ManifestError: On any build error (nothing is written)
    """
    paths = find_class_files(config.input_dir, config.pattern)
    logger.info("building %d files from %s", len(paths), config.input_dir)
    manifests = build_from_files(paths, config.workers)
    written = write_outputs(manifests, config)
    logger.info("generated %d files for %d classes", len(written), len(manifests))
    return BuildResult(manifests=manifests, written=written)


def summarize(manifests: ManifestSet) -> Dict[str, int]:
    return {
        "classes": len(manifests),
        "fields": sum(len(c.fields) for c in manifests),
        "computed": sum(len(c.computed_properties) for c in manifests),
    }


__all__ = [
    "BuildResult",
    "find_class_files",
    "collect_classes",
    "build_from_files",
    "write_outputs",
    "save_manifest",
    "compile_directory",
    "summarize",
]
