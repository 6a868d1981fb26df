"""
Compiler configuration.

Example isomodel.yaml:

    input_dir: viewmodels
    output_dir: generated
    targets: [csharp, typescript]
    namespace: Shop.ViewModels
    manifest_file: generated/manifest.json
    pattern: "*.py"
    workers: 4
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

import yaml

from .backends import TargetLanguage
from .backends.csharp import DEFAULT_NAMESPACE
from .errors import ManifestError


@dataclass
class CompilerConfig:
    input_dir: str = "."
    output_dir: str = "generated"
    targets: List[TargetLanguage] = field(
        default_factory=lambda: [TargetLanguage.CSHARP, TargetLanguage.TYPESCRIPT]
    )
    namespace: str = DEFAULT_NAMESPACE
    manifest_file: Optional[str] = None
    pattern: str = "*.py"
    workers: Optional[int] = None

    def __post_init__(self):
        self.targets = [parse_target(t) for t in self.targets]
        if self.workers is not None and self.workers < 1:
            raise ManifestError(f"workers must be at least 1, got {self.workers}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompilerConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ManifestError(f"unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, filepath: str) -> "CompilerConfig":
        """
        Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ManifestError: If the file is not a mapping or has unknown keys
        """
        with open(filepath, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ManifestError(f"{filepath}: invalid YAML: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ManifestError(f"{filepath}: configuration must be a mapping")
        return cls.from_dict(data)

    def override(self, **values: Any) -> "CompilerConfig":
        """Apply non-None values (e.g. CLI flags) on top of this config."""
        for key, value in values.items():
            if value is not None:
                setattr(self, key, value)
        self.__post_init__()
        return self


def parse_target(value: Any) -> TargetLanguage:
    if isinstance(value, TargetLanguage):
        return value
    try:
        return TargetLanguage(str(value).lower())
    except ValueError as e:
        choices = ", ".join(t.value for t in TargetLanguage)
        raise ManifestError(f"unknown target '{value}' (choose from {choices})") from e


__all__ = ["CompilerConfig", "parse_target"]
