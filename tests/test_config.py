"""
Tests for CompilerConfig loading and overrides.
"""

import pytest
from isomodel.backends import TargetLanguage
from isomodel.config import CompilerConfig, parse_target
from isomodel.errors import ManifestError


class TestCompilerConfig:
    """Test configuration defaults, YAML loading and validation."""

    def test_defaults(self):
        """Should default to C# and TypeScript output."""
        config = CompilerConfig()
        assert config.targets == [TargetLanguage.CSHARP, TargetLanguage.TYPESCRIPT]
        assert config.namespace == "ViewModels"
        assert config.pattern == "*.py"
        assert config.manifest_file is None

    def test_targets_parsed(self):
        """Target names are case-insensitive strings or enum values."""
        config = CompilerConfig(targets=["Python", TargetLanguage.CSHARP])
        assert config.targets == [TargetLanguage.PYTHON, TargetLanguage.CSHARP]

    def test_bad_target(self):
        """Unknown targets list the valid choices."""
        with pytest.raises(ManifestError) as exc:
            parse_target("java")
        assert "csharp" in str(exc.value)

    def test_bad_workers(self):
        """Worker counts below one are rejected."""
        with pytest.raises(ManifestError):
            CompilerConfig(workers=0)

    def test_from_yaml(self, tmp_path):
        """Should load every key from YAML."""
        path = tmp_path / "isomodel.yaml"
        path.write_text(
            "input_dir: src/viewmodels\n"
            "output_dir: out\n"
            "targets: [typescript]\n"
            "namespace: Shop.ViewModels\n"
            "manifest_file: out/manifest.yaml\n"
            "workers: 2\n",
            encoding="utf-8",
        )
        config = CompilerConfig.from_yaml(str(path))
        assert config.input_dir == "src/viewmodels"
        assert config.targets == [TargetLanguage.TYPESCRIPT]
        assert config.namespace == "Shop.ViewModels"
        assert config.manifest_file == "out/manifest.yaml"
        assert config.workers == 2

    def test_empty_yaml(self, tmp_path):
        """An empty file gives the defaults."""
        path = tmp_path / "isomodel.yaml"
        path.write_text("", encoding="utf-8")
        assert CompilerConfig.from_yaml(str(path)) == CompilerConfig()

    def test_unknown_key(self, tmp_path):
        """Typos in keys are reported, not ignored."""
        path = tmp_path / "isomodel.yaml"
        path.write_text("ouput_dir: x\n", encoding="utf-8")
        with pytest.raises(ManifestError) as exc:
            CompilerConfig.from_yaml(str(path))
        assert "ouput_dir" in str(exc.value)

    @pytest.mark.parametrize("text", ["- a\n- b\n", "key: [unclosed\n"])
    def test_malformed_yaml(self, tmp_path, text):
        """Non-mapping or invalid YAML raises ManifestError."""
        path = tmp_path / "isomodel.yaml"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ManifestError):
            CompilerConfig.from_yaml(str(path))

    def test_missing_file(self, tmp_path):
        """Missing files propagate FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            CompilerConfig.from_yaml(str(tmp_path / "nope.yaml"))

    def test_override(self):
        """Only non-None overrides apply."""
        config = CompilerConfig(output_dir="a").override(output_dir=None, targets=["python"], workers=3)
        assert config.output_dir == "a"
        assert config.targets == [TargetLanguage.PYTHON]
        assert config.workers == 3
