"""Tests for engine configuration loading."""

from __future__ import annotations

import pytest
import yaml

from scriptgraph.core.config import (
    DEFAULT_CONFIG_YAML,
    DEFAULT_MAX_ITERATIONS,
    ConfigError,
    ConfigLoader,
    EngineConfig,
)


class TestEngineConfig:
    """Tests for EngineConfig validation."""

    def test_defaults(self):
        config = EngineConfig()

        assert config.max_iterations == DEFAULT_MAX_ITERATIONS == 10_000
        assert config.max_call_depth == 64
        assert config.function_prefix == "func:"

    @pytest.mark.parametrize("value", [0, -5, "100", True])
    def test_rejects_bad_limits(self, value):
        with pytest.raises(ConfigError):
            EngineConfig(max_iterations=value)

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigError, match="Unknown config keys: typo"):
            EngineConfig.from_dict({"typo": 1})

    def test_round_trip(self):
        config = EngineConfig(max_iterations=5)
        assert EngineConfig.from_dict(config.to_dict()) == config


class TestConfigLoader:
    """Tests for ConfigLoader search and overrides."""

    def test_defaults_when_no_file(self, tmp_path):
        loader = ConfigLoader(search_paths=[tmp_path / "missing.yaml"])

        assert loader.find() is None
        assert loader.load() == EngineConfig()

    def test_first_existing_file_wins(self, tmp_path):
        project = tmp_path / "project.yaml"
        user = tmp_path / "user.yaml"
        project.write_text("engine:\n  max_iterations: 10\n")
        user.write_text("engine:\n  max_iterations: 20\n")

        loader = ConfigLoader(search_paths=[project, user])

        assert loader.find() == project
        assert loader.load().max_iterations == 10

    def test_flat_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("max_call_depth: 3\n")

        assert ConfigLoader(search_paths=[path]).load().max_call_depth == 3

    def test_overrides_skip_none(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("engine:\n  max_iterations: 10\n")
        loader = ConfigLoader(search_paths=[path])

        assert loader.load({"max_iterations": None}).max_iterations == 10
        assert loader.load({"max_iterations": 99}).max_iterations == 99

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("engine: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader(search_paths=[path]).load()

    def test_engine_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("engine: 5\n")

        with pytest.raises(ConfigError, match="'engine' must be a mapping"):
            ConfigLoader.read(path)

    def test_default_yaml_is_loadable(self):
        data = yaml.safe_load(DEFAULT_CONFIG_YAML)
        assert EngineConfig.from_dict(data["engine"]) == EngineConfig()
