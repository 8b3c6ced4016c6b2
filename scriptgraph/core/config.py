"""Engine configuration loading.

Configuration is read from the first config.yaml found on the search path:
- .scriptgraph/config.yaml (project-specific)
- ~/.scriptgraph/config.yaml (user-global)
Missing files fall back to built-in defaults.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10_000
DEFAULT_MAX_CALL_DEPTH = 64


class ConfigError(Exception):
    """Engine configuration is invalid."""

    pass


@dataclass
class EngineConfig:
    """Limits and conventions for one engine instance."""

    max_iterations: int = DEFAULT_MAX_ITERATIONS  # Dispatch cycles per run
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH  # Nested subgraph calls
    function_prefix: str = "func:"
    warn_unknown_types: bool = True

    def __post_init__(self) -> None:
        for name in ("max_iterations", "max_call_depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"'{name}' must be a positive integer, got {value!r}")
        if not isinstance(self.function_prefix, str):
            raise ConfigError("'function_prefix' must be a string")
        if not isinstance(self.warn_unknown_types, bool):
            raise ConfigError("'warn_unknown_types' must be a boolean")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ConfigLoader:
    """Locate and load config.yaml."""

    # Search paths in priority order (first existing file wins)
    search_paths: list[Path] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.search_paths:
            self.search_paths = [
                Path(".scriptgraph/config.yaml"),
                Path.home() / ".scriptgraph/config.yaml",
            ]

    def find(self) -> Path | None:
        for path in self.search_paths:
            if path.is_file():
                return path
        return None

    def load(self, overrides: dict[str, Any] | None = None) -> EngineConfig:
        """Load the first config file found, applying non-None overrides."""
        data: dict[str, Any] = {}
        path = self.find()
        if path is not None:
            data = self.read(path)
            logger.debug(f"Loaded engine config from {path}")

        for key, value in (overrides or {}).items():
            if value is not None:
                data[key] = value
        return EngineConfig.from_dict(data)

    @staticmethod
    def read(path: Path) -> dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ConfigError(f"{path}: expected a mapping at top level")
        # Allow both a flat file and one nested under an 'engine' key
        engine = raw.get("engine", raw)
        if not isinstance(engine, dict):
            raise ConfigError(f"{path}: 'engine' must be a mapping")
        return dict(engine)


DEFAULT_CONFIG_YAML = """# ScriptGraph engine configuration
engine:
  # Dispatch cycles per run before reporting a possible infinite loop
  max_iterations: 10000
  # Maximum nesting of function graph calls
  max_call_depth: 64
  # Key prefix of function graphs in a graph store
  function_prefix: "func:"
  # Warn when an instruction type has no registered handler
  warn_unknown_types: true
"""
