"""
Configuration management for Corvo Playground.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .debug_logger import DebugLoggerConfig
from .exceptions import ConfigurationError

DEFAULT_RUNTIME_URL = (
    "https://raw.githubusercontent.com/TotoroEmotoro/Corvo/main/interpreter/browser_runtime.py"
)
RUNTIME_URL_ENV_VAR = "CORVO_RUNTIME_URL"


@dataclass
class SourceConfig:
    """Where the interpreter source comes from and how it is checked."""

    runtime_url: str = DEFAULT_RUNTIME_URL
    cache_bust_param: str = "ts"
    grammar_marker: str = "CORVO_GRAMMAR"
    entry_point_marker: str = "def run_corvo"
    interpreter_class_marker: str = "class CorvoInterpreter"
    preview_chars: int = 240


@dataclass
class EnvironmentConfig:
    """Embedded environment and interpreter module layout."""

    provider: str = "local"  # local
    packages: list[str] = field(default_factory=lambda: ["lark"])
    allow_package_install: bool = True
    module_name: str = "corvo_runtime"
    module_alias: str = "corvo_module"
    entry_point: str = "run_corvo"
    source_binding: str = "___source"
    runtime_id_attr: str = "RUNTIME_ID"
    fallback_runtime_id: str = "CorvoBrowserRuntime (no RUNTIME_ID)"


@dataclass
class TimeoutConfig:
    """Per-step timeouts in seconds. ``None`` waits indefinitely."""

    acquire_seconds: float | None = 120.0
    install_seconds: float | None = 120.0
    fetch_seconds: float | None = 15.0
    load_seconds: float | None = 60.0
    run_seconds: float | None = None


@dataclass
class ShareConfig:
    """Link sharing settings."""

    query_param: str = "code"


@dataclass
class PlaygroundConfig:
    """Main playground configuration."""

    source: SourceConfig = field(default_factory=SourceConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    share: ShareConfig = field(default_factory=ShareConfig)
    debug: DebugLoggerConfig = field(default_factory=DebugLoggerConfig)

    _SECTIONS = {
        "source": SourceConfig,
        "environment": EnvironmentConfig,
        "timeouts": TimeoutConfig,
        "share": ShareConfig,
        "debug": DebugLoggerConfig,
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PlaygroundConfig":
        """Build a configuration from plain data, ignoring unknown top-level keys."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration must be a mapping, got {type(data).__name__}"
            )

        sections: dict[str, Any] = {}
        for name, section_cls in cls._SECTIONS.items():
            raw = data.get(name)
            if raw is None:
                sections[name] = section_cls()
                continue
            if not isinstance(raw, dict):
                raise ConfigurationError(f"Section '{name}' must be a mapping")
            try:
                sections[name] = section_cls(**raw)
            except TypeError as e:
                raise ConfigurationError(f"Invalid '{name}' section: {e}") from e

        packages = sections["environment"].packages
        if isinstance(packages, str):
            sections["environment"].packages = [packages]
        elif isinstance(packages, list):
            sections["environment"].packages = [
                str(item).strip() for item in packages if str(item).strip()
            ]
        else:
            raise ConfigurationError("environment.packages must be a list of package names")

        config = cls(**sections)
        config._apply_env_overrides()
        return config

    @classmethod
    def load_from_file(cls, config_path: Path) -> "PlaygroundConfig":
        """Load configuration from a YAML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                if config_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        return cls.from_dict(data)

    def _apply_env_overrides(self) -> None:
        """Let the environment point the playground at another runtime build."""
        override = os.getenv(RUNTIME_URL_ENV_VAR)
        if override and override.strip():
            self.source.runtime_url = override.strip()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def save_to_file(self, config_path: Path) -> None:
        """
        Save configuration to file.

        Args:
            config_path: Path to save the configuration file
        """
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            data = self.to_dict()
            with open(config_path, "w", encoding="utf-8") as f:
                if config_path.suffix.lower() == ".json":
                    json.dump(data, f, indent=2)
                else:
                    yaml.dump(data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e
