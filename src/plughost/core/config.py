"""
PlugHost configuration management.

Provides centralized configuration with validation using Pydantic.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_HOME = Path.home() / ".plughost"
DEFAULT_CONFIG_PATH = DEFAULT_HOME / "config.json"


def _expand(v: str | Path) -> Path:
    return Path(v).expanduser().resolve()


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file_enabled: bool = True
    console_enabled: bool = True
    json_format: bool = False
    log_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "logs")
    max_file_bytes: int = Field(default=5 * 1024 * 1024, ge=1024)
    backup_count: int = Field(default=3, ge=0)

    @field_validator("log_directory", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)


class PluginPathsConfig(BaseModel):
    """Filesystem roots used by the plugin manager."""

    preinstalled_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "preinstalled")
    plugins_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "plugins")
    settings_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "settings" / "plugins")
    cache_directory: Path = Field(default_factory=lambda: DEFAULT_HOME / "cache" / "plugins")
    temp_directory: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "plughost_plugins"
    )

    @field_validator(
        "preinstalled_directory",
        "plugins_directory",
        "settings_directory",
        "cache_directory",
        "temp_directory",
        mode="before",
    )
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return _expand(v)

    @property
    def plugin_roots(self) -> list[Path]:
        """Roots scanned at startup, preinstalled first."""
        return [self.preinstalled_directory, self.plugins_directory]


class PluginConfig(BaseModel):
    """Plugin packaging and discovery settings."""

    package_extension: str = ".spkg"
    metadata_file_name: str = "plugin.json"
    deletion_marker_name: str = "NeedDelete.txt"
    preinstalled_ids: list[str] = Field(default_factory=list)
    discovery_workers: int = Field(default=1, ge=1, le=32)

    @field_validator("package_extension")
    @classmethod
    def normalize_extension(cls, v: str) -> str:
        v = v.strip().lower()
        if not v.startswith("."):
            v = f".{v}"
        return v


class PlugHostConfig(BaseModel):
    """Main PlugHost configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PluginPathsConfig = Field(default_factory=PluginPathsConfig)
    plugins: PluginConfig = Field(default_factory=PluginConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> PlugHostConfig:
        """Load configuration from file or create default."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if config_path.exists():
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2, default=str)

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.logging.log_directory.mkdir(parents=True, exist_ok=True)
        self.paths.preinstalled_directory.mkdir(parents=True, exist_ok=True)
        self.paths.plugins_directory.mkdir(parents=True, exist_ok=True)
        self.paths.settings_directory.mkdir(parents=True, exist_ok=True)
        self.paths.cache_directory.mkdir(parents=True, exist_ok=True)
        self.paths.temp_directory.mkdir(parents=True, exist_ok=True)

    def is_preinstalled_id(self, plugin_id: str) -> bool:
        return plugin_id in self.plugins.preinstalled_ids


def get_default_config() -> PlugHostConfig:
    """Get the default configuration."""
    return PlugHostConfig()


def load_config(config_path: Path | None = None) -> PlugHostConfig:
    """Load or create configuration."""
    config = PlugHostConfig.load(config_path)
    config.ensure_directories()
    return config
