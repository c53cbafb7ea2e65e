"""
Plugin metadata store.

Parses a plugin directory's descriptor into a PluginMetadata record and
derives the settings/cache paths once the plugin's code has been loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from plughost.core.logging import get_logger
from plughost.platform.file_ops import plugin_directory_name
from plughost.plugins.versioning import is_valid_version

logger = get_logger(__name__)

METADATA_FILE_NAME = "plugin.json"


class PluginDescriptor(BaseModel):
    """Validated contents of a plugin's ``plugin.json``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    plugin_id: str = Field(alias="PluginID", min_length=1)
    name: str = Field(default="", alias="Name")
    author: str = Field(default="", alias="Author")
    version: str = Field(alias="Version")
    execute_file_path: str = Field(alias="ExecuteFilePath", min_length=1)
    description: str = Field(default="", alias="Description")
    website: str = Field(default="", alias="Website")
    icon_path: str = Field(default="", alias="IconPath")

    @field_validator("version")
    @classmethod
    def check_version(cls, v: str) -> str:
        if not is_valid_version(v):
            raise ValueError(f"Invalid version: {v!r}. Expected dot-separated numbers")
        return v


@dataclass
class PluginMetadata:
    """Metadata for an installed or candidate plugin."""

    plugin_id: str
    name: str
    version: str
    execute_file_path: Path
    plugin_directory: Path
    author: str = ""
    description: str = ""
    website: str = ""
    icon_path: str = ""
    is_pre_plugin: bool = False
    # Filled in after a successful load
    assembly_name: str | None = None
    module_name: str | None = None
    plugin_type: type | None = None
    capabilities: frozenset[str] = field(default_factory=frozenset)
    plugin_settings_directory_path: Path | None = None
    plugin_cache_directory_path: Path | None = None

    @property
    def is_loaded(self) -> bool:
        return self.plugin_type is not None

    @property
    def directory_name(self) -> str:
        """Folder name used under the settings and cache roots."""
        if self.assembly_name is None:
            raise ValueError(f"Plugin {self.plugin_id} has not been loaded")
        return plugin_directory_name(self.assembly_name, self.plugin_id, self.is_pre_plugin)

    @property
    def display_name(self) -> str:
        return f"{self.name or self.plugin_id} v{self.version}"

    def has_capability(self, tag: str) -> bool:
        return tag in self.capabilities

    def to_dict(self) -> dict[str, Any]:
        return {
            "plugin_id": self.plugin_id,
            "name": self.name,
            "author": self.author,
            "version": self.version,
            "description": self.description,
            "website": self.website,
            "is_pre_plugin": self.is_pre_plugin,
            "assembly_name": self.assembly_name,
            "capabilities": sorted(self.capabilities),
            "execute_file_path": str(self.execute_file_path),
            "plugin_directory": str(self.plugin_directory),
            "settings_directory": (
                str(self.plugin_settings_directory_path)
                if self.plugin_settings_directory_path
                else None
            ),
            "cache_directory": (
                str(self.plugin_cache_directory_path)
                if self.plugin_cache_directory_path
                else None
            ),
        }


def is_under(path: Path, root: Path | None) -> bool:
    if root is None:
        return False
    return path.resolve().is_relative_to(root.resolve())


def parse_metadata(
    directory: Path,
    *,
    metadata_file_name: str = METADATA_FILE_NAME,
    preinstalled_directory: Path | None = None,
) -> PluginMetadata | None:
    """
    Parse the descriptor in ``directory``.

    Returns None when the directory or descriptor is missing, the descriptor
    is malformed, or the declared entry file does not exist. Parse problems
    are logged here so callers can simply drop the directory.
    """
    config_path = directory / metadata_file_name

    if not directory.is_dir() or not config_path.is_file():
        return None

    try:
        content = config_path.read_text(encoding="utf-8")
        descriptor = PluginDescriptor.model_validate_json(content)
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        logger.error("Error reading plugin descriptor", path=str(config_path), error=str(e))
        return None

    execute_file_path = Path(descriptor.execute_file_path)
    if not execute_file_path.is_absolute():
        execute_file_path = directory / execute_file_path

    if not execute_file_path.is_file():
        logger.warning(
            "Plugin entry file not found",
            plugin_id=descriptor.plugin_id,
            path=str(execute_file_path),
        )
        return None

    return PluginMetadata(
        plugin_id=descriptor.plugin_id,
        name=descriptor.name,
        author=descriptor.author,
        version=descriptor.version,
        description=descriptor.description,
        website=descriptor.website,
        icon_path=descriptor.icon_path,
        execute_file_path=execute_file_path,
        plugin_directory=directory,
        is_pre_plugin=is_under(directory, preinstalled_directory),
    )


def update_directories(metadata: PluginMetadata, settings_root: Path, cache_root: Path) -> None:
    """Derive the per-plugin settings and cache directories."""
    name = metadata.directory_name
    metadata.plugin_settings_directory_path = settings_root / name
    metadata.plugin_cache_directory_path = cache_root / name
