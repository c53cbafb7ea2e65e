"""
Registry of active plugins.

Owned by whoever coordinates host startup (normally PluginManager); there is
no module-level instance so tests can build isolated registries.
"""

from __future__ import annotations

from collections.abc import Iterator

from plughost.core.errors import PluginValidationError
from plughost.core.logging import get_logger
from plughost.plugins.metadata import PluginMetadata

logger = get_logger(__name__)


class PluginRegistry:
    """Active plugins keyed by plugin ID, in registration order."""

    def __init__(self) -> None:
        self._plugins: dict[str, PluginMetadata] = {}

    def add(self, metadata: PluginMetadata) -> None:
        """Register a loaded plugin. Plugin IDs must be unique."""
        if not metadata.plugin_id:
            raise PluginValidationError("Cannot register a plugin without an ID")
        existing = self._plugins.get(metadata.plugin_id)
        if existing is not None:
            raise PluginValidationError(
                f"Plugin already registered: {existing.display_name} (ID: {existing.plugin_id})"
            )
        logger.debug("Registering plugin", plugin_id=metadata.plugin_id, plugin=metadata.name)
        self._plugins[metadata.plugin_id] = metadata

    def remove(self, plugin_id: str) -> PluginMetadata | None:
        return self._plugins.pop(plugin_id, None)

    def get(self, plugin_id: str) -> PluginMetadata | None:
        return self._plugins.get(plugin_id)

    def with_capability(self, tag: str) -> list[PluginMetadata]:
        return [m for m in self._plugins.values() if tag in m.capabilities]

    def list_ids(self) -> list[str]:
        return list(self._plugins)

    def clear(self) -> None:
        self._plugins.clear()

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._plugins

    def __iter__(self) -> Iterator[PluginMetadata]:
        return iter(list(self._plugins.values()))

    def __len__(self) -> int:
        return len(self._plugins)
