"""
PlugHost Plugin System.

Discovers plugin packages on disk, resolves version conflicts, installs and
uninstalls them, and loads their code into the host process.
"""

from plughost.plugins.base import CapabilityRegistry, Plugin
from plughost.plugins.discovery import PluginDiscovery, PluginLoadResult
from plughost.plugins.manager import LanguageLoader, PluginManager
from plughost.plugins.metadata import PluginMetadata
from plughost.plugins.registry import PluginRegistry

__all__ = [
    "CapabilityRegistry",
    "Plugin",
    "PluginDiscovery",
    "PluginLoadResult",
    "LanguageLoader",
    "PluginManager",
    "PluginMetadata",
    "PluginRegistry",
]
