"""
PlugHost plugin interfaces.

Plugins subclass ``Plugin``. Hosts describe the extra interfaces they care
about (translation, OCR, speech...) as capability tags so callers can ask
"which plugins can do X" without importing concrete plugin classes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from plughost.core.logging import get_logger

logger = get_logger(__name__)

PLUGIN_CAPABILITY = "plugin"


class Plugin(ABC):
    """Base class every loadable plugin must implement."""

    @abstractmethod
    def init(self, context: Any) -> None:
        """
        Initialize the plugin.

        Called by the host once the plugin class has been instantiated.
        """

    def dispose(self) -> None:
        """Release resources held by the plugin."""


class CapabilityRegistry:
    """
    Maps capability tags to the interface types that satisfy them.

    The tag ``"plugin"`` is always present and bound to the required
    interface; a class that does not implement it is not a plugin at all.
    """

    def __init__(self, required_interface: type = Plugin) -> None:
        self._required = required_interface
        self._interfaces: dict[str, type] = {PLUGIN_CAPABILITY: required_interface}

    @property
    def required_interface(self) -> type:
        return self._required

    def register(self, tag: str, interface: type) -> None:
        """Register a capability interface under a tag."""
        if not tag:
            raise ValueError("Capability tag cannot be empty")
        existing = self._interfaces.get(tag)
        if existing is not None and existing is not interface:
            raise ValueError(f"Capability '{tag}' is already bound to {existing.__name__}")
        logger.debug("Registering capability", tag=tag, interface=interface.__name__)
        self._interfaces[tag] = interface

    def unregister(self, tag: str) -> None:
        if tag == PLUGIN_CAPABILITY:
            raise ValueError("The base plugin capability cannot be removed")
        self._interfaces.pop(tag, None)

    def interface_for(self, tag: str) -> type | None:
        return self._interfaces.get(tag)

    def tag_for(self, interface: type) -> str | None:
        for tag, registered in self._interfaces.items():
            if registered is interface:
                return tag
        return None

    def tags_for(self, plugin_type: type) -> frozenset[str]:
        """Return every tag whose interface ``plugin_type`` implements."""
        return frozenset(
            tag
            for tag, interface in self._interfaces.items()
            if isinstance(plugin_type, type) and issubclass(plugin_type, interface)
        )

    def list_tags(self) -> list[str]:
        return sorted(self._interfaces)

    def __contains__(self, tag: object) -> bool:
        return tag in self._interfaces
