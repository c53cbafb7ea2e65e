"""
Dynamic plugin code loader.

Imports a plugin's entry file and finds the class implementing the required
plugin interface.

Each plugin is imported as its own uniquely named package rooted at the
plugin directory, so ``from . import helpers`` resolves inside that plugin.
Absolute imports of modules the plugin ships (``import helpers``) are
rewritten to submodules of that package by a per-plugin import scope. The
scope stays installed on ``sys.meta_path`` until the plugin is unloaded, so
imports made lazily from plugin methods still find the plugin's own copy,
and two plugins may ship different versions of the same library without
either seeing the host's or the other plugin's.
"""

from __future__ import annotations

import builtins
import hashlib
import importlib.abc
import importlib.machinery
import importlib.util
import inspect
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

from plughost.core.errors import AssemblyLoadFailure, AssemblyNameMissing, CapabilityNotFound
from plughost.core.logging import get_logger
from plughost.plugins.base import CapabilityRegistry

logger = get_logger(__name__)

MODULE_PREFIX = "plughost_plugin_"
ASSEMBLY_ATTRIBUTE = "__plugin_assembly__"

_scopes: dict[str, PluginImportScope] = {}


@dataclass
class LoadedCode:
    """A loaded plugin module and the plugin class found inside it."""

    module: ModuleType
    module_name: str
    plugin_type: type
    assembly_name: str
    capabilities: frozenset[str]


def module_name_for(entry: Path) -> str:
    digest = hashlib.sha1(str(entry.resolve()).encode("utf-8")).hexdigest()[:12]
    return f"{MODULE_PREFIX}{digest}"


def shipped_module_names(plugin_dir: Path) -> frozenset[str]:
    """Top-level module and package names importable from a plugin directory."""
    names: set[str] = set()
    for child in plugin_dir.iterdir():
        if child.is_file() and child.suffix == ".py" and child.stem != "__init__":
            names.add(child.stem)
        elif child.is_dir() and (child / "__init__.py").is_file():
            names.add(child.name)
    return frozenset(n for n in names if n.isidentifier())


class _ScopedLoader(importlib.abc.Loader):
    """Wraps a plugin submodule's loader so the module imports through the scope."""

    def __init__(self, wrapped: importlib.abc.Loader, scope: PluginImportScope) -> None:
        self.wrapped = wrapped
        self.scope = scope

    def create_module(self, spec: importlib.machinery.ModuleSpec) -> ModuleType | None:
        return self.wrapped.create_module(spec)

    def exec_module(self, module: ModuleType) -> None:
        self.scope.bind(module)
        self.wrapped.exec_module(module)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.wrapped, name)


class PluginImportScope(importlib.abc.MetaPathFinder):
    """
    Import scope for one loaded plugin.

    Modules belonging to the plugin get a private ``__import__`` that maps
    top-level names shipped in the plugin directory onto submodules of the
    plugin package. As a meta path finder the scope also claims those
    submodules so they import through the same rules.
    """

    def __init__(self, package: str, plugin_dir: Path) -> None:
        self.package = package
        self.plugin_dir = plugin_dir
        self.shipped = shipped_module_names(plugin_dir)
        self.builtins = dict(builtins.__dict__)
        self.builtins["__import__"] = self.import_module

    def install(self) -> None:
        if self not in sys.meta_path:
            sys.meta_path.insert(0, self)
        shadowed = sorted(n for n in self.shipped if n in sys.modules)
        if shadowed:
            logger.debug(
                "Plugin ships its own copy of host modules",
                package=self.package,
                modules=shadowed,
            )

    def uninstall(self) -> None:
        try:
            sys.meta_path.remove(self)
        except ValueError:
            pass

    def bind(self, module: ModuleType) -> None:
        module.__dict__["__builtins__"] = self.builtins

    def import_module(
        self,
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: tuple[str, ...] | list[str] | None = (),
        level: int = 0,
    ) -> ModuleType:
        top = name.partition(".")[0]
        if level != 0 or top not in self.shipped:
            return builtins.__import__(name, globals, locals, fromlist, level)

        module = builtins.__import__(f"{self.package}.{name}", globals, locals, fromlist, 0)
        if fromlist:
            return module
        # ``import helpers.sub`` binds the top-level name
        return sys.modules[f"{self.package}.{top}"]

    def find_spec(
        self,
        fullname: str,
        path: Any = None,
        target: ModuleType | None = None,
    ) -> importlib.machinery.ModuleSpec | None:
        if not fullname.startswith(f"{self.package}."):
            return None
        spec = importlib.machinery.PathFinder.find_spec(fullname, path, target)
        if spec is not None and spec.loader is not None:
            spec.loader = _ScopedLoader(spec.loader, self)
        return spec


def _discard_module(module_name: str) -> None:
    for name in [n for n in sys.modules if n == module_name or n.startswith(f"{module_name}.")]:
        del sys.modules[name]


def _import_entry(entry: Path, module_name: str) -> ModuleType:
    plugin_dir = entry.parent
    spec = importlib.util.spec_from_file_location(
        module_name,
        entry,
        submodule_search_locations=[str(plugin_dir)],
    )
    if spec is None or spec.loader is None:
        raise AssemblyLoadFailure(f"Failed to create module spec for {entry}", path=entry)

    scope = PluginImportScope(module_name, plugin_dir)
    module = importlib.util.module_from_spec(spec)
    scope.bind(module)
    sys.modules[module_name] = module
    _scopes[module_name] = scope
    scope.install()

    try:
        spec.loader.exec_module(module)
    except Exception as e:
        unload_code(module_name)
        raise AssemblyLoadFailure(f"Failed to load plugin module: {e}", path=entry) from e

    return module


def find_plugin_type(module: ModuleType, required: type) -> type | None:
    """
    Return the concrete class in ``module`` implementing ``required``.

    Classes defined by the plugin itself win over ones it merely imported.
    """
    candidates: list[type] = []
    for attr_name in dir(module):
        attr = getattr(module, attr_name)
        if (
            isinstance(attr, type)
            and issubclass(attr, required)
            and attr is not required
            and not inspect.isabstract(attr)
        ):
            candidates.append(attr)

    if not candidates:
        return None

    own = [c for c in candidates if c.__module__.startswith(module.__name__)]
    pool = own or candidates
    return sorted(pool, key=lambda c: c.__name__)[0]


def resolve_assembly_name(module: ModuleType, entry: Path) -> str:
    declared = getattr(module, ASSEMBLY_ATTRIBUTE, None)
    if declared is not None:
        if not isinstance(declared, str) or not declared.strip():
            raise AssemblyNameMissing(
                f"{ASSEMBLY_ATTRIBUTE} must be a non-empty string, got {declared!r}",
                path=entry,
            )
        return declared.strip()

    name = entry.parent.name if entry.name == "__init__.py" else entry.stem
    if not name:
        raise AssemblyNameMissing(f"Cannot derive a name for {entry}", path=entry)
    return name


def load_code_and_capability(
    execute_file_path: Path,
    capabilities: CapabilityRegistry,
) -> LoadedCode:
    """
    Load a plugin's entry file and locate its plugin class.

    Raises:
        AssemblyLoadFailure: If the module or one of its imports fails
        CapabilityNotFound: If no class implements the required interface
        AssemblyNameMissing: If no logical name can be resolved
    """
    entry = Path(execute_file_path)
    if not entry.is_file():
        raise AssemblyLoadFailure(f"Plugin file not found: {entry}", path=entry)

    module_name = module_name_for(entry)
    if module_name in sys.modules or module_name in _scopes:
        unload_code(module_name)

    module = _import_entry(entry, module_name)

    try:
        plugin_type = find_plugin_type(module, capabilities.required_interface)
        if plugin_type is None:
            raise CapabilityNotFound(
                f"{capabilities.required_interface.__name__} implementation not found",
                path=entry,
            )
        assembly_name = resolve_assembly_name(module, entry)
    except (CapabilityNotFound, AssemblyNameMissing):
        unload_code(module_name)
        raise

    tags = capabilities.tags_for(plugin_type)
    logger.debug(
        "Loaded plugin code",
        assembly=assembly_name,
        plugin_type=plugin_type.__name__,
        capabilities=sorted(tags),
    )
    return LoadedCode(
        module=module,
        module_name=module_name,
        plugin_type=plugin_type,
        assembly_name=assembly_name,
        capabilities=tags,
    )


def unload_code(module_name: str) -> None:
    """Drop a plugin module, its submodules and its import scope."""
    scope = _scopes.pop(module_name, None)
    if scope is not None:
        scope.uninstall()
    _discard_module(module_name)
