"""
Plugin lifecycle manager.

Owns the registry of active plugins and sequences discovery, installation,
deferred uninstallation and temp cleanup. Methods are not re-entrant;
callers serialize access.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Callable, Protocol, TypeVar

from plughost.core.config import PlugHostConfig, load_config
from plughost.core.errors import (
    DescriptorParseError,
    PluginError,
    PluginIOError,
    PluginLoadError,
    PluginNotFoundError,
    PluginValidationError,
)
from plughost.core.logging import OperationLogger, get_logger, plugin_logger
from plughost.core.result import Result
from plughost.platform.file_ops import (
    clean_directory,
    extract_package,
    mark_for_deletion,
    move_directory,
    should_delete_directory,
    try_delete_directory,
    unmark_for_deletion,
)
from plughost.plugins.base import CapabilityRegistry
from plughost.plugins.discovery import PluginDiscovery, PluginLoadResult, log_load_results
from plughost.plugins.loader import unload_code
from plughost.plugins.metadata import PluginMetadata, parse_metadata
from plughost.plugins.registry import PluginRegistry

logger = get_logger(__name__)

U = TypeVar("U")


class LanguageLoader(Protocol):
    """Host localization service that picks up language files shipped by plugins."""

    def load_installed_plugin_languages(self, plugin_directory: Path) -> None: ...


def install_stage(name: str) -> Callable[[Callable[..., Result[U]]], Callable[..., Result[U]]]:
    """Turn errors raised by an install stage into a failed Result tagged with the stage."""

    def decorator(fn: Callable[..., Result[U]]) -> Callable[..., Result[U]]:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs) -> Result[U]:
            try:
                result = fn(*args, **kwargs)
            except PluginError as e:
                return Result.failure(e.with_stage(name))
            except Exception as e:
                logger.exception("Unexpected error in install stage", stage=name)
                return Result.failure(PluginError(f"Unexpected error: {e}", stage=name))
            if result.error is not None:
                result.error.with_stage(name)
            return result

        return wrapper

    return decorator


class PluginManager:
    """Manages plugin discovery, installation and removal."""

    def __init__(
        self,
        config: PlugHostConfig | None = None,
        *,
        registry: PluginRegistry | None = None,
        capabilities: CapabilityRegistry | None = None,
        language_loader: LanguageLoader | None = None,
        is_preinstalled_id: Callable[[str], bool] | None = None,
    ) -> None:
        self.config = config or load_config()
        self.registry = registry if registry is not None else PluginRegistry()
        self.capabilities = capabilities or CapabilityRegistry()
        self.language_loader = language_loader
        self._is_preinstalled_id = is_preinstalled_id or self.config.is_preinstalled_id
        self.discovery = PluginDiscovery(self.config, self.capabilities)

        self.config.ensure_directories()

    @property
    def temp_directory(self) -> Path:
        return self.config.paths.temp_directory

    @property
    def all_plugins(self) -> list[PluginMetadata]:
        return list(self.registry)

    def get_plugin(self, plugin_id: str) -> PluginMetadata | None:
        return self.registry.get(plugin_id)

    def get_plugins(self, capability: str | type) -> list[PluginMetadata]:
        """Return loaded plugins satisfying a capability tag or interface type."""
        if isinstance(capability, type):
            return [
                m
                for m in self.registry
                if m.plugin_type is not None and issubclass(m.plugin_type, capability)
            ]
        return self.registry.with_capability(capability)

    def load_plugins(self) -> list[PluginLoadResult]:
        """Rebuild the registry from every configured plugin root."""
        with OperationLogger("Plugin discovery", logger) as operation:
            self.discovery.sweep_pending_deletions(
                [self.config.paths.settings_directory, self.config.paths.cache_directory]
            )
            results = self.discovery.discover_all(self.config.paths.plugin_roots)

            self.registry.clear()
            for result in results:
                if result.is_success and result.metadata is not None:
                    self.registry.add(result.metadata)

            log_load_results(results)
            operation.add_context(
                loaded=len(self.registry), failed=sum(1 for r in results if not r.is_success)
            )
        return results

    def install_plugin(self, package_path: Path | str) -> Result[PluginMetadata]:
        """
        Install a plugin package.

        Stages run in order and stop at the first failure:
        validate, extract, parse, duplicate, relocate, load.
        """
        try:
            result = (
                self._validate(package_path)
                .then(self._extract)
                .then(self._parse_extracted)
                .then(self._reject_duplicate)
                .then(self._relocate)
                .then(self._load_and_register)
            )
        except Exception as e:
            logger.exception("Unexpected error installing plugin", package=str(package_path))
            result = Result.failure(
                PluginError(f"Unexpected error: {e}", stage="install", path=package_path)
            )

        if result.ok:
            plugin_logger(result.value.plugin_id, logger).info(
                "Plugin installed", plugin=result.value.name, version=result.value.version
            )
        else:
            logger.error(
                "Plugin installation failed",
                package=str(package_path),
                stage=result.error.stage,
                kind=result.error.kind.value,
                error=result.error.message,
            )
        return result

    @install_stage("validate")
    def _validate(self, package_path: Path | str) -> Result[Path]:
        if package_path is None or not str(package_path).strip():
            raise PluginValidationError("Plugin path cannot be empty")

        path = Path(package_path)
        if not path.is_file():
            raise PluginNotFoundError(f"Plugin file does not exist: {path}", path=path)

        extension = self.config.plugins.package_extension
        if path.suffix.lower() != extension:
            raise PluginValidationError(
                f"Unsupported plugin file type. Expected {extension}", path=path
            )
        return Result.success(path)

    @install_stage("extract")
    def _extract(self, package: Path) -> Result[Path]:
        extract_path = self.temp_directory / package.stem
        clean_directory(extract_path)
        extract_package(package, extract_path)
        return Result.success(extract_path)

    @install_stage("parse")
    def _parse_extracted(self, extract_path: Path) -> Result[PluginMetadata]:
        metadata = parse_metadata(
            extract_path,
            metadata_file_name=self.config.plugins.metadata_file_name,
        )
        if metadata is None or not metadata.plugin_id:
            raise DescriptorParseError(
                "Invalid plugin structure: missing or malformed "
                f"{self.config.plugins.metadata_file_name}",
                path=extract_path,
            )
        return Result.success(metadata)

    @install_stage("duplicate")
    def _reject_duplicate(self, metadata: PluginMetadata) -> Result[PluginMetadata]:
        existing = self.registry.get(metadata.plugin_id)
        if existing is not None:
            raise PluginValidationError(
                f"Plugin already installed: {metadata.name or metadata.plugin_id} "
                f"v{existing.version}. Uninstall the existing version before installing "
                "a new one."
            )
        return Result.success(metadata)

    def _target_directory(self, folder_name: str, plugin_id: str) -> Path:
        if self._is_preinstalled_id(plugin_id):
            return self.config.paths.preinstalled_directory / folder_name
        return self.config.paths.plugins_directory / f"{folder_name}_{plugin_id}"

    @install_stage("relocate")
    def _relocate(self, metadata: PluginMetadata) -> Result[Path]:
        source = metadata.plugin_directory
        target = self._target_directory(source.name, metadata.plugin_id)

        # A plugin uninstalled earlier in this run leaves its marked directory behind
        if target.exists():
            marker = self.config.plugins.deletion_marker_name
            if not (should_delete_directory(target, marker) and try_delete_directory(target)):
                raise PluginIOError(f"Plugin directory already exists: {target}", path=target)

        move_directory(source, target)
        return Result.success(target)

    @install_stage("load")
    def _load_and_register(self, plugin_directory: Path) -> Result[PluginMetadata]:
        metadata = parse_metadata(
            plugin_directory,
            metadata_file_name=self.config.plugins.metadata_file_name,
            preinstalled_directory=self.config.paths.preinstalled_directory,
        )
        if metadata is None:
            self._abandon(plugin_directory)
            raise DescriptorParseError("Failed to load plugin metadata", path=plugin_directory)

        result = self.discovery.load_candidate(metadata)
        if not result.is_success or result.metadata is None:
            self._abandon(plugin_directory)
            raise PluginLoadError(
                f"Failed to load plugin: {result.error_message}", path=plugin_directory
            ) from result.exception

        self.registry.add(result.metadata)
        self._keep_user_data(result.metadata)
        self._notify_languages(plugin_directory)
        return Result.success(result.metadata)

    def _keep_user_data(self, metadata: PluginMetadata) -> None:
        """Cancel pending removal of settings and cache left by an uninstall earlier in this run."""
        marker = self.config.plugins.deletion_marker_name
        for directory in (
            metadata.plugin_settings_directory_path,
            metadata.plugin_cache_directory_path,
        ):
            if directory is not None:
                unmark_for_deletion(directory, marker)

    def _abandon(self, plugin_directory: Path) -> None:
        """Leave a relocated but unusable plugin for the next discovery pass to delete."""
        mark_for_deletion(plugin_directory, self.config.plugins.deletion_marker_name)

    def _notify_languages(self, plugin_directory: Path) -> None:
        if self.language_loader is None:
            return
        try:
            self.language_loader.load_installed_plugin_languages(plugin_directory)
        except Exception as e:
            logger.warning(
                "Failed to load plugin language resources",
                path=str(plugin_directory),
                error=str(e),
            )

    def uninstall_plugin(self, metadata: PluginMetadata) -> bool:
        """
        Schedule a plugin for removal.

        Nothing is deleted now: the plugin, settings and cache directories get
        a deletion marker and are removed by discovery on the next start, when
        no handles into them can still be open.
        """
        marker = self.config.plugins.deletion_marker_name
        directories = [metadata.plugin_directory]
        if metadata.assembly_name is not None:
            directories.append(
                metadata.plugin_settings_directory_path
                or self.config.paths.settings_directory / metadata.directory_name
            )
            directories.append(
                metadata.plugin_cache_directory_path
                or self.config.paths.cache_directory / metadata.directory_name
            )

        for directory in directories:
            mark_for_deletion(directory, marker)

        if self.registry.remove(metadata.plugin_id) is None:
            logger.warning("Uninstalled plugin was not registered", plugin_id=metadata.plugin_id)
        if metadata.module_name is not None:
            unload_code(metadata.module_name)

        plugin_logger(metadata.plugin_id, logger).info(
            "Plugin marked for removal", plugin=metadata.name, path=metadata.plugin_directory
        )
        return True

    def cleanup_temp_files(self) -> None:
        """Remove the temp extraction root. Failures are only logged."""
        if not self.temp_directory.exists():
            return
        if try_delete_directory(self.temp_directory):
            logger.debug("Cleaned plugin temp directory", path=str(self.temp_directory))
        else:
            logger.error("Failed to cleanup temp files", path=str(self.temp_directory))
