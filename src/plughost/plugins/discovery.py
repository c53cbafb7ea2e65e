"""
Plugin discovery and conflict resolution.

Scans the plugin roots, finishes any deferred deletions, keeps the newest
version of each plugin ID and loads the survivors. Every candidate yields a
PluginLoadResult; one broken plugin never stops the others from loading.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from plughost.core.config import PlugHostConfig
from plughost.core.errors import PluginLoadError
from plughost.core.logging import get_logger
from plughost.platform.file_ops import should_delete_directory, try_delete_directory
from plughost.plugins.base import CapabilityRegistry
from plughost.plugins.loader import load_code_and_capability
from plughost.plugins.metadata import PluginMetadata, parse_metadata, update_directories
from plughost.plugins.versioning import version_key

logger = get_logger(__name__)


@dataclass
class PluginLoadResult:
    """Outcome of loading one plugin candidate."""

    is_success: bool
    error_message: str | None = None
    exception: BaseException | None = None
    metadata: PluginMetadata | None = None
    plugin_name: str | None = None

    @classmethod
    def success(cls, metadata: PluginMetadata) -> PluginLoadResult:
        return cls(is_success=True, metadata=metadata, plugin_name=metadata.name)

    @classmethod
    def fail(
        cls,
        message: str,
        plugin_name: str | None = None,
        exception: BaseException | None = None,
    ) -> PluginLoadResult:
        return cls(
            is_success=False,
            error_message=message,
            plugin_name=plugin_name,
            exception=exception,
        )


def resolve_conflicts(
    candidates: Iterable[PluginMetadata],
) -> tuple[list[PluginMetadata], list[PluginMetadata]]:
    """
    Keep the highest version of every plugin ID.

    Returns (unique, duplicates). Candidates with equal versions keep their
    input order, so the first one encountered wins.
    """
    groups: dict[str, list[PluginMetadata]] = {}
    for metadata in candidates:
        groups.setdefault(metadata.plugin_id, []).append(metadata)

    unique: list[PluginMetadata] = []
    duplicates: list[PluginMetadata] = []
    for group in groups.values():
        ordered = sorted(group, key=lambda m: version_key(m.version), reverse=True)
        unique.append(ordered[0])
        duplicates.extend(ordered[1:])
    return unique, duplicates


class PluginDiscovery:
    """Finds, deduplicates and loads plugins under a set of roots."""

    def __init__(self, config: PlugHostConfig, capabilities: CapabilityRegistry) -> None:
        self.config = config
        self.capabilities = capabilities

    def _is_pending_deletion(self, directory: Path) -> bool:
        if not should_delete_directory(directory, self.config.plugins.deletion_marker_name):
            return False
        if try_delete_directory(directory):
            logger.info("Removed plugin directory pending deletion", path=str(directory))
        else:
            logger.warning("Plugin directory still pending deletion", path=str(directory))
        return True

    def sweep_pending_deletions(self, roots: Iterable[Path]) -> list[Path]:
        """
        Remove marked subdirectories of non-plugin roots (settings, cache).

        Returns the directories still pending because deletion failed.
        """
        pending: list[Path] = []
        for root in roots:
            if not root.is_dir():
                continue
            for directory in sorted(p for p in root.iterdir() if p.is_dir()):
                if self._is_pending_deletion(directory) and directory.exists():
                    pending.append(directory)
        return pending

    def _parse(self, directory: Path) -> PluginMetadata | PluginLoadResult | None:
        descriptor = directory / self.config.plugins.metadata_file_name
        if not descriptor.is_file():
            return None
        metadata = parse_metadata(
            directory,
            metadata_file_name=self.config.plugins.metadata_file_name,
            preinstalled_directory=self.config.paths.preinstalled_directory,
        )
        if metadata is None:
            return PluginLoadResult.fail("Failed to load plugin metadata", directory.name)
        return metadata

    def collect_candidates(
        self, roots: Iterable[Path]
    ) -> tuple[list[PluginMetadata], list[PluginLoadResult]]:
        """
        Parse every live plugin directory under ``roots``.

        Returns the parsed candidates and a failure result for each directory
        whose descriptor exists but could not be used. Directories without a
        descriptor are not plugins and are ignored.
        """
        directories: list[Path] = []
        for root in roots:
            if not root.is_dir():
                logger.debug("Plugin root not found", path=str(root))
                continue
            directories.extend(sorted(p for p in root.iterdir() if p.is_dir()))

        live = [d for d in directories if not self._is_pending_deletion(d)]

        workers = self.config.plugins.discovery_workers
        if workers > 1 and len(live) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                parsed = list(pool.map(self._parse, live))
        else:
            parsed = [self._parse(d) for d in live]

        candidates = [p for p in parsed if isinstance(p, PluginMetadata)]
        rejected = [p for p in parsed if isinstance(p, PluginLoadResult)]
        return candidates, rejected

    def load_candidate(self, metadata: PluginMetadata) -> PluginLoadResult:
        """Load one candidate's code and fill in its runtime fields."""
        try:
            loaded = load_code_and_capability(metadata.execute_file_path, self.capabilities)
        except PluginLoadError as e:
            return PluginLoadResult.fail(e.message, metadata.name, e)
        except Exception as e:
            return PluginLoadResult.fail(f"Plugin loading error: {e}", metadata.name, e)

        metadata.assembly_name = loaded.assembly_name
        metadata.module_name = loaded.module_name
        metadata.plugin_type = loaded.plugin_type
        metadata.capabilities = loaded.capabilities
        update_directories(
            metadata,
            self.config.paths.settings_directory,
            self.config.paths.cache_directory,
        )

        logger.info("Plugin loaded", plugin=metadata.name, plugin_id=metadata.plugin_id)
        return PluginLoadResult.success(metadata)

    def discover_all(self, roots: Iterable[Path]) -> list[PluginLoadResult]:
        candidates, rejected = self.collect_candidates(roots)
        unique, duplicates = resolve_conflicts(candidates)

        if duplicates:
            log_duplicate_plugins(duplicates)

        return [self.load_candidate(m) for m in unique] + rejected


def _describe(metadata: PluginMetadata) -> str:
    kind = "preinstalled" if metadata.is_pre_plugin else "user"
    info = f"{metadata.display_name} (ID: {metadata.plugin_id}) | {kind} plugin"
    if metadata.author:
        info += f" | {metadata.author}"
    return info


def log_duplicate_plugins(duplicates: list[PluginMetadata]) -> None:
    logger.warning("Duplicate plugins found, skipping older versions", count=len(duplicates))
    for dup in duplicates:
        logger.warning(f"  -> skipped {_describe(dup)}", path=str(dup.plugin_directory))


def log_load_results(results: list[PluginLoadResult]) -> None:
    """Log an aggregate summary followed by one line per plugin."""
    succeeded = sum(1 for r in results if r.is_success)
    failed = len(results) - succeeded

    logger.info(
        "Plugin loading finished",
        total=len(results),
        succeeded=succeeded,
        failed=failed,
    )

    for result in results:
        if result.is_success and result.metadata is not None:
            logger.info(f"  + {_describe(result.metadata)}")

    for result in results:
        if not result.is_success:
            logger.error(f"  x {result.plugin_name or 'unknown'}: {result.error_message}")
            cause = result.exception.__cause__ if result.exception is not None else None
            if cause is not None:
                logger.error(f"    -> {cause}")
