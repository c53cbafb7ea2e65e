"""
Filesystem primitives for plugin installation and removal.

Moves tolerate the temp extraction area living on a different volume than
the plugin roots, and deletions honour the deferred-deletion marker.
"""

from __future__ import annotations

import errno
import os
import shutil
import zipfile
from pathlib import Path

import psutil

from plughost.core.errors import PluginIOError, PluginNotFoundError
from plughost.core.logging import get_logger

logger = get_logger(__name__)

DELETION_MARKER_NAME = "NeedDelete.txt"


def should_delete_directory(directory: Path, marker_name: str = DELETION_MARKER_NAME) -> bool:
    return (directory / marker_name).is_file()


def try_delete_directory(directory: Path) -> bool:
    """
    Recursively delete a directory.

    Returns False instead of raising when something inside is still locked;
    the caller should treat that as "still pending".
    """
    try:
        shutil.rmtree(directory)
        return True
    except OSError as e:
        logger.error("Unable to delete directory", path=str(directory), error=str(e))
        return False


def mark_for_deletion(directory: Path, marker_name: str = DELETION_MARKER_NAME) -> bool:
    """Drop the zero-byte deletion marker into an existing directory."""
    if not directory.is_dir():
        return False
    try:
        (directory / marker_name).touch()
    except OSError as e:
        logger.error("Unable to mark directory for deletion", path=str(directory), error=str(e))
        return False
    logger.debug("Marked directory for deletion", path=str(directory))
    return True


def unmark_for_deletion(directory: Path, marker_name: str = DELETION_MARKER_NAME) -> bool:
    """Remove a pending deletion marker. Returns True if one was removed."""
    marker = directory / marker_name
    if not marker.is_file():
        return False
    try:
        marker.unlink()
    except OSError as e:
        logger.error("Unable to clear deletion marker", path=str(directory), error=str(e))
        return False
    logger.debug("Cleared deletion marker", path=str(directory))
    return True


def clean_directory(path: Path) -> None:
    if path.exists():
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise PluginIOError(f"Failed to clean directory: {e}", path=path) from e


def volume_root(path: Path) -> Path:
    """Return the mount point holding ``path``."""
    path = Path(path).resolve()
    best: Path | None = None
    try:
        partitions = psutil.disk_partitions(all=True)
    except OSError:
        partitions = []
    for partition in partitions:
        mount = Path(partition.mountpoint)
        if path == mount or path.is_relative_to(mount):
            if best is None or len(mount.parts) > len(best.parts):
                best = mount
    return best or Path(path.anchor)


def _existing_ancestor(path: Path) -> Path:
    path = Path(path).resolve()
    while not path.exists() and path != path.parent:
        path = path.parent
    return path


def is_same_volume(source: Path, target: Path) -> bool:
    return volume_root(_existing_ancestor(source)) == volume_root(_existing_ancestor(target))


def copy_directory(source: Path, target: Path) -> None:
    """Recursively copy ``source`` into a new directory ``target``."""
    if not source.is_dir():
        raise PluginNotFoundError(f"Source directory not found: {source}", path=source)
    try:
        shutil.copytree(source, target)
    except (OSError, shutil.Error) as e:
        raise PluginIOError(f"Failed to copy {source} to {target}: {e}", path=target) from e


def move_directory(source: Path, target: Path) -> None:
    """
    Move a directory tree.

    On the same volume this is a single rename. Across volumes the tree is
    copied and the source deleted afterwards; a failure part way can leave
    both a partial target and the source behind.
    """
    source = Path(source)
    target = Path(target)

    if not source.is_dir():
        raise PluginNotFoundError(f"Source directory not found: {source}", path=source)
    if target.exists():
        raise PluginIOError(f"Target directory already exists: {target}", path=target)

    target.parent.mkdir(parents=True, exist_ok=True)

    if is_same_volume(source, target):
        try:
            os.rename(source, target)
            return
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise PluginIOError(f"Failed to move {source} to {target}: {e}", path=source) from e
            logger.debug("Rename crossed devices, falling back to copy", source=str(source))

    copy_directory(source, target)
    try:
        shutil.rmtree(source)
    except OSError as e:
        raise PluginIOError(f"Copied but failed to remove source {source}: {e}", path=source) from e


def extract_package(package: Path, destination: Path) -> None:
    """Unpack a zip-format plugin package into ``destination``."""
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()
    try:
        with zipfile.ZipFile(package) as archive:
            for member in archive.infolist():
                member_path = (root / member.filename).resolve()
                if member_path != root and not member_path.is_relative_to(root):
                    raise PluginIOError(
                        f"Archive entry escapes extraction directory: {member.filename}",
                        path=package,
                    )
            archive.extractall(root)
    except zipfile.BadZipFile as e:
        raise PluginIOError(f"Corrupt plugin package: {e}", path=package) from e
    except OSError as e:
        raise PluginIOError(f"Failed to extract plugin package: {e}", path=package) from e


def plugin_directory_name(assembly_name: str, plugin_id: str, is_pre_plugin: bool) -> str:
    if is_pre_plugin:
        return assembly_name
    return f"{assembly_name}_{plugin_id}"


def directory_size(path: Path) -> int:
    total = 0
    for root, _, files in os.walk(path):
        for filename in files:
            try:
                total += (Path(root) / filename).stat().st_size
            except OSError:
                continue
    return total
