"""
PlugHost platform helpers.

Filesystem operations that behave the same whether the temp area and the
plugin roots share a volume or not.
"""

from plughost.platform.file_ops import (
    DELETION_MARKER_NAME,
    extract_package,
    mark_for_deletion,
    move_directory,
    should_delete_directory,
    try_delete_directory,
    unmark_for_deletion,
)

__all__ = [
    "DELETION_MARKER_NAME",
    "extract_package",
    "mark_for_deletion",
    "move_directory",
    "should_delete_directory",
    "try_delete_directory",
    "unmark_for_deletion",
]
