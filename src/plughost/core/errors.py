"""
PlugHost error taxonomy.

Every failure the plugin subsystem reports carries an ErrorKind so callers
can tell a missing file from a corrupt descriptor without parsing messages.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorKind(Enum):
    """Category of a plugin failure."""

    NOT_FOUND = "not_found"
    PARSE_FAILURE = "parse_failure"
    VALIDATION_FAILURE = "validation_failure"
    LOAD_FAILURE = "load_failure"
    IO_FAILURE = "io_failure"


class PluginError(Exception):
    """Base exception for plugin-related errors."""

    kind: ErrorKind = ErrorKind.LOAD_FAILURE

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.path = Path(path) if path is not None else None

    def with_stage(self, stage: str) -> PluginError:
        """Tag the error with the install stage that produced it."""
        if self.stage is None:
            self.stage = stage
        return self

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class PluginNotFoundError(PluginError):
    """A required file or directory does not exist."""

    kind = ErrorKind.NOT_FOUND


class DescriptorParseError(PluginError):
    """The plugin descriptor is malformed."""

    kind = ErrorKind.PARSE_FAILURE


class PluginValidationError(PluginError):
    """Input rejected before any work was done (extension, duplicate ID)."""

    kind = ErrorKind.VALIDATION_FAILURE


class PluginLoadError(PluginError):
    """Plugin code could not be loaded or inspected."""

    kind = ErrorKind.LOAD_FAILURE


class AssemblyLoadFailure(PluginLoadError):
    """The entry module or one of its imports failed to load."""


class CapabilityNotFound(PluginLoadError):
    """No class in the entry module implements the required interface."""


class AssemblyNameMissing(PluginLoadError):
    """The loaded module exposes no usable logical name."""


class PluginIOError(PluginError):
    """Delete, move or extract failed."""

    kind = ErrorKind.IO_FAILURE
