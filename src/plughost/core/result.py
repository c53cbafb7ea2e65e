"""
Result values threaded through multi-stage plugin operations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from plughost.core.errors import PluginError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or the first PluginError that stopped the pipeline."""

    value: T | None = None
    error: PluginError | None = None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: PluginError) -> Result[T]:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        """Human-readable error text, empty on success."""
        return str(self.error) if self.error is not None else ""

    def then(self, fn: Callable[[T], Result[U]]) -> Result[U]:
        """Run the next stage unless an earlier one failed."""
        if self.error is not None:
            return Result(error=self.error)
        return fn(self.value)  # type: ignore[arg-type]

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
