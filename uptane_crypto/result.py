"""Result type for operations with a recoverable failure mode.

Key-pair generation and PKCS#12 extraction report failures as values
instead of raising, so callers can decide how to proceed.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Success(Generic[T]):
    """A completed operation carrying its value."""

    value: T

    def unwrap(self: "Success[T]") -> T:
        return self.value


@dataclass(frozen=True)
class Failure(Generic[E]):
    """A failed operation carrying a diagnostic."""

    error: E

    def unwrap(self: "Failure[E]") -> None:
        """Raise, since there is no value to return."""
        raise ValueError(f"Cannot unwrap Failure: {self.error}")


Result = Success[T] | Failure[E]
