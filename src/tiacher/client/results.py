"""
Result type returned by every mutating manager operation.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from tiacher.errors import TiacherError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success carrying a value, or failure carrying the reason."""

    value: T | None = None
    error: TiacherError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: TiacherError) -> "Result[T]":
        return cls(error=error)
