"""Explicit success/failure result for concurrently settled work."""

from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Settled result of one unit of work: a value or the error that stopped it."""
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Outcome[T]":
        return cls(error=error)

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` when the work failed."""
        return self.value if self.ok else default

    @classmethod
    async def settle(cls, awaitable: Awaitable[T]) -> "Outcome[T]":
        """
        Await ``awaitable`` and capture its result.

        Never raises, so a batch of settled awaitables passed to
        ``asyncio.gather`` cannot cancel each other.
        """
        try:
            return cls.success(await awaitable)
        except Exception as e:
            return cls.failure(e)
