"""Compute-once async values, scoped to a single asset load."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class AsyncLazy(Generic[T]):
    """
    Memoized async computation.

    The factory runs at most once, on the first ``get()``; concurrent
    callers await the same result. If the factory raises, the error
    propagates and the next ``get()`` tries again.

    Example:
        >>> source = AsyncLazy(lambda: engine.load(path))
        >>> handle = await source.get()  # loads
        >>> handle = await source.get()  # reuses
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]) -> None:
        self._factory = factory
        self._lock = asyncio.Lock()
        self._value: T | None = None
        self._computed = False

    @property
    def computed(self) -> bool:
        return self._computed

    async def get(self) -> T:
        async with self._lock:
            if not self._computed:
                self._value = await self._factory()
                self._computed = True
        return self._value  # type: ignore[return-value]
