from __future__ import annotations

import asyncio
from asyncio import Task
from collections.abc import AsyncIterable, Iterable
from typing import Any, Awaitable, Callable, Generic, TypeAlias, TypeVar

from .async_util import SENTINEL, Channel, select_recv
from .context import Context
from .errors import EndOfSource

T = TypeVar("T")

# Zero-argument pull function: returns the next item, raises EndOfSource
# once exhausted, raises anything else on failure.
Generator: TypeAlias = Callable[[], T | Awaitable[T]]

# Applied by the workers to every pulled item.
Mapper: TypeAlias = Callable[[Context, Any], Any]


class Iterator(Generic[T]):
    """
    Pull side of a stream.

    ``await next()`` returns the next item, raises a delivered error as-is, or
    raises ``EndOfSource`` once the item channel is closed and drained. When an
    item and an error are ready at the same time either may come first.

    ``close()`` only signals cancellation to whoever feeds the channels; it
    does not wait for them to stop.
    """

    def __init__(
        self,
        items: Channel[T],
        errors: Channel[BaseException],
        cancel: Context | Callable[[], Any],
    ) -> None:
        self._items = items
        self._errors = errors
        self._cancel = cancel
        self._pool: Task[Any] | None = None

    async def next(self) -> T:
        idx, val = await select_recv(self._items, self._errors)
        if val is SENTINEL:
            raise EndOfSource()
        if idx == 1:
            raise val
        return val

    def close(self) -> None:
        if isinstance(self._cancel, Context):
            self._cancel.cancel()
        else:
            self._cancel()

    @property
    def context(self) -> Context | None:
        return self._cancel if isinstance(self._cancel, Context) else None

    def _attach(self, pool: Task[Any]) -> None:
        self._pool = pool

    async def wait_closed(self) -> None:
        """Wait until the producing worker pool has finished."""
        if self._pool is not None:
            await asyncio.wait({self._pool})

    def __aiter__(self) -> Iterator[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.next()
        except EndOfSource:
            raise StopAsyncIteration from None

    async def __aenter__(self) -> Iterator[T]:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()


def iterator_generator(it: Iterator[T]) -> Generator[T]:
    """Adapt an Iterator into a Generator. No buffering, no locking."""

    async def generate() -> T:
        return await it.next()

    return generate


def channel_iterator(
    items: Channel[T],
    errors: Channel[BaseException],
    cancel: Context | Callable[[], Any],
) -> Iterator[T]:
    """Iterator over a pushed item/error channel pair."""
    return Iterator(items, errors, cancel)


def from_iterable(source: Iterable[T] | AsyncIterable[T]) -> Generator[T]:
    """
    Adapt a sync or async iterable into a Generator.

    Safe to share between workers: sync pulls cannot interleave and async
    pulls are serialized with a lock.
    """
    if isinstance(source, AsyncIterable):
        ait = aiter(source)
        lock = asyncio.Lock()

        async def agenerate() -> T:
            async with lock:
                try:
                    return await anext(ait)
                except StopAsyncIteration:
                    raise EndOfSource() from None

        return agenerate

    it = iter(source)

    def generate() -> T:
        try:
            return next(it)
        except StopIteration:
            raise EndOfSource() from None

    return generate
