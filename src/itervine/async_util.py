from __future__ import annotations

import random
import asyncio
from asyncio import Future
from collections import deque
from collections.abc import AsyncIterable, Iterable
from typing import Any, Generic, TypeVar, TYPE_CHECKING

from .errors import ChannelClosed, EndOfSource

if TYPE_CHECKING:
    from .context import Context

T = TypeVar("T")

# Marks a closed, drained channel in select results.
SENTINEL = object()


class Channel(Generic[T]):
    """
    Awaitable channel with optional buffering.

    ``maxsize == 0`` is a rendezvous: a send completes only once a receiver
    has taken the item. Closing is one-way; receivers drain what is left and
    then see end of stream.
    """

    def __init__(self, maxsize: int = 0) -> None:
        if maxsize < 0:
            raise ValueError("Channel maxsize must be >= 0")
        self._maxsize = maxsize
        self._buffer: deque[T] = deque()
        self._getters: deque[tuple[Future[Any], int]] = deque()
        self._putters: deque[tuple[Future[None], T]] = deque()
        self._closed = False

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        return (
            f"<Channel maxsize={self._maxsize} buffered={len(self._buffer)} "
            f"closed={self._closed}>"
        )

    # ---- internals ----

    def _wake_getter(self, item: Any) -> bool:
        while self._getters:
            fut, idx = self._getters.popleft()
            if fut.done():
                continue
            fut.set_result((idx, item))
            return True
        return False

    def _admit_putters(self) -> None:
        while self._putters and len(self._buffer) < self._maxsize:
            fut, item = self._putters.popleft()
            if fut.done():
                continue
            self._buffer.append(item)
            fut.set_result(None)

    def _take(self) -> tuple[bool, T | None]:
        if self._buffer:
            item = self._buffer.popleft()
            self._admit_putters()
            return True, item
        while self._putters:
            fut, item = self._putters.popleft()
            if fut.done():
                continue
            fut.set_result(None)
            return True, item
        return False, None

    def _ready(self) -> bool:
        if self._buffer or self._closed:
            return True
        return any(not fut.done() for fut, _ in self._putters)

    def _restore(self, item: T) -> None:
        if not self._wake_getter(item):
            self._buffer.appendleft(item)

    def _discard_putter(self, fut: Future[None]) -> None:
        for entry in self._putters:
            if entry[0] is fut:
                self._putters.remove(entry)
                break

    def _discard_getter(self, fut: Future[Any]) -> None:
        self._getters = deque(g for g in self._getters if g[0] is not fut)

    def _enqueue_putter(self, item: T) -> Future[None] | None:
        if self.try_send(item):
            return None
        fut: Future[None] = asyncio.get_running_loop().create_future()
        self._putters.append((fut, item))
        return fut

    # ---- public api ----

    def try_send(self, item: T) -> bool:
        if self._closed:
            raise ChannelClosed("send on closed channel")
        if self._wake_getter(item):
            return True
        if len(self._buffer) < self._maxsize:
            self._buffer.append(item)
            return True
        return False

    async def send(self, item: T) -> None:
        fut = self._enqueue_putter(item)
        if fut is None:
            return
        try:
            await fut
        finally:
            if not fut.done():
                fut.cancel()
                self._discard_putter(fut)

    async def send_or_cancel(self, item: T, ctx: Context) -> bool:
        """
        Send ``item`` unless ``ctx`` is cancelled first.

        Returns ``True`` if a receiver (or the buffer) took the item. An
        abandoned send leaves nothing behind in the channel.
        """
        if ctx.cancelled:
            return False
        fut = self._enqueue_putter(item)
        if fut is None:
            return True

        waiter = asyncio.ensure_future(ctx.wait())
        try:
            await asyncio.wait({fut, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not fut.done():
                fut.cancel()
                self._discard_putter(fut)

        if fut.cancelled():
            return False
        fut.result()  # raises ChannelClosed if closed under us
        return True

    def try_recv(self) -> T:
        ok, item = self._take()
        if ok:
            return item  # type: ignore[return-value]
        if self._closed:
            raise EndOfSource()
        raise asyncio.QueueEmpty()

    async def recv(self) -> T:
        _, item = await select_recv(self)
        if item is SENTINEL:
            raise EndOfSource()
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        while self._buffer and self._wake_getter(self._buffer[0]):
            self._buffer.popleft()
        # receivers left waiting only see the end once nothing is buffered
        if not self._buffer:
            while self._getters:
                fut, idx = self._getters.popleft()
                if not fut.done():
                    fut.set_result((idx, SENTINEL))
        while self._putters:
            fut, _ = self._putters.popleft()
            if not fut.done():
                fut.set_exception(ChannelClosed("channel closed during send"))

    def __aiter__(self) -> "Channel[T]":
        return self

    async def __anext__(self) -> T:
        try:
            return await self.recv()
        except EndOfSource:
            raise StopAsyncIteration from None


async def select_recv(*channels: Channel[Any]) -> tuple[int, Any]:
    """
    Receive from whichever channel is ready first.

    Returns ``(index, item)``; ``item`` is ``SENTINEL`` when the chosen channel
    is closed and drained. When several channels are ready the pick is random.
    """
    if not channels:
        raise ValueError("select_recv needs at least one channel")

    ready = [i for i, ch in enumerate(channels) if ch._ready()]
    if ready:
        idx = random.choice(ready)
        ok, item = channels[idx]._take()
        return idx, (item if ok else SENTINEL)

    fut: Future[Any] = asyncio.get_running_loop().create_future()
    for idx, ch in enumerate(channels):
        ch._getters.append((fut, idx))

    try:
        return await fut
    except asyncio.CancelledError:
        # handed an item just before we were cancelled: put it back
        if fut.done() and not fut.cancelled():
            idx, item = fut.result()
            if item is not SENTINEL:
                channels[idx]._restore(item)
        raise
    finally:
        for ch in channels:
            ch._discard_getter(fut)


async def feed(
    channel: Channel[T],
    source: Iterable[T] | AsyncIterable[T],
    *,
    close: bool = True,
) -> int:
    """Push every item of ``source`` into ``channel``; returns the count sent."""
    sent = 0
    try:
        if isinstance(source, AsyncIterable):
            async for item in source:
                await channel.send(item)
                sent += 1
        else:
            for item in source:
                await channel.send(item)
                sent += 1
    finally:
        if close:
            channel.close()
    return sent
