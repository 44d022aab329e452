from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Awaitable, TypeVar

from .errors import ContextCancelled, DeadlineExceeded

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Context:
    """
    Cooperative cancellation scope.

    A context is cancelled at most once; every later ``cancel()`` is a no-op.
    Cancelling a context cancels all contexts derived from it, never the other
    way round. Contexts are bound to the event loop that first waits on them.
    """

    def __init__(self, parent: Context | None = None) -> None:
        self._event = asyncio.Event()
        self._err: BaseException | None = None
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()
        self._timer: asyncio.TimerHandle | None = None
        self.parent = parent
        if parent is not None:
            if parent.cancelled:
                self.cancel(parent.err)
            else:
                parent._children.add(self)

    @classmethod
    def background(cls) -> Context:
        return cls()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def err(self) -> BaseException | None:
        return self._err

    def with_cancel(self) -> Context:
        return Context(self)

    def with_timeout(self, seconds: float) -> Context:
        loop = asyncio.get_running_loop()
        return self.with_deadline(loop.time() + seconds)

    def with_deadline(self, when: float) -> Context:
        """Derive a child that cancels itself at loop time ``when``."""
        loop = asyncio.get_running_loop()
        child = Context(self)
        if not child.cancelled:
            child._timer = loop.call_at(when, child.cancel, DeadlineExceeded())
        return child

    def cancel(self, reason: BaseException | None = None) -> None:
        if self._event.is_set():
            return
        self._err = reason if reason is not None else ContextCancelled()
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.debug("context cancelled: %r", self._err)

        for child in list(self._children):
            child.cancel(self._err)
        self._children.clear()

    async def wait(self) -> None:
        await self._event.wait()

    async def race(self, aw: Awaitable[T]) -> tuple[bool, T | None]:
        """
        Await ``aw`` unless this context is cancelled first.

        Returns ``(True, result)`` when ``aw`` finishes first and
        ``(False, None)`` when cancellation wins, in which case ``aw`` is
        cancelled. If both are ready at once the result of ``aw`` is kept.
        """
        if self.cancelled:
            if asyncio.iscoroutine(aw):
                aw.close()
            return False, None

        task: asyncio.Future[Any] = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return True, task.result()

        task.cancel()
        await asyncio.wait({task})
        if not task.cancelled():
            # finished while being cancelled
            return True, task.result()
        return False, None

    def __repr__(self) -> str:
        state = f"cancelled={self._err!r}" if self.cancelled else "active"
        return f"<Context {state}>"
