from __future__ import annotations

import time
import queue
import asyncio
import logging
import contextlib
from threading import Thread
from dataclasses import dataclass
from collections.abc import AsyncIterable, Iterable
from typing import Any, Iterator as SyncIterator, Union

from .context import Context
from .errors import ContextCancelled, EndOfSource
from .iterator import Generator, Iterator, from_iterable, iterator_generator
from .stage import Stage, as_stage
from .stream import nop_mapper
from .util import Err, Result

logger = logging.getLogger(__name__)

Source = Union[Iterable[Any], AsyncIterable[Any], Iterator[Any], Generator[Any]]


@dataclass
class PipelineMetrics:
    start: float = 0
    stop: float = 0
    duration: float = 0
    processed: int = 0
    failed: int = 0


class Pipeline:

    '''
    chain of stages, each stage fed by the previous stage's Iterator
    '''

    def __init__(
        self,
        gen: Source | Pipeline,
        ctx: Context | None = None,
        log: bool = False,
    ) -> None:
        self.log = log
        self.generator: Generator[Any] | None = None
        self.stages: list[Stage] = []
        self._base = ctx if ctx is not None else Context.background()
        self.ctx = self._base.with_cancel()
        self._metrics = PipelineMetrics()
        self._error: Err | None = None
        self._parent: Pipeline | None = None

        if isinstance(gen, Pipeline):
            self._parent = gen
            return

        self.gen(gen)

    def gen(self, gen: Source) -> Pipeline:
        if isinstance(gen, Iterator):
            self.generator = iterator_generator(gen)
        elif isinstance(gen, (Iterable, AsyncIterable)):
            self.generator = from_iterable(gen)
        elif callable(gen):
            self.generator = gen
        else:
            raise TypeError("Pipeline source must be an iterable, Iterator or Generator")
        if self.ctx.cancelled:
            self.ctx = self._base.with_cancel()
        self._error = None
        return self

    def stage(self, st: Stage | Pipeline | Any) -> Pipeline:
        if isinstance(st, Pipeline):
            st._parent = self
            return st
        self.stages.append(as_stage(st))
        return self

    def __rshift__(self, other: Stage | Pipeline | Any) -> Pipeline:
        return self.stage(other)

    def _wire(self) -> tuple[Iterator[Any], list[Context]]:
        scopes: list[Context] = []
        if self._parent is not None:
            upstream, scopes = self._parent._wire()
            generate = iterator_generator(upstream)
        elif self.generator is None:
            raise RuntimeError("Pipeline has no generator")
        else:
            generate = self.generator

        # one scope per run, shared by every stage of this pipeline
        scope = self.ctx.with_cancel()
        scopes.append(scope)
        stages = self.stages or [Stage(nop_mapper)]
        out = stages[0].run(generate, scope)
        for st in stages[1:]:
            out = st.run(iterator_generator(out), scope)
        return out, scopes

    def iterator(self) -> Iterator[Any]:
        """
        Start every stage and return an Iterator over the last one.

        Closing the returned Iterator stops every stage of this run, including
        the stages of parent pipelines.
        """
        out, scopes = self._wire()

        def teardown() -> None:
            for scope in scopes:
                scope.cancel()

        it: Iterator[Any] = Iterator(out._items, out._errors, teardown)
        it._attach(out._pool)
        return it

    def __aiter__(self) -> Iterator[Any]:
        return self.iterator()

    async def collect(self) -> list[Any]:
        """Gather every result; the first error is raised."""
        out: list[Any] = []
        async with self.iterator() as it:
            async for item in it:
                out.append(item)
        return out

    async def run(self) -> Result:
        """Drain the pipeline; returns the metrics or the first error seen."""
        if self.ctx.cancelled:
            return self.result

        self._metrics = PipelineMetrics(start=time.time())
        self._error = None
        try:
            it = self.iterator()
        except RuntimeError as e:
            self._error = Err(e)
            self.__handle_log(self._error.message)
            return self._error

        try:
            while True:
                try:
                    val = await it.next()
                except EndOfSource:
                    break
                except Exception as e:
                    self._metrics.failed += 1
                    if self._error is None:
                        self._error = Err(e)
                    if self.log:
                        logger.warning(e)
                    continue
                self._metrics.processed += 1
                self.__handle_log(val)
        finally:
            it.close()
            self._metrics.stop = time.time()
            self._metrics.duration = max(0.0, self._metrics.stop - self._metrics.start)

        if self.ctx.cancelled and self._error is None and self.ctx.err is not None:
            self._error = Err(self.ctx.err)
        return self.result

    def __handle_log(self, val: Any) -> None:
        if self.log:
            logger.info(val)

    def iter(self, max_buffer: int = 64) -> SyncIterator[Any]:
        """Consume the pipeline from synchronous code via a background loop."""
        q: queue.Queue = queue.Queue(maxsize=max_buffer)
        done = object()
        exception_holder: list[BaseException] = []
        loop = asyncio.new_event_loop()

        async def _pump() -> None:
            try:
                async with self.iterator() as it:
                    async for item in it:
                        await asyncio.to_thread(q.put, item)
            except Exception as e:
                exception_holder.append(e)
            finally:
                await asyncio.to_thread(q.put, done)

        def _runner() -> None:
            try:
                asyncio.set_event_loop(loop)
                loop.run_until_complete(_pump())
            finally:
                loop.run_until_complete(loop.shutdown_asyncgens())
                loop.run_until_complete(loop.shutdown_default_executor())
                loop.close()

        t = Thread(target=_runner, daemon=True)
        t.start()

        finished = False
        try:
            while True:
                item = q.get()
                if item is done:
                    finished = True
                    if exception_holder:
                        raise exception_holder[0]
                    return
                yield item
        finally:
            if not finished:
                # consumer stopped early: stop the workers, unblock the pump
                with contextlib.suppress(RuntimeError):
                    loop.call_soon_threadsafe(self.cancel)
                while t.is_alive():
                    try:
                        q.get(timeout=0.05)
                    except queue.Empty:
                        pass

    @property
    def result(self) -> Result:
        return self._error if self._error is not None else self._metrics

    @property
    def metrics(self) -> PipelineMetrics:
        return self._metrics

    def cancel(self, reason: str | None = None) -> Result:
        """Cancel every stage of this pipeline and of its parents."""
        if self.ctx.cancelled:
            return self.result
        if reason is None:
            reason = "pipeline cancelled"
        self._error = Err(ContextCancelled(reason))
        self.ctx.cancel(self._error.error)
        self.__handle_log(reason)
        if self._parent is not None:
            self._parent.cancel(reason)
        return self.result
