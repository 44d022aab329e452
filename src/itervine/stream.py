"""
Stream factories.

A factory is built once from a context, a mapper and options, and can then be
called any number of times. Every call starts an independent worker pool with
its own channels and its own cancellation scope (a child of the build
context) and returns the Iterator fed by that pool.

    square = stream(Context.background(), lambda ctx, x: x * x, workers=4)
    async for value in square(source_iterator):
        ...

Results keep source order only with ``workers=1`` and ``buffer_size=0``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .async_util import Channel
from .context import Context
from .iterator import Generator, Iterator, Mapper, channel_iterator, iterator_generator
from .options import Options
from .worker import pool

logger = logging.getLogger(__name__)

GeneratorStream = Callable[[Generator[Any]], Iterator[Any]]
Stream = Callable[[Iterator[Any]], Iterator[Any]]
ChannelStream = Callable[[Channel[Any], Channel[BaseException]], Iterator[Any]]


def nop_mapper(ctx: Context, item: Any) -> Any:
    return item


def generator_stream(
    ctx: Context,
    mapper: Mapper,
    opts: Options | None = None,
    **overrides: Any,
) -> GeneratorStream:
    cfg = Options.of(opts, **overrides)

    def start(generate: Generator[Any]) -> Iterator[Any]:
        items: Channel[Any] = Channel(cfg.buffer_size)
        errors: Channel[BaseException] = Channel(0)
        scope = ctx.with_cancel()

        out: Iterator[Any] = Iterator(items, errors, scope)
        out._attach(pool(generate, mapper, items, errors, scope, cfg))
        logger.debug(
            "stream started: workers=%d buffer_size=%d continue_on_error=%s",
            cfg.workers, cfg.buffer_size, cfg.continue_on_error,
        )
        return out

    return start


def stream(
    ctx: Context,
    mapper: Mapper,
    opts: Options | None = None,
    **overrides: Any,
) -> Stream:
    start = generator_stream(ctx, mapper, opts, **overrides)

    def run(source: Iterator[Any]) -> Iterator[Any]:
        return start(iterator_generator(source))

    return run


def channel_stream(
    ctx: Context,
    mapper: Mapper,
    opts: Options | None = None,
    **overrides: Any,
) -> ChannelStream:
    """
    Stream fed by a producer pushing into an item channel and an error channel.

    The producer owns both channels and closes the item channel when done.
    Errors it pushes are handled like any other source error. Closing the
    returned Iterator stops the stage's workers, not the producer.
    """
    scope = ctx.with_cancel()
    run = stream(scope, mapper, opts, **overrides)

    def start(items: Channel[Any], errors: Channel[BaseException]) -> Iterator[Any]:
        return run(channel_iterator(items, errors, scope))

    return start
