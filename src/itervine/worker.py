from __future__ import annotations

import asyncio
import inspect
import logging
from asyncio import Task
from typing import Any

from .async_util import Channel
from .context import Context
from .errors import EndOfSource
from .iterator import Generator, Mapper
from .options import Options
from .util import is_err

logger = logging.getLogger(__name__)

# strong refs so running pools are not collected while nobody awaits them
_running: set[Task[Any]] = set()


async def _pull(generate: Generator[Any], group: Context) -> tuple[bool, Any]:
    result = generate()
    if inspect.isawaitable(result):
        return await group.race(result)
    return True, result


async def worker(
    n: int,
    generate: Generator[Any],
    mapper: Mapper,
    items: Channel[Any],
    errors: Channel[BaseException],
    ctx: Context,
    group: Context,
    opts: Options,
) -> BaseException | None:
    """
    Pull, map and push until the source ends or the group is cancelled.

    Returns the error that stopped the worker in fail-fast mode, else None.
    """
    while not group.cancelled:
        err: BaseException | None = None
        result: Any = None
        try:
            pulled, item = await _pull(generate, group)
            if not pulled:
                break
            result = mapper(ctx, item)
            if inspect.isawaitable(result):
                result = await result
            if is_err(result):
                err = result.error
        except EndOfSource:
            break
        except Exception as e:
            err = e

        if err is not None:
            if isinstance(err, EndOfSource):
                break
            if opts.log:
                logger.warning("worker %d: %r", n, err)
            if not await errors.send_or_cancel(err, group):
                break
            if opts.continue_on_error:
                continue
            # fail fast: take the whole pool down with us
            group.cancel(err)
            logger.debug("worker %d stopped on error", n)
            return err

        if not await items.send_or_cancel(result, group):
            break

    logger.debug("worker %d done", n)
    return None


def pool(
    generate: Generator[Any],
    mapper: Mapper,
    items: Channel[Any],
    errors: Channel[BaseException],
    ctx: Context,
    opts: Options,
) -> Task[None]:
    """
    Start ``opts.workers`` workers and a supervisor that closes ``items``
    once every worker has exited. Must be called with a running loop.
    """
    group = ctx.with_cancel()

    async def supervise() -> None:
        logger.debug("starting pool of %d workers", opts.workers)
        try:
            async with asyncio.TaskGroup() as tg:
                for n in range(opts.workers):
                    tg.create_task(
                        worker(n, generate, mapper, items, errors, ctx, group, opts)
                    )
        finally:
            group.cancel()
            items.close()
            logger.debug("pool finished, item channel closed")

    task = asyncio.create_task(supervise())
    _running.add(task)
    task.add_done_callback(_running.discard)
    return task
