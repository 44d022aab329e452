from __future__ import annotations

from typing import Any, Callable

from .context import Context
from .iterator import Generator, Iterator, Mapper, iterator_generator
from .options import Options
from .stream import generator_stream


class Stage:
    """A mapper bound to its options; one worker pool per ``run``."""

    def __init__(self, mapper: Mapper, options: Options | None = None) -> None:
        self.mapper = mapper
        self.options = Options.of(options)

    def run(self, generate: Generator[Any], ctx: Context) -> Iterator[Any]:
        return generator_stream(ctx, self.mapper, self.options)(generate)

    def over(self, source: Iterator[Any], ctx: Context) -> Iterator[Any]:
        return self.run(iterator_generator(source), ctx)

    def __repr__(self) -> str:
        name = getattr(self.mapper, "__name__", repr(self.mapper))
        return f"<Stage {name} {self.options}>"


def work_pool(
    *,
    workers: int = 1,
    buffer_size: int = 0,
    continue_on_error: bool = False,
    log: bool = False,
) -> Callable[[Mapper], Stage]:
    """
    Decorator to create stages with configurable options.

    Usage:
    @work_pool()  # defaults
    @work_pool(workers=4, buffer_size=8)
    @work_pool(continue_on_error=True)
    """
    options = Options(
        workers=workers,
        buffer_size=buffer_size,
        continue_on_error=continue_on_error,
        log=log,
    )

    def decorator(f: Mapper) -> Stage:
        return Stage(f, options)

    return decorator


def as_stage(func: Mapper | Stage) -> Stage:
    """Simple stage decorator with defaults."""
    if isinstance(func, Stage):
        return func
    return Stage(func)
