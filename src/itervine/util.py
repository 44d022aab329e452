from __future__ import annotations

import inspect
import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar, TypeAlias, cast

T = TypeVar("T")


@dataclass
class Err:
    """An error carried as a value.

    Mappers may return an ``Err`` instead of raising; the worker then
    delivers ``error`` itself on the error channel.
    """

    error: BaseException

    def __init__(self, error: BaseException | str) -> None:
        if isinstance(error, str):
            error = RuntimeError(error)
        self.error = error

    @property
    def message(self) -> str:
        return str(self.error)


Result: TypeAlias = T | Err


def is_err(res: Any) -> bool:
    return isinstance(res, Err)


def is_ok(res: Any) -> bool:
    return not is_err(res)


def unwrap(res: Result[T]) -> T:
    if isinstance(res, Err):
        raise res.error
    return res


def unwrap_or(res: Result[T], default: T) -> T:
    if isinstance(res, Err):
        return default
    return res


def get_err(res: Any) -> str:
    if isinstance(res, Err):
        return res.message
    return ""


def err_as_value(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Turn exceptions raised by ``fn`` into ``Err`` return values.

    Works for plain functions and coroutine functions alike.
    """
    if inspect.iscoroutinefunction(fn):
        afn = cast(Callable[..., Awaitable[Any]], fn)

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await afn(*args, **kwargs)
            except Exception as e:
                return Err(e)

        return async_wrapper

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            return Err(e)

    return wrapper
