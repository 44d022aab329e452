from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .errors import ConfigError


@dataclass(frozen=True)
class Options:
    """
    Stream configuration.

    workers: number of concurrent workers pulling from the source (>= 1).
    buffer_size: capacity of the output item channel; 0 means every result
        is handed over synchronously to a waiting consumer.
    continue_on_error: keep pulling after a failed item instead of
        cancelling the whole pool on the first error.
    log: emit a warning log record for every error a worker delivers.
    """

    workers: int = 1
    buffer_size: int = 0
    continue_on_error: bool = False
    log: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.workers, bool) or not isinstance(self.workers, int):
            raise ConfigError(f"workers must be an int, got {self.workers!r}")
        if self.workers < 1:
            raise ConfigError(f"nr of stream workers: {self.workers} - need at least 1 worker")
        if isinstance(self.buffer_size, bool) or not isinstance(self.buffer_size, int):
            raise ConfigError(f"buffer_size must be an int, got {self.buffer_size!r}")
        if self.buffer_size < 0:
            raise ConfigError(f"buffer_size must be >= 0, got {self.buffer_size}")
        if not isinstance(self.continue_on_error, bool):
            raise ConfigError(f"continue_on_error must be a bool, got {self.continue_on_error!r}")
        if not isinstance(self.log, bool):
            raise ConfigError(f"log must be a bool, got {self.log!r}")

    @classmethod
    def of(cls, opts: Options | None = None, **overrides: Any) -> Options:
        base = opts if opts is not None else cls()
        if not isinstance(base, Options):
            raise ConfigError(f"expected Options, got {type(base).__name__}")
        if not overrides:
            return base
        try:
            return replace(base, **overrides)
        except TypeError as e:
            raise ConfigError(str(e)) from e
