"""
Itervine - concurrent pull-based streams for asyncio.

A stream takes a source of items (an Iterator, a zero-argument Generator or a
pair of pushed channels) and a mapper, and returns a new Iterator whose items
are computed by a pool of concurrent workers. Streams compose: the output
Iterator of one stage is a valid source for the next. Cancellation is
cooperative and flows through a shared Context.
"""

from .async_util import SENTINEL, Channel, feed, select_recv
from .context import Context
from .errors import (
    ChannelClosed,
    ConfigError,
    ContextCancelled,
    DeadlineExceeded,
    EndOfSource,
)
from .iterator import (
    Generator,
    Iterator,
    Mapper,
    channel_iterator,
    from_iterable,
    iterator_generator,
)
from .options import Options
from .pipeline import Pipeline, PipelineMetrics
from .stage import Stage, as_stage, work_pool
from .stream import channel_stream, generator_stream, nop_mapper, stream
from .util import Err, Result, err_as_value, get_err, is_err, is_ok, unwrap, unwrap_or

__version__ = "0.1.0"

__all__ = [
    "SENTINEL",
    "Channel",
    "feed",
    "select_recv",
    "Context",
    "ChannelClosed",
    "ConfigError",
    "ContextCancelled",
    "DeadlineExceeded",
    "EndOfSource",
    "Generator",
    "Iterator",
    "Mapper",
    "channel_iterator",
    "from_iterable",
    "iterator_generator",
    "Options",
    "Pipeline",
    "PipelineMetrics",
    "Stage",
    "as_stage",
    "work_pool",
    "channel_stream",
    "generator_stream",
    "nop_mapper",
    "stream",
    "Err",
    "Result",
    "err_as_value",
    "get_err",
    "is_err",
    "is_ok",
    "unwrap",
    "unwrap_or",
]
