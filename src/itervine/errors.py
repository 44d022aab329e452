from __future__ import annotations


class EndOfSource(Exception):
    """Raised by a generator or iterator once it has no more items.

    Not a failure: workers stop quietly on it and it is never delivered on
    an error channel.
    """


class ConfigError(ValueError):
    """Invalid stream options."""


class ChannelClosed(Exception):
    """Send on a closed channel."""


class ContextCancelled(Exception):
    """Default reason recorded on a cancelled context."""

    def __init__(self, message: str = "context cancelled") -> None:
        super().__init__(message)


class DeadlineExceeded(ContextCancelled, TimeoutError):
    """Reason recorded when a context's deadline passes."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)
