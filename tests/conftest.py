"""Pytest configuration and fixtures for itervine tests."""

import asyncio
from typing import Any

import pytest

from itervine import Context, EndOfSource, Iterator
from itervine.util import is_err, is_ok, Result


# (buffer_size, workers)
STREAM_CASES = [
    (0, 1),
    (0, 2),
    (0, 3),
    (1, 1),
    (1, 2),
    (1, 3),
    (2, 1),
    (2, 2),
    (2, 3),
    (0, 20),
    (10, 20),
]

SOURCE = [1, 2, 3, 4, 5, 6, 7, 8, 9]
SQUARES = [x * x for x in SOURCE]


class FiveError(Exception):
    pass


ERR_FIVE = FiveError("I don't like 5")


def square(ctx: Context, x: int) -> int:
    return x * x


def failing_square(ctx: Context, x: int) -> int:
    if x == 5:
        raise ERR_FIVE
    return x * x


class ListSource:
    """Iterator-shaped source over a list; safe for concurrent pulls."""

    def __init__(self, items: list[Any]) -> None:
        self.items = list(items)
        self.cursor = 0
        self.pulls = 0
        self.closed = False

    async def next(self) -> Any:
        self.pulls += 1
        if self.cursor >= len(self.items):
            raise EndOfSource()
        item = self.items[self.cursor]
        self.cursor += 1
        return item

    def close(self) -> None:
        self.closed = True


Outcomes = tuple[list[Any], list[BaseException]]


async def drain(it: Iterator[Any], timeout: float = 5) -> Outcomes:
    """Pull until end of source, collecting items and errors separately."""

    async def _drain() -> Outcomes:
        items: list[Any] = []
        errors: list[BaseException] = []
        while True:
            try:
                items.append(await it.next())
            except EndOfSource:
                return items, errors
            except Exception as e:
                errors.append(e)

    return await asyncio.wait_for(_drain(), timeout)


@pytest.fixture
def ctx() -> Context:
    return Context.background()


@pytest.fixture
def sample_data() -> list[int]:
    """Provide sample data for testing."""
    return list(SOURCE)


@pytest.fixture
def source() -> ListSource:
    return ListSource(SOURCE)


# Pytest markers for organizing tests
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


# Custom assertion helpers
def assert_pipeline_result_ok(result: Result) -> None:
    """Assert that a pipeline result is OK."""
    assert is_ok(result), f"Pipeline result should be OK, got: {result}"


def assert_pipeline_result_error(result: Result) -> None:
    """Assert that a pipeline result is an error."""
    assert is_err(result), f"Pipeline result should be error, got: {result}"
