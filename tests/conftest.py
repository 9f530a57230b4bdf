"""Pytest configuration for loader tests."""

import asyncio
from collections import Counter

import pytest
from amd_loader.errors import TransportFailure


class InMemoryFetcher:
    """Fetcher serving sources from a dict and counting every fetch."""

    def __init__(self, sources: dict[str, str], delay: float = 0.0):
        self.sources = sources
        self.delay = delay
        self.calls: Counter[str] = Counter()
        self.blocked: dict[str, asyncio.Event] = {}

    async def fetch(self, location: str) -> str:
        self.calls[location] += 1
        # Always suspend so concurrent requesters really interleave
        await asyncio.sleep(self.delay)
        if location in self.blocked:
            await self.blocked[location].wait()
        if location not in self.sources:
            raise TransportFailure(location, "404 Not Found")
        return self.sources[location]


@pytest.fixture
def make_fetcher():
    """Factory fixture for in-memory fetchers."""

    def _make(sources: dict[str, str], delay: float = 0.0) -> InMemoryFetcher:
        return InMemoryFetcher(sources, delay=delay)

    return _make
