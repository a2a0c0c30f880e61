"""
Kernel test configuration.

Fake lookup adapters with the same async search() signature as the real
clients, plus a recording map surface. No network.
"""

from __future__ import annotations

import asyncio

import pytest

from mapgood.kernel.projection import RecordingSurface
from mapgood.kernel.runtime import Engine
from mapgood.kernel.types import BoundingBox, City, EntrySearchResult


class FakePlaces:
    """Returns `cities` (or raises `error`) for every query."""

    def __init__(self) -> None:
        self.cities: list[City] = []
        self.error: Exception | None = None
        self.queries: list[str] = []

    async def search(self, query: str) -> list[City]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.cities)


class FakeEntries:
    """
    Returns a per-box result (or `default`) after a per-box delay.
    Delays let tests control the order in which overlapping replies land.
    """

    def __init__(self) -> None:
        self.results: dict[BoundingBox, EntrySearchResult] = {}
        self.delays: dict[BoundingBox, float] = {}
        self.default = EntrySearchResult()
        self.error: Exception | None = None
        self.boxes: list[BoundingBox] = []

    async def search(self, box: BoundingBox) -> EntrySearchResult:
        self.boxes.append(box)
        await asyncio.sleep(self.delays.get(box, 0))
        if self.error is not None:
            raise self.error
        return self.results.get(box, self.default)


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def places() -> FakePlaces:
    return FakePlaces()


@pytest.fixture
def entries() -> FakeEntries:
    return FakeEntries()


@pytest.fixture
def engine(surface, places, entries) -> Engine:
    return Engine(surface=surface, places=places, entries=entries)
