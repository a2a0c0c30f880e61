"""
mapgood Kernel — Commands

Follow-up work the reducer asks for. The reducer only describes it; the
runtime performs it.

Two kinds:
  lookups          — SearchPlaces, SearchEntries. Run as asyncio tasks; the
                     outcome re-enters the engine as a new message.
  surface effects  — RecenterMap, RefreshOverlay. Applied to the map surface
                     synchronously, right after the transition that asked.
"""

from __future__ import annotations

from dataclasses import dataclass

from mapgood.kernel.types import BoundingBox, Coordinate, MapMarker


@dataclass(frozen=True)
class Command:
    pass


@dataclass(frozen=True)
class LookupCommand(Command):
    pass


@dataclass(frozen=True)
class SurfaceCommand(Command):
    pass


@dataclass(frozen=True)
class SearchPlaces(LookupCommand):
    query: str


@dataclass(frozen=True)
class SearchEntries(LookupCommand):
    box: BoundingBox


@dataclass(frozen=True)
class RecenterMap(SurfaceCommand):
    coordinate: Coordinate


@dataclass(frozen=True)
class RefreshOverlay(SurfaceCommand):
    markers: tuple[MapMarker, ...]
