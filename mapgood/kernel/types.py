"""
mapgood Kernel — Shared Types

Data classes used across validation, reducer, projection, and runtime.
These are the contracts that bind the kernel together.

Value objects (Coordinate, BoundingBox, City, Entry, MapMarker) are frozen and
validated on construction. Coordinates coming from the network or the host
page are checked here, at the ingestion boundary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from mapgood.kernel.commands import Command


# ---------------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Coordinate:
    """A point in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError(f"Coordinate must be finite: ({self.lat}, {self.lng})")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")


@dataclass(frozen=True)
class BoundingBox:
    """
    The rectangular area visible on the map.

    Latitudes must be ordered (north_east above south_west). Longitudes are
    not ordered: a box whose north_east.lng is smaller than its
    south_west.lng crosses the antimeridian.
    """

    north_east: Coordinate
    south_west: Coordinate

    def __post_init__(self) -> None:
        if self.north_east.lat < self.south_west.lat:
            raise ValueError(
                f"Inverted bounding box: north-east lat {self.north_east.lat} "
                f"is below south-west lat {self.south_west.lat}"
            )

    @classmethod
    def from_corners(cls, ne_lat: float, ne_lng: float, sw_lat: float, sw_lng: float) -> BoundingBox:
        """Build a box from the host page's (ne_lat, ne_lng, sw_lat, sw_lng) argument order."""
        return cls(
            north_east=Coordinate(lat=ne_lat, lng=ne_lng),
            south_west=Coordinate(lat=sw_lat, lng=sw_lng),
        )

    def to_tuple(self) -> tuple[float, float, float, float]:
        """(sw_lat, sw_lng, ne_lat, ne_lng), the order the entries search expects."""
        return (
            self.south_west.lat,
            self.south_west.lng,
            self.north_east.lat,
            self.north_east.lng,
        )

    def to_query(self) -> str:
        """
        Comma-joined ordinates for the `bbox` query parameter.

          BoundingBox.from_corners(52.6, 13.5, 52.4, 13.3).to_query()
            → "52.4,13.3,52.6,13.5"
        """
        return ",".join(str(v) for v in self.to_tuple())


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class City:
    """A place accepted as a selectable search candidate."""

    name: str
    country: str
    coordinate: Coordinate

    @property
    def label(self) -> str:
        return f"{self.name}, {self.country}"


@dataclass(frozen=True)
class Entry:
    """
    A point of interest overlaid on the map.
    Identity is the `id`: two entries with equal content but different ids
    are different entries.
    """

    id: str
    title: str
    description: str
    coordinate: Coordinate


@dataclass(frozen=True)
class EntrySearchResult:
    """Decoded entries-search payload. Only `visible` is kept in state."""

    visible: tuple[Entry, ...] = ()
    invisible: tuple[Entry, ...] = ()


@dataclass(frozen=True)
class MapMarker:
    """The shape the map surface consumes for one overlay marker."""

    id: str
    name: str
    lat: float
    lng: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "lat": self.lat, "lng": self.lng}


# ---------------------------------------------------------------------------
# New-entry form
# ---------------------------------------------------------------------------

FORM_FIELDS: set[str] = {"title", "description"}


@dataclass
class FormState:
    """Draft of a new entry. Held apart from any committed Entry."""

    title: str = ""
    description: str = ""


@dataclass(frozen=True)
class FormViolation:
    """One failed validation rule."""

    code: ClassVar[str] = "FORM_VIOLATION"

    def describe(self) -> str:
        return self.code


@dataclass(frozen=True)
class TitleLength(FormViolation):
    """Title length outside [min, max]. `actual` is the observed length."""

    code: ClassVar[str] = "TITLE_LENGTH"

    min: int
    max: int
    actual: int

    def describe(self) -> str:
        return f"Title too short: {self.actual} characters, minimum: {self.min}"


# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------


@dataclass
class ApplicationState:
    """
    The single root of client state. Owned by the engine.

    candidate_cities is None until the first non-empty place search; after
    that it only ever holds a non-empty tuple.
    """

    candidate_cities: tuple[City, ...] | None = None
    viewport: BoundingBox | None = None
    selected_entry: Entry | None = None
    entries: tuple[Entry, ...] = ()
    form_visible: bool = False
    draft_form: FormState = field(default_factory=FormState)
    form_violations: tuple[FormViolation, ...] = ()


# ---------------------------------------------------------------------------
# Reducer output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal failure surfaced by the reducer for the runtime to log."""

    code: str
    message: str


@dataclass
class ReduceResult:
    """
    Result of applying one message to a state.
    The reducer never throws — it always returns one of these.

    render is False when the transition has nothing for the presentation
    layer to redraw (the map surface handles the change itself).
    """

    state: ApplicationState
    applied: bool
    commands: list[Command] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    render: bool = True
    error: str | None = None
