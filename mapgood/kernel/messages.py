"""
mapgood Kernel — Messages

The closed set of things that can happen to the client. A message is the
only input to the reducer; each one is immutable and carries its type tag
as a class attribute so the reducer can dispatch on it.

Sources:
  user input       — PlaceQueryChanged, ViewportCenterRequested, EntrySelected,
                     NewEntryFormRequested, FormFieldChanged, SubmitNewEntry
  map surface      — ViewportChanged, EntrySelected (via MapBridge)
  finished lookups — PlaceQuerySucceeded/Failed, EntriesSearchSucceeded/Failed
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from mapgood.kernel.types import FORM_FIELDS, BoundingBox, City, Coordinate, EntrySearchResult


@dataclass(frozen=True)
class Message:
    type: ClassVar[str] = "message"


# ---------------------------------------------------------------------------
# Place search
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlaceQueryChanged(Message):
    type: ClassVar[str] = "place.query_changed"

    text: str


@dataclass(frozen=True)
class PlaceQuerySucceeded(Message):
    type: ClassVar[str] = "place.query_succeeded"

    cities: tuple[City, ...]


@dataclass(frozen=True)
class PlaceQueryFailed(Message):
    type: ClassVar[str] = "place.query_failed"

    reason: str


# ---------------------------------------------------------------------------
# Viewport
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ViewportCenterRequested(Message):
    type: ClassVar[str] = "viewport.center_requested"

    coordinate: Coordinate


@dataclass(frozen=True)
class ViewportChanged(Message):
    type: ClassVar[str] = "viewport.changed"

    box: BoundingBox


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntriesSearchSucceeded(Message):
    type: ClassVar[str] = "entries.search_succeeded"

    result: EntrySearchResult


@dataclass(frozen=True)
class EntriesSearchFailed(Message):
    type: ClassVar[str] = "entries.search_failed"

    reason: str


@dataclass(frozen=True)
class EntrySelected(Message):
    type: ClassVar[str] = "entries.selected"

    entry_id: str


# ---------------------------------------------------------------------------
# New-entry form
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewEntryFormRequested(Message):
    type: ClassVar[str] = "form.requested"


@dataclass(frozen=True)
class FormFieldChanged(Message):
    type: ClassVar[str] = "form.field_changed"

    field: str
    text: str

    def __post_init__(self) -> None:
        if self.field not in FORM_FIELDS:
            raise ValueError(f"Unknown form field: {self.field!r}. Valid fields: {sorted(FORM_FIELDS)}")


@dataclass(frozen=True)
class SubmitNewEntry(Message):
    type: ClassVar[str] = "form.submit"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

MESSAGE_CLASSES: tuple[type[Message], ...] = (
    PlaceQueryChanged,
    PlaceQuerySucceeded,
    PlaceQueryFailed,
    ViewportCenterRequested,
    ViewportChanged,
    EntriesSearchSucceeded,
    EntriesSearchFailed,
    EntrySelected,
    NewEntryFormRequested,
    FormFieldChanged,
    SubmitNewEntry,
)

MESSAGE_TYPES: set[str] = {cls.type for cls in MESSAGE_CLASSES}
