"""Remote lookups: place search (Nominatim) and entries search (OpenFairDB)."""

from mapgood.services.entry_search import EntrySearchClient
from mapgood.services.errors import EntrySearchError, LookupFailed, PlaceSearchError
from mapgood.services.place_search import PlaceSearchClient

__all__ = [
    "EntrySearchClient",
    "PlaceSearchClient",
    "LookupFailed",
    "EntrySearchError",
    "PlaceSearchError",
]
