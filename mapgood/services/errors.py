"""Lookup failures. Each carries a human-readable cause as its message."""

from __future__ import annotations


class LookupFailed(Exception):
    """A remote lookup could not produce a result."""
    pass


class PlaceSearchError(LookupFailed):
    """Place search failed: transport error, bad status, or undecodable body."""
    pass


class EntrySearchError(LookupFailed):
    """Entries search failed: transport error, bad status, or undecodable body."""
    pass
