"""HTTP client for OpenFairDB entries search."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from mapgood.config import settings
from mapgood.kernel.types import BoundingBox, Coordinate, Entry, EntrySearchResult
from mapgood.services.errors import EntrySearchError

logger = logging.getLogger(__name__)


class OfdbEntry(BaseModel):
    """One entry in a search response. Extra fields (tags, ratings, ...) are ignored."""

    model_config = {"extra": "ignore"}

    id: str
    title: str
    description: str = ""
    lat: float
    lng: float

    def to_entry(self) -> Entry | None:
        try:
            coordinate = Coordinate(lat=self.lat, lng=self.lng)
        except ValueError:
            return None
        return Entry(id=self.id, title=self.title, description=self.description, coordinate=coordinate)


def parse_entries(records: list[Any]) -> tuple[Entry, ...]:
    """Decode raw entries, skipping any that are malformed or out of range."""
    entries: list[Entry] = []
    for raw in records:
        try:
            entry = OfdbEntry.model_validate(raw).to_entry()
        except ValidationError as e:
            logger.debug("entry_search: skipping malformed entry: %s", e.errors()[:1])
            continue
        if entry is None:
            logger.debug("entry_search: skipping entry with invalid coordinates: %r", raw.get("id"))
            continue
        entries.append(entry)
    return tuple(entries)


def parse_search_response(payload: Any) -> EntrySearchResult:
    """
    Decode a whole search response.

    The body must be an object with a `visible` list; `invisible` may be
    absent. Anything else fails the whole search.

    Raises:
        EntrySearchError: If the payload does not have that shape
    """
    if not isinstance(payload, dict):
        raise EntrySearchError(f"Entries search returned {type(payload).__name__}, expected an object")

    visible = payload.get("visible")
    invisible = payload.get("invisible", [])
    if not isinstance(visible, list):
        raise EntrySearchError("Entries search response has no 'visible' list")
    if not isinstance(invisible, list):
        raise EntrySearchError("Entries search response has a non-list 'invisible'")

    return EntrySearchResult(visible=parse_entries(visible), invisible=parse_entries(invisible))


class EntrySearchClient:
    """HTTP client for the OpenFairDB /search endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        categories: list[str] | None = None,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url or settings.OFDB_URL
        self._categories = categories if categories is not None else settings.entry_categories
        self._timeout = settings.HTTP_TIMEOUT_SECONDS if timeout is None else timeout

    async def search(self, box: BoundingBox) -> EntrySearchResult:
        """
        Fetch entries inside a bounding box, scoped to the configured categories.

        Args:
            box: Visible map area; sent as bbox=swLat,swLng,neLat,neLng

        Returns:
            Decoded visible and invisible entries

        Raises:
            EntrySearchError: If the request fails or the body cannot be decoded
        """
        params = {
            "text": "",
            "categories": ",".join(self._categories),
            "bbox": box.to_query(),
        }

        logger.info("entry_search: searching bbox=%s", params["bbox"])
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._base_url, params=params)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise EntrySearchError(f"Entries search for bbox={params['bbox']} failed: {e}") from e

        try:
            payload = response.json()
        except (ValueError, RecursionError) as e:
            raise EntrySearchError(f"Entries search returned invalid JSON: {e}") from e

        return parse_search_response(payload)
