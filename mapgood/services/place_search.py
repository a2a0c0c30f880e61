"""HTTP client for Nominatim place search."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from mapgood.config import settings
from mapgood.kernel.types import City, Coordinate
from mapgood.services.errors import PlaceSearchError

logger = logging.getLogger(__name__)


class NominatimAddress(BaseModel):
    """The `address` block returned with addressdetails=1."""

    model_config = {"extra": "ignore"}

    country: str
    country_code: str | None = None
    city: str | None = None
    village: str | None = None
    locality: str | None = None
    postcode: str | None = None
    state: str | None = None


class NominatimRecord(BaseModel):
    """One search hit. Coordinates arrive as decimal strings."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    address: NominatimAddress
    boundingbox: list[str] = Field(default_factory=list)
    class_: str = Field(alias="class")
    type: str
    display_name: str = ""
    lat: str | None = None
    lon: str | None = None

    def is_city(self) -> bool:
        """Incorporated places, villages, and administrative boundaries count as cities."""
        if self.class_ == "place":
            return self.type in ("city", "village")
        return self.class_ == "boundary" and self.type == "administrative"

    def to_city(self) -> City | None:
        """
        Map to a City, or None when the record lacks a name or usable coordinates.
        The name is address.city, or address.village when there is no city.
        """
        name = self.address.city or self.address.village
        if not name or self.lat is None or self.lon is None:
            return None
        try:
            coordinate = Coordinate(lat=float(self.lat), lng=float(self.lon))
        except ValueError:
            return None
        return City(name=name, country=self.address.country, coordinate=coordinate)


def parse_places(records: list[Any]) -> list[City]:
    """
    Filter and map raw Nominatim records to cities.
    Records that fail to decode, are not cities, or cannot be mapped are skipped.
    """
    cities: list[City] = []
    for raw in records:
        try:
            record = NominatimRecord.model_validate(raw)
        except ValidationError as e:
            logger.debug("place_search: skipping malformed record: %s", e.errors()[:1])
            continue
        if not record.is_city():
            continue
        city = record.to_city()
        if city is None:
            logger.debug("place_search: skipping record without name/coordinates: %r", record.display_name)
            continue
        cities.append(city)
    return cities


class PlaceSearchClient:
    """HTTP client for the Nominatim /search endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._base_url = base_url or settings.NOMINATIM_URL
        self._timeout = settings.HTTP_TIMEOUT_SECONDS if timeout is None else timeout
        self._user_agent = user_agent or settings.USER_AGENT

    async def search(self, query: str) -> list[City]:
        """
        Look up places matching a free-text query.

        Args:
            query: What the user typed (URL-encoded by httpx)

        Returns:
            Cities among the hits, in the order Nominatim ranked them. May be empty.

        Raises:
            PlaceSearchError: If the request fails or the body is not a JSON list
        """
        params = {"q": query, "format": "json", "addressdetails": 1}
        headers = {"User-Agent": self._user_agent}

        logger.info("place_search: searching %r", query)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._base_url, params=params, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise PlaceSearchError(f"Place search for {query!r} failed: {e}") from e

        try:
            payload = response.json()
        except (ValueError, RecursionError) as e:
            raise PlaceSearchError(f"Place search for {query!r} returned invalid JSON: {e}") from e

        if not isinstance(payload, list):
            raise PlaceSearchError(
                f"Place search for {query!r} returned {type(payload).__name__}, expected a list"
            )

        return parse_places(payload)
