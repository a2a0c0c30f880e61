"""
mapgood Kernel — Projection & Map Bridge

The seam between the engine and the map surface owned by the host page.

Outbound: project() turns the entry list into the marker shape the surface
consumes; MapSurface is the interface the runtime pushes markers and
recenter requests through.

Inbound: MapBridge is what the host calls when its own interactions happen
(marker clicked, viewport settled). It only ever talks to the engine
through a Dispatcher handle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from mapgood.config import settings
from mapgood.kernel.messages import EntrySelected, Message, ViewportChanged
from mapgood.kernel.types import BoundingBox, Entry, MapMarker

logger = logging.getLogger(__name__)


def project(entries: Iterable[Entry]) -> tuple[MapMarker, ...]:
    """Entries → markers. One marker per entry, same order, title as name."""
    return tuple(
        MapMarker(id=e.id, name=e.title, lat=e.coordinate.lat, lng=e.coordinate.lng)
        for e in entries
    )


# ---------------------------------------------------------------------------
# Outbound: map surface
# ---------------------------------------------------------------------------


class MapSurface:
    """
    Abstract map surface.
    Implement against the host page's map widget, or use RecordingSurface.
    """

    def recenter(self, lat: float, lng: float) -> None:
        """Move the map so (lat, lng) is at its center."""
        raise NotImplementedError

    def refresh_overlay(self, markers: tuple[MapMarker, ...]) -> None:
        """Replace every overlay marker with `markers`."""
        raise NotImplementedError


class RecordingSurface(MapSurface):
    """In-memory surface for tests and headless hosts."""

    def __init__(self) -> None:
        self.centers: list[tuple[float, float]] = []
        self.overlays: list[tuple[MapMarker, ...]] = []

    def recenter(self, lat: float, lng: float) -> None:
        self.centers.append((lat, lng))

    def refresh_overlay(self, markers: tuple[MapMarker, ...]) -> None:
        self.overlays.append(markers)

    @property
    def markers(self) -> tuple[MapMarker, ...]:
        """Markers currently shown (the last overlay pushed)."""
        return self.overlays[-1] if self.overlays else ()


# ---------------------------------------------------------------------------
# Inbound: host → engine
# ---------------------------------------------------------------------------


class Dispatcher:
    """The one handle a host holds to send messages into the engine."""

    def dispatch(self, message: Message) -> None:
        raise NotImplementedError


class MapBridge:
    """
    Entry points the host page's map widget calls back into.

    Viewport events are deferred by `settle_delay` seconds; a newer event
    arriving inside that window replaces the pending one, so a continuous
    pan/zoom gesture produces a single ViewportChanged.
    """

    def __init__(self, dispatcher: Dispatcher, settle_delay: float | None = None) -> None:
        self._dispatcher = dispatcher
        self._settle_delay = settings.viewport_settle_seconds if settle_delay is None else settle_delay
        self._pending: asyncio.TimerHandle | None = None

    def on_marker_activated(self, entry_id: str) -> None:
        logger.debug("marker activated: %s", entry_id)
        self._dispatcher.dispatch(EntrySelected(entry_id=entry_id))

    def on_viewport_settled(self, ne_lat: float, ne_lng: float, sw_lat: float, sw_lng: float) -> None:
        """
        Must be called from inside the engine's event loop.
        Boxes that fail validation are logged and dropped.
        """
        try:
            box = BoundingBox.from_corners(ne_lat, ne_lng, sw_lat, sw_lng)
        except ValueError as e:
            logger.warning("MapBridge: dropping invalid viewport: %s", e)
            return

        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self._settle_delay, self._fire, box)

    @property
    def has_pending_viewport(self) -> bool:
        return self._pending is not None

    def cancel(self) -> None:
        """Drop a pending viewport event, if any."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self, box: BoundingBox) -> None:
        self._pending = None
        self._dispatcher.dispatch(ViewportChanged(box=box))
