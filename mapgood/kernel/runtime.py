"""
mapgood Kernel — Runtime

Sits between the pure reducer and the outside world (lookup services, the
map surface, the presentation layer). Owns the one ApplicationState.

  dispatch(msg)      enqueue a message (non-blocking); the host's handle
  handle(msg)        apply one message to completion, perform its commands
  run()              background loop: drain the queue forever
  run_until_idle()   drain the queue and wait for lookups until nothing is left

Lookups run as asyncio tasks and re-enter only by dispatching a message.
Overlapping lookups are neither sequenced nor cancelled: whichever reply is
handled last wins.

This is where IO happens. The reducer and projection are pure.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable, Coroutine
from typing import Any, Protocol

from mapgood.kernel.commands import Command, RecenterMap, RefreshOverlay, SearchEntries, SearchPlaces
from mapgood.kernel.messages import (
    EntriesSearchFailed,
    EntriesSearchSucceeded,
    Message,
    PlaceQueryFailed,
    PlaceQuerySucceeded,
    SubmitNewEntry,
)
from mapgood.kernel.projection import Dispatcher, MapBridge, MapSurface, project
from mapgood.kernel.reducer import initial_state, update
from mapgood.kernel.types import ApplicationState, BoundingBox, City, EntrySearchResult, MapMarker, ReduceResult
from mapgood.services.errors import LookupFailed

logger = logging.getLogger(__name__)

StateListener = Callable[[ApplicationState], None]


class PlaceLookup(Protocol):
    async def search(self, query: str) -> list[City]:
        """Cities matching free text. Raises LookupFailed."""


class EntryLookup(Protocol):
    async def search(self, box: BoundingBox) -> EntrySearchResult:
        """Entries inside a bounding box. Raises LookupFailed."""


class Engine(Dispatcher):
    """
    The single-session state engine.

    places and entries default to PlaceSearchClient and EntrySearchClient.

    A raising listener or surface call is logged and skipped. The rest of
    the transition still runs.
    """

    def __init__(
        self,
        surface: MapSurface,
        places: PlaceLookup | None = None,
        entries: EntryLookup | None = None,
        state: ApplicationState | None = None,
    ) -> None:
        if places is None:
            from mapgood.services.place_search import PlaceSearchClient

            places = PlaceSearchClient()
        if entries is None:
            from mapgood.services.entry_search import EntrySearchClient

            entries = EntrySearchClient()

        self._surface = surface
        self._places: PlaceLookup = places
        self._entries: EntryLookup = entries
        self._state = state if state is not None else initial_state()
        self._queue: asyncio.Queue[Message] = asyncio.Queue()
        self._pending: set[asyncio.Task[None]] = set()
        self._listeners: list[StateListener] = []

    # -- read access ---------------------------------------------------------

    @property
    def state(self) -> ApplicationState:
        """A copy of the current state. Mutating it does not affect the engine."""
        return copy.deepcopy(self._state)

    def map_markers(self) -> tuple[MapMarker, ...]:
        """Pull accessor for the current overlay, same shape as RefreshOverlay pushes."""
        return project(self._state.entries)

    def map_entries(self) -> list[dict[str, Any]]:
        """The current overlay as JSON-ready dicts for the host page."""
        return [marker.to_dict() for marker in self.map_markers()]

    @property
    def pending_lookups(self) -> int:
        return len(self._pending)

    def subscribe(self, listener: StateListener) -> None:
        """Call `listener` with a state copy after every transition that needs a redraw."""
        self._listeners.append(listener)

    def bridge(self, settle_delay: float | None = None) -> MapBridge:
        """The inbound bridge to hand to the host's map widget."""
        return MapBridge(self, settle_delay=settle_delay)

    # -- message handling ----------------------------------------------------

    def dispatch(self, message: Message) -> None:
        self._queue.put_nowait(message)

    def handle(self, message: Message) -> ReduceResult:
        """
        Apply one message: reduce, swap state, log diagnostics, notify
        listeners, perform commands. Returns the reducer's result.
        """
        result = update(self._state, message)
        if not result.applied:
            logger.warning("engine: rejected %s: %s", message.type, result.error)
            return result

        logger.debug("engine: applied %s (%d commands)", message.type, len(result.commands))
        self._state = result.state

        for diagnostic in result.diagnostics:
            logger.error("engine: %s: %s", diagnostic.code, diagnostic.message)

        if isinstance(message, SubmitNewEntry) and not self._state.form_violations:
            logger.info("engine: new entry draft accepted: %r", self._state.draft_form.title)

        if result.render:
            for listener in self._listeners:
                try:
                    listener(copy.deepcopy(self._state))
                except Exception:
                    logger.exception("engine: listener failed after %s", message.type)

        for command in result.commands:
            try:
                self._perform(command)
            except Exception:
                logger.exception("engine: command %s failed", type(command).__name__)

        return result

    async def run(self) -> None:
        """
        Background loop: handle queued messages one at a time, in arrival order.
        Runs until cancelled.
        """
        logger.info("engine: started")
        while True:
            message = await self._queue.get()
            try:
                self.handle(message)
            except Exception:
                logger.exception("engine: failed to handle %s", message.type)
            finally:
                self._queue.task_done()

    async def run_until_idle(self) -> None:
        """Handle everything queued, then wait on lookups, until neither is left."""
        while True:
            self._drain()
            if not self._pending:
                return
            await asyncio.wait(set(self._pending), return_when=asyncio.FIRST_COMPLETED)

    async def close(self) -> None:
        """Cancel in-flight lookups. Queued messages are left unhandled."""
        for task in self._pending:
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()

    def _drain(self) -> None:
        while True:
            try:
                message = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                self.handle(message)
            finally:
                self._queue.task_done()

    # -- commands ------------------------------------------------------------

    def _perform(self, command: Command) -> None:
        if isinstance(command, RecenterMap):
            self._surface.recenter(command.coordinate.lat, command.coordinate.lng)
        elif isinstance(command, RefreshOverlay):
            self._surface.refresh_overlay(command.markers)
        elif isinstance(command, SearchPlaces):
            self._spawn(self._search_places(command.query))
        elif isinstance(command, SearchEntries):
            self._spawn(self._search_entries(command.box))
        else:
            raise TypeError(f"Unknown command: {command!r}")

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_lookup_done)

    def _on_lookup_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("engine: lookup crashed", exc_info=exc)

    async def _search_places(self, query: str) -> None:
        try:
            cities = await self._places.search(query)
        except LookupFailed as e:
            self.dispatch(PlaceQueryFailed(reason=str(e)))
            return
        self.dispatch(PlaceQuerySucceeded(cities=tuple(cities)))

    async def _search_entries(self, box: BoundingBox) -> None:
        try:
            result = await self._entries.search(box)
        except LookupFailed as e:
            self.dispatch(EntriesSearchFailed(reason=str(e)))
            return
        self.dispatch(EntriesSearchSucceeded(result=result))
