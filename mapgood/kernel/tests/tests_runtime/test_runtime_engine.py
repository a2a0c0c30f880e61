"""
mapgood Runtime -- Engine Tests

Drives the engine end to end with fake lookups and a recording surface.

Covers:
  - place search round trip, failure, empty result policy
  - viewport → entries search → overlay push; failure path
  - recenter goes straight to the surface, no redraw
  - overlapping entries searches: last reply handled wins
  - listeners, state copies, pull accessor
  - a raising listener or surface is logged; the transition still completes
  - background run() loop, close() cancelling in-flight lookups
  - a crashing adapter is logged, not turned into a message
"""

import asyncio
import logging

import pytest

from mapgood.kernel.messages import (
    EntrySelected,
    FormFieldChanged,
    NewEntryFormRequested,
    PlaceQueryChanged,
    SubmitNewEntry,
    ViewportCenterRequested,
    ViewportChanged,
)
from mapgood.kernel.projection import RecordingSurface
from mapgood.kernel.reducer import initial_state
from mapgood.kernel.runtime import Engine
from mapgood.kernel.types import BoundingBox, City, Coordinate, Entry, EntrySearchResult, MapMarker
from mapgood.services.errors import EntrySearchError, PlaceSearchError

# ============================================================================
# Helpers
# ============================================================================

BERLIN = City(name="Berlin", country="Germany", coordinate=Coordinate(lat=52.52, lng=13.405))
B1 = BoundingBox.from_corners(52.6, 13.5, 52.4, 13.3)
B2 = BoundingBox.from_corners(48.2, 11.7, 48.0, 11.4)


def make_entry(entry_id: str, title: str = "Repair Café") -> Entry:
    return Entry(id=entry_id, title=title, description="", coordinate=Coordinate(lat=52.5, lng=13.4))


def broken_listener(state):
    raise RuntimeError("listener bug")


class BrokenRecenterSurface(RecordingSurface):
    def recenter(self, lat: float, lng: float) -> None:
        raise RuntimeError("widget gone")


# ============================================================================
# 1. Place search
# ============================================================================


class TestPlaceSearch:
    @pytest.mark.asyncio
    async def test_round_trip(self, engine, places):
        places.cities = [BERLIN]
        engine.dispatch(PlaceQueryChanged(text="Berlin"))
        await engine.run_until_idle()

        assert places.queries == ["Berlin"]
        assert engine.state.candidate_cities == (BERLIN,)

    @pytest.mark.asyncio
    async def test_empty_result_keeps_candidates(self, engine, places):
        places.cities = [BERLIN]
        engine.dispatch(PlaceQueryChanged(text="Berlin"))
        await engine.run_until_idle()

        places.cities = []
        engine.dispatch(PlaceQueryChanged(text="Berlinxx"))
        await engine.run_until_idle()

        assert engine.state.candidate_cities == (BERLIN,)

    @pytest.mark.asyncio
    async def test_failure_logged_state_unchanged(self, engine, places, caplog):
        caplog.set_level(logging.ERROR, logger="mapgood.kernel.runtime")
        places.error = PlaceSearchError("Place search for 'x' failed: timed out")
        engine.dispatch(PlaceQueryChanged(text="x"))
        await engine.run_until_idle()

        assert engine.state == initial_state()
        assert "PLACE_SEARCH_FAILED" in caplog.text
        assert "timed out" in caplog.text

    @pytest.mark.asyncio
    async def test_crashing_adapter_logged(self, engine, places, caplog):
        caplog.set_level(logging.ERROR, logger="mapgood.kernel.runtime")
        places.error = RuntimeError("bug")
        engine.dispatch(PlaceQueryChanged(text="x"))
        await engine.run_until_idle()

        assert "lookup crashed" in caplog.text
        assert engine.state == initial_state()
        assert engine.pending_lookups == 0


# ============================================================================
# 2. Viewport & entries
# ============================================================================


class TestEntriesSearch:
    @pytest.mark.asyncio
    async def test_viewport_fetches_and_pushes_overlay(self, engine, entries, surface):
        entries.results[B1] = EntrySearchResult(
            visible=(make_entry("a", "Alpha"),),
            invisible=(make_entry("z", "Hidden"),),
        )
        engine.dispatch(ViewportChanged(box=B1))
        await engine.run_until_idle()

        assert entries.boxes == [B1]
        assert engine.state.viewport == B1
        assert [e.id for e in engine.state.entries] == ["a"]
        assert surface.markers == (MapMarker(id="a", name="Alpha", lat=52.5, lng=13.4),)
        assert engine.map_markers() == surface.markers

    @pytest.mark.asyncio
    async def test_viewport_set_before_reply(self, engine, entries):
        entries.delays[B1] = 10
        engine.handle(ViewportChanged(box=B1))

        assert engine.state.viewport == B1
        assert engine.pending_lookups == 1
        await engine.close()

    @pytest.mark.asyncio
    async def test_failure_keeps_entries(self, engine, entries, surface, caplog):
        caplog.set_level(logging.ERROR, logger="mapgood.kernel.runtime")
        entries.results[B1] = EntrySearchResult(visible=(make_entry("a"),))
        engine.dispatch(ViewportChanged(box=B1))
        await engine.run_until_idle()

        entries.error = EntrySearchError("Entries search for bbox=... failed: 502")
        engine.dispatch(ViewportChanged(box=B2))
        await engine.run_until_idle()

        assert engine.state.viewport == B2
        assert [e.id for e in engine.state.entries] == ["a"]
        assert len(surface.overlays) == 1
        assert "ENTRY_SEARCH_FAILED" in caplog.text

    @pytest.mark.asyncio
    async def test_stale_reply_wins_when_it_lands_last(self, engine, entries):
        """B1 issued first but answered last: its entries are what stays."""
        entries.results[B1] = EntrySearchResult(visible=(make_entry("from_b1"),))
        entries.results[B2] = EntrySearchResult(visible=(make_entry("from_b2"),))
        entries.delays[B1] = 0.05
        entries.delays[B2] = 0

        engine.dispatch(ViewportChanged(box=B1))
        engine.dispatch(ViewportChanged(box=B2))
        await engine.run_until_idle()

        assert engine.state.viewport == B2
        assert [e.id for e in engine.state.entries] == ["from_b1"]

    @pytest.mark.asyncio
    async def test_select_after_fetch(self, engine, entries):
        entries.results[B1] = EntrySearchResult(visible=(make_entry("a"), make_entry("b")))
        engine.dispatch(ViewportChanged(box=B1))
        engine.dispatch(EntrySelected(entry_id="b"))
        await engine.run_until_idle()

        # Selection ran before the reply arrived: nothing to select yet
        assert engine.state.selected_entry is None

        engine.dispatch(EntrySelected(entry_id="b"))
        await engine.run_until_idle()
        assert engine.state.selected_entry.id == "b"


# ============================================================================
# 3. Surface, listeners, state access
# ============================================================================


class TestSurfaceAndListeners:
    def test_recenter_goes_to_surface(self, engine, surface):
        engine.handle(ViewportCenterRequested(coordinate=Coordinate(lat=52.52, lng=13.405)))
        assert surface.centers == [(52.52, 13.405)]
        assert engine.pending_lookups == 0

    def test_listener_gets_copies(self, engine):
        seen = []
        engine.subscribe(seen.append)
        engine.handle(NewEntryFormRequested())

        assert len(seen) == 1
        assert seen[0].form_visible is True
        seen[0].form_visible = False
        assert engine.state.form_visible is True

    def test_listener_skipped_when_no_redraw(self, engine):
        seen = []
        engine.subscribe(seen.append)
        engine.handle(ViewportCenterRequested(coordinate=Coordinate(lat=0.0, lng=0.0)))
        assert seen == []

    def test_state_is_a_copy(self, engine):
        snapshot = engine.state
        snapshot.draft_form.title = "mutated"
        assert engine.state.draft_form.title == ""

    def test_accepted_draft_logged(self, engine, caplog):
        caplog.set_level(logging.INFO, logger="mapgood.kernel.runtime")
        engine.handle(FormFieldChanged(field="title", text="Tool library"))
        engine.handle(SubmitNewEntry())
        assert "new entry draft accepted" in caplog.text

    def test_map_markers_empty_at_start(self, engine):
        assert engine.map_markers() == ()

    @pytest.mark.asyncio
    async def test_map_entries_host_shape(self, engine, entries):
        entries.results[B1] = EntrySearchResult(visible=(make_entry("a", "Alpha"),))
        engine.dispatch(ViewportChanged(box=B1))
        await engine.run_until_idle()
        assert engine.map_entries() == [{"id": "a", "name": "Alpha", "lat": 52.5, "lng": 13.4}]

    def test_map_entries_empty_at_start(self, engine):
        assert engine.map_entries() == []

    @pytest.mark.asyncio
    async def test_raising_listener_still_issues_search(self, engine, entries, caplog):
        caplog.set_level(logging.ERROR, logger="mapgood.kernel.runtime")
        seen = []
        engine.subscribe(broken_listener)
        engine.subscribe(seen.append)
        engine.handle(ViewportChanged(box=B1))
        assert len(seen) == 1
        assert engine.pending_lookups == 1

        await engine.run_until_idle()
        assert entries.boxes == [B1]
        assert len(seen) == 2
        assert "listener failed" in caplog.text

    def test_raising_surface_logged(self, places, entries, caplog):
        caplog.set_level(logging.ERROR, logger="mapgood.kernel.runtime")
        engine = Engine(surface=BrokenRecenterSurface(), places=places, entries=entries)
        result = engine.handle(ViewportCenterRequested(coordinate=Coordinate(lat=1.0, lng=2.0)))

        assert result.applied
        assert "command RecenterMap failed" in caplog.text
        assert "widget gone" in caplog.text


# ============================================================================
# 4. Loop lifecycle
# ============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_run_loop_handles_dispatched_messages(self, engine):
        runner = asyncio.create_task(engine.run())
        try:
            engine.dispatch(NewEntryFormRequested())
            for _ in range(100):
                if engine.state.form_visible:
                    break
                await asyncio.sleep(0.001)
            assert engine.state.form_visible is True
        finally:
            runner.cancel()
            with pytest.raises(asyncio.CancelledError):
                await runner

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight_lookups(self, engine, entries):
        entries.delays[B1] = 10
        entries.results[B1] = EntrySearchResult(visible=(make_entry("late"),))
        engine.handle(ViewportChanged(box=B1))
        assert engine.pending_lookups == 1

        await engine.close()
        await engine.run_until_idle()

        assert engine.pending_lookups == 0
        assert engine.state.entries == ()

    @pytest.mark.asyncio
    async def test_messages_handled_in_arrival_order(self, engine, places):
        places.cities = [BERLIN]
        engine.dispatch(PlaceQueryChanged(text="one"))
        engine.dispatch(PlaceQueryChanged(text="two"))
        engine.dispatch(PlaceQueryChanged(text="three"))
        await engine.run_until_idle()
        assert places.queries == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_run_loop_survives_raising_listener(self, engine, entries):
        engine.subscribe(broken_listener)
        runner = asyncio.create_task(engine.run())
        try:
            engine.dispatch(ViewportChanged(box=B1))
            engine.dispatch(NewEntryFormRequested())
            for _ in range(100):
                if engine.state.form_visible and entries.boxes:
                    break
                await asyncio.sleep(0.001)

            assert entries.boxes == [B1]
            assert engine.state.form_visible is True
            assert not runner.done()
        finally:
            runner.cancel()
            with pytest.raises(asyncio.CancelledError):
                await runner
