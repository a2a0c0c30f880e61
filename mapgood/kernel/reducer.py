"""
mapgood Kernel — Reducer

Pure function: (state, message) → ReduceResult
No side effects. No IO. Deterministic.

The result carries the next state plus the commands the runtime should
perform (lookups, map-surface instructions). The reducer never performs
them itself.

Given the same sequence of messages, produces the same state every time.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable

from mapgood.kernel.commands import Command, RecenterMap, RefreshOverlay, SearchEntries, SearchPlaces
from mapgood.kernel.messages import (
    EntriesSearchFailed,
    EntriesSearchSucceeded,
    EntrySelected,
    FormFieldChanged,
    Message,
    NewEntryFormRequested,
    PlaceQueryChanged,
    PlaceQueryFailed,
    PlaceQuerySucceeded,
    SubmitNewEntry,
    ViewportCenterRequested,
    ViewportChanged,
)
from mapgood.kernel.projection import project
from mapgood.kernel.types import ApplicationState, Diagnostic, ReduceResult
from mapgood.kernel.validation import validate

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def initial_state() -> ApplicationState:
    """
    The state at startup: no candidates, no viewport, no selection,
    no entries, form hidden and empty.
    """
    return ApplicationState()


def update(state: ApplicationState, message: Message) -> ReduceResult:
    """
    Apply one message to the current state.
    Returns the next state, the commands to perform, and any diagnostics.

    Pure function. The returned state is a new object (deep copy).
    The input state is never modified.
    """
    handler = _HANDLERS.get(message.type)
    if handler is None:
        return ReduceResult(
            state=state,
            applied=False,
            error=f"UNKNOWN_MESSAGE: {message.type}",
        )

    next_state = copy.deepcopy(state)
    return handler(next_state, message)


def replay(messages: Iterable[Message]) -> ApplicationState:
    """
    Rebuild state from scratch by reducing over all messages.
    Commands are discarded: replay(msgs) is the state the engine would hold
    if none of the lookups issued along the way ever answered.
    """
    state = initial_state()
    for message in messages:
        result = update(state, message)
        if result.applied:
            state = result.state
    return state


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ok(
    state: ApplicationState,
    commands: list[Command] | None = None,
    diagnostics: list[Diagnostic] | None = None,
    render: bool = True,
) -> ReduceResult:
    return ReduceResult(
        state=state,
        applied=True,
        commands=commands or [],
        diagnostics=diagnostics or [],
        render=render,
    )


# ---------------------------------------------------------------------------
# Place search
# ---------------------------------------------------------------------------


def _handle_place_query_changed(state: ApplicationState, msg: PlaceQueryChanged) -> ReduceResult:
    return _ok(state, commands=[SearchPlaces(query=msg.text)])


def _handle_place_query_succeeded(state: ApplicationState, msg: PlaceQuerySucceeded) -> ReduceResult:
    # An empty page never replaces candidates from an earlier search
    if msg.cities:
        state.candidate_cities = tuple(msg.cities)
    return _ok(state)


def _handle_place_query_failed(state: ApplicationState, msg: PlaceQueryFailed) -> ReduceResult:
    return _ok(state, diagnostics=[Diagnostic(code="PLACE_SEARCH_FAILED", message=msg.reason)])


# ---------------------------------------------------------------------------
# Viewport
# ---------------------------------------------------------------------------


def _handle_viewport_center_requested(state: ApplicationState, msg: ViewportCenterRequested) -> ReduceResult:
    """The map surface owns its center. Nothing in state changes, nothing to redraw."""
    return _ok(state, commands=[RecenterMap(coordinate=msg.coordinate)], render=False)


def _handle_viewport_changed(state: ApplicationState, msg: ViewportChanged) -> ReduceResult:
    state.viewport = msg.box
    return _ok(state, commands=[SearchEntries(box=msg.box)])


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


def _handle_entries_search_succeeded(state: ApplicationState, msg: EntriesSearchSucceeded) -> ReduceResult:
    state.entries = tuple(msg.result.visible)
    return _ok(state, commands=[RefreshOverlay(markers=project(state.entries))])


def _handle_entries_search_failed(state: ApplicationState, msg: EntriesSearchFailed) -> ReduceResult:
    return _ok(state, diagnostics=[Diagnostic(code="ENTRY_SEARCH_FAILED", message=msg.reason)])


def _handle_entry_selected(state: ApplicationState, msg: EntrySelected) -> ReduceResult:
    state.selected_entry = next((e for e in state.entries if e.id == msg.entry_id), None)
    return _ok(state)


# ---------------------------------------------------------------------------
# New-entry form
# ---------------------------------------------------------------------------


def _handle_new_entry_form_requested(state: ApplicationState, msg: NewEntryFormRequested) -> ReduceResult:
    state.form_visible = True
    return _ok(state)


def _handle_form_field_changed(state: ApplicationState, msg: FormFieldChanged) -> ReduceResult:
    setattr(state.draft_form, msg.field, msg.text)
    return _ok(state)


def _handle_submit_new_entry(state: ApplicationState, msg: SubmitNewEntry) -> ReduceResult:
    """
    Valid draft → violations cleared. Creating the entry upstream is the
    host's job; the draft is left as is.
    Invalid draft → violations replace whatever was there before.
    """
    violations = validate(state.draft_form)
    state.form_violations = tuple(violations)
    return _ok(state)


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

_HANDLERS: dict[str, Callable[[ApplicationState, Message], ReduceResult]] = {
    # Place search
    PlaceQueryChanged.type: _handle_place_query_changed,
    PlaceQuerySucceeded.type: _handle_place_query_succeeded,
    PlaceQueryFailed.type: _handle_place_query_failed,
    # Viewport
    ViewportCenterRequested.type: _handle_viewport_center_requested,
    ViewportChanged.type: _handle_viewport_changed,
    # Entries
    EntriesSearchSucceeded.type: _handle_entries_search_succeeded,
    EntriesSearchFailed.type: _handle_entries_search_failed,
    EntrySelected.type: _handle_entry_selected,
    # Form
    NewEntryFormRequested.type: _handle_new_entry_form_requested,
    FormFieldChanged.type: _handle_form_field_changed,
    SubmitNewEntry.type: _handle_submit_new_entry,
}
