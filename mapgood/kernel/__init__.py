"""
mapgood Kernel — the state engine.

Components:
  validation  — structured checks on the new-entry draft
  reducer     — (state, message) → next state + commands  (pure, deterministic)
  projection  — entries → map markers; inbound map bridge
  runtime     — owns the state, runs commands, talks to lookups and the map
"""

from mapgood.kernel.projection import MapBridge, MapSurface, RecordingSurface, project
from mapgood.kernel.reducer import initial_state, replay, update
from mapgood.kernel.runtime import Engine
from mapgood.kernel.validation import validate

__all__ = [
    "validate",
    "update",
    "replay",
    "initial_state",
    "project",
    "MapBridge",
    "MapSurface",
    "RecordingSurface",
    "Engine",
]
