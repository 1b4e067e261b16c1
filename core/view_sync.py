"""
View State Synchronizer

Decides when the map viewport re-fits to the whole result set and when it
pans to one selected listing. The two intents travel on separate channels:

- fit: a caller-owned counter, bumped only on explicit search/filter actions
- pan: the active listing id

Each channel is idempotent. Re-sending the same trigger value or the same
active id issues nothing, so selecting a listing never re-fits the map and a
user's manual pan/zoom is left alone.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence, Tuple, Union

from .models import Bounds, Listing


# =============================================================================
# Configuration Constants
# =============================================================================

DEFAULT_CENTER = (29.7604, -95.3698)  # Houston
DEFAULT_ZOOM = 10

# Pan never leaves the map zoomed out further than this
MIN_PAN_ZOOM = 13

FIT_PADDING_PX = 40


# =============================================================================
# State
# =============================================================================


@dataclass(frozen=True)
class Viewport:
    lat: float = DEFAULT_CENTER[0]
    lng: float = DEFAULT_CENTER[1]
    zoom: float = DEFAULT_ZOOM


@dataclass(frozen=True)
class ViewState:
    """
    Synchronizer memory.

    fit_trigger_seen is the last trigger value a fit was issued for; -1 means
    none yet. active_id is the last id the pan channel settled: panned to, or
    found without coordinates. An id whose listing is not in the results yet
    is left unsettled (None) so the pan happens once it arrives.
    """

    viewport: Viewport = Viewport()
    fit_trigger_seen: int = -1
    active_id: Optional[str] = None


# =============================================================================
# Events and Commands
# =============================================================================


@dataclass(frozen=True)
class FitRequested:
    trigger: int
    listings: Tuple[Listing, ...] = ()


@dataclass(frozen=True)
class ActiveChanged:
    active_id: Optional[str]
    listings: Tuple[Listing, ...] = ()


@dataclass(frozen=True)
class ViewportMoved:
    """The user panned or zoomed the map."""

    viewport: Viewport


@dataclass(frozen=True)
class FitBounds:
    bounds: Bounds
    padding: int = FIT_PADDING_PX


@dataclass(frozen=True)
class PanTo:
    lat: float
    lng: float
    zoom: float


Event = Union[FitRequested, ActiveChanged, ViewportMoved]
Command = Union[FitBounds, PanTo]


# =============================================================================
# Reducer
# =============================================================================


def _fit(state: ViewState, event: FitRequested) -> Tuple[ViewState, Optional[Command]]:
    # Trigger values only increase; a stale or repeated one never re-fits
    if event.trigger <= state.fit_trigger_seen:
        return state, None

    bounds = Bounds.from_points((l.lat, l.lng) for l in event.listings if l.has_coordinates)
    if bounds is None:
        # Trigger stays pending until results with coordinates arrive
        return state, None

    lat, lng = bounds.center
    new_state = replace(
        state,
        fit_trigger_seen=event.trigger,
        viewport=replace(state.viewport, lat=lat, lng=lng),
    )
    return new_state, FitBounds(bounds=bounds)


def _pan(state: ViewState, event: ActiveChanged) -> Tuple[ViewState, Optional[Command]]:
    if event.active_id == state.active_id:
        return state, None

    new_state = replace(state, active_id=event.active_id)
    if event.active_id is None:
        return new_state, None

    target = next((l for l in event.listings if l.id == event.active_id), None)
    if target is None:
        return replace(state, active_id=None), None
    if not target.has_coordinates:
        return new_state, None

    zoom = max(state.viewport.zoom, MIN_PAN_ZOOM)
    new_state = replace(new_state, viewport=Viewport(lat=target.lat, lng=target.lng, zoom=zoom))
    return new_state, PanTo(lat=target.lat, lng=target.lng, zoom=zoom)


def reduce(state: ViewState, event: Event) -> Tuple[ViewState, Optional[Command]]:
    """
    Apply one event.

    Returns:
        (new state, command to issue or None). Each event yields at most one
        command, so fit and pan never compete for the same event.
    """
    if isinstance(event, FitRequested):
        return _fit(state, event)
    if isinstance(event, ActiveChanged):
        return _pan(state, event)
    if isinstance(event, ViewportMoved):
        return replace(state, viewport=event.viewport), None
    raise TypeError(f"Unknown view event: {event!r}")


def synchronize(
    state: ViewState,
    fit_trigger: int,
    active_id: Optional[str],
    listings: Iterable[Listing],
) -> Tuple[ViewState, Sequence[Command]]:
    """
    Run one update cycle: fit channel first, then pan channel.

    Returns:
        (new state, commands issued in order; at most one of each kind)
    """
    items = tuple(listings)
    commands = []
    for event in (FitRequested(fit_trigger, items), ActiveChanged(active_id, items)):
        state, command = reduce(state, event)
        if command is not None:
            commands.append(command)
    return state, commands
