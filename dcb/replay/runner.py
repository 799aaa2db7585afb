"""
Projection runner: fold a projection over its slice of the log.

Folding is pure: it reads the events matching the projection's query in
ascending id order and threads the state through its transitions.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from ..core.events import Event
from ..core.projection import Projection
from ..log.store import EventStore


@dataclass(frozen=True)
class ReplayResult:
    """
    Result of a projection replay.

    Fields:
        state: Final folded state
        applied: Number of events applied
        last_id: Id of the last applied event (None if nothing applied)
    """
    state: Any
    applied: int
    last_id: Optional[int]


def fold(projection: Projection, events: Iterable[Event]) -> Any:
    """
    Fold projection over an iterable of events.

    Events whose type has no transition are skipped; the caller decides which
    events to pass.
    """
    state = projection.initial_state
    for event in events:
        if event.type in projection.handlers:
            state = projection.transition(state, event)
    return state


def replay(
    projection: Projection,
    store: EventStore,
    until: Optional[int] = None,
) -> ReplayResult:
    """
    Replay a projection against the store.

    Args:
        projection: Projection to run
        store: Event store to read from
        until: Stop at this id (inclusive, None = current head)

    Returns:
        ReplayResult with final state, count and last applied id
    """
    state = projection.initial_state
    count = 0
    last_id = None

    for event in store.read(projection.query, until=until):
        state = projection.transition(state, event)
        count += 1
        last_id = event.id

    return ReplayResult(state=state, applied=count, last_id=last_id)


def run(projection: Projection, store: EventStore, until: Optional[int] = None) -> Any:
    """Final state of projection over the store (see replay())."""
    return replay(projection, store, until=until).state
