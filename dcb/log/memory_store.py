"""
In-memory event store.

Single-process backend: the log is a Python list and the append guard is the
store's re-entrant lock.
"""

from typing import List, Optional

from ..core.events import Event, EventTypeRegistry
from .store import EventStore


class InMemoryEventStore(EventStore):
    """
    In-memory append-only event store.

    Guarantees:
    - Append-only (no mutations)
    - Batch atomicity (list extend happens before the head is published)
    - Serialized conditional appends (threading.RLock)
    """

    def __init__(self, clock=None, registry: Optional[EventTypeRegistry] = None) -> None:
        super().__init__(clock=clock, registry=registry)
        self._events: List[Event] = []

    def _write(self, events: List[Event]) -> None:
        self._events.extend(events)

    def _load(self, event_id: int) -> Event:
        return self._events[event_id - 1]

    def __len__(self) -> int:
        return self._head
