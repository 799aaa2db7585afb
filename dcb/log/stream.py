"""
EventStream: lazy, restartable read result.
"""

from typing import TYPE_CHECKING, Iterator, List, Optional

from ..core.events import Event
from ..core.query import Query

if TYPE_CHECKING:
    from .store import EventStore


class EventStream:
    """
    Events matching a query, bounded by the log head at read() time.

    Iterating loads events one by one; iterating again yields the same
    events, even if other writers appended in between.
    """

    def __init__(
        self,
        store: "EventStore",
        query: Query,
        until: int,
        after: Optional[int] = None,
    ) -> None:
        self.store = store
        self.query = query
        self.until = until
        self.after = after

    def __iter__(self) -> Iterator[Event]:
        for event_id in self.store.index.iter_matching(self.query, self.until, self.after):
            yield self.store.get(event_id)

    @property
    def ids(self) -> List[int]:
        return list(self.store.index.iter_matching(self.query, self.until, self.after))

    def __len__(self) -> int:
        return len(self.ids)

    def __bool__(self) -> bool:
        return self.last_id() is not None

    def first(self) -> Optional[Event]:
        for event in self:
            return event
        return None

    def last_id(self) -> Optional[int]:
        last = self.store.index.last_id_for(self.query, self.until)
        if last is None or (self.after is not None and last <= self.after):
            return None
        return last

    def last(self) -> Optional[Event]:
        last = self.last_id()
        return self.store.get(last) if last is not None else None

    def __repr__(self) -> str:
        return f"EventStream({self.query}, until={self.until}, after={self.after})"
