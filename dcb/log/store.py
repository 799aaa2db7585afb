"""
EventStore abstract interface and append guard.

Backends supply persistence (_write/_load); the base class owns the tag
index, id/timestamp assignment and the conditional append algorithm.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from .. import metrics
from ..core.clock import SystemClock
from ..core.errors import ConcurrencyConflict, EventStoreError
from ..core.events import Event, EventTypeRegistry, NewEvent
from ..core.query import Query
from .stream import EventStream
from .tag_index import TagIndex

logger = logging.getLogger(__name__)

Batch = Union[NewEvent, Sequence[NewEvent]]


class EventStore(ABC):
    """
    Abstract tag-indexed event log.

    All implementations must guarantee:
    - Append-only (no updates, no deletes)
    - Gap-free ids starting at 1, in append order
    - Batch atomicity (a batch is visible entirely or not at all)
    - Check-then-write of conditional appends as one critical section
    """

    def __init__(self, clock=None, registry: Optional[EventTypeRegistry] = None) -> None:
        self.clock = clock or SystemClock()
        self.registry = registry
        self.index = TagIndex()
        self._lock = threading.RLock()
        self._head = 0
        self._last_timestamp: Optional[datetime] = None
        self._closed = False

    # -- backend hooks -----------------------------------------------------

    @abstractmethod
    def _write(self, events: List[Event]) -> None:
        """
        Persist a stamped batch. Called inside the append guard.

        Must either persist the whole batch or raise leaving storage unchanged.
        """
        ...

    @abstractmethod
    def _load(self, event_id: int) -> Event:
        """Return a committed event by id."""
        ...

    def _refresh(self) -> None:
        """
        Fold events committed by other handles into the index.

        Called inside the append guard. Default: nothing to do.
        """
        return None

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Critical section for check-then-write. Backends may add I/O locks."""
        with self._lock:
            yield

    # -- writing -----------------------------------------------------------

    def append(
        self,
        events: Batch,
        query: Optional[Query] = None,
        condition: Optional[int] = None,
    ) -> List[int]:
        """
        Append a batch, optionally guarded by an append condition.

        Args:
            events: NewEvent or sequence of NewEvents (appended in order)
            query: Consistency boundary (None = unconditional append)
            condition: Last id matching query when the decision was built
                       (None = the decision saw no matching event)

        Returns:
            Ids assigned to the batch

        Raises:
            ConcurrencyConflict: If the last id matching query differs from condition
            ValueError: If the batch is empty, has a naive timestamp or fails registry validation
            EventStoreError: If the backend fails (nothing is written)
        """
        batch = self._prepare(events)
        self._check_open()

        with self._guard():
            self._refresh()
            if query is not None:
                current = self.index.last_id_for(query, self._head)
                if current != condition:
                    metrics.track_conflict()
                    logger.info(
                        f"Append rejected: {query} expected last={condition} actual={current}"
                    )
                    raise ConcurrencyConflict(query, condition, current)

            stored, last_ts = self._stamp(batch)
            self._write(stored)
            self.index.add_all(stored)
            self._last_timestamp = last_ts
            # Publish after indexing: readers bound themselves by _head.
            self._head = stored[-1].id

        for event in stored:
            metrics.track_append(event.type)
        ids = [event.id for event in stored]
        logger.debug(f"Appended events {ids}")
        return ids

    def _prepare(self, events: Batch) -> List[NewEvent]:
        if isinstance(events, NewEvent):
            batch = [events]
        else:
            batch = list(events)
        if not batch:
            raise ValueError("Cannot append an empty batch")
        for event in batch:
            if not isinstance(event, NewEvent):
                raise TypeError(f"Expected NewEvent, got {type(event).__name__}")
            if not event.tags:
                raise ValueError(f"Event {event.type} carries no tags")
            if event.timestamp is not None and event.timestamp.tzinfo is None:
                raise ValueError(f"Timestamp of {event.type} has no timezone")
            if self.registry is not None:
                if event.type not in self.registry:
                    raise ValueError(f"Unknown event type: {event.type}")
                expected = self.registry.get(event.type).tags_for(event.data)
                if tuple(sorted(set(event.tags))) != expected:
                    raise ValueError(
                        f"Tags {list(event.tags)} of {event.type} differ from {list(expected)}"
                    )
        return batch

    def _stamp(self, batch: List[NewEvent]) -> Tuple[List[Event], Optional[datetime]]:
        stored = []
        next_id = self._head + 1
        last_ts = self._last_timestamp
        for offset, new in enumerate(batch):
            if new.timestamp is not None:
                ts = new.timestamp
            else:
                ts = self.clock.now()
                if last_ts is not None and ts < last_ts:
                    ts = last_ts
                last_ts = ts
            stored.append(
                Event(
                    id=next_id + offset,
                    type=new.type,
                    data=copy.deepcopy(dict(new.data)),
                    tags=tuple(sorted(set(new.tags))),
                    timestamp=ts,
                )
            )
        return stored, last_ts

    # -- reading -----------------------------------------------------------

    @property
    def head(self) -> Optional[int]:
        """Id of the last committed event (None for an empty log)."""
        self._sync()
        return self._head or None

    def read(
        self,
        query: Optional[Query] = None,
        after: Optional[int] = None,
        until: Optional[int] = None,
    ) -> EventStream:
        """
        Read events matching query in append order.

        Args:
            query: Filter (None = whole log)
            after: Only events with id > after
            until: Only events with id <= until (capped at the current head)

        Returns:
            Lazy, restartable EventStream bounded by the head at call time
        """
        self._check_open()
        self._sync()
        head = self._head
        bound = head if until is None else min(until, head)
        return EventStream(self, query if query is not None else Query.all(), bound, after)

    def last_id_for(self, query: Query, until: Optional[int] = None) -> Optional[int]:
        """Id of the most recent event matching query (None if nothing matches)."""
        self._sync()
        head = self._head
        bound = head if until is None else min(until, head)
        return self.index.last_id_for(query, bound)

    def positions_for(self, tag: str) -> List[int]:
        self._sync()
        return self.index.positions_for(tag, self._head)

    def get(self, event_id: int) -> Event:
        if event_id < 1 or event_id > self._head:
            raise EventStoreError(f"No event with id {event_id}")
        return self._load(event_id)

    def _sync(self) -> None:
        """Pick up other handles' appends before a read."""
        return None

    # -- lifecycle ---------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise EventStoreError("Event store is closed")

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "EventStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
