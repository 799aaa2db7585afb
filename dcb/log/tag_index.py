"""
Tag index: per-tag and per-type ordered position lists.

Invariant: for every tag T, positions_for(T) is exactly the subsequence of
the global log whose events carry T, in log order. The same holds for types.

The index is mutated only by the store, inside its append guard. Readers pass
an explicit upper bound (the head they observed) so that entries of an event
still being indexed are never visible to them.
"""

import heapq
from bisect import bisect_right
from typing import Dict, Iterable, Iterator, List, Optional

from ..core.errors import EventStoreError
from ..core.events import Event
from ..core.query import Query


def _bounded(positions: List[int], after: int, until: int) -> Iterator[int]:
    lo = bisect_right(positions, after)
    hi = bisect_right(positions, until)
    return (positions[i] for i in range(lo, hi))


def _dedupe(ids: Iterable[int]) -> Iterator[int]:
    last = None
    for event_id in ids:
        if event_id != last:
            yield event_id
            last = event_id


class TagIndex:
    """
    Incremental index over an append-only log with 1-based contiguous ids.

    Usage:
        index = TagIndex()
        index.add(event)
        index.last_id_for(Query.of(tags="course:c1"), until=head)
    """

    def __init__(self) -> None:
        self._by_tag: Dict[str, List[int]] = {}
        self._by_type: Dict[str, List[int]] = {}
        self._types: List[str] = []

    def __len__(self) -> int:
        return len(self._types)

    def add(self, event: Event) -> None:
        """
        Index one event.

        Raises:
            EventStoreError: If event.id does not directly follow the last indexed id
        """
        expected = len(self._types) + 1
        if event.id != expected:
            raise EventStoreError(f"Index gap: expected event id {expected}, got {event.id}")
        for tag in event.tags:
            self._by_tag.setdefault(tag, []).append(event.id)
        self._by_type.setdefault(event.type, []).append(event.id)
        # Type list last: len(self._types) is the indexed length.
        self._types.append(event.type)

    def add_all(self, events: Iterable[Event]) -> None:
        for event in events:
            self.add(event)

    def positions_for(self, tag: str, until: Optional[int] = None) -> List[int]:
        positions = self._by_tag.get(tag, [])
        return list(_bounded(positions, 0, self._until(until)))

    def positions_for_type(self, event_type: str, until: Optional[int] = None) -> List[int]:
        positions = self._by_type.get(event_type, [])
        return list(_bounded(positions, 0, self._until(until)))

    def tags(self) -> List[str]:
        return sorted(self._by_tag.keys())

    def iter_matching(
        self, query: Query, until: Optional[int] = None, after: Optional[int] = None
    ) -> Iterator[int]:
        """
        Yield ids of events matching query in ascending order.

        Args:
            query: Tag/type filter
            until: Upper bound (inclusive, None = everything indexed)
            after: Lower bound (exclusive, None = from the start)
        """
        hi = self._until(until)
        lo = after or 0
        if query.tags:
            lists = [self._by_tag[t] for t in query.tags if t in self._by_tag]
            merged = _dedupe(heapq.merge(*(_bounded(p, lo, hi) for p in lists)))
            if not query.types:
                return merged
            return (i for i in merged if self._types[i - 1] in query.types)
        if query.types:
            lists = [self._by_type[t] for t in query.types if t in self._by_type]
            return heapq.merge(*(_bounded(p, lo, hi) for p in lists))
        return iter(range(lo + 1, hi + 1))

    def last_id_for(self, query: Query, until: Optional[int] = None) -> Optional[int]:
        """
        Id of the most recent event matching query, or None.

        Tag lists are scanned backwards from the bound; with a type filter the
        scan stops at the first id of a wanted type. The result is the maximum
        over all listed tags (or types when the query has no tags).
        """
        hi = self._until(until)
        best: Optional[int] = None
        if query.tags:
            for tag in query.tags:
                positions = self._by_tag.get(tag)
                if not positions:
                    continue
                i = bisect_right(positions, hi) - 1
                while i >= 0:
                    candidate = positions[i]
                    if best is not None and candidate <= best:
                        break
                    if not query.types or self._types[candidate - 1] in query.types:
                        best = candidate
                        break
                    i -= 1
            return best
        if query.types:
            for event_type in query.types:
                positions = self._by_type.get(event_type)
                if not positions:
                    continue
                i = bisect_right(positions, hi) - 1
                if i >= 0 and (best is None or positions[i] > best):
                    best = positions[i]
            return best
        return hi or None

    def _until(self, until: Optional[int]) -> int:
        indexed = len(self._types)
        if until is None:
            return indexed
        return min(until, indexed)
