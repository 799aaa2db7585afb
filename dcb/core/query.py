"""
Query: tag/type filter over the event log.

An event matches when it carries ANY of the query tags (or tags is empty)
AND its type is one of the query types (or types is empty).
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Union

from .events import Event

Selector = Union[None, str, Iterable[str]]


def selector_set(selector: Selector) -> FrozenSet[str]:
    if selector is None:
        return frozenset()
    if isinstance(selector, str):
        return frozenset([selector])
    return frozenset(str(s) for s in selector)


@dataclass(frozen=True)
class Query:
    """
    Immutable event filter.

    Fields:
        tags: Event matches if it carries any of these (empty = no tag filter)
        types: Event matches if its type is one of these (empty = no type filter)
    """
    tags: FrozenSet[str] = field(default_factory=frozenset)
    types: FrozenSet[str] = field(default_factory=frozenset)

    @staticmethod
    def of(tags: Selector = None, types: Selector = None) -> "Query":
        """
        Build a query from loose selectors.

        Example:
            Query.of(tags="course:c1", types=["CourseDefined", "CourseCapacityChanged"])
        """
        return Query(tags=selector_set(tags), types=selector_set(types))

    @staticmethod
    def all() -> "Query":
        """Query matching the whole log."""
        return Query()

    @staticmethod
    def union(*queries: "Query") -> "Query":
        """
        Combine queries by uniting their tag sets and type sets.

        An empty selector means "unfiltered", so it absorbs the other inputs'
        selectors of the same kind. The result may match more than any single
        input (tag from one, type from another); it never matches less.
        """
        if not queries:
            return Query.all()
        tags: FrozenSet[str] = frozenset()
        types: FrozenSet[str] = frozenset()
        any_untagged = any(not q.tags for q in queries)
        any_untyped = any(not q.types for q in queries)
        for q in queries:
            tags = tags | q.tags
            types = types | q.types
        return Query(
            tags=frozenset() if any_untagged else tags,
            types=frozenset() if any_untyped else types,
        )

    def is_empty(self) -> bool:
        return not self.tags and not self.types

    def matches(self, event: Event) -> bool:
        if self.types and event.type not in self.types:
            return False
        if self.tags and not event.has_any_tag(self.tags):
            return False
        return True

    def to_dict(self) -> dict:
        return {"tags": sorted(self.tags), "types": sorted(self.types)}

    def __str__(self) -> str:
        tags = ",".join(sorted(self.tags)) or "*"
        types = ",".join(sorted(self.types)) or "*"
        return f"Query(tags={tags}; types={types})"
