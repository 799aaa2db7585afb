"""
Event model for the tag-indexed log.

Events are immutable records. A NewEvent is what a command handler builds;
the store turns it into an Event by assigning id and timestamp.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

TagsResult = Union[str, Iterable[str]]
TagFunction = Callable[[Dict[str, Any]], TagsResult]


def normalize_tags(tags: TagsResult) -> Tuple[str, ...]:
    """
    Normalize a tag function result to a sorted, de-duplicated tuple.

    Raises:
        ValueError: If the result is empty
        TypeError: If a tag is not a string
    """
    if isinstance(tags, str):
        tags = [tags]
    out = set()
    for tag in tags:
        if not isinstance(tag, str):
            raise TypeError(f"Tag must be a string, got {type(tag).__name__}")
        if not tag:
            raise ValueError("Tag must not be empty")
        out.add(tag)
    if not out:
        raise ValueError("Event must carry at least one tag")
    return tuple(sorted(out))


@dataclass(frozen=True)
class NewEvent:
    """
    Event not yet appended.

    Fields:
        type: Event type discriminator
        data: Structured payload
        tags: Tags computed from (type, data)
        timestamp: Explicit timestamp (None = assigned by the store)
    """
    type: str
    data: Dict[str, Any]
    tags: Tuple[str, ...]
    timestamp: Optional[datetime] = None

    def at(self, timestamp: datetime) -> "NewEvent":
        """Copy of this event carrying an explicit timestamp."""
        return replace(self, timestamp=timestamp)


@dataclass(frozen=True)
class Event:
    """
    Immutable, appended event record.

    Fields:
        id: Global position (1-based, assigned by the store)
        type: Event type (e.g., "CourseDefined")
        data: Event-specific payload
        tags: Sorted tuple of tags (never empty)
        timestamp: Append time, or the explicit timestamp of the NewEvent
    """
    id: int
    type: str
    data: Dict[str, Any]
    tags: Tuple[str, ...]
    timestamp: datetime

    def has_any_tag(self, tags: Iterable[str]) -> bool:
        return not set(self.tags).isdisjoint(tags)


class EventType:
    """
    Registration of an event type with its pure tag function.

    Usage:
        CourseDefined = EventType("CourseDefined", tags=lambda d: f"course:{d['course_id']}")
        event = CourseDefined(course_id="c1", capacity=10)
    """

    def __init__(self, name: str, tags: TagFunction) -> None:
        self.name = name
        self._tags = tags

    def tags_for(self, data: Dict[str, Any]) -> Tuple[str, ...]:
        return normalize_tags(self._tags(data))

    def __call__(self, **data: Any) -> NewEvent:
        return NewEvent(type=self.name, data=dict(data), tags=self.tags_for(data))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"EventType({self.name!r})"


class EventTypeRegistry:
    """
    Known event types of a domain.

    A store given a registry rejects events of unknown types and events whose
    tags differ from what the type's tag function computes.
    """

    def __init__(self, event_types: Iterable[EventType] = ()) -> None:
        self._types: Dict[str, EventType] = {}
        for event_type in event_types:
            self.register(event_type)

    def register(self, event_type: EventType) -> EventType:
        existing = self._types.get(event_type.name)
        if existing is not None and existing is not event_type:
            raise ValueError(f"Event type already registered: {event_type.name}")
        self._types[event_type.name] = event_type
        return event_type

    def get(self, name: str) -> EventType:
        try:
            return self._types[name]
        except KeyError:
            raise KeyError(f"Unknown event type: {name}") from None

    def create(self, name: str, data: Dict[str, Any]) -> NewEvent:
        """Build a NewEvent from a raw type name and payload."""
        return self.get(name)(**data)

    def merged(self, other: "EventTypeRegistry") -> "EventTypeRegistry":
        return EventTypeRegistry(list(self) + list(other))

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[EventType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)
