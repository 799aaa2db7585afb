"""
Projection: pure fold definition for decision models.

A projection is an initial state, a per-event-type transition and the tags it
reads. It must be:
- Pure (no side effects, no I/O)
- Deterministic (same events -> same state)
- Immutable (builder methods return new projections)
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from .errors import InvalidTransitionError
from .events import Event, EventType
from .query import Query, Selector, selector_set

# Transition signature: (state, event) -> new_state
Transition = Callable[[Any, Event], Any]


def _type_name(event_type: Any) -> str:
    if isinstance(event_type, EventType):
        return event_type.name
    return str(event_type)


@dataclass(frozen=True)
class Projection:
    """
    Immutable fold over the events matching (tags, handled types).

    Usage:
        capacity = (
            Projection.for_tags("course:c1")
            .init(0)
            .when(CourseDefined, lambda s, e: e.data["capacity"])
            .when(CourseCapacityChanged, lambda s, e: e.data["new_capacity"])
        )

    Fields:
        initial_state: State before any event (should be immutable)
        handlers: event type -> transition
        tags: Tags the projection reads (empty = every tag)
    """
    initial_state: Any = None
    handlers: Mapping[str, Transition] = field(default_factory=lambda: MappingProxyType({}))
    tags: frozenset = field(default_factory=frozenset)

    @staticmethod
    def for_tags(tags: Selector) -> "Projection":
        """Projection reading events that carry any of the given tags."""
        resolved = selector_set(tags)
        if not resolved:
            raise ValueError("for_tags() needs at least one tag; use for_all()")
        return Projection(tags=resolved)

    @staticmethod
    def for_all() -> "Projection":
        """Projection reading its handled types across all tags."""
        return Projection()

    def init(self, initial_state: Any) -> "Projection":
        return replace(self, initial_state=initial_state)

    def when(self, event_type: Any, transition: Transition) -> "Projection":
        """
        Register a transition for an event type.

        Args:
            event_type: EventType or type name
            transition: Pure function (state, event) -> new_state
        """
        handlers = dict(self.handlers)
        handlers[_type_name(event_type)] = transition
        return replace(self, handlers=MappingProxyType(handlers))

    @property
    def types(self) -> frozenset:
        return frozenset(self.handlers.keys())

    @property
    def query(self) -> Query:
        if not self.handlers:
            raise ValueError("Projection has no handlers; call when() first")
        return Query(tags=self.tags, types=self.types)

    def transition(self, state: Any, event: Event) -> Any:
        """
        Apply one event.

        Raises:
            InvalidTransitionError: If no transition is registered for event.type
        """
        handler: Optional[Transition] = self.handlers.get(event.type)
        if handler is None:
            raise InvalidTransitionError(f"No transition for event type: {event.type}")
        return handler(state, event)
