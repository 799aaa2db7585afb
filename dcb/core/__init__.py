"""
Core primitives of the DCB engine.

This module provides:
- Event / NewEvent / EventType: immutable log records and their tag functions
- Query: tag/type filter with union semantics
- Projection: pure fold definitions
- Canonical: deterministic payload serialization
- Clock: wall and deterministic time sources
"""

from .events import Event, NewEvent, EventType, EventTypeRegistry, normalize_tags
from .query import Query
from .projection import Projection
from .canonical import canonicalize, canonical_json_bytes, canonical_json_str
from .clock import SystemClock, DeterministicClock
from .errors import (
    DcbError,
    EventStoreError,
    ConcurrencyConflict,
    ValidationError,
    InvalidTransitionError,
    UnknownCommandError,
)

__all__ = [
    "Event",
    "NewEvent",
    "EventType",
    "EventTypeRegistry",
    "normalize_tags",
    "Query",
    "Projection",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "SystemClock",
    "DeterministicClock",
    "DcbError",
    "EventStoreError",
    "ConcurrencyConflict",
    "ValidationError",
    "InvalidTransitionError",
    "UnknownCommandError",
]
