"""
Event storage and tag indexing.

This module provides:
- EventStore: Abstract tag-indexed log with the conditional append guard
- InMemoryEventStore: Single-process backend
- FileEventStore: File-based append-only storage (JSONL, fcntl locking)
- TagIndex: Per-tag/per-type position lists
- EventStream: Lazy, restartable read results
"""

from .store import EventStore
from .memory_store import InMemoryEventStore
from .file_store import FileEventStore
from .tag_index import TagIndex
from .stream import EventStream

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "FileEventStore",
    "TagIndex",
    "EventStream",
]
