"""
File-based event store using append-only JSONL format.

Each line is one event record. The last record of every batch carries
"commit": true; readers only surface events up to the last committed record,
so a batch is visible entirely or not at all, across processes.
"""

import json
import logging
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from ..core.canonical import canonical_json_str
from ..core.errors import EventStoreError
from ..core.events import Event, EventTypeRegistry
from .store import EventStore

try:
    import fcntl
except ImportError:  # Windows or unsupported platform
    fcntl = None

logger = logging.getLogger(__name__)


def encode_record(event: Event, commit: bool) -> str:
    rec: Dict[str, Any] = {
        "id": event.id,
        "type": event.type,
        "data": event.data,
        "tags": list(event.tags),
        "timestamp": event.timestamp.isoformat(),
    }
    if commit:
        rec["commit"] = True
    return canonical_json_str(rec)


def decode_record(rec: Dict[str, Any]) -> Event:
    return Event(
        id=int(rec["id"]),
        type=rec["type"],
        data=rec.get("data", {}),
        tags=tuple(rec["tags"]),
        timestamp=datetime.fromisoformat(rec["timestamp"]),
    )


class FileEventStore(EventStore):
    """
    File-based append-only event store.

    Storage format: JSONL (newline-delimited JSON)
    Each line: {"id": 1, "type": "...", "data": {...}, "tags": [...], "timestamp": "...", "commit": true}

    Guarantees:
    - Append-only (no mutations)
    - Fsync after each batch (durability)
    - Exclusive file lock across recompute-check-write (multi-process safe)
    - Reads never wait for an in-flight append; they see the last published head
    - Bytes past the last committed record (torn batch of a crashed writer)
      are ignored by readers and truncated by the next writer
    """

    def __init__(
        self, path: str, clock=None, registry: Optional[EventTypeRegistry] = None
    ) -> None:
        """
        Initialize file event store and index existing records.

        Args:
            path: Path to JSONL file
        """
        super().__init__(clock=clock, registry=registry)
        self.path = path
        self._events: List[Event] = []
        self._offset = 0
        self._handle = None

        # Ensure directory exists
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

        # Create empty file if not exists
        if not os.path.exists(path):
            with open(path, "wb") as f:
                f.write(b"")

        self._sync()

    @contextmanager
    def _guard(self) -> Iterator[None]:
        with self._lock:
            try:
                f = open(self.path, "a+b")
            except OSError as ex:
                raise EventStoreError(str(ex)) from ex
            with f:
                if fcntl:
                    fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                self._handle = f
                try:
                    yield
                finally:
                    self._handle = None
                    if fcntl:
                        fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def _sync(self) -> None:
        # A writer holding the lock refreshes itself; serve the published head.
        if not self._lock.acquire(blocking=False):
            return
        try:
            self._refresh()
        finally:
            self._lock.release()

    def _refresh(self) -> None:
        """
        Tail committed records written since the last refresh.

        Raises:
            EventStoreError: On malformed records or id gaps
        """
        try:
            with open(self.path, "rb") as f:
                f.seek(self._offset)
                chunk = f.read()
        except OSError as ex:
            raise EventStoreError(str(ex)) from ex

        pending: List[Event] = []
        consumed = 0
        pos = 0
        while True:
            nl = chunk.find(b"\n", pos)
            if nl < 0:
                break
            line = chunk[pos : nl + 1]
            pos = nl + 1
            if not line.strip():
                if not pending:
                    consumed = pos
                continue
            try:
                rec = json.loads(line)
                event = decode_record(rec)
            except (ValueError, KeyError, TypeError, AttributeError) as ex:
                raise EventStoreError(
                    f"Malformed record at byte {self._offset + pos - len(line)} of {self.path}: {ex}"
                ) from ex
            pending.append(event)
            if rec.get("commit"):
                self._commit_loaded(pending)
                pending = []
                consumed = pos

        self._offset += consumed

    def _commit_loaded(self, events: List[Event]) -> None:
        self.index.add_all(events)
        self._events.extend(events)
        self._last_timestamp = events[-1].timestamp
        self._head = events[-1].id

    def _write(self, events: List[Event]) -> None:
        try:
            lines = [
                encode_record(event, commit=(i == len(events) - 1))
                for i, event in enumerate(events)
            ]
        except (TypeError, ValueError) as ex:
            raise EventStoreError(f"Event data is not JSON serializable: {ex}") from ex
        data = ("\n".join(lines) + "\n").encode("utf-8")

        f = self._handle
        try:
            f.seek(0, os.SEEK_END)
            if f.tell() != self._offset:
                logger.warning(
                    f"Truncating {f.tell() - self._offset} uncommitted bytes in {self.path}"
                )
                f.truncate(self._offset)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        except OSError as ex:
            try:
                f.truncate(self._offset)
            except OSError:
                logger.error(f"Failed to roll back partial write in {self.path}")
            raise EventStoreError(str(ex)) from ex

        self._events.extend(decode_record(json.loads(line)) for line in lines)
        self._offset += len(data)

    def _load(self, event_id: int) -> Event:
        return self._events[event_id - 1]
