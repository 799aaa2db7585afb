"""
Environment-driven configuration.

Environment Variables:
    DCB_STORE_TYPE: memory | file - default: memory
    DCB_EVENT_STORE_PATH: JSONL path for the file store - default: /tmp/dcb/events.jsonl
    DCB_MAX_ATTEMPTS: Attempts per command before a conflict propagates - default: 3
    METRICS_ENABLED: true | false - default: false
    METRICS_PORT: Port for /metrics - default: 8080
"""

import os
from dataclasses import dataclass
from typing import Optional

from .core.events import EventTypeRegistry
from .log.file_store import FileEventStore
from .log.memory_store import InMemoryEventStore
from .log.store import EventStore

STORE_TYPES = ("memory", "file")


def _env_int(key: str, default: int, minimum: int) -> int:
    val = os.getenv(key)
    if not val:
        return default
    try:
        parsed = int(val)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {val!r}") from None
    if parsed < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {parsed}")
    return parsed


@dataclass(frozen=True)
class StoreConfig:
    store_type: str = "memory"
    path: str = "/tmp/dcb/events.jsonl"
    max_attempts: int = 3

    @staticmethod
    def from_env() -> "StoreConfig":
        store_type = os.getenv("DCB_STORE_TYPE", "memory").strip().lower()
        if store_type not in STORE_TYPES:
            raise ValueError(f"DCB_STORE_TYPE must be one of {STORE_TYPES}, got {store_type!r}")
        return StoreConfig(
            store_type=store_type,
            path=os.getenv("DCB_EVENT_STORE_PATH", "/tmp/dcb/events.jsonl"),
            max_attempts=_env_int("DCB_MAX_ATTEMPTS", 3, minimum=1),
        )


@dataclass(frozen=True)
class MetricsConfig:
    enabled: bool = False
    port: int = 8080

    @staticmethod
    def from_env() -> "MetricsConfig":
        return MetricsConfig(
            enabled=os.getenv("METRICS_ENABLED", "false").lower() == "true",
            port=_env_int("METRICS_PORT", 8080, minimum=1),
        )


def open_store(
    config: Optional[StoreConfig] = None,
    clock=None,
    registry: Optional[EventTypeRegistry] = None,
) -> EventStore:
    """
    Open the configured event store.

    The caller owns the returned store and closes it at shutdown
    (or uses it as a context manager).
    """
    config = config or StoreConfig.from_env()
    if config.store_type == "file":
        return FileEventStore(config.path, clock=clock, registry=registry)
    return InMemoryEventStore(clock=clock, registry=registry)
