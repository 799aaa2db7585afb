"""
Tests for environment-driven configuration.
"""

import os
import tempfile

import pytest

from dcb.config import MetricsConfig, StoreConfig, open_store
from dcb.log.file_store import FileEventStore
from dcb.log.memory_store import InMemoryEventStore


def test_store_config_defaults(monkeypatch):
    for key in ("DCB_STORE_TYPE", "DCB_EVENT_STORE_PATH", "DCB_MAX_ATTEMPTS"):
        monkeypatch.delenv(key, raising=False)

    config = StoreConfig.from_env()

    assert config == StoreConfig()
    assert config.store_type == "memory"
    assert config.max_attempts == 3


def test_store_config_from_env(monkeypatch):
    monkeypatch.setenv("DCB_STORE_TYPE", "File")
    monkeypatch.setenv("DCB_EVENT_STORE_PATH", "/var/lib/dcb/log.jsonl")
    monkeypatch.setenv("DCB_MAX_ATTEMPTS", "7")

    config = StoreConfig.from_env()

    assert config.store_type == "file"
    assert config.path == "/var/lib/dcb/log.jsonl"
    assert config.max_attempts == 7


@pytest.mark.parametrize(
    "key,value",
    [
        ("DCB_STORE_TYPE", "postgres"),
        ("DCB_MAX_ATTEMPTS", "three"),
        ("DCB_MAX_ATTEMPTS", "0"),
    ],
)
def test_store_config_rejects_bad_values(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ValueError):
        StoreConfig.from_env()


def test_metrics_config(monkeypatch):
    monkeypatch.setenv("METRICS_ENABLED", "true")
    monkeypatch.setenv("METRICS_PORT", "9100")

    assert MetricsConfig.from_env() == MetricsConfig(enabled=True, port=9100)

    monkeypatch.delenv("METRICS_ENABLED")
    assert MetricsConfig.from_env().enabled is False


def test_open_store():
    assert isinstance(open_store(StoreConfig()), InMemoryEventStore)

    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "events.jsonl")
        with open_store(StoreConfig(store_type="file", path=path)) as store:
            assert isinstance(store, FileEventStore)
        assert os.path.exists(path)


def test_api_from_config():
    from dcb.domains.unique_username import RegisterAccount, UniqueUsername

    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "events.jsonl")
        config = StoreConfig(store_type="file", path=path, max_attempts=5)

        api = UniqueUsername.from_config(config)
        with api.store:
            api.call_with_retry(RegisterAccount(username="u1"))

        assert api.max_attempts == 5
        assert api.store.registry is UniqueUsername.event_types
        assert FileEventStore(path).head == 1
