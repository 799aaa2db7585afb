"""
Tests for Prometheus metrics.
"""

import pytest
from prometheus_client import CollectorRegistry

from dcb import metrics
from dcb.api import Api, handles
from dcb.core.errors import ConcurrencyConflict
from dcb.domains.course_subscription import CourseDefined, CourseSubscription, DefineCourse
from dcb.core.query import Query
from dcb.log.memory_store import InMemoryEventStore


@pytest.fixture
def registry(monkeypatch):
    """Initialize metrics against a private registry, undone after the test."""
    for name in ("EVENTS_APPENDED", "APPEND_CONFLICTS", "DECISION_BUILD_DURATION", "COMMAND_RETRIES"):
        monkeypatch.setattr(metrics, name, None)
    monkeypatch.setattr(metrics, "_metrics_initialized", False)
    registry = CollectorRegistry()
    metrics.init_metrics(registry)
    return registry


def test_tracking_is_noop_until_initialized(monkeypatch):
    monkeypatch.setattr(metrics, "EVENTS_APPENDED", None)

    metrics.track_append("CourseDefined")
    with metrics.track_decision_build():
        pass


def test_appends_are_counted_by_type(registry):
    store = InMemoryEventStore()

    store.append([CourseDefined(course_id="c1", capacity=1), CourseDefined(course_id="c2", capacity=1)])

    assert registry.get_sample_value(
        "dcb_events_appended_total", {"event_type": "CourseDefined"}
    ) == 2.0


def test_conflicts_are_counted(registry):
    store = InMemoryEventStore()
    store.append(CourseDefined(course_id="c1", capacity=1))

    with pytest.raises(ConcurrencyConflict):
        store.append(CourseDefined(course_id="c1", capacity=2), Query.of(tags="course:c1"), None)

    assert registry.get_sample_value("dcb_append_conflicts_total") == 1.0


def test_decision_builds_are_timed(registry):
    api = CourseSubscription(InMemoryEventStore())

    api.call(DefineCourse(course_id="c1", capacity=1))

    assert registry.get_sample_value("dcb_decision_build_duration_seconds_count") == 1.0


def test_retries_are_counted(registry):
    attempts = []

    class Flaky(Api):
        @handles(DefineCourse)
        def define(self, command):
            attempts.append(1)
            if len(attempts) == 1:
                raise ConcurrencyConflict(None, None, 1)
            return []

    Flaky(InMemoryEventStore()).call_with_retry(DefineCourse(course_id="c1", capacity=1))

    assert registry.get_sample_value("dcb_command_retries_total", {"command": "DefineCourse"}) == 1.0


def test_metrics_server_disabled(monkeypatch):
    monkeypatch.setattr(metrics, "_metrics_initialized", False)

    metrics.start_metrics_server(enabled=False, port=0)

    assert metrics._metrics_initialized is False
