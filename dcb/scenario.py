"""
Given/when/expect harness for command handlers.

Each scenario runs against a fresh in-memory store whose clock is pinned to
SCENARIO_NOW, so time-dependent rules are exact.

Usage:
    Scenario("Define course with new id")
        .when(DefineCourse(course_id="c1", capacity=15))
        .expect_event(CourseDefined(course_id="c1", capacity=15))
        .run(CourseSubscription)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Type

from .api import Api
from .core.canonical import canonicalize
from .core.clock import DeterministicClock
from .core.errors import ValidationError
from .core.events import Event, NewEvent
from .log.memory_store import InMemoryEventStore

SCENARIO_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def ago(**delta: float) -> datetime:
    """Timestamp relative to SCENARIO_NOW, e.g. ago(days=3)."""
    return SCENARIO_NOW - timedelta(**delta)


@dataclass(frozen=True)
class ScenarioResult:
    description: str
    passed: bool
    message: str

    def __str__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return f"{status} {self.description}: {self.message}"


class Scenario:
    def __init__(self, description: str) -> None:
        self.description = description
        self.events: List[NewEvent] = []
        self.command: Any = None
        self.expected_event: Optional[NewEvent] = None
        self.expected_error: Optional[str] = None

    def given(self, *events: NewEvent) -> "Scenario":
        self.events = list(events)
        return self

    def when(self, command: Any) -> "Scenario":
        self.command = command
        return self

    def expect_event(self, event: NewEvent) -> "Scenario":
        self.expected_event = event
        return self

    def expect_error(self, message: str) -> "Scenario":
        self.expected_error = message
        return self

    def run(self, api_cls: Type[Api]) -> ScenarioResult:
        """
        Run the scenario against a fresh store.

        Unexpected exceptions are reported as failures, not raised.
        """
        if self.command is None:
            raise ValueError(f"Scenario {self.description!r} has no command")

        clock = DeterministicClock(SCENARIO_NOW)
        store = InMemoryEventStore(clock=clock, registry=api_cls.event_types)
        api = api_cls(store)
        try:
            if self.events:
                store.append(self.events)
            api.call(self.command)
        except ValidationError as e:
            return self._check_error(str(e))
        except Exception as e:
            return self._fail(f"Unexpected error: {type(e).__name__}: {e}")

        if self.expected_error is not None:
            return self._fail("Expected error not raised")
        return self._check_event(store.read().last())

    def _check_event(self, actual: Optional[Event]) -> ScenarioResult:
        expected = self.expected_event
        if (
            expected is not None
            and actual is not None
            and actual.type == expected.type
            and canonicalize(actual.data) == canonicalize(expected.data)
        ):
            return self._pass("Event published as expected")
        return self._fail("Expected event not published")

    def _check_error(self, message: str) -> ScenarioResult:
        if self.expected_event is None and message == self.expected_error:
            return self._pass(f"Expected error: {message}")
        return self._fail(f"Unexpected error: {message}")

    def _pass(self, message: str) -> ScenarioResult:
        return ScenarioResult(self.description, True, message)

    def _fail(self, message: str) -> ScenarioResult:
        return ScenarioResult(self.description, False, message)


def run_scenarios(api_cls: Type[Api], scenarios: Iterable[Scenario]) -> List[ScenarioResult]:
    return [scenario.run(api_cls) for scenario in scenarios]
