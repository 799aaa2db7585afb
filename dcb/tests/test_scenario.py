"""
Tests for the given/when/expect harness itself.
"""

from datetime import timedelta

from dcb.domains.course_subscription import (
    CourseDefined,
    CourseSubscription,
    DefineCourse,
)
from dcb.scenario import SCENARIO_NOW, Scenario, ScenarioResult, ago, run_scenarios


def test_ago_is_relative_to_scenario_now():
    assert ago(minutes=10) == SCENARIO_NOW - timedelta(minutes=10)
    assert ago(days=3).tzinfo is not None


def test_expected_event_passes():
    result = (
        Scenario("define")
        .when(DefineCourse(course_id="c1", capacity=15))
        .expect_event(CourseDefined(course_id="c1", capacity=15))
        .run(CourseSubscription)
    )

    assert result == ScenarioResult("define", True, "Event published as expected")
    assert str(result) == "PASS define: Event published as expected"


def test_wrong_event_data_fails():
    result = (
        Scenario("define")
        .when(DefineCourse(course_id="c1", capacity=15))
        .expect_event(CourseDefined(course_id="c1", capacity=16))
        .run(CourseSubscription)
    )

    assert not result.passed
    assert result.message == "Expected event not published"


def test_missing_error_fails():
    result = (
        Scenario("define")
        .when(DefineCourse(course_id="c1", capacity=15))
        .expect_error("Course with id c1 already exists")
        .run(CourseSubscription)
    )

    assert not result.passed
    assert result.message == "Expected error not raised"


def test_wrong_error_message_fails():
    result = (
        Scenario("define twice")
        .given(CourseDefined(course_id="c1", capacity=10))
        .when(DefineCourse(course_id="c1", capacity=15))
        .expect_error("something else")
        .run(CourseSubscription)
    )

    assert not result.passed
    assert result.message == "Unexpected error: Course with id c1 already exists"


def test_unexpected_exception_is_reported():
    result = (
        Scenario("unknown command")
        .when(object())
        .expect_error("anything")
        .run(CourseSubscription)
    )

    assert not result.passed
    assert result.message.startswith("Unexpected error: UnknownCommandError")


def test_run_scenarios():
    scenarios = [
        Scenario("ok")
        .when(DefineCourse(course_id="c1", capacity=1))
        .expect_event(CourseDefined(course_id="c1", capacity=1)),
        Scenario("bad")
        .when(DefineCourse(course_id="c1", capacity=1))
        .expect_event(CourseDefined(course_id="c2", capacity=1)),
    ]

    results = run_scenarios(CourseSubscription, scenarios)

    assert [r.passed for r in results] == [True, False]
