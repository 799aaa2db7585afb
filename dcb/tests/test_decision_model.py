"""
Tests for decision model building.

The model, the boundary query and the append condition must describe the
same snapshot of the log.
"""

import pytest

from dcb.core.errors import ConcurrencyConflict, ValidationError
from dcb.core.query import Query
from dcb.decision import DecisionModel, build_decision_model
from dcb.domains.course_subscription import (
    CourseDefined,
    CourseSubscription,
    StudentSubscribedToCourse,
    SubscribeStudentToCourse,
    course_capacity,
    number_of_course_subscriptions,
    number_of_student_subscriptions,
)
from dcb.domains.invoice_number import InvoiceCreated, next_invoice_number
from dcb.domains.unique_username import AccountRegistered, is_username_claimed
from dcb.log.memory_store import InMemoryEventStore


def _full_course_store():
    store = InMemoryEventStore()
    store.append(CourseDefined(course_id="c1", capacity=3))
    for student in ("s1", "s2", "s3"):
        store.append(StudentSubscribedToCourse(student_id=student, course_id="c1"))
    return store


def test_folds_each_projection():
    store = _full_course_store()

    model, query, append_condition = build_decision_model(
        store,
        {
            "course_capacity": course_capacity("c1"),
            "number_of_course_subscriptions": number_of_course_subscriptions("c1"),
        },
    )

    assert model.course_capacity == 3
    assert model["number_of_course_subscriptions"] == 3
    assert query == Query.of(
        tags="course:c1",
        types=["CourseDefined", "CourseCapacityChanged", "StudentSubscribedToCourse"],
    )
    assert append_condition == 4


def test_full_course_is_rejected_before_append():
    """The capacity rule fails in the handler, not as a concurrency conflict."""
    store = _full_course_store()
    api = CourseSubscription(store)

    with pytest.raises(ValidationError, match="Course c1 is already fully booked"):
        api.call(SubscribeStudentToCourse(course_id="c1", student_id="s4"))

    assert store.head == 4


def test_query_is_union_of_projection_queries():
    store = InMemoryEventStore()

    decision = build_decision_model(
        store,
        {
            "capacity": course_capacity("c1"),
            "student": number_of_student_subscriptions("s1"),
        },
    )

    assert decision.query.tags == {"course:c1", "student:s1"}
    assert decision.append_condition is None


def test_condition_covers_every_projection():
    """An event relevant to only one projection still moves the condition."""
    store = InMemoryEventStore()
    store.append(CourseDefined(course_id="c1", capacity=3))
    store.append(StudentSubscribedToCourse(student_id="s1", course_id="c2"))

    decision = build_decision_model(
        store,
        {
            "capacity": course_capacity("c1"),
            "student": number_of_student_subscriptions("s1"),
        },
    )

    assert decision.model.capacity == 3
    assert decision.model.student == 1
    assert decision.append_condition == 2


def test_untagged_projection_widens_boundary():
    store = InMemoryEventStore()
    store.append(InvoiceCreated(invoice_number=1, invoice_data={}))
    store.append(CourseDefined(course_id="c1", capacity=3))

    decision = build_decision_model(
        store,
        {"next": next_invoice_number(), "capacity": course_capacity("c1")},
    )

    assert decision.query.tags == frozenset()
    assert decision.model.next == 2
    assert decision.append_condition == 2


def test_register_account_twice_conflicts():
    """Two decisions built on an empty log: the second append must conflict."""
    store = InMemoryEventStore()
    projections = {"is_username_claimed": is_username_claimed("u1", store.clock.now())}

    first = build_decision_model(store, projections)
    second = build_decision_model(store, projections)
    assert first.append_condition is None
    assert not first.model.is_username_claimed

    assert first.append(store, AccountRegistered(username="u1")) == [1]
    with pytest.raises(ConcurrencyConflict):
        second.append(store, AccountRegistered(username="u1"))

    assert store.head == 1


def test_empty_projections_rejected():
    with pytest.raises(ValueError):
        build_decision_model(InMemoryEventStore(), {})


def test_decision_model_mapping():
    model = DecisionModel({"a": 1, "b": 2})

    assert dict(model) == {"a": 1, "b": 2}
    assert len(model) == 2
    assert model.a == 1
    with pytest.raises(AttributeError):
        model.missing
