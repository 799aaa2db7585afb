"""
Tests for the conditional append.

Goal: an append whose condition no longer matches the live query result
must never write; appends outside the boundary must never conflict.
"""

import threading

import pytest

from dcb.core.errors import ConcurrencyConflict
from dcb.core.events import EventType
from dcb.core.query import Query
from dcb.log.memory_store import InMemoryEventStore

CourseDefined = EventType("CourseDefined", tags=lambda d: f"course:{d['course_id']}")
StudentSubscribed = EventType(
    "StudentSubscribed",
    tags=lambda d: [f"student:{d['student_id']}", f"course:{d['course_id']}"],
)


def test_stale_condition_conflicts_and_does_not_write():
    store = InMemoryEventStore()
    query = Query.of(tags="course:c1")
    store.append(CourseDefined(course_id="c1", capacity=3))
    condition = store.last_id_for(query)

    store.append(StudentSubscribed(student_id="s1", course_id="c1"))

    with pytest.raises(ConcurrencyConflict) as exc_info:
        store.append(StudentSubscribed(student_id="s2", course_id="c1"), query, condition)

    assert exc_info.value.expected == 1
    assert exc_info.value.actual == 2
    assert exc_info.value.query == query
    assert store.head == 2


def test_current_condition_succeeds():
    store = InMemoryEventStore()
    query = Query.of(tags="course:c1")
    store.append(CourseDefined(course_id="c1", capacity=3))

    ids = store.append(
        StudentSubscribed(student_id="s1", course_id="c1"), query, store.last_id_for(query)
    )

    assert ids == [2]


def test_none_condition_requires_no_matching_event():
    store = InMemoryEventStore()
    query = Query.of(tags="username:u1")

    store.append(CourseDefined(course_id="c1", capacity=3), query, None)
    store.append(CourseDefined(course_id="c2", capacity=3), query, None)

    with pytest.raises(ConcurrencyConflict):
        store.append(
            StudentSubscribed(student_id="s1", course_id="c1"),
            Query.of(tags="course:c1"),
            None,
        )


def test_appends_outside_the_boundary_do_not_conflict():
    store = InMemoryEventStore()
    store.append(CourseDefined(course_id="c1", capacity=3))
    store.append(CourseDefined(course_id="c2", capacity=3))
    query_c1 = Query.of(tags="course:c1")
    condition_c1 = store.last_id_for(query_c1)

    # Unrelated appends move the head but not the boundary
    store.append(StudentSubscribed(student_id="s9", course_id="c2"))
    store.append(CourseDefined(course_id="c3", capacity=1))

    assert store.append(
        StudentSubscribed(student_id="s1", course_id="c1"), query_c1, condition_c1
    ) == [5]


def test_type_filter_narrows_the_boundary():
    store = InMemoryEventStore()
    store.append(CourseDefined(course_id="c1", capacity=3))
    query = Query.of(tags="course:c1", types="CourseDefined")
    condition = store.last_id_for(query)

    store.append(StudentSubscribed(student_id="s1", course_id="c1"))

    assert store.append(CourseDefined(course_id="c1", capacity=4), query, condition) == [3]


def test_conflicting_batch_is_not_partially_written():
    store = InMemoryEventStore()
    query = Query.of(tags="course:c1")
    store.append(CourseDefined(course_id="c1", capacity=3))

    with pytest.raises(ConcurrencyConflict):
        store.append(
            [
                StudentSubscribed(student_id="s1", course_id="c1"),
                StudentSubscribed(student_id="s2", course_id="c1"),
            ],
            query,
            None,
        )

    assert store.head == 1
    assert store.positions_for("student:s1") == []


def test_concurrent_writers_on_one_boundary():
    """Exactly one of N writers holding the same condition may commit."""
    store = InMemoryEventStore()
    query = Query.of(tags="course:c1")
    store.append(CourseDefined(course_id="c1", capacity=3))
    condition = store.last_id_for(query)

    results = []
    barrier = threading.Barrier(8)

    def writer(n):
        barrier.wait()
        try:
            store.append(StudentSubscribed(student_id=f"s{n}", course_id="c1"), query, condition)
            results.append("ok")
        except ConcurrencyConflict:
            results.append("conflict")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("conflict") == 7
    assert store.head == 2
