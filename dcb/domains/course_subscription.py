"""
Course subscriptions.

Courses have a capacity; students subscribe to at most five courses. The
subscribe decision spans the course and the student, so its consistency
boundary is (course:<id> OR student:<id>) rather than a single aggregate.
"""

from typing import List

from pydantic import BaseModel, ConfigDict

from ..api import Api, handles
from ..core.errors import ValidationError
from ..core.events import EventType, EventTypeRegistry
from ..core.projection import Projection
from ..scenario import Scenario

MAX_COURSES_PER_STUDENT = 5

CourseDefined = EventType("CourseDefined", tags=lambda d: f"course:{d['course_id']}")
CourseCapacityChanged = EventType("CourseCapacityChanged", tags=lambda d: f"course:{d['course_id']}")
StudentSubscribedToCourse = EventType(
    "StudentSubscribedToCourse",
    tags=lambda d: [f"student:{d['student_id']}", f"course:{d['course_id']}"],
)

EVENT_TYPES = EventTypeRegistry([CourseDefined, CourseCapacityChanged, StudentSubscribedToCourse])


class DefineCourse(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str
    capacity: int


class ChangeCourseCapacity(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str
    new_capacity: int


class SubscribeStudentToCourse(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str
    student_id: str


# projections for decision models:


def course_exists(course_id: str) -> Projection:
    return (
        Projection.for_tags(f"course:{course_id}")
        .init(False)
        .when(CourseDefined, lambda state, event: True)
    )


def course_capacity(course_id: str) -> Projection:
    return (
        Projection.for_tags(f"course:{course_id}")
        .init(0)
        .when(CourseDefined, lambda state, event: event.data["capacity"])
        .when(CourseCapacityChanged, lambda state, event: event.data["new_capacity"])
    )


def number_of_course_subscriptions(course_id: str) -> Projection:
    return (
        Projection.for_tags(f"course:{course_id}")
        .init(0)
        .when(StudentSubscribedToCourse, lambda state, event: state + 1)
    )


def number_of_student_subscriptions(student_id: str) -> Projection:
    return (
        Projection.for_tags(f"student:{student_id}")
        .init(0)
        .when(StudentSubscribedToCourse, lambda state, event: state + 1)
    )


def student_already_subscribed(student_id: str, course_id: str) -> Projection:
    return (
        Projection.for_tags(f"student:{student_id}")
        .init(False)
        .when(
            StudentSubscribedToCourse,
            lambda state, event: state or event.data["course_id"] == course_id,
        )
    )


class CourseSubscription(Api):
    event_types = EVENT_TYPES

    @handles(DefineCourse)
    def define_course(self, command: DefineCourse) -> List[int]:
        model, query, append_condition = self.build_decision_model(
            course_exists=course_exists(command.course_id)
        )

        if model.course_exists:
            raise ValidationError(f"Course with id {command.course_id} already exists")

        return self.store.append(
            CourseDefined(course_id=command.course_id, capacity=command.capacity),
            query,
            append_condition,
        )

    @handles(ChangeCourseCapacity)
    def change_course_capacity(self, command: ChangeCourseCapacity) -> List[int]:
        model, query, append_condition = self.build_decision_model(
            course_exists=course_exists(command.course_id),
            course_capacity=course_capacity(command.course_id),
            number_of_course_subscriptions=number_of_course_subscriptions(command.course_id),
        )

        if not model.course_exists:
            raise ValidationError(f"Course {command.course_id} does not exist")
        if model.course_capacity == command.new_capacity:
            raise ValidationError(
                f"New capacity {command.new_capacity} is the same as the current capacity"
            )
        if command.new_capacity < model.number_of_course_subscriptions:
            raise ValidationError(
                f"Course {command.course_id} already has "
                f"{model.number_of_course_subscriptions} active subscriptions, "
                "can't set the capacity below that"
            )

        return self.store.append(
            CourseCapacityChanged(course_id=command.course_id, new_capacity=command.new_capacity),
            query,
            append_condition,
        )

    @handles(SubscribeStudentToCourse)
    def subscribe_student_to_course(self, command: SubscribeStudentToCourse) -> List[int]:
        course_id, student_id = command.course_id, command.student_id
        model, query, append_condition = self.build_decision_model(
            course_exists=course_exists(course_id),
            course_capacity=course_capacity(course_id),
            number_of_course_subscriptions=number_of_course_subscriptions(course_id),
            number_of_student_subscriptions=number_of_student_subscriptions(student_id),
            student_already_subscribed=student_already_subscribed(student_id, course_id),
        )

        if not model.course_exists:
            raise ValidationError(f"Course {course_id} does not exist")
        if model.number_of_course_subscriptions >= model.course_capacity:
            raise ValidationError(f"Course {course_id} is already fully booked")
        if model.student_already_subscribed:
            raise ValidationError("Student already subscribed to this course")
        if model.number_of_student_subscriptions >= MAX_COURSES_PER_STUDENT:
            raise ValidationError(
                f"Student already subscribed to {MAX_COURSES_PER_STUDENT} courses"
            )

        return self.store.append(
            StudentSubscribedToCourse(student_id=student_id, course_id=course_id),
            query,
            append_condition,
        )


SCENARIOS = [
    Scenario("Define course with existing id")
    .given(CourseDefined(course_id="c1", capacity=10))
    .when(DefineCourse(course_id="c1", capacity=15))
    .expect_error("Course with id c1 already exists"),
    Scenario("Define course with new id")
    .when(DefineCourse(course_id="c1", capacity=15))
    .expect_event(CourseDefined(course_id="c1", capacity=15)),
    Scenario("Change capacity of a non-existing course")
    .when(ChangeCourseCapacity(course_id="c0", new_capacity=15))
    .expect_error("Course c0 does not exist"),
    Scenario("Change capacity of a course to the current value")
    .given(CourseDefined(course_id="c1", capacity=12))
    .when(ChangeCourseCapacity(course_id="c1", new_capacity=12))
    .expect_error("New capacity 12 is the same as the current capacity"),
    Scenario("Change capacity of a course below its subscriptions")
    .given(
        CourseDefined(course_id="c1", capacity=12),
        StudentSubscribedToCourse(student_id="s1", course_id="c1"),
        StudentSubscribedToCourse(student_id="s2", course_id="c1"),
    )
    .when(ChangeCourseCapacity(course_id="c1", new_capacity=1))
    .expect_error("Course c1 already has 2 active subscriptions, can't set the capacity below that"),
    Scenario("Change capacity of a course to a new value")
    .given(CourseDefined(course_id="c1", capacity=12))
    .when(ChangeCourseCapacity(course_id="c1", new_capacity=15))
    .expect_event(CourseCapacityChanged(course_id="c1", new_capacity=15)),
    Scenario("Subscribe student to non-existing course")
    .when(SubscribeStudentToCourse(student_id="s1", course_id="c0"))
    .expect_error("Course c0 does not exist"),
    Scenario("Subscribe student to fully booked course")
    .given(
        CourseDefined(course_id="c1", capacity=3),
        StudentSubscribedToCourse(student_id="s1", course_id="c1"),
        StudentSubscribedToCourse(student_id="s2", course_id="c1"),
        StudentSubscribedToCourse(student_id="s3", course_id="c1"),
    )
    .when(SubscribeStudentToCourse(student_id="s4", course_id="c1"))
    .expect_error("Course c1 is already fully booked"),
    Scenario("Subscribe student to the same course twice")
    .given(
        CourseDefined(course_id="c1", capacity=10),
        StudentSubscribedToCourse(student_id="s1", course_id="c1"),
    )
    .when(SubscribeStudentToCourse(student_id="s1", course_id="c1"))
    .expect_error("Student already subscribed to this course"),
    Scenario("Subscribe student to more than 5 courses")
    .given(
        CourseDefined(course_id="c6", capacity=10),
        StudentSubscribedToCourse(student_id="s1", course_id="c1"),
        StudentSubscribedToCourse(student_id="s1", course_id="c2"),
        StudentSubscribedToCourse(student_id="s1", course_id="c3"),
        StudentSubscribedToCourse(student_id="s1", course_id="c4"),
        StudentSubscribedToCourse(student_id="s1", course_id="c5"),
    )
    .when(SubscribeStudentToCourse(student_id="s1", course_id="c6"))
    .expect_error("Student already subscribed to 5 courses"),
    Scenario("Subscribe student to course with capacity")
    .given(CourseDefined(course_id="c1", capacity=10))
    .when(SubscribeStudentToCourse(student_id="s1", course_id="c1"))
    .expect_event(StudentSubscribedToCourse(student_id="s1", course_id="c1")),
]
