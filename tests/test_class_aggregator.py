import time
from contextlib import contextmanager

import pytest

from attainment.core.entities import RosterFilters
from attainment.core.exceptions import ConfigurationError, DataAccessError, NotFoundError
from attainment.persistence import InMemoryMarkRepository
from attainment.services import ClassAttainmentAggregator, StudentAttainmentResolver

from conftest import (
    CO1, COURSE_ID, TEN_STUDENT_CLASS, CourseBuilder, seed_ten_student_class, seed_two_question_course,
)


class FailingMarksRepository(InMemoryMarkRepository):
    """Serves itself as the snapshot and fails mark reads for one student."""

    def __init__(self, failing_student: str, delay: float = 0.0):
        super().__init__()
        self.failing_student = failing_student
        self.delay = delay
        self.closed = False
        self.late_reads = []

    @contextmanager
    def snapshot(self):
        self.closed = False
        try:
            yield self
        finally:
            self.closed = True

    def get_student_marks(self, student_id, question_ids):
        if student_id == self.failing_student:
            raise DataAccessError(f"marks unavailable for {student_id}")
        time.sleep(self.delay)
        if self.closed:
            self.late_reads.append(student_id)
        return super().get_student_marks(student_id, question_ids)


def test_ten_student_class_lands_on_level_two(builder, aggregator):
    seed_ten_student_class(builder)

    result = aggregator.resolve_class(COURSE_ID, CO1)

    assert result.total_students == 10
    assert result.level_distribution == {0: 1, 1: 2, 2: 4, 3: 3}
    assert result.students_at_or_above == {1: 9, 2: 7, 3: 3}
    assert result.attainment_level == 2
    assert result.target_percentage == 60
    assert result.co_code == "CO1"


def test_distribution_sums_to_total(builder, aggregator):
    seed_ten_student_class(builder)

    result = aggregator.resolve_class(COURSE_ID, CO1)

    assert sum(result.level_distribution.values()) == result.total_students
    assert set(result.level_distribution) == {0, 1, 2, 3}


def test_average_percentage(builder, aggregator):
    seed_ten_student_class(builder)

    result = aggregator.resolve_class(COURSE_ID, CO1)

    expected = round(sum([76.67, 50.0, 86.67, 66.67, 63.33, 100.0, 60.0, 63.33, 43.33, 23.33]) / 10, 2)
    assert result.average_percentage == expected


def test_students_without_attempts_are_excluded(builder, aggregator):
    seed_ten_student_class(builder)
    builder.enroll("S11")
    builder.enroll("S12")
    builder.mark("S12", "Q1", None)

    result = aggregator.resolve_class(COURSE_ID, CO1)

    assert result.total_students == 10
    assert result.level_distribution[0] == 1


def test_zero_evaluable_students_is_not_found(builder, aggregator):
    seed_two_question_course(builder)
    builder.enroll("S01")
    builder.enroll("S02")

    with pytest.raises(NotFoundError) as excinfo:
        aggregator.resolve_class(COURSE_ID, CO1)
    assert excinfo.value.details["eligible_students"] == 2


def test_empty_roster_is_not_found(builder, aggregator):
    seed_two_question_course(builder)

    with pytest.raises(NotFoundError):
        aggregator.resolve_class(COURSE_ID, CO1)


def test_marks_of_unenrolled_students_are_ignored(builder, aggregator):
    seed_ten_student_class(builder)
    builder.mark("OUTSIDER", "Q1", 0)

    assert aggregator.resolve_class(COURSE_ID, CO1).total_students == 10


@pytest.mark.parametrize("target, expected_level", [
    (0, 3),
    (30, 3),
    (31, 2),
    (70, 2),
    (71, 1),
    (90, 1),
    (91, 0),
    (100, 0),
])
def test_class_level_follows_target(builder, aggregator, target, expected_level):
    builder.course(target=target)
    builder.outcome(CO1, "CO1")
    builder.assessment("QUIZ1", max_marks=10)
    builder.assessment("MID", max_marks=20)
    builder.question("Q1", 10, "QUIZ1", [CO1])
    builder.question("Q2", 20, "MID", [CO1])
    for student_id, q1, q2 in TEN_STUDENT_CLASS:
        builder.enroll(student_id)
        builder.mark(student_id, "Q1", q1)
        builder.mark(student_id, "Q2", q2)

    assert aggregator.resolve_class(COURSE_ID, CO1).attainment_level == expected_level


def test_section_filter_narrows_roster(builder, aggregator):
    seed_ten_student_class(builder)

    section_a = aggregator.resolve_class(COURSE_ID, CO1, RosterFilters(section_id="A"))
    section_b = aggregator.resolve_class(COURSE_ID, CO1, RosterFilters(section_id="B"))

    assert section_a.total_students == 5
    assert section_b.total_students == 5
    # S01..S05: 3, 1, 3, 2, 2
    assert section_a.level_distribution == {0: 0, 1: 1, 2: 2, 3: 2}
    assert section_a.attainment_level == 2


def test_filter_without_matches_is_not_found(builder, aggregator):
    seed_ten_student_class(builder)

    with pytest.raises(NotFoundError):
        aggregator.resolve_class(COURSE_ID, CO1, RosterFilters(academic_year="2019-20"))


def test_threaded_and_sequential_results_match(builder, resolver):
    seed_ten_student_class(builder)
    sequential = ClassAttainmentAggregator(resolver, max_workers=1)
    threaded = ClassAttainmentAggregator(resolver, max_workers=8)
    try:
        seq_class, seq_students = sequential.evaluate_class(COURSE_ID, CO1)
        thr_class, thr_students = threaded.evaluate_class(COURSE_ID, CO1)
    finally:
        threaded.cleanup()

    assert seq_class == thr_class
    assert seq_students == thr_students
    assert [a.student_id for a in thr_students] == [s for s, _, _ in TEN_STUDENT_CLASS]


def test_repeated_calls_are_idempotent(builder, aggregator):
    seed_ten_student_class(builder)

    assert aggregator.resolve_class(COURSE_ID, CO1) == aggregator.resolve_class(COURSE_ID, CO1)


def test_class_result_has_no_target_until_evaluated(builder, aggregator):
    seed_ten_student_class(builder)

    assert aggregator.resolve_class(COURSE_ID, CO1).target_met is None


def test_max_workers_must_be_positive(resolver):
    with pytest.raises(ConfigurationError):
        ClassAttainmentAggregator(resolver, max_workers=0)


@pytest.mark.parametrize("max_workers", [1, 4])
def test_data_access_error_aborts_class_result(max_workers):
    repository = FailingMarksRepository("S05")
    seed_ten_student_class(CourseBuilder(repository))
    aggregator = ClassAttainmentAggregator(StudentAttainmentResolver(repository), max_workers=max_workers)
    try:
        with pytest.raises(DataAccessError):
            aggregator.resolve_class(COURSE_ID, CO1)
    finally:
        aggregator.cleanup()


def test_failed_fan_out_leaves_no_reads_after_snapshot_closes():
    repository = FailingMarksRepository("S01", delay=0.02)
    seed_ten_student_class(CourseBuilder(repository))
    aggregator = ClassAttainmentAggregator(StudentAttainmentResolver(repository), max_workers=2)
    try:
        with pytest.raises(DataAccessError):
            aggregator.resolve_class(COURSE_ID, CO1)
        time.sleep(0.2)
    finally:
        aggregator.cleanup()

    assert repository.late_reads == []
