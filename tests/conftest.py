"""
Shared fixtures: a small course builder over any writable mark repository.
"""

from typing import Iterable, Optional, Tuple

import pytest

from attainment.core.entities import (
    Assessment, Course, CourseOutcome, Enrollment, Question, StudentMark,
)
from attainment.persistence import InMemoryMarkRepository, SQLiteDatabase, SQLiteMarkRepository
from attainment.services import (
    ClassAttainmentAggregator, CourseAttainmentReporter, StudentAttainmentResolver, TargetEvaluator,
)

COURSE_ID = "CS101"
CO1 = "CS101-CO1"
CO2 = "CS101-CO2"


class CourseBuilder:
    """Seeds courses, COs, questions, enrollments and marks with stable ids."""

    def __init__(self, repository):
        self.repository = repository

    def course(self, course_id: str = COURSE_ID, thresholds: Tuple = (40, 60, 75),
               target: Optional[float] = 60, minimum_target_level: Optional[int] = None) -> Course:
        l1, l2, l3 = thresholds
        return self.repository.save_course(Course(
            course_id, f"Course {course_id}", l1, l2, l3, target,
            minimum_target_level=minimum_target_level, entity_id=course_id,
        ))

    def outcome(self, co_id: str, code: str, course_id: str = COURSE_ID) -> CourseOutcome:
        return self.repository.save_course_outcome(CourseOutcome(course_id, code, entity_id=co_id))

    def assessment(self, assessment_id: str, max_marks: float = 100, weightage: float = 0.0,
                   course_id: str = COURSE_ID) -> Assessment:
        return self.repository.save_assessment(Assessment(
            course_id, assessment_id, max_marks, weightage=weightage, entity_id=assessment_id,
        ))

    def question(self, question_id: str, max_marks: float, assessment_id: str,
                 co_ids: Iterable[str] = ()) -> Question:
        question = self.repository.save_question(Question(assessment_id, max_marks, entity_id=question_id))
        for co_id in co_ids:
            self.repository.map_question(question_id, co_id)
        return question

    def enroll(self, student_id: str, course_id: str = COURSE_ID, section_id: Optional[str] = None,
               academic_year: Optional[str] = "2024-25", semester: Optional[str] = "Fall") -> Enrollment:
        return self.repository.enroll(Enrollment(
            student_id, course_id, section_id=section_id,
            academic_year=academic_year, semester=semester,
        ))

    def mark(self, student_id: str, question_id: str, obtained: Optional[float]) -> StudentMark:
        return self.repository.record_mark(StudentMark(student_id, question_id, obtained))


def seed_two_question_course(builder: CourseBuilder) -> None:
    """CO1 mapped to Q1 (max 10) and Q2 (max 20); thresholds 40/60/75, target 60."""
    builder.course()
    builder.outcome(CO1, "CO1")
    builder.assessment("QUIZ1", max_marks=10)
    builder.assessment("MID", max_marks=20)
    builder.question("Q1", 10, "QUIZ1", [CO1])
    builder.question("Q2", 20, "MID", [CO1])


# (student, Q1 of 10, Q2 of 20): 7 students at level >= 2, 3 of them at level 3
TEN_STUDENT_CLASS = [
    ("S01", 8, 15),    # 76.67 -> 3
    ("S02", 5, None),  # 50.00 -> 1
    ("S03", 9, 17),    # 86.67 -> 3
    ("S04", 7, 13),    # 66.67 -> 2
    ("S05", 6, 13),    # 63.33 -> 2
    ("S06", 10, 20),   # 100   -> 3
    ("S07", 6, 12),    # 60.00 -> 2
    ("S08", 7, 12),    # 63.33 -> 2
    ("S09", 4, 9),     # 43.33 -> 1
    ("S10", 2, 5),     # 23.33 -> 0
]


def seed_ten_student_class(builder: CourseBuilder, sections: Tuple[str, str] = ("A", "B")) -> None:
    seed_two_question_course(builder)
    for index, (student_id, q1, q2) in enumerate(TEN_STUDENT_CLASS):
        builder.enroll(student_id, section_id=sections[0] if index < 5 else sections[1])
        builder.mark(student_id, "Q1", q1)
        builder.mark(student_id, "Q2", q2)


@pytest.fixture
def repository():
    return InMemoryMarkRepository()


@pytest.fixture
def builder(repository):
    return CourseBuilder(repository)


@pytest.fixture
def sqlite_repository(tmp_path):
    return SQLiteMarkRepository(SQLiteDatabase(str(tmp_path / "attainment.db")))


@pytest.fixture
def sqlite_builder(sqlite_repository):
    return CourseBuilder(sqlite_repository)


@pytest.fixture
def resolver(repository):
    return StudentAttainmentResolver(repository)


@pytest.fixture
def aggregator(resolver):
    aggregator = ClassAttainmentAggregator(resolver, max_workers=4)
    yield aggregator
    aggregator.cleanup()


@pytest.fixture
def evaluator(repository):
    return TargetEvaluator(repository)


@pytest.fixture
def reporter(aggregator, evaluator):
    return CourseAttainmentReporter(aggregator, evaluator)
