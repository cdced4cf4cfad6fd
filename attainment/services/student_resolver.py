"""
Student CO attainment resolution.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

from ..core.entities import COQuestion
from ..core.enums import AggregationMethod
from ..core.exceptions import ConfigurationError, NotFoundError
from ..core.interfaces import MarkRepository
from ..core.results import StudentCOAttainment
from ..core.thresholds import CourseThresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class COContext:
    """Facts shared by every student resolution of one (course, CO) pair."""
    course_id: str
    co_id: str
    co_code: str
    thresholds: CourseThresholds
    questions: Tuple[COQuestion, ...]


class StudentAttainmentResolver:
    """Computes one student's percentage and attainment level for a CO.

    Questions the student did not attempt (no mark record, or a record
    without obtained marks) are left out of both the obtained and the
    maximum totals. A student who attempted none of the CO's questions has
    no attainment and resolves to ``NotFoundError``.
    """

    def __init__(self, repository: MarkRepository,
                 aggregation_method: AggregationMethod = AggregationMethod.MARKS,
                 precision: int = 2):
        if not isinstance(aggregation_method, AggregationMethod):
            raise ConfigurationError(f"Unsupported aggregation method: {aggregation_method}")
        if precision < 0:
            raise ConfigurationError("Percentage precision cannot be negative")
        self._repository = repository
        self._aggregation_method = aggregation_method
        self._precision = precision

    @property
    def repository(self) -> MarkRepository:
        return self._repository

    @property
    def precision(self) -> int:
        return self._precision

    def resolve_student(self, course_id: str, co_id: str, student_id: str) -> StudentCOAttainment:
        """Resolve a student's attainment of a CO within a course."""
        with self._repository.snapshot() as view:
            context = self.load_context(view, course_id, co_id)
            return self.resolve_with(view, context, student_id)

    def load_context(self, repository: MarkRepository, course_id: str, co_id: str) -> COContext:
        """Read the course thresholds, the CO and its mapped questions."""
        thresholds = repository.get_course_thresholds(course_id)
        if thresholds is None:
            raise NotFoundError(f"Course {course_id} not found", details={"course_id": course_id})

        outcome = repository.get_course_outcome(course_id, co_id)
        if outcome is None:
            raise NotFoundError(
                f"Course outcome {co_id} not found in course {course_id}",
                details={"course_id": course_id, "co_id": co_id},
            )

        questions = tuple(repository.get_co_questions(course_id, co_id))
        if not questions:
            raise NotFoundError(
                f"No questions mapped to CO {outcome.code} in course {course_id}",
                details={"course_id": course_id, "co_id": co_id},
            )

        return COContext(
            course_id=course_id,
            co_id=co_id,
            co_code=outcome.code,
            thresholds=thresholds,
            questions=questions,
        )

    def resolve_with(self, repository: MarkRepository, context: COContext, student_id: str) -> StudentCOAttainment:
        """Resolve a student against an already loaded CO context."""
        marks = repository.get_student_marks(student_id, [q.question_id for q in context.questions])
        attempted = [
            (question, marks[question.question_id])
            for question in context.questions
            if question.question_id in marks and marks[question.question_id].is_attempted
        ]

        if not attempted:
            raise NotFoundError(
                f"Student {student_id} attempted no questions for CO {context.co_code}",
                details={"course_id": context.course_id, "co_id": context.co_id, "student_id": student_id},
            )

        total_obtained = sum(mark.obtained_marks for _, mark in attempted)
        total_max = sum(question.max_marks for question, _ in attempted)

        if self._aggregation_method == AggregationMethod.ASSESSMENT_WEIGHTED:
            percentage = self._assessment_weighted_percentage(attempted)
        else:
            percentage = total_obtained / total_max * 100

        percentage = round(percentage, self._precision)
        level = context.thresholds.level_for(percentage)

        logger.debug(
            "Student %s CO %s: %s%% over %d/%d attempted questions -> level %d",
            student_id, context.co_code, percentage, len(attempted), len(context.questions), level,
        )

        return StudentCOAttainment(
            student_id=student_id,
            co_id=context.co_id,
            percentage=percentage,
            attainment_level=int(level),
            co_code=context.co_code,
            total_obtained_marks=total_obtained,
            total_max_marks=total_max,
            attempted_questions=len(attempted),
            total_questions=len(context.questions),
        )

    @staticmethod
    def _assessment_weighted_percentage(attempted) -> float:
        """Weight each attempted assessment's score by its weightage.

        Falls back to the plain marks ratio when the attempted assessments
        carry no weightage at all.
        """
        groups: Dict[str, Dict[str, float]] = {}
        for question, mark in attempted:
            group = groups.setdefault(
                question.assessment_id,
                {"obtained": 0.0, "max": 0.0, "weightage": question.weightage},
            )
            group["obtained"] += mark.obtained_marks
            group["max"] += question.max_marks

        total_weightage = sum(group["weightage"] for group in groups.values())
        if total_weightage <= 0:
            obtained = sum(group["obtained"] for group in groups.values())
            maximum = sum(group["max"] for group in groups.values())
            return obtained / maximum * 100

        weighted = sum(group["obtained"] / group["max"] * group["weightage"] for group in groups.values())
        return weighted / total_weightage * 100
