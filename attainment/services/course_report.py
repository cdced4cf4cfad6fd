"""
Course-wide attainment summaries and per-CO reports.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from ..core.entities import RosterFilters
from ..core.exceptions import NotFoundError
from ..core.interfaces import MarkRepository
from ..core.results import (
    ClassCOAttainment, COReport, CourseAttainmentSummary, StudentCOAttainment, empty_distribution,
)
from ..core.thresholds import CourseThresholds
from .class_aggregator import ClassAttainmentAggregator
from .target_evaluator import TargetEvaluator

logger = logging.getLogger(__name__)


class CourseAttainmentReporter:
    """Builds reports on top of the aggregator and the target evaluator."""

    def __init__(self, aggregator: ClassAttainmentAggregator, evaluator: TargetEvaluator):
        self._aggregator = aggregator
        self._evaluator = evaluator

    @property
    def _repository(self):
        return self._aggregator.resolver.repository

    def summarize_course(self, course_id: str,
                         filters: Optional[RosterFilters] = None) -> CourseAttainmentSummary:
        """Class attainment of every active CO of a course, ordered by CO code.

        COs without evaluable data are listed in ``skipped_cos`` rather
        than failing the whole summary.
        """
        with self._repository.snapshot() as view:
            course = view.get_course(course_id)
            if course is None:
                raise NotFoundError(f"Course {course_id} not found", details={"course_id": course_id})
            thresholds = course.thresholds

            outcomes = view.get_course_outcomes(course_id)
            if not outcomes:
                raise NotFoundError(f"No course outcomes defined for course {course_id}",
                                    details={"course_id": course_id})

            co_attainments: List[ClassCOAttainment] = []
            skipped: List[str] = []
            students: Set[str] = set()

            for outcome in outcomes:
                try:
                    class_attainment, evaluated = self._aggregator.evaluate_in(
                        view, course_id, outcome.id, filters
                    )
                except NotFoundError as e:
                    logger.warning("Skipping CO %s of course %s: %s", outcome.code, course_id, e.message)
                    skipped.append(outcome.id)
                    continue

                co_attainments.append(self._evaluator.evaluate(thresholds, class_attainment))
                students.update(a.student_id for a in evaluated)

        overall = empty_distribution()
        for attainment in co_attainments:
            overall[attainment.attainment_level] += 1

        logger.info(
            "Course %s summary: %d COs computed, %d skipped, %d distinct students",
            course_id, len(co_attainments), len(skipped), len(students),
        )

        return CourseAttainmentSummary(
            course_id=course.id,
            course_code=course.course_code,
            course_name=course.name,
            thresholds=thresholds,
            total_students=len(students),
            co_attainments=co_attainments,
            skipped_cos=skipped,
            overall_distribution=overall,
            calculated_at=datetime.now(timezone.utc),
        )

    def student_attainment(self, course_id: str, co_id: str, student_id: str) -> StudentCOAttainment:
        """A student's attainment of a CO with ``target_met`` set, read from one snapshot."""
        resolver = self._aggregator.resolver
        with self._repository.snapshot() as view:
            context = resolver.load_context(view, course_id, co_id)
            attainment = resolver.resolve_with(view, context, student_id)
        return self._evaluator.evaluate(context.thresholds, attainment)

    def class_attainment(self, course_id: str, co_id: str,
                         filters: Optional[RosterFilters] = None) -> ClassCOAttainment:
        """Class attainment of a CO with ``target_met`` set, read from one snapshot."""
        with self._repository.snapshot() as view:
            thresholds = self._thresholds(view, course_id)
            class_attainment, _ = self._aggregator.evaluate_in(view, course_id, co_id, filters)
        return self._evaluator.evaluate(thresholds, class_attainment)

    def co_report(self, course_id: str, co_id: str,
                  filters: Optional[RosterFilters] = None) -> COReport:
        """Class attainment of a CO with every evaluated student's result.

        ``section_breakdown`` holds the class attainment of each section on
        the roster; sections without evaluable students are left out.
        """
        with self._repository.snapshot() as view:
            thresholds = self._thresholds(view, course_id)
            class_attainment, evaluated = self._aggregator.evaluate_in(view, course_id, co_id, filters)

            sections: Dict[str, ClassCOAttainment] = {}
            for section_id in view.get_roster_sections(course_id, filters):
                section_filters = replace(filters or RosterFilters(), section_id=section_id)
                try:
                    section_attainment, _ = self._aggregator.evaluate_in(
                        view, course_id, co_id, section_filters
                    )
                except NotFoundError:
                    logger.info("Section %s has no evaluable students for CO %s", section_id, co_id)
                    continue
                sections[section_id] = self._evaluator.evaluate(thresholds, section_attainment)

        class_attainment = self._evaluator.evaluate(thresholds, class_attainment)
        breakdown = [self._evaluator.evaluate(thresholds, a) for a in evaluated]

        standard_case = next((a for a in breakdown if a.attempted_all and a.target_met), None)
        unattempted_case = next((a for a in breakdown if not a.attempted_all), None)

        return COReport(
            class_attainment=class_attainment,
            student_breakdown=breakdown,
            standard_case=standard_case,
            unattempted_case=unattempted_case,
            section_breakdown=sections,
        )

    @staticmethod
    def _thresholds(view: MarkRepository, course_id: str) -> CourseThresholds:
        thresholds = view.get_course_thresholds(course_id)
        if thresholds is None:
            raise NotFoundError(f"Course {course_id} not found", details={"course_id": course_id})
        return thresholds
