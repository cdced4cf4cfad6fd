"""
Target evaluation for student and class attainments.
"""

from dataclasses import replace
from typing import TypeVar, Union

from ..core.exceptions import ConfigurationError, NotFoundError
from ..core.interfaces import MarkRepository
from ..core.results import ClassCOAttainment, StudentCOAttainment
from ..core.thresholds import CourseThresholds


A = TypeVar('A', StudentCOAttainment, ClassCOAttainment)


class TargetEvaluator:
    """Annotates attainments with whether the course's required level was reached."""

    def __init__(self, repository: MarkRepository, default_required_level: int = 1):
        if default_required_level not in (1, 2, 3):
            raise ConfigurationError(
                f"default_required_level must be 1, 2 or 3 (got {default_required_level})"
            )
        self._repository = repository
        self._default_required_level = default_required_level

    def required_level(self, thresholds: CourseThresholds) -> int:
        """Course override when configured, engine default otherwise."""
        if thresholds.minimum_target_level is not None:
            return thresholds.minimum_target_level
        return self._default_required_level

    def with_target_met(self, course_id: str, attainment: A) -> A:
        """Return a copy of ``attainment`` with ``target_met`` set."""
        thresholds = self._repository.get_course_thresholds(course_id)
        if thresholds is None:
            raise NotFoundError(f"Course {course_id} not found", details={"course_id": course_id})
        return self.evaluate(thresholds, attainment)

    def evaluate(self, thresholds: CourseThresholds,
                 attainment: Union[StudentCOAttainment, ClassCOAttainment]):
        """Annotate against thresholds that were already read."""
        required = self.required_level(thresholds)
        return replace(attainment, target_met=attainment.attainment_level >= required)
