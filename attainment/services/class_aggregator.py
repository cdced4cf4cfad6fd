"""
Class-wide CO attainment aggregation.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Tuple

from ..core.entities import RosterFilters
from ..core.enums import SCORED_LEVELS
from ..core.exceptions import ConfigurationError, NotFoundError
from ..core.interfaces import MarkRepository
from ..core.results import ClassCOAttainment, StudentCOAttainment, empty_distribution
from .student_resolver import COContext, StudentAttainmentResolver

logger = logging.getLogger(__name__)


class ClassAttainmentAggregator:
    """Resolves every eligible student of a course and classifies the class.

    Students without any attempted CO question are left out of every
    count. The class is placed at the highest level that at least
    ``target_percentage`` percent of the evaluated students reach or exceed.
    """

    def __init__(self, resolver: StudentAttainmentResolver, max_workers: int = 8):
        if max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        self._resolver = resolver
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    @property
    def resolver(self) -> StudentAttainmentResolver:
        return self._resolver

    def resolve_class(self, course_id: str, co_id: str,
                      filters: Optional[RosterFilters] = None) -> ClassCOAttainment:
        """Compute the class attainment of a CO."""
        class_attainment, _ = self.evaluate_class(course_id, co_id, filters)
        return class_attainment

    def evaluate_class(self, course_id: str, co_id: str, filters: Optional[RosterFilters] = None
                       ) -> Tuple[ClassCOAttainment, List[StudentCOAttainment]]:
        """Compute the class attainment together with the per-student results it was built from."""
        with self._resolver.repository.snapshot() as view:
            return self.evaluate_in(view, course_id, co_id, filters)

    def evaluate_in(self, repository: MarkRepository, course_id: str, co_id: str,
                    filters: Optional[RosterFilters] = None
                    ) -> Tuple[ClassCOAttainment, List[StudentCOAttainment]]:
        """Evaluate against an already opened repository snapshot."""
        context = self._resolver.load_context(repository, course_id, co_id)
        roster = repository.get_eligible_students(course_id, filters)

        resolved = self._resolve_roster(repository, context, roster)
        evaluated = [attainment for attainment in resolved if attainment is not None]

        if not evaluated:
            raise NotFoundError(
                f"No evaluable students for CO {context.co_code} in course {course_id}",
                details={
                    "course_id": course_id,
                    "co_id": co_id,
                    "eligible_students": len(roster),
                    "filters": filters.to_dict() if filters else {},
                },
            )

        skipped = len(roster) - len(evaluated)
        if skipped:
            logger.warning(
                "CO %s: %d of %d eligible students attempted no mapped questions and were excluded",
                context.co_code, skipped, len(roster),
            )

        class_attainment = self.classify(context, evaluated, self._resolver.precision)
        logger.info(
            "CO %s in course %s: %d students evaluated, class level %d",
            context.co_code, course_id, class_attainment.total_students, class_attainment.attainment_level,
        )
        return class_attainment, evaluated

    def _resolve_roster(self, repository: MarkRepository, context: COContext,
                        roster: List[str]) -> List[Optional[StudentCOAttainment]]:
        def resolve(student_id: str) -> Optional[StudentCOAttainment]:
            try:
                return self._resolver.resolve_with(repository, context, student_id)
            except NotFoundError:
                return None

        if self._max_workers == 1 or len(roster) <= 1:
            return [resolve(student_id) for student_id in roster]

        executor = self._get_executor()
        futures = [executor.submit(resolve, student_id) for student_id in roster]
        try:
            return [future.result() for future in futures]
        except Exception:
            # queued work must not outlive the caller's snapshot
            for future in futures:
                future.cancel()
            wait(futures)
            raise

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="attainment"
                )
            return self._executor

    @staticmethod
    def classify(context: COContext, evaluated: List[StudentCOAttainment],
                 precision: int = 2) -> ClassCOAttainment:
        """Build the class result from evaluated student attainments."""
        total = len(evaluated)
        distribution = empty_distribution()
        for attainment in evaluated:
            distribution[attainment.attainment_level] += 1

        at_or_above: Dict[int, int] = {
            int(level): sum(count for lvl, count in distribution.items() if lvl >= level)
            for level in SCORED_LEVELS
        }

        target = context.thresholds.target_percentage
        class_level = 0
        for level in sorted(at_or_above, reverse=True):
            # count / total >= target / 100, kept in exact arithmetic
            if at_or_above[level] * 100 >= target * total:
                class_level = level
                break

        average = round(sum(a.percentage for a in evaluated) / total, precision)

        return ClassCOAttainment(
            co_id=context.co_id,
            total_students=total,
            level_distribution=distribution,
            attainment_level=class_level,
            co_code=context.co_code,
            target_percentage=target,
            average_percentage=average,
            students_at_or_above=at_or_above,
        )

    def cleanup(self) -> None:
        """Shut down the worker pool."""
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
