"""
Core interfaces and abstract base classes for the attainment engine.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from .entities import Course, CourseOutcome, COQuestion, RosterFilters, StudentMark
from .thresholds import CourseThresholds


class MarkRepository(ABC):
    """Read-only query contract the engine consumes.

    Implementations raise ``DataAccessError`` when the underlying store
    cannot answer; absence of data is reported with ``None`` or an empty
    list, never with an exception.
    """

    @abstractmethod
    def get_course(self, course_id: str) -> Optional[Course]:
        """Get a course by ID."""
        pass

    @abstractmethod
    def get_course_thresholds(self, course_id: str) -> Optional[CourseThresholds]:
        """Get the validated thresholds of a course, ``None`` if the course is unknown."""
        pass

    @abstractmethod
    def get_course_outcome(self, course_id: str, co_id: str) -> Optional[CourseOutcome]:
        """Get a CO only if it belongs to the given course."""
        pass

    @abstractmethod
    def get_course_outcomes(self, course_id: str) -> List[CourseOutcome]:
        """Get the active COs of a course ordered by code."""
        pass

    @abstractmethod
    def get_co_questions(self, course_id: str, co_id: str) -> List[COQuestion]:
        """Get questions mapped to a CO, restricted to active assessments of the course."""
        pass

    @abstractmethod
    def get_student_mark(self, student_id: str, question_id: str) -> Optional[StudentMark]:
        """Get a student's mark on a question, ``None`` when there is no record."""
        pass

    @abstractmethod
    def get_eligible_students(self, course_id: str, filters: Optional[RosterFilters] = None) -> List[str]:
        """Get IDs of students actively enrolled in a course, narrowed by filters."""
        pass

    @abstractmethod
    def get_roster_sections(self, course_id: str, filters: Optional[RosterFilters] = None) -> List[str]:
        """Get the distinct sections of the eligible roster, in first-enrollment order."""
        pass

    def get_student_marks(self, student_id: str, question_ids: Iterable[str]) -> Dict[str, StudentMark]:
        """Get a student's marks for several questions keyed by question ID."""
        marks = {}
        for question_id in question_ids:
            mark = self.get_student_mark(student_id, question_id)
            if mark is not None:
                marks[question_id] = mark
        return marks

    @contextmanager
    def snapshot(self) -> Iterator["MarkRepository"]:
        """Serve every read of one computation from a single coherent view."""
        yield self
