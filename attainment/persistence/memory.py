"""
In-memory mark repository used for fixtures, demos and tests.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set, Tuple

from ..core.entities import (
    Assessment, Course, CourseOutcome, COQuestion, Enrollment, Question,
    RosterFilters, StudentMark,
)
from ..core.exceptions import ValidationError
from ..core.interfaces import MarkRepository
from ..core.thresholds import CourseThresholds


class InMemoryMarkRepository(MarkRepository):
    """Dictionary-backed repository; insertion order is preserved for every listing."""

    def __init__(self):
        self._courses: Dict[str, Course] = {}
        self._outcomes: Dict[str, CourseOutcome] = {}
        self._assessments: Dict[str, Assessment] = {}
        self._questions: Dict[str, Question] = {}
        self._mappings: Dict[str, List[str]] = {}  # co_id -> [question_ids]
        self._marks: Dict[Tuple[str, str], StudentMark] = {}
        self._enrollments: List[Enrollment] = []
        self._lock = threading.RLock()

    # Writers

    def save_course(self, course: Course) -> Course:
        with self._lock:
            self._courses[course.id] = course
            return course

    def save_course_outcome(self, outcome: CourseOutcome) -> CourseOutcome:
        with self._lock:
            if outcome.course_id not in self._courses:
                raise ValidationError(f"Unknown course {outcome.course_id}")
            self._outcomes[outcome.id] = outcome
            return outcome

    def save_assessment(self, assessment: Assessment) -> Assessment:
        with self._lock:
            if assessment.course_id not in self._courses:
                raise ValidationError(f"Unknown course {assessment.course_id}")
            self._assessments[assessment.id] = assessment
            return assessment

    def save_question(self, question: Question) -> Question:
        with self._lock:
            if question.assessment_id not in self._assessments:
                raise ValidationError(f"Unknown assessment {question.assessment_id}")
            self._questions[question.id] = question
            return question

    def map_question(self, question_id: str, co_id: str) -> None:
        with self._lock:
            if question_id not in self._questions:
                raise ValidationError(f"Unknown question {question_id}")
            if co_id not in self._outcomes:
                raise ValidationError(f"Unknown course outcome {co_id}")
            mapped = self._mappings.setdefault(co_id, [])
            if question_id not in mapped:
                mapped.append(question_id)

    def record_mark(self, mark: StudentMark) -> StudentMark:
        with self._lock:
            question = self._questions.get(mark.question_id)
            if question is None:
                raise ValidationError(f"Unknown question {mark.question_id}")
            if mark.obtained_marks is not None and mark.obtained_marks > question.max_marks:
                raise ValidationError(
                    f"Obtained marks {mark.obtained_marks} exceed max marks {question.max_marks} "
                    f"for question {mark.question_id}"
                )
            self._marks[(mark.student_id, mark.question_id)] = mark
            return mark

    def remove_mark(self, student_id: str, question_id: str) -> bool:
        with self._lock:
            return self._marks.pop((student_id, question_id), None) is not None

    def enroll(self, enrollment: Enrollment) -> Enrollment:
        with self._lock:
            if enrollment.course_id not in self._courses:
                raise ValidationError(f"Unknown course {enrollment.course_id}")
            self._enrollments.append(enrollment)
            return enrollment

    # Reads

    def get_course(self, course_id: str) -> Optional[Course]:
        with self._lock:
            return self._courses.get(course_id)

    def get_course_thresholds(self, course_id: str) -> Optional[CourseThresholds]:
        course = self.get_course(course_id)
        if course is None:
            return None
        return course.thresholds

    def get_course_outcome(self, course_id: str, co_id: str) -> Optional[CourseOutcome]:
        with self._lock:
            outcome = self._outcomes.get(co_id)
            if outcome is None or outcome.course_id != course_id:
                return None
            return outcome

    def get_course_outcomes(self, course_id: str) -> List[CourseOutcome]:
        with self._lock:
            outcomes = [o for o in self._outcomes.values() if o.course_id == course_id and o.is_active]
        return sorted(outcomes, key=lambda o: o.code)

    def get_co_questions(self, course_id: str, co_id: str) -> List[COQuestion]:
        with self._lock:
            result = []
            for question_id in self._mappings.get(co_id, []):
                question = self._questions[question_id]
                assessment = self._assessments[question.assessment_id]
                if assessment.course_id != course_id:
                    continue
                if not (assessment.is_active and question.is_active):
                    continue
                result.append(COQuestion(
                    question_id=question.id,
                    max_marks=question.max_marks,
                    assessment_id=assessment.id,
                    weightage=assessment.weightage,
                ))
            return result

    def get_student_mark(self, student_id: str, question_id: str) -> Optional[StudentMark]:
        with self._lock:
            return self._marks.get((student_id, question_id))

    def get_eligible_students(self, course_id: str, filters: Optional[RosterFilters] = None) -> List[str]:
        with self._lock:
            seen: Set[str] = set()
            students = []
            for enrollment in self._roster(course_id, filters):
                if enrollment.student_id not in seen:
                    seen.add(enrollment.student_id)
                    students.append(enrollment.student_id)
            return students

    def get_roster_sections(self, course_id: str, filters: Optional[RosterFilters] = None) -> List[str]:
        with self._lock:
            sections = []
            for enrollment in self._roster(course_id, filters):
                if enrollment.section_id is not None and enrollment.section_id not in sections:
                    sections.append(enrollment.section_id)
            return sections

    def _roster(self, course_id: str, filters: Optional[RosterFilters]) -> List[Enrollment]:
        return [
            enrollment for enrollment in self._enrollments
            if enrollment.course_id == course_id and enrollment.is_active
            and (filters is None or filters.matches(enrollment))
        ]

    @contextmanager
    def snapshot(self) -> Iterator["InMemoryMarkRepository"]:
        with self._lock:
            view = InMemoryMarkRepository()
            view._courses = dict(self._courses)
            view._outcomes = dict(self._outcomes)
            view._assessments = dict(self._assessments)
            view._questions = dict(self._questions)
            view._mappings = {co_id: list(ids) for co_id, ids in self._mappings.items()}
            view._marks = dict(self._marks)
            view._enrollments = list(self._enrollments)
        yield view
