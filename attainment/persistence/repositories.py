"""
SQLite-backed mark repository.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..core.entities import (
    Assessment, Course, CourseOutcome, COQuestion, Enrollment, Question,
    RosterFilters, StudentMark,
)
from ..core.enums import EntityStatus
from ..core.exceptions import ValidationError
from ..core.interfaces import MarkRepository
from ..core.thresholds import CourseThresholds
from .database import DatabaseFactory, DatabaseManager
from .memory import InMemoryMarkRepository

logger = logging.getLogger(__name__)

ACTIVE = EntityStatus.ACTIVE.value


class SQLiteMarkRepository(MarkRepository):
    """Mark repository over the relational attainment schema."""

    def __init__(self, database: DatabaseManager):
        self._database = database

    # Reads

    def get_course(self, course_id: str) -> Optional[Course]:
        rows = self._database.execute_query("SELECT * FROM courses WHERE id = ?", (course_id,))
        if not rows:
            return None
        return self._course_from_row(rows[0])

    def get_course_thresholds(self, course_id: str) -> Optional[CourseThresholds]:
        course = self.get_course(course_id)
        if course is None:
            return None
        return course.thresholds

    def get_course_outcome(self, course_id: str, co_id: str) -> Optional[CourseOutcome]:
        rows = self._database.execute_query(
            "SELECT * FROM course_outcomes WHERE id = ? AND course_id = ?",
            (co_id, course_id),
        )
        if not rows:
            return None
        return self._outcome_from_row(rows[0])

    def get_course_outcomes(self, course_id: str) -> List[CourseOutcome]:
        rows = self._database.execute_query(
            "SELECT * FROM course_outcomes WHERE course_id = ? AND status = ? ORDER BY code",
            (course_id, ACTIVE),
        )
        return [self._outcome_from_row(row) for row in rows]

    def get_co_questions(self, course_id: str, co_id: str) -> List[COQuestion]:
        query = """
            SELECT q.id AS question_id, q.max_marks, q.assessment_id, a.weightage
            FROM question_co_mappings m
            JOIN questions q ON q.id = m.question_id
            JOIN assessments a ON a.id = q.assessment_id
            WHERE m.co_id = ? AND a.course_id = ? AND a.status = ? AND q.status = ?
            ORDER BY a.rowid, q.rowid
        """
        rows = self._database.execute_query(query, (co_id, course_id, ACTIVE, ACTIVE))
        return [
            COQuestion(
                question_id=row["question_id"],
                max_marks=row["max_marks"],
                assessment_id=row["assessment_id"],
                weightage=row["weightage"],
            )
            for row in rows
        ]

    def get_student_mark(self, student_id: str, question_id: str) -> Optional[StudentMark]:
        rows = self._database.execute_query(
            "SELECT * FROM student_marks WHERE student_id = ? AND question_id = ?",
            (student_id, question_id),
        )
        if not rows:
            return None
        return self._mark_from_row(rows[0])

    def get_student_marks(self, student_id: str, question_ids: Iterable[str]) -> Dict[str, StudentMark]:
        question_ids = list(question_ids)
        if not question_ids:
            return {}
        placeholders = ", ".join("?" for _ in question_ids)
        rows = self._database.execute_query(
            f"SELECT * FROM student_marks WHERE student_id = ? AND question_id IN ({placeholders})",
            (student_id, *question_ids),
        )
        return {row["question_id"]: self._mark_from_row(row) for row in rows}

    def get_eligible_students(self, course_id: str, filters: Optional[RosterFilters] = None) -> List[str]:
        where, params = self._roster_clause(course_id, filters)
        rows = self._database.execute_query(
            f"SELECT student_id FROM enrollments WHERE {where} GROUP BY student_id ORDER BY MIN(rowid)",
            params,
        )
        return [row["student_id"] for row in rows]

    def get_roster_sections(self, course_id: str, filters: Optional[RosterFilters] = None) -> List[str]:
        where, params = self._roster_clause(course_id, filters)
        rows = self._database.execute_query(
            f"SELECT section_id FROM enrollments WHERE {where} AND section_id IS NOT NULL "
            "GROUP BY section_id ORDER BY MIN(rowid)",
            params,
        )
        return [row["section_id"] for row in rows]

    @staticmethod
    def _roster_clause(course_id: str, filters: Optional[RosterFilters]) -> Tuple[str, tuple]:
        clause = "course_id = ? AND status = ?"
        params: List[Any] = [course_id, ACTIVE]

        if filters:
            for column, value in filters.to_dict().items():
                if value is not None:
                    clause += f" AND {column} = ?"
                    params.append(value)

        return clause, tuple(params)

    @contextmanager
    def snapshot(self) -> Iterator["SQLiteMarkRepository"]:
        with self._database.read_snapshot() as view:
            yield SQLiteMarkRepository(view)

    # Writers

    def save_course(self, course: Course) -> Course:
        self._database.execute_update(
            """
            INSERT OR REPLACE INTO courses
                (id, course_code, name, level1_threshold, level2_threshold, level3_threshold,
                 target_percentage, minimum_target_level, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                course.id, course.course_code, course.name, course.level1_threshold,
                course.level2_threshold, course.level3_threshold, course.target_percentage,
                course.minimum_target_level, course.status.value,
            ),
        )
        return course

    def save_course_outcome(self, outcome: CourseOutcome) -> CourseOutcome:
        self._database.execute_update(
            "INSERT OR REPLACE INTO course_outcomes (id, course_id, code, description, status) VALUES (?, ?, ?, ?, ?)",
            (outcome.id, outcome.course_id, outcome.code, outcome.description, outcome.status.value),
        )
        return outcome

    def save_assessment(self, assessment: Assessment) -> Assessment:
        self._database.execute_update(
            """
            INSERT OR REPLACE INTO assessments
                (id, course_id, name, assessment_type, max_marks, weightage, section_id, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                assessment.id, assessment.course_id, assessment.name, assessment.assessment_type.value,
                assessment.max_marks, assessment.weightage, assessment.section_id, assessment.status.value,
            ),
        )
        return assessment

    def save_question(self, question: Question) -> Question:
        self._database.execute_update(
            "INSERT OR REPLACE INTO questions (id, assessment_id, max_marks, label, status) VALUES (?, ?, ?, ?, ?)",
            (question.id, question.assessment_id, question.max_marks, question.label, question.status.value),
        )
        return question

    def map_question(self, question_id: str, co_id: str) -> None:
        self._database.execute_update(
            "INSERT OR IGNORE INTO question_co_mappings (question_id, co_id) VALUES (?, ?)",
            (question_id, co_id),
        )

    def record_mark(self, mark: StudentMark) -> StudentMark:
        rows = self._database.execute_query("SELECT max_marks FROM questions WHERE id = ?", (mark.question_id,))
        if not rows:
            raise ValidationError(f"Unknown question {mark.question_id}")
        if mark.obtained_marks is not None and mark.obtained_marks > rows[0]["max_marks"]:
            raise ValidationError(
                f"Obtained marks {mark.obtained_marks} exceed max marks {rows[0]['max_marks']} "
                f"for question {mark.question_id}"
            )
        self._database.execute_update(
            "INSERT OR REPLACE INTO student_marks (student_id, question_id, obtained_marks) VALUES (?, ?, ?)",
            (mark.student_id, mark.question_id, mark.obtained_marks),
        )
        return mark

    def enroll(self, enrollment: Enrollment) -> Enrollment:
        self._database.execute_update(
            """
            INSERT OR REPLACE INTO enrollments
                (id, student_id, course_id, section_id, academic_year, semester, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                enrollment.id, enrollment.student_id, enrollment.course_id, enrollment.section_id,
                enrollment.academic_year, enrollment.semester, enrollment.status.value,
            ),
        )
        return enrollment

    # Row mapping

    @staticmethod
    def _course_from_row(row: Dict[str, Any]) -> Course:
        return Course(
            course_code=row["course_code"],
            name=row["name"],
            level1_threshold=row["level1_threshold"],
            level2_threshold=row["level2_threshold"],
            level3_threshold=row["level3_threshold"],
            target_percentage=row["target_percentage"],
            minimum_target_level=row["minimum_target_level"],
            entity_id=row["id"],
            status=EntityStatus(row["status"]),
        )

    @staticmethod
    def _outcome_from_row(row: Dict[str, Any]) -> CourseOutcome:
        return CourseOutcome(
            course_id=row["course_id"],
            code=row["code"],
            description=row["description"] or "",
            entity_id=row["id"],
            status=EntityStatus(row["status"]),
        )

    @staticmethod
    def _mark_from_row(row: Dict[str, Any]) -> StudentMark:
        return StudentMark(
            student_id=row["student_id"],
            question_id=row["question_id"],
            obtained_marks=row["obtained_marks"],
        )


class MarkRepositoryFactory:
    """Factory for creating mark repositories."""

    @staticmethod
    def create_repository(database_type: str, **kwargs) -> MarkRepository:
        """Create a repository based on storage type."""
        logger.debug("Creating %s mark repository", database_type)
        if database_type.lower() == "memory":
            return InMemoryMarkRepository()
        return SQLiteMarkRepository(DatabaseFactory.create_database(database_type, **kwargs))
