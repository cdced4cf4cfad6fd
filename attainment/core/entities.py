"""
Core records read by the attainment engine.

These mirror the rows the mark repository stores. The engine only reads
them; writers exist on the repositories for fixtures and tooling.
"""

import uuid
from abc import ABC
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .enums import EntityStatus, AssessmentType
from .exceptions import ValidationError
from .thresholds import CourseThresholds


class AbstractEntity(ABC):
    """Base record with a universal ID, creation timestamp and status."""

    def __init__(self, entity_id: Optional[str] = None, status: EntityStatus = EntityStatus.ACTIVE):
        self._id = entity_id or str(uuid.uuid4())
        self._created_at = datetime.now(timezone.utc)
        self._status = status

    @property
    def id(self) -> str:
        """Get the entity ID."""
        return self._id

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def status(self) -> EntityStatus:
        """Get entity status."""
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status == EntityStatus.ACTIVE

    def deactivate(self) -> None:
        """Deactivate the entity."""
        self._status = EntityStatus.INACTIVE

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            'id': self._id,
            'created_at': self._created_at.isoformat(),
            'status': self._status.value,
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id}, status={self._status.value})"


class Course(AbstractEntity):
    """Course with its attainment thresholds and class target."""

    def __init__(self, course_code: str, name: str, level1_threshold: Optional[float],
                 level2_threshold: Optional[float], level3_threshold: Optional[float],
                 target_percentage: Optional[float], minimum_target_level: Optional[int] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self._course_code = course_code
        self._name = name
        self._level1_threshold = level1_threshold
        self._level2_threshold = level2_threshold
        self._level3_threshold = level3_threshold
        self._target_percentage = target_percentage
        self._minimum_target_level = minimum_target_level

    @property
    def course_code(self) -> str:
        return self._course_code

    @property
    def name(self) -> str:
        return self._name

    @property
    def level1_threshold(self) -> Optional[float]:
        return self._level1_threshold

    @property
    def level2_threshold(self) -> Optional[float]:
        return self._level2_threshold

    @property
    def level3_threshold(self) -> Optional[float]:
        return self._level3_threshold

    @property
    def target_percentage(self) -> Optional[float]:
        return self._target_percentage

    @property
    def minimum_target_level(self) -> Optional[int]:
        return self._minimum_target_level

    @property
    def thresholds(self) -> CourseThresholds:
        """Validated threshold view; raises ``ConfigurationError`` when misconfigured."""
        return CourseThresholds(
            course_id=self.id,
            level1_threshold=self._level1_threshold,
            level2_threshold=self._level2_threshold,
            level3_threshold=self._level3_threshold,
            target_percentage=self._target_percentage,
            minimum_target_level=self._minimum_target_level,
        )

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'course_code': self._course_code,
            'name': self._name,
            'level1_threshold': self._level1_threshold,
            'level2_threshold': self._level2_threshold,
            'level3_threshold': self._level3_threshold,
            'target_percentage': self._target_percentage,
            'minimum_target_level': self._minimum_target_level,
        })
        return base_dict


class CourseOutcome(AbstractEntity):
    """A course outcome; ``code`` is for display only."""

    def __init__(self, course_id: str, code: str, description: str = "", **kwargs):
        super().__init__(**kwargs)
        self._course_id = course_id
        self._code = code
        self._description = description

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def code(self) -> str:
        return self._code

    @property
    def description(self) -> str:
        return self._description

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'course_id': self._course_id,
            'code': self._code,
            'description': self._description,
        })
        return base_dict


class Assessment(AbstractEntity):
    """An assessment of a course, composed of questions."""

    def __init__(self, course_id: str, name: str, max_marks: float, weightage: float = 0.0,
                 assessment_type: AssessmentType = AssessmentType.OTHER,
                 section_id: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        if max_marks < 0:
            raise ValidationError("Assessment max marks cannot be negative")
        if weightage < 0:
            raise ValidationError("Assessment weightage cannot be negative")
        self._course_id = course_id
        self._name = name
        self._max_marks = max_marks
        self._weightage = weightage
        self._assessment_type = assessment_type
        self._section_id = section_id

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def max_marks(self) -> float:
        return self._max_marks

    @property
    def weightage(self) -> float:
        return self._weightage

    @property
    def assessment_type(self) -> AssessmentType:
        return self._assessment_type

    @property
    def section_id(self) -> Optional[str]:
        return self._section_id

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'course_id': self._course_id,
            'name': self._name,
            'max_marks': self._max_marks,
            'weightage': self._weightage,
            'assessment_type': self._assessment_type.value,
            'section_id': self._section_id,
        })
        return base_dict


class Question(AbstractEntity):
    """A question of an assessment."""

    def __init__(self, assessment_id: str, max_marks: float, label: str = "", **kwargs):
        super().__init__(**kwargs)
        if max_marks <= 0:
            raise ValidationError("Question max marks must be positive")
        self._assessment_id = assessment_id
        self._max_marks = max_marks
        self._label = label

    @property
    def assessment_id(self) -> str:
        return self._assessment_id

    @property
    def max_marks(self) -> float:
        return self._max_marks

    @property
    def label(self) -> str:
        return self._label

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'assessment_id': self._assessment_id,
            'max_marks': self._max_marks,
            'label': self._label,
        })
        return base_dict


class Enrollment(AbstractEntity):
    """Links a student to a course for one cohort."""

    def __init__(self, student_id: str, course_id: str, section_id: Optional[str] = None,
                 academic_year: Optional[str] = None, semester: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._student_id = student_id
        self._course_id = course_id
        self._section_id = section_id
        self._academic_year = academic_year
        self._semester = semester

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def course_id(self) -> str:
        return self._course_id

    @property
    def section_id(self) -> Optional[str]:
        return self._section_id

    @property
    def academic_year(self) -> Optional[str]:
        return self._academic_year

    @property
    def semester(self) -> Optional[str]:
        return self._semester

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'student_id': self._student_id,
            'course_id': self._course_id,
            'section_id': self._section_id,
            'academic_year': self._academic_year,
            'semester': self._semester,
        })
        return base_dict


@dataclass(frozen=True)
class StudentMark:
    """Marks a student obtained on one question.

    ``obtained_marks`` of ``None`` records an absence and counts as not
    attempted, exactly like a missing record. A recorded ``0`` is a zero.
    """
    student_id: str
    question_id: str
    obtained_marks: Optional[float]

    def __post_init__(self):
        if self.obtained_marks is not None and self.obtained_marks < 0:
            raise ValidationError(
                f"Obtained marks cannot be negative (student {self.student_id}, question {self.question_id})"
            )

    @property
    def is_attempted(self) -> bool:
        return self.obtained_marks is not None


@dataclass(frozen=True)
class COQuestion:
    """A question mapped to a CO, projected with what the resolver needs."""
    question_id: str
    max_marks: float
    assessment_id: str
    weightage: float = 0.0


@dataclass(frozen=True)
class RosterFilters:
    """Cohort filters; each one narrows the eligible roster when set."""
    academic_year: Optional[str] = None
    semester: Optional[str] = None
    section_id: Optional[str] = None

    def matches(self, enrollment: Enrollment) -> bool:
        if self.academic_year is not None and enrollment.academic_year != self.academic_year:
            return False
        if self.semester is not None and enrollment.semester != self.semester:
            return False
        if self.section_id is not None and enrollment.section_id != self.section_id:
            return False
        return True

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            'academic_year': self.academic_year,
            'semester': self.semester,
            'section_id': self.section_id,
        }
