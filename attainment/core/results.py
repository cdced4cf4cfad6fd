"""
Derived attainment results. These are computed per request and never stored.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .enums import ATTAINMENT_LEVELS
from .thresholds import CourseThresholds


def empty_distribution() -> Dict[int, int]:
    return {int(level): 0 for level in ATTAINMENT_LEVELS}


@dataclass(frozen=True)
class StudentCOAttainment:
    """A student's attainment of one CO.

    ``target_met`` stays ``None`` until a ``TargetEvaluator`` has annotated it.
    """
    student_id: str
    co_id: str
    percentage: float
    attainment_level: int
    target_met: Optional[bool] = None
    co_code: Optional[str] = None
    total_obtained_marks: float = 0.0
    total_max_marks: float = 0.0
    attempted_questions: int = 0
    total_questions: int = 0

    @property
    def attempted_all(self) -> bool:
        return self.attempted_questions == self.total_questions


@dataclass(frozen=True)
class ClassCOAttainment:
    """Class-wide attainment of one CO over the evaluable students."""
    co_id: str
    total_students: int
    level_distribution: Dict[int, int]
    attainment_level: int
    target_met: Optional[bool] = None
    co_code: Optional[str] = None
    target_percentage: Optional[float] = None
    average_percentage: Optional[float] = None
    students_at_or_above: Dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class COReport:
    """Class attainment of a CO with its per-student and per-section breakdown."""
    class_attainment: ClassCOAttainment
    student_breakdown: List[StudentCOAttainment]
    standard_case: Optional[StudentCOAttainment] = None
    unattempted_case: Optional[StudentCOAttainment] = None
    section_breakdown: Dict[str, ClassCOAttainment] = field(default_factory=dict)


@dataclass(frozen=True)
class CourseAttainmentSummary:
    """Attainment of every active CO in a course."""
    course_id: str
    course_code: str
    course_name: str
    thresholds: CourseThresholds
    total_students: int
    co_attainments: List[ClassCOAttainment]
    skipped_cos: List[str]
    overall_distribution: Dict[int, int]
    calculated_at: datetime

    @property
    def target_percentage(self) -> float:
        return self.thresholds.target_percentage

    def to_dict(self) -> Dict[str, Any]:
        return {
            'course_id': self.course_id,
            'course_code': self.course_code,
            'course_name': self.course_name,
            'thresholds': self.thresholds.to_dict(),
            'total_students': self.total_students,
            'co_attainments': [asdict(a) for a in self.co_attainments],
            'skipped_cos': list(self.skipped_cos),
            'overall_distribution': dict(self.overall_distribution),
            'calculated_at': self.calculated_at.isoformat(),
        }
