"""
Enumerations and constants for the attainment engine.
"""

from enum import Enum, IntEnum


class EntityStatus(Enum):
    """Status of a record in the mark repository."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class AttainmentLevel(IntEnum):
    """Ordinal attainment classification."""
    LEVEL_0 = 0
    LEVEL_1 = 1
    LEVEL_2 = 2
    LEVEL_3 = 3


class AssessmentType(Enum):
    """Kinds of assessment a course can run."""
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    MID_TERM = "mid_term"
    END_TERM = "end_term"
    LAB = "lab"
    PROJECT = "project"
    OTHER = "other"


class AggregationMethod(Enum):
    """How attempted question marks are combined into a CO percentage."""
    MARKS = "marks"
    ASSESSMENT_WEIGHTED = "assessment_weighted"


ATTAINMENT_LEVELS = tuple(AttainmentLevel)
SCORED_LEVELS = (AttainmentLevel.LEVEL_1, AttainmentLevel.LEVEL_2, AttainmentLevel.LEVEL_3)
