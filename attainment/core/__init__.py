"""
Core module containing the record model, result types and the repository contract.
"""

from .entities import *
from .enums import *
from .exceptions import *
from .interfaces import *
from .results import *
from .thresholds import *

__all__ = [
    # Entities
    "AbstractEntity",
    "Course",
    "CourseOutcome",
    "Assessment",
    "Question",
    "Enrollment",
    "StudentMark",
    "COQuestion",
    "RosterFilters",

    # Thresholds
    "CourseThresholds",

    # Results
    "StudentCOAttainment",
    "ClassCOAttainment",
    "COReport",
    "CourseAttainmentSummary",
    "empty_distribution",

    # Interfaces
    "MarkRepository",

    # Enums
    "EntityStatus",
    "AttainmentLevel",
    "AssessmentType",
    "AggregationMethod",

    # Exceptions
    "AttainmentException",
    "NotFoundError",
    "ConfigurationError",
    "DataAccessError",
    "ValidationError",
]
