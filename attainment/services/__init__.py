"""
Services module containing the attainment calculation engine.
"""

from .student_resolver import StudentAttainmentResolver, COContext
from .class_aggregator import ClassAttainmentAggregator
from .target_evaluator import TargetEvaluator
from .course_report import CourseAttainmentReporter

__all__ = [
    "StudentAttainmentResolver",
    "COContext",
    "ClassAttainmentAggregator",
    "TargetEvaluator",
    "CourseAttainmentReporter",
]
