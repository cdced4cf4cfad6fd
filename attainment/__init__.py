"""
CO Attainment Engine

Computes course-outcome (CO) attainment levels for individual students and
for whole classes from question-level marks, course thresholds and class
targets, and reports whether the required level was reached.
"""

__version__ = "1.0.0"
__author__ = "CO Attainment Development Team"
__description__ = "Course-outcome attainment calculation engine"
