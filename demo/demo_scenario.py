#!/usr/bin/env python3
"""
Demo scenario for the attainment engine.
"""

import json
import os
import sys
from dataclasses import asdict

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from attainment.main import AttainmentPlatform, configure_logging
from attainment.core.entities import (
    Assessment, Course, CourseOutcome, Enrollment, Question, RosterFilters, StudentMark,
)
from attainment.core.enums import AssessmentType
from attainment.core.exceptions import AttainmentException

DEMO_DB = "demo_attainment.db"

COURSE_ID = "CS101"
CO1_ID = "CS101-CO1"
CO2_ID = "CS101-CO2"
CO3_ID = "CS101-CO3"

# (student, section, Q1 out of 10, Q2 out of 20); None means not attempted
CO1_MARKS = [
    ("S01", "A", 8, 15),      # 76.67% -> level 3
    ("S02", "A", 5, None),    # 50.00% -> level 1
    ("S03", "A", 9, 17),      # 86.67% -> level 3
    ("S04", "A", 7, 13),      # 66.67% -> level 2
    ("S05", "A", 6, 13),      # 63.33% -> level 2
    ("S06", "B", 10, 20),     # 100%   -> level 3
    ("S07", "B", 6, 12),      # 60.00% -> level 2
    ("S08", "B", 7, 12),      # 63.33% -> level 2
    ("S09", "B", 4, 9),       # 43.33% -> level 1
    ("S10", "B", 2, 5),       # 23.33% -> level 0
    ("S11", "B", None, None),  # never attempted, excluded
]


def run_demo():
    """Run a demo of the attainment engine."""
    print("=" * 60)
    print("CO ATTAINMENT ENGINE - DEMO")
    print("=" * 60)

    if os.path.exists(DEMO_DB):
        os.remove(DEMO_DB)

    config = {
        'database_type': 'sqlite',
        'database_path': DEMO_DB,
        'max_workers': 4,
        'log_level': 'INFO',
    }
    configure_logging(config['log_level'])
    platform = AttainmentPlatform(config)

    try:
        print("\n1. Creating sample data...")
        create_sample_data(platform)

        print("\n2. Student attainment...")
        demonstrate_students(platform)

        print("\n3. Class attainment...")
        demonstrate_class(platform)

        print("\n4. CO report...")
        demonstrate_report(platform)

        print("\n5. Course summary...")
        demonstrate_summary(platform)

        print("\n" + "=" * 60)
        print("DEMO COMPLETED SUCCESSFULLY!")
        print("=" * 60)

    except AttainmentException as e:
        print(f"\nDemo failed with {e.error_code}: {e.message}")
        raise

    finally:
        platform.stop_platform()


def create_sample_data(platform):
    """Create a course with three COs, two assessments and eleven students."""
    repo = platform.repository

    course = Course("CS101", "Introduction to Computer Science",
                    level1_threshold=40, level2_threshold=60, level3_threshold=75,
                    target_percentage=60, entity_id=COURSE_ID)
    repo.save_course(course)

    outcomes = [
        CourseOutcome(COURSE_ID, "CO1", "Explain basic programming constructs", entity_id=CO1_ID),
        CourseOutcome(COURSE_ID, "CO2", "Trace simple algorithms", entity_id=CO2_ID),
        CourseOutcome(COURSE_ID, "CO3", "Design small programs", entity_id=CO3_ID),
    ]
    for outcome in outcomes:
        repo.save_course_outcome(outcome)

    quiz = repo.save_assessment(Assessment(COURSE_ID, "Quiz 1", max_marks=10, weightage=20,
                                           assessment_type=AssessmentType.QUIZ, entity_id="CS101-QUIZ1"))
    mid = repo.save_assessment(Assessment(COURSE_ID, "Mid Term", max_marks=40, weightage=30,
                                          assessment_type=AssessmentType.MID_TERM, entity_id="CS101-MID"))

    q1 = repo.save_question(Question(quiz.id, max_marks=10, label="Q1", entity_id="CS101-Q1"))
    q2 = repo.save_question(Question(mid.id, max_marks=20, label="Q2", entity_id="CS101-Q2"))
    q3 = repo.save_question(Question(mid.id, max_marks=20, label="Q3", entity_id="CS101-Q3"))

    repo.map_question(q1.id, CO1_ID)
    repo.map_question(q2.id, CO1_ID)
    repo.map_question(q2.id, CO2_ID)
    repo.map_question(q3.id, CO2_ID)
    # CO3 has no questions yet and is skipped in the summary

    for student_id, section, q1_marks, q2_marks in CO1_MARKS:
        repo.enroll(Enrollment(student_id, COURSE_ID, section_id=section,
                               academic_year="2024-25", semester="Fall"))
        repo.record_mark(StudentMark(student_id, q1.id, q1_marks))
        repo.record_mark(StudentMark(student_id, q2.id, q2_marks))
        if q2_marks is not None:
            repo.record_mark(StudentMark(student_id, q3.id, min(20, q2_marks + 2)))

    print(f"  Created course {course.course_code} with {len(outcomes)} COs "
          f"and {len(CO1_MARKS)} students")


def demonstrate_students(platform):
    for student_id in ("S01", "S02"):
        attainment = platform.reporter.student_attainment(COURSE_ID, CO1_ID, student_id)
        print(f"  {student_id}: {attainment.percentage}% -> level {int(attainment.attainment_level)} "
              f"(attempted {attainment.attempted_questions}/{attainment.total_questions}, "
              f"target met: {attainment.target_met})")

    try:
        platform.resolver.resolve_student(COURSE_ID, CO1_ID, "S11")
    except AttainmentException as e:
        print(f"  S11: {e.error_code} ({e.message})")


def demonstrate_class(platform):
    attainment = platform.reporter.class_attainment(COURSE_ID, CO1_ID)
    print(f"  CO1 class level {attainment.attainment_level} over {attainment.total_students} students")
    print(f"  Distribution: {dict(attainment.level_distribution)}")
    print(f"  At or above: {attainment.students_at_or_above}")

    section_b = platform.aggregator.resolve_class(COURSE_ID, CO1_ID, RosterFilters(section_id="B"))
    print(f"  Section B only: level {section_b.attainment_level} over {section_b.total_students} students")


def demonstrate_report(platform):
    report = platform.reporter.co_report(COURSE_ID, CO1_ID)
    print(f"  {len(report.student_breakdown)} students in breakdown")
    if report.standard_case:
        print(f"  Standard case: {report.standard_case.student_id} at {report.standard_case.percentage}%")
    if report.unattempted_case:
        print(f"  Unattempted case: {report.unattempted_case.student_id} "
              f"({report.unattempted_case.attempted_questions}/{report.unattempted_case.total_questions} attempted)")
    for section_id, section in report.section_breakdown.items():
        print(f"  Section {section_id}: level {section.attainment_level} over {section.total_students} students "
              f"(target met: {section.target_met})")


def demonstrate_summary(platform):
    summary = platform.reporter.summarize_course(COURSE_ID)
    print(json.dumps(summary.to_dict(), indent=2, default=str))
    for attainment in summary.co_attainments:
        print(f"  {attainment.co_code}: {json.dumps(asdict(attainment), default=str)}")


if __name__ == "__main__":
    run_demo()
