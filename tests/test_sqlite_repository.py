import sqlite3

import pytest

from attainment.core.entities import RosterFilters, StudentMark
from attainment.core.exceptions import ConfigurationError, DataAccessError, ValidationError
from attainment.persistence import (
    DatabaseFactory, DatabaseManager, InMemoryMarkRepository, MarkRepositoryFactory, SQLiteDatabase,
    SQLiteMarkRepository, SQLiteSnapshot,
)
from attainment.services import ClassAttainmentAggregator, StudentAttainmentResolver, TargetEvaluator

from conftest import CO1, COURSE_ID, CourseBuilder, seed_ten_student_class


def test_schema_is_created(sqlite_repository, tmp_path):
    database = SQLiteDatabase(str(tmp_path / "attainment.db"))
    for table in ("courses", "course_outcomes", "assessments", "questions",
                  "question_co_mappings", "student_marks", "enrollments"):
        assert database.table_exists(table)


def test_reads_round_trip_through_sqlite(sqlite_builder, sqlite_repository):
    seed_ten_student_class(sqlite_builder)

    course = sqlite_repository.get_course(COURSE_ID)
    assert course.course_code == COURSE_ID
    assert sqlite_repository.get_course_thresholds(COURSE_ID).level3_threshold == 75
    assert [o.code for o in sqlite_repository.get_course_outcomes(COURSE_ID)] == ["CO1"]
    assert [q.question_id for q in sqlite_repository.get_co_questions(COURSE_ID, CO1)] == ["Q1", "Q2"]
    assert sqlite_repository.get_student_mark("S02", "Q2").obtained_marks is None
    assert sqlite_repository.get_student_mark("S02", "Q1").obtained_marks == 5
    assert sqlite_repository.get_student_mark("S99", "Q1") is None
    assert set(sqlite_repository.get_student_marks("S01", ["Q1", "Q2"])) == {"Q1", "Q2"}


def test_roster_order_and_filters(sqlite_builder, sqlite_repository):
    seed_ten_student_class(sqlite_builder)

    roster = sqlite_repository.get_eligible_students(COURSE_ID)
    assert roster[:3] == ["S01", "S02", "S03"]
    assert len(roster) == 10
    assert sqlite_repository.get_eligible_students(COURSE_ID, RosterFilters(section_id="B")) == [
        "S06", "S07", "S08", "S09", "S10"
    ]
    assert sqlite_repository.get_eligible_students(COURSE_ID, RosterFilters(semester="Spring")) == []


def test_roster_sections_in_enrollment_order(sqlite_builder, sqlite_repository):
    seed_ten_student_class(sqlite_builder, sections=("B", "A"))
    sqlite_builder.enroll("S11")
    sqlite_builder.enroll("S12", section_id="C", semester="Spring")

    assert sqlite_repository.get_roster_sections(COURSE_ID) == ["B", "A", "C"]
    assert sqlite_repository.get_roster_sections(COURSE_ID, RosterFilters(semester="Fall")) == ["B", "A"]
    assert sqlite_repository.get_roster_sections(COURSE_ID, RosterFilters(section_id="A")) == ["A"]
    assert sqlite_repository.get_roster_sections("NOPE") == []


def test_matches_in_memory_results(sqlite_builder, sqlite_repository):
    memory = InMemoryMarkRepository()
    seed_ten_student_class(CourseBuilder(memory))
    seed_ten_student_class(sqlite_builder)

    results = []
    for repository in (memory, sqlite_repository):
        aggregator = ClassAttainmentAggregator(StudentAttainmentResolver(repository), max_workers=4)
        try:
            class_attainment, students = aggregator.evaluate_class(COURSE_ID, CO1)
        finally:
            aggregator.cleanup()
        evaluator = TargetEvaluator(repository)
        results.append((evaluator.with_target_met(COURSE_ID, class_attainment), students))

    assert results[0] == results[1]
    assert results[1][0].attainment_level == 2


def test_record_mark_validates_against_question(sqlite_builder, sqlite_repository):
    seed_ten_student_class(sqlite_builder)

    with pytest.raises(ValidationError):
        sqlite_repository.record_mark(StudentMark("S01", "Q1", 11))
    with pytest.raises(ValidationError):
        sqlite_repository.record_mark(StudentMark("S01", "Q404", 1))


def test_snapshot_is_read_only(sqlite_builder, sqlite_repository):
    seed_ten_student_class(sqlite_builder)

    with sqlite_repository.snapshot() as view:
        assert view.get_course(COURSE_ID) is not None
        with pytest.raises(DataAccessError):
            view.record_mark(StudentMark("S01", "Q1", 1))


def test_snapshot_sees_committed_data(sqlite_builder, sqlite_repository):
    seed_ten_student_class(sqlite_builder)

    with sqlite_repository.snapshot() as view:
        assert len(view.get_eligible_students(COURSE_ID)) == 10


def test_sqlite_errors_surface_as_data_access_error(tmp_path):
    database = SQLiteDatabase(str(tmp_path / "attainment.db"))

    with pytest.raises(DataAccessError):
        database.execute_query("SELECT * FROM no_such_table")


def test_database_factory(tmp_path):
    database = DatabaseFactory.create_database("sqlite", database_path=str(tmp_path / "x.db"))
    assert isinstance(database, SQLiteDatabase)

    with pytest.raises(ConfigurationError):
        DatabaseFactory.create_database("postgresql")


def test_repository_factory(tmp_path):
    assert isinstance(MarkRepositoryFactory.create_repository("memory"), InMemoryMarkRepository)
    assert isinstance(
        MarkRepositoryFactory.create_repository("sqlite", database_path=str(tmp_path / "x.db")),
        SQLiteMarkRepository,
    )


def test_absent_marks_are_stored_as_null(sqlite_builder, tmp_path):
    seed_ten_student_class(sqlite_builder)

    conn = sqlite3.connect(str(tmp_path / "attainment.db"))
    try:
        row = conn.execute(
            "SELECT obtained_marks FROM student_marks WHERE student_id = 'S02' AND question_id = 'Q2'"
        ).fetchone()
    finally:
        conn.close()
    assert row == (None,)


def test_database_surface_is_read_write_and_snapshot_only():
    assert DatabaseManager.__abstractmethods__ == {
        "execute_query", "execute_update", "create_tables", "table_exists", "read_snapshot",
    }
    assert not hasattr(SQLiteDatabase, "execute_transaction")
    assert not hasattr(SQLiteSnapshot, "execute_transaction")
