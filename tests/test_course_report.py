import pytest

from attainment.core.entities import RosterFilters
from attainment.core.exceptions import DataAccessError, NotFoundError
from attainment.persistence import InMemoryMarkRepository
from attainment.services import (
    ClassAttainmentAggregator, CourseAttainmentReporter, StudentAttainmentResolver, TargetEvaluator,
)

from conftest import CO1, CO2, COURSE_ID, CourseBuilder, seed_ten_student_class


@pytest.fixture
def seeded(builder):
    seed_ten_student_class(builder)
    return builder


def test_summary_covers_outcomes_in_code_order(seeded, reporter):
    seeded.outcome("CS101-CO0", "CO0")
    seeded.outcome(CO2, "CO2")
    seeded.question("Q3", 20, "MID", [CO2])
    seeded.mark("S01", "Q3", 20)
    seeded.mark("S02", "Q3", 4)

    summary = reporter.summarize_course(COURSE_ID)

    assert [a.co_code for a in summary.co_attainments] == ["CO1", "CO2"]
    assert summary.skipped_cos == ["CS101-CO0"]
    assert summary.total_students == 10
    assert summary.target_percentage == 60
    assert all(a.target_met is not None for a in summary.co_attainments)


def test_summary_overall_distribution(seeded, reporter):
    summary = reporter.summarize_course(COURSE_ID)

    assert summary.overall_distribution == {0: 0, 1: 0, 2: 1, 3: 0}
    assert summary.co_attainments[0].attainment_level == 2
    assert summary.co_attainments[0].target_met is True


def test_summary_to_dict(seeded, reporter):
    data = reporter.summarize_course(COURSE_ID).to_dict()

    assert data["course_code"] == "CS101"
    assert data["thresholds"]["level2_threshold"] == 60
    assert data["co_attainments"][0]["total_students"] == 10
    assert "calculated_at" in data


def test_summary_for_unknown_course(reporter):
    with pytest.raises(NotFoundError):
        reporter.summarize_course("NOPE")


def test_summary_for_course_without_outcomes(builder, reporter):
    builder.course()

    with pytest.raises(NotFoundError):
        reporter.summarize_course(COURSE_ID)


def test_summary_respects_filters(seeded, reporter):
    summary = reporter.summarize_course(COURSE_ID, RosterFilters(section_id="B"))

    assert summary.total_students == 5
    # S06..S10: 3, 2, 2, 1, 0 -> 3 of 5 at level >= 2
    assert summary.co_attainments[0].attainment_level == 2


def test_co_report_breakdown(seeded, reporter):
    report = reporter.co_report(COURSE_ID, CO1)

    assert len(report.student_breakdown) == 10
    assert [a.student_id for a in report.student_breakdown][:3] == ["S01", "S02", "S03"]
    assert all(a.target_met is not None for a in report.student_breakdown)
    assert report.class_attainment.attainment_level == 2
    assert report.class_attainment.target_met is True


def test_co_report_examples(seeded, reporter):
    report = reporter.co_report(COURSE_ID, CO1)

    assert report.standard_case.student_id == "S01"
    assert report.standard_case.attempted_all
    assert report.unattempted_case.student_id == "S02"
    assert report.unattempted_case.percentage == 50.0


def test_co_report_without_unattempted_students(builder, reporter):
    seed_ten_student_class(builder)
    builder.mark("S02", "Q2", 10)

    assert reporter.co_report(COURSE_ID, CO1).unattempted_case is None


def test_co_report_section_breakdown(seeded, reporter):
    report = reporter.co_report(COURSE_ID, CO1)

    assert list(report.section_breakdown) == ["A", "B"]
    section_a = report.section_breakdown["A"]
    assert section_a.total_students == 5
    # S01..S05: 3, 1, 3, 2, 2
    assert section_a.level_distribution == {0: 0, 1: 1, 2: 2, 3: 2}
    assert section_a.attainment_level == 2
    assert section_a.target_met is True
    assert report.section_breakdown["B"].total_students == 5
    assert report.section_breakdown["B"].attainment_level == 2


def test_co_report_skips_sections_without_evaluable_students(seeded, reporter):
    seeded.enroll("S11", section_id="C")
    seeded.enroll("S12")
    seeded.mark("S12", "Q1", 10)

    report = reporter.co_report(COURSE_ID, CO1)

    assert list(report.section_breakdown) == ["A", "B"]
    assert report.class_attainment.total_students == 11
    assert sum(s.total_students for s in report.section_breakdown.values()) == 10


def test_co_report_section_breakdown_respects_filters(seeded, reporter):
    report = reporter.co_report(COURSE_ID, CO1, RosterFilters(section_id="A"))

    assert list(report.section_breakdown) == ["A"]
    assert report.section_breakdown["A"] == report.class_attainment


class ThresholdsOutageRepository(InMemoryMarkRepository):
    """Live threshold reads fail; snapshots keep working."""

    def get_course_thresholds(self, course_id):
        raise DataAccessError("thresholds unavailable outside the snapshot")


@pytest.fixture
def outage_reporter():
    repository = ThresholdsOutageRepository()
    seed_ten_student_class(CourseBuilder(repository))
    aggregator = ClassAttainmentAggregator(StudentAttainmentResolver(repository), max_workers=2)
    yield CourseAttainmentReporter(aggregator, TargetEvaluator(repository))
    aggregator.cleanup()


def test_student_attainment_reads_thresholds_from_snapshot(outage_reporter):
    attainment = outage_reporter.student_attainment(COURSE_ID, CO1, "S01")

    assert attainment.attainment_level == 3
    assert attainment.target_met is True


def test_class_attainment_reads_thresholds_from_snapshot(outage_reporter):
    attainment = outage_reporter.class_attainment(COURSE_ID, CO1, RosterFilters(section_id="B"))

    assert attainment.total_students == 5
    assert attainment.attainment_level == 2
    assert attainment.target_met is True


def test_class_attainment_for_unknown_course(reporter):
    with pytest.raises(NotFoundError):
        reporter.class_attainment("NOPE", CO1)
