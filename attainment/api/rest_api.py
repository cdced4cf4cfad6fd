"""
REST API for the attainment engine using FastAPI.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.entities import RosterFilters
from ..core.exceptions import (
    AttainmentException, ConfigurationError, DataAccessError, NotFoundError, ValidationError,
)
from ..core.results import ClassCOAttainment, COReport, CourseAttainmentSummary, StudentCOAttainment
from ..services import CourseAttainmentReporter

logger = logging.getLogger(__name__)


# Pydantic models for API
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudentAttainmentResponse(CamelModel):
    student_id: str
    co_id: str
    co_code: Optional[str] = None
    percentage: float
    attainment_level: int
    target_met: Optional[bool] = None
    total_obtained_marks: float
    total_max_marks: float
    attempted_questions: int
    total_questions: int


class ClassAttainmentResponse(CamelModel):
    co_id: str
    co_code: Optional[str] = None
    total_students: int
    level_distribution: Dict[int, int]
    attainment_level: int
    target_met: Optional[bool] = None
    target_percentage: Optional[float] = None
    average_percentage: Optional[float] = None
    students_at_or_above: Dict[int, int] = {}


class COReportResponse(CamelModel):
    class_attainment: ClassAttainmentResponse
    student_breakdown: List[StudentAttainmentResponse]
    standard_case: Optional[StudentAttainmentResponse] = None
    unattempted_case: Optional[StudentAttainmentResponse] = None
    section_breakdown: Dict[str, ClassAttainmentResponse] = {}


class ThresholdsResponse(CamelModel):
    level1_threshold: float
    level2_threshold: float
    level3_threshold: float
    target_percentage: float
    minimum_target_level: Optional[int] = None


class CourseSummaryResponse(CamelModel):
    course_id: str
    course_code: str
    course_name: str
    thresholds: ThresholdsResponse
    total_students: int
    co_attainments: List[ClassAttainmentResponse]
    skipped_cos: List[str]
    overall_distribution: Dict[int, int]
    calculated_at: datetime


ERROR_STATUS = {
    NotFoundError: 404,
    ConfigurationError: 409,
    DataAccessError: 503,
    ValidationError: 400,
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "error": {"code": code, "message": message, "details": details or {}},
        "generated_at": _now_iso(),
    }


class AttainmentRestAPI:
    """REST API over the attainment services."""

    def __init__(self, reporter: CourseAttainmentReporter):
        self._reporter = reporter

        # Create FastAPI app
        self.app = FastAPI(
            title="CO Attainment API",
            description="Course-outcome attainment levels for students and classes",
            version="1.0.0",
            docs_url="/docs",
            redoc_url="/redoc"
        )

        # Add CORS middleware
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._setup_error_handlers()
        self._setup_routes()

    def _setup_error_handlers(self):
        """Map engine exceptions onto HTTP responses."""

        @self.app.exception_handler(AttainmentException)
        async def attainment_exception_handler(request: Request, exc: AttainmentException):
            status_code = next(
                (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500
            )
            if status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            return JSONResponse(
                status_code=status_code,
                content=error_body(exc.error_code, exc.message, exc.details),
            )

        @self.app.exception_handler(Exception)
        async def unhandled_exception_handler(request: Request, exc: Exception):
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content=error_body("INTERNAL_ERROR", str(exc)))

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/", response_model=Dict[str, str])
        def root():
            """Root endpoint."""
            return {
                "message": "CO Attainment API",
                "version": "1.0.0",
                "docs": "/docs"
            }

        @self.app.get("/health", response_model=Dict[str, str])
        def health_check():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

        @self.app.get("/courses/{course_id}/cos/{co_id}/students/{student_id}/attainment",
                      response_model=StudentAttainmentResponse)
        def get_student_attainment(course_id: str, co_id: str, student_id: str):
            """Attainment of one student for one CO."""
            attainment = self._reporter.student_attainment(course_id, co_id, student_id)
            return self._student_to_response(attainment)

        @self.app.get("/courses/{course_id}/cos/{co_id}/attainment",
                      response_model=ClassAttainmentResponse)
        def get_class_attainment(
            course_id: str,
            co_id: str,
            academic_year: Optional[str] = Query(None, alias="academicYear"),
            semester: Optional[str] = Query(None),
            section_id: Optional[str] = Query(None, alias="sectionId"),
        ):
            """Class attainment of one CO, optionally narrowed to a cohort."""
            filters = self._filters(academic_year, semester, section_id)
            attainment = self._reporter.class_attainment(course_id, co_id, filters)
            return self._class_to_response(attainment)

        @self.app.get("/courses/{course_id}/cos/{co_id}/report", response_model=COReportResponse)
        def get_co_report(
            course_id: str,
            co_id: str,
            academic_year: Optional[str] = Query(None, alias="academicYear"),
            semester: Optional[str] = Query(None),
            section_id: Optional[str] = Query(None, alias="sectionId"),
        ):
            """Class attainment of a CO with the per-student and per-section breakdown."""
            filters = self._filters(academic_year, semester, section_id)
            report = self._reporter.co_report(course_id, co_id, filters)
            return self._report_to_response(report)

        @self.app.get("/courses/{course_id}/attainment", response_model=CourseSummaryResponse)
        def get_course_attainment(
            course_id: str,
            academic_year: Optional[str] = Query(None, alias="academicYear"),
            semester: Optional[str] = Query(None),
            section_id: Optional[str] = Query(None, alias="sectionId"),
        ):
            """Class attainment of every active CO in a course."""
            filters = self._filters(academic_year, semester, section_id)
            summary = self._reporter.summarize_course(course_id, filters)
            return self._summary_to_response(summary)

    @staticmethod
    def _filters(academic_year: Optional[str], semester: Optional[str],
                 section_id: Optional[str]) -> Optional[RosterFilters]:
        if academic_year is None and semester is None and section_id is None:
            return None
        return RosterFilters(academic_year=academic_year, semester=semester, section_id=section_id)

    def _student_to_response(self, attainment: StudentCOAttainment) -> StudentAttainmentResponse:
        """Convert a student attainment to its response model."""
        return StudentAttainmentResponse(
            student_id=attainment.student_id,
            co_id=attainment.co_id,
            co_code=attainment.co_code,
            percentage=attainment.percentage,
            attainment_level=int(attainment.attainment_level),
            target_met=attainment.target_met,
            total_obtained_marks=attainment.total_obtained_marks,
            total_max_marks=attainment.total_max_marks,
            attempted_questions=attainment.attempted_questions,
            total_questions=attainment.total_questions,
        )

    def _class_to_response(self, attainment: ClassCOAttainment) -> ClassAttainmentResponse:
        """Convert a class attainment to its response model."""
        return ClassAttainmentResponse(
            co_id=attainment.co_id,
            co_code=attainment.co_code,
            total_students=attainment.total_students,
            level_distribution={int(k): v for k, v in attainment.level_distribution.items()},
            attainment_level=int(attainment.attainment_level),
            target_met=attainment.target_met,
            target_percentage=attainment.target_percentage,
            average_percentage=attainment.average_percentage,
            students_at_or_above={int(k): v for k, v in attainment.students_at_or_above.items()},
        )

    def _report_to_response(self, report: COReport) -> COReportResponse:
        """Convert a CO report to its response model."""
        return COReportResponse(
            class_attainment=self._class_to_response(report.class_attainment),
            student_breakdown=[self._student_to_response(a) for a in report.student_breakdown],
            standard_case=(self._student_to_response(report.standard_case)
                           if report.standard_case else None),
            unattempted_case=(self._student_to_response(report.unattempted_case)
                              if report.unattempted_case else None),
            section_breakdown={section_id: self._class_to_response(a)
                               for section_id, a in report.section_breakdown.items()},
        )

    def _summary_to_response(self, summary: CourseAttainmentSummary) -> CourseSummaryResponse:
        """Convert a course summary to its response model."""
        thresholds = summary.thresholds
        return CourseSummaryResponse(
            course_id=summary.course_id,
            course_code=summary.course_code,
            course_name=summary.course_name,
            thresholds=ThresholdsResponse(
                level1_threshold=thresholds.level1_threshold,
                level2_threshold=thresholds.level2_threshold,
                level3_threshold=thresholds.level3_threshold,
                target_percentage=thresholds.target_percentage,
                minimum_target_level=thresholds.minimum_target_level,
            ),
            total_students=summary.total_students,
            co_attainments=[self._class_to_response(a) for a in summary.co_attainments],
            skipped_cos=list(summary.skipped_cos),
            overall_distribution={int(k): v for k, v in summary.overall_distribution.items()},
            calculated_at=summary.calculated_at,
        )
