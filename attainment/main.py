"""
Main entry point for the attainment engine.
"""

import json
import logging
import threading
import time
from dataclasses import asdict
from typing import Any, Dict, Optional

from .config import AttainmentSettings, load_settings
from .core.entities import RosterFilters
from .core.exceptions import AttainmentException
from .core.interfaces import MarkRepository
from .persistence import MarkRepositoryFactory
from .services import (
    ClassAttainmentAggregator, CourseAttainmentReporter, StudentAttainmentResolver, TargetEvaluator,
)
from .api.rest_api import AttainmentRestAPI

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class AttainmentPlatform:
    """Main platform class that wires the repository, services and REST API."""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 repository: Optional[MarkRepository] = None):
        self._config = config or {}
        self._settings: AttainmentSettings = load_settings(self._config)
        self._repository = repository
        self._resolver = None
        self._aggregator = None
        self._evaluator = None
        self._reporter = None
        self._rest_api = None
        self._rest_thread = None

        # Initialize platform
        self._initialize_platform()

    def _initialize_platform(self):
        """Initialize the platform with all services."""
        settings = self._settings
        logger.info("Initializing attainment platform...")

        if self._repository is None:
            repo_kwargs = {}
            if settings.database_type == "sqlite":
                repo_kwargs["database_path"] = settings.database_path
            self._repository = MarkRepositoryFactory.create_repository(settings.database_type, **repo_kwargs)
        logger.info("Repository initialized: %s", type(self._repository).__name__)

        self._resolver = StudentAttainmentResolver(
            self._repository,
            aggregation_method=settings.aggregation_method,
            precision=settings.percentage_precision,
        )
        self._aggregator = ClassAttainmentAggregator(self._resolver, max_workers=settings.max_workers)
        self._evaluator = TargetEvaluator(
            self._repository, default_required_level=settings.default_required_level
        )
        self._reporter = CourseAttainmentReporter(self._aggregator, self._evaluator)
        logger.info("Services initialized (%s, %d workers)",
                    settings.aggregation_method.value, settings.max_workers)

        self._rest_api = AttainmentRestAPI(self._reporter)
        logger.info("Attainment platform initialized successfully")

    @property
    def settings(self) -> AttainmentSettings:
        return self._settings

    @property
    def repository(self) -> MarkRepository:
        return self._repository

    @property
    def resolver(self) -> StudentAttainmentResolver:
        return self._resolver

    @property
    def aggregator(self) -> ClassAttainmentAggregator:
        return self._aggregator

    @property
    def evaluator(self) -> TargetEvaluator:
        return self._evaluator

    @property
    def reporter(self) -> CourseAttainmentReporter:
        return self._reporter

    @property
    def app(self):
        return self._rest_api.app

    def compute(self, course_id: str, co_id: Optional[str] = None,
                student_id: Optional[str] = None,
                filters: Optional[RosterFilters] = None) -> Dict[str, Any]:
        """Compute one result and return it as a plain dict.

        A student id selects the student attainment, a CO id alone the
        class attainment, and a course id alone the course summary.
        """
        if co_id is None:
            return self._reporter.summarize_course(course_id, filters).to_dict()
        if student_id is not None:
            return asdict(self._reporter.student_attainment(course_id, co_id, student_id))
        return asdict(self._reporter.class_attainment(course_id, co_id, filters))

    def start_rest_server(self, host: Optional[str] = None, port: Optional[int] = None):
        """Start the REST server."""
        if self._rest_thread is not None:
            logger.warning("REST server already running")
            return

        import uvicorn

        host = host or self._settings.rest_host
        port = port or self._settings.rest_port

        def run_server():
            uvicorn.run(
                self._rest_api.app,
                host=host,
                port=port,
                log_level=self._settings.log_level.lower()
            )

        # Start server in a separate thread
        self._rest_thread = threading.Thread(target=run_server, daemon=True)
        self._rest_thread.start()

        logger.info("REST server started on %s:%d (docs at /docs)", host, port)

    def stop_platform(self):
        """Stop the platform."""
        logger.info("Stopping attainment platform...")

        if self._aggregator:
            self._aggregator.cleanup()
            logger.info("Worker pool shut down")

        logger.info("Attainment platform stopped")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="CO Attainment Engine")
    parser.add_argument("--config", type=str, help="Configuration file path (JSON)")
    parser.add_argument("--host", type=str, help="REST server host")
    parser.add_argument("--rest-port", type=int, help="REST server port")
    parser.add_argument("--course", type=str, help="Course id to compute once and print")
    parser.add_argument("--co", type=str, help="Course outcome id")
    parser.add_argument("--student", type=str, help="Student id")
    parser.add_argument("--academic-year", type=str, help="Restrict the roster to an academic year")
    parser.add_argument("--semester", type=str, help="Restrict the roster to a semester")
    parser.add_argument("--section", type=str, help="Restrict the roster to a section")

    args = parser.parse_args()

    # Load configuration
    config = {}
    if args.config:
        with open(args.config, 'r') as f:
            config = json.load(f)

    try:
        settings = load_settings(config)
    except AttainmentException as e:
        parser.error(e.message)
    configure_logging(settings.log_level)

    platform = AttainmentPlatform(config)

    try:
        if args.course:
            filters = None
            if args.academic_year or args.semester or args.section:
                filters = RosterFilters(args.academic_year, args.semester, args.section)
            try:
                result = platform.compute(args.course, args.co, args.student, filters)
            except AttainmentException as e:
                print(json.dumps({"error": {"code": e.error_code, "message": e.message,
                                            "details": e.details}}, indent=2, default=str))
                raise SystemExit(1)
            print(json.dumps(result, indent=2, default=str))
        else:
            platform.start_rest_server(args.host, args.rest_port)

            # Keep running
            print("\nAttainment API is running. Press Ctrl+C to stop.")
            while True:
                time.sleep(1)

    except KeyboardInterrupt:
        print("\nShutting down...")

    finally:
        platform.stop_platform()


if __name__ == "__main__":
    main()
