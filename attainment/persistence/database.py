"""
Database management and connection handling.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from ..core.exceptions import ConfigurationError, DataAccessError

logger = logging.getLogger(__name__)


ATTAINMENT_SCHEMA: Dict[str, str] = {
    "courses": """
        CREATE TABLE IF NOT EXISTS courses (
            id TEXT PRIMARY KEY,
            course_code TEXT NOT NULL,
            name TEXT NOT NULL,
            level1_threshold REAL,
            level2_threshold REAL,
            level3_threshold REAL,
            target_percentage REAL,
            minimum_target_level INTEGER,
            status TEXT DEFAULT 'active',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
    "course_outcomes": """
        CREATE TABLE IF NOT EXISTS course_outcomes (
            id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(id),
            code TEXT NOT NULL,
            description TEXT DEFAULT '',
            status TEXT DEFAULT 'active'
        )
    """,
    "assessments": """
        CREATE TABLE IF NOT EXISTS assessments (
            id TEXT PRIMARY KEY,
            course_id TEXT NOT NULL REFERENCES courses(id),
            name TEXT NOT NULL,
            assessment_type TEXT NOT NULL,
            max_marks REAL NOT NULL,
            weightage REAL NOT NULL DEFAULT 0,
            section_id TEXT,
            status TEXT DEFAULT 'active'
        )
    """,
    "questions": """
        CREATE TABLE IF NOT EXISTS questions (
            id TEXT PRIMARY KEY,
            assessment_id TEXT NOT NULL REFERENCES assessments(id),
            max_marks REAL NOT NULL,
            label TEXT DEFAULT '',
            status TEXT DEFAULT 'active'
        )
    """,
    "question_co_mappings": """
        CREATE TABLE IF NOT EXISTS question_co_mappings (
            question_id TEXT NOT NULL REFERENCES questions(id),
            co_id TEXT NOT NULL REFERENCES course_outcomes(id),
            PRIMARY KEY (question_id, co_id)
        )
    """,
    "student_marks": """
        CREATE TABLE IF NOT EXISTS student_marks (
            student_id TEXT NOT NULL,
            question_id TEXT NOT NULL REFERENCES questions(id),
            obtained_marks REAL,
            PRIMARY KEY (student_id, question_id)
        )
    """,
    "enrollments": """
        CREATE TABLE IF NOT EXISTS enrollments (
            id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            course_id TEXT NOT NULL REFERENCES courses(id),
            section_id TEXT,
            academic_year TEXT,
            semester TEXT,
            status TEXT DEFAULT 'active'
        )
    """,
}


class DatabaseManager(ABC):
    """Abstract base class for database management."""

    @abstractmethod
    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        pass

    @abstractmethod
    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an update query and return affected rows."""
        pass

    @abstractmethod
    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        pass

    @abstractmethod
    def read_snapshot(self) -> Iterator["DatabaseManager"]:
        """Context manager yielding a manager whose queries share one read transaction."""
        pass


class SQLiteDatabase(DatabaseManager):
    """SQLite database implementation."""

    def __init__(self, database_path: str = "attainment.db"):
        self._database_path = database_path
        self._lock = threading.RLock()
        self._initialize_database()

    @property
    def database_path(self) -> str:
        return self._database_path

    def _initialize_database(self) -> None:
        """Initialize the database with the attainment schema."""
        self.create_tables(ATTAINMENT_SCHEMA)
        logger.debug("SQLite schema ready at %s", self._database_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        conn = None
        try:
            conn = sqlite3.connect(self._database_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            raise DataAccessError(f"Database connection error: {str(e)}")
        finally:
            if conn:
                conn.close()

    @staticmethod
    def _fetch(conn: sqlite3.Connection, query: str, params: Optional[tuple]) -> List[Dict[str, Any]]:
        cursor = conn.cursor()
        if params:
            cursor.execute(query, params)
        else:
            cursor.execute(query)

        columns = [description[0] for description in cursor.description]
        return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            return self._fetch(conn, query, params)

    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute an update query and return affected rows."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                if params:
                    cursor.execute(query, params)
                else:
                    cursor.execute(query)
                conn.commit()
                return cursor.rowcount

    def create_tables(self, schema: Dict[str, str]) -> None:
        """Create database tables from schema."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                for table_schema in schema.values():
                    cursor.execute(table_schema)
                conn.commit()

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
        results = self.execute_query(query, (table_name,))
        return len(results) > 0

    @contextmanager
    def read_snapshot(self) -> Iterator["SQLiteSnapshot"]:
        """Hold one connection inside a deferred read transaction."""
        with self._get_connection() as conn:
            conn.execute("BEGIN")
            try:
                yield SQLiteSnapshot(conn)
            finally:
                conn.rollback()


class SQLiteSnapshot(DatabaseManager):
    """Read-only view over a single open connection.

    Worker threads share the connection, so every statement is serialized
    through a lock.
    """

    def __init__(self, connection: sqlite3.Connection):
        self._connection = connection
        self._lock = threading.Lock()

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        with self._lock:
            try:
                return SQLiteDatabase._fetch(self._connection, query, params)
            except sqlite3.Error as e:
                raise DataAccessError(f"Snapshot query failed: {str(e)}")

    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        raise DataAccessError("Snapshots are read-only")

    def create_tables(self, schema: Dict[str, str]) -> None:
        raise DataAccessError("Snapshots are read-only")

    def table_exists(self, table_name: str) -> bool:
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
        return len(self.execute_query(query, (table_name,))) > 0

    @contextmanager
    def read_snapshot(self) -> Iterator["SQLiteSnapshot"]:
        yield self


class DatabaseFactory:
    """Factory for creating database instances."""

    @staticmethod
    def create_database(database_type: str, **kwargs) -> DatabaseManager:
        """Create a database instance based on type."""
        if database_type.lower() == "sqlite":
            return SQLiteDatabase(**kwargs)
        else:
            raise ConfigurationError(f"Unsupported database type: {database_type}")
