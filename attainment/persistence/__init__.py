"""
Persistence module providing mark repository adapters.
"""

from .database import DatabaseManager, SQLiteDatabase, SQLiteSnapshot, DatabaseFactory
from .memory import InMemoryMarkRepository
from .repositories import SQLiteMarkRepository, MarkRepositoryFactory

__all__ = [
    "DatabaseManager",
    "SQLiteDatabase",
    "SQLiteSnapshot",
    "DatabaseFactory",
    "InMemoryMarkRepository",
    "SQLiteMarkRepository",
    "MarkRepositoryFactory",
]
