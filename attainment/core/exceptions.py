"""
Custom exceptions for the attainment engine.
"""

from typing import Optional, Any, Dict


class AttainmentException(Exception):
    """Base exception for all attainment-engine errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    default_code = "ATTAINMENT_ERROR"


class NotFoundError(AttainmentException):
    """Raised when a course, CO or student is unknown, or no evaluable data exists."""
    default_code = "NOT_FOUND"


class ConfigurationError(AttainmentException):
    """Raised when course thresholds or engine settings are invalid."""
    default_code = "CONFIGURATION_ERROR"


class DataAccessError(AttainmentException):
    """Raised when the mark repository fails to answer a query."""
    default_code = "DATA_ACCESS_ERROR"


class ValidationError(AttainmentException):
    """Raised when a record handed to a repository writer is invalid."""
    default_code = "VALIDATION_ERROR"
