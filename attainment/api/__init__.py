"""
API module for the REST interface.
"""

from .rest_api import AttainmentRestAPI

__all__ = [
    "AttainmentRestAPI",
]
