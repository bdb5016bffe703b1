"""
Exceptions raised by the campus feed core.
"""


class CampusFeedError(Exception):
    """Base class for campus feed errors."""


class InvalidContentType(CampusFeedError, ValueError):
    """A content item was written with a type outside the closed set."""


class RequestRejected(CampusFeedError):
    """A boundary request was rejected; status_code follows HTTP conventions."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
