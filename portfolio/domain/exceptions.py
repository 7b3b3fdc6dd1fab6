from enum import Enum
from typing import Optional


class PortfolioException(Exception):
    """Base exception for all portfolio-related errors."""
    pass


class FetchErrorKind(str, Enum):
    AUTH = "auth"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    HTTP = "http"
    MALFORMED = "malformed"


class FetchError(PortfolioException):
    """Raised when a GitHub request fails or returns something we cannot use."""
    def __init__(self, kind: FetchErrorKind, message: str, status: Optional[int] = None):
        self.kind = kind
        self.status = status
        self.message = message
        suffix = f" (HTTP {status})" if status is not None else ""
        super().__init__(f"{message}{suffix}")


class BlogException(PortfolioException):
    """
    Base class for blog errors that map onto an HTTP status.
    `message` is safe to show to clients.
    """
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BlogException):
    status_code = 400


class AuthError(BlogException):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(BlogException):
    status_code = 404

    def __init__(self, message: str = "Post not found"):
        super().__init__(message)


class StoreError(BlogException):
    """Raised when a database operation fails. Details stay in the logs."""
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
