"""
Exception taxonomy for the API.

Every error a handler raises on purpose is an ``APIError`` carrying the HTTP
status it should be rendered with. ``review_api.main`` registers a single
exception handler that turns these into ``ErrorResponse`` bodies.
"""

from typing import Dict, Optional

from fastapi import status


class APIError(Exception):
    """Base class for errors rendered as JSON error responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers


class ValidationError(APIError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(APIError):
    """Bad credentials, or a missing, invalid or expired token.

    The status differs by route: 400 for a failed login, 401 when no
    credential was presented, 403 when the credential was rejected.
    """

    status_code = status.HTTP_401_UNAUTHORIZED


class ConflictError(APIError):
    """A uniqueness rule was violated (duplicate email or review)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND


class InternalError(APIError):
    """Storage or unexpected failure. The message is never sent to clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error", detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail
