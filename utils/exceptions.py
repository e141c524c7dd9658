"""
Custom exception classes for better error handling.
Provides specific error types instead of generic exceptions.
"""

from typing import Any, Optional


class ApiError(Exception):
    """Raised when the clinic API answers with an error or cannot be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class NetworkError(ApiError):
    """Raised when the request never produced an HTTP response."""

    pass


class SessionExpiredError(Exception):
    """
    Raised on any 401 response, after the session has been cleared.

    Not an ApiError, so inline ApiError handling never absorbs it.
    """

    status_code = 401


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


class BookingValidationError(ValidationError):
    """Raised when an appointment draft cannot be submitted."""

    pass


class SlotNotAvailableError(BookingValidationError):
    """Raised when an occupied slot is selected."""

    pass


class FormValidationError(ValidationError):
    """Raised when a login, reset or registration form is invalid."""

    pass
