"""Error taxonomy for the booking client.

Every error carries a ``transient`` flag: transient errors (network trouble,
5xx) may succeed if the user tries again unchanged, permanent ones will not.
"""
from typing import Any, Optional

import requests


class BookingClientError(Exception):
    """Base class for all booking client errors."""
    transient = False


class TransportError(BookingClientError):
    """Network failure or timeout before a response arrived."""
    transient = True


class DecodeError(BookingClientError):
    """Response body does not match the endpoint contract."""
    pass


class InputValidationError(BookingClientError):
    """A form is incomplete or invalid; raised before any network call."""
    pass


class InvalidTransitionError(BookingClientError):
    """Requested flow-state transition is not allowed."""
    pass


class NotAuthenticatedError(BookingClientError):
    """A protected action was attempted without an authenticated patient."""
    pass


class ApiError(BookingClientError):
    """Backend rejected the request."""

    def __init__(self, status_code: int, detail: Optional[Any] = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Backend returned {status_code}: {detail}")

    @property
    def is_auth_failure(self) -> bool:
        return False


class BadRequestError(ApiError):
    pass


class AuthenticationError(ApiError):
    """401 or 403 on a call."""

    @property
    def is_auth_failure(self) -> bool:
        return True


class UnauthorizedError(AuthenticationError):
    pass


class ForbiddenError(AuthenticationError):
    pass


class NotFoundError(ApiError):
    pass


class PhoneNotRegisteredError(NotFoundError):
    """OTP requested for a phone number the backend does not know."""
    pass


class ServerError(ApiError):
    transient = True


_STATUS_ERRORS = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
}


def error_for_response(response: requests.Response) -> ApiError:
    """
    Map a non-2xx response to the matching ApiError subclass.

    Args:
        response: Response with a 4xx/5xx status

    Returns:
        ApiError instance (not raised)
    """
    try:
        detail = response.json()
    except ValueError:
        detail = response.text or response.reason

    status = response.status_code
    if status >= 500:
        return ServerError(status, detail)
    error_class = _STATUS_ERRORS.get(status, ApiError)
    return error_class(status, detail)
