"""
Error taxonomy for the booking service.

Every business-rule failure is raised as a `BookingSystemError` subclass and
turned into the JSON error envelope at the request boundary by the handlers
registered in `room_booking.main`. Form-level errors render as
``{"error": {"_form": [...]}}``; single-message errors (401/403/404) render
as ``{"error": {"message": ...}}``.
"""

from typing import List


class BookingSystemError(Exception):
    status_code = 400
    # Render as a list of form errors rather than a single message
    form = True
    default_message = "Bad request"

    def __init__(self, *messages: str):
        if not messages:
            messages = (self.default_message,)
        self.messages: List[str] = list(messages)
        super().__init__("; ".join(self.messages))

    def to_envelope(self) -> dict:
        if self.form:
            return {"error": {"_form": self.messages}}
        return {"error": {"message": self.messages[0]}}


class ValidationError(BookingSystemError):
    """Malformed or missing fields, bad dates, ordering or past start."""
    default_message = "Invalid request"


class ConflictError(BookingSystemError):
    """Overlapping booking, room under maintenance, user already booked."""
    default_message = "The room is already booked for the selected time period"


class StateError(BookingSystemError):
    """Mutation that the booking lifecycle does not allow."""
    default_message = "Cannot modify a cancelled or completed booking"


class NotFoundError(BookingSystemError):
    status_code = 404
    form = False
    default_message = "Not found"


class AuthorizationError(BookingSystemError):
    status_code = 403
    form = False
    default_message = "Forbidden"


class UnauthenticatedError(BookingSystemError):
    status_code = 401
    form = False
    default_message = "Unauthorized"


class UnexpectedError(BookingSystemError):
    status_code = 500
    default_message = "An unexpected error occurred"
