"""Booking domain exceptions, translated to HTTP responses in main.py"""

from typing import Optional


class BookingError(Exception):
    """Base exception for booking engine failures."""

    status_code = 400

    def __init__(self, message: str, *, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_body(self) -> dict:
        return {"detail": self.message}


class ValidationError(BookingError):
    """Malformed or missing input; carries a field -> message mapping."""

    status_code = 422

    def __init__(self, message: str, errors: Optional[dict] = None, *, cause: Optional[Exception] = None):
        super().__init__(message, cause=cause)
        self.errors = errors or {}

    def to_body(self) -> dict:
        return {"detail": self.message, "errors": self.errors}


class NotFound(BookingError):
    """
    Referenced record does not exist, or the caller does not own it.

    Ownership failures use this too so callers cannot probe for ids.
    """

    status_code = 404


class ConflictError(BookingError):
    """Template assignment overlaps slots the doctor already has."""

    status_code = 409

    def __init__(self, message: str, conflicts: list, *, cause: Optional[Exception] = None):
        super().__init__(message, cause=cause)
        self.conflicts = conflicts

    def to_body(self) -> dict:
        return {"detail": self.message, "conflicts": self.conflicts}


class SlotUnavailable(BookingError):
    """The requested slot is taken or does not exist for that doctor/date/time."""

    status_code = 409
