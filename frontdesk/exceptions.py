"""
Error taxonomy for the front-desk service.

Services raise these; the HTTP layer turns them into responses in
frontdesk.exception_handlers.
"""
from typing import Optional


class FrontDeskError(Exception):
    """Base error. Carries the HTTP status the API layer should answer with."""

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(FrontDeskError):
    """Referenced patient, doctor, queue entry or appointment does not exist"""

    status_code = 404


class BadRequestError(FrontDeskError):
    """Missing field, out-of-range value, unparsable date or rejected booking"""

    status_code = 400


class ConflictError(BadRequestError):
    """Patient already holds a waiting queue entry"""

    status_code = 409


class InvalidTransitionError(BadRequestError):
    """Queue status change outside the waiting -> with_doctor -> completed graph"""


class StorageError(FrontDeskError):
    """The record store failed; never a validation problem"""

    status_code = 500
