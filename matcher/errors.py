"""Failure types raised by the assignment matcher."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"


STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PRECONDITION_FAILED: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.INTERNAL: 500,
}


class AssignmentError(Exception):
    """
    A classified assignment failure.

    Carries a caller-facing message and optional details; the HTTP layer
    turns it into a `{success: false, error, details?}` body.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]

    def to_response(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequestError(AssignmentError):
    kind = ErrorKind.VALIDATION


class ReviewerNotFoundError(AssignmentError):
    kind = ErrorKind.NOT_FOUND


class NoExtensionsAvailableError(AssignmentError):
    kind = ErrorKind.NOT_FOUND


class NotQualifiedError(AssignmentError):
    kind = ErrorKind.PRECONDITION_FAILED


class ActiveAssignmentLimitError(AssignmentError):
    kind = ErrorKind.CONFLICT


class AssignmentStoreError(AssignmentError):
    """A store read or write failed; `step` names where."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message, details)
        self.step = step
