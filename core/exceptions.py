"""
Exception kinds raised by the engine.

Every error carries an ``ErrorKind`` so callers can surface a message
without matching on exception classes.
"""
from typing import Optional

from .constants import ErrorKind


class FormFillError(Exception):
    """Base error for the form filling engine."""

    kind: ErrorKind = ErrorKind.CONTEXT_UNAVAILABLE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_dict(self) -> dict:
        """Convert to dictionary for caller-facing reports."""
        return {'kind': self.kind.value, 'message': self.message}


class DecodeFailure(FormFillError):
    """An image blob could not be decoded."""
    kind = ErrorKind.DECODE_FAILURE


class ContextUnavailable(FormFillError):
    """The drawing surface could not be acquired."""
    kind = ErrorKind.CONTEXT_UNAVAILABLE


class FormNotFound(FormFillError):
    """No form record exists for the requested id."""
    kind = ErrorKind.FORM_NOT_FOUND
