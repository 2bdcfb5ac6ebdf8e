"""
Error taxonomy for the seva domain.

Every failure raised by a use case or repository carries an ``ErrorKind``.
Callers branch on the kind, not on the concrete class:

- the retry wrapper never retries ``PERMISSION_DENIED`` or
  ``FAILED_PRECONDITION``
- the HTTP layer maps kinds to status codes at the boundary
"""

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid-argument"
    NOT_FOUND = "not-found"
    ALREADY_EXISTS = "already-exists"
    PERMISSION_DENIED = "permission-denied"
    FAILED_PRECONDITION = "failed-precondition"
    UNKNOWN = "unknown"


class SevaError(Exception):
    """Base class for all domain errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"message={self.message!r})"
        )


class InvalidArgumentError(SevaError):
    """A required identifier or field is missing or malformed."""

    kind = ErrorKind.INVALID_ARGUMENT


class NotFoundError(SevaError):
    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(SevaError):
    """Duplicate registration or duplicate temple membership."""

    kind = ErrorKind.ALREADY_EXISTS


class PermissionDeniedError(SevaError):
    kind = ErrorKind.PERMISSION_DENIED


class FailedPreconditionError(SevaError):
    """The operation conflicts with current state, e.g. deleting a service
    that still has registrations without forcing."""

    kind = ErrorKind.FAILED_PRECONDITION


class UnknownError(SevaError):
    kind = ErrorKind.UNKNOWN


def error_kind(error: BaseException) -> ErrorKind:
    """Classify any exception; non-domain exceptions are UNKNOWN."""
    if isinstance(error, SevaError):
        return error.kind
    return ErrorKind.UNKNOWN
