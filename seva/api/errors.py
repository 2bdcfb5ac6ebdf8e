"""
Translation of domain errors into HTTP responses.
"""

import logging
from typing import Any, Dict

from fastapi import HTTPException

from seva.errors import ErrorKind, SevaError

logger = logging.getLogger(__name__)

STATUS_CODES: Dict[ErrorKind, int] = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.FAILED_PRECONDITION: 409,
    ErrorKind.UNKNOWN: 500,
}

NO_STORE = {"Cache-Control": "no-store"}


def http_error_for(
    error: Exception, action: str, **context: Any
) -> HTTPException:
    """
    Build the HTTPException for a failure raised while performing
    ``action``.

    Domain errors keep their message. Anything else is logged with its
    traceback and reported as a generic 500 so internals never leak.
    """
    if isinstance(error, SevaError) and error.kind != ErrorKind.UNKNOWN:
        status_code = STATUS_CODES[error.kind]
        logger.info(
            f"Failed to {action}",
            extra={
                **context,
                "error_kind": error.kind.value,
                "error_message": error.message,
                "status_code": status_code,
            },
        )
        return HTTPException(
            status_code=status_code, detail=error.message, headers=NO_STORE
        )

    logger.error(
        f"Failed to {action}",
        exc_info=True,
        extra={
            **context,
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )
    return HTTPException(
        status_code=500,
        detail=f"Failed to {action} due to an internal error.",
        headers=NO_STORE,
    )
