"""
Retry wrapper for store operations.

Transient store failures are retried with exponential backoff. Failures
that retrying cannot fix (``PERMISSION_DENIED``, ``FAILED_PRECONDITION``)
are raised on the first occurrence.
"""

import asyncio
import logging
import os
from datetime import timedelta
from typing import Awaitable, Callable, FrozenSet, Sequence, TypeVar

from pydantic import BaseModel, field_validator
from temporalio.common import RetryPolicy as TemporalRetryPolicy

from seva.errors import (
    ErrorKind,
    FailedPreconditionError,
    PermissionDeniedError,
    error_kind,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NON_RETRYABLE_KINDS: FrozenSet[ErrorKind] = frozenset(
    {ErrorKind.PERMISSION_DENIED, ErrorKind.FAILED_PRECONDITION}
)


class RetryPolicy(BaseModel):
    """Attempt budget and backoff for ``with_retry``."""

    max_attempts: int = 3
    base_delay_seconds: float = 0.1

    @field_validator("max_attempts")
    @classmethod
    def max_attempts_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be at least 1")
        return v

    @field_validator("base_delay_seconds")
    @classmethod
    def base_delay_must_be_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("base_delay_seconds must be non-negative")
        return v

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        return cls(
            max_attempts=int(os.environ.get("SEVA_RETRY_MAX_ATTEMPTS", "3")),
            base_delay_seconds=float(
                os.environ.get("SEVA_RETRY_BASE_DELAY", "0.1")
            ),
        )

    def delay_for(self, attempt: int) -> float:
        """Sleep after failed attempt number ``attempt`` (1-based)."""
        return float(self.base_delay_seconds * (2**attempt))

    def to_temporal(
        self, also_non_retryable: Sequence[str] = ()
    ) -> TemporalRetryPolicy:
        """Equivalent Temporal activity retry policy.

        ``also_non_retryable`` names further error classes that an activity
        should raise without retrying.
        """
        return TemporalRetryPolicy(
            initial_interval=timedelta(seconds=self.delay_for(1)),
            backoff_coefficient=2.0,
            maximum_attempts=self.max_attempts,
            non_retryable_error_types=[
                PermissionDeniedError.__name__,
                FailedPreconditionError.__name__,
                *also_non_retryable,
            ],
        )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy(),
    operation_name: str = "operation",
) -> T:
    """
    Run ``operation`` until it succeeds or the attempt budget is spent.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        policy: Attempt budget and backoff
        operation_name: Label used in log records

    Returns:
        Whatever the first successful attempt returns

    Raises:
        The error of the last attempt, or the first non-retryable error
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            kind = error_kind(e)
            if kind in NON_RETRYABLE_KINDS:
                logger.debug(
                    "Not retrying non-retryable failure",
                    extra={
                        "operation": operation_name,
                        "attempt": attempt,
                        "error_kind": kind.value,
                    },
                )
                raise
            if attempt >= policy.max_attempts:
                logger.warning(
                    "Retry attempts exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempt,
                        "error_kind": kind.value,
                        "error_message": str(e),
                    },
                )
                raise

            delay = policy.delay_for(attempt)
            logger.info(
                "Retrying after failure",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": policy.max_attempts,
                    "delay_seconds": delay,
                    "error_kind": kind.value,
                },
            )
            await asyncio.sleep(delay)
            attempt += 1
