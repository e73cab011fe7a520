"""
scribeline.transcribe.retry - Bounded retry on "not ready" responses.

Only BackendNotReadyError is retried. Every other error short-circuits the
loop without sleeping.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from scribeline.cancellation import CancellationToken
from scribeline.exceptions import BackendNotReadyError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy(BaseModel):
    """How many attempts to make and how long to wait between them."""

    max_attempts: int = Field(default=10, ge=1)
    delay: float = Field(default=15.0, ge=0.0)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Callable[[int, int, str], None] | None = None,
    cancel: CancellationToken | None = None,
) -> T:
    """Call ``fn`` until it succeeds, retrying only transient failures.

    Args:
        fn: Zero-argument callable performing one transcription attempt
        policy: Attempt budget and delay (defaults: 10 attempts, 15 seconds)
        sleep: Sleep function, injectable for tests
        on_retry: Called as ``on_retry(attempt, max_attempts, message)`` after
            each not-ready failure that will be retried
        cancel: Optional cancellation token checked before every attempt

    Returns:
        Whatever ``fn`` returns on its first successful attempt

    Raises:
        RetryExhaustedError: Every attempt reported "not ready"
        Exception: Any non-transient error from ``fn``, unchanged
    """
    policy = policy or RetryPolicy()
    last_error = ""

    for attempt in range(1, policy.max_attempts + 1):
        if cancel is not None:
            cancel.raise_if_cancelled()

        try:
            return fn()
        except BackendNotReadyError as e:
            last_error = str(e)
            logger.info(
                "Backend not ready (attempt %d/%d): %s", attempt, policy.max_attempts, last_error
            )

        if attempt < policy.max_attempts:
            if on_retry:
                on_retry(attempt, policy.max_attempts, last_error)
            sleep(policy.delay)

    raise RetryExhaustedError(policy.max_attempts, last_error)
