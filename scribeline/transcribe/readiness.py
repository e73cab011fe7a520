"""
scribeline.transcribe.readiness - Waiting for uploaded media to become usable.

Uploaded segments are processed asynchronously by the backend and cannot be
referenced until they are ACTIVE. Two strategies are supported:

- ``poll``: check the file state on a fixed interval until it is active,
  failed, or the attempt budget runs out.
- ``grace``: for status endpoints that are unreliable, wait a fixed grace
  period once and proceed; the retry loop absorbs "not ready" responses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum

from scribeline.cancellation import CancellationToken
from scribeline.exceptions import (
    BackendNotReadyError,
    BackendTerminalError,
    TranscriptionTimeoutError,
)
from scribeline.transcribe.backends import FileState, SegmentHandle

logger = logging.getLogger(__name__)


class Readiness(str, Enum):
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


def await_ready(
    get_state: Callable[[SegmentHandle], FileState],
    handle: SegmentHandle,
    max_attempts: int = 60,
    poll_interval: float = 5.0,
    sleep: Callable[[float], None] = time.sleep,
    cancel: CancellationToken | None = None,
) -> Readiness:
    """Poll a handle's state until it is usable.

    Each attempt is one status check; the loop sleeps ``poll_interval``
    between checks. A failed state ends the wait immediately.

    Args:
        get_state: Status check for a handle
        handle: Submitted segment
        max_attempts: Maximum number of status checks
        poll_interval: Seconds between checks
        sleep: Sleep function, injectable for tests
        cancel: Optional cancellation token checked before every check

    Returns:
        Readiness.READY, Readiness.FAILED or Readiness.TIMED_OUT
    """
    for attempt in range(1, max_attempts + 1):
        if cancel is not None:
            cancel.raise_if_cancelled()

        state = get_state(handle)
        if state == FileState.ACTIVE:
            return Readiness.READY
        if state == FileState.FAILED:
            return Readiness.FAILED

        logger.debug("%s is %s (check %d/%d)", handle.name, state.value, attempt, max_attempts)
        if attempt < max_attempts:
            sleep(poll_interval)

    return Readiness.TIMED_OUT


class ReadinessWaiter:
    """Applies the configured readiness strategy to submitted segments."""

    def __init__(
        self,
        get_state: Callable[[SegmentHandle], FileState],
        strategy: str = "poll",
        max_attempts: int = 60,
        poll_interval: float = 5.0,
        grace_period: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.get_state = get_state
        self.strategy = strategy
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self.grace_period = grace_period
        self.sleep = sleep

    def wait(self, handle: SegmentHandle, cancel: CancellationToken | None = None) -> None:
        """Block until the handle is usable.

        Raises:
            BackendTerminalError: The backend reported the file as failed
            BackendTerminalError: The status check itself failed
            TranscriptionTimeoutError: The file never became active
        """
        if self.strategy == "grace":
            self._wait_grace(handle, cancel)
            return

        try:
            result = await_ready(
                self.get_state,
                handle,
                max_attempts=self.max_attempts,
                poll_interval=self.poll_interval,
                sleep=self.sleep,
                cancel=cancel,
            )
        except BackendNotReadyError as e:
            raise BackendTerminalError(f"Status check for {handle.name} failed: {e}") from e
        if result == Readiness.FAILED:
            raise BackendTerminalError(f"Backend failed to process {handle.name} (state: FAILED)")
        if result == Readiness.TIMED_OUT:
            waited = self.max_attempts * self.poll_interval
            raise TranscriptionTimeoutError(
                f"{handle.name} was not ready after {self.max_attempts} checks (~{waited:.0f}s)"
            )

    def _wait_grace(self, handle: SegmentHandle, cancel: CancellationToken | None) -> None:
        if handle.state == FileState.ACTIVE:
            return
        if handle.state == FileState.FAILED:
            raise BackendTerminalError(f"Backend failed to process {handle.name} (state: FAILED)")

        if cancel is not None:
            cancel.raise_if_cancelled()
        logger.info(
            "%s is still processing; waiting %.0fs before transcribing", handle.name, self.grace_period
        )
        self.sleep(self.grace_period)
