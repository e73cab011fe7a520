"""
scribeline.cancellation - Cooperative cancellation and request deadlines.

A request checks its token between segments, before every retry attempt,
and before every readiness poll. In-flight network calls are bounded by
their own timeouts instead.
"""

from __future__ import annotations

import threading
import time

from scribeline.exceptions import RequestCancelledError


class CancellationToken:
    """Thread-safe cancel flag with an optional overall deadline."""

    def __init__(self, deadline_seconds: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + deadline_seconds if deadline_seconds is not None else None
        )

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self) -> None:
        """Raise RequestCancelledError if cancelled or past the deadline."""
        if self.cancelled:
            raise RequestCancelledError("Request was cancelled")
        if self.expired:
            raise RequestCancelledError("Request deadline elapsed")
