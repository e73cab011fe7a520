"""Tests for scribeline.transcribe.retry module."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from scribeline.cancellation import CancellationToken
from scribeline.exceptions import (
    BackendNotReadyError,
    BackendTerminalError,
    RequestCancelledError,
    RetryExhaustedError,
    TranscriptionTimeoutError,
)
from scribeline.transcribe.retry import RetryPolicy, call_with_retry

NOT_READY = "400 The File abc123 is not in an ACTIVE state and usage is not allowed."


def _scripted(outcomes: list[Any]) -> tuple[list[int], Callable[[], Any]]:
    calls: list[int] = []

    def fn():
        calls.append(1)
        item = outcomes.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return calls, fn


class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 10
        assert policy.delay == 15.0


class TestCallWithRetry:
    def test_success_first_try(self, sleeps, fake_sleep) -> None:
        calls, fn = _scripted(["done"])

        assert call_with_retry(fn, sleep=fake_sleep) == "done"
        assert len(calls) == 1
        assert sleeps == []

    def test_nine_not_ready_then_success_uses_ten_attempts(self, sleeps, fake_sleep) -> None:
        calls, fn = _scripted([BackendNotReadyError(NOT_READY)] * 9 + ["transcript"])

        result = call_with_retry(fn, RetryPolicy(max_attempts=10, delay=15.0), sleep=fake_sleep)

        assert result == "transcript"
        assert len(calls) == 10
        assert sleeps == [15.0] * 9

    def test_eleventh_success_exceeds_budget(self, sleeps, fake_sleep) -> None:
        calls, fn = _scripted([BackendNotReadyError(NOT_READY)] * 10 + ["too late"])

        with pytest.raises(RetryExhaustedError) as exc_info:
            call_with_retry(fn, RetryPolicy(max_attempts=10, delay=15.0), sleep=fake_sleep)

        assert len(calls) == 10
        assert exc_info.value.attempts == 10
        assert NOT_READY in str(exc_info.value)
        assert isinstance(exc_info.value, TranscriptionTimeoutError)

    def test_terminal_error_short_circuits_without_sleep(self, sleeps, fake_sleep) -> None:
        calls, fn = _scripted([BackendTerminalError("API key not valid"), "unreachable"])

        with pytest.raises(BackendTerminalError, match="API key not valid"):
            call_with_retry(fn, sleep=fake_sleep)

        assert len(calls) == 1
        assert sleeps == []

    def test_terminal_error_after_not_ready(self, sleeps, fake_sleep) -> None:
        calls, fn = _scripted(
            [BackendNotReadyError(NOT_READY), BackendTerminalError("quota exceeded")]
        )

        with pytest.raises(BackendTerminalError):
            call_with_retry(fn, sleep=fake_sleep)

        assert len(calls) == 2
        assert sleeps == [15.0]

    def test_timeout_is_not_retried(self, sleeps, fake_sleep) -> None:
        calls, fn = _scripted([TranscriptionTimeoutError("call exceeded 300s")])

        with pytest.raises(TranscriptionTimeoutError):
            call_with_retry(fn, sleep=fake_sleep)

        assert len(calls) == 1

    def test_on_retry_reports_progress(self, fake_sleep) -> None:
        reported: list[tuple[int, int, str]] = []
        _, fn = _scripted([BackendNotReadyError(NOT_READY), "ok"])

        call_with_retry(
            fn,
            RetryPolicy(max_attempts=3, delay=0),
            sleep=fake_sleep,
            on_retry=lambda a, m, msg: reported.append((a, m, msg)),
        )

        assert reported == [(1, 3, NOT_READY)]

    def test_cancellation_checked_before_attempt(self, fake_sleep) -> None:
        token = CancellationToken()
        token.cancel()
        calls, fn = _scripted(["never"])

        with pytest.raises(RequestCancelledError):
            call_with_retry(fn, sleep=fake_sleep, cancel=token)

        assert calls == []
