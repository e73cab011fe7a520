"""
scribeline.exceptions - Custom exception classes.

All Scribeline-specific exceptions inherit from ScribelineError. Every
exception except BackendNotReadyError is terminal for a transcription
request.
"""


class ScribelineError(Exception):
    """Base exception for all Scribeline errors."""

    pass


class ConfigError(ScribelineError):
    """Configuration loading or validation error."""

    pass


class InvalidInputError(ScribelineError):
    """Input file is missing, empty, or not audio/video."""

    pass


class MediaProcessingError(ScribelineError):
    """Probing or segmenting the media failed."""

    pass


class BackendError(ScribelineError):
    """Transcription backend error."""

    pass


class BackendNotReadyError(BackendError):
    """Uploaded media is not yet usable. Transient, eligible for retry."""

    pass


class BackendTerminalError(BackendError):
    """Backend rejected the request (quota, auth, malformed, failed state)."""

    pass


class TranscriptionTimeoutError(ScribelineError):
    """Status polling or a single transcription call ran out of time."""

    pass


class RetryExhaustedError(TranscriptionTimeoutError):
    """Backend stayed not-ready for the whole retry budget."""

    def __init__(self, attempts: int, last_error: str):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Transcription failed after {attempts} attempts: {last_error}")


class RequestCancelledError(ScribelineError):
    """The caller cancelled the request or its deadline elapsed."""

    pass


class DependencyError(ScribelineError):
    """Required dependency missing or misconfigured."""

    def __init__(self, dependency: str, message: str, install_hint: str | None = None):
        self.dependency = dependency
        self.message = message
        self.install_hint = install_hint
        super().__init__(f"{dependency}: {message}")
