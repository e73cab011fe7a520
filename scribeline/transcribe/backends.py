"""
scribeline.transcribe.backends - Gemini integration shapes.

Two ways of getting a segment in front of the model:

- ``inline``: the segment is base64-encoded into the request itself and sent
  through litellm. No ingest step, so no readiness polling.
- ``upload``: the segment is uploaded once with google-generativeai and
  referenced by its file handle. The upload is processed asynchronously on
  the backend side, so the file must become ACTIVE before use.

Backends translate their library's exceptions into the Scribeline taxonomy:
"not ready" responses become BackendNotReadyError, timeouts become
TranscriptionTimeoutError, anything else is BackendTerminalError with the
backend's own message.
"""

from __future__ import annotations

import base64
import logging
from enum import Enum
from typing import Any

from scribeline.config import ScribelineConfig
from scribeline.exceptions import (
    BackendError,
    BackendNotReadyError,
    BackendTerminalError,
    DependencyError,
    TranscriptionTimeoutError,
)
from scribeline.media.segmenter import Segment

logger = logging.getLogger(__name__)

NOT_READY_MARKERS = ("not in an ACTIVE state", "FAILED_PRECONDITION")


class FileState(str, Enum):
    """Backend-side readiness of submitted media."""

    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"


GEMINI_FILE_STATES = {
    "STATE_UNSPECIFIED": FileState.PENDING,
    "PROCESSING": FileState.PENDING,
    "ACTIVE": FileState.ACTIVE,
    "FAILED": FileState.FAILED,
}


class SegmentHandle:
    """A segment as submitted to a backend."""

    def __init__(
        self,
        segment: Segment,
        state: FileState = FileState.ACTIVE,
        name: str | None = None,
        uri: str | None = None,
        payload: Any = None,
    ) -> None:
        self.segment = segment
        self.state = state
        self.name = name
        self.uri = uri
        self.payload = payload

    def __repr__(self) -> str:
        return f"SegmentHandle(index={self.segment.index}, name={self.name!r}, state={self.state.value})"


def is_not_ready_message(message: str) -> bool:
    """True if a backend error message says the media is not usable yet."""
    return any(marker in message for marker in NOT_READY_MARKERS)


def classify_error(error: Exception) -> BackendError:
    """Map a raw backend exception to a transient or terminal error."""
    message = str(error) or error.__class__.__name__
    if is_not_ready_message(message):
        return BackendNotReadyError(message)
    return BackendTerminalError(message)


class TranscriptionBackend:
    """Base class for transcription backends."""

    name = "base"
    requires_ingest = False

    def submit(self, segment: Segment) -> SegmentHandle:
        """Make a segment available to the backend."""
        raise NotImplementedError

    def get_state(self, handle: SegmentHandle) -> FileState:
        """Check whether submitted media can be referenced yet."""
        return FileState.ACTIVE

    def generate(self, handle: SegmentHandle, prompt: str) -> str:
        """Run one transcription call and return the raw text (may be empty)."""
        raise NotImplementedError

    def release(self, handle: SegmentHandle) -> None:
        """Free backend-side resources held for a segment."""
        return None


class InlineBackend(TranscriptionBackend):
    """Sends segment bytes inline as a base64 data URI via litellm."""

    name = "inline"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout: float = 300.0,
        max_output_tokens: int = 65536,
        thinking_budget: int | None = 0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_output_tokens = max_output_tokens
        self.thinking_budget = thinking_budget

    def _get_model_string(self) -> str:
        if "/" in self.model:
            return self.model
        return f"gemini/{self.model}"

    def submit(self, segment: Segment) -> SegmentHandle:
        encoded = base64.b64encode(segment.path.read_bytes()).decode("ascii")
        return SegmentHandle(
            segment,
            state=FileState.ACTIVE,
            payload=f"data:{segment.mime_type};base64,{encoded}",
        )

    def generate(self, handle: SegmentHandle, prompt: str) -> str:
        try:
            import litellm
        except ImportError as e:
            raise DependencyError(
                "litellm", "litellm not installed", "Install with: pip install litellm"
            ) from e

        litellm.telemetry = False

        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "file", "file": {"file_data": handle.payload}},
                    {"type": "text", "text": prompt},
                ],
            }
        ]

        kwargs: dict[str, Any] = {}
        if self.thinking_budget is not None:
            # 0 disables thinking
            kwargs["thinking"] = {"type": "enabled", "budget_tokens": self.thinking_budget}

        try:
            response = litellm.completion(
                model=self._get_model_string(),
                messages=messages,
                api_key=self.api_key,
                max_tokens=self.max_output_tokens,
                timeout=self.timeout,
                **kwargs,
            )
        except litellm.Timeout as e:
            raise TranscriptionTimeoutError(
                f"Transcription call exceeded {self.timeout:.0f}s: {e}"
            ) from e
        except Exception as e:
            raise classify_error(e) from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return getattr(message, "content", None) or ""


class UploadBackend(TranscriptionBackend):
    """Uploads each segment with google-generativeai and references the file."""

    name = "upload"
    requires_ingest = True

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout: float = 300.0,
        max_output_tokens: int = 65536,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_output_tokens = max_output_tokens
        self._configured = False

    def _genai(self) -> Any:
        try:
            import google.generativeai as genai
        except ImportError as e:
            raise DependencyError(
                "google-generativeai",
                "google-generativeai not installed",
                "Install with: pip install google-generativeai",
            ) from e

        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True
        return genai

    def submit(self, segment: Segment) -> SegmentHandle:
        genai = self._genai()
        try:
            uploaded = genai.upload_file(
                path=str(segment.path),
                mime_type=segment.mime_type,
                display_name=segment.path.name,
            )
        except Exception as e:
            raise classify_error(e) from e

        handle = SegmentHandle(
            segment,
            state=GEMINI_FILE_STATES.get(uploaded.state.name, FileState.PENDING),
            name=uploaded.name,
            uri=uploaded.uri,
            payload=uploaded,
        )
        logger.debug("Uploaded segment %d as %s (%s)", segment.index, handle.name, handle.state.value)
        return handle

    def get_state(self, handle: SegmentHandle) -> FileState:
        genai = self._genai()
        try:
            info = genai.get_file(handle.name)
        except Exception as e:
            raise classify_error(e) from e

        handle.payload = info
        handle.state = GEMINI_FILE_STATES.get(info.state.name, FileState.PENDING)
        return handle.state

    def generate(self, handle: SegmentHandle, prompt: str) -> str:
        genai = self._genai()
        from google.api_core import exceptions as google_exceptions

        model = genai.GenerativeModel(self.model)
        try:
            response = model.generate_content(
                [handle.payload, prompt],
                generation_config={"max_output_tokens": self.max_output_tokens},
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.DeadlineExceeded as e:
            raise TranscriptionTimeoutError(
                f"Transcription call exceeded {self.timeout:.0f}s: {e}"
            ) from e
        except google_exceptions.FailedPrecondition as e:
            raise BackendNotReadyError(str(e)) from e
        except Exception as e:
            raise classify_error(e) from e

        try:
            return response.text or ""
        except ValueError:
            # No text parts, e.g. an empty or blocked candidate.
            return ""

    def release(self, handle: SegmentHandle) -> None:
        if handle.name is None:
            return
        genai = self._genai()
        try:
            genai.delete_file(handle.name)
        except Exception as e:
            logger.warning("Could not delete uploaded file %s: %s", handle.name, e)


def create_backend(config: ScribelineConfig, api_key: str) -> TranscriptionBackend:
    """Create the configured transcription backend.

    Args:
        config: ScribelineConfig instance
        api_key: Credential resolved once for the request

    Returns:
        Configured backend
    """
    if config.backend == "inline":
        return InlineBackend(
            api_key=api_key,
            model=config.model,
            timeout=config.request_timeout,
            max_output_tokens=config.max_output_tokens,
            thinking_budget=config.thinking_budget,
        )
    return UploadBackend(
        api_key=api_key,
        model=config.model,
        timeout=config.request_timeout,
        max_output_tokens=config.max_output_tokens,
    )
