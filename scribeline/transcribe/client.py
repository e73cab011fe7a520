"""
scribeline.transcribe.client - Per-segment transcription call.

Chooses the initial or continuation prompt for a segment, issues exactly one
backend call, and classifies the outcome. Retrying is left to
scribeline.transcribe.retry.
"""

from __future__ import annotations

import logging
from typing import Any

from scribeline.exceptions import BackendTerminalError, ScribelineError
from scribeline.media.segmenter import Segment
from scribeline.transcribe.backends import SegmentHandle, TranscriptionBackend
from scribeline.transcribe.prompts import PromptTemplateManager, PromptVariant

logger = logging.getLogger(__name__)

EMPTY_SEGMENT_PLACEHOLDER = "[No transcription was returned for this part of the recording.]"


def prompt_variant(segment: Segment) -> PromptVariant:
    """Initial prompt for the first segment, continuation prompt otherwise."""
    return PromptVariant.INITIAL if segment.is_first else PromptVariant.CONTINUATION


class TranscriptionClient:
    """Transcribes one segment through a backend."""

    def __init__(
        self,
        backend: TranscriptionBackend,
        prompts: PromptTemplateManager | None = None,
        language: str | None = None,
    ) -> None:
        self.backend = backend
        self.prompts = prompts or PromptTemplateManager()
        self.language = language
        self._calls = 0

    def build_prompt(self, segment: Segment) -> str:
        variables: dict[str, Any] = {"language": self.language}
        return self.prompts.render(prompt_variant(segment), variables)

    def transcribe(self, segment: Segment, handle: SegmentHandle) -> str:
        """Send one transcription request for a segment.

        Args:
            segment: Segment to transcribe
            handle: The segment as submitted to the backend

        Returns:
            Transcript text, or EMPTY_SEGMENT_PLACEHOLDER if the backend
            returned no content

        Raises:
            BackendNotReadyError: Media not usable yet (transient)
            BackendTerminalError: Any other backend rejection
            TranscriptionTimeoutError: The call exceeded its timeout
        """
        prompt = self.build_prompt(segment)
        self._calls += 1
        logger.debug(
            "Segment %d: %s prompt via %s backend",
            segment.index,
            prompt_variant(segment).value,
            self.backend.name,
        )

        try:
            text = self.backend.generate(handle, prompt)
        except ScribelineError:
            raise
        except Exception as e:
            raise BackendTerminalError(str(e) or e.__class__.__name__) from e

        text = (text or "").strip()
        if not text:
            logger.warning("Segment %d: backend returned no text", segment.index)
            return EMPTY_SEGMENT_PLACEHOLDER
        return text

    @property
    def call_count(self) -> int:
        """Number of transcription calls issued so far."""
        return self._calls
