"""
scribeline.pipeline - Chunked transcription pipeline coordinator.

Drives one request through probing, segmentation, strictly sequential
per-segment transcription and joining:

    RECEIVED -> PROBING -> SEGMENTING -> TRANSCRIBING -> JOINING -> DONE

Any terminal error moves the request to FAILED and aborts the remaining
segments. A failed request never returns a partial transcript. Temporary
files live in a per-request directory that is removed on every exit path.
"""

from __future__ import annotations

import logging
import tempfile
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from scribeline.cancellation import CancellationToken
from scribeline.config import ScribelineConfig, resolve_api_key
from scribeline.exceptions import (
    BackendTerminalError,
    InvalidInputError,
    MediaProcessingError,
    ScribelineError,
    TranscriptionTimeoutError,
)
from scribeline.media.probe import MediaAsset, ensure_duration, needs_splitting, validate_media_type
from scribeline.media.segmenter import Segment, split
from scribeline.transcribe.backends import TranscriptionBackend, create_backend
from scribeline.transcribe.client import TranscriptionClient
from scribeline.transcribe.prompts import PromptTemplateManager
from scribeline.transcribe.readiness import ReadinessWaiter
from scribeline.transcribe.retry import RetryPolicy, call_with_retry
from scribeline.utils import format_size

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = "\n\n"


class PipelineState(str, Enum):
    RECEIVED = "received"
    PROBING = "probing"
    SEGMENTING = "segmenting"
    TRANSCRIBING = "transcribing"
    JOINING = "joining"
    DONE = "done"
    FAILED = "failed"


ProgressCallback = Callable[[PipelineState, str], None]


class SegmentResult(BaseModel):
    """Outcome of transcribing one segment."""

    index: int
    text: str = ""
    error: str | None = None


class TranscriptionOutcome(BaseModel):
    """What a request returns to its caller."""

    transcript: str | None = None
    segment_count: int | None = None
    error: str | None = None
    error_kind: str | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"transcript": self.transcript, "segment_count": self.segment_count}
        return {"error": self.error}

    @classmethod
    def failure(cls, error: ScribelineError) -> TranscriptionOutcome:
        return cls(
            error=str(error),
            error_kind=error.__class__.__name__,
            timed_out=isinstance(error, TranscriptionTimeoutError),
        )


class TranscriptionRequest:
    """Mutable state of one request. Discarded when the request ends."""

    def __init__(self, asset: MediaAsset) -> None:
        self.asset = asset
        self.segments: list[Segment] = []
        self.results: list[SegmentResult] = []
        self.state = PipelineState.RECEIVED
        self.history: list[PipelineState] = [PipelineState.RECEIVED]

    def transition(self, state: PipelineState) -> None:
        if self.state in (PipelineState.DONE, PipelineState.FAILED):
            raise RuntimeError(f"Request already finished ({self.state.value})")
        self.state = state
        if not self.history or self.history[-1] != state:
            self.history.append(state)


def join_results(results: list[SegmentResult]) -> str:
    """Join segment texts in index order, separated by a paragraph break."""
    ordered = sorted(results, key=lambda r: r.index)
    return PARAGRAPH_BREAK.join(r.text for r in ordered)


class TranscriptionPipeline:
    """Coordinates probing, segmentation and sequential transcription.

    The API credential is injected at construction and read-only for the
    pipeline's lifetime. One pipeline may serve many requests, one at a time
    per call; requests share no mutable state.
    """

    def __init__(
        self,
        config: ScribelineConfig,
        api_key: str,
        backend: TranscriptionBackend | None = None,
        prompts: PromptTemplateManager | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self.backend = backend or create_backend(config, api_key)
        self.client = TranscriptionClient(
            self.backend,
            prompts=prompts or PromptTemplateManager(config.prompts_dir),
            language=config.language,
        )
        self.waiter = ReadinessWaiter(
            self.backend.get_state,
            strategy=config.readiness_strategy,
            max_attempts=config.poll_attempts,
            poll_interval=config.poll_interval,
            grace_period=config.grace_period,
            sleep=sleep,
        )
        self.retry_policy = RetryPolicy(max_attempts=config.max_attempts, delay=config.retry_delay)
        self.sleep = sleep
        self.on_progress = on_progress

    def _emit(self, request: TranscriptionRequest, state: PipelineState, label: str) -> None:
        request.transition(state)
        logger.info(label)
        if self.on_progress:
            self.on_progress(state, label)

    def transcribe_file(
        self,
        path: Path,
        mime_type: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> TranscriptionOutcome:
        """Transcribe a media file on disk."""
        try:
            asset = MediaAsset.from_path(path, mime_type)
        except InvalidInputError as e:
            return TranscriptionOutcome.failure(e)
        return self.run(asset, cancel)

    def transcribe_bytes(
        self,
        data: bytes,
        mime_type: str,
        filename: str = "upload",
        cancel: CancellationToken | None = None,
    ) -> TranscriptionOutcome:
        """Transcribe an in-memory upload.

        The bytes are written into the request's temporary directory, which
        is removed together with any segments when the request ends.
        """
        try:
            validate_media_type(mime_type)
            if not data:
                raise InvalidInputError("File is empty")
        except InvalidInputError as e:
            return TranscriptionOutcome.failure(e)

        with tempfile.TemporaryDirectory(prefix="scribeline-") as tmp:
            work_dir = Path(tmp)
            source = work_dir / Path(filename).name
            source.write_bytes(data)
            asset = MediaAsset(path=source, mime_type=mime_type, size_bytes=len(data))
            return self._run(asset, work_dir / "segments", cancel)

    def run(self, asset: MediaAsset, cancel: CancellationToken | None = None) -> TranscriptionOutcome:
        """Run one request for an asset.

        Args:
            asset: Media asset to transcribe
            cancel: Optional cancellation token; defaults to one bounded by
                ``deadline_seconds`` from the config

        Returns:
            TranscriptionOutcome with either a transcript or an error
        """
        with tempfile.TemporaryDirectory(prefix="scribeline-") as tmp:
            return self._run(asset, Path(tmp), cancel)

    def _run(
        self,
        asset: MediaAsset,
        work_dir: Path,
        cancel: CancellationToken | None,
    ) -> TranscriptionOutcome:
        cancel = cancel or CancellationToken(self.config.deadline_seconds)
        request = TranscriptionRequest(asset)

        try:
            cancel.raise_if_cancelled()
            self._emit(
                request,
                PipelineState.PROBING,
                f"Inspecting {asset.path.name} ({format_size(asset.size_bytes)})",
            )
            if self.config.split_policy == "duration":
                request.asset = ensure_duration(request.asset)
            oversized = needs_splitting(request.asset, self.config)

            cancel.raise_if_cancelled()
            label = "Splitting audio into segments" if oversized else "Using file as a single segment"
            self._emit(request, PipelineState.SEGMENTING, label)
            request.segments = split(request.asset, self.config, work_dir)
            if not request.segments:
                raise MediaProcessingError(f"{asset.path.name} yielded no segments")

            count = len(request.segments)
            for segment in request.segments:
                cancel.raise_if_cancelled()
                self._emit(
                    request,
                    PipelineState.TRANSCRIBING,
                    f"Transcribing segment {segment.index + 1}/{count}",
                )
                request.results.append(self._transcribe_segment(request, segment, count, cancel))

            self._emit(request, PipelineState.JOINING, f"Joining {count} segment transcript(s)")
            transcript = join_results(request.results)
            self._emit(request, PipelineState.DONE, "Transcription complete")
            return TranscriptionOutcome(transcript=transcript, segment_count=count)

        except ScribelineError as e:
            return self._fail(request, e)
        except Exception as e:
            logger.exception("Unexpected error during %s", request.state.value)
            error = BackendTerminalError(str(e) or e.__class__.__name__)
            error.__cause__ = e
            return self._fail(request, error)

    def _fail(self, request: TranscriptionRequest, error: ScribelineError) -> TranscriptionOutcome:
        logger.error("Transcription failed during %s: %s", request.state.value, error)
        if request.state == PipelineState.TRANSCRIBING:
            failed_index = len(request.results)
            request.results.append(SegmentResult(index=failed_index, error=str(error)))
        if request.state not in (PipelineState.DONE, PipelineState.FAILED):
            request.transition(PipelineState.FAILED)
        if self.on_progress:
            try:
                self.on_progress(PipelineState.FAILED, f"Failed: {error}")
            except Exception as e:
                logger.warning("Progress callback failed while reporting failure: %s", e)
        return TranscriptionOutcome.failure(error)

    def _transcribe_segment(
        self,
        request: TranscriptionRequest,
        segment: Segment,
        count: int,
        cancel: CancellationToken,
    ) -> SegmentResult:
        position = f"{segment.index + 1}/{count}"

        def on_retry(attempt: int, max_attempts: int, message: str) -> None:
            if self.on_progress:
                self.on_progress(
                    PipelineState.TRANSCRIBING,
                    f"Segment {position} still processing, retry {attempt}/{max_attempts}",
                )

        handle = self.backend.submit(segment)
        try:
            if self.backend.requires_ingest:
                if self.on_progress:
                    self.on_progress(
                        PipelineState.TRANSCRIBING,
                        f"Waiting for segment {position} to be processed",
                    )
                self.waiter.wait(handle, cancel)

            text = call_with_retry(
                lambda: self.client.transcribe(segment, handle),
                policy=self.retry_policy,
                sleep=self.sleep,
                on_retry=on_retry,
                cancel=cancel,
            )
        finally:
            self.backend.release(handle)

        return SegmentResult(index=segment.index, text=text)


def transcribe_media(
    path: Path,
    config: ScribelineConfig | None = None,
    api_key: str | None = None,
    mime_type: str | None = None,
    on_progress: ProgressCallback | None = None,
    cancel: CancellationToken | None = None,
) -> dict[str, Any]:
    """Transcribe a media file and return the caller-facing result dict.

    Returns:
        ``{"transcript": str, "segment_count": int}`` or ``{"error": str}``
    """
    config = config or ScribelineConfig()
    try:
        api_key = api_key or resolve_api_key(config)
    except ScribelineError as e:
        return {"error": str(e)}

    pipeline = TranscriptionPipeline(config, api_key, on_progress=on_progress)
    return pipeline.transcribe_file(path, mime_type, cancel).to_dict()
