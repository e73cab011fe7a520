"""
scribeline.media.probe - Media inspection and the split decision.

Builds MediaAsset records from files on disk, rejects anything that is not
audio or video, reads durations with ffprobe, and decides whether an asset
exceeds the single-request budget.
"""

from __future__ import annotations

import json
import logging
import mimetypes
import subprocess
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from scribeline.config import ScribelineConfig
from scribeline.exceptions import InvalidInputError, MediaProcessingError

logger = logging.getLogger(__name__)

ACCEPTED_MIME_PREFIXES = ("audio/", "video/")


class MediaAsset(BaseModel):
    """An input media file owned by one transcription request."""

    model_config = ConfigDict(frozen=True)

    path: Path
    mime_type: str
    size_bytes: int
    duration_seconds: float | None = None

    @classmethod
    def from_path(
        cls,
        path: Path,
        mime_type: str | None = None,
        duration_seconds: float | None = None,
    ) -> MediaAsset:
        """Create an asset for a file, guessing the MIME type if not declared.

        Raises:
            InvalidInputError: If the file is missing, empty, or not audio/video
        """
        if not path.is_file():
            raise InvalidInputError(f"File not found: {path}")

        declared = mime_type or mimetypes.guess_type(path.name)[0] or ""
        validate_media_type(declared)

        size = path.stat().st_size
        if size == 0:
            raise InvalidInputError(f"File is empty: {path}")

        return cls(
            path=path,
            mime_type=declared,
            size_bytes=size,
            duration_seconds=duration_seconds,
        )

    def with_duration(self, duration_seconds: float) -> MediaAsset:
        return self.model_copy(update={"duration_seconds": duration_seconds})


def validate_media_type(mime_type: str) -> None:
    """Reject declared types that are not audio or video.

    Raises:
        InvalidInputError: If the MIME type is empty or not audio/video
    """
    if not mime_type.startswith(ACCEPTED_MIME_PREFIXES):
        shown = mime_type or "unknown"
        raise InvalidInputError(
            f"Unsupported file type '{shown}'. Select an audio or video file (e.g. MP4)."
        )


def probe_duration(path: Path) -> float:
    """Read the container duration of a media file with ffprobe.

    Args:
        path: Path to the media file

    Returns:
        Duration in seconds

    Raises:
        MediaProcessingError: If ffprobe is missing, fails, or reports no duration
    """
    cmd = [
        "ffprobe",
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        str(path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise MediaProcessingError("ffprobe not found in PATH") from e

    if result.returncode != 0:
        raise MediaProcessingError(f"ffprobe failed for {path}: {result.stderr.strip()}")

    try:
        data = json.loads(result.stdout)
        duration = float(data.get("format", {}).get("duration", 0))
    except (ValueError, TypeError) as e:
        raise MediaProcessingError(f"Could not read duration of {path}: {e}") from e

    if duration <= 0:
        raise MediaProcessingError(f"{path} has no measurable duration")

    logger.debug("Probed %s: %.2f seconds", path.name, duration)
    return duration


def ensure_duration(asset: MediaAsset) -> MediaAsset:
    """Return the asset with its duration filled in, probing if needed."""
    if asset.duration_seconds is not None:
        return asset
    return asset.with_duration(probe_duration(asset.path))


def needs_splitting(asset: MediaAsset, config: ScribelineConfig) -> bool:
    """Decide whether an asset exceeds what one transcription call accepts.

    Only the configured policy is consulted. The ``size`` policy compares
    bytes against ``max_chunk_bytes``. The ``duration`` policy compares the
    duration against ``chunk_duration_seconds`` and probes the file when the
    duration is not yet known.
    """
    if config.split_policy == "size":
        return asset.size_bytes > config.max_chunk_bytes

    duration = asset.duration_seconds
    if duration is None:
        duration = probe_duration(asset.path)
    return duration > config.chunk_duration_seconds
