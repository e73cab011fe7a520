"""
scribeline.media.segmenter - FFmpeg segmentation of oversized media.

Carves an asset into consecutive, non-overlapping time windows and
re-encodes each one as a standalone MP3 (mono, fixed sample rate, fixed
bitrate) so every segment is independently decodable and of predictable
size.
"""

from __future__ import annotations

import logging
import math
import subprocess
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from scribeline.config import ScribelineConfig
from scribeline.exceptions import MediaProcessingError
from scribeline.media.probe import MediaAsset, ensure_duration, needs_splitting
from scribeline.utils import format_duration

logger = logging.getLogger(__name__)

SEGMENT_MIME_TYPE = "audio/mpeg"


class Segment(BaseModel):
    """One bounded time window of the source audio, ready for transcription."""

    model_config = ConfigDict(frozen=True)

    index: int
    path: Path
    mime_type: str
    start: float | None = None
    end: float | None = None

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def duration(self) -> float | None:
        if self.start is None or self.end is None:
            return None
        return self.end - self.start


def plan_chunks(total_duration: float, chunk_duration: float) -> list[tuple[float, float]]:
    """Plan the ``[start, end)`` windows covering ``[0, total_duration)``.

    Produces ``ceil(total / chunk)`` windows; only the last may be shorter
    than ``chunk_duration``.

    Args:
        total_duration: Source duration in seconds
        chunk_duration: Maximum window length in seconds

    Returns:
        Ordered list of (start, end) tuples
    """
    if chunk_duration <= 0:
        raise ValueError("chunk_duration must be positive")
    if total_duration <= 0:
        return []

    num_chunks = math.ceil(total_duration / chunk_duration)
    return [
        (i * chunk_duration, min((i + 1) * chunk_duration, total_duration))
        for i in range(num_chunks)
    ]


def encode_segment(
    source_path: Path,
    output_path: Path,
    start: float,
    end: float,
    sample_rate: int = 16000,
    bitrate: str = "64k",
) -> bool:
    """Re-encode one time window of a media file as mono MP3 using FFmpeg.

    Args:
        source_path: Path to the source media file
        output_path: Output path for the MP3 segment
        start: Window start in seconds
        end: Window end in seconds (exclusive)
        sample_rate: Output sample rate
        bitrate: Output audio bitrate

    Returns:
        True if FFmpeg succeeded and wrote a non-empty file

    Raises:
        MediaProcessingError: If FFmpeg is not installed
    """
    cmd = [
        "ffmpeg",
        "-y",
        "-v",
        "error",
        "-ss",
        f"{start:.3f}",
        "-t",
        f"{end - start:.3f}",
        "-i",
        str(source_path),
        "-vn",
        "-ac",
        "1",
        "-ar",
        str(sample_rate),
        "-b:a",
        bitrate,
        "-acodec",
        "libmp3lame",
        str(output_path),
    ]

    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise MediaProcessingError("ffmpeg not found in PATH") from e

    if proc.returncode != 0:
        logger.warning(
            "FFmpeg failed for window %.1f-%.1fs: %s", start, end, proc.stderr.strip()
        )
        return False

    if not output_path.exists() or output_path.stat().st_size == 0:
        logger.warning("FFmpeg produced no output for window %.1f-%.1fs", start, end)
        return False

    return True


def split(
    asset: MediaAsset,
    config: ScribelineConfig,
    work_dir: Path,
) -> list[Segment]:
    """Split an asset into ordered, independently decodable segments.

    An asset within budget comes back as a single segment that is the asset
    itself. Otherwise each planned window is re-encoded into ``work_dir``.
    Windows that fail to encode are dropped and the surviving segments are
    re-indexed so the returned sequence is gapless.

    Args:
        asset: Media asset to split
        config: Pipeline configuration (split policy, chunk size, encoding)
        work_dir: Directory owned by the caller for segment files

    Returns:
        Ordered list of segments, never empty

    Raises:
        MediaProcessingError: If probing fails, no windows can be planned,
            or no window could be encoded
    """
    if config.split_policy == "duration":
        asset = ensure_duration(asset)

    if not needs_splitting(asset, config):
        return [Segment(index=0, path=asset.path, mime_type=asset.mime_type)]

    asset = ensure_duration(asset)
    windows = plan_chunks(asset.duration_seconds or 0.0, config.chunk_duration_seconds)
    if not windows:
        raise MediaProcessingError(f"{asset.path.name} yielded no segments")

    logger.info(
        "Splitting %s (%s) into %d segment(s) of up to %s",
        asset.path.name,
        format_duration(asset.duration_seconds or 0.0),
        len(windows),
        format_duration(config.chunk_duration_seconds),
    )

    work_dir.mkdir(parents=True, exist_ok=True)
    segments: list[Segment] = []
    for planned_index, (start, end) in enumerate(windows):
        output_path = work_dir / f"segment_{planned_index:03d}.mp3"
        encoded = encode_segment(
            asset.path,
            output_path,
            start,
            end,
            sample_rate=config.sample_rate,
            bitrate=config.bitrate,
        )
        if not encoded:
            output_path.unlink(missing_ok=True)
            continue

        segments.append(
            Segment(
                index=len(segments),
                path=output_path,
                mime_type=SEGMENT_MIME_TYPE,
                start=start,
                end=end,
            )
        )

    if not segments:
        raise MediaProcessingError(f"Failed to encode any segment of {asset.path.name}")

    dropped = len(windows) - len(segments)
    if dropped:
        logger.warning("Dropped %d of %d segment(s) that failed to encode", dropped, len(windows))

    return segments
