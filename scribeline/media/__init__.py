"""
scribeline.media - Media probing and segmentation.

Decides whether a media file fits in a single transcription request and,
when it does not, splits it with FFmpeg into bounded-duration, independently
decodable MP3 segments (mono, fixed sample rate, fixed bitrate).
"""

from __future__ import annotations
