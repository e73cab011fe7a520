"""
scribeline.transcribe - Per-segment transcription through Gemini.

Prompt selection, backend integration (inline bytes or upload-then-reference),
readiness waiting for uploaded media, and bounded retry on "not ready".
"""

from __future__ import annotations
