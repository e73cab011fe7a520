"""
Scribeline - chunked media transcription through a generative-AI model.

Turns an audio or video file into a plain-text transcript: probe the file,
split it into bounded-duration segments when it is too large for a single
request, transcribe each segment in order with readiness polling and retry,
then join the partial transcripts.
"""

__version__ = "0.1.0"
