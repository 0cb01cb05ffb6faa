"""
Video processing infrastructure.

Handles server-side transcoding using FFmpeg so that uploaded
QuickTime/HEVC clips play in every browser.
"""

from .transcoder import (
    FFmpegTranscoder,
    MockTranscoder,
    TranscodeError,
    TranscodeOptions,
    Transcoder,
    create_transcoder,
)

__all__ = [
    "FFmpegTranscoder",
    "MockTranscoder",
    "TranscodeError",
    "TranscodeOptions",
    "Transcoder",
    "create_transcoder",
]
