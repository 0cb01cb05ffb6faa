"""
Video transcoding service using FFmpeg.

Phones record QuickTime files that often carry HEVC video, which most
browsers refuse to play. Before such a file is stored we re-encode the
video stream to H.264 and leave the audio alone.

Why FFmpeg:
- Industry standard, battle-tested
- Handles any video format
- Available everywhere (including Docker)
"""

import asyncio
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class TranscodeError(Exception):
    """Raised when a conversion fails."""
    pass


@dataclass
class TranscodeOptions:
    """Encoder parameters for the normalized output."""
    video_codec: str = "libx264"
    preset: str = "fast"
    crf: int = 23
    audio_codec: str = "copy"


class Transcoder(Protocol):
    """Protocol for video conversion."""

    async def transcode(self, input_path: PathLike, output_path: PathLike) -> None:
        """Convert input_path into output_path, raising TranscodeError on failure."""
        ...


class FFmpegTranscoder:
    """
    Transcoder that shells out to ffmpeg.

    The subprocess runs in a worker thread so other uploads in the same
    batch keep moving while a long encode is in progress.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        options: Optional[TranscodeOptions] = None,
        timeout_seconds: Optional[float] = None,
        verify: bool = True,
    ):
        """
        Initialize transcoder.

        Args:
            ffmpeg_path: Path to ffmpeg binary (default assumes it's in PATH)
            options: Encoder parameters
            timeout_seconds: Kill ffmpeg after this long; None waits forever
            verify: Run `ffmpeg -version` up front and warn on a bad install
        """
        self._ffmpeg = ffmpeg_path
        self._options = options or TranscodeOptions()
        self._timeout = timeout_seconds
        self.available: Optional[bool] = None

        if verify:
            self.available = self.check_installation()

    def check_installation(self) -> bool:
        """
        Probe the ffmpeg binary.

        Warns and returns False on a missing or broken binary. transcode()
        reports the failure for the file being converted.
        """
        try:
            result = subprocess.run(
                [self._ffmpeg, "-version"],
                capture_output=True,
                text=True,
                timeout=5
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            logger.warning(
                "FFmpeg not found. Install with: apt-get install ffmpeg",
                extra={"ffmpeg_path": self._ffmpeg, "error": str(e)}
            )
            return False

        if result.returncode != 0:
            logger.warning(
                "FFmpeg not working properly",
                extra={"ffmpeg_path": self._ffmpeg, "returncode": result.returncode}
            )
            return False

        logger.info("FFmpeg transcoder initialized")
        return True

    def build_command(self, input_path: PathLike, output_path: PathLike) -> list[str]:
        """Assemble the ffmpeg argument list."""
        return [
            self._ffmpeg,
            "-y",  # overwrite
            "-i", str(input_path),
            "-c:v", self._options.video_codec,
            "-preset", self._options.preset,
            "-crf", str(self._options.crf),
            "-c:a", self._options.audio_codec,
            str(output_path),
        ]

    async def transcode(self, input_path: PathLike, output_path: PathLike) -> None:
        """
        Re-encode the video stream of input_path into output_path.

        A non-zero exit is a failure for this file. The tail of stderr goes
        into the error message since that's where ffmpeg explains itself.
        """
        cmd = self.build_command(input_path, output_path)

        logger.info(
            "Transcoding video",
            extra={"input": str(input_path), "output": str(output_path)}
        )

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError:
            raise TranscodeError(f"FFmpeg not found at {self._ffmpeg}")
        except subprocess.TimeoutExpired:
            raise TranscodeError(f"FFmpeg timed out after {self._timeout}s")

        if result.returncode != 0:
            stderr_tail = (result.stderr or "").strip()[-500:]
            logger.error(
                "Error converting file",
                extra={
                    "input": str(input_path),
                    "returncode": result.returncode,
                    "stderr": stderr_tail,
                }
            )
            raise TranscodeError(
                f"FFmpeg exited with code {result.returncode}: {stderr_tail}"
            )


class MockTranscoder:
    """
    Mock transcoder for local development without FFmpeg.

    Copies the input to the output path unchanged and records each call,
    which is enough to exercise the upload flow end to end.
    """

    def __init__(self):
        self.calls: list[tuple[Path, Path]] = []
        logger.info("Initialized mock transcoder")

    async def transcode(self, input_path: PathLike, output_path: PathLike) -> None:
        """Copy input to output."""
        self.calls.append((Path(input_path), Path(output_path)))
        await asyncio.to_thread(shutil.copyfile, input_path, output_path)


def create_transcoder(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    options: Optional[TranscodeOptions] = None,
    timeout_seconds: Optional[float] = None,
) -> Transcoder:
    """
    Factory function for transcoder.

    Args:
        mock_mode: If True, return mock transcoder (no FFmpeg required)

    Returns:
        Transcoder implementation
    """
    if mock_mode:
        return MockTranscoder()

    return FFmpegTranscoder(
        ffmpeg_path=ffmpeg_path,
        options=options,
        timeout_seconds=timeout_seconds,
    )
