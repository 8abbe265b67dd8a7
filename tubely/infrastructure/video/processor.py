"""
Video processing service using FFmpeg.

Two operations back the upload pipeline:
1. probe: read stream metadata with ffprobe and pick the first video stream
2. remux: rewrite the MP4 with its moov atom at the front (fast start)
   using stream copy, so playback can begin before the download finishes

Both run ffprobe/ffmpeg as asyncio subprocesses against the staged file
path, bounded by a timeout. A run that times out or whose caller is
cancelled is killed and reaped before the error propagates, so no
process is left writing a file after it has been cleaned up.
"""

import asyncio
import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Optional, Protocol

from ...core.media.models import StreamMetadata
from ...core.media.pipeline import remux_output_path

logger = logging.getLogger(__name__)


class VideoProcessingError(Exception):
    """Raised when ffprobe or ffmpeg fails or returns something unusable."""
    pass


class VideoProcessor(Protocol):
    """Protocol for video processing operations."""

    async def probe(self, path: Path) -> StreamMetadata:
        """Return metadata of the first video stream."""
        ...

    async def remux(self, path: Path, output_path: Optional[Path] = None) -> Path:
        """Write a fast-start copy of path and return the new file."""
        ...


def _parse_duration(value: Any) -> Optional[float]:
    # ffprobe reports "N/A" for some containers
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_probe_output(output: str) -> StreamMetadata:
    """
    Pick the first video stream out of ffprobe's JSON output.

    ffprobe prints {"streams": [{"codec_type": "video", "width": ..., ...}]}.
    """
    try:
        info = json.loads(output)
    except json.JSONDecodeError as e:
        raise VideoProcessingError(f"Unable to read probe data: {e}") from e

    if not isinstance(info, dict):
        raise VideoProcessingError("Unexpected probe output")

    for stream in info.get("streams") or []:
        if stream.get("codec_type") != "video":
            continue
        try:
            width = int(stream["width"])
            height = int(stream["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise VideoProcessingError(f"Video stream has no usable dimensions: {e}") from e

        return StreamMetadata(
            codec_type="video",
            width=width,
            height=height,
            codec_name=stream.get("codec_name", "unknown"),
            duration_seconds=_parse_duration(stream.get("duration")),
        )

    raise VideoProcessingError("No video stream found")


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


class FFmpegVideoProcessor:
    """
    Video processor using FFmpeg/FFprobe.

    Works on files that are already staged on disk; it never creates or
    removes the input.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        probe_timeout: float = 30.0,
        remux_timeout: float = 300.0,
    ):
        """
        Initialize processor with FFmpeg paths.

        Args:
            ffmpeg_path: Path to ffmpeg binary (default assumes it's in PATH)
            ffprobe_path: Path to ffprobe binary
            probe_timeout: Seconds before an ffprobe run is killed
            remux_timeout: Seconds before an ffmpeg remux is killed
        """
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._probe_timeout = probe_timeout
        self._remux_timeout = remux_timeout

        # verify ffmpeg is available
        try:
            result = subprocess.run(
                [self._ffmpeg, "-version"],
                capture_output=True,
                text=True,
                timeout=5
            )
            if result.returncode != 0:
                raise RuntimeError("FFmpeg not working properly")
            logger.info("FFmpeg video processor initialized")
        except FileNotFoundError:
            raise RuntimeError(
                "FFmpeg not found. Install with: apt-get install ffmpeg"
            )

    async def _run(self, cmd: list[str], timeout: float) -> subprocess.CompletedProcess:
        logger.debug("Running command", extra={"cmd": " ".join(cmd)})
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise VideoProcessingError(f"Unable to run {cmd[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError as e:
            await _kill(proc)
            raise VideoProcessingError(f"{cmd[0]} timed out after {timeout}s") from e
        except BaseException:
            await _kill(proc)
            raise

        return subprocess.CompletedProcess(
            cmd,
            proc.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

    async def probe(self, path: Path) -> StreamMetadata:
        cmd = [
            self._ffprobe,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            str(path),
        ]

        result = await self._run(cmd, self._probe_timeout)
        if result.returncode != 0:
            raise VideoProcessingError(f"FFprobe failed: {result.stderr.strip()}")

        return parse_probe_output(result.stdout)

    async def remux(self, path: Path, output_path: Optional[Path] = None) -> Path:
        """
        Move the MP4 index to the front of the file without re-encoding.

        -c copy keeps every stream as-is; -movflags faststart relocates the
        moov atom. Output goes to output_path, by default a sibling
        "<name>.processing" file. On any failure, cancellation included,
        ffmpeg has exited and the output is gone by the time this raises.
        """
        output_path = output_path or remux_output_path(path)
        cmd = [
            self._ffmpeg,
            "-y",
            "-i", str(path),
            "-map", "0",
            "-c", "copy",
            "-movflags", "faststart",
            "-f", "mp4",
            str(output_path),
        ]

        try:
            result = await self._run(cmd, self._remux_timeout)
            if result.returncode != 0:
                raise VideoProcessingError(f"FFmpeg failed: {result.stderr.strip()[-500:]}")
            if not output_path.exists() or output_path.stat().st_size == 0:
                raise VideoProcessingError("FFmpeg produced no output")
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise

        logger.info(
            "Remuxed video for fast start",
            extra={"input": str(path), "output": str(output_path)}
        )
        return output_path


class MockVideoProcessor:
    """
    Mock video processor for local development without FFmpeg.

    Reports fixed dimensions and "remuxes" by copying the file.
    """

    def __init__(self, width: int = 1920, height: int = 1080):
        self._width = width
        self._height = height
        logger.info("Initialized mock video processor")

    async def probe(self, path: Path) -> StreamMetadata:
        if not path.exists():
            raise VideoProcessingError(f"No such file: {path}")
        return StreamMetadata(
            codec_type="video",
            width=self._width,
            height=self._height,
            codec_name="h264",
        )

    async def remux(self, path: Path, output_path: Optional[Path] = None) -> Path:
        output_path = output_path or remux_output_path(path)
        await asyncio.to_thread(shutil.copyfile, path, output_path)
        return output_path


def create_video_processor(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    ffprobe_path: str = "ffprobe",
    probe_timeout: float = 30.0,
    remux_timeout: float = 300.0,
) -> VideoProcessor:
    """
    Factory function for video processor.

    Args:
        mock_mode: If True, return mock processor (no FFmpeg required)

    Returns:
        VideoProcessor implementation
    """
    if mock_mode:
        return MockVideoProcessor()

    return FFmpegVideoProcessor(
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        probe_timeout=probe_timeout,
        remux_timeout=remux_timeout,
    )
